"""
Date handling shared by the overlap and gap rules.

Both rules work on the same grouping: entitlements of one type and one
product code that carry two parseable dates, ordered by start date with
ties kept in payload order. Keeping that substep here means the two rules
can never disagree about which entitlements are neighbours.
"""

from dataclasses import dataclass
from datetime import date, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from dateutil.parser import isoparse

from .models import Entitlement, EntitlementType


GroupKey = Tuple[EntitlementType, str]


@dataclass(frozen=True)
class DatedEntitlement:
    """An entitlement with both dates resolved to calendar days.

    ``start`` <= ``end`` always holds; a payload range written end-first is
    stored swapped with ``inverted`` set.
    """
    entitlement: Entitlement
    start: date
    end: date
    position: int
    inverted: bool = False

    def describe(self) -> Dict[str, object]:
        return {
            "type": self.entitlement.type.value,
            "index": self.entitlement.index + 1,
            "label": self.entitlement.label,
            "product_code": self.entitlement.product_code,
            "start_date": self.entitlement.start_date,
            "end_date": self.entitlement.end_date,
            "inverted": self.inverted,
        }


def parse_date(value: Optional[str]) -> Optional[date]:
    """Parse an ISO-8601 date or timestamp to a UTC calendar day.

    Returns None for absent or unparseable values.
    """
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = isoparse(value.strip())
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date()


def resolve_dates(entitlement: Entitlement, position: int) -> Optional[DatedEntitlement]:
    """Attach parsed dates, or None when either date is missing or invalid.

    An inverted range is compared on the days it spans.
    """
    start = parse_date(entitlement.start_date)
    end = parse_date(entitlement.end_date)
    if start is None or end is None:
        return None
    if start > end:
        return DatedEntitlement(entitlement=entitlement, start=end, end=start, position=position, inverted=True)
    return DatedEntitlement(entitlement=entitlement, start=start, end=end, position=position)


def group_by_product(entitlements: Iterable[Entitlement]) -> Dict[GroupKey, List[DatedEntitlement]]:
    """Group dated entitlements by (type, product code), each group sorted by start.

    Entitlements without a product code or without two valid dates are left
    out. ``sorted`` is stable and ``position`` is the payload order, so equal
    start dates keep their original order.
    """
    groups: Dict[GroupKey, List[DatedEntitlement]] = {}
    for position, entitlement in enumerate(entitlements):
        if not entitlement.product_code:
            continue
        dated = resolve_dates(entitlement, position)
        if dated is None:
            continue
        groups.setdefault((entitlement.type, entitlement.product_code), []).append(dated)

    return {
        key: sorted(members, key=lambda d: (d.start, d.position))
        for key, members in groups.items()
    }


def ranges_overlap(first: DatedEntitlement, second: DatedEntitlement) -> bool:
    """Closed-interval intersection: [s1, e1] and [s2, e2] share at least one day."""
    return first.start <= second.end and second.start <= first.end


def overlap_kind(first: DatedEntitlement, second: DatedEntitlement) -> str:
    if first.start == second.start and first.end == second.end:
        return "identical"
    if first.start <= second.start and first.end >= second.end:
        return "contains"
    if second.start <= first.start and second.end >= first.end:
        return "contained"
    return "partial"


def days_between(earlier_end: date, later_start: date) -> int:
    """Whole calendar days strictly between an end date and a later start date."""
    return (later_start - earlier_end).days - 1
