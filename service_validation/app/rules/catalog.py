"""
Built-in validation rules and the catalog that maps rule ids to them.

Every rule is a pure function of an EntitlementSet. Rule parameters (limits,
exemption lists) are bound when the catalog is built, so a catalog is fixed
for the life of the process and adding a rule means adding a descriptor.
"""

from functools import partial
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from .dates import DatedEntitlement, days_between, group_by_product, overlap_kind, ranges_overlap
from .models import (
    Entitlement, EntitlementSet, RuleCategory, RuleDescriptor, RuleId, RuleResult, RuleStatus
)


DEFAULT_MODEL_COUNT_LIMIT = 100
DEFAULT_APP_QUANTITY_EXEMPT_CODES: Tuple[str, ...] = ("IC-DATABRIDGE", "RI-RISKMODELER-EXPANSION")
DEFAULT_GAP_TOLERANCE_DAYS = 1

RULE_NAMES = {
    RuleId.APP_QUANTITY: "App Quantity Validation",
    RuleId.MODEL_COUNT: "Model Count Validation",
    RuleId.DATE_OVERLAP: "Entitlement Date Overlap Validation",
    RuleId.DATE_GAP: "Entitlement Date Gap Validation",
    RuleId.APP_PACKAGE_NAME: "App Package Name Validation",
}


def _result(rule_id: RuleId, failed: bool, message: str, affected: int, details: Dict[str, Any]) -> RuleResult:
    return RuleResult(
        rule_id=rule_id.value,
        rule_name=RULE_NAMES[rule_id],
        status=RuleStatus.FAIL if failed else RuleStatus.PASS,
        message=message,
        affected_count=affected,
        details=details,
    )


def _distinct(pairs: Iterable[Tuple[DatedEntitlement, DatedEntitlement]]) -> int:
    seen: Set[Tuple[str, int]] = set()
    for first, second in pairs:
        for member in (first, second):
            seen.add((member.entitlement.type.value, member.entitlement.index))
    return len(seen)


def _app_failure(app: Entitlement, reason: str) -> Dict[str, Any]:
    return {
        "label": app.label,
        "index": app.index + 1,
        "product_code": app.product_code,
        "product_name": app.product_name,
        "package_name": app.package_name,
        "quantity": app.quantity,
        "reason": reason,
    }


def check_app_quantity(
    entitlements: EntitlementSet,
    exempt_codes: Sequence[str] = DEFAULT_APP_QUANTITY_EXEMPT_CODES
) -> RuleResult:
    """Each app entitlement must have quantity exactly 1 unless its product code is exempt."""
    failures: List[Dict[str, Any]] = []
    for app in entitlements.apps:
        if app.product_code in exempt_codes:
            continue
        quantity = app.quantity
        if isinstance(quantity, int) and quantity == 1:
            continue
        reason = "Missing quantity" if quantity is None else "Invalid quantity"
        failures.append(_app_failure(app, reason))

    total = len(entitlements.apps)
    if failures:
        message = f"{len(failures)} of {total} app entitlements failed: " + "; ".join(
            f"{f['product_code'] or f['label']}: quantity {f['quantity']}" for f in failures
        )
    else:
        message = f"All {total} app entitlements valid"

    return _result(RuleId.APP_QUANTITY, bool(failures), message, len(failures), {
        "total_count": total,
        "pass_count": total - len(failures),
        "fail_count": len(failures),
        "failures": failures,
    })


def check_model_count(entitlements: EntitlementSet, limit: int = DEFAULT_MODEL_COUNT_LIMIT) -> RuleResult:
    """The number of model entitlements must not exceed ``limit``."""
    count = len(entitlements.models)
    within_limit = count <= limit
    if within_limit:
        message = f"Model count {count} is within limit (<= {limit})"
    else:
        message = f"Model count {count} exceeds limit of {limit}"

    return _result(RuleId.MODEL_COUNT, not within_limit, message, 0 if within_limit else count, {
        "total_count": count,
        "limit": limit,
        "within_limit": within_limit,
    })


def _overlap_entry(first: DatedEntitlement, second: DatedEntitlement) -> Dict[str, Any]:
    kind = overlap_kind(first, second)
    a, b = first.entitlement, second.entitlement
    a_range = f"{a.start_date} to {a.end_date}"
    b_range = f"{b.start_date} to {b.end_date}"
    if kind == "identical":
        description = f"{a.label} and {b.label} have identical date ranges ({a_range})"
    elif kind == "contains":
        description = f"{a.label} ({a_range}) completely contains {b.label} ({b_range})"
    elif kind == "contained":
        description = f"{b.label} ({b_range}) completely contains {a.label} ({a_range})"
    else:
        description = f"{a.label} ({a_range}) overlaps with {b.label} ({b_range})"

    return {
        "product_code": a.product_code,
        "type": a.type.value,
        "entitlement1": first.describe(),
        "entitlement2": second.describe(),
        "overlap_kind": kind,
        "description": description,
    }


def check_date_overlap(entitlements: EntitlementSet) -> RuleResult:
    """No two dated entitlements of the same type and product code may share a day."""
    pairs: List[Tuple[DatedEntitlement, DatedEntitlement]] = []
    for members in group_by_product(entitlements.all()).values():
        for i, first in enumerate(members):
            for second in members[i + 1:]:
                if ranges_overlap(first, second):
                    pairs.append((first, second))

    overlaps = [_overlap_entry(first, second) for first, second in pairs]
    if overlaps:
        message = f"{len(overlaps)} date overlap{'s' if len(overlaps) > 1 else ''} found"
    else:
        message = "No date overlaps found"

    return _result(RuleId.DATE_OVERLAP, bool(overlaps), message, _distinct(pairs), {
        "overlaps_found": len(overlaps),
        "overlaps": overlaps,
    })


def check_date_gap(entitlements: EntitlementSet, tolerance_days: int = DEFAULT_GAP_TOLERANCE_DAYS) -> RuleResult:
    """Consecutive date ranges of one type and product code must follow on without a gap.

    A gap is reported when the next start falls more than ``tolerance_days``
    after the latest end seen so far in the group, so a range already covered
    by a longer earlier range does not produce a false gap.
    """
    pairs: List[Tuple[DatedEntitlement, DatedEntitlement]] = []
    gaps: List[Dict[str, Any]] = []
    for members in group_by_product(entitlements.all()).values():
        covering: Optional[DatedEntitlement] = None
        for current in members:
            if covering is not None and (current.start - covering.end).days > tolerance_days:
                pairs.append((covering, current))
                gap_days = days_between(covering.end, current.start)
                gaps.append({
                    "product_code": current.entitlement.product_code,
                    "type": current.entitlement.type.value,
                    "entitlement1": covering.describe(),
                    "entitlement2": current.describe(),
                    "gap_days": gap_days,
                    "description": (
                        f"{gap_days} day gap between {covering.entitlement.label} "
                        f"(ends {covering.end.isoformat()}) and {current.entitlement.label} "
                        f"(starts {current.start.isoformat()})"
                    ),
                })
            if covering is None or current.end > covering.end:
                covering = current

    if gaps:
        message = f"{len(gaps)} date gap{'s' if len(gaps) > 1 else ''} found"
    else:
        message = "No date gaps found"

    return _result(RuleId.DATE_GAP, bool(gaps), message, _distinct(pairs), {
        "gaps_found": len(gaps),
        "gaps": gaps,
    })


def check_app_package_name(entitlements: EntitlementSet, exempt_codes: Sequence[str] = ()) -> RuleResult:
    """Each app entitlement must carry a non-blank package name."""
    failures = [
        _app_failure(app, "Missing package name")
        for app in entitlements.apps
        if app.product_code not in exempt_codes
        and not (app.package_name and app.package_name.strip())
    ]

    total = len(entitlements.apps)
    if failures:
        message = f"{len(failures)} of {total} app entitlements missing a package name"
    else:
        message = f"All {total} app entitlements have a package name"

    return _result(RuleId.APP_PACKAGE_NAME, bool(failures), message, len(failures), {
        "total_count": total,
        "fail_count": len(failures),
        "failures": failures,
    })


class RuleCatalog:
    """Read-only registry of rule descriptors keyed by rule id."""

    def __init__(self, descriptors: Iterable[RuleDescriptor]):
        self._descriptors: Dict[str, RuleDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.id in self._descriptors:
                raise ValueError(f"Duplicate rule id in catalog: {descriptor.id}")
            self._descriptors[descriptor.id] = descriptor

    def get(self, rule_id: str) -> Optional[RuleDescriptor]:
        return self._descriptors.get(rule_id)

    def descriptors(self) -> List[RuleDescriptor]:
        return list(self._descriptors.values())

    def default_enabled_ids(self) -> List[str]:
        return [d.id for d in self._descriptors.values() if d.enabled]

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._descriptors

    def __iter__(self) -> Iterator[RuleDescriptor]:
        return iter(self._descriptors.values())

    def __len__(self) -> int:
        return len(self._descriptors)


def build_default_catalog(
    model_count_limit: int = DEFAULT_MODEL_COUNT_LIMIT,
    app_quantity_exempt_codes: Sequence[str] = DEFAULT_APP_QUANTITY_EXEMPT_CODES,
    package_name_exempt_codes: Sequence[str] = (),
    gap_tolerance_days: int = DEFAULT_GAP_TOLERANCE_DAYS
) -> RuleCatalog:
    """Build the catalog of built-in rules with the given parameters."""
    quantity_exempt = tuple(app_quantity_exempt_codes)
    package_exempt = tuple(package_name_exempt_codes)

    return RuleCatalog([
        RuleDescriptor(
            id=RuleId.APP_QUANTITY.value,
            name=RULE_NAMES[RuleId.APP_QUANTITY],
            category=RuleCategory.PRODUCT_VALIDATION,
            evaluate=partial(check_app_quantity, exempt_codes=quantity_exempt),
            description=(
                "For Apps section: quantity must be 1, except "
                + ", ".join(quantity_exempt) + " products are always valid"
                if quantity_exempt else "For Apps section: quantity must be 1"
            ),
        ),
        RuleDescriptor(
            id=RuleId.MODEL_COUNT.value,
            name=RULE_NAMES[RuleId.MODEL_COUNT],
            category=RuleCategory.PRODUCT_VALIDATION,
            evaluate=partial(check_model_count, limit=model_count_limit),
            description=f"Fails if number of Models is more than {model_count_limit}, otherwise passes",
        ),
        RuleDescriptor(
            id=RuleId.DATE_OVERLAP.value,
            name=RULE_NAMES[RuleId.DATE_OVERLAP],
            category=RuleCategory.DATE_VALIDATION,
            evaluate=check_date_overlap,
            description="Fails if entitlements of the same type and productCode have overlapping date ranges",
        ),
        RuleDescriptor(
            id=RuleId.DATE_GAP.value,
            name=RULE_NAMES[RuleId.DATE_GAP],
            category=RuleCategory.DATE_VALIDATION,
            evaluate=partial(check_date_gap, tolerance_days=gap_tolerance_days),
            description="Fails if a product code has consecutive date ranges with gaps between them",
        ),
        RuleDescriptor(
            id=RuleId.APP_PACKAGE_NAME.value,
            name=RULE_NAMES[RuleId.APP_PACKAGE_NAME],
            category=RuleCategory.PRODUCT_VALIDATION,
            evaluate=partial(check_app_package_name, exempt_codes=package_exempt),
            description="Fails if an app entitlement is missing a package name",
        ),
    ])


DEFAULT_CATALOG = build_default_catalog()
