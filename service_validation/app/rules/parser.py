"""
Payload parsing for provisioning records.

Payloads are opaque JSON strings stored on the PS record. Nothing in here
raises on bad input: an absent, empty or malformed payload parses to an
empty entitlement set, and a tenant name that cannot be found becomes the
placeholder ``N/A``.
"""

import json
from typing import Any, Dict, List, Optional, Tuple, Union

from shared.logging import get_logger

from .models import Entitlement, EntitlementSet, EntitlementType, ProvisioningRecord, Quantity


TENANT_NAME_PLACEHOLDER = "N/A"

ENTITLEMENTS_PATHS: Tuple[Tuple[str, ...], ...] = (
    ("properties", "provisioningDetail", "entitlements"),
    ("entitlements",),
    (),
)

SECTION_KEYS: Tuple[Tuple[EntitlementType, str], ...] = (
    (EntitlementType.MODEL, "modelEntitlements"),
    (EntitlementType.DATA, "dataEntitlements"),
    (EntitlementType.APP, "appEntitlements"),
)

TENANT_NAME_PATHS: Tuple[Tuple[str, ...], ...] = (
    ("properties", "provisioningDetail", "tenantName"),
    ("properties", "tenantName"),
    ("preferredSubdomain1",),
    ("preferredSubdomain2",),
    ("properties", "preferredSubdomain1"),
    ("properties", "preferredSubdomain2"),
    ("tenantName",),
)

# Accepted spellings for each normalised field, in priority order
PRODUCT_CODE_KEYS = ("productCode", "product_code", "ProductCode")
PRODUCT_NAME_KEYS = ("productName", "name", "product_name")
PACKAGE_NAME_KEYS = ("packageName", "package_name", "PackageName")
QUANTITY_KEYS = ("quantity", "Quantity")
MODIFIER_KEYS = ("productModifier", "product_modifier", "ProductModifier")
START_DATE_KEYS = ("startDate", "start_date", "StartDate")
END_DATE_KEYS = ("endDate", "end_date", "EndDate")

logger = get_logger("validation.parser")


def load_payload(payload: Optional[str]) -> Optional[Dict[str, Any]]:
    """Decode a payload string into a JSON object, or None."""
    if not isinstance(payload, str) or not payload.strip():
        return None
    try:
        decoded = json.loads(payload)
    except (ValueError, RecursionError) as e:
        logger.warning("Malformed payload JSON", error=str(e))
        return None
    if not isinstance(decoded, dict):
        logger.warning("Payload JSON is not an object", payload_type=type(decoded).__name__)
        return None
    return decoded


def dig(obj: Any, path: Tuple[str, ...]) -> Any:
    """Follow ``path`` through nested dicts; None on any miss."""
    for key in path:
        if not isinstance(obj, dict):
            return None
        obj = obj.get(key)
    return obj


def first_present(entry: Dict[str, Any], keys: Tuple[str, ...]) -> Any:
    """Value of the first key that is present and not null."""
    for key in keys:
        value = entry.get(key)
        if value is not None:
            return value
    return None


def text_field(entry: Dict[str, Any], keys: Tuple[str, ...]) -> Optional[str]:
    value = first_present(entry, keys)
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value)


def quantity_field(entry: Dict[str, Any]) -> Optional[Quantity]:
    """Quantity as supplied; integral floats collapse to int, absence stays None."""
    value = first_present(entry, QUANTITY_KEYS)
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, (int, float, str)):
        return value
    return None


def normalize_entitlement(entry: Dict[str, Any], entitlement_type: EntitlementType, index: int) -> Entitlement:
    """Map a raw payload entry onto the Entitlement shape, dropping unknown fields."""
    return Entitlement(
        type=entitlement_type,
        index=index,
        product_code=text_field(entry, PRODUCT_CODE_KEYS) or "",
        product_name=text_field(entry, PRODUCT_NAME_KEYS),
        package_name=text_field(entry, PACKAGE_NAME_KEYS),
        quantity=quantity_field(entry),
        product_modifier=text_field(entry, MODIFIER_KEYS),
        start_date=text_field(entry, START_DATE_KEYS),
        end_date=text_field(entry, END_DATE_KEYS),
    )


def find_entitlements_node(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Locate the object holding the entitlement arrays."""
    for path in ENTITLEMENTS_PATHS:
        node = dig(payload, path)
        if isinstance(node, dict) and any(key in node for _, key in SECTION_KEYS):
            return node
    return {}


def _section(node: Dict[str, Any], key: str, entitlement_type: EntitlementType) -> Tuple[Entitlement, ...]:
    raw = node.get(key)
    if not isinstance(raw, list):
        return ()
    entitlements: List[Entitlement] = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            logger.debug("Skipping non-object entitlement entry", section=key, index=index)
            continue
        entitlements.append(normalize_entitlement(entry, entitlement_type, index))
    return tuple(entitlements)


class EntitlementParser:
    """Turns raw payload strings into entitlement sets."""

    def parse(self, payload: Optional[str]) -> EntitlementSet:
        decoded = load_payload(payload)
        if decoded is None:
            return EntitlementSet()
        return self.parse_object(decoded)

    def parse_object(self, payload: Dict[str, Any]) -> EntitlementSet:
        """Parse an already-decoded payload object."""
        node = find_entitlements_node(payload)
        sections = {
            entitlement_type: _section(node, key, entitlement_type)
            for entitlement_type, key in SECTION_KEYS
        }
        entitlement_set = EntitlementSet(
            models=sections[EntitlementType.MODEL],
            data=sections[EntitlementType.DATA],
            apps=sections[EntitlementType.APP],
        )
        logger.debug(
            "Parsed entitlements",
            models=len(entitlement_set.models),
            data=len(entitlement_set.data),
            apps=len(entitlement_set.apps)
        )
        return entitlement_set


class TenantNameExtractor:
    """Finds the tenant name on a record or inside its payload."""

    def __init__(self, placeholder: str = TENANT_NAME_PLACEHOLDER):
        self.placeholder = placeholder

    def extract(self, record: Union[ProvisioningRecord, str, None]) -> str:
        if record is None:
            return self.placeholder

        if isinstance(record, ProvisioningRecord):
            if _non_empty(record.tenant_name):
                return record.tenant_name.strip()
            payload = record.payload_data
        else:
            payload = record

        decoded = load_payload(payload)
        if decoded is None:
            return self.placeholder

        for path in TENANT_NAME_PATHS:
            value = dig(decoded, path)
            if _non_empty(value):
                return value.strip()
        return self.placeholder


def _non_empty(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


_parser = EntitlementParser()
_tenant_extractor = TenantNameExtractor()


def parse_entitlements(payload: Optional[str]) -> EntitlementSet:
    """Parse a payload string; never raises."""
    return _parser.parse(payload)


def parse_tenant_name(record: Union[ProvisioningRecord, str, None]) -> str:
    """Tenant name for a record or raw payload string; ``N/A`` when absent."""
    return _tenant_extractor.extract(record)
