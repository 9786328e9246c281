"""
Test helper functions and factory methods for the PS Validation service.
"""

import json
from typing import Dict, Any, Optional, List


class PayloadFactory:
    """Factory for provisioning payloads and records."""

    @staticmethod
    def entitlement(
        product_code: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        **fields: Any
    ) -> Dict[str, Any]:
        """Create one raw entitlement entry as it appears in a payload."""
        entry: Dict[str, Any] = {"productCode": product_code}
        if start_date is not None:
            entry["startDate"] = start_date
        if end_date is not None:
            entry["endDate"] = end_date
        entry.update(fields)
        return entry

    @staticmethod
    def app(product_code: str, quantity: Any = 1, package_name: Optional[str] = "PKG-STANDARD", **fields: Any) -> Dict[str, Any]:
        """Create an app entitlement that passes the app rules by default."""
        entry = PayloadFactory.entitlement(product_code, **fields)
        if quantity is not None:
            entry["quantity"] = quantity
        if package_name is not None:
            entry["packageName"] = package_name
        return entry

    @staticmethod
    def payload(
        models: Optional[List[Dict[str, Any]]] = None,
        data: Optional[List[Dict[str, Any]]] = None,
        apps: Optional[List[Dict[str, Any]]] = None,
        tenant_name: Optional[str] = None
    ) -> Dict[str, Any]:
        """Create a payload object with entitlements at the standard path."""
        entitlements: Dict[str, Any] = {}
        if models is not None:
            entitlements["modelEntitlements"] = models
        if data is not None:
            entitlements["dataEntitlements"] = data
        if apps is not None:
            entitlements["appEntitlements"] = apps

        provisioning_detail: Dict[str, Any] = {"entitlements": entitlements}
        if tenant_name is not None:
            provisioning_detail["tenantName"] = tenant_name

        return {"properties": {"provisioningDetail": provisioning_detail}}

    @staticmethod
    def payload_json(**kwargs: Any) -> str:
        """Create a payload and serialise it the way Salesforce stores it."""
        return json.dumps(PayloadFactory.payload(**kwargs))

    @staticmethod
    def record(
        record_id: str = "a0X000000000001",
        name: str = "PS-1001",
        payload: Optional[Dict[str, Any]] = None,
        **fields: Any
    ) -> Dict[str, Any]:
        """Create a PS record dict using Salesforce field names."""
        record: Dict[str, Any] = {"Id": record_id, "Name": name}
        if payload is not None:
            record["Payload_Data__c"] = json.dumps(payload)
        record.update(fields)
        return record
