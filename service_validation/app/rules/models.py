"""
Data models for the provisioning validation engine.
"""

from typing import Dict, Any, Optional, List, Tuple, Callable, Union
from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class EntitlementType(str, Enum):
    """Entitlement sections of a provisioning payload."""
    MODEL = "model"
    DATA = "data"
    APP = "app"


class RuleStatus(str, Enum):
    """Rule and record verdicts."""
    PASS = "PASS"
    FAIL = "FAIL"


class RuleCategory(str, Enum):
    """Rule categories shown in the settings page."""
    PRODUCT_VALIDATION = "product-validation"
    DATE_VALIDATION = "date-validation"


class RuleId(str, Enum):
    """Identifiers of the built-in rules."""
    APP_QUANTITY = "app-quantity-validation"
    MODEL_COUNT = "model-count-validation"
    DATE_OVERLAP = "entitlement-date-overlap-validation"
    DATE_GAP = "entitlement-date-gap-validation"
    APP_PACKAGE_NAME = "app-package-name-validation"


Quantity = Union[int, float, str]


@dataclass(frozen=True)
class Entitlement:
    """One granted product instance taken from a payload."""
    type: EntitlementType
    index: int
    product_code: str
    product_name: Optional[str] = None
    package_name: Optional[str] = None
    quantity: Optional[Quantity] = None
    product_modifier: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None

    @property
    def label(self) -> str:
        """Short display label such as ``app-2``."""
        return f"{self.type.value}-{self.index + 1}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "index": self.index,
            "product_code": self.product_code,
            "product_name": self.product_name,
            "package_name": self.package_name,
            "quantity": self.quantity,
            "product_modifier": self.product_modifier,
            "start_date": self.start_date,
            "end_date": self.end_date,
        }


@dataclass(frozen=True)
class EntitlementSet:
    """Model, data and app entitlements parsed from one record."""
    models: Tuple[Entitlement, ...] = ()
    data: Tuple[Entitlement, ...] = ()
    apps: Tuple[Entitlement, ...] = ()

    def all(self) -> Tuple[Entitlement, ...]:
        """All entitlements in payload order: models, data, apps."""
        return self.models + self.data + self.apps

    def is_empty(self) -> bool:
        return not (self.models or self.data or self.apps)

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {
            "models": [e.to_dict() for e in self.models],
            "data": [e.to_dict() for e in self.data],
            "apps": [e.to_dict() for e in self.apps],
        }


@dataclass(frozen=True)
class RuleResult:
    """Outcome of running one rule against an entitlement set."""
    rule_id: str
    rule_name: str
    status: RuleStatus
    message: str = ""
    affected_count: int = 0
    details: Optional[Dict[str, Any]] = None

    @property
    def failed(self) -> bool:
        return self.status == RuleStatus.FAIL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "status": self.status.value,
            "message": self.message,
            "affected_count": self.affected_count,
            "details": self.details,
        }


RuleFunction = Callable[[EntitlementSet], RuleResult]


@dataclass(frozen=True)
class RuleDescriptor:
    """Catalog entry describing a rule and how to evaluate it."""
    id: str
    name: str
    category: RuleCategory
    evaluate: RuleFunction = field(compare=False, repr=False)
    description: str = ""
    enabled: bool = True
    version: str = "1.0"


@dataclass(frozen=True)
class ValidationResult:
    """Overall verdict for one record."""
    overall_status: RuleStatus
    rule_results: Tuple[RuleResult, ...] = ()
    record_id: Optional[str] = None
    record_name: Optional[str] = None

    @property
    def failed_rules(self) -> List[RuleResult]:
        return [r for r in self.rule_results if r.failed]


@dataclass(frozen=True)
class ProvisioningRecord:
    """The fields of a PS record the engine reads."""
    record_id: Optional[str] = None
    name: Optional[str] = None
    payload_data: Optional[str] = None
    tenant_name: Optional[str] = None


# API models

class RecordPayload(BaseModel):
    """A PS record as sent by the dashboard (Salesforce field names)."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    record_id: Optional[str] = Field(None, alias="Id", description="Salesforce record ID")
    name: Optional[str] = Field(None, alias="Name", description="Record name, e.g. PS-1234")
    payload_data: Optional[str] = Field(None, alias="Payload_Data__c", description="Raw payload JSON")
    tenant_name: Optional[str] = Field(None, alias="Tenant_Name__c", description="Tenant name field")

    def to_record(self) -> ProvisioningRecord:
        return ProvisioningRecord(
            record_id=self.record_id,
            name=self.name,
            payload_data=self.payload_data,
            tenant_name=self.tenant_name
        )


class ValidateRecordRequest(BaseModel):
    """Request model for validating one record."""
    record: RecordPayload = Field(..., description="Record to validate")
    enabled_rule_ids: Optional[List[str]] = Field(
        None, description="Rules to run, in display order; defaults to the configured set"
    )


class ValidateBatchRequest(BaseModel):
    """Request model for validating many records."""
    records: List[RecordPayload] = Field(default_factory=list, description="Records to validate")
    enabled_rule_ids: Optional[List[str]] = Field(
        None, description="Rules to run, in display order; defaults to the configured set"
    )


class ParseEntitlementsRequest(BaseModel):
    """Request model for parsing a raw payload."""
    payload_data: Optional[str] = Field(None, description="Raw payload JSON")


class RuleResultResponse(BaseModel):
    """Response model for one rule result."""
    rule_id: str
    rule_name: str
    status: RuleStatus
    message: str
    affected_count: int
    details: Optional[Dict[str, Any]] = None


class ValidationResponse(BaseModel):
    """Response model for a validated record."""
    record_id: Optional[str]
    record_name: Optional[str]
    tenant_name: str
    overall_status: RuleStatus
    rule_results: List[RuleResultResponse]
    tooltip: str


class BatchSummary(BaseModel):
    """Summary counts over a validated batch."""
    total_records: int
    valid_records: int
    invalid_records: int
    enabled_rules_count: int
    failures_by_rule: Dict[str, int] = Field(default_factory=dict)


class BatchValidationResponse(BaseModel):
    """Response model for batch validation."""
    results: List[ValidationResponse]
    summary: BatchSummary


class RuleDescriptorResponse(BaseModel):
    """Response model for a catalog entry."""
    id: str
    name: str
    description: str
    category: RuleCategory
    enabled: bool
    version: str


class ParsedEntitlementsResponse(BaseModel):
    """Response model for parsed payload entitlements."""
    tenant_name: str
    models: List[Dict[str, Any]]
    data: List[Dict[str, Any]]
    apps: List[Dict[str, Any]]
    total: int
