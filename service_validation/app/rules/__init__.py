"""
Entitlement validation rules package.

Inspects the raw JSON payload of a provisioning record and evaluates a
configurable set of data-quality rules against its entitlements, producing
a PASS/FAIL verdict with per-rule diagnostic detail.

Modules of interest:
- models: Entitlement, rule and result data classes plus API models.
- parser: Total (non-raising) payload parsing and tenant name lookup.
- dates: Date normalisation and the grouping shared by the date rules.
- catalog: Built-in rule functions and the RuleCatalog.
- engine: Evaluation, aggregation and tooltip formatting.
"""

from .catalog import DEFAULT_CATALOG, RuleCatalog, build_default_catalog
from .engine import (
    ValidationEngine, RuleEvaluator, ResultAggregator,
    evaluate, aggregate, validate_record, get_validation_tooltip
)
from .models import (
    Entitlement, EntitlementSet, EntitlementType, ProvisioningRecord,
    RuleDescriptor, RuleId, RuleResult, RuleStatus, ValidationResult
)
from .parser import EntitlementParser, TenantNameExtractor, parse_entitlements, parse_tenant_name

__all__ = [
    "DEFAULT_CATALOG", "RuleCatalog", "build_default_catalog",
    "ValidationEngine", "RuleEvaluator", "ResultAggregator",
    "evaluate", "aggregate", "validate_record", "get_validation_tooltip",
    "Entitlement", "EntitlementSet", "EntitlementType", "ProvisioningRecord",
    "RuleDescriptor", "RuleId", "RuleResult", "RuleStatus", "ValidationResult",
    "EntitlementParser", "TenantNameExtractor", "parse_entitlements", "parse_tenant_name",
]
