"""
Validation service for PS provisioning records.
"""

import time
from typing import List, Optional

from fastapi import Query

from shared.base_service import BaseService
from shared.errors import RequestError, RuleNotFoundError
from shared.logging import set_record_context

from .rules.catalog import build_default_catalog
from .rules.engine import ValidationEngine
from .rules.models import (
    ProvisioningRecord, RuleDescriptor, ValidationResult,
    ValidateRecordRequest, ValidateBatchRequest, ParseEntitlementsRequest,
    RuleResultResponse, ValidationResponse, BatchValidationResponse,
    RuleDescriptorResponse, ParsedEntitlementsResponse
)
from .rules.parser import parse_tenant_name


class ValidationService(BaseService):
    """Validation service implementation."""

    def __init__(self, **config_overrides):
        super().__init__("validation", 8013, **config_overrides)

        # Catalog parameters are fixed at startup
        catalog = build_default_catalog(
            model_count_limit=self.config.model_count_limit,
            app_quantity_exempt_codes=self.config.app_quantity_exempt_codes,
            package_name_exempt_codes=self.config.package_name_exempt_codes,
            gap_tolerance_days=self.config.gap_tolerance_days
        )
        self.engine = ValidationEngine(catalog)

        self._setup_validation_routes()
        self.logger.info(
            "Validation service initialized",
            rules=len(catalog),
            default_enabled=self._default_rule_ids()
        )

    def _default_rule_ids(self) -> List[str]:
        """Configured enablement snapshot, else the catalog's enabled descriptors."""
        if self.config.enabled_rule_ids is not None:
            return list(self.config.enabled_rule_ids)
        return self.engine.catalog.default_enabled_ids()

    def _enabled_rule_ids(self, requested: Optional[List[str]]) -> List[str]:
        """Rule ids for one call: the request's list, else the default snapshot."""
        if requested is not None:
            return list(requested)
        return self._default_rule_ids()

    def _descriptor_response(self, descriptor: RuleDescriptor) -> RuleDescriptorResponse:
        return RuleDescriptorResponse(
            id=descriptor.id,
            name=descriptor.name,
            description=descriptor.description,
            category=descriptor.category,
            enabled=descriptor.id in self._default_rule_ids(),
            version=descriptor.version
        )

    def _validation_response(self, record: ProvisioningRecord, result: ValidationResult) -> ValidationResponse:
        return ValidationResponse(
            record_id=result.record_id,
            record_name=result.record_name,
            tenant_name=parse_tenant_name(record),
            overall_status=result.overall_status,
            rule_results=[RuleResultResponse(**r.to_dict()) for r in result.rule_results],
            tooltip=self.engine.tooltip(result)
        )

    def validate(self, record: ProvisioningRecord, enabled_rule_ids: List[str]) -> ValidationResult:
        """Validate one record and record metrics for it."""
        set_record_context(record.record_id)
        start_time = time.time()
        try:
            result = self.engine.validate_record(record, enabled_rule_ids)
        finally:
            set_record_context(None)

        self.metrics.record_validation(
            result.overall_status.value,
            {r.rule_id: r.status.value for r in result.rule_results},
            time.time() - start_time
        )
        return result

    def _setup_validation_routes(self):
        """Set up validation-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "validation",
                "message": "PS Validation - Entitlement Validation Service",
                "version": "1.0.0",
                "capabilities": ["rule_engine", "batch_validation", "payload_parsing"]
            }

        @self.app.get("/validation/rules", response_model=List[RuleDescriptorResponse])
        async def list_rules(
            category: Optional[str] = Query(None, description="Filter by rule category")
        ):
            """List catalog rules with their default enablement."""
            descriptors = self.engine.catalog.descriptors()
            if category:
                descriptors = [d for d in descriptors if d.category.value == category]
            return [self._descriptor_response(d) for d in descriptors]

        @self.app.get("/validation/rules/{rule_id}", response_model=RuleDescriptorResponse)
        async def get_rule(rule_id: str):
            """Get one catalog rule."""
            descriptor = self.engine.catalog.get(rule_id)
            if descriptor is None:
                raise RuleNotFoundError(rule_id)
            return self._descriptor_response(descriptor)

        @self.app.post("/validation/entitlements", response_model=ParsedEntitlementsResponse)
        async def parse_entitlements(request: ParseEntitlementsRequest):
            """Parse a raw payload into its entitlement lists."""
            entitlements = self.engine.parser.parse(request.payload_data)
            lists = entitlements.to_dict()
            return ParsedEntitlementsResponse(
                tenant_name=parse_tenant_name(request.payload_data),
                models=lists["models"],
                data=lists["data"],
                apps=lists["apps"],
                total=len(entitlements.all())
            )

        # Validation is CPU-bound; plain def handlers run in the threadpool
        @self.app.post("/validation/validate", response_model=ValidationResponse)
        def validate_record(request: ValidateRecordRequest):
            """Validate one PS record."""
            record = request.record.to_record()
            result = self.validate(record, self._enabled_rule_ids(request.enabled_rule_ids))
            return self._validation_response(record, result)

        @self.app.post("/validation/validate-batch", response_model=BatchValidationResponse)
        def validate_batch(request: ValidateBatchRequest):
            """Validate a page of PS records."""
            if len(request.records) > self.config.max_batch_size:
                raise RequestError(
                    f"Batch of {len(request.records)} records exceeds limit of {self.config.max_batch_size}",
                    {"records": len(request.records), "max_batch_size": self.config.max_batch_size}
                )

            enabled_rule_ids = self._enabled_rule_ids(request.enabled_rule_ids)
            records = [payload.to_record() for payload in request.records]
            results = [self.validate(record, enabled_rule_ids) for record in records]
            summary = self.engine.summarize(results, enabled_rule_ids)

            self.logger.info(
                "Batch validated",
                total_records=summary.total_records,
                invalid_records=summary.invalid_records
            )

            return BatchValidationResponse(
                results=[self._validation_response(r, res) for r, res in zip(records, results)],
                summary=summary
            )


def create_app(**config_overrides):
    """Create validation service application."""
    service = ValidationService(**config_overrides)
    return service.app


if __name__ == "__main__":
    service = ValidationService()
    service.run()
