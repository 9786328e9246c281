"""
Rule evaluation engine for the PS Validation service.
"""

from typing import Dict, Iterable, List, Optional, Sequence

from shared.logging import get_logger
from shared.errors import RuleExecutionError

from .catalog import DEFAULT_CATALOG, RuleCatalog
from .models import (
    EntitlementSet, ProvisioningRecord, RuleResult, RuleStatus, ValidationResult, BatchSummary
)
from .parser import EntitlementParser


ALL_PASSED_TOOLTIP = "All validation rules passed"


class RuleEvaluator:
    """Runs the requested rules from a catalog against an entitlement set."""

    def __init__(self, catalog: Optional[RuleCatalog] = None):
        self.catalog = catalog if catalog is not None else DEFAULT_CATALOG
        self.logger = get_logger("validation.rule_evaluator")

    def evaluate(self, entitlements: EntitlementSet, enabled_rule_ids: Sequence[str]) -> List[RuleResult]:
        """Evaluate rules in the order of ``enabled_rule_ids``.

        Ids the catalog does not know are skipped and repeated ids run once.
        A rule that raises is a defect and surfaces as RuleExecutionError.
        """
        results: List[RuleResult] = []
        seen = set()
        for rule_id in enabled_rule_ids:
            if rule_id in seen:
                continue
            seen.add(rule_id)

            descriptor = self.catalog.get(rule_id)
            if descriptor is None:
                self.logger.debug("Skipping unknown rule", rule_id=rule_id)
                continue

            try:
                result = descriptor.evaluate(entitlements)
            except Exception as e:
                self.logger.error("Rule execution error", rule_id=rule_id, error=str(e), exc_info=True)
                raise RuleExecutionError(rule_id, str(e)) from e

            self.logger.debug(
                "Rule evaluation result",
                rule_id=rule_id,
                status=result.status.value,
                affected_count=result.affected_count
            )
            results.append(result)

        return results


class ResultAggregator:
    """Folds rule results into one verdict."""

    def aggregate(
        self,
        rule_results: Iterable[RuleResult],
        record_id: Optional[str] = None,
        record_name: Optional[str] = None
    ) -> ValidationResult:
        results = tuple(rule_results)
        # Zero results is a pass: nothing was checked, nothing failed
        failed = any(r.status == RuleStatus.FAIL for r in results)
        return ValidationResult(
            overall_status=RuleStatus.FAIL if failed else RuleStatus.PASS,
            rule_results=results,
            record_id=record_id,
            record_name=record_name,
        )

    def tooltip(self, result: Optional[ValidationResult]) -> str:
        """One line per failing rule: rule name and affected entitlement count."""
        if result is None or result.overall_status == RuleStatus.PASS:
            return ALL_PASSED_TOOLTIP

        clauses = []
        for rule_result in result.failed_rules:
            count = rule_result.affected_count
            noun = "entitlement" if count == 1 else "entitlements"
            clauses.append(f"{rule_result.rule_name}: {count} {noun} affected")
        return "\n".join(clauses) or "Validation failed"

    def summarize(self, results: Sequence[ValidationResult], enabled_rules_count: int) -> BatchSummary:
        """Counts for the validation monitoring view."""
        failures_by_rule: Dict[str, int] = {}
        for result in results:
            for rule_result in result.failed_rules:
                failures_by_rule[rule_result.rule_id] = failures_by_rule.get(rule_result.rule_id, 0) + 1

        invalid = sum(1 for r in results if r.overall_status == RuleStatus.FAIL)
        return BatchSummary(
            total_records=len(results),
            valid_records=len(results) - invalid,
            invalid_records=invalid,
            enabled_rules_count=enabled_rules_count,
            failures_by_rule=failures_by_rule,
        )


class ValidationEngine:
    """Parse, evaluate and aggregate in one place.

    The engine holds no enablement state; callers pass the rule ids for every
    call. All state is local to a call, so one engine can serve concurrent
    validations.
    """

    def __init__(self, catalog: Optional[RuleCatalog] = None):
        self.parser = EntitlementParser()
        self.evaluator = RuleEvaluator(catalog)
        self.aggregator = ResultAggregator()
        self.logger = get_logger("validation.engine")

    @property
    def catalog(self) -> RuleCatalog:
        return self.evaluator.catalog

    def evaluate(self, entitlements: EntitlementSet, enabled_rule_ids: Sequence[str]) -> List[RuleResult]:
        return self.evaluator.evaluate(entitlements, enabled_rule_ids)

    def aggregate(self, rule_results: Iterable[RuleResult]) -> ValidationResult:
        return self.aggregator.aggregate(rule_results)

    def validate_record(self, record: ProvisioningRecord, enabled_rule_ids: Sequence[str]) -> ValidationResult:
        """Validate one PS record against the given rules."""
        if not record.payload_data:
            self.logger.debug("No payload data, defaulting to PASS", record_id=record.record_id)

        entitlements = self.parser.parse(record.payload_data)
        rule_results = self.evaluator.evaluate(entitlements, enabled_rule_ids)
        result = self.aggregator.aggregate(rule_results, record.record_id, record.name)

        self.logger.debug(
            "Record validated",
            record_id=record.record_id,
            overall_status=result.overall_status.value,
            failed_rules=[r.rule_id for r in result.failed_rules]
        )
        return result

    def tooltip(self, result: Optional[ValidationResult]) -> str:
        return self.aggregator.tooltip(result)

    def summarize(self, results: Sequence[ValidationResult], enabled_rule_ids: Sequence[str]) -> BatchSummary:
        known = {rule_id for rule_id in enabled_rule_ids if rule_id in self.catalog}
        return self.aggregator.summarize(results, len(known))


_default_engine = ValidationEngine()


def evaluate(entitlements: EntitlementSet, enabled_rule_ids: Sequence[str]) -> List[RuleResult]:
    """Run the default catalog's rules named in ``enabled_rule_ids``."""
    return _default_engine.evaluate(entitlements, enabled_rule_ids)


def aggregate(rule_results: Iterable[RuleResult]) -> ValidationResult:
    """Fold rule results into an overall PASS/FAIL."""
    return _default_engine.aggregate(rule_results)


def validate_record(record: ProvisioningRecord, enabled_rule_ids: Sequence[str]) -> ValidationResult:
    return _default_engine.validate_record(record, enabled_rule_ids)


def get_validation_tooltip(result: Optional[ValidationResult]) -> str:
    return _default_engine.tooltip(result)
