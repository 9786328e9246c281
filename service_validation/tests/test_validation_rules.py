"""
Unit tests for the built-in validation rules.
"""

from datetime import date, timedelta

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from service_validation.app.rules.catalog import (
    DEFAULT_CATALOG, RuleCatalog, build_default_catalog,
    check_app_package_name, check_app_quantity, check_date_gap, check_date_overlap, check_model_count
)
from service_validation.app.rules.dates import group_by_product, parse_date
from service_validation.app.rules.models import (
    EntitlementSet, RuleCategory, RuleDescriptor, RuleId, RuleResult, RuleStatus
)
from service_validation.app.rules.parser import parse_entitlements
from shared.test_helpers import PayloadFactory


def _set(**sections) -> EntitlementSet:
    return parse_entitlements(PayloadFactory.payload_json(**sections))


def _ranges(product_code, *ranges):
    return [PayloadFactory.entitlement(product_code, start, end) for start, end in ranges]


class TestAppQuantityValidation:
    """Test cases for app-quantity-validation."""

    def test_quantity_one_passes(self):
        result = check_app_quantity(_set(apps=[PayloadFactory.app("APP-1", quantity=1)]))

        assert result.status == RuleStatus.PASS
        assert result.rule_id == RuleId.APP_QUANTITY.value
        assert result.details["pass_count"] == 1

    def test_quantity_other_than_one_fails_with_that_entitlement(self):
        entitlements = _set(apps=[
            PayloadFactory.app("APP-OK", quantity=1),
            PayloadFactory.app("APP-BAD", quantity=3),
        ])

        result = check_app_quantity(entitlements)

        assert result.status == RuleStatus.FAIL
        assert result.affected_count == 1
        assert len(result.details["failures"]) == 1
        failure = result.details["failures"][0]
        assert failure["product_code"] == "APP-BAD"
        assert failure["quantity"] == 3

    @pytest.mark.parametrize("product_code", ["IC-DATABRIDGE", "RI-RISKMODELER-EXPANSION"])
    def test_exempt_product_codes_pass_any_quantity(self, product_code):
        result = check_app_quantity(_set(apps=[PayloadFactory.app(product_code, quantity=5)]))

        assert result.status == RuleStatus.PASS

    def test_missing_quantity_fails(self):
        result = check_app_quantity(_set(apps=[PayloadFactory.app("APP-1", quantity=None)]))

        assert result.status == RuleStatus.FAIL
        assert result.details["failures"][0]["quantity"] is None
        assert result.details["failures"][0]["reason"] == "Missing quantity"

    def test_string_quantity_fails(self):
        result = check_app_quantity(_set(apps=[PayloadFactory.app("APP-1", quantity="1")]))

        assert result.status == RuleStatus.FAIL

    def test_no_apps_passes(self):
        result = check_app_quantity(EntitlementSet())

        assert result.status == RuleStatus.PASS
        assert result.details["total_count"] == 0

    @settings(max_examples=50, deadline=None)
    @given(
        quantity=st.integers(min_value=-1000, max_value=1000).filter(lambda q: q != 1),
        product_code=st.text(alphabet="ABCDEFGHIJKLMNOPQRSTUVWXYZ-", min_size=1, max_size=12).filter(
            lambda c: c not in ("IC-DATABRIDGE", "RI-RISKMODELER-EXPANSION")
        )
    )
    def test_single_non_exempt_app_with_wrong_quantity_fails(self, quantity, product_code):
        result = check_app_quantity(_set(apps=[PayloadFactory.app(product_code, quantity=quantity)]))

        assert result.status == RuleStatus.FAIL
        assert [f["product_code"] for f in result.details["failures"]] == [product_code]
        assert result.details["failures"][0]["quantity"] == quantity


class TestModelCountValidation:
    """Test cases for model-count-validation."""

    def test_at_limit_passes(self):
        models = [PayloadFactory.entitlement(f"M{i}") for i in range(100)]

        result = check_model_count(_set(models=models))

        assert result.status == RuleStatus.PASS
        assert result.details["total_count"] == 100

    def test_over_limit_fails_with_count(self):
        models = [PayloadFactory.entitlement(f"M{i}") for i in range(101)]

        result = check_model_count(_set(models=models))

        assert result.status == RuleStatus.FAIL
        assert result.details["total_count"] == 101
        assert result.details["within_limit"] is False
        assert result.affected_count == 101

    def test_custom_limit(self):
        models = [PayloadFactory.entitlement(f"M{i}") for i in range(3)]

        assert check_model_count(_set(models=models), limit=2).status == RuleStatus.FAIL


class TestDateOverlapValidation:
    """Test cases for entitlement-date-overlap-validation."""

    def test_intersecting_ranges_fail_and_report_pair(self):
        entitlements = _set(apps=_ranges("X", ("2025-01-01", "2025-02-01"), ("2025-01-15", "2025-03-01")))

        result = check_date_overlap(entitlements)

        assert result.status == RuleStatus.FAIL
        assert result.details["overlaps_found"] == 1
        overlap = result.details["overlaps"][0]
        assert overlap["product_code"] == "X"
        assert overlap["type"] == "app"
        assert overlap["entitlement1"]["start_date"] == "2025-01-01"
        assert overlap["entitlement2"]["start_date"] == "2025-01-15"
        assert overlap["overlap_kind"] == "partial"
        assert result.affected_count == 2

    def test_shared_boundary_day_overlaps(self):
        entitlements = _set(apps=_ranges("X", ("2025-01-01", "2025-02-01"), ("2025-02-01", "2025-03-01")))

        assert check_date_overlap(entitlements).status == RuleStatus.FAIL

    def test_contiguous_ranges_pass(self):
        entitlements = _set(apps=_ranges("X", ("2025-01-01", "2025-01-31"), ("2025-02-01", "2025-02-28")))

        assert check_date_overlap(entitlements).status == RuleStatus.PASS

    def test_identical_ranges_fail(self):
        entitlements = _set(apps=_ranges(
            "RI-RISKMODELER-EXPANSION", ("2025-01-01", "2025-12-31"), ("2025-01-01", "2025-12-31")
        ))

        result = check_date_overlap(entitlements)

        assert result.status == RuleStatus.FAIL
        assert result.details["overlaps"][0]["overlap_kind"] == "identical"
        assert "identical date ranges" in result.details["overlaps"][0]["description"]

    def test_containment_is_reported(self):
        entitlements = _set(models=_ranges("M", ("2025-01-01", "2025-12-31"), ("2025-03-01", "2025-04-01")))

        result = check_date_overlap(entitlements)

        assert result.details["overlaps"][0]["overlap_kind"] == "contains"

    def test_different_types_are_not_compared(self):
        entitlements = _set(
            models=_ranges("SHARED", ("2025-01-01", "2025-12-31")),
            apps=_ranges("SHARED", ("2025-01-01", "2025-12-31"))
        )

        assert check_date_overlap(entitlements).status == RuleStatus.PASS

    def test_different_product_codes_are_not_compared(self):
        entitlements = _set(apps=[
            PayloadFactory.entitlement("A", "2025-01-01", "2025-12-31"),
            PayloadFactory.entitlement("B", "2025-01-01", "2025-12-31"),
        ])

        assert check_date_overlap(entitlements).status == RuleStatus.PASS

    def test_missing_or_invalid_dates_are_skipped(self):
        entitlements = _set(apps=[
            PayloadFactory.entitlement("X", "2025-01-01", "2025-12-31"),
            PayloadFactory.entitlement("X", "2025-02-01"),
            PayloadFactory.entitlement("X", "not-a-date", "2025-06-01"),
        ])

        assert check_date_overlap(entitlements).status == RuleStatus.PASS

    def test_every_overlapping_pair_is_reported(self):
        entitlements = _set(apps=_ranges(
            "X", ("2025-01-01", "2025-06-30"), ("2025-03-01", "2025-09-30"), ("2025-05-01", "2025-12-31")
        ))

        result = check_date_overlap(entitlements)

        assert result.details["overlaps_found"] == 3
        assert result.affected_count == 3

    def test_inverted_range_compared_on_its_span(self):
        entitlements = _set(apps=_ranges("X", ("2025-06-01", "2025-01-01"), ("2025-03-01", "2025-04-01")))

        result = check_date_overlap(entitlements)

        assert result.status == RuleStatus.FAIL
        overlap = result.details["overlaps"][0]
        assert overlap["overlap_kind"] == "contains"
        assert overlap["entitlement1"]["label"] == "app-1"
        assert overlap["entitlement1"]["inverted"] is True
        assert overlap["entitlement2"]["inverted"] is False

    def test_lone_inverted_range_passes(self):
        entitlements = _set(apps=_ranges("X", ("2025-06-01", "2025-01-01")))

        assert check_date_overlap(entitlements).status == RuleStatus.PASS

    def test_timestamps_compare_by_day(self):
        entitlements = _set(apps=_ranges(
            "X", ("2025-01-01T00:00:00Z", "2025-01-31T23:59:59Z"), ("2025-02-01T00:00:00.000+0000", "2025-02-28")
        ))

        assert check_date_overlap(entitlements).status == RuleStatus.PASS


class TestDateGapValidation:
    """Test cases for entitlement-date-gap-validation."""

    def test_gap_fails_with_gap_days(self):
        entitlements = _set(apps=_ranges("PROD-A", ("2025-01-01", "2025-01-31"), ("2025-02-05", "2025-02-28")))

        result = check_date_gap(entitlements)

        assert result.status == RuleStatus.FAIL
        assert result.details["gaps_found"] == 1
        assert result.details["gaps"][0]["gap_days"] == 4
        assert result.details["gaps"][0]["product_code"] == "PROD-A"

    def test_contiguous_ranges_pass(self):
        entitlements = _set(apps=_ranges("PROD-B", ("2025-01-01", "2025-01-31"), ("2025-02-01", "2025-02-28")))

        result = check_date_gap(entitlements)

        assert result.status == RuleStatus.PASS
        assert result.details["gaps_found"] == 0

    def test_single_range_passes(self):
        entitlements = _set(apps=_ranges("PROD-C", ("2025-01-01", "2025-12-31")))

        assert check_date_gap(entitlements).status == RuleStatus.PASS

    def test_inverted_range_covering_another_is_not_a_gap(self):
        entitlements = _set(apps=_ranges("PROD-C", ("2025-06-01", "2025-01-01"), ("2025-03-01", "2025-04-01")))

        result = check_date_gap(entitlements)

        assert result.status == RuleStatus.PASS
        assert result.details["gaps"] == []

    def test_gap_after_inverted_range_uses_its_later_day(self):
        entitlements = _set(apps=_ranges("PROD-C", ("2025-03-31", "2025-01-01"), ("2025-05-01", "2025-06-30")))

        result = check_date_gap(entitlements)

        assert result.status == RuleStatus.FAIL
        gap = result.details["gaps"][0]
        assert gap["gap_days"] == 30
        assert gap["entitlement1"]["inverted"] is True
        assert "(ends 2025-03-31)" in gap["description"]

    def test_lone_inverted_range_passes(self):
        entitlements = _set(apps=_ranges("PROD-C", ("2025-06-01", "2025-01-01")))

        assert check_date_gap(entitlements).status == RuleStatus.PASS

    def test_gaps_only_within_same_product_code(self):
        entitlements = _set(apps=_ranges("PROD-D", ("2025-01-01", "2025-01-31"), ("2025-03-01", "2025-03-31"))
                            + _ranges("PROD-E", ("2025-01-01", "2025-01-31"), ("2025-02-01", "2025-02-28")))

        result = check_date_gap(entitlements)

        assert result.details["gaps_found"] == 1
        assert result.details["gaps"][0]["product_code"] == "PROD-D"

    def test_multiple_gaps_detected(self):
        entitlements = _set(models=_ranges(
            "MODEL-X", ("2025-01-01", "2025-01-10"), ("2025-01-15", "2025-01-20"), ("2025-02-01", "2025-02-10")
        ))

        result = check_date_gap(entitlements)

        assert result.details["gaps_found"] == 2
        assert [g["gap_days"] for g in result.details["gaps"]] == [4, 11]

    def test_gaps_not_reported_across_types(self):
        entitlements = _set(
            apps=_ranges("SHARED-PROD", ("2025-01-01", "2025-01-31")),
            models=_ranges("SHARED-PROD", ("2025-03-01", "2025-03-31"))
        )

        assert check_date_gap(entitlements).status == RuleStatus.PASS

    def test_unsorted_payload_order_is_sorted_by_start(self):
        entitlements = _set(data=_ranges("D", ("2025-02-01", "2025-02-28"), ("2025-01-01", "2025-01-31")))

        assert check_date_gap(entitlements).status == RuleStatus.PASS

    def test_range_covered_by_longer_range_is_not_a_gap(self):
        entitlements = _set(data=_ranges(
            "D", ("2025-01-01", "2025-12-31"), ("2025-02-01", "2025-02-05"), ("2025-03-01", "2025-03-05")
        ))

        assert check_date_gap(entitlements).status == RuleStatus.PASS

    def test_tolerance_widens_allowed_gap(self):
        entitlements = _set(apps=_ranges("PROD-A", ("2025-01-01", "2025-01-31"), ("2025-02-05", "2025-02-28")))

        assert check_date_gap(entitlements, tolerance_days=5).status == RuleStatus.PASS


class TestContiguityProperties:
    """Contiguous ranges never overlap or gap; intersecting ranges always overlap."""

    @settings(max_examples=100, deadline=None)
    @given(
        start=st.dates(min_value=date(2000, 1, 1), max_value=date(2090, 1, 1)),
        first_len=st.integers(min_value=0, max_value=800),
        second_len=st.integers(min_value=0, max_value=800)
    )
    def test_contiguous_ranges_pass_both_rules(self, start, first_len, second_len):
        first_end = start + timedelta(days=first_len)
        second_start = first_end + timedelta(days=1)
        second_end = second_start + timedelta(days=second_len)
        entitlements = _set(models=_ranges(
            "RM", (start.isoformat(), first_end.isoformat()), (second_start.isoformat(), second_end.isoformat())
        ))

        assert check_date_overlap(entitlements).status == RuleStatus.PASS
        assert check_date_gap(entitlements).status == RuleStatus.PASS

    @settings(max_examples=100, deadline=None)
    @given(
        start=st.dates(min_value=date(2000, 1, 1), max_value=date(2090, 1, 1)),
        first_len=st.integers(min_value=0, max_value=800),
        offset=st.integers(min_value=0, max_value=800),
        second_len=st.integers(min_value=0, max_value=800)
    )
    def test_intersecting_ranges_fail_overlap(self, start, first_len, offset, second_len):
        first_end = start + timedelta(days=first_len)
        second_start = start + timedelta(days=min(offset, first_len))
        second_end = second_start + timedelta(days=second_len)
        entitlements = _set(apps=_ranges(
            "APP", (start.isoformat(), first_end.isoformat()), (second_start.isoformat(), second_end.isoformat())
        ))

        result = check_date_overlap(entitlements)

        assert result.status == RuleStatus.FAIL
        assert result.details["overlaps_found"] == 1


class TestAppPackageNameValidation:
    """Test cases for app-package-name-validation."""

    def test_present_package_name_passes(self):
        assert check_app_package_name(_set(apps=[PayloadFactory.app("APP-1")])).status == RuleStatus.PASS

    @pytest.mark.parametrize("package_name", [None, "", "   "])
    def test_missing_package_name_fails(self, package_name):
        result = check_app_package_name(_set(apps=[PayloadFactory.app("APP-1", package_name=package_name)]))

        assert result.status == RuleStatus.FAIL
        assert result.details["failures"][0]["product_code"] == "APP-1"
        assert result.affected_count == 1

    def test_exempt_codes(self):
        entitlements = _set(apps=[PayloadFactory.app("IC-RISKDATALAKE", package_name=None)])

        assert check_app_package_name(entitlements, exempt_codes=("IC-RISKDATALAKE",)).status == RuleStatus.PASS


class TestDateHelpers:
    """Test cases for date parsing and grouping."""

    @pytest.mark.parametrize("value,expected", [
        ("2025-01-31", date(2025, 1, 31)),
        ("2025-01-31T10:00:00Z", date(2025, 1, 31)),
        ("2025-01-31T23:30:00-05:00", date(2025, 2, 1)),
        ("not-a-date", None),
        ("2025-13-40", None),
        ("", None),
        (None, None),
    ])
    def test_parse_date(self, value, expected):
        assert parse_date(value) == expected

    def test_ties_keep_payload_order(self):
        entitlements = _set(apps=[
            PayloadFactory.entitlement("X", "2025-01-01", "2025-03-31", productName="first"),
            PayloadFactory.entitlement("X", "2025-01-01", "2025-02-28", productName="second"),
        ])

        groups = group_by_product(entitlements.all())

        members = next(iter(groups.values()))
        assert [m.entitlement.product_name for m in members] == ["first", "second"]


class TestRuleCatalog:
    """Test cases for RuleCatalog."""

    def test_default_catalog_contains_built_in_rules(self):
        assert [d.id for d in DEFAULT_CATALOG] == [rule_id.value for rule_id in RuleId]

    def test_default_enabled_ids_skip_disabled_descriptors(self):
        active = RuleDescriptor(
            id="active", name="Active", category=RuleCategory.PRODUCT_VALIDATION,
            evaluate=lambda entitlements: RuleResult("active", "Active", RuleStatus.PASS)
        )
        retired = RuleDescriptor(
            id="retired", name="Retired", category=RuleCategory.PRODUCT_VALIDATION,
            evaluate=lambda entitlements: RuleResult("retired", "Retired", RuleStatus.PASS),
            enabled=False
        )

        catalog = RuleCatalog([active, retired])

        assert catalog.default_enabled_ids() == ["active"]
        assert len(catalog) == 2
        assert DEFAULT_CATALOG.default_enabled_ids() == [rule_id.value for rule_id in RuleId]

    def test_lookup_miss_returns_none(self):
        assert DEFAULT_CATALOG.get("no-such-rule") is None
        assert "no-such-rule" not in DEFAULT_CATALOG

    def test_duplicate_ids_rejected(self):
        descriptor = RuleDescriptor(
            id="dup",
            name="Dup",
            category=RuleCategory.PRODUCT_VALIDATION,
            evaluate=lambda entitlements: RuleResult("dup", "Dup", RuleStatus.PASS)
        )

        with pytest.raises(ValueError):
            RuleCatalog([descriptor, descriptor])

    def test_built_catalog_binds_parameters(self):
        catalog = build_default_catalog(model_count_limit=1)
        models = [PayloadFactory.entitlement("M1"), PayloadFactory.entitlement("M2")]

        result = catalog.get(RuleId.MODEL_COUNT.value).evaluate(_set(models=models))

        assert result.status == RuleStatus.FAIL
        assert result.details["limit"] == 1
