# -*- coding: utf-8 -*-
"""Tests for inventory aggregation."""

import random

import pytest

from ghg_inventory.aggregator import EmissionsAggregator
from ghg_inventory.config import EmissionsEngineConfig
from ghg_inventory.models import UNCATEGORIZED, CATEGORY_LABELS, CustomFactor, Facility
from ghg_inventory.staleness import fingerprint_inputs


@pytest.fixture
def apply_all(calculator):
    """Apply one factor to each record and return the assignment list."""

    def _apply(records, factor):
        factors = []
        for record in records:
            _, factors = calculator.apply_factor(record, factor, factors)
        return factors

    return _apply


@pytest.fixture
def mixed_snapshot(make_record, apply_all, calculator, catalog):
    """Records of every scope with catalog factors applied."""
    records = [
        make_record("s1", "scope1", "diesel", 1000, "liters", facility="A"),
        make_record("s2", "scope2", "grid-electricity", 50000, "kWh", facility="B"),
        make_record("s3", "scope3", "business-travel", 10000, "km", category="Business travel"),
    ]
    factors = []
    for record, factor_id in zip(records, [
        "adnoc-diesel-2024", "dewa-grid-2024", "iata-business-travel-2024",
    ]):
        _, factors = calculator.apply_factor(record, catalog.get_factor(factor_id), factors)
    return records, factors


class TestScopeTotals:
    """Tests for per-scope and grand totals."""

    def test_totals(self, aggregator, mixed_snapshot, facilities, fixed_time):
        records, factors = mixed_snapshot
        result = aggregator.aggregate(records, factors, facilities, calculated_at=fixed_time)

        assert result.scope1_total == pytest.approx(2.68)
        assert result.scope2_total == pytest.approx(23.86)
        assert result.scope3_total == pytest.approx(2.55)
        assert result.total_emissions == pytest.approx(29.09)
        assert result.calculated_at == fixed_time
        assert result.is_complete
        assert result.records_total == 3
        assert result.records_calculated == 3

    def test_total_is_sum_of_scopes(self, aggregator, mixed_snapshot):
        records, factors = mixed_snapshot
        result = aggregator.aggregate(records, factors)

        assert result.total_emissions == pytest.approx(
            result.scope1_total + result.scope2_total + result.scope3_total, abs=1e-9,
        )

    def test_empty_input(self, aggregator):
        result = aggregator.aggregate([])

        assert result.total_emissions == 0
        assert result.scope1_total == result.scope2_total == result.scope3_total == 0
        assert [c.percentage for c in result.by_category] == [0, 0, 0]
        assert result.by_facility == []
        assert result.by_scope3_category == []
        assert result.failures == []
        assert result.is_calculated

    def test_recalculates_from_current_amount(self, aggregator, calculator, catalog, make_record):
        record = make_record("r1", "scope2", "grid-electricity", 50000, "kWh")
        _, factors = calculator.apply_factor(record, catalog.get_factor("dewa-grid-2024"))

        edited = record.model_copy(update={"amount": 100000})
        result = aggregator.aggregate([edited], factors)

        assert result.scope2_total == pytest.approx(47.72)

    def test_idempotent_apart_from_timestamp(self, aggregator, mixed_snapshot, facilities):
        records, factors = mixed_snapshot
        first = aggregator.aggregate(records, factors, facilities)
        second = aggregator.aggregate(records, factors, facilities)

        exclude = {"calculated_at", "provenance_hash"}
        assert first.model_dump(exclude=exclude) == second.model_dump(exclude=exclude)

    def test_record_order_does_not_change_totals(self, aggregator, mixed_snapshot):
        records, factors = mixed_snapshot
        forward = aggregator.aggregate(records, factors)
        backward = aggregator.aggregate(list(reversed(records)), factors)

        assert forward.total_emissions == pytest.approx(backward.total_emissions)
        assert forward.input_fingerprint == backward.input_fingerprint


class TestMissingAndOrphanedFactors:
    """Tests for records without factors and factors without records."""

    def test_record_without_factor_contributes_zero(self, aggregator, apply_all, tonne_factor, make_record):
        with_factor = make_record("r1", amount=2, unit="tonnes")
        without = make_record("r2", amount=5, unit="tonnes")
        factors = apply_all([with_factor], tonne_factor)

        result = aggregator.aggregate([with_factor, without], factors)

        assert result.scope1_total == pytest.approx(2)
        assert result.missing_factor_ids == ["r2"]
        assert not result.is_complete
        assert result.failures == []

    def test_orphaned_factor_is_ignored(self, aggregator, apply_all, tonne_factor, make_record):
        kept = make_record("r1", amount=2, unit="tonnes")
        deleted = make_record("r2", amount=5, unit="tonnes")
        factors = apply_all([kept, deleted], tonne_factor)

        result = aggregator.aggregate([kept], factors)

        assert result.total_emissions == pytest.approx(2)
        assert result.records_total == 1


class TestFailureIsolation:
    """Tests for per-record unit failures."""

    def test_unit_mismatch_excludes_only_that_record(
        self, aggregator, calculator, catalog, make_record,
    ):
        diesel = catalog.get_factor("adnoc-diesel-2024")
        records = [make_record(f"r{i}", amount=100, unit="liters") for i in range(1, 4)]
        factors = []
        for record in records:
            _, factors = calculator.apply_factor(record, diesel, factors)

        records[1] = records[1].model_copy(update={"unit": "km"})
        result = aggregator.aggregate(records, factors)

        assert result.scope1_total == pytest.approx(0.536)
        assert result.excluded_count == 1
        assert result.records_calculated == 2
        failure = result.failures[0]
        assert failure.activity_id == "r2"
        assert failure.error_code == "GHGI_UNIT_MISMATCH_ERROR"
        assert failure.context["from_unit"] == "km"
        assert result.exclusion_summary() == "1 of 3 records excluded due to unit mismatch"

    def test_unknown_unit_failure(self, aggregator, apply_all, tonne_factor, make_record):
        record = make_record(unit="tonnes")
        factors = apply_all([record], tonne_factor)

        result = aggregator.aggregate([record.model_copy(update={"unit": "crates"})], factors)

        assert result.failures[0].error_code == "GHGI_UNKNOWN_UNIT_ERROR"
        assert result.exclusion_summary() == "1 of 1 records excluded due to unknown units"
        assert result.total_emissions == 0


class TestFacilityAllocation:
    """Tests for ownership-prorated facility rows."""

    def test_ownership_proration(self, aggregator, apply_all, tonne_factor, make_record, facilities):
        records = [
            make_record("r1", amount=10, unit="tonnes", facility="A"),
            make_record("r2", amount=10, unit="tonnes", facility="B"),
        ]
        factors = apply_all(records, tonne_factor)

        result = aggregator.aggregate(records, factors, facilities)

        rows = [(row.facility, row.scope1) for row in result.by_facility]
        assert rows == [("A", pytest.approx(10)), ("B", pytest.approx(5))]
        assert result.scope1_total == pytest.approx(20)

    def test_scope3_not_attributed(self, aggregator, apply_all, tonne_factor, make_record, facilities):
        records = [make_record("r1", "scope3", amount=7, unit="tonnes", facility="A")]
        factors = apply_all(records, tonne_factor)

        result = aggregator.aggregate(records, factors, facilities)

        assert all(row.total == 0 for row in result.by_facility)
        assert result.scope3_total == pytest.approx(7)

    def test_every_facility_gets_a_row(self, aggregator, facilities):
        result = aggregator.aggregate([], (), facilities)

        assert [row.facility for row in result.by_facility] == ["A", "B"]
        assert all(row.total == 0 for row in result.by_facility)

    def test_names_match_after_stripping(self, aggregator, apply_all, tonne_factor, make_record):
        facility = Facility(id="f1", name=" Plant 1 ", ownership_percentage=100)
        records = [
            make_record("r1", amount=3, unit="tonnes", facility="Plant 1  "),
            make_record("r2", "scope2", "grid", amount=4, unit="tonnes", facility="plant 1"),
        ]
        factors = apply_all(records, tonne_factor)

        row = aggregator.aggregate(records, factors, [facility]).by_facility[0]

        assert row.scope1 == pytest.approx(3)
        assert row.scope2 == 0
        assert row.total == pytest.approx(3)

    def test_scope1_and_scope2_split(self, aggregator, apply_all, tonne_factor, make_record):
        facility = Facility(id="f1", name="HQ", ownership_percentage=25)
        records = [
            make_record("r1", "scope1", amount=8, unit="tonnes", facility="HQ"),
            make_record("r2", "scope2", amount=4, unit="tonnes", facility="HQ"),
        ]
        factors = apply_all(records, tonne_factor)

        row = aggregator.aggregate(records, factors, [facility]).by_facility[0]

        assert (row.scope1, row.scope2, row.total) == (
            pytest.approx(2), pytest.approx(1), pytest.approx(3),
        )


class TestCategories:
    """Tests for category breakdowns."""

    def test_scope_categories_in_fixed_order(self, aggregator, mixed_snapshot):
        records, factors = mixed_snapshot
        result = aggregator.aggregate(records, factors)

        assert [c.category for c in result.by_category] == list(CATEGORY_LABELS.values())
        assert sum(c.percentage for c in result.by_category) == pytest.approx(100)
        assert result.by_category[1].amount == pytest.approx(23.86)

    def test_scope3_categories(self, aggregator, apply_all, tonne_factor, make_record):
        records = [
            make_record("r1", "scope3", amount=6, unit="tonnes", category="Waste"),
            make_record("r2", "scope3", amount=2, unit="tonnes", category=" "),
            make_record("r3", "scope3", amount=2, unit="tonnes", category="Waste"),
            make_record("r4", "scope1", amount=9, unit="tonnes", category="Waste"),
        ]
        factors = apply_all(records, tonne_factor)

        categories = aggregator.aggregate(records, factors).by_scope3_category

        assert [(c.category, c.amount, c.percentage) for c in categories] == [
            ("Waste", pytest.approx(8), pytest.approx(80)),
            (UNCATEGORIZED, pytest.approx(2), pytest.approx(20)),
        ]


class TestProvenance:
    """Tests for fingerprints and provenance hashes."""

    def test_fingerprint_matches_inputs(self, aggregator, mixed_snapshot, facilities):
        records, factors = mixed_snapshot
        result = aggregator.aggregate(records, factors, facilities)

        assert result.input_fingerprint == fingerprint_inputs(records, factors, facilities)

    def test_provenance_hash_recorded(self, aggregator, provenance, mixed_snapshot, fixed_time):
        records, factors = mixed_snapshot
        result = aggregator.aggregate(records, factors, calculated_at=fixed_time)

        assert len(result.provenance_hash) == 64
        assert provenance.entry_count == 1
        assert provenance.get_chain()[0]["operation"] == "aggregate"

    def test_provenance_hash_deterministic(self, aggregator, mixed_snapshot, fixed_time):
        records, factors = mixed_snapshot
        first = aggregator.aggregate(records, factors, calculated_at=fixed_time)
        second = aggregator.aggregate(records, factors, calculated_at=fixed_time)

        assert first.provenance_hash == second.provenance_hash

    def test_provenance_disabled(self, calculator, provenance, mixed_snapshot):
        config = EmissionsEngineConfig(enable_provenance=False)
        aggregator = EmissionsAggregator(
            calculator=calculator, config=config, provenance=provenance,
        )
        records, factors = mixed_snapshot

        result = aggregator.aggregate(records, factors)

        assert result.provenance_hash is None
        assert provenance.entry_count == 0


class TestConservation:
    """Tests for total conservation at large magnitudes."""

    def test_total_equals_scope_sum_for_large_inventories(self, aggregator, calculator, make_record):
        rng = random.Random(20241231)
        for _ in range(25):
            records = []
            factors = []
            for index in range(6):
                record = make_record(
                    f"r{index}", ("scope1", "scope2", "scope3")[index % 3],
                    amount=rng.uniform(1e6, 1e8), unit="tonnes",
                )
                factor = CustomFactor(value=rng.uniform(0.1, 3), unit="tCO2e/tonne")
                _, factors = calculator.apply_factor(record, factor, factors)
                records.append(record)

            result = aggregator.aggregate(records, factors)

            assert abs(result.total_emissions - (
                result.scope1_total + result.scope2_total + result.scope3_total
            )) <= 1e-9


class TestDuplicateRecordIds:
    """Tests for records that share an id."""

    def test_first_record_wins(self, aggregator, apply_all, tonne_factor, make_record, facilities):
        first = make_record("r1", amount=4, unit="tonnes", facility="A")
        repeat = make_record("r1", amount=9, unit="tonnes", facility="A")
        factors = apply_all([first], tonne_factor)

        result = aggregator.aggregate([first, repeat], factors, facilities)

        assert result.scope1_total == pytest.approx(4)
        assert result.records_total == 1
        assert result.records_calculated == 1
        assert result.by_facility[0].scope1 == pytest.approx(4)
