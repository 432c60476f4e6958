# -*- coding: utf-8 -*-
"""End-to-end tests for the EmissionsAccountingService facade."""

import pytest

from ghg_inventory.config import EmissionsEngineConfig
from ghg_inventory.exceptions import UnitMismatchError
from ghg_inventory.models import (
    ActivityRecord,
    CalculationState,
    CustomFactor,
    Facility,
    ReductionMeasure,
)
from ghg_inventory.service import EmissionsAccountingService


@pytest.fixture
def service(catalog, provenance, engine_config):
    return EmissionsAccountingService(
        config=engine_config, catalog=catalog, provenance=provenance,
    )


@pytest.fixture
def inventory(service):
    """Records for a small office with the top suggestion applied to each."""
    records = [
        ActivityRecord(
            id="r1", scope="scope1", source="diesel", amount=1000, unit="liters",
            facility="Head Office",
        ),
        ActivityRecord(
            id="r2", scope="scope2", source="grid-electricity", amount=50000, unit="kWh",
            facility="Head Office",
        ),
        ActivityRecord(
            id="r3", scope="scope3", source="business-travel", amount=20000, unit="km",
            category="Business travel",
        ),
    ]
    factors = []
    for record in records:
        top = service.suggest_factors(record.source, record.unit, record.scope)[0]
        _, factors = service.apply_factor(record, top.factor, factors)
    facilities = [Facility(id="f1", name="Head Office", ownership_percentage=80)]
    return records, factors, facilities


class TestEndToEnd:

    def test_full_inventory(self, service, inventory):
        records, factors, facilities = inventory

        result = service.calculate_inventory(records, factors, facilities)

        assert result.scope1_total == pytest.approx(2.68)
        assert result.scope2_total == pytest.approx(23.86)
        assert result.scope3_total == pytest.approx(5.1)
        assert result.by_facility[0].total == pytest.approx((2.68 + 23.86) * 0.8)
        assert service.current_result() is result
        assert service.tracker.state == CalculationState.CALCULATED

    def test_editing_a_record_makes_result_stale(self, service, inventory):
        records, factors, facilities = inventory
        service.calculate_inventory(records, factors, facilities)

        records[0] = records[0].model_copy(update={"amount": 2000})
        state = service.revalidate(records, factors, facilities)

        assert state == CalculationState.STALE
        assert service.current_result().total_emissions == 0

    def test_applying_a_factor_makes_result_stale(self, service, inventory):
        records, factors, facilities = inventory
        service.calculate_inventory(records, factors, facilities)

        service.apply_factor(records[0], CustomFactor(value=3, unit="kgCO2e/liter"), factors)

        assert service.tracker.is_stale

    def test_removing_records(self, service, inventory):
        records, factors, facilities = inventory
        service.calculate_inventory(records, factors, facilities)

        remaining = service.remove_factors_for(factors, ["r3"])
        result = service.calculate_inventory(records[:2], remaining, facilities)

        assert [af.activity_id for af in remaining] == ["r1", "r2"]
        assert result.scope3_total == 0

    def test_failed_apply_leaves_state(self, service, inventory, catalog):
        records, factors, facilities = inventory
        service.calculate_inventory(records, factors, facilities)

        with pytest.raises(UnitMismatchError):
            service.apply_factor(records[0], catalog.get_factor("dewa-grid-2024"), factors)
        assert service.tracker.state == CalculationState.CALCULATED

    def test_net_emissions(self, service, inventory):
        records, factors, facilities = inventory
        service.calculate_inventory(records, factors, facilities)

        summary = service.net_emissions([
            ReductionMeasure(id="m1", measure="LED retrofit", reduction_amount=1.64),
        ])

        assert summary.gross_emissions == pytest.approx(31.64)
        assert summary.net_emissions == pytest.approx(30.0)

    def test_validate_selection(self, service, catalog):
        validation = service.validate_selection(
            catalog.get_factor("dewa-grid-2024"), "diesel", "liters",
        )
        assert not validation.is_valid


class TestServiceStatistics:

    def test_counters(self, service, inventory):
        records, factors, facilities = inventory
        service.calculate_inventory(records, factors, facilities)

        stats = service.get_statistics()

        assert stats["total_suggestions"] == 3
        assert stats["total_factors_applied"] == 3
        assert stats["total_calculations"] == 1
        assert stats["total_failures"] == 0
        assert stats["catalog_version"] == "uae-2024.1"
        assert stats["catalog_factors"] == 12
        assert stats["tracker"]["state"] == "calculated"
        assert stats["provenance_entries"] >= 2

    def test_currency_peg_from_config(self, catalog, provenance):
        service = EmissionsAccountingService(
            config=EmissionsEngineConfig(aed_per_usd=4.0), catalog=catalog,
            provenance=provenance,
        )
        assert service.converter.convert(100, "USD", "AED") == pytest.approx(400)
