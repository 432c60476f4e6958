# -*- coding: utf-8 -*-
"""Pytest configuration and shared fixtures."""

from datetime import datetime, timezone

import pytest

from ghg_inventory.aggregator import EmissionsAggregator
from ghg_inventory.applicability import FactorApplicabilityEngine
from ghg_inventory.calculator import EmissionsCalculator
from ghg_inventory.catalog import get_catalog, reset_catalog
from ghg_inventory.config import EmissionsEngineConfig, reset_config, set_config
from ghg_inventory.models import ActivityRecord, CustomFactor, Facility
from ghg_inventory.provenance import ProvenanceTracker, reset_provenance_tracker
from ghg_inventory.unit_converter import UnitConverter


@pytest.fixture(autouse=True)
def engine_config():
    """Install a default configuration and clear singletons after each test."""
    config = EmissionsEngineConfig()
    set_config(config)
    yield config
    reset_catalog()
    reset_provenance_tracker()
    reset_config()


@pytest.fixture
def catalog():
    """The bundled UAE catalog."""
    return get_catalog()


@pytest.fixture
def converter():
    return UnitConverter()


@pytest.fixture
def engine(catalog, converter):
    return FactorApplicabilityEngine(catalog=catalog, converter=converter)


@pytest.fixture
def calculator(engine, converter):
    return EmissionsCalculator(converter=converter, applicability=engine)


@pytest.fixture
def provenance():
    return ProvenanceTracker(genesis="test-genesis")


@pytest.fixture
def aggregator(calculator, engine_config, provenance):
    return EmissionsAggregator(
        calculator=calculator, config=engine_config, provenance=provenance,
    )


@pytest.fixture
def fixed_time():
    return datetime(2024, 12, 31, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_record():
    """Factory for activity records with sensible defaults."""

    def _make(record_id="r1", scope="scope1", source="diesel", amount=100.0,
              unit="liters", **kwargs):
        return ActivityRecord(
            id=record_id, scope=scope, source=source, amount=amount, unit=unit,
            **kwargs,
        )

    return _make


@pytest.fixture
def tonne_factor():
    """Custom factor of 1 tCO2e per tonne, for easy arithmetic."""
    return CustomFactor(value=1, unit="tCO2e/tonne", name="Unit test factor")


@pytest.fixture
def facilities():
    return [
        Facility(id="f-a", name="A", type="office", ownership_percentage=100),
        Facility(id="f-b", name="B", type="warehouse", ownership_percentage=50),
    ]
