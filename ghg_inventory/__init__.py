# -*- coding: utf-8 -*-
"""
GHG Inventory Engine
====================

Turns activity-consumption records (fuel burned, electricity drawn, travel
distance, spend) into a greenhouse-gas inventory broken down by scope,
facility and category. It supports:

- A frozen, versioned emission factor catalog loaded from YAML, with
  applicability rules per activity source and unit
- Scored factor suggestions and non-fatal validation of factor selections
- Family-table unit conversion (mass, energy, volume, distance, currency)
- Single-record calculation and ownership-prorated aggregation
- An explicit staleness state machine for calculated results
- Net emissions after reduction measures
- SHA-256 provenance chain tracking
- 8 Prometheus metrics for observability

Key Components:
    - config: EmissionsEngineConfig with GHGI_ env prefix
    - normalization: Shared unit/source canonicalization
    - unit_converter: Deterministic unit conversion engine
    - catalog: Load-then-freeze factor catalog
    - applicability: Applicability checks and suggestion scoring
    - calculator: Single-record calculation and factor assignment
    - aggregator: Scope, facility and category aggregation
    - staleness: Calculation state machine
    - reductions: Net emissions summary
    - service: EmissionsAccountingService facade

Example:
    >>> from ghg_inventory import ActivityRecord, EmissionsAccountingService
    >>> service = EmissionsAccountingService()
    >>> record = ActivityRecord(
    ...     id="r1", scope="scope2", source="grid-electricity",
    ...     amount=50000, unit="kWh",
    ... )
    >>> top = service.suggest_factors(record.source, record.unit, record.scope)[0]
    >>> applied, factors = service.apply_factor(record, top.factor)
    >>> service.calculate_inventory([record], factors).total_emissions
    23.86
"""

__version__ = "1.0.0"

from ghg_inventory.aggregator import EmissionsAggregator
from ghg_inventory.applicability import (
    FactorApplicabilityEngine,
    factor_applies_to_activity,
    get_matching_activities,
    get_suggested_factors,
    validate_factor_selection,
)
from ghg_inventory.calculator import CalculationTrace, EmissionsCalculator
from ghg_inventory.catalog import (
    FactorCatalog,
    format_factor_name,
    format_factor_value,
    get_catalog,
    load_catalog,
    reset_catalog,
    set_catalog,
)
from ghg_inventory.config import (
    EmissionsEngineConfig,
    get_config,
    reset_config,
    set_config,
)
from ghg_inventory.exceptions import (
    CatalogError,
    EmissionsEngineError,
    InvalidFactorValue,
    UnitConversionError,
    UnitMismatchError,
    UnknownUnitError,
)
from ghg_inventory.models import (
    ActivityRecord,
    ApplicabilityRule,
    ApplicabilityWarning,
    AppliedFactor,
    CalculationFailure,
    CalculationResult,
    CalculationState,
    CategoryEmissions,
    ConversionStep,
    CustomFactor,
    EmissionFactor,
    Facility,
    FacilityEmissions,
    FactorSuggestion,
    FactorValidation,
    NetEmissionsSummary,
    ReductionMeasure,
    Scope,
    WarningCode,
)
from ghg_inventory.normalization import canonical_source, canonical_unit
from ghg_inventory.provenance import ProvenanceTracker, get_provenance_tracker
from ghg_inventory.reductions import summarize_net_emissions
from ghg_inventory.service import EmissionsAccountingService
from ghg_inventory.staleness import StalenessTracker, fingerprint_inputs
from ghg_inventory.unit_converter import FactorUnit, UnitConverter

__all__ = [
    "__version__",
    # Service
    "EmissionsAccountingService",
    # Engines
    "FactorCatalog",
    "FactorApplicabilityEngine",
    "UnitConverter",
    "EmissionsCalculator",
    "EmissionsAggregator",
    "StalenessTracker",
    "ProvenanceTracker",
    # Functions
    "factor_applies_to_activity",
    "get_suggested_factors",
    "validate_factor_selection",
    "get_matching_activities",
    "format_factor_name",
    "format_factor_value",
    "summarize_net_emissions",
    "fingerprint_inputs",
    "canonical_unit",
    "canonical_source",
    "get_catalog",
    "set_catalog",
    "reset_catalog",
    "load_catalog",
    "get_config",
    "set_config",
    "reset_config",
    "get_provenance_tracker",
    # Models
    "Scope",
    "CalculationState",
    "WarningCode",
    "ApplicabilityRule",
    "EmissionFactor",
    "CustomFactor",
    "ActivityRecord",
    "Facility",
    "ApplicabilityWarning",
    "FactorValidation",
    "FactorSuggestion",
    "ConversionStep",
    "AppliedFactor",
    "FacilityEmissions",
    "CategoryEmissions",
    "CalculationFailure",
    "CalculationResult",
    "ReductionMeasure",
    "NetEmissionsSummary",
    "CalculationTrace",
    "FactorUnit",
    "EmissionsEngineConfig",
    # Exceptions
    "EmissionsEngineError",
    "UnitConversionError",
    "UnitMismatchError",
    "UnknownUnitError",
    "InvalidFactorValue",
    "CatalogError",
]
