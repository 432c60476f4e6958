# -*- coding: utf-8 -*-
"""
GHG Inventory Engine Data Models

Pydantic v2 data models for the emissions accounting engine. Defines
enumerations, catalog and activity models, factor assignment models, and
the aggregate calculation result.

Enumerations (3):
    - Scope, CalculationState, WarningCode

Catalog models (3):
    - ApplicabilityRule, EmissionFactor, CustomFactor

Ledger inputs (2):
    - ActivityRecord, Facility

Factor selection models (5):
    - ApplicabilityWarning, FactorValidation, FactorSuggestion,
      ConversionStep, AppliedFactor

Result models (6):
    - FacilityEmissions, CategoryEmissions, CalculationFailure,
      CalculationResult, ReductionMeasure, NetEmissionsSummary

All emissions quantities are expressed in tCO2e.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from ghg_inventory.exceptions import InvalidFactorValue


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _utcnow() -> datetime:
    """Return current UTC datetime with microseconds zeroed."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def _validate_factor_value(value: Any) -> float:
    """Coerce a factor value to float, rejecting invalid values.

    Raises:
        InvalidFactorValue: If the value is boolean, non-numeric, NaN,
            infinite or negative.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidFactorValue(
            f"Emission factor value must be numeric, got {value!r}", value=value,
        )
    if isinstance(value, (int, float, Decimal)):
        numeric = float(value)
    elif isinstance(value, str):
        try:
            numeric = float(value.strip())
        except ValueError:
            raise InvalidFactorValue(
                f"Emission factor value must be numeric, got {value!r}",
                value=value,
            ) from None
    else:
        raise InvalidFactorValue(
            f"Emission factor value must be numeric, got {type(value).__name__}",
            value=value,
        )
    if math.isnan(numeric) or math.isinf(numeric):
        raise InvalidFactorValue(
            f"Emission factor value must be finite, got {value!r}", value=value,
        )
    if numeric < 0:
        raise InvalidFactorValue(
            f"Emission factor value cannot be negative: {value!r}", value=value,
        )
    return numeric


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

#: Suggestion score for an exact source and unit match.
SCORE_EXACT: int = 100

#: Suggestion score for a source match whose unit converts to the factor basis.
SCORE_CONVERTIBLE: int = 70

#: Suggestion score for a source match with an incompatible unit.
SCORE_SOURCE_ONLY: int = 40

#: Label used for scope-3 records without a category.
UNCATEGORIZED: str = "Uncategorized"


# =============================================================================
# Enumerations
# =============================================================================


class Scope(str, Enum):
    """GHG Protocol emission scope."""

    SCOPE_1 = "scope1"  # Direct emissions
    SCOPE_2 = "scope2"  # Purchased electricity, heating, cooling
    SCOPE_3 = "scope3"  # Other indirect (value chain)


class CalculationState(str, Enum):
    """Lifecycle state of a calculation snapshot.

    UNCALCULATED: No successful aggregation has been stamped yet.
    CALCULATED: The stamped result matches the current inputs.
    STALE: Inputs changed after the result was stamped.
    """

    UNCALCULATED = "uncalculated"
    CALCULATED = "calculated"
    STALE = "stale"


class WarningCode(str, Enum):
    """Codes for non-fatal factor selection warnings."""

    UNIT_CONVERSION = "unit_conversion"
    UNIT_INCOMPATIBLE = "unit_incompatible"
    UNCERTIFIED_FACTOR = "uncertified_factor"


#: Fixed inventory categories, one per scope.
CATEGORY_LABELS: Dict[Scope, str] = {
    Scope.SCOPE_1: "Direct – Scope 1",
    Scope.SCOPE_2: "Energy Indirect – Scope 2",
    Scope.SCOPE_3: "Other Indirect – Scope 3",
}


# =============================================================================
# Catalog models
# =============================================================================


class ApplicabilityRule(BaseModel):
    """One applicability entry: an activity source and the units it accepts."""

    source: str = Field(..., min_length=1, description="Emission source key")
    units: List[str] = Field(
        ..., min_length=1, description="Activity units the factor accepts",
    )

    model_config = {"extra": "forbid", "frozen": True}


class EmissionFactor(BaseModel):
    """A catalog emission factor.

    Immutable once constructed. ``value`` is expressed in ``unit``, a
    compound "<mass>CO2e/<activity unit>" string.
    """

    id: str = Field(..., min_length=1, description="Unique factor identifier")
    scope: Scope = Field(..., description="GHG Protocol scope")
    name: str = Field(..., min_length=1, description="Display name")
    year: str = Field(default="", description="Factor vintage year")
    value: float = Field(..., description="Factor value in ``unit``")
    unit: str = Field(..., min_length=1, description="Compound factor unit")
    applies_to: List[ApplicabilityRule] = Field(
        default_factory=list, description="Ordered applicability rules",
    )
    authority: str = Field(default="", description="Issuing body")
    notes: str = Field(default="", description="Free-text notes")
    certified: bool = Field(default=False, description="Officially certified")

    model_config = {"extra": "forbid", "frozen": True}

    @field_validator("value", mode="before")
    @classmethod
    def _check_value(cls, value: Any) -> float:
        return _validate_factor_value(value)


class CustomFactor(BaseModel):
    """An inline manual factor supplied by the caller.

    Custom factors carry no applicability rules and are never certified.
    """

    value: float = Field(..., description="Factor value in ``unit``")
    unit: str = Field(..., min_length=1, description="Compound factor unit")
    name: str = Field(default="Custom factor", description="Display name")
    notes: str = Field(default="", description="Free-text notes")
    certified: bool = Field(default=False, description="Always False")

    model_config = {"extra": "forbid", "frozen": True}

    @field_validator("value", mode="before")
    @classmethod
    def _check_value(cls, value: Any) -> float:
        return _validate_factor_value(value)

    @field_validator("certified")
    @classmethod
    def _never_certified(cls, value: bool) -> bool:
        if value:
            raise ValueError("custom factors cannot be certified")
        return value


FactorLike = Union[EmissionFactor, CustomFactor]


# =============================================================================
# Ledger inputs
# =============================================================================


class ActivityRecord(BaseModel):
    """One activity-consumption record supplied by the activity ledger."""

    id: str = Field(..., min_length=1, description="Record identifier")
    scope: Scope = Field(..., description="Scope the record is reported under")
    source: str = Field(default="", description="Emission source key")
    category: Optional[str] = Field(
        default=None, description="Scope-3 category (scope 3 only)",
    )
    amount: float = Field(..., ge=0, description="Activity amount")
    unit: str = Field(default="", description="Activity unit")
    facility: Optional[str] = Field(
        default=None, description="Facility name reference",
    )
    description: str = Field(default="", description="Free-text description")

    model_config = {"extra": "forbid", "frozen": True}


class Facility(BaseModel):
    """A reporting facility used for ownership-based allocation."""

    id: str = Field(..., min_length=1, description="Facility identifier")
    name: str = Field(..., description="Name referenced by activity records")
    type: str = Field(default="", description="Facility type")
    ownership_percentage: float = Field(
        default=100.0, ge=0, le=100,
        description="Share owned or controlled by the organization",
    )
    address: str = Field(default="", description="Facility address")

    model_config = {"extra": "forbid", "frozen": True}


# =============================================================================
# Factor selection models
# =============================================================================


class ApplicabilityWarning(BaseModel):
    """Non-fatal finding about a factor selection. Returned, never raised."""

    code: WarningCode
    message: str

    model_config = {"extra": "forbid", "frozen": True}


class FactorValidation(BaseModel):
    """Outcome of validating a factor against an activity."""

    is_valid: bool = True
    errors: List[str] = Field(default_factory=list)
    warnings: List[ApplicabilityWarning] = Field(default_factory=list)

    model_config = {"extra": "forbid"}

    @property
    def messages(self) -> List[str]:
        """Errors followed by warning messages, for display."""
        return list(self.errors) + [w.message for w in self.warnings]

    def has_warning(self, code: WarningCode) -> bool:
        """Return True if a warning with the given code was raised."""
        return any(w.code == code for w in self.warnings)


class FactorSuggestion(BaseModel):
    """A catalog factor ranked for an activity."""

    factor: EmissionFactor
    score: int = Field(..., ge=0, le=100)
    reason: str = ""

    model_config = {"extra": "forbid", "frozen": True}


class ConversionStep(BaseModel):
    """Unit conversion applied before multiplying by a factor."""

    original_amount: float
    original_unit: str
    converted_amount: float
    converted_unit: str
    conversion_factor: float

    model_config = {"extra": "forbid", "frozen": True}


class AppliedFactor(BaseModel):
    """A factor selected for one activity record.

    Exactly one of ``factor`` (catalog) or ``custom_factor`` is set.
    """

    id: str = Field(..., min_length=1)
    activity_id: str = Field(..., min_length=1)
    factor: Optional[EmissionFactor] = None
    custom_factor: Optional[CustomFactor] = None
    activity_amount: float = Field(..., ge=0)
    activity_unit: str
    calculated_emissions: float = Field(..., ge=0, description="tCO2e")
    conversion: Optional[ConversionStep] = None
    validation: FactorValidation = Field(default_factory=FactorValidation)
    applied_at: datetime = Field(default_factory=_utcnow)

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def _exactly_one_factor(self) -> AppliedFactor:
        if (self.factor is None) == (self.custom_factor is None):
            raise ValueError(
                "exactly one of factor or custom_factor must be provided"
            )
        return self

    @property
    def is_custom(self) -> bool:
        return self.custom_factor is not None

    @property
    def source_factor(self) -> FactorLike:
        """The catalog or custom factor this assignment applies."""
        return self.custom_factor if self.custom_factor is not None else self.factor

    @property
    def factor_value(self) -> float:
        return self.source_factor.value

    @property
    def factor_unit(self) -> str:
        return self.source_factor.unit

    @property
    def factor_label(self) -> str:
        """Factor id for catalog factors, name for custom factors."""
        if self.factor is not None:
            return self.factor.id
        return self.custom_factor.name


# =============================================================================
# Result models
# =============================================================================


class FacilityEmissions(BaseModel):
    """Ownership-prorated scope 1 and 2 emissions for one facility."""

    facility: str
    scope1: float = 0.0
    scope2: float = 0.0
    total: float = 0.0

    model_config = {"extra": "forbid"}


class CategoryEmissions(BaseModel):
    """Emissions for one reporting category and its share of the total."""

    category: str
    amount: float = 0.0
    percentage: float = 0.0

    model_config = {"extra": "forbid"}


class CalculationFailure(BaseModel):
    """A record excluded from totals because its calculation failed."""

    activity_id: str
    scope: Scope
    source: str = ""
    error_code: str
    message: str
    context: Dict[str, Any] = Field(default_factory=dict)

    model_config = {"extra": "forbid"}


class CalculationResult(BaseModel):
    """Aggregate emissions inventory. Derived, never hand-edited.

    ``total_emissions`` is a lower bound while ``is_complete`` is False.
    """

    scope1_total: float = 0.0
    scope2_total: float = 0.0
    scope3_total: float = 0.0
    total_emissions: float = 0.0
    by_facility: List[FacilityEmissions] = Field(default_factory=list)
    by_category: List[CategoryEmissions] = Field(default_factory=list)
    by_scope3_category: List[CategoryEmissions] = Field(default_factory=list)
    failures: List[CalculationFailure] = Field(default_factory=list)
    records_total: int = 0
    records_calculated: int = 0
    missing_factor_ids: List[str] = Field(default_factory=list)
    input_fingerprint: Optional[str] = None
    provenance_hash: Optional[str] = None
    calculated_at: Optional[datetime] = None

    model_config = {"extra": "forbid"}

    @classmethod
    def empty(cls) -> CalculationResult:
        """Return the cleared result: all totals zero and no timestamp."""
        return cls(
            by_category=[
                CategoryEmissions(category=label) for label in CATEGORY_LABELS.values()
            ],
        )

    @property
    def is_calculated(self) -> bool:
        return self.calculated_at is not None

    @property
    def is_complete(self) -> bool:
        """True when every record was calculated with an applied factor."""
        return not self.failures and not self.missing_factor_ids

    @property
    def excluded_count(self) -> int:
        return len(self.failures)

    def scope_total(self, scope: Union[Scope, str]) -> float:
        """Return the total for a single scope."""
        return {
            Scope.SCOPE_1: self.scope1_total,
            Scope.SCOPE_2: self.scope2_total,
            Scope.SCOPE_3: self.scope3_total,
        }[Scope(scope)]

    def exclusion_summary(self) -> Optional[str]:
        """Describe excluded records, e.g. "3 of 12 records excluded due to unit mismatch"."""
        if not self.failures:
            return None
        codes = {failure.error_code for failure in self.failures}
        if codes == {"GHGI_UNIT_MISMATCH_ERROR"}:
            reason = "unit mismatch"
        elif codes == {"GHGI_UNKNOWN_UNIT_ERROR"}:
            reason = "unknown units"
        else:
            reason = "calculation errors"
        return (
            f"{len(self.failures)} of {self.records_total} records "
            f"excluded due to {reason}"
        )


class ReductionMeasure(BaseModel):
    """An emission reduction measure reported against the gross inventory."""

    id: str = Field(..., min_length=1)
    measure: str = ""
    description: str = ""
    reduction_amount: float = Field(default=0.0, ge=0, description="tCO2e")
    implementation: str = ""

    model_config = {"extra": "forbid", "frozen": True}


class NetEmissionsSummary(BaseModel):
    """Gross inventory, reductions and the resulting net emissions."""

    gross_emissions: float = 0.0
    total_reductions: float = 0.0
    net_emissions: float = 0.0
    is_calculated: bool = False

    model_config = {"extra": "forbid"}


__all__ = [
    "SCORE_EXACT",
    "SCORE_CONVERTIBLE",
    "SCORE_SOURCE_ONLY",
    "UNCATEGORIZED",
    "CATEGORY_LABELS",
    "Scope",
    "CalculationState",
    "WarningCode",
    "ApplicabilityRule",
    "EmissionFactor",
    "CustomFactor",
    "FactorLike",
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
]
