# -*- coding: utf-8 -*-
"""
Emission Calculation Engine

Single-record calculation and factor assignment.

- 100% deterministic (same input → same output, Decimal arithmetic)
- Unit conversion keyed on the activity unit, never on string heuristics
- Fail loudly: incompatible units raise ``UnitMismatchError``

Emissions are always returned in tCO2e:

    emissions = converted_amount × factor.value × to_tonnes(numerator)
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
from uuid import uuid4

from ghg_inventory import metrics
from ghg_inventory.applicability import FactorApplicabilityEngine
from ghg_inventory.models import (
    ActivityRecord,
    AppliedFactor,
    ConversionStep,
    CustomFactor,
    FactorLike,
)
from ghg_inventory.normalization import canonical_unit
from ghg_inventory.unit_converter import UnitConverter

logger = logging.getLogger(__name__)


@dataclass
class CalculationTrace:
    """
    Audit trail of one single-record calculation.

    Contains every intermediate value needed to reproduce the result.
    """
    activity_id: str
    factor_label: str
    emissions_tco2e: Decimal
    conversion: Optional[ConversionStep] = None
    calculation_steps: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def emissions(self) -> float:
        return float(self.emissions_tco2e)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            'activity_id': self.activity_id,
            'factor_label': self.factor_label,
            'emissions_tco2e': str(self.emissions_tco2e),
            'conversion': self.conversion.model_dump() if self.conversion else None,
            'calculation_steps': self.calculation_steps,
        }


class EmissionsCalculator:
    """
    Applies catalog or custom factors to activity records.

    Custom factors bypass applicability validation but never unit
    conversion.
    """

    def __init__(
        self,
        converter: Optional[UnitConverter] = None,
        applicability: Optional[FactorApplicabilityEngine] = None,
    ):
        """
        Initialize emissions calculator.

        Args:
            converter: Unit converter (auto-creates if None)
            applicability: Engine used to validate factor selections
        """
        self.converter = converter or UnitConverter()
        self.applicability = applicability or FactorApplicabilityEngine(
            converter=self.converter,
        )

    def calculate(self, record: ActivityRecord, factor: FactorLike) -> float:
        """
        Calculate the emissions of one record in tCO2e.

        Raises:
            UnknownUnitError: Factor unit unparseable or activity unit unknown
            UnitMismatchError: Activity unit not convertible to the factor basis
        """
        return self.calculate_detailed(record, factor).emissions

    def calculate_detailed(self, record: ActivityRecord, factor: FactorLike) -> CalculationTrace:
        """
        Calculate the emissions of one record and keep every step.

        Calculation Steps:
        1. Parse the factor unit into numerator and activity basis
        2. Convert the activity amount into the factor basis (if needed)
        3. Multiply by the factor value and scale the numerator to tonnes

        Raises:
            UnitConversionError: If the units cannot be reconciled
        """
        start = time.perf_counter()
        steps: List[Dict[str, Any]] = []
        label = factor.name if isinstance(factor, CustomFactor) else factor.id

        # Step 1: Parse factor unit
        parsed = self.converter.parse_factor_unit(factor.unit)
        steps.append({
            'step': 1,
            'description': 'Parse factor unit',
            'factor_unit': factor.unit,
            'emissions_unit': parsed.emissions_unit,
            'activity_basis': parsed.activity_unit,
            'to_tonnes': str(parsed.to_tonnes),
        })

        # Step 2: Unit conversion (if needed)
        amount = Decimal(str(record.amount))
        converted_amount = amount
        conversion = None

        if canonical_unit(record.unit) != parsed.activity_unit:
            multiplier = self.converter.conversion_factor(record.unit, parsed.activity_unit)
            converted_amount = amount * multiplier
            conversion = ConversionStep(
                original_amount=float(amount),
                original_unit=record.unit,
                converted_amount=float(converted_amount),
                converted_unit=parsed.activity_unit,
                conversion_factor=float(multiplier),
            )
            steps.append({
                'step': 2,
                'description': 'Convert units',
                'original_amount': str(amount),
                'original_unit': record.unit,
                'converted_amount': str(converted_amount),
                'converted_unit': parsed.activity_unit,
                'conversion_factor': str(multiplier),
            })

        # Step 3: Calculate emissions
        factor_value = Decimal(str(factor.value))
        emissions = converted_amount * factor_value * parsed.to_tonnes
        steps.append({
            'step': 3,
            'description': 'Calculate emissions',
            'formula': 'emissions = converted_amount × emission_factor × to_tonnes',
            'converted_amount': str(converted_amount),
            'emission_factor': str(factor_value),
            'emissions_tco2e': str(emissions),
        })

        metrics.record_calculation(
            record.scope.value, "custom" if isinstance(factor, CustomFactor) else "catalog",
        )
        metrics.observe_duration("calculate", time.perf_counter() - start)
        logger.debug(
            "Calculated %s with %s: %s %s → %s tCO2e",
            record.id, label, record.amount, record.unit, emissions,
        )

        return CalculationTrace(
            activity_id=record.id,
            factor_label=label,
            emissions_tco2e=emissions,
            conversion=conversion,
            calculation_steps=steps,
        )

    def apply_factor(
        self,
        record: ActivityRecord,
        factor: FactorLike,
        applied_factors: Sequence[AppliedFactor] = (),
        applied_at: Optional[datetime] = None,
    ) -> Tuple[AppliedFactor, List[AppliedFactor]]:
        """
        Assign a factor to a record, superseding any earlier assignment.

        Selections that fail applicability are still applied; the findings
        travel on ``AppliedFactor.validation``.

        Args:
            record: Activity record the factor is applied to
            factor: Catalog or custom factor
            applied_factors: Current assignments (left unmodified)
            applied_at: Assignment timestamp (defaults to now)

        Returns:
            Tuple of (new AppliedFactor, new assignment list)

        Raises:
            UnitConversionError: If the record cannot be calculated with
                this factor
        """
        start = time.perf_counter()
        validation = self.applicability.validate_factor_selection(
            factor, record.source, record.unit,
        )
        if not validation.is_valid:
            logger.warning(
                "Forced factor selection for %s: %s", record.id, "; ".join(validation.errors),
            )
        for warning in validation.warnings:
            logger.info("Factor selection warning for %s: %s", record.id, warning.message)

        trace = self.calculate_detailed(record, factor)
        is_custom = isinstance(factor, CustomFactor)

        fields: Dict[str, Any] = {
            "id": f"af-{uuid4().hex[:12]}",
            "activity_id": record.id,
            "activity_amount": record.amount,
            "activity_unit": record.unit,
            "calculated_emissions": trace.emissions,
            "conversion": trace.conversion,
            "validation": validation,
        }
        fields["custom_factor" if is_custom else "factor"] = factor
        if applied_at is not None:
            fields["applied_at"] = applied_at
        applied = AppliedFactor(**fields)

        updated = self.remove_applied_factors(applied_factors, [record.id])
        updated.append(applied)

        metrics.record_factor_applied("custom" if is_custom else "catalog", validation.is_valid)
        metrics.observe_duration("apply_factor", time.perf_counter() - start)
        logger.info(
            "Applied %s to %s → %.6f tCO2e", applied.factor_label, record.id,
            applied.calculated_emissions,
        )
        return applied, updated

    @staticmethod
    def remove_applied_factors(
        applied_factors: Iterable[AppliedFactor], activity_ids: Iterable[str],
    ) -> List[AppliedFactor]:
        """Return the assignments that do not target any of ``activity_ids``."""
        removed = set(activity_ids)
        return [af for af in applied_factors if af.activity_id not in removed]

    @staticmethod
    def prune_applied_factors(
        applied_factors: Iterable[AppliedFactor], records: Iterable[ActivityRecord],
    ) -> List[AppliedFactor]:
        """Return the assignments whose record still exists."""
        existing = {record.id for record in records}
        return [af for af in applied_factors if af.activity_id in existing]


__all__ = [
    "CalculationTrace",
    "EmissionsCalculator",
]
