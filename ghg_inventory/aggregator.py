# -*- coding: utf-8 -*-
"""
Emissions Aggregation Pass

Totals a snapshot of activity records by scope, facility and category.

Per-record unit errors never abort the pass: the record contributes zero
and a ``CalculationFailure`` is attached to the result. Records without an
applied factor also contribute zero and are listed in
``missing_factor_ids``, so ``total_emissions`` is a lower bound until the
result ``is_complete``.
"""

import logging
import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from ghg_inventory import metrics
from ghg_inventory.calculator import EmissionsCalculator
from ghg_inventory.config import EmissionsEngineConfig, get_config
from ghg_inventory.exceptions import UnitConversionError
from ghg_inventory.models import (
    CATEGORY_LABELS,
    UNCATEGORIZED,
    ActivityRecord,
    AppliedFactor,
    CalculationFailure,
    CalculationResult,
    CategoryEmissions,
    Facility,
    FacilityEmissions,
    Scope,
)
from ghg_inventory.provenance import ProvenanceTracker, get_provenance_tracker
from ghg_inventory.staleness import fingerprint_inputs

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def _percentage(amount: Decimal, total: Decimal) -> float:
    if total <= 0:
        return 0.0
    return float(amount / total * _HUNDRED)


class EmissionsAggregator:
    """
    Deterministic aggregation of activity records into a CalculationResult.

    Identical inputs give identical results apart from ``calculated_at``
    and ``provenance_hash``.
    """

    def __init__(
        self,
        calculator: Optional[EmissionsCalculator] = None,
        config: Optional[EmissionsEngineConfig] = None,
        provenance: Optional[ProvenanceTracker] = None,
    ):
        self.config = config or get_config()
        self.calculator = calculator or EmissionsCalculator()
        self._provenance = provenance

    @property
    def provenance(self) -> ProvenanceTracker:
        return self._provenance if self._provenance is not None else get_provenance_tracker()

    def aggregate(
        self,
        records: Iterable[ActivityRecord],
        applied_factors: Iterable[AppliedFactor] = (),
        facilities: Iterable[Facility] = (),
        calculated_at: Optional[datetime] = None,
    ) -> CalculationResult:
        """
        Aggregate emissions for a snapshot of inputs.

        Each record with an applied factor is recalculated from its current
        amount and unit. A record whose id repeats an earlier one is
        skipped and logged.

        Args:
            records: Activity records of all scopes
            applied_factors: Current factor assignments
            facilities: Facilities for ownership-prorated allocation
            calculated_at: Timestamp to stamp (defaults to now)

        Returns:
            CalculationResult for the snapshot
        """
        start = time.perf_counter()
        snapshot = list(records)
        records = self._unique_records(snapshot)
        applied_factors = list(applied_factors)
        facilities = list(facilities)

        by_activity: Dict[str, AppliedFactor] = {
            af.activity_id: af for af in applied_factors
        }
        record_ids = {record.id for record in records}
        orphans = [af.id for af in applied_factors if af.activity_id not in record_ids]
        if orphans:
            logger.warning(
                "Ignoring %d applied factor(s) without a matching record: %s",
                len(orphans), ", ".join(orphans),
            )

        # Per-record emissions
        emissions_by_record: Dict[str, Decimal] = {}
        scope_totals: Dict[Scope, Decimal] = {scope: _ZERO for scope in Scope}
        failures: List[CalculationFailure] = []
        missing: List[str] = []

        for record in records:
            applied = by_activity.get(record.id)
            if applied is None:
                missing.append(record.id)
                continue

            try:
                trace = self.calculator.calculate_detailed(record, applied.source_factor)
            except UnitConversionError as e:
                logger.warning(
                    "Excluding record %s from totals: %s", record.id, e.message,
                )
                failures.append(CalculationFailure(
                    activity_id=record.id,
                    scope=record.scope,
                    source=record.source,
                    error_code=e.error_code,
                    message=e.message,
                    context=e.context,
                ))
                continue

            emissions_by_record[record.id] = trace.emissions_tco2e
            scope_totals[record.scope] += trace.emissions_tco2e

        total = sum(scope_totals.values(), _ZERO)

        # Grand total is the float sum of the reported scope totals
        scope1 = float(scope_totals[Scope.SCOPE_1])
        scope2 = float(scope_totals[Scope.SCOPE_2])
        scope3 = float(scope_totals[Scope.SCOPE_3])

        result = CalculationResult(
            scope1_total=scope1,
            scope2_total=scope2,
            scope3_total=scope3,
            total_emissions=scope1 + scope2 + scope3,
            by_facility=self._allocate_facilities(records, emissions_by_record, facilities),
            by_category=[
                CategoryEmissions(
                    category=label,
                    amount=float(scope_totals[scope]),
                    percentage=_percentage(scope_totals[scope], total),
                )
                for scope, label in CATEGORY_LABELS.items()
            ],
            by_scope3_category=self._scope3_categories(
                records, emissions_by_record, scope_totals[Scope.SCOPE_3],
            ),
            failures=failures,
            records_total=len(records),
            records_calculated=len(emissions_by_record),
            missing_factor_ids=missing,
            input_fingerprint=fingerprint_inputs(snapshot, applied_factors, facilities),
            calculated_at=calculated_at or _utcnow(),
        )

        if self.config.enable_provenance:
            provenance_hash = ProvenanceTracker.compute_hash(
                result.model_dump(mode="json", exclude={"provenance_hash"})
            )
            self.provenance.record_operation(
                "inventory", result.input_fingerprint, "aggregate", provenance_hash,
                metadata={"records": len(records), "failures": len(failures)},
            )
            result = result.model_copy(update={"provenance_hash": provenance_hash})

        self._record_metrics(result)
        metrics.observe_duration("aggregate", time.perf_counter() - start)

        if result.failures:
            logger.warning("Aggregation incomplete: %s", result.exclusion_summary())
        logger.info(
            "Aggregated %d record(s): scope1=%.4f scope2=%.4f scope3=%.4f total=%.4f tCO2e",
            len(records), result.scope1_total, result.scope2_total,
            result.scope3_total, result.total_emissions,
        )
        return result

    # ------------------------------------------------------------------
    # Breakdown helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _unique_records(records: List[ActivityRecord]) -> List[ActivityRecord]:
        """Drop records whose id was already seen; the first one is kept."""
        seen = set()
        unique = []
        duplicates = []
        for record in records:
            if record.id in seen:
                duplicates.append(record.id)
                continue
            seen.add(record.id)
            unique.append(record)
        if duplicates:
            logger.warning(
                "Skipping %d record(s) with a duplicate id: %s",
                len(duplicates), ", ".join(duplicates),
            )
        return unique

    @staticmethod
    def _allocate_facilities(
        records: List[ActivityRecord],
        emissions_by_record: Dict[str, Decimal],
        facilities: List[Facility],
    ) -> List[FacilityEmissions]:
        """Scope 1 and 2 emissions per facility, prorated by ownership.

        Every facility gets a row, with explicit zeros when nothing matches.
        """
        rows = []
        for facility in facilities:
            name = facility.name.strip()
            sums = {Scope.SCOPE_1: _ZERO, Scope.SCOPE_2: _ZERO}
            for record in records:
                if record.scope not in sums or record.id not in emissions_by_record:
                    continue
                if record.facility is None or record.facility.strip() != name:
                    continue
                sums[record.scope] += emissions_by_record[record.id]

            share = Decimal(str(facility.ownership_percentage)) / _HUNDRED
            scope1 = sums[Scope.SCOPE_1] * share
            scope2 = sums[Scope.SCOPE_2] * share
            rows.append(FacilityEmissions(
                facility=facility.name,
                scope1=float(scope1),
                scope2=float(scope2),
                total=float(scope1 + scope2),
            ))
        return rows

    @staticmethod
    def _scope3_categories(
        records: List[ActivityRecord],
        emissions_by_record: Dict[str, Decimal],
        scope3_total: Decimal,
    ) -> List[CategoryEmissions]:
        """Scope 3 emissions grouped by record category, first-seen order."""
        amounts: Dict[str, Decimal] = {}
        for record in records:
            if record.scope != Scope.SCOPE_3 or record.id not in emissions_by_record:
                continue
            category = (record.category or "").strip() or UNCATEGORIZED
            amounts[category] = amounts.get(category, _ZERO) + emissions_by_record[record.id]

        return [
            CategoryEmissions(
                category=category,
                amount=float(amount),
                percentage=_percentage(amount, scope3_total),
            )
            for category, amount in amounts.items()
        ]

    @staticmethod
    def _record_metrics(result: CalculationResult) -> None:
        for scope in Scope:
            metrics.set_total_emissions(scope.value, result.scope_total(scope))
        metrics.set_total_emissions("total", result.total_emissions)

        counts: Dict[str, int] = {}
        for failure in result.failures:
            counts[failure.error_code] = counts.get(failure.error_code, 0) + 1
        for error_code, count in counts.items():
            metrics.record_failure(error_code, count)


__all__ = [
    "EmissionsAggregator",
]
