# -*- coding: utf-8 -*-
"""
GHG Inventory Service

Facade wiring the factor catalog, unit converter, applicability engine,
calculator, aggregator and staleness tracker behind one API. The service
holds no activity data: callers pass their snapshot into every call and
keep the returned applied-factor lists.

Example:
    >>> service = EmissionsAccountingService()
    >>> applied, factors = service.apply_factor(record, service.catalog.get_factor("dewa-grid-2024"))
    >>> result = service.calculate_inventory([record], factors, facilities)
    >>> service.current_result().total_emissions
    23.86
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from ghg_inventory.aggregator import EmissionsAggregator
from ghg_inventory.applicability import FactorApplicabilityEngine
from ghg_inventory.calculator import EmissionsCalculator
from ghg_inventory.catalog import FactorCatalog, get_catalog
from ghg_inventory.config import EmissionsEngineConfig, get_config
from ghg_inventory.models import (
    ActivityRecord,
    AppliedFactor,
    CalculationResult,
    CalculationState,
    Facility,
    FactorLike,
    FactorSuggestion,
    FactorValidation,
    NetEmissionsSummary,
    ReductionMeasure,
    Scope,
)
from ghg_inventory.provenance import ProvenanceTracker, get_provenance_tracker
from ghg_inventory.reductions import summarize_net_emissions
from ghg_inventory.staleness import StalenessTracker
from ghg_inventory.unit_converter import UnitConverter

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    """Return current UTC datetime with microseconds zeroed."""
    return datetime.now(timezone.utc).replace(microsecond=0)


# ===================================================================
# EmissionsAccountingService facade
# ===================================================================


class EmissionsAccountingService:
    """Facade service for the emissions accounting engine.

    Attributes:
        config: Engine configuration.
        catalog: Frozen factor catalog.
        converter: Unit converter shared by every engine.
        applicability: FactorApplicabilityEngine instance.
        calculator: EmissionsCalculator instance.
        aggregator: EmissionsAggregator instance.
        tracker: StalenessTracker for the service's inventory snapshot.
    """

    def __init__(
        self,
        config: Optional[EmissionsEngineConfig] = None,
        catalog: Optional[FactorCatalog] = None,
        provenance: Optional[ProvenanceTracker] = None,
    ) -> None:
        """Initialize EmissionsAccountingService.

        Args:
            config: Engine configuration (defaults to ``get_config()``).
            catalog: Factor catalog (defaults to ``get_catalog()``).
            provenance: Provenance tracker (defaults to the singleton).
        """
        self.config = config or get_config()
        self.catalog = catalog or get_catalog()
        self._provenance = provenance or get_provenance_tracker()

        self.converter = UnitConverter(aed_per_usd=self.config.aed_per_usd)
        self.applicability = FactorApplicabilityEngine(
            catalog=self.catalog, converter=self.converter,
        )
        self.calculator = EmissionsCalculator(
            converter=self.converter, applicability=self.applicability,
        )
        self.aggregator = EmissionsAggregator(
            calculator=self.calculator, config=self.config, provenance=self._provenance,
        )
        self.tracker = StalenessTracker(config=self.config, provenance=self._provenance)

        self._lock = threading.Lock()
        self._stats = {
            "total_suggestions": 0,
            "total_validations": 0,
            "total_factors_applied": 0,
            "total_calculations": 0,
            "total_failures": 0,
        }
        logger.info(
            "EmissionsAccountingService created (catalog=%s, %d factors)",
            self.catalog.version or "unversioned", len(self.catalog),
        )

    # ------------------------------------------------------------------
    # Factor selection
    # ------------------------------------------------------------------

    def suggest_factors(
        self, source: str, unit: str, scope: Union[Scope, str],
    ) -> List[FactorSuggestion]:
        """Rank catalog factors of ``scope`` for an activity."""
        self._bump("total_suggestions")
        return self.applicability.get_suggested_factors(source, unit, scope)

    def validate_selection(self, factor: FactorLike, source: str, unit: str) -> FactorValidation:
        """Validate a factor choice for an activity without applying it."""
        self._bump("total_validations")
        return self.applicability.validate_factor_selection(factor, source, unit)

    def apply_factor(
        self,
        record: ActivityRecord,
        factor: FactorLike,
        applied_factors: Sequence[AppliedFactor] = (),
    ) -> Tuple[AppliedFactor, List[AppliedFactor]]:
        """Apply a factor to a record and supersede its earlier assignment.

        Changing assignments makes any stamped result stale.
        """
        applied, updated = self.calculator.apply_factor(record, factor, applied_factors)
        self._bump("total_factors_applied")
        self.tracker.notify_records_changed()
        return applied, updated

    def remove_factors_for(
        self, applied_factors: Iterable[AppliedFactor], activity_ids: Iterable[str],
    ) -> List[AppliedFactor]:
        """Drop the assignments of deleted records."""
        remaining = self.calculator.remove_applied_factors(applied_factors, activity_ids)
        self.tracker.notify_records_changed()
        return remaining

    # ------------------------------------------------------------------
    # Inventory
    # ------------------------------------------------------------------

    def calculate_inventory(
        self,
        records: Iterable[ActivityRecord],
        applied_factors: Iterable[AppliedFactor] = (),
        facilities: Iterable[Facility] = (),
    ) -> CalculationResult:
        """Aggregate the snapshot and stamp the tracker with the result."""
        records = list(records)
        applied_factors = list(applied_factors)
        facilities = list(facilities)

        result = self.aggregator.aggregate(records, applied_factors, facilities)
        self.tracker.mark_calculated(result, records, applied_factors, facilities)

        with self._lock:
            self._stats["total_calculations"] += 1
            self._stats["total_failures"] += result.excluded_count
        return result

    def revalidate(
        self,
        records: Iterable[ActivityRecord],
        applied_factors: Iterable[AppliedFactor] = (),
        facilities: Iterable[Facility] = (),
    ) -> CalculationState:
        """Check the stamped result against the caller's current snapshot."""
        return self.tracker.revalidate(records, applied_factors, facilities)

    def current_result(self) -> CalculationResult:
        """Stamped result while CALCULATED, otherwise the cleared result."""
        return self.tracker.current_result()

    def net_emissions(self, measures: Iterable[ReductionMeasure]) -> NetEmissionsSummary:
        """Net emissions of the current result after reduction measures."""
        return summarize_net_emissions(self.current_result(), measures)

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def get_statistics(self) -> Dict[str, Any]:
        """Return service statistics.

        Returns:
            Dictionary with aggregate counters, catalog size, tracker
            state and provenance chain length.
        """
        with self._lock:
            stats = dict(self._stats)
        return {
            **stats,
            "catalog_version": self.catalog.version,
            "catalog_factors": len(self.catalog),
            "tracker": self.tracker.get_statistics(),
            "provenance_entries": self._provenance.entry_count,
            "timestamp": _utcnow().isoformat(),
        }

    def _bump(self, key: str) -> None:
        with self._lock:
            self._stats[key] += 1


__all__ = ["EmissionsAccountingService"]
