# -*- coding: utf-8 -*-
"""
Staleness Tracker

Explicit state machine for one calculation snapshot:

    UNCALCULATED ──mark_calculated──▶ CALCULATED ──inputs changed──▶ STALE
                                          ▲                            │
                                          └──────mark_calculated───────┘

The tracker never polls. Callers mutate their records, then call
``revalidate`` (fingerprint comparison) or ``notify_records_changed``
(version bump). A STALE tracker hands out the cleared result until the
next ``mark_calculated``.

Example:
    >>> tracker = StalenessTracker()
    >>> tracker.mark_calculated(result, records)
    <CalculationState.CALCULATED: 'calculated'>
    >>> tracker.revalidate(records + [new_record])
    <CalculationState.STALE: 'stale'>
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from typing import Any, Dict, Iterable, Optional

from ghg_inventory import metrics
from ghg_inventory.config import EmissionsEngineConfig, get_config
from ghg_inventory.models import (
    ActivityRecord,
    AppliedFactor,
    CalculationResult,
    CalculationState,
    Facility,
)
from ghg_inventory.provenance import ProvenanceTracker, get_provenance_tracker

logger = logging.getLogger(__name__)


def fingerprint_inputs(
    records: Iterable[ActivityRecord],
    applied_factors: Iterable[AppliedFactor] = (),
    facilities: Iterable[Facility] = (),
) -> str:
    """SHA-256 over the canonical JSON of an input snapshot.

    Records, applied factors and facilities are ordered by id so the
    fingerprint does not depend on collection order. Floats keep their full
    repr precision, so any edit to an amount changes the fingerprint.
    """
    payload = {
        "records": sorted(
            (r.model_dump(mode="json") for r in records), key=lambda d: d["id"],
        ),
        "applied_factors": sorted(
            (
                af.model_dump(mode="json", exclude={"validation"})
                for af in applied_factors
            ),
            key=lambda d: (d["activity_id"], d["id"]),
        ),
        "facilities": sorted(
            (f.model_dump(mode="json") for f in facilities), key=lambda d: d["id"],
        ),
    }
    serialized = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


class StalenessTracker:
    """Tracks whether a stamped CalculationResult still matches its inputs.

    Attributes:
        _state: Current CalculationState.
        _result: Result stamped by the last ``mark_calculated``.
        _fingerprint: Input fingerprint at stamping time.
        _version: Monotonic change counter bumped by
            ``notify_records_changed``.
        _calculated_version: Value of ``_version`` at stamping time.
    """

    def __init__(
        self,
        config: Optional[EmissionsEngineConfig] = None,
        provenance: Optional[ProvenanceTracker] = None,
    ) -> None:
        self._config = config or get_config()
        self._provenance = provenance
        self._state = CalculationState.UNCALCULATED
        self._result: Optional[CalculationResult] = None
        self._fingerprint: Optional[str] = None
        self._version = 0
        self._calculated_version: Optional[int] = None
        self._transition_count = 0
        self._lock = threading.Lock()

    fingerprint_inputs = staticmethod(fingerprint_inputs)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> CalculationState:
        return self._state

    @property
    def is_stale(self) -> bool:
        return self._state == CalculationState.STALE

    @property
    def version(self) -> int:
        return self._version

    @property
    def fingerprint(self) -> Optional[str]:
        return self._fingerprint

    @property
    def provenance(self) -> ProvenanceTracker:
        return self._provenance if self._provenance is not None else get_provenance_tracker()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def mark_calculated(
        self,
        result: CalculationResult,
        records: Iterable[ActivityRecord],
        applied_factors: Iterable[AppliedFactor] = (),
        facilities: Iterable[Facility] = (),
    ) -> CalculationState:
        """Stamp ``result`` as matching the given inputs.

        Raises:
            ValueError: If the result carries no ``calculated_at``.
        """
        if not result.is_calculated:
            raise ValueError("Cannot stamp a result without calculated_at")

        fingerprint = fingerprint_inputs(records, applied_factors, facilities)
        with self._lock:
            self._result = result
            self._fingerprint = fingerprint
            self._calculated_version = self._version
            self._transition(CalculationState.CALCULATED, fingerprint)
        return self._state

    def revalidate(
        self,
        records: Iterable[ActivityRecord],
        applied_factors: Iterable[AppliedFactor] = (),
        facilities: Iterable[Facility] = (),
    ) -> CalculationState:
        """Compare the current inputs with the stamped snapshot.

        Any difference moves a CALCULATED tracker to STALE. STALE stays
        STALE even if the inputs are changed back.
        """
        if self._state != CalculationState.CALCULATED:
            return self._state

        fingerprint = fingerprint_inputs(records, applied_factors, facilities)
        with self._lock:
            if self._state != CalculationState.CALCULATED:
                return self._state
            if self._version != self._calculated_version:
                self._transition(CalculationState.STALE, fingerprint)
            elif fingerprint != self._fingerprint:
                logger.info(
                    "Inputs changed since calculation (%s → %s)",
                    self._fingerprint[:12], fingerprint[:12],
                )
                self._transition(CalculationState.STALE, fingerprint)
        return self._state

    def notify_records_changed(self) -> int:
        """Bump the change counter and mark a calculated result STALE.

        Returns:
            The new version number.
        """
        with self._lock:
            self._version += 1
            if self._state == CalculationState.CALCULATED:
                self._transition(CalculationState.STALE, self._fingerprint or "")
            return self._version

    def current_result(self) -> CalculationResult:
        """Return the stamped result, or the cleared result unless CALCULATED."""
        if self._state == CalculationState.CALCULATED and self._result is not None:
            return self._result
        return CalculationResult.empty()

    def reset(self) -> None:
        """Return to UNCALCULATED and drop the stamped result."""
        with self._lock:
            self._result = None
            self._fingerprint = None
            self._calculated_version = None
            if self._state != CalculationState.UNCALCULATED:
                self._transition(CalculationState.UNCALCULATED, "")

    def get_statistics(self) -> Dict[str, Any]:
        return {
            "state": self._state.value,
            "version": self._version,
            "fingerprint": self._fingerprint,
            "transition_count": self._transition_count,
        }

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _transition(self, new_state: CalculationState, fingerprint: str) -> None:
        """Move to ``new_state``. Caller holds ``_lock``."""
        old_state = self._state
        self._state = new_state
        self._transition_count += 1

        metrics.record_state_transition(old_state.value, new_state.value)
        if self._config.enable_provenance:
            data_hash = ProvenanceTracker.compute_hash({
                "from": old_state.value,
                "to": new_state.value,
                "fingerprint": fingerprint,
                "version": self._version,
            })
            self.provenance.record_operation(
                "tracker", fingerprint or "none", f"mark_{new_state.value}", data_hash,
            )
        logger.info("Calculation state %s → %s", old_state.value, new_state.value)


__all__ = [
    "fingerprint_inputs",
    "StalenessTracker",
]
