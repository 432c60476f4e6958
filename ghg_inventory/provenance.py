# -*- coding: utf-8 -*-
"""
Provenance Tracking for the GHG Inventory Engine

SHA-256 audit trail for aggregation passes and staleness transitions.
Every entry links to the previous one through a chain hash, so any edit
to a recorded entry breaks verification of the entries after it.

Guarantees:
    - All hashes are deterministic SHA-256
    - Float normalization ensures reproducible hashing
    - Pydantic models are hashed through their JSON dump

Example:
    >>> from ghg_inventory.provenance import ProvenanceTracker
    >>> tracker = ProvenanceTracker()
    >>> chain_hash = tracker.record_operation(
    ...     "inventory", "2024", "aggregate", "abc123"
    ... )
    >>> valid, chain = tracker.verify_chain()
    >>> assert valid is True
"""

from __future__ import annotations

import hashlib
import json
import logging
import math
import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from pydantic import BaseModel

from ghg_inventory.config import get_config

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    """Return current UTC datetime with microseconds zeroed."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def _normalize_value(value: Any) -> Any:
    """Normalize a value for deterministic serialization.

    Handles float precision, NaN/Inf edge cases, pydantic models and
    recursive normalization of nested structures.

    Args:
        value: Any Python value to normalize.

    Returns:
        Normalized value safe for deterministic JSON serialization.
    """
    if isinstance(value, BaseModel):
        return _normalize_value(value.model_dump(mode="json"))
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        value = float(value)
    if isinstance(value, float):
        if math.isnan(value):
            return "__NaN__"
        if math.isinf(value):
            return "__Inf__" if value > 0 else "__-Inf__"
        return round(value, 10)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _normalize_value(v) for k, v in sorted(value.items())}
    if isinstance(value, (list, tuple)):
        return [_normalize_value(v) for v in value]
    return value


@dataclass
class ProvenanceEntry:
    """A single provenance record in the chain.

    Attributes:
        entry_id: Unique identifier for this provenance entry.
        operation: Name of the operation performed.
        input_hash: SHA-256 hash of the operation input.
        output_hash: SHA-256 hash of the operation output.
        timestamp: ISO-formatted UTC timestamp of the operation.
        parent_hash: Chain hash of the previous entry in the chain.
        chain_hash: SHA-256 chain hash linking this entry to the chain.
        metadata: Optional additional metadata for audit context.
    """

    entry_id: str
    operation: str
    input_hash: str
    output_hash: str
    timestamp: str
    parent_hash: str
    chain_hash: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ProvenanceTracker:
    """Tracks engine operations with SHA-256 chain hashing.

    Entries are kept in one global chain and additionally grouped by
    ``entity_type:entity_id`` for scoped lookups. The chain grows by one
    entry per aggregation and per tracker transition until ``reset()``;
    long-running callers read a bounded tail with ``get_chain(limit=...)``.

    Example:
        >>> tracker = ProvenanceTracker()
        >>> entry = tracker.add_entry("aggregate", "in-hash", "out-hash")
        >>> entry.parent_hash == tracker.genesis_hash
        True
    """

    def __init__(self, genesis: Optional[str] = None) -> None:
        """Initialize the tracker.

        Args:
            genesis: Seed for the chain. Defaults to the configured
                ``genesis_hash``.
        """
        seed = genesis if genesis is not None else get_config().genesis_hash
        self.genesis_hash = hashlib.sha256(seed.encode("utf-8")).hexdigest()
        self._chain_store: Dict[str, List[Dict[str, Any]]] = {}
        self._global_chain: List[Dict[str, Any]] = []
        self._last_chain_hash: str = self.genesis_hash
        self._lock = threading.Lock()
        logger.debug("ProvenanceTracker initialized")

    # ------------------------------------------------------------------
    # Hashing helpers
    # ------------------------------------------------------------------

    @staticmethod
    def compute_hash(data: Any) -> str:
        """Compute a deterministic SHA-256 hash with float normalization.

        Normalizes floats to 10 decimal places, sorts dictionary keys,
        and handles NaN/Inf edge cases for reproducible hashing.

        Args:
            data: Data to hash (model, dict, list, str, number, or other).

        Returns:
            Hex-encoded SHA-256 hash string.
        """
        normalized = _normalize_value(data)
        serialized = json.dumps(normalized, sort_keys=True, default=str)
        return hashlib.sha256(serialized.encode("utf-8")).hexdigest()

    @staticmethod
    def _compute_chain_hash(
        previous_hash: str,
        input_hash: str,
        output_hash: str,
        operation: str,
        timestamp: str,
    ) -> str:
        combined = json.dumps(
            {
                "previous": previous_hash,
                "input": input_hash,
                "output": output_hash,
                "operation": operation,
                "timestamp": timestamp,
            },
            sort_keys=True,
        )
        return hashlib.sha256(combined.encode("utf-8")).hexdigest()

    # ------------------------------------------------------------------
    # Chain entry methods
    # ------------------------------------------------------------------

    def add_entry(
        self,
        operation: str,
        input_hash: str,
        output_hash: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ProvenanceEntry:
        """Add a provenance entry to the chain.

        Args:
            operation: Name of the operation (aggregate, mark_calculated,
                mark_stale, reset).
            input_hash: SHA-256 hash of the operation input.
            output_hash: SHA-256 hash of the operation output.
            metadata: Optional additional metadata to include.

        Returns:
            The created ProvenanceEntry with computed chain hash.
        """
        timestamp = _utcnow().isoformat()

        with self._lock:
            parent_hash = self._last_chain_hash
            chain_hash = self._compute_chain_hash(
                parent_hash, input_hash, output_hash, operation, timestamp,
            )
            entry = ProvenanceEntry(
                entry_id=str(uuid4()),
                operation=operation,
                input_hash=input_hash,
                output_hash=output_hash,
                timestamp=timestamp,
                parent_hash=parent_hash,
                chain_hash=chain_hash,
                metadata=metadata or {},
            )
            self._global_chain.append(entry.to_dict())
            self._last_chain_hash = chain_hash

        logger.debug(
            "Chain entry added: op=%s in=%s out=%s chain=%s",
            operation,
            input_hash[:16],
            output_hash[:16],
            chain_hash[:16],
        )
        return entry

    def record_operation(
        self,
        entity_type: str,
        entity_id: str,
        action: str,
        data_hash: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Record a provenance entry for an entity operation.

        Args:
            entity_type: Type of entity (inventory, tracker).
            entity_id: Entity identifier (e.g. an input fingerprint).
            action: Action performed (aggregate, mark_calculated,
                mark_stale, reset).
            data_hash: SHA-256 hash of the operation data.
            metadata: Optional additional metadata to include.

        Returns:
            Chain hash of the new entry.
        """
        entry = self.add_entry(action, data_hash, data_hash, metadata)
        store_key = f"{entity_type}:{entity_id}"
        with self._lock:
            self._chain_store.setdefault(store_key, []).append(entry.to_dict())

        logger.debug(
            "Recorded provenance: %s/%s action=%s hash=%s",
            entity_type,
            entity_id[:8],
            action,
            entry.chain_hash[:16],
        )
        return entry.chain_hash

    # ------------------------------------------------------------------
    # Chain verification and retrieval
    # ------------------------------------------------------------------

    def verify_chain(self) -> Tuple[bool, List[Dict[str, Any]]]:
        """Recompute every chain hash of the global chain.

        Returns:
            Tuple of (is_valid, chain_entries).
        """
        with self._lock:
            chain = [dict(entry) for entry in self._global_chain]

        previous = self.genesis_hash
        for index, entry in enumerate(chain):
            expected = self._compute_chain_hash(
                previous,
                entry["input_hash"],
                entry["output_hash"],
                entry["operation"],
                entry["timestamp"],
            )
            if entry["parent_hash"] != previous or entry["chain_hash"] != expected:
                logger.warning(
                    "Chain verification failed at entry %d (op=%s)",
                    index, entry["operation"],
                )
                return False, chain
            previous = entry["chain_hash"]
        return True, chain

    def get_chain(
        self,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Return the entity-scoped chain, or the global chain, oldest first.

        Args:
            entity_type: Entity type for a scoped lookup.
            entity_id: Entity identifier for a scoped lookup.
            limit: Maximum number of most recent entries to return.
        """
        with self._lock:
            if entity_type and entity_id:
                chain = self._chain_store.get(f"{entity_type}:{entity_id}", [])
            else:
                chain = self._global_chain
            if limit is not None:
                chain = chain[-limit:] if limit > 0 else []
            return list(chain)

    def get_latest_hash(self) -> str:
        with self._lock:
            return self._last_chain_hash

    def reset(self) -> None:
        """Clear all entries and return to the genesis hash."""
        with self._lock:
            self._chain_store.clear()
            self._global_chain.clear()
            self._last_chain_hash = self.genesis_hash
        logger.info("ProvenanceTracker reset to genesis")

    def export_json(self) -> str:
        """Export all provenance records as a JSON string."""
        with self._lock:
            data = list(self._global_chain)
        return json.dumps(data, indent=2, default=str)

    @property
    def entry_count(self) -> int:
        with self._lock:
            return len(self._global_chain)


# ---------------------------------------------------------------------------
# Thread-safe singleton
# ---------------------------------------------------------------------------

_tracker_instance: Optional[ProvenanceTracker] = None
_tracker_lock = threading.Lock()


def get_provenance_tracker() -> ProvenanceTracker:
    """Return the singleton ProvenanceTracker instance."""
    global _tracker_instance
    if _tracker_instance is None:
        with _tracker_lock:
            if _tracker_instance is None:
                _tracker_instance = ProvenanceTracker()
                logger.info("Singleton ProvenanceTracker created")
    return _tracker_instance


def reset_provenance_tracker() -> None:
    """Drop the singleton (primarily for test teardown)."""
    global _tracker_instance
    with _tracker_lock:
        _tracker_instance = None


__all__ = [
    "ProvenanceEntry",
    "ProvenanceTracker",
    "get_provenance_tracker",
    "reset_provenance_tracker",
]
