# -*- coding: utf-8 -*-
"""
Prometheus Metrics - GHG Inventory Engine

8 Prometheus metrics for the emissions accounting engine. Every helper is
a no-op when ``enable_metrics`` is switched off in the engine config.

Metrics:
    1. ghgi_calculations_total (Counter, labels: scope, factor_kind)
    2. ghgi_calculation_failures_total (Counter, labels: error_code)
    3. ghgi_factor_suggestions_total (Counter, labels: scope, best_match)
    4. ghgi_factors_applied_total (Counter, labels: factor_kind, valid)
    5. ghgi_processing_duration_seconds (Histogram, labels: operation)
    6. ghgi_total_emissions_tco2e (Gauge, labels: scope)
    7. ghgi_state_transitions_total (Counter, labels: from_state, to_state)
    8. ghgi_catalog_factors (Gauge)
"""

from __future__ import annotations

import logging

from prometheus_client import Counter, Gauge, Histogram

from ghg_inventory.config import get_config

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Metric definitions
# ---------------------------------------------------------------------------

# 1. Single-record calculations by scope and factor kind (catalog/custom)
ghgi_calculations_total = Counter(
    "ghgi_calculations_total",
    "Total single-record emission calculations performed",
    labelnames=["scope", "factor_kind"],
)

# 2. Records excluded from an aggregation pass by error code
ghgi_calculation_failures_total = Counter(
    "ghgi_calculation_failures_total",
    "Total records excluded from aggregation due to calculation errors",
    labelnames=["error_code"],
)

# 3. Suggestion requests by scope and best match quality
ghgi_factor_suggestions_total = Counter(
    "ghgi_factor_suggestions_total",
    "Total factor suggestion requests served",
    labelnames=["scope", "best_match"],
)

# 4. Factor assignments by kind and validation outcome
ghgi_factors_applied_total = Counter(
    "ghgi_factors_applied_total",
    "Total emission factors applied to activity records",
    labelnames=["factor_kind", "valid"],
)

# 5. Processing duration histogram by operation
ghgi_processing_duration_seconds = Histogram(
    "ghgi_processing_duration_seconds",
    "Emissions engine processing duration in seconds",
    labelnames=["operation"],
    buckets=(
        0.0005, 0.001, 0.005, 0.01, 0.05,
        0.1, 0.5, 1.0, 5.0,
    ),
)

# 6. Latest aggregated emissions per scope
ghgi_total_emissions_tco2e = Gauge(
    "ghgi_total_emissions_tco2e",
    "Emissions of the latest aggregation pass in tCO2e",
    labelnames=["scope"],
)

# 7. Staleness tracker transitions
ghgi_state_transitions_total = Counter(
    "ghgi_state_transitions_total",
    "Total calculation state transitions",
    labelnames=["from_state", "to_state"],
)

# 8. Factors held by the loaded catalog
ghgi_catalog_factors = Gauge(
    "ghgi_catalog_factors",
    "Number of emission factors in the loaded catalog",
)


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------


def _enabled() -> bool:
    return get_config().enable_metrics


def record_calculation(scope: str, factor_kind: str) -> None:
    """Record a single-record calculation.

    Args:
        scope: Record scope (scope1, scope2, scope3).
        factor_kind: ``catalog`` or ``custom``.
    """
    if not _enabled():
        return
    ghgi_calculations_total.labels(scope=scope, factor_kind=factor_kind).inc()


def record_failure(error_code: str, count: int = 1) -> None:
    """Record records excluded from an aggregation pass.

    Args:
        error_code: Error code of the failure (e.g. GHGI_UNIT_MISMATCH_ERROR).
        count: Number of excluded records.
    """
    if not _enabled():
        return
    ghgi_calculation_failures_total.labels(error_code=error_code).inc(count)


def record_suggestion(scope: str, best_match: str) -> None:
    """Record a suggestion request.

    Args:
        scope: Requested scope.
        best_match: Quality of the top suggestion (exact, convertible,
            source_only, none).
    """
    if not _enabled():
        return
    ghgi_factor_suggestions_total.labels(scope=scope, best_match=best_match).inc()


def record_factor_applied(factor_kind: str, valid: bool) -> None:
    """Record a factor assignment and whether it passed validation."""
    if not _enabled():
        return
    ghgi_factors_applied_total.labels(
        factor_kind=factor_kind, valid=str(valid).lower(),
    ).inc()


def observe_duration(operation: str, duration: float) -> None:
    """Record processing duration for an engine operation.

    Args:
        operation: Operation name (calculate, aggregate, suggest,
            validate, apply_factor, revalidate).
        duration: Duration in seconds.
    """
    if not _enabled():
        return
    ghgi_processing_duration_seconds.labels(operation=operation).observe(duration)


def set_total_emissions(scope: str, value: float) -> None:
    """Set the emissions gauge for one scope (or ``total``)."""
    if not _enabled():
        return
    ghgi_total_emissions_tco2e.labels(scope=scope).set(value)


def record_state_transition(from_state: str, to_state: str) -> None:
    """Record a staleness tracker transition."""
    if not _enabled():
        return
    ghgi_state_transitions_total.labels(
        from_state=from_state, to_state=to_state,
    ).inc()


def set_catalog_factors(count: int) -> None:
    """Set the catalog size gauge."""
    if not _enabled():
        return
    ghgi_catalog_factors.set(count)


__all__ = [
    # Metric objects
    "ghgi_calculations_total",
    "ghgi_calculation_failures_total",
    "ghgi_factor_suggestions_total",
    "ghgi_factors_applied_total",
    "ghgi_processing_duration_seconds",
    "ghgi_total_emissions_tco2e",
    "ghgi_state_transitions_total",
    "ghgi_catalog_factors",
    # Helper functions
    "record_calculation",
    "record_failure",
    "record_suggestion",
    "record_factor_applied",
    "observe_duration",
    "set_total_emissions",
    "record_state_transition",
    "set_catalog_factors",
]
