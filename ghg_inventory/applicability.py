# -*- coding: utf-8 -*-
"""
Factor Applicability and Suggestion Engine

Decides which catalog factors apply to an activity and ranks them:

- 100: source and unit both declared by one ``applies_to`` rule
- 70:  source matches and the activity unit converts to the factor basis
- 40:  source matches but the unit is not convertible
- omitted otherwise

All functions are pure queries. Problems with a selection are returned as
``FactorValidation`` data and never raised.
"""

import logging
import time
from typing import Iterable, List, Optional, Union

from ghg_inventory import metrics
from ghg_inventory.catalog import FactorCatalog, get_catalog
from ghg_inventory.exceptions import UnknownUnitError
from ghg_inventory.models import (
    SCORE_CONVERTIBLE,
    SCORE_EXACT,
    SCORE_SOURCE_ONLY,
    ActivityRecord,
    ApplicabilityWarning,
    EmissionFactor,
    FactorLike,
    FactorSuggestion,
    FactorValidation,
    Scope,
    WarningCode,
)
from ghg_inventory.normalization import canonical_unit, sources_equivalent
from ghg_inventory.unit_converter import UnitConverter

logger = logging.getLogger(__name__)

_BEST_MATCH_LABELS = {
    SCORE_EXACT: "exact",
    SCORE_CONVERTIBLE: "convertible",
    SCORE_SOURCE_ONLY: "source_only",
}


class FactorApplicabilityEngine:
    """
    Applicability checks and scored suggestions over a factor catalog.

    Example:
        >>> engine = FactorApplicabilityEngine()
        >>> top = engine.get_suggested_factors("electricity", "kWh", "scope2")[0]
        >>> top.factor.id, top.score
        ('dewa-grid-2024', 100)
    """

    def __init__(
        self,
        catalog: Optional[FactorCatalog] = None,
        converter: Optional[UnitConverter] = None,
    ):
        """
        Args:
            catalog: Catalog to search (defaults to the process-wide catalog)
            converter: Converter used for unit compatibility checks
        """
        self._catalog = catalog
        self.converter = converter or UnitConverter()

    @property
    def catalog(self) -> FactorCatalog:
        return self._catalog if self._catalog is not None else get_catalog()

    # ------------------------------------------------------------------
    # Matching primitives
    # ------------------------------------------------------------------

    def factor_applies_to_activity(
        self, factor: EmissionFactor, source: str, unit: str,
    ) -> bool:
        """True iff one rule declares both the activity source and unit."""
        activity_unit = canonical_unit(unit)
        if not activity_unit:
            return False
        for rule in factor.applies_to:
            if not sources_equivalent(rule.source, source):
                continue
            if activity_unit in {canonical_unit(u) for u in rule.units}:
                return True
        return False

    def source_matches(self, factor: EmissionFactor, source: str) -> bool:
        """True iff any rule of the factor names the activity source."""
        return any(sources_equivalent(rule.source, source) for rule in factor.applies_to)

    def _denominator(self, factor: FactorLike) -> Optional[str]:
        try:
            return self.converter.parse_factor_unit(factor.unit).activity_unit
        except UnknownUnitError:
            return None

    def _declared_units(self, factor: FactorLike) -> List[str]:
        rules = getattr(factor, "applies_to", [])
        return [canonical_unit(u) for rule in rules for u in rule.units]

    def unit_convertible(self, factor: FactorLike, unit: str) -> bool:
        """True iff the activity unit shares a family with the factor basis
        or with one of its declared units."""
        if not self.converter.is_known(unit):
            return False
        denominator = self._denominator(factor)
        if denominator is not None and self.converter.is_convertible(unit, denominator):
            return True
        return any(
            self.converter.is_convertible(unit, declared)
            for declared in self._declared_units(factor)
        )

    # ------------------------------------------------------------------
    # Suggestions
    # ------------------------------------------------------------------

    def score_factor(
        self, factor: EmissionFactor, source: str, unit: str,
    ) -> Optional[FactorSuggestion]:
        """Score one factor for an activity, or None when the source differs."""
        if not self.source_matches(factor, source):
            return None

        if self.factor_applies_to_activity(factor, source, unit):
            return FactorSuggestion(
                factor=factor,
                score=SCORE_EXACT,
                reason="Exact match for activity source and unit",
            )

        if self.unit_convertible(factor, unit):
            return FactorSuggestion(
                factor=factor,
                score=SCORE_CONVERTIBLE,
                reason=(
                    f"Matches activity source; {unit} will be converted "
                    f"to {self._denominator(factor)}"
                ),
            )

        return FactorSuggestion(
            factor=factor,
            score=SCORE_SOURCE_ONLY,
            reason=f"Matches activity source but unit {unit!r} is not convertible",
        )

    def get_suggested_factors(
        self, source: str, unit: str, scope: Union[Scope, str],
    ) -> List[FactorSuggestion]:
        """
        Rank the factors of a scope for an activity.

        Returns:
            Suggestions by descending score; ties keep catalog order.
            Unknown scopes and unmatched sources give an empty list.
        """
        start = time.perf_counter()
        suggestions = []
        for factor in self.catalog.get_factors_by_scope(scope):
            suggestion = self.score_factor(factor, source, unit)
            if suggestion is not None:
                suggestions.append(suggestion)

        # sorted() is stable, so equal scores stay in catalog order
        suggestions = sorted(suggestions, key=lambda s: -s.score)

        try:
            scope_label = Scope(scope).value
        except ValueError:
            scope_label = None
        if scope_label is not None:
            best = _BEST_MATCH_LABELS[suggestions[0].score] if suggestions else "none"
            metrics.record_suggestion(scope_label, best)
        metrics.observe_duration("suggest", time.perf_counter() - start)

        logger.debug(
            "Suggested %d factor(s) for source=%r unit=%r scope=%s",
            len(suggestions), source, unit, scope,
        )
        return suggestions

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_factor_selection(
        self, factor: FactorLike, source: str, unit: str,
    ) -> FactorValidation:
        """
        Check a selected factor against an activity.

        Only a source that the factor does not apply to makes the selection
        invalid. Unit and certification findings are warnings. Custom
        factors skip the source check.
        """
        errors: List[str] = []
        warnings: List[ApplicabilityWarning] = []

        if isinstance(factor, EmissionFactor) and not self.source_matches(factor, source):
            errors.append(
                f'Factor "{factor.name}" does not apply to activity source "{source}"'
            )

        warning = self._unit_warning(factor, unit)
        if warning is not None:
            warnings.append(warning)

        if not factor.certified:
            warnings.append(ApplicabilityWarning(
                code=WarningCode.UNCERTIFIED_FACTOR,
                message=(
                    "This factor is not certified and may not be suitable "
                    "for official reporting"
                ),
            ))

        return FactorValidation(is_valid=not errors, errors=errors, warnings=warnings)

    def _unit_warning(self, factor: FactorLike, unit: str) -> Optional[ApplicabilityWarning]:
        denominator = self._denominator(factor)
        if denominator is None:
            return ApplicabilityWarning(
                code=WarningCode.UNIT_INCOMPATIBLE,
                message=f'Factor unit "{factor.unit}" cannot be parsed',
            )

        activity_unit = canonical_unit(unit)
        if activity_unit == denominator or activity_unit in self._declared_units(factor):
            return None

        if self.converter.is_convertible(unit, denominator):
            return ApplicabilityWarning(
                code=WarningCode.UNIT_CONVERSION,
                message=(
                    f'Activity unit "{unit}" will be converted to '
                    f'"{denominator}" before applying the factor'
                ),
            )

        return ApplicabilityWarning(
            code=WarningCode.UNIT_INCOMPATIBLE,
            message=(
                f'Activity unit "{unit}" cannot be converted to "{denominator}"; '
                f"calculation will fail"
            ),
        )

    # ------------------------------------------------------------------
    # Reverse lookup
    # ------------------------------------------------------------------

    def get_matching_activities(
        self, factor: EmissionFactor, records: Iterable[ActivityRecord],
    ) -> List[ActivityRecord]:
        """Records of any scope the factor applies to, in input order."""
        return [
            record for record in records
            if self.factor_applies_to_activity(factor, record.source, record.unit)
        ]


# ---------------------------------------------------------------------------
# Module-level convenience functions over the process-wide catalog
# ---------------------------------------------------------------------------

_default_engine: Optional[FactorApplicabilityEngine] = None


def _engine() -> FactorApplicabilityEngine:
    global _default_engine
    if _default_engine is None:
        _default_engine = FactorApplicabilityEngine()
    return _default_engine


def factor_applies_to_activity(factor: EmissionFactor, source: str, unit: str) -> bool:
    return _engine().factor_applies_to_activity(factor, source, unit)


def get_suggested_factors(
    source: str, unit: str, scope: Union[Scope, str],
) -> List[FactorSuggestion]:
    return _engine().get_suggested_factors(source, unit, scope)


def validate_factor_selection(factor: FactorLike, source: str, unit: str) -> FactorValidation:
    return _engine().validate_factor_selection(factor, source, unit)


def get_matching_activities(
    factor: EmissionFactor, records: Iterable[ActivityRecord],
) -> List[ActivityRecord]:
    return _engine().get_matching_activities(factor, records)


__all__ = [
    "FactorApplicabilityEngine",
    "factor_applies_to_activity",
    "get_suggested_factors",
    "validate_factor_selection",
    "get_matching_activities",
]
