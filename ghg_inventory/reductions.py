# -*- coding: utf-8 -*-
"""Net emissions after reduction measures."""

import logging
from decimal import Decimal
from typing import Iterable

from ghg_inventory.models import CalculationResult, NetEmissionsSummary, ReductionMeasure

logger = logging.getLogger(__name__)


def summarize_net_emissions(
    result: CalculationResult, measures: Iterable[ReductionMeasure],
) -> NetEmissionsSummary:
    """Subtract reported reductions from the gross inventory.

    Gross emissions count only when ``result`` has been calculated. Net
    emissions are not clamped and go negative when reductions exceed the
    gross total.
    """
    gross = Decimal(str(result.total_emissions)) if result.is_calculated else Decimal("0")
    reductions = sum(
        (Decimal(str(measure.reduction_amount)) for measure in measures), Decimal("0"),
    )
    net = gross - reductions

    if net < 0:
        logger.info(
            "Reductions (%s tCO2e) exceed gross emissions (%s tCO2e)", reductions, gross,
        )

    return NetEmissionsSummary(
        gross_emissions=float(gross),
        total_reductions=float(reductions),
        net_emissions=float(net),
        is_calculated=result.is_calculated,
    )


__all__ = ["summarize_net_emissions"]
