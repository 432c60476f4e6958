# -*- coding: utf-8 -*-
"""Tests for net emissions after reductions."""

import pytest

from ghg_inventory.models import CalculationResult, ReductionMeasure
from ghg_inventory.reductions import summarize_net_emissions


def _measure(measure_id, amount):
    return ReductionMeasure(id=measure_id, measure="Solar PV", reduction_amount=amount)


class TestSummarizeNetEmissions:

    def test_net_of_reductions(self, fixed_time):
        result = CalculationResult(total_emissions=100, calculated_at=fixed_time)

        summary = summarize_net_emissions(result, [_measure("m1", 12.5), _measure("m2", 7.5)])

        assert summary.gross_emissions == 100
        assert summary.total_reductions == pytest.approx(20)
        assert summary.net_emissions == pytest.approx(80)
        assert summary.is_calculated

    def test_uncalculated_result_counts_as_zero(self):
        summary = summarize_net_emissions(CalculationResult.empty(), [_measure("m1", 5)])

        assert summary.gross_emissions == 0
        assert summary.net_emissions == pytest.approx(-5)
        assert not summary.is_calculated

    def test_net_may_go_negative(self, fixed_time):
        result = CalculationResult(total_emissions=3, calculated_at=fixed_time)
        summary = summarize_net_emissions(result, [_measure("m1", 10)])
        assert summary.net_emissions == pytest.approx(-7)

    def test_no_measures(self, fixed_time):
        result = CalculationResult(total_emissions=42, calculated_at=fixed_time)
        summary = summarize_net_emissions(result, [])
        assert summary.net_emissions == 42
        assert summary.total_reductions == 0

    def test_negative_reduction_rejected(self):
        with pytest.raises(ValueError):
            _measure("m1", -1)
