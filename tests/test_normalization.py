# -*- coding: utf-8 -*-
"""Tests for unit and source canonicalization."""

import pytest

from ghg_inventory.normalization import (
    canonical_source,
    canonical_unit,
    normalize_token,
    sources_equivalent,
    units_equivalent,
)


class TestNormalizeToken:
    """Tests for the shared token normalizer."""

    def test_lowercases_and_hyphenates(self):
        assert normalize_token("  Natural   Gas ") == "natural-gas"

    def test_underscores_become_hyphens(self):
        assert normalize_token("grid_electricity") == "grid-electricity"

    def test_superscripts_and_subscripts(self):
        assert normalize_token("m³") == "m3"
        assert normalize_token("kgCO₂e") == "kgco2e"

    @pytest.mark.parametrize("value", [None, ""])
    def test_empty_input(self, value):
        assert normalize_token(value) == ""


class TestCanonicalUnit:
    """Tests for unit alias resolution."""

    @pytest.mark.parametrize("spelling", ["m³", "m3", "M3", "cubic-meters", "Cubic Meters"])
    def test_cubic_meters(self, spelling):
        assert canonical_unit(spelling) == "m3"

    @pytest.mark.parametrize("spelling", ["liters", "litres", "L", "liter"])
    def test_liters(self, spelling):
        assert canonical_unit(spelling) == "liters"

    @pytest.mark.parametrize("spelling", ["tonnes", "tons", "t", "metric tonnes", "tonne"])
    def test_tonnes(self, spelling):
        assert canonical_unit(spelling) == "tonnes"

    def test_energy_and_distance(self):
        assert canonical_unit("kilowatt-hours") == "kwh"
        assert canonical_unit("MWh") == "mwh"
        assert canonical_unit("Kilometres") == "km"

    def test_trailing_period_ignored(self):
        assert canonical_unit("kWh.") == "kwh"

    def test_unknown_unit_is_normalized_not_mapped(self):
        assert canonical_unit("Widgets") == "widgets"

    def test_units_equivalent(self):
        assert units_equivalent("m³", "cubic meters")
        assert not units_equivalent("kWh", "MWh")


class TestCanonicalSource:
    """Tests for emission source synonym resolution."""

    @pytest.mark.parametrize("spelling,expected", [
        ("Natural Gas", "natural-gas"),
        ("NG", "natural-gas"),
        ("electricity", "grid-electricity"),
        ("power", "grid-electricity"),
        ("petrol", "gasoline"),
        ("propane", "lpg"),
        ("company cars", "fleet-vehicles"),
        ("flights", "business-travel"),
        ("water usage", "water"),
    ])
    def test_synonyms(self, spelling, expected):
        assert canonical_source(spelling) == expected

    @pytest.mark.parametrize("ambiguous", ["gas", "fuel"])
    def test_ambiguous_aliases_not_mapped(self, ambiguous):
        assert canonical_source(ambiguous) == ambiguous

    def test_sources_equivalent(self):
        assert sources_equivalent("natural gas", "natural-gas")
        assert not sources_equivalent("diesel", "gasoline")

    def test_blank_sources_never_match(self):
        assert not sources_equivalent("", "")
        assert not sources_equivalent(None, "")
