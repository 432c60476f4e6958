# -*- coding: utf-8 -*-
"""
Key canonicalization shared by applicability, suggestion and conversion.

Activity ledgers spell the same thing many ways ("m³", "m3",
"cubic-meters"; "natural gas", "NG"). Every comparison in the engine goes
through ``canonical_unit`` or ``canonical_source`` so that matching rules
live in one place.
"""

import re
from typing import Dict, Optional

# ---------------------------------------------------------------------------
# Unit aliases (normalized spelling -> canonical token)
# ---------------------------------------------------------------------------

UNIT_ALIASES: Dict[str, str] = {
    # Mass
    "g": "g",
    "gram": "g",
    "grams": "g",
    "kg": "kg",
    "kgs": "kg",
    "kilo": "kg",
    "kilos": "kg",
    "kilogram": "kg",
    "kilograms": "kg",
    "t": "tonnes",
    "tonne": "tonnes",
    "tonnes": "tonnes",
    "ton": "tonnes",
    "tons": "tonnes",
    "metric-ton": "tonnes",
    "metric-tons": "tonnes",
    "metric-tonne": "tonnes",
    "metric-tonnes": "tonnes",
    "lb": "lb",
    "lbs": "lb",
    "pound": "lb",
    "pounds": "lb",
    # Energy
    "wh": "wh",
    "kwh": "kwh",
    "kilowatt-hour": "kwh",
    "kilowatt-hours": "kwh",
    "mwh": "mwh",
    "megawatt-hour": "mwh",
    "megawatt-hours": "mwh",
    "gwh": "gwh",
    "gigawatt-hour": "gwh",
    "gigawatt-hours": "gwh",
    "mj": "mj",
    "megajoule": "mj",
    "megajoules": "mj",
    "gj": "gj",
    "gigajoule": "gj",
    "gigajoules": "gj",
    "therm": "therm",
    "therms": "therm",
    "mmbtu": "mmbtu",
    # Volume
    "l": "liters",
    "liter": "liters",
    "liters": "liters",
    "litre": "liters",
    "litres": "liters",
    "m3": "m3",
    "cubic-meter": "m3",
    "cubic-meters": "m3",
    "cubic-metre": "m3",
    "cubic-metres": "m3",
    "gal": "gallons",
    "gallon": "gallons",
    "gallons": "gallons",
    # Distance
    "m": "m",
    "meter": "m",
    "meters": "m",
    "metre": "m",
    "metres": "m",
    "km": "km",
    "kilometer": "km",
    "kilometers": "km",
    "kilometre": "km",
    "kilometres": "km",
    "mi": "miles",
    "mile": "miles",
    "miles": "miles",
    # Currency (spend-based factors)
    "usd": "usd",
    "us-dollar": "usd",
    "us-dollars": "usd",
    "$": "usd",
    "aed": "aed",
    "dirham": "aed",
    "dirhams": "aed",
}

# ---------------------------------------------------------------------------
# Source synonyms (normalized spelling -> catalog source key)
# ---------------------------------------------------------------------------

# "gas" and "fuel" are deliberately absent: they name more than one source.
SOURCE_SYNONYMS: Dict[str, str] = {
    "ng": "natural-gas",
    "grid-electricity": "grid-electricity",
    "electricity": "grid-electricity",
    "power": "grid-electricity",
    "diesel-fuel": "diesel",
    "petrol": "gasoline",
    "business-travel": "business-travel",
    "travel": "business-travel",
    "flights": "business-travel",
    "commuting": "employee-commuting",
    "waste-disposal": "waste",
    "garbage": "waste",
    "water-consumption": "water",
    "water-usage": "water",
    "cooling": "district-cooling",
    "heating": "district-heating",
    "vehicles": "fleet-vehicles",
    "company-cars": "fleet-vehicles",
    "liquefied-petroleum-gas": "lpg",
    "propane": "lpg",
}

_SUPERSCRIPTS = str.maketrans({"³": "3", "²": "2", "₂": "2"})
_SEPARATORS = re.compile(r"[\s_]+")


def normalize_token(text: Optional[str]) -> str:
    """Lowercase, unify superscripts and collapse separators to hyphens."""
    if not text:
        return ""
    normalized = text.translate(_SUPERSCRIPTS).strip().lower()
    return _SEPARATORS.sub("-", normalized)


def canonical_unit(unit: Optional[str]) -> str:
    """Return the canonical token for a unit spelling.

    Unknown spellings are returned normalized but otherwise unchanged so
    that two identical unknown units still compare equal.

    Examples:
        >>> canonical_unit("m³")
        'm3'
        >>> canonical_unit("Cubic Meters")
        'm3'
        >>> canonical_unit("litres")
        'liters'
    """
    normalized = normalize_token(unit).rstrip(".")
    return UNIT_ALIASES.get(normalized, normalized)


def canonical_source(source: Optional[str]) -> str:
    """Return the catalog key for an emission-source spelling.

    Examples:
        >>> canonical_source("Natural Gas")
        'natural-gas'
        >>> canonical_source("petrol")
        'gasoline'
    """
    normalized = normalize_token(source)
    return SOURCE_SYNONYMS.get(normalized, normalized)


def units_equivalent(first: Optional[str], second: Optional[str]) -> bool:
    """Return True when two unit spellings name the same unit."""
    return canonical_unit(first) == canonical_unit(second)


def sources_equivalent(first: Optional[str], second: Optional[str]) -> bool:
    """Return True when two source spellings name the same emission source."""
    left = canonical_source(first)
    return bool(left) and left == canonical_source(second)


__all__ = [
    "UNIT_ALIASES",
    "normalize_token",
    "SOURCE_SYNONYMS",
    "canonical_unit",
    "canonical_source",
    "units_equivalent",
    "sources_equivalent",
]
