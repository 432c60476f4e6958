# -*- coding: utf-8 -*-
"""
Unit Conversion Engine

All conversions are deterministic, linear and table driven. Unknown units
and cross-family pairs fail loudly; nothing is ever treated as 1:1 by
default.

Supports:
- Mass: g, kg, tonnes, lb
- Energy: Wh, kWh, MWh, GWh, MJ, GJ, therm, MMBtu
- Volume: liters, m3, gallons
- Distance: m, km, miles
- Currency: USD, AED (spend-based factors)

Factor units such as ``"tCO2e/MWh"`` or ``"kgCO₂e/liter"`` are split by
``parse_factor_unit`` into an emissions-mass numerator and the activity
unit the factor is expressed per.
"""

import logging
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional, Union

from ghg_inventory.config import get_config
from ghg_inventory.exceptions import UnitMismatchError, UnknownUnitError
from ghg_inventory.normalization import canonical_unit, normalize_token

logger = logging.getLogger(__name__)

Number = Union[int, float, Decimal]


@dataclass(frozen=True)
class FactorUnit:
    """A parsed compound factor unit.

    Attributes:
        emissions_unit: Normalized numerator, e.g. "kgco2e"
        activity_unit: Canonical denominator, e.g. "mwh"
        to_tonnes: Multiplier that turns the numerator into tCO2e
    """
    emissions_unit: str
    activity_unit: str
    to_tonnes: Decimal


# Numerator masses, expressed in tonnes
_EMISSIONS_MASS_TO_TONNES: Dict[str, Decimal] = {
    'g': Decimal('0.000001'),
    'kg': Decimal('0.001'),
    't': Decimal('1'),
    'tonne': Decimal('1'),
    'tonnes': Decimal('1'),
}

_EMISSIONS_NUMERATOR = re.compile(r"^(?P<mass>g|kg|t|tonnes?)-?co2-?e?$")
_PER_SEPARATOR = re.compile(r"\s*/\s*|\s+per\s+", re.IGNORECASE)


class UnitConverter:
    """
    Deterministic unit converter with family validation.

    GUARANTEES:
    - Conversion only within a physical family (mass, energy, volume,
      distance, currency)
    - Same input → same output (Decimal arithmetic)
    - Unknown units → UnknownUnitError
    - Cross-family pairs → UnitMismatchError
    """

    # Mass conversions (to kg as base unit)
    MASS_TO_KG: Dict[str, Decimal] = {
        'g': Decimal('0.001'),
        'kg': Decimal('1'),
        'tonnes': Decimal('1000'),
        'lb': Decimal('0.45359237'),
    }

    # Energy conversions (to kWh as base unit)
    ENERGY_TO_KWH: Dict[str, Decimal] = {
        'wh': Decimal('0.001'),
        'kwh': Decimal('1'),
        'mwh': Decimal('1000'),
        'gwh': Decimal('1000000'),
        'mj': Decimal('0.277777777777777778'),
        'gj': Decimal('277.777777777777778'),
        'therm': Decimal('29.3071'),
        'mmbtu': Decimal('293.071'),
    }

    # Volume conversions (to liters as base unit)
    VOLUME_TO_LITERS: Dict[str, Decimal] = {
        'liters': Decimal('1'),
        'm3': Decimal('1000'),
        'gallons': Decimal('3.785411784'),
    }

    # Distance conversions (to km as base unit)
    DISTANCE_TO_KM: Dict[str, Decimal] = {
        'm': Decimal('0.001'),
        'km': Decimal('1'),
        'miles': Decimal('1.609344'),
    }

    def __init__(self, aed_per_usd: Optional[float] = None):
        """
        Initialize unit converter.

        Args:
            aed_per_usd: AED/USD peg for spend-based factors (defaults to
                the configured value)
        """
        if aed_per_usd is None:
            aed_per_usd = get_config().aed_per_usd
        self.aed_per_usd = Decimal(str(aed_per_usd))

        # Currency conversions (to USD as base unit)
        currency_to_usd: Dict[str, Decimal] = {
            'usd': Decimal('1'),
            'aed': Decimal('1') / self.aed_per_usd,
        }

        self.conversion_tables: Dict[str, Dict[str, Decimal]] = {
            'mass': self.MASS_TO_KG,
            'energy': self.ENERGY_TO_KWH,
            'volume': self.VOLUME_TO_LITERS,
            'distance': self.DISTANCE_TO_KM,
            'currency': currency_to_usd,
        }

    def conversion_factor(self, from_unit: str, to_unit: str) -> Decimal:
        """
        Return the multiplier that converts an amount in from_unit to to_unit.

        Args:
            from_unit: Source unit (e.g., 'kWh', 'litres')
            to_unit: Target unit (e.g., 'MWh', 'm³')

        Returns:
            Decimal factor such that converted = amount * factor

        Raises:
            UnknownUnitError: If either unit is not in a supported family
            UnitMismatchError: If the units belong to different families
        """
        source = canonical_unit(from_unit)
        target = canonical_unit(to_unit)

        from_family = self._get_unit_family(source)
        to_family = self._get_unit_family(target)

        if from_family is None:
            raise UnknownUnitError(
                f"Unknown unit: {from_unit}", from_unit=from_unit, to_unit=to_unit,
            )

        if to_family is None:
            raise UnknownUnitError(
                f"Unknown unit: {to_unit}", from_unit=from_unit, to_unit=to_unit,
            )

        if from_family != to_family:
            raise UnitMismatchError(
                f"Cannot convert between different unit families: "
                f"{from_unit} ({from_family}) → {to_unit} ({to_family})",
                from_unit=from_unit,
                to_unit=to_unit,
                context={"from_family": from_family, "to_family": to_family},
            )

        if source == target:
            return Decimal('1')

        table = self.conversion_tables[from_family]
        return table[source] / table[target]

    def convert(self, value: Number, from_unit: str, to_unit: str) -> float:
        """
        Convert value from one unit to another.

        Args:
            value: Numerical value to convert
            from_unit: Source unit
            to_unit: Target unit

        Returns:
            Converted value as float

        Raises:
            UnitConversionError: If units unknown or incompatible
        """
        return float(self.convert_decimal(value, from_unit, to_unit))

    def convert_decimal(self, value: Number, from_unit: str, to_unit: str) -> Decimal:
        """Convert value and keep full Decimal precision."""
        if not isinstance(value, Decimal):
            value = Decimal(str(value))
        return value * self.conversion_factor(from_unit, to_unit)

    def _get_unit_family(self, unit: str) -> Optional[str]:
        """
        Determine which family a canonical unit belongs to.

        Returns:
            Family name ('energy', 'volume', etc.) or None if unknown
        """
        for family, table in self.conversion_tables.items():
            if unit in table:
                return family
        return None

    def get_unit_family(self, unit: str) -> str:
        """
        Get the family for a unit.

        Raises:
            UnknownUnitError: If unit unknown
        """
        family = self._get_unit_family(canonical_unit(unit))
        if family is None:
            raise UnknownUnitError(f"Unknown unit: {unit}", from_unit=unit)
        return family

    def is_known(self, unit: str) -> bool:
        """Return True if the unit belongs to a supported family."""
        return self._get_unit_family(canonical_unit(unit)) is not None

    def is_convertible(self, unit1: str, unit2: str) -> bool:
        """
        Check if two units are in the same family.

        Returns:
            True if compatible, False otherwise (including unknown units)
        """
        family1 = self._get_unit_family(canonical_unit(unit1))
        family2 = self._get_unit_family(canonical_unit(unit2))
        return family1 is not None and family1 == family2

    def list_supported_units(self, family: Optional[str] = None) -> Dict[str, list]:
        """
        List all supported canonical units.

        Args:
            family: Optional family filter ('energy', 'volume', etc.)

        Returns:
            Dictionary mapping families to unit lists
        """
        if family:
            if family not in self.conversion_tables:
                raise ValueError(f"Unknown unit family: {family}")
            return {family: list(self.conversion_tables[family].keys())}

        return {
            fam: list(table.keys())
            for fam, table in self.conversion_tables.items()
        }

    def parse_factor_unit(self, unit: str) -> FactorUnit:
        """
        Split a compound factor unit into numerator and denominator.

        Examples:
            "tCO2e/MWh"      → (tco2e, mwh, 1)
            "kgCO₂e/liter"   → (kgco2e, liters, 0.001)
            "kg CO2e per km" → (kg-co2e, km, 0.001)

        Raises:
            UnknownUnitError: If the unit is not "<mass>CO2e/<activity unit>"
                or the activity unit is not in a supported family
        """
        parts = _PER_SEPARATOR.split((unit or "").strip(), maxsplit=1)
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise UnknownUnitError(
                f"Factor unit is not a quantity-per-unit pair: {unit!r}",
                from_unit=unit,
            )

        numerator = normalize_token(parts[0])
        match = _EMISSIONS_NUMERATOR.match(numerator)
        if match is None:
            raise UnknownUnitError(
                f"Unsupported emissions unit in factor unit {unit!r}: {parts[0]}",
                from_unit=unit,
            )

        activity_unit = canonical_unit(parts[1])
        if self._get_unit_family(activity_unit) is None:
            raise UnknownUnitError(
                f"Unknown activity unit in factor unit {unit!r}: {parts[1]}",
                from_unit=unit,
            )

        return FactorUnit(
            emissions_unit=numerator,
            activity_unit=activity_unit,
            to_tonnes=_EMISSIONS_MASS_TO_TONNES[match.group("mass")],
        )


__all__ = [
    "FactorUnit",
    "UnitConverter",
]
