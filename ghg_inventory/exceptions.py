# -*- coding: utf-8 -*-
"""GHG Inventory Engine Exception Hierarchy.

Exceptions carry rich, serializable context so callers can surface
actionable messages without parsing strings.

Exception Hierarchy:
    EmissionsEngineError (base)
    ├── UnitConversionError
    │   └── UnitMismatchError
    │       └── UnknownUnitError
    ├── InvalidFactorValue
    └── CatalogError

Applicability problems are never raised. They are returned as
``ApplicabilityWarning`` data from the applicability engine.

Example:
    >>> from ghg_inventory.exceptions import UnitMismatchError
    >>> raise UnitMismatchError(
    ...     message="Cannot convert km (distance) to m3 (volume)",
    ...     from_unit="km",
    ...     to_unit="m3",
    ... )
"""

import json
import re
from datetime import datetime
from typing import Any, Dict, Optional


# ==============================================================================
# Base Exception
# ==============================================================================

class EmissionsEngineError(Exception):
    """Base exception for all emissions engine errors.

    Attributes:
        message: Human-readable error message
        error_code: Unique error identifier (e.g., "GHGI_UNIT_MISMATCH_ERROR")
        context: Dictionary with error-specific details
        timestamp: When the error occurred
    """

    ERROR_PREFIX = "GHGI"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """Initialize the exception with rich context.

        Args:
            message: Human-readable error message
            error_code: Unique error identifier (auto-generated if not provided)
            context: Dictionary with error-specific details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self._generate_error_code()
        self.context = context or {}
        self.timestamp = datetime.now()

    def _generate_error_code(self) -> str:
        """Generate an error code from the class name.

        Returns:
            Error code like "GHGI_UNIT_MISMATCH_ERROR"
        """
        error_type = re.sub(r'(?<!^)(?=[A-Z])', '_', self.__class__.__name__).upper()
        return f"{self.ERROR_PREFIX}_{error_type}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_json(self) -> str:
        """Convert exception to JSON string."""
        return json.dumps(self.to_dict(), indent=2, default=str)

    def __str__(self) -> str:
        return f"[{self.error_code}] - {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message='{self.message}', "
            f"error_code='{self.error_code}')"
        )


# ==============================================================================
# Unit Conversion Exceptions
# ==============================================================================

class UnitConversionError(EmissionsEngineError):
    """Unit conversion failed.

    Base class for every failure of the unit conversion module. Aggregation
    catches this type to exclude a single record without aborting the pass.
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        from_unit: Optional[str] = None,
        to_unit: Optional[str] = None,
    ):
        context = context or {}
        if from_unit is not None:
            context["from_unit"] = from_unit
        if to_unit is not None:
            context["to_unit"] = to_unit
        super().__init__(message, context=context)
        self.from_unit = from_unit
        self.to_unit = to_unit


class UnitMismatchError(UnitConversionError):
    """Activity unit and factor unit belong to different physical families.

    Example:
        >>> raise UnitMismatchError(
        ...     message="Cannot convert km (distance) to m3 (volume)",
        ...     from_unit="km",
        ...     to_unit="m3",
        ...     context={"from_family": "distance", "to_family": "volume"},
        ... )
    """


class UnknownUnitError(UnitMismatchError):
    """A unit string is not part of any supported unit family.

    A blank or unknown unit is never compatible with a factor, so this is a
    UnitMismatchError with its own error code.
    """


# ==============================================================================
# Factor Exceptions
# ==============================================================================

class InvalidFactorValue(EmissionsEngineError):
    """An emission factor value is negative, non-numeric or not finite.

    Raised when a catalog or custom factor is registered, so an invalid
    value never reaches a calculation.
    """

    def __init__(
        self,
        message: str,
        value: Any = None,
        factor_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        context = context or {}
        context["value"] = repr(value)
        if factor_id:
            context["factor_id"] = factor_id
        super().__init__(message, context=context)
        self.value = value
        self.factor_id = factor_id


class CatalogError(EmissionsEngineError):
    """The factor catalog could not be loaded or was modified after freezing."""


__all__ = [
    "EmissionsEngineError",
    "UnitConversionError",
    "UnitMismatchError",
    "UnknownUnitError",
    "InvalidFactorValue",
    "CatalogError",
]
