# -*- coding: utf-8 -*-
"""
Emission Factor Catalog

Static, versioned collection of emission factors loaded once from YAML and
frozen. After ``freeze()`` the factors live in a tuple and ``register``
raises ``CatalogError``.

Example:
    >>> from ghg_inventory.catalog import get_catalog
    >>> catalog = get_catalog()
    >>> [f.id for f in catalog.get_factors_by_scope("scope2")]
    ['dewa-grid-2024', 'dubai-district-cooling-2024', 'uae-district-heating-2024']
"""

import logging
import re
import threading
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Union

import yaml
from pydantic import ValidationError

from ghg_inventory import metrics
from ghg_inventory.config import get_config
from ghg_inventory.exceptions import CatalogError, UnknownUnitError
from ghg_inventory.models import EmissionFactor, Scope
from ghg_inventory.unit_converter import UnitConverter

logger = logging.getLogger(__name__)

#: Catalog bundled with the package
DEFAULT_CATALOG_PATH = Path(__file__).parent / "data" / "uae_emission_factors_2024.yaml"

_TRAILING_YEAR = re.compile(r"\s*\(\d{4}\)\s*$")


class FactorCatalog:
    """
    Read-only emission factor catalog.

    Factors are validated as they are registered: duplicate ids, empty
    ``applies_to`` and unparseable units raise ``CatalogError``; invalid
    values raise ``InvalidFactorValue`` from the model itself.
    """

    def __init__(
        self,
        factors: Sequence[Union[EmissionFactor, Dict[str, Any]]] = (),
        version: str = "",
        converter: Optional[UnitConverter] = None,
    ):
        """
        Initialize a catalog.

        Args:
            factors: Initial factors, as models or plain dicts
            version: Catalog version label
            converter: Converter used to check factor units
        """
        self.version = version
        self._converter = converter or UnitConverter()
        self._factors: Union[List[EmissionFactor], tuple] = []
        self._by_id: Dict[str, EmissionFactor] = {}
        self._frozen = False

        for factor in factors:
            self.register(factor)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source: str = "<dict>") -> "FactorCatalog":
        """Build and freeze a catalog from a parsed document.

        Raises:
            CatalogError: If the document has no ``factors`` list
        """
        if not isinstance(data, dict) or not isinstance(data.get("factors"), list):
            raise CatalogError(
                f"Factor catalog {source} must contain a 'factors' list",
                context={"source": source},
            )

        catalog = cls(data["factors"], version=str(data.get("version", "")))
        catalog.freeze()
        metrics.set_catalog_factors(len(catalog))
        logger.info(
            "Loaded %d emission factors from %s (version=%s)",
            len(catalog), source, catalog.version or "unversioned",
        )
        return catalog

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "FactorCatalog":
        """Load and freeze a catalog from a YAML file.

        Raises:
            CatalogError: If the file is missing or not valid YAML
        """
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except FileNotFoundError:
            logger.error("Emission factor catalog not found: %s", path)
            raise CatalogError(
                f"Emission factor catalog not found: {path}",
                context={"path": str(path)},
            ) from None
        except yaml.YAMLError as e:
            logger.error("Failed to parse emission factor catalog %s: %s", path, e)
            raise CatalogError(
                f"Failed to parse emission factor catalog: {path}",
                context={"path": str(path), "yaml_error": str(e)},
            ) from e

        return cls.from_dict(data, source=str(path))

    def register(self, factor: Union[EmissionFactor, Dict[str, Any]]) -> EmissionFactor:
        """
        Validate and add a factor.

        Returns:
            The registered EmissionFactor

        Raises:
            CatalogError: Frozen catalog, duplicate id, empty applies_to,
                malformed entry or unparseable unit
            InvalidFactorValue: Negative, non-numeric or non-finite value
        """
        if self._frozen:
            raise CatalogError("Factor catalog is frozen; register() is not allowed")

        if not isinstance(factor, EmissionFactor):
            try:
                factor = EmissionFactor.model_validate(factor)
            except ValidationError as e:
                factor_id = factor.get("id") if isinstance(factor, dict) else None
                raise CatalogError(
                    f"Malformed emission factor entry: {factor_id or factor!r}",
                    context={"factor_id": factor_id, "errors": e.errors()},
                ) from e

        if factor.id in self._by_id:
            raise CatalogError(
                f"Duplicate emission factor id: {factor.id}",
                context={"factor_id": factor.id},
            )

        if not factor.applies_to:
            raise CatalogError(
                f"Catalog factor {factor.id} has no applies_to rules",
                context={"factor_id": factor.id},
            )

        try:
            self._converter.parse_factor_unit(factor.unit)
        except UnknownUnitError as e:
            raise CatalogError(
                f"Catalog factor {factor.id} has an unparseable unit: {factor.unit}",
                context={"factor_id": factor.id, "unit": factor.unit},
            ) from e

        self._factors.append(factor)
        self._by_id[factor.id] = factor
        return factor

    def freeze(self) -> None:
        """Make the catalog read-only."""
        if self._frozen:
            return
        self._factors = tuple(self._factors)
        self._frozen = True
        logger.debug("Factor catalog frozen with %d factors", len(self._factors))

    @property
    def frozen(self) -> bool:
        return self._frozen

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    def get_factors_by_scope(self, scope: Union[Scope, str]) -> List[EmissionFactor]:
        """
        Return the factors of one scope in catalog order.

        Unknown scopes return an empty list.
        """
        try:
            scope = Scope(scope)
        except ValueError:
            return []
        return [factor for factor in self._factors if factor.scope == scope]

    def get_factor(self, factor_id: str) -> Optional[EmissionFactor]:
        return self._by_id.get(factor_id)

    def list_factors(self) -> List[EmissionFactor]:
        return list(self._factors)

    def __len__(self) -> int:
        return len(self._factors)

    def __iter__(self) -> Iterator[EmissionFactor]:
        return iter(self._factors)

    def __contains__(self, factor_id: object) -> bool:
        return factor_id in self._by_id

    def __repr__(self) -> str:
        return (
            f"FactorCatalog(version={self.version!r}, factors={len(self)}, "
            f"frozen={self._frozen})"
        )


# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------


def format_factor_name(factor: EmissionFactor) -> str:
    """Return the factor name with exactly one trailing "(year)".

    Example:
        "DEWA Grid Electricity (2024)" with year "2024"
        → "DEWA Grid Electricity (2024)"
    """
    base = _TRAILING_YEAR.sub("", factor.name)
    if not factor.year:
        return base
    return f"{base} ({factor.year})"


def format_factor_value(factor: EmissionFactor) -> str:
    """Return "<value> <unit>", e.g. "0.4772 tCO₂e/MWh"."""
    value = factor.value
    text = str(int(value)) if value.is_integer() else repr(value)
    return f"{text} {factor.unit}"


# ---------------------------------------------------------------------------
# Process-wide catalog
# ---------------------------------------------------------------------------

_catalog_instance: Optional[FactorCatalog] = None
_catalog_lock = threading.Lock()


def load_catalog(path: Optional[Union[str, Path]] = None) -> FactorCatalog:
    """Build a frozen catalog from ``path``, the configured path or the bundled file."""
    if path is None:
        path = get_config().catalog_path or DEFAULT_CATALOG_PATH
    return FactorCatalog.from_yaml(path)


def get_catalog() -> FactorCatalog:
    """Return the process-wide catalog, loading it on first use."""
    global _catalog_instance
    if _catalog_instance is None:
        with _catalog_lock:
            if _catalog_instance is None:
                _catalog_instance = load_catalog()
    return _catalog_instance


def set_catalog(catalog: FactorCatalog) -> None:
    """Replace the process-wide catalog (useful for testing)."""
    global _catalog_instance
    catalog.freeze()
    with _catalog_lock:
        _catalog_instance = catalog
    logger.info("Factor catalog replaced programmatically (%d factors)", len(catalog))


def reset_catalog() -> None:
    """Drop the process-wide catalog (primarily for test teardown)."""
    global _catalog_instance
    with _catalog_lock:
        _catalog_instance = None


__all__ = [
    "DEFAULT_CATALOG_PATH",
    "FactorCatalog",
    "format_factor_name",
    "format_factor_value",
    "load_catalog",
    "get_catalog",
    "set_catalog",
    "reset_catalog",
]
