"""
Professional tax resolution: ordered chain of sources.

Standard chain (first non-None answer wins):
  1. CityTaxStoreSource : city_tax_data table (via Redis cache), may fail
  2. StaticTableSource  : STATIC_PROFESSIONAL_TAX, immutable
  3. FlatDefaultSource  : ₹200

A store miss (no row) and a store failure (any exception) are treated the
same way: the chain moves on. Lookup problems are never surfaced to callers.

City names are matched exactly and case-sensitively at every tier.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from types import MappingProxyType
from typing import Awaitable, Callable, Mapping, Optional, Protocol, Sequence

from payroll.salary.schemas import CityTaxRecord

logger = logging.getLogger(__name__)

DEFAULT_PROFESSIONAL_TAX = Decimal("200")

# Monthly professional tax by city, used when the store has no row.
# Delhi levies none; West Bengal's top slab is ₹110 (ceiling ₹200 elsewhere).
STATIC_PROFESSIONAL_TAX: Mapping[str, Decimal] = MappingProxyType({
    "Mumbai":        Decimal("200"),
    "Pune":          Decimal("200"),
    "Delhi":         Decimal("0"),
    "Bangalore":     Decimal("200"),
    "Hyderabad":     Decimal("200"),
    "Chennai":       Decimal("200"),
    "Kolkata":       Decimal("110"),
    "Ahmedabad":     Decimal("200"),
    "Jaipur":        Decimal("200"),
    "Surat":         Decimal("200"),
    "Lucknow":       Decimal("200"),
    "Kanpur":        Decimal("200"),
    "Nagpur":        Decimal("200"),
    "Indore":        Decimal("200"),
    "Thane":         Decimal("200"),
    "Bhopal":        Decimal("200"),
    "Visakhapatnam": Decimal("200"),
    "Patna":         Decimal("200"),
    "Vadodara":      Decimal("200"),
    "Ghaziabad":     Decimal("200"),
    "Ludhiana":      Decimal("200"),
    "Agra":          Decimal("200"),
    "Nashik":        Decimal("200"),
    "Faridabad":     Decimal("200"),
})

# async (city) -> record | None
CityTaxLookup = Callable[[str], Awaitable[Optional[CityTaxRecord]]]


class ProfessionalTaxSource(Protocol):
    """One tier of the chain. Returns None to defer to the next tier."""

    name: str

    async def lookup(self, city: str, gross_monthly: Decimal) -> Optional[Decimal]:
        ...


# ---------------------------------------------------------------------------
# Tier 1: dynamic store
# ---------------------------------------------------------------------------

class CityTaxStoreSource:
    """Wraps the store lookup; every exception is absorbed as a miss."""

    name = "store"

    def __init__(self, lookup: CityTaxLookup) -> None:
        self._lookup = lookup

    async def lookup(self, city: str, gross_monthly: Decimal) -> Optional[Decimal]:
        try:
            record = await self._lookup(city)
        except Exception:
            logger.warning(
                "City tax store lookup failed city=%s: falling back", city, exc_info=True,
            )
            return None
        if record is None:
            return None
        return Decimal(str(record.professional_tax))


# ---------------------------------------------------------------------------
# Tier 2: static table
# ---------------------------------------------------------------------------

class StaticTableSource:
    name = "static"

    def __init__(self, table: Mapping[str, Decimal] = STATIC_PROFESSIONAL_TAX) -> None:
        self._table = MappingProxyType(dict(table))

    async def lookup(self, city: str, gross_monthly: Decimal) -> Optional[Decimal]:
        # .get, not truthiness: Delhi's 0 is a hit
        return self._table.get(city)


# ---------------------------------------------------------------------------
# Tier 3: flat default
# ---------------------------------------------------------------------------

class FlatDefaultSource:
    name = "default"

    def __init__(self, amount: Decimal = DEFAULT_PROFESSIONAL_TAX) -> None:
        self._amount = amount

    async def lookup(self, city: str, gross_monthly: Decimal) -> Optional[Decimal]:
        return self._amount


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------

class ProfessionalTaxResolver:
    """
    Walks its sources in order and returns the first answer.

    gross_monthly is passed through to every source; the current rule ignores
    it, slab-based state PT would not.
    """

    def __init__(self, sources: Sequence[ProfessionalTaxSource]) -> None:
        self._sources = tuple(sources)

    @property
    def sources(self) -> tuple[ProfessionalTaxSource, ...]:
        return self._sources

    async def resolve(self, city: str, gross_monthly: Decimal) -> Decimal:
        for source in self._sources:
            amount = await source.lookup(city, gross_monthly)
            if amount is not None:
                logger.debug("Professional tax resolved city=%s source=%s", city, source.name)
                return amount
        logger.debug("Professional tax chain exhausted city=%s: using default", city)
        return DEFAULT_PROFESSIONAL_TAX


def build_professional_tax_resolver(
    lookup: Optional[CityTaxLookup] = None,
    static_table: Mapping[str, Decimal] = STATIC_PROFESSIONAL_TAX,
    default: Decimal = DEFAULT_PROFESSIONAL_TAX,
) -> ProfessionalTaxResolver:
    """Standard store → static → default chain. The store tier is skipped when lookup is None."""
    sources: list[ProfessionalTaxSource] = []
    if lookup is not None:
        sources.append(CityTaxStoreSource(lookup))
    sources.append(StaticTableSource(static_table))
    sources.append(FlatDefaultSource(default))
    return ProfessionalTaxResolver(sources)
