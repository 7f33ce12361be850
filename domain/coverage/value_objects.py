"""Coverage Bounded Context - Value Objects.

Immutable data structures for the hex-ring coverage search.
All validation occurs at construction time via Pydantic, except CoverageMap,
which is a read-only Mapping.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from decimal import Decimal
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field

from domain.engine.value_objects import ParameterSet


# ---------------------------------------------------------------------------
# GeoPoint
# ---------------------------------------------------------------------------
class GeoPoint(BaseModel):
    """Geographic coordinate in WGS84 (Value Object).

    Invariants:
        GP-1: latitude in [-90, 90]
        GP-2: longitude in [-180, 180]
    """

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# SpatialCell
# ---------------------------------------------------------------------------
class SpatialCell(BaseModel):
    """Hexagonal grid cell (Value Object).

    ``index`` is opaque to the domain; only the HexGrid port interprets it.
    """

    index: str = Field(min_length=1)
    resolution: int

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# CoverageRequest
# ---------------------------------------------------------------------------
class CoverageRequest(BaseModel):
    """Inputs of one coverage search (Value Object).

    ``template`` carries every engine input except the receiver location,
    which the search fills in per cell.
    """

    template: ParameterSet
    origin: GeoPoint
    resolution: int
    threshold: Decimal

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# CoverageMap
# ---------------------------------------------------------------------------
class CoverageMap(Mapping[str, Decimal]):
    """Read-only mapping of cell index -> received power.

    Only cells whose received power strictly exceeded the threshold are
    present. Search metadata rides along as attributes.
    """

    def __init__(
        self,
        cells: Mapping[str, Decimal],
        *,
        origin: SpatialCell,
        threshold: Decimal,
        rings_searched: int,
        engine_calls: int,
        reach_m: float = 0.0,
    ) -> None:
        self._cells = MappingProxyType(dict(cells))
        self.origin = origin
        self.threshold = threshold
        self.rings_searched = rings_searched
        self.engine_calls = engine_calls
        self.reach_m = reach_m

    @property
    def resolution(self) -> int:
        return self.origin.resolution

    def __getitem__(self, index: str) -> Decimal:
        return self._cells[index]

    def __iter__(self) -> Iterator[str]:
        return iter(self._cells)

    def __len__(self) -> int:
        return len(self._cells)

    def __repr__(self) -> str:
        return (
            f"CoverageMap(origin={self.origin.index!r}, cells={len(self)}, "
            f"rings_searched={self.rings_searched})"
        )
