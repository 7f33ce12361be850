"""Domain Port(s) for the hexagonal grid.

Defines interfaces (Protocols) that infrastructure adapters must implement.
No concrete grid library here.
"""

from __future__ import annotations

from typing import Protocol

from .value_objects import GeoPoint, SpatialCell


class HexGrid(Protocol):
    """Port for a hierarchical hexagonal tiling of the sphere.

    Implementations live in infrastructure (e.g., H3 adapter).
    """

    min_resolution: int
    max_resolution: int

    def cell_at(self, point: GeoPoint, resolution: int) -> SpatialCell:
        """Return the cell containing ``point`` at ``resolution``."""
        ...

    def ring(self, cell: SpatialCell, distance: int) -> list[SpatialCell]:
        """Return all cells at hex-distance exactly ``distance`` from ``cell``.

        Ring 0 is ``[cell]``. Order must be deterministic.
        """
        ...

    def centroid(self, cell: SpatialCell) -> GeoPoint:
        """Return the center point of ``cell``."""
        ...
