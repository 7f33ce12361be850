"""H3 adapter for the HexGrid port.

Uber's H3 tiles the sphere into hexagons (plus 12 pentagons per resolution)
at resolutions 0 (coarsest) to 15 (finest). Cell indexes are H3 hex strings.
"""

from __future__ import annotations

import h3

from domain.coverage.value_objects import GeoPoint, SpatialCell


class H3HexGrid:
    """Infrastructure adapter exposing H3 through the HexGrid port."""

    min_resolution = 0
    max_resolution = 15

    def cell_at(self, point: GeoPoint, resolution: int) -> SpatialCell:
        index = h3.latlng_to_cell(point.latitude, point.longitude, resolution)
        return SpatialCell(index=index, resolution=resolution)

    def ring(self, cell: SpatialCell, distance: int) -> list[SpatialCell]:
        if distance < 0:
            raise ValueError("distance must be non-negative")
        # grid_ring order is unspecified; sort for deterministic dispatch
        indexes = sorted(h3.grid_ring(cell.index, distance))
        return [SpatialCell(index=i, resolution=cell.resolution) for i in indexes]

    def centroid(self, cell: SpatialCell) -> GeoPoint:
        lat, lng = h3.cell_to_latlng(cell.index)
        return GeoPoint(latitude=lat, longitude=lng)
