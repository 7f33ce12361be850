"""Coverage Bounded Context - Domain Services.

Ring-expansion coverage search over a hexagonal grid.
NO I/O operations - the engine and the grid arrive through domain ports
(`domain.engine.ports.EngineClient`, `domain.coverage.ports.HexGrid`).

Algorithm:
1) Validate resolution against the grid's supported range
2) Snap the origin to its containing cell
3) For ring i = 0, 1, ...: sample every cell at hex-distance exactly i,
   keep cells whose received power is strictly above the threshold
4) Stop after the first ring that kept nothing

Step 4 assumes coverage is roughly star-convex around the origin. A ridge
followed by a qualifying valley further out is not reported.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from decimal import Decimal

from pyproj import Geod

from domain.coverage.errors import InvalidResolution, SearchCancelled
from domain.coverage.ports import HexGrid
from domain.coverage.value_objects import (
    CoverageMap,
    CoverageRequest,
    GeoPoint,
    SpatialCell,
)
from domain.engine.ports import EngineClient
from domain.engine.value_objects import ParameterSet

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
DEFAULT_MAX_WORKERS = 8

# WGS84 ellipsoid for geodesic calculations (same as GPS, EPSG:4326)
_geod = Geod(ellps="WGS84")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def geodesic_distance(start: GeoPoint, end: GeoPoint) -> float:
    """Calculate geodesic distance between two points in meters."""
    _, _, distance = _geod.inv(
        start.longitude, start.latitude, end.longitude, end.latitude
    )
    return float(abs(distance))


def to_decimal(value: float) -> Decimal:
    """Convert a float coordinate to the Decimal the engine will see.

    Goes through repr() so the shortest round-tripping digits are sent,
    not the binary expansion.
    """
    return Decimal(repr(value))


# ---------------------------------------------------------------------------
# Main Service: CoverageSearch
# ---------------------------------------------------------------------------
class CoverageSearch:
    """Discover the cells around an origin where reception exceeds a threshold.

    Parameters
    ----------
    engine: EngineClient
        Sampler used for every cell.
    grid: HexGrid
        Hexagonal tiling providing cells, rings and centroids.
    max_workers: int
        Upper bound on engine calls in flight within one ring.
    max_rings: int | None
        Optional cap on the number of rings explored (ring 0 included).
        ``None`` means the search only stops at the first empty ring.
    """

    def __init__(
        self,
        engine: EngineClient,
        grid: HexGrid,
        max_workers: int = DEFAULT_MAX_WORKERS,
        max_rings: int | None = None,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be positive")
        if max_rings is not None and max_rings < 1:
            raise ValueError("max_rings must be positive")
        self.engine = engine
        self.grid = grid
        self.max_workers = max_workers
        self.max_rings = max_rings

    def run(
        self, request: CoverageRequest, cancel: threading.Event | None = None
    ) -> CoverageMap:
        """Run the ring-expansion search and return the finished CoverageMap.

        Args:
            request: Template, origin, resolution and threshold
            cancel: Optional event; once set, no further rings are queried

        Returns:
            CoverageMap of qualifying cells (possibly empty)

        Raises:
            InvalidResolution: resolution outside the grid's range (no engine calls)
            SearchCancelled: ``cancel`` was set before the search finished
            EngineError: any engine failure, propagated unchanged
        """
        # PRE-1: resolution within grid range, before any engine call
        if not (
            self.grid.min_resolution <= request.resolution <= self.grid.max_resolution
        ):
            raise InvalidResolution(
                request.resolution, self.grid.min_resolution, self.grid.max_resolution
            )

        origin = self.grid.cell_at(request.origin, request.resolution)
        cells: dict[str, Decimal] = {}
        engine_calls = 0
        reach_m = 0.0
        distance = 0

        pool = ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="coverage"
        )
        try:
            while True:
                if self.max_rings is not None and distance >= self.max_rings:
                    logger.warning(
                        "Coverage search at %s stopped at ring cap %d",
                        origin.index,
                        self.max_rings,
                    )
                    break
                _raise_if_cancelled(cancel, origin, distance)

                ring = self.grid.ring(origin, distance)
                results = self._sample_ring(
                    pool, request.template, ring, distance, cancel
                )
                engine_calls += len(ring)

                inserted = 0
                for cell in ring:
                    point, received_power = results[cell.index]
                    # Strictly greater: a value equal to the threshold is excluded
                    if received_power > request.threshold:
                        cells[cell.index] = received_power
                        reach_m = max(reach_m, geodesic_distance(request.origin, point))
                        inserted += 1

                logger.debug(
                    "Ring %d around %s: %d/%d cells above %s",
                    distance,
                    origin.index,
                    inserted,
                    len(ring),
                    request.threshold,
                )
                distance += 1
                if inserted == 0:
                    break
        finally:
            # In-flight engine calls of a cancelled search finish on their own;
            # their results are discarded
            pool.shutdown(wait=False, cancel_futures=True)

        logger.info(
            "Coverage search at %s (res %d): %d cells over %d rings, %d engine calls",
            origin.index,
            request.resolution,
            len(cells),
            distance,
            engine_calls,
        )
        return CoverageMap(
            cells,
            origin=origin,
            threshold=request.threshold,
            rings_searched=distance,
            engine_calls=engine_calls,
            reach_m=reach_m,
        )

    def _sample_cell(
        self, template: ParameterSet, cell: SpatialCell
    ) -> tuple[GeoPoint, Decimal]:
        point = self.grid.centroid(cell)
        query = template.with_receiver(
            to_decimal(point.latitude), to_decimal(point.longitude)
        )
        measurement = self.engine.sample(query)
        return point, measurement.received_power

    def _sample_ring(
        self,
        pool: ThreadPoolExecutor,
        template: ParameterSet,
        ring: list[SpatialCell],
        distance: int,
        cancel: threading.Event | None,
    ) -> dict[str, tuple[GeoPoint, Decimal]]:
        """Sample every cell of one ring; returns only once the ring is complete."""
        futures: dict[Future[tuple[GeoPoint, Decimal]], SpatialCell] = {
            pool.submit(self._sample_cell, template, cell): cell for cell in ring
        }
        results: dict[str, tuple[GeoPoint, Decimal]] = {}
        try:
            for future in as_completed(futures):
                cell = futures[future]
                results[cell.index] = future.result()
                _raise_if_cancelled(cancel, cell, distance)
        except BaseException:
            for future in futures:
                future.cancel()
            raise
        return results


def _raise_if_cancelled(
    cancel: threading.Event | None, cell: SpatialCell, distance: int
) -> None:
    if cancel is not None and cancel.is_set():
        logger.info("Coverage search at %s cancelled (ring %d)", cell.index, distance)
        raise SearchCancelled(f"Coverage search cancelled at cell {cell.index}")
