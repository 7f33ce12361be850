"""Tests for CoverageSearch (ring expansion) with fake engine and grid.

The fake grid puts cell (q, r) at latitude r * step, longitude q * step, so
an engine handler can recover the cell (and its ring distance from the
origin) from the receiver coordinates of each query.
"""

from __future__ import annotations

import threading
from decimal import Decimal

import pytest

from domain.coverage.errors import InvalidResolution, SearchCancelled
from domain.coverage.services import CoverageSearch, geodesic_distance, to_decimal
from domain.coverage.value_objects import CoverageRequest, GeoPoint, SpatialCell
from domain.engine.errors import EngineUnavailable
from tests.fakes import (
    AxialHexGrid,
    FakeEngine,
    make_parameter_set,
    path_measurement,
)

ORIGIN = GeoPoint(latitude=0.0, longitude=0.0)
THRESHOLD = Decimal("-90")


def make_request(resolution: int = 9, threshold: Decimal = THRESHOLD) -> CoverageRequest:
    return CoverageRequest(
        template=make_parameter_set(lat="0", lon="0"),
        origin=ORIGIN,
        resolution=resolution,
        threshold=threshold,
    )


def distance_of(grid: AxialHexGrid, query) -> int:
    cell = grid.locate(float(query.rla), float(query.rlo))
    return grid.hex_distance(cell, (0, 0))


def within(grid: AxialHexGrid, radius: int, inside: str = "-50", outside: str = "-120"):
    """Handler: received power above threshold up to ``radius`` rings out."""

    def handler(query):
        return path_measurement(inside if distance_of(grid, query) <= radius else outside)

    return handler


@pytest.fixture
def grid() -> AxialHexGrid:
    return AxialHexGrid()


# ===========================================================================
# Ring termination
# ===========================================================================
class TestRingTermination:
    def test_stops_after_first_empty_ring(self, grid):
        engine = FakeEngine(within(grid, 2))

        result = CoverageSearch(engine, grid).run(make_request())

        # Rings 0..2 qualify (1 + 6 + 12 cells); ring 3 is sampled and empty
        assert len(result) == 19
        assert engine.calls == 1 + 6 + 12 + 18
        assert result.rings_searched == 4
        assert result.engine_calls == engine.calls

    def test_no_cell_beyond_empty_ring_is_sampled(self, grid):
        engine = FakeEngine(within(grid, 2))

        CoverageSearch(engine, grid).run(make_request())

        assert max(distance_of(grid, q) for q in engine.queries) == 3

    def test_origin_below_threshold_gives_empty_map(self, grid):
        engine = FakeEngine(lambda q: path_measurement("-120"))

        result = CoverageSearch(engine, grid).run(make_request())

        assert len(result) == 0
        assert engine.calls == 1
        assert result.rings_searched == 1

    def test_only_qualifying_cells_are_keyed(self, grid):
        engine = FakeEngine(within(grid, 1))

        result = CoverageSearch(engine, grid).run(make_request())

        expected = {c.index for d in (0, 1) for c in grid.ring(result.origin, d)}
        assert set(result) == expected
        assert all(value == Decimal("-50") for value in result.values())

    def test_max_rings_caps_search(self, grid):
        engine = FakeEngine(lambda q: path_measurement("-50"))

        result = CoverageSearch(engine, grid, max_rings=3).run(make_request())

        assert len(result) == 1 + 6 + 12
        assert engine.calls == 19
        assert result.rings_searched == 3


# ===========================================================================
# Threshold
# ===========================================================================
class TestThreshold:
    def test_value_equal_to_threshold_is_excluded(self, grid):
        engine = FakeEngine(lambda q: path_measurement(THRESHOLD))

        result = CoverageSearch(engine, grid).run(make_request())

        assert len(result) == 0

    def test_value_just_above_threshold_is_included(self, grid):
        engine = FakeEngine(within(grid, 0, inside="-89.99"))

        result = CoverageSearch(engine, grid).run(make_request())

        assert list(result.values()) == [Decimal("-89.99")]

    def test_threshold_is_independent_of_rt(self, grid):
        engine = FakeEngine(within(grid, 1, inside="-70", outside="-80"))

        result = CoverageSearch(engine, grid).run(
            make_request(threshold=Decimal("-75"))
        )

        assert len(result) == 7
        assert result.threshold == Decimal("-75")


# ===========================================================================
# Preconditions and failures
# ===========================================================================
class TestFailures:
    @pytest.mark.parametrize("resolution", [-1, 16, 99])
    def test_invalid_resolution_makes_no_engine_call(self, grid, resolution):
        engine = FakeEngine(lambda q: path_measurement("-50"))

        with pytest.raises(InvalidResolution) as exc_info:
            CoverageSearch(engine, grid).run(make_request(resolution=resolution))

        assert engine.calls == 0
        assert exc_info.value.resolution == resolution
        assert "[0, 15]" in str(exc_info.value)

    def test_engine_error_propagates(self, grid):
        def handler(query):
            if distance_of(grid, query) == 1:
                raise EngineUnavailable("Engine daemon exited with status 1")
            return path_measurement("-50")

        engine = FakeEngine(handler)

        with pytest.raises(EngineUnavailable, match="status 1"):
            CoverageSearch(engine, grid).run(make_request())

        assert max(distance_of(grid, q) for q in engine.queries) == 1

    def test_cancel_before_start(self, grid):
        engine = FakeEngine(lambda q: path_measurement("-50"))
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(SearchCancelled):
            CoverageSearch(engine, grid).run(make_request(), cancel)

        assert engine.calls == 0

    def test_cancel_during_ring_stops_further_rings(self, grid):
        cancel = threading.Event()

        def handler(query):
            if distance_of(grid, query) == 1:
                cancel.set()
            return path_measurement("-50")

        engine = FakeEngine(handler)

        with pytest.raises(SearchCancelled):
            CoverageSearch(engine, grid, max_workers=2).run(make_request(), cancel)

        assert all(distance_of(grid, q) <= 1 for q in engine.queries)

    def test_rejects_non_positive_workers(self, grid):
        with pytest.raises(ValueError):
            CoverageSearch(FakeEngine(lambda q: None), grid, max_workers=0)


# ===========================================================================
# Queries and result
# ===========================================================================
class TestQueriesAndResult:
    def test_queries_copy_template_with_cell_centroid(self, grid):
        engine = FakeEngine(within(grid, 0))
        request = make_request()

        CoverageSearch(engine, grid).run(request)

        queries = sorted(engine.queries, key=lambda q: (q.rla, q.rlo))
        assert len(queries) == 7
        for query in queries:
            assert query.kind == "path"
            assert query.f == request.template.f
            assert query.pm == request.template.pm
            assert query.dbm is True
        origin = SpatialCell(index="0,0", resolution=9)
        centroids = [grid.centroid(c) for d in (0, 1) for c in grid.ring(origin, d)]
        assert {(q.rla, q.rlo) for q in queries} == {
            (to_decimal(p.latitude), to_decimal(p.longitude)) for p in centroids
        }

    def test_each_cell_sampled_once(self, grid):
        engine = FakeEngine(within(grid, 3))

        CoverageSearch(engine, grid, max_workers=4).run(make_request())

        receivers = [(q.rla, q.rlo) for q in engine.queries]
        assert len(receivers) == len(set(receivers))

    def test_reach_is_distance_of_farthest_cell(self, grid):
        engine = FakeEngine(within(grid, 1))

        result = CoverageSearch(engine, grid).run(make_request())

        ring_one = grid.ring(result.origin, 1)
        expected = max(geodesic_distance(ORIGIN, grid.centroid(c)) for c in ring_one)
        assert result.reach_m == pytest.approx(expected)
        assert result.resolution == 9

    def test_map_is_read_only(self, grid):
        engine = FakeEngine(within(grid, 0))

        result = CoverageSearch(engine, grid).run(make_request())

        with pytest.raises(TypeError):
            result["0,0"] = Decimal("0")  # type: ignore[index]
        assert result["0,0"] == Decimal("-50")


def test_to_decimal_uses_shortest_repr():
    assert to_decimal(0.1) == Decimal("0.1")
    assert str(to_decimal(-68.82446)) == "-68.82446"
