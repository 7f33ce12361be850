"""Tests for the H3 HexGrid adapter, alone and driving a coverage search."""

from __future__ import annotations

from decimal import Decimal

import h3
import pytest

from domain.coverage.services import CoverageSearch
from domain.coverage.value_objects import CoverageRequest, GeoPoint
from infrastructure.hexgrid import H3HexGrid
from tests.fakes import FakeEngine, make_parameter_set, path_measurement

# Transmitter of the engine's reference request
SITE = GeoPoint(latitude=44.73566, longitude=-68.82446)


@pytest.fixture
def grid() -> H3HexGrid:
    return H3HexGrid()


def test_cell_at_matches_h3(grid):
    cell = grid.cell_at(SITE, 9)

    assert cell.index == h3.latlng_to_cell(SITE.latitude, SITE.longitude, 9)
    assert cell.resolution == 9


def test_ring_zero_is_the_cell(grid):
    cell = grid.cell_at(SITE, 9)

    assert grid.ring(cell, 0) == [cell]


@pytest.mark.parametrize("distance", [1, 2, 3])
def test_ring_sizes(grid, distance):
    cell = grid.cell_at(SITE, 9)

    ring = grid.ring(cell, distance)

    assert len(ring) == 6 * distance
    assert all(h3.grid_distance(cell.index, c.index) == distance for c in ring)


def test_ring_is_sorted(grid):
    ring = grid.ring(grid.cell_at(SITE, 8), 2)

    assert [c.index for c in ring] == sorted(c.index for c in ring)


def test_ring_negative_distance_raises(grid):
    with pytest.raises(ValueError):
        grid.ring(grid.cell_at(SITE, 9), -1)


def test_centroid_lies_in_cell(grid):
    cell = grid.cell_at(SITE, 7)

    centroid = grid.centroid(cell)

    assert grid.cell_at(centroid, 7) == cell
    assert centroid.latitude == pytest.approx(SITE.latitude, abs=0.05)
    assert centroid.longitude == pytest.approx(SITE.longitude, abs=0.05)


def test_search_over_h3_terminates_after_empty_ring(grid):
    origin = grid.cell_at(SITE, 9)

    def handler(query):
        cell = grid.cell_at(GeoPoint(latitude=float(query.rla), longitude=float(query.rlo)), 9)
        distance = h3.grid_distance(origin.index, cell.index)
        return path_measurement("-60" if distance <= 2 else "-100")

    engine = FakeEngine(handler)
    request = CoverageRequest(
        template=make_parameter_set(),
        origin=SITE,
        resolution=9,
        threshold=Decimal("-90"),
    )

    result = CoverageSearch(engine, grid).run(request)

    assert len(result) == 19
    assert engine.calls == 37
    assert origin.index in result
    # Resolution 9 cells are ~170 m across; two rings out is a few hundred metres
    assert 200 < result.reach_m < 1000
