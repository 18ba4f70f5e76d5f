# ===--------------------------------------------------------------------------------------===#
#
# Part of the Microlens Project, under the Apache License v2.0.
# See https://www.apache.org/licenses/LICENSE-2.0 for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#

"""Tests for stitching the outer ring into the sample-space polygon."""

import numpy as np
import pytest
from matplotlib.path import Path

from microlens.boundary import (
    CLOSE,
    LINE_TO,
    MOVE_TO,
    SampleSpaceBoundary,
    exterior_vertex_table,
    sample_space,
)
from microlens.errors import DegenerateRing
from microlens.hexagon import RegularHexagon
from microlens.layout import HexagonLayoutBuilder
from microlens.profiles import HIGH_RESOLUTION, STANDARD_RESOLUTION, ResolutionProfile


@pytest.fixture
def cluster():
    return HexagonLayoutBuilder().build(STANDARD_RESOLUTION, 0.04)


def _is_contiguous(indices) -> bool:
    return all((b - a) % 6 == 1 for a, b in zip(indices, indices[1:]))


def test_exterior_table_first_ring():
    assert exterior_vertex_table(6) == (
        (1, 2, 3, 4),
        (2, 3, 4, 5),
        (3, 4, 5, 0),
        (4, 5, 0, 1),
        (5, 0, 1, 2),
        (0, 1, 2, 3),
    )


def test_exterior_table_second_ring():
    table = exterior_vertex_table(12)

    assert len(table) == 12
    # corners expose three edges, side members two
    assert [len(indices) for indices in table] == [4, 3] * 6
    assert all(_is_contiguous(indices) for indices in table)


@pytest.mark.parametrize("ring_size", [0, 2, 3, 7, 8])
def test_exterior_table_unknown_size(ring_size):
    with pytest.raises(DegenerateRing):
        exterior_vertex_table(ring_size)


def test_standard_boundary(cluster):
    polygon = SampleSpaceBoundary().build(cluster.outer_ring)

    assert len(polygon) == 18
    assert polygon.duplicates_removed == 6
    assert len(np.unique(np.round(polygon.vertices, 6), axis=0)) == 18

    closed = polygon.closed_vertices
    assert len(closed) == 19
    assert closed[0] == pytest.approx(closed[-1])


def test_boundary_vertices_come_from_outer_ring(cluster):
    polygon = SampleSpaceBoundary().build(cluster.outer_ring)
    ring_vertices = np.vstack([hexagon.vertices for hexagon in cluster.outer_ring])
    for vertex in polygon.vertices:
        assert np.min(np.hypot(*(ring_vertices - vertex).T)) < 1e-9


def test_boundary_area_is_union_of_padded_hexagons(cluster):
    polygon = sample_space(cluster)
    expected = sum(hexagon.area for hexagon in cluster.outer)
    assert polygon.area == pytest.approx(expected, rel=1e-9)


def test_high_resolution_boundary():
    cluster = HexagonLayoutBuilder().build(HIGH_RESOLUTION, 0.01)
    polygon = sample_space(cluster)

    assert len(polygon) == 30
    assert polygon.duplicates_removed == 12
    assert polygon.area == pytest.approx(sum(hexagon.area for hexagon in cluster.outer), rel=1e-9)


def test_boundary_contains_every_lens(cluster):
    polygon = sample_space(cluster)
    for hexagon in cluster.outer:
        assert polygon.contains_points(hexagon.vertices).all()
        assert polygon.contains(hexagon.center)

    xmin, ymin, xmax, ymax = polygon.bounds
    assert not polygon.contains((xmin - 1.0, ymin - 1.0))
    assert not polygon.contains((xmax + 1.0, 0.5 * (ymin + ymax)))


def test_segments(cluster):
    polygon = sample_space(cluster)
    segments = polygon.segments()

    assert len(segments) == len(polygon) + 1
    assert segments[0][0] == MOVE_TO
    assert all(kind == LINE_TO for kind, _, _ in segments[1:-1])
    assert segments[-1][0] == CLOSE
    assert segments[-1][1:] == pytest.approx(segments[0][1:])


def test_to_path(cluster):
    polygon = sample_space(cluster)
    path = polygon.to_path()

    assert path.codes[0] == Path.MOVETO
    assert path.codes[-1] == Path.CLOSEPOLY
    assert len(path.vertices) == len(polygon) + 1
    assert path.contains_point(cluster.inner[3].center)


def test_short_ring_is_rejected(cluster):
    with pytest.raises(DegenerateRing):
        SampleSpaceBoundary().build(cluster.outer_ring[:2])
    with pytest.raises(DegenerateRing):
        SampleSpaceBoundary().build([])


def test_ring_size_without_table(cluster):
    with pytest.raises(DegenerateRing):
        SampleSpaceBoundary().build(cluster.outer_ring[:3])


def test_coincident_vertices_are_rejected():
    collapsed = RegularHexagon(np.ones((6, 2)), hex_id=0)
    with pytest.raises(DegenerateRing):
        SampleSpaceBoundary().build([collapsed] * 6)


def test_single_ring_sample_space():
    profile = ResolutionProfile("single", side=0.2, filling_factor=0.8, ring_count=1)
    cluster = HexagonLayoutBuilder().build(profile, 0.05)
    polygon = sample_space(cluster)

    assert len(polygon) == 6
    assert polygon.duplicates_removed == 0
    assert np.allclose(polygon.vertices, cluster.outer[0].vertices)
