# ===--------------------------------------------------------------------------------------===#
#
# Part of the Microlens Project, under the Apache License v2.0.
# See https://www.apache.org/licenses/LICENSE-2.0 for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements the sample-space polygon stitched around the outer hexagon ring.
#
# ===--------------------------------------------------------------------------------------===#

from typing import List, Optional, Sequence, Set, Tuple

from dataclasses import dataclass
from functools import lru_cache
import logging

import numpy as np
from matplotlib.path import Path

from microlens.errors import DegenerateRing
from microlens.hexagon import NUM_VERTICES, RegularHexagon
from microlens.layout import AXIAL_DIRECTIONS, HexCluster, cluster_positions, ring_walk
from microlens.utils.geometry_utils import (
    as_points,
    boundary_tolerance,
    bounding_box,
    points_coincide,
    points_in_polygon,
    polygon_area,
)

MIN_RING_SIZE: int = 3

MOVE_TO: str = "move"
LINE_TO: str = "line"
CLOSE: str = "close"


def _edge_direction(edge: int) -> int:
    """Axial direction faced by edge ``edge`` (between vertices edge and edge + 1).

    With the 90 degree layout rotation vertex k sits at 90 + 60k degrees, so the
    outward normal of edge k points at 120 + 60k degrees.
    """
    return (edge + 2) % NUM_VERTICES


@lru_cache(maxsize=None)
def exterior_vertex_table(ring_size: int) -> Tuple[Tuple[int, ...], ...]:
    """Maps each position of an outer ring to the vertex indices on its exterior side.

    A hexagon's exterior edges are those with no cluster neighbour behind them;
    they form one contiguous run, and the selected vertices are the endpoints
    of that run in increasing index order. For the six-hexagon ring this gives
    ``(1, 2, 3, 4), (2, 3, 4, 5), (3, 4, 5, 0), (4, 5, 0, 1), (5, 0, 1, 2),
    (0, 1, 2, 3)``.

    Args:
        ring_size: Number of hexagons in the outermost ring (a multiple of 6).

    Returns:
        One tuple of vertex indices per ring position.

    Raises:
        DegenerateRing: If no hexagonal ring has ``ring_size`` members.
    """
    if ring_size < MIN_RING_SIZE or ring_size % 6 != 0:
        raise DegenerateRing(f"No exterior vertex table for a ring of {ring_size} hexagons.")

    ring_count: int = ring_size // 6 + 1
    occupied: Set[Tuple[int, int]] = set(cluster_positions(ring_count))

    table: List[Tuple[int, ...]] = []
    for q, r in ring_walk(ring_count):
        exterior: List[bool] = []
        for edge in range(NUM_VERTICES):
            dq, dr = AXIAL_DIRECTIONS[_edge_direction(edge)]
            exterior.append((q + dq, r + dr) not in occupied)

        first: int = next(
            edge for edge in range(NUM_VERTICES) if exterior[edge] and not exterior[edge - 1]
        )
        run: int = 0
        while exterior[(first + run) % NUM_VERTICES]:
            run += 1
        table.append(tuple((first + j) % NUM_VERTICES for j in range(run + 1)))

    return tuple(table)


@dataclass(frozen=True)
class SampleSpacePolygon:
    """Closed polygon bounding the Monte Carlo sample space.

    Attributes:
        vertices: (M, 2) array of distinct vertices; the closing edge back to
            the first vertex is implicit.
        duplicates_removed: Number of seam vertices dropped while stitching.
    """

    vertices: np.ndarray
    duplicates_removed: int = 0

    def __len__(self) -> int:
        return len(self.vertices)

    @property
    def closed_vertices(self) -> np.ndarray:
        """Vertices with the first one repeated at the end."""
        return np.vstack((self.vertices, self.vertices[:1]))

    def segments(self) -> List[Tuple[str, float, float]]:
        """Path segments: a move to the first vertex, lines to the rest, then a close."""
        segs: List[Tuple[str, float, float]] = [
            (MOVE_TO if idx == 0 else LINE_TO, float(x), float(y))
            for idx, (x, y) in enumerate(self.vertices)
        ]
        x0, y0 = self.vertices[0]
        segs.append((CLOSE, float(x0), float(y0)))
        return segs

    def to_path(self) -> Path:
        """The polygon as a closed matplotlib path, for rendering."""
        codes: List[int] = [Path.MOVETO] + [Path.LINETO] * (len(self.vertices) - 1) + [Path.CLOSEPOLY]
        return Path(self.closed_vertices, codes)

    @property
    def area(self) -> float:
        return polygon_area(self.vertices)

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """``(xmin, ymin, xmax, ymax)``."""
        return bounding_box(self.vertices)

    def contains_points(self, points: np.ndarray | Sequence[Sequence[float]]) -> np.ndarray:
        return points_in_polygon(self.vertices, as_points(points))

    def contains(self, point: Sequence[float]) -> bool:
        return bool(self.contains_points(point)[0])


class SampleSpaceBoundary:
    """Stitches the outer ring of padded hexagons into one closed polygon.

    For each hexagon in ring order the vertices on its exterior side are taken
    from :func:`exterior_vertex_table`. The first of them coincides with the
    last vertex taken from the previous hexagon (the seam) and is skipped, so
    the result has no duplicate points and does not self-intersect.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger: logging.Logger = logger if logger is not None else logging.getLogger(__name__)

    def build(self, outer_ring: Sequence[RegularHexagon]) -> SampleSpacePolygon:
        """Builds the sample-space polygon.

        Args:
            outer_ring: Placed padded hexagons of the outermost ring, in walking order.

        Returns:
            The closed polygon.

        Raises:
            DegenerateRing: If the ring has fewer than 3 hexagons, no lookup
                table exists for its size, or two consecutive vertices of one
                hexagon coincide.
        """
        if len(outer_ring) < MIN_RING_SIZE:
            raise DegenerateRing(
                f"Outer ring needs at least {MIN_RING_SIZE} hexagons, got {len(outer_ring)}."
            )
        table: Tuple[Tuple[int, ...], ...] = exterior_vertex_table(len(outer_ring))
        atol: float = max(boundary_tolerance(hexagon.vertices) for hexagon in outer_ring)

        points: List[np.ndarray] = []
        removed: int = 0
        for hexagon, indices in zip(outer_ring, table):
            for pos, vertex in enumerate(hexagon.vertices[list(indices)]):
                if points and points_coincide(points[-1], vertex, atol):
                    if pos == 0:
                        removed += 1
                        continue
                    raise DegenerateRing(
                        f"Vertices {indices[pos - 1]} and {indices[pos]} of hexagon {hexagon.id} coincide."
                    )
                points.append(vertex)

        if len(points) > 1 and points_coincide(points[-1], points[0], atol):
            points.pop()
            removed += 1

        if len(points) < MIN_RING_SIZE:
            raise DegenerateRing(f"Stitched boundary has only {len(points)} distinct vertices.")

        self.logger.debug(
            f"Stitched sample space from {len(outer_ring)} hexagons: "
            f"{len(points)} vertices, {removed} seam duplicates removed."
        )
        return SampleSpacePolygon(vertices=np.array(points), duplicates_removed=removed)


def sample_space(
    cluster: HexCluster, boundary: Optional[SampleSpaceBoundary] = None
) -> SampleSpacePolygon:
    """Sample-space polygon of a cluster.

    A single-ring cluster has no ring to stitch; its padded hexagon is the sample space.
    """
    if len(cluster.ring) == 1:
        return SampleSpacePolygon(vertices=np.array(cluster.outer[cluster.ring[0]].vertices))
    boundary = boundary if boundary is not None else SampleSpaceBoundary()
    return boundary.build(cluster.outer_ring)
