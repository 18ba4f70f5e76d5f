# ===--------------------------------------------------------------------------------------===#
#
# Part of the Microlens Project, under the Apache License v2.0.
# See https://www.apache.org/licenses/LICENSE-2.0 for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements vectorised polygon routines shared by hexagons and the sample space.
#
# ===--------------------------------------------------------------------------------------===#

from typing import Optional, Sequence, Tuple

import numpy as np

# Boundary tolerance relative to the largest absolute coordinate of a polygon.
BOUNDARY_RTOL: float = 1e-9


def as_points(points: np.ndarray | Sequence[float] | Sequence[Sequence[float]]) -> np.ndarray:
    """Converts a single point or a batch of points into an (N, 2) float array.

    Args:
        points: A point ``(x, y)`` or a sequence/array of points.

    Returns:
        A 2D float array with one point per row.

    Raises:
        ValueError: If the input does not describe 2D points.
    """
    arr: np.ndarray = np.asarray(points, dtype=float)
    if arr.ndim == 1:
        arr = arr.reshape(1, -1)
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise ValueError(f"Expected 2D points, got array of shape {arr.shape}.")
    return arr


def boundary_tolerance(vertices: np.ndarray) -> float:
    """Returns the absolute on-boundary tolerance for a polygon."""
    return BOUNDARY_RTOL * max(1.0, float(np.max(np.abs(vertices))))


def points_on_boundary(
    vertices: np.ndarray, points: np.ndarray, atol: Optional[float] = None
) -> np.ndarray:
    """Flags the points lying on an edge of a closed polygon.

    A point is on an edge when its distance to the supporting line is within
    ``atol`` and its projection falls inside the segment (with the same slack).

    Args:
        vertices: (E, 2) array of polygon vertices; the closing edge is implicit.
        points: (N, 2) array of query points.
        atol: Absolute distance tolerance. Defaults to :func:`boundary_tolerance`.

    Returns:
        Boolean array of length N.
    """
    if atol is None:
        atol = boundary_tolerance(vertices)

    start: np.ndarray = vertices
    edge: np.ndarray = np.roll(vertices, -1, axis=0) - vertices
    edge_len: np.ndarray = np.hypot(edge[:, 0], edge[:, 1])

    rel: np.ndarray = points[:, None, :] - start[None, :, :]
    cross: np.ndarray = edge[None, :, 0] * rel[..., 1] - edge[None, :, 1] * rel[..., 0]
    dot: np.ndarray = np.einsum("nej,ej->ne", rel, edge)

    slack: np.ndarray = atol * edge_len[None, :]
    on_line: np.ndarray = np.abs(cross) <= slack
    within: np.ndarray = (dot >= -slack) & (dot <= edge_len[None, :] ** 2 + slack)
    return np.any(on_line & within, axis=1)


def points_in_polygon(
    vertices: np.ndarray, points: np.ndarray, atol: Optional[float] = None
) -> np.ndarray:
    """Point-in-polygon test using even-odd ray casting.

    Points on the boundary are classified as inside, so two polygons sharing an
    edge both contain the points of that edge.

    Args:
        vertices: (E, 2) array of polygon vertices; the closing edge is implicit.
        points: (N, 2) array of query points.
        atol: Absolute boundary tolerance. Defaults to :func:`boundary_tolerance`.

    Returns:
        Boolean array of length N.
    """
    if len(points) == 0:
        return np.zeros(0, dtype=bool)

    xa, ya = vertices[:, 0], vertices[:, 1]
    nxt: np.ndarray = np.roll(vertices, -1, axis=0)
    xb, yb = nxt[:, 0], nxt[:, 1]
    x: np.ndarray = points[:, 0:1]
    y: np.ndarray = points[:, 1:2]

    straddles: np.ndarray = (ya > y) != (yb > y)
    with np.errstate(divide="ignore", invalid="ignore"):
        x_cross: np.ndarray = xa + (y - ya) * (xb - xa) / (yb - ya)
    crossings: np.ndarray = straddles & (x < x_cross)
    inside: np.ndarray = np.count_nonzero(crossings, axis=1) % 2 == 1

    return inside | points_on_boundary(vertices, points, atol)


def polygon_area(vertices: np.ndarray) -> float:
    """Returns the unsigned area of a simple polygon (shoelace formula)."""
    x: np.ndarray = vertices[:, 0]
    y: np.ndarray = vertices[:, 1]
    return 0.5 * abs(float(np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1))))


def bounding_box(vertices: np.ndarray) -> Tuple[float, float, float, float]:
    """Returns ``(xmin, ymin, xmax, ymax)`` of a vertex array."""
    xmin, ymin = np.min(vertices, axis=0)
    xmax, ymax = np.max(vertices, axis=0)
    return float(xmin), float(ymin), float(xmax), float(ymax)


def points_coincide(p: np.ndarray, q: np.ndarray, atol: float) -> bool:
    """Checks whether two points are equal within an absolute tolerance."""
    return bool(np.hypot(p[0] - q[0], p[1] - q[1]) <= atol)
