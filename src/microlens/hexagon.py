# ===--------------------------------------------------------------------------------------===#
#
# Part of the Microlens Project, under the Apache License v2.0.
# See https://www.apache.org/licenses/LICENSE-2.0 for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements the regular hexagon primitive and its affine placement.
#
# ===--------------------------------------------------------------------------------------===#

from typing import Optional, Sequence, Tuple

from dataclasses import dataclass
import math

import numpy as np

from microlens.errors import InvalidTransform
from microlens.utils.geometry_utils import as_points, points_in_polygon, polygon_area

NUM_VERTICES: int = 6
VERTEX_ANGLE: float = math.pi / 3.0


def _unit_vertices() -> np.ndarray:
    """Returns the six vertices obtained by rotating (1, 0) in steps of 60 degrees."""
    angles: np.ndarray = VERTEX_ANGLE * np.arange(NUM_VERTICES)
    return np.column_stack((np.cos(angles), np.sin(angles)))


UNIT_VERTICES: np.ndarray = _unit_vertices()
UNIT_VERTICES.flags.writeable = False


@dataclass(frozen=True)
class Placement:
    """Affine placement of a hexagon: rotate, then scale, then translate.

    Attributes:
        translation: Offset ``(tx, ty)`` applied last.
        rotation: Counter-clockwise rotation in radians, applied first.
        scale: Uniform scale factor or per-axis ``(sx, sy)`` factors. Differing
            factors produce an oval approximation of the hexagon.
    """

    translation: Tuple[float, float] = (0.0, 0.0)
    rotation: float = 0.0
    scale: float | Tuple[float, float] = 1.0

    @property
    def scale_xy(self) -> Tuple[float, float]:
        if isinstance(self.scale, (int, float)):
            return float(self.scale), float(self.scale)
        sx, sy = self.scale
        return float(sx), float(sy)

    def matrix(self) -> np.ndarray:
        """Composes the placement as a single 3x3 homogeneous matrix T @ S @ R.

        Raises:
            InvalidTransform: If a scale factor is zero or not finite.
        """
        sx, sy = self.scale_xy
        if sx == 0 or sy == 0 or not (math.isfinite(sx) and math.isfinite(sy)):
            raise InvalidTransform(f"Scale factors must be non-zero and finite, got ({sx}, {sy}).")

        cos_t: float = math.cos(self.rotation)
        sin_t: float = math.sin(self.rotation)
        rot: np.ndarray = np.array([[cos_t, -sin_t, 0.0], [sin_t, cos_t, 0.0], [0.0, 0.0, 1.0]])
        scl: np.ndarray = np.diag([sx, sy, 1.0])
        trans: np.ndarray = np.array(
            [[1.0, 0.0, self.translation[0]], [0.0, 1.0, self.translation[1]], [0.0, 0.0, 1.0]]
        )
        return trans @ scl @ rot


class RegularHexagon:
    """A closed six-sided polygon, all sides equal and all interior angles 120 degrees.

    The canonical hexagon is centred at the origin with circumradius 1 and
    vertex ``k`` at ``(cos(k * 60deg), sin(k * 60deg))``. Since it decomposes
    into six equilateral triangles, its circumradius equals its side length.
    Placement is immutable: :meth:`transform` returns a new hexagon.

    Containment treats points on the boundary as inside, so a point on an edge
    shared by two adjacent hexagons belongs to both.

    Attributes:
        id: Ordinal identifier within a cluster, used for diagnostics.
    """

    def __init__(
        self,
        vertices: np.ndarray,
        hex_id: int = 0,
        placement: Optional[Placement] = None,
    ):
        verts: np.ndarray = np.array(vertices, dtype=float)
        if verts.shape != (NUM_VERTICES, 2):
            raise ValueError(f"A hexagon needs {NUM_VERTICES} 2D vertices, got shape {verts.shape}.")
        verts.flags.writeable = False
        self._vertices: np.ndarray = verts
        self.id: int = hex_id
        self.placement: Optional[Placement] = placement

    @classmethod
    def create(cls, hex_id: int = 0) -> "RegularHexagon":
        """Creates the canonical unit hexagon."""
        return cls(UNIT_VERTICES, hex_id=hex_id)

    def __repr__(self):
        cx, cy = self.center
        return (
            f"{self.__class__.__name__}"
            "("
            f"id={self.id},"
            f"center=({cx:.6g}, {cy:.6g}),"
            f"circumradius={self.circumradius:.6g}"
            ")"
        )

    @property
    def vertices(self) -> np.ndarray:
        """Ordered placed vertices as a read-only (6, 2) array."""
        return self._vertices

    @property
    def center(self) -> Tuple[float, float]:
        cx, cy = np.mean(self._vertices, axis=0)
        return float(cx), float(cy)

    @property
    def circumradius(self) -> float:
        """Mean centre-to-vertex distance (exact for uniform placements)."""
        offsets: np.ndarray = self._vertices - np.mean(self._vertices, axis=0)
        return float(np.mean(np.hypot(offsets[:, 0], offsets[:, 1])))

    @property
    def area(self) -> float:
        return polygon_area(self._vertices)

    def transform(self, placement: Placement | np.ndarray) -> "RegularHexagon":
        """Applies an affine placement to every vertex.

        Args:
            placement: A :class:`Placement` or a raw 3x3 homogeneous matrix.

        Returns:
            A new hexagon carrying the same id.

        Raises:
            InvalidTransform: If the placement has a zero scale factor or the
                matrix is singular.
        """
        if isinstance(placement, Placement):
            matrix: np.ndarray = placement.matrix()
        else:
            matrix = np.asarray(placement, dtype=float)
            if matrix.shape != (3, 3):
                raise InvalidTransform(f"Expected a 3x3 matrix, got shape {matrix.shape}.")
            if abs(np.linalg.det(matrix[:2, :2])) < np.finfo(float).tiny:
                raise InvalidTransform("Affine matrix is singular.")
            placement = None

        homogeneous: np.ndarray = np.column_stack((self._vertices, np.ones(NUM_VERTICES)))
        placed: np.ndarray = (homogeneous @ matrix.T)[:, :2]
        return RegularHexagon(placed, hex_id=self.id, placement=placement)

    def contains_points(self, points: np.ndarray | Sequence[Sequence[float]]) -> np.ndarray:
        """Vectorised :meth:`contains` over an (N, 2) batch of points."""
        return points_in_polygon(self._vertices, as_points(points))

    def contains(self, point: Sequence[float]) -> bool:
        """Returns True iff the point lies on or inside the placed hexagon."""
        return bool(self.contains_points(point)[0])
