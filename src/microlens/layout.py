# ===--------------------------------------------------------------------------------------===#
#
# Part of the Microlens Project, under the Apache License v2.0.
# See https://www.apache.org/licenses/LICENSE-2.0 for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements the placement of inner and padded hexagons in a ring cluster.
#
# ===--------------------------------------------------------------------------------------===#

from typing import Dict, List, Optional, Tuple

from dataclasses import dataclass
import logging
import math

from microlens.errors import InvalidProfile
from microlens.hexagon import Placement, RegularHexagon
from microlens.profiles import ResolutionProfile

# Rotating the canonical hexagon by 90 degrees puts a vertex at the top and
# bottom and flat edges on the left and right, so hexagons in a row are tangent.
LAYOUT_ROTATION: float = math.pi / 2.0

DEFAULT_CANVAS_SIZE: float = 900.0
DEFAULT_MARGIN: float = 100.0

# Axial neighbour offsets, indexed so that direction d points at d * 60 degrees.
AXIAL_DIRECTIONS: Tuple[Tuple[int, int], ...] = (
    (1, 0),
    (0, 1),
    (-1, 1),
    (-1, 0),
    (0, -1),
    (1, -1),
)
# The outermost ring is walked starting from its 240 degree corner.
RING_START_DIRECTION: int = 4

Axial = Tuple[int, int]


def hex_distance(pos: Axial) -> int:
    """Number of hexagon steps between ``pos`` and the cluster centre."""
    q, r = pos
    return max(abs(q), abs(r), abs(q + r))


def cluster_positions(ring_count: int) -> List[Axial]:
    """Axial positions of a cluster with ``ring_count`` rings, in row-major order.

    Rows run along the 0 degree axis; rows are ordered by their offset along
    the 60 degree axis and hexagons within a row from left to right.
    """
    span: int = ring_count - 1
    positions: List[Axial] = [
        (q, r)
        for r in range(-span, span + 1)
        for q in range(-span, span + 1)
        if hex_distance((q, r)) <= span
    ]
    return positions


def ring_walk(ring_count: int) -> List[Axial]:
    """Axial positions of the outermost ring in walking order.

    The walk starts at the 240 degree corner and turns by 60 degrees at every
    corner, so ring position ``p`` of the first ring sits at ``240 + 60 * p``
    degrees around the centre.
    """
    span: int = ring_count - 1
    if span == 0:
        return [(0, 0)]

    dq, dr = AXIAL_DIRECTIONS[RING_START_DIRECTION]
    pos: Axial = (dq * span, dr * span)
    walk: List[Axial] = []
    for side in range(6):
        step_q, step_r = AXIAL_DIRECTIONS[side]
        for _ in range(span):
            walk.append(pos)
            pos = (pos[0] + step_q, pos[1] + step_r)
    return walk


@dataclass(frozen=True)
class HexCluster:
    """Placed hexagons of one simulation run.

    Attributes:
        profile: Profile the cluster was built for.
        padding: Padding in arcsec added to the circumradius of each lens.
        conversion: Output units per arcsec.
        inner: Active microlens hexagons, in row-major order; ``inner[i].id == i``.
        outer: Padded hexagons sharing their centre with ``inner[i]``.
        positions: Axial grid position of each hexagon.
        ring: Ids of the outermost ring in walking order.
    """

    profile: ResolutionProfile
    padding: float
    conversion: float
    inner: Tuple[RegularHexagon, ...]
    outer: Tuple[RegularHexagon, ...]
    positions: Tuple[Axial, ...]
    ring: Tuple[int, ...]

    @property
    def outer_ring(self) -> Tuple[RegularHexagon, ...]:
        return tuple(self.outer[idx] for idx in self.ring)

    def neighbours(self) -> List[Tuple[int, int]]:
        """Pairs ``(i, j)``, ``i < j``, of edge-adjacent cluster positions."""
        index: Dict[Axial, int] = {pos: idx for idx, pos in enumerate(self.positions)}
        pairs: List[Tuple[int, int]] = []
        for idx, (q, r) in enumerate(self.positions):
            for dq, dr in AXIAL_DIRECTIONS:
                other: Optional[int] = index.get((q + dq, r + dr))
                if other is not None and idx < other:
                    pairs.append((idx, other))
        return pairs


class HexagonLayoutBuilder:
    """Converts a resolution profile and a padding into a :class:`HexCluster`.

    All placements are computed in arcsec, then multiplied by the conversion
    factor and offset by a fixed margin. The conversion factor maps the width
    of one row of the cluster, ``2 * b + 4 * (N - 1) * pb``, onto the canvas,
    where ``b`` and ``pb`` are the apothems of the inner and padded hexagons.
    """

    def __init__(
        self,
        canvas_size: float = DEFAULT_CANVAS_SIZE,
        margin: float = DEFAULT_MARGIN,
        logger: Optional[logging.Logger] = None,
    ):
        if canvas_size <= 0:
            raise ValueError(f"canvas_size must be positive, got {canvas_size}.")
        self.canvas_size: float = float(canvas_size)
        self.margin: float = float(margin)
        self.logger: logging.Logger = logger if logger is not None else logging.getLogger(__name__)

    def __repr__(self):
        return (
            f"{self.__class__.__name__}"
            "("
            f"canvas_size={self.canvas_size},"
            f"margin={self.margin}"
            ")"
        )

    def build(self, profile: ResolutionProfile, padding: float) -> HexCluster:
        """Places the inner and padded hexagons of a cluster.

        Args:
            profile: Profile providing the side length and ring count.
            padding: Padding in arcsec, i.e. half the gap between two lenses
                measured along their circumradius.

        Returns:
            The placed cluster.

        Raises:
            InvalidProfile: If the profile is invalid or the padding negative.
        """
        profile.validate()
        if not math.isfinite(padding) or padding < 0:
            raise InvalidProfile(f"Padding must be a non-negative number, got {padding}.")

        radius: float = profile.side
        padded_radius: float = radius + padding
        bisector: float = math.sqrt(3) / 2.0 * radius
        padded_bisector: float = math.sqrt(3) / 2.0 * padded_radius
        span: int = profile.ring_count - 1

        width: float = 2 * bisector + 4 * span * padded_bisector
        conversion: float = self.canvas_size / width

        # cluster centre in arcsec; the top row sits one padded radius down
        centre_x: float = bisector + 2 * span * padded_bisector
        centre_y: float = padded_radius + 1.5 * span * padded_radius

        positions: List[Axial] = cluster_positions(profile.ring_count)
        inner: List[RegularHexagon] = []
        outer: List[RegularHexagon] = []
        for hex_id, (q, r) in enumerate(positions):
            cx: float = centre_x + 2 * q * padded_bisector + r * padded_bisector
            cy: float = centre_y + 1.5 * r * padded_radius
            translation: Tuple[float, float] = (
                self.margin + cx * conversion,
                self.margin + cy * conversion,
            )
            unit: RegularHexagon = RegularHexagon.create(hex_id)
            inner.append(
                unit.transform(
                    Placement(translation, LAYOUT_ROTATION, radius * conversion)
                )
            )
            outer.append(
                unit.transform(
                    Placement(translation, LAYOUT_ROTATION, padded_radius * conversion)
                )
            )

        index: Dict[Axial, int] = {pos: idx for idx, pos in enumerate(positions)}
        ring: Tuple[int, ...] = tuple(index[pos] for pos in ring_walk(profile.ring_count))

        self.logger.debug(
            f"Built cluster for profile '{profile.name}' with padding={padding:.6g}: "
            f"{len(inner)} lenses, conversion={conversion:.6g} units/arcsec."
        )

        return HexCluster(
            profile=profile,
            padding=float(padding),
            conversion=conversion,
            inner=tuple(inner),
            outer=tuple(outer),
            positions=tuple(positions),
            ring=ring,
        )
