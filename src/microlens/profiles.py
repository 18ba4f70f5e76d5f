# ===--------------------------------------------------------------------------------------===#
#
# Part of the Microlens Project, under the Apache License v2.0.
# See https://www.apache.org/licenses/LICENSE-2.0 for license information.
# SPDX-License-Identifier: Apache-2.0
# ===--------------------------------------------------------------------------------------===#
#
"""Resolution profiles of the microlens array."""

from dataclasses import dataclass
from typing import Any, Dict, Mapping
import math

from microlens.errors import InvalidProfile


@dataclass(frozen=True)
class ResolutionProfile:
    """Named microlens configuration.

    Attributes:
        name: Profile name.
        side: Side length (= circumradius) of a microlens hexagon in arcsec.
        filling_factor: Target fraction of the array envelope that is live area.
        ring_count: Number of concentric hexagon rings in the cluster, the
            central lens counting as the first ring.
    """

    name: str
    side: float
    filling_factor: float
    ring_count: int

    def validate(self) -> None:
        """Raises :class:`InvalidProfile` if the profile cannot produce a cluster."""
        if not (isinstance(self.side, (int, float)) and math.isfinite(self.side)) or self.side <= 0:
            raise InvalidProfile(f"Profile '{self.name}': side must be positive, got {self.side}.")
        if not (0 < self.filling_factor < 1):
            raise InvalidProfile(
                f"Profile '{self.name}': filling factor must be in (0, 1), got {self.filling_factor}."
            )
        if isinstance(self.ring_count, bool) or not isinstance(self.ring_count, int):
            raise InvalidProfile(
                f"Profile '{self.name}': ring count must be an integer, got {self.ring_count!r}."
            )
        if self.ring_count < 1:
            raise InvalidProfile(
                f"Profile '{self.name}': unsupported ring count {self.ring_count}."
            )

    @classmethod
    def from_dict(cls, name: str, raw: Mapping[str, Any]) -> "ResolutionProfile":
        """Builds and validates a profile from a configuration mapping."""
        try:
            profile = cls(
                name=name,
                side=float(raw["side"]),
                filling_factor=float(raw["filling_factor"]),
                ring_count=raw.get("ring_count", 2),
            )
        except (KeyError, TypeError, ValueError) as err:
            raise InvalidProfile(f"Profile '{name}' is malformed: {err}") from err
        profile.validate()
        return profile


STANDARD_RESOLUTION: ResolutionProfile = ResolutionProfile(
    name="standard", side=0.2272, filling_factor=0.85, ring_count=2
)
HIGH_RESOLUTION: ResolutionProfile = ResolutionProfile(
    name="high", side=0.1365, filling_factor=0.93, ring_count=3
)

PRESETS: Dict[str, ResolutionProfile] = {
    STANDARD_RESOLUTION.name: STANDARD_RESOLUTION,
    HIGH_RESOLUTION.name: HIGH_RESOLUTION,
}


def get_profile(name: str, profiles: Mapping[str, ResolutionProfile] = PRESETS) -> ResolutionProfile:
    """Looks up a profile by name (case-insensitive)."""
    key: str = name.strip().lower()
    if key not in profiles:
        raise InvalidProfile(f"Unknown profile '{name}'. Available: {sorted(profiles)}.")
    return profiles[key]
