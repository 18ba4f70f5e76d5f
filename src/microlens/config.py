# ===--------------------------------------------------------------------------------------===#
#
# Part of the Microlens Project, under the Apache License v2.0.
# See https://www.apache.org/licenses/LICENSE-2.0 for license information.
# SPDX-License-Identifier: Apache-2.0
# ===--------------------------------------------------------------------------------------===#
#
"""YAML configuration of simulation runs and custom resolution profiles."""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from microlens.errors import ConfigError
from microlens.estimator import DEFAULT_BATCH_SIZE
from microlens.layout import DEFAULT_CANVAS_SIZE, DEFAULT_MARGIN
from microlens.profiles import PRESETS, ResolutionProfile


@dataclass
class SimulationConfig:
    """Configuration block for a simulation or padding search."""

    profile: str = "standard"
    padding: Optional[float] = None
    num_samples: int = 100_000
    seed: Optional[int] = None
    workers: int = 1
    batch_size: int = DEFAULT_BATCH_SIZE
    tolerance: float = 0.005
    max_iterations: int = 30
    canvas_size: float = DEFAULT_CANVAS_SIZE
    margin: float = DEFAULT_MARGIN

    def validate(self) -> None:
        """Raises :class:`ConfigError` on values no run can use."""
        if self.num_samples <= 0:
            raise ConfigError(f"num_samples must be positive, got {self.num_samples}.")
        if self.batch_size <= 0:
            raise ConfigError(f"batch_size must be positive, got {self.batch_size}.")
        if self.workers < 0:
            raise ConfigError(f"workers must be non-negative, got {self.workers}.")
        if self.tolerance <= 0:
            raise ConfigError(f"tolerance must be positive, got {self.tolerance}.")
        if self.max_iterations < 1:
            raise ConfigError(f"max_iterations must be at least 1, got {self.max_iterations}.")
        if self.padding is not None and self.padding < 0:
            raise ConfigError(f"padding must be non-negative, got {self.padding}.")
        if self.canvas_size <= 0:
            raise ConfigError(f"canvas_size must be positive, got {self.canvas_size}.")


def simulation_config_from_dict(raw: Optional[Dict[str, Any]]) -> SimulationConfig:
    """Builds a :class:`SimulationConfig`, keeping defaults for missing fields."""
    raw = raw or {}
    if not isinstance(raw, dict):
        raise ConfigError(f"SIMULATION_CONFIG must be a mapping, got {type(raw).__name__}.")
    default_cfg: SimulationConfig = SimulationConfig()
    return SimulationConfig(
        **{f.name: raw.get(f.name, getattr(default_cfg, f.name)) for f in fields(SimulationConfig)}
    )


def profiles_from_dict(raw: Optional[Dict[str, Any]]) -> Dict[str, ResolutionProfile]:
    """Merges the presets with the profiles declared in a configuration."""
    profiles: Dict[str, ResolutionProfile] = dict(PRESETS)
    if not raw:
        return profiles
    if not isinstance(raw, dict):
        raise ConfigError(f"PROFILES must be a mapping, got {type(raw).__name__}.")
    for name, block in raw.items():
        if not isinstance(block, dict):
            raise ConfigError(f"Profile '{name}' must be a mapping, got {type(block).__name__}.")
        key: str = str(name).strip().lower()
        profiles[key] = ResolutionProfile.from_dict(key, block)
    return profiles


def load_config(
    cfg_path: Optional[str | Path],
) -> Tuple[SimulationConfig, Dict[str, ResolutionProfile]]:
    """Loads a YAML configuration file.

    The file may hold a ``SIMULATION_CONFIG`` block and a ``PROFILES`` block.
    Without a path, defaults and the built-in presets are returned.

    Args:
        cfg_path: Path to the ``.yaml`` file, or None.

    Returns:
        The simulation configuration and the available profiles by name.

    Raises:
        ConfigError: If the file cannot be read or parsed.
        InvalidProfile: If a declared profile is invalid.
    """
    if cfg_path is None:
        return SimulationConfig(), dict(PRESETS)

    cfg_path = Path(cfg_path)
    try:
        with open(cfg_path, "r") as f:
            config: Any = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as err:
        raise ConfigError(f"Could not load config '{cfg_path}': {err}") from err

    if not isinstance(config, dict):
        raise ConfigError(f"Config '{cfg_path}' must contain a mapping at the top level.")

    return (
        simulation_config_from_dict(config.get("SIMULATION_CONFIG")),
        profiles_from_dict(config.get("PROFILES")),
    )
