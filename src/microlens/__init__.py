# ===--------------------------------------------------------------------------------------===#
#
# Part of the Microlens Project, under the Apache License v2.0.
# See https://www.apache.org/licenses/LICENSE-2.0 for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#

from microlens.boundary import SampleSpaceBoundary, SampleSpacePolygon, exterior_vertex_table, sample_space
from microlens.errors import (
    ConfigError,
    DegenerateRing,
    InvalidProfile,
    InvalidTransform,
    MicrolensError,
    NoConvergence,
)
from microlens.estimator import (
    EstimateResult,
    FillingFactorEstimator,
    SampleCounters,
    analytic_filling_factor,
    estimate,
)
from microlens.hexagon import Placement, RegularHexagon
from microlens.layout import HexagonLayoutBuilder, HexCluster
from microlens.profiles import HIGH_RESOLUTION, STANDARD_RESOLUTION, ResolutionProfile, get_profile
from microlens.solver import PaddingSolution, analytic_padding, run_trial, solve_for_padding

__version__ = "0.1.0"
