# ===--------------------------------------------------------------------------------------===#
#
# Part of the Microlens Project, under the Apache License v2.0.
# See https://www.apache.org/licenses/LICENSE-2.0 for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements tabulation of padding sweeps and padding searches.
#
# ===--------------------------------------------------------------------------------------===#

from typing import Any, Dict, List, Optional, Sequence

import logging

import pandas as pd

from microlens.estimator import DEFAULT_BATCH_SIZE, analytic_filling_factor
from microlens.layout import HexagonLayoutBuilder
from microlens.profiles import ResolutionProfile
from microlens.solver import PaddingSolution, run_trial

SWEEP_COLUMNS: List[str] = [
    "padding",
    "filling_factor",
    "analytic_filling_factor",
    "hits",
    "misses",
]


def sweep_padding(
    profile: ResolutionProfile,
    paddings: Sequence[float],
    num_samples: int,
    seed: Optional[int] = None,
    workers: int = 1,
    batch_size: int = DEFAULT_BATCH_SIZE,
    builder: Optional[HexagonLayoutBuilder] = None,
    logger: Optional[logging.Logger] = None,
) -> pd.DataFrame:
    """Estimates the filling factor over a range of paddings.

    Args:
        profile: Profile to simulate.
        paddings: Padding values in arcsec.
        num_samples: Samples per padding.
        seed: Random seed reused for every padding; None for fresh entropy.
        workers: Sampling shards per padding.
        batch_size: Samples per batch.
        builder: Layout builder; a default one is created if None.
        logger: Logger for progress messages.

    Returns:
        A DataFrame with one row per padding and the columns of ``SWEEP_COLUMNS``.
    """
    logger = logger if logger is not None else logging.getLogger(__name__)
    builder = builder if builder is not None else HexagonLayoutBuilder(logger=logger)

    rows: List[Dict[str, Any]] = []
    for padding in paddings:
        result = run_trial(
            profile,
            float(padding),
            num_samples=num_samples,
            seed=seed,
            workers=workers,
            batch_size=batch_size,
            builder=builder,
            logger=logger,
        ).result
        rows.append(
            {
                "padding": float(padding),
                "filling_factor": result.filling_factor,
                "analytic_filling_factor": analytic_filling_factor(profile.side, float(padding)),
                "hits": result.hits,
                "misses": result.misses,
            }
        )
        logger.info(f"padding={float(padding):.6g}: filling factor {result.filling_factor:.6f}")

    return pd.DataFrame(rows, columns=SWEEP_COLUMNS)


def trials_frame(solution: PaddingSolution) -> pd.DataFrame:
    """Tabulates the trials of a padding search, one row per trial."""
    return pd.DataFrame(
        [
            {
                "iteration": trial.iteration,
                "padding": trial.padding,
                "filling_factor": trial.filling_factor,
                "hits": trial.hits,
                "misses": trial.misses,
            }
            for trial in solution.trials
        ],
        columns=["iteration", "padding", "filling_factor", "hits", "misses"],
    )
