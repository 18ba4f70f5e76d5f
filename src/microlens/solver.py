# ===--------------------------------------------------------------------------------------===#
#
# Part of the Microlens Project, under the Apache License v2.0.
# See https://www.apache.org/licenses/LICENSE-2.0 for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements the padding search driving the filling factor simulation.
#
# ===--------------------------------------------------------------------------------------===#

from typing import List, Optional

from dataclasses import dataclass, field
import logging
import math
import threading

from microlens.boundary import SampleSpacePolygon, sample_space
from microlens.errors import NoConvergence
from microlens.estimator import DEFAULT_BATCH_SIZE, EstimateResult, FillingFactorEstimator
from microlens.layout import HexagonLayoutBuilder, HexCluster
from microlens.profiles import ResolutionProfile


@dataclass(frozen=True)
class Simulation:
    """Layout, sample space and estimate of a single padding trial."""

    cluster: HexCluster
    boundary: SampleSpacePolygon
    result: EstimateResult


@dataclass(frozen=True)
class PaddingTrial:
    """One step of the padding search."""

    iteration: int
    padding: float
    filling_factor: float
    hits: int
    misses: int


@dataclass
class PaddingSolution:
    """Result of :func:`solve_for_padding`.

    Attributes:
        padding: Padding in arcsec.
        filling_factor: Empirical filling factor reached at that padding.
        iterations: Number of trials run.
        trials: Every trial, in order.
    """

    padding: float
    filling_factor: float
    iterations: int
    trials: List[PaddingTrial] = field(default_factory=list)


def analytic_padding(profile: ResolutionProfile) -> float:
    """Padding at which a uniform tiling reaches the profile's filling factor exactly."""
    profile.validate()
    return profile.side * (1.0 / math.sqrt(profile.filling_factor) - 1.0)


def run_trial(
    profile: ResolutionProfile,
    padding: float,
    num_samples: int,
    seed: Optional[int] = None,
    workers: int = 1,
    batch_size: int = DEFAULT_BATCH_SIZE,
    builder: Optional[HexagonLayoutBuilder] = None,
    cancel_event: Optional[threading.Event] = None,
    logger: Optional[logging.Logger] = None,
) -> Simulation:
    """Builds the layout and sample space for ``padding`` and estimates its filling factor."""
    builder = builder if builder is not None else HexagonLayoutBuilder(logger=logger)
    cluster: HexCluster = builder.build(profile, padding)
    boundary: SampleSpacePolygon = sample_space(cluster)
    estimator = FillingFactorEstimator(
        cluster.inner, boundary, batch_size=batch_size, logger=logger
    )
    result: EstimateResult = estimator.estimate(
        num_samples=num_samples, seed=seed, workers=workers, cancel_event=cancel_event
    )
    return Simulation(cluster=cluster, boundary=boundary, result=result)


def solve_for_padding(
    profile: ResolutionProfile,
    tolerance: float = 0.005,
    max_iterations: int = 30,
    num_samples: int = 100_000,
    seed: Optional[int] = None,
    workers: int = 1,
    batch_size: int = DEFAULT_BATCH_SIZE,
    builder: Optional[HexagonLayoutBuilder] = None,
    cancel_event: Optional[threading.Event] = None,
    logger: Optional[logging.Logger] = None,
) -> PaddingSolution:
    """Finds the padding at which the empirical filling factor meets the profile's target.

    The filling factor decreases monotonically with the padding, so the search
    bisects ``[0, profile.side]``, re-running layout, sample space and
    estimation at every trial. With a seed every trial reuses it, which keeps
    the sampled noise identical across trials.

    Args:
        profile: Profile providing side length, ring count and target filling factor.
        tolerance: Accepted absolute deviation from the target filling factor.
        max_iterations: Maximum number of trials.
        num_samples: Samples drawn per trial.
        seed: Random seed; None uses fresh entropy for every trial.
        workers: Sampling shards per trial (see :meth:`FillingFactorEstimator.estimate`).
        batch_size: Samples per batch.
        builder: Layout builder; a default one is created if None.
        cancel_event: Optional event forwarded to every estimation run.
        logger: Logger for trial progress.

    Returns:
        The padding found, with the history of trials.

    Raises:
        NoConvergence: If no trial lands within ``tolerance`` of the target;
            the exception's ``best`` attribute holds the closest trial.
        InvalidProfile: If the profile is invalid.
    """
    logger = logger if logger is not None else logging.getLogger(__name__)
    profile.validate()
    if tolerance <= 0:
        raise ValueError(f"tolerance must be positive, got {tolerance}.")
    if max_iterations < 1:
        raise ValueError(f"max_iterations must be at least 1, got {max_iterations}.")
    builder = builder if builder is not None else HexagonLayoutBuilder(logger=logger)

    target: float = profile.filling_factor
    low: float = 0.0
    high: float = profile.side
    trials: List[PaddingTrial] = []
    best: Optional[PaddingTrial] = None

    logger.info(
        f"Solving padding for profile '{profile.name}' "
        f"(side={profile.side}, target={target}, tolerance={tolerance})."
    )
    for iteration in range(1, max_iterations + 1):
        padding: float = 0.5 * (low + high)
        result: EstimateResult = run_trial(
            profile,
            padding,
            num_samples=num_samples,
            seed=seed,
            workers=workers,
            batch_size=batch_size,
            builder=builder,
            cancel_event=cancel_event,
            logger=logger,
        ).result
        if result.cancelled or result.filling_factor is None:
            logger.warning(f"Padding search stopped at trial {iteration}: estimation cancelled.")
            break

        trial = PaddingTrial(
            iteration=iteration,
            padding=padding,
            filling_factor=result.filling_factor,
            hits=result.hits,
            misses=result.misses,
        )
        trials.append(trial)
        error: float = result.filling_factor - target
        logger.info(
            f"Trial {iteration}: padding={padding:.6g} -> filling factor "
            f"{result.filling_factor:.6f} (error {error:+.6f})."
        )
        if best is None or abs(error) < abs(best.filling_factor - target):
            best = trial

        if abs(error) <= tolerance:
            logger.info(f"Converged to padding={padding:.6g} after {iteration} trials.")
            return PaddingSolution(
                padding=padding,
                filling_factor=result.filling_factor,
                iterations=iteration,
                trials=trials,
            )

        if error > 0:
            low = padding  # too much live area: widen the gaps
        else:
            high = padding

    best_solution: Optional[PaddingSolution] = None
    if best is not None:
        best_solution = PaddingSolution(
            padding=best.padding,
            filling_factor=best.filling_factor,
            iterations=len(trials),
            trials=trials,
        )
    raise NoConvergence(
        f"Padding search for profile '{profile.name}' did not reach filling factor "
        f"{target} +/- {tolerance} within {max_iterations} trials.",
        best=best_solution,
    )
