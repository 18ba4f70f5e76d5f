# ===--------------------------------------------------------------------------------------===#
#
# Part of the Microlens Project, under the Apache License v2.0.
# See https://www.apache.org/licenses/LICENSE-2.0 for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements the Monte Carlo filling factor estimator.
#
# ===--------------------------------------------------------------------------------------===#

from typing import Dict, List, Optional, Sequence, Tuple

from collections import Counter
from dataclasses import dataclass, field
import concurrent.futures
import logging
import math
import threading

import numpy as np
import psutil

from microlens.boundary import SampleSpacePolygon
from microlens.hexagon import RegularHexagon
from microlens.utils.geometry_utils import as_points

DEFAULT_BATCH_SIZE: int = 50_000
MISS: int = -1
# Extra candidates drawn per rejection round on top of the expected requirement.
OVERSAMPLING: float = 1.1


@dataclass
class SampleCounters:
    """Running hit and miss counts of one estimation run.

    Attributes:
        hits: Samples that fell inside an inner hexagon.
        misses: Samples that fell in the dead space between lenses.
        lens_hits: Hits per inner hexagon id.
    """

    hits: int = 0
    misses: int = 0
    lens_hits: Dict[int, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return self.hits + self.misses

    @property
    def filling_factor(self) -> Optional[float]:
        """Empirical filling factor, or None before any sample has been recorded."""
        if self.total == 0:
            return None
        return self.hits / self.total

    def record(self, hexagon_id: Optional[int]) -> None:
        if hexagon_id is None or hexagon_id == MISS:
            self.misses += 1
        else:
            self.hits += 1
            self.lens_hits[hexagon_id] = self.lens_hits.get(hexagon_id, 0) + 1

    def record_batch(self, hexagon_ids: np.ndarray) -> None:
        hit_mask: np.ndarray = hexagon_ids != MISS
        self.hits += int(np.count_nonzero(hit_mask))
        self.misses += int(hit_mask.size - np.count_nonzero(hit_mask))
        for hexagon_id, count in Counter(hexagon_ids[hit_mask].tolist()).items():
            self.lens_hits[hexagon_id] = self.lens_hits.get(hexagon_id, 0) + count

    def merge(self, other: "SampleCounters") -> None:
        self.hits += other.hits
        self.misses += other.misses
        for hexagon_id, count in other.lens_hits.items():
            self.lens_hits[hexagon_id] = self.lens_hits.get(hexagon_id, 0) + count

    def reset(self) -> None:
        self.hits = 0
        self.misses = 0
        self.lens_hits = {}


@dataclass(frozen=True)
class EstimateResult:
    """Outcome of an estimation run.

    Attributes:
        hits: Number of hits.
        misses: Number of misses.
        filling_factor: ``hits / (hits + misses)``, None if no sample was drawn.
        lens_hits: Hits per inner hexagon id.
        cancelled: True if the run stopped early on a cancellation request.
    """

    hits: int
    misses: int
    filling_factor: Optional[float]
    lens_hits: Dict[int, int] = field(default_factory=dict)
    cancelled: bool = False

    @classmethod
    def from_counters(cls, counters: SampleCounters, cancelled: bool = False) -> "EstimateResult":
        return cls(
            hits=counters.hits,
            misses=counters.misses,
            filling_factor=counters.filling_factor,
            lens_hits=dict(sorted(counters.lens_hits.items())),
            cancelled=cancelled,
        )


def analytic_filling_factor(side: float, padding: float) -> float:
    """Exact filling factor of a uniform tiling, ``(r / (r + padding))^2``.

    Every lens and its padded envelope are similar hexagons, so the ratio of
    their areas is the squared ratio of their circumradii.
    """
    return (side / (side + padding)) ** 2


class FillingFactorEstimator:
    """Estimates the filling factor by sampling uniformly inside the sample space.

    Samples are drawn by rejection against the bounding box of the
    sample-space polygon and classified against the inner hexagons; the first
    hexagon containing a sample wins. The estimator also keeps running
    counters so that points supplied one at a time by an interactive front end
    (:meth:`record_point`) compose with batch runs.
    """

    def __init__(
        self,
        inner_hexagons: Sequence[RegularHexagon],
        boundary: SampleSpacePolygon,
        batch_size: int = DEFAULT_BATCH_SIZE,
        logger: Optional[logging.Logger] = None,
    ):
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}.")
        self.inner_hexagons: List[RegularHexagon] = list(inner_hexagons)
        self.boundary: SampleSpacePolygon = boundary
        self.batch_size: int = batch_size
        self.counters: SampleCounters = SampleCounters()
        self.logger: logging.Logger = logger if logger is not None else logging.getLogger(__name__)

        xmin, ymin, xmax, ymax = boundary.bounds
        self._low: np.ndarray = np.array([xmin, ymin])
        self._high: np.ndarray = np.array([xmax, ymax])
        box_area: float = (xmax - xmin) * (ymax - ymin)
        self._acceptance: float = boundary.area / box_area if box_area > 0 else 0.0
        if self._acceptance <= 0:
            raise ValueError("Sample space has zero area.")

    def __repr__(self):
        return (
            f"{self.__class__.__name__}"
            "("
            f"lenses={len(self.inner_hexagons)},"
            f"boundary_vertices={len(self.boundary)},"
            f"batch_size={self.batch_size}"
            ")"
        )

    def classify(self, points: np.ndarray) -> np.ndarray:
        """Returns the id of the inner hexagon containing each point, or -1 for a miss."""
        points = as_points(points)
        ids: np.ndarray = np.full(len(points), MISS, dtype=int)
        for hexagon in self.inner_hexagons:
            pending: np.ndarray = np.flatnonzero(ids == MISS)
            if pending.size == 0:
                break
            inside: np.ndarray = hexagon.contains_points(points[pending])
            ids[pending[inside]] = hexagon.id
        return ids

    def lens_at(self, point: Sequence[float]) -> Optional[int]:
        """Id of the inner hexagon containing ``point``, or None."""
        hexagon_id: int = int(self.classify(point)[0])
        return None if hexagon_id == MISS else hexagon_id

    def record_point(self, point: Sequence[float]) -> Optional[int]:
        """Classifies one externally supplied sample and adds it to the running counters.

        Returns:
            The id of the lens hit, or None for a miss.
        """
        hexagon_id: Optional[int] = self.lens_at(point)
        self.counters.record(hexagon_id)
        if hexagon_id is None:
            self.logger.info(f"Miss at {tuple(point)}, misses: {self.counters.misses}")
        else:
            self.logger.info(
                f"Inside hexagon {hexagon_id} at {tuple(point)}, hits: {self.counters.hits}"
            )
        return hexagon_id

    def draw_samples(self, rng: np.random.Generator, num_samples: int) -> np.ndarray:
        """Draws points uniformly distributed inside the sample-space polygon."""
        accepted: List[np.ndarray] = []
        missing: int = num_samples
        while missing > 0:
            num_candidates: int = math.ceil(missing / self._acceptance * OVERSAMPLING) + 8
            candidates: np.ndarray = rng.uniform(self._low, self._high, size=(num_candidates, 2))
            inside: np.ndarray = candidates[self.boundary.contains_points(candidates)][:missing]
            accepted.append(inside)
            missing -= len(inside)
        return np.concatenate(accepted) if accepted else np.empty((0, 2))

    def _run_shard(
        self,
        num_samples: int,
        seed_seq: np.random.SeedSequence,
        cancel_event: Optional[threading.Event],
    ) -> Tuple[SampleCounters, bool]:
        rng: np.random.Generator = np.random.default_rng(seed_seq)
        counters: SampleCounters = SampleCounters()
        remaining: int = num_samples
        while remaining > 0:
            if cancel_event is not None and cancel_event.is_set():
                return counters, True
            batch: int = min(self.batch_size, remaining)
            counters.record_batch(self.classify(self.draw_samples(rng, batch)))
            remaining -= batch
            self.logger.debug(f"Shard progress: {counters.total}/{num_samples} samples.")
        return counters, False

    def estimate(
        self,
        num_samples: int,
        seed: Optional[int] = None,
        workers: int = 1,
        cancel_event: Optional[threading.Event] = None,
    ) -> EstimateResult:
        """Runs one estimation, resetting the running counters first.

        Samples are split into ``workers`` shards, each with its own generator
        spawned from ``seed``, and the shard counters are summed at the end.
        The result is exactly reproducible for a given seed and worker count.

        Args:
            num_samples: Number of samples to draw inside the sample space.
            seed: Seed for the random generator; None seeds from OS entropy.
            workers: Number of shards run on a thread pool. 0 uses one per
                logical CPU.
            cancel_event: Optional event polled once per batch; when set, the
                run stops and returns the counts accumulated so far.

        Returns:
            Hits, misses and the empirical filling factor.
        """
        if num_samples < 0:
            raise ValueError(f"num_samples must be non-negative, got {num_samples}.")
        if workers < 0:
            raise ValueError(f"workers must be non-negative, got {workers}.")
        if workers == 0:
            workers = psutil.cpu_count(logical=True) or 1
        workers = max(1, min(workers, num_samples)) if num_samples else 1

        self.counters.reset()
        shard_sizes: List[int] = [
            num_samples // workers + (1 if idx < num_samples % workers else 0)
            for idx in range(workers)
        ]
        seed_seqs: List[np.random.SeedSequence] = np.random.SeedSequence(seed).spawn(workers)

        cancelled: bool = False
        if workers == 1:
            shard_counters, cancelled = self._run_shard(shard_sizes[0], seed_seqs[0], cancel_event)
            self.counters.merge(shard_counters)
        else:
            self.logger.debug(f"Sampling {num_samples} points with {workers} workers...")
            with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
                futures = [
                    executor.submit(self._run_shard, size, seed_seq, cancel_event)
                    for size, seed_seq in zip(shard_sizes, seed_seqs)
                ]
                for future in futures:
                    shard_counters, shard_cancelled = future.result()
                    self.counters.merge(shard_counters)
                    cancelled = cancelled or shard_cancelled

        result: EstimateResult = EstimateResult.from_counters(self.counters, cancelled=cancelled)
        if cancelled:
            self.logger.warning(
                f"Estimation cancelled after {self.counters.total}/{num_samples} samples."
            )
        return result


def estimate(
    inner_hexagons: Sequence[RegularHexagon],
    boundary: SampleSpacePolygon,
    num_samples: int,
    seed: Optional[int] = None,
    workers: int = 1,
    batch_size: int = DEFAULT_BATCH_SIZE,
    cancel_event: Optional[threading.Event] = None,
) -> EstimateResult:
    """One-shot convenience wrapper around :meth:`FillingFactorEstimator.estimate`."""
    estimator = FillingFactorEstimator(inner_hexagons, boundary, batch_size=batch_size)
    return estimator.estimate(
        num_samples=num_samples, seed=seed, workers=workers, cancel_event=cancel_event
    )
