# ===--------------------------------------------------------------------------------------===#
#
# Part of the Microlens Project, under the Apache License v2.0.
# See https://www.apache.org/licenses/LICENSE-2.0 for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#

"""Tests for the Monte Carlo filling factor estimator."""

import threading

import numpy as np
import pytest

from microlens.boundary import sample_space
from microlens.estimator import (
    MISS,
    FillingFactorEstimator,
    SampleCounters,
    analytic_filling_factor,
    estimate,
)
from microlens.layout import HexagonLayoutBuilder
from microlens.profiles import HIGH_RESOLUTION, STANDARD_RESOLUTION

PADDING = 0.04


def _estimator(profile=STANDARD_RESOLUTION, padding=PADDING, batch_size=50_000):
    cluster = HexagonLayoutBuilder().build(profile, padding)
    return cluster, FillingFactorEstimator(cluster.inner, sample_space(cluster), batch_size=batch_size)


def test_counters():
    counters = SampleCounters()
    assert counters.filling_factor is None
    assert counters.total == 0

    counters.record(2)
    counters.record(None)
    counters.record(2)
    counters.record_batch(np.array([0, MISS, 0, 5]))
    assert counters.hits == 5
    assert counters.misses == 2
    assert counters.lens_hits == {2: 2, 0: 2, 5: 1}
    assert counters.filling_factor == pytest.approx(5 / 7)

    other = SampleCounters(hits=1, misses=1, lens_hits={5: 1})
    counters.merge(other)
    assert counters.total == 9
    assert counters.lens_hits[5] == 2

    counters.reset()
    assert counters.total == 0
    assert counters.lens_hits == {}


def test_analytic_filling_factor():
    assert analytic_filling_factor(1.0, 0.0) == 1.0
    assert analytic_filling_factor(1.0, 1.0) == pytest.approx(0.25)
    assert analytic_filling_factor(0.2272, 0.04) == pytest.approx((0.2272 / 0.2672) ** 2)


def test_classify_first_match_and_misses():
    cluster, estimator = _estimator()
    centres = np.array([hexagon.center for hexagon in cluster.inner])
    assert estimator.classify(centres).tolist() == list(range(7))

    # halfway between two neighbouring centres lies in the padding gap
    gap = 0.5 * (centres[3] + centres[4])
    assert estimator.lens_at(gap) is None
    assert estimator.classify(gap).tolist() == [MISS]


def test_record_point_updates_running_counters():
    cluster, estimator = _estimator()
    centre = cluster.inner[3].center
    gap = tuple(0.5 * (np.array(cluster.inner[3].center) + np.array(cluster.inner[4].center)))

    assert estimator.record_point(centre) == 3
    assert estimator.record_point(gap) is None
    assert estimator.counters.hits == 1
    assert estimator.counters.misses == 1
    assert estimator.counters.lens_hits == {3: 1}


def test_record_point_after_batch_run():
    cluster, estimator = _estimator()
    estimator.estimate(1_000, seed=0)
    assert estimator.counters.total == 1_000

    estimator.record_point(cluster.inner[0].center)
    assert estimator.counters.total == 1_001


def test_draw_samples_stay_in_sample_space():
    _, estimator = _estimator()
    samples = estimator.draw_samples(np.random.default_rng(3), 5_000)
    assert samples.shape == (5_000, 2)
    assert estimator.boundary.contains_points(samples).all()


def test_estimate_is_reproducible():
    _, estimator = _estimator()
    first = estimator.estimate(100_000, seed=42)
    second = estimator.estimate(100_000, seed=42)

    assert first == second
    assert first.hits + first.misses == 100_000
    assert not first.cancelled


def test_estimate_totals_and_lens_hits():
    _, estimator = _estimator(batch_size=7_000)
    result = estimator.estimate(50_000, seed=5)

    assert result.hits + result.misses == 50_000
    assert sum(result.lens_hits.values()) == result.hits
    assert set(result.lens_hits) <= set(range(7))
    # every lens has the same area, so hits spread evenly
    for count in result.lens_hits.values():
        assert count == pytest.approx(result.hits / 7, rel=0.1)


def test_estimate_converges_to_analytic():
    _, estimator = _estimator()
    result = estimator.estimate(1_000_000, seed=7)
    assert result.filling_factor == pytest.approx(
        analytic_filling_factor(STANDARD_RESOLUTION.side, PADDING), abs=0.01
    )


def test_high_resolution_estimate():
    _, estimator = _estimator(HIGH_RESOLUTION, 0.005)
    result = estimator.estimate(200_000, seed=11)
    assert result.filling_factor == pytest.approx(
        analytic_filling_factor(HIGH_RESOLUTION.side, 0.005), abs=0.01
    )


def test_zero_padding_fills_everything():
    _, estimator = _estimator(padding=0.0)
    result = estimator.estimate(20_000, seed=1)
    assert result.misses == 0
    assert result.filling_factor == 1.0


def test_parallel_estimate():
    _, estimator = _estimator()
    first = estimator.estimate(60_000, seed=9, workers=3)
    second = estimator.estimate(60_000, seed=9, workers=3)

    assert first == second
    assert first.hits + first.misses == 60_000
    assert first.filling_factor == pytest.approx(
        analytic_filling_factor(STANDARD_RESOLUTION.side, PADDING), abs=0.02
    )


def test_all_cpus_estimate():
    _, estimator = _estimator()
    result = estimator.estimate(10_000, seed=2, workers=0)
    assert result.hits + result.misses == 10_000


def test_cancelled_estimate():
    _, estimator = _estimator()
    cancel_event = threading.Event()
    cancel_event.set()

    result = estimator.estimate(100_000, seed=1, cancel_event=cancel_event)
    assert result.cancelled
    assert result.hits == 0
    assert result.misses == 0
    assert result.filling_factor is None


def test_zero_samples():
    _, estimator = _estimator()
    result = estimator.estimate(0, seed=1)
    assert result.filling_factor is None
    assert not result.cancelled


def test_module_level_estimate_matches_estimator():
    cluster, estimator = _estimator()
    expected = estimator.estimate(10_000, seed=4)
    assert estimate(cluster.inner, sample_space(cluster), 10_000, seed=4) == expected


@pytest.mark.parametrize("kwargs", [{"num_samples": -1}, {"num_samples": 10, "workers": -2}])
def test_invalid_arguments(kwargs):
    _, estimator = _estimator()
    with pytest.raises(ValueError):
        estimator.estimate(**kwargs)


def test_invalid_batch_size():
    cluster = HexagonLayoutBuilder().build(STANDARD_RESOLUTION, PADDING)
    with pytest.raises(ValueError):
        FillingFactorEstimator(cluster.inner, sample_space(cluster), batch_size=0)
