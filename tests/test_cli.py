# ===--------------------------------------------------------------------------------------===#
#
# Part of the Microlens Project, under the Apache License v2.0.
# See https://www.apache.org/licenses/LICENSE-2.0 for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#

"""End-to-end tests of the command-line entry point."""

import matplotlib

matplotlib.use("Agg")

import pandas as pd
import pytest

from microlens.cli import main, parse_args


def test_parse_args_modes():
    args = parse_args(["--sweep", "0", "0.08", "5", "--profile", "high"])
    assert args.sweep == [0.0, 0.08, 5.0]
    assert args.profile == "high"
    assert not args.solve

    with pytest.raises(SystemExit):
        parse_args(["--solve", "--sweep", "0", "0.08", "5"])


def test_estimate(tmp_path):
    status = main(
        [
            "--padding", "0.04",
            "--num_samples", "5000",
            "--seed", "1",
            "--out_dir", str(tmp_path),
            "--plot",
        ]
    )
    assert status == 0
    assert (tmp_path / "cluster.png").exists()


def test_estimate_with_analytic_padding():
    assert main(["--profile", "high", "--num_samples", "2000", "--seed", "1"]) == 0


def test_solve(tmp_path):
    status = main(["--solve", "--num_samples", "20000", "--seed", "2", "--out_dir", str(tmp_path)])
    assert status == 0

    trials = pd.read_csv(tmp_path / "trials.csv")
    assert list(trials.columns) == ["iteration", "padding", "filling_factor", "hits", "misses"]
    assert abs(trials["filling_factor"].iloc[-1] - 0.85) <= 0.005


def test_sweep(tmp_path):
    status = main(
        [
            "--sweep", "0", "0.04", "3",
            "--num_samples", "2000",
            "--seed", "5",
            "--out_dir", str(tmp_path),
            "--plot",
        ]
    )
    assert status == 0
    assert len(pd.read_csv(tmp_path / "sweep.csv")) == 3
    assert (tmp_path / "sweep.png").exists()


def test_config_file(tmp_path):
    cfg_path = tmp_path / "cfg.yaml"
    cfg_path.write_text(
        "SIMULATION_CONFIG:\n"
        "  profile: single\n"
        "  padding: 0.05\n"
        "  num_samples: 3000\n"
        "  seed: 4\n"
        "PROFILES:\n"
        "  single:\n"
        "    side: 0.2\n"
        "    filling_factor: 0.8\n"
        "    ring_count: 1\n"
    )
    assert main(["--cfg_path", str(cfg_path)]) == 0


@pytest.mark.parametrize(
    "argv",
    [
        ["--profile", "ultra"],
        ["--num_samples", "0"],
        ["--padding", "-0.1"],
        ["--cfg_path", "does/not/exist.yaml"],
        ["--solve", "--num_samples", "1000", "--seed", "1", "--workers", "-1"],
    ],
)
def test_errors_exit_with_status_one(argv):
    assert main(argv) == 1


def test_no_convergence_exits_with_status_one(tmp_path):
    cfg_path = tmp_path / "cfg.yaml"
    cfg_path.write_text("SIMULATION_CONFIG:\n  tolerance: 1.0e-9\n  max_iterations: 2\n")
    assert main(["--cfg_path", str(cfg_path), "--solve", "--num_samples", "3000"]) == 1
