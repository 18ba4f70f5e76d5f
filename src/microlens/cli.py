# ===--------------------------------------------------------------------------------------===#
#
# Part of the Microlens Project, under the Apache License v2.0.
# See https://www.apache.org/licenses/LICENSE-2.0 for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements the command-line interface of the microlens calibration.
#
# ===--------------------------------------------------------------------------------------===#

from typing import Any, Dict, List, Optional

import argparse
import logging
import os
from pathlib import Path
import sys

import numpy as np

from microlens.boundary import sample_space
from microlens.config import SimulationConfig, load_config
from microlens.errors import MicrolensError, NoConvergence
from microlens.estimator import analytic_filling_factor
from microlens.layout import HexagonLayoutBuilder
from microlens.profiles import ResolutionProfile, get_profile
from microlens.solver import PaddingSolution, analytic_padding, run_trial, solve_for_padding
from microlens.utils.logging_utils import get_logger
from microlens.utils.plotting_utils import plot_cluster, plot_sweep
from microlens.utils.processing_utils import sweep_padding, trials_frame

# command-line flags that override SIMULATION_CONFIG fields
OVERRIDABLE_FIELDS: List[str] = ["profile", "padding", "num_samples", "seed", "workers"]


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parses command-line arguments.

    Args:
        argv: Argument list; defaults to ``sys.argv[1:]``.

    Returns:
        Parsed command-line arguments.
    """
    parser = argparse.ArgumentParser(
        description="Monte Carlo filling factor calibration of a hexagonal microlens array."
    )
    parser.add_argument("--cfg_path", type=str, help="path to .yaml config file.")
    parser.add_argument(
        "--out_dir",
        type=str,
        help="directory for results.log, CSV tables and plots. If omitted, only logs to stdout.",
    )
    parser.add_argument("--profile", type=str, help="resolution profile name (standard, high, ...).")
    parser.add_argument("--padding", type=float, help="padding between microlenses in arcsec.")
    parser.add_argument("--num_samples", type=int, help="Monte Carlo samples per estimate.")
    parser.add_argument("--seed", type=int, help="random seed for reproducible runs.")
    parser.add_argument(
        "--workers", type=int, help="sampling threads per estimate, 0 uses all logical CPUs."
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--solve",
        action="store_true",
        help="search for the padding reaching the profile's filling factor.",
    )
    mode.add_argument(
        "--sweep",
        type=float,
        nargs=3,
        metavar=("START", "STOP", "NUM"),
        help="estimate the filling factor for NUM paddings between START and STOP.",
    )
    parser.add_argument(
        "--plot", action="store_true", help="save plots of the cluster (and sweep) in out_dir."
    )

    return parser.parse_args(argv)


def _apply_overrides(config: SimulationConfig, args: Dict[str, Any]) -> SimulationConfig:
    for name in OVERRIDABLE_FIELDS:
        if args.get(name) is not None:
            setattr(config, name, args[name])
    return config


def _run_estimate(
    profile: ResolutionProfile,
    config: SimulationConfig,
    builder: HexagonLayoutBuilder,
    out_dir: Optional[Path],
    plot: bool,
    logger: logging.Logger,
) -> None:
    padding: Optional[float] = config.padding
    if padding is None:
        padding = analytic_padding(profile)
        logger.info(f"No padding given, using the analytic padding {padding:.6g}\".")

    simulation = run_trial(
        profile,
        padding,
        num_samples=config.num_samples,
        seed=config.seed,
        workers=config.workers,
        batch_size=config.batch_size,
        builder=builder,
        logger=logger,
    )
    result = simulation.result
    logger.info(
        f"Profile '{profile.name}', padding={padding:.6g}\": hits={result.hits}, "
        f"misses={result.misses}, filling factor={result.filling_factor:.6f} "
        f"(analytic {analytic_filling_factor(profile.side, padding):.6f}, "
        f"target {profile.filling_factor})."
    )
    logger.info(f"Hits per lens: {result.lens_hits}")

    if plot and out_dir is not None:
        plot_path: Path = out_dir.joinpath("cluster.png")
        plot_cluster(simulation.cluster, simulation.boundary, save_path=str(plot_path))
        logger.info(f"Saved cluster plot at '{plot_path}'.")


def _run_solve(
    profile: ResolutionProfile,
    config: SimulationConfig,
    builder: HexagonLayoutBuilder,
    out_dir: Optional[Path],
    plot: bool,
    logger: logging.Logger,
) -> None:
    solution: PaddingSolution = solve_for_padding(
        profile,
        tolerance=config.tolerance,
        max_iterations=config.max_iterations,
        num_samples=config.num_samples,
        seed=config.seed,
        workers=config.workers,
        batch_size=config.batch_size,
        builder=builder,
        logger=logger,
    )
    logger.info(
        f"Padding for profile '{profile.name}': {solution.padding:.6g}\" "
        f"(filling factor {solution.filling_factor:.6f}, analytic padding "
        f"{analytic_padding(profile):.6g}\", {solution.iterations} trials)."
    )

    if out_dir is not None:
        csv_path: Path = out_dir.joinpath("trials.csv")
        trials_frame(solution).to_csv(csv_path, index=False)
        logger.info(f"Saved padding search trials at '{csv_path}'.")

        if plot:
            cluster = builder.build(profile, solution.padding)
            plot_path: Path = out_dir.joinpath("cluster.png")
            plot_cluster(cluster, sample_space(cluster), save_path=str(plot_path))
            logger.info(f"Saved cluster plot at '{plot_path}'.")


def _run_sweep(
    profile: ResolutionProfile,
    config: SimulationConfig,
    builder: HexagonLayoutBuilder,
    sweep: List[float],
    out_dir: Optional[Path],
    plot: bool,
    logger: logging.Logger,
) -> None:
    start, stop, num = sweep
    paddings: np.ndarray = np.linspace(start, stop, int(num))
    table = sweep_padding(
        profile,
        paddings,
        num_samples=config.num_samples,
        seed=config.seed,
        workers=config.workers,
        batch_size=config.batch_size,
        builder=builder,
        logger=logger,
    )

    if out_dir is None:
        logger.info(f"Sweep results:\n{table.to_string(index=False)}")
        return

    csv_path: Path = out_dir.joinpath("sweep.csv")
    table.to_csv(csv_path, index=False)
    logger.info(f"Saved sweep at '{csv_path}'.")
    if plot:
        plot_path: Path = out_dir.joinpath("sweep.png")
        plot_sweep(
            table,
            target=profile.filling_factor,
            title=f"Filling factor vs padding ({profile.name})",
            save_path=str(plot_path),
        )
        logger.info(f"Saved sweep plot at '{plot_path}'.")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point.

    Loads the configuration, applies command-line overrides and runs one of
    three modes: a single estimate (default), a padding search (``--solve``)
    or a padding sweep (``--sweep``).

    Returns:
        Process exit status: 0 on success, 1 on any microlens error.
    """
    args: Dict[str, Any] = vars(parse_args(argv))
    out_dir: Optional[Path] = Path(args["out_dir"]) if args.get("out_dir") else None
    if out_dir is not None:
        os.makedirs(out_dir, exist_ok=True)

    logger: logging.Logger = get_logger(out_dir=out_dir)

    try:
        config, profiles = load_config(args.get("cfg_path"))
        config = _apply_overrides(config, args)
        config.validate()
        profile: ResolutionProfile = get_profile(config.profile, profiles)
        builder = HexagonLayoutBuilder(
            canvas_size=config.canvas_size, margin=config.margin, logger=logger
        )
        logger.info(f"Running with profile {profile} and config {config}")

        if args.get("solve"):
            _run_solve(profile, config, builder, out_dir, args["plot"], logger)
        elif args.get("sweep"):
            _run_sweep(profile, config, builder, args["sweep"], out_dir, args["plot"], logger)
        else:
            _run_estimate(profile, config, builder, out_dir, args["plot"], logger)
    except NoConvergence as err:
        logger.error(str(err))
        if err.best is not None:
            logger.error(
                f"Closest trial: padding={err.best.padding:.6g}\" with filling factor "
                f"{err.best.filling_factor:.6f}."
            )
        return 1
    except MicrolensError as err:
        logger.error(str(err))
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
