# ===--------------------------------------------------------------------------------------===#
#
# Part of the Microlens Project, under the Apache License v2.0.
# See https://www.apache.org/licenses/LICENSE-2.0 for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements functions for drawing clusters and padding sweeps.
#
# ===--------------------------------------------------------------------------------------===#

from typing import Optional

import matplotlib.pyplot as plt
from matplotlib.patches import PathPatch, Polygon
import numpy as np
import pandas as pd

from microlens.boundary import SampleSpacePolygon
from microlens.layout import HexCluster


def plot_cluster(
    cluster: HexCluster,
    boundary: Optional[SampleSpacePolygon] = None,
    samples: Optional[np.ndarray] = None,
    save_path: Optional[str] = None,
    figsize: tuple = (6, 6),
):
    """Draws the inner and padded hexagon outlines and the sampling envelope.

    Args:
        cluster: Placed cluster to draw.
        boundary: Optional sample-space polygon, drawn in cyan.
        samples: Optional (N, 2) array of sample points to scatter.
        save_path: Optional path to save the figure. If None, the figure is returned open.
        figsize: Figure size in inches.

    Returns:
        The matplotlib figure.
    """
    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.set_facecolor("black")

    colors = plt.cm.tab10(np.linspace(0, 1, max(len(cluster.inner), 2)))
    for hexagon, color in zip(cluster.inner, colors):
        ax.add_patch(Polygon(hexagon.vertices, closed=True, fill=False, edgecolor=color, lw=1))
        cx, cy = hexagon.center
        ax.annotate(str(hexagon.id), (cx, cy), color=color, ha="center", va="center", fontsize=8)

    if cluster.padding > 0:
        for hexagon in cluster.outer:
            ax.add_patch(
                Polygon(hexagon.vertices, closed=True, fill=False, edgecolor="yellow", lw=0.5, ls="--")
            )

    if boundary is not None:
        ax.add_patch(PathPatch(boundary.to_path(), fill=False, edgecolor="cyan", lw=1.5))

    if samples is not None and len(samples):
        ax.scatter(samples[:, 0], samples[:, 1], s=1, c="white", alpha=0.5)

    all_vertices = np.vstack([hexagon.vertices for hexagon in cluster.outer])
    pad = 0.05 * np.ptp(all_vertices, axis=0).max()
    ax.set_xlim(all_vertices[:, 0].min() - pad, all_vertices[:, 0].max() + pad)
    # screen coordinates: y grows downwards
    ax.set_ylim(all_vertices[:, 1].max() + pad, all_vertices[:, 1].min() - pad)
    ax.set_aspect("equal")
    ax.set_title(
        f"{cluster.profile.name}: side={cluster.profile.side}\", padding={cluster.padding:.4g}\""
    )

    fig.tight_layout()
    if save_path:
        fig.savefig(save_path, dpi=150)
        plt.close(fig)
    return fig


def plot_sweep(
    sweep: pd.DataFrame,
    target: Optional[float] = None,
    title: str = "Filling factor vs padding",
    save_path: Optional[str] = None,
    figsize: tuple = (6, 4),
):
    """Plots empirical and analytic filling factors against padding.

    Args:
        sweep: DataFrame produced by ``sweep_padding``.
        target: Optional target filling factor drawn as a horizontal line.
        title: Plot title.
        save_path: Optional path to save the figure.
        figsize: Figure size in inches.

    Returns:
        The matplotlib figure.
    """
    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.plot(sweep["padding"], sweep["filling_factor"], "o", label="Monte Carlo")
    ax.plot(sweep["padding"], sweep["analytic_filling_factor"], "-", label="analytic")
    if target is not None:
        ax.axhline(target, color="gray", ls="--", label=f"target {target}")
    ax.set_xlabel("padding (arcsec)")
    ax.set_ylabel("filling factor")
    ax.set_title(title)
    ax.grid(True, alpha=0.3)
    ax.legend()

    fig.tight_layout()
    if save_path:
        fig.savefig(save_path, dpi=150)
        plt.close(fig)
    return fig
