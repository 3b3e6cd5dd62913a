"""
Plotting Module

Depth profiles of the evaluated viscosity and bulk cohesion.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd


def plot_profile(
    df: pd.DataFrame,
    title: str = "Viscosity profile",
    filename: Optional[Union[str, Path]] = None,
    show: bool = False,
):
    """
    Plot viscosity (and cohesion, if present) against depth.

    Args:
        df: DataFrame from ``profile_dataframe`` (needs 'depth_km' and 'viscosity')
        title: Figure title
        filename: If given, the figure is saved there
        show: Call ``plt.show()``

    Returns:
        The matplotlib Figure
    """
    has_cohesion = "current_cohesions" in df.columns
    ncols = 2 if has_cohesion else 1
    fig, axes = plt.subplots(1, ncols, figsize=(5 * ncols, 6), sharey=True, squeeze=False)

    ax = axes[0, 0]
    ax.semilogx(df["viscosity"], df["depth_km"], color="#1f77b4", marker="o", markersize=3, linestyle="-")
    if "plastic_yielding" in df.columns:
        yielding = df["plastic_yielding"].to_numpy() != 0
        if np.any(yielding):
            ax.semilogx(
                df["viscosity"][yielding], df["depth_km"][yielding],
                linestyle="none", marker="x", color="#d62728", label="yielding",
            )
            ax.legend()
    ax.set_xlabel("Viscosity [Pa s]")
    ax.set_ylabel("Depth [km]")
    ax.invert_yaxis()
    ax.grid(True, which="both", alpha=0.3)

    if has_cohesion:
        ax2 = axes[0, 1]
        ax2.plot(np.asarray(df["current_cohesions"]) / 1e6, df["depth_km"], color="#2ca02c", linestyle="-")
        ax2.set_xlabel("Cohesion [MPa]")
        ax2.grid(True, alpha=0.3)

    fig.suptitle(title)
    fig.tight_layout()

    if filename is not None:
        path = Path(filename)
        path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(path, dpi=150)
    if show:
        plt.show()
    return fig
