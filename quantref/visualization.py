"""
Visualization Module
====================
Static charts for the execution and margin reports.

Generated Figures:
    1. Optimal Holdings Trajectories across Risk Aversion
    2. Efficient Frontier (E vs V)
    3. Power-Impact Holdings across Impact Exponent
    4. SIMM Cross-Bucket Correlation Heatmap
    5. Brownian-Bridge Dense Exposure
"""

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from pathlib import Path
from typing import Dict, Sequence


# ─────────────────────────────────────────────────────────────
# Style Configuration
# ─────────────────────────────────────────────────────────────
plt.rcParams.update({
    "figure.figsize": (12, 7),
    "figure.dpi": 150,
    "font.size": 11,
    "font.family": "serif",
    "axes.grid": True,
    "grid.alpha": 0.3,
    "axes.spines.top": False,
    "axes.spines.right": False,
})

COLORS = {
    "primary": "#1f77b4",
    "frontier": "#d62728",
    "pillar": "#ff7f0e",
    "bridge": "#2ca02c",
}


def save_figure(fig: plt.Figure, name: str, output_dir: str = "results/figures") -> str:
    """Save figure to disk and return the path."""
    path = Path(output_dir)
    path.mkdir(parents=True, exist_ok=True)
    filepath = path / f"{name}.png"
    fig.savefig(filepath, bbox_inches="tight", facecolor="white")
    plt.close(fig)
    return str(filepath)


def plot_holdings_trajectories(
    trajectories: Dict[float, pd.DataFrame],
    title: str = "Almgren-Chriss Optimal Holdings",
    output_dir: str = "results/figures",
) -> str:
    """
    Plot holdings against time for several risk aversions.

    Parameters
    ----------
    trajectories : dict
        Risk aversion -> frame with ``time`` and ``holdings`` columns.
    title : str
        Plot title.
    output_dir : str
        Directory to save the figure.

    Returns
    -------
    str
        Path to saved figure.
    """
    fig, ax = plt.subplots()
    palette = sns.color_palette("viridis", len(trajectories))

    for color, (risk_aversion, frame) in zip(palette, sorted(trajectories.items())):
        ax.plot(frame["time"], frame["holdings"], marker="o", markersize=3,
                color=color, label=f"λ = {risk_aversion:.1e}")

    ax.set_xlabel("Time")
    ax.set_ylabel("Holdings (shares)")
    ax.set_title(title, fontweight="bold")
    ax.legend()
    return save_figure(fig, "holdings_trajectories", output_dir)


def plot_efficient_frontier(
    frontier: pd.DataFrame,
    title: str = "Efficient Frontier of Optimal Execution",
    output_dir: str = "results/figures",
) -> str:
    """Expected cost against cost standard deviation, annotated by λ."""
    fig, ax = plt.subplots()
    ax.plot(frontier["std"], frontier["expectation"], color=COLORS["frontier"],
            marker="o", linewidth=2)

    for _, row in frontier.iterrows():
        ax.annotate(f"{row['risk_aversion']:.0e}", (row["std"], row["expectation"]),
                    textcoords="offset points", xytext=(5, 5), fontsize=8)

    ax.set_xlabel("Cost standard deviation √V")
    ax.set_ylabel("Expected cost E")
    ax.set_title(title, fontweight="bold")
    return save_figure(fig, "efficient_frontier", output_dir)


def plot_power_impact_holdings(
    holdings: Dict[float, pd.DataFrame],
    title: str = "Power-Impact Optimal Holdings by Exponent",
    output_dir: str = "results/figures",
) -> str:
    """Holdings for a sweep of impact exponents k."""
    fig, ax = plt.subplots()
    palette = sns.color_palette("coolwarm", len(holdings))

    for color, (exponent, frame) in zip(palette, sorted(holdings.items())):
        style = "--" if exponent == 1.0 else "-"
        ax.plot(frame["time"], frame["holdings"], linestyle=style, color=color, label=f"k = {exponent:.2f}")

    ax.set_xlabel("Time (days)")
    ax.set_ylabel("Holdings (shares)")
    ax.set_title(title, fontweight="bold")
    ax.legend(ncol=2, fontsize=8)
    return save_figure(fig, "power_impact_holdings", output_dir)


def plot_correlation_heatmap(
    correlation: pd.DataFrame,
    title: str = "SIMM Credit Qualifying Cross-Bucket Correlation",
    output_dir: str = "results/figures",
) -> str:
    """Heatmap of a labelled correlation matrix."""
    fig, ax = plt.subplots(figsize=(10, 8))

    sns.heatmap(
        correlation,
        annot=True,
        fmt=".2f",
        cmap="RdBu_r",
        center=0,
        vmin=-1,
        vmax=1,
        square=True,
        linewidths=0.5,
        ax=ax,
        cbar_kws={"label": "Correlation"},
        annot_kws={"size": 7},
    )

    ax.set_title(title, fontweight="bold")
    return save_figure(fig, "simm_correlation_heatmap", output_dir)


def plot_dense_exposure(
    exposure: pd.DataFrame,
    title: str = "Brownian-Bridge Dense Exposure",
    output_dir: str = "results/figures",
) -> str:
    """Dense exposure path with the pillar vertices highlighted."""
    fig, ax = plt.subplots()
    ax.plot(exposure["date"], exposure["exposure"], color=COLORS["bridge"], linewidth=1.2, label="Bridge")

    pillars = exposure[exposure["is_pillar"]]
    ax.scatter(pillars["date"], pillars["exposure"], color=COLORS["pillar"], zorder=5, s=40, label="Pillar")

    ax.set_xlabel("Date")
    ax.set_ylabel("Exposure")
    ax.set_title(title, fontweight="bold")
    ax.legend()
    fig.autofmt_xdate()
    return save_figure(fig, "dense_exposure", output_dir)


def plot_series(
    x: Sequence[float],
    series: Dict[str, Sequence[float]],
    name: str,
    title: str,
    xlabel: str,
    ylabel: str,
    output_dir: str = "results/figures",
) -> str:
    """Generic multi-line plot, used for basis functions and special functions."""
    fig, ax = plt.subplots()
    for label, values in series.items():
        ax.plot(np.asarray(x), np.asarray(values), label=label)
    ax.set_xlabel(xlabel)
    ax.set_ylabel(ylabel)
    ax.set_title(title, fontweight="bold")
    ax.legend()
    return save_figure(fig, name, output_dir)
