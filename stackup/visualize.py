"""Visualization helpers for stackup analysis results."""

from __future__ import annotations

import logging
from typing import Optional, Union

import numpy as np

from stackup.models import Component, StackupAnalysis
from stackup.resolver import resolve_contributions
from stackup.results import MonteCarloResult, RssResult, WorstCaseResult

logger = logging.getLogger(__name__)


def _finish(fig, save_path: Optional[str], what: str) -> None:
    import matplotlib.pyplot as plt

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches="tight")
        logger.info("Saved %s to %s", what, save_path)
    else:
        plt.show()
    plt.close(fig)


def plot_waterfall(
    analysis: StackupAnalysis,
    components: list[Component],
    result: WorstCaseResult,
    title: Optional[str] = None,
    save_path: Optional[str] = None,
) -> None:
    """Draw a waterfall chart of each contributor's signed nominal and extremes."""
    import matplotlib.pyplot as plt

    resolved, _ = resolve_contributions(analysis.contributions, components)
    names = [r.contribution.label for r in resolved]

    fig, ax = plt.subplots(figsize=(10, max(5, len(names) * 0.5 + 2)))

    cumulative = 0.0
    for i, r in enumerate(resolved):
        nom = r.nominal_contribution
        m = r.multiplier
        if r.direction > 0:
            lo, hi = r.feature.minus_tolerance * m, r.feature.plus_tolerance * m
        else:
            lo, hi = r.feature.plus_tolerance * m, r.feature.minus_tolerance * m

        color = "#2196F3" if nom >= 0 else "#F44336"
        ax.barh(i, nom, left=cumulative, height=0.5, color=color, alpha=0.8,
                edgecolor="black", linewidth=0.5)

        center = cumulative + nom
        ax.plot([center - lo, center + hi], [i, i], color="black", linewidth=2)
        ax.plot([center - lo, center - lo], [i - 0.15, i + 0.15], color="black", linewidth=2)
        ax.plot([center + hi, center + hi], [i - 0.15, i + 0.15], color="black", linewidth=2)

        cumulative += nom

    ax.axvline(x=cumulative, color="green", linestyle="--", linewidth=1.5,
               label=f"Nominal = {cumulative:.4f}")
    ax.axvspan(result.min, result.max, alpha=0.15, color="green",
               label=f"Worst case [{result.min:.4f}, {result.max:.4f}]")

    ax.set_yticks(list(range(len(names))))
    ax.set_yticklabels(names)
    ax.set_xlabel("Stackup dimension")
    ax.set_title(title or f"{analysis.name} - Worst-Case Waterfall")
    ax.legend(loc="best", fontsize=8)
    ax.invert_yaxis()
    fig.tight_layout()

    _finish(fig, save_path, "waterfall chart")


def plot_monte_carlo_histogram(
    result: MonteCarloResult,
    title: Optional[str] = None,
    save_path: Optional[str] = None,
    spec_limits: Optional[tuple[float, float]] = None,
) -> None:
    """Plot the Monte Carlo histogram bins with a normal fit overlay.

    Args:
        result: A Monte Carlo result.
        title: Optional title override.
        save_path: If given, save the plot to this path instead of showing.
        spec_limits: Optional (lower, upper) spec limits to overlay.
    """
    import matplotlib.pyplot as plt

    if not result.histogram:
        raise ValueError("MonteCarloResult has no histogram")

    starts = np.array([start for start, _ in result.histogram])
    counts = np.array([count for _, count in result.histogram], dtype=float)
    width = (result.max - result.min) / len(starts) if len(starts) > 1 else 1.0
    if width <= 0:
        width = 1.0

    fig, ax = plt.subplots(figsize=(10, 5))
    ax.bar(starts, counts, width=width, align="edge", alpha=0.7, color="#2196F3",
           edgecolor="black", linewidth=0.3)

    if result.std_dev > 0:
        x = np.linspace(result.min, result.max, 300)
        pdf = (1.0 / (result.std_dev * np.sqrt(2 * np.pi))) * \
            np.exp(-0.5 * ((x - result.mean) / result.std_dev) ** 2)
        ax.plot(x, pdf * result.iterations * width, "r-", linewidth=2, label="Normal fit")

    ax.axvline(result.mean, color="red", linestyle="--", linewidth=1.5,
               label=f"Mean = {result.mean:.4f}")
    for k in (-3, 3):
        ax.axvline(result.mean + k * result.std_dev, color="orange", linestyle=":",
                   linewidth=0.8, label=f"{k:+d}σ = {result.mean + k * result.std_dev:.4f}")

    if spec_limits:
        lo, hi = spec_limits
        ax.axvline(lo, color="red", linewidth=2, label=f"LSL = {lo:.4f}")
        ax.axvline(hi, color="red", linewidth=2, label=f"USL = {hi:.4f}")

    ax.set_xlabel("Stackup value")
    ax.set_ylabel("Count")
    ax.set_title(title or f"Monte Carlo Distribution (n={result.iterations:,})")
    ax.legend(loc="best", fontsize=8)
    fig.tight_layout()

    _finish(fig, save_path, "histogram")


def plot_sensitivity(
    result: Union[WorstCaseResult, RssResult, MonteCarloResult],
    title: Optional[str] = None,
    save_path: Optional[str] = None,
) -> None:
    """Plot a Pareto bar chart of contribution percentages."""
    import matplotlib.pyplot as plt

    if not result.sensitivity:
        logger.info("No sensitivity data to plot")
        return

    names = [s.label for s in result.sensitivity]
    values = [s.contribution_percent for s in result.sensitivity]
    cumulative = np.cumsum(values)

    fig, ax = plt.subplots(figsize=(10, max(4, len(names) * 0.4 + 1)))
    y_pos = list(range(len(names)))
    ax.barh(y_pos, values, color="#2196F3", edgecolor="black", linewidth=0.5, height=0.6)
    ax.plot(cumulative, y_pos, "o-", color="#F44336", linewidth=1, label="Cumulative %")
    ax.set_yticks(y_pos)
    ax.set_yticklabels(names)
    ax.set_xlabel("Contribution to variation (%)")
    ax.set_xlim(0, 105)
    ax.set_title(title or "Sensitivity Analysis")
    ax.legend(loc="lower right", fontsize=8)
    ax.invert_yaxis()
    fig.tight_layout()

    _finish(fig, save_path, "sensitivity chart")
