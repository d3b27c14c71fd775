"""Result snapshots produced by a stackup analysis run."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from stackup.resolver import SkippedContribution
from stackup.statistics import ConfidenceInterval, ProcessCapability


@dataclass(frozen=True)
class ContributorSensitivity:
    """How much one contributor drives the stackup's variation.

    Attributes:
        component_id: Referenced component.
        feature_id: Referenced feature.
        contribution_percent: Share of total variation, in percent.
        nominal_value: Feature nominal (Monte Carlo: mean of sampled values).
        variation_range: Worst case: this contributor's signed extremes.
            RSS: stackup nominal +/- 3 * effective tolerance of this
            contributor alone. Monte Carlo: min/max of sampled values.
        correlation: Pearson correlation with the stackup (Monte Carlo only).
        samples: Down-sampled (feature value, stackup mean) pairs for
            plotting (Monte Carlo only).
    """
    component_id: str
    feature_id: str
    contribution_percent: float
    nominal_value: float
    variation_range: tuple[float, float]
    correlation: Optional[float] = None
    samples: Optional[list[tuple[float, float]]] = None

    @property
    def label(self) -> str:
        return f"{self.component_id}.{self.feature_id}"

    def to_dict(self) -> dict:
        return {
            "component_id": self.component_id,
            "feature_id": self.feature_id,
            "contribution_percent": self.contribution_percent,
            "nominal_value": self.nominal_value,
            "variation_range": list(self.variation_range),
            "correlation": self.correlation,
            "samples": [list(s) for s in self.samples] if self.samples is not None else None,
        }


def _sensitivity_lines(sensitivity: list[ContributorSensitivity], range_label: str) -> list[str]:
    if not sensitivity:
        return []
    lines = [f"  Sensitivity ({range_label}):"]
    for s in sensitivity:
        lo, hi = s.variation_range
        line = f"    {s.label:30s}  {s.contribution_percent:6.2f}%  [{lo:+.6f}, {hi:+.6f}]"
        if s.correlation is not None:
            line += f"  r={s.correlation:+.3f}"
        lines.append(line)
    return lines


@dataclass(frozen=True)
class WorstCaseResult:
    min: float
    max: float
    sensitivity: list[ContributorSensitivity] = field(default_factory=list)

    def summary(self) -> str:
        lines = [
            "=== Worst-Case Analysis ===",
            f"  Range:            [{self.min:+.6f}, {self.max:+.6f}]",
            f"  Total variation:  {self.max - self.min:.6f}",
        ]
        lines += _sensitivity_lines(self.sensitivity, "contributor extremes")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "min": self.min,
            "max": self.max,
            "sensitivity": [s.to_dict() for s in self.sensitivity],
        }


@dataclass(frozen=True)
class RssResult:
    min: float
    max: float
    std_dev: float
    sensitivity: list[ContributorSensitivity] = field(default_factory=list)

    def summary(self) -> str:
        lines = [
            "=== RSS Analysis ===",
            f"  Range (3 sigma):  [{self.min:+.6f}, {self.max:+.6f}]",
            f"  Std dev:          {self.std_dev:.6f}",
        ]
        lines += _sensitivity_lines(self.sensitivity, "nominal +/- 3x contributor tolerance")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "min": self.min,
            "max": self.max,
            "std_dev": self.std_dev,
            "sensitivity": [s.to_dict() for s in self.sensitivity],
        }


@dataclass(frozen=True)
class MonteCarloResult:
    """Monte Carlo statistics.

    ``stackup_samples`` and ``contributor_values`` (label, raw sampled values
    in insertion order) hold every iteration for raw data export; they are
    not part of ``to_dict()``.
    """
    min: float
    max: float
    mean: float
    std_dev: float
    iterations: int
    confidence_intervals: list[ConfidenceInterval] = field(default_factory=list)
    histogram: list[tuple[float, int]] = field(default_factory=list)
    sensitivity: list[ContributorSensitivity] = field(default_factory=list)
    stackup_samples: Optional[np.ndarray] = field(default=None, repr=False, compare=False)
    contributor_values: Optional[list[tuple[str, np.ndarray]]] = field(
        default=None, repr=False, compare=False)

    def interval(self, confidence_level: float) -> Optional[ConfidenceInterval]:
        for ci in self.confidence_intervals:
            if abs(ci.confidence_level - confidence_level) < 1e-12:
                return ci
        return None

    def summary(self) -> str:
        lines = [
            "=== Monte Carlo Analysis ===",
            f"  Iterations:       {self.iterations}",
            f"  Range:            [{self.min:+.6f}, {self.max:+.6f}]",
            f"  Mean:             {self.mean:+.6f}",
            f"  Std dev:          {self.std_dev:.6f}",
        ]
        if self.confidence_intervals:
            lines.append("  Confidence intervals:")
            for ci in self.confidence_intervals:
                lines.append(f"    {ci.confidence_level * 100:8.4f}%  "
                             f"[{ci.lower_bound:+.6f}, {ci.upper_bound:+.6f}]")
        lines += _sensitivity_lines(self.sensitivity, "sampled range")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "min": self.min,
            "max": self.max,
            "mean": self.mean,
            "std_dev": self.std_dev,
            "iterations": self.iterations,
            "confidence_intervals": [ci.to_dict() for ci in self.confidence_intervals],
            "histogram": [[start, count] for start, count in self.histogram],
            "sensitivity": [s.to_dict() for s in self.sensitivity],
        }


@dataclass(frozen=True)
class AnalysisResults:
    """One complete run of a StackupAnalysis.

    Attributes:
        analysis_id: Id of the analysis that was run.
        timestamp: UTC creation time, ISO 8601.
        nominal: Signed nominal stackup over resolved contributions.
        worst_case: Present when WORST_CASE was requested.
        rss: Present when RSS was requested.
        monte_carlo: Present when MONTE_CARLO was requested.
        process_capability: Present when Monte Carlo ran and both spec
            limits are set.
        skipped: Contributions left out because their reference was not found.
    """
    analysis_id: str
    timestamp: str
    nominal: float
    worst_case: Optional[WorstCaseResult] = None
    rss: Optional[RssResult] = None
    monte_carlo: Optional[MonteCarloResult] = None
    process_capability: Optional[ProcessCapability] = None
    skipped: list[SkippedContribution] = field(default_factory=list)

    def summary(self) -> str:
        lines = [f"Nominal stackup: {self.nominal:+.6f}", ""]
        for part in (self.worst_case, self.rss, self.monte_carlo, self.process_capability):
            if part is not None:
                lines.append(part.summary())
                lines.append("")
        if self.skipped:
            lines.append("WARNING: skipped contributions:")
            for s in self.skipped:
                lines.append(f"  #{s.index} {s.component_id}.{s.feature_id}: {s.reason}")
        return "\n".join(lines).rstrip()

    def to_dict(self) -> dict:
        return {
            "analysis_id": self.analysis_id,
            "timestamp": self.timestamp,
            "nominal": self.nominal,
            "worst_case": self.worst_case.to_dict() if self.worst_case else None,
            "rss": self.rss.to_dict() if self.rss else None,
            "monte_carlo": self.monte_carlo.to_dict() if self.monte_carlo else None,
            "process_capability": (self.process_capability.to_dict()
                                   if self.process_capability else None),
            "skipped": [s.to_dict() for s in self.skipped],
        }
