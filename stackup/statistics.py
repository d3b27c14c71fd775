"""Process capability metrics and statistical utilities.

Provides Cp, Cpk and normal-approximation defect rates (PPM / PPH) from
Monte Carlo statistics, plus the sample statistics, percentile confidence
intervals and histogram binning used by the Monte Carlo engine.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy.stats import norm

STANDARD_CONFIDENCE_LEVELS = (0.90, 0.95, 0.99)
MAX_CONFIDENCE = 0.9999
DEFAULT_HISTOGRAM_BINS = 20
# Parts-per-hour conversion assumes a fixed 3600 parts/hour line rate.
PARTS_PER_HOUR = 3600.0


@dataclass(frozen=True)
class ProcessCapability:
    """Process capability of a Monte Carlo stackup against spec limits.

    Defect rates treat the stackup as normal with the Monte Carlo mean and
    standard deviation, even when the sampled distribution is not Gaussian.

    Attributes:
        upper_spec: Upper specification limit.
        lower_spec: Lower specification limit.
        cp: Process capability (spread only). None when std_dev is 0.
        cpk: Process capability with centering. None when std_dev is 0.
        ppm_above: Parts per million above USL.
        ppm_below: Parts per million below LSL.
        pph_above: Parts per hour above USL.
        pph_below: Parts per hour below LSL.
    """
    upper_spec: float
    lower_spec: float
    cp: Optional[float]
    cpk: Optional[float]
    ppm_above: float
    ppm_below: float
    pph_above: float
    pph_below: float

    @property
    def ppm_total(self) -> float:
        return self.ppm_above + self.ppm_below

    def summary(self) -> str:
        def fmt(v: Optional[float]) -> str:
            return f"{v:.4f}" if v is not None else "n/a"

        lines = [
            "=== Process Capability ===",
            f"  Specification:  LSL={self.lower_spec:.6f}  USL={self.upper_spec:.6f}",
            f"  Cp:             {fmt(self.cp)}",
            f"  Cpk:            {fmt(self.cpk)}",
            f"  PPM below LSL:  {self.ppm_below:.1f}",
            f"  PPM above USL:  {self.ppm_above:.1f}",
            f"  PPM total:      {self.ppm_total:.1f}",
            f"  PPH below LSL:  {self.pph_below:.1f}",
            f"  PPH above USL:  {self.pph_above:.1f}",
        ]
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "upper_spec": self.upper_spec,
            "lower_spec": self.lower_spec,
            "cp": self.cp,
            "cpk": self.cpk,
            "ppm_above": self.ppm_above,
            "ppm_below": self.ppm_below,
            "pph_above": self.pph_above,
            "pph_below": self.pph_below,
        }


def compute_process_capability(
    mean: float,
    std_dev: float,
    usl: float,
    lsl: float,
) -> ProcessCapability:
    """Compute Cp, Cpk and normal-approximation defect rates.

    Args:
        mean: Stackup mean.
        std_dev: Stackup standard deviation.
        usl: Upper specification limit.
        lsl: Lower specification limit.

    Returns:
        ProcessCapability. With zero spread the indices are None and the
        defect rates are 0 or 1e6 depending on which side of each limit
        the mean falls.
    """
    if std_dev > 0:
        cp = (usl - lsl) / (6.0 * std_dev)
        cpu = (usl - mean) / (3.0 * std_dev)
        cpl = (mean - lsl) / (3.0 * std_dev)
        cpk = min(cpu, cpl)
        ppm_below = float(norm.cdf(lsl, loc=mean, scale=std_dev)) * 1e6
        ppm_above = float(norm.sf(usl, loc=mean, scale=std_dev)) * 1e6
    else:
        cp = None
        cpk = None
        ppm_below = 1e6 if mean < lsl else 0.0
        ppm_above = 1e6 if mean > usl else 0.0

    rate = PARTS_PER_HOUR / 1000.0
    return ProcessCapability(
        upper_spec=usl,
        lower_spec=lsl,
        cp=cp,
        cpk=cpk,
        ppm_above=ppm_above,
        ppm_below=ppm_below,
        pph_above=ppm_above * rate,
        pph_below=ppm_below * rate,
    )


# ---------------------------------------------------------------------------
# Sample statistics
# ---------------------------------------------------------------------------

def sample_variance(values: np.ndarray) -> float:
    """Bessel-corrected variance; 0 for fewer than two samples."""
    if len(values) <= 1:
        return 0.0
    return float(np.var(values, ddof=1))


def correlation(x: np.ndarray, y: np.ndarray, x_var: float, y_var: float) -> float:
    """Pearson correlation of two equally long sample arrays.

    ``x_var``/``y_var`` are the Bessel-corrected variances of the inputs;
    the correlation is 0 when either is 0.
    """
    n = len(x)
    if n <= 1 or x_var <= 0 or y_var <= 0:
        return 0.0
    cov = float(np.dot(x - x.mean(), y - y.mean())) / (n - 1)
    return cov / math.sqrt(x_var * y_var)


@dataclass(frozen=True)
class ConfidenceInterval:
    """Percentile interval expected to contain ``confidence_level`` of outcomes."""
    confidence_level: float
    lower_bound: float
    upper_bound: float

    def to_dict(self) -> dict:
        return {
            "confidence_level": self.confidence_level,
            "lower_bound": self.lower_bound,
            "upper_bound": self.upper_bound,
        }


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def confidence_intervals(
    samples: np.ndarray,
    user_confidence: float,
) -> list[ConfidenceInterval]:
    """Nearest-rank percentile intervals over the samples.

    Always includes the 100% interval (literal min/max), then the 90/95/99%
    levels and the user level clamped to ``[0, 0.9999]``.
    """
    ordered = np.sort(np.asarray(samples, dtype=float))
    n = len(ordered)
    if n == 0:
        return []

    intervals = [ConfidenceInterval(1.0, float(ordered[0]), float(ordered[-1]))]
    levels = list(STANDARD_CONFIDENCE_LEVELS) + [min(max(user_confidence, 0.0), MAX_CONFIDENCE)]
    for level in levels:
        alpha = 1.0 - level
        lower_index = min(max(_round_half_up(alpha / 2.0 * n), 0), n - 1)
        upper_index = min(max(_round_half_up((1.0 - alpha / 2.0) * n), 0), n - 1)
        intervals.append(ConfidenceInterval(
            level, float(ordered[lower_index]), float(ordered[upper_index]),
        ))
    return intervals


def histogram(
    samples: np.ndarray,
    num_bins: int = DEFAULT_HISTOGRAM_BINS,
) -> list[tuple[float, int]]:
    """Equal-width bins over ``[min, max]`` as (bin_start, count) pairs.

    A sample is counted in bin ``i`` when ``start_i <= x < start_i + width``;
    the last bin is closed and also holds ``max``. When all samples are
    equal the result is a single bin holding every sample.
    """
    samples = np.asarray(samples, dtype=float)
    if len(samples) == 0:
        return []

    lo = float(samples.min())
    hi = float(samples.max())
    width = (hi - lo) / num_bins
    if width <= 0:
        return [(lo, len(samples))]

    # accumulate so that edges[i] + width == edges[i + 1] exactly
    edges = np.add.accumulate(np.concatenate(([lo], np.full(num_bins, width))))
    idx = np.searchsorted(edges, samples, side="right") - 1
    idx = np.clip(idx, 0, num_bins - 1)
    counts = np.bincount(idx, minlength=num_bins)
    return [(float(edges[i]), int(counts[i])) for i in range(num_bins)]
