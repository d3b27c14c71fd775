"""Distribution model: default parameter derivation and vectorised sampling."""

from __future__ import annotations

import numpy as np

from stackup.models import DistributionParams, DistributionType, Feature
from stackup.resolver import ResolvedContribution

# The full tolerance band is taken to span +/-3 sigma.
SIGMA_SPAN = 6.0


def default_distribution_params(feature: Feature) -> DistributionParams:
    """Derive sampling parameters from a feature's dimension and declared type.

    - NORMAL: mean = value, std_dev = total_tolerance / 6
    - UNIFORM: value +/- total_tolerance / 2
    - TRIANGULAR: value +/- total_tolerance / 2, mode = value
    - LOGNORMAL: median = value, log-scale std_dev chosen so the linear-scale
      standard deviation is total_tolerance / 6

    A feature with zero tolerance yields a fixed point (NORMAL with
    std_dev 0) whatever its declared type.
    """
    dist_type = feature.distribution or DistributionType.NORMAL
    total = feature.total_tolerance
    std_dev = total / SIGMA_SPAN

    if total == 0:
        return DistributionParams.normal(feature.value, 0.0)

    if dist_type == DistributionType.NORMAL:
        return DistributionParams.normal(feature.value, std_dev)
    if dist_type == DistributionType.UNIFORM:
        return DistributionParams.uniform(feature.value - total / 2.0, feature.value + total / 2.0)
    if dist_type == DistributionType.TRIANGULAR:
        return DistributionParams.triangular(
            feature.value - total / 2.0, feature.value + total / 2.0, feature.value,
        )
    if dist_type == DistributionType.LOGNORMAL:
        if feature.value <= 0:
            # validate() reports this
            return DistributionParams.lognormal(feature.value, std_dev)
        log_sigma = float(np.sqrt(np.log1p((std_dev / feature.value) ** 2)))
        return DistributionParams.lognormal(feature.value, log_sigma)
    raise ValueError(f"Unknown distribution: {dist_type}")


def params_for(resolved: ResolvedContribution) -> DistributionParams:
    """Parameters used to sample a contributor.

    Parameters frozen on the contribution win, then parameters stored on
    the feature, then defaults derived from the feature.
    """
    if resolved.contribution.distribution is not None:
        return resolved.contribution.distribution
    if resolved.feature.distribution_params is not None:
        return resolved.feature.distribution_params
    return default_distribution_params(resolved.feature)


def sample_triangular(
    u: np.ndarray,
    lo: float,
    hi: float,
    mode: float,
) -> np.ndarray:
    """Map uniform(0, 1) draws onto a triangular distribution by inverse CDF."""
    if not hi > lo:
        raise ValueError(f"triangular distribution needs max > min, got {lo}, {hi}")
    mode = min(max(mode, lo), hi)
    width = hi - lo
    f_c = (mode - lo) / width
    left = lo + np.sqrt(u * (mode - lo) * width)
    right = hi - np.sqrt((1.0 - u) * (hi - mode) * width)
    return np.where(u < f_c, left, right)


def sample_distribution(
    rng: np.random.Generator,
    params: DistributionParams,
    n_samples: int,
) -> np.ndarray:
    """Draw ``n_samples`` values consistent with ``params``.

    Args:
        rng: Generator owned by the calling run.
        params: Distribution parameters; validated before sampling.
        n_samples: Number of samples to generate.

    Returns:
        1D array of samples.
    """
    params.validate()

    if params.dist_type == DistributionType.NORMAL:
        return rng.normal(loc=params.mean, scale=params.std_dev, size=n_samples)

    elif params.dist_type == DistributionType.UNIFORM:
        return rng.uniform(low=params.min, high=params.max, size=n_samples)

    elif params.dist_type == DistributionType.TRIANGULAR:
        u = rng.random(size=n_samples)
        return sample_triangular(u, params.min, params.max, params.effective_mode)

    elif params.dist_type == DistributionType.LOGNORMAL:
        return rng.lognormal(mean=np.log(params.mean), sigma=params.std_dev, size=n_samples)

    else:
        raise ValueError(f"Unknown distribution: {params.dist_type}")


def distribution_stats(params: DistributionParams) -> tuple[float, float]:
    """Closed-form (mean, std_dev) of a distribution."""
    params.validate()

    if params.dist_type == DistributionType.NORMAL:
        return params.mean, params.std_dev

    if params.dist_type == DistributionType.UNIFORM:
        return (params.min + params.max) / 2.0, (params.max - params.min) / np.sqrt(12.0)

    if params.dist_type == DistributionType.TRIANGULAR:
        a, b, c = params.min, params.max, params.effective_mode
        var = (a * a + b * b + c * c - a * b - a * c - b * c) / 18.0
        return (a + b + c) / 3.0, float(np.sqrt(var))

    s2 = params.std_dev ** 2
    mean = params.mean * np.exp(s2 / 2.0)
    return float(mean), float(mean * np.sqrt(np.expm1(s2)))
