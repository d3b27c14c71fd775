"""Stackup analysis engine supporting WC, RSS, and Monte Carlo."""

from __future__ import annotations

import copy
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Callable, Optional, Union

import numpy as np

from stackup.distributions import params_for, sample_distribution
from stackup.errors import ConfigurationError
from stackup.models import AnalysisMethod, Component, MonteCarloSettings, StackupAnalysis
from stackup.resolver import ResolvedContribution, resolve_contributions
from stackup.results import (
    AnalysisResults,
    ContributorSensitivity,
    MonteCarloResult,
    RssResult,
    WorstCaseResult,
)
from stackup.statistics import (
    DEFAULT_HISTOGRAM_BINS,
    compute_process_capability,
    confidence_intervals,
    correlation,
    histogram,
    sample_variance,
)

logger = logging.getLogger(__name__)

# Upper bound on (value, mean) pairs kept per contributor for plotting.
MAX_VISUALIZATION_SAMPLES = 1000


def _sorted_by_contribution(sensitivity: list[ContributorSensitivity]) -> list[ContributorSensitivity]:
    # stable: ties keep insertion order
    return sorted(sensitivity, key=lambda s: -s.contribution_percent)


# ---------------------------------------------------------------------------
# Worst-Case analysis
# ---------------------------------------------------------------------------

def worst_case(resolved: list[ResolvedContribution]) -> WorstCaseResult:
    """Perform worst-case (min/max) stackup analysis.

    Every contributor is assumed to be at its extreme limit simultaneously.
    A negative direction swaps which tolerance face moves the stackup up.
    """
    total_variation = sum(r.feature.total_tolerance * abs(r.multiplier) for r in resolved)

    stack_min = 0.0
    stack_max = 0.0
    sensitivity = []

    for r in resolved:
        f = r.feature
        m = r.multiplier
        nominal = r.nominal_contribution

        if r.direction > 0:
            c_min = nominal - f.minus_tolerance * m
            c_max = nominal + f.plus_tolerance * m
        else:
            c_min = nominal - f.plus_tolerance * m
            c_max = nominal + f.minus_tolerance * m

        stack_min += c_min
        stack_max += c_max

        total_tol = f.total_tolerance * abs(m)
        percent = total_tol / total_variation * 100.0 if total_variation > 0 else 0.0

        sensitivity.append(ContributorSensitivity(
            component_id=r.contribution.component_id,
            feature_id=r.contribution.feature_id,
            contribution_percent=percent,
            nominal_value=f.value,
            variation_range=(c_min, c_max),
        ))

    return WorstCaseResult(
        min=stack_min,
        max=stack_max,
        sensitivity=_sorted_by_contribution(sensitivity),
    )


# ---------------------------------------------------------------------------
# RSS (Root Sum of Squares) analysis
# ---------------------------------------------------------------------------

def rss(resolved: list[ResolvedContribution]) -> RssResult:
    """Perform RSS statistical stackup analysis.

    Each contributor's half band is taken as its 3-sigma spread; bounds are
    reported at the stackup's 3 sigma.
    """
    nominal = 0.0
    sum_squares = 0.0
    variances = []

    # first pass: nominal and the variance normaliser
    for r in resolved:
        nominal += r.nominal_contribution
        effective_tolerance = (r.feature.total_tolerance / 2.0) * r.multiplier
        variance = effective_tolerance ** 2
        sum_squares += variance
        variances.append((r, variance))

    std_dev = math.sqrt(sum_squares) / 3.0

    sensitivity = []
    for r, variance in variances:
        percent = variance / sum_squares * 100.0 if sum_squares > 0 else 0.0
        spread = 3.0 * math.sqrt(variance)
        sensitivity.append(ContributorSensitivity(
            component_id=r.contribution.component_id,
            feature_id=r.contribution.feature_id,
            contribution_percent=percent,
            nominal_value=r.feature.value,
            variation_range=(nominal - spread, nominal + spread),
        ))

    return RssResult(
        min=nominal - 3.0 * std_dev,
        max=nominal + 3.0 * std_dev,
        std_dev=std_dev,
        sensitivity=_sorted_by_contribution(sensitivity),
    )


# ---------------------------------------------------------------------------
# Monte Carlo analysis
# ---------------------------------------------------------------------------

def _visualization_samples(values: np.ndarray, mean: float) -> list[tuple[float, float]]:
    n = len(values)
    count = min(n, MAX_VISUALIZATION_SAMPLES)
    if count == 0:
        return []
    # evenly spaced over the whole run, first and last sample included
    idx = np.linspace(0, n - 1, count).astype(np.int64)
    return [(float(v), mean) for v in values[idx]]


def monte_carlo(
    resolved: list[ResolvedContribution],
    settings: MonteCarloSettings,
    num_bins: int = DEFAULT_HISTOGRAM_BINS,
) -> MonteCarloResult:
    """Perform Monte Carlo stackup analysis.

    Each contributor is sampled according to its distribution, scaled by
    direction and half-count, and summed into one stackup value per
    iteration. Sensitivity weights each contributor's variance by the
    magnitude of its correlation with the stackup, so duplicated or
    cancelling dimensions are not over-credited.

    Raises:
        ConfigurationError: iterations < 1 or unsampleable parameters.
    """
    n = settings.iterations
    if n < 1:
        raise ConfigurationError(f"Monte Carlo needs at least 1 iteration, got {n}")

    rng = np.random.default_rng(settings.seed)
    logger.debug("Monte Carlo: %d iterations, %d contributors, seed=%s",
                 n, len(resolved), settings.seed)

    stack_samples = np.zeros(n)
    raw_values = []
    contributions = []

    for r in resolved:
        values = sample_distribution(rng, params_for(r), n)
        contrib = values * r.direction * r.multiplier
        stack_samples += contrib
        raw_values.append(values)
        contributions.append(contrib)

    mean = float(np.mean(stack_samples))
    total_variance = sample_variance(stack_samples)
    std_dev = math.sqrt(total_variance)

    # variance and correlation of every contributor before normalising
    stats = []
    for contrib in contributions:
        var = sample_variance(contrib)
        stats.append((var, correlation(contrib, stack_samples, var, total_variance)))
    total_weight = sum(var * abs(corr) for var, corr in stats)

    sensitivity = []
    for i, (r, values, (var, corr)) in enumerate(zip(resolved, raw_values, stats)):
        if total_weight > 0:
            percent = var * abs(corr) / total_weight * 100.0
        else:
            percent = 100.0 if i == 0 else 0.0

        sensitivity.append(ContributorSensitivity(
            component_id=r.contribution.component_id,
            feature_id=r.contribution.feature_id,
            contribution_percent=percent,
            nominal_value=float(np.mean(values)),
            variation_range=(float(values.min()), float(values.max())),
            correlation=corr,
            samples=_visualization_samples(values, mean),
        ))

    return MonteCarloResult(
        min=float(stack_samples.min()),
        max=float(stack_samples.max()),
        mean=mean,
        std_dev=std_dev,
        iterations=n,
        confidence_intervals=confidence_intervals(stack_samples, settings.confidence),
        histogram=histogram(stack_samples, num_bins),
        sensitivity=_sorted_by_contribution(sensitivity),
        stackup_samples=stack_samples,
        contributor_values=[(r.contribution.label, v) for r, v in zip(resolved, raw_values)],
    )


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------

def _validate(analysis: StackupAnalysis, resolved: list[ResolvedContribution]) -> None:
    if not analysis.methods:
        raise ConfigurationError(f"analysis {analysis.name!r} requests no methods")
    if AnalysisMethod.MONTE_CARLO in analysis.methods:
        if analysis.monte_carlo_settings is None:
            raise ConfigurationError(
                f"analysis {analysis.name!r} requests Monte Carlo but has no settings"
            )
        for r in resolved:
            try:
                params_for(r).validate()
            except ConfigurationError as e:
                raise ConfigurationError(f"contribution {r.contribution.label}: {e}") from e


_HANDLERS: dict[AnalysisMethod, Callable[[StackupAnalysis, list[ResolvedContribution]], object]] = {
    AnalysisMethod.WORST_CASE: lambda analysis, resolved: worst_case(resolved),
    AnalysisMethod.RSS: lambda analysis, resolved: rss(resolved),
    AnalysisMethod.MONTE_CARLO: lambda analysis, resolved: monte_carlo(
        resolved, analysis.monte_carlo_settings),
}

_RESULT_FIELDS = {
    AnalysisMethod.WORST_CASE: "worst_case",
    AnalysisMethod.RSS: "rss",
    AnalysisMethod.MONTE_CARLO: "monte_carlo",
}


def analyze_stackup(
    analysis: StackupAnalysis,
    components: list[Component],
) -> AnalysisResults:
    """Run every requested method of an analysis against a component set.

    The analysis and components are not modified. Contributions whose
    feature cannot be found are skipped and listed on the result.

    Args:
        analysis: The stackup to analyze.
        components: Components to resolve contributions against.

    Returns:
        One AnalysisResults snapshot.

    Raises:
        ConfigurationError: The analysis cannot run as configured.
    """
    resolved, skipped = resolve_contributions(analysis.contributions, components)
    _validate(analysis, resolved)

    fields = {}
    for method in analysis.methods:
        logger.debug("Running %s on %r", method.value, analysis.name)
        fields[_RESULT_FIELDS[method]] = _HANDLERS[method](analysis, resolved)

    mc: Optional[MonteCarloResult] = fields.get("monte_carlo")
    usl, lsl = analysis.upper_spec_limit, analysis.lower_spec_limit
    if mc is not None and usl is not None and lsl is not None:
        fields["process_capability"] = compute_process_capability(mc.mean, mc.std_dev, usl, lsl)

    return AnalysisResults(
        analysis_id=analysis.id,
        timestamp=datetime.now(timezone.utc).isoformat(),
        nominal=sum(r.nominal_contribution for r in resolved),
        skipped=skipped,
        **fields,
    )


def run_analyses(
    analyses: list[StackupAnalysis],
    components: list[Component],
    max_workers: Optional[int] = None,
) -> list[Union[AnalysisResults, ConfigurationError]]:
    """Run independent analyses on a thread pool.

    Each analysis runs on its own copy. A configuration error is returned
    in place of that analysis's result and does not affect the others.

    Returns:
        Results (or errors) in the order of ``analyses``.
    """
    def run_one(analysis: StackupAnalysis) -> Union[AnalysisResults, ConfigurationError]:
        try:
            return analyze_stackup(analysis, components)
        except ConfigurationError as e:
            logger.error("Analysis %r failed: %s", analysis.name, e)
            return e

    snapshots = [copy.deepcopy(a) for a in analyses]
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        return list(pool.map(run_one, snapshots))
