"""Tests for the worst-case and RSS engines and the analysis orchestrator."""

import logging
import math

import pytest

from stackup.analysis import analyze_stackup, rss, run_analyses, worst_case
from stackup.errors import ConfigurationError
from stackup.models import (
    AnalysisMethod, Component, DistributionParams, Feature, MonteCarloSettings,
    StackupAnalysis,
)
from stackup.resolver import resolve_contributions


def _components(a_tol: float = 0.1) -> list[Component]:
    return [
        Component("A", [Feature("len", 10.0, a_tol, a_tol)]),
        Component("B", [Feature("len", 5.0, 0.05, 0.05)]),
    ]


def _simple_analysis(**kwargs) -> StackupAnalysis:
    """A (+10 +/-0.1) minus B (5 +/-0.05)."""
    analysis = StackupAnalysis(name="Simple", **kwargs)
    analysis.add_contribution("A", "len", +1.0)
    analysis.add_contribution("B", "len", -1.0)
    return analysis


def _resolved(analysis=None, components=None):
    analysis = analysis or _simple_analysis()
    resolved, _ = resolve_contributions(analysis.contributions, components or _components())
    return resolved


class TestWorstCase:
    def test_simple_range(self):
        r = worst_case(_resolved())
        assert r.min == pytest.approx(4.85)
        assert r.max == pytest.approx(5.15)

    def test_negative_direction_swaps_faces(self):
        analysis = StackupAnalysis(name="Asym")
        analysis.add_contribution("P", "len", -1.0)
        components = [Component("P", [Feature("len", 5.0, 0.2, 0.1)])]
        r = worst_case(_resolved(analysis, components))
        assert r.min == pytest.approx(-5.2)
        assert r.max == pytest.approx(-4.9)

    def test_half_count(self):
        analysis = StackupAnalysis(name="Half")
        analysis.add_contribution("A", "len", +1.0, half_count=True)
        r = worst_case(_resolved(analysis))
        assert r.min == pytest.approx(4.95)
        assert r.max == pytest.approx(5.05)

    def test_range_is_sum_of_contributor_ranges(self):
        r = worst_case(_resolved())
        total = sum(s.variation_range[1] - s.variation_range[0] for s in r.sensitivity)
        assert r.max - r.min == pytest.approx(total)

    def test_sensitivity(self):
        r = worst_case(_resolved())
        assert [s.component_id for s in r.sensitivity] == ["A", "B"]
        assert r.sensitivity[0].contribution_percent == pytest.approx(200.0 / 3.0)
        assert r.sensitivity[1].contribution_percent == pytest.approx(100.0 / 3.0)
        assert r.sensitivity[1].variation_range == (pytest.approx(-5.05), pytest.approx(-4.95))
        assert r.sensitivity[0].correlation is None

    def test_sorted_descending_stable(self):
        analysis = StackupAnalysis(name="Ties")
        analysis.add_contribution("B", "len", +1.0)
        analysis.add_contribution("A", "len", +1.0)
        analysis.add_contribution("B", "len", -1.0)
        r = worst_case(_resolved(analysis))
        assert [s.component_id for s in r.sensitivity] == ["A", "B", "B"]
        assert r.sensitivity[1].variation_range[0] > 0

    def test_zero_tolerance(self):
        components = [Component("A", [Feature("len", 10.0, 0.0, 0.0)])]
        analysis = StackupAnalysis(name="Exact")
        analysis.add_contribution("A", "len")
        r = worst_case(_resolved(analysis, components))
        assert r.min == r.max == 10.0
        assert r.sensitivity[0].contribution_percent == 0.0

    def test_no_contributors(self):
        r = worst_case([])
        assert (r.min, r.max) == (0.0, 0.0)
        assert r.sensitivity == []


class TestRSS:
    def test_simple(self):
        r = rss(_resolved())
        assert r.std_dev == pytest.approx(math.sqrt(0.0125) / 3.0)
        assert r.min == pytest.approx(5.0 - math.sqrt(0.0125))
        assert r.max == pytest.approx(5.0 + math.sqrt(0.0125))

    def test_sensitivity(self):
        r = rss(_resolved())
        pcts = {s.component_id: s.contribution_percent for s in r.sensitivity}
        assert pcts["A"] == pytest.approx(80.0)
        assert pcts["B"] == pytest.approx(20.0)
        assert r.sensitivity[0].variation_range == (pytest.approx(4.7), pytest.approx(5.3))

    def test_half_count(self):
        analysis = StackupAnalysis(name="Half")
        analysis.add_contribution("A", "len", +1.0, half_count=True)
        analysis.add_contribution("B", "len", -1.0)
        r = rss(_resolved(analysis))
        # A: (0.2 / 2 * 0.5)^2 = 0.0025, B: 0.05^2 = 0.0025
        assert r.std_dev == pytest.approx(math.sqrt(0.005) / 3.0)
        assert (r.min + r.max) / 2.0 == pytest.approx(0.0)
        assert [s.contribution_percent for s in r.sensitivity] == [
            pytest.approx(50.0), pytest.approx(50.0),
        ]

    def test_std_dev_monotonic_in_tolerance(self):
        previous = -1.0
        for tol in (0.0, 0.05, 0.1, 0.2, 0.5):
            r = rss(_resolved(components=_components(a_tol=tol)))
            assert r.std_dev >= previous
            previous = r.std_dev

    def test_zero_variance(self):
        components = [Component("A", [Feature("len", 1.0, 0.0, 0.0)])]
        analysis = StackupAnalysis(name="Exact")
        analysis.add_contribution("A", "len")
        r = rss(_resolved(analysis, components))
        assert r.std_dev == 0.0
        assert sum(s.contribution_percent for s in r.sensitivity) == 0.0


class TestAnalyzeStackup:
    def test_default_runs_worst_case_only(self):
        results = analyze_stackup(_simple_analysis(), _components())
        assert results.nominal == pytest.approx(5.0)
        assert results.worst_case is not None
        assert results.rss is None
        assert results.monte_carlo is None
        assert results.process_capability is None

    def test_all_methods(self):
        analysis = _simple_analysis(
            methods=list(AnalysisMethod),
            monte_carlo_settings=MonteCarloSettings(iterations=2000, seed=1),
        )
        results = analyze_stackup(analysis, _components())
        assert results.analysis_id == analysis.id
        assert results.timestamp
        assert results.worst_case and results.rss and results.monte_carlo

    def test_sensitivities_sum_to_100(self):
        analysis = _simple_analysis(
            methods=list(AnalysisMethod),
            monte_carlo_settings=MonteCarloSettings(iterations=2000, seed=1),
        )
        results = analyze_stackup(analysis, _components())
        for part in (results.worst_case, results.rss, results.monte_carlo):
            assert sum(s.contribution_percent for s in part.sensitivity) == pytest.approx(100.0)

    def test_monte_carlo_without_settings(self):
        analysis = _simple_analysis(methods=[AnalysisMethod.MONTE_CARLO])
        with pytest.raises(ConfigurationError, match="no settings"):
            analyze_stackup(analysis, _components())

    def test_no_methods(self):
        analysis = _simple_analysis(methods=[])
        with pytest.raises(ConfigurationError, match="no methods"):
            analyze_stackup(analysis, _components())

    def test_degenerate_contribution_params(self):
        analysis = StackupAnalysis(
            name="Bad",
            methods=[AnalysisMethod.MONTE_CARLO],
            monte_carlo_settings=MonteCarloSettings(iterations=100),
        )
        analysis.add_contribution("A", "len", distribution=DistributionParams.uniform(10.0, 9.0))
        with pytest.raises(ConfigurationError, match="A.len"):
            analyze_stackup(analysis, _components())

    def test_missing_feature_is_skipped_and_reported(self, caplog):
        analysis = _simple_analysis(methods=[AnalysisMethod.WORST_CASE, AnalysisMethod.RSS])
        analysis.add_contribution("C", "len", +1.0)
        analysis.add_contribution("A", "width", +1.0)
        with caplog.at_level(logging.WARNING, logger="stackup.resolver"):
            results = analyze_stackup(analysis, _components())

        assert results.nominal == pytest.approx(5.0)
        assert results.worst_case.max == pytest.approx(5.15)
        assert [(s.index, s.component_id, s.feature_id) for s in results.skipped] == [
            (2, "C", "len"), (3, "A", "width"),
        ]
        assert "not found" in results.skipped[0].reason
        assert "Skipping contribution #2" in caplog.text

    def test_process_capability_needs_both_limits(self):
        settings = MonteCarloSettings(iterations=2000, seed=3)
        methods = [AnalysisMethod.MONTE_CARLO]
        one_sided = _simple_analysis(methods=methods, monte_carlo_settings=settings,
                                     upper_spec_limit=5.2)
        assert analyze_stackup(one_sided, _components()).process_capability is None

        both = _simple_analysis(methods=methods, monte_carlo_settings=settings,
                                upper_spec_limit=5.2, lower_spec_limit=4.8)
        pc = analyze_stackup(both, _components()).process_capability
        assert pc is not None
        assert pc.cp > 1.0

    def test_process_capability_needs_monte_carlo(self):
        analysis = _simple_analysis(upper_spec_limit=5.2, lower_spec_limit=4.8)
        assert analyze_stackup(analysis, _components()).process_capability is None

    def test_analysis_not_mutated(self):
        analysis = _simple_analysis(
            methods=list(AnalysisMethod),
            monte_carlo_settings=MonteCarloSettings(iterations=500, seed=1),
        )
        before = analysis.to_dict()
        analyze_stackup(analysis, _components())
        assert analysis.to_dict() == before

    def test_to_dict(self):
        analysis = _simple_analysis(
            methods=list(AnalysisMethod),
            monte_carlo_settings=MonteCarloSettings(iterations=500, seed=1),
            upper_spec_limit=5.2, lower_spec_limit=4.8,
        )
        d = analyze_stackup(analysis, _components()).to_dict()
        assert d["worst_case"]["min"] == pytest.approx(4.85)
        assert len(d["monte_carlo"]["histogram"]) == 20
        assert "stackup_samples" not in d["monte_carlo"]
        assert d["process_capability"]["cp"] > 0

    def test_summary(self):
        analysis = _simple_analysis(methods=[AnalysisMethod.WORST_CASE, AnalysisMethod.RSS])
        s = analyze_stackup(analysis, _components()).summary()
        assert "Worst-Case" in s
        assert "RSS" in s
        assert "A.len" in s


class TestRunAnalyses:
    def test_errors_are_isolated(self):
        good = _simple_analysis()
        bad = _simple_analysis(methods=[AnalysisMethod.MONTE_CARLO])
        outcomes = run_analyses([good, bad, good], _components(), max_workers=2)

        assert outcomes[0].worst_case.max == pytest.approx(5.15)
        assert isinstance(outcomes[1], ConfigurationError)
        assert outcomes[2].analysis_id == good.id
