"""Tests for process capability and statistical helpers."""

import numpy as np
import pytest
from scipy.stats import norm

from stackup.statistics import (
    compute_process_capability,
    confidence_intervals,
    correlation,
    histogram,
    sample_variance,
)


class TestProcessCapability:
    def test_centered(self):
        pc = compute_process_capability(mean=0.0, std_dev=1.0, usl=3.0, lsl=-3.0)
        assert pc.cp == pytest.approx(1.0)
        assert pc.cpk == pytest.approx(1.0)
        assert pc.ppm_below == pytest.approx(norm.cdf(-3.0) * 1e6)
        assert pc.ppm_above == pytest.approx(pc.ppm_below)
        assert pc.ppm_total == pytest.approx(2699.8, rel=1e-3)

    def test_shifted(self):
        pc = compute_process_capability(mean=1.0, std_dev=1.0, usl=3.0, lsl=-3.0)
        assert pc.cp == pytest.approx(1.0)
        assert pc.cpk == pytest.approx(2.0 / 3.0)
        assert pc.ppm_above > pc.ppm_below

    def test_pph_uses_fixed_rate(self):
        pc = compute_process_capability(mean=0.0, std_dev=1.0, usl=2.0, lsl=-2.5)
        assert pc.pph_above == pytest.approx(pc.ppm_above * 3.6)
        assert pc.pph_below == pytest.approx(pc.ppm_below * 3.6)

    def test_zero_std_in_spec(self):
        pc = compute_process_capability(mean=5.0, std_dev=0.0, usl=6.0, lsl=4.0)
        assert pc.cp is None
        assert pc.cpk is None
        assert pc.ppm_total == 0.0

    def test_zero_std_out_of_spec(self):
        pc = compute_process_capability(mean=7.0, std_dev=0.0, usl=6.0, lsl=4.0)
        assert pc.ppm_above == 1e6
        assert pc.ppm_below == 0.0

    def test_summary(self):
        s = compute_process_capability(0.0, 0.0, 1.0, -1.0).summary()
        assert "Cp:" in s
        assert "n/a" in s
        assert "PPM total" in s


class TestSampleStatistics:
    def test_variance_bessel(self):
        assert sample_variance(np.array([1.0, 2.0, 3.0, 4.0])) == pytest.approx(5.0 / 3.0)

    def test_variance_small_n(self):
        assert sample_variance(np.array([4.2])) == 0.0
        assert sample_variance(np.array([])) == 0.0

    def test_correlation(self):
        x = np.array([1.0, 2.0, 3.0, 4.0])
        y = -2.0 * x + 1.0
        r = correlation(x, y, sample_variance(x), sample_variance(y))
        assert r == pytest.approx(-1.0)

    def test_correlation_zero_variance(self):
        x = np.array([1.0, 1.0, 1.0])
        y = np.array([1.0, 2.0, 3.0])
        assert correlation(x, y, 0.0, sample_variance(y)) == 0.0


class TestConfidenceIntervals:
    def test_nearest_rank(self):
        samples = np.random.default_rng(0).permutation(np.arange(100.0))
        cis = confidence_intervals(samples, 0.5)
        by_level = {ci.confidence_level: (ci.lower_bound, ci.upper_bound) for ci in cis}
        assert by_level[1.0] == (0.0, 99.0)
        assert by_level[0.90] == (5.0, 95.0)
        assert by_level[0.5] == (25.0, 75.0)

    def test_round_half_up(self):
        # ranks 2.5 and 7.5 round up to 3 and 8
        user = confidence_intervals(np.arange(10.0), 0.5)[-1]
        assert (user.lower_bound, user.upper_bound) == (3.0, 8.0)

    def test_clamped(self):
        cis = confidence_intervals(np.arange(100.0), 2.0)
        assert cis[-1].confidence_level == 0.9999
        assert (cis[-1].lower_bound, cis[-1].upper_bound) == (0.0, 99.0)
        cis = confidence_intervals(np.arange(100.0), -1.0)
        assert cis[-1].confidence_level == 0.0

    def test_empty(self):
        assert confidence_intervals(np.array([]), 0.9) == []


class TestHistogram:
    def test_bins(self):
        h = histogram(np.arange(11.0), num_bins=5)
        assert [start for start, _ in h] == [0.0, 2.0, 4.0, 6.0, 8.0]
        assert [count for _, count in h] == [2, 2, 2, 2, 3]

    def test_max_lands_in_last_bin(self):
        samples = np.random.default_rng(3).normal(size=9999)
        h = histogram(samples)
        assert len(h) == 20
        assert sum(c for _, c in h) == 9999

    def test_counts_match_reported_bins(self):
        rng = np.random.default_rng(11)
        for _ in range(200):
            # quantised data puts many samples exactly on bin edges
            samples = np.round(rng.normal(size=50), 2)
            h = histogram(samples)
            width = (samples.max() - samples.min()) / 20
            starts = [start for start, _ in h]
            expected = [int(np.sum((samples >= s) & (samples < s + width))) for s in starts[:-1]]
            expected.append(int(np.sum(samples >= starts[-1])))
            assert [count for _, count in h] == expected

    def test_edge_value_counted_in_containing_bin(self):
        samples = np.array([0.0, 0.3, 0.3, 1.0])
        h = histogram(samples, num_bins=10)
        owner = next(i for i, (s, _) in enumerate(h) if s <= 0.3 < s + 0.1)
        assert h[owner][1] == 2
        assert sum(c for _, c in h) == 4

    def test_zero_width(self):
        assert histogram(np.full(4, 3.0)) == [(3.0, 4)]

    def test_empty(self):
        assert histogram(np.array([])) == []
