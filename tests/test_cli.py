"""Tests for the command-line interface."""

import json

import pytest

from stackup.cli import _parse_methods, _with_suffix, main
from stackup.models import AnalysisMethod, FitType, Mate, Project


@pytest.fixture
def shaft_file(tmp_path):
    path = tmp_path / "shaft.json"
    assert main(["example", "shaft", "-o", str(path)]) == 0
    return path


class TestExample:
    def test_creates_loadable_project(self, shaft_file):
        project = Project.load(str(shaft_file))
        assert project.name == "Shaft-Housing Assembly"
        assert project.analyses[0].name == "Shaft end gap"

    def test_pin(self, tmp_path):
        path = tmp_path / "pin.json"
        assert main(["example", "pin", "-o", str(path)]) == 0
        assert Project.load(str(path)).analyses[0].contributions[0].half_count


class TestAnalyze:
    def test_summary_and_json(self, shaft_file, tmp_path, capsys):
        out = tmp_path / "results.json"
        rc = main(["analyze", str(shaft_file), "--iterations", "2000", "--json", str(out)])
        assert rc == 0
        printed = capsys.readouterr().out
        assert "##### Shaft end gap #####" in printed
        assert "Worst-Case" in printed
        assert "Process Capability" in printed

        data = json.loads(out.read_text())
        assert data["nominal"] == pytest.approx(0.7)
        assert data["monte_carlo"]["iterations"] == 2000

    def test_method_override(self, shaft_file, capsys):
        assert main(["analyze", str(shaft_file), "-m", "wc"]) == 0
        printed = capsys.readouterr().out
        assert "Worst-Case" in printed
        assert "Monte Carlo" not in printed

    def test_csv_and_report(self, shaft_file, tmp_path):
        csv_path = tmp_path / "raw.csv"
        report_path = tmp_path / "report.html"
        rc = main(["analyze", str(shaft_file), "--iterations", "100",
                   "--csv", str(csv_path), "--report", str(report_path)])
        assert rc == 0
        assert len(csv_path.read_text().splitlines()) == 101
        assert "<!DOCTYPE html>" in report_path.read_text(encoding="utf-8")

    def test_monte_carlo_without_settings(self, shaft_file, capsys):
        project = Project.load(str(shaft_file))
        project.analyses[0].monte_carlo_settings = None
        project.save(str(shaft_file))

        assert main(["analyze", str(shaft_file)]) == 1
        assert "configuration error" in capsys.readouterr().err

    def test_unknown_analysis(self, shaft_file):
        with pytest.raises(SystemExit):
            main(["analyze", str(shaft_file), "-a", "Nope"])


class TestParseMethods:
    def test_aliases(self):
        assert _parse_methods("wc, RSS ,monte-carlo") == [
            AnalysisMethod.WORST_CASE, AnalysisMethod.RSS, AnalysisMethod.MONTE_CARLO,
        ]

    def test_unknown(self):
        import argparse
        with pytest.raises(argparse.ArgumentTypeError):
            _parse_methods("fem")


class TestPlotPaths:
    def test_suffix_before_extension(self):
        assert _with_suffix("figs/out.png", "wc_waterfall", ".png") == "figs/out_wc_waterfall.png"

    def test_missing_extension_gets_default(self):
        paths = {_with_suffix("figs/out", s, ".png") for s in ("wc_waterfall", "mc_histogram")}
        assert paths == {"figs/out_wc_waterfall.png", "figs/out_mc_histogram.png"}

    def test_dot_in_directory(self):
        assert _with_suffix("run.v2/out", "rss", ".png") == "run.v2/out_rss.png"

    def test_save_plots_without_extension(self, shaft_file, tmp_path):
        import matplotlib
        matplotlib.use("Agg")

        base = tmp_path / "plots"
        rc = main(["analyze", str(shaft_file), "--iterations", "500", "--plot",
                   "--save-plots", str(base)])
        assert rc == 0
        names = sorted(p.name for p in tmp_path.glob("plots_*.png"))
        assert names == [
            "plots_mc_histogram.png", "plots_mc_sensitivity.png",
            "plots_rss_sensitivity.png", "plots_wc_sensitivity.png",
            "plots_wc_waterfall.png",
        ]


class TestMates:
    def test_pin_example_passes(self, tmp_path, capsys):
        path = tmp_path / "pin.json"
        main(["example", "pin", "-o", str(path)])
        out = tmp_path / "fits.json"
        assert main(["mates", str(path), "--json", str(out)]) == 0
        assert "Plate.Bore diameter / Pin.Diameter [clearance]" in capsys.readouterr().out
        data = json.loads(out.read_text())
        assert data[0]["result"]["is_valid"] is True
        assert data[0]["result"]["min_fit"] == pytest.approx(0.02)

    def test_failing_fit_returns_1(self, tmp_path, capsys):
        path = tmp_path / "pin.json"
        main(["example", "pin", "-o", str(path)])
        project = Project.load(str(path))
        project.mates = [Mate("Plate", "Bore diameter", "Pin", "Diameter", FitType.INTERFERENCE)]
        project.save(str(path))

        assert main(["mates", str(path)]) == 1
        assert "FAIL: Interference fit" in capsys.readouterr().out

    def test_no_mates(self, shaft_file, capsys):
        assert main(["mates", str(shaft_file)]) == 0
        assert "defines no mates" in capsys.readouterr().out
