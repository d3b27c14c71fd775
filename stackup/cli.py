"""Command-line interface for tolerance stackup analysis."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys

from stackup.analysis import analyze_stackup
from stackup.errors import ConfigurationError
from stackup.models import AnalysisMethod, MonteCarloSettings, Project, StackupAnalysis

logger = logging.getLogger(__name__)

_METHOD_ALIASES = {
    "wc": AnalysisMethod.WORST_CASE,
    "worst-case": AnalysisMethod.WORST_CASE,
    "worst_case": AnalysisMethod.WORST_CASE,
    "rss": AnalysisMethod.RSS,
    "mc": AnalysisMethod.MONTE_CARLO,
    "monte-carlo": AnalysisMethod.MONTE_CARLO,
    "monte_carlo": AnalysisMethod.MONTE_CARLO,
}


def _parse_methods(s: str) -> list[AnalysisMethod]:
    """Parse a method list like 'wc,rss,mc'."""
    methods = []
    for part in s.split(","):
        key = part.lower().strip()
        if key not in _METHOD_ALIASES:
            raise argparse.ArgumentTypeError(f"Unknown analysis method: {part!r}")
        methods.append(_METHOD_ALIASES[key])
    return methods


def _select_analyses(project: Project, name: str | None) -> list[StackupAnalysis]:
    if name is None:
        return list(project.analyses)
    analysis = project.analysis(name)
    if analysis is None:
        raise SystemExit(f"No analysis named {name!r} in project {project.name!r}")
    return [analysis]


def _apply_overrides(analysis: StackupAnalysis, args: argparse.Namespace) -> None:
    """Apply command-line overrides to an analysis loaded from file."""
    if args.methods:
        analysis.methods = list(dict.fromkeys(args.methods))
    if args.iterations is not None or args.seed is not None or args.confidence is not None:
        settings = analysis.monte_carlo_settings or MonteCarloSettings()
        if args.iterations is not None:
            settings.iterations = args.iterations
        if args.seed is not None:
            settings.seed = args.seed
        if args.confidence is not None:
            settings.confidence = args.confidence
        analysis.monte_carlo_settings = settings
    if args.usl is not None:
        analysis.upper_spec_limit = args.usl
    if args.lsl is not None:
        analysis.lower_spec_limit = args.lsl


def _with_suffix(base: str, suffix: str, default_ext: str = "") -> str:
    """Insert ``_suffix`` before the file extension of ``base``."""
    stem, ext = os.path.splitext(base)
    return f"{stem}_{suffix}{ext or default_ext}"


def _output_path(base: str, analysis: StackupAnalysis, many: bool) -> str:
    """Insert the analysis id before the extension when writing several analyses."""
    return _with_suffix(base, analysis.id) if many else base


def cmd_analyze(args: argparse.Namespace) -> int:
    """Run analyses from a JSON project file."""
    project = Project.load(args.file)
    logger.debug("Loaded project %r: %d components, %d analyses",
                 project.name, len(project.components), len(project.analyses))
    selected = _select_analyses(project, args.analysis)
    many = len(selected) > 1
    status = 0

    for analysis in selected:
        _apply_overrides(analysis, args)
        try:
            results = analyze_stackup(analysis, project.components)
        except ConfigurationError as e:
            print(f"{analysis.name}: configuration error: {e}", file=sys.stderr)
            status = 1
            continue

        print(f"##### {analysis.name} #####")
        print(results.summary())
        print()

        if args.json:
            path = _output_path(args.json, analysis, many)
            with open(path, "w") as f:
                json.dump(results.to_dict(), f, indent=2)
            print(f"Saved results to {path}")

        if args.csv and results.monte_carlo is not None:
            from stackup.export import write_monte_carlo_csv
            path = _output_path(args.csv, analysis, many)
            write_monte_carlo_csv(results.monte_carlo, path)
            print(f"Saved raw Monte Carlo data to {path}")

        if args.report:
            from stackup.reporting import ReportConfig, generate_html_report, save_report
            html = generate_html_report(
                ReportConfig(project=project.name), analysis, project.components, results,
            )
            path = _output_path(args.report, analysis, many)
            save_report(html, path)
            print(f"Saved report to {path}")

        if args.plot:
            _plot(analysis, project, results, args.save_plots)

    return status


def _plot(analysis, project, results, save_plots) -> None:
    from stackup.visualize import (
        plot_monte_carlo_histogram,
        plot_sensitivity,
        plot_waterfall,
    )

    def path_for(suffix: str):
        return _with_suffix(save_plots, suffix, ".png") if save_plots else None

    if results.worst_case is not None:
        plot_waterfall(analysis, project.components, results.worst_case,
                       save_path=path_for("wc_waterfall"))
    for key, result in (("wc", results.worst_case), ("rss", results.rss),
                        ("mc", results.monte_carlo)):
        if result is not None:
            plot_sensitivity(result, save_path=path_for(f"{key}_sensitivity"))
    if results.monte_carlo is not None:
        spec = None
        if analysis.lower_spec_limit is not None and analysis.upper_spec_limit is not None:
            spec = (analysis.lower_spec_limit, analysis.upper_spec_limit)
        plot_monte_carlo_histogram(results.monte_carlo, spec_limits=spec,
                                   save_path=path_for("mc_histogram"))


def cmd_mates(args: argparse.Namespace) -> int:
    """Check every mate in a project against its intended fit."""
    from stackup.mates import validate_mates

    project = Project.load(args.file)
    if not project.mates:
        print(f"Project {project.name!r} defines no mates")
        return 0

    checks = validate_mates(project.mates, project.components)
    for mate, result in checks:
        print(f"{mate.label} [{mate.fit_type.value}]")
        print(f"  {result.summary()}")

    if args.json:
        with open(args.json, "w") as f:
            json.dump([dict(mate.to_dict(), result=result.to_dict()) for mate, result in checks],
                      f, indent=2)
        print(f"Saved fit results to {args.json}")

    return 0 if all(result.is_valid for _, result in checks) else 1


def cmd_create_example(args: argparse.Namespace) -> int:
    """Create an example project file."""
    from stackup.examples import create_pin_bore_example, create_shaft_housing_example

    factories = {
        "shaft": create_shaft_housing_example,
        "pin": create_pin_bore_example,
    }
    project = factories[args.example]()
    path = args.output or f"{args.example}_example.json"
    project.save(path)
    print(f"Created example project: {path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stackup",
        description="Tolerance Stackup Analysis",
    )
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- analyze ---
    p_analyze = subparsers.add_parser("analyze", help="Analyze stackups from a JSON project file")
    p_analyze.add_argument("file", help="Path to project JSON file")
    p_analyze.add_argument("-a", "--analysis", default=None,
                           help="Name or id of one analysis (default: all)")
    p_analyze.add_argument("-m", "--methods", type=_parse_methods, default=None,
                           help="Comma-separated methods: wc,rss,mc (default: as stored)")
    p_analyze.add_argument("--iterations", type=int, default=None,
                           help="Number of Monte Carlo iterations")
    p_analyze.add_argument("--seed", type=int, default=None,
                           help="Random seed for Monte Carlo")
    p_analyze.add_argument("--confidence", type=float, default=None,
                           help="Additional confidence level, e.g. 0.9973")
    p_analyze.add_argument("--usl", type=float, default=None, help="Upper spec limit")
    p_analyze.add_argument("--lsl", type=float, default=None, help="Lower spec limit")
    p_analyze.add_argument("--json", default=None, help="Save results as JSON")
    p_analyze.add_argument("--csv", default=None, help="Save raw Monte Carlo samples as CSV")
    p_analyze.add_argument("--report", default=None, help="Save an HTML report")
    p_analyze.add_argument("--plot", action="store_true", help="Show visualization plots")
    p_analyze.add_argument("--save-plots", default=None,
                           help="Save plots to file (base path, e.g. output.png)")
    p_analyze.set_defaults(func=cmd_analyze)

    # --- mates ---
    p_mates = subparsers.add_parser("mates", help="Check mate fits in a JSON project file")
    p_mates.add_argument("file", help="Path to project JSON file")
    p_mates.add_argument("--json", default=None, help="Save fit results as JSON")
    p_mates.set_defaults(func=cmd_mates)

    # --- example ---
    p_example = subparsers.add_parser("example", help="Create an example project file")
    p_example.add_argument("example", choices=["shaft", "pin"],
                           help="Which example to create")
    p_example.add_argument("-o", "--output", default=None, help="Output file path")
    p_example.set_defaults(func=cmd_create_example)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
