"""Report generation for stackup analysis results.

Produces HTML and plain-text reports from one AnalysisResults snapshot.
"""

from __future__ import annotations

import base64
import html as html_lib
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from stackup.distributions import distribution_stats, params_for
from stackup.models import Component, StackupAnalysis
from stackup.resolver import resolve_contributions
from stackup.results import AnalysisResults, ContributorSensitivity

# Cpk thresholds for the capability verdict line.
CPK_CAPABLE = 1.33
CPK_MARGINAL = 1.0

_STYLE = """
    body { font-family: Helvetica, Arial, sans-serif; margin: 2em 3em; color: #222; }
    h1 { color: #0D47A1; margin-bottom: 0.3em; }
    h2 { color: #1565C0; border-bottom: 2px solid #BBDEFB; margin-top: 1.8em; }
    .meta { border-collapse: collapse; margin-bottom: 2em; }
    .meta th { text-align: right; padding: 2px 12px 2px 0; color: #555; }
    .grid { border-collapse: collapse; width: 100%; font-size: 0.9em; }
    .grid th { background: #E3F2FD; text-align: left; padding: 4px 8px; }
    .grid td { padding: 4px 8px; border-top: 1px solid #E0E0E0; }
    .grid td.num { text-align: right; font-family: monospace; }
    pre.block { background: #FAFAFA; border-left: 4px solid #90CAF9; padding: 0.8em; }
    .warn { color: #B71C1C; }
    .verdict { font-size: 1.2em; font-weight: bold; }
    footer { margin-top: 3em; color: #9E9E9E; font-size: 0.8em; text-align: center; }
"""


@dataclass
class ReportConfig:
    """Options controlling report content.

    Attributes:
        title: Report title.
        project: Project name shown in the header.
        author: Author name.
        revision: Document revision.
        date: Report date; the current time is used when empty.
        include_sensitivity: Add a sensitivity table per method.
        include_contributors: Add the resolved contributor table.
        include_capability: Add the process capability section.
        image_width: Display width of embedded plots, in pixels.
    """
    title: str = "Tolerance Stackup Report"
    project: str = ""
    author: str = ""
    revision: str = "A"
    date: str = ""
    include_sensitivity: bool = True
    include_contributors: bool = True
    include_capability: bool = True
    image_width: int = 700


def _info_rows(config: ReportConfig, analysis: StackupAnalysis) -> list[tuple[str, str]]:
    return [
        ("Project", config.project),
        ("Stackup", analysis.name),
        ("Author", config.author),
        ("Revision", config.revision),
        ("Date", config.date or datetime.now().strftime("%Y-%m-%d %H:%M")),
    ]


def _method_sections(results: AnalysisResults) -> list[tuple[str, object]]:
    sections = [
        ("Worst-Case", results.worst_case),
        ("RSS", results.rss),
        ("Monte Carlo", results.monte_carlo),
    ]
    return [(name, r) for name, r in sections if r is not None]


def _capability_verdict(cpk: float) -> tuple[str, str]:
    if cpk >= CPK_CAPABLE:
        return "CAPABLE", "#2E7D32"
    if cpk >= CPK_MARGINAL:
        return "MARGINAL", "#EF6C00"
    return "NOT CAPABLE", "#C62828"


def generate_html_report(
    config: ReportConfig,
    analysis: StackupAnalysis,
    components: list[Component],
    results: AnalysisResults,
    plot_images: Optional[dict[str, bytes]] = None,
) -> str:
    """Generate an HTML stackup analysis report.

    Args:
        config: Report options.
        analysis: The analysis that was run.
        components: Components the analysis was resolved against.
        results: Results of the run.
        plot_images: Optional mapping of caption to PNG bytes, embedded inline.

    Returns:
        A standalone HTML document.
    """
    out = [
        "<!DOCTYPE html>",
        '<html lang="en"><head><meta charset="utf-8">',
        f"<title>{_esc(config.title)}</title>",
        f"<style>{_STYLE}</style>",
        "</head><body>",
        f"<h1>{_esc(config.title)}</h1>",
        '<table class="meta">',
    ]
    for label, value in _info_rows(config, analysis):
        out.append(f"<tr><th>{label}</th><td>{_esc(value)}</td></tr>")
    out.append("</table>")

    out.append("<h2>Nominal</h2>")
    out.append(f"<p>Nominal stackup: <b>{results.nominal:+.6f}</b></p>")
    if results.skipped:
        out.append('<p class="warn">Skipped contributions:</p><ul class="warn">')
        for s in results.skipped:
            out.append(f"<li>#{s.index} {_esc(s.component_id)}.{_esc(s.feature_id)}: "
                       f"{_esc(s.reason)}</li>")
        out.append("</ul>")

    if config.include_contributors:
        out.append("<h2>Contributors</h2>")
        out.append(_contributor_table(analysis, components))

    for name, result in _method_sections(results):
        out.append(f"<h2>{name} Analysis Results</h2>")
        out.append(f'<pre class="block">{_esc(result.summary())}</pre>')
        if config.include_sensitivity and result.sensitivity:
            out.append("<h3>Sensitivity Analysis</h3>")
            out.append(_sensitivity_table(result.sensitivity))

    pc = results.process_capability
    if config.include_capability and pc is not None:
        out.append("<h2>Process Capability</h2>")
        out.append(f'<pre class="block">{_esc(pc.summary())}</pre>')
        if pc.cpk is not None:
            status, color = _capability_verdict(pc.cpk)
            out.append(f'<p class="verdict" style="color:{color}">'
                       f"Cpk = {pc.cpk:.3f}: {status}</p>")
        out.append("<p>Defect rates assume a normal distribution with the "
                   "Monte Carlo mean and standard deviation.</p>")

    if plot_images:
        out.append("<h2>Analysis Plots</h2>")
        for caption, png in plot_images.items():
            encoded = base64.b64encode(png).decode("ascii")
            out.append(f"<figure><img src=\"data:image/png;base64,{encoded}\" "
                       f"width=\"{config.image_width}\" alt=\"{_esc(caption)}\">"
                       f"<figcaption>{_esc(caption)}</figcaption></figure>")

    out.append("<footer>Generated by Stackup Engine</footer>")
    out.append("</body></html>")
    return "\n".join(out)


def generate_text_report(
    config: ReportConfig,
    analysis: StackupAnalysis,
    results: AnalysisResults,
) -> str:
    """Generate a plain-text stackup analysis report."""
    rule = "=" * 70
    lines = [rule, config.title.center(70), rule]
    lines += [f"{label + ':':<10}{value}" for label, value in _info_rows(config, analysis)]
    lines += [rule, "", results.summary(), "", rule, "END OF REPORT"]
    return "\n".join(lines)


def save_report(content: str, path: str) -> None:
    """Write a generated report to ``path`` as UTF-8."""
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)


def _contributor_table(analysis: StackupAnalysis, components: list[Component]) -> str:
    resolved, _ = resolve_contributions(analysis.contributions, components)
    rows = ['<table class="grid">',
            "<tr><th>Contributor</th><th>Nominal</th><th>+Tol</th><th>-Tol</th>"
            "<th>Dir</th><th>Half</th><th>Distribution</th><th>Mean</th>"
            "<th>Std Dev</th></tr>"]
    for r in resolved:
        f = r.feature
        params = params_for(r)
        try:
            mean, std = distribution_stats(params)
            stats = f'<td class="num">{mean:.6f}</td><td class="num">{std:.6f}</td>'
        except ValueError:
            stats = "<td>-</td><td>-</td>"
        rows.append(f"<tr><td>{_esc(r.contribution.label)}</td>"
                    f'<td class="num">{f.value:.6f}</td>'
                    f'<td class="num">+{f.plus_tolerance:.6f}</td>'
                    f'<td class="num">-{f.minus_tolerance:.6f}</td>'
                    f"<td>{r.direction:+.0f}</td>"
                    f'<td>{"yes" if r.contribution.half_count else "no"}</td>'
                    f"<td>{params.dist_type.value}</td>{stats}</tr>")
    rows.append("</table>")
    return "\n".join(rows)


def _sensitivity_table(sensitivity: list[ContributorSensitivity]) -> str:
    rows = ['<table class="grid">',
            "<tr><th>Contributor</th><th>Contribution</th><th>Range</th>"
            "<th>Correlation</th></tr>"]
    for s in sensitivity:
        lo, hi = s.variation_range
        corr = f"{s.correlation:+.3f}" if s.correlation is not None else "-"
        rows.append(f"<tr><td>{_esc(s.label)}</td>"
                    f'<td class="num">{s.contribution_percent:.2f}%</td>'
                    f'<td class="num">[{lo:+.6f}, {hi:+.6f}]</td>'
                    f'<td class="num">{corr}</td></tr>')
    rows.append("</table>")
    return "\n".join(rows)


def _esc(text: str) -> str:
    return html_lib.escape(text, quote=True)
