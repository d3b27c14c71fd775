"""Tolerance Stackup Analysis Engine.

Computes how variation in a chain of toleranced dimensions accumulates into
a derived assembly dimension, using:
- Worst-Case analysis
- RSS (root-sum-square) statistical analysis
- Monte Carlo simulation with sensitivity, confidence intervals and histogram

Additional capabilities:
- Normal, Uniform, Triangular and LogNormal contributor distributions
- Process capability metrics (Cp/Cpk/PPM/PPH)
- Clearance, transition and interference fit checks between mated features
- JSON project files and raw Monte Carlo CSV export
- HTML/text report generation and matplotlib plots
"""

from stackup.models import (
    AnalysisMethod, Component, Contribution, DistributionParams,
    DistributionType, Feature, FeatureType, FitType, Mate, MonteCarloSettings,
    Project, StackupAnalysis,
)
from stackup.errors import ConfigurationError
from stackup.resolver import ResolvedContribution, SkippedContribution, resolve_contributions
from stackup.distributions import (
    default_distribution_params, distribution_stats, sample_distribution,
)
from stackup.analysis import analyze_stackup, monte_carlo, rss, run_analyses, worst_case
from stackup.results import (
    AnalysisResults, ContributorSensitivity, MonteCarloResult, RssResult,
    WorstCaseResult,
)
from stackup.statistics import (
    ConfidenceInterval, ProcessCapability, compute_process_capability,
)
from stackup.export import write_monte_carlo_csv
from stackup.mates import FitValidation, validate_fit, validate_mate, validate_mates
from stackup.reporting import (
    ReportConfig, generate_html_report, generate_text_report, save_report,
)

__all__ = [
    # Models
    "AnalysisMethod", "Component", "Contribution", "DistributionParams",
    "DistributionType", "Feature", "FeatureType", "FitType", "Mate",
    "MonteCarloSettings", "Project", "StackupAnalysis", "ConfigurationError",
    # Resolution
    "ResolvedContribution", "SkippedContribution", "resolve_contributions",
    # Distributions
    "default_distribution_params", "distribution_stats", "sample_distribution",
    # Analysis
    "analyze_stackup", "monte_carlo", "rss", "run_analyses", "worst_case",
    "AnalysisResults", "ContributorSensitivity", "MonteCarloResult",
    "RssResult", "WorstCaseResult",
    # Statistics
    "ConfidenceInterval", "ProcessCapability", "compute_process_capability",
    # Mates
    "FitValidation", "validate_fit", "validate_mate", "validate_mates",
    # Export & reporting
    "write_monte_carlo_csv",
    "ReportConfig", "generate_html_report", "generate_text_report", "save_report",
]
__version__ = "0.1.0"
