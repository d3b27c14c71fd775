"""Raw Monte Carlo data export."""

from __future__ import annotations

import csv
import logging

from stackup.results import MonteCarloResult

logger = logging.getLogger(__name__)


def write_monte_carlo_csv(result: MonteCarloResult, path: str) -> int:
    """Write every Monte Carlo iteration to a CSV file.

    Columns are ``stackup_result`` followed by one ``<component>_<feature>``
    column of raw sampled values per contributor, in insertion order.

    Returns:
        Number of data rows written.
    """
    if result.stackup_samples is None or result.contributor_values is None:
        raise ValueError("MonteCarloResult does not contain raw samples")

    columns = result.contributor_values
    header = ["stackup_result"] + [label.replace(".", "_", 1) for label, _ in columns]

    with open(path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for i, total in enumerate(result.stackup_samples):
            writer.writerow([repr(float(total))] + [repr(float(v[i])) for _, v in columns])

    n_rows = len(result.stackup_samples)
    logger.info("Wrote %d Monte Carlo rows to %s", n_rows, path)
    return n_rows
