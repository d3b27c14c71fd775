"""Resolve contributions to the feature data they reference."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from stackup.models import Component, Contribution, Feature

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedContribution:
    """A contribution paired with its feature.

    Attributes:
        index: Position of the contribution in the analysis (insertion order).
        contribution: The contribution as configured.
        feature: The feature it references.
    """
    index: int
    contribution: Contribution
    feature: Feature

    @property
    def multiplier(self) -> float:
        return self.contribution.multiplier

    @property
    def direction(self) -> float:
        return self.contribution.direction

    @property
    def nominal_contribution(self) -> float:
        """Signed, half-count-scaled nominal this contributor adds to the stackup."""
        return self.feature.value * self.direction * self.multiplier


@dataclass(frozen=True)
class SkippedContribution:
    """A contribution whose (component, feature) reference was not found."""
    index: int
    component_id: str
    feature_id: str
    reason: str

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "component_id": self.component_id,
            "feature_id": self.feature_id,
            "reason": self.reason,
        }


def resolve_contributions(
    contributions: list[Contribution],
    components: list[Component],
) -> tuple[list[ResolvedContribution], list[SkippedContribution]]:
    """Pair each contribution with its feature.

    Unresolvable references are returned separately and logged; they do not
    abort resolution of the rest.

    Returns:
        (resolved, skipped), both in insertion order.
    """
    by_name = {c.name: c for c in reversed(components)}  # first match wins
    resolved: list[ResolvedContribution] = []
    skipped: list[SkippedContribution] = []

    for i, contrib in enumerate(contributions):
        component = by_name.get(contrib.component_id)
        if component is None:
            reason = f"component {contrib.component_id!r} not found"
            feature = None
        else:
            feature = component.feature(contrib.feature_id)
            reason = f"feature {contrib.feature_id!r} not found on {contrib.component_id!r}"

        if feature is None:
            logger.warning("Skipping contribution #%d (%s): %s", i, contrib.label, reason)
            skipped.append(SkippedContribution(i, contrib.component_id, contrib.feature_id, reason))
        else:
            resolved.append(ResolvedContribution(i, contrib, feature))

    return resolved, skipped
