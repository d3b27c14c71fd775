"""Fit analysis between mating external and internal features.

Fit is measured as clearance: internal size minus external size. Positive
values are clearance, negative values interference. The limits assume both
features at opposite extremes of their tolerance bands.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from stackup.models import Component, Feature, FeatureType, FitType, Mate

logger = logging.getLogger(__name__)

INVALID_COMBINATION = "Invalid feature type combination"

_FIT_ERRORS = {
    FitType.CLEARANCE: "Clearance fit must have positive minimum clearance",
    FitType.INTERFERENCE: "Interference fit must have negative maximum clearance",
    FitType.TRANSITION: "Transition fit must have both positive and negative clearances",
}


@dataclass(frozen=True)
class FitValidation:
    """Outcome of checking a mate against its intended fit type.

    Attributes:
        is_valid: True when the fit limits satisfy the fit type.
        nominal_fit: Clearance at nominal sizes.
        min_fit: Smallest clearance (largest external, smallest internal).
        max_fit: Largest clearance (smallest external, largest internal).
        error_message: Why the mate failed, None when valid.
    """
    is_valid: bool
    nominal_fit: float
    min_fit: float
    max_fit: float
    error_message: Optional[str] = None

    def summary(self) -> str:
        status = "OK" if self.is_valid else f"FAIL: {self.error_message}"
        return (f"nominal={self.nominal_fit:+.6f}  min={self.min_fit:+.6f}  "
                f"max={self.max_fit:+.6f}  {status}")

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "nominal_fit": self.nominal_fit,
            "min_fit": self.min_fit,
            "max_fit": self.max_fit,
            "error_message": self.error_message,
        }


def _internal_external(a: Feature, b: Feature) -> Optional[tuple[Feature, Feature]]:
    """Order a pair as (internal, external), or None if it cannot mate."""
    if a.feature_type == FeatureType.EXTERNAL and b.feature_type == FeatureType.INTERNAL:
        return b, a
    if a.feature_type == FeatureType.INTERNAL and b.feature_type == FeatureType.EXTERNAL:
        return a, b
    return None


def nominal_fit(a: Feature, b: Feature) -> float:
    """Clearance at nominal sizes; 0.0 for an invalid combination."""
    pair = _internal_external(a, b)
    if pair is None:
        return 0.0
    internal, external = pair
    return internal.value - external.value


def min_fit(a: Feature, b: Feature) -> float:
    """Least material internal against maximum material external."""
    pair = _internal_external(a, b)
    if pair is None:
        return 0.0
    internal, external = pair
    return ((internal.value - internal.minus_tolerance)
            - (external.value + external.plus_tolerance))


def max_fit(a: Feature, b: Feature) -> float:
    pair = _internal_external(a, b)
    if pair is None:
        return 0.0
    internal, external = pair
    return ((internal.value + internal.plus_tolerance)
            - (external.value - external.minus_tolerance))


def _satisfies(fit_type: FitType, lo: float, hi: float) -> bool:
    if fit_type == FitType.CLEARANCE:
        return lo > 0.0
    if fit_type == FitType.INTERFERENCE:
        return hi < 0.0
    return lo < 0.0 < hi


def validate_fit(fit_type: FitType, a: Feature, b: Feature) -> FitValidation:
    """Compute the fit limits of two features and check them against ``fit_type``.

    - CLEARANCE requires ``min_fit > 0``
    - INTERFERENCE requires ``max_fit < 0``
    - TRANSITION requires ``min_fit < 0 < max_fit``

    A pair that is not one EXTERNAL and one INTERNAL feature is invalid
    with all fits reported as 0.
    """
    if _internal_external(a, b) is None:
        return FitValidation(False, 0.0, 0.0, 0.0, INVALID_COMBINATION)

    lo, hi = min_fit(a, b), max_fit(a, b)
    valid = _satisfies(fit_type, lo, hi)
    return FitValidation(
        is_valid=valid,
        nominal_fit=nominal_fit(a, b),
        min_fit=lo,
        max_fit=hi,
        error_message=None if valid else _FIT_ERRORS[fit_type],
    )


def _lookup(components: list[Component], component_id: str, feature_id: str):
    for c in components:
        if c.name == component_id:
            feature = c.feature(feature_id)
            if feature is None:
                return None, f"feature {feature_id!r} not found on {component_id!r}"
            return feature, None
    return None, f"component {component_id!r} not found"


def validate_mate(mate: Mate, components: list[Component]) -> FitValidation:
    """Resolve a mate's features and validate its fit.

    A reference that cannot be resolved gives an invalid result naming the
    missing component or feature.
    """
    a, reason_a = _lookup(components, mate.component_a, mate.feature_a)
    b, reason_b = _lookup(components, mate.component_b, mate.feature_b)
    if a is None or b is None:
        reason = reason_a or reason_b
        logger.warning("Cannot check mate %s: %s", mate.label, reason)
        return FitValidation(False, 0.0, 0.0, 0.0, reason)

    result = validate_fit(mate.fit_type, a, b)
    logger.debug("Mate %s (%s): %s", mate.label, mate.fit_type.value, result.summary())
    return result


def validate_mates(
    mates: list[Mate],
    components: list[Component],
) -> list[tuple[Mate, FitValidation]]:
    """Validate every mate, in order."""
    return [(m, validate_mate(m, components)) for m in mates]
