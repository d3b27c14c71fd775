"""Data models for tolerance stackup analysis."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional

from stackup.errors import ConfigurationError


class AnalysisMethod(Enum):
    """Tolerance propagation model."""
    WORST_CASE = "worst_case"
    RSS = "rss"
    MONTE_CARLO = "monte_carlo"


class DistributionType(Enum):
    """Statistical distribution assumed for a dimension in Monte Carlo."""
    NORMAL = "normal"
    UNIFORM = "uniform"
    TRIANGULAR = "triangular"
    LOGNORMAL = "lognormal"


class FeatureType(Enum):
    """Whether a feature is an external (shaft-like) or internal (bore-like) size."""
    EXTERNAL = "external"
    INTERNAL = "internal"


class FitType(Enum):
    """Intended fit between an external and an internal feature."""
    CLEARANCE = "clearance"
    TRANSITION = "transition"
    INTERFERENCE = "interference"


@dataclass(frozen=True)
class DistributionParams:
    """Fully specified parameters of a sampling distribution.

    Which fields are meaningful depends on ``dist_type``:

    - NORMAL: ``mean``, ``std_dev``
    - UNIFORM: ``min``, ``max``
    - TRIANGULAR: ``min``, ``max``, ``mode`` (midpoint when unset)
    - LOGNORMAL: ``mean`` (linear-scale median, sampled with location
      ``ln(mean)``) and ``std_dev`` (log-scale shape)

    Use the named constructors rather than filling fields by hand.
    """
    dist_type: DistributionType = DistributionType.NORMAL
    mean: float = 0.0
    std_dev: float = 0.0
    min: float = 0.0
    max: float = 0.0
    mode: Optional[float] = None

    @classmethod
    def normal(cls, mean: float, std_dev: float) -> DistributionParams:
        return cls(DistributionType.NORMAL, mean=mean, std_dev=std_dev)

    @classmethod
    def uniform(cls, min: float, max: float) -> DistributionParams:
        return cls(DistributionType.UNIFORM, min=min, max=max)

    @classmethod
    def triangular(cls, min: float, max: float, mode: float) -> DistributionParams:
        return cls(DistributionType.TRIANGULAR, min=min, max=max, mode=mode)

    @classmethod
    def lognormal(cls, mean: float, std_dev: float) -> DistributionParams:
        return cls(DistributionType.LOGNORMAL, mean=mean, std_dev=std_dev)

    @property
    def effective_mode(self) -> float:
        """Triangular mode clamped into ``[min, max]``."""
        mode = self.mode if self.mode is not None else (self.min + self.max) / 2.0
        return min(max(mode, self.min), self.max)

    def validate(self) -> None:
        """Raise ConfigurationError if these parameters cannot be sampled."""
        if self.dist_type in (DistributionType.UNIFORM, DistributionType.TRIANGULAR):
            if not self.max > self.min:
                raise ConfigurationError(
                    f"{self.dist_type.value} distribution needs max > min, "
                    f"got min={self.min}, max={self.max}"
                )
        else:
            if self.std_dev < 0:
                raise ConfigurationError(
                    f"{self.dist_type.value} distribution needs std_dev >= 0, "
                    f"got {self.std_dev}"
                )
            if self.dist_type == DistributionType.LOGNORMAL and self.mean <= 0:
                raise ConfigurationError(
                    f"lognormal distribution needs mean > 0, got {self.mean}"
                )

    def required_params(self) -> list[tuple[str, float]]:
        """Ordered (label, value) pairs of the parameters this type uses."""
        if self.dist_type == DistributionType.NORMAL:
            return [("Mean", self.mean), ("Std Dev", self.std_dev)]
        if self.dist_type == DistributionType.UNIFORM:
            return [("Min", self.min), ("Max", self.max)]
        if self.dist_type == DistributionType.TRIANGULAR:
            return [("Min", self.min), ("Max", self.max), ("Mode", self.effective_mode)]
        return [("Mean", self.mean), ("Log Std Dev", self.std_dev)]

    def to_dict(self) -> dict:
        return {
            "dist_type": self.dist_type.value,
            "mean": self.mean,
            "std_dev": self.std_dev,
            "min": self.min,
            "max": self.max,
            "mode": self.mode,
        }

    @classmethod
    def from_dict(cls, d: dict) -> DistributionParams:
        return cls(
            dist_type=DistributionType(d.get("dist_type", "normal")),
            mean=d.get("mean", 0.0),
            std_dev=d.get("std_dev", 0.0),
            min=d.get("min", 0.0),
            max=d.get("max", 0.0),
            mode=d.get("mode"),
        )


@dataclass(frozen=True)
class Feature:
    """A toleranced dimension on a component.

    Attributes:
        name: Feature name, unique within its component.
        value: Nominal dimension.
        plus_tolerance: Upper tolerance (non-negative).
        minus_tolerance: Lower tolerance (non-negative, subtracted from value).
        feature_type: EXTERNAL or INTERNAL.
        distribution: Declared distribution type used for default parameters.
        distribution_params: Optional fully specified parameters.
    """
    name: str
    value: float
    plus_tolerance: float
    minus_tolerance: float
    feature_type: FeatureType = FeatureType.EXTERNAL
    distribution: Optional[DistributionType] = None
    distribution_params: Optional[DistributionParams] = None

    def __post_init__(self) -> None:
        if self.plus_tolerance < 0 or self.minus_tolerance < 0:
            raise ValueError(
                f"tolerances must be non-negative, got +{self.plus_tolerance}/-{self.minus_tolerance}"
            )

    @property
    def total_tolerance(self) -> float:
        """Width of the tolerance band."""
        return self.plus_tolerance + self.minus_tolerance

    def with_distribution(self, dist_type: DistributionType) -> Feature:
        """Return a copy declaring a different distribution type."""
        return replace(self, distribution=dist_type)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "value": self.value,
            "plus_tolerance": self.plus_tolerance,
            "minus_tolerance": self.minus_tolerance,
            "feature_type": self.feature_type.value,
            "distribution": self.distribution.value if self.distribution else None,
            "distribution_params": (self.distribution_params.to_dict()
                                    if self.distribution_params else None),
        }

    @classmethod
    def from_dict(cls, d: dict) -> Feature:
        dist = d.get("distribution")
        params = d.get("distribution_params")
        return cls(
            name=d["name"],
            value=d["value"],
            plus_tolerance=d["plus_tolerance"],
            minus_tolerance=d["minus_tolerance"],
            feature_type=FeatureType(d.get("feature_type", "external")),
            distribution=DistributionType(dist) if dist else None,
            distribution_params=DistributionParams.from_dict(params) if params else None,
        )


@dataclass(frozen=True)
class Component:
    """A part owning a set of features."""
    name: str
    features: tuple[Feature, ...] = ()
    description: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "features", tuple(self.features))
        names = [f.name for f in self.features]
        if len(names) != len(set(names)):
            raise ValueError(f"feature names must be unique within component {self.name!r}")

    def feature(self, name: str) -> Optional[Feature]:
        for f in self.features:
            if f.name == name:
                return f
        return None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "features": [f.to_dict() for f in self.features],
        }

    @classmethod
    def from_dict(cls, d: dict) -> Component:
        return cls(
            name=d["name"],
            description=d.get("description"),
            features=tuple(Feature.from_dict(f) for f in d.get("features", [])),
        )


@dataclass(frozen=True)
class Contribution:
    """One feature's participation in a stackup.

    Attributes:
        component_id: Name of the referenced component.
        feature_id: Name of the referenced feature on that component.
        direction: +1.0 if the feature adds to the stackup, -1.0 if it subtracts.
        half_count: Only half of the feature participates (e.g. a diameter
            split between two mating parts).
        distribution: Parameters frozen when the contribution was created.
            When unset, defaults are derived from the feature at analysis time.
    """
    component_id: str
    feature_id: str
    direction: float = 1.0
    half_count: bool = False
    distribution: Optional[DistributionParams] = None

    def __post_init__(self) -> None:
        if self.direction not in (1.0, -1.0):
            raise ValueError(f"direction must be +1.0 or -1.0, got {self.direction}")
        object.__setattr__(self, "direction", float(self.direction))

    @property
    def multiplier(self) -> float:
        return 0.5 if self.half_count else 1.0

    @property
    def label(self) -> str:
        return f"{self.component_id}.{self.feature_id}"

    def to_dict(self) -> dict:
        return {
            "component_id": self.component_id,
            "feature_id": self.feature_id,
            "direction": self.direction,
            "half_count": self.half_count,
            "distribution": self.distribution.to_dict() if self.distribution else None,
        }

    @classmethod
    def from_dict(cls, d: dict) -> Contribution:
        dist = d.get("distribution")
        return cls(
            component_id=d["component_id"],
            feature_id=d["feature_id"],
            direction=d.get("direction", 1.0),
            half_count=d.get("half_count", False),
            distribution=DistributionParams.from_dict(dist) if dist else None,
        )


@dataclass(frozen=True)
class Mate:
    """Two mating features and the fit they are designed for.

    One side must be an EXTERNAL feature and the other INTERNAL; which is
    ``a`` and which is ``b`` does not matter.
    """
    component_a: str
    feature_a: str
    component_b: str
    feature_b: str
    fit_type: FitType = FitType.CLEARANCE
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self) -> None:
        object.__setattr__(self, "fit_type", FitType(self.fit_type))

    @property
    def label(self) -> str:
        return f"{self.component_a}.{self.feature_a} / {self.component_b}.{self.feature_b}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "component_a": self.component_a,
            "feature_a": self.feature_a,
            "component_b": self.component_b,
            "feature_b": self.feature_b,
            "fit_type": self.fit_type.value,
        }

    @classmethod
    def from_dict(cls, d: dict) -> Mate:
        kwargs = {"id": d["id"]} if d.get("id") else {}
        return cls(
            component_a=d["component_a"],
            feature_a=d["feature_a"],
            component_b=d["component_b"],
            feature_b=d["feature_b"],
            fit_type=FitType(d.get("fit_type", "clearance")),
            **kwargs,
        )


@dataclass
class MonteCarloSettings:
    """Monte Carlo run configuration.

    Attributes:
        iterations: Number of stackup samples to draw.
        confidence: User confidence level, reported alongside 90/95/99%.
        seed: Random seed for reproducible runs. ``None`` uses OS entropy.
    """
    iterations: int = 10_000
    confidence: float = 0.9995
    seed: Optional[int] = None

    def to_dict(self) -> dict:
        return {"iterations": self.iterations, "confidence": self.confidence, "seed": self.seed}

    @classmethod
    def from_dict(cls, d: dict) -> MonteCarloSettings:
        return cls(
            iterations=d.get("iterations", 10_000),
            confidence=d.get("confidence", 0.9995),
            seed=d.get("seed"),
        )


@dataclass
class StackupAnalysis:
    """A named stackup: ordered contributions plus analysis configuration.

    Attributes:
        name: Descriptive name.
        contributions: Contributions in insertion order.
        methods: Requested analysis methods (no duplicates).
        monte_carlo_settings: Required when MONTE_CARLO is requested.
        upper_spec_limit: USL for process capability.
        lower_spec_limit: LSL for process capability.
        id: Unique identifier, generated when not given.
    """
    name: str
    contributions: list[Contribution] = field(default_factory=list)
    methods: list[AnalysisMethod] = field(default_factory=lambda: [AnalysisMethod.WORST_CASE])
    monte_carlo_settings: Optional[MonteCarloSettings] = None
    upper_spec_limit: Optional[float] = None
    lower_spec_limit: Optional[float] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self) -> None:
        # set semantics, first occurrence wins
        self.methods = list(dict.fromkeys(AnalysisMethod(m) for m in self.methods))

    def add_contribution(
        self,
        component_id: str,
        feature_id: str,
        direction: float = 1.0,
        half_count: bool = False,
        distribution: Optional[DistributionParams] = None,
    ) -> Contribution:
        """Append a contribution and return it."""
        contribution = Contribution(component_id, feature_id, direction, half_count, distribution)
        self.contributions.append(contribution)
        return contribution

    def remove_contribution(self, index: int) -> Contribution:
        return self.contributions.pop(index)

    def update_contribution(self, index: int, **changes) -> Contribution:
        """Replace fields of the contribution at ``index``."""
        updated = replace(self.contributions[index], **changes)
        self.contributions[index] = updated
        return updated

    def enable_method(self, method: AnalysisMethod) -> None:
        if method not in self.methods:
            self.methods.append(method)

    def disable_method(self, method: AnalysisMethod) -> None:
        if method in self.methods:
            self.methods.remove(method)

    def toggle_method(self, method: AnalysisMethod) -> bool:
        """Flip whether ``method`` is requested. Returns the new state."""
        if method in self.methods:
            self.methods.remove(method)
            return False
        self.methods.append(method)
        return True

    def calculate_nominal(self, components: list[Component]) -> float:
        """Signed nominal stackup over the contributions that resolve."""
        from stackup.resolver import resolve_contributions

        resolved, _ = resolve_contributions(self.contributions, components)
        return sum(r.nominal_contribution for r in resolved)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "contributions": [c.to_dict() for c in self.contributions],
            "methods": [m.value for m in self.methods],
            "monte_carlo_settings": (self.monte_carlo_settings.to_dict()
                                     if self.monte_carlo_settings else None),
            "upper_spec_limit": self.upper_spec_limit,
            "lower_spec_limit": self.lower_spec_limit,
        }

    @classmethod
    def from_dict(cls, d: dict) -> StackupAnalysis:
        mc = d.get("monte_carlo_settings")
        kwargs = {}
        if d.get("id"):
            kwargs["id"] = d["id"]
        return cls(
            name=d["name"],
            contributions=[Contribution.from_dict(c) for c in d.get("contributions", [])],
            methods=[AnalysisMethod(m) for m in d.get("methods", ["worst_case"])],
            monte_carlo_settings=MonteCarloSettings.from_dict(mc) if mc else None,
            upper_spec_limit=d.get("upper_spec_limit"),
            lower_spec_limit=d.get("lower_spec_limit"),
            **kwargs,
        )

    def save(self, path: str) -> None:
        """Save the analysis definition to a JSON file."""
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: str) -> StackupAnalysis:
        """Load an analysis definition from a JSON file."""
        with open(path) as f:
            return cls.from_dict(json.load(f))


@dataclass
class Project:
    """Components together with the stackups and mates defined over them."""
    name: str
    components: list[Component] = field(default_factory=list)
    analyses: list[StackupAnalysis] = field(default_factory=list)
    mates: list[Mate] = field(default_factory=list)

    def component(self, name: str) -> Optional[Component]:
        for c in self.components:
            if c.name == name:
                return c
        return None

    def analysis(self, name_or_id: str) -> Optional[StackupAnalysis]:
        for a in self.analyses:
            if name_or_id in (a.name, a.id):
                return a
        return None

    def mate(self, mate_id: str) -> Optional[Mate]:
        for m in self.mates:
            if m.id == mate_id:
                return m
        return None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "components": [c.to_dict() for c in self.components],
            "analyses": [a.to_dict() for a in self.analyses],
            "mates": [m.to_dict() for m in self.mates],
        }

    @classmethod
    def from_dict(cls, d: dict) -> Project:
        return cls(
            name=d["name"],
            components=[Component.from_dict(c) for c in d.get("components", [])],
            analyses=[StackupAnalysis.from_dict(a) for a in d.get("analyses", [])],
            mates=[Mate.from_dict(m) for m in d.get("mates", [])],
        )

    def save(self, path: str) -> None:
        """Save the project to a JSON file."""
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: str) -> Project:
        """Load a project from a JSON file."""
        with open(path) as f:
            return cls.from_dict(json.load(f))
