"""Built-in example projects for demonstration."""

from stackup.models import (
    AnalysisMethod,
    Component,
    DistributionParams,
    DistributionType,
    Feature,
    FeatureType,
    FitType,
    Mate,
    MonteCarloSettings,
    Project,
    StackupAnalysis,
)


def create_shaft_housing_example() -> Project:
    """Classic shaft-in-housing gap.

    Dimension loop:
        +Housing bore depth
        -Shaft length
        -Washer thickness
        -Retaining ring width
        -Snap ring groove depth
        = Gap
    """
    housing = Component(
        name="Housing",
        description="Machined aluminium housing",
        features=[
            Feature("Bore depth", 50.000, 0.100, 0.100, FeatureType.INTERNAL),
        ],
    )
    shaft = Component(
        name="Shaft",
        features=[
            Feature("Length", 45.000, 0.050, 0.050),
            Feature("Groove depth", 0.800, 0.020, 0.020,
                    distribution=DistributionType.UNIFORM),
        ],
    )
    washer = Component(
        name="Washer",
        features=[
            Feature("Thickness", 2.000, 0.025, 0.025,
                    distribution=DistributionType.TRIANGULAR),
        ],
    )
    ring = Component(
        name="Retaining ring",
        features=[
            Feature("Width", 1.500, 0.030, 0.030),
        ],
    )

    analysis = StackupAnalysis(
        name="Shaft end gap",
        methods=[AnalysisMethod.WORST_CASE, AnalysisMethod.RSS, AnalysisMethod.MONTE_CARLO],
        monte_carlo_settings=MonteCarloSettings(iterations=100_000, confidence=0.9973, seed=42),
        upper_spec_limit=1.0,
        lower_spec_limit=0.4,
    )
    analysis.add_contribution("Housing", "Bore depth", +1.0)
    analysis.add_contribution("Shaft", "Length", -1.0)
    analysis.add_contribution("Washer", "Thickness", -1.0)
    analysis.add_contribution("Retaining ring", "Width", -1.0)
    analysis.add_contribution("Shaft", "Groove depth", -1.0)

    return Project(
        name="Shaft-Housing Assembly",
        components=[housing, shaft, washer, ring],
        analyses=[analysis],
    )


def create_pin_bore_example() -> Project:
    """Radial clearance between a pin and a bore.

    Diameters enter at half count because only the radius contributes to
    clearance on one side. The bore tolerance is unilateral and skewed.
    The same pair is also declared as a clearance-fit mate.
    """
    plate = Component(
        name="Plate",
        features=[
            Feature("Bore diameter", 10.000, 0.036, 0.0, FeatureType.INTERNAL),
        ],
    )
    pin = Component(
        name="Pin",
        features=[
            Feature("Diameter", 9.980, 0.0, 0.015, FeatureType.EXTERNAL,
                    distribution=DistributionType.LOGNORMAL),
        ],
    )

    analysis = StackupAnalysis(
        name="Radial clearance",
        methods=[AnalysisMethod.WORST_CASE, AnalysisMethod.RSS, AnalysisMethod.MONTE_CARLO],
        monte_carlo_settings=MonteCarloSettings(iterations=50_000, seed=7),
        upper_spec_limit=0.040,
        lower_spec_limit=0.002,
    )
    analysis.add_contribution("Plate", "Bore diameter", +1.0, half_count=True,
                              distribution=DistributionParams.triangular(10.0, 10.036, 10.012))
    analysis.add_contribution("Pin", "Diameter", -1.0, half_count=True)

    fit = Mate("Plate", "Bore diameter", "Pin", "Diameter", FitType.CLEARANCE)

    return Project(name="Pin-Bore Fit", components=[plate, pin], analyses=[analysis],
                   mates=[fit])
