"""Exceptions raised by the stackup analysis engine."""


class ConfigurationError(ValueError):
    """An analysis cannot run with its current configuration.

    Raised for missing Monte Carlo settings, an empty method set, and
    degenerate distribution parameters. Never defaulted silently.
    """
