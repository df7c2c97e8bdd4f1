"""Exceptions raised by the evaluation engine."""


class ConfigurationError(ValueError):
    """Raised when an analysis is configured in a way it cannot run.

    Examples are a missing truth set, fewer than two bin edges or an unknown
    simulation mode.
    """
