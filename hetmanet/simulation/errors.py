"""Errors raised while assembling a scenario."""


class ConfigurationError(ValueError):
    """
    The scenario cannot be assembled from the given configuration.

    Raised before the kernel runs, so no partial results exist.
    """
