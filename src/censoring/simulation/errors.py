"""Exceptions raised by the censoring simulation framework."""


class SimulationError(ValueError):
    """Base class for simulation errors."""


class ConfigError(SimulationError):
    """Invalid simulation parameters (sample size, censoring rate or beta)."""


class EmptyDatasetError(SimulationError):
    """The (filtered) data has no rows left to fit."""


class SingularDesignError(SimulationError):
    """The design matrix, intercept included, is rank-deficient."""
