"""Exceptions raised by the swap cycle tracker."""


class SwapCycleTrackerError(Exception):
    """Base exception for all tracker errors."""


class ConfigError(SwapCycleTrackerError):
    """Exception raised when an engine configuration file cannot be loaded."""


class LegOrderError(SwapCycleTrackerError):
    """Exception raised in strict mode when legs arrive out of chronological order."""


class InputError(SwapCycleTrackerError):
    """Exception raised when a transaction input file cannot be read."""
