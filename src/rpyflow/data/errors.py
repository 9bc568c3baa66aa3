"""Custom exceptions for project loading and configuration."""


class DataError(Exception):
    """Base exception for the data layer."""


class ProjectLoadError(DataError):
    """Raised when script sources or saved positions cannot be read."""


class ConfigError(DataError):
    """Raised when an analysis config file is invalid."""
