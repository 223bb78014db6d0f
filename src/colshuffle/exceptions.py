"""
Custom exceptions for table-shuffle.
"""


class ShufflerError(Exception):
    """Base exception for all table-shuffle errors."""
    pass


class ConfigError(ShufflerError):
    """Raised for configuration file errors."""
    pass


class CredentialsError(ShufflerError):
    """Raised when no usable credential source is available."""
    pass


class DatabaseConnectionError(ShufflerError):
    """Raised when the connectivity probe fails."""
    pass


class DatabaseNotFoundError(ShufflerError):
    """Raised when the target database is missing or inaccessible."""
    pass


class SpecError(ShufflerError):
    """Raised when a table specification cannot be parsed."""
    pass


class ShuffleError(ShufflerError):
    """Raised when the shuffle statement sequence fails for a table."""
    pass
