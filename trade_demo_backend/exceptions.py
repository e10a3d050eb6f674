"""
Exceptions raised by the database client factories.
"""


class TradeDemoDatabaseError(Exception):
    """Base class for all database layer errors."""


class ConfigurationError(TradeDemoDatabaseError):
    """Required MongoDB settings are missing or malformed."""


class DatabaseConnectionError(TradeDemoDatabaseError, ConnectionError):
    """The MongoDB endpoint could not be reached or rejected the credentials."""

    def __init__(self, message: str, *, endpoint: str | None = None) -> None:
        super().__init__(message)
        self.endpoint = endpoint


class InvalidCollectionNameError(TradeDemoDatabaseError, ValueError):
    """A collection name is empty or not acceptable to MongoDB."""

    def __init__(self, name: object, reason: str) -> None:
        super().__init__(f"Invalid collection name {name!r}: {reason}")
        self.name = name
        self.reason = reason
