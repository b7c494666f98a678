"""Exceptions raised by the migration engine."""

from typing import List, Optional


class MigrationError(Exception):
    """Base exception for the migration engine."""

    pass


class ConfigurationError(MigrationError):
    """Raised when a caller proceeds with an invalid configuration."""

    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__(f"Configuration error: {', '.join(errors)}")


class MigrationCancelled(MigrationError):
    """Raised when a run is cancelled between units of work."""

    def __init__(self, where: str = ""):
        self.where = where
        super().__init__(f"Cancelled during {where}" if where else "Cancelled")


class ClientError(MigrationError):
    """Raised when a remote query or storage call fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)
