"""Infrastructure exceptions for the entry store.

Duplicate submissions are a domain signal and are raised as
``perfscore.errors.DuplicateSubmission``; the classes here cover the
database itself.
"""

from perfscore.errors import PerfscoreError


class StoreError(PerfscoreError):
    """Base exception for entry store failures."""


class StoreConnectionError(StoreError):
    """Raised when the database cannot be opened, or is used while closed."""

    def __init__(self, message: str = "Database not connected") -> None:
        """Initialize the connection error.

        Args:
            message: Human-readable error message.
        """
        super().__init__(message)


class MigrationError(StoreError):
    """Raised when a schema migration cannot be applied."""

    def __init__(self, version: int, message: str) -> None:
        """Initialize the migration error.

        Args:
            version: The migration version that failed.
            message: Human-readable error message.
        """
        self.version = version
        super().__init__(f"Migration {version} failed: {message}")
