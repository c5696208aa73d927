"""Custom exception hierarchy for the message archive.

This module defines the exceptions raised inside the archive package. Callers
outside the package never see a raw asyncpg exception: every driver failure
is translated into one of these types, or absorbed by the engine and turned
into the operation's documented default.
"""


class ArchiveError(Exception):
    """Base exception for all archive errors."""

    def __init__(self, message: str = "An error occurred", *args, **kwargs) -> None:
        self.message = message
        super().__init__(message, *args, **kwargs)


# Configuration Errors


class ConfigurationError(ArchiveError):
    """Errors related to archive configuration."""

    def __init__(self, message: str = "Archive configuration error", *args, **kwargs) -> None:
        super().__init__(message, *args, **kwargs)


class ConfigError(ConfigurationError):
    """A required database credential is missing or blank."""

    def __init__(
        self, missing: list[str] | None = None, message: str = None, *args, **kwargs
    ) -> None:
        self.missing = missing or []
        if self.missing and not message:
            message = f"Missing or empty database settings: {', '.join(self.missing)}"
        elif not message:
            message = "Database settings are incomplete"
        super().__init__(message, *args, **kwargs)


# Database Errors


class DatabaseError(ArchiveError):
    """Errors related to database operations."""

    def __init__(self, message: str = "Database operation failed", *args, **kwargs) -> None:
        super().__init__(message, *args, **kwargs)


class ConnectError(DatabaseError):
    """The physical connection could not be established."""

    def __init__(self, message: str = "Failed to connect to database", *args, **kwargs) -> None:
        super().__init__(message, *args, **kwargs)


class SchemaError(DatabaseError):
    """Creating or dropping the archive tables failed."""

    def __init__(self, message: str = "Schema bootstrap failed", *args, **kwargs) -> None:
        super().__init__(message, *args, **kwargs)


class StatementTimeoutError(DatabaseError):
    """A statement exceeded the fixed execution timeout."""

    def __init__(
        self, operation: str = None, message: str = None, *args, **kwargs
    ) -> None:
        self.operation = operation
        if operation and not message:
            message = f"Statement '{operation}' timed out"
        elif not message:
            message = "Statement timed out"
        super().__init__(message, *args, **kwargs)


class TransientQueryError(DatabaseError):
    """A single statement failed; the engine stays usable."""

    def __init__(
        self, operation: str = None, message: str = None, *args, **kwargs
    ) -> None:
        self.operation = operation
        if not message:
            message = "Database query failed"
        super().__init__(message, *args, **kwargs)
