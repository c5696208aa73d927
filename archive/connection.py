"""Ownership of the archive's single physical database connection."""

from collections.abc import Mapping
from typing import Any

import asyncpg
from pydantic import ValidationError

from config import DatabaseCredentials
from utils.exceptions import ConfigError, ConnectError
from utils.logging import get_logger

CONNECT_TIMEOUT = 10.0
CLOSE_TIMEOUT = 5.0


def validate_credentials(section: Mapping[str, Any] | None) -> DatabaseCredentials:
    """Validate the ``db`` configuration section all-or-nothing.

    Args:
        section: The raw mapping read from configuration, or None when the
            section is absent altogether.

    Returns:
        The validated credentials.

    Raises:
        ConfigError: If any of host, database, user or password is missing
            or blank. Every offending field is reported at once.
    """
    if section is None:
        raise ConfigError(DatabaseCredentials.required_fields(), "Config is missing db-section!")
    try:
        return DatabaseCredentials.model_validate(dict(section))
    except ValidationError as e:
        missing = sorted({str(error["loc"][0]) for error in e.errors() if error["loc"]})
        raise ConfigError(missing) from e


class ConnectionManager:
    """Opens and closes the one asyncpg connection used by the engine."""

    def __init__(self) -> None:
        self.conn: asyncpg.Connection | None = None
        self.logger = get_logger("archive.connection")

    @property
    def is_open(self) -> bool:
        return self.conn is not None and not self.conn.is_closed()

    async def open(self, section: Mapping[str, Any] | None) -> asyncpg.Connection:
        """Establish the physical connection.

        Args:
            section: The raw ``db`` configuration section.

        Returns:
            The open connection.

        Raises:
            ConfigError: If the credentials are incomplete. No network
                attempt is made in that case.
            ConnectError: If the driver or the network fails.
        """
        credentials = validate_credentials(section)
        try:
            self.conn = await asyncpg.connect(
                host=credentials.host,
                port=credentials.port,
                database=credentials.database,
                user=credentials.user,
                password=credentials.password,
                timeout=CONNECT_TIMEOUT,
            )
        except (OSError, TimeoutError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            self.conn = None
            self.logger.error("database_connect_failed", host=credentials.host, error=str(e))
            raise ConnectError(f"Failed to connect to {credentials.host}/{credentials.database}: {e}") from e
        self.logger.info("database_opened", host=credentials.host, database=credentials.database)
        return self.conn

    async def close(self) -> None:
        """Close the connection. Safe to call when nothing is open; never raises."""
        conn, self.conn = self.conn, None
        if conn is None:
            return
        try:
            await conn.close(timeout=CLOSE_TIMEOUT)
        except (OSError, TimeoutError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            self.logger.warning("database_close_failed", error=str(e))
            conn.terminate()
