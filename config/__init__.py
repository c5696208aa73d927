"""
Configuration module for the message archive bot.

This module provides a centralized configuration system with validation
and support for different environments (development, testing, production).
Database credentials are deliberately not validated when the configuration
is loaded: the archive validates them all-or-nothing when it opens its
connection, so a bot without a database still starts and simply does not
archive anything.
"""

import functools
import logging
import os
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator


# Define environment types
class Environment(str, Enum):
    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"


# Define log format types
class LogFormat(str, Enum):
    JSON = "json"
    CONSOLE = "console"


# Load environment
ENVIRONMENT = os.getenv("ENVIRONMENT", Environment.DEVELOPMENT)


class DatabaseCredentials(BaseModel):
    """
    Credentials for the archive's single database connection.

    All four string fields are required and must not be blank. The archive's
    connection manager validates a raw ``db`` section against this model
    before any network attempt is made.
    """

    host: str = Field(..., description="Database host")
    database: str = Field(..., description="Database name")
    user: str = Field(..., description="Database user")
    password: str = Field(..., description="Database password", json_schema_extra={"sensitive": True})
    port: int = Field(5432, description="Database port")

    @field_validator("host", "database", "user", "password")
    @classmethod
    def db_settings_must_not_be_empty(cls, v, info):
        """Validate that database settings are not blank."""
        if not v or not v.strip():
            raise ValueError(f"{info.field_name} must not be empty")
        return v.strip()

    @classmethod
    def required_fields(cls) -> list[str]:
        """Names of the credential fields that must be present."""
        return ["host", "database", "user", "password"]


class Settings(BaseModel):
    """
    Settings for the bot process hosting the archive.

    The ``db`` section is kept as a raw mapping so that missing values
    surface as a ``ConfigError`` from the archive instead of aborting the
    whole configuration load.
    """

    bot_token: Optional[str] = Field(
        None, description="Discord bot token", json_schema_extra={"sensitive": True}
    )
    logging_level: int = Field(logging.INFO, description="Logging level")
    logfile: Optional[str] = Field("archive", description="Log file name")
    log_format: LogFormat = Field(
        LogFormat.CONSOLE, description="Log output format (json or console)"
    )
    owner_id: Optional[int] = Field(None, description="Bot owner user ID")
    db: Dict[str, Any] = Field(
        default_factory=dict, description="Raw database section"
    )


def load_from_env() -> Settings:
    """
    Load configuration from environment variables.

    This function loads configuration values from environment variables, with
    support for loading from a .env file.

    Returns:
        Settings: A validated configuration object

    Raises:
        ValueError: If a numeric environment variable is not a number
    """
    from dotenv import load_dotenv

    # Load environment variables from .env file
    load_dotenv()

    def get_env(name, default=None):
        return os.getenv(name, default)

    db: Dict[str, Any] = {
        "host": get_env("HOST"),
        "database": get_env("DATABASE"),
        "user": get_env("DB_USER"),
        "password": get_env("DB_PASSWORD"),
    }
    port = get_env("PORT")
    if port:
        try:
            db["port"] = int(port)
        except ValueError:
            raise ValueError(f"Invalid PORT value: {port}. Must be an integer.")
    # Drop absent keys so the archive reports exactly what is missing
    db = {key: value for key, value in db.items() if value is not None}

    owner_id = get_env("OWNER_ID")
    try:
        owner_id_int = int(owner_id) if owner_id else None
    except ValueError:
        raise ValueError(f"Invalid OWNER_ID value: {owner_id}. Must be an integer.")

    settings = Settings(
        bot_token=get_env("BOT_TOKEN"),
        logfile=get_env("LOGFILE", "archive"),
        log_format=LogFormat(get_env("LOG_FORMAT", LogFormat.CONSOLE)),
        owner_id=owner_id_int,
        db=db,
    )

    if ENVIRONMENT == Environment.TESTING:
        settings.logging_level = logging.DEBUG
    elif ENVIRONMENT == Environment.PRODUCTION:
        settings.logging_level = logging.WARNING
    elif ENVIRONMENT != Environment.DEVELOPMENT:
        raise ValueError(f"Unknown environment: {ENVIRONMENT}")

    return settings


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings, loading them on first use."""
    return load_from_env()


def database_section() -> Dict[str, Any]:
    """Return the raw ``db`` section of the current settings."""
    return dict(get_settings().db)
