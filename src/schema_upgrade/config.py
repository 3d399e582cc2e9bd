"""
Schema Upgrade Configuration

Settings come from the environment, optionally seeded from a ``.env`` file.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///dolphinscheduler.db"
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class UpgradeConfig:
    """Configuration of the schema upgrade process."""

    def __init__(
        self,
        database_url: str = DEFAULT_DATABASE_URL,
        resource_root: str | Path = ".",
        log_level: str = "INFO",
        log_format: str = DEFAULT_LOG_FORMAT,
        pool_recycle: int = 3600,
        echo_sql: bool = False,
    ) -> None:
        self.database_url = database_url
        self.resource_root = Path(resource_root)
        self.log_level = log_level.upper()
        self.log_format = log_format
        self.pool_recycle = pool_recycle
        self.echo_sql = echo_sql

    @classmethod
    def from_environment(cls, env_file: str | None = None) -> "UpgradeConfig":
        """
        Build configuration from environment variables.

        Args:
            env_file: Optional ``.env`` file; the default lookup is used when omitted
        """
        load_dotenv(env_file)

        try:
            pool_recycle = int(os.getenv("SCHEMA_UPGRADE_POOL_RECYCLE", "3600"))
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid pool recycle value: {e}", config_key="SCHEMA_UPGRADE_POOL_RECYCLE"
            ) from e

        return cls(
            database_url=os.getenv("SCHEMA_UPGRADE_DATABASE_URL", DEFAULT_DATABASE_URL),
            resource_root=os.getenv("SCHEMA_UPGRADE_RESOURCE_ROOT", "."),
            log_level=os.getenv("SCHEMA_UPGRADE_LOG_LEVEL", "INFO"),
            log_format=os.getenv("SCHEMA_UPGRADE_LOG_FORMAT", DEFAULT_LOG_FORMAT),
            pool_recycle=pool_recycle,
            echo_sql=os.getenv("SQL_ECHO", "false").lower() == "true",
        )

    def validate(self) -> None:
        """
        Check the configuration for obvious mistakes.

        Raises:
            ConfigurationError: If a setting is unusable
        """
        if not self.database_url:
            raise ConfigurationError(
                "Database URL is empty", config_key="SCHEMA_UPGRADE_DATABASE_URL"
            )
        if not self.resource_root.is_dir():
            raise ConfigurationError(
                f"Resource root does not exist: {self.resource_root}",
                config_key="SCHEMA_UPGRADE_RESOURCE_ROOT",
            )
        if self.log_level not in _LOG_LEVELS:
            raise ConfigurationError(
                f"Unknown log level: {self.log_level}",
                config_key="SCHEMA_UPGRADE_LOG_LEVEL",
            )

    def masked_database_url(self) -> str:
        """Database URL with the password hidden, for logs."""
        try:
            url = make_url(self.database_url)
        except ArgumentError as e:
            raise ConfigurationError(
                f"Invalid database URL: {e}", config_key="SCHEMA_UPGRADE_DATABASE_URL"
            ) from e
        return url.render_as_string(hide_password=True)


def configure_logging(config: UpgradeConfig) -> None:
    """
    Configure logging based on configuration.

    Args:
        config: Upgrade configuration
    """
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format=config.log_format,
    )
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    logger.debug(f"Logging configured: level={config.log_level}")
