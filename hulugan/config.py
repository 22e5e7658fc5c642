"""Configuration management for the fund tracker application.

This module provides utilities for loading and validating configuration
from environment variables.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from dotenv import load_dotenv

from hulugan.auth import SecurityManager

if TYPE_CHECKING:
    from pathlib import Path

LOGGER = logging.getLogger(__name__)


def configure_logging(app_config: AppConfig) -> None:
    """Configure logging based on the application configuration.

    :param app_config: The application configuration instance
    """
    if not app_config.logging_level:
        logging.basicConfig(level=logging.INFO, force=True)
        return

    numeric_level = getattr(logging, app_config.logging_level.upper(), None)
    if not isinstance(numeric_level, int):
        LOGGER.warning("Invalid log level: %s, using INFO", app_config.logging_level)
        numeric_level = logging.INFO
    logging.basicConfig(level=numeric_level, force=True)


@dataclass
class AppConfig:
    """Application configuration loaded from environment variables.

    All fields are initialized from environment variables using field
    creators, so constructing an AppConfig reads the current environment.

    **Usage:**

    .. code-block:: python

        config = load_config_from_env(".env")
        app = configure_fastapi_app(config)
    """

    DEFAULT_DATABASE_PATH: ClassVar[str] = "hulugan.db"
    DEFAULT_MAGIC_LINK_REDIRECT_URL: ClassVar[str] = "http://localhost:3000/admin"
    MINIMUM_JWT_SECRET_KEY_LENGTH: ClassVar[int] = 32

    # Database configuration
    db_path: str = field(
        default_factory=lambda: os.getenv("DB_PATH", AppConfig.DEFAULT_DATABASE_PATH),
    )

    # Logging configuration
    logging_level: str | None = field(
        default_factory=lambda: os.getenv("LOGGING_LEVEL"),
    )

    root_path: str = field(
        default_factory=lambda: os.getenv("ROOT_PATH", ""),
    )

    # Security configuration
    secret_key: str = field(
        default_factory=lambda: os.getenv("SECRET_KEY", ""),
    )

    algorithm: str = field(
        default_factory=lambda: os.getenv(
            "ALGORITHM",
            SecurityManager.DEFAULT_JWT_ALGORITHM,
        ),
    )

    session_expire_minutes: int = field(
        default_factory=lambda: AppConfig._getenv_int(
            "SESSION_EXPIRE_MINUTES",
            SecurityManager.DEFAULT_SESSION_EXPIRE_MINUTES,
        ),
    )

    magic_link_expire_minutes: int = field(
        default_factory=lambda: AppConfig._getenv_int(
            "MAGIC_LINK_EXPIRE_MINUTES",
            SecurityManager.DEFAULT_MAGIC_LINK_EXPIRE_MINUTES,
        ),
    )

    magic_link_redirect_url: str = field(
        default_factory=lambda: os.getenv(
            "MAGIC_LINK_REDIRECT_URL",
            AppConfig.DEFAULT_MAGIC_LINK_REDIRECT_URL,
        ),
    )

    # Emails granted the admin role at startup
    admin_emails: list[str] = field(
        default_factory=lambda: AppConfig._getenv_list("ADMIN_EMAILS"),
    )

    def __post_init__(self) -> None:
        """Post-initialization validation."""
        if self.session_expire_minutes <= 0:
            msg = "SESSION_EXPIRE_MINUTES must be a positive integer"
            raise ValueError(msg)
        if self.magic_link_expire_minutes <= 0:
            msg = "MAGIC_LINK_EXPIRE_MINUTES must be a positive integer"
            raise ValueError(msg)
        if len(self.secret_key) < self.MINIMUM_JWT_SECRET_KEY_LENGTH:
            LOGGER.warning(
                "SECRET_KEY is not set or too short, generating a random key",
            )
            self.secret_key = os.urandom(self.MINIMUM_JWT_SECRET_KEY_LENGTH).hex()

    @property
    def security_manager(self) -> SecurityManager:
        """Create a SecurityManager instance from this configuration.

        :return: Configured SecurityManager instance
        :rtype: SecurityManager
        """
        return SecurityManager(
            secret_key=self.secret_key,
            algorithm=self.algorithm,
            session_expire_minutes=self.session_expire_minutes,
            magic_link_expire_minutes=self.magic_link_expire_minutes,
        )

    @staticmethod
    def _getenv_int(key: str, default: int) -> int:
        """Get an integer environment variable with a default.

        :param key: Environment variable name
        :type key: str
        :param default: Default value if not set
        :type default: int
        :return: The environment variable value as integer or default
        :rtype: int
        :raises ValueError: If value cannot be converted to int
        """
        value_str = os.getenv(key)

        if value_str is None or value_str == "":
            return default

        try:
            return int(value_str)
        except ValueError as e:
            msg = f"Environment variable {key} must be an integer, got: {value_str}"
            raise ValueError(msg) from e

    @staticmethod
    def _getenv_list(key: str) -> list[str]:
        """Get a comma-separated environment variable as a list.

        :param key: Environment variable name
        :return: Non-empty, stripped items
        """
        value_str = os.getenv(key, "")
        return [item.strip() for item in value_str.split(",") if item.strip()]


def load_config_from_env(env_file: str | Path | None) -> AppConfig:
    """Load application configuration from environment variables.

    :param env_file: Optional .env file to load into the environment first
    :return: An AppConfig instance populated with environment variable values
    """
    if env_file:
        load_dotenv(dotenv_path=env_file)

    return AppConfig()
