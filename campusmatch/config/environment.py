"""Environment variable loading and validation."""

import os
from typing import List, Optional

from .exceptions import ConfigurationError

DEFAULT_DATABASE_URL = "sqlite:///./data/campusmatch.db"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Checked in order; the first non-empty value wins.
ANALYZER_KEY_VARS = ("ANALYZER_API_KEY", "ANTHROPIC_API_KEY", "CLAUDE_API_KEY")


class EnvironmentConfig:
    """Secrets and deployment settings read from the environment."""

    def __init__(
        self,
        database_url: Optional[str] = None,
        analyzer_api_key: Optional[str] = None,
        message_webhook_url: Optional[str] = None,
        log_level: Optional[str] = None,
        environment: Optional[str] = None,
    ):
        self.database_url = database_url or DEFAULT_DATABASE_URL
        self.analyzer_api_key = analyzer_api_key
        self.message_webhook_url = message_webhook_url
        self.log_level = log_level
        self.environment = environment or "local"

    def __repr__(self) -> str:
        return (
            f"EnvironmentConfig(database_url={self.database_url!r}, "
            f"analyzer_api_key={'set' if self.analyzer_api_key else 'unset'}, "
            f"message_webhook_url={self.message_webhook_url!r}, "
            f"environment={self.environment!r})"
        )


def load_environment_config(require_webhook: bool = True) -> EnvironmentConfig:
    """Load and validate environment variables.

    Variables:
    - DATABASE_URL: SQLAlchemy URL (default: sqlite:///./data/campusmatch.db)
    - ANALYZER_API_KEY: text analyzer key (falls back to ANTHROPIC_API_KEY,
      then CLAUDE_API_KEY); without one the keyword heuristic is used
    - MESSAGE_WEBHOOK_URL: alert webhook endpoint, required when the
      webhook channel is configured
    - LOG_LEVEL: override for logging.level
    - ENVIRONMENT: label stamped onto log records (default: local)

    Args:
        require_webhook: Whether MESSAGE_WEBHOOK_URL must be present

    Returns:
        EnvironmentConfig with validated values

    Raises:
        ConfigurationError: If a variable is missing or invalid
    """
    errors: List[str] = []

    database_url = _getenv("DATABASE_URL")
    webhook_url = _getenv("MESSAGE_WEBHOOK_URL")
    log_level = _getenv("LOG_LEVEL")
    environment = _getenv("ENVIRONMENT")
    api_key = next((v for v in (_getenv(name) for name in ANALYZER_KEY_VARS) if v), None)

    if require_webhook and not webhook_url:
        errors.append("Missing required environment variable: MESSAGE_WEBHOOK_URL")
    elif webhook_url and not webhook_url.startswith(("http://", "https://")):
        errors.append(f"Invalid MESSAGE_WEBHOOK_URL: '{webhook_url}'. Must be an http(s) URL.")

    if log_level and log_level.upper() not in VALID_LOG_LEVELS:
        errors.append(
            f"Invalid LOG_LEVEL: '{log_level}'. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
        )

    if database_url and "://" not in database_url:
        errors.append(f"Invalid DATABASE_URL: '{database_url}'. Expected a SQLAlchemy URL.")

    if errors:
        raise ConfigurationError(
            "Environment variable validation failed",
            errors=errors,
            suggestions=[
                "Copy .env.example to .env and fill in your values",
                "Set notifications.channel to 'mock' to run without a webhook",
            ],
        )

    return EnvironmentConfig(
        database_url=database_url,
        analyzer_api_key=api_key,
        message_webhook_url=webhook_url,
        log_level=log_level.upper() if log_level else None,
        environment=environment,
    )


def _getenv(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None
