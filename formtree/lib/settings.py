"""Environment-based settings for formtree.

Settings are read from ``FORMTREE_*`` environment variables and an
optional ``.env`` file in the working directory. Command-line flags
override them.

Example:
    >>> # FORMTREE_LOG_LEVEL=DEBUG
    >>> # FORMTREE_LOG_FORMAT=json
    >>> settings = FormSettings()
    >>> settings.logging_config().level
    'DEBUG'
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ["FormSettings", "LoggingConfig", "get_settings"]

VALID_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
VALID_FORMATS = ["json", "console"]


class LoggingConfig(BaseModel):
    """Pydantic model for logging configuration.

    Example:
        >>> config = LoggingConfig(level="debug", format="json")
        >>> from formtree.lib.observability import setup_logging
        >>> setup_logging(
        ...     verbose=(config.level == "DEBUG"),
        ...     json_format=(config.format == "json"),
        ...     log_file=config.file,
        ... )
    """

    level: str = Field(default="WARNING", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    format: str = Field(default="console", description="Output format: 'json' or 'console'")
    file: Optional[str] = Field(default=None, description="Optional log file path")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level is a known value."""
        if v.upper() not in VALID_LEVELS:
            raise ValueError(f"level must be one of: {VALID_LEVELS}")
        return v.upper()

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate format is a known value."""
        if v.lower() not in VALID_FORMATS:
            raise ValueError(f"format must be one of: {VALID_FORMATS}")
        return v.lower()


class FormSettings(BaseSettings):
    """Settings loaded from the environment with the FORMTREE_ prefix."""

    log_level: str = Field(default="WARNING", description="Logging level")
    log_format: str = Field(default="console", description="Log format: 'json' or 'console'")
    log_file: Optional[str] = Field(default=None, description="Optional log file path")

    model_config = SettingsConfigDict(
        env_prefix="FORMTREE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def logging_config(
        self,
        *,
        level: Optional[str] = None,
        format: Optional[str] = None,
        file: Optional[str] = None,
    ) -> LoggingConfig:
        """Build a validated LoggingConfig, letting explicit arguments win."""
        return LoggingConfig(
            level=level or self.log_level,
            format=format or self.log_format,
            file=file or self.log_file,
        )


def get_settings() -> FormSettings:
    """Read settings from the current environment."""
    return FormSettings()
