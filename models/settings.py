"""Process-level runtime settings read from the environment.

These are fixed for the lifetime of the process, unlike the configuration
document, which is reloaded while the service runs.
"""

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from models.config import ENV_PREFIX, ConfigFormat

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class RuntimeSettings(BaseSettings):
    """Settings for the running service.

    Attributes:
        config: Path to the configuration document (``ICAL_MERGE_CONFIG``).
        config_format: Document syntax (``ICAL_MERGE_CONFIG_FORMAT``); detected
            from the extension when unset.
        poll_interval: Seconds between config file polls
            (``ICAL_MERGE_POLL_INTERVAL``).
        log_level: Root log level (``ICAL_MERGE_LOG_LEVEL``).
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        case_sensitive=False,
        extra="ignore",
    )

    config: Path = Field(default=Path("config.json"), description="Configuration file path")
    config_format: Optional[ConfigFormat] = Field(default=None, description="Configuration syntax")
    poll_interval: float = Field(default=2.0, gt=0, description="Config poll interval (s)")
    log_level: LogLevel = Field(default="INFO", description="Root log level")

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value):
        return value.upper() if isinstance(value, str) else value
