"""Settings and configuration management."""

import shlex
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-level settings.

    These describe the host the updater runs on (tool locations, log and
    mail delivery). Per-run choices such as blind or dry-run mode live in
    ``RunConfiguration`` instead.
    """

    model_config = SettingsConfigDict(
        env_prefix="DRUPAL_UPDATER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # External tools
    drush_bin: Optional[str] = Field(
        None, description="Path to drush (default: first drush on PATH)"
    )
    git_bin: Optional[str] = Field(
        None, description="Path to git (default: first git on PATH)"
    )
    min_drush_version: int = Field(
        7, description="Lowest drush major version with JSON status output"
    )
    status_format: Literal["json", "pipe"] = Field(
        "json",
        description="How update status is read: 'json' or the legacy '--pipe' text",
    )
    command_timeout_seconds: Optional[int] = Field(
        None, description="Timeout for non-streaming tool calls (None = wait)"
    )
    cache_clear_command: str = Field(
        "cache-clear all", description="drush arguments used to clear caches"
    )

    # Drupal
    lock_file_name: str = Field(
        ".drush-lock-update", description="Marker file that freezes a module"
    )
    lock_fail_closed: bool = Field(
        False,
        description="Treat modules whose path cannot be resolved as locked",
    )
    banner_blank_lines: int = Field(
        3, ge=1, description="Blank lines that end drush's banner in verbose mode"
    )

    # Logging
    log_level: str = Field("WARNING", description="Console logging level")
    log_format: str = Field("text", description="Log format: 'text' or 'json'")
    log_dir: Path = Field(
        default_factory=lambda: Path(tempfile.gettempdir()),
        description="Directory for run logs",
    )

    # Mail
    mail_command: str = Field(
        "mail", description="Command the run log is piped to for notify-email"
    )
    mail_from: str = Field("drupal-updater@localhost", description="From address")
    smtp_host: Optional[str] = Field(
        None, description="Send run logs over SMTP instead of the mail command"
    )
    smtp_port: int = Field(587, description="SMTP port")
    smtp_username: Optional[str] = Field(None, description="SMTP username")
    smtp_password: Optional[str] = Field(None, description="SMTP password")
    smtp_use_tls: bool = Field(True, description="Use STARTTLS for SMTP")

    @field_validator("cache_clear_command")
    @classmethod
    def _validate_cache_clear(cls, value: str) -> str:
        if not shlex.split(value):
            raise ValueError("cache_clear_command must not be empty")
        return value

    @property
    def cache_clear_args(self) -> list[str]:
        """drush arguments for the cache clear step."""
        return shlex.split(self.cache_clear_command)

    @property
    def mail_command_args(self) -> list[str]:
        """Mail command split into argv form."""
        return shlex.split(self.mail_command)

    def model_post_init(self, __context) -> None:
        """Ensure the log directory exists."""
        self.log_dir.mkdir(parents=True, exist_ok=True)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
