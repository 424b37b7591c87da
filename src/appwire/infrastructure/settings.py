"""Environment-driven application settings.

Environment Variables:
    APP_MODE - Configuration mode, e.g. ``production`` or ``testing`` (default: empty)
    APP_DISPLAY_ERROR_DETAILS - Include debug details in error responses (default: false)
    APP_LOG_LEVEL - Logging level (default: INFO)
    APP_LOG_FORMAT - Log format: json or console (default: console)
    APP_LOG_FILE - Optional log file path
    APP_STORAGE_DIR - Directory for file caches and sessions (default: var)
"""

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from appwire.infrastructure.logging_config import configure_logging as apply_logging_config


class AppSettings(BaseSettings):
    """Settings read from ``APP_*`` environment variables and an optional ``.env`` file."""

    model_config = SettingsConfigDict(env_prefix="APP_", env_file=".env", extra="ignore")

    mode: str = Field(default="", description="Configuration mode.")
    display_error_details: bool = Field(default=False, description="Include debug details in error responses.")
    log_level: str = Field(default="INFO", description="Logging level.")
    log_format: Literal["console", "json"] = Field(default="console", description="Log output format.")
    log_file: Optional[Path] = Field(default=None, description="Optional log file path.")
    storage_dir: Path = Field(default=Path("var"), description="Directory for file caches and sessions.")

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {value}")
        return level

    @property
    def cache_dir(self) -> Path:
        return self.storage_dir / "cache"

    @property
    def session_dir(self) -> Path:
        return self.storage_dir / "sessions"

    def configure_logging(self, force: bool = False) -> None:
        """Apply ``log_level``, ``log_format`` and ``log_file`` to structlog and the root logger."""
        apply_logging_config(self.log_level, self.log_format, self.log_file, force=force)
