"""Centralized configuration management using Pydantic Settings.

This module provides typed configuration for the grading service,
loaded from environment variables with sensible defaults.

Usage:
    from grader.config import get_settings
    settings = get_settings()
    timeout = settings.sandbox.timeout_sec
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BUNDLED_ASSETS_DIR = Path(__file__).resolve().parent / "assets"


def _parse_bool(v):
    if isinstance(v, str):
        return v.lower() in ("1", "true", "yes")
    return bool(v)


class SandboxSettings(BaseSettings):
    """Execution sandbox configuration."""

    model_config = SettingsConfigDict(env_prefix="SANDBOX_", extra="ignore")

    docker_host: str = Field(default="", description="Engine URL, empty uses DOCKER_HOST")
    catalog_dir: str = Field(default="", description="Task catalog root, empty uses bundled assets")
    recipe_path: str = Field(default="Dockerfile", description="Build recipe inside the context")
    tag_prefix: str = Field(default="grader", description="Image tag prefix")
    timeout_sec: int = Field(default=60, ge=0, description="Run deadline, 0 disables it")
    result_mode: Literal["logs", "report"] = Field(default="logs")
    report_path: str = Field(default="/app/report.xml", description="Report file inside the unit")
    report_content_type: str = Field(default="application/xml")
    remove_image: bool = Field(default=True, description="Remove the built image after the run")
    build_log_tail: int = Field(default=20, ge=0, description="Build log lines kept on failure")

    @field_validator("remove_image", mode="before")
    @classmethod
    def parse_remove_image(cls, v):
        return _parse_bool(v)

    @property
    def catalog_root(self) -> Path:
        """Directory holding image/ and tests/."""
        return Path(self.catalog_dir) if self.catalog_dir else BUNDLED_ASSETS_DIR


class ServerSettings(BaseSettings):
    """HTTP server configuration."""

    model_config = SettingsConfigDict(env_prefix="SERVER_", extra="ignore")

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8086)


class CorsSettings(BaseSettings):
    """CORS configuration."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    origins_raw: str = Field(
        default="*",
        validation_alias="CORS_ORIGINS",
    )

    @property
    def origins(self) -> list[str]:
        """Parse comma-separated origins into list."""
        return [o.strip() for o in self.origins_raw.split(",") if o.strip()]

    @property
    def allow_credentials(self) -> bool:
        """Credentials not allowed with wildcard origins."""
        return self.origins != ["*"]


class DebugSettings(BaseSettings):
    """Debug flags configuration."""

    model_config = SettingsConfigDict(extra="ignore")

    request: bool = Field(default=False, alias="request_debug")

    @field_validator("*", mode="before")
    @classmethod
    def parse_bool(cls, v):
        return _parse_bool(v)


class Settings:
    """Main application settings combining all configuration sections.

    This is not a BaseSettings subclass to avoid env var conflicts.
    Each subsetting is loaded independently with its own prefix.
    """

    def __init__(self) -> None:
        self.sandbox = SandboxSettings()
        self.server = ServerSettings()
        self.cors = CorsSettings()
        self.debug = DebugSettings()


@lru_cache
def get_settings() -> Settings:
    """Get cached Settings instance (singleton pattern)."""
    return Settings()


def clear_settings_cache() -> None:
    """Clear cached settings (useful for testing)."""
    get_settings.cache_clear()
