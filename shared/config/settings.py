"""
Settings Module
===============

Pydantic-based configuration with environment variable loading.

Version: 0.1.0
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class TrustMode(str, Enum):
    """Trust provider backing the verification gateway."""

    IRMA = "irma"
    MOCK = "mock"


DEFAULT_SCHEME_URLS = (
    "https://schemes.privacybydesign.foundation/pbdf,"
    "https://schemes.privacybydesign.foundation/irma-demo"
)


class TrustSettings(BaseSettings):
    """Trust scheme storage and provider configuration."""

    model_config = SettingsConfigDict(env_prefix="TRUST_", populate_by_name=True)

    mode: TrustMode = TrustMode.IRMA

    # Location of the scheme folders (the one setting the service cannot run without)
    schemes_dir: Path = Field(default=Path("schemes"), alias="SCHEMES_DIR")

    update_interval_minutes: int = Field(default=15, ge=1)
    default_scheme_urls: str = DEFAULT_SCHEME_URLS
    download_attempts: int = Field(default=3, ge=1)

    # External tooling
    irma_command: str = "irma"
    verify_command: str = "irma-sigverify"
    command_timeout_seconds: float = 60.0

    @property
    def default_scheme_urls_list(self) -> list[str]:
        """Parse default scheme URLs into list."""
        return [u.strip() for u in self.default_scheme_urls.split(",") if u.strip()]


class GatewaySettings(BaseSettings):
    """Request handling limits for the verification endpoint."""

    model_config = SettingsConfigDict(env_prefix="GATEWAY_")

    max_body_bytes: int = Field(default=1_048_576, ge=1)


class ServerSettings(BaseSettings):
    """Network listener configuration."""

    model_config = SettingsConfigDict(env_prefix="SERVER_")

    host: str = "0.0.0.0"
    port: int = 8080


class Settings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables with sensible defaults.
    Use the global `settings` singleton or call `get_settings()`.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # General
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = True
    log_level: LogLevel = LogLevel.INFO
    service_name: str = "sigverify"

    server: ServerSettings = Field(default_factory=ServerSettings)
    trust: TrustSettings = Field(default_factory=TrustSettings)
    gateway: GatewaySettings = Field(default_factory=GatewaySettings)

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Ensure log level is uppercase."""
        if isinstance(v, str):
            return LogLevel(v.upper())
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == Environment.PRODUCTION


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings singleton.
    """
    return Settings()
