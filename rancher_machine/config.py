"""Driver process configuration using Pydantic Settings."""

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process settings loaded from environment variables.

    Per-machine options (URL, keys, sizing) are not settings; they come from
    the create flag table in :mod:`rancher_machine.flags`.
    """

    PROJECT_NAME: str = "Rancher Machine Driver"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"  # json or console

    # OpenTelemetry Configuration
    OTEL_SERVICE_NAME: str = "rancher-machine-driver"
    OTEL_TRACE_SAMPLE_RATE: float = 1.0  # 1.0 = 100% sampling
    OTEL_EXPORT_CONSOLE: bool = False

    # Local machine store (same variable docker-machine honours)
    MACHINE_STORAGE_PATH: Path = Path("~/.docker/machine")

    # Rancher API
    RANCHER_HTTP_TIMEOUT: float = 30.0
    RANCHER_POLL_INTERVAL: float = 2.0
    RANCHER_CREATE_TIMEOUT: float = 600.0  # 0 disables the deadline

    @field_validator("MACHINE_STORAGE_PATH", mode="after")
    @classmethod
    def expand_storage_path(cls, v: Path) -> Path:
        """Expand ``~`` in the storage path."""
        return v.expanduser()

    @field_validator("LOG_FORMAT")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Only json and console output are supported."""
        v = v.lower()
        if v not in ("json", "console"):
            raise ValueError(f"LOG_FORMAT must be 'json' or 'console', got {v!r}")
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
