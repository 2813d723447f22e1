"""Application configuration model."""

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from cuelight.model_manager.persistence import PydanticPersistence

from .preset import Preset, default_presets

DEFAULT_CONFIG_PATH = Path.home() / ".cuelight" / "config.json"


class AppConfig(BaseModel):
    """Application configuration and settings."""

    # Lighting module address
    module_host: str = Field(default="192.168.1.100", description="Lighting module IP or hostname")
    module_port: int = Field(default=80, ge=1, le=65535, description="Lighting module HTTP port")
    request_timeout_ms: int = Field(
        default=5000, ge=100, le=60000, description="Per-transaction timeout (milliseconds)"
    )

    # Polling
    poll_interval: float = Field(
        default=5.0, gt=0, description="How often to poll the module for light state (seconds)"
    )
    poll_cache_window: float = Field(
        default=1.0,
        ge=0,
        description="Readings younger than this are shared instead of polling again (seconds)",
    )
    poll_stale_after: int = Field(
        default=2,
        ge=1,
        description="Consecutive failed polls before light state is shown as stale",
    )

    # Reconnect backoff
    backoff_base: float = Field(default=0.5, gt=0, description="First reconnect delay ceiling (seconds)")
    backoff_cap: float = Field(default=10.0, gt=0, description="Largest reconnect delay (seconds)")

    # Commands
    command_workers: int = Field(
        default=8, ge=1, le=64, description="Worker threads carrying light commands"
    )

    presets: list[Preset] = Field(
        default_factory=default_presets, description="Preset catalog, loaded once at startup"
    )

    @field_validator("presets")
    @classmethod
    def validate_unique_presets(cls, v: list[Preset]) -> list[Preset]:
        """Preset names must be unique."""
        names = [preset.name for preset in v]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"duplicate preset names: {', '.join(duplicates)}")
        return v

    @property
    def base_url(self) -> str:
        """HTTP base URL of the module."""
        return f"http://{self.module_host}:{self.module_port}"

    @property
    def request_timeout(self) -> float:
        """Per-transaction timeout in seconds."""
        return self.request_timeout_ms / 1000

    @classmethod
    def load_or_default(cls, path: Path | None = None) -> "AppConfig":
        """
        Load config from file or return default.

        Args:
            path: Path to config file. If None, uses default location
                  (~/.cuelight/config.json).

        Raises:
            ConfigFileInvalidError: If config file has invalid JSON syntax
            ConfigValidationError: If config values fail validation
        """
        if path is None:
            path = DEFAULT_CONFIG_PATH

        return PydanticPersistence.load_json_or_default(path, cls)

    def save(self, path: Path | None = None) -> None:
        """Save config to file (keeps a .bak of the previous one)."""
        if path is None:
            path = DEFAULT_CONFIG_PATH

        PydanticPersistence.save_json(self, path)
