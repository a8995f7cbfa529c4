"""Configuration management for tensorcam."""

from __future__ import annotations

import os
import platform as host_platform
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


PlatformKey = Literal["ios", "android"]


class TextureDims(BaseModel):
    """Camera texture size requested from the capture device."""

    width: int = Field(gt=0)
    height: int = Field(gt=0)


def _default_texture_dims() -> dict[str, TextureDims]:
    return {
        "ios": TextureDims(width=1080, height=1920),
        "android": TextureDims(width=1600, height=1200),
    }


def detect_platform(system: str | None = None) -> PlatformKey:
    """Map the host OS onto a texture-dims platform key."""
    system = (system or host_platform.system()).lower()
    if system in ("darwin", "ios"):
        return "ios"
    return "android"


class DeviceConfig(BaseModel):
    """Device configuration."""

    name: str = "tensorcam"
    mode: Literal["production", "development"] = "development"
    log_level: str = "INFO"


class CameraConfig(BaseModel):
    """Camera configuration."""

    device_index: int = 0
    fps: int = Field(default=30, gt=0)
    platform: PlatformKey | None = None
    texture: dict[str, TextureDims] = Field(default_factory=_default_texture_dims)
    resize_width: int = Field(default=152, gt=0)
    resize_height: int = Field(default=200, gt=0)
    resize_depth: Literal[3] = 3
    mock_permission: Literal["granted", "denied"] = "granted"

    def resolve_platform(self, system: str | None = None) -> PlatformKey:
        """Return the configured platform key, or the one detected for the host."""
        return self.platform or detect_platform(system)

    def texture_dims(self, system: str | None = None) -> TextureDims:
        """Look up the texture dims for the resolved platform."""
        key = self.resolve_platform(system)
        try:
            return self.texture[key]
        except KeyError:
            raise KeyError(f"No texture dims configured for platform {key!r}") from None


class ClassifierConfig(BaseModel):
    """Classifier configuration."""

    model: Literal["mobilenet_v2", "mobilenet_v3_small", "mobilenet_v3_large"] = (
        "mobilenet_v3_small"
    )
    width_multiplier: float = Field(default=0.5, gt=0)
    top_k: int = Field(default=3, ge=1)
    device: str = "cpu"


class SamplingConfig(BaseModel):
    """Sampling loop configuration."""

    interval: int = Field(default=60, ge=1)
    single_flight: bool = True


class DisplayConfig(BaseModel):
    """Display surface configuration."""

    backend: Literal["opencv", "headless"] = "opencv"
    refresh_hz: float = Field(default=60.0, gt=0)
    window_title: str = "tensorcam"
    no_access_message: str = "No access to camera"
    not_loaded_message: str = "Model not loaded"


class Config(BaseSettings):
    """Main configuration for tensorcam."""

    model_config = SettingsConfigDict(
        env_prefix="TENSORCAM_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    device: DeviceConfig = Field(default_factory=DeviceConfig)
    camera: CameraConfig = Field(default_factory=CameraConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    sampling: SamplingConfig = Field(default_factory=SamplingConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)

    # Mock backends for development
    mock_mode: bool = False

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment wins over values read from a config file
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    @classmethod
    def from_yaml(cls, path: Path | str) -> Config:
        """Load configuration from YAML file."""
        path = Path(path)
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    def to_yaml(self, path: Path | str) -> None:
        """Save configuration to YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            yaml.dump(self.model_dump(), f, default_flow_style=False)


def load_config(
    config_path: Path | str | None = None,
    env_override: bool = True,
) -> Config:
    """Load configuration from file and environment.

    Args:
        config_path: Path to config file. If None, searches standard locations.
        env_override: Whether to allow environment variables to override config.

    Returns:
        Loaded configuration.
    """
    search_paths = [
        Path("/etc/tensorcam/config.yaml"),
        Path.home() / ".config" / "tensorcam" / "config.yaml",
        Path("config.yaml"),
        Path("configs/tensorcam.yaml"),
    ]

    if config_path:
        search_paths.insert(0, Path(config_path))

    config_file: Path | None = None
    for path in search_paths:
        if path.exists():
            config_file = path
            break

    if config_file:
        config = Config.from_yaml(config_file)
    else:
        config = Config()

    if env_override:
        if os.environ.get("TENSORCAM_MOCK_MODE", "").lower() in ("1", "true", "yes"):
            config.mock_mode = True

        log_level = os.environ.get("TENSORCAM_LOG_LEVEL")
        if log_level:
            config.device.log_level = log_level.upper()

    return config


def get_default_config() -> dict[str, Any]:
    """Get default configuration as dictionary."""
    return Config().model_dump()
