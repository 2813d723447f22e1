"""Data models for the lighting core."""

from .config import AppConfig
from .enums import CommandOutcome, LinkState
from .light import Light, LightTarget, validate_brightness
from .module import (
    CommandStats,
    DeviceReading,
    LightReading,
    ModuleInfo,
    ModuleStatus,
    Snapshot,
)
from .preset import Preset, PresetTarget, default_presets

__all__ = [
    "AppConfig",
    "CommandOutcome",
    "CommandStats",
    "DeviceReading",
    "Light",
    "LightReading",
    "LightTarget",
    "LinkState",
    "ModuleInfo",
    "ModuleStatus",
    "Preset",
    "PresetTarget",
    "Snapshot",
    "default_presets",
    "validate_brightness",
]
