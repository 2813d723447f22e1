"""CLI commands for cuelight."""

from .config import config
from .lights import lights, set_light, watch
from .presets import apply_preset, list_presets
from .status import status

__all__ = ["apply_preset", "config", "lights", "list_presets", "set_light", "status", "watch"]
