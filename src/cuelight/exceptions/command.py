"""Command and preset exceptions.

This module defines exceptions for requests made against the lights:
- CommandError: Base class for command problems
- LightValidationError: A requested target is out of range
- UnknownLightError: The light id is not known to the module
- CommandSupersededError: A newer command replaced this one before it landed
- UnknownPresetError: No preset with the requested name
"""

from .base import CuelightError


class CommandError(CuelightError):
    """A light command could not be carried out."""
    pass


class LightValidationError(CommandError):
    """Requested light target is invalid."""

    def __init__(self, field: str, value: object, error_msg: str):
        super().__init__(
            user_message=f"Invalid value for '{field}': {error_msg}",
            technical_message=f"Light target validation failed for {field}={value!r}: {error_msg}",
            recoverable=True,
            recovery_hint="Brightness must be a whole number between 0 and 100.",
        )
        self.field = field
        self.value = value


class UnknownLightError(CommandError):
    """Light id has not been reported by the module."""

    def __init__(self, light_id: str):
        super().__init__(
            user_message=f"Unknown light '{light_id}'.",
            recoverable=True,
            recovery_hint="Run 'cuelight lights' to see the lights the module reports.",
        )
        self.light_id = light_id


class CommandSupersededError(CommandError):
    """Command was replaced by a newer one for the same light.

    This is not a failure: the newer command carries the user's intent.
    """

    def __init__(self, light_id: str, command_id: str):
        super().__init__(
            user_message=f"Command for light '{light_id}' was replaced by a newer one.",
            technical_message=f"Command {command_id} for {light_id} superseded",
            recoverable=True,
        )
        self.light_id = light_id
        self.command_id = command_id


class UnknownPresetError(CuelightError):
    """Requested preset is not in the catalog."""

    def __init__(self, name: str, available: list[str] | None = None):
        recovery = "Run 'cuelight presets' to list available presets."
        if available:
            recovery = f"Available presets: {', '.join(available)}"
        super().__init__(
            user_message=f"Unknown preset '{name}'.",
            recoverable=True,
            recovery_hint=recovery,
        )
        self.name = name
