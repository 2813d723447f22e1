"""Lighting module link exceptions.

This module defines exceptions raised by the device link:
- DeviceLinkError: Base class for link failures
- DeviceUnreachableError: The module cannot be reached at all
- DeviceTimeoutError: The module did not answer within the request timeout
- DeviceRejectedError: The module answered with an error code
- DeviceProtocolError: The module answered with something we cannot parse
"""

from .base import CuelightError


class DeviceLinkError(CuelightError):
    """A transaction with the lighting module failed."""

    def __init__(self, user_message: str, light_id: str | None = None, **kwargs):
        """
        Initialize device link error.

        Args:
            user_message: User-friendly error message
            light_id: The light the transaction targeted (if any)
        """
        super().__init__(user_message, **kwargs)
        self.light_id = light_id


class DeviceUnreachableError(DeviceLinkError):
    """Lighting module is not reachable (not connected, refused, no route)."""

    def __init__(self, address: str | None = None, original_error: str | None = None,
                 light_id: str | None = None):
        user_msg = "Lighting module is unreachable."
        tech_msg = f"Lighting module {address or '<unknown>'} unreachable"
        if original_error:
            tech_msg += f": {original_error}"

        super().__init__(
            user_message=user_msg,
            technical_message=tech_msg,
            light_id=light_id,
            recoverable=True,
            recovery_hint=(
                "Check that the module is powered and on the same network. "
                "Run 'cuelight config show' to verify the module address."
            ),
        )
        self.address = address


class DeviceTimeoutError(DeviceLinkError):
    """Lighting module did not answer within the request timeout."""

    def __init__(self, timeout_ms: int, operation: str = "request", light_id: str | None = None):
        super().__init__(
            user_message=f"Lighting module did not respond within {timeout_ms} ms.",
            technical_message=f"{operation} timed out after {timeout_ms} ms",
            light_id=light_id,
            recoverable=True,
            recovery_hint="Try again. If this keeps happening, check the module's signal strength.",
        )
        self.timeout_ms = timeout_ms
        self.operation = operation


class DeviceRejectedError(DeviceLinkError):
    """Lighting module answered with an explicit error code."""

    def __init__(self, code: int | str, message: str | None = None, light_id: str | None = None):
        detail = f": {message}" if message else ""
        super().__init__(
            user_message=f"Lighting module rejected the command (code {code}){detail}",
            technical_message=f"Device error code={code} message={message!r} light={light_id}",
            light_id=light_id,
            recoverable=False,
        )
        self.code = code
        self.message = message


class DeviceProtocolError(DeviceLinkError):
    """Lighting module reply could not be understood."""

    def __init__(self, detail: str, light_id: str | None = None):
        super().__init__(
            user_message="Lighting module sent an unexpected reply.",
            technical_message=f"Malformed module reply: {detail}",
            light_id=light_id,
            recoverable=False,
            recovery_hint="Check the module firmware version.",
        )
        self.detail = detail
