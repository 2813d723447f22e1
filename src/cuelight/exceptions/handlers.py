"""
Centralized error handling utilities.

Each layer translates errors to be more useful at the next level up:

```
┌─────────────────────────────────────────┐
│  USER LAYER (CLI)                   │
│  - Formats error.user_message       │
│  - Shows error.recovery_hint        │
│  - Logs to file with --debug        │
└─────────────────────────────────────────┘
                  ↑
                  │ CuelightError
                  │
┌─────────────────────────────────────────┐
│  APPLICATION LAYER (core)           │
│  - Counts, reconciles, coalesces    │
│  - Collects per-light failures      │
└─────────────────────────────────────────┘
                  ↑
                  │ DeviceLinkError
                  │
┌─────────────────────────────────────────┐
│  LINK LAYER (transport)             │
│  - requests exceptions, HTTP status │
│  - Translated by wrap_transport_error│
└─────────────────────────────────────────┘
```

## Quick Reference

| Scenario | Use This |
|----------|----------|
| requests raised during a transaction | `raise wrap_transport_error(e, address=..., timeout_ms=...) from e` |
| Config file failed pydantic validation | `raise wrap_pydantic_error(e, str(path)) from e` |
| Try many lights, report all failures | `collector = collect_errors("apply preset"); with collector.try_operation(light_id): ...` |
| Critical section with auto-logging | `with ErrorContext("start controller"): ...` |

## Example

```python
from cuelight.exceptions import collect_errors

collector = collect_errors("apply preset all_off")
for light_id, command in commands.items():
    with collector.try_operation(light_id):
        command.raise_for_outcome()

if collector.has_errors:
    logger.warning(collector.get_summary())
```
"""

import logging
from functools import wraps
from typing import Callable, Optional, TypeVar

from .base import CuelightError
from .config import ConfigFileInvalidError, ConfigValidationError
from .device import (
    DeviceLinkError,
    DeviceProtocolError,
    DeviceRejectedError,
    DeviceTimeoutError,
    DeviceUnreachableError,
)

logger = logging.getLogger(__name__)

T = TypeVar('T')


def handle_errors(
    *,
    operation_name: str,
    user_notification: Optional[Callable[[str], None]] = None,
    fallback_value: Optional[T] = None,
    re_raise: bool = True,
    log_level: int = logging.ERROR
) -> Callable:
    """
    Decorator for consistent error handling.

    Args:
        operation_name: Name of the operation for logging (e.g., "set light")
        user_notification: Optional callback to notify the user
        fallback_value: Value to return if error occurs and re_raise=False
        re_raise: Whether to re-raise the exception after handling
        log_level: Logging level for the error (default: ERROR)

    Returns:
        Decorated function
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            try:
                return func(*args, **kwargs)

            except CuelightError as e:
                logger.log(log_level, f"Failed to {operation_name}: {e.technical_message}")

                if user_notification:
                    user_notification(e.get_full_message())

                if re_raise:
                    raise
                return fallback_value

            except Exception as e:
                logger.log(
                    log_level,
                    f"Unexpected error during {operation_name}: {e}",
                    exc_info=True
                )

                if user_notification:
                    user_notification(f"Error: {e}")

                if re_raise:
                    raise
                return fallback_value

        return wrapper
    return decorator


class ErrorContext:
    """
    Context manager for error handling with automatic logging.

    Example:
        ```python
        with ErrorContext("connect to lighting module", re_raise=False) as ctx:
            link.connect_once()

        if ctx.error:
            print(f"Failed: {ctx.error}")
        ```
    """

    def __init__(
        self,
        operation: str,
        logger_instance: Optional[logging.Logger] = None,
        re_raise: bool = True
    ):
        self.operation = operation
        self.logger = logger_instance or logger
        self.re_raise = re_raise
        self.error: Optional[Exception] = None

    def __enter__(self):
        self.logger.debug(f"Starting: {self.operation}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.logger.debug(f"Completed: {self.operation}")
            return False

        self.error = exc_val

        if isinstance(exc_val, CuelightError):
            self.logger.error(
                f"Failed to {self.operation}: {exc_val.technical_message}"
            )
        else:
            self.logger.error(
                f"Failed to {self.operation}: {exc_val}",
                exc_info=True
            )

        return not self.re_raise


def wrap_pydantic_error(error: Exception, file_path: str) -> CuelightError:
    """
    Convert Pydantic validation errors to cuelight exceptions.

    Args:
        error: The Pydantic ValidationError
        file_path: Path to the config file that failed validation

    Returns:
        A ConfigurationError with appropriate type and message
    """
    from pydantic import ValidationError

    error_msg = str(error)

    # Format: "Invalid JSON: <actual error> [type=json_invalid, ..."
    if "Invalid JSON" in error_msg or "json_invalid" in error_msg:
        if "Invalid JSON:" in error_msg:
            parse_error = error_msg.split("Invalid JSON:")[1].split("[type=")[0].strip()
        else:
            parse_error = error_msg

        return ConfigFileInvalidError(file_path, parse_error)

    if isinstance(error, ValidationError):
        errors = error.errors()
        if len(errors) == 1:
            first_error = errors[0]
            field = ".".join(str(loc) for loc in first_error.get('loc', ('unknown',)))
            return ConfigValidationError(
                field=field,
                value=first_error.get('input', None),
                error_msg=first_error.get('msg', 'validation failed'),
                file_path=file_path
            )
        if errors:
            error_lines = []
            for err in errors:
                field = ".".join(str(loc) for loc in err.get('loc', ('unknown',)))
                error_lines.append(f"  - {field}: {err.get('msg', 'validation failed')}")

            return ConfigValidationError(
                field="multiple fields",
                value=None,
                error_msg=f"{len(errors)} validation errors:\n" + "\n".join(error_lines),
                file_path=file_path
            )

    return ConfigValidationError(
        field="unknown",
        value=None,
        error_msg=error_msg,
        file_path=file_path
    )


def parse_error_code(value: object, default: int | str = 0) -> int | str:
    """
    Read the error code of a module reply.

    Numeric codes (including numeric strings) become ints. Any other
    non-empty value is kept as its string form; a missing code gives
    ``default``.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    try:
        return int(value)
    except (TypeError, ValueError):
        text = str(value).strip()
        return text or default


def wrap_transport_error(
    error: Exception,
    address: Optional[str] = None,
    timeout_ms: int = 0,
    light_id: Optional[str] = None,
    operation: str = "request",
) -> DeviceLinkError:
    """
    Convert low-level transport errors to device link exceptions.

    Maps `requests` exceptions and HTTP error replies onto the link taxonomy:
    read timeouts become DeviceTimeoutError, connection problems (connect
    timeouts included) become DeviceUnreachableError, HTTP error statuses
    become DeviceRejectedError (using the module's JSON error code when it
    sends one) and undecodable bodies become DeviceProtocolError.

    Args:
        error: The original exception from the transport
        address: Module address for messages
        timeout_ms: Timeout that applied to the transaction
        light_id: Light targeted by the transaction, if any
        operation: Short description of the transaction for logs

    Returns:
        A DeviceLinkError subclass
    """
    import requests

    if isinstance(error, DeviceLinkError):
        return error

    # ConnectTimeout is also a Timeout, but connection setup failed: unreachable
    if isinstance(error, requests.exceptions.ConnectTimeout):
        return DeviceUnreachableError(
            address, original_error=f"connect timed out: {error}", light_id=light_id
        )

    if isinstance(error, requests.exceptions.Timeout):
        return DeviceTimeoutError(timeout_ms, operation=operation, light_id=light_id)

    if isinstance(error, requests.exceptions.ConnectionError):
        return DeviceUnreachableError(address, original_error=str(error), light_id=light_id)

    if isinstance(error, requests.exceptions.HTTPError):
        response = error.response
        status = response.status_code if response is not None else 0
        code, message = status, None
        if response is not None:
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                code = parse_error_code(body.get("code"), status)
                message = body.get("message")
        return DeviceRejectedError(code, message, light_id=light_id)

    if isinstance(error, (ValueError, requests.exceptions.InvalidJSONError)):
        return DeviceProtocolError(str(error), light_id=light_id)

    if isinstance(error, requests.exceptions.RequestException):
        return DeviceUnreachableError(address, original_error=str(error), light_id=light_id)

    return DeviceLinkError(
        user_message=f"Lighting module error: {error}",
        technical_message=f"{operation} on {address} failed: {error!r}",
        light_id=light_id,
    )


def format_error_for_display(error: Exception) -> tuple[str, Optional[str]]:
    """
    Format an exception for user display.

    Returns:
        Tuple of (user_message, recovery_hint or None)
    """
    if isinstance(error, CuelightError):
        return error.user_message, error.recovery_hint

    error_type = type(error).__name__
    return f"{error_type}: {error}", None


def collect_errors(operation: str) -> "ErrorCollector":
    """
    Create an error collector for batch operations.

    Args:
        operation: Description of the overall operation

    Returns:
        ErrorCollector instance
    """
    return ErrorCollector(operation)


class ErrorCollector:
    """
    Collects multiple errors during batch operations.

    Allows operations to continue even if some fail, then
    report all failures at once.
    """

    def __init__(self, operation: str):
        self.operation = operation
        self.errors: list[tuple[str, Exception]] = []
        self.success_count = 0

    @property
    def has_errors(self) -> bool:
        """Check if any errors were collected."""
        return len(self.errors) > 0

    @property
    def error_count(self) -> int:
        """Get the number of errors collected."""
        return len(self.errors)

    def errors_by_operation(self) -> dict[str, Exception]:
        """Map each failed sub-operation to its error."""
        return dict(self.errors)

    def try_operation(self, sub_operation: str):
        """
        Context manager for a single operation within the batch.

        Args:
            sub_operation: Description of this specific operation

        Returns:
            Context manager that catches and stores errors
        """
        return self._OperationContext(self, sub_operation)

    def get_summary(self) -> str:
        """
        Get a summary of collected errors.

        Returns:
            Multi-line summary string
        """
        if not self.has_errors:
            return f"All operations completed successfully ({self.success_count} total)"

        summary = (
            f"{self.operation}: failed {self.error_count} of "
            f"{self.error_count + self.success_count} operations:\n"
        )
        for sub_op, error in self.errors:
            if isinstance(error, CuelightError):
                summary += f"  - {sub_op}: {error.user_message}\n"
            else:
                summary += f"  - {sub_op}: {error}\n"

        return summary.rstrip()

    class _OperationContext:
        """Internal context manager for individual operations."""

        def __init__(self, collector: "ErrorCollector", sub_operation: str):
            self.collector = collector
            self.sub_operation = sub_operation

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            if exc_type is None:
                self.collector.success_count += 1
                return False

            # Only exceptions are collected; KeyboardInterrupt and friends propagate
            if not issubclass(exc_type, Exception):
                return False

            self.collector.errors.append((self.sub_operation, exc_val))
            return True
