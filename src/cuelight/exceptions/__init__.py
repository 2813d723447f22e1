"""
Custom exception hierarchy for cuelight.

## Exception Hierarchy

```
CuelightError (base)
├── DeviceLinkError
│   ├── DeviceUnreachableError
│   ├── DeviceTimeoutError
│   ├── DeviceRejectedError
│   └── DeviceProtocolError
├── CommandError
│   ├── LightValidationError
│   ├── UnknownLightError
│   └── CommandSupersededError
├── UnknownPresetError
└── ConfigurationError
    ├── ConfigFileInvalidError
    └── ConfigValidationError
```

All custom exceptions inherit from `CuelightError`, which provides
`user_message`, `technical_message`, `recoverable` and `recovery_hint`.

### Example: Module Rejects a Command

```python
from cuelight.exceptions import DeviceRejectedError

raise DeviceRejectedError(code=409, message="relay busy", light_id="5")

# User sees: "Lighting module rejected the command (code 409): relay busy"
```

`CommandSupersededError` is not a failure: it marks a command whose intent was
replaced by a newer one for the same light. Callers that count failures must
keep it apart.

See `cuelight.exceptions.handlers` for utilities to handle these exceptions systematically.
"""

from .base import CuelightError
from .command import (
    CommandError,
    CommandSupersededError,
    LightValidationError,
    UnknownLightError,
    UnknownPresetError,
)
from .config import ConfigFileInvalidError, ConfigurationError, ConfigValidationError
from .device import (
    DeviceLinkError,
    DeviceProtocolError,
    DeviceRejectedError,
    DeviceTimeoutError,
    DeviceUnreachableError,
)
from .handlers import (
    ErrorCollector,
    ErrorContext,
    collect_errors,
    format_error_for_display,
    handle_errors,
    parse_error_code,
    wrap_pydantic_error,
    wrap_transport_error,
)

__all__ = [
    # Base
    "CuelightError",
    # Command
    "CommandError",
    "CommandSupersededError",
    "LightValidationError",
    "UnknownLightError",
    "UnknownPresetError",
    # Config
    "ConfigFileInvalidError",
    "ConfigValidationError",
    "ConfigurationError",
    # Device
    "DeviceLinkError",
    "DeviceProtocolError",
    "DeviceRejectedError",
    "DeviceTimeoutError",
    "DeviceUnreachableError",
    # Handlers
    "ErrorCollector",
    "ErrorContext",
    "collect_errors",
    "format_error_for_display",
    "handle_errors",
    "parse_error_code",
    "wrap_pydantic_error",
    "wrap_transport_error",
]
