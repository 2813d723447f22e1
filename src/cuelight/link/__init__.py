"""Channel to the lighting module: transports, requests and the device link."""

from .backoff import ExponentialBackoff
from .device_link import DeviceLink
from .http_transport import HttpTransport
from .request import DeviceRequest, RequestKind
from .transport import Transport

__all__ = [
    "DeviceLink",
    "DeviceRequest",
    "ExponentialBackoff",
    "HttpTransport",
    "RequestKind",
    "Transport",
]
