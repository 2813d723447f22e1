"""Requests understood by the lighting module firmware."""

from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import quote

from cuelight.models import LightTarget


class RequestKind(str, Enum):
    """Kinds of module transaction."""

    PING = "ping"
    POLL = "poll"
    SET_LIGHT = "set_light"


@dataclass(frozen=True)
class DeviceRequest:
    """One transaction with the module."""

    kind: RequestKind
    method: str
    path: str
    body: dict | None = field(default=None, compare=False)
    light_id: str | None = None

    @classmethod
    def ping(cls) -> "DeviceRequest":
        return cls(RequestKind.PING, "GET", "/health")

    @classmethod
    def poll(cls) -> "DeviceRequest":
        return cls(RequestKind.POLL, "GET", "/status")

    @classmethod
    def set_light(cls, light_id: str, target: LightTarget) -> "DeviceRequest":
        return cls(
            RequestKind.SET_LIGHT,
            "POST",
            f"/lights/{quote(light_id, safe='')}",
            body=target.to_wire(),
            light_id=light_id,
        )

    @property
    def is_command(self) -> bool:
        """Check if the request changes a light."""
        return self.kind is RequestKind.SET_LIGHT

    def describe(self) -> str:
        """Short form for log lines."""
        if self.light_id is not None:
            return f"{self.method} {self.path} {self.body}"
        return f"{self.method} {self.path}"
