"""Pytest fixtures for tests."""

import threading
import time
from pathlib import Path
from tempfile import TemporaryDirectory
from urllib.parse import unquote

import pytest
import requests

from cuelight.core import CommandCoalescer, PollCache, StateReconciler
from cuelight.link import DeviceLink, ExponentialBackoff
from cuelight.models import AppConfig


DEFAULT_LIGHTS = [
    ("1", "Table 1"),
    ("2", "Table 2"),
    ("3", "Table 3"),
    ("4", "Table 4"),
    ("5", "Table 5"),
    ("6", "Table 6"),
    ("7", "Bar"),
    ("8", "Entrance"),
]


class FakeTransport:
    """
    In-memory lighting module.

    Behaves like the firmware's HTTP API and records every request. Tests
    script failures per light, take the whole module off the network, or
    hold replies behind gates to observe in-flight behaviour.
    """

    def __init__(self, lights=None, on=False, brightness=50):
        self.address = "fake-module:80"
        self.module_id = "ESP32-BILLIARD-001"
        self.firmware_version = "v2.1.3"
        self.signal_strength = -45
        self.lights: dict[str, dict] = {
            light_id: {"id": light_id, "name": name, "on": on, "brightness": brightness}
            for light_id, name in (lights or DEFAULT_LIGHTS)
        }
        self.reachable = True
        self.fail_lights: dict[str, Exception] = {}
        self.reject_lights: dict[str, int | str] = {}
        self.gates: dict[str, threading.Event] = {}
        self.status_gate: threading.Event | None = None
        self.calls: list[tuple[str, str, dict | None]] = []
        self.open_count = 0
        self._lock = threading.Lock()

    def open(self) -> None:
        self.open_count += 1

    def close(self) -> None:
        pass

    def request(self, method: str, path: str, body: dict | None, timeout_s: float) -> dict:
        with self._lock:
            self.calls.append((method, path, body))

        if not self.reachable:
            raise requests.exceptions.ConnectionError("connection refused")

        if path == "/health":
            return {"ok": True}

        if path == "/status":
            if self.status_gate is not None:
                self.status_gate.wait(5)
            with self._lock:
                lights = [dict(light) for light in self.lights.values()]
            return {
                "ok": True,
                "module_id": self.module_id,
                "firmware_version": self.firmware_version,
                "signal_strength": self.signal_strength,
                "lights": lights,
            }

        if path.startswith("/lights/"):
            light_id = unquote(path.rsplit("/", 1)[1])
            gate = self.gates.get(light_id)
            if gate is not None:
                gate.wait(5)
            if light_id in self.fail_lights:
                raise self.fail_lights[light_id]
            if light_id in self.reject_lights:
                return {"ok": False, "code": self.reject_lights[light_id], "message": "relay fault"}
            with self._lock:
                light = self.lights.get(light_id)
                if light is None:
                    return {"ok": False, "code": 404, "message": "no such light"}
                light.update(on=body["on"], brightness=body["brightness"])
                return {"ok": True, "light": dict(light)}

        return {"ok": False, "code": 400, "message": f"unknown path {path}"}

    def writes(self, light_id: str | None = None) -> list[dict]:
        """Bodies of light writes, optionally for one light."""
        with self._lock:
            return [
                body
                for method, path, body in self.calls
                if method == "POST"
                and (light_id is None or unquote(path.rsplit("/", 1)[1]) == light_id)
            ]

    def status_calls(self) -> int:
        with self._lock:
            return sum(1 for _, path, _ in self.calls if path == "/status")


class FakeClock:
    """Monotonic clock under test control."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def wait_for(predicate, timeout: float = 2.0, interval: float = 0.01) -> bool:
    """Poll a predicate until it holds or the timeout passes."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def temp_dir():
    """Create a temporary directory that gets cleaned up."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fake_transport():
    """An in-memory module with eight lights, all off at 50%."""
    return FakeTransport()


@pytest.fixture
def fast_config():
    """Configuration with short intervals for threaded tests."""
    return AppConfig(
        module_host="fake-module",
        request_timeout_ms=500,
        poll_interval=0.05,
        poll_cache_window=0.0,
        backoff_base=0.01,
        backoff_cap=0.05,
        command_workers=4,
    )


@pytest.fixture
def connected_link(fake_transport):
    """A device link that has connected once (no monitor thread)."""
    link = DeviceLink(fake_transport, timeout_ms=500, backoff=ExponentialBackoff(0.01, 0.05))
    assert link.connect_once()
    yield link
    link.stop()


@pytest.fixture
def reconciler():
    return StateReconciler()


@pytest.fixture
def polled_reconciler(connected_link, reconciler):
    """A reconciler that has seen one full poll of the fake module."""
    PollCache(connected_link, reconciler, window=0.0).fetch()
    return reconciler


@pytest.fixture
def coalescer(connected_link, polled_reconciler):
    coalescer = CommandCoalescer(connected_link, polled_reconciler, max_workers=4)
    yield coalescer
    coalescer.shutdown(wait=True)
