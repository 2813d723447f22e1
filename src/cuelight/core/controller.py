"""
Lighting controller facade.

Architecture Overview
=====================

::

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     POS DASHBOARD / CLI                             │
    └────────────────────────────┬────────────────────────────────────────┘
                                 │ lights(), set_power(), apply_preset() ...
                                 ↓
    ┌─────────────────────────────────────────────────────────────────────┐
    │                    LightingController                               │
    └──────┬──────────────┬───────────────┬──────────────┬────────────────┘
           │              │               │              │
           ↓              ↓               ↓              ↓
    ┌────────────┐ ┌─────────────┐ ┌────────────┐ ┌──────────────────┐
    │PresetEngine│→│  Command    │ │  Poller /  │ │ StatusAggregator │
    │            │ │  Coalescer  │ │  PollCache │ │                  │
    └────────────┘ └──────┬──────┘ └─────┬──────┘ └────────▲─────────┘
                          │   acks       │ readings        │ transactions
                          ↓              ↓                 │
                   ┌───────────────────────────┐           │
                   │      StateReconciler      │           │
                   └───────────────────────────┘           │
                          │                                │
                          ↓                                │
                   ┌───────────────────────────┐           │
                   │        DeviceLink         │───────────┘
                   │  (monitor thread, backoff)│
                   └─────────────┬─────────────┘
                                 ↓
                          HttpTransport → ESP32 lighting module

Reads (``lights()``, ``status()``) never touch the network. Writes return a
Command immediately; wait on it if the outcome matters.

Usage Example
-------------

.. code-block:: python

    config = AppConfig.load_or_default()
    with LightingController(config) as controller:
        controller.refresh()
        controller.set_brightness("3", 60).wait(5)
        result = controller.apply_preset("tables_only", timeout=10)
"""

import logging
import random
import time
from collections.abc import Callable

from cuelight.link import DeviceLink, ExponentialBackoff, HttpTransport, Transport
from cuelight.models import AppConfig, LightTarget, ModuleStatus, Preset, Snapshot
from cuelight.protocols import CommandObserver, LinkObserver, StateObserver

from .coalescer import Command, CommandCoalescer
from .poller import PollCache, Poller
from .presets import PresetEngine, PresetResult
from .reconciler import StateReconciler
from .status import StatusAggregator

logger = logging.getLogger(__name__)


class LightingController:
    """
    Composes the lighting core from an AppConfig.

    Args:
        config: Application configuration
        transport: Channel to the module (defaults to HTTP at the configured address)
        clock: Monotonic clock shared by every component
        rng: Random source for reconnect jitter
    """

    # ================================================================
    # INITIALIZATION
    # ================================================================

    def __init__(
        self,
        config: AppConfig,
        transport: Transport | None = None,
        clock: Callable[[], float] = time.monotonic,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config
        self._transport = transport or HttpTransport(config.module_host, config.module_port)

        self.link = DeviceLink(
            self._transport,
            timeout_ms=config.request_timeout_ms,
            backoff=ExponentialBackoff(config.backoff_base, config.backoff_cap, rng=rng),
        )
        self.status_aggregator = StatusAggregator(clock=clock)
        self.reconciler = StateReconciler(clock=clock)
        self.coalescer = CommandCoalescer(
            self.link, self.reconciler, max_workers=config.command_workers, clock=clock
        )
        self.presets = PresetEngine(config.presets, self.reconciler, self.coalescer)
        self.poll_cache = PollCache(
            self.link,
            self.reconciler,
            window=config.poll_cache_window,
            ip_address=config.module_host,
            clock=clock,
        )
        self.poller = Poller(
            self.link,
            self.poll_cache,
            interval=config.poll_interval,
            stale_after=config.poll_stale_after,
        )

        self.link.register_observer(self.reconciler)
        self.link.register_observer(self.status_aggregator)
        self.link.register_observer(self.poller)
        self.coalescer.register_observer(self.status_aggregator)

        self._started = False

    # ================================================================
    # LIFECYCLE
    # ================================================================

    def start(self) -> None:
        """Start reconnecting and polling in the background."""
        if self._started:
            logger.warning("LightingController is already running")
            return

        logger.info(f"Starting lighting controller for {self.link.address}")
        self.link.start()
        self.poller.start()
        self._started = True

    def stop(self) -> None:
        """Stop polling, let in-flight commands finish, then close the link."""
        logger.info("Stopping lighting controller")
        self.poller.stop()
        self.coalescer.shutdown(wait=True)
        self.link.stop()
        self._started = False

    def connect(self) -> bool:
        """
        Connect once without background threads.

        Returns:
            True if the module answered
        """
        return self.link.connect_once()

    def wait_connected(self, timeout: float | None = None) -> bool:
        return self.link.wait_connected(timeout)

    # ================================================================
    # READS
    # ================================================================

    def lights(self) -> Snapshot:
        """Current reconciled state. Never blocks on the module."""
        return self.reconciler.snapshot()

    def refresh(self, max_age: float | None = None) -> Snapshot:
        """
        Poll the module (through the shared cache) and return the new state.

        Raises:
            DeviceLinkError: If the poll failed
        """
        self.poll_cache.fetch(max_age)
        return self.reconciler.snapshot()

    def status(self) -> ModuleStatus:
        """Module identity, link state, counters and uptime."""
        module = self.reconciler.snapshot().module
        if module.ip_address is None:
            module = module.model_copy(update={"ip_address": self.config.module_host})
        return self.status_aggregator.module_status(module, self.link.state)

    def preset_catalog(self) -> list[Preset]:
        return self.presets.catalog()

    # ================================================================
    # WRITES
    # ================================================================

    def set_power(self, light_id: str, on: bool) -> Command:
        """Switch a light on or off, keeping its brightness."""
        return self.coalescer.submit_change(light_id, on=on)

    def set_brightness(self, light_id: str, brightness: int) -> Command:
        """Change a light's brightness (0-100) without switching it."""
        return self.coalescer.submit_change(light_id, brightness=brightness)

    def set_light(self, light_id: str, on: bool, brightness: int) -> Command:
        """Request a complete light state."""
        return self.coalescer.submit(light_id, LightTarget.of(on=on, brightness=brightness))

    def apply_preset(self, name: str, timeout: float | None = None) -> PresetResult:
        return self.presets.apply(name, timeout=timeout)

    # ================================================================
    # OBSERVERS
    # ================================================================

    def register_state_observer(self, observer: StateObserver) -> None:
        self.reconciler.register_observer(observer)

    def register_command_observer(self, observer: CommandObserver) -> None:
        self.coalescer.register_observer(observer)

    def register_link_observer(self, observer: LinkObserver) -> None:
        self.link.register_observer(observer)

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
