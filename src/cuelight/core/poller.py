"""Periodic state polling behind a shared, single-flight cache."""

import logging
import threading
import time
from collections.abc import Callable
from threading import Lock
from typing import Optional

from pydantic import ValidationError

from cuelight.exceptions import DeviceLinkError, DeviceProtocolError, ErrorContext
from cuelight.link import DeviceLink, DeviceRequest
from cuelight.models import DeviceReading, LinkState

from .reconciler import StateReconciler

logger = logging.getLogger(__name__)


class _Flight:
    """A poll in progress that late callers can wait on."""

    __slots__ = ("done", "reading", "error")

    def __init__(self) -> None:
        self.done = threading.Event()
        self.reading: DeviceReading | None = None
        self.error: BaseException | None = None


class PollCache:
    """
    Shares module readings between every caller that wants fresh state.

    A reading younger than the coalescing window is returned as is. Otherwise
    one poll is sent; callers arriving while it is in flight wait for that
    same poll instead of sending their own. Every reading is merged into the
    reconciler before it is handed out.

    Args:
        link: Device link to poll through
        reconciler: Receives each reading
        window: Coalescing window in seconds
        ip_address: Module address recorded with each reading
        clock: Monotonic clock
    """

    def __init__(
        self,
        link: DeviceLink,
        reconciler: StateReconciler,
        window: float = 1.0,
        ip_address: str | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._link = link
        self._reconciler = reconciler
        self._window = window
        self._ip_address = ip_address
        self._clock = clock
        self._lock = Lock()
        self._reading: DeviceReading | None = None
        self._polled_at: float | None = None
        self._flight: _Flight | None = None

    @property
    def window(self) -> float:
        return self._window

    @property
    def reconciler(self) -> StateReconciler:
        return self._reconciler

    def fetch(self, max_age: float | None = None) -> DeviceReading:
        """
        Get a reading no older than ``max_age`` seconds (default: the window).

        Raises:
            DeviceLinkError: If the poll this call relied on failed
        """
        if max_age is None:
            max_age = self._window

        with self._lock:
            if (
                self._reading is not None
                and self._polled_at is not None
                and self._clock() - self._polled_at <= max_age
            ):
                return self._reading

            flight = self._flight
            leader = flight is None
            if leader:
                flight = self._flight = _Flight()

        if not leader:
            flight.done.wait()
            if flight.error is not None:
                raise flight.error
            return flight.reading

        try:
            polled_at = self._clock()
            reading = self._poll()
            self._reconciler.apply_poll(reading, polled_at, ip_address=self._ip_address)
            with self._lock:
                self._reading = reading
                self._polled_at = polled_at
            flight.reading = reading
            return reading
        except BaseException as e:
            flight.error = e
            raise
        finally:
            with self._lock:
                self._flight = None
            flight.done.set()

    def _poll(self) -> DeviceReading:
        reply = self._link.send(DeviceRequest.poll())
        try:
            return DeviceReading.model_validate(reply)
        except ValidationError as e:
            raise DeviceProtocolError(f"status reply failed validation: {e}") from e


class Poller:
    """
    Background thread refreshing light state every ``interval`` seconds.

    Polls go through the shared PollCache, so a refresh a user just forced
    is reused rather than repeated. Polling pauses while the link is down
    and resumes with an immediate poll once it reconnects, which is what
    clears the staleness flag. Failures are logged once per outage.

    A module that still accepts connections but stops answering (read
    timeouts) keeps the link CONNECTED, so after ``stale_after``
    consecutive failed polls the light table is flagged stale as well.

    Args:
        link: Device link, observed for reconnects
        cache: Shared poll cache
        interval: Seconds between polls
        stale_after: Consecutive poll failures before the state is stale
    """

    def __init__(
        self, link: DeviceLink, cache: PollCache, interval: float = 5.0, stale_after: int = 2
    ) -> None:
        self._link = link
        self._cache = cache
        self._interval = interval
        self._stale_after = max(1, stale_after)
        self._consecutive_failures = 0
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._wake = threading.Event()
        self._failure_warned = False

    def start(self) -> None:
        if self._running:
            logger.warning("Poller is already running")
            return

        self._running = True
        self._thread = threading.Thread(target=self._poll_loop, name="cuelight-poll", daemon=True)
        self._thread.start()
        logger.debug(f"Poller started (every {self._interval}s)")

    def stop(self) -> None:
        self._running = False
        self._wake.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=1.0)
        self._thread = None
        logger.debug("Poller stopped")

    def trigger(self) -> None:
        """Poll now instead of waiting for the next interval."""
        self._wake.set()

    def poll_once(self) -> bool:
        """
        Run one poll cycle.

        Returns:
            True if a reading was obtained
        """
        if not self._link.is_connected:
            return False

        try:
            self._cache.fetch()
        except DeviceLinkError as e:
            self._consecutive_failures += 1
            if not self._failure_warned:
                logger.warning(f"Poll failed, keeping last known state: {e.technical_message}")
                self._failure_warned = True
            else:
                logger.debug(f"Poll failed: {e.technical_message}")
            if self._consecutive_failures >= self._stale_after:
                self._cache.reconciler.mark_stale()
            return False

        self._consecutive_failures = 0
        if self._failure_warned:
            logger.info("Polling recovered")
            self._failure_warned = False
        return True

    def _poll_loop(self) -> None:
        while self._running:
            with ErrorContext("poll lighting module", logger_instance=logger, re_raise=False):
                self.poll_once()
            self._wake.wait(self._interval)
            self._wake.clear()

    # =================================================================
    # LinkObserver
    # =================================================================

    def on_link_state_changed(self, old: LinkState, new: LinkState) -> None:
        if new is LinkState.CONNECTED:
            self.trigger()

    def on_transaction(self, request, ok, error) -> None:
        pass
