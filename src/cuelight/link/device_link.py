"""Device link with reachability tracking and automatic reconnect."""

import logging
import threading
from typing import Optional

from cuelight.exceptions import (
    DeviceLinkError,
    DeviceRejectedError,
    DeviceUnreachableError,
    parse_error_code,
    wrap_transport_error,
)
from cuelight.model_manager import ObserverManager
from cuelight.models import LinkState
from cuelight.protocols import LinkObserver

from .backoff import ExponentialBackoff
from .request import DeviceRequest
from .transport import Transport

logger = logging.getLogger(__name__)


class DeviceLink:
    """
    Single channel to the lighting module.

    Owns the reachability state machine::

        DISCONNECTED -> CONNECTING -> CONNECTED
        CONNECTED -> RECONNECTING          (connection-level I/O error)
        RECONNECTING -> CONNECTED | DISCONNECTED
        DISCONNECTED -> CONNECTING -> ...  (after a backoff delay)

    A monitor thread keeps (re)establishing the connection with exponential
    backoff and full jitter for as long as the link runs. Only connection
    establishment is retried; ``send()`` performs exactly one attempt.

    A request timeout leaves the state alone. Only an unreachable module
    moves the link out of CONNECTED.

    Every ``send()`` is reported exactly once to link observers through
    ``on_transaction``, including the fast failure while the link is down.

    Args:
        transport: Raw channel to the module
        timeout_ms: Bound on each transaction (milliseconds)
        backoff: Reconnect delay policy (defaults to base 0.5 s, cap 10 s)
    """

    def __init__(
        self,
        transport: Transport,
        timeout_ms: int = 5000,
        backoff: Optional[ExponentialBackoff] = None,
    ):
        self._transport = transport
        self._timeout_ms = timeout_ms
        self._backoff = backoff or ExponentialBackoff()
        self._state = LinkState.DISCONNECTED
        self._state_lock = threading.Lock()
        # Serializes connect attempts between the monitor and connect_once()
        self._connect_lock = threading.Lock()
        self._connected = threading.Event()
        self._wake = threading.Event()
        self._stopping = threading.Event()
        self._running = False
        self._monitor_thread: Optional[threading.Thread] = None
        self._unreachable_warned = False
        self._observers = ObserverManager[LinkObserver](observer_type_name="link")

    # =================================================================
    # Observers
    # =================================================================

    def register_observer(self, observer: LinkObserver) -> None:
        self._observers.register(observer)

    def unregister_observer(self, observer: LinkObserver) -> None:
        self._observers.unregister(observer)

    # =================================================================
    # State
    # =================================================================

    @property
    def state(self) -> LinkState:
        with self._state_lock:
            return self._state

    @property
    def is_connected(self) -> bool:
        return self.state is LinkState.CONNECTED

    @property
    def address(self) -> str:
        return self._transport.address

    @property
    def timeout_ms(self) -> int:
        return self._timeout_ms

    def wait_connected(self, timeout: Optional[float] = None) -> bool:
        """Block until the link is connected. Returns False on timeout."""
        return self._connected.wait(timeout)

    def _set_state(self, new: LinkState, expected: Optional[LinkState] = None) -> bool:
        """
        Move to a new state and notify observers after releasing the lock.

        Args:
            new: Target state
            expected: Only transition if the current state is this one

        Returns:
            True if the state changed
        """
        with self._state_lock:
            old = self._state
            if old is new or (expected is not None and old is not expected):
                return False
            self._state = new
            if new is LinkState.CONNECTED:
                self._connected.set()
            else:
                self._connected.clear()

        logger.debug(f"Link state {old.value} -> {new.value}")
        self._observers.notify("on_link_state_changed", old, new)
        return True

    # =================================================================
    # Lifecycle
    # =================================================================

    def start(self) -> None:
        """Start the monitor thread that keeps the link connected."""
        if self._running:
            logger.warning("DeviceLink is already running")
            return

        self._running = True
        self._stopping.clear()
        self._monitor_thread = threading.Thread(
            target=self._monitor_connection, name="cuelight-link", daemon=True
        )
        self._monitor_thread.start()
        logger.debug(f"DeviceLink started for {self.address}")

    def stop(self) -> None:
        """Stop reconnecting and close the transport."""
        self._running = False
        self._stopping.set()
        self._wake.set()

        if self._monitor_thread and self._monitor_thread.is_alive():
            self._monitor_thread.join(timeout=1.0)
        self._monitor_thread = None

        try:
            self._transport.close()
        except Exception as e:
            logger.error(f"Error closing transport to {self.address}: {e}")

        self._set_state(LinkState.DISCONNECTED)
        logger.debug("DeviceLink stopped")

    def connect_once(self) -> bool:
        """
        Make a single synchronous connection attempt.

        Used when no monitor thread runs (one-shot commands).

        Returns:
            True if the link is connected afterwards
        """
        return self._attempt_connect()

    def _monitor_connection(self) -> None:
        """Keep the link connected until stopped."""
        logger.debug(f"Starting link monitor for {self.address}")

        while self._running:
            if self.state is LinkState.CONNECTED:
                # Woken by a connection loss or stop()
                self._wake.wait()
                self._wake.clear()
                continue

            try:
                connected = self._attempt_connect()
            except Exception as e:
                logger.error(f"Error in link monitor: {e}", exc_info=True)
                connected = False

            if not connected and self._running:
                delay = self._backoff.next_delay()
                logger.debug(
                    f"Reconnect attempt {self._backoff.attempt} to {self.address} in {delay:.2f}s"
                )
                self._stopping.wait(delay)

        logger.debug(f"Link monitor for {self.address} exited")

    def _attempt_connect(self) -> bool:
        with self._connect_lock:
            state = self.state
            if state is LinkState.CONNECTED:
                return True
            if state is LinkState.DISCONNECTED:
                self._set_state(LinkState.CONNECTING)

            ping = DeviceRequest.ping()
            try:
                self._transport.open()
                self._transport.request(
                    ping.method, ping.path, ping.body, self._timeout_ms / 1000
                )
            except Exception as e:
                error = wrap_transport_error(
                    e, address=self.address, timeout_ms=self._timeout_ms, operation="connect"
                )
                if not self._unreachable_warned:
                    logger.warning(f"Lighting module {self.address} not reachable: {error.technical_message}")
                    self._unreachable_warned = True
                else:
                    logger.debug(f"Connect to {self.address} failed: {error.technical_message}")
                self._set_state(LinkState.DISCONNECTED)
                return False

            self._backoff.reset()
            self._unreachable_warned = False
            logger.info(f"Connected to lighting module at {self.address}")
            self._set_state(LinkState.CONNECTED)
            return True

    def _connection_lost(self, error: DeviceLinkError) -> None:
        if self._set_state(LinkState.RECONNECTING, expected=LinkState.CONNECTED):
            logger.warning(f"Lost connection to lighting module: {error.technical_message}")
            self._wake.set()

    # =================================================================
    # Transactions
    # =================================================================

    def send(self, request: DeviceRequest) -> dict:
        """
        Perform one transaction with the module.

        Args:
            request: What to send

        Returns:
            The module's decoded reply

        Raises:
            DeviceUnreachableError: Link is down or the module cannot be reached
            DeviceTimeoutError: No reply within the request timeout
            DeviceRejectedError: The module answered with an error code
            DeviceProtocolError: The reply could not be decoded
        """
        if self.state is not LinkState.CONNECTED:
            error = DeviceUnreachableError(
                self.address,
                original_error=f"link is {self.state.value}",
                light_id=request.light_id,
            )
            self._report(request, error)
            raise error

        logger.debug(f"-> {request.describe()}")
        try:
            payload = self._transport.request(
                request.method, request.path, request.body, self._timeout_ms / 1000
            )
        except Exception as e:
            error = wrap_transport_error(
                e,
                address=self.address,
                timeout_ms=self._timeout_ms,
                light_id=request.light_id,
                operation=request.kind.value,
            )
            if isinstance(error, DeviceUnreachableError):
                self._connection_lost(error)
            self._report(request, error)
            if error is e:
                raise
            raise error from e

        if payload.get("ok", True) is False:
            error = DeviceRejectedError(
                parse_error_code(payload.get("code")),
                payload.get("message"),
                light_id=request.light_id,
            )
            self._report(request, error)
            raise error

        self._report(request, None)
        return payload

    def _report(self, request: DeviceRequest, error: Optional[DeviceLinkError]) -> None:
        if error is not None:
            logger.debug(f"<- {request.describe()} failed: {error.technical_message}")
        self._observers.notify("on_transaction", request, error is None, error)

    # =================================================================
    # Context manager
    # =================================================================

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
