"""Transaction counters and module uptime."""

import logging
import time
from collections.abc import Callable
from threading import Lock

from cuelight.models import CommandStats, LinkState, ModuleInfo, ModuleStatus
from cuelight.protocols import CommandEvent
from cuelight.utils import format_uptime

logger = logging.getLogger(__name__)


class StatusAggregator:
    """
    Counts every device transaction and tracks module uptime.

    Observes the device link (one ``on_transaction`` per transaction) and the
    command coalescer (supersessions). Counters only grow; they start at zero
    with the process. For commands, ``total == succeeded + failed`` always
    holds. Superseded commands are counted on their own and are not failures.

    Uptime runs from the first time the module became connected and is not
    reset by later reconnects.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._lock = Lock()
        self._clock = clock
        self._total = 0
        self._succeeded = 0
        self._failed = 0
        self._superseded = 0
        self._polls = 0
        self._failed_polls = 0
        self._first_connected_at: float | None = None

    # =================================================================
    # LinkObserver
    # =================================================================

    def on_transaction(self, request, ok: bool, error) -> None:
        with self._lock:
            if request.is_command:
                self._total += 1
                if ok:
                    self._succeeded += 1
                else:
                    self._failed += 1
            else:
                self._polls += 1
                if not ok:
                    self._failed_polls += 1

    def on_link_state_changed(self, old: LinkState, new: LinkState) -> None:
        if new is not LinkState.CONNECTED:
            return
        with self._lock:
            if self._first_connected_at is None:
                self._first_connected_at = self._clock()
                logger.debug("Module uptime clock started")

    # =================================================================
    # CommandObserver
    # =================================================================

    def on_command_event(self, event: CommandEvent, command) -> None:
        if event is CommandEvent.SUPERSEDED:
            with self._lock:
                self._superseded += 1

    # =================================================================
    # Reads
    # =================================================================

    def stats(self) -> CommandStats:
        with self._lock:
            return CommandStats(
                total_commands=self._total,
                successful_commands=self._succeeded,
                failed_commands=self._failed,
                superseded_commands=self._superseded,
                total_polls=self._polls,
                failed_polls=self._failed_polls,
            )

    def uptime_seconds(self) -> float:
        with self._lock:
            if self._first_connected_at is None:
                return 0.0
            return max(0.0, self._clock() - self._first_connected_at)

    def module_status(self, info: ModuleInfo, link_state: LinkState) -> ModuleStatus:
        """Combine module identity, link state and counters for display."""
        stats = self.stats()
        uptime = self.uptime_seconds()
        return ModuleStatus(
            module_id=info.module_id,
            firmware_version=info.firmware_version,
            ip_address=info.ip_address,
            signal_strength=info.signal_strength,
            link_state=link_state,
            total_commands=stats.total_commands,
            successful_commands=stats.successful_commands,
            failed_commands=stats.failed_commands,
            superseded_commands=stats.superseded_commands,
            success_rate=stats.success_rate,
            uptime_seconds=uptime,
            uptime=format_uptime(uptime),
        )
