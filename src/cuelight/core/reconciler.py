"""Reconciled view of every light, merged from polls and command acks."""

import logging
import time
from collections.abc import Callable
from threading import Lock

from cuelight.model_manager import ObserverManager
from cuelight.models import DeviceReading, Light, LightTarget, LinkState, ModuleInfo, Snapshot
from cuelight.protocols import StateEvent, StateObserver

logger = logging.getLogger(__name__)


def light_sort_key(light_id: str) -> tuple[int, int, str]:
    """Order numeric ids numerically ("2" before "10"), then the rest by text."""
    if light_id.isdigit():
        return (0, int(light_id), light_id)
    return (1, 0, light_id)


class StateReconciler:
    """
    Single owner of the light record table.

    Merges two sources of truth:

    - Polls (``apply_poll``) report every light at once. A poll is skipped
      for a light while a command for it is pending, and whenever it is not
      newer than the light's last confirmation.
    - Command acks (``apply_ack``) confirm one light. Last writer wins by
      timestamp; an ack older than the record is discarded.

    Timestamps are monotonic clock readings: a poll carries the time its
    request was sent, an ack the time its reply arrived. Records are
    immutable models replaced wholesale under one lock, so ``snapshot()``
    never sees a light mid-update. Lights are only ever created from a poll.

    The table is flagged stale while the module is unreachable and the flag
    is cleared by the next successful poll. A poll that lands while the link
    is down still updates the records but leaves the flag set.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._lock = Lock()
        self._clock = clock
        self._lights: dict[str, Light] = {}
        self._module = ModuleInfo()
        # No reading yet, so nothing is known to be current
        self._stale = True
        # Set while an observed link is out of CONNECTED
        self._link_down = False
        # ObserverManager has its own lock; never notify while holding _lock
        self._observers = ObserverManager[StateObserver](observer_type_name="state")

    def register_observer(self, observer: StateObserver) -> None:
        self._observers.register(observer)

    def unregister_observer(self, observer: StateObserver) -> None:
        self._observers.unregister(observer)

    # =================================================================
    # Writes
    # =================================================================

    def apply_poll(
        self, reading: DeviceReading, polled_at: float, ip_address: str | None = None
    ) -> list[str]:
        """
        Merge a full device reading.

        Args:
            reading: The module's status reply
            polled_at: Monotonic time the poll request was sent
            ip_address: Address the module answered on

        Returns:
            Ids of lights that were created or changed
        """
        discovered: list[str] = []
        changed: list[str] = []

        with self._lock:
            for entry in reading.lights:
                current = self._lights.get(entry.id)
                if current is None:
                    self._lights[entry.id] = Light(
                        id=entry.id,
                        name=entry.name,
                        on=entry.on,
                        brightness=entry.brightness,
                        confirmed_at=polled_at,
                    )
                    discovered.append(entry.id)
                    continue

                if current.pending:
                    logger.debug(f"Poll skipped light {entry.id}: command pending")
                    continue

                if current.confirmed_at is not None and polled_at <= current.confirmed_at:
                    logger.debug(
                        f"Poll skipped light {entry.id}: reading {polled_at:.3f} "
                        f"not newer than {current.confirmed_at:.3f}"
                    )
                    continue

                updated = current.with_state(
                    entry.on, entry.brightness, polled_at, name=entry.name or current.name
                )
                if (updated.on, updated.brightness, updated.name) != (
                    current.on,
                    current.brightness,
                    current.name,
                ):
                    changed.append(entry.id)
                self._lights[entry.id] = updated

            self._module = reading.module_info(ip_address or self._module.ip_address)
            was_stale = self._stale
            if not self._link_down:
                self._stale = False
            still_stale = self._stale

        if discovered:
            logger.info(f"Discovered {len(discovered)} light(s): {', '.join(discovered)}")
            self._observers.notify("on_state_event", StateEvent.LIGHTS_DISCOVERED, discovered)
        if changed:
            self._observers.notify("on_state_event", StateEvent.LIGHTS_CHANGED, changed)
        if was_stale and not still_stale:
            logger.debug("Light state is current again")
            self._observers.notify("on_state_event", StateEvent.STALE_CHANGED, [])

        return discovered + changed

    def apply_ack(self, light_id: str, confirmed: LightTarget, acked_at: float) -> bool:
        """
        Apply a command acknowledgement for one light.

        Args:
            light_id: The light the command targeted
            confirmed: State the module confirmed
            acked_at: Monotonic time the ack was received

        Returns:
            True if the record was updated, False if the ack was discarded
        """
        with self._lock:
            current = self._lights.get(light_id)
            if current is None:
                logger.warning(f"Ack for unknown light {light_id} ignored")
                return False

            if current.confirmed_at is not None and acked_at < current.confirmed_at:
                logger.debug(
                    f"Discarded stale ack for light {light_id}: {acked_at:.3f} "
                    f"older than {current.confirmed_at:.3f}"
                )
                return False

            self._lights[light_id] = current.with_state(
                confirmed.on, confirmed.brightness, acked_at
            )
            did_change = (current.on, current.brightness) != (confirmed.on, confirmed.brightness)

        if did_change:
            self._observers.notify("on_state_event", StateEvent.LIGHTS_CHANGED, [light_id])
        return True

    def mark_pending(self, light_id: str, pending: bool) -> None:
        """Set or clear the pending marker of a light."""
        with self._lock:
            current = self._lights.get(light_id)
            if current is not None:
                self._lights[light_id] = current.with_pending(pending)

    def mark_stale(self) -> None:
        """Flag the table as possibly out of date."""
        with self._lock:
            was_stale = self._stale
            self._stale = True

        if not was_stale:
            logger.info("Light state is stale: lighting module unreachable")
            self._observers.notify("on_state_event", StateEvent.STALE_CHANGED, [])

    # =================================================================
    # Reads
    # =================================================================

    def snapshot(self) -> Snapshot:
        """Consistent copy of every light and the module identity."""
        with self._lock:
            lights = tuple(
                sorted(self._lights.values(), key=lambda light: light_sort_key(light.id))
            )
            module = self._module
            stale = self._stale

        return Snapshot(lights=lights, module=module, stale=stale, taken_at=self._clock())

    def get(self, light_id: str) -> Light | None:
        with self._lock:
            return self._lights.get(light_id)

    def known_light_ids(self) -> list[str]:
        with self._lock:
            return sorted(self._lights, key=light_sort_key)

    @property
    def is_stale(self) -> bool:
        with self._lock:
            return self._stale

    # =================================================================
    # LinkObserver
    # =================================================================

    def on_link_state_changed(self, old: LinkState, new: LinkState) -> None:
        with self._lock:
            self._link_down = new is not LinkState.CONNECTED
        if new is not LinkState.CONNECTED:
            self.mark_stale()

    def on_transaction(self, request, ok, error) -> None:
        pass
