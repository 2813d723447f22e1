"""Per-light command coalescing.

Staff tap buttons and drag sliders much faster than the module can apply
changes. The coalescer keeps, for every light, at most one command in flight
and one queued. A newer command replaces the queued one, and flags the
in-flight one so its reply is discarded. Only the latest intent per light
ever reaches the module after the current write completes, so a burst of N
changes costs at most two writes.

Commands for one light run strictly one after another; commands for
different lights run concurrently on a small worker pool.
"""

import logging
import threading
import time
import uuid
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from threading import Lock

from cuelight.exceptions import (
    CommandError,
    CommandSupersededError,
    CuelightError,
    DeviceLinkError,
    LightValidationError,
    UnknownLightError,
)
from cuelight.link import DeviceLink, DeviceRequest
from cuelight.model_manager import ObserverManager
from cuelight.models import CommandOutcome, LightTarget, validate_brightness
from cuelight.protocols import CommandEvent, CommandObserver

from .reconciler import StateReconciler

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Command:
    """A request to put one light into a target state."""

    light_id: str
    target: LightTarget
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    submitted_at: float = field(default_factory=time.monotonic)
    outcome: CommandOutcome = CommandOutcome.PENDING
    error: CuelightError | None = None
    confirmed: LightTarget | None = None
    _done: threading.Event = field(default_factory=threading.Event, repr=False)

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def wait(self, timeout: float | None = None) -> CommandOutcome:
        """Block until the command is resolved (or the timeout passes)."""
        self._done.wait(timeout)
        return self.outcome

    def raise_for_outcome(self) -> None:
        """Raise the failure or supersession of a resolved command."""
        if self.outcome is CommandOutcome.FAILED and self.error is not None:
            raise self.error
        if self.outcome is CommandOutcome.SUPERSEDED:
            raise CommandSupersededError(self.light_id, self.id)

    def _resolve(
        self,
        outcome: CommandOutcome,
        error: CuelightError | None = None,
        confirmed: LightTarget | None = None,
    ) -> None:
        self.outcome = outcome
        self.error = error
        self.confirmed = confirmed
        self._done.set()


class _LightSlot:
    """Commands outstanding for one light."""

    __slots__ = ("in_flight", "queued", "in_flight_superseded")

    def __init__(self) -> None:
        self.in_flight: Command | None = None
        self.queued: Command | None = None
        self.in_flight_superseded = False


class CommandCoalescer:
    """
    Accepts light commands and drives them through the device link.

    Args:
        link: Device link used for every write
        reconciler: Receives acks and pending markers
        max_workers: Upper bound on lights written concurrently
        clock: Monotonic clock used for ack timestamps
    """

    def __init__(
        self,
        link: DeviceLink,
        reconciler: StateReconciler,
        max_workers: int = 8,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._link = link
        self._reconciler = reconciler
        self._clock = clock
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="cuelight-cmd"
        )
        # Lock order: self._lock, then the reconciler's lock
        self._lock = Lock()
        self._slots: dict[str, _LightSlot] = {}
        self._closed = False
        self._observers = ObserverManager[CommandObserver](observer_type_name="command")

    def register_observer(self, observer: CommandObserver) -> None:
        self._observers.register(observer)

    def unregister_observer(self, observer: CommandObserver) -> None:
        self._observers.unregister(observer)

    # =================================================================
    # Submission
    # =================================================================

    def submit(self, light_id: str, target: LightTarget) -> Command:
        """
        Request a light state.

        Args:
            light_id: Light to change
            target: Complete requested state

        Returns:
            The command, resolved later to ACKED, FAILED or SUPERSEDED

        Raises:
            LightValidationError: If the target is invalid
            UnknownLightError: If the module never reported this light
            CommandError: If the coalescer has been shut down
        """
        if not isinstance(target, LightTarget):
            raise LightValidationError("target", target, "must be a LightTarget")
        validate_brightness(target.brightness)
        if self._reconciler.get(light_id) is None:
            raise UnknownLightError(light_id)

        command = Command(light_id=light_id, target=target, submitted_at=self._clock())
        replaced: Command | None = None
        dispatch = False

        with self._lock:
            if self._closed:
                raise CommandError(
                    "Lighting controller is stopped.",
                    technical_message=f"submit for {light_id} after shutdown",
                )

            slot = self._slots.get(light_id)
            if slot is None:
                slot = self._slots[light_id] = _LightSlot()

            if slot.in_flight is None:
                slot.in_flight = command
                dispatch = True
            else:
                if slot.queued is not None:
                    replaced = slot.queued
                    replaced._resolve(
                        CommandOutcome.SUPERSEDED,
                        CommandSupersededError(light_id, replaced.id),
                    )
                slot.in_flight_superseded = True
                slot.queued = command

            self._reconciler.mark_pending(light_id, True)

        logger.debug(
            f"Command {command.id[:8]} for light {light_id}: on={target.on} "
            f"brightness={target.brightness}{'' if dispatch else ' (queued)'}"
        )
        self._observers.notify("on_command_event", CommandEvent.SUBMITTED, command)
        if replaced is not None:
            logger.debug(f"Command {replaced.id[:8]} for light {light_id} superseded while queued")
            self._observers.notify("on_command_event", CommandEvent.SUPERSEDED, replaced)
        if dispatch:
            self._dispatch(command)
        return command

    def submit_change(
        self, light_id: str, on: bool | None = None, brightness: int | None = None
    ) -> Command:
        """
        Change part of a light's state.

        Unspecified fields come from the newest requested state for the light:
        the queued command, else the in-flight one, else the reconciled record.

        Raises:
            LightValidationError: If brightness is out of range
            UnknownLightError: If the module never reported this light
        """
        if brightness is not None:
            validate_brightness(brightness)

        with self._lock:
            slot = self._slots.get(light_id)
            base: LightTarget | None = None
            if slot is not None:
                latest = slot.queued or slot.in_flight
                base = latest.target if latest is not None else None

        if base is None:
            light = self._reconciler.get(light_id)
            if light is None:
                raise UnknownLightError(light_id)
            base = light.target

        target = LightTarget.of(
            on=base.on if on is None else on,
            brightness=base.brightness if brightness is None else brightness,
        )
        return self.submit(light_id, target)

    # =================================================================
    # Execution
    # =================================================================

    def _dispatch(self, command: Command) -> None:
        try:
            self._executor.submit(self._execute, command)
        except RuntimeError as e:
            error = CommandError(
                "Lighting controller is stopped.",
                technical_message=f"could not schedule command {command.id}: {e}",
            )
            self._finish(command, error=error, superseded=False)

    def _execute(self, command: Command) -> None:
        """Worker body: one transaction, then hand over to the next command."""
        reply: dict | None = None
        error: CuelightError | None = None
        try:
            reply = self._link.send(DeviceRequest.set_light(command.light_id, command.target))
        except DeviceLinkError as e:
            error = e
        except Exception as e:
            logger.error(f"Unexpected error sending command {command.id}: {e}", exc_info=True)
            error = DeviceLinkError(
                f"Lighting module error: {e}",
                technical_message=f"command {command.id} raised {e!r}",
                light_id=command.light_id,
            )
        acked_at = self._clock()

        with self._lock:
            superseded = self._slots[command.light_id].in_flight_superseded

        if error is None and not superseded:
            confirmed = self._confirmed_state(command, reply)
            self._reconciler.apply_ack(command.light_id, confirmed, acked_at)
            self._finish(command, confirmed=confirmed, superseded=False)
        else:
            self._finish(command, error=error, superseded=superseded)

    def _confirmed_state(self, command: Command, reply: dict | None) -> LightTarget:
        """State the module reports after the write, falling back to the target."""
        light = (reply or {}).get("light")
        if isinstance(light, dict):
            try:
                return LightTarget(
                    on=bool(light.get("on", command.target.on)),
                    brightness=int(light.get("brightness", command.target.brightness)),
                )
            except (TypeError, ValueError) as e:
                logger.warning(f"Ignoring malformed ack for light {command.light_id}: {e}")
        return command.target

    def _finish(
        self,
        command: Command,
        *,
        error: CuelightError | None = None,
        confirmed: LightTarget | None = None,
        superseded: bool,
    ) -> None:
        """Resolve a command that held the in-flight slot and start the queued one."""
        if superseded:
            outcome = CommandOutcome.SUPERSEDED
            event = CommandEvent.SUPERSEDED
            error = CommandSupersededError(command.light_id, command.id)
        elif error is not None:
            outcome = CommandOutcome.FAILED
            event = CommandEvent.FAILED
        else:
            outcome = CommandOutcome.ACKED
            event = CommandEvent.ACKED

        with self._lock:
            slot = self._slots[command.light_id]
            command._resolve(outcome, error, confirmed)
            next_command = slot.queued
            slot.in_flight = next_command
            slot.queued = None
            slot.in_flight_superseded = False
            if next_command is None:
                del self._slots[command.light_id]
                self._reconciler.mark_pending(command.light_id, False)

        if outcome is CommandOutcome.FAILED:
            logger.warning(
                f"Command {command.id[:8]} for light {command.light_id} failed: "
                f"{error.technical_message}"
            )
        else:
            logger.debug(f"Command {command.id[:8]} for light {command.light_id} {outcome.value}")
        self._observers.notify("on_command_event", event, command)

        if next_command is not None:
            self._dispatch(next_command)

    # =================================================================
    # Introspection and lifecycle
    # =================================================================

    def pending_count(self) -> int:
        """Number of unresolved commands across all lights."""
        with self._lock:
            return sum(
                (slot.in_flight is not None) + (slot.queued is not None)
                for slot in self._slots.values()
            )

    def has_pending(self, light_id: str) -> bool:
        with self._lock:
            return light_id in self._slots

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting commands. In-flight writes finish; queued ones fail."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._executor.shutdown(wait=wait)
        logger.debug("Command coalescer shut down")
