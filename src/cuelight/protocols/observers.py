"""Observer protocol definitions for lighting core events.

This module contains observer protocols for the domain:
- Link observers: React to reachability changes and completed transactions
- State observers: React to changes of the reconciled light table
- Command observers: React to command lifecycle events
"""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from cuelight.core.coalescer import Command
    from cuelight.exceptions import DeviceLinkError
    from cuelight.link.request import DeviceRequest
    from cuelight.models import LinkState

from .events import CommandEvent, StateEvent


@runtime_checkable
class LinkObserver(Protocol):
    """
    Observer that receives device link events.

    Both callbacks run on whichever thread drove the link (the monitor
    thread, a command worker or the poll thread), so implementations must be
    thread-safe and must not block.
    """

    def on_link_state_changed(self, old: "LinkState", new: "LinkState") -> None:
        """
        Handle a reachability transition.

        Args:
            old: State before the transition
            new: State after the transition
        """
        ...

    def on_transaction(
        self, request: "DeviceRequest", ok: bool, error: "DeviceLinkError | None"
    ) -> None:
        """
        Handle a completed transaction.

        Called exactly once per DeviceLink.send() call, whether the
        transaction succeeded, failed or was refused because the link was
        down.

        Args:
            request: The request that was sent (or refused)
            ok: True if the module acknowledged it
            error: The failure, when ok is False
        """
        ...


@runtime_checkable
class StateObserver(Protocol):
    """Observer that receives reconciled light table changes."""

    def on_state_event(self, event: StateEvent, light_ids: list[str]) -> None:
        """
        Handle a light table change.

        Args:
            event: The type of state event
            light_ids: Lights affected (empty for STALE_CHANGED)

        Note:
            Called after the reconciler lock is released. Read the new state
            through a snapshot rather than caching arguments.
        """
        ...


@runtime_checkable
class CommandObserver(Protocol):
    """Observer that receives command lifecycle events."""

    def on_command_event(self, event: CommandEvent, command: "Command") -> None:
        """
        Handle a command lifecycle event.

        Args:
            event: The type of command event
            command: The command concerned (already resolved for final events)
        """
        ...
