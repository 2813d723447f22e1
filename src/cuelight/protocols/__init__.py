"""Protocol definitions for lighting core observers and events."""

from .events import CommandEvent, StateEvent
from .observers import CommandObserver, LinkObserver, StateObserver

__all__ = [
    # Events
    "CommandEvent",
    "StateEvent",
    # Observers
    "CommandObserver",
    "LinkObserver",
    "StateObserver",
]
