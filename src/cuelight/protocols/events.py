"""Domain events for observer pattern.

This module defines events that can occur within the lighting core:
- State events: The reconciled light table changed
- Command events: A light command moved through its lifecycle
"""

from enum import Enum


class StateEvent(Enum):
    """Events from the state reconciler."""

    LIGHTS_DISCOVERED = "lights_discovered"  # A poll reported lights not seen before
    LIGHTS_CHANGED = "lights_changed"        # Confirmed state of one or more lights changed
    STALE_CHANGED = "stale_changed"          # Staleness flag was set or cleared


class CommandEvent(Enum):
    """Events from the command coalescer."""

    SUBMITTED = "submitted"    # Command accepted for a light
    ACKED = "acked"            # Module confirmed the command
    FAILED = "failed"          # Transaction failed, command dropped
    SUPERSEDED = "superseded"  # A newer command for the same light replaced it
