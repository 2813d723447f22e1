"""Enumerations for the lighting core."""

from enum import Enum


class LinkState(str, Enum):
    """Reachability of the lighting module."""

    DISCONNECTED = "disconnected"  # No connection, backing off before the next attempt
    CONNECTING = "connecting"  # Attempting to open the connection
    CONNECTED = "connected"  # Transactions are allowed
    RECONNECTING = "reconnecting"  # Lost the connection, first immediate attempt to restore it


class CommandOutcome(str, Enum):
    """Resolution of a single light command."""

    PENDING = "pending"  # Queued or in flight
    ACKED = "acked"  # Module confirmed the new state
    FAILED = "failed"  # Transaction failed, never retried
    SUPERSEDED = "superseded"  # Replaced by a newer command for the same light

    @property
    def is_final(self) -> bool:
        """Check if the outcome is a terminal one."""
        return self is not CommandOutcome.PENDING
