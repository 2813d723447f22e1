"""Reconnect delay policy."""

import random


class ExponentialBackoff:
    """
    Exponential backoff with full jitter.

    Each delay is drawn uniformly from ``[0, min(cap, base * 2**attempt)]``,
    so a fleet of clients reconnecting after an outage spreads out instead
    of hammering the module in lockstep. There is no attempt limit.

    Args:
        base: Ceiling of the first delay (seconds)
        cap: Largest possible delay (seconds)
        rng: Random source, injectable for tests
    """

    def __init__(self, base: float = 0.5, cap: float = 10.0, rng: random.Random | None = None):
        if base <= 0 or cap <= 0:
            raise ValueError("backoff base and cap must be positive")
        self.base = base
        self.cap = max(cap, base)
        self._rng = rng or random.Random()
        self._attempt = 0

    @property
    def attempt(self) -> int:
        """Number of delays handed out since the last reset."""
        return self._attempt

    def peek_ceiling(self) -> float:
        """Upper bound of the next delay."""
        # Clamp the exponent so long outages cannot overflow the float
        exponent = min(self._attempt, 32)
        return min(self.cap, self.base * (2 ** exponent))

    def next_delay(self) -> float:
        """Draw the next delay and advance the attempt counter."""
        delay = self._rng.uniform(0, self.peek_ceiling())
        self._attempt += 1
        return delay

    def reset(self) -> None:
        """Start over after a successful connection."""
        self._attempt = 0
