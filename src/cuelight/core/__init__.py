"""Lighting core: reconciliation, coalescing, presets, polling and status."""

from .coalescer import Command, CommandCoalescer
from .controller import LightingController
from .poller import PollCache, Poller
from .presets import PresetEngine, PresetResult
from .reconciler import StateReconciler
from .status import StatusAggregator

__all__ = [
    "Command",
    "CommandCoalescer",
    "LightingController",
    "PollCache",
    "Poller",
    "PresetEngine",
    "PresetResult",
    "StateReconciler",
    "StatusAggregator",
]
