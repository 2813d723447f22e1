"""Preset application across every known light."""

import logging
import time
from dataclasses import dataclass, field

from cuelight.exceptions import CuelightError, UnknownPresetError, collect_errors
from cuelight.models import CommandOutcome, LightTarget, Preset

from .coalescer import Command, CommandCoalescer
from .reconciler import StateReconciler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PresetResult:
    """Per-light outcome of applying a preset.

    There is no rollback: lights that were acked stay changed even when
    others failed.
    """

    preset: str
    acked: tuple[str, ...] = ()
    failed: dict[str, CuelightError] = field(default_factory=dict)
    superseded: tuple[str, ...] = ()
    unresolved: tuple[str, ...] = ()

    @property
    def fully_succeeded(self) -> bool:
        return not self.failed and not self.unresolved

    @property
    def partially_failed(self) -> bool:
        return bool(self.failed)

    def summary(self) -> str:
        if self.fully_succeeded:
            return f"Preset '{self.preset}' applied to {len(self.acked) + len(self.superseded)} light(s)"
        parts = [f"Preset '{self.preset}': {len(self.acked)} ok"]
        if self.failed:
            parts.append(f"{len(self.failed)} failed ({', '.join(self.failed)})")
        if self.unresolved:
            parts.append(f"{len(self.unresolved)} still pending")
        return ", ".join(parts)


class PresetEngine:
    """
    Applies named presets through the command coalescer.

    The catalog is fixed when the engine is built.

    Args:
        presets: Catalog, usually from AppConfig.presets
        reconciler: Source of the known lights
        coalescer: Carries each per-light command
    """

    def __init__(
        self,
        presets: list[Preset],
        reconciler: StateReconciler,
        coalescer: CommandCoalescer,
    ) -> None:
        self._catalog: dict[str, Preset] = {preset.name: preset for preset in presets}
        self._reconciler = reconciler
        self._coalescer = coalescer

    def names(self) -> list[str]:
        return list(self._catalog)

    def catalog(self) -> list[Preset]:
        return list(self._catalog.values())

    def get(self, name: str) -> Preset:
        try:
            return self._catalog[name]
        except KeyError:
            raise UnknownPresetError(name, self.names()) from None

    def expand(self, name: str) -> dict[str, LightTarget]:
        """
        Resolve a preset against the lights currently known.

        Raises:
            UnknownPresetError: If the preset does not exist
        """
        preset = self.get(name)
        snapshot = self._reconciler.snapshot()
        targets: dict[str, LightTarget] = {}
        for light in snapshot.lights:
            target = preset.resolve(light)
            if target is not None:
                targets[light.id] = target
        return targets

    def apply(self, name: str, timeout: float | None = None) -> PresetResult:
        """
        Submit every target of a preset and wait for the outcomes.

        Args:
            name: Preset name
            timeout: Overall wait bound in seconds (None waits for every command)

        Returns:
            PresetResult listing acked, failed, superseded and unresolved lights

        Raises:
            UnknownPresetError: If the preset does not exist
        """
        targets = self.expand(name)
        logger.info(f"Applying preset '{name}' to {len(targets)} light(s)")

        commands: dict[str, Command] = {}
        collector = collect_errors(f"apply preset {name}")
        for light_id, target in targets.items():
            with collector.try_operation(light_id):
                commands[light_id] = self._coalescer.submit(light_id, target)

        deadline = None if timeout is None else time.monotonic() + timeout
        acked: list[str] = []
        superseded: list[str] = []
        unresolved: list[str] = []

        for light_id, command in commands.items():
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            outcome = command.wait(remaining)
            if outcome is CommandOutcome.ACKED:
                acked.append(light_id)
            elif outcome is CommandOutcome.SUPERSEDED:
                superseded.append(light_id)
            elif outcome is CommandOutcome.FAILED:
                with collector.try_operation(light_id):
                    command.raise_for_outcome()
            else:
                unresolved.append(light_id)

        result = PresetResult(
            preset=name,
            acked=tuple(acked),
            failed=collector.errors_by_operation(),
            superseded=tuple(superseded),
            unresolved=tuple(unresolved),
        )
        if collector.has_errors:
            logger.warning(collector.get_summary())
        if unresolved:
            logger.warning(
                f"Preset '{name}': {len(unresolved)} command(s) unresolved after {timeout}s"
            )
        logger.info(result.summary())
        return result
