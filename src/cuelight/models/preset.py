"""Named preset model and the built-in preset catalog."""

from pydantic import BaseModel, ConfigDict, Field

from .light import Light, LightTarget


class PresetTarget(BaseModel):
    """Target state inside a preset.

    A missing brightness keeps whatever brightness the light has, which is
    how "off" presets preserve the level for the next "on".
    """

    model_config = ConfigDict(frozen=True)

    on: bool = Field(description="Whether the light should be lit")
    brightness: int | None = Field(
        default=None, ge=0, le=100, description="Brightness percent, None keeps the current level"
    )

    def for_light(self, light: Light) -> LightTarget:
        """Concrete target for a light given its current record."""
        brightness = light.brightness if self.brightness is None else self.brightness
        return LightTarget(on=self.on, brightness=brightness)


class Preset(BaseModel):
    """A named mapping from lights to target states.

    A light's target is resolved in this order: an explicit entry in
    ``targets`` by id, then the first ``name_rules`` prefix matching its
    name (case-insensitive), then ``default``. Lights matching nothing are
    left untouched.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Preset name used to apply it")
    description: str = Field(default="", description="Short human description")
    targets: dict[str, PresetTarget] = Field(
        default_factory=dict, description="Targets keyed by light id"
    )
    name_rules: dict[str, PresetTarget] = Field(
        default_factory=dict, description="Targets keyed by light name prefix"
    )
    default: PresetTarget | None = Field(
        default=None, description="Target for every light not matched otherwise"
    )

    def resolve(self, light: Light) -> LightTarget | None:
        """Target for a light, or None if the preset leaves it alone."""
        rule = self.targets.get(light.id)
        if rule is None:
            lowered = light.name.lower()
            for prefix, target in self.name_rules.items():
                if lowered.startswith(prefix.lower()):
                    rule = target
                    break
        if rule is None:
            rule = self.default
        return rule.for_light(light) if rule is not None else None


def default_presets() -> list[Preset]:
    """The catalog shipped with a fresh configuration."""
    return [
        Preset(
            name="all_on",
            description="Turn on all lights",
            default=PresetTarget(on=True, brightness=100),
        ),
        Preset(
            name="all_off",
            description="Turn off all lights",
            default=PresetTarget(on=False),
        ),
        Preset(
            name="tables_only",
            description="Only table lights",
            name_rules={"table": PresetTarget(on=True, brightness=100)},
            default=PresetTarget(on=False),
        ),
        Preset(
            name="ambient",
            description="Soft ambient lighting",
            default=PresetTarget(on=True, brightness=30),
        ),
    ]
