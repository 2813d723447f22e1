"""Light records and requested light targets."""

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cuelight.exceptions import LightValidationError

MIN_BRIGHTNESS = 0
MAX_BRIGHTNESS = 100


def validate_brightness(value: object) -> int:
    """
    Check a brightness value before it reaches the module.

    Args:
        value: Candidate brightness (percent)

    Returns:
        The brightness as an int

    Raises:
        LightValidationError: If the value is not a whole number in 0..100
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise LightValidationError("brightness", value, "must be a whole number")
    if not MIN_BRIGHTNESS <= value <= MAX_BRIGHTNESS:
        raise LightValidationError(
            "brightness", value, f"must be between {MIN_BRIGHTNESS} and {MAX_BRIGHTNESS}"
        )
    return value


class LightTarget(BaseModel):
    """Requested state for one light.

    Brightness is kept when a light is switched off so that switching it back
    on restores the previous level.
    """

    model_config = ConfigDict(frozen=True)

    on: bool = Field(description="Whether the light should be lit")
    brightness: int = Field(
        default=MAX_BRIGHTNESS,
        ge=MIN_BRIGHTNESS,
        le=MAX_BRIGHTNESS,
        description="Brightness percent (0-100)",
    )

    @classmethod
    def of(cls, on: bool, brightness: int = MAX_BRIGHTNESS) -> "LightTarget":
        """Build a target, raising LightValidationError instead of pydantic errors."""
        validate_brightness(brightness)
        try:
            return cls(on=on, brightness=brightness)
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(loc) for loc in first.get("loc", ("unknown",)))
            raise LightValidationError(field, first.get("input"), first.get("msg", "invalid")) from e

    def to_wire(self) -> dict:
        """Body sent to the module for this target."""
        return {"on": self.on, "brightness": self.brightness}


class Light(BaseModel):
    """Last known state of one light.

    Records are immutable; the reconciler replaces them wholesale so readers
    never see a half-applied update.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Stable identifier assigned by the module")
    name: str = Field(default="", description="Display name reported by the module")
    on: bool = Field(default=False, description="Whether the light is lit")
    brightness: int = Field(
        default=0, ge=MIN_BRIGHTNESS, le=MAX_BRIGHTNESS, description="Brightness percent (0-100)"
    )
    confirmed_at: float | None = Field(
        default=None, description="Monotonic time of the reading or ack this record reflects"
    )
    pending: bool = Field(default=False, description="A command for this light is unresolved")

    @property
    def status(self) -> str:
        """Dashboard status string ('on' or 'off')."""
        return "on" if self.on else "off"

    @property
    def target(self) -> LightTarget:
        """Current state expressed as a target."""
        return LightTarget(on=self.on, brightness=self.brightness)

    def with_state(self, on: bool, brightness: int, confirmed_at: float,
                   name: str | None = None) -> "Light":
        """Return a copy carrying a newly confirmed state."""
        return self.model_copy(
            update={
                "on": on,
                "brightness": brightness,
                "confirmed_at": confirmed_at,
                "name": self.name if name is None else name,
            }
        )

    def with_pending(self, pending: bool) -> "Light":
        """Return a copy with the pending marker set or cleared."""
        if self.pending == pending:
            return self
        return self.model_copy(update={"pending": pending})
