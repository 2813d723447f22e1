"""Lighting module identity and status models."""

from pydantic import BaseModel, ConfigDict, Field

from .enums import LinkState
from .light import Light


class LightReading(BaseModel):
    """One light as the module reports it."""

    id: str
    name: str = ""
    on: bool = False
    brightness: int = Field(default=0, ge=0, le=100)


class ModuleInfo(BaseModel):
    """Identity of the lighting module, as last reported."""

    model_config = ConfigDict(frozen=True)

    module_id: str | None = Field(default=None, description="Module identifier, e.g. ESP32-BILLIARD-001")
    firmware_version: str | None = Field(default=None, description="Firmware version string")
    ip_address: str | None = Field(default=None, description="Address the module answers on")
    signal_strength: int | None = Field(default=None, description="Wi-Fi signal strength (dBm)")


class DeviceReading(BaseModel):
    """A full status poll of the module."""

    module_id: str | None = None
    firmware_version: str | None = None
    signal_strength: int | None = None
    lights: list[LightReading] = Field(default_factory=list)

    def module_info(self, ip_address: str | None = None) -> ModuleInfo:
        """Extract the module identity from the reading."""
        return ModuleInfo(
            module_id=self.module_id,
            firmware_version=self.firmware_version,
            ip_address=ip_address,
            signal_strength=self.signal_strength,
        )


class CommandStats(BaseModel):
    """Transaction counters. Values only ever grow within a process."""

    model_config = ConfigDict(frozen=True)

    total_commands: int = 0
    successful_commands: int = 0
    failed_commands: int = 0
    superseded_commands: int = 0
    total_polls: int = 0
    failed_polls: int = 0

    @property
    def success_rate(self) -> float:
        """Percentage of command transactions that succeeded."""
        if self.total_commands == 0:
            return 0.0
        return round(self.successful_commands / self.total_commands * 100, 1)


class ModuleStatus(BaseModel):
    """Everything the dashboard shows about the module."""

    module_id: str | None = None
    firmware_version: str | None = None
    ip_address: str | None = None
    signal_strength: int | None = None
    link_state: LinkState = LinkState.DISCONNECTED
    total_commands: int = 0
    successful_commands: int = 0
    failed_commands: int = 0
    superseded_commands: int = 0
    success_rate: float = 0.0
    uptime_seconds: float = 0.0
    uptime: str = "0m"

    @property
    def connected(self) -> bool:
        """Check if the module is currently connected."""
        return self.link_state is LinkState.CONNECTED


# Estimated draw of one lit table lamp
WATTS_PER_ACTIVE_LIGHT = 12


class Snapshot(BaseModel):
    """Read-only, internally consistent view of every light."""

    model_config = ConfigDict(frozen=True)

    lights: tuple[Light, ...] = ()
    module: ModuleInfo = Field(default_factory=ModuleInfo)
    stale: bool = Field(default=False, description="Module unreachable, values are last known")
    taken_at: float = Field(default=0.0, description="Monotonic time the snapshot was taken")

    def get(self, light_id: str) -> Light | None:
        """Find a light by id."""
        for light in self.lights:
            if light.id == light_id:
                return light
        return None

    @property
    def active_count(self) -> int:
        """Number of lights that are on."""
        return sum(1 for light in self.lights if light.on)

    @property
    def average_brightness(self) -> int:
        """Mean brightness over lit lights (0 when none are lit)."""
        lit = [light.brightness for light in self.lights if light.on]
        if not lit:
            return 0
        return round(sum(lit) / len(lit))

    @property
    def estimated_power_watts(self) -> int:
        """Rough power draw of the lit lights."""
        return self.active_count * WATTS_PER_ACTIVE_LIGHT
