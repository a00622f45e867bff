"""
Device configuration bag.

Numeric operating parameters persisted per device. Defaults describe the
placeholder record synthesized when no device has been saved yet.
"""

from pydantic import BaseModel, ConfigDict, Field


NULL_PORT = "null"


class DeviceConfig(BaseModel):
    """Persisted configuration for one device, keyed by its port."""

    model_config = ConfigDict(extra="ignore")

    port: str = Field(default=NULL_PORT, min_length=1, description="Connection identity, used as registry key")
    name: str = Field(default="Default", description="Display name")

    jog_x_speed: float = Field(default=2000, gt=0, description="X axis jog speed (mm/min)")
    jog_y_speed: float = Field(default=2000, gt=0, description="Y axis jog speed (mm/min)")
    jog_z_speed: float = Field(default=1000, gt=0, description="Z axis jog speed (mm/min)")
    jog_e_speed: float = Field(default=120, gt=0, description="Extruder jog speed (mm/min)")

    temp_e: float = Field(default=200, ge=0, description="Extruder temperature setpoint (C)")
    temp_b: float = Field(default=60, ge=0, description="Bed temperature setpoint (C)")

    speed_ratio: float = Field(default=1.0, gt=0, description="Feed rate multiplier")
    e_ratio: float = Field(default=1.0, gt=0, description="Extrusion multiplier")

    offset_x: float = Field(default=0, description="X offset (mm)")
    offset_y: float = Field(default=0, description="Y offset (mm)")
    offset_z: float = Field(default=0, description="Z offset (mm)")


def default_device_config() -> DeviceConfig:
    """Placeholder record for generic devices that cannot be persisted on their own."""
    return DeviceConfig()
