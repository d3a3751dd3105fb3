from typing import Optional
from pydantic import BaseModel, Field

from devicekit.services.types import ActivationResult, ScreenOrientation, ThermalState

class DeviceInfo(BaseModel):
    identifier: str
    name: str
    model: str
    localized_model: str
    system_name: str
    system_version: str
    description: str
    is_virtual_machine: bool = False
    is_container: bool = False
    is_real_device: bool = True
    has_battery: bool = False
    screen_brightness: int = Field(-1, ge=-1, le=100, description="0-100, -1 when not supported")
    screen_orientation: Optional[ScreenOrientation] = None
    is_zoomed: Optional[bool] = None
    is_kiosk_session_active: bool = False
    thermal_state: Optional[ThermalState] = None

class BatteryStatus(BaseModel):
    level: Optional[float] = Field(None, ge=0, le=100)
    is_plugged_in: bool
    seconds_left: Optional[int] = Field(None, description="Estimated seconds until empty; null when charging or unknown")

class ThermalStatus(BaseModel):
    thermal_state: Optional[ThermalState] = Field(None, description="null when the platform does not report it")

class VolumeInfo(BaseModel):
    path: str
    total: int = Field(..., ge=0, description="bytes")
    available: int = Field(..., ge=0, description="bytes")
    used: int = Field(..., ge=0, description="bytes")

class IdleTimerStatus(BaseModel):
    preference: bool
    enforced: Optional[bool] = Field(None, description="Last value applied to the system switch")
    auto_management: bool
    has_battery: bool
    plugged_in: Optional[bool] = None
    backend: str

class IdleTimerPreferenceRequest(BaseModel):
    disabled: bool

class ActivationResponse(BaseModel):
    ok: bool
    result: ActivationResult
    status: IdleTimerStatus

class OperationResult(BaseModel):
    ok: bool
    message: Optional[str] = None
