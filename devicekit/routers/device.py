import logging
from typing import Annotated
from fastapi import APIRouter, Depends
from devicekit.models.device import DeviceInfo, BatteryStatus, ThermalStatus, VolumeInfo
from devicekit.exceptions.device import NoBatteryPresentError, PropertyUnavailableError
from devicekit.services.device import CurrentDevice
from devicekit.dependencies import get_current_device

router = APIRouter(tags=["device"])
log = logging.getLogger("devicekit.router.device")

# Type alias for device dependency
DeviceDep = Annotated[CurrentDevice, Depends(get_current_device)]

@router.get("", response_model=DeviceInfo)
def device_info(device: DeviceDep):
    """Identity, environment, screen and thermal properties of this host"""
    info = DeviceInfo(**device.snapshot())
    log.debug("device -> %s", info.description)
    return info

@router.get("/battery", response_model=BatteryStatus)
def battery_status(device: DeviceDep):
    battery = device.battery
    if battery is None:
        raise NoBatteryPresentError(context={"device": device.description})
    reading = battery.snapshot()
    if reading is None:
        return BatteryStatus(level=None, is_plugged_in=False, seconds_left=None)
    return BatteryStatus(level=reading.level, is_plugged_in=reading.is_plugged_in, seconds_left=reading.seconds_left)

@router.get("/thermal", response_model=ThermalStatus)
def thermal_status(device: DeviceDep):
    return ThermalStatus(thermal_state=device.thermal_state)

@router.get("/volumes", response_model=VolumeInfo)
def volume_info(device: DeviceDep):
    vols = device.volumes
    if vols is None:
        raise PropertyUnavailableError("volumes", context={"path": device.volume_path})
    return VolumeInfo(path=device.volume_path, **vols)
