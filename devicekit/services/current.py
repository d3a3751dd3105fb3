import logging
import platform
from typing import Dict, Optional, Type

from devicekit.services.device import CurrentDevice
from devicekit.services.platforms.darwin import MacDevice
from devicekit.services.platforms.generic import GenericDevice
from devicekit.services.platforms.linux import LinuxDevice
from devicekit.services.platforms.windows import WindowsDevice

log = logging.getLogger("devicekit.current")

_VARIANTS: Dict[str, Type[CurrentDevice]] = {
    "Linux": LinuxDevice,
    "Darwin": MacDevice,
    "Windows": WindowsDevice,
}


def device_class(system: Optional[str] = None) -> Type[CurrentDevice]:
    return _VARIANTS.get(system or platform.system(), GenericDevice)


def detect_device(system: Optional[str] = None, **kwargs) -> CurrentDevice:
    """Instantiate the variant for this host (or for `system`, as reported by platform.system())."""
    cls = device_class(system)
    device = cls(**kwargs)
    log.info("Detected %s for system=%s", cls.__name__, system or platform.system())
    return device
