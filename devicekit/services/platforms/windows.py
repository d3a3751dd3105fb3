import platform
from functools import cached_property
from typing import Optional

from devicekit.services.device import CurrentDevice, UNKNOWN_IDENTIFIER

_BIOS_SUBKEY = r"HARDWARE\DESCRIPTION\System\BIOS"
_VM_MARKERS = ("vmware", "virtualbox", "innotek", "qemu", "xen", "parallels", "virtual machine")


class WindowsDevice(CurrentDevice):
    """Windows hosts; hardware identity comes from the BIOS registry key."""
    idle_backend = "windows"

    def __init__(self, winreg_module=None, **kwargs):
        super().__init__(**kwargs)
        self._winreg = winreg_module

    def _bios_value(self, name: str) -> Optional[str]:
        winreg = self._winreg
        if winreg is None:
            try:
                import winreg  # type: ignore[no-redef]
            except ImportError:
                return None
        try:
            key = winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE, _BIOS_SUBKEY, 0, winreg.KEY_READ)
        except OSError:
            return None
        try:
            value, _ = winreg.QueryValueEx(key, name)
        except OSError:
            return None
        finally:
            winreg.CloseKey(key)
        value = str(value).strip()
        return value or None

    @cached_property
    def identifier(self) -> str:
        return self._bios_value("SystemProductName") or platform.machine() or UNKNOWN_IDENTIFIER

    @property
    def model(self) -> str:
        return "PC"

    @property
    def system_name(self) -> str:
        return "Windows"

    @property
    def system_version(self) -> str:
        return platform.version() or "0.0"

    @property
    def is_virtual_machine(self) -> bool:
        vendor = " ".join(filter(None, (
            self._bios_value("SystemManufacturer"),
            self._bios_value("SystemProductName"),
        ))).lower()
        return any(marker in vendor for marker in _VM_MARKERS)
