import platform
import re
from functools import cached_property
from typing import Callable, Dict, Optional, Sequence

from devicekit.services.device import CurrentDevice, UNKNOWN_IDENTIFIER, run_command
from devicekit.services.types import ThermalState

_SPEED_LIMIT = re.compile(r"CPU_Speed_Limit\s*=\s*(\d+)")


def thermal_from_pmset(output: Optional[str]) -> Optional[ThermalState]:
    """Map `pmset -g therm` CPU_Speed_Limit (percent) onto a thermal state."""
    if not output:
        return None
    match = _SPEED_LIMIT.search(output)
    if not match:
        if "No thermal warning level has been recorded" in output:
            return ThermalState.nominal
        return None
    limit = int(match.group(1))
    if limit >= 100:
        return ThermalState.nominal
    if limit >= 80:
        return ThermalState.fair
    if limit >= 50:
        return ThermalState.serious
    return ThermalState.critical


class MacDevice(CurrentDevice):
    idle_backend = "caffeinate"

    def __init__(self, runner: Callable[[Sequence[str], Optional[Dict[str, str]]], Optional[str]] = run_command,
                 **kwargs):
        super().__init__(**kwargs)
        self._run = runner

    def _sysctl(self, key: str) -> Optional[str]:
        return self._run(["sysctl", "-n", key], None) or None

    @cached_property
    def identifier(self) -> str:
        return self._sysctl("hw.model") or UNKNOWN_IDENTIFIER

    @property
    def model(self) -> str:
        return "Mac"

    @property
    def system_name(self) -> str:
        return "macOS"

    @property
    def system_version(self) -> str:
        return platform.mac_ver()[0] or platform.release() or "0.0"

    @property
    def is_virtual_machine(self) -> bool:
        return self._sysctl("kern.hv_vmm_present") == "1"

    @property
    def thermal_state(self) -> Optional[ThermalState]:
        return thermal_from_pmset(self._run(["pmset", "-g", "therm"], None))
