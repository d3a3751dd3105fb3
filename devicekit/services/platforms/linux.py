import logging
import os
import platform
import re
from functools import cached_property
from pathlib import Path
from typing import Callable, Dict, Optional, Sequence

import psutil

from devicekit.core.config import settings
from devicekit.services.device import CurrentDevice, UNKNOWN, UNKNOWN_IDENTIFIER, read_text, run_command
from devicekit.services.types import ScreenOrientation, ThermalState

log = logging.getLogger("devicekit.platform.linux")

_VM_MARKERS = ("qemu", "kvm", "vmware", "virtualbox", "innotek", "xen", "bochs", "parallels")
_CONTAINER_MARKERS = ("docker", "kubepods", "lxc", "containerd", "libpod")

# SMBIOS chassis types (DMTF DSP0134, 7.4.1)
_CHASSIS = {
    "3": "Desktop", "4": "Desktop", "5": "Desktop", "6": "Desktop", "7": "Desktop",
    "13": "All-in-One", "15": "Desktop", "16": "Desktop",
    "8": "Laptop", "9": "Laptop", "10": "Laptop", "14": "Laptop", "31": "Laptop", "32": "Laptop",
    "11": "Handheld", "30": "Tablet",
    "17": "Server", "23": "Server", "28": "Server",
    "35": "Mini PC", "36": "Stick PC",
}

# Raspberry Pi firmware soft-throttle / hard limit, used when a sensor reports no trip points
_DEFAULT_HIGH_C = 80.0
_DEFAULT_CRITICAL_C = 85.0
# band below `high` reported as `fair`
_FAIR_BAND_C = 10.0

_GEOMETRY = re.compile(r"\bconnected(?: primary)? (\d+)x(\d+)\+\d+\+\d+")


def parse_os_release(text: Optional[str]) -> Dict[str, str]:
    values: Dict[str, str] = {}
    for line in (text or "").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key.strip()] = value.strip().strip("'\"")
    return values


def thermal_level(current: float, high: Optional[float], critical: Optional[float]) -> ThermalState:
    crit = critical or max(_DEFAULT_CRITICAL_C, (high or 0) + 5.0)
    hi = high or min(_DEFAULT_HIGH_C, crit - 5.0)
    if current >= crit:
        return ThermalState.critical
    if current >= hi:
        return ThermalState.serious
    if current >= hi - _FAIR_BAND_C:
        return ThermalState.fair
    return ThermalState.nominal


_SEVERITY = [ThermalState.nominal, ThermalState.fair, ThermalState.serious, ThermalState.critical]


def _read_temperatures():
    reader = getattr(psutil, "sensors_temperatures", None)
    if reader is None:
        return {}
    try:
        return reader() or {}
    except Exception:
        log.debug("sensors_temperatures() failed", exc_info=True)
        return {}


class LinuxDevice(CurrentDevice):
    """
    Linux hosts, Raspberry Pi first:
      - identifier from the device tree (Pi) or DMI product name
      - OS name/version from os-release
      - backlight brightness from sysfs, orientation from xrandr
      - thermal state from psutil temperature sensors
    """
    idle_backend = "xset"

    def __init__(self, root: Path = Path("/"),
                 runner: Callable[[Sequence[str], Optional[Dict[str, str]]], Optional[str]] = run_command,
                 **kwargs):
        super().__init__(**kwargs)
        self._root = root
        self._run = runner

    def _path(self, rel: str) -> Path:
        return self._root / rel

    @cached_property
    def _os_release(self) -> Dict[str, str]:
        text = read_text(self._path("etc/os-release")) or read_text(self._path("usr/lib/os-release"))
        return parse_os_release(text)

    @cached_property
    def identifier(self) -> str:
        model = read_text(self._path("proc/device-tree/model"))
        if model:
            return model
        product = read_text(self._path("sys/class/dmi/id/product_name"))
        if product:
            return product
        return platform.machine() or UNKNOWN_IDENTIFIER

    @property
    def is_raspberry_pi(self) -> bool:
        return self.identifier.lower().startswith("raspberry pi")

    @property
    def model(self) -> str:
        if self.is_raspberry_pi:
            return "Raspberry Pi"
        chassis = read_text(self._path("sys/class/dmi/id/chassis_type"))
        return _CHASSIS.get(chassis or "", UNKNOWN)

    @property
    def system_name(self) -> str:
        return self._os_release.get("NAME") or "Linux"

    @property
    def system_version(self) -> str:
        return self._os_release.get("VERSION_ID") or platform.release() or "0.0"

    @property
    def is_virtual_machine(self) -> bool:
        for rel in ("sys/class/dmi/id/sys_vendor", "sys/class/dmi/id/product_name"):
            value = (read_text(self._path(rel)) or "").lower()
            if any(marker in value for marker in _VM_MARKERS):
                return True
        cpuinfo = read_text(self._path("proc/cpuinfo")) or ""
        return any(line.startswith("flags") and " hypervisor" in line for line in cpuinfo.splitlines())

    @property
    def is_container(self) -> bool:
        if self._path(".dockerenv").exists() or self._path("run/.containerenv").exists():
            return True
        cgroup = (read_text(self._path("proc/1/cgroup")) or "").lower()
        return any(marker in cgroup for marker in _CONTAINER_MARKERS)

    @property
    def screen_brightness(self) -> int:
        backlights = self._path("sys/class/backlight")
        try:
            devices = sorted(backlights.iterdir())
        except OSError:
            return -1
        for dev in devices:
            current = read_text(dev / "brightness")
            maximum = read_text(dev / "max_brightness")
            try:
                cur, mx = int(current or ""), int(maximum or "")
            except ValueError:
                continue
            if mx > 0:
                return max(0, min(100, round(cur * 100 / mx)))
        return -1

    @property
    def screen_orientation(self) -> Optional[ScreenOrientation]:
        env = {**os.environ, "DISPLAY": os.environ.get("DISPLAY") or settings.XSET_DISPLAY}
        output = self._run(["xrandr", "--query"], env)
        if not output:
            return None
        match = _GEOMETRY.search(output)
        if not match:
            return None
        width, height = int(match.group(1)), int(match.group(2))
        return "landscape" if width > height else "portrait"

    @property
    def thermal_state(self) -> Optional[ThermalState]:
        worst: Optional[ThermalState] = None
        for entries in _read_temperatures().values():
            for entry in entries:
                if entry.current is None:
                    continue
                level = thermal_level(float(entry.current), entry.high, entry.critical)
                if worst is None or _SEVERITY.index(level) > _SEVERITY.index(worst):
                    worst = level
        return worst
