"""
The device this process runs on.

`CurrentDevice` declares the full property set; each platform module under
`devicekit.services.platforms` provides one implementation and
`devicekit.services.current.detect_device()` picks it at startup.
Anything a platform cannot report comes back as None (or -1 for brightness).
"""
import logging
import platform
import subprocess
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import psutil

from devicekit.core.config import settings
from devicekit.services.battery import DeviceBattery
from devicekit.services.idle_switch import IdleTimerSwitch, make_idle_switch
from devicekit.services.types import ScreenOrientation, ThermalState

log = logging.getLogger("devicekit.device")

UNKNOWN = "Unknown"
UNKNOWN_IDENTIFIER = "UnknownIdentifier"


def run_command(args: Sequence[str], env: Optional[Dict[str, str]] = None) -> Optional[str]:
    """Run a short helper command and return its stripped stdout, or None on any failure."""
    try:
        proc = subprocess.run(list(args), capture_output=True, text=True, env=env,
                              timeout=settings.SWITCH_COMMAND_TIMEOUT_SEC, check=False)
    except (OSError, subprocess.SubprocessError):
        log.debug("command %s failed", args[0], exc_info=True)
        return None
    if proc.returncode != 0:
        return None
    return proc.stdout.strip()


class CurrentDevice(ABC):
    # `auto` idle timer backend for this platform
    idle_backend = "none"

    def __init__(self, idle_timer: Optional[IdleTimerSwitch] = None,
                 battery: Optional[DeviceBattery] = None,
                 volume_path: Optional[str] = None):
        self._idle_timer = idle_timer
        self._battery = battery
        self._battery_resolved = battery is not None
        self._volume_path = volume_path or settings.VOLUME_PATH or str(Path.home())
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.description}>"

    # ---- identity ----
    @property
    @abstractmethod
    def identifier(self) -> str:
        """Hardware identifier such as 'Raspberry Pi 4 Model B Rev 1.4' or 'MacBookPro18,3'."""

    @property
    @abstractmethod
    def model(self) -> str:
        ...

    @property
    @abstractmethod
    def system_name(self) -> str:
        ...

    @property
    @abstractmethod
    def system_version(self) -> str:
        ...

    @property
    def localized_model(self) -> str:
        return self.model

    @property
    def name(self) -> str:
        return platform.node() or UNKNOWN

    @property
    def description(self) -> str:
        return f"{self.model} ({self.identifier})"

    # ---- environment ----
    @property
    def is_virtual_machine(self) -> bool:
        return False

    @property
    def is_container(self) -> bool:
        return False

    @property
    def is_real_device(self) -> bool:
        return not self.is_virtual_machine and not self.is_container

    # ---- battery / power ----
    @property
    def battery(self) -> Optional[DeviceBattery]:
        """The battery if this host has one; resolved once per device."""
        with self._lock:
            if not self._battery_resolved:
                self._battery = DeviceBattery.current()
                self._battery_resolved = True
            return self._battery

    @property
    def idle_timer(self) -> IdleTimerSwitch:
        with self._lock:
            if self._idle_timer is None:
                self._idle_timer = make_idle_switch(default=self.idle_backend)
            return self._idle_timer

    # ---- screen ----
    @property
    def screen_brightness(self) -> int:
        """0-100, or -1 where the platform exposes no backlight."""
        return -1

    @property
    def screen_orientation(self) -> Optional[ScreenOrientation]:
        return None

    @property
    def is_zoomed(self) -> Optional[bool]:
        return None

    @property
    def is_kiosk_session_active(self) -> bool:
        """True when a browser is running in kiosk mode on this host."""
        try:
            for proc in psutil.process_iter(["cmdline"]):
                cmdline = proc.info.get("cmdline") or []
                if "--kiosk" in cmdline:
                    return True
        except psutil.Error:
            log.debug("process scan failed", exc_info=True)
        return False

    # ---- thermal ----
    @property
    def thermal_state(self) -> Optional[ThermalState]:
        return None

    # ---- storage ----
    @property
    def volume_path(self) -> str:
        return self._volume_path

    @property
    def volumes(self) -> Optional[Dict[str, int]]:
        try:
            usage = psutil.disk_usage(self._volume_path)
        except OSError:
            log.debug("disk_usage(%s) failed", self._volume_path, exc_info=True)
            return None
        return {"total": int(usage.total), "available": int(usage.free), "used": int(usage.used)}

    @property
    def volume_total_capacity(self) -> Optional[int]:
        vols = self.volumes
        return vols["total"] if vols else None

    @property
    def volume_available_capacity(self) -> Optional[int]:
        vols = self.volumes
        return vols["available"] if vols else None

    @property
    def volume_used_capacity(self) -> Optional[int]:
        vols = self.volumes
        return vols["used"] if vols else None

    # ---- export ----
    def snapshot(self) -> Dict[str, Any]:
        return {
            "identifier": self.identifier,
            "name": self.name,
            "model": self.model,
            "localized_model": self.localized_model,
            "system_name": self.system_name,
            "system_version": self.system_version,
            "description": self.description,
            "is_virtual_machine": self.is_virtual_machine,
            "is_container": self.is_container,
            "is_real_device": self.is_real_device,
            "has_battery": self.battery is not None,
            "screen_brightness": self.screen_brightness,
            "screen_orientation": self.screen_orientation,
            "is_zoomed": self.is_zoomed,
            "is_kiosk_session_active": self.is_kiosk_session_active,
            "thermal_state": self.thermal_state,
        }

    def close(self) -> None:
        with self._lock:
            battery, switch = self._battery, self._idle_timer
        if battery is not None:
            battery.stop()
        if switch is not None:
            switch.close()


def read_text(path: Path) -> Optional[str]:
    """File contents with NULs and surrounding whitespace stripped; None if unreadable or empty."""
    try:
        text = path.read_bytes().decode("utf-8", errors="ignore")
    except OSError:
        return None
    text = text.replace("\x00", "").strip()
    return text or None
