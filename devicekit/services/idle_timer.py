import logging
import threading
from enum import Enum
from typing import Any, Dict, Optional

from devicekit.exceptions.device import DuplicateActivationError, NoBatteryPresentError
from devicekit.services.battery import DeviceBattery
from devicekit.services.device import CurrentDevice
from devicekit.services.idle_switch import IdleTimerSwitch
from devicekit.services.types import ActivationResult

log = logging.getLogger("devicekit.idle_timer")


class PolicyState(str, Enum):
    inactive = "inactive"
    active = "active"


class IdleTimerPolicy:
    """
    Keeps the system idle timer in sync with charging state and caller intent.

    - `preference` is the baseline: True keeps the screen awake even on battery.
    - While auto-management is active, being plugged in always disables the idle timer;
      unplugging restores the preference.
    - The last applied value is remembered so repeated notifications do not hit the switch again.

    Battery callbacks arrive on the battery monitor thread, so all state sits behind one lock.
    """

    def __init__(self, switch: IdleTimerSwitch, battery: Optional[DeviceBattery] = None,
                 preference: bool = False):
        self._switch = switch
        self._battery = battery
        self._preference = bool(preference)
        self._enforced: Optional[bool] = None
        self._state = PolicyState.inactive
        self._handle: Optional[int] = None
        self._lock = threading.RLock()

    @classmethod
    def for_device(cls, device: CurrentDevice, preference: bool = False) -> "IdleTimerPolicy":
        return cls(device.idle_timer, battery=device.battery, preference=preference)

    # ---- state ----
    @property
    def preference(self) -> bool:
        return self._preference

    @property
    def enforced(self) -> Optional[bool]:
        """Last value applied to the switch; None until something has been applied."""
        return self._enforced

    @property
    def state(self) -> PolicyState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is PolicyState.active

    def _target(self, plugged_in: bool) -> bool:
        if self.is_active and plugged_in:
            return True
        return self._preference

    def _apply(self, disabled: bool) -> None:
        if disabled == self._enforced:
            log.debug("idle timer already %s; skipping", "disabled" if disabled else "enabled")
            return
        self._switch.set_idle_timer_disabled(disabled)
        self._enforced = disabled

    def _plugged_in(self) -> bool:
        return bool(self._battery is not None and self._battery.is_plugged_in)

    # ---- API ----
    def set_preference(self, disabled: bool) -> None:
        """Set the baseline and apply it now, unless charging currently overrides it."""
        with self._lock:
            self._preference = bool(disabled)
            plugged = self._plugged_in() if self.is_active else False
            log.info("idle timer preference -> disabled=%s (active=%s plugged=%s)",
                     self._preference, self.is_active, plugged)
            self._apply(self._target(plugged))

    def enable_auto_management(self) -> ActivationResult:
        """
        One-shot: disable the idle timer whenever the device is plugged in.
        A repeated call or a device without a battery changes nothing and is only reported.
        """
        try:
            self._activate()
        except DuplicateActivationError as e:
            log.warning("%s. Call enable_auto_management() once, at startup.", e.message)
            return ActivationResult.duplicate_activation
        except NoBatteryPresentError as e:
            log.debug("%s; idle timer auto-management skipped", e.message)
            return ActivationResult.no_battery_present
        return ActivationResult.activated

    def _activate(self) -> None:
        with self._lock:
            if self.is_active:
                raise DuplicateActivationError(context={"handle": self._handle})
            battery = self._battery
            if battery is None:
                raise NoBatteryPresentError()

            self._state = PolicyState.active
            plugged = battery.is_plugged_in
            self._apply(self._target(plugged))
            self._handle = battery.add_monitor(self._on_power_change)
            # the monitor baseline may already differ from the read above
            self._on_power_change(battery)
            log.info("idle timer auto-management active (plugged=%s, handle=%s)", plugged, self._handle)

    def _on_power_change(self, battery: DeviceBattery) -> None:
        with self._lock:
            if not self.is_active:
                return
            self._apply(self._target(battery.is_plugged_in))

    def disable_auto_management(self) -> bool:
        """Remove the battery subscription and fall back to the plain preference."""
        with self._lock:
            if not self.is_active:
                return False
            self._state = PolicyState.inactive
            handle, self._handle = self._handle, None

        # outside the lock: removing the last monitor joins the monitor thread
        if handle is not None and self._battery is not None:
            self._battery.remove_monitor(handle)

        with self._lock:
            self._apply(self._preference)
        log.info("idle timer auto-management stopped")
        return True

    def status(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "preference": self._preference,
                "enforced": self._enforced,
                "auto_management": self.is_active,
                "has_battery": self._battery is not None,
                "plugged_in": self._battery.is_plugged_in if self._battery is not None else None,
                "backend": self._switch.backend,
            }
