import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import psutil

from devicekit.core.config import settings

log = logging.getLogger("devicekit.battery")


@dataclass(frozen=True)
class BatteryReading:
    level: float
    is_plugged_in: bool
    seconds_left: Optional[int] = None


def read_sensor() -> Optional[BatteryReading]:
    """One psutil battery read; None when there is no battery or it cannot be queried."""
    try:
        raw = psutil.sensors_battery()
    except Exception:
        log.debug("sensors_battery() failed", exc_info=True)
        return None
    if raw is None:
        return None

    secs = raw.secsleft
    if secs in (psutil.POWER_TIME_UNLIMITED, psutil.POWER_TIME_UNKNOWN) or secs is None or secs < 0:
        secs = None
    # power_plugged is None when psutil cannot tell; report unplugged
    return BatteryReading(level=float(raw.percent), is_plugged_in=bool(raw.power_plugged), seconds_left=secs)


BatteryMonitor = Callable[["DeviceBattery"], None]


class DeviceBattery:
    """
    Battery signal source backed by psutil:
      - live reads (level, is_plugged_in, seconds_left)
      - monitors registered with add_monitor() and called on every reading change
      - daemon polling thread running only while at least one monitor is registered

    psutil has no change notifications, so monitors run on the polling thread.
    """

    def __init__(self, reader: Callable[[], Optional[BatteryReading]] = read_sensor,
                 poll_sec: Optional[float] = None):
        self._reader = reader
        self._poll_sec = max(0.1, float(poll_sec if poll_sec is not None else settings.BATTERY_POLL_SEC))

        self._lock = threading.RLock()
        self._monitors: Dict[int, BatteryMonitor] = {}
        self._handles = itertools.count(1)
        self._last: Optional[BatteryReading] = None

        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @classmethod
    def current(cls) -> Optional["DeviceBattery"]:
        """Return a battery for this host, or None if the host reports no battery."""
        if read_sensor() is None:
            return None
        return cls()

    # ---- live data ----
    def snapshot(self) -> Optional[BatteryReading]:
        reading = self._reader()
        if reading is None:
            # battery vanished (unplugged USB UPS, driver hiccup); keep last known
            with self._lock:
                return self._last
        return reading

    @property
    def is_plugged_in(self) -> bool:
        reading = self.snapshot()
        return bool(reading and reading.is_plugged_in)

    @property
    def level(self) -> Optional[float]:
        reading = self.snapshot()
        return reading.level if reading else None

    @property
    def seconds_left(self) -> Optional[int]:
        reading = self.snapshot()
        return reading.seconds_left if reading else None

    # ---- monitoring ----
    @property
    def monitor_count(self) -> int:
        with self._lock:
            return len(self._monitors)

    def add_monitor(self, monitor: BatteryMonitor) -> int:
        with self._lock:
            handle = next(self._handles)
            self._monitors[handle] = monitor
            if len(self._monitors) == 1:
                self._last = self.snapshot()
                self._start()
        log.debug("battery monitor %d added", handle)
        return handle

    def remove_monitor(self, handle: int) -> bool:
        with self._lock:
            removed = self._monitors.pop(handle, None) is not None
            empty = not self._monitors
        if removed:
            log.debug("battery monitor %d removed", handle)
        if removed and empty:
            self.stop()
        return removed

    def poll_once(self) -> bool:
        """Read once and notify monitors if the reading changed. Returns True on change."""
        reading = self.snapshot()
        with self._lock:
            changed = reading != self._last
            self._last = reading
            monitors = list(self._monitors.values())
        if not changed:
            return False

        log.debug("battery reading changed -> %s", reading)
        for monitor in monitors:
            try:
                monitor(self)
            except Exception:
                log.exception("Exception in battery monitor callback")
        return True

    # ---- lifecycle ----
    def _start(self):
        if self._thread and self._thread.is_alive() and not self._stop.is_set():
            return
        # each worker owns its stop event
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._worker, args=(self._stop,), name="battery-monitor", daemon=True)
        self._thread.start()

    def stop(self):
        self._stop.set()
        thread = self._thread
        if thread and thread is not threading.current_thread():
            thread.join(timeout=1.5)
        self._thread = None

    def _worker(self, stop: threading.Event):
        while not stop.wait(self._poll_sec):
            try:
                self.poll_once()
            except Exception:
                log.debug("battery poll failed", exc_info=True)
