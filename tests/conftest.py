from typing import Callable, Dict, List, Optional

import pytest

from devicekit.services.battery import BatteryReading
from devicekit.services.device import CurrentDevice
from devicekit.services.idle_switch import IdleTimerSwitch


class RecordingSwitch(IdleTimerSwitch):
    backend = "recording"

    def __init__(self):
        super().__init__()
        self.calls: List[bool] = []
        self.closed = False

    def _apply(self, disabled: bool) -> None:
        self.calls.append(disabled)

    def close(self) -> None:
        self.closed = True


class FakeBattery:
    """Battery signal source that notifies on every set_plugged(), changed or not."""

    def __init__(self, plugged_in: bool = False, level: float = 50.0):
        self.plugged_in = plugged_in
        self.level = level
        self.monitors: Dict[int, Callable] = {}
        self._next = 0
        self.stopped = False

    @property
    def is_plugged_in(self) -> bool:
        return self.plugged_in

    @property
    def monitor_count(self) -> int:
        return len(self.monitors)

    def snapshot(self) -> Optional[BatteryReading]:
        return BatteryReading(level=self.level, is_plugged_in=self.plugged_in, seconds_left=None)

    def add_monitor(self, monitor) -> int:
        self._next += 1
        self.monitors[self._next] = monitor
        return self._next

    def remove_monitor(self, handle: int) -> bool:
        return self.monitors.pop(handle, None) is not None

    def set_plugged(self, plugged_in: bool) -> None:
        self.plugged_in = plugged_in
        for monitor in list(self.monitors.values()):
            monitor(self)

    def stop(self) -> None:
        self.stopped = True


class FakeDevice(CurrentDevice):
    def __init__(self, battery=None, switch=None, volume_path: str = "/"):
        super().__init__(idle_timer=switch or RecordingSwitch(), battery=battery, volume_path=volume_path)
        self._battery_resolved = True

    @property
    def identifier(self) -> str:
        return "Raspberry Pi 4 Model B Rev 1.4"

    @property
    def model(self) -> str:
        return "Raspberry Pi"

    @property
    def system_name(self) -> str:
        return "Debian GNU/Linux"

    @property
    def system_version(self) -> str:
        return "12"

    @property
    def is_kiosk_session_active(self) -> bool:
        return True


@pytest.fixture
def switch() -> RecordingSwitch:
    return RecordingSwitch()


@pytest.fixture
def battery() -> FakeBattery:
    return FakeBattery()
