import pytest

from devicekit import dependencies
from devicekit.core.config import settings

from conftest import FakeBattery, FakeDevice, RecordingSwitch


@pytest.fixture
def fake_device(monkeypatch, tmp_path):
    device = FakeDevice(battery=FakeBattery(plugged_in=True), switch=RecordingSwitch(), volume_path=str(tmp_path))
    monkeypatch.setattr(dependencies, "detect_device", lambda: device)
    yield device
    dependencies.cleanup_services()


def test_singletons_created_once(fake_device) -> None:
    assert dependencies.get_current_device() is fake_device
    policy = dependencies.get_idle_timer_policy()
    assert dependencies.get_idle_timer_policy() is policy
    assert policy.enforced is None


def test_initial_preference_from_settings(fake_device, monkeypatch) -> None:
    monkeypatch.setattr(settings, "IDLE_TIMER_DISABLED", True)
    policy = dependencies.get_idle_timer_policy()
    assert policy.preference is True
    assert fake_device.idle_timer.calls == [True]


def test_startup_activates_and_cleanup_tears_down(fake_device, monkeypatch) -> None:
    monkeypatch.setattr(settings, "IDLE_TIMER_AUTO_WHEN_PLUGGED", True)
    dependencies.startup_services()

    policy = dependencies.get_idle_timer_policy()
    assert policy.is_active is True
    assert fake_device.battery.monitor_count == 1

    dependencies.cleanup_services()
    assert policy.is_active is False
    assert fake_device.battery.monitor_count == 0
    assert fake_device.battery.stopped is True
    assert fake_device.idle_timer.closed is True


def test_health_checks(fake_device) -> None:
    health = dependencies.check_device_health(fake_device)
    assert health["status"] == "healthy"
    assert health["system"] == "Debian GNU/Linux 12"
    idle = dependencies.check_idle_timer_health(dependencies.get_idle_timer_policy())
    assert idle["status"] == "healthy"
    assert idle["plugged_in"] is True
