from pathlib import Path
from types import SimpleNamespace

import psutil
import pytest

from devicekit.services.current import detect_device, device_class
from devicekit.services.device import UNKNOWN
from devicekit.services.platforms.darwin import MacDevice, thermal_from_pmset
from devicekit.services.platforms.generic import GenericDevice
from devicekit.services.platforms.linux import LinuxDevice, parse_os_release, thermal_level
from devicekit.services.platforms.windows import WindowsDevice
from devicekit.services.types import ThermalState

from conftest import RecordingSwitch

XRANDR_PORTRAIT = """Screen 0: minimum 320 x 200, current 1080 x 1920, maximum 7680 x 7680
HDMI-1 connected primary 1080x1920+0+0 left (normal left inverted right x axis y axis) 527mm x 296mm
   1920x1080     60.00*+  50.00
"""


def _write(root: Path, rel: str, text) -> None:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(text, bytes):
        path.write_bytes(text)
    else:
        path.write_text(text, encoding="utf-8")


def _no_command(args, env=None):
    return None


@pytest.fixture
def pi_root(tmp_path: Path) -> Path:
    _write(tmp_path, "proc/device-tree/model", b"Raspberry Pi 4 Model B Rev 1.4\x00")
    _write(tmp_path, "etc/os-release", 'PRETTY_NAME="Debian GNU/Linux 12 (bookworm)"\nNAME="Debian GNU/Linux"\nVERSION_ID="12"\n')
    _write(tmp_path, "proc/cpuinfo", "processor\t: 0\nModel\t\t: Raspberry Pi 4 Model B Rev 1.4\n")
    _write(tmp_path, "sys/class/backlight/rpi_backlight/brightness", "128\n")
    _write(tmp_path, "sys/class/backlight/rpi_backlight/max_brightness", "255\n")
    return tmp_path


def test_linux_raspberry_pi_identity(pi_root: Path) -> None:
    device = LinuxDevice(root=pi_root, runner=_no_command, idle_timer=RecordingSwitch())
    assert device.identifier == "Raspberry Pi 4 Model B Rev 1.4"
    assert device.model == "Raspberry Pi"
    assert device.localized_model == "Raspberry Pi"
    assert device.system_name == "Debian GNU/Linux"
    assert device.system_version == "12"
    assert device.description == "Raspberry Pi (Raspberry Pi 4 Model B Rev 1.4)"
    assert device.is_virtual_machine is False
    assert device.is_container is False
    assert device.is_real_device is True
    assert device.screen_brightness == 50


def test_linux_dmi_laptop_in_vm(tmp_path: Path) -> None:
    _write(tmp_path, "sys/class/dmi/id/product_name", "Standard PC (Q35 + ICH9, 2009)\n")
    _write(tmp_path, "sys/class/dmi/id/sys_vendor", "QEMU\n")
    _write(tmp_path, "sys/class/dmi/id/chassis_type", "10\n")
    device = LinuxDevice(root=tmp_path, runner=_no_command)
    assert device.identifier == "Standard PC (Q35 + ICH9, 2009)"
    assert device.model == "Laptop"
    assert device.is_virtual_machine is True
    assert device.is_real_device is False
    assert device.screen_brightness == -1


def test_linux_hypervisor_flag_and_container(tmp_path: Path) -> None:
    _write(tmp_path, "proc/cpuinfo", "flags\t\t: fpu vme de pse hypervisor lahf_lm\n")
    _write(tmp_path, "proc/1/cgroup", "0::/kubepods/besteffort/pod1234\n")
    device = LinuxDevice(root=tmp_path, runner=_no_command)
    assert device.is_virtual_machine is True
    assert device.is_container is True
    assert device.model == UNKNOWN


def test_linux_dockerenv(tmp_path: Path) -> None:
    _write(tmp_path, ".dockerenv", "")
    assert LinuxDevice(root=tmp_path, runner=_no_command).is_container is True


def test_linux_orientation_from_xrandr(tmp_path: Path) -> None:
    device = LinuxDevice(root=tmp_path, runner=lambda args, env=None: XRANDR_PORTRAIT)
    assert device.screen_orientation == "portrait"

    landscape = XRANDR_PORTRAIT.replace("1080x1920+0+0 left", "1920x1080+0+0")
    device = LinuxDevice(root=tmp_path, runner=lambda args, env=None: landscape)
    assert device.screen_orientation == "landscape"

    assert LinuxDevice(root=tmp_path, runner=_no_command).screen_orientation is None


def test_parse_os_release() -> None:
    values = parse_os_release("# comment\nNAME='Ubuntu'\nVERSION_ID=\"24.04\"\n\nbroken line\n")
    assert values == {"NAME": "Ubuntu", "VERSION_ID": "24.04"}
    assert parse_os_release(None) == {}


@pytest.mark.parametrize("current,high,critical,expected", [
    (45.0, None, None, ThermalState.nominal),
    (72.0, None, None, ThermalState.fair),
    (81.0, None, None, ThermalState.serious),
    (86.0, None, None, ThermalState.critical),
    (60.0, 100.0, 105.0, ThermalState.nominal),
    (92.0, 100.0, 105.0, ThermalState.fair),
    (101.0, 100.0, 105.0, ThermalState.serious),
    # high trip point only: critical sits above it
    (86.0, 100.0, None, ThermalState.nominal),
    (92.0, 100.0, None, ThermalState.fair),
    (104.0, 100.0, None, ThermalState.serious),
    (105.0, 100.0, None, ThermalState.critical),
])
def test_thermal_level(current, high, critical, expected) -> None:
    assert thermal_level(current, high, critical) is expected


def test_linux_thermal_state_takes_worst_sensor(tmp_path: Path, monkeypatch) -> None:
    temps = {
        "cpu_thermal": [SimpleNamespace(label="", current=55.0, high=None, critical=None)],
        "nvme": [SimpleNamespace(label="Composite", current=83.0, high=80.0, critical=90.0)],
    }
    monkeypatch.setattr(psutil, "sensors_temperatures", lambda: temps, raising=False)
    assert LinuxDevice(root=tmp_path, runner=_no_command).thermal_state is ThermalState.serious

    monkeypatch.setattr(psutil, "sensors_temperatures", lambda: {}, raising=False)
    assert LinuxDevice(root=tmp_path, runner=_no_command).thermal_state is None


def test_pmset_thermal_mapping() -> None:
    assert thermal_from_pmset(None) is None
    assert thermal_from_pmset("Note: No thermal warning level has been recorded") is ThermalState.nominal
    assert thermal_from_pmset("CPU_Scheduler_Limit \t= 100\nCPU_Available_CPUs \t= 8\nCPU_Speed_Limit \t= 100") is ThermalState.nominal
    assert thermal_from_pmset("CPU_Speed_Limit = 85") is ThermalState.fair
    assert thermal_from_pmset("CPU_Speed_Limit = 60") is ThermalState.serious
    assert thermal_from_pmset("CPU_Speed_Limit = 30") is ThermalState.critical
    assert thermal_from_pmset("garbage") is None


def test_mac_device_uses_sysctl() -> None:
    answers = {
        ("sysctl", "-n", "hw.model"): "MacBookPro18,3",
        ("sysctl", "-n", "kern.hv_vmm_present"): "0",
        ("pmset", "-g", "therm"): "CPU_Speed_Limit = 100",
    }
    device = MacDevice(runner=lambda args, env=None: answers.get(tuple(args)))
    assert device.identifier == "MacBookPro18,3"
    assert device.model == "Mac"
    assert device.system_name == "macOS"
    assert device.is_virtual_machine is False
    assert device.thermal_state is ThermalState.nominal
    assert device.screen_brightness == -1
    assert device.screen_orientation is None
    assert device.idle_backend == "caffeinate"


class FakeWinreg:
    HKEY_LOCAL_MACHINE = object()
    KEY_READ = 1

    def __init__(self, values):
        self.values = values
        self.closed = 0

    def OpenKey(self, hive, subkey, reserved, access):
        if self.values is None:
            raise FileNotFoundError(subkey)
        return subkey

    def QueryValueEx(self, key, name):
        if name not in self.values:
            raise FileNotFoundError(name)
        return self.values[name], 1

    def CloseKey(self, key):
        self.closed += 1


def test_windows_device_from_bios_registry() -> None:
    reg = FakeWinreg({"SystemProductName": "VMware7,1", "SystemManufacturer": "VMware, Inc."})
    device = WindowsDevice(winreg_module=reg)
    assert device.identifier == "VMware7,1"
    assert device.system_name == "Windows"
    assert device.model == "PC"
    assert device.is_virtual_machine is True
    assert reg.closed >= 1


def test_windows_device_without_bios_key() -> None:
    device = WindowsDevice(winreg_module=FakeWinreg(None))
    assert device.identifier
    assert device.is_virtual_machine is False


@pytest.mark.parametrize("system,expected", [
    ("Linux", LinuxDevice),
    ("Darwin", MacDevice),
    ("Windows", WindowsDevice),
    ("FreeBSD", GenericDevice),
])
def test_device_class_per_system(system, expected) -> None:
    assert device_class(system) is expected


def test_detect_device_passes_capabilities(tmp_path: Path) -> None:
    switch = RecordingSwitch()
    device = detect_device("FreeBSD", idle_timer=switch, volume_path=str(tmp_path))
    assert isinstance(device, GenericDevice)
    assert device.idle_timer is switch
    assert device.volume_path == str(tmp_path)


def test_volumes_for_path(tmp_path: Path) -> None:
    device = GenericDevice(volume_path=str(tmp_path))
    vols = device.volumes
    assert set(vols) == {"total", "available", "used"}
    assert device.volume_total_capacity == vols["total"] > 0
    assert device.volume_available_capacity <= device.volume_total_capacity


def test_volumes_missing_path_is_unavailable(tmp_path: Path) -> None:
    device = GenericDevice(volume_path=str(tmp_path / "missing"))
    assert device.volumes is None
    assert device.volume_total_capacity is None


def test_kiosk_detection(monkeypatch) -> None:
    procs = [SimpleNamespace(info={"cmdline": ["/usr/bin/chromium", "--kiosk", "http://localhost"]})]
    monkeypatch.setattr(psutil, "process_iter", lambda attrs=None: iter(procs))
    assert GenericDevice().is_kiosk_session_active is True

    monkeypatch.setattr(psutil, "process_iter", lambda attrs=None: iter([SimpleNamespace(info={"cmdline": None})]))
    assert GenericDevice().is_kiosk_session_active is False
