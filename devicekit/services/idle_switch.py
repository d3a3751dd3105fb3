"""
System idle-timer switches.

Each backend turns the host's automatic screen blanking / sleep on or off.
Backends never raise: a platform failure is logged and the requested value
is still recorded as the last applied one.
"""
import ctypes
import logging
import os
import shutil
import subprocess
import threading
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional

from devicekit.core.config import settings

log = logging.getLogger("devicekit.idle_switch")

# SetThreadExecutionState flags
ES_CONTINUOUS = 0x80000000
ES_SYSTEM_REQUIRED = 0x00000001
ES_DISPLAY_REQUIRED = 0x00000002


class IdleTimerSwitch(ABC):
    backend = "none"

    def __init__(self):
        self._disabled = False
        self._lock = threading.Lock()

    @property
    def is_disabled(self) -> bool:
        return self._disabled

    def set_idle_timer_disabled(self, disabled: bool) -> None:
        with self._lock:
            try:
                self._apply(bool(disabled))
            except Exception:
                log.exception("%s: failed to set idle timer disabled=%s", self.backend, disabled)
            self._disabled = bool(disabled)
        log.info("idle timer %s (%s)", "disabled" if disabled else "enabled", self.backend)

    @abstractmethod
    def _apply(self, disabled: bool) -> None:
        ...

    def close(self) -> None:
        """Release any platform resource held by the switch."""


class NullIdleSwitch(IdleTimerSwitch):
    """Headless hosts: nothing to toggle, only the value is recorded."""
    backend = "none"

    def _apply(self, disabled: bool) -> None:
        return None


class XsetIdleSwitch(IdleTimerSwitch):
    """X11 screensaver + DPMS via xset (Raspberry Pi OS / Linux desktops)."""
    backend = "xset"

    def __init__(self, runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
                 display: Optional[str] = None):
        super().__init__()
        self._run = runner
        self._display = display or os.environ.get("DISPLAY") or settings.XSET_DISPLAY

    def _commands(self, disabled: bool) -> List[List[str]]:
        if disabled:
            return [["xset", "s", "off"], ["xset", "-dpms"]]
        return [["xset", "s", "on"], ["xset", "+dpms"]]

    def _apply(self, disabled: bool) -> None:
        if self._run is subprocess.run and shutil.which("xset") is None:
            log.warning("xset not found; idle timer left unchanged")
            return
        env = {**os.environ, "DISPLAY": self._display}
        for cmd in self._commands(disabled):
            proc = self._run(cmd, env=env, capture_output=True, text=True,
                             timeout=settings.SWITCH_COMMAND_TIMEOUT_SEC, check=False)
            if proc.returncode != 0:
                log.warning("%s -> rc=%s %s", " ".join(cmd), proc.returncode, (proc.stderr or "").strip())


class CaffeinateIdleSwitch(IdleTimerSwitch):
    """macOS: hold a `caffeinate -d -i` child process while the idle timer is disabled."""
    backend = "caffeinate"

    def __init__(self, popen: Callable[..., subprocess.Popen] = subprocess.Popen):
        super().__init__()
        self._popen = popen
        self._proc: Optional[subprocess.Popen] = None

    def _apply(self, disabled: bool) -> None:
        if disabled:
            if self._proc is not None and self._proc.poll() is None:
                return
            self._proc = self._popen(["caffeinate", "-d", "-i"],
                                     stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
            log.debug("caffeinate started pid=%s", getattr(self._proc, "pid", None))
        else:
            self._terminate()

    def _terminate(self) -> None:
        proc, self._proc = self._proc, None
        if proc is None or proc.poll() is not None:
            return
        proc.terminate()
        try:
            proc.wait(timeout=settings.SWITCH_COMMAND_TIMEOUT_SEC)
        except subprocess.TimeoutExpired:
            proc.kill()

    def close(self) -> None:
        with self._lock:
            self._terminate()


class WindowsIdleSwitch(IdleTimerSwitch):
    """
    Windows: SetThreadExecutionState. The execution state belongs to the calling
    thread, so every call is made from one dedicated worker thread.
    """
    backend = "windows"

    def __init__(self, kernel32=None):
        super().__init__()
        self._kernel32 = kernel32
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="idle-timer")

    def _set_state(self, flags: int) -> int:
        kernel32 = self._kernel32 or ctypes.windll.kernel32  # type: ignore[attr-defined]
        previous = kernel32.SetThreadExecutionState(flags)
        if not previous:
            raise OSError("SetThreadExecutionState failed")
        return previous

    def _apply(self, disabled: bool) -> None:
        flags = ES_CONTINUOUS
        if disabled:
            flags |= ES_SYSTEM_REQUIRED | ES_DISPLAY_REQUIRED
        self._executor.submit(self._set_state, flags).result(timeout=settings.SWITCH_COMMAND_TIMEOUT_SEC)

    def close(self) -> None:
        self._executor.shutdown(wait=True)


_BACKENDS = {
    "none": NullIdleSwitch,
    "xset": XsetIdleSwitch,
    "caffeinate": CaffeinateIdleSwitch,
    "windows": WindowsIdleSwitch,
}


def make_idle_switch(backend: Optional[str] = None, default: str = "none") -> IdleTimerSwitch:
    """Build the switch named by `backend` (or settings); `auto` resolves to `default`."""
    name = backend or settings.IDLE_TIMER_BACKEND
    if name == "auto":
        name = default
    cls = _BACKENDS.get(name)
    if cls is None:
        log.warning("unknown idle timer backend %r; using none", name)
        cls = NullIdleSwitch
    return cls()
