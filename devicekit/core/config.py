from typing import Literal, Optional
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    APP_NAME: str = "Device Kit"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ---- Battery ----
    # psutil has no change notifications; monitors poll at this cadence.
    BATTERY_POLL_SEC: float = 5.0

    # ---- Idle timer ----
    # Baseline preference: keep the screen awake even on battery.
    IDLE_TIMER_DISABLED: bool = False
    # Start auto-management (suppress idle timer while plugged in) on app startup.
    IDLE_TIMER_AUTO_WHEN_PLUGGED: bool = False
    # auto picks per OS: xset on Linux, caffeinate on macOS, SetThreadExecutionState on Windows
    IDLE_TIMER_BACKEND: Literal["auto", "xset", "caffeinate", "windows", "none"] = "auto"
    # X display used by xset when DISPLAY is not in the environment (Pi kiosk default).
    XSET_DISPLAY: str = ":0"
    # Upper bound for any helper command (xset, pmset, sysctl, xrandr)
    SWITCH_COMMAND_TIMEOUT_SEC: float = 2.0

    # ---- Storage ----
    # Volume reported by /device/volumes; defaults to the home directory.
    VOLUME_PATH: Optional[str] = None


    class Config:
        env_file = ".env"

settings = Settings()
