"""
Dependency injection for the FastAPI application.

The current device and the idle-timer policy are process-wide slots created on
first use. Tests replace them per app through `app.dependency_overrides`
instead of mutating these globals.
"""
import logging
import threading
from typing import Any, Dict, Optional

from devicekit.core.config import settings
from devicekit.services.current import detect_device
from devicekit.services.device import CurrentDevice
from devicekit.services.idle_timer import IdleTimerPolicy

log = logging.getLogger("devicekit.dependencies")

# Global instances for singleton services
_device: Optional[CurrentDevice] = None
_idle_policy: Optional[IdleTimerPolicy] = None
_lock = threading.Lock()


def get_current_device() -> CurrentDevice:
    """Dependency returning the device this process runs on (detected once)."""
    global _device

    with _lock:
        if _device is None:
            log.info("Detecting current device")
            _device = detect_device()
    return _device


def get_idle_timer_policy() -> IdleTimerPolicy:
    """Dependency returning the process-wide idle-timer policy, bound to the current device."""
    global _idle_policy

    device = get_current_device()
    with _lock:
        if _idle_policy is None:
            log.info("Initializing IdleTimerPolicy (backend=%s)", device.idle_timer.backend)
            _idle_policy = IdleTimerPolicy.for_device(device)
            if settings.IDLE_TIMER_DISABLED:
                _idle_policy.set_preference(True)
    return _idle_policy


def startup_services() -> None:
    """Apply startup settings that need the services up front."""
    if settings.IDLE_TIMER_AUTO_WHEN_PLUGGED:
        result = get_idle_timer_policy().enable_auto_management()
        log.info("Idle timer auto-management on startup -> %s", result.value)


def cleanup_services() -> None:
    """
    Cleanup function to be called during application shutdown.
    Removes the battery subscription and releases platform resources.
    """
    global _device, _idle_policy

    with _lock:
        device, policy = _device, _idle_policy
        _device, _idle_policy = None, None

    if policy is not None:
        log.info("Shutting down IdleTimerPolicy")
        try:
            policy.disable_auto_management()
        except Exception as e:
            log.error(f"Error shutting down idle timer policy: {e}")

    if device is not None:
        log.info("Releasing device resources")
        try:
            device.close()
        except Exception as e:
            log.error(f"Error releasing device resources: {e}")

    log.info("Service cleanup completed")


# Health check functions
def check_device_health(device: CurrentDevice) -> Dict[str, Any]:
    """Check that the device accessors respond"""
    try:
        return {
            "status": "healthy",
            "device": device.description,
            "system": f"{device.system_name} {device.system_version}",
            "has_battery": device.battery is not None,
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e),
            "device": None,
            "system": None,
            "has_battery": False,
        }


def check_idle_timer_health(policy: IdleTimerPolicy) -> Dict[str, Any]:
    """Check idle timer policy health"""
    try:
        status = policy.status()
        return {"status": "healthy", **status}
    except Exception as e:
        return {"status": "unhealthy", "error": str(e)}
