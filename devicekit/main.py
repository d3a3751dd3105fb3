from contextlib import asynccontextmanager
import logging
from fastapi import FastAPI, Depends
from devicekit.core.config import settings
from devicekit.core.logging import setup_logging
from devicekit.dependencies import (
    cleanup_services, startup_services, check_device_health, check_idle_timer_health,
    get_current_device, get_idle_timer_policy,
)
from devicekit.exceptions.device import DeviceException, device_exception_handler, general_exception_handler
from devicekit.routers import device, idle_timer

__version__ = "0.3.0"

setup_logging(settings.LOG_LEVEL)
log = logging.getLogger("devicekit.main")

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Services initialize on demand; startup only applies configured idle timer behaviour.
    """
    log.info("Application startup - services will initialize on demand")
    startup_services()
    yield
    log.info("Application shutdown - cleaning up services")
    cleanup_services()
    log.info("App services stopped")

app = FastAPI(
    title=settings.APP_NAME,
    version=__version__,
    docs_url="/docs",
    redoc_url=None,
    lifespan=lifespan,
)

# Add custom exception handlers
app.add_exception_handler(DeviceException, device_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

app.include_router(device.router, prefix="/device")
app.include_router(idle_timer.router, prefix="/idle-timer")

# Add health check endpoint
@app.get("/health")
def health_check(device=Depends(get_current_device), policy=Depends(get_idle_timer_policy)):
    """Health check for all services"""
    device_health = check_device_health(device)
    idle_health = check_idle_timer_health(policy)

    overall_status = "healthy" if (device_health["status"] == "healthy" and idle_health["status"] == "healthy") else "unhealthy"

    return {
        "status": overall_status,
        "services": {
            "device": device_health,
            "idle_timer": idle_health
        },
        "version": __version__
    }
