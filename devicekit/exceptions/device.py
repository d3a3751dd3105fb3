from fastapi import Request
from fastapi.responses import JSONResponse
import logging
import time
from typing import Optional, Dict, Any

log = logging.getLogger("devicekit.exceptions.device")

class DeviceException(Exception):
    """Base device exception with error context"""
    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        timestamp: Optional[float] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}
        self.timestamp = timestamp or time.time()
        super().__init__(self.message)

class DuplicateActivationError(DeviceException):
    """Idle-timer auto-management was already activated"""
    def __init__(self, message: str = "Idle timer auto-management is already active", context: Optional[Dict[str, Any]] = None):
        super().__init__(message, 409, "DUPLICATE_ACTIVATION", context)

class NoBatteryPresentError(DeviceException):
    """The device reports no battery"""
    def __init__(self, message: str = "No battery present on this device", context: Optional[Dict[str, Any]] = None):
        super().__init__(message, 404, "NO_BATTERY_PRESENT", context)

class PropertyUnavailableError(DeviceException):
    """The platform does not expose the requested property"""
    def __init__(self, prop: str, context: Optional[Dict[str, Any]] = None):
        ctx = {"property": prop, **(context or {})}
        super().__init__(f"Property '{prop}' is not available on this platform", 404, "PROPERTY_UNAVAILABLE", ctx)

# Exception handlers
async def device_exception_handler(request: Request, exc: DeviceException):
    """Device exception handler with error context"""
    request_info = {
        "method": request.method,
        "url": str(request.url),
        "user_agent": request.headers.get("user-agent", "unknown")
    }

    log.error(
        f"Device exception [{exc.error_code}]: {exc.message}",
        extra={
            "error_code": exc.error_code,
            "status_code": exc.status_code,
            "context": exc.context,
            "request": request_info,
            "timestamp": exc.timestamp
        }
    )

    error_response = {
        "error": {
            "code": exc.error_code,
            "type": exc.__class__.__name__,
            "message": exc.message,
            "timestamp": exc.timestamp
        },
        "status_code": exc.status_code
    }
    if exc.context:
        error_response["error"]["context"] = exc.context

    return JSONResponse(
        status_code=exc.status_code,
        content=error_response
    )

async def general_exception_handler(request: Request, exc: Exception):
    """General exception handler with context and logging"""
    request_info = {
        "method": request.method,
        "url": str(request.url),
        "user_agent": request.headers.get("user-agent", "unknown")
    }

    log.error(
        f"Unexpected device error: {str(exc)}",
        exc_info=True,
        extra={
            "error_type": exc.__class__.__name__,
            "request": request_info,
            "timestamp": time.time()
        }
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_SERVER_ERROR",
                "type": "InternalServerError",
                "message": "An unexpected error occurred while querying the device",
                "timestamp": time.time()
            },
            "status_code": 500
        }
    )
