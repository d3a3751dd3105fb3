import logging
from typing import Annotated
from fastapi import APIRouter, Depends
from devicekit.models.device import (
    IdleTimerStatus, IdleTimerPreferenceRequest, ActivationResponse, OperationResult
)
from devicekit.services.idle_timer import IdleTimerPolicy
from devicekit.services.types import ActivationResult
from devicekit.dependencies import get_idle_timer_policy

router = APIRouter(tags=["idle-timer"])
log = logging.getLogger("devicekit.router.idle_timer")

# Type alias for policy dependency
PolicyDep = Annotated[IdleTimerPolicy, Depends(get_idle_timer_policy)]

@router.get("", response_model=IdleTimerStatus)
def idle_timer_status(policy: PolicyDep):
    return IdleTimerStatus(**policy.status())

@router.put("", response_model=IdleTimerStatus)
def set_idle_timer_preference(body: IdleTimerPreferenceRequest, policy: PolicyDep):
    """Set the baseline: disabled=true keeps the screen awake even on battery"""
    log.info("idle-timer: %s", body)
    policy.set_preference(body.disabled)
    return IdleTimerStatus(**policy.status())

@router.post("/auto", response_model=ActivationResponse)
def enable_auto_management(policy: PolicyDep):
    """Disable the idle timer whenever the device is plugged in. Repeated calls are reported, not applied"""
    result = policy.enable_auto_management()
    return ActivationResponse(
        ok=result is ActivationResult.activated,
        result=result,
        status=IdleTimerStatus(**policy.status()),
    )

@router.delete("/auto", response_model=OperationResult)
def disable_auto_management(policy: PolicyDep):
    stopped = policy.disable_auto_management()
    return OperationResult(ok=stopped, message=None if stopped else "auto-management was not active")
