"""
Health checks - liveness of the process, readiness of the session.
"""

from fastapi import APIRouter

from market.config import get_settings
from market.core.dependencies import AppCtx

router = APIRouter()
settings = get_settings()


@router.get("")
async def health():
    """Liveness: is the process up?"""
    return {"status": "ok", "app": settings.app_name}


@router.get("/ready")
async def ready(context: AppCtx):
    """Readiness: context started; reports where bootstrap stands."""
    return {"status": "ready", "bootstrap": context.bootstrap.state.value}
