"""
API v1 router - aggregates all endpoint modules (RESTful structure).
"""

from fastapi import APIRouter

from market.api.v1.endpoints import health, items, session, view

api_router = APIRouter(prefix="/v1")

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(session.router, prefix="/session", tags=["session"])
api_router.include_router(items.router, prefix="/items", tags=["items"])
api_router.include_router(view.router, prefix="/view", tags=["view"])
