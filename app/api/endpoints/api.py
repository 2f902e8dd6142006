"""
API router combining all endpoint modules.
"""
from fastapi import APIRouter

from app.api.endpoints import (
    auth,
    dashboard,
    health,
    monitoring,
    profile,
    results,
    sessions,
    submit,
    tests,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(profile.router, prefix="/profile", tags=["profile"])
api_router.include_router(tests.router, prefix="/tests", tags=["tests"])
api_router.include_router(sessions.router, prefix="/tests", tags=["sessions"])
api_router.include_router(submit.router, prefix="/tests", tags=["submit"])
api_router.include_router(results.router, prefix="/results", tags=["results"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
api_router.include_router(monitoring.router, prefix="/monitoring", tags=["monitoring"])
