"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Unlike a blanket router-level auth dependency, access rules here
differ per route (self-only, owner-only, public), so each handler
declares its own guard chain from devportal.auth.guards. Health and
auth routers are open.
"""

from fastapi import APIRouter

from devportal.api.applications import router as applications_router
from devportal.api.auth import router as auth_router
from devportal.api.health import router as health_router
from devportal.api.users import router as users_router

api_router = APIRouter()

api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(users_router, tags=["users"])
api_router.include_router(applications_router, tags=["applications", "tokens", "usage"])
