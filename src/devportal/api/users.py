"""Users API — a user's profile and applications.

Both routes are self-only: the path may name the user by id or as
"@me", but only that user's own session gets through.
"""

from fastapi import APIRouter, Depends, Query

from devportal.auth.guards import SELF, RequestContext
from devportal.db.store import CredentialStore, get_store
from devportal.schemas.account import UserRead
from devportal.schemas.application import ApplicationRead
from devportal.services.application_service import ApplicationService

router = APIRouter(prefix="/users")


@router.get("/{userID}", response_model=UserRead)
async def get_user(ctx: RequestContext = Depends(SELF)):
    """The user by id, or the current user for "@me"."""
    return ctx.target_user


@router.get("/{userID}/applications", response_model=list[ApplicationRead])
async def list_user_applications(
    sort: str = Query("name"),
    direction: str = Query("ascending"),
    ctx: RequestContext = Depends(SELF),
    store: CredentialStore = Depends(get_store),
):
    """Applications owned by the user, sorted by name, createdAt or totalRequests."""
    return await ApplicationService(store).list_applications(
        ctx.target_user, sort, direction
    )
