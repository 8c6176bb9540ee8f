"""Applications API — applications, tokens, and usage.

Learn: Access rules live entirely in the guard chains:
- APPLICATION: anyone may read an application (its secret token is
  only included for the owner)
- APPLICATION_OWNER: mutations, tokens, and usage are owner-only
- AUTHENTICATED: any logged-in user may create an application
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from devportal.auth.guards import (
    APPLICATION,
    APPLICATION_OWNER,
    AUTHENTICATED,
    RequestContext,
)
from devportal.db.store import CredentialStore, get_store
from devportal.schemas.application import (
    ApplicationRead,
    ApplicationWrite,
    Deleted,
    TokenCreate,
    TokenRead,
    UsageBucketRead,
)
from devportal.services.application_service import (
    DEFAULT_USAGE_STEPS,
    ApplicationService,
)

router = APIRouter(prefix="/applications")


def _svc(store: CredentialStore = Depends(get_store)) -> ApplicationService:
    return ApplicationService(store)


# ─── Applications ────────────────────────────────────────


@router.post("", response_model=ApplicationRead, status_code=201)
async def create_application(
    body: ApplicationWrite,
    ctx: RequestContext = Depends(AUTHENTICATED),
    svc: ApplicationService = Depends(_svc),
):
    """Create an application owned by the caller."""
    return await svc.create_application(ctx.caller, body.name, body.short_description)


@router.get("/{applicationID}", response_model=ApplicationRead)
async def get_application(ctx: RequestContext = Depends(APPLICATION)):
    """Get an application. The application token is shown to its owner only."""
    application = ApplicationRead.model_validate(ctx.target_application)
    if ctx.caller is None or ctx.caller.id != application.user_id:
        application.token = None
    return application


@router.post("/{applicationID}", response_model=ApplicationRead)
async def update_application(
    body: ApplicationWrite,
    ctx: RequestContext = Depends(APPLICATION_OWNER),
    svc: ApplicationService = Depends(_svc),
):
    """Update an application's name and description."""
    return await svc.update_application(
        ctx.target_application, body.name, body.short_description
    )


@router.delete("/{applicationID}", response_model=Deleted)
async def delete_application(
    ctx: RequestContext = Depends(APPLICATION_OWNER),
    svc: ApplicationService = Depends(_svc),
):
    """Permanently delete an application and its tokens."""
    await svc.delete_application(ctx.target_application)
    return Deleted()


# ─── Tokens ──────────────────────────────────────────────


@router.get("/{applicationID}/tokens", response_model=list[TokenRead])
async def list_tokens(
    sort: str = Query("name"),
    direction: str = Query("ascending"),
    ctx: RequestContext = Depends(APPLICATION_OWNER),
    svc: ApplicationService = Depends(_svc),
):
    return await svc.list_tokens(ctx.target_application, sort, direction)


@router.post("/{applicationID}/tokens", response_model=TokenRead, status_code=201)
async def create_token(
    body: TokenCreate,
    ctx: RequestContext = Depends(APPLICATION_OWNER),
    svc: ApplicationService = Depends(_svc),
):
    return await svc.create_token(ctx.target_application, body.name)


@router.delete("/{applicationID}/tokens/{tokenID}", response_model=Deleted)
async def delete_token(
    tokenID: str,
    ctx: RequestContext = Depends(APPLICATION_OWNER),
    svc: ApplicationService = Depends(_svc),
):
    await svc.delete_token(ctx.target_application, tokenID)
    return Deleted()


# ─── Usage ───────────────────────────────────────────────


@router.get("/{applicationID}/usage", response_model=list[UsageBucketRead])
async def get_usage(
    start: Optional[int] = Query(None, alias="from", description="Epoch millis, default now - 24h"),
    end: Optional[int] = Query(None, alias="to", description="Epoch millis, default now"),
    step: int = Query(DEFAULT_USAGE_STEPS, description="Number of buckets"),
    ctx: RequestContext = Depends(APPLICATION_OWNER),
    svc: ApplicationService = Depends(_svc),
):
    """Request counts bucketed into `step` equal windows between from and to."""
    return await svc.usage(ctx.target_application, start, end, step)
