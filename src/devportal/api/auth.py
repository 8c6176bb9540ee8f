"""Auth API — signup, login, and OAuth callbacks.

Learn: Every route here returns a session. The session id is the
bearer token clients send back in the Authorization header.
- POST /auth/signup → create a local account (201)
- POST /auth/login → email/password
- POST /auth/discord?code=... → Discord OAuth callback
- POST /auth/github?code=... → GitHub OAuth callback
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from devportal.db.store import CredentialStore, get_store
from devportal.errors import ValidationError
from devportal.schemas.account import LoginRequest, SessionRead, SignupRequest
from devportal.services.account_service import AccountService
from devportal.services.oauth import OAuthProvider

router = APIRouter(prefix="/auth")


def _svc(store: CredentialStore = Depends(get_store)) -> AccountService:
    return AccountService(store)


def _provider(request: Request, name: str) -> OAuthProvider:
    return request.app.state.oauth_providers[name]


def _require_code(code: Optional[str]) -> str:
    if not code:
        raise ValidationError("Missing code query parameter")
    return code


@router.post("/signup", response_model=SessionRead, status_code=201)
async def signup(body: SignupRequest, svc: AccountService = Depends(_svc)):
    """Create a new local account and return its first session."""
    return await svc.signup(body.email, body.password)


@router.post("/login", response_model=SessionRead)
async def login(body: LoginRequest, svc: AccountService = Depends(_svc)):
    """Login with email and password → session."""
    return await svc.login(body.email, body.password)


@router.post("/discord", response_model=SessionRead)
async def discord_callback(
    request: Request,
    code: Optional[str] = Query(None),
    svc: AccountService = Depends(_svc),
):
    """Authenticate with a Discord OAuth authorization code."""
    return await svc.oauth_login(_provider(request, "discord"), _require_code(code))


@router.post("/github", response_model=SessionRead)
async def github_callback(
    request: Request,
    code: Optional[str] = Query(None),
    svc: AccountService = Depends(_svc),
):
    """Authenticate with a GitHub OAuth authorization code."""
    return await svc.oauth_login(_provider(request, "github"), _require_code(code))
