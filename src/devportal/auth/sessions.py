"""Session resolution — bearer token → user.

Learn: Three outcomes matter to callers and must stay distinguishable:

- no token supplied      → None (anonymous, fine on optional-auth routes)
- token matches nothing  → InvalidSessionError (403, always a rejection)
- token matches a user   → the User

A session whose user row is missing is an orphan. That is a broken
invariant, not an anonymous request, so it raises IntegrityError.
"""

from typing import Optional

import structlog
from starlette.requests import Request

from devportal.db.models import Session, User, new_id, utcnow
from devportal.db.store import CredentialStore
from devportal.errors import IntegrityError, InvalidSessionError

logger = structlog.get_logger()

SESSION_TOKEN_BYTES = 16


def bearer_token(request: Request) -> str:
    """Read the session token from the Authorization header.

    Accepts both a raw token and the "Bearer <token>" form. Returns ""
    when the header is absent or blank.
    """
    value = request.headers.get("Authorization", "").strip()
    scheme, _, rest = value.partition(" ")
    if rest and scheme.lower() == "bearer":
        return rest.strip()
    return value


class SessionResolver:
    """Resolves session tokens against the store."""

    def __init__(self, store: CredentialStore):
        self.store = store

    async def resolve(self, token: Optional[str]) -> Optional[User]:
        if not token:
            return None

        session = await self.store.get_session_by_id(token)
        if session is None:
            raise InvalidSessionError()

        user = await self.store.get_user_by_id(session.user_id)
        if user is None:
            raise IntegrityError(
                f"Session {session.id[:8]}… references missing user {session.user_id}"
            )
        return user

    async def issue(self, user: User) -> Session:
        """Create a new session for the user. Sessions do not expire."""
        session = Session(
            id=new_id(SESSION_TOKEN_BYTES),
            user_id=user.id,
            created_at=utcnow(),
        )
        await self.store.insert_session(session)
        logger.info("session.issued", user_id=user.id)
        return session
