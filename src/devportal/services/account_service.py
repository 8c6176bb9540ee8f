"""Account service — signup, login, and OAuth login.

Learn: Service layer separates business logic from HTTP routing.
API routes call services, services call the store. Every successful
path ends by issuing a new session through SessionResolver.issue().

Account kinds never mix: an email registered locally can't log in
through Discord, and an email first seen through GitHub can't log in
with a password. Identities are not merged across providers.
"""

import structlog

from devportal.auth.password import hash_password, needs_upgrade, verify_password
from devportal.auth.sessions import SessionResolver
from devportal.db.models import ACCOUNT_LOCAL, Session, User, new_id, utcnow
from devportal.db.store import CredentialStore
from devportal.errors import AuthorizationError, ConflictError
from devportal.services.oauth import OAuthProvider

logger = structlog.get_logger()

USER_ID_BYTES = 8


class AccountService:
    """Business logic for creating accounts and sessions."""

    def __init__(self, store: CredentialStore):
        self.store = store
        self.sessions = SessionResolver(store)

    async def signup(self, email: str, password: str) -> Session:
        """Create a local account and log it in.

        Learn: The read-then-insert check gives the friendly message in
        the common case. Two concurrent signups can both pass the read;
        the unique index on users.email rejects the second insert, which
        the store reports as ConflictError.
        """
        if await self.store.get_user_by_email(email) is not None:
            raise ConflictError("A user already exists with that email address")

        user = User(
            id=new_id(USER_ID_BYTES),
            email=email,
            password_hash=hash_password(password),
            type=ACCOUNT_LOCAL,
            created_at=utcnow(),
        )
        try:
            await self.store.insert_user(user)
        except ConflictError:
            raise ConflictError("A user already exists with that email address")

        logger.info("auth.signup", user_id=user.id)
        return await self.sessions.issue(user)

    async def login(self, email: str, password: str) -> Session:
        user = await self.store.get_user_by_email(email)
        if user is None:
            raise AuthorizationError("No user exists with that email address")

        if user.type != ACCOUNT_LOCAL:
            raise AuthorizationError(
                "A user exists with that email but is not using local login. "
                "Please login with the other service provider instead."
            )

        if not user.password_hash or not verify_password(password, user.password_hash):
            raise AuthorizationError("Invalid password")

        # Auto-upgrade legacy SHA-256 hashes to bcrypt on successful login
        if needs_upgrade(user.password_hash):
            await self.store.update_user_password(user.id, hash_password(password))
            logger.info("auth.password_upgraded", user_id=user.id)

        return await self.sessions.issue(user)

    async def oauth_login(self, provider: OAuthProvider, code: str) -> Session:
        """Log in (or sign up) with an OAuth authorization code.

        Nothing is written until the provider has returned a usable
        email and the account kind check has passed.
        """
        email = await provider.fetch_email(code)

        user = await self.store.get_user_by_email(email)
        if user is None:
            user = User(
                id=new_id(USER_ID_BYTES),
                email=email,
                password_hash=None,
                type=provider.name,
                created_at=utcnow(),
            )
            await self.store.insert_user(user)
            logger.info("auth.oauth_signup", user_id=user.id, provider=provider.name)
        elif user.type != provider.name:
            raise AuthorizationError(
                "A user exists with that email but is not using "
                f"{provider.display_name} for login. Please login with the "
                "other service provider or local login instead."
            )

        return await self.sessions.issue(user)
