"""Test fixtures — a fresh SQLite database per test, providers mocked.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own app built by create_app() against a SQLite file
   in pytest's tmp_path, with the schema created from the models.
2. The OAuth providers share an httpx.AsyncClient built on
   httpx.MockTransport, routed to an OAuthStub the test can reconfigure.
3. Requests go through httpx.ASGITransport, so the full middleware,
   guard, and error-handling stack runs in-process.

No Postgres or network needed.
"""

import uuid

import httpx
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from devportal.config import Settings
from devportal.db.models import Base
from devportal.db.store import CredentialStore
from devportal.main import create_app


class OAuthStub:
    """Plays Discord and GitHub. Tests set the emails and failure modes."""

    def __init__(self):
        self.discord_email = "discord-user@example.com"
        self.github_emails = [
            {"email": "secondary@example.com", "primary": False, "verified": True},
            {"email": "github-user@example.com", "primary": True, "verified": True},
        ]
        self.token_status = 200
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)

        if url.endswith("/oauth2/token") or url.endswith("/login/oauth/access_token"):
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"error": "bad_code"})
            return httpx.Response(200, json={"access_token": "provider-token", "scope": "email"})
        if url.endswith("/users/@me"):
            return httpx.Response(200, json={"id": "1", "email": self.discord_email})
        if url.endswith("/user/emails"):
            return httpx.Response(200, json=self.github_emails)
        return httpx.Response(404)


@pytest_asyncio.fixture()
async def oauth():
    return OAuthStub()


@pytest_asyncio.fixture()
async def settings(tmp_path):
    return Settings(
        _env_file=None,
        environment="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'devportal.db'}",
        store_timeout_seconds=5.0,
        discord_client_id="discord-client",
        discord_client_secret="discord-secret",
        discord_redirect_uri="http://localhost/callback/discord",
        github_client_id="github-client",
        github_client_secret="github-secret",
        github_redirect_uri="http://localhost/callback/github",
    )


@pytest_asyncio.fixture()
async def app(settings, oauth):
    """App with a freshly created schema and mocked providers."""
    http = httpx.AsyncClient(transport=httpx.MockTransport(oauth.handler))
    application = create_app(settings, http_client=http)

    async with application.state.database.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield application

    await http.aclose()
    await application.state.database.dispose()


@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture()
async def store(app):
    """Direct store access for seeding rows and checking side effects."""
    async with app.state.database.session_factory() as session:
        yield CredentialStore(session)


@pytest_asyncio.fixture()
async def signup(client):
    """Sign up a fresh local user. Returns (session token, user id)."""

    async def _signup(email: str | None = None, password: str = "hunter22"):
        email = email or f"user-{uuid.uuid4().hex[:8]}@example.com"
        r = await client.post(
            "/auth/signup",
            json={"email": email, "password": password, "confirmPassword": password},
        )
        assert r.status_code == 201, r.text
        session = r.json()
        return session["id"], session["user"]

    return _signup
