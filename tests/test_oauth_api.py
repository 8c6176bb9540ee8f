"""OAuth login tests — Discord and GitHub against a mocked transport.

Learn: The OAuthStub from conftest answers every provider URL. Tests
flip its fields to simulate missing emails and failing token endpoints,
then check that nothing was written when the login did not succeed.
"""

import pytest

from devportal.db.models import ACCOUNT_LOCAL, User, new_id, utcnow
from devportal.services.oauth import select_primary_email


@pytest.mark.asyncio
async def test_discord_creates_user_and_session(client, store, oauth):
    r = await client.post("/auth/discord", params={"code": "abc"})
    assert r.status_code == 200
    session = r.json()

    user = await store.get_user_by_email("discord-user@example.com")
    assert user is not None
    assert user.type == "discord"
    assert user.password_hash is None
    assert session["user"] == user.id

    token_request = oauth.requests[0]
    assert token_request.method == "POST"
    assert b"code=abc" in token_request.content
    assert token_request.headers["Authorization"].startswith("Basic ")


@pytest.mark.asyncio
async def test_discord_second_login_reuses_user(client):
    r1 = await client.post("/auth/discord", params={"code": "first"})
    r2 = await client.post("/auth/discord", params={"code": "second"})
    assert r1.status_code == r2.status_code == 200
    assert r1.json()["user"] == r2.json()["user"]
    assert r1.json()["id"] != r2.json()["id"]


@pytest.mark.asyncio
async def test_github_uses_primary_email(client, store, oauth):
    r = await client.post("/auth/github", params={"code": "abc"})
    assert r.status_code == 200

    user = await store.get_user_by_email("github-user@example.com")
    assert user is not None
    assert user.type == "github"
    assert await store.get_user_by_email("secondary@example.com") is None
    assert oauth.requests[0].headers["Accept"] == "application/json"


@pytest.mark.asyncio
async def test_github_without_primary_email_writes_nothing(client, store, oauth):
    oauth.github_emails = [
        {"email": "a@example.com", "primary": False, "verified": True},
        {"email": "b@example.com", "primary": False, "verified": True},
    ]
    r = await client.post("/auth/github", params={"code": "abc"})
    assert r.status_code == 409
    assert r.json()["detail"] == (
        "Cannot find a primary email address associated with that GitHub user"
    )
    assert await store.get_user_by_email("a@example.com") is None
    assert await store.get_user_by_email("b@example.com") is None


@pytest.mark.asyncio
async def test_oauth_login_for_local_account_is_rejected(client, store):
    await store.insert_user(User(
        id=new_id(8),
        email="discord-user@example.com",
        password_hash="x",
        type=ACCOUNT_LOCAL,
        created_at=utcnow(),
    ))
    r = await client.post("/auth/discord", params={"code": "abc"})
    assert r.status_code == 403
    assert "not using Discord for login" in r.json()["detail"]


@pytest.mark.asyncio
async def test_provider_kinds_do_not_mix(client, oauth):
    oauth.github_emails = [
        {"email": "discord-user@example.com", "primary": True, "verified": True},
    ]
    assert (await client.post("/auth/discord", params={"code": "abc"})).status_code == 200

    r = await client.post("/auth/github", params={"code": "abc"})
    assert r.status_code == 403
    assert "not using GitHub for login" in r.json()["detail"]


@pytest.mark.asyncio
@pytest.mark.parametrize("provider", ["discord", "github"])
async def test_missing_code(client, provider):
    r = await client.post(f"/auth/{provider}")
    assert r.status_code == 400
    assert r.json()["detail"] == "Missing code query parameter"


@pytest.mark.asyncio
@pytest.mark.parametrize("provider", ["discord", "github"])
async def test_provider_failure_is_500_and_writes_nothing(client, store, oauth, provider):
    oauth.token_status = 401
    r = await client.post(f"/auth/{provider}", params={"code": "expired"})
    assert r.status_code == 500
    assert r.json() == {"detail": "Internal Server Error"}
    assert await store.get_user_by_email(f"{provider}-user@example.com") is None


def test_select_primary_email():
    assert select_primary_email([]) is None
    assert select_primary_email([
        {"email": "unverified@example.com", "primary": True, "verified": False},
    ]) is None
    assert select_primary_email([
        {"email": "other@example.com", "primary": False},
        {"email": "main@example.com", "primary": True},
    ]) == "main@example.com"
