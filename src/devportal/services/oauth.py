"""OAuth provider clients — Discord and GitHub.

Learn: Both providers follow the same two-call shape:

1. POST the authorization code to the token endpoint → access token
2. GET the user's email with that access token

Each provider exposes `fetch_email(code)` which does both calls and
returns the email address to log the user in with. Any transport
failure or non-200 answer becomes UpstreamError (500, logged), so a
provider outage never looks like a client mistake.

The httpx.AsyncClient is injected so tests can pass one built on
httpx.MockTransport.
"""

from typing import Optional

import httpx
import structlog

from devportal.config import Settings
from devportal.errors import ConflictError, UpstreamError

logger = structlog.get_logger()

DISCORD_TOKEN_URL = "https://discord.com/api/v10/oauth2/token"
DISCORD_USER_URL = "https://discord.com/api/v10/users/@me"
GITHUB_TOKEN_URL = "https://github.com/login/oauth/access_token"
GITHUB_EMAILS_URL = "https://api.github.com/user/emails"


class OAuthProvider:
    """Shared HTTP plumbing for the providers."""

    name: str = ""
    display_name: str = ""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        http: httpx.AsyncClient,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.http = http

    async def fetch_email(self, code: str) -> str:
        raise NotImplementedError

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self.http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise UpstreamError(self.name, f"request to {url} failed: {e}") from e

        if response.status_code != httpx.codes.OK:
            logger.warning(
                "oauth.unexpected_status",
                provider=self.name,
                url=url,
                status=response.status_code,
            )
            raise UpstreamError(
                self.name,
                f"unexpected status code: {response.status_code}",
                status_code=response.status_code,
            )
        return response

    def _json(self, response: httpx.Response):
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(self.name, "response body is not JSON") from e

    def _access_token(self, response: httpx.Response) -> str:
        payload = self._json(response)
        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise UpstreamError(self.name, "token response has no access_token")
        return token


class DiscordOAuth(OAuthProvider):
    name = "discord"
    display_name = "Discord"

    async def exchange_code(self, code: str) -> str:
        response = await self._request(
            "POST",
            DISCORD_TOKEN_URL,
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.redirect_uri,
            },
            auth=(self.client_id, self.client_secret),
        )
        return self._access_token(response)

    async def fetch_email(self, code: str) -> str:
        access_token = await self.exchange_code(code)
        response = await self._request(
            "GET",
            DISCORD_USER_URL,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        user = self._json(response)
        email = user.get("email") if isinstance(user, dict) else None
        if not email:
            raise UpstreamError(self.name, "user has no email (missing 'email' scope?)")
        return email


class GitHubOAuth(OAuthProvider):
    name = "github"
    display_name = "GitHub"

    async def exchange_code(self, code: str) -> str:
        response = await self._request(
            "POST",
            GITHUB_TOKEN_URL,
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "code": code,
                "redirect_uri": self.redirect_uri,
            },
            headers={"Accept": "application/json"},
        )
        return self._access_token(response)

    async def fetch_email(self, code: str) -> str:
        access_token = await self.exchange_code(code)
        response = await self._request(
            "GET",
            GITHUB_EMAILS_URL,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/vnd.github+json",
            },
        )
        emails = self._json(response)
        if not isinstance(emails, list):
            raise UpstreamError(self.name, "email list response is not a list")

        primary = select_primary_email(emails)
        if primary is None:
            raise ConflictError(
                "Cannot find a primary email address associated with that GitHub user"
            )
        return primary


def select_primary_email(emails: list[dict]) -> Optional[str]:
    """The address GitHub flags as primary, if it is verified."""
    for entry in emails:
        if entry.get("primary") and entry.get("verified", True) and entry.get("email"):
            return entry["email"]
    return None


def build_providers(
    settings: Settings, http: httpx.AsyncClient
) -> dict[str, OAuthProvider]:
    return {
        DiscordOAuth.name: DiscordOAuth(
            settings.discord_client_id,
            settings.discord_client_secret,
            settings.discord_redirect_uri,
            http,
        ),
        GitHubOAuth.name: GitHubOAuth(
            settings.github_client_id,
            settings.github_client_secret,
            settings.github_redirect_uri,
            http,
        ),
    }
