"""devportal CLI — run the server and poke at a running one.

Usage:
    devportal serve                              # Run the API with uvicorn
    devportal login you@example.com              # Print a session token
    devportal me                                 # Current user
    devportal apps                               # Your applications
    devportal usage APP_ID --hours 6 --step 6    # Bucketed request counts

Client commands read the server URL from DEVPORTAL_API_URL and the
session token from --token or DEVPORTAL_TOKEN.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
import time
from typing import Optional

import click
import httpx

from devportal import __version__

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://127.0.0.1:3002"


def _api_url() -> str:
    return os.environ.get("DEVPORTAL_API_URL", DEFAULT_API_URL).rstrip("/")


def _client(token: Optional[str] = None) -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the devportal backend."""
    headers = {"Authorization": token} if token else {}
    return httpx.AsyncClient(base_url=_api_url(), headers=headers, timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _token_from_ctx(token: Optional[str]) -> str:
    """Resolve the session token from flag or DEVPORTAL_TOKEN env var."""
    value = token or os.environ.get("DEVPORTAL_TOKEN")
    if not value:
        click.secho(
            "Error: --token required (or set DEVPORTAL_TOKEN env var)",
            fg="red",
            err=True,
        )
        sys.exit(1)
    return value


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


def _check(r: httpx.Response) -> None:
    """Exit with the server's message on any non-2xx response."""
    if r.is_success:
        return
    try:
        detail = r.json().get("detail", r.text)
    except ValueError:
        detail = r.text
    click.secho(f"Error {r.status_code}: {detail}", fg="red", err=True)
    sys.exit(1)


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """Print a simple ASCII table.

    columns: list of (header, dict_key, width)
    """
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        line = "  ".join(str(row.get(k, "—"))[:w].ljust(w) for _, k, w in columns)
        click.echo(line)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="devportal")
def main():
    """devportal — accounts, API applications and usage reporting."""


@main.command()
@click.option("--reload", is_flag=True, help="Reload on code changes (development)")
def serve(reload: bool):
    """Run the API server on DEVPORTAL_HOST:DEVPORTAL_PORT (+ instance id)."""
    import uvicorn

    from devportal.config import Settings

    settings = Settings()
    uvicorn.run(
        "devportal.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.listen_port,
        reload=reload,
        log_level="debug" if settings.debug else "info",
    )


@main.command()
@click.argument("email")
@click.password_option(confirmation_prompt=False)
def login(email: str, password: str):
    """Log in with email and password and print the session token."""
    _run(_login_impl(email, password))


async def _login_impl(email: str, password: str):
    async with _client() as c:
        r = await c.post("/auth/login", json={"email": email, "password": password})
        _check(r)
        session = r.json()
    click.secho("Logged in.", fg="green", err=True)
    click.echo(session["id"])


@main.command()
@click.option("--token", help="Session token (or set DEVPORTAL_TOKEN)")
def me(token: Optional[str]):
    """Show the current user."""
    _run(_me_impl(_token_from_ctx(token)))


async def _me_impl(token: str):
    async with _client(token) as c:
        r = await c.get("/users/@me")
        _check(r)
        click.echo(_pretty_json(r.json()))


@main.command()
@click.option("--token", help="Session token (or set DEVPORTAL_TOKEN)")
@click.option("--sort", default="name", type=click.Choice(["name", "createdAt", "totalRequests"]))
@click.option("--descending", is_flag=True, help="Sort descending")
@click.option("--json", "as_json", is_flag=True, help="Output raw JSON")
def apps(token: Optional[str], sort: str, descending: bool, as_json: bool):
    """List your applications."""
    _run(_apps_impl(_token_from_ctx(token), sort, descending, as_json))


async def _apps_impl(token: str, sort: str, descending: bool, as_json: bool):
    async with _client(token) as c:
        r = await c.get(
            "/users/@me/applications",
            params={"sort": sort, "direction": "descending" if descending else "ascending"},
        )
        _check(r)
        rows = r.json()

    if as_json:
        click.echo(_pretty_json(rows))
        return
    if not rows:
        click.echo("No applications.")
        return
    _print_table(rows, [
        ("ID", "id", 24),
        ("Name", "name", 24),
        ("Requests", "totalRequests", 10),
        ("Created", "createdAt", 25),
    ])


@main.command()
@click.argument("application_id")
@click.option("--token", help="Session token (or set DEVPORTAL_TOKEN)")
@click.option("--hours", default=24, show_default=True, type=click.IntRange(min=1))
@click.option("--step", default=12, show_default=True, type=click.IntRange(min=1))
def usage(application_id: str, token: Optional[str], hours: int, step: int):
    """Show request counts for an application over the last HOURS."""
    _run(_usage_impl(application_id, _token_from_ctx(token), hours, step))


async def _usage_impl(application_id: str, token: str, hours: int, step: int):
    end = int(time.time() * 1000)
    start = end - hours * 3_600_000
    async with _client(token) as c:
        r = await c.get(
            f"/applications/{application_id}/usage",
            params={"from": start, "to": end, "step": step},
        )
        _check(r)
        buckets = r.json()

    peak = max((b["requestCount"] for b in buckets), default=0) or 1
    for b in buckets:
        bar = "#" * round(40 * b["requestCount"] / peak)
        click.echo(f"{b['timestamp']}  {b['requestCount']:>8}  {bar}")
