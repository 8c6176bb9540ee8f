"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Everything a request needs (the database, the OAuth provider
clients, the settings) is built here once and attached to app.state;
dependencies read it from there. Lifespan only handles shutdown.

Error mapping lives here too: DevPortalError subclasses become
{"detail": message} with their status, server-side failures are logged
and answered with a generic 500.

Run with: uvicorn --factory devportal.main:create_app (or `devportal serve`)
"""

from contextlib import asynccontextmanager
from typing import Optional

import httpx
import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from devportal import __version__
from devportal.api import api_router
from devportal.config import Settings
from devportal.db.engine import Database
from devportal.errors import DevPortalError, UpstreamError
from devportal.middleware.request_id import RequestIdMiddleware
from devportal.middleware.security import SecurityHeadersMiddleware
from devportal.services.oauth import build_providers

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    settings: Settings = app.state.settings
    logger.info(
        "devportal.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.listen_port,
    )

    yield

    logger.info("devportal.shutdown")
    await app.state.http_client.aclose()
    await app.state.database.dispose()


async def devportal_error_handler(request: Request, exc: DevPortalError) -> JSONResponse:
    if exc.status_code >= 500:
        fields = {"path": request.url.path, "error": exc.message}
        if isinstance(exc, UpstreamError):
            fields.update(provider=exc.provider, upstream_status=exc.upstream_status)
        logger.error(f"error.{type(exc).__name__.removesuffix('Error').lower()}", **fields)
        return JSONResponse(status_code=exc.status_code, content={"detail": "Internal Server Error"})
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and query strings are 400s, not FastAPI's default 422."""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = error.get("msg", "invalid value")
        messages.append(f"{location}: {message}" if location else message)
    return JSONResponse(
        status_code=400,
        content={"detail": "; ".join(messages) or "Invalid request"},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("error.unhandled", path=request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


def create_app(
    settings: Optional[Settings] = None,
    *,
    http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """Build and return the FastAPI application."""
    settings = settings or Settings()

    app = FastAPI(
        title="devportal",
        description="Accounts, API applications, tokens and usage reporting",
        version=__version__,
        lifespan=lifespan,
    )

    http_client = http_client or httpx.AsyncClient(timeout=settings.oauth_timeout_seconds)
    app.state.settings = settings
    app.state.database = Database(settings)
    app.state.http_client = http_client
    app.state.oauth_providers = build_providers(settings, http_client)

    # ── Error handling ───────────────────────────────────────
    app.add_exception_handler(DevPortalError, devportal_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: (CORS) → RequestId → Security → handler
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware, access_log=settings.is_development)
    if settings.is_development:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_methods=["HEAD", "OPTIONS", "GET", "POST", "DELETE"],
            allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
            expose_headers=["X-Request-ID"],
        )

    app.include_router(api_router)

    return app
