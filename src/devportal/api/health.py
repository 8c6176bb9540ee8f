"""Health check endpoints.

Learn: /ping is the bare liveness probe load balancers hit — 200, no
body, no dependencies. /health also verifies the database answers.
"""

from fastapi import APIRouter, Request, Response
from sqlalchemy import text

from devportal import __version__

router = APIRouter()


@router.get("/ping")
async def ping():
    return Response(status_code=200)


@router.get("/health")
async def health_check(request: Request):
    """Check server health and database connectivity."""
    checks = {"server": "ok", "version": __version__}

    try:
        async with request.app.state.database.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    status = "healthy" if checks["database"] == "ok" else "degraded"
    return {"status": status, **checks}
