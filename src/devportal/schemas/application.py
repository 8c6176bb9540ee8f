"""Pydantic schemas for applications, tokens, and usage."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from devportal.schemas.base import CamelModel


# ─── Applications ───────────────────────────────────────

class ApplicationWrite(CamelModel):
    """Body for both creating and updating an application."""

    name: str = Field(..., min_length=2, max_length=64)
    short_description: str = Field(..., min_length=30, max_length=480)


class ApplicationRead(CamelModel):
    id: str
    name: str
    short_description: str
    user_id: str = Field(..., serialization_alias="user")
    token: Optional[str] = None
    total_requests: int
    created_at: datetime


# ─── Tokens ─────────────────────────────────────────────

class TokenCreate(CamelModel):
    name: str = Field(..., min_length=2, max_length=64)


class TokenRead(CamelModel):
    id: str
    name: str
    token: str
    total_requests: int
    application_id: str = Field(..., serialization_alias="application")
    created_at: datetime
    last_used_at: datetime


# ─── Usage ──────────────────────────────────────────────

class UsageBucketRead(CamelModel):
    timestamp: datetime
    request_count: int


class Deleted(CamelModel):
    deleted: bool = True
