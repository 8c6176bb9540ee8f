"""Application service — applications, their tokens, and usage reports.

Learn: Ownership is already checked by the route's guard chain by the
time these methods run, so they take resolved rows (the caller, the
target application) instead of raw ids.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog

from devportal.db.models import Application, Token, User, new_id, utcnow
from devportal.db.store import (
    APPLICATION_SORT_FIELDS,
    SORT_DIRECTIONS,
    TOKEN_SORT_FIELDS,
    CredentialStore,
)
from devportal.errors import NotFoundError, ValidationError
from devportal.services.usage import UsageBucket, aggregate, check_range

logger = structlog.get_logger()

DEFAULT_USAGE_WINDOW = timedelta(hours=24)
DEFAULT_USAGE_STEPS = 12


def _check_sort(sort_by: str, direction: str, fields: dict) -> None:
    if sort_by not in fields:
        raise ValidationError(
            f"Invalid sort field {sort_by!r}, expected one of: {', '.join(fields)}"
        )
    if direction not in SORT_DIRECTIONS:
        raise ValidationError(
            f"Invalid direction {direction!r}, expected ascending or descending"
        )


def _from_millis(value: int) -> datetime:
    try:
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        raise ValidationError(f"Timestamp {value} is out of range")


class ApplicationService:
    """Business logic for applications and tokens."""

    def __init__(self, store: CredentialStore):
        self.store = store

    # ─── Applications ───────────────────────────────────

    async def list_applications(
        self, user: User, sort_by: str = "name", direction: str = "ascending"
    ) -> list[Application]:
        _check_sort(sort_by, direction, APPLICATION_SORT_FIELDS)
        return await self.store.get_applications_by_user(user.id, sort_by, direction)

    async def create_application(
        self, owner: User, name: str, short_description: str
    ) -> Application:
        application = Application(
            id=new_id(12),
            user_id=owner.id,
            name=name,
            short_description=short_description,
            token=new_id(16),
            total_requests=0,
            created_at=utcnow(),
        )
        await self.store.insert_application(application)
        logger.info("application.created", application_id=application.id, user_id=owner.id)
        return application

    async def update_application(
        self, application: Application, name: str, short_description: str
    ) -> Application:
        updated = await self.store.update_application_by_id(
            application.id, name=name, short_description=short_description
        )
        if updated is None:
            # Deleted between the guard's lookup and this update.
            raise NotFoundError("No application found by that ID")
        return updated

    async def delete_application(self, application: Application) -> None:
        await self.store.delete_application_by_id(application.id)
        logger.info("application.deleted", application_id=application.id)

    # ─── Tokens ─────────────────────────────────────────

    async def list_tokens(
        self,
        application: Application,
        sort_by: str = "name",
        direction: str = "ascending",
    ) -> list[Token]:
        _check_sort(sort_by, direction, TOKEN_SORT_FIELDS)
        return await self.store.get_tokens_by_application(
            application.id, sort_by, direction
        )

    async def create_token(self, application: Application, name: str) -> Token:
        now = utcnow()
        token = Token(
            id=new_id(12),
            application_id=application.id,
            name=name,
            token=new_id(16),
            total_requests=0,
            created_at=now,
            last_used_at=now,
        )
        await self.store.insert_token(token)
        return token

    async def delete_token(self, application: Application, token_id: str) -> None:
        token = await self.store.get_token_by_id(token_id)
        if token is None or token.application_id != application.id:
            raise NotFoundError("No token was found by that ID")
        await self.store.delete_token_by_id(token.id)

    # ─── Usage ──────────────────────────────────────────

    async def usage(
        self,
        application: Application,
        start_ms: Optional[int] = None,
        end_ms: Optional[int] = None,
        steps: int = DEFAULT_USAGE_STEPS,
    ) -> list[UsageBucket]:
        """Bucketed request counts between start_ms and end_ms (epoch millis).

        Defaults to the last 24 hours in 12 steps.
        """
        now = utcnow()
        end = _from_millis(end_ms) if end_ms is not None else now
        start = (
            _from_millis(start_ms) if start_ms is not None else now - DEFAULT_USAGE_WINDOW
        )

        check_range(start, end, steps)
        logs = await self.store.get_request_logs_by_application(application.id, start, end)
        return aggregate(logs, start, end, steps)
