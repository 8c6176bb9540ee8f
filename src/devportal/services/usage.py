"""Usage aggregation — bucket request logs into fixed-width windows.

Learn: The dashboard asks for "requests per step between from and to".
We split [start, end] into step_count windows of equal width and sum
the request counts of every log that falls inside each window.

Width is (end - start) / step_count, truncated to whole milliseconds,
so the last window may end a few milliseconds before `end`.

Windows are inclusive on BOTH ends: a log exactly on the boundary
between bucket i and i+1 counts toward both. The reporting clients
were built against this behavior, so it is kept (and tested).
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Protocol

from devportal.db.store import as_utc
from devportal.errors import ValidationError

MAX_STEPS = 1000


class UsageRecordLike(Protocol):
    timestamp: datetime
    request_count: int


@dataclass(frozen=True)
class UsageBucket:
    timestamp: datetime
    request_count: int


def bucket_width(start: datetime, end: datetime, step_count: int) -> timedelta:
    span_ms = (end - start) / timedelta(milliseconds=1)
    return timedelta(milliseconds=int(span_ms / step_count))


def check_range(start: datetime, end: datetime, step_count: int) -> timedelta:
    """Validate a report request and return the bucket width.

    Raises ValidationError for step_count <= 0, too many steps, or an
    empty/negative range.
    """
    if step_count <= 0:
        raise ValidationError("step must be a positive integer")
    if step_count > MAX_STEPS:
        raise ValidationError(f"step must be at most {MAX_STEPS}")
    if as_utc(end) <= as_utc(start):
        raise ValidationError("from must be earlier than to")

    width = bucket_width(as_utc(start), as_utc(end), step_count)
    if width <= timedelta(0):
        raise ValidationError("range is too short for that many steps")
    return width


def aggregate(
    records: Iterable[UsageRecordLike],
    start: datetime,
    end: datetime,
    step_count: int,
) -> list[UsageBucket]:
    """Sum request counts into exactly step_count ascending buckets."""
    width = check_range(start, end, step_count)
    start = as_utc(start)
    points = [(as_utc(r.timestamp), r.request_count) for r in records]

    buckets = []
    for i in range(step_count):
        lower = start + width * i
        upper = start + width * (i + 1)
        total = sum(count for ts, count in points if lower <= ts <= upper)
        buckets.append(UsageBucket(timestamp=lower, request_count=total))
    return buckets
