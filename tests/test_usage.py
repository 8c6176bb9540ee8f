"""Usage aggregation tests — bucket layout, boundaries and validation."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import pytest

from devportal.errors import ValidationError
from devportal.services.usage import MAX_STEPS, aggregate, bucket_width, check_range

START = datetime(2024, 1, 1, tzinfo=timezone.utc)


@dataclass
class Record:
    timestamp: datetime
    request_count: int


def _at(minutes: float) -> datetime:
    return START + timedelta(minutes=minutes)


def test_bucket_count_and_starts():
    buckets = aggregate([], START, _at(60), 4)
    assert len(buckets) == 4
    assert [b.timestamp for b in buckets] == [_at(0), _at(15), _at(30), _at(45)]
    assert all(b.request_count == 0 for b in buckets)


def test_single_step_covers_whole_range():
    buckets = aggregate([Record(_at(0), 1), Record(_at(60), 2)], START, _at(60), 1)
    assert len(buckets) == 1
    assert buckets[0].request_count == 3


def test_records_land_in_their_window():
    records = [
        Record(_at(1), 5),
        Record(_at(2), 7),
        Record(_at(20), 1),
        Record(_at(50), 10),
    ]
    buckets = aggregate(records, START, _at(60), 4)
    assert [b.request_count for b in buckets] == [12, 1, 0, 10]


def test_boundary_record_counts_in_both_buckets():
    buckets = aggregate([Record(_at(15), 3)], START, _at(60), 4)
    assert [b.request_count for b in buckets] == [3, 3, 0, 0]


def test_sum_preserved_for_records_off_the_edges():
    records = [Record(_at(m), m) for m in (1, 7, 16, 29, 31, 44, 46, 59)]
    buckets = aggregate(records, START, _at(60), 4)
    assert sum(b.request_count for b in buckets) == sum(r.request_count for r in records)


def test_width_truncates_to_milliseconds():
    end = START + timedelta(milliseconds=1000)
    assert bucket_width(START, end, 3) == timedelta(milliseconds=333)

    buckets = aggregate([], START, end, 3)
    assert buckets[-1].timestamp == START + timedelta(milliseconds=666)


def test_naive_datetimes_are_utc():
    records = [Record(_at(5).replace(tzinfo=None), 4)]
    buckets = aggregate(records, START, _at(60), 2)
    assert [b.request_count for b in buckets] == [4, 0]


@pytest.mark.parametrize(
    "start, end, steps, message",
    [
        (START, _at(60), 0, "step must be a positive integer"),
        (START, _at(60), -3, "step must be a positive integer"),
        (START, _at(60), MAX_STEPS + 1, f"step must be at most {MAX_STEPS}"),
        (_at(60), START, 4, "from must be earlier than to"),
        (START, START, 4, "from must be earlier than to"),
        (START, START + timedelta(milliseconds=3), 4, "range is too short for that many steps"),
    ],
    ids=["zero-steps", "negative-steps", "too-many-steps", "reversed", "empty", "zero-width"],
)
def test_invalid_ranges(start, end, steps, message):
    with pytest.raises(ValidationError) as exc:
        check_range(start, end, steps)
    assert exc.value.message == message

    with pytest.raises(ValidationError):
        aggregate([], start, end, steps)
