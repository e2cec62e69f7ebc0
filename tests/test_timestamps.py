"""Tests for timestamp parsing, sampling and placement policies."""

import random
from datetime import datetime, timedelta, timezone

import pytest

from correlator.builder.timestamp_gen import (
    OffsetPolicy,
    TimeRange,
    TimestampSampler,
    WindowPolicy,
    format_timestamp,
    parse_relative_date,
    parse_timestamp,
    resolve_window,
)
from correlator.config import TimestampConfig, TimestampPattern


START = datetime(2025, 1, 6, tzinfo=timezone.utc)
END = datetime(2025, 1, 20, tzinfo=timezone.utc)


def test_time_range_parsing():
    delay = TimeRange.from_string("2m-30m")
    assert (delay.min_seconds, delay.max_seconds) == (120, 1800)
    assert TimeRange.from_string("1h").min_seconds == 3600
    with pytest.raises(ValueError):
        TimeRange.from_string("sometime")


def test_whole_minute_delays():
    rng = random.Random(1)
    delay = TimeRange.from_string("2m-30m")
    values = [delay.random_whole_minutes(rng) for _ in range(200)]
    assert min(values) >= 2
    assert max(values) <= 30
    assert TimeRange.from_string("10s").random_whole_minutes(rng) == 1


def test_parse_and_format():
    dt = parse_timestamp("2025-01-01T10:00:00Z")
    assert dt == datetime(2025, 1, 1, 10, tzinfo=timezone.utc)
    assert parse_timestamp(datetime(2025, 1, 1, 10)).tzinfo is not None
    assert format_timestamp(dt + timedelta(microseconds=123456)) == "2025-01-01T10:00:00.123Z"


def test_relative_dates():
    now = datetime(2025, 1, 10, tzinfo=timezone.utc)
    assert parse_relative_date("now", now) == now
    assert parse_relative_date("7d", now) == now - timedelta(days=7)
    assert parse_relative_date("6h", now) == now - timedelta(hours=6)

    start, end = resolve_window(TimestampConfig(start_date="now", end_date="2d"), now)
    assert (start, end) == (now - timedelta(days=2), now)

    start, end = resolve_window(TimestampConfig(offset_hours=12), now)
    assert end - start == timedelta(hours=12)


@pytest.mark.parametrize("pattern", list(TimestampPattern))
def test_samples_stay_in_window(pattern):
    sampler = TimestampSampler(random.Random(3))
    samples = sampler.sample_many(100, START, END, pattern)
    assert samples == sorted(samples)
    assert all(START <= s <= END for s in samples)


def test_business_hours_prefers_weekdays():
    sampler = TimestampSampler(random.Random(4))
    samples = [sampler.sample(START, END, TimestampPattern.BUSINESS_HOURS) for _ in range(300)]
    weekday = sum(1 for s in samples if s.weekday() < 5)
    assert weekday > 200


def test_policies(anchor):
    offsets = [timedelta(minutes=10), timedelta(minutes=1)]
    assert OffsetPolicy().place(offsets, anchor, random.Random()) == [
        anchor - timedelta(minutes=10), anchor - timedelta(minutes=1),
    ]

    policy = WindowPolicy(anchor + timedelta(hours=1), anchor - timedelta(hours=1))
    assert policy.start < policy.end

    clamped = policy.clamped(anchor)
    assert clamped.end == anchor
    placed = clamped.place(offsets, anchor, random.Random(5))
    assert all(anchor - timedelta(hours=1) <= t <= anchor for t in placed)

    # Window entirely after the alert collapses onto the alert time
    late = WindowPolicy(anchor + timedelta(hours=1), anchor + timedelta(hours=2)).clamped(anchor)
    assert late.start == late.end == anchor
