"""
Timestamp generation for correlated logs and detection delays.

Two placement policies are supported: fixed offsets counted back from an
anchor timestamp (single-alert realism), and sampling from an absolute
window (multi-stage campaign windows). Window sampling supports several
distribution patterns with business-hours and weekend awareness.
"""

import random
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence, Tuple, Union

from ..config.models import TimestampConfig, TimestampPattern


@dataclass
class TimeRange:
    """Represents a time range (min, max) in seconds."""

    min_seconds: float
    max_seconds: float

    @classmethod
    def from_string(cls, range_str: str) -> "TimeRange":
        """
        Parse a time range string.

        Supports formats like:
        - "5s" (5 seconds)
        - "2m-30m" (2 to 30 minutes)
        - "30m-2h" (30 minutes to 2 hours)
        - "1d" (1 day)
        """
        pattern = re.compile(r"(\d+)(ms|s|m|h|d|w)")

        if "-" in range_str:
            min_str, max_str = range_str.split("-", 1)
            min_match = pattern.fullmatch(min_str.strip())
            max_match = pattern.fullmatch(max_str.strip())

            if not min_match or not max_match:
                raise ValueError(f"Invalid time range format: {range_str}")

            min_seconds = cls._to_seconds(int(min_match.group(1)), min_match.group(2))
            max_seconds = cls._to_seconds(int(max_match.group(1)), max_match.group(2))
        else:
            match = pattern.fullmatch(range_str.strip())
            if not match:
                raise ValueError(f"Invalid time format: {range_str}")
            seconds = cls._to_seconds(int(match.group(1)), match.group(2))
            min_seconds = seconds
            max_seconds = seconds

        if min_seconds > max_seconds:
            min_seconds, max_seconds = max_seconds, min_seconds

        return cls(min_seconds=min_seconds, max_seconds=max_seconds)

    @staticmethod
    def _to_seconds(value: int, unit: str) -> float:
        """Convert value and unit to seconds."""
        multipliers = {
            "ms": 0.001,
            "s": 1,
            "m": 60,
            "h": 3600,
            "d": 86400,
            "w": 604800,
        }
        return value * multipliers.get(unit, 1)

    def whole_minutes(self) -> Tuple[int, int]:
        """Inclusive (low, high) whole-minute bounds inside the range; low is at least 1."""
        return max(1, int(-(-self.min_seconds // 60))), int(self.max_seconds // 60)

    def random_whole_minutes(self, rng: random.Random) -> int:
        """Random whole number of minutes within the range (at least 1)."""
        low, high = self.whole_minutes()
        return rng.randint(low, max(low, high))

    def contains(self, seconds: float) -> bool:
        return self.min_seconds <= seconds <= self.max_seconds


# ============================================================
# Parsing and formatting
# ============================================================

def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    """Parse an ISO-8601 string (or datetime) into an aware UTC datetime."""
    if isinstance(value, datetime):
        dt = value
    else:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    """Format a datetime as ISO-8601 UTC with millisecond precision."""
    dt = parse_timestamp(dt)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


_RELATIVE = re.compile(r"^(\d+)([mhdwMy])$")


def parse_relative_date(value: str, now: Optional[datetime] = None) -> datetime:
    """
    Resolve "now", relative offsets into the past ("7d", "6h") or ISO dates.
    """
    now = now or utcnow()
    if value == "now":
        return now

    match = _RELATIVE.match(value)
    if not match:
        return parse_timestamp(value)

    amount, unit = int(match.group(1)), match.group(2)
    deltas = {
        "m": timedelta(minutes=amount),
        "h": timedelta(hours=amount),
        "d": timedelta(days=amount),
        "w": timedelta(weeks=amount),
        "M": timedelta(days=30 * amount),
        "y": timedelta(days=365 * amount),
    }
    return now - deltas[unit]


def resolve_window(
    config: Optional[TimestampConfig], now: Optional[datetime] = None
) -> Tuple[datetime, datetime]:
    """Turn a TimestampConfig into an ordered (start, end) pair."""
    now = now or utcnow()
    config = config or TimestampConfig()

    if not config.start_date and not config.end_date:
        return now - timedelta(hours=config.offset_hours), now

    start = parse_relative_date(config.start_date, now) if config.start_date else now - timedelta(days=7)
    end = parse_relative_date(config.end_date, now) if config.end_date else now

    if start > end:
        start, end = end, start
    return start, end


# ============================================================
# Window sampling
# ============================================================

class TimestampSampler:
    """
    Samples timestamps inside a window following a distribution pattern.

    Every sampled value lies inside the window; patterns that would
    escape it fall back to uniform sampling.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def sample(
        self,
        start: datetime,
        end: datetime,
        pattern: TimestampPattern = TimestampPattern.UNIFORM,
    ) -> datetime:
        if pattern == TimestampPattern.BUSINESS_HOURS:
            candidate = self._business_hours(start, end)
        elif pattern == TimestampPattern.ATTACK_SIMULATION:
            candidate = self._attack_simulation(start, end)
        elif pattern == TimestampPattern.WEEKEND_HEAVY:
            candidate = self._weekend(start, end) if self.rng.random() < 0.6 else self._uniform(start, end)
        elif pattern == TimestampPattern.RANDOM:
            candidate = self._random(start, end)
        else:
            candidate = self._uniform(start, end)

        if not start <= candidate <= end:
            return self._uniform(start, end)
        return candidate

    def sample_many(
        self,
        count: int,
        start: datetime,
        end: datetime,
        pattern: TimestampPattern = TimestampPattern.UNIFORM,
    ) -> List[datetime]:
        """Sample ``count`` timestamps, returned in ascending order."""
        return sorted(self.sample(start, end, pattern) for _ in range(count))

    def from_config(self, config: Optional[TimestampConfig], now: Optional[datetime] = None) -> datetime:
        start, end = resolve_window(config, now)
        pattern = config.pattern if config else TimestampPattern.UNIFORM
        return self.sample(start, end, pattern)

    def _uniform(self, start: datetime, end: datetime) -> datetime:
        span = (end - start).total_seconds()
        return start + timedelta(seconds=self.rng.random() * span)

    def _random(self, start: datetime, end: datetime) -> datetime:
        # Skewed toward the window edges for higher variance
        span = (end - start).total_seconds()
        return start + timedelta(seconds=self.rng.betavariate(0.5, 0.5) * span)

    def _business_hours(self, start: datetime, end: datetime) -> datetime:
        days = (end - start).days
        if days <= 0 or self.rng.random() >= 0.7:
            return self._uniform(start, end)

        day = start + timedelta(days=self.rng.randrange(days + 1))
        while day.weekday() >= 5:
            day += timedelta(days=1)
            if day > end:
                return self._uniform(start, end)

        return day.replace(
            hour=self.rng.randint(9, 17),
            minute=self.rng.randint(0, 59),
            second=self.rng.randint(0, 59),
            microsecond=0,
        )

    def _attack_simulation(self, start: datetime, end: datetime) -> datetime:
        mode = self.rng.choice(["late_night", "burst", "weekend", "normal"])
        if mode == "late_night":
            base = self._uniform(start, end)
            hour = self.rng.choice([23, 0, 1, 2, 3])
            return base.replace(hour=hour, minute=self.rng.randint(0, 59), second=self.rng.randint(0, 59))
        if mode == "burst":
            return self._uniform(start, end) + timedelta(minutes=self.rng.random() * 15)
        if mode == "weekend":
            return self._weekend(start, end)
        return self._uniform(start, end)

    def _weekend(self, start: datetime, end: datetime) -> datetime:
        for _ in range(20):
            candidate = self._uniform(start, end)
            if candidate.weekday() >= 5:
                return candidate
        return self._uniform(start, end)


# ============================================================
# Placement policies
# ============================================================

class OffsetPolicy:
    """Place each slot at ``anchor - offset`` (deterministic narrative)."""

    def place(
        self,
        offsets: Sequence[timedelta],
        anchor: datetime,
        rng: random.Random,
    ) -> List[datetime]:
        return [anchor - offset for offset in offsets]


class WindowPolicy:
    """
    Sample slot timestamps from an absolute window.

    Sampled values are sorted so that they follow narrative order.
    """

    def __init__(
        self,
        start: datetime,
        end: datetime,
        pattern: TimestampPattern = TimestampPattern.UNIFORM,
    ):
        start, end = parse_timestamp(start), parse_timestamp(end)
        if start > end:
            start, end = end, start
        self.start = start
        self.end = end
        self.pattern = pattern

    @classmethod
    def from_config(cls, config: TimestampConfig, now: Optional[datetime] = None) -> "WindowPolicy":
        start, end = resolve_window(config, now)
        return cls(start, end, config.pattern)

    def clamped(self, latest: datetime) -> "WindowPolicy":
        """Copy of this policy whose window ends no later than ``latest``."""
        end = min(self.end, latest)
        start = min(self.start, end)
        return WindowPolicy(start, end, self.pattern)

    def place(
        self,
        offsets: Sequence[timedelta],
        anchor: datetime,
        rng: random.Random,
    ) -> List[datetime]:
        sampler = TimestampSampler(rng)
        return sampler.sample_many(len(offsets), self.start, self.end, self.pattern)
