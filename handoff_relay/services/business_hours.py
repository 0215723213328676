"""Business-hours gate for human agent escalation."""

from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import Callable, FrozenSet, Iterable, Optional, Tuple
from zoneinfo import ZoneInfo


@dataclass(frozen=True)
class OpenInterval:
    start: time
    end: time

    def __post_init__(self):
        if self.start.tzinfo is not None or self.end.tzinfo is not None:
            raise ValueError("Interval times must not carry a UTC offset, use business_timezone instead")
        if self.start >= self.end:
            raise ValueError(f"Interval start {self.start} must be before end {self.end}")

    def contains(self, moment: time) -> bool:
        return self.start < moment < self.end

    def label(self) -> str:
        return f"{_short_time(self.start)} - {_short_time(self.end)}"


@dataclass(frozen=True)
class BusinessHoursPolicy:
    intervals: Tuple[OpenInterval, ...]
    closed_weekdays: FrozenSet[int] = field(default_factory=frozenset)

    def __post_init__(self):
        ordered = tuple(sorted(self.intervals, key=lambda interval: interval.start))
        for previous, current in zip(ordered, ordered[1:]):
            if current.start < previous.end:
                raise ValueError(f"Overlapping intervals: {previous.label()} and {current.label()}")
        for weekday in self.closed_weekdays:
            if weekday not in range(7):
                raise ValueError(f"Invalid weekday {weekday}, expected 0 (Monday) to 6 (Sunday)")
        object.__setattr__(self, "intervals", ordered)
        object.__setattr__(self, "closed_weekdays", frozenset(self.closed_weekdays))

    @classmethod
    def from_strings(cls, intervals: Iterable[str], closed_weekdays: Iterable[int] = ()) -> "BusinessHoursPolicy":
        """Build a policy from ``"HH:MM[:SS]-HH:MM[:SS]"`` interval strings."""
        return cls(
            intervals=tuple(parse_interval(raw) for raw in intervals),
            closed_weekdays=frozenset(closed_weekdays),
        )

    def describe_hours(self) -> str:
        return " / ".join(interval.label() for interval in self.intervals)

    def open_weekdays(self) -> list[int]:
        return [weekday for weekday in range(7) if weekday not in self.closed_weekdays]


def parse_interval(raw: str) -> OpenInterval:
    try:
        start_raw, end_raw = (part.strip() for part in raw.split("-"))
        return OpenInterval(start=time.fromisoformat(start_raw), end=time.fromisoformat(end_raw))
    except ValueError as e:
        raise ValueError(f"Invalid business hours interval {raw!r}: {e}") from e


def _short_time(value: time) -> str:
    return f"{value.hour}:{value.minute:02d}"


def is_open(now: datetime, policy: BusinessHoursPolicy) -> bool:
    """Check whether ``now`` falls strictly inside an open interval on an open day."""
    if now.weekday() in policy.closed_weekdays:
        return False
    moment = now.time()
    return any(interval.contains(moment) for interval in policy.intervals)


def business_now(
    offset_hours: float = 0.0,
    timezone_name: Optional[str] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> datetime:
    """
    Current time as the business-hours gate should see it.

    ``clock`` defaults to the server's local wall clock, or to the given IANA
    zone when ``timezone_name`` is set. ``offset_hours`` is added on top and
    applies to both the weekday and the time of day.
    """
    if clock is not None:
        now = clock()
    elif timezone_name:
        now = datetime.now(ZoneInfo(timezone_name))
    else:
        now = datetime.now()
    return now + timedelta(hours=offset_hours)
