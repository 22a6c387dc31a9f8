"""Time values the scheduler reasons about.

``WeeklyRule`` is a recurring window on one weekday, expressed as a start and
end time of day. ``Interval`` and ``BookableSlot`` are concrete, dated,
half-open ``[start, end)`` ranges.
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from enum import IntEnum

from scheduler.core.errors import InvalidInputError

MINUTES_PER_DAY = 24 * 60


class DayOfWeek(IntEnum):
    """Weekday numbered like ``date.weekday()`` (Monday is 0)."""

    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @property
    def label(self) -> str:
        return self.name.lower()

    @property
    def display_name(self) -> str:
        return self.name.capitalize()

    @property
    def index(self) -> int:
        """Number used on the wire: 1 is Monday, 7 is Sunday."""
        return int(self) + 1

    @classmethod
    def parse(cls, value: 'DayOfWeek | int | str') -> 'DayOfWeek':
        """Accept a day name or a wire index (see ``from_index``)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise InvalidInputError(f'Invalid day of week: {value!r}.')
        if isinstance(value, int):
            return cls.from_index(value)
        if isinstance(value, str):
            normalized = value.strip().upper()
            if normalized.isdigit():
                return cls.parse(int(normalized))
            try:
                return cls[normalized]
            except KeyError:
                raise InvalidInputError(f'Invalid day of week: {value!r}.') from None
        raise InvalidInputError(f'Invalid day of week: {value!r}.')

    @classmethod
    def from_index(cls, value: int) -> 'DayOfWeek':
        """Convert a wire index: 1..7 is Monday..Sunday, and 0 is also Sunday."""
        if not 0 <= value <= 7:
            raise InvalidInputError(f'Invalid day of week: {value!r}.')
        return cls((value - 1) % 7)


def minutes_of(moment: time) -> int:
    return moment.hour * 60 + moment.minute


def time_from_minutes(total_minutes: int) -> time:
    if not 0 <= total_minutes < MINUTES_PER_DAY:
        raise InvalidInputError('Availability windows cannot cross midnight.')
    return time(total_minutes // 60, total_minutes % 60)


def build_time(hour: int, minute: int) -> time:
    if not 0 <= hour <= 23 or not 0 <= minute <= 59:
        raise InvalidInputError(f'Invalid time of day: {hour:02d}:{minute:02d}.')
    return time(hour, minute)


@dataclass(frozen=True)
class Interval:
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise InvalidInputError('Start must be before end.')


@dataclass(frozen=True)
class WeeklyRule:
    day: DayOfWeek
    start: time
    end: time
    rule_id: int | None = None

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise InvalidInputError('Availability end time must be after its start time on the same day.')

    @classmethod
    def from_duration(
        cls,
        day: DayOfWeek | int | str,
        start_hour: int,
        start_minute: int,
        duration_minutes: int,
        rule_id: int | None = None,
    ) -> 'WeeklyRule':
        if duration_minutes <= 0:
            raise InvalidInputError('Duration must be at least one minute.')
        start = build_time(start_hour, start_minute)
        end = time_from_minutes(minutes_of(start) + duration_minutes)
        return cls(day=DayOfWeek.parse(day), start=start, end=end, rule_id=rule_id)

    @property
    def duration_minutes(self) -> int:
        return minutes_of(self.end) - minutes_of(self.start)

    def on(self, day: date) -> Interval:
        return Interval(datetime.combine(day, self.start), datetime.combine(day, self.end))

    def contains(self, interval: Interval) -> bool:
        if interval.start.weekday() != self.day:
            return False
        window = self.on(interval.start.date())
        return window.start <= interval.start and interval.end <= window.end


@dataclass(frozen=True)
class BookableSlot:
    start: datetime
    end: datetime
    day: DayOfWeek
    rule_id: int | None = None

    @property
    def interval(self) -> Interval:
        return Interval(self.start, self.end)

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)
