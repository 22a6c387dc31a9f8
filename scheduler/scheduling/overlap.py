"""Half-open interval overlap checks used for double-booking detection."""

from collections.abc import Iterable

from scheduler.scheduling.intervals import Interval


def overlaps(a: Interval, b: Interval) -> bool:
    # [start, end): back-to-back intervals do not collide.
    return a.start < b.end and b.start < a.end


def find_conflicts(candidate: Interval, booked: Iterable[Interval]) -> list[Interval]:
    return [interval for interval in booked if overlaps(candidate, interval)]


def has_conflict(candidate: Interval, booked: Iterable[Interval]) -> bool:
    return any(overlaps(candidate, interval) for interval in booked)
