from collections import defaultdict
from collections.abc import Sequence
from datetime import date, timedelta

from scheduler.scheduling.intervals import BookableSlot, Interval, WeeklyRule


def iterate_days(range_start: date, range_end: date):
    current_day = range_start
    while current_day < range_end:
        yield current_day
        current_day += timedelta(days=1)


def expand(rules: Sequence[WeeklyRule], range_start: date, range_end: date) -> list[BookableSlot]:
    """Turn weekly rules into dated slots for every day in ``[range_start, range_end)``.

    Slots come back ordered by start; slots starting together keep the order
    of the rules they were generated from.
    """
    rules_by_day: dict[int, list[WeeklyRule]] = defaultdict(list)
    for rule in rules:
        rules_by_day[rule.day].append(rule)

    slots: list[BookableSlot] = []
    for current_day in iterate_days(range_start, range_end):
        for rule in rules_by_day.get(current_day.weekday(), []):
            window = rule.on(current_day)
            slots.append(BookableSlot(start=window.start, end=window.end, day=rule.day, rule_id=rule.rule_id))

    # sort is stable, so ties stay in rule order
    slots.sort(key=lambda slot: slot.start)
    return slots


def fits_availability(rules: Sequence[WeeklyRule], interval: Interval) -> bool:
    return any(rule.contains(interval) for rule in rules)
