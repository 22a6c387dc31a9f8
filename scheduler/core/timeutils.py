from datetime import datetime
from zoneinfo import ZoneInfo

from scheduler.core import config


def scheduler_zone() -> ZoneInfo:
    return ZoneInfo(config.SCHEDULER_TIMEZONE)


def to_local_naive(value: datetime) -> datetime:
    """Express ``value`` as naive wall-clock time in the scheduler's zone.

    Naive values are assumed to already be local. Seconds are dropped so
    stored instants line up with minute-precision weekly rules.
    """
    if value.tzinfo is not None:
        value = value.astimezone(scheduler_zone()).replace(tzinfo=None)
    return value.replace(second=0, microsecond=0)


def local_now() -> datetime:
    return datetime.now(scheduler_zone()).replace(tzinfo=None)
