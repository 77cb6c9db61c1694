from datetime import datetime, time, timedelta, timezone
from typing import Tuple
from zoneinfo import ZoneInfo

from pizzacraft.core.config import STORE_TIMEZONE


def store_tz() -> ZoneInfo:
    return ZoneInfo(STORE_TIMEZONE)


def now() -> datetime:
    """Current time as an aware datetime in the store's timezone."""
    return datetime.now(store_tz())


def start_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time.min, tzinfo=moment.tzinfo)


def day_range(moment: datetime) -> Tuple[datetime, datetime]:
    """[start, end) of the calendar day containing ``moment``."""
    start = start_of_day(moment)
    return start, start + timedelta(days=1)


def start_of_month(moment: datetime) -> datetime:
    return start_of_day(moment).replace(day=1)


def to_utc(moment: datetime) -> datetime:
    """Database values are stored and compared in UTC."""
    return moment.astimezone(timezone.utc)
