"""
Day and week windows in the reference timezone.

Weeks start Monday 00:00:00.000 and end Sunday 23:59:59.999. Windows are
built from calendar dates, so a week spanning a DST change still covers
exactly seven calendar days.
"""
from datetime import date, datetime, time, timedelta, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from config.settings import settings
from core.exceptions import ConfigurationError
from schemas.notifications import TimeWindow

END_OF_DAY = time(23, 59, 59, 999000)


def resolve_timezone(tz: tzinfo | str | None = None) -> tzinfo:
    if tz is None:
        tz = settings.SCHEDULER_TIMEZONE
    if isinstance(tz, tzinfo):
        return tz
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigurationError(f"Unknown timezone '{tz}'", operation="resolve_timezone") from exc


def local_date(reference: datetime, tz: tzinfo | str | None = None) -> date:
    """Calendar date of ``reference`` in the reference timezone."""
    zone = resolve_timezone(tz)
    if reference.tzinfo is None:
        return reference.date()
    return reference.astimezone(zone).date()


def _window_for_dates(first: date, last: date, zone: tzinfo) -> TimeWindow:
    return TimeWindow(
        start=datetime.combine(first, time.min, tzinfo=zone),
        end=datetime.combine(last, END_OF_DAY, tzinfo=zone),
    )


def day_window(reference: datetime, tz: tzinfo | str | None = None) -> TimeWindow:
    """[midnight, midnight + 1 day - 1 ms] of the day containing ``reference``."""
    zone = resolve_timezone(tz)
    day = local_date(reference, zone)
    return _window_for_dates(day, day, zone)


def week_window(
    reference: datetime,
    week_offset: int = 0,
    tz: tzinfo | str | None = None,
) -> TimeWindow:
    """
    Monday-to-Sunday window of the week containing ``reference``, shifted
    by ``week_offset`` whole weeks (0 = current week, -1 = previous week).

    A Sunday belongs to the week that started the preceding Monday.
    """
    zone = resolve_timezone(tz)
    day = local_date(reference, zone)
    monday = day - timedelta(days=day.weekday()) + timedelta(weeks=week_offset)
    return _window_for_dates(monday, monday + timedelta(days=6), zone)


def ensure_utc(instant: datetime | None) -> datetime | None:
    """Attach UTC to naive values read back from backends that drop offsets."""
    if instant is None:
        return None
    if instant.tzinfo is None:
        return instant.replace(tzinfo=ZoneInfo("UTC"))
    return instant.astimezone(ZoneInfo("UTC"))
