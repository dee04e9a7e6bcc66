"""Clock helpers. Timestamps are stored as naive UTC; calendar days are clinic-local."""

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    """Naive UTC now, matching how DateTime columns are stored"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def clinic_now(tz_name: str) -> datetime:
    """Naive wall-clock time in the clinic's time zone"""
    return datetime.now(ZoneInfo(tz_name or "UTC")).replace(tzinfo=None)


def clinic_today(tz_name: str) -> date:
    return clinic_now(tz_name).date()


def local_day_bounds_utc(tz_name: str, day: date) -> tuple[datetime, datetime]:
    """[start, end) of a clinic-local calendar day as naive UTC datetimes"""
    tz = ZoneInfo(tz_name or "UTC")
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return (
        start.astimezone(timezone.utc).replace(tzinfo=None),
        end.astimezone(timezone.utc).replace(tzinfo=None),
    )
