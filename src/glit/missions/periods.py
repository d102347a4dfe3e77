"""Mission period boundaries (UTC)."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

from glit.missions.templates import MissionType


def get_monday(dt: datetime | date) -> date:
    """Get the Monday of the ISO week containing dt."""
    d = dt.date() if isinstance(dt, datetime) else dt
    return d - timedelta(days=d.weekday())


def get_day_boundaries(dt: datetime | None = None) -> tuple[datetime, datetime]:
    """Get (00:00, 23:59:59.999999) UTC for the day containing dt."""
    if dt is None:
        dt = datetime.now(timezone.utc)
    day = dt.astimezone(timezone.utc).date()
    return (
        datetime.combine(day, time.min, tzinfo=timezone.utc),
        datetime.combine(day, time.max, tzinfo=timezone.utc),
    )


def get_week_boundaries(dt: datetime | None = None) -> tuple[datetime, datetime]:
    """Get (Monday 00:00 UTC, Sunday 23:59:59.999999 UTC) for the ISO week containing dt."""
    if dt is None:
        dt = datetime.now(timezone.utc)
    monday = get_monday(dt.astimezone(timezone.utc))
    sunday = monday + timedelta(days=6)
    return (
        datetime.combine(monday, time.min, tzinfo=timezone.utc),
        datetime.combine(sunday, time.max, tzinfo=timezone.utc),
    )


def get_period_boundaries(
    mission_type: MissionType,
    now: datetime,
    special_days: int = 7,
) -> tuple[datetime, datetime]:
    """Start and end of the period a new mission of ``mission_type`` covers."""
    if mission_type == MissionType.DAILY:
        return get_day_boundaries(now)
    if mission_type == MissionType.WEEKLY:
        return get_week_boundaries(now)
    return now, now + timedelta(days=special_days)
