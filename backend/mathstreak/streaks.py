"""Daily activity streak arithmetic."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


@dataclass(frozen=True)
class StreakUpdate:
    current: int
    best: int
    updated: bool


def resolve_timezone(name: Optional[str]) -> tzinfo:
    if not name or name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError as exc:
        raise ValueError(f"Unknown streak timezone '{name}'.") from exc


def calendar_day(moment: datetime, tz: tzinfo) -> date:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(tz).date()


def calculate_streak(
    current_streak: int,
    best_streak: int,
    last_activity: Optional[datetime],
    now: datetime,
    tz: tzinfo = timezone.utc,
) -> StreakUpdate:
    """Recompute the streak from calendar days, ignoring the time of day."""
    if last_activity is None:
        new_streak = 1
        updated = True
    else:
        days = (calendar_day(now, tz) - calendar_day(last_activity, tz)).days
        if days == 1:
            new_streak = current_streak + 1
            updated = True
        elif days > 1:
            new_streak = 1
            updated = True
        else:
            # Same day, or a last activity recorded ahead of the clock.
            new_streak = current_streak
            updated = False
    return StreakUpdate(current=new_streak, best=max(best_streak, new_streak), updated=updated)


__all__ = [
    "StreakUpdate",
    "calculate_streak",
    "calendar_day",
    "resolve_timezone",
]
