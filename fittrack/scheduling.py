"""
Timezone-aware firing windows for scheduled notifications.

Everything here is pure: callers pass "now" (an aware datetime) and an IANA
timezone name and get back whether a notification kind should fire plus the
local time it was evaluated against. Local time always comes from converting
"now" with zoneinfo, so DST transitions are handled by the tz database.

The external scheduler triggers jobs hourly, so a window matches the whole
local hour (xx:00-xx:59). Whatever minute the trigger lands on, it falls in
the target hour exactly once, which amounts to a +/-30 minute tolerance
around the half hour.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from shared.constants import DEFAULT_TIMEZONE, SUNDAY
from shared.types import DedupPeriod

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocalTime:
    hour: int
    minute: int
    weekday: int
    date_key: str
    time_string: str
    timezone: str


@dataclass(frozen=True)
class WindowCheck:
    should_fire: bool
    local: LocalTime
    target_hour: int


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def resolve_timezone(name: Optional[str], default: str = DEFAULT_TIMEZONE) -> ZoneInfo:
    """Return the zone for ``name``, falling back to ``default`` instead of raising."""
    if name and name.strip():
        try:
            return ZoneInfo(name.strip())
        except (ZoneInfoNotFoundError, ValueError, OSError):
            # Region names such as "America" resolve to a tzdata directory.
            logger.debug("Unknown timezone %r, using %s", name, default)
    return ZoneInfo(default)


def _localize(tz_name: Optional[str], now: Optional[datetime]) -> datetime:
    now = now or _utcnow()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(resolve_timezone(tz_name))


def local_time(tz_name: Optional[str], now: Optional[datetime] = None) -> LocalTime:
    local = _localize(tz_name, now)
    return LocalTime(
        hour=local.hour,
        minute=local.minute,
        weekday=local.weekday(),
        date_key=local.date().isoformat(),
        time_string=local.strftime("%H:%M"),
        timezone=str(local.tzinfo),
    )


def local_date_key(tz_name: Optional[str], now: Optional[datetime] = None) -> str:
    """Local calendar date as ``YYYY-MM-DD``; the partition key for daily dedup."""
    return _localize(tz_name, now).date().isoformat()


def parse_hhmm(value: Optional[str]) -> Optional[tuple[int, int]]:
    """Parse ``HH:MM`` (seconds tolerated). Returns None for anything else."""
    if not value:
        return None
    parts = value.strip().split(":")
    if len(parts) < 2:
        return None
    try:
        hour, minute = int(parts[0]), int(parts[1])
    except ValueError:
        return None
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return hour, minute


def should_fire_at_fixed_hour(
    tz_name: Optional[str], target_hour: int, now: Optional[datetime] = None
) -> WindowCheck:
    local = local_time(tz_name, now)
    return WindowCheck(
        should_fire=local.hour == target_hour, local=local, target_hour=target_hour
    )


def anchor_target_hour(
    anchor_hhmm: Optional[str], offset_minutes: int, min_hour: int, max_hour: int
) -> int:
    """
    Hour-only arithmetic: anchor hour plus whole hours of offset, clamped.

    The anchor's minutes are ignored, so a 19:30 dinner with a 60 minute
    offset targets hour 20.
    """
    parsed = parse_hhmm(anchor_hhmm)
    if parsed is None:
        return min_hour
    target = parsed[0] + offset_minutes // 60
    return min(max_hour, max(min_hour, target))


def should_fire_relative_to_anchor(
    tz_name: Optional[str],
    anchor_hhmm: Optional[str],
    offset_minutes: int,
    min_hour: int,
    max_hour: int,
    now: Optional[datetime] = None,
) -> WindowCheck:
    target = anchor_target_hour(anchor_hhmm, offset_minutes, min_hour, max_hour)
    return should_fire_at_fixed_hour(tz_name, target, now)


def should_fire_weekly(
    tz_name: Optional[str],
    weekday: int,
    hour: int,
    now: Optional[datetime] = None,
) -> WindowCheck:
    local = local_time(tz_name, now)
    return WindowCheck(
        should_fire=local.weekday == weekday and local.hour == hour,
        local=local,
        target_hour=hour,
    )


def meal_reminder_hour(meal_time: Optional[str]) -> Optional[int]:
    """Reminders go out in the hour after the meal, wrapping past midnight."""
    parsed = parse_hhmm(meal_time)
    if parsed is None:
        return None
    return (parsed[0] + 1) % 24


def meal_day_key(meal_time: Optional[str], local: LocalTime) -> str:
    """
    Local date a meal reminder refers to. A reminder that wrapped past
    midnight (23:xx meal, hour 0 reminder) is about the previous day's meal.
    """
    parsed = parse_hhmm(meal_time)
    if parsed is not None and local.hour < parsed[0]:
        return (date.fromisoformat(local.date_key) - timedelta(days=1)).isoformat()
    return local.date_key


def _local_midnight(day: date, zone: ZoneInfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=zone)


def period_start(
    period: DedupPeriod, tz_name: Optional[str], now: Optional[datetime] = None
) -> datetime:
    """
    Start of the dedup period containing ``now``, as an aware UTC datetime.

    Daily periods start at local midnight, weekly ones at the most recent
    local Sunday midnight, hourly ones at the top of the local hour.
    """
    local = _localize(tz_name, now)
    zone = local.tzinfo
    if period == DedupPeriod.HOURLY:
        start = local.replace(minute=0, second=0, microsecond=0)
    elif period == DedupPeriod.WEEKLY:
        days_since_sunday = (local.weekday() - SUNDAY) % 7
        start = _local_midnight(local.date() - timedelta(days=days_since_sunday), zone)
    else:
        start = _local_midnight(local.date(), zone)
    return start.astimezone(timezone.utc)
