"""
Per-domain data actions: preferences, device tokens, meals, water, measurements.

These are thin wrappers around the DbClient. "Today" is always the user's
local calendar day.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from fittrack.db import DbClient
from fittrack.errors import NotFoundError
from fittrack.scheduling import local_date_key, parse_hhmm, period_start, resolve_timezone
from shared.constants import MEASUREMENT_LOOKBACK_DAYS
from shared.types import (
    BodyMeasurement,
    DedupPeriod,
    MealDay,
    MealType,
    UserProfile,
    WaterEntry,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# -- meals -----------------------------------------------------------------

MealSetter = Callable[[MealDay, bool, Optional[float]], MealDay]


def _set_breakfast(day: MealDay, completed: bool, at: Optional[float]) -> MealDay:
    return replace(day, breakfast_completed=completed, breakfast_completed_at=at)


def _set_snack1(day: MealDay, completed: bool, at: Optional[float]) -> MealDay:
    return replace(day, snack1_completed=completed, snack1_completed_at=at)


def _set_lunch(day: MealDay, completed: bool, at: Optional[float]) -> MealDay:
    return replace(day, lunch_completed=completed, lunch_completed_at=at)


def _set_snack2(day: MealDay, completed: bool, at: Optional[float]) -> MealDay:
    return replace(day, snack2_completed=completed, snack2_completed_at=at)


def _set_dinner(day: MealDay, completed: bool, at: Optional[float]) -> MealDay:
    return replace(day, dinner_completed=completed, dinner_completed_at=at)


MEAL_SETTERS: dict[MealType, MealSetter] = {
    MealType.BREAKFAST: _set_breakfast,
    MealType.SNACK1: _set_snack1,
    MealType.LUNCH: _set_lunch,
    MealType.SNACK2: _set_snack2,
    MealType.DINNER: _set_dinner,
}

MEAL_COMPLETED: dict[MealType, Callable[[MealDay], bool]] = {
    MealType.BREAKFAST: lambda d: d.breakfast_completed,
    MealType.SNACK1: lambda d: d.snack1_completed,
    MealType.LUNCH: lambda d: d.lunch_completed,
    MealType.SNACK2: lambda d: d.snack2_completed,
    MealType.DINNER: lambda d: d.dinner_completed,
}


def meals_completed(day: Optional[MealDay]) -> int:
    if day is None:
        return 0
    return sum(1 for is_done in MEAL_COMPLETED.values() if is_done(day))


def is_meal_completed(day: Optional[MealDay], meal: MealType) -> bool:
    return day is not None and MEAL_COMPLETED[meal](day)


def require_user(db: DbClient, user_id: str) -> UserProfile:
    user = db.get_user(user_id)
    if not user:
        raise NotFoundError("user", user_id)
    return user


def get_today_meals(
    db: DbClient, user_id: str, now: Optional[datetime] = None
) -> Optional[MealDay]:
    user = require_user(db, user_id)
    return db.get_meal_day(user_id, local_date_key(user.timezone, now))


def toggle_meal(
    db: DbClient,
    user_id: str,
    meal: MealType,
    completed: bool,
    now: Optional[datetime] = None,
) -> MealDay:
    """Update exactly one meal's completion fields on today's record, creating it if needed."""
    now = now or _utcnow()
    user = require_user(db, user_id)
    today = local_date_key(user.timezone, now)
    day = db.get_meal_day(user_id, today) or MealDay(user_id=user_id, date=today)
    stamp = now.timestamp()
    day = MEAL_SETTERS[meal](day, completed, stamp if completed else None)
    day = replace(day, updated_at=stamp)
    db.save_meal_day(day)
    return day


# -- preferences -------------------------------------------------------------

_PROFILE_FIELDS = {
    "full_name",
    "timezone",
    "notifications_enabled",
    "meal_reminders_enabled",
    "water_reminders_enabled",
    "weekly_reminders_enabled",
    "breakfast_time",
    "snack1_time",
    "lunch_time",
    "snack2_time",
    "dinner_time",
}
_MEAL_TIME_FIELDS = {"breakfast_time", "snack1_time", "lunch_time", "snack2_time", "dinner_time"}
_FLAG_FIELDS = {
    "notifications_enabled",
    "meal_reminders_enabled",
    "water_reminders_enabled",
    "weekly_reminders_enabled",
}


def normalize_meal_time(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return None
    parsed = parse_hhmm(value)
    if parsed is None:
        raise ValueError(f"meal time must be HH:MM, got {value!r}")
    return f"{parsed[0]:02d}:{parsed[1]:02d}"


def normalize_timezone(value: Optional[str], default: str) -> str:
    return str(resolve_timezone(value, default))


def update_preferences(
    db: DbClient, user_id: str, changes: dict[str, Any], default_timezone: str
) -> UserProfile:
    """Apply a partial update, creating the profile on first write."""
    unknown = set(changes) - _PROFILE_FIELDS
    if unknown:
        raise ValueError(f"unknown preference fields: {sorted(unknown)}")
    user = db.get_user(user_id) or UserProfile(user_id=user_id, timezone=default_timezone)
    cleaned = dict(changes)
    for name in sorted(_FLAG_FIELDS & set(cleaned)):
        if cleaned[name] is None:
            raise ValueError(f"{name} must be true or false")
    for name in _MEAL_TIME_FIELDS & set(cleaned):
        cleaned[name] = normalize_meal_time(cleaned[name])
    if "timezone" in cleaned:
        cleaned["timezone"] = normalize_timezone(cleaned["timezone"], default_timezone)
    return db.save_user(replace(user, **cleaned))


# -- device tokens -----------------------------------------------------------


def register_token(db: DbClient, user_id: str, token: str) -> bool:
    """Returns False when the token was already registered for this user."""
    created = db.save_token(user_id, token)
    if created:
        logger.info("Registered device token for user %s", user_id)
    return created


def remove_token(db: DbClient, user_id: str, token: str) -> int:
    return db.delete_tokens([token], user_id=user_id)


def cleanup_invalid_tokens(db: DbClient, user_id: str, tokens: list[str]) -> int:
    removed = db.delete_tokens(tokens, user_id=user_id)
    logger.info("Removed %d invalid token(s) for user %s", removed, user_id)
    return removed


# -- water -------------------------------------------------------------------


def add_water(
    db: DbClient, user_id: str, glass_count: int = 1, now: Optional[datetime] = None
) -> WaterEntry:
    if glass_count < 1:
        raise ValueError("glass_count must be at least 1")
    require_user(db, user_id)
    now = now or _utcnow()
    return db.add_water_entry(user_id, glass_count, now.timestamp())


def today_water(
    db: DbClient, user_id: str, now: Optional[datetime] = None
) -> tuple[list[WaterEntry], int]:
    """Today's entries (newest first) and the total glass count."""
    user = require_user(db, user_id)
    now = now or _utcnow()
    start = period_start(DedupPeriod.DAILY, user.timezone, now)
    end = start + timedelta(days=1)
    entries = db.list_water_entries(user_id, start.timestamp(), end.timestamp())
    return entries, sum(e.glass_count for e in entries)


# -- measurements ------------------------------------------------------------


def add_measurement(
    db: DbClient,
    user_id: str,
    measurement_type: str,
    value: float,
    date: Optional[str] = None,
    unit: Optional[str] = None,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> BodyMeasurement:
    user = require_user(db, user_id)
    if value <= 0:
        raise ValueError("measurement value must be positive")
    measurement = BodyMeasurement(
        measurement_id=uuid.uuid4().hex,
        user_id=user_id,
        measurement_type=measurement_type.strip().lower(),
        value=value,
        date=date or local_date_key(user.timezone, now),
        unit=unit,
        notes=notes,
        created_at=time.time(),
    )
    db.add_measurement(measurement)
    return measurement


def recent_measurement_flags(
    db: DbClient, user: UserProfile, now: Optional[datetime] = None
) -> tuple[bool, bool]:
    """(logged weight, logged other measurements) within the lookback window."""
    now = now or _utcnow()
    since = local_date_key(user.timezone, now - timedelta(days=MEASUREMENT_LOOKBACK_DAYS))
    recent = db.list_measurements(user.user_id, since_date=since)
    has_weight = any(m.measurement_type == "weight" for m in recent)
    has_body = any(m.measurement_type != "weight" for m in recent)
    return has_weight, has_body
