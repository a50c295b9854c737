# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

import time
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Dict, Optional


class NotificationKind(StrEnum):
    GOOD_MORNING = "good_morning"
    GOOD_NIGHT = "good_night"
    WATER_REMINDER = "water_reminder"
    MEAL_REMINDER_BREAKFAST = "meal_reminder_breakfast"
    MEAL_REMINDER_SNACK1 = "meal_reminder_snack1"
    MEAL_REMINDER_LUNCH = "meal_reminder_lunch"
    MEAL_REMINDER_SNACK2 = "meal_reminder_snack2"
    MEAL_REMINDER_DINNER = "meal_reminder_dinner"
    WEEKLY_WEIGHT_REMINDER = "weekly_weight_reminder"
    WEEKLY_MEASUREMENT_REMINDER = "weekly_measurement_reminder"
    MEMBERSHIP_EXPIRING = "membership_expiring"
    MEMBERSHIP_EXPIRED = "membership_expired"
    FEEDBACK_REQUEST = "feedback_request"
    ADMIN_BROADCAST = "admin_broadcast"


class MealType(StrEnum):
    BREAKFAST = "breakfast"
    SNACK1 = "snack1"
    LUNCH = "lunch"
    SNACK2 = "snack2"
    DINNER = "dinner"


MEAL_REMINDER_KINDS: Dict[MealType, NotificationKind] = {
    MealType.BREAKFAST: NotificationKind.MEAL_REMINDER_BREAKFAST,
    MealType.SNACK1: NotificationKind.MEAL_REMINDER_SNACK1,
    MealType.LUNCH: NotificationKind.MEAL_REMINDER_LUNCH,
    MealType.SNACK2: NotificationKind.MEAL_REMINDER_SNACK2,
    MealType.DINNER: NotificationKind.MEAL_REMINDER_DINNER,
}

MEAL_DISPLAY_NAMES: Dict[MealType, str] = {
    MealType.BREAKFAST: "breakfast",
    MealType.SNACK1: "morning snack",
    MealType.LUNCH: "lunch",
    MealType.SNACK2: "afternoon snack",
    MealType.DINNER: "dinner",
}


class DedupPeriod(StrEnum):
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"


@dataclass
class UserProfile:
    """Notification-relevant slice of a user's preferences."""

    user_id: str
    full_name: Optional[str] = None
    timezone: Optional[str] = None
    notifications_enabled: bool = True
    meal_reminders_enabled: bool = True
    water_reminders_enabled: bool = False
    weekly_reminders_enabled: bool = True
    breakfast_time: Optional[str] = None
    snack1_time: Optional[str] = None
    lunch_time: Optional[str] = None
    snack2_time: Optional[str] = None
    dinner_time: Optional[str] = None
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())

    def meal_time(self, meal: MealType) -> Optional[str]:
        return {
            MealType.BREAKFAST: self.breakfast_time,
            MealType.SNACK1: self.snack1_time,
            MealType.LUNCH: self.lunch_time,
            MealType.SNACK2: self.snack2_time,
            MealType.DINNER: self.dinner_time,
        }[meal]

    @property
    def first_name(self) -> str:
        parts = (self.full_name or "").split()
        return parts[0] if parts else "there"


@dataclass
class DeviceToken:
    user_id: str
    token: str
    created_at: float = field(default_factory=lambda: time.time())


@dataclass(frozen=True)
class NotificationLogEntry:
    """A delivered notification. Never updated after it is written."""

    user_id: str
    kind: NotificationKind
    title: str
    body: str
    sent_at: float
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class NotificationTemplate:
    """
    Admin-authored message text for one kind. The active template also acts
    as that kind's schedule config: ``is_enabled`` switches the kind off and
    ``schedule_time`` (HH:MM) overrides the firing hour of fixed-hour kinds.
    """

    template_id: str
    kind: NotificationKind
    title: str
    body: str
    is_active: bool = False
    is_enabled: bool = True
    schedule_time: Optional[str] = None
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())


@dataclass
class MealDay:
    """Completion state of the five daily meals for one local date."""

    user_id: str
    date: str
    breakfast_completed: bool = False
    breakfast_completed_at: Optional[float] = None
    snack1_completed: bool = False
    snack1_completed_at: Optional[float] = None
    lunch_completed: bool = False
    lunch_completed_at: Optional[float] = None
    snack2_completed: bool = False
    snack2_completed_at: Optional[float] = None
    dinner_completed: bool = False
    dinner_completed_at: Optional[float] = None
    notes: Optional[str] = None
    updated_at: float = field(default_factory=lambda: time.time())


@dataclass
class WaterEntry:
    entry_id: str
    user_id: str
    glass_count: int
    timestamp: float


@dataclass
class BodyMeasurement:
    measurement_id: str
    user_id: str
    measurement_type: str
    value: float
    date: str
    unit: Optional[str] = None
    notes: Optional[str] = None
    created_at: float = field(default_factory=lambda: time.time())


@dataclass
class BrowserNotification:
    """An item waiting in a user's browser relay queue until polled."""

    notification_id: str
    user_id: str
    title: str
    body: str
    tag: str = "fitness-reminder"
    url: str = "/dashboard"
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=lambda: time.time())


@dataclass
class MotivationBanner:
    """Dashboard banner; at most one is active and it hides once expired."""

    banner_id: str
    title: str
    message: str
    is_active: bool = False
    expires_at: Optional[float] = None
    created_by: Optional[str] = None
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())


@dataclass
class Package:
    package_id: str
    name: str
    price: float
    duration_days: int
    is_active: bool = True
    created_at: float = field(default_factory=lambda: time.time())


@dataclass
class UserPackage:
    """A package assigned to a user for an inclusive range of local dates."""

    assignment_id: str
    user_id: str
    package_id: str
    start_date: str
    end_date: str
    is_active: bool = True
    created_at: float = field(default_factory=lambda: time.time())
