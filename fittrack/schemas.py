"""
Pydantic schemas for the notification service API.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from shared.constants import MAX_BODY_LENGTH, MAX_TITLE_LENGTH
from shared.types import NotificationKind


class JobResponse(BaseModel):
    success: bool
    notificationsSent: int
    totalUsers: int
    errors: Optional[list[str]] = None


class JobErrorResponse(BaseModel):
    success: Literal[False] = False
    error: str


class KindRunSummary(BaseModel):
    type: str
    sent: int
    errors: list[str]


class CronResponse(BaseModel):
    success: bool
    totalSent: int
    totalUsers: int
    results: list[KindRunSummary]


class BroadcastRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=MAX_TITLE_LENGTH)
    body: str = Field(..., min_length=1, max_length=MAX_BODY_LENGTH)


class BroadcastResponse(BaseModel):
    success: bool
    message: str
    totalTokens: int
    successCount: int
    failureCount: int
    invalidTokensRemoved: int


class BrowserNotificationRequest(BaseModel):
    user_id: str
    title: str = Field(..., max_length=MAX_TITLE_LENGTH)
    body: str = Field(..., max_length=MAX_BODY_LENGTH)
    tag: str = "fitness-reminder"
    url: str = "/dashboard"
    data: dict = Field(default_factory=dict)


class EnqueueResponse(BaseModel):
    success: bool
    id: str


class BrowserNotificationItem(BaseModel):
    id: str
    title: str
    body: str
    tag: str
    url: str
    data: dict
    timestamp: float


class BrowserNotificationsResponse(BaseModel):
    notifications: list[BrowserNotificationItem]


class TemplateCreateRequest(BaseModel):
    notification_type: NotificationKind
    title: str = Field(..., max_length=MAX_TITLE_LENGTH)
    body: str = Field(..., max_length=MAX_BODY_LENGTH)
    is_active: bool = False
    is_enabled: bool = True
    schedule_time: Optional[str] = Field(default=None, description="HH:MM local firing hour")


class TemplateUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, max_length=MAX_TITLE_LENGTH)
    body: Optional[str] = Field(default=None, max_length=MAX_BODY_LENGTH)
    is_enabled: Optional[bool] = None
    # Empty string clears the configured hour.
    schedule_time: Optional[str] = None


class TemplateResponse(BaseModel):
    id: str
    notification_type: NotificationKind
    title: str
    body: str
    is_active: bool
    is_enabled: bool
    schedule_time: Optional[str] = None
    created_at: float
    updated_at: float


class TemplateListResponse(BaseModel):
    templates: list[TemplateResponse]


class TokenRequest(BaseModel):
    user_id: str
    token: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    success: bool
    created: bool = False
    removed: int = 0


class TokenListResponse(BaseModel):
    user_id: str
    tokens: list[str]


class CleanupTokensRequest(BaseModel):
    user_id: str
    tokens: list[str]


class CleanupTokensResponse(BaseModel):
    success: bool
    removed: int


class PreferencesUpdate(BaseModel):
    full_name: Optional[str] = None
    timezone: Optional[str] = None
    notifications_enabled: Optional[bool] = None
    meal_reminders_enabled: Optional[bool] = None
    water_reminders_enabled: Optional[bool] = None
    weekly_reminders_enabled: Optional[bool] = None
    breakfast_time: Optional[str] = None
    snack1_time: Optional[str] = None
    lunch_time: Optional[str] = None
    snack2_time: Optional[str] = None
    dinner_time: Optional[str] = None


class PreferencesResponse(BaseModel):
    user_id: str
    full_name: Optional[str] = None
    timezone: Optional[str] = None
    notifications_enabled: bool
    meal_reminders_enabled: bool
    water_reminders_enabled: bool
    weekly_reminders_enabled: bool
    breakfast_time: Optional[str] = None
    snack1_time: Optional[str] = None
    lunch_time: Optional[str] = None
    snack2_time: Optional[str] = None
    dinner_time: Optional[str] = None


class MealToggleRequest(BaseModel):
    completed: bool


class MealDayResponse(BaseModel):
    user_id: str
    date: str
    meals: dict[str, bool]
    completed_count: int
    notes: Optional[str] = None


class WaterRequest(BaseModel):
    glass_count: int = Field(default=1, ge=1, le=20)


class WaterEntryItem(BaseModel):
    id: str
    glass_count: int
    timestamp: float


class WaterTodayResponse(BaseModel):
    user_id: str
    total_glasses: int
    entries: list[WaterEntryItem]


class MeasurementRequest(BaseModel):
    measurement_type: str = Field(..., min_length=1, max_length=64)
    value: float = Field(..., gt=0)
    date: Optional[str] = None
    unit: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=500)


class MeasurementItem(BaseModel):
    id: str
    measurement_type: str
    value: float
    date: str
    unit: Optional[str] = None
    notes: Optional[str] = None


class MeasurementListResponse(BaseModel):
    user_id: str
    measurements: list[MeasurementItem]


class HealthResponse(BaseModel):
    status: Literal["ok"]
    push_configured: bool


class BannerRequest(BaseModel):
    title: str = Field(..., max_length=MAX_TITLE_LENGTH)
    message: str = Field(..., max_length=MAX_BODY_LENGTH)
    expires_at: Optional[datetime] = None
    # Ignored on update.
    created_by: Optional[str] = None


class BannerResponse(BaseModel):
    id: str
    title: str
    message: str
    is_active: bool
    expires_at: Optional[float] = None
    created_by: Optional[str] = None
    created_at: float
    updated_at: float


class BannerListResponse(BaseModel):
    banners: list[BannerResponse]


class ActiveBannerResponse(BaseModel):
    banner: Optional[BannerResponse] = None


class PackageRequest(BaseModel):
    name: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    duration_days: int = Field(..., ge=1)


class PackageStatusRequest(BaseModel):
    is_active: bool


class PackageResponse(BaseModel):
    id: str
    name: str
    price: float
    duration_days: int
    is_active: bool


class PackageListResponse(BaseModel):
    packages: list[PackageResponse]


class PackageAssignRequest(BaseModel):
    user_id: str = Field(..., min_length=1)


class UserPackageResponse(BaseModel):
    id: str
    user_id: str
    package_id: str
    start_date: str
    end_date: str
    is_active: bool


class UserPackageListResponse(BaseModel):
    user_id: str
    packages: list[UserPackageResponse]
