"""
HTTP routes for the notification service API.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Callable, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from fittrack import content, jobs, templates, tracking
from fittrack.db import DbClient
from fittrack.dependencies import (
    Services,
    get_browser_queue,
    get_db_client,
    get_job_runner,
    get_services,
    require_admin_secret,
    require_cron_secret,
)
from fittrack.errors import DispatchError, NotFoundError, UserFetchError
from fittrack.jobs import JobResult, NotificationJobRunner
from fittrack.queue import BrowserNotificationQueue
from fittrack.scheduling import local_date_key
from fittrack.schemas import (
    ActiveBannerResponse,
    BannerListResponse,
    BannerRequest,
    BannerResponse,
    BroadcastRequest,
    BroadcastResponse,
    BrowserNotificationItem,
    BrowserNotificationRequest,
    BrowserNotificationsResponse,
    CleanupTokensRequest,
    CleanupTokensResponse,
    CronResponse,
    EnqueueResponse,
    HealthResponse,
    JobErrorResponse,
    JobResponse,
    KindRunSummary,
    MealDayResponse,
    MealToggleRequest,
    MeasurementItem,
    MeasurementListResponse,
    MeasurementRequest,
    PackageAssignRequest,
    PackageListResponse,
    PackageRequest,
    PackageResponse,
    PackageStatusRequest,
    PreferencesResponse,
    PreferencesUpdate,
    TemplateCreateRequest,
    TemplateListResponse,
    TemplateResponse,
    TemplateUpdateRequest,
    TokenListResponse,
    TokenRequest,
    TokenResponse,
    UserPackageListResponse,
    UserPackageResponse,
    WaterEntryItem,
    WaterRequest,
    WaterTodayResponse,
)
from shared.types import (
    BrowserNotification,
    MealDay,
    MealType,
    MotivationBanner,
    NotificationKind,
    NotificationTemplate,
    Package,
    UserPackage,
    UserProfile,
    WaterEntry,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _job_failed(exc: Exception) -> JSONResponse:
    body = JobErrorResponse(error=str(exc))
    return JSONResponse(status_code=500, content=body.model_dump())


def _job_response(result: JobResult) -> JobResponse:
    return JobResponse(
        success=True,
        notificationsSent=result.notifications_sent,
        totalUsers=result.total_users,
        errors=result.errors or None,
    )


def _run_job(run: Callable[[], JobResult]):
    try:
        return _job_response(run())
    except UserFetchError as exc:
        return _job_failed(exc)


# -- scheduled jobs ----------------------------------------------------------

_JOB_ROUTE = dict(
    response_model=JobResponse,
    response_model_exclude_none=True,
    responses={500: {"model": JobErrorResponse}},
    dependencies=[Depends(require_cron_secret)],
)


@router.post("/notifications/good-morning", **_JOB_ROUTE)
def good_morning(runner: NotificationJobRunner = Depends(get_job_runner)):
    return _run_job(lambda: runner.run(NotificationKind.GOOD_MORNING))


@router.post("/notifications/good-night", **_JOB_ROUTE)
def good_night(runner: NotificationJobRunner = Depends(get_job_runner)):
    return _run_job(lambda: runner.run(NotificationKind.GOOD_NIGHT))


@router.post("/notifications/water-reminder", **_JOB_ROUTE)
def water_reminder(runner: NotificationJobRunner = Depends(get_job_runner)):
    return _run_job(lambda: runner.run(NotificationKind.WATER_REMINDER))


@router.post("/notifications/meal-reminders", **_JOB_ROUTE)
def meal_reminders(runner: NotificationJobRunner = Depends(get_job_runner)):
    return _run_job(runner.run_meal_reminders)


@router.post("/notifications/weekly-measurement-reminder", **_JOB_ROUTE)
def weekly_measurement_reminder(
    runner: NotificationJobRunner = Depends(get_job_runner),
):
    return _run_job(lambda: runner.run(NotificationKind.WEEKLY_MEASUREMENT_REMINDER))


@router.post("/notifications/weekly-weight-reminder", **_JOB_ROUTE)
def weekly_weight_reminder(runner: NotificationJobRunner = Depends(get_job_runner)):
    return _run_job(lambda: runner.run(NotificationKind.WEEKLY_WEIGHT_REMINDER))


@router.post(
    "/cron/notifications",
    response_model=CronResponse,
    responses={500: {"model": JobErrorResponse}},
    dependencies=[Depends(require_cron_secret)],
)
def cron_notifications(runner: NotificationJobRunner = Depends(get_job_runner)):
    try:
        total_users, results = runner.run_scheduled()
    except UserFetchError as exc:
        return _job_failed(exc)
    summaries = [
        KindRunSummary(type=kind.value, sent=r.notifications_sent, errors=r.errors)
        for kind, r in results
    ]
    return CronResponse(
        success=True,
        totalSent=sum(s.sent for s in summaries),
        totalUsers=total_users,
        results=summaries,
    )


# -- browser relay -----------------------------------------------------------


@router.post(
    "/notifications/browser",
    response_model=EnqueueResponse,
    dependencies=[Depends(require_cron_secret)],
)
def enqueue_browser_notification(
    payload: BrowserNotificationRequest,
    queue: BrowserNotificationQueue = Depends(get_browser_queue),
):
    notification = BrowserNotification(
        notification_id=uuid.uuid4().hex,
        user_id=payload.user_id,
        title=payload.title,
        body=payload.body,
        tag=payload.tag,
        url=payload.url,
        data=payload.data,
    )
    queue.enqueue(notification)
    return EnqueueResponse(success=True, id=notification.notification_id)


@router.get("/notifications/browser", response_model=BrowserNotificationsResponse)
def poll_browser_notifications(
    user_id: str = Query(..., min_length=1),
    queue: BrowserNotificationQueue = Depends(get_browser_queue),
):
    items = [
        BrowserNotificationItem(
            id=n.notification_id,
            title=n.title,
            body=n.body,
            tag=n.tag,
            url=n.url,
            data=n.data,
            timestamp=n.timestamp,
        )
        for n in queue.drain(user_id)
    ]
    return BrowserNotificationsResponse(notifications=items)


# -- admin -------------------------------------------------------------------


@router.post(
    "/admin/notifications/send",
    response_model=BroadcastResponse,
    dependencies=[Depends(require_admin_secret)],
)
def admin_broadcast(
    payload: BroadcastRequest, services: Services = Depends(get_services)
):
    try:
        result = jobs.send_admin_broadcast(
            services.db,
            services.dispatcher,
            payload.title,
            payload.body,
            now=services.clock(),
        )
    except DispatchError as exc:
        logger.error("Admin broadcast failed: %s", exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return BroadcastResponse(
        success=result.success,
        message=result.message,
        totalTokens=result.total_tokens,
        successCount=result.success_count,
        failureCount=result.failure_count,
        invalidTokensRemoved=result.invalid_tokens_removed,
    )


def _template_response(template: NotificationTemplate) -> TemplateResponse:
    return TemplateResponse(
        id=template.template_id,
        notification_type=template.kind,
        title=template.title,
        body=template.body,
        is_active=template.is_active,
        is_enabled=template.is_enabled,
        schedule_time=template.schedule_time,
        created_at=template.created_at,
        updated_at=template.updated_at,
    )


@router.get(
    "/admin/notification-templates",
    response_model=TemplateListResponse,
    dependencies=[Depends(require_admin_secret)],
)
def list_templates(db: DbClient = Depends(get_db_client)):
    return TemplateListResponse(
        templates=[_template_response(t) for t in db.list_templates()]
    )


@router.post(
    "/admin/notification-templates",
    response_model=TemplateResponse,
    dependencies=[Depends(require_admin_secret)],
)
def create_template(payload: TemplateCreateRequest, db: DbClient = Depends(get_db_client)):
    try:
        template = templates.create_template(
            db,
            payload.notification_type,
            payload.title,
            payload.body,
            payload.is_active,
            is_enabled=payload.is_enabled,
            schedule_time=payload.schedule_time,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _template_response(template)


@router.put(
    "/admin/notification-templates/{template_id}",
    response_model=TemplateResponse,
    dependencies=[Depends(require_admin_secret)],
)
def update_template(
    template_id: str,
    payload: TemplateUpdateRequest,
    db: DbClient = Depends(get_db_client),
):
    try:
        template = templates.update_template(
            db,
            template_id,
            payload.title,
            payload.body,
            is_enabled=payload.is_enabled,
            schedule_time=payload.schedule_time,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Template not found") from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _template_response(template)


@router.post(
    "/admin/notification-templates/{template_id}/activate",
    response_model=TemplateResponse,
    dependencies=[Depends(require_admin_secret)],
)
def activate_template(template_id: str, db: DbClient = Depends(get_db_client)):
    try:
        template = templates.activate_template(db, template_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Template not found") from exc
    return _template_response(template)


# -- banners and packages ----------------------------------------------------


def _banner_response(banner: MotivationBanner) -> BannerResponse:
    return BannerResponse(
        id=banner.banner_id,
        title=banner.title,
        message=banner.message,
        is_active=banner.is_active,
        expires_at=banner.expires_at,
        created_by=banner.created_by,
        created_at=banner.created_at,
        updated_at=banner.updated_at,
    )


def _expiry(value: Optional[datetime]) -> Optional[float]:
    return value.timestamp() if value is not None else None


@router.get("/banners/active", response_model=ActiveBannerResponse)
def active_banner(services: Services = Depends(get_services)):
    banner = content.get_active_banner(services.db, services.clock())
    return ActiveBannerResponse(banner=_banner_response(banner) if banner else None)


@router.get(
    "/admin/banners",
    response_model=BannerListResponse,
    dependencies=[Depends(require_admin_secret)],
)
def list_banners(db: DbClient = Depends(get_db_client)):
    return BannerListResponse(banners=[_banner_response(b) for b in content.list_banners(db)])


@router.post(
    "/admin/banners",
    response_model=BannerResponse,
    dependencies=[Depends(require_admin_secret)],
)
def create_banner(payload: BannerRequest, db: DbClient = Depends(get_db_client)):
    try:
        banner = content.create_banner(
            db,
            payload.title,
            payload.message,
            _expiry(payload.expires_at),
            payload.created_by,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _banner_response(banner)


@router.put(
    "/admin/banners/{banner_id}",
    response_model=BannerResponse,
    dependencies=[Depends(require_admin_secret)],
)
def update_banner(
    banner_id: str, payload: BannerRequest, db: DbClient = Depends(get_db_client)
):
    try:
        banner = content.update_banner(
            db, banner_id, payload.title, payload.message, _expiry(payload.expires_at)
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Banner not found") from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _banner_response(banner)


@router.post(
    "/admin/banners/{banner_id}/activate",
    response_model=BannerResponse,
    dependencies=[Depends(require_admin_secret)],
)
def activate_banner(banner_id: str, db: DbClient = Depends(get_db_client)):
    try:
        return _banner_response(content.activate_banner(db, banner_id))
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Banner not found") from exc


@router.post(
    "/admin/banners/{banner_id}/deactivate",
    response_model=BannerResponse,
    dependencies=[Depends(require_admin_secret)],
)
def deactivate_banner(banner_id: str, db: DbClient = Depends(get_db_client)):
    try:
        return _banner_response(content.deactivate_banner(db, banner_id))
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Banner not found") from exc


@router.delete(
    "/admin/banners/{banner_id}",
    dependencies=[Depends(require_admin_secret)],
)
def delete_banner(banner_id: str, db: DbClient = Depends(get_db_client)):
    try:
        content.delete_banner(db, banner_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Banner not found") from exc
    return {"success": True}


def _package_response(package: Package) -> PackageResponse:
    return PackageResponse(
        id=package.package_id,
        name=package.name,
        price=package.price,
        duration_days=package.duration_days,
        is_active=package.is_active,
    )


def _user_package_response(assignment: UserPackage) -> UserPackageResponse:
    return UserPackageResponse(
        id=assignment.assignment_id,
        user_id=assignment.user_id,
        package_id=assignment.package_id,
        start_date=assignment.start_date,
        end_date=assignment.end_date,
        is_active=assignment.is_active,
    )


@router.get("/packages", response_model=PackageListResponse)
def list_packages(db: DbClient = Depends(get_db_client)):
    return PackageListResponse(
        packages=[_package_response(p) for p in content.list_packages(db)]
    )


@router.post(
    "/admin/packages",
    response_model=PackageResponse,
    dependencies=[Depends(require_admin_secret)],
)
def create_package(payload: PackageRequest, db: DbClient = Depends(get_db_client)):
    try:
        package = content.create_package(
            db, payload.name, payload.price, payload.duration_days
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _package_response(package)


@router.post(
    "/admin/packages/{package_id}/status",
    response_model=PackageResponse,
    dependencies=[Depends(require_admin_secret)],
)
def set_package_status(
    package_id: str,
    payload: PackageStatusRequest,
    db: DbClient = Depends(get_db_client),
):
    try:
        package = content.set_package_status(db, package_id, payload.is_active)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Package not found") from exc
    return _package_response(package)


@router.post(
    "/admin/packages/{package_id}/assign",
    response_model=UserPackageResponse,
    dependencies=[Depends(require_admin_secret)],
)
def assign_package(
    package_id: str,
    payload: PackageAssignRequest,
    services: Services = Depends(get_services),
):
    try:
        assignment = content.assign_package(
            services.db, payload.user_id, package_id, services.clock()
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _user_package_response(assignment)


@router.get("/users/{user_id}/packages", response_model=UserPackageListResponse)
def user_packages(user_id: str, db: DbClient = Depends(get_db_client)):
    try:
        assignments = content.list_user_packages(db, user_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="User not found") from exc
    return UserPackageListResponse(
        user_id=user_id, packages=[_user_package_response(a) for a in assignments]
    )


# -- device tokens -----------------------------------------------------------


@router.post("/fcm/tokens", response_model=TokenResponse)
def register_token(payload: TokenRequest, db: DbClient = Depends(get_db_client)):
    created = tracking.register_token(db, payload.user_id, payload.token.strip())
    return TokenResponse(success=True, created=created)


@router.delete("/fcm/tokens", response_model=TokenResponse)
def remove_token(payload: TokenRequest, db: DbClient = Depends(get_db_client)):
    removed = tracking.remove_token(db, payload.user_id, payload.token.strip())
    return TokenResponse(success=True, removed=removed)


@router.get("/fcm/tokens", response_model=TokenListResponse)
def list_tokens(
    user_id: str = Query(..., min_length=1), db: DbClient = Depends(get_db_client)
):
    return TokenListResponse(user_id=user_id, tokens=db.list_tokens(user_id))


@router.post("/fcm/cleanup-invalid-tokens", response_model=CleanupTokensResponse)
def cleanup_invalid_tokens(
    payload: CleanupTokensRequest, db: DbClient = Depends(get_db_client)
):
    if not payload.tokens:
        raise HTTPException(status_code=400, detail="tokens must not be empty")
    removed = tracking.cleanup_invalid_tokens(db, payload.user_id, payload.tokens)
    return CleanupTokensResponse(success=True, removed=removed)


# -- user tracking -----------------------------------------------------------


def _preferences_response(user: UserProfile) -> PreferencesResponse:
    return PreferencesResponse(
        user_id=user.user_id,
        full_name=user.full_name,
        timezone=user.timezone,
        notifications_enabled=user.notifications_enabled,
        meal_reminders_enabled=user.meal_reminders_enabled,
        water_reminders_enabled=user.water_reminders_enabled,
        weekly_reminders_enabled=user.weekly_reminders_enabled,
        breakfast_time=user.breakfast_time,
        snack1_time=user.snack1_time,
        lunch_time=user.lunch_time,
        snack2_time=user.snack2_time,
        dinner_time=user.dinner_time,
    )


def _meal_day_response(user_id: str, date: str, day: Optional[MealDay]) -> MealDayResponse:
    return MealDayResponse(
        user_id=user_id,
        date=date,
        meals={
            meal.value: tracking.is_meal_completed(day, meal) for meal in MealType
        },
        completed_count=tracking.meals_completed(day),
        notes=day.notes if day else None,
    )


@router.get("/users/{user_id}/preferences", response_model=PreferencesResponse)
def get_preferences(user_id: str, db: DbClient = Depends(get_db_client)):
    user = db.get_user(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return _preferences_response(user)


@router.put("/users/{user_id}/preferences", response_model=PreferencesResponse)
def update_preferences(
    user_id: str,
    payload: PreferencesUpdate,
    services: Services = Depends(get_services),
):
    try:
        user = tracking.update_preferences(
            services.db,
            user_id,
            payload.model_dump(exclude_unset=True),
            services.settings.default_timezone,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _preferences_response(user)


@router.get("/users/{user_id}/meals/today", response_model=MealDayResponse)
def today_meals(user_id: str, services: Services = Depends(get_services)):
    now = services.clock()
    try:
        day = tracking.get_today_meals(services.db, user_id, now)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="User not found") from exc
    user = services.db.get_user(user_id)
    date = local_date_key(user.timezone, now)
    return _meal_day_response(user_id, date, day)


@router.post("/users/{user_id}/meals/{meal_type}", response_model=MealDayResponse)
def toggle_meal(
    user_id: str,
    meal_type: MealType,
    payload: MealToggleRequest,
    services: Services = Depends(get_services),
):
    try:
        day = tracking.toggle_meal(
            services.db, user_id, meal_type, payload.completed, services.clock()
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="User not found") from exc
    return _meal_day_response(user_id, day.date, day)


def _water_response(user_id: str, entries: list[WaterEntry], total: int) -> WaterTodayResponse:
    return WaterTodayResponse(
        user_id=user_id,
        total_glasses=total,
        entries=[
            WaterEntryItem(id=e.entry_id, glass_count=e.glass_count, timestamp=e.timestamp)
            for e in entries
        ],
    )


@router.get("/users/{user_id}/water", response_model=WaterTodayResponse)
def today_water(user_id: str, services: Services = Depends(get_services)):
    try:
        entries, total = tracking.today_water(services.db, user_id, services.clock())
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="User not found") from exc
    return _water_response(user_id, entries, total)


@router.post("/users/{user_id}/water", response_model=WaterTodayResponse)
def add_water(
    user_id: str, payload: WaterRequest, services: Services = Depends(get_services)
):
    now = services.clock()
    try:
        tracking.add_water(services.db, user_id, payload.glass_count, now)
        entries, total = tracking.today_water(services.db, user_id, now)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="User not found") from exc
    return _water_response(user_id, entries, total)


@router.get("/users/{user_id}/measurements", response_model=MeasurementListResponse)
def list_measurements(
    user_id: str,
    since: Optional[str] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    db: DbClient = Depends(get_db_client),
):
    measurements = db.list_measurements(user_id, since_date=since, limit=limit)
    return MeasurementListResponse(
        user_id=user_id,
        measurements=[
            MeasurementItem(
                id=m.measurement_id,
                measurement_type=m.measurement_type,
                value=m.value,
                date=m.date,
                unit=m.unit,
                notes=m.notes,
            )
            for m in measurements
        ],
    )


@router.post("/users/{user_id}/measurements", response_model=MeasurementItem)
def add_measurement(
    user_id: str,
    payload: MeasurementRequest,
    services: Services = Depends(get_services),
):
    try:
        m = tracking.add_measurement(
            services.db,
            user_id,
            payload.measurement_type,
            payload.value,
            date=payload.date,
            unit=payload.unit,
            notes=payload.notes,
            now=services.clock(),
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="User not found") from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return MeasurementItem(
        id=m.measurement_id,
        measurement_type=m.measurement_type,
        value=m.value,
        date=m.date,
        unit=m.unit,
        notes=m.notes,
    )


@router.get("/health", response_model=HealthResponse)
def health(services: Services = Depends(get_services)):
    return HealthResponse(status="ok", push_configured=services.settings.push_configured)
