"""
Database abstraction for Postgres and an in-memory test implementation.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import replace
from typing import Dict, Iterable, Optional, Protocol

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Float,
    Integer,
    String,
    create_engine,
    delete,
    select,
    update,
)
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from shared.types import (
    BodyMeasurement,
    DeviceToken,
    MealDay,
    MotivationBanner,
    NotificationKind,
    NotificationLogEntry,
    NotificationTemplate,
    Package,
    UserPackage,
    UserProfile,
    WaterEntry,
)


class DbClient(Protocol):
    """Interface for database access."""

    # Users / preferences
    def save_user(self, profile: UserProfile) -> UserProfile:
        ...

    def get_user(self, user_id: str) -> Optional[UserProfile]:
        ...

    def list_notification_users(self) -> list[UserProfile]:
        ...

    # Device tokens
    def save_token(self, user_id: str, token: str) -> bool:
        ...

    def list_tokens(self, user_id: str) -> list[str]:
        ...

    def list_all_tokens(self) -> list[DeviceToken]:
        ...

    def delete_tokens(
        self, tokens: Iterable[str], user_id: Optional[str] = None
    ) -> int:
        ...

    # Notification log
    def add_notification_log(self, entry: NotificationLogEntry) -> None:
        ...

    def has_notification_since(
        self, user_id: str, kind: NotificationKind, since: float
    ) -> bool:
        ...

    # Message templates
    def save_template(self, template: NotificationTemplate) -> NotificationTemplate:
        ...

    def get_template(self, template_id: str) -> Optional[NotificationTemplate]:
        ...

    def get_active_template(
        self, kind: NotificationKind
    ) -> Optional[NotificationTemplate]:
        ...

    def list_templates(self) -> list[NotificationTemplate]:
        ...

    def activate_template(self, template_id: str) -> Optional[NotificationTemplate]:
        ...

    # Tracking
    def get_meal_day(self, user_id: str, date: str) -> Optional[MealDay]:
        ...

    def save_meal_day(self, record: MealDay) -> None:
        ...

    def add_water_entry(self, user_id: str, glass_count: int, timestamp: float) -> WaterEntry:
        ...

    def list_water_entries(
        self, user_id: str, start: float, end: float
    ) -> list[WaterEntry]:
        ...

    def add_measurement(self, measurement: BodyMeasurement) -> None:
        ...

    def list_measurements(
        self, user_id: str, since_date: Optional[str] = None, limit: int = 100
    ) -> list[BodyMeasurement]:
        ...

    # Banners
    def save_banner(self, banner: MotivationBanner) -> MotivationBanner:
        ...

    def get_banner(self, banner_id: str) -> Optional[MotivationBanner]:
        ...

    def list_banners(self) -> list[MotivationBanner]:
        ...

    def activate_banner(self, banner_id: str) -> Optional[MotivationBanner]:
        ...

    def delete_banner(self, banner_id: str) -> bool:
        ...

    # Packages
    def save_package(self, package: Package) -> Package:
        ...

    def get_package(self, package_id: str) -> Optional[Package]:
        ...

    def list_packages(self) -> list[Package]:
        ...

    def add_user_package(self, assignment: UserPackage) -> UserPackage:
        ...

    def list_user_packages(self, user_id: str) -> list[UserPackage]:
        ...


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.users: Dict[str, UserProfile] = {}
        self.tokens: list[DeviceToken] = []
        self.logs: list[NotificationLogEntry] = []
        self.templates: Dict[str, NotificationTemplate] = {}
        self.meal_days: Dict[tuple[str, str], MealDay] = {}
        self.water: list[WaterEntry] = []
        self.measurements: list[BodyMeasurement] = []
        self.banners: Dict[str, MotivationBanner] = {}
        self.packages: Dict[str, Package] = {}
        self.user_packages: list[UserPackage] = []

    def save_user(self, profile: UserProfile) -> UserProfile:
        stored = replace(profile, updated_at=time.time())
        self.users[profile.user_id] = stored
        return stored

    def get_user(self, user_id: str) -> Optional[UserProfile]:
        return self.users.get(user_id)

    def list_notification_users(self) -> list[UserProfile]:
        return [u for u in self.users.values() if u.notifications_enabled]

    def save_token(self, user_id: str, token: str) -> bool:
        for existing in self.tokens:
            if existing.user_id == user_id and existing.token == token:
                return False
        self.tokens.append(DeviceToken(user_id=user_id, token=token))
        return True

    def list_tokens(self, user_id: str) -> list[str]:
        return [t.token for t in self.tokens if t.user_id == user_id]

    def list_all_tokens(self) -> list[DeviceToken]:
        return sorted(self.tokens, key=lambda t: t.created_at, reverse=True)

    def delete_tokens(
        self, tokens: Iterable[str], user_id: Optional[str] = None
    ) -> int:
        doomed = set(tokens)
        kept = [
            t
            for t in self.tokens
            if t.token not in doomed or (user_id is not None and t.user_id != user_id)
        ]
        removed = len(self.tokens) - len(kept)
        self.tokens = kept
        return removed

    def add_notification_log(self, entry: NotificationLogEntry) -> None:
        self.logs.append(entry)

    def has_notification_since(
        self, user_id: str, kind: NotificationKind, since: float
    ) -> bool:
        return any(
            e.user_id == user_id and e.kind == kind and e.sent_at >= since
            for e in self.logs
        )

    def save_template(self, template: NotificationTemplate) -> NotificationTemplate:
        self.templates[template.template_id] = template
        return template

    def get_template(self, template_id: str) -> Optional[NotificationTemplate]:
        return self.templates.get(template_id)

    def get_active_template(
        self, kind: NotificationKind
    ) -> Optional[NotificationTemplate]:
        for template in self.templates.values():
            if template.kind == kind and template.is_active:
                return template
        return None

    def list_templates(self) -> list[NotificationTemplate]:
        return sorted(
            self.templates.values(), key=lambda t: (t.kind.value, -t.created_at)
        )

    def activate_template(self, template_id: str) -> Optional[NotificationTemplate]:
        target = self.templates.get(template_id)
        if not target:
            return None
        now = time.time()
        for template in self.templates.values():
            if template.kind == target.kind:
                template.is_active = template.template_id == template_id
        target.updated_at = now
        return target

    def get_meal_day(self, user_id: str, date: str) -> Optional[MealDay]:
        return self.meal_days.get((user_id, date))

    def save_meal_day(self, record: MealDay) -> None:
        self.meal_days[(record.user_id, record.date)] = record

    def add_water_entry(self, user_id: str, glass_count: int, timestamp: float) -> WaterEntry:
        entry = WaterEntry(
            entry_id=uuid.uuid4().hex,
            user_id=user_id,
            glass_count=glass_count,
            timestamp=timestamp,
        )
        self.water.append(entry)
        return entry

    def list_water_entries(
        self, user_id: str, start: float, end: float
    ) -> list[WaterEntry]:
        entries = [
            e
            for e in self.water
            if e.user_id == user_id and start <= e.timestamp < end
        ]
        return sorted(entries, key=lambda e: e.timestamp, reverse=True)

    def add_measurement(self, measurement: BodyMeasurement) -> None:
        self.measurements.append(measurement)

    def list_measurements(
        self, user_id: str, since_date: Optional[str] = None, limit: int = 100
    ) -> list[BodyMeasurement]:
        rows = [
            m
            for m in self.measurements
            if m.user_id == user_id and (since_date is None or m.date >= since_date)
        ]
        rows.sort(key=lambda m: (m.date, m.created_at), reverse=True)
        return rows[:limit]

    def save_banner(self, banner: MotivationBanner) -> MotivationBanner:
        self.banners[banner.banner_id] = banner
        return banner

    def get_banner(self, banner_id: str) -> Optional[MotivationBanner]:
        return self.banners.get(banner_id)

    def list_banners(self) -> list[MotivationBanner]:
        return sorted(self.banners.values(), key=lambda b: b.created_at, reverse=True)

    def activate_banner(self, banner_id: str) -> Optional[MotivationBanner]:
        target = self.banners.get(banner_id)
        if not target:
            return None
        for banner in self.banners.values():
            banner.is_active = banner.banner_id == banner_id
        target.updated_at = time.time()
        return target

    def delete_banner(self, banner_id: str) -> bool:
        return self.banners.pop(banner_id, None) is not None

    def save_package(self, package: Package) -> Package:
        self.packages[package.package_id] = package
        return package

    def get_package(self, package_id: str) -> Optional[Package]:
        return self.packages.get(package_id)

    def list_packages(self) -> list[Package]:
        return sorted(self.packages.values(), key=lambda p: p.price)

    def add_user_package(self, assignment: UserPackage) -> UserPackage:
        self.user_packages.append(assignment)
        return assignment

    def list_user_packages(self, user_id: str) -> list[UserPackage]:
        rows = [a for a in self.user_packages if a.user_id == user_id]
        return sorted(rows, key=lambda a: a.start_date, reverse=True)


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    # -- users -------------------------------------------------------------

    @staticmethod
    def _to_profile(row: "UserRow") -> UserProfile:
        return UserProfile(
            user_id=row.user_id,
            full_name=row.full_name,
            timezone=row.timezone,
            notifications_enabled=row.notifications_enabled,
            meal_reminders_enabled=row.meal_reminders_enabled,
            water_reminders_enabled=row.water_reminders_enabled,
            weekly_reminders_enabled=row.weekly_reminders_enabled,
            breakfast_time=row.breakfast_time,
            snack1_time=row.snack1_time,
            lunch_time=row.lunch_time,
            snack2_time=row.snack2_time,
            dinner_time=row.dinner_time,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def save_user(self, profile: UserProfile) -> UserProfile:
        now = time.time()
        with self.Session() as session:
            row = session.get(UserRow, profile.user_id)
            if not row:
                row = UserRow(user_id=profile.user_id, created_at=profile.created_at)
                session.add(row)
            row.full_name = profile.full_name
            row.timezone = profile.timezone
            row.notifications_enabled = profile.notifications_enabled
            row.meal_reminders_enabled = profile.meal_reminders_enabled
            row.water_reminders_enabled = profile.water_reminders_enabled
            row.weekly_reminders_enabled = profile.weekly_reminders_enabled
            row.breakfast_time = profile.breakfast_time
            row.snack1_time = profile.snack1_time
            row.lunch_time = profile.lunch_time
            row.snack2_time = profile.snack2_time
            row.dinner_time = profile.dinner_time
            row.updated_at = now
            session.commit()
            session.refresh(row)
            return self._to_profile(row)

    def get_user(self, user_id: str) -> Optional[UserProfile]:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            return self._to_profile(row) if row else None

    def list_notification_users(self) -> list[UserProfile]:
        with self.Session() as session:
            rows = session.execute(
                select(UserRow)
                .where(UserRow.notifications_enabled.is_(True))
                .order_by(UserRow.created_at.asc())
            ).scalars()
            return [self._to_profile(row) for row in rows]

    # -- device tokens -----------------------------------------------------

    def save_token(self, user_id: str, token: str) -> bool:
        with self.Session() as session:
            existing = session.execute(
                select(DeviceTokenRow.id).where(
                    DeviceTokenRow.user_id == user_id, DeviceTokenRow.token == token
                )
            ).first()
            if existing:
                return False
            session.add(
                DeviceTokenRow(
                    id=uuid.uuid4().hex,
                    user_id=user_id,
                    token=token,
                    created_at=time.time(),
                )
            )
            session.commit()
            return True

    def list_tokens(self, user_id: str) -> list[str]:
        with self.Session() as session:
            rows = session.execute(
                select(DeviceTokenRow.token)
                .where(DeviceTokenRow.user_id == user_id)
                .order_by(DeviceTokenRow.created_at.asc())
            ).scalars()
            return list(rows)

    def list_all_tokens(self) -> list[DeviceToken]:
        with self.Session() as session:
            rows = session.execute(
                select(DeviceTokenRow).order_by(DeviceTokenRow.created_at.desc())
            ).scalars()
            return [
                DeviceToken(user_id=r.user_id, token=r.token, created_at=r.created_at)
                for r in rows
            ]

    def delete_tokens(
        self, tokens: Iterable[str], user_id: Optional[str] = None
    ) -> int:
        tokens = list(tokens)
        if not tokens:
            return 0
        with self.Session() as session:
            stmt = delete(DeviceTokenRow).where(DeviceTokenRow.token.in_(tokens))
            if user_id is not None:
                stmt = stmt.where(DeviceTokenRow.user_id == user_id)
            result = session.execute(stmt)
            session.commit()
            return result.rowcount or 0

    # -- notification log --------------------------------------------------

    def add_notification_log(self, entry: NotificationLogEntry) -> None:
        with self.Session() as session:
            session.add(
                NotificationLogRow(
                    id=uuid.uuid4().hex,
                    user_id=entry.user_id,
                    notification_type=entry.kind.value,
                    title=entry.title,
                    body=entry.body,
                    sent_at=entry.sent_at,
                    data=entry.metadata,
                )
            )
            session.commit()

    def has_notification_since(
        self, user_id: str, kind: NotificationKind, since: float
    ) -> bool:
        with self.Session() as session:
            row = session.execute(
                select(NotificationLogRow.id)
                .where(
                    NotificationLogRow.user_id == user_id,
                    NotificationLogRow.notification_type == kind.value,
                    NotificationLogRow.sent_at >= since,
                )
                .limit(1)
            ).first()
            return row is not None

    # -- templates ---------------------------------------------------------

    @staticmethod
    def _to_template(row: "TemplateRow") -> NotificationTemplate:
        return NotificationTemplate(
            template_id=row.id,
            kind=NotificationKind(row.notification_type),
            title=row.title,
            body=row.body,
            is_active=row.is_active,
            is_enabled=row.is_enabled,
            schedule_time=row.schedule_time,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def save_template(self, template: NotificationTemplate) -> NotificationTemplate:
        with self.Session() as session:
            row = session.get(TemplateRow, template.template_id)
            if not row:
                row = TemplateRow(id=template.template_id, created_at=template.created_at)
                session.add(row)
            row.notification_type = template.kind.value
            row.title = template.title
            row.body = template.body
            row.is_active = template.is_active
            row.is_enabled = template.is_enabled
            row.schedule_time = template.schedule_time
            row.updated_at = template.updated_at
            session.commit()
            session.refresh(row)
            return self._to_template(row)

    def get_template(self, template_id: str) -> Optional[NotificationTemplate]:
        with self.Session() as session:
            row = session.get(TemplateRow, template_id)
            return self._to_template(row) if row else None

    def get_active_template(
        self, kind: NotificationKind
    ) -> Optional[NotificationTemplate]:
        with self.Session() as session:
            row = session.execute(
                select(TemplateRow)
                .where(
                    TemplateRow.notification_type == kind.value,
                    TemplateRow.is_active.is_(True),
                )
                .order_by(TemplateRow.updated_at.desc())
                .limit(1)
            ).scalar_one_or_none()
            return self._to_template(row) if row else None

    def list_templates(self) -> list[NotificationTemplate]:
        with self.Session() as session:
            rows = session.execute(
                select(TemplateRow).order_by(
                    TemplateRow.notification_type.asc(), TemplateRow.created_at.desc()
                )
            ).scalars()
            return [self._to_template(row) for row in rows]

    def activate_template(self, template_id: str) -> Optional[NotificationTemplate]:
        with self.Session() as session:
            row = session.get(TemplateRow, template_id)
            if not row:
                return None
            session.execute(
                update(TemplateRow)
                .where(TemplateRow.notification_type == row.notification_type)
                .values(is_active=False)
            )
            row.is_active = True
            row.updated_at = time.time()
            session.commit()
            session.refresh(row)
            return self._to_template(row)

    # -- tracking ----------------------------------------------------------

    def get_meal_day(self, user_id: str, date: str) -> Optional[MealDay]:
        with self.Session() as session:
            row = session.get(MealDayRow, (user_id, date))
            if not row:
                return None
            return MealDay(
                user_id=row.user_id,
                date=row.date,
                breakfast_completed=row.breakfast_completed,
                breakfast_completed_at=row.breakfast_completed_at,
                snack1_completed=row.snack1_completed,
                snack1_completed_at=row.snack1_completed_at,
                lunch_completed=row.lunch_completed,
                lunch_completed_at=row.lunch_completed_at,
                snack2_completed=row.snack2_completed,
                snack2_completed_at=row.snack2_completed_at,
                dinner_completed=row.dinner_completed,
                dinner_completed_at=row.dinner_completed_at,
                notes=row.notes,
                updated_at=row.updated_at,
            )

    def save_meal_day(self, record: MealDay) -> None:
        with self.Session() as session:
            row = session.get(MealDayRow, (record.user_id, record.date))
            if not row:
                row = MealDayRow(user_id=record.user_id, date=record.date)
                session.add(row)
            row.breakfast_completed = record.breakfast_completed
            row.breakfast_completed_at = record.breakfast_completed_at
            row.snack1_completed = record.snack1_completed
            row.snack1_completed_at = record.snack1_completed_at
            row.lunch_completed = record.lunch_completed
            row.lunch_completed_at = record.lunch_completed_at
            row.snack2_completed = record.snack2_completed
            row.snack2_completed_at = record.snack2_completed_at
            row.dinner_completed = record.dinner_completed
            row.dinner_completed_at = record.dinner_completed_at
            row.notes = record.notes
            row.updated_at = record.updated_at
            session.commit()

    def add_water_entry(self, user_id: str, glass_count: int, timestamp: float) -> WaterEntry:
        entry = WaterEntry(
            entry_id=uuid.uuid4().hex,
            user_id=user_id,
            glass_count=glass_count,
            timestamp=timestamp,
        )
        with self.Session() as session:
            session.add(
                WaterIntakeRow(
                    id=entry.entry_id,
                    user_id=user_id,
                    glass_count=glass_count,
                    timestamp=timestamp,
                )
            )
            session.commit()
        return entry

    def list_water_entries(
        self, user_id: str, start: float, end: float
    ) -> list[WaterEntry]:
        with self.Session() as session:
            rows = session.execute(
                select(WaterIntakeRow)
                .where(
                    WaterIntakeRow.user_id == user_id,
                    WaterIntakeRow.timestamp >= start,
                    WaterIntakeRow.timestamp < end,
                )
                .order_by(WaterIntakeRow.timestamp.desc())
            ).scalars()
            return [
                WaterEntry(
                    entry_id=r.id,
                    user_id=r.user_id,
                    glass_count=r.glass_count,
                    timestamp=r.timestamp,
                )
                for r in rows
            ]

    def add_measurement(self, measurement: BodyMeasurement) -> None:
        with self.Session() as session:
            session.add(
                MeasurementRow(
                    id=measurement.measurement_id,
                    user_id=measurement.user_id,
                    measurement_type=measurement.measurement_type,
                    value=measurement.value,
                    unit=measurement.unit,
                    date=measurement.date,
                    notes=measurement.notes,
                    created_at=measurement.created_at,
                )
            )
            session.commit()

    def list_measurements(
        self, user_id: str, since_date: Optional[str] = None, limit: int = 100
    ) -> list[BodyMeasurement]:
        with self.Session() as session:
            stmt = select(MeasurementRow).where(MeasurementRow.user_id == user_id)
            if since_date is not None:
                stmt = stmt.where(MeasurementRow.date >= since_date)
            stmt = stmt.order_by(
                MeasurementRow.date.desc(), MeasurementRow.created_at.desc()
            ).limit(limit)
            return [
                BodyMeasurement(
                    measurement_id=r.id,
                    user_id=r.user_id,
                    measurement_type=r.measurement_type,
                    value=r.value,
                    unit=r.unit,
                    date=r.date,
                    notes=r.notes,
                    created_at=r.created_at,
                )
                for r in session.execute(stmt).scalars()
            ]

    # -- banners -----------------------------------------------------------

    @staticmethod
    def _to_banner(row: "BannerRow") -> MotivationBanner:
        return MotivationBanner(
            banner_id=row.id,
            title=row.title,
            message=row.message,
            is_active=row.is_active,
            expires_at=row.expires_at,
            created_by=row.created_by,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def save_banner(self, banner: MotivationBanner) -> MotivationBanner:
        with self.Session() as session:
            row = session.get(BannerRow, banner.banner_id)
            if not row:
                row = BannerRow(id=banner.banner_id, created_at=banner.created_at)
                session.add(row)
            row.title = banner.title
            row.message = banner.message
            row.is_active = banner.is_active
            row.expires_at = banner.expires_at
            row.created_by = banner.created_by
            row.updated_at = banner.updated_at
            session.commit()
            session.refresh(row)
            return self._to_banner(row)

    def get_banner(self, banner_id: str) -> Optional[MotivationBanner]:
        with self.Session() as session:
            row = session.get(BannerRow, banner_id)
            return self._to_banner(row) if row else None

    def list_banners(self) -> list[MotivationBanner]:
        with self.Session() as session:
            rows = session.execute(
                select(BannerRow).order_by(BannerRow.created_at.desc())
            ).scalars()
            return [self._to_banner(row) for row in rows]

    def activate_banner(self, banner_id: str) -> Optional[MotivationBanner]:
        with self.Session() as session:
            row = session.get(BannerRow, banner_id)
            if not row:
                return None
            session.execute(update(BannerRow).values(is_active=False))
            row.is_active = True
            row.updated_at = time.time()
            session.commit()
            session.refresh(row)
            return self._to_banner(row)

    def delete_banner(self, banner_id: str) -> bool:
        with self.Session() as session:
            result = session.execute(delete(BannerRow).where(BannerRow.id == banner_id))
            session.commit()
            return bool(result.rowcount)

    # -- packages ----------------------------------------------------------

    @staticmethod
    def _to_package(row: "PackageRow") -> Package:
        return Package(
            package_id=row.id,
            name=row.name,
            price=row.price,
            duration_days=row.duration_days,
            is_active=row.is_active,
            created_at=row.created_at,
        )

    def save_package(self, package: Package) -> Package:
        with self.Session() as session:
            row = session.get(PackageRow, package.package_id)
            if not row:
                row = PackageRow(id=package.package_id, created_at=package.created_at)
                session.add(row)
            row.name = package.name
            row.price = package.price
            row.duration_days = package.duration_days
            row.is_active = package.is_active
            session.commit()
            session.refresh(row)
            return self._to_package(row)

    def get_package(self, package_id: str) -> Optional[Package]:
        with self.Session() as session:
            row = session.get(PackageRow, package_id)
            return self._to_package(row) if row else None

    def list_packages(self) -> list[Package]:
        with self.Session() as session:
            rows = session.execute(
                select(PackageRow).order_by(PackageRow.price.asc())
            ).scalars()
            return [self._to_package(row) for row in rows]

    def add_user_package(self, assignment: UserPackage) -> UserPackage:
        with self.Session() as session:
            session.add(
                UserPackageRow(
                    id=assignment.assignment_id,
                    user_id=assignment.user_id,
                    package_id=assignment.package_id,
                    start_date=assignment.start_date,
                    end_date=assignment.end_date,
                    is_active=assignment.is_active,
                    created_at=assignment.created_at,
                )
            )
            session.commit()
        return assignment

    def list_user_packages(self, user_id: str) -> list[UserPackage]:
        with self.Session() as session:
            rows = session.execute(
                select(UserPackageRow)
                .where(UserPackageRow.user_id == user_id)
                .order_by(UserPackageRow.start_date.desc())
            ).scalars()
            return [
                UserPackage(
                    assignment_id=r.id,
                    user_id=r.user_id,
                    package_id=r.package_id,
                    start_date=r.start_date,
                    end_date=r.end_date,
                    is_active=r.is_active,
                    created_at=r.created_at,
                )
                for r in rows
            ]


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "user_preferences"

    user_id = Column(String, primary_key=True)
    full_name = Column(String, nullable=True)
    timezone = Column(String, nullable=True)
    notifications_enabled = Column(Boolean, nullable=False, default=True, index=True)
    meal_reminders_enabled = Column(Boolean, nullable=False, default=True)
    water_reminders_enabled = Column(Boolean, nullable=False, default=False)
    weekly_reminders_enabled = Column(Boolean, nullable=False, default=True)
    breakfast_time = Column(String, nullable=True)
    snack1_time = Column(String, nullable=True)
    lunch_time = Column(String, nullable=True)
    snack2_time = Column(String, nullable=True)
    dinner_time = Column(String, nullable=True)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class DeviceTokenRow(Base):
    __tablename__ = "fcm_tokens"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    token = Column(String, nullable=False, index=True)
    created_at = Column(Float, nullable=False)


class NotificationLogRow(Base):
    __tablename__ = "notification_logs"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    notification_type = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    body = Column(String, nullable=False)
    sent_at = Column(Float, nullable=False, index=True)
    data = Column("metadata", JSON, nullable=False, default=dict)


class TemplateRow(Base):
    __tablename__ = "notification_messages"

    id = Column(String, primary_key=True)
    notification_type = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    body = Column(String, nullable=False)
    is_active = Column(Boolean, nullable=False, default=False)
    is_enabled = Column(Boolean, nullable=False, default=True)
    schedule_time = Column(String, nullable=True)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class MealDayRow(Base):
    __tablename__ = "meals"

    user_id = Column(String, primary_key=True)
    date = Column(String, primary_key=True)
    breakfast_completed = Column(Boolean, nullable=False, default=False)
    breakfast_completed_at = Column(Float, nullable=True)
    snack1_completed = Column(Boolean, nullable=False, default=False)
    snack1_completed_at = Column(Float, nullable=True)
    lunch_completed = Column(Boolean, nullable=False, default=False)
    lunch_completed_at = Column(Float, nullable=True)
    snack2_completed = Column(Boolean, nullable=False, default=False)
    snack2_completed_at = Column(Float, nullable=True)
    dinner_completed = Column(Boolean, nullable=False, default=False)
    dinner_completed_at = Column(Float, nullable=True)
    notes = Column(String, nullable=True)
    updated_at = Column(Float, nullable=False)


class WaterIntakeRow(Base):
    __tablename__ = "water_intake"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    glass_count = Column(Integer, nullable=False, default=1)
    timestamp = Column(Float, nullable=False, index=True)


class MeasurementRow(Base):
    __tablename__ = "body_measurements"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    measurement_type = Column(String, nullable=False)
    value = Column(Float, nullable=False)
    unit = Column(String, nullable=True)
    date = Column(String, nullable=False, index=True)
    notes = Column(String, nullable=True)
    created_at = Column(Float, nullable=False)


class BannerRow(Base):
    __tablename__ = "motivation_banners"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    message = Column(String, nullable=False)
    is_active = Column(Boolean, nullable=False, default=False, index=True)
    expires_at = Column(Float, nullable=True)
    created_by = Column(String, nullable=True)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class PackageRow(Base):
    __tablename__ = "packages"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    price = Column(Float, nullable=False)
    duration_days = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(Float, nullable=False)


class UserPackageRow(Base):
    __tablename__ = "user_packages"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    package_id = Column(String, nullable=False, index=True)
    start_date = Column(String, nullable=False)
    end_date = Column(String, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(Float, nullable=False)
