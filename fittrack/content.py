"""
Admin-managed content: dashboard motivation banners and membership packages.

Thin wrappers around the DbClient, in the same shape as ``tracking``.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from fittrack.db import DbClient
from fittrack.errors import NotFoundError
from fittrack.scheduling import local_date_key
from fittrack.tracking import require_user
from shared.constants import MAX_BODY_LENGTH, MAX_TITLE_LENGTH
from shared.types import MotivationBanner, Package, UserPackage

logger = logging.getLogger(__name__)


# -- banners -----------------------------------------------------------------


def _check_banner_text(title: str, message: str) -> None:
    if not title.strip() or not message.strip():
        raise ValueError("title and message are required")
    if len(title) > MAX_TITLE_LENGTH:
        raise ValueError(f"title must be at most {MAX_TITLE_LENGTH} characters")
    if len(message) > MAX_BODY_LENGTH:
        raise ValueError(f"message must be at most {MAX_BODY_LENGTH} characters")


def _require_banner(db: DbClient, banner_id: str) -> MotivationBanner:
    banner = db.get_banner(banner_id)
    if not banner:
        raise NotFoundError("banner", banner_id)
    return banner


def get_active_banner(
    db: DbClient, now: Optional[datetime] = None
) -> Optional[MotivationBanner]:
    """The active banner, or None when there is none or it has expired."""
    now = now or datetime.now(timezone.utc)
    for banner in db.list_banners():
        if banner.is_active:
            if banner.expires_at is not None and banner.expires_at < now.timestamp():
                return None
            return banner
    return None


def list_banners(db: DbClient) -> list[MotivationBanner]:
    return db.list_banners()


def create_banner(
    db: DbClient,
    title: str,
    message: str,
    expires_at: Optional[float] = None,
    created_by: Optional[str] = None,
) -> MotivationBanner:
    """New banners start inactive."""
    _check_banner_text(title, message)
    banner = db.save_banner(
        MotivationBanner(
            banner_id=uuid.uuid4().hex,
            title=title.strip(),
            message=message.strip(),
            expires_at=expires_at,
            created_by=created_by,
        )
    )
    logger.info("Created banner %s", banner.banner_id)
    return banner


def update_banner(
    db: DbClient,
    banner_id: str,
    title: str,
    message: str,
    expires_at: Optional[float] = None,
) -> MotivationBanner:
    banner = _require_banner(db, banner_id)
    _check_banner_text(title, message)
    return db.save_banner(
        replace(
            banner,
            title=title.strip(),
            message=message.strip(),
            expires_at=expires_at,
            updated_at=time.time(),
        )
    )


def activate_banner(db: DbClient, banner_id: str) -> MotivationBanner:
    """Make this the only active banner."""
    banner = db.activate_banner(banner_id)
    if not banner:
        raise NotFoundError("banner", banner_id)
    logger.info("Activated banner %s", banner_id)
    return banner


def deactivate_banner(db: DbClient, banner_id: str) -> MotivationBanner:
    banner = _require_banner(db, banner_id)
    return db.save_banner(replace(banner, is_active=False, updated_at=time.time()))


def delete_banner(db: DbClient, banner_id: str) -> None:
    if not db.delete_banner(banner_id):
        raise NotFoundError("banner", banner_id)
    logger.info("Deleted banner %s", banner_id)


# -- packages ----------------------------------------------------------------


def _require_package(db: DbClient, package_id: str) -> Package:
    package = db.get_package(package_id)
    if not package:
        raise NotFoundError("package", package_id)
    return package


def list_packages(db: DbClient) -> list[Package]:
    """All packages, cheapest first."""
    return db.list_packages()


def create_package(
    db: DbClient, name: str, price: float, duration_days: int
) -> Package:
    if not name.strip():
        raise ValueError("name is required")
    if price < 0:
        raise ValueError("price must not be negative")
    if duration_days < 1:
        raise ValueError("duration_days must be at least 1")
    package = db.save_package(
        Package(
            package_id=uuid.uuid4().hex,
            name=name.strip(),
            price=price,
            duration_days=duration_days,
        )
    )
    logger.info("Created package %s (%s)", package.package_id, package.name)
    return package


def set_package_status(db: DbClient, package_id: str, is_active: bool) -> Package:
    package = _require_package(db, package_id)
    return db.save_package(replace(package, is_active=is_active))


def assign_package(
    db: DbClient, user_id: str, package_id: str, now: Optional[datetime] = None
) -> UserPackage:
    """
    Start the package on the user's local today. The end date is inclusive,
    so a 30-day package started on the 1st ends on the 30th.
    """
    user = require_user(db, user_id)
    package = _require_package(db, package_id)
    if not package.is_active:
        raise ValueError(f"package {package_id} is not active")
    start = local_date_key(user.timezone, now)
    end = date.fromisoformat(start) + timedelta(days=package.duration_days - 1)
    assignment = db.add_user_package(
        UserPackage(
            assignment_id=uuid.uuid4().hex,
            user_id=user_id,
            package_id=package_id,
            start_date=start,
            end_date=end.isoformat(),
        )
    )
    logger.info("Assigned package %s to user %s until %s", package_id, user_id, assignment.end_date)
    return assignment


def list_user_packages(db: DbClient, user_id: str) -> list[UserPackage]:
    require_user(db, user_id)
    return db.list_user_packages(user_id)
