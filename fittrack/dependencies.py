"""
Dependency wiring for the FastAPI app.

Collaborators are built once per app by ``build_services`` and stored on
``app.state``; route dependencies read them from the request.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import Depends, Header, HTTPException, Request

from fittrack.config import Settings
from fittrack.db import DbClient, InMemoryDbClient, PostgresDbClient
from fittrack.dispatcher import NotificationDispatcher
from fittrack.jobs import NotificationJobRunner
from fittrack.push import FcmPushProvider, InMemoryPushProvider, PushProvider
from fittrack.queue import BrowserNotificationQueue, InMemoryBrowserQueue, RedisBrowserQueue

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Services:
    settings: Settings
    db: DbClient
    push: PushProvider
    browser_queue: BrowserNotificationQueue
    clock: Callable[[], datetime] = field(default=_utcnow)

    def __post_init__(self):
        self.dispatcher = NotificationDispatcher(self.push)

    def job_runner(self) -> NotificationJobRunner:
        return NotificationJobRunner(
            self.db,
            self.dispatcher,
            clock=self.clock,
            default_timezone=self.settings.default_timezone,
        )


def build_services(settings: Settings) -> Services:
    """Production collaborators where configured, in-memory ones otherwise."""
    if settings.use_in_memory_backends or not settings.database_url:
        db: DbClient = InMemoryDbClient()
    else:
        db = PostgresDbClient(settings.database_url)

    if settings.use_in_memory_backends or not settings.push_configured:
        if settings.use_in_memory_backends:
            logger.info("In-memory backends enabled; push sends are recorded only")
        else:
            logger.warning("Firebase credentials not configured; push sends are recorded only")
        push: PushProvider = InMemoryPushProvider()
    else:
        push = FcmPushProvider(
            credentials_path=settings.firebase_credentials_path,
            credentials_json=settings.firebase_credentials_json,
        )

    if settings.redis_url and not settings.use_in_memory_backends:
        browser_queue: BrowserNotificationQueue = RedisBrowserQueue(
            url=settings.redis_url,
            key_prefix=settings.browser_queue_key_prefix,
            max_items=settings.browser_queue_max_items,
        )
    else:
        browser_queue = InMemoryBrowserQueue(max_items=settings.browser_queue_max_items)

    return Services(settings=settings, db=db, push=push, browser_queue=browser_queue)


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_db_client(services: Services = Depends(get_services)) -> DbClient:
    return services.db


def get_browser_queue(
    services: Services = Depends(get_services),
) -> BrowserNotificationQueue:
    return services.browser_queue


def get_job_runner(services: Services = Depends(get_services)) -> NotificationJobRunner:
    return services.job_runner()


def _check_bearer(authorization: Optional[str], secret: Optional[str]) -> None:
    if not secret:
        raise HTTPException(status_code=401, detail="Unauthorized")
    expected = f"Bearer {secret}"
    if not authorization or not hmac.compare_digest(authorization, expected):
        raise HTTPException(status_code=401, detail="Unauthorized")


def require_cron_secret(
    authorization: Optional[str] = Header(default=None),
    services: Services = Depends(get_services),
) -> None:
    _check_bearer(authorization, services.settings.cron_secret)


def require_admin_secret(
    authorization: Optional[str] = Header(default=None),
    services: Services = Depends(get_services),
) -> None:
    _check_bearer(authorization, services.settings.effective_admin_secret)
