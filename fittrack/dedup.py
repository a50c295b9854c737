"""
"Already sent this period?" check against the notification log.
"""

from __future__ import annotations

from datetime import datetime

from fittrack.db import DbClient
from fittrack.errors import DedupCheckError
from shared.types import NotificationKind


class DeduplicationCheck:
    def __init__(self, db: DbClient):
        self.db = db

    def already_sent(
        self, user_id: str, kind: NotificationKind, period_start: datetime
    ) -> bool:
        """
        True if a log entry for (user, kind) exists with ``sent_at >= period_start``.

        A failed lookup raises DedupCheckError; it never answers False.
        """
        try:
            return self.db.has_notification_since(
                user_id, kind, period_start.timestamp()
            )
        except Exception as exc:
            raise DedupCheckError(user_id, kind.value, exc) from exc
