"""
Error types raised by the notification pipeline.
"""

from __future__ import annotations


class NotificationError(Exception):
    """Base error for notification evaluation and delivery."""


class DedupCheckError(NotificationError):
    """The notification log could not be queried; callers must skip the send."""

    def __init__(self, user_id: str, kind: str, cause: Exception):
        self.user_id = user_id
        self.kind = kind
        super().__init__(f"dedup check failed for {kind}: {cause}")


class DispatchError(NotificationError):
    """The push provider call itself failed (no per-token outcomes)."""


class UserFetchError(NotificationError):
    """Eligible users could not be listed; the whole job is aborted."""


class NotFoundError(Exception):
    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} with id {identifier} not found")
