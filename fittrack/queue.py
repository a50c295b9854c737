"""
Browser notification relay: a bounded per-user queue drained by polling.

Supports an in-memory fallback for tests/local runs and a Redis-backed
implementation for production. Each user's queue keeps only the newest
``max_items`` entries; draining returns them oldest first and empties the queue.
"""

from __future__ import annotations

import json
from collections import deque
from dataclasses import asdict, dataclass, field
from typing import Protocol

import redis
from dacite import Config, from_dict

from shared.constants import BROWSER_QUEUE_MAX_ITEMS
from shared.types import BrowserNotification


class BrowserNotificationQueue(Protocol):
    def enqueue(self, notification: BrowserNotification) -> None:
        ...

    def drain(self, user_id: str) -> list[BrowserNotification]:
        ...


@dataclass
class InMemoryBrowserQueue:
    """Per-user deques capped at ``max_items``; the oldest entry is dropped on overflow."""

    max_items: int = BROWSER_QUEUE_MAX_ITEMS
    queues: dict[str, deque] = field(default_factory=dict)

    def enqueue(self, notification: BrowserNotification) -> None:
        queue = self.queues.setdefault(
            notification.user_id, deque(maxlen=self.max_items)
        )
        queue.append(notification)

    def drain(self, user_id: str) -> list[BrowserNotification]:
        queue = self.queues.pop(user_id, None)
        return list(queue) if queue else []


def _decode(raw: bytes | str) -> BrowserNotification:
    payload = json.loads(raw)
    return from_dict(
        data_class=BrowserNotification,
        data=payload,
        config=Config(check_types=False),
    )


@dataclass
class RedisBrowserQueue:
    """Redis lists keyed per user, trimmed after every push."""

    url: str
    key_prefix: str = "fittrack:browser"
    max_items: int = BROWSER_QUEUE_MAX_ITEMS

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)

    def _key(self, user_id: str) -> str:
        return f"{self.key_prefix}:{user_id}"

    def enqueue(self, notification: BrowserNotification) -> None:
        key = self._key(notification.user_id)
        pipe = self.client.pipeline(transaction=True)
        pipe.rpush(key, json.dumps(asdict(notification)))
        pipe.ltrim(key, -self.max_items, -1)
        pipe.execute()

    def drain(self, user_id: str) -> list[BrowserNotification]:
        key = self._key(user_id)
        pipe = self.client.pipeline(transaction=True)
        pipe.lrange(key, 0, -1)
        pipe.delete(key)
        items, _ = pipe.execute()
        return [_decode(item) for item in items or []]
