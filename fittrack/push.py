"""
Push delivery providers: Firebase Cloud Messaging and an in-memory double.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

import firebase_admin
from firebase_admin import credentials, exceptions as firebase_exceptions, messaging

from shared.constants import FCM_MULTICAST_LIMIT, FCM_TTL_SECONDS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenOutcome:
    token: str
    success: bool
    error_code: Optional[str] = None


class PushProvider(Protocol):
    """Sends one notification to many device tokens and reports per-token outcomes."""

    def send_multicast(
        self, tokens: list[str], title: str, body: str, data: dict[str, Any]
    ) -> list[TokenOutcome]:
        ...


@dataclass
class SentPush:
    tokens: list[str]
    title: str
    body: str
    data: dict[str, Any]


@dataclass
class InMemoryPushProvider:
    """
    Records sends instead of delivering them.

    Tokens listed in ``invalid_tokens`` fail as unregistered; tokens in
    ``transient_tokens`` fail with an ``unavailable`` error.
    """

    invalid_tokens: set[str] = field(default_factory=set)
    transient_tokens: set[str] = field(default_factory=set)
    sent: list[SentPush] = field(default_factory=list)

    def send_multicast(
        self, tokens: list[str], title: str, body: str, data: dict[str, Any]
    ) -> list[TokenOutcome]:
        self.sent.append(SentPush(tokens=list(tokens), title=title, body=body, data=dict(data)))
        outcomes = []
        for token in tokens:
            if token in self.invalid_tokens:
                outcomes.append(
                    TokenOutcome(token, False, "registration-token-not-registered")
                )
            elif token in self.transient_tokens:
                outcomes.append(TokenOutcome(token, False, "unavailable"))
            else:
                outcomes.append(TokenOutcome(token, True))
        return outcomes


def _error_code(exc: Optional[Exception]) -> str:
    if exc is None:
        return "unknown"
    if isinstance(exc, messaging.UnregisteredError):
        return "registration-token-not-registered"
    if isinstance(exc, firebase_exceptions.InvalidArgumentError):
        return "invalid-argument"
    code = getattr(exc, "code", None)
    if isinstance(code, str) and code:
        return code.lower().replace("_", "-")
    return "unknown"


class FcmPushProvider:
    """
    Firebase Admin SDK sender using ``send_each_for_multicast``.

    FCM accepts at most 500 tokens per multicast request, so larger lists are
    split into consecutive batches; outcomes come back in token order.
    """

    def __init__(
        self,
        credentials_path: Optional[str] = None,
        credentials_json: Optional[str] = None,
        app_name: str = "fittrack",
    ):
        if credentials_path:
            cred = credentials.Certificate(credentials_path)
        elif credentials_json:
            cred = credentials.Certificate(json.loads(credentials_json))
        else:
            raise ValueError("Firebase credentials are required for FcmPushProvider")
        try:
            self._app = firebase_admin.get_app(app_name)
        except ValueError:
            self._app = firebase_admin.initialize_app(cred, name=app_name)
        logger.info("Firebase Admin app %s initialised", app_name)

    def _build_message(
        self, tokens: list[str], title: str, body: str, data: dict[str, Any]
    ) -> messaging.MulticastMessage:
        # FCM data payload values must be strings.
        data_str = {k: str(v) for k, v in data.items() if v is not None}
        return messaging.MulticastMessage(
            tokens=tokens,
            notification=messaging.Notification(title=title, body=body),
            data=data_str,
            android=messaging.AndroidConfig(priority="high", ttl=FCM_TTL_SECONDS),
            webpush=messaging.WebpushConfig(headers={"TTL": str(FCM_TTL_SECONDS)}),
        )

    def send_multicast(
        self, tokens: list[str], title: str, body: str, data: dict[str, Any]
    ) -> list[TokenOutcome]:
        outcomes: list[TokenOutcome] = []
        for start in range(0, len(tokens), FCM_MULTICAST_LIMIT):
            batch = tokens[start : start + FCM_MULTICAST_LIMIT]
            response = messaging.send_each_for_multicast(
                self._build_message(batch, title, body, data), app=self._app
            )
            for token, resp in zip(batch, response.responses):
                if resp.success:
                    outcomes.append(TokenOutcome(token, True))
                else:
                    outcomes.append(
                        TokenOutcome(token, False, _error_code(resp.exception))
                    )
            logger.info(
                "FCM batch sent: %d success, %d failed",
                response.success_count,
                response.failure_count,
            )
        return outcomes
