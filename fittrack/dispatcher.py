"""
Multicast dispatch with token de-duplication and error classification.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from fittrack.errors import DispatchError
from fittrack.push import PushProvider
from shared.constants import INVALID_TOKEN_ERROR_CODES

logger = logging.getLogger(__name__)


@dataclass
class SendResult:
    success_count: int = 0
    failure_count: int = 0
    invalid_tokens: list[str] = field(default_factory=list)
    delivered_tokens: list[str] = field(default_factory=list)

    @property
    def delivered(self) -> bool:
        return self.success_count > 0


def unique_tokens(tokens: Iterable[str]) -> list[str]:
    """Drop duplicates and blanks, keeping first-seen order."""
    seen: dict[str, None] = {}
    for token in tokens:
        if token and token not in seen:
            seen[token] = None
    return list(seen)


def is_invalid_token_error(error_code: Optional[str]) -> bool:
    return error_code in INVALID_TOKEN_ERROR_CODES


class NotificationDispatcher:
    """
    Sends one notification to a set of device tokens in a single provider call.

    There is no retry here. Tokens the provider reports as unregistered or
    invalid come back in ``invalid_tokens``; the caller deletes them from the
    token store right after the send. Other per-token failures are counted
    and otherwise ignored.
    """

    def __init__(self, provider: PushProvider):
        self.provider = provider

    def send(
        self,
        tokens: Iterable[str],
        title: str,
        body: str,
        data: Optional[dict[str, Any]] = None,
    ) -> SendResult:
        tokens = unique_tokens(tokens)
        if not tokens:
            return SendResult()

        try:
            outcomes = self.provider.send_multicast(tokens, title, body, data or {})
        except Exception as exc:
            raise DispatchError(f"push provider call failed: {exc}") from exc

        result = SendResult()
        for outcome in outcomes:
            if outcome.success:
                result.success_count += 1
                result.delivered_tokens.append(outcome.token)
                continue
            result.failure_count += 1
            if is_invalid_token_error(outcome.error_code):
                result.invalid_tokens.append(outcome.token)
            else:
                logger.debug(
                    "Transient push failure (%s) for token %s...",
                    outcome.error_code,
                    outcome.token[:16],
                )

        logger.info(
            "Push sent: %d success, %d failed, %d invalid",
            result.success_count,
            result.failure_count,
            len(result.invalid_tokens),
        )
        return result
