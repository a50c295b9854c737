"""
Per-kind notification jobs invoked by the external hourly scheduler.

Each run recomputes everything from storage: list users with notifications
enabled, then for each user independently evaluate the local firing window,
check the notification log for a send in the current period, resolve the
message, dispatch, prune invalid tokens and log the delivery. One user's
failure is recorded in the job's error list and never aborts the batch.

The active template of a kind doubles as its schedule config. A kind whose
active template is disabled sends nothing; a ``schedule_time`` on it moves
the hour of the fixed-hour kinds (good morning and the weekly reminders).

The check-then-log sequence is not atomic. Two overlapping runs for the same
user, kind and period can both pass the dedup check and both send.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from fittrack.db import DbClient
from fittrack.dedup import DeduplicationCheck
from fittrack.dispatcher import NotificationDispatcher, unique_tokens
from fittrack.errors import DedupCheckError, UserFetchError
from fittrack.scheduling import (
    WindowCheck,
    local_time,
    meal_day_key,
    meal_reminder_hour,
    period_start,
    resolve_timezone,
    should_fire_at_fixed_hour,
    should_fire_relative_to_anchor,
    should_fire_weekly,
)
from fittrack.templates import (
    NOTIFICATION_ACTIONS,
    MessageContext,
    render_message,
    scheduled_hour,
)
from fittrack.tracking import is_meal_completed, meals_completed, recent_measurement_flags
from shared.constants import (
    DEFAULT_TIMEZONE,
    GOOD_MORNING_HOUR,
    GOOD_NIGHT_MAX_HOUR,
    GOOD_NIGHT_MIN_HOUR,
    GOOD_NIGHT_OFFSET_MINUTES,
    SUNDAY,
    WATER_REMINDER_FIRST_HOUR,
    WATER_REMINDER_LAST_HOUR,
    WEEKLY_MEASUREMENT_HOUR,
    WEEKLY_WEIGHT_HOUR,
)
from shared.types import (
    MEAL_REMINDER_KINDS,
    DedupPeriod,
    MealType,
    NotificationKind,
    NotificationLogEntry,
    NotificationTemplate,
    UserProfile,
)

logger = logging.getLogger(__name__)

# (user, timezone name, now, configured hour or None) -> window check
WindowFn = Callable[[UserProfile, str, datetime, Optional[int]], WindowCheck]


@dataclass(frozen=True)
class KindRule:
    kind: NotificationKind
    period: DedupPeriod
    window: WindowFn
    eligible: Callable[[UserProfile], bool] = lambda user: True
    meal: Optional[MealType] = None
    # Set for kinds whose hour a template's schedule_time may override.
    default_hour: Optional[int] = None


@dataclass
class JobResult:
    total_users: int = 0
    notifications_sent: int = 0
    errors: list[str] = field(default_factory=list)

    def merge(self, other: "JobResult") -> None:
        self.notifications_sent += other.notifications_sent
        self.errors.extend(other.errors)


@dataclass
class BroadcastResult:
    total_tokens: int
    success_count: int
    failure_count: int
    invalid_tokens_removed: int
    message: str

    @property
    def success(self) -> bool:
        return self.total_tokens == 0 or self.success_count > 0


def _fixed_hour_window(
    user: UserProfile, tz: str, now: datetime, hour: Optional[int]
) -> WindowCheck:
    return should_fire_at_fixed_hour(tz, hour, now)


def _good_night_window(
    user: UserProfile, tz: str, now: datetime, hour: Optional[int]
) -> WindowCheck:
    return should_fire_relative_to_anchor(
        tz,
        user.dinner_time,
        GOOD_NIGHT_OFFSET_MINUTES,
        GOOD_NIGHT_MIN_HOUR,
        GOOD_NIGHT_MAX_HOUR,
        now,
    )


def _water_window(
    user: UserProfile, tz: str, now: datetime, hour: Optional[int]
) -> WindowCheck:
    local = local_time(tz, now)
    fire = (
        WATER_REMINDER_FIRST_HOUR <= local.hour <= WATER_REMINDER_LAST_HOUR
        and local.hour % 2 == 0
    )
    return WindowCheck(should_fire=fire, local=local, target_hour=local.hour)


def _weekly_window(
    user: UserProfile, tz: str, now: datetime, hour: Optional[int]
) -> WindowCheck:
    return should_fire_weekly(tz, SUNDAY, hour, now)


def _meal_window(meal: MealType) -> WindowFn:
    def window(
        user: UserProfile, tz: str, now: datetime, hour: Optional[int]
    ) -> WindowCheck:
        reminder_hour = meal_reminder_hour(user.meal_time(meal))
        if reminder_hour is None:
            return WindowCheck(should_fire=False, local=local_time(tz, now), target_hour=-1)
        return should_fire_at_fixed_hour(tz, reminder_hour, now)

    return window


def _build_rules() -> dict[NotificationKind, KindRule]:
    rules = [
        KindRule(
            NotificationKind.GOOD_MORNING,
            DedupPeriod.DAILY,
            _fixed_hour_window,
            default_hour=GOOD_MORNING_HOUR,
        ),
        KindRule(NotificationKind.GOOD_NIGHT, DedupPeriod.DAILY, _good_night_window),
        KindRule(
            NotificationKind.WATER_REMINDER,
            DedupPeriod.HOURLY,
            _water_window,
            eligible=lambda user: user.water_reminders_enabled,
        ),
        KindRule(
            NotificationKind.WEEKLY_MEASUREMENT_REMINDER,
            DedupPeriod.WEEKLY,
            _weekly_window,
            eligible=lambda user: user.weekly_reminders_enabled,
            default_hour=WEEKLY_MEASUREMENT_HOUR,
        ),
        KindRule(
            NotificationKind.WEEKLY_WEIGHT_REMINDER,
            DedupPeriod.WEEKLY,
            _weekly_window,
            eligible=lambda user: user.weekly_reminders_enabled,
            default_hour=WEEKLY_WEIGHT_HOUR,
        ),
    ]
    for meal, kind in MEAL_REMINDER_KINDS.items():
        rules.append(
            KindRule(
                kind,
                DedupPeriod.DAILY,
                _meal_window(meal),
                eligible=lambda user, meal=meal: user.meal_reminders_enabled
                and user.meal_time(meal) is not None,
                meal=meal,
            )
        )
    return {rule.kind: rule for rule in rules}


RULES: dict[NotificationKind, KindRule] = _build_rules()
SCHEDULED_KINDS: tuple[NotificationKind, ...] = tuple(RULES)


class NotificationJobRunner:
    def __init__(
        self,
        db: DbClient,
        dispatcher: NotificationDispatcher,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        default_timezone: str = DEFAULT_TIMEZONE,
    ):
        self.db = db
        self.dispatcher = dispatcher
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.default_timezone = default_timezone
        self.dedup = DeduplicationCheck(db)

    def _fetch_users(self) -> list[UserProfile]:
        try:
            return self.db.list_notification_users()
        except Exception as exc:
            logger.exception("Failed to fetch users for notification job")
            raise UserFetchError(f"failed to fetch users: {exc}") from exc

    def run(self, kind: NotificationKind) -> JobResult:
        if kind not in RULES:
            raise ValueError(f"{kind} is not a scheduled notification kind")
        users = self._fetch_users()
        return self._run_rule(RULES[kind], users, self.clock())

    def run_meal_reminders(self) -> JobResult:
        users = self._fetch_users()
        now = self.clock()
        result = JobResult(total_users=len(users))
        for kind in MEAL_REMINDER_KINDS.values():
            result.merge(self._run_rule(RULES[kind], users, now))
        return result

    def run_scheduled(self) -> tuple[int, list[tuple[NotificationKind, JobResult]]]:
        """Every scheduled kind against one user snapshot; the unified cron entry point."""
        users = self._fetch_users()
        now = self.clock()
        results = [(kind, self._run_rule(RULES[kind], users, now)) for kind in SCHEDULED_KINDS]
        return len(users), results

    def _run_rule(
        self, rule: KindRule, users: list[UserProfile], now: datetime
    ) -> JobResult:
        result = JobResult(total_users=len(users))
        try:
            template = self.db.get_active_template(rule.kind)
        except Exception as exc:
            logger.warning("Could not load %s template config: %s", rule.kind, exc)
            result.errors.append(f"Failed to load {rule.kind.value} config: {exc}")
            return result
        if template is not None and not template.is_enabled:
            logger.info("%s disabled by its active template; skipping", rule.kind)
            return result
        hour = (
            scheduled_hour(template, rule.default_hour)
            if rule.default_hour is not None
            else None
        )

        for user in users:
            try:
                if self._process_user(rule, user, now, result, template, hour):
                    result.notifications_sent += 1
            except DedupCheckError as exc:
                logger.warning("Skipping %s for user %s: %s", rule.kind, user.user_id, exc)
                result.errors.append(f"User {user.user_id}: {exc}")
            except Exception as exc:
                logger.warning(
                    "Error processing %s for user %s: %s", rule.kind, user.user_id, exc
                )
                result.errors.append(f"Error processing user {user.user_id}: {exc}")
        logger.info(
            "%s: %d sent to %d users, %d errors",
            rule.kind,
            result.notifications_sent,
            result.total_users,
            len(result.errors),
        )
        return result

    def _process_user(
        self,
        rule: KindRule,
        user: UserProfile,
        now: datetime,
        result: JobResult,
        template: Optional[NotificationTemplate],
        hour: Optional[int],
    ) -> bool:
        if not user.notifications_enabled or not rule.eligible(user):
            return False
        tz = resolve_timezone(user.timezone, self.default_timezone).key
        check = rule.window(user, tz, now, hour)
        if not check.should_fire:
            return False

        if self.dedup.already_sent(user.user_id, rule.kind, period_start(rule.period, tz, now)):
            logger.debug("%s already sent this period to user %s", rule.kind, user.user_id)
            return False

        context = MessageContext()
        if rule.meal is not None or rule.kind == NotificationKind.GOOD_NIGHT:
            date_key = check.local.date_key
            if rule.meal is not None:
                date_key = meal_day_key(user.meal_time(rule.meal), check.local)
            day = self.db.get_meal_day(user.user_id, date_key)
            if rule.meal is not None and is_meal_completed(day, rule.meal):
                return False
            context.meals_completed = meals_completed(day)
        if rule.kind == NotificationKind.WEEKLY_MEASUREMENT_REMINDER:
            weight, body = recent_measurement_flags(self.db, user, now)
            context.has_recent_weight = weight
            context.has_recent_body_measurements = body

        tokens = self.db.list_tokens(user.user_id)
        if not tokens:
            logger.debug("No device tokens for user %s", user.user_id)
            return False

        message = render_message(rule.kind, template, user, check.local, context)
        data = {
            "type": rule.kind.value,
            "action": NOTIFICATION_ACTIONS.get(rule.kind, "open_app"),
            "timestamp": now.isoformat(),
        }
        if message.url:
            data["url"] = message.url
        if rule.meal is not None:
            data["meal_type"] = rule.meal.value

        sent = self.dispatcher.send(tokens, message.title, message.body, data)
        if sent.invalid_tokens:
            removed = self.db.delete_tokens(sent.invalid_tokens, user_id=user.user_id)
            logger.info("Pruned %d invalid token(s) for user %s", removed, user.user_id)

        if not sent.delivered:
            logger.warning("All tokens failed for %s to user %s", rule.kind, user.user_id)
            result.errors.append(
                f"Failed to send {rule.kind.value} to user {user.user_id}: "
                f"all {sent.failure_count} token(s) failed"
            )
            return False

        metadata = {
            "success_count": sent.success_count,
            "failure_count": sent.failure_count,
            "local_date": check.local.date_key,
        }
        if context.meals_completed is not None:
            metadata["meals_completed"] = context.meals_completed
        self.db.add_notification_log(
            NotificationLogEntry(
                user_id=user.user_id,
                kind=rule.kind,
                title=message.title,
                body=message.body,
                sent_at=now.timestamp(),
                metadata=metadata,
            )
        )
        logger.info("Sent %s to user %s", rule.kind, user.user_id)
        return True


def send_admin_broadcast(
    db: DbClient,
    dispatcher: NotificationDispatcher,
    title: str,
    body: str,
    *,
    now: Optional[datetime] = None,
) -> BroadcastResult:
    """Send one message to every registered device and prune the tokens FCM rejects."""
    now = now or datetime.now(timezone.utc)
    stored = db.list_all_tokens()
    tokens = unique_tokens(t.token for t in stored)
    if not tokens:
        return BroadcastResult(0, 0, 0, 0, "No device tokens registered")

    logger.info("Admin broadcast to %d tokens: %r", len(tokens), title)
    sent = dispatcher.send(
        tokens,
        title,
        body,
        {
            "type": NotificationKind.ADMIN_BROADCAST.value,
            "timestamp": now.isoformat(),
            "url": "/dashboard",
        },
    )
    removed = db.delete_tokens(sent.invalid_tokens) if sent.invalid_tokens else 0

    if sent.delivered:
        delivered = set(sent.delivered_tokens)
        recipients = {t.user_id for t in stored if t.token in delivered}
        for user_id in sorted(recipients):
            db.add_notification_log(
                NotificationLogEntry(
                    user_id=user_id,
                    kind=NotificationKind.ADMIN_BROADCAST,
                    title=title,
                    body=body,
                    sent_at=now.timestamp(),
                    metadata={
                        "success_count": sent.success_count,
                        "failure_count": sent.failure_count,
                    },
                )
            )
        message = (
            f"Notification sent successfully to {sent.success_count} "
            f"out of {len(tokens)} devices"
        )
    else:
        message = f"Notification failed for all {len(tokens)} devices"
    return BroadcastResult(
        total_tokens=len(tokens),
        success_count=sent.success_count,
        failure_count=sent.failure_count,
        invalid_tokens_removed=removed,
        message=message,
    )
