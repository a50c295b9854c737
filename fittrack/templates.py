"""
Message templates: admin-configured text per kind with hardcoded fallbacks.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, replace
from typing import Optional

from fittrack.db import DbClient
from fittrack.errors import NotFoundError
from fittrack.scheduling import LocalTime, parse_hhmm
from shared.constants import MAX_BODY_LENGTH, MAX_TITLE_LENGTH
from shared.types import (
    MEAL_DISPLAY_NAMES,
    MEAL_REMINDER_KINDS,
    NotificationKind,
    NotificationTemplate,
    UserProfile,
)

logger = logging.getLogger(__name__)

_MEAL_KIND_NAMES = {kind: MEAL_DISPLAY_NAMES[meal] for meal, kind in MEAL_REMINDER_KINDS.items()}

# Client-side route the app opens when the notification is tapped.
NOTIFICATION_ACTIONS: dict[NotificationKind, str] = {
    NotificationKind.GOOD_MORNING: "open_app",
    NotificationKind.GOOD_NIGHT: "open_meals",
    NotificationKind.WATER_REMINDER: "open_water",
    NotificationKind.WEEKLY_MEASUREMENT_REMINDER: "open_measurements",
    NotificationKind.WEEKLY_WEIGHT_REMINDER: "open_weight",
    NotificationKind.FEEDBACK_REQUEST: "open_feedback",
    NotificationKind.MEMBERSHIP_EXPIRING: "open_subscription",
    NotificationKind.MEMBERSHIP_EXPIRED: "open_subscription",
    **{kind: "open_meals" for kind in MEAL_REMINDER_KINDS.values()},
}

_DEFAULTS: dict[NotificationKind, tuple[str, str]] = {
    NotificationKind.GOOD_MORNING: (
        "🌅 Good Morning!",
        "Good morning {name}! Ready to start your wellness journey today?",
    ),
    NotificationKind.WATER_REMINDER: (
        "💧 Time to Hydrate",
        "Hey {name}! Have a glass of water and log it to stay on track.",
    ),
    NotificationKind.WEEKLY_WEIGHT_REMINDER: (
        "⚖️ Weekly Weight Check",
        "Hey {name}! Step on the scale and log your weight for this week.",
    ),
    NotificationKind.MEMBERSHIP_EXPIRING: (
        "⏰ Membership Expiring",
        "Hi {name}, your membership is about to expire. Renew to keep your plan.",
    ),
    NotificationKind.MEMBERSHIP_EXPIRED: (
        "❌ Membership Expired",
        "Hi {name}, your membership has expired. Renew any time to continue.",
    ),
    NotificationKind.FEEDBACK_REQUEST: (
        "📝 How are we doing?",
        "Hi {name}, we'd love to hear your feedback on the app.",
    ),
}


@dataclass
class MessageContext:
    """Per-user facts the default messages are personalised with."""

    meals_completed: Optional[int] = None
    has_recent_weight: Optional[bool] = None
    has_recent_body_measurements: Optional[bool] = None


@dataclass(frozen=True)
class RenderedMessage:
    title: str
    body: str
    url: Optional[str] = None


def fill_placeholders(text: str, user: UserProfile, local: LocalTime) -> str:
    return text.replace("{name}", user.first_name).replace(
        "{currentTime}", local.time_string
    )


def _good_night_default(context: MessageContext) -> tuple[str, str, str]:
    completed = context.meals_completed or 0
    body = "Good night {name}! 🌙"
    url = "/meals"
    if completed >= 4:
        body += " Great job completing your meals today! Sweet dreams! 😴"
        url = "/dashboard"
    elif completed >= 2:
        body += " You did well today! Don't forget to log tomorrow's meals. 📝"
    else:
        body += " Remember to track your meals tomorrow for better health! 🍽️"
    return "🌙 Good Night!", body, url


def _weekly_measurement_default(context: MessageContext) -> tuple[str, str, str]:
    weight = bool(context.has_recent_weight)
    body_measurements = bool(context.has_recent_body_measurements)
    body = "Hey {name}! 📏"
    if not weight and not body_measurements:
        body += (
            " Time for your weekly measurements! Track your weight and body"
            " measurements to monitor your progress. 💪"
        )
    elif not weight:
        body += " Don't forget to log your weight this week! Your body measurements look good. ⚖️"
    elif not body_measurements:
        body += " Great job logging your weight! How about tracking your body measurements too? 📐"
    else:
        body += " You're doing amazing with your measurements! Keep up the consistent tracking. 🎯"
    return "📏 Weekly Measurement Reminder", body, "/measurements"


def default_message(
    kind: NotificationKind, context: MessageContext
) -> tuple[str, str, Optional[str]]:
    if kind == NotificationKind.GOOD_NIGHT:
        return _good_night_default(context)
    if kind == NotificationKind.WEEKLY_MEASUREMENT_REMINDER:
        return _weekly_measurement_default(context)
    if kind in _MEAL_KIND_NAMES:
        meal_name = _MEAL_KIND_NAMES[kind]
        return (
            "🍽️ Meal Reminder",
            f"Hey {{name}}! You missed your {meal_name}. Don't forget to log it!",
            "/meals",
        )
    if kind in _DEFAULTS:
        title, body = _DEFAULTS[kind]
        return title, body, None
    return "Fitness Tracker", "Hi {name}!", None


def render_message(
    kind: NotificationKind,
    template: Optional[NotificationTemplate],
    user: UserProfile,
    local: LocalTime,
    context: Optional[MessageContext] = None,
) -> RenderedMessage:
    """
    ``template`` (the active one for ``kind``) if given, otherwise the
    default, with ``{name}`` and ``{currentTime}`` filled in.
    """
    if template:
        return RenderedMessage(
            title=fill_placeholders(template.title, user, local),
            body=fill_placeholders(template.body, user, local),
        )
    title, body, url = default_message(kind, context or MessageContext())
    return RenderedMessage(
        title=fill_placeholders(title, user, local),
        body=fill_placeholders(body, user, local),
        url=url,
    )


def scheduled_hour(template: Optional[NotificationTemplate], default: int) -> int:
    """Hour from the template's ``schedule_time`` when set, else ``default``."""
    if template is not None:
        parsed = parse_hhmm(template.schedule_time)
        if parsed is not None:
            return parsed[0]
    return default


def _check_lengths(title: str, body: str) -> None:
    if not title.strip() or not body.strip():
        raise ValueError("title and body are required")
    if len(title) > MAX_TITLE_LENGTH:
        raise ValueError(f"title must be at most {MAX_TITLE_LENGTH} characters")
    if len(body) > MAX_BODY_LENGTH:
        raise ValueError(f"body must be at most {MAX_BODY_LENGTH} characters")


def _normalize_schedule_time(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    parsed = parse_hhmm(value)
    if parsed is None:
        raise ValueError(f"schedule_time must be HH:MM, got {value!r}")
    return f"{parsed[0]:02d}:{parsed[1]:02d}"


def create_template(
    db: DbClient,
    kind: NotificationKind,
    title: str,
    body: str,
    is_active: bool = False,
    *,
    is_enabled: bool = True,
    schedule_time: Optional[str] = None,
) -> NotificationTemplate:
    _check_lengths(title, body)
    template = db.save_template(
        NotificationTemplate(
            template_id=uuid.uuid4().hex,
            kind=kind,
            title=title.strip(),
            body=body.strip(),
            is_enabled=is_enabled,
            schedule_time=_normalize_schedule_time(schedule_time),
        )
    )
    if is_active:
        template = db.activate_template(template.template_id) or template
    logger.info("Created %s template %s", kind, template.template_id)
    return template


def update_template(
    db: DbClient,
    template_id: str,
    title: Optional[str] = None,
    body: Optional[str] = None,
    *,
    is_enabled: Optional[bool] = None,
    schedule_time: Optional[str] = None,
) -> NotificationTemplate:
    """
    Apply the given changes. An empty ``schedule_time`` string clears the
    configured hour; ``None`` leaves it as it is.
    """
    template = db.get_template(template_id)
    if not template:
        raise NotFoundError("template", template_id)
    updated = replace(
        template,
        title=title.strip() if title is not None else template.title,
        body=body.strip() if body is not None else template.body,
        is_enabled=is_enabled if is_enabled is not None else template.is_enabled,
        schedule_time=(
            _normalize_schedule_time(schedule_time)
            if schedule_time is not None
            else template.schedule_time
        ),
        updated_at=time.time(),
    )
    _check_lengths(updated.title, updated.body)
    return db.save_template(updated)


def activate_template(db: DbClient, template_id: str) -> NotificationTemplate:
    """Make this the active template for its kind; siblings are deactivated."""
    template = db.activate_template(template_id)
    if not template:
        raise NotFoundError("template", template_id)
    return template
