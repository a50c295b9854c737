import unittest
from datetime import datetime, timezone
from unittest.mock import patch

from fittrack.db import InMemoryDbClient
from fittrack.dispatcher import NotificationDispatcher
from fittrack.errors import UserFetchError
from fittrack.jobs import SCHEDULED_KINDS, NotificationJobRunner, send_admin_broadcast
from fittrack.push import InMemoryPushProvider
from shared.types import (
    BodyMeasurement,
    MealDay,
    NotificationKind,
    NotificationTemplate,
    UserProfile,
)

UTC = timezone.utc

# Local Kolkata times (UTC+05:30) on Monday 2024-01-08 unless noted.
MORNING = datetime(2024, 1, 8, 1, 45, tzinfo=UTC)  # 07:15
AFTER_BREAKFAST = datetime(2024, 1, 8, 3, 40, tzinfo=UTC)  # 09:10
EIGHT_TWENTY = datetime(2024, 1, 8, 2, 50, tzinfo=UTC)  # 08:20
NINE_TWENTY = datetime(2024, 1, 8, 3, 50, tzinfo=UTC)  # 09:20
TEN_TWENTY = datetime(2024, 1, 8, 4, 50, tzinfo=UTC)  # 10:20
EVENING = datetime(2024, 1, 8, 14, 40, tzinfo=UTC)  # 20:10
SUNDAY_TEN = datetime(2024, 1, 7, 4, 35, tzinfo=UTC)  # Sunday 10:05
SUNDAY_TEN_FIFTY_FIVE = datetime(2024, 1, 7, 5, 25, tzinfo=UTC)  # Sunday 10:55
SUNDAY_ELEVEN = datetime(2024, 1, 7, 5, 30, tzinfo=UTC)  # Sunday 11:00
SUNDAY_SIX_PM = datetime(2024, 1, 7, 12, 35, tzinfo=UTC)  # Sunday 18:05
PAST_MIDNIGHT = datetime(2024, 1, 8, 18, 40, tzinfo=UTC)  # Tuesday 00:10


class JobRunnerTestCase(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.push = InMemoryPushProvider()
        self.now = MORNING

    def runner(self, now=None):
        if now is not None:
            self.now = now
        return NotificationJobRunner(
            self.db, NotificationDispatcher(self.push), clock=lambda: self.now
        )

    def add_user(self, user_id="u1", tokens=("tok-1",), **fields):
        fields.setdefault("full_name", "Asha Rao")
        fields.setdefault("timezone", "Asia/Kolkata")
        self.db.save_user(UserProfile(user_id=user_id, **fields))
        for token in tokens:
            self.db.save_token(user_id, token)

    def logs(self, kind=None):
        return [e for e in self.db.logs if kind is None or e.kind == kind]


class GoodMorningTests(JobRunnerTestCase):
    def test_sends_once_per_local_day(self):
        self.add_user()
        result = self.runner().run(NotificationKind.GOOD_MORNING)
        self.assertEqual(result.total_users, 1)
        self.assertEqual(result.notifications_sent, 1)
        self.assertEqual(result.errors, [])
        self.assertEqual(len(self.logs(NotificationKind.GOOD_MORNING)), 1)
        self.assertEqual(self.push.sent[0].data["type"], "good_morning")
        self.assertEqual(self.push.sent[0].data["action"], "open_app")

        again = self.runner().run(NotificationKind.GOOD_MORNING)
        self.assertEqual(again.notifications_sent, 0)
        self.assertEqual(len(self.push.sent), 1)

    def test_other_timezone_outside_window(self):
        self.add_user(timezone="America/New_York")
        result = self.runner().run(NotificationKind.GOOD_MORNING)
        self.assertEqual(result.notifications_sent, 0)
        self.assertEqual(self.push.sent, [])
        self.assertEqual(self.logs(), [])

    def test_disabled_users_are_not_listed(self):
        self.add_user(notifications_enabled=False)
        result = self.runner().run(NotificationKind.GOOD_MORNING)
        self.assertEqual(result.total_users, 0)
        self.assertEqual(self.push.sent, [])

    def test_user_without_tokens_is_skipped_silently(self):
        self.add_user(tokens=())
        result = self.runner().run(NotificationKind.GOOD_MORNING)
        self.assertEqual(result.notifications_sent, 0)
        self.assertEqual(result.errors, [])

    def test_active_template_overrides_default(self):
        self.add_user()
        self.db.save_template(
            NotificationTemplate(
                template_id="tpl-1",
                kind=NotificationKind.GOOD_MORNING,
                title="Rise and shine",
                body="Morning {name}, it is {currentTime}",
                is_active=True,
            )
        )
        self.runner().run(NotificationKind.GOOD_MORNING)
        self.assertEqual(self.push.sent[0].title, "Rise and shine")
        self.assertEqual(self.push.sent[0].body, "Morning Asha, it is 07:15")

    def test_default_message_uses_first_name_fallback(self):
        self.add_user(full_name=None)
        self.runner().run(NotificationKind.GOOD_MORNING)
        self.assertIn("Good morning there!", self.push.sent[0].body)

    def test_unknown_stored_timezone_uses_default(self):
        self.add_user("u1", timezone="America")
        self.add_user("u2", tokens=("tok-2",), timezone="Not/AZone")
        result = self.runner().run(NotificationKind.GOOD_MORNING)
        self.assertEqual(result.errors, [])
        self.assertEqual(result.notifications_sent, 2)
        self.assertEqual(self.logs()[0].metadata["local_date"], "2024-01-08")


class TemplateScheduleTests(JobRunnerTestCase):
    def add_template(self, kind=NotificationKind.GOOD_MORNING, **fields):
        self.db.save_template(
            NotificationTemplate(
                template_id=f"tpl-{kind.value}",
                kind=kind,
                title="Configured",
                body="Hello {name}",
                is_active=True,
                **fields,
            )
        )

    def test_disabled_template_switches_kind_off(self):
        self.add_user()
        self.add_template(is_enabled=False)
        result = self.runner().run(NotificationKind.GOOD_MORNING)
        self.assertEqual(result.notifications_sent, 0)
        self.assertEqual(self.push.sent, [])

        total_users, results = self.runner().run_scheduled()
        self.assertEqual(total_users, 1)
        self.assertEqual(dict(results)[NotificationKind.GOOD_MORNING].notifications_sent, 0)

    def test_inactive_disabled_template_is_ignored(self):
        self.add_user()
        self.add_template(is_enabled=False)
        self.db.templates["tpl-good_morning"].is_active = False
        result = self.runner().run(NotificationKind.GOOD_MORNING)
        self.assertEqual(result.notifications_sent, 1)
        self.assertIn("Good morning Asha", self.push.sent[0].body)

    def test_schedule_time_moves_fixed_hour(self):
        self.add_user()
        self.add_template(schedule_time="09:00")
        self.assertEqual(
            self.runner(MORNING).run(NotificationKind.GOOD_MORNING).notifications_sent, 0
        )
        result = self.runner(AFTER_BREAKFAST).run(NotificationKind.GOOD_MORNING)
        self.assertEqual(result.notifications_sent, 1)
        self.assertEqual(self.push.sent[0].title, "Configured")

    def test_schedule_time_moves_weekly_hour(self):
        self.add_user()
        self.add_template(NotificationKind.WEEKLY_WEIGHT_REMINDER, schedule_time="18:00")
        self.assertEqual(
            self.runner(SUNDAY_TEN).run(NotificationKind.WEEKLY_WEIGHT_REMINDER).notifications_sent,
            0,
        )
        self.assertEqual(
            self.runner(SUNDAY_SIX_PM)
            .run(NotificationKind.WEEKLY_WEIGHT_REMINDER)
            .notifications_sent,
            1,
        )

    def test_template_lookup_failure_is_reported(self):
        self.add_user()
        with patch.object(
            self.db, "get_active_template", side_effect=RuntimeError("db gone")
        ):
            result = self.runner().run(NotificationKind.GOOD_MORNING)
        self.assertEqual(result.notifications_sent, 0)
        self.assertEqual(result.errors, ["Failed to load good_morning config: db gone"])


class TokenPruningTests(JobRunnerTestCase):
    def test_invalid_token_pruned_and_delivery_logged(self):
        self.add_user(tokens=("good", "dead"))
        self.push.invalid_tokens = {"dead"}
        result = self.runner().run(NotificationKind.GOOD_MORNING)
        self.assertEqual(result.notifications_sent, 1)
        self.assertEqual(self.db.list_tokens("u1"), ["good"])
        entry = self.logs(NotificationKind.GOOD_MORNING)[0]
        self.assertEqual(entry.metadata["success_count"], 1)
        self.assertEqual(entry.metadata["failure_count"], 1)

    def test_all_tokens_failing_is_an_error_without_log(self):
        self.add_user(tokens=("dead-1", "dead-2"))
        self.push.invalid_tokens = {"dead-1", "dead-2"}
        result = self.runner().run(NotificationKind.GOOD_MORNING)
        self.assertEqual(result.notifications_sent, 0)
        self.assertEqual(len(result.errors), 1)
        self.assertEqual(self.logs(), [])
        self.assertEqual(self.db.list_tokens("u1"), [])

    def test_transient_failure_keeps_token_and_retries_next_run(self):
        self.add_user(tokens=("flaky",))
        self.push.transient_tokens = {"flaky"}
        first = self.runner().run(NotificationKind.GOOD_MORNING)
        self.assertEqual(first.notifications_sent, 0)
        self.assertEqual(self.db.list_tokens("u1"), ["flaky"])

        self.push.transient_tokens = set()
        second = self.runner().run(NotificationKind.GOOD_MORNING)
        self.assertEqual(second.notifications_sent, 1)


class FailureIsolationTests(JobRunnerTestCase):
    def test_dedup_failure_skips_user_and_records_error(self):
        self.add_user("u1")
        self.add_user("u2", tokens=("tok-2",))
        original = self.db.has_notification_since

        def flaky(user_id, kind, since):
            if user_id == "u1":
                raise RuntimeError("log store timeout")
            return original(user_id, kind, since)

        with patch.object(self.db, "has_notification_since", side_effect=flaky):
            result = self.runner().run(NotificationKind.GOOD_MORNING)

        self.assertEqual(result.notifications_sent, 1)
        self.assertEqual(len(result.errors), 1)
        self.assertIn("u1", result.errors[0])
        self.assertEqual([s.tokens for s in self.push.sent], [["tok-2"]])

    def test_unexpected_error_for_one_user_does_not_abort_batch(self):
        self.add_user("u1")
        self.add_user("u2", tokens=("tok-2",))
        original = self.db.list_tokens

        def broken(user_id):
            if user_id == "u1":
                raise RuntimeError("boom")
            return original(user_id)

        with patch.object(self.db, "list_tokens", side_effect=broken):
            result = self.runner().run(NotificationKind.GOOD_MORNING)

        self.assertEqual(result.total_users, 2)
        self.assertEqual(result.notifications_sent, 1)
        self.assertEqual(result.errors, ["Error processing user u1: boom"])

    def test_user_fetch_failure_aborts_job(self):
        with patch.object(
            self.db, "list_notification_users", side_effect=RuntimeError("down")
        ):
            with self.assertRaises(UserFetchError):
                self.runner().run(NotificationKind.GOOD_MORNING)
        self.assertEqual(self.push.sent, [])


class GoodNightTests(JobRunnerTestCase):
    def test_fires_hour_after_dinner_with_meal_count_message(self):
        self.add_user(dinner_time="19:30")
        self.db.save_meal_day(
            MealDay(
                user_id="u1",
                date="2024-01-08",
                breakfast_completed=True,
                snack1_completed=True,
                lunch_completed=True,
                dinner_completed=True,
            )
        )
        result = self.runner(EVENING).run(NotificationKind.GOOD_NIGHT)
        self.assertEqual(result.notifications_sent, 1)
        self.assertIn("Great job completing your meals", self.push.sent[0].body)
        self.assertEqual(self.push.sent[0].data["url"], "/dashboard")
        self.assertEqual(self.logs()[0].metadata["meals_completed"], 4)

    def test_late_dinner_moves_window(self):
        self.add_user(dinner_time="21:00")
        result = self.runner(EVENING).run(NotificationKind.GOOD_NIGHT)
        self.assertEqual(result.notifications_sent, 0)

    def test_no_dinner_time_defaults_to_earliest_hour(self):
        self.add_user()
        result = self.runner(EVENING).run(NotificationKind.GOOD_NIGHT)
        self.assertEqual(result.notifications_sent, 1)
        self.assertIn("Remember to track your meals", self.push.sent[0].body)


class MealReminderTests(JobRunnerTestCase):
    def test_reminds_hour_after_missed_meal(self):
        self.add_user(breakfast_time="08:00", lunch_time="13:00")
        result = self.runner(AFTER_BREAKFAST).run_meal_reminders()
        self.assertEqual(result.total_users, 1)
        self.assertEqual(result.notifications_sent, 1)
        self.assertIn("breakfast", self.push.sent[0].body)
        self.assertEqual(self.push.sent[0].data["meal_type"], "breakfast")
        self.assertEqual(
            self.logs()[0].kind, NotificationKind.MEAL_REMINDER_BREAKFAST
        )

    def test_completed_meal_is_not_reminded(self):
        self.add_user(breakfast_time="08:00")
        self.db.save_meal_day(
            MealDay(user_id="u1", date="2024-01-08", breakfast_completed=True)
        )
        result = self.runner(AFTER_BREAKFAST).run_meal_reminders()
        self.assertEqual(result.notifications_sent, 0)

    def test_meal_reminders_respect_preference(self):
        self.add_user(breakfast_time="08:00", meal_reminders_enabled=False)
        result = self.runner(AFTER_BREAKFAST).run_meal_reminders()
        self.assertEqual(result.notifications_sent, 0)

    def test_reminder_past_midnight_checks_previous_day(self):
        self.add_user(dinner_time="23:30")
        self.db.save_meal_day(
            MealDay(user_id="u1", date="2024-01-08", dinner_completed=True)
        )
        result = self.runner(PAST_MIDNIGHT).run_meal_reminders()
        self.assertEqual(result.notifications_sent, 0)

    def test_reminder_past_midnight_sent_when_dinner_missed(self):
        self.add_user(dinner_time="23:30")
        self.db.save_meal_day(
            MealDay(user_id="u1", date="2024-01-09", dinner_completed=True)
        )
        result = self.runner(PAST_MIDNIGHT).run_meal_reminders()
        self.assertEqual(result.notifications_sent, 1)
        self.assertEqual(self.push.sent[0].data["meal_type"], "dinner")


class WaterReminderTests(JobRunnerTestCase):
    def test_even_hours_only_and_opt_in(self):
        self.add_user(water_reminders_enabled=True)
        self.add_user("u2", tokens=("tok-2",))
        self.assertEqual(
            self.runner(EIGHT_TWENTY).run(NotificationKind.WATER_REMINDER).notifications_sent,
            1,
        )
        self.assertEqual(
            self.runner(NINE_TWENTY).run(NotificationKind.WATER_REMINDER).notifications_sent,
            0,
        )
        self.assertEqual(
            self.runner(TEN_TWENTY).run(NotificationKind.WATER_REMINDER).notifications_sent,
            1,
        )


class WeeklyReminderTests(JobRunnerTestCase):
    def test_measurement_reminder_personalised(self):
        self.add_user()
        self.db.add_measurement(
            BodyMeasurement(
                measurement_id="m1",
                user_id="u1",
                measurement_type="weight",
                value=70.5,
                date="2024-01-03",
            )
        )
        result = self.runner(SUNDAY_TEN).run(NotificationKind.WEEKLY_MEASUREMENT_REMINDER)
        self.assertEqual(result.notifications_sent, 1)
        self.assertIn("Great job logging your weight", self.push.sent[0].body)

        repeat = self.runner(SUNDAY_TEN).run(NotificationKind.WEEKLY_MEASUREMENT_REMINDER)
        self.assertEqual(repeat.notifications_sent, 0)

    def test_weight_reminder_not_on_weekdays(self):
        self.add_user()
        result = self.runner(MORNING).run(NotificationKind.WEEKLY_WEIGHT_REMINDER)
        self.assertEqual(result.notifications_sent, 0)

    def test_not_resent_later_in_the_same_hour(self):
        self.add_user()
        first = self.runner(SUNDAY_TEN).run(NotificationKind.WEEKLY_MEASUREMENT_REMINDER)
        self.assertEqual(first.notifications_sent, 1)
        later = self.runner(SUNDAY_TEN_FIFTY_FIVE).run(
            NotificationKind.WEEKLY_MEASUREMENT_REMINDER
        )
        self.assertEqual(later.notifications_sent, 0)
        self.assertEqual(len(self.push.sent), 1)

    def test_window_closes_at_the_next_hour(self):
        self.add_user()
        result = self.runner(SUNDAY_ELEVEN).run(NotificationKind.WEEKLY_MEASUREMENT_REMINDER)
        self.assertEqual(result.notifications_sent, 0)
        self.assertEqual(self.push.sent, [])


class ScheduledRunTests(JobRunnerTestCase):
    def test_runs_every_scheduled_kind(self):
        self.add_user()
        total_users, results = self.runner().run_scheduled()
        self.assertEqual(total_users, 1)
        self.assertEqual([kind for kind, _ in results], list(SCHEDULED_KINDS))
        sent = {kind: r.notifications_sent for kind, r in results}
        self.assertEqual(sent[NotificationKind.GOOD_MORNING], 1)
        self.assertEqual(sum(sent.values()), 1)

    def test_unscheduled_kind_rejected(self):
        with self.assertRaises(ValueError):
            self.runner().run(NotificationKind.FEEDBACK_REQUEST)


class BroadcastTests(JobRunnerTestCase):
    def test_broadcast_logs_per_recipient_and_prunes(self):
        self.add_user("u1", tokens=("a", "dead"))
        self.add_user("u2", tokens=("b",))
        self.push.invalid_tokens = {"dead"}
        result = send_admin_broadcast(
            self.db, NotificationDispatcher(self.push), "News", "Hello all", now=MORNING
        )
        self.assertTrue(result.success)
        self.assertEqual(result.total_tokens, 3)
        self.assertEqual(result.success_count, 2)
        self.assertEqual(result.invalid_tokens_removed, 1)
        self.assertEqual(len(self.push.sent), 1)
        self.assertEqual(
            sorted(e.user_id for e in self.logs(NotificationKind.ADMIN_BROADCAST)),
            ["u1", "u2"],
        )

    def test_broadcast_skips_users_whose_tokens_all_failed(self):
        self.add_user("u1", tokens=("a",))
        self.add_user("u2", tokens=("flaky",))
        self.push.transient_tokens = {"flaky"}
        result = send_admin_broadcast(
            self.db, NotificationDispatcher(self.push), "News", "Hello", now=MORNING
        )
        self.assertEqual(result.success_count, 1)
        self.assertEqual(result.invalid_tokens_removed, 0)
        self.assertEqual(
            [e.user_id for e in self.logs(NotificationKind.ADMIN_BROADCAST)], ["u1"]
        )
        self.assertEqual(self.db.list_tokens("u2"), ["flaky"])

    def test_broadcast_without_tokens(self):
        result = send_admin_broadcast(
            self.db, NotificationDispatcher(self.push), "News", "Hello", now=MORNING
        )
        self.assertEqual(result.total_tokens, 0)
        self.assertEqual(self.push.sent, [])


if __name__ == "__main__":
    unittest.main()
