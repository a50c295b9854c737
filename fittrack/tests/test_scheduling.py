import unittest
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from fittrack.scheduling import (
    anchor_target_hour,
    local_date_key,
    local_time,
    meal_day_key,
    meal_reminder_hour,
    parse_hhmm,
    period_start,
    resolve_timezone,
    should_fire_at_fixed_hour,
    should_fire_relative_to_anchor,
    should_fire_weekly,
)
from shared.constants import SUNDAY
from shared.types import DedupPeriod

UTC = timezone.utc


class TimezoneTests(unittest.TestCase):
    def test_unknown_timezone_falls_back_to_default(self):
        self.assertEqual(resolve_timezone("Not/AZone"), ZoneInfo("Asia/Kolkata"))
        self.assertEqual(resolve_timezone("America"), ZoneInfo("Asia/Kolkata"))
        self.assertEqual(resolve_timezone("Asia"), ZoneInfo("Asia/Kolkata"))
        self.assertEqual(resolve_timezone("America", "UTC"), ZoneInfo("UTC"))
        self.assertEqual(resolve_timezone(None), ZoneInfo("Asia/Kolkata"))
        self.assertEqual(resolve_timezone("", "UTC"), ZoneInfo("UTC"))

    def test_local_time_converts_from_utc(self):
        local = local_time("Asia/Kolkata", datetime(2024, 1, 8, 1, 45, tzinfo=UTC))
        self.assertEqual(local.hour, 7)
        self.assertEqual(local.minute, 15)
        self.assertEqual(local.time_string, "07:15")
        self.assertEqual(local.date_key, "2024-01-08")
        self.assertEqual(local.timezone, "Asia/Kolkata")

    def test_naive_now_is_treated_as_utc(self):
        self.assertEqual(local_time("UTC", datetime(2024, 1, 8, 1, 45)).hour, 1)

    def test_local_date_crosses_midnight(self):
        now = datetime(2024, 1, 7, 20, 0, tzinfo=UTC)
        self.assertEqual(local_date_key("Asia/Kolkata", now), "2024-01-08")
        self.assertEqual(local_date_key("America/New_York", now), "2024-01-07")

    def test_parse_hhmm(self):
        self.assertEqual(parse_hhmm("08:30"), (8, 30))
        self.assertEqual(parse_hhmm("19:30:00"), (19, 30))
        self.assertIsNone(parse_hhmm("24:00"))
        self.assertIsNone(parse_hhmm("lunch"))
        self.assertIsNone(parse_hhmm(None))


class WindowTests(unittest.TestCase):
    def test_fixed_hour_matches_whole_local_hour(self):
        self.assertTrue(
            should_fire_at_fixed_hour(
                "Asia/Kolkata", 7, datetime(2024, 1, 8, 1, 30, tzinfo=UTC)
            ).should_fire
        )
        self.assertTrue(
            should_fire_at_fixed_hour(
                "Asia/Kolkata", 7, datetime(2024, 1, 8, 2, 29, tzinfo=UTC)
            ).should_fire
        )
        self.assertFalse(
            should_fire_at_fixed_hour(
                "Asia/Kolkata", 7, datetime(2024, 1, 8, 2, 30, tzinfo=UTC)
            ).should_fire
        )

    def test_same_instant_differs_by_timezone(self):
        now = datetime(2024, 1, 8, 1, 45, tzinfo=UTC)
        self.assertTrue(should_fire_at_fixed_hour("Asia/Kolkata", 7, now).should_fire)
        self.assertFalse(should_fire_at_fixed_hour("America/New_York", 7, now).should_fire)

    def test_fixed_hour_follows_dst(self):
        # New York is UTC-5 before 2024-03-10 and UTC-4 after.
        before = datetime(2024, 3, 9, 12, 30, tzinfo=UTC)
        after = datetime(2024, 3, 10, 11, 30, tzinfo=UTC)
        self.assertTrue(should_fire_at_fixed_hour("America/New_York", 7, before).should_fire)
        self.assertTrue(should_fire_at_fixed_hour("America/New_York", 7, after).should_fire)
        self.assertFalse(
            should_fire_at_fixed_hour(
                "America/New_York", 7, datetime(2024, 3, 10, 12, 30, tzinfo=UTC)
            ).should_fire
        )

    def test_anchor_target_hour_ignores_minutes_and_clamps(self):
        self.assertEqual(anchor_target_hour("19:30", 60, 20, 23), 20)
        self.assertEqual(anchor_target_hour("21:45", 60, 20, 23), 22)
        self.assertEqual(anchor_target_hour("23:00", 60, 20, 23), 23)
        self.assertEqual(anchor_target_hour("17:00", 60, 20, 23), 20)
        self.assertEqual(anchor_target_hour(None, 60, 20, 23), 20)
        self.assertEqual(anchor_target_hour("garbage", 60, 20, 23), 20)

    def test_relative_to_anchor(self):
        # 21:10 in Kolkata
        now = datetime(2024, 1, 8, 15, 40, tzinfo=UTC)
        check = should_fire_relative_to_anchor("Asia/Kolkata", "20:00", 60, 20, 23, now)
        self.assertTrue(check.should_fire)
        self.assertEqual(check.target_hour, 21)

    def test_weekly_requires_day_and_hour(self):
        sunday_ten = datetime(2024, 1, 7, 4, 35, tzinfo=UTC)
        monday_ten = datetime(2024, 1, 8, 4, 35, tzinfo=UTC)
        self.assertTrue(should_fire_weekly("Asia/Kolkata", SUNDAY, 10, sunday_ten).should_fire)
        self.assertFalse(should_fire_weekly("Asia/Kolkata", SUNDAY, 9, sunday_ten).should_fire)
        self.assertFalse(should_fire_weekly("Asia/Kolkata", SUNDAY, 10, monday_ten).should_fire)

    def test_meal_reminder_hour_wraps(self):
        self.assertEqual(meal_reminder_hour("08:00"), 9)
        self.assertEqual(meal_reminder_hour("23:30"), 0)
        self.assertIsNone(meal_reminder_hour(None))
        self.assertIsNone(meal_reminder_hour("noon"))

    def test_meal_day_key_after_midnight_wrap(self):
        past_midnight = local_time("Asia/Kolkata", datetime(2024, 1, 8, 18, 40, tzinfo=UTC))
        self.assertEqual(meal_day_key("23:30", past_midnight), "2024-01-08")
        self.assertEqual(meal_day_key("00:00", past_midnight), "2024-01-09")
        self.assertEqual(meal_day_key(None, past_midnight), "2024-01-09")
        morning = local_time("Asia/Kolkata", datetime(2024, 1, 8, 3, 40, tzinfo=UTC))
        self.assertEqual(meal_day_key("08:00", morning), "2024-01-08")


class PeriodStartTests(unittest.TestCase):
    def test_daily_starts_at_local_midnight(self):
        now = datetime(2024, 1, 8, 1, 45, tzinfo=UTC)
        self.assertEqual(
            period_start(DedupPeriod.DAILY, "Asia/Kolkata", now),
            datetime(2024, 1, 7, 18, 30, tzinfo=UTC),
        )

    def test_hourly_starts_at_top_of_local_hour(self):
        now = datetime(2024, 1, 8, 1, 45, tzinfo=UTC)
        self.assertEqual(
            period_start(DedupPeriod.HOURLY, "Asia/Kolkata", now),
            datetime(2024, 1, 8, 1, 30, tzinfo=UTC),
        )

    def test_weekly_starts_on_local_sunday(self):
        wednesday = datetime(2024, 1, 10, 6, 30, tzinfo=UTC)
        sunday = datetime(2024, 1, 7, 4, 35, tzinfo=UTC)
        expected = datetime(2024, 1, 6, 18, 30, tzinfo=UTC)
        self.assertEqual(period_start(DedupPeriod.WEEKLY, "Asia/Kolkata", wednesday), expected)
        self.assertEqual(period_start(DedupPeriod.WEEKLY, "Asia/Kolkata", sunday), expected)


if __name__ == "__main__":
    unittest.main()
