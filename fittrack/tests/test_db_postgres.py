import unittest

from fittrack.db import PostgresDbClient
from shared.types import (
    BodyMeasurement,
    MealDay,
    MotivationBanner,
    NotificationKind,
    NotificationLogEntry,
    NotificationTemplate,
    Package,
    UserPackage,
    UserProfile,
)


class PostgresDbClientTests(unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the Postgres client logic.
    """

    def setUp(self):
        self.db = PostgresDbClient("sqlite+pysqlite:///:memory:")

    def test_user_roundtrip_and_notification_filter(self):
        self.db.save_user(
            UserProfile(user_id="u1", full_name="Asha Rao", dinner_time="19:30")
        )
        self.db.save_user(UserProfile(user_id="u2", notifications_enabled=False))
        loaded = self.db.get_user("u1")
        self.assertEqual(loaded.full_name, "Asha Rao")
        self.assertEqual(loaded.dinner_time, "19:30")
        self.assertFalse(loaded.water_reminders_enabled)
        self.assertEqual([u.user_id for u in self.db.list_notification_users()], ["u1"])
        self.assertIsNone(self.db.get_user("missing"))

    def test_tokens_are_unique_per_user(self):
        self.assertTrue(self.db.save_token("u1", "a"))
        self.assertFalse(self.db.save_token("u1", "a"))
        self.assertTrue(self.db.save_token("u2", "a"))
        self.assertEqual(self.db.delete_tokens(["a"], user_id="u1"), 1)
        self.assertEqual(self.db.list_tokens("u1"), [])
        self.assertEqual([t.user_id for t in self.db.list_all_tokens()], ["u2"])
        self.assertEqual(self.db.delete_tokens([]), 0)

    def test_notification_log_since(self):
        self.db.add_notification_log(
            NotificationLogEntry(
                user_id="u1",
                kind=NotificationKind.GOOD_NIGHT,
                title="t",
                body="b",
                sent_at=1000.0,
                metadata={"success_count": 1},
            )
        )
        self.assertTrue(self.db.has_notification_since("u1", NotificationKind.GOOD_NIGHT, 1000.0))
        self.assertFalse(self.db.has_notification_since("u1", NotificationKind.GOOD_NIGHT, 1000.5))
        self.assertFalse(self.db.has_notification_since("u1", NotificationKind.GOOD_MORNING, 0.0))

    def test_activate_template_is_exclusive_per_kind(self):
        for template_id in ("t1", "t2"):
            self.db.save_template(
                NotificationTemplate(
                    template_id=template_id,
                    kind=NotificationKind.GOOD_MORNING,
                    title=template_id,
                    body="body",
                )
            )
        self.db.activate_template("t1")
        self.db.activate_template("t2")
        self.assertEqual(
            self.db.get_active_template(NotificationKind.GOOD_MORNING).template_id, "t2"
        )
        self.assertFalse(self.db.get_template("t1").is_active)
        self.assertIsNone(self.db.activate_template("missing"))

    def test_template_schedule_fields_persist(self):
        self.db.save_template(
            NotificationTemplate(
                template_id="t1",
                kind=NotificationKind.WEEKLY_WEIGHT_REMINDER,
                title="Weigh in",
                body="body",
                is_enabled=False,
                schedule_time="18:00",
            )
        )
        loaded = self.db.get_template("t1")
        self.assertFalse(loaded.is_enabled)
        self.assertEqual(loaded.schedule_time, "18:00")

    def test_banner_activation_is_exclusive(self):
        for banner_id, created_at in (("b1", 100.0), ("b2", 200.0)):
            self.db.save_banner(
                MotivationBanner(
                    banner_id=banner_id,
                    title=banner_id,
                    message="msg",
                    expires_at=500.0,
                    created_at=created_at,
                )
            )
        self.db.activate_banner("b1")
        self.db.activate_banner("b2")
        self.assertEqual(
            [(b.banner_id, b.is_active) for b in self.db.list_banners()],
            [("b2", True), ("b1", False)],
        )
        self.assertEqual(self.db.get_banner("b2").expires_at, 500.0)
        self.assertIsNone(self.db.activate_banner("missing"))
        self.assertTrue(self.db.delete_banner("b1"))
        self.assertFalse(self.db.delete_banner("b1"))
        self.assertIsNone(self.db.get_banner("b1"))

    def test_packages_and_assignments(self):
        self.db.save_package(Package(package_id="p1", name="Monthly", price=999.0, duration_days=30))
        self.db.save_package(Package(package_id="p2", name="Trial", price=0.0, duration_days=7))
        self.assertEqual([p.package_id for p in self.db.list_packages()], ["p2", "p1"])

        self.db.save_package(
            Package(package_id="p1", name="Monthly", price=999.0, duration_days=30, is_active=False)
        )
        self.assertFalse(self.db.get_package("p1").is_active)
        self.assertIsNone(self.db.get_package("missing"))

        self.db.add_user_package(
            UserPackage(
                assignment_id="a1",
                user_id="u1",
                package_id="p2",
                start_date="2024-01-08",
                end_date="2024-01-14",
            )
        )
        assignments = self.db.list_user_packages("u1")
        self.assertEqual([(a.package_id, a.end_date) for a in assignments], [("p2", "2024-01-14")])
        self.assertEqual(self.db.list_user_packages("u2"), [])

    def test_meal_day_upsert(self):
        self.db.save_meal_day(MealDay(user_id="u1", date="2024-01-08", lunch_completed=True))
        self.db.save_meal_day(
            MealDay(user_id="u1", date="2024-01-08", lunch_completed=True, dinner_completed=True)
        )
        day = self.db.get_meal_day("u1", "2024-01-08")
        self.assertTrue(day.lunch_completed)
        self.assertTrue(day.dinner_completed)
        self.assertFalse(day.breakfast_completed)
        self.assertIsNone(self.db.get_meal_day("u1", "2024-01-09"))

    def test_water_and_measurements(self):
        self.db.add_water_entry("u1", 2, 100.0)
        self.db.add_water_entry("u1", 1, 200.0)
        entries = self.db.list_water_entries("u1", 150.0, 300.0)
        self.assertEqual([e.glass_count for e in entries], [1])

        self.db.add_measurement(
            BodyMeasurement(
                measurement_id="m1", user_id="u1", measurement_type="weight", value=70.0, date="2024-01-01"
            )
        )
        self.db.add_measurement(
            BodyMeasurement(
                measurement_id="m2", user_id="u1", measurement_type="waist", value=80.0, date="2024-01-06"
            )
        )
        recent = self.db.list_measurements("u1", since_date="2024-01-02")
        self.assertEqual([m.measurement_id for m in recent], ["m2"])


if __name__ == "__main__":
    unittest.main()
