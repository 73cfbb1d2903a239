import os
import sys
import pandas as pd

CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from journal.utils.timeutils import classify_session, days_remaining, format_duration, localize

import unittest

TZ = "America/New_York"


class TestSessionClassifier(unittest.TestCase):
    def test_hour_boundaries(self) -> None:
        expected = {
            "00:30": "Asia",
            "01:59": "Asia",
            "02:00": "London",
            "07:59": "London",
            "08:00": "NY",
            "10:00": "NY",
            "16:59": "NY",
            "17:00": "Asia",
            "17:30": "Asia",
            "23:00": "Asia",
        }
        for hhmm, label in expected.items():
            ts = pd.Timestamp(f"2024-01-15 {hhmm}", tz=TZ)
            self.assertEqual(classify_session(ts, TZ), label, hhmm)

    def test_aware_timestamps_use_the_given_timezone(self) -> None:
        ts = pd.Timestamp("2024-01-15 15:00", tz="UTC")
        self.assertEqual(classify_session(ts, TZ), "NY")
        self.assertEqual(classify_session(ts, "Asia/Tokyo"), "Asia")

    def test_naive_timestamps_are_wall_clock(self) -> None:
        self.assertEqual(classify_session(pd.Timestamp("2024-01-15 03:15"), TZ), "London")


class TestLocalize(unittest.TestCase):
    def test_naive_is_attached_and_aware_is_converted(self) -> None:
        self.assertEqual(localize(pd.Timestamp("2024-01-15 10:00"), TZ).hour, 10)
        self.assertEqual(localize(pd.Timestamp("2024-01-15 15:00", tz="UTC"), TZ).hour, 10)

    def test_non_existent_local_time_is_nat(self) -> None:
        # clocks jump from 02:00 to 03:00 on this date
        self.assertTrue(pd.isna(localize(pd.Timestamp("2024-03-10 02:30"), TZ)))


class TestDurations(unittest.TestCase):
    def test_format_duration_buckets(self) -> None:
        entry = pd.Timestamp("2024-01-15 10:00", tz=TZ)
        self.assertEqual(format_duration(entry, None), "-")
        self.assertEqual(format_duration(entry, entry), "< 1m")
        self.assertEqual(format_duration(entry, entry + pd.Timedelta(minutes=12)), "12m")
        self.assertEqual(format_duration(entry, entry + pd.Timedelta(minutes=65)), "1h 5m")
        self.assertEqual(format_duration(entry, entry + pd.Timedelta(hours=51)), "2d 3h")

    def test_days_remaining_rounds_up(self) -> None:
        now = pd.Timestamp("2024-06-01 12:00", tz=TZ)
        self.assertEqual(days_remaining(pd.Timestamp("2024-06-30"), now), 29)
        self.assertEqual(days_remaining(pd.Timestamp("2024-06-01 12:00", tz=TZ), now), 0)
        self.assertEqual(days_remaining(pd.Timestamp("2024-05-30"), now), -2)


if __name__ == '__main__':
    unittest.main()
