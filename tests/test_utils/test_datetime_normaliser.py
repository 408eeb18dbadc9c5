import unittest
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from common.utils.datetime_normaliser import (
    from_iso_string,
    local_instant,
    nights_between,
    occupied_nights,
    to_stay_date,
)


class TestDatetimeNormaliser(unittest.TestCase):

    def test_from_iso_string_converts_to_utc(self):
        dt = from_iso_string("2026-03-10T09:00:00+05:30")

        self.assertEqual(timezone.utc, dt.tzinfo)
        self.assertEqual(datetime(2026, 3, 10, 3, 30, tzinfo=timezone.utc), dt)

    def test_from_iso_string_naive_fails(self):
        with self.assertRaises(ValueError):
            from_iso_string("2026-03-10T09:00:00")

    def test_to_stay_date_plain_date(self):
        self.assertEqual(date(2026, 3, 10), to_stay_date("2026-03-10"))
        self.assertEqual(date(2026, 3, 10), to_stay_date(date(2026, 3, 10)))

    def test_to_stay_date_uses_hotel_calendar(self):
        tz = ZoneInfo("Asia/Kolkata")

        # 20:00 UTC is already the next morning in India
        self.assertEqual(
            date(2026, 3, 11), to_stay_date("2026-03-10T20:00:00Z", tz)
        )
        self.assertEqual(
            date(2026, 3, 11),
            to_stay_date(datetime(2026, 3, 10, 20, 0, tzinfo=timezone.utc), tz),
        )

    def test_to_stay_date_naive_datetime_fails(self):
        with self.assertRaises(ValueError):
            to_stay_date("2026-03-10T20:00:00")

    def test_to_stay_date_garbage(self):
        with self.assertRaises(ValueError):
            to_stay_date("next tuesday")
        with self.assertRaises(ValueError):
            to_stay_date(42)

    def test_local_instant(self):
        tz = timezone(timedelta(hours=-5))

        instant = local_instant(date(2026, 3, 14), time(12, 0), tz)

        self.assertEqual(datetime(2026, 3, 14, 17, 0, tzinfo=timezone.utc), instant)

    def test_nights_between(self):
        self.assertEqual(3, nights_between(date(2026, 3, 10), date(2026, 3, 13)))
        self.assertEqual(0, nights_between(date(2026, 3, 10), date(2026, 3, 10)))

    def test_occupied_nights_excludes_check_out_day(self):
        self.assertEqual(
            [date(2026, 2, 28), date(2026, 3, 1)],
            occupied_nights(date(2026, 2, 28), date(2026, 3, 2)),
        )


if __name__ == "__main__":
    unittest.main()
