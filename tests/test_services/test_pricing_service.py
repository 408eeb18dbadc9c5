import unittest
from datetime import date, timedelta

from common.models.rooms import Room, RoomType
from common.services.pricing_service import PricingService
from common.utils.custom_exceptions import ValidationError


class TestPricingService(unittest.TestCase):

    def setUp(self):
        self.service = PricingService()
        self.check_in = date(2026, 3, 1)
        self.room = Room(
            room_id="r1",
            number="101",
            room_type=RoomType.DOUBLE,
            price=100.0,
            capacity=2,
            weekly_rate=600.0,
            monthly_rate=2400.0,
        )
        self.plain_room = Room(
            room_id="r2", number="102", room_type=RoomType.SINGLE, price=80.0
        )

    def _price(self, room, nights):
        return self.service.compute_stay_price(
            room, self.check_in, self.check_in + timedelta(days=nights)
        )

    def test_nightly_price_for_short_stay(self):
        self.assertEqual(300.0, self._price(self.room, 3))

    def test_weekly_rate_plus_nightly_remainder(self):
        self.assertEqual(900.0, self._price(self.room, 10))

    def test_exactly_one_week(self):
        self.assertEqual(600.0, self._price(self.room, 7))

    def test_monthly_rate_plus_nightly_remainder(self):
        # 37 nights is one month plus seven nightly nights, not a week
        self.assertEqual(2400.0 + 700.0, self._price(self.room, 37))

    def test_weekly_used_when_no_monthly_rate(self):
        room = Room(
            room_id="r3",
            number="103",
            room_type=RoomType.DOUBLE,
            price=100.0,
            weekly_rate=600.0,
        )
        self.assertEqual(4 * 600.0 + 2 * 100.0, self._price(room, 30))

    def test_no_tiers_is_nightly(self):
        self.assertEqual(800.0, self._price(self.plain_room, 10))

    def test_zero_nights_rejected(self):
        with self.assertRaises(ValidationError):
            self.service.compute_stay_price(self.room, self.check_in, self.check_in)

    def test_bulk_discount_tiers(self):
        self.assertEqual(0.10, self.service.bulk_discount_rate(2))
        self.assertEqual(0.15, self.service.bulk_discount_rate(3))
        self.assertEqual(0.15, self.service.bulk_discount_rate(4))
        self.assertEqual(0.20, self.service.bulk_discount_rate(5))
        self.assertEqual(0.20, self.service.bulk_discount_rate(9))
        self.assertEqual(0.30, self.service.bulk_discount_rate(10))
        self.assertEqual(0.30, self.service.bulk_discount_rate(25))

    def test_bulk_discount_is_monotone(self):
        rates = [self.service.bulk_discount_rate(n) for n in range(2, 30)]
        self.assertEqual(rates, sorted(rates))

    def test_bulk_discount_needs_two_rooms(self):
        with self.assertRaises(ValidationError):
            self.service.bulk_discount_rate(1)

    def test_bulk_stay_price_ignores_weekly_tier(self):
        price = self.service.bulk_stay_price(
            self.room, self.check_in, self.check_in + timedelta(days=10), 0.20
        )
        self.assertEqual(800.0, price)

    def test_nightly_rate_with_discount(self):
        self.assertEqual(85.0, self.service.nightly_rate(self.room, 0.15))
        self.assertEqual(100.0, self.service.nightly_rate(self.room))

    def test_reprice_keeps_bulk_discount(self):
        check_out = self.check_in + timedelta(days=3)
        self.assertEqual(
            270.0, self.service.reprice(self.room, self.check_in, check_out, 0.10)
        )
        self.assertEqual(
            300.0, self.service.reprice(self.room, self.check_in, check_out, 0.0)
        )


if __name__ == "__main__":
    unittest.main()
