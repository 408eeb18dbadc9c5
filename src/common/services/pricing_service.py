from datetime import date

from common.models.rooms import Room
from common.utils.constants import (
    BULK_DISCOUNT_TIERS,
    DAYS_PER_MONTH,
    DAYS_PER_WEEK,
    MIN_BULK_ROOMS,
)
from common.utils.custom_exceptions import ValidationError
from common.utils.datetime_normaliser import nights_between


class PricingService:
    """Stay pricing: nightly, weekly and monthly tiers plus bulk discounts.

    Weekly and monthly tiers are alternatives, never combined: a stay of 37
    nights on a room with both rates is one month plus seven *nightly* nights.
    Bulk bookings ignore both tiers and discount the nightly price instead.
    """

    def compute_stay_price(self, room: Room, check_in: date, check_out: date) -> float:
        nights = self._nights(check_in, check_out)

        if room.monthly_rate is not None and nights >= DAYS_PER_MONTH:
            months, remainder = divmod(nights, DAYS_PER_MONTH)
            amount = room.monthly_rate * months + room.price * remainder
        elif room.weekly_rate is not None and nights >= DAYS_PER_WEEK:
            weeks, remainder = divmod(nights, DAYS_PER_WEEK)
            amount = room.weekly_rate * weeks + room.price * remainder
        else:
            amount = room.price * nights

        return round(amount, 2)

    def bulk_discount_rate(self, room_count: int) -> float:
        if room_count < MIN_BULK_ROOMS:
            raise ValidationError(
                f"bulk bookings need at least {MIN_BULK_ROOMS} rooms"
            )
        for minimum, rate in BULK_DISCOUNT_TIERS:
            if room_count >= minimum:
                return rate
        return BULK_DISCOUNT_TIERS[-1][1]

    def nightly_rate(self, room: Room, discount_rate: float = 0.0) -> float:
        return round(room.price * (1 - discount_rate), 2)

    def bulk_stay_price(
        self, room: Room, check_in: date, check_out: date, discount_rate: float
    ) -> float:
        nights = self._nights(check_in, check_out)
        return round(room.price * (1 - discount_rate) * nights, 2)

    def reprice(
        self, room: Room, check_in: date, check_out: date, discount_rate: float
    ) -> float:
        """Price a changed stay, keeping the rate the reservation was booked at."""
        if discount_rate:
            return self.bulk_stay_price(room, check_in, check_out, discount_rate)
        return self.compute_stay_price(room, check_in, check_out)

    @staticmethod
    def _nights(check_in: date, check_out: date) -> int:
        nights = nights_between(check_in, check_out)
        if nights <= 0:
            raise ValidationError("check_out must be after check_in")
        return nights
