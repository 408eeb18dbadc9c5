from enum import Enum
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Optional

from common.utils.datetime_normaliser import nights_between


class ReservationStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CHECKED_IN = "CHECKED_IN"
    CHECKED_OUT = "CHECKED_OUT"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def blocks_inventory(self) -> bool:
        return self in BLOCKING_STATUSES

    def can_transition_to(self, target: "ReservationStatus") -> bool:
        return target in ALLOWED_TRANSITIONS[self]


TERMINAL_STATUSES = frozenset(
    {ReservationStatus.CANCELLED, ReservationStatus.CHECKED_OUT}
)

# PENDING holds do not reserve the room
BLOCKING_STATUSES = frozenset(
    {ReservationStatus.CONFIRMED, ReservationStatus.CHECKED_IN}
)

ALLOWED_TRANSITIONS = {
    ReservationStatus.PENDING: frozenset(
        {ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED}
    ),
    ReservationStatus.CONFIRMED: frozenset(
        {
            ReservationStatus.CHECKED_IN,
            ReservationStatus.NO_SHOW,
            ReservationStatus.CANCELLED,
        }
    ),
    ReservationStatus.CHECKED_IN: frozenset(
        {ReservationStatus.CHECKED_OUT, ReservationStatus.CANCELLED}
    ),
    ReservationStatus.NO_SHOW: frozenset({ReservationStatus.CANCELLED}),
    ReservationStatus.CHECKED_OUT: frozenset(),
    ReservationStatus.CANCELLED: frozenset(),
}


@dataclass
class Reservation:
    reservation_id: str
    room_id: str
    user_id: str
    check_in: date
    check_out: date
    guests: int
    status: ReservationStatus = ReservationStatus.PENDING
    total_amount: float = 0.0
    has_credit_card: bool = False
    discount_rate: float = 0.0
    bulk_group_id: Optional[str] = None
    checked_out_at: Optional[datetime] = None

    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def nights(self) -> int:
        return nights_between(self.check_in, self.check_out)

    def overlaps(self, check_in: date, check_out: date) -> bool:
        return self.check_in < check_out and check_in < self.check_out
