from dataclasses import dataclass, field
from datetime import date
from typing import List
from common.models.billing import BillingRecord, OptionalCharge
from common.models.rooms import RoomType


@dataclass
class Invoice:
    reservation_id: str
    user_id: str
    room_id: str
    room_number: str
    room_type: RoomType
    check_in: date
    check_out: date
    nights: int
    nightly_price: float
    discount_rate: float
    room_charges: float
    optional_charges_total: float
    late_checkout_charge: float
    total_amount: float
    paid_amount: float
    remaining_amount: float
    optional_charges: List[OptionalCharge] = field(default_factory=list)
    payments: List[BillingRecord] = field(default_factory=list)
    pending_records: List[BillingRecord] = field(default_factory=list)
