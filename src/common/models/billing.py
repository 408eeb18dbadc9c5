from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


class BillingStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class BillingRecordType(str, Enum):
    PAYMENT = "PAYMENT"
    NO_SHOW = "NO_SHOW"
    REFUND = "REFUND"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    BANK_TRANSFER = "BANK_TRANSFER"
    COMPANY_BILLING = "COMPANY_BILLING"
    NA = "NA"


@dataclass
class BillingRecord:
    record_id: str
    reservation_id: str
    amount: float
    status: BillingStatus
    payment_method: PaymentMethod
    record_type: BillingRecordType = BillingRecordType.PAYMENT
    reference: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class OptionalCharge:
    charge_id: str
    reservation_id: str
    description: str
    amount: float
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
