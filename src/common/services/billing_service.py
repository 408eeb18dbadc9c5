import logging
import math
from typing import Optional
from uuid import uuid4

from common.models.billing import (
    BillingRecord,
    BillingRecordType,
    BillingStatus,
    OptionalCharge,
    PaymentMethod,
)
from common.models.invoice import Invoice
from common.models.reservations import Reservation, ReservationStatus
from common.models.rooms import Room, RoomStatus
from common.repository.billing_repo import BillingRepository
from common.repository.reservation_repo import ReservationRepository
from common.repository.room_repo import RoomRepository
from common.services.pricing_service import PricingService
from common.utils.clock import Clock
from common.utils.constants import STANDARD_CHECKOUT_TIME
from common.utils.custom_exceptions import (
    BillingRecordNotFound,
    InvalidStateTransition,
    PaymentError,
    ReservationNotFound,
    RoomNotFound,
    ValidationError,
)
from common.utils.datetime_normaliser import local_instant

logger = logging.getLogger(__name__)

CHARGEABLE_STATUSES = frozenset(
    {ReservationStatus.CONFIRMED, ReservationStatus.CHECKED_IN}
)


def _money(amount: Optional[float]) -> Optional[float]:
    # NaN and infinity are treated as missing amounts
    if amount is None or not math.isfinite(amount):
        return None
    return round(amount, 2)


class BillingService:
    def __init__(
        self,
        reservation_repo: ReservationRepository,
        room_repo: RoomRepository,
        billing_repo: BillingRepository,
        pricing_service: PricingService,
        clock: Clock,
    ):
        self.reservation_repo = reservation_repo
        self.room_repo = room_repo
        self.billing_repo = billing_repo
        self.pricing_service = pricing_service
        self.clock = clock

    def generate_invoice(self, reservation_id: str) -> Invoice:
        """Final bill for a stay.

        Room charges are the (bulk-discounted) nightly price times the number
        of nights, whatever tier the stay was quoted at. One extra night is
        added when the guest leaves after the standard checkout time on the
        check-out day.
        """
        reservation = self._get_reservation(reservation_id)
        room = self._get_room(reservation.room_id)

        nightly = self.pricing_service.nightly_rate(room, reservation.discount_rate)
        room_charges = round(nightly * reservation.nights, 2)

        charges = self.billing_repo.get_optional_charges(reservation_id)
        optional_total = round(sum(charge.amount for charge in charges), 2)

        late_charge = nightly if self._is_late_checkout(reservation) else 0.0
        total = round(room_charges + optional_total + late_charge, 2)

        records = self.billing_repo.get_billing_records(reservation_id)
        payments = [r for r in records if r.status == BillingStatus.COMPLETED]
        pending = [r for r in records if r.status == BillingStatus.PENDING]
        paid = round(sum(payment.amount for payment in payments), 2)

        return Invoice(
            reservation_id=reservation.reservation_id,
            user_id=reservation.user_id,
            room_id=room.room_id,
            room_number=room.number,
            room_type=room.room_type,
            check_in=reservation.check_in,
            check_out=reservation.check_out,
            nights=reservation.nights,
            nightly_price=nightly,
            discount_rate=reservation.discount_rate,
            room_charges=room_charges,
            optional_charges_total=optional_total,
            late_checkout_charge=late_charge,
            total_amount=total,
            paid_amount=paid,
            remaining_amount=round(total - paid, 2),
            optional_charges=charges,
            payments=payments,
            pending_records=pending,
        )

    def record_payment(
        self,
        reservation_id: str,
        amount: float,
        method: PaymentMethod,
        reference: Optional[str] = None,
    ) -> BillingRecord:
        amount = _money(amount)
        if amount is None or amount <= 0:
            raise PaymentError("payment amount must be greater than zero")
        self._get_reservation(reservation_id)

        record = BillingRecord(
            record_id=str(uuid4()),
            reservation_id=reservation_id,
            amount=amount,
            status=BillingStatus.COMPLETED,
            payment_method=PaymentMethod(method),
            record_type=BillingRecordType.PAYMENT,
            reference=reference,
            created_at=self.clock.now(),
        )
        self.billing_repo.add_billing_record(record)
        logger.info(
            f"Recorded {record.payment_method.value} payment of {record.amount:.2f} "
            f"for reservation {reservation_id}"
        )
        return record

    def refund_payment(
        self, reservation_id: str, record_id: str, reason: Optional[str] = None
    ) -> BillingRecord:
        """Offset a completed payment with a negative REFUND record.

        The original payment is left untouched; the ledger stays append-only
        and the refund lowers the paid amount on the next invoice.
        """
        self._get_reservation(reservation_id)
        records = self.billing_repo.get_billing_records(reservation_id)
        payment = next((r for r in records if r.record_id == record_id), None)
        if payment is None:
            raise BillingRecordNotFound(record_id)
        if (
            payment.record_type != BillingRecordType.PAYMENT
            or payment.status != BillingStatus.COMPLETED
            or payment.amount <= 0
        ):
            raise PaymentError(f"billing record {record_id} is not a refundable payment")
        refund_id = f"refund-{record_id}"
        if any(r.record_id == refund_id for r in records):
            raise PaymentError(f"payment {record_id} is already refunded")

        refund = BillingRecord(
            record_id=refund_id,
            reservation_id=reservation_id,
            amount=-payment.amount,
            status=BillingStatus.COMPLETED,
            payment_method=payment.payment_method,
            record_type=BillingRecordType.REFUND,
            reference=f"REFUND-{payment.reference or payment.record_id}",
            notes=reason,
            created_at=self.clock.now(),
        )
        self.billing_repo.add_billing_record(refund)
        logger.info(
            f"Refunded {payment.amount:.2f} of payment {record_id} "
            f"for reservation {reservation_id}"
        )
        return refund

    def add_optional_charge(
        self, reservation_id: str, description: str, amount: float
    ) -> OptionalCharge:
        amount = _money(amount)
        if amount is None or amount <= 0:
            raise ValidationError("charge amount must be greater than zero")
        if not description or not description.strip():
            raise ValidationError("charge description is required")
        reservation = self._get_reservation(reservation_id)
        if reservation.status not in CHARGEABLE_STATUSES:
            raise InvalidStateTransition(
                reservation_id,
                reservation.status,
                detail="charges can only be added to confirmed or checked-in stays",
            )

        charge = OptionalCharge(
            charge_id=str(uuid4()),
            reservation_id=reservation_id,
            description=description.strip(),
            amount=amount,
            created_at=self.clock.now(),
        )
        self.billing_repo.add_optional_charge(charge)
        return charge

    def complete_checkout(self, reservation_id: str) -> Reservation:
        reservation = self._get_reservation(reservation_id)
        if not reservation.status.can_transition_to(ReservationStatus.CHECKED_OUT):
            raise InvalidStateTransition(
                reservation_id, reservation.status, ReservationStatus.CHECKED_OUT
            )

        invoice = self.generate_invoice(reservation_id)
        if invoice.remaining_amount > 0:
            raise PaymentError(
                f"outstanding balance of {invoice.remaining_amount:.2f} must be "
                f"settled before checkout"
            )

        # status, night locks and room release commit as one transaction
        checked_out = self.reservation_repo.transition_status(
            reservation,
            ReservationStatus.CHECKED_OUT,
            release_nights=True,
            room_status=RoomStatus.AVAILABLE,
            checked_out_at=self.clock.now(),
        )
        logger.info(f"Reservation {reservation_id} checked out, room {reservation.room_id} released")
        return checked_out

    def build_no_show_charge(self, reservation: Reservation) -> BillingRecord:
        room = self._get_room(reservation.room_id)
        return BillingRecord(
            record_id=f"no-show-{reservation.reservation_id}",
            reservation_id=reservation.reservation_id,
            amount=self.pricing_service.nightly_rate(room, reservation.discount_rate),
            status=BillingStatus.PENDING,
            payment_method=(
                PaymentMethod.CREDIT_CARD
                if reservation.has_credit_card
                else PaymentMethod.NA
            ),
            record_type=BillingRecordType.NO_SHOW,
            created_at=self.clock.now(),
        )

    def has_billing_records(self, reservation_id: str) -> bool:
        return bool(self.billing_repo.get_billing_records(reservation_id))

    def _is_late_checkout(self, reservation: Reservation) -> bool:
        if reservation.status == ReservationStatus.CHECKED_OUT:
            departed_at = reservation.checked_out_at
        elif reservation.status == ReservationStatus.CHECKED_IN:
            departed_at = self.clock.now()
        else:
            return False
        if departed_at is None:
            return False
        deadline = local_instant(
            reservation.check_out, STANDARD_CHECKOUT_TIME, self.clock.tz
        )
        return departed_at > deadline

    def _get_reservation(self, reservation_id: str) -> Reservation:
        reservation = self.reservation_repo.get_reservation_by_id(reservation_id)
        if reservation is None:
            raise ReservationNotFound(reservation_id)
        return reservation

    def _get_room(self, room_id: str) -> Room:
        room = self.room_repo.get_room_by_id(room_id)
        if room is None:
            raise RoomNotFound(room_id)
        return room
