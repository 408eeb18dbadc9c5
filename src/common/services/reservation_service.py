import logging
from datetime import date
from typing import List, Optional
from uuid import uuid4

from common.models.billing import BillingRecord
from common.models.reservations import Reservation, ReservationStatus
from common.models.rooms import Room, RoomStatus
from common.models.users import FRONT_DESK_ROLES, UserRole
from common.repository.reservation_repo import ReservationRepository
from common.repository.room_repo import RoomRepository
from common.repository.user_repo import UserRepository
from common.schemas.reservations import (
    BulkReservationRequest,
    CreditCardRequest,
    ReservationRequest,
    ReservationUpdateRequest,
    WalkInRequest,
)
from common.services.availability_service import AvailabilityService
from common.services.pricing_service import PricingService
from common.utils.clock import Clock
from common.utils.constants import CONFIRMATION_CUTOFF, MAX_STAY, MIN_BULK_ROOMS
from common.utils.custom_exceptions import (
    InvalidStateTransition,
    NoAvailableRooms,
    NotFoundException,
    PermissionDenied,
    ReservationNotFound,
    RoomNotFound,
    RoomUnavailable,
    ValidationError,
)

logger = logging.getLogger(__name__)


class ReservationService:
    def __init__(
        self,
        reservation_repo: ReservationRepository,
        room_repo: RoomRepository,
        user_repo: UserRepository,
        availability_service: AvailabilityService,
        pricing_service: PricingService,
        clock: Clock,
    ):
        self.reservation_repo = reservation_repo
        self.room_repo = room_repo
        self.user_repo = user_repo
        self.availability_service = availability_service
        self.pricing_service = pricing_service
        self.clock = clock

    def create_reservation(self, req: ReservationRequest, user_id: str) -> Reservation:
        if req.credit_card is None and self.past_confirmation_cutoff():
            raise ValidationError(
                f"Pending reservations cannot be created after "
                f"{CONFIRMATION_CUTOFF.strftime('%H:%M')}. Please provide credit "
                f"card details to confirm the booking."
            )
        self._validate_stay(req.check_in, req.check_out)
        room = self._get_room(req.room_id)
        self._check_capacity(room, req.guests)

        if not self.availability_service.is_available(room.room_id, req.check_in, req.check_out):
            raise RoomUnavailable(
                f"room {room.number} is not available from {req.check_in} to {req.check_out}"
            )

        reservation = Reservation(
            reservation_id=str(uuid4()),
            room_id=room.room_id,
            user_id=user_id,
            check_in=req.check_in,
            check_out=req.check_out,
            guests=req.guests,
            status=(
                ReservationStatus.CONFIRMED
                if req.credit_card
                else ReservationStatus.PENDING
            ),
            total_amount=self.pricing_service.compute_stay_price(
                room, req.check_in, req.check_out
            ),
            has_credit_card=req.credit_card is not None,
            created_at=self.clock.now(),
        )
        card = req.credit_card.to_credit_card() if req.credit_card else None
        self.reservation_repo.add_reservation(reservation, credit_card=card)
        return reservation

    def create_bulk_reservation(
        self, req: BulkReservationRequest, user_id: str, role: Optional[UserRole]
    ) -> List[Reservation]:
        if role != UserRole.COMPANY:
            raise PermissionDenied("Only travel companies can make bulk bookings")
        if req.number_of_rooms < MIN_BULK_ROOMS:
            raise ValidationError(f"bulk bookings need at least {MIN_BULK_ROOMS} rooms")
        self._validate_stay(req.check_in, req.check_out)

        discount_rate = self.pricing_service.bulk_discount_rate(req.number_of_rooms)
        candidates = [
            room
            for room in self.availability_service.find_available_rooms(
                req.room_type, req.check_in, req.check_out
            )
            if room.capacity >= req.guests_per_room
        ]
        if len(candidates) < req.number_of_rooms:
            raise NoAvailableRooms(
                f"only {len(candidates)} {req.room_type.value} rooms available, "
                f"{req.number_of_rooms} requested"
            )

        group_id = str(uuid4())
        card = req.credit_card.to_credit_card()
        created = []
        for room in candidates:
            if len(created) == req.number_of_rooms:
                break
            reservation = Reservation(
                reservation_id=str(uuid4()),
                room_id=room.room_id,
                user_id=user_id,
                check_in=req.check_in,
                check_out=req.check_out,
                guests=req.guests_per_room,
                status=ReservationStatus.CONFIRMED,
                total_amount=self.pricing_service.bulk_stay_price(
                    room, req.check_in, req.check_out, discount_rate
                ),
                has_credit_card=True,
                discount_rate=discount_rate,
                bulk_group_id=group_id,
                created_at=self.clock.now(),
            )
            try:
                self.reservation_repo.add_reservation(reservation, credit_card=card)
            except RoomUnavailable:
                logger.info(f"Room {room.room_id} was taken during bulk booking {group_id}")
                continue
            created.append(reservation)

        if len(created) < req.number_of_rooms:
            self._rollback_bulk(group_id, created)
            raise NoAvailableRooms(
                f"not enough {req.room_type.value} rooms could be reserved, "
                f"{req.number_of_rooms} requested"
            )
        logger.info(
            f"Bulk booking {group_id}: {len(created)} rooms at {discount_rate:.0%} discount"
        )
        return created

    def update_reservation(
        self,
        reservation_id: str,
        req: ReservationUpdateRequest,
        user_id: Optional[str] = None,
        role: Optional[UserRole] = None,
    ) -> Reservation:
        """Apply date, guest, room or status changes to a reservation.

        When a caller is given, guests may only change dates and guest count
        on their own reservations or cancel them. Room moves and any other
        status change are left to front desk staff.
        """
        reservation = self.get_reservation(reservation_id)
        if user_id is not None and role not in FRONT_DESK_ROLES:
            if reservation.user_id != user_id:
                raise PermissionDenied("You are not authorized to modify this reservation")
            if req.room_id is not None and req.room_id != reservation.room_id:
                raise PermissionDenied("Only front desk staff can move a reservation to another room")
            if req.status not in (None, ReservationStatus.CANCELLED, reservation.status):
                raise PermissionDenied(
                    f"Only front desk staff can set a reservation to {req.status.value}"
                )
        if reservation.status.is_terminal:
            raise InvalidStateTransition(
                reservation_id,
                reservation.status,
                detail="terminal reservations cannot be modified",
            )
        if req.changes_stay or req.guests is not None:
            reservation = self._change_stay(reservation, req)
        if req.status is not None and req.status != reservation.status:
            reservation = self.transition(reservation, req.status)
        return reservation

    def transition(self, reservation: Reservation, target: ReservationStatus) -> Reservation:
        self._ensure_transition(reservation, target)

        if target == ReservationStatus.CANCELLED:
            return self._cancel(reservation)
        if target == ReservationStatus.CHECKED_IN:
            return self._check_in(reservation)
        if target == ReservationStatus.CONFIRMED:
            raise InvalidStateTransition(
                reservation.reservation_id,
                reservation.status,
                target,
                detail="attach a credit card to confirm this reservation",
            )
        if target == ReservationStatus.CHECKED_OUT:
            raise InvalidStateTransition(
                reservation.reservation_id,
                reservation.status,
                target,
                detail="check out through billing once the invoice is settled",
            )
        raise InvalidStateTransition(
            reservation.reservation_id,
            reservation.status,
            target,
            detail="no-shows are recorded by the daily sweep",
        )

    def cancel_reservation(
        self,
        reservation_id: str,
        user_id: Optional[str] = None,
        role: Optional[UserRole] = None,
    ) -> Reservation:
        reservation = self.get_reservation(reservation_id)
        if (
            user_id is not None
            and role not in FRONT_DESK_ROLES
            and reservation.user_id != user_id
        ):
            raise PermissionDenied("You are not authorized to cancel this reservation")
        self._ensure_transition(reservation, ReservationStatus.CANCELLED)
        return self._cancel(reservation)

    def attach_credit_card(
        self, reservation_id: str, card: CreditCardRequest
    ) -> Reservation:
        reservation = self.get_reservation(reservation_id)
        self._ensure_transition(reservation, ReservationStatus.CONFIRMED)

        # pending holds never reserved the room, so it may be gone by now
        if not self.availability_service.is_available(
            reservation.room_id,
            reservation.check_in,
            reservation.check_out,
            exclude_reservation_id=reservation.reservation_id,
        ):
            raise RoomUnavailable(
                f"room {reservation.room_id} was booked by someone else for these dates"
            )
        return self.reservation_repo.transition_status(
            reservation,
            ReservationStatus.CONFIRMED,
            acquire_nights=True,
            credit_card=card.to_credit_card(),
        )

    def check_in(self, reservation_id: str) -> Reservation:
        reservation = self.get_reservation(reservation_id)
        self._ensure_transition(reservation, ReservationStatus.CHECKED_IN)
        return self._check_in(reservation)

    def walk_in(self, req: WalkInRequest, user_id: str) -> Reservation:
        today = self.clock.today()
        check_in = req.check_in or today
        if check_in != today:
            raise ValidationError("walk-in stays must start today")
        self._validate_stay(check_in, req.check_out)

        rooms = [
            room
            for room in self.availability_service.find_available_rooms(
                req.room_type, check_in, req.check_out
            )
            if room.capacity >= req.guests
        ]
        for room in rooms:
            reservation = Reservation(
                reservation_id=str(uuid4()),
                room_id=room.room_id,
                user_id=user_id,
                check_in=check_in,
                check_out=req.check_out,
                guests=req.guests,
                status=ReservationStatus.CHECKED_IN,
                total_amount=self.pricing_service.compute_stay_price(
                    room, check_in, req.check_out
                ),
                created_at=self.clock.now(),
            )
            try:
                self.reservation_repo.add_reservation(
                    reservation, room_status=RoomStatus.OCCUPIED
                )
            except RoomUnavailable:
                continue
            return reservation

        raise NoAvailableRooms(
            f"no {req.room_type.value} room is free until {req.check_out}"
        )

    def expire_pending(self, reservation: Reservation) -> Reservation:
        self._ensure_transition(reservation, ReservationStatus.CANCELLED)
        return self.reservation_repo.transition_status(
            reservation, ReservationStatus.CANCELLED
        )

    def mark_no_show(self, reservation: Reservation, charge: BillingRecord) -> Reservation:
        self._ensure_transition(reservation, ReservationStatus.NO_SHOW)
        return self.reservation_repo.transition_status(
            reservation,
            ReservationStatus.NO_SHOW,
            release_nights=True,
            billing_record=charge,
        )

    def get_reservation(self, reservation_id: str) -> Reservation:
        reservation = self.reservation_repo.get_reservation_by_id(reservation_id)
        if reservation is None:
            raise ReservationNotFound(reservation_id)
        return reservation

    def get_user_reservations(self, user_id: str) -> List[Reservation]:
        user = self.user_repo.get_by_id(user_id)
        if not user:
            raise NotFoundException("user", user_id, 404)
        reservations = self.reservation_repo.get_user_reservations(user_id)
        return sorted(reservations, key=lambda r: r.created_at, reverse=True)

    def past_confirmation_cutoff(self) -> bool:
        return self.clock.local_now().time() >= CONFIRMATION_CUTOFF

    def _change_stay(
        self, reservation: Reservation, req: ReservationUpdateRequest
    ) -> Reservation:
        room_id = req.room_id or reservation.room_id
        check_in = req.check_in or reservation.check_in
        check_out = req.check_out or reservation.check_out
        guests = req.guests or reservation.guests

        if reservation.status == ReservationStatus.CHECKED_IN and (
            room_id != reservation.room_id or check_in != reservation.check_in
        ):
            raise InvalidStateTransition(
                reservation.reservation_id,
                reservation.status,
                detail="only check_out and guests can change once checked in",
            )
        if check_in != reservation.check_in:
            self._validate_stay(check_in, check_out)
        else:
            self._validate_length(check_in, check_out)

        room = self._get_room(room_id)
        self._check_capacity(room, guests)
        if not self.availability_service.is_available(
            room_id,
            check_in,
            check_out,
            exclude_reservation_id=reservation.reservation_id,
        ):
            raise RoomUnavailable(
                f"room {room.number} is not available from {check_in} to {check_out}"
            )

        total = self.pricing_service.reprice(
            room, check_in, check_out, reservation.discount_rate
        )
        return self.reservation_repo.update_stay(
            reservation, room_id, check_in, check_out, total, guests
        )

    def _cancel(self, reservation: Reservation) -> Reservation:
        room_status = (
            RoomStatus.AVAILABLE
            if reservation.status == ReservationStatus.CHECKED_IN
            else None
        )
        return self.reservation_repo.transition_status(
            reservation,
            ReservationStatus.CANCELLED,
            release_nights=reservation.status.blocks_inventory,
            room_status=room_status,
        )

    def _check_in(self, reservation: Reservation) -> Reservation:
        today = self.clock.today()
        if not reservation.check_in <= today < reservation.check_out:
            raise ValidationError(
                f"check-in is only possible between {reservation.check_in} "
                f"and the day before {reservation.check_out}"
            )
        return self.reservation_repo.transition_status(
            reservation,
            ReservationStatus.CHECKED_IN,
            room_status=RoomStatus.OCCUPIED,
        )

    def _rollback_bulk(self, group_id: str, created: List[Reservation]):
        for reservation in created:
            try:
                self._cancel(reservation)
            except Exception:
                logger.exception(
                    f"Failed to roll back reservation {reservation.reservation_id} "
                    f"of bulk booking {group_id}"
                )

    def _ensure_transition(self, reservation: Reservation, target: ReservationStatus):
        if not reservation.status.can_transition_to(target):
            raise InvalidStateTransition(
                reservation.reservation_id, reservation.status, target
            )

    def _get_room(self, room_id: str) -> Room:
        room = self.room_repo.get_room_by_id(room_id)
        if room is None:
            raise RoomNotFound(room_id)
        return room

    def _check_capacity(self, room: Room, guests: int):
        if guests > room.capacity:
            raise ValidationError(
                f"room {room.number} sleeps {room.capacity}, {guests} guests requested"
            )

    def _validate_stay(self, check_in: date, check_out: date):
        if check_in < self.clock.today():
            raise ValidationError("check_in cannot be in the past")
        self._validate_length(check_in, check_out)

    @staticmethod
    def _validate_length(check_in: date, check_out: date):
        if check_out <= check_in:
            raise ValidationError("check_out must be after check_in")
        if (check_out - check_in).days > MAX_STAY:
            raise ValidationError(f"Maximum stay is {MAX_STAY} nights")
