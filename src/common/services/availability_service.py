from datetime import date
from typing import List, Optional

from common.models.reservations import Reservation
from common.models.rooms import Room, RoomStatus, RoomType
from common.repository.reservation_repo import ReservationRepository
from common.repository.room_repo import RoomRepository
from common.utils.custom_exceptions import RoomNotFound


class AvailabilityService:
    def __init__(self, room_repo: RoomRepository, reservation_repo: ReservationRepository):
        self.room_repo = room_repo
        self.reservation_repo = reservation_repo

    def is_available(
        self,
        room_id: str,
        check_in: date,
        check_out: date,
        exclude_reservation_id: Optional[str] = None,
    ) -> bool:
        if self.room_repo.get_room_by_id(room_id) is None:
            raise RoomNotFound(room_id)
        return not self.get_conflicts(room_id, check_in, check_out, exclude_reservation_id)

    def get_conflicts(
        self,
        room_id: str,
        check_in: date,
        check_out: date,
        exclude_reservation_id: Optional[str] = None,
    ) -> List[Reservation]:
        return [
            reservation
            for reservation in self.reservation_repo.get_room_reservations(room_id)
            if reservation.status.blocks_inventory
            and reservation.reservation_id != exclude_reservation_id
            and reservation.overlaps(check_in, check_out)
        ]

    def find_available_rooms(
        self, room_type: RoomType, check_in: date, check_out: date
    ) -> List[Room]:
        rooms = [
            room
            for room in self.room_repo.get_rooms_by_type(room_type)
            if room.status != RoomStatus.MAINTENANCE
            and not self.get_conflicts(room.room_id, check_in, check_out)
        ]
        return sorted(rooms, key=lambda room: room.number)
