from enum import Enum
from typing import Optional
from dataclasses import dataclass


class RoomType(str, Enum):
    SINGLE = "SINGLE"
    DOUBLE = "DOUBLE"
    FAMILY = "FAMILY"
    DELUXE = "DELUXE"
    SUITE = "SUITE"


class RoomStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    OCCUPIED = "OCCUPIED"
    MAINTENANCE = "MAINTENANCE"
    RESERVED = "RESERVED"


@dataclass
class Room:
    room_id: str
    number: str
    room_type: RoomType
    price: float
    capacity: int = 1
    weekly_rate: Optional[float] = None
    monthly_rate: Optional[float] = None
    status: RoomStatus = RoomStatus.AVAILABLE
