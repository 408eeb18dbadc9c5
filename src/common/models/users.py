from enum import Enum
from dataclasses import dataclass


class UserRole(Enum):
    CUSTOMER = "CUSTOMER"
    COMPANY = "COMPANY"
    STAFF = "STAFF"
    MANAGER = "MANAGER"


FRONT_DESK_ROLES = frozenset({UserRole.STAFF, UserRole.MANAGER})


@dataclass
class User:
    user_id: str
    email: str
    name: str
    role: UserRole
