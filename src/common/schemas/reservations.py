import re
from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator

from common.models.credit_cards import CreditCard
from common.models.reservations import ReservationStatus
from common.models.rooms import RoomType
from common.utils.constants import MAX_STAY
from common.utils.datetime_normaliser import to_stay_date

CARD_NUMBER_REGEX = re.compile(r"^\d{16}$")
CVV_REGEX = re.compile(r"^\d{3,4}$")


def _stay_date(value):
    if value is None or (isinstance(value, date) and not isinstance(value, datetime)):
        return value
    return to_stay_date(value)


def _room_type(value):
    if isinstance(value, str):
        return value.strip().upper()
    return value


def _check_stay(check_in: date, check_out: date):
    if check_out <= check_in:
        raise ValueError("check_out must be after check_in")
    if (check_out - check_in).days > MAX_STAY:
        raise ValueError(f"Maximum stay is {MAX_STAY} nights")


class CreditCardRequest(BaseModel):
    card_number: str
    expiry_month: int = Field(ge=1, le=12)
    expiry_year: int
    cvv: str
    holder_name: str

    @field_validator("card_number")
    @classmethod
    def validate_card_number(cls, v: str):
        v = v.replace(" ", "")
        if not CARD_NUMBER_REGEX.fullmatch(v):
            raise ValueError("card_number must be exactly 16 digits")
        return v

    @field_validator("cvv")
    @classmethod
    def validate_cvv(cls, v: str):
        if not CVV_REGEX.fullmatch(v):
            raise ValueError("cvv must be 3 or 4 digits")
        return v

    @field_validator("holder_name")
    @classmethod
    def validate_holder_name(cls, v: str):
        if not v.strip():
            raise ValueError("holder_name must not be empty")
        return v.strip()

    @model_validator(mode="after")
    def validate_not_expired(self, info: ValidationInfo):
        # callers pass {"today": ...} as validation context to pin the date
        today = (info.context or {}).get("today") or date.today()
        if self.expiry_year < today.year:
            raise ValueError("card has expired")
        if self.expiry_year == today.year and self.expiry_month < today.month:
            raise ValueError("card has expired")
        return self

    def to_credit_card(self) -> CreditCard:
        return CreditCard(
            card_number=CreditCard.mask(self.card_number),
            expiry_month=self.expiry_month,
            expiry_year=self.expiry_year,
            holder_name=self.holder_name,
        )


class StayRequest(BaseModel):
    check_in: date
    check_out: date

    @field_validator("check_in", "check_out", mode="before")
    @classmethod
    def normalize_dates(cls, v):
        return _stay_date(v)

    @model_validator(mode="after")
    def validate_stay(self):
        _check_stay(self.check_in, self.check_out)
        return self


class ReservationRequest(StayRequest):
    room_id: str = Field(min_length=1)
    guests: int = Field(gt=0)
    credit_card: Optional[CreditCardRequest] = None


class BulkReservationRequest(StayRequest):
    room_type: RoomType
    number_of_rooms: int = Field(ge=2)
    guests_per_room: int = Field(default=1, gt=0)
    credit_card: CreditCardRequest
    special_requests: Optional[str] = None

    @field_validator("room_type", mode="before")
    @classmethod
    def normalize_room_type(cls, v):
        return _room_type(v)


class ReservationUpdateRequest(BaseModel):
    check_in: Optional[date] = None
    check_out: Optional[date] = None
    room_id: Optional[str] = None
    guests: Optional[int] = Field(default=None, gt=0)
    status: Optional[ReservationStatus] = None

    @field_validator("check_in", "check_out", mode="before")
    @classmethod
    def normalize_dates(cls, v):
        return _stay_date(v)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @model_validator(mode="after")
    def validate_not_empty(self):
        if not self.model_fields_set:
            raise ValueError("nothing to update")
        if self.check_in and self.check_out:
            _check_stay(self.check_in, self.check_out)
        return self

    @property
    def changes_stay(self) -> bool:
        return any(
            v is not None for v in (self.check_in, self.check_out, self.room_id)
        )


class WalkInRequest(BaseModel):
    guest_id: str = Field(min_length=1)
    room_type: RoomType
    check_in: Optional[date] = None
    check_out: date
    guests: int = Field(default=1, gt=0)

    @field_validator("room_type", mode="before")
    @classmethod
    def normalize_room_type(cls, v):
        return _room_type(v)

    @field_validator("check_in", "check_out", mode="before")
    @classmethod
    def normalize_dates(cls, v):
        return _stay_date(v)

    @model_validator(mode="after")
    def validate_stay(self):
        if self.check_in is not None:
            _check_stay(self.check_in, self.check_out)
        return self
