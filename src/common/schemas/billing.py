from typing import Optional
from pydantic import BaseModel, Field, field_validator

from common.models.billing import PaymentMethod


class PaymentRequest(BaseModel):
    reservation_id: str = Field(min_length=1)
    amount: float = Field(gt=0, allow_inf_nan=False)
    method: PaymentMethod
    reference: Optional[str] = None

    @field_validator("method", mode="before")
    @classmethod
    def normalize_method(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v


class OptionalChargeRequest(BaseModel):
    reservation_id: str = Field(min_length=1)
    description: str = Field(min_length=1, max_length=200)
    amount: float = Field(gt=0, allow_inf_nan=False)


class RefundRequest(BaseModel):
    reservation_id: str = Field(min_length=1)
    reason: Optional[str] = Field(default=None, max_length=500)
