"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import date, datetime, time
from typing import Optional
from pydantic import BaseModel, Field, model_validator

from turfbook.models.booking import BookingSource, PaymentMode, PaymentStatus


class BookingCreate(BaseModel):
    slot_id: int
    customer_name: str = Field(..., min_length=1, max_length=255)
    customer_phone: str = Field(..., min_length=3, max_length=32)
    user_id: Optional[str] = Field(None, max_length=64)
    booking_source: BookingSource = BookingSource.APP
    payment_mode: PaymentMode = PaymentMode.OFFLINE
    # Derived from amount/advance when omitted
    payment_status: Optional[PaymentStatus] = None
    amount: float = Field(..., ge=0)
    advance_amount: float = Field(0, ge=0)
    transaction_id: Optional[str] = Field(None, max_length=255)

    @model_validator(mode="after")
    def check_advance(self):
        if self.advance_amount > self.amount:
            raise ValueError("advance_amount cannot exceed amount")
        return self


class BookingResponse(BaseModel):
    id: int
    slot_id: int
    turf_id: int
    owner_id: str
    net_number: int
    booking_date: date
    start_time: time
    end_time: time
    user_id: Optional[str]
    customer_name: str
    customer_phone: str
    booking_source: str
    payment_mode: str
    payment_status: str
    amount: float
    advance_amount: float
    transaction_id: Optional[str]
    booking_status: str
    cancelled_at: Optional[datetime]
    cancelled_by: Optional[str]
    cancellation_reason: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingCreatedResponse(BaseModel):
    booking_id: int
    slot_id: int
    slot_status: str


class BookingCancelRequest(BaseModel):
    slot_id: int
    cancelled_by: str = Field(..., min_length=1, max_length=64)
    reason: Optional[str] = Field(None, max_length=500)


class BookingCancelResponse(BaseModel):
    success: bool
    booking_id: int
    status: str
