"""
Pydantic schemas for slot queries and lifecycle requests.
"""

from datetime import date as date_type, datetime, time
from typing import Optional
from pydantic import BaseModel, Field


class SlotResponse(BaseModel):
    id: int
    turf_id: int
    net_number: int
    date: date_type
    start_time: time
    end_time: time
    price: float
    price_type: str
    status: str
    reserved_by: Optional[str]
    reserved_until: Optional[datetime]
    blocked_by: Optional[str]
    block_reason: Optional[str]

    model_config = {"from_attributes": True}


class SlotGridResponse(BaseModel):
    turf_id: int
    date: date_type
    slots: list[SlotResponse]
    cached: bool = False


class ReserveRequest(BaseModel):
    holder_id: str = Field(..., min_length=1, max_length=64)
    # Defaults to SLOT_LEASE_MINUTES; capped at MAX_LEASE_MINUTES by the service
    lease_minutes: Optional[int] = Field(None, gt=0)


class BlockRequest(BaseModel):
    owner_id: str = Field(..., min_length=1, max_length=64)
    reason: Optional[str] = Field(None, max_length=255)


class UnblockRequest(BaseModel):
    owner_id: str = Field(..., min_length=1, max_length=64)


class GenerateSlotsRequest(BaseModel):
    date: date_type
    force_regenerate: bool = False


class GenerateSlotsResponse(BaseModel):
    turf_id: int
    date: date_type
    created: int


class ExpireLeasesResponse(BaseModel):
    expired: int


class OperationResult(BaseModel):
    success: bool
