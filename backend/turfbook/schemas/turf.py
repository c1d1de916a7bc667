"""
Pydantic schemas for turf configuration and its tariff table.
"""

from datetime import date, datetime, time
from typing import Literal, Optional
from pydantic import BaseModel, Field, model_validator

Weekday = Literal["MON", "TUE", "WED", "THU", "FRI", "SAT", "SUN"]
ALL_DAYS: list[str] = ["MON", "TUE", "WED", "THU", "FRI", "SAT", "SUN"]


class PeriodPrices(BaseModel):
    morning: float = Field(..., ge=0)    # 06:00-12:00
    afternoon: float = Field(..., ge=0)  # 12:00-18:00
    evening: float = Field(..., ge=0)    # 18:00-24:00
    night: float = Field(..., ge=0)      # 00:00-06:00


class NetPricing(BaseModel):
    net_number: int = Field(1, ge=1)
    weekday: PeriodPrices
    weekend: PeriodPrices
    holiday: PeriodPrices


class PricingRules(BaseModel):
    net_pricing: list[NetPricing] = Field(..., min_length=1)

    def for_net(self, net_number: int) -> NetPricing:
        for pricing in self.net_pricing:
            if pricing.net_number == net_number:
                return pricing
        return self.net_pricing[0]

    @classmethod
    def flat(cls, price: float, number_of_nets: int = 1) -> "PricingRules":
        """Same price everywhere. Handy for seeding and tests."""
        periods = PeriodPrices(morning=price, afternoon=price, evening=price, night=price)
        return cls(net_pricing=[
            NetPricing(net_number=n, weekday=periods, weekend=periods, holiday=periods)
            for n in range(1, number_of_nets + 1)
        ])


class TurfCreate(BaseModel):
    owner_id: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    open_time: time
    close_time: time
    slot_duration_minutes: int = Field(60, ge=15, le=240)
    number_of_nets: int = Field(1, ge=1, le=20)
    days_open: list[Weekday] = Field(default_factory=lambda: list(ALL_DAYS), min_length=1)
    pricing_rules: PricingRules
    public_holidays: list[date] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_hours(self):
        if self.close_time <= self.open_time:
            raise ValueError("close_time must be after open_time")
        return self


class TurfUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    open_time: Optional[time] = None
    close_time: Optional[time] = None
    slot_duration_minutes: Optional[int] = Field(None, ge=15, le=240)
    number_of_nets: Optional[int] = Field(None, ge=1, le=20)
    days_open: Optional[list[Weekday]] = Field(None, min_length=1)
    pricing_rules: Optional[PricingRules] = None
    public_holidays: Optional[list[date]] = None
    status: Optional[Literal["OPEN", "CLOSED", "RENOVATION"]] = None


class TurfResponse(BaseModel):
    id: int
    owner_id: str
    name: str
    city: Optional[str]
    open_time: time
    close_time: time
    slot_duration_minutes: int
    number_of_nets: int
    days_open: list[str]
    pricing_rules: PricingRules
    public_holidays: list[date]
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}
