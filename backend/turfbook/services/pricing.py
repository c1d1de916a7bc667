"""
Tariff lookup used to stamp a price onto generated slots.

Pure function of (tariff table, date, start time, holidays, net): no shared
state, no concurrency concerns. The label is "<DAYTYPE>_<PERIOD>", e.g.
"WEEKEND_EVENING", and is what the owner dashboard shows next to the price.
"""

from dataclasses import dataclass
from datetime import date, time
from typing import Iterable

from turfbook.schemas.turf import PricingRules


@dataclass(frozen=True)
class Tariff:
    price: float
    label: str


def day_type(slot_date: date, public_holidays: Iterable[date]) -> str:
    if slot_date in set(public_holidays):
        return "HOLIDAY"
    if slot_date.weekday() >= 5:
        return "WEEKEND"
    return "WEEKDAY"


def period(start_time: time) -> str:
    hour = start_time.hour
    if 6 <= hour < 12:
        return "MORNING"
    if 12 <= hour < 18:
        return "AFTERNOON"
    if hour >= 18:
        return "EVENING"
    return "NIGHT"


def calculate_slot_price(
    pricing_rules: PricingRules,
    slot_date: date,
    start_time: time,
    public_holidays: Iterable[date] = (),
    net_number: int = 1,
) -> Tariff:
    """Price and tariff label for one slot. Unknown nets fall back to the first net's prices."""
    kind = day_type(slot_date, public_holidays)
    part = period(start_time)
    net_pricing = pricing_rules.for_net(net_number)
    periods = getattr(net_pricing, kind.lower())
    price = getattr(periods, part.lower())
    return Tariff(price=price, label=f"{kind}_{part}")
