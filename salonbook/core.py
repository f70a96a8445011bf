# salonbook/core.py

from datetime import date, datetime, time
from decimal import Decimal
from typing import Iterable

from salonbook.schemas import AppointmentStatus

CENT = Decimal("0.01")

# legal status moves; anything not listed (other than staying put) is refused
TRANSITIONS = {
    AppointmentStatus.confirmed: {AppointmentStatus.cancelled, AppointmentStatus.completed},
    AppointmentStatus.cancelled: set(),
    AppointmentStatus.completed: set(),
}


def overlaps(a_start, a_end, b_start, b_end) -> bool:
    """Half-open interval overlap; windows that only touch do not overlap."""
    return a_start < b_end and a_end > b_start


def contains(outer_start, outer_end, start, end) -> bool:
    return start >= outer_start and end <= outer_end


def total_price(prices: Iterable[Decimal]) -> Decimal:
    total = sum((Decimal(p) for p in prices), Decimal("0"))
    return total.quantize(CENT)


def is_in_past(day: date, start: time, now: datetime) -> bool:
    today = now.date()
    return day < today or (day == today and start < now.time())


def can_transition(old: AppointmentStatus, new: AppointmentStatus) -> bool:
    if old == new:
        return True
    return new in TRANSITIONS[old]
