from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional, Union

from playlink_api.resources import Booking

ALL_SPORTS = "all"
SLOT_LENGTH = timedelta(hours=1)


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open [a_start, a_end) and [b_start, b_end); touching endpoints do not overlap."""
    return a_start < b_end and b_start < a_end


def matches_sport(booking: Booking, sport_filter: Union[str, int, None]) -> bool:
    """
    "all" (or nothing) matches every booking. A specific sport matches bookings for
    that sport and venue-wide bookings that carry no sport.
    """
    if sport_filter is None or str(sport_filter) in ("", ALL_SPORTS):
        return True
    if booking.sport_id is None:
        return True
    return str(booking.sport_id) == str(sport_filter)


def find_conflict(
    slot_date: date,
    slot_time: time,
    bookings: Optional[Iterable[Booking]],
    sport_filter: Union[str, int, None] = ALL_SPORTS,
    duration: timedelta = SLOT_LENGTH,
) -> Optional[Booking]:
    """
    First booking occupying [slot_date slot_time, +duration), or None.

    Advisory only: the backend decides availability. Cancelled bookings never occupy a slot.
    """
    slot_start = datetime.combine(slot_date, slot_time)
    slot_end = slot_start + duration
    for booking in bookings or ():
        if booking.is_cancelled:
            continue
        if not matches_sport(booking, sport_filter):
            continue
        if intervals_overlap(slot_start, slot_end, booking.start, booking.end):
            return booking
    return None
