"""
Day/week calendar grid for a venue.

The grid is a pure function of (reference date, view mode, fetched bookings, sport
filter): hourly rows from 07:00 to 21:00 inclusive, one column per visible day,
each cell classified from the first booking that overlaps it.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time, timedelta
from typing import Iterable, List, Optional, Tuple, Union

from django.db import models

from playlink_api.resources import Booking

from .conflicts import ALL_SPORTS, find_conflict

FIRST_HOUR = 7
LAST_HOUR = 21
HOURS = tuple(range(FIRST_HOUR, LAST_HOUR + 1))


class ViewMode(models.TextChoices):
    DAY = "day", "Day"
    WEEK = "week", "Week"


class CellState(models.TextChoices):
    AVAILABLE = "AVAILABLE", "Available"
    BLOCKED = "BLOCKED", "Blocked"
    WALK_IN = "WALK_IN", "Walk-in"
    ONLINE = "ONLINE", "Booked"


def parse_mode(raw: Optional[str]) -> ViewMode:
    if raw is None or raw == "":
        return ViewMode.WEEK
    try:
        return ViewMode(str(raw).lower())
    except ValueError:
        raise ValueError(f"Unknown calendar view: {raw!r}")


def week_start(day: date) -> date:
    """Monday on or before `day` (Sunday rolls back six days)."""
    return day - timedelta(days=day.weekday())


def visible_days(reference: date, mode: ViewMode) -> List[date]:
    if mode == ViewMode.DAY:
        return [reference]
    monday = week_start(reference)
    return [monday + timedelta(days=i) for i in range(7)]


def visible_range(reference: date, mode: ViewMode) -> Tuple[date, date]:
    days = visible_days(reference, mode)
    return days[0], days[-1]


def step(reference: date, mode: ViewMode, direction: int) -> date:
    """Move one page: ±1 day in day view, ±7 days in week view."""
    size = 1 if mode == ViewMode.DAY else 7
    return reference + timedelta(days=size * direction)


def cell_state(booking: Optional[Booking]) -> CellState:
    if booking is None:
        return CellState.AVAILABLE
    if booking.is_block:
        return CellState.BLOCKED
    if booking.is_walk_in:
        return CellState.WALK_IN
    return CellState.ONLINE


@dataclass(frozen=True)
class Cell:
    day: date
    hour: int
    state: CellState
    booking: Optional[Booking] = None

    @property
    def slot_time(self) -> time:
        return time(self.hour, 0)

    @property
    def is_available(self) -> bool:
        return self.state == CellState.AVAILABLE


@dataclass(frozen=True)
class Row:
    hour: int
    cells: List[Cell]

    @property
    def label(self) -> str:
        return f"{self.hour}:00"


@dataclass(frozen=True)
class CalendarGrid:
    reference: date
    mode: ViewMode
    days: List[date]
    rows: List[Row]

    @property
    def previous(self) -> date:
        return step(self.reference, self.mode, -1)

    @property
    def next(self) -> date:
        return step(self.reference, self.mode, 1)

    @property
    def title(self) -> str:
        if self.mode == ViewMode.DAY:
            return self.reference.strftime("%A, %d %B").replace(" 0", " ")
        start = self.days[0]
        return f"Week of {start.day} {start.strftime('%b')}"

    def cells(self) -> Iterable[Cell]:
        for row in self.rows:
            yield from row.cells


def build_grid(
    reference: date,
    mode: ViewMode,
    bookings: Optional[Iterable[Booking]] = None,
    sport_filter: Union[str, int, None] = ALL_SPORTS,
) -> CalendarGrid:
    bookings = list(bookings or [])
    days = visible_days(reference, mode)
    rows = []
    for hour in HOURS:
        cells = []
        for day in days:
            booking = find_conflict(day, time(hour, 0), bookings, sport_filter)
            cells.append(Cell(day=day, hour=hour, state=cell_state(booking), booking=booking))
        rows.append(Row(hour=hour, cells=cells))
    return CalendarGrid(reference=reference, mode=mode, days=days, rows=rows)
