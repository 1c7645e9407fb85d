"""
Availability calendar model.

Holds the state behind the listing availability calendar: the displayed
month, the owner's per-date availability entries, and the blocked/booked
lists supplied by the caller. Nothing here is persisted; every toggle is
reported to the owner through `on_date_select`.
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta
from enum import Enum
from typing import Callable, Iterable, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from rentat.utils.datetime_utils import add_months, format_date, parse_date

DateLike = Union[str, date]

MONTH_NAMES = list(calendar.month_name)[1:]


class DateStatus(str, Enum):
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    BOOKED = "booked"
    BLOCKED = "blocked"


class CalendarDate(BaseModel):
    date: str = Field(..., description="YYYY-MM-DD")
    available: bool
    price: Optional[float] = None

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, v):
        return format_date(parse_date(v))


class DayCell(BaseModel):
    date: str
    day: int
    status: DateStatus
    disabled: bool
    price: Optional[float] = None


class AvailabilityCalendar:
    """
    Month grid with per-date availability toggling

    Status priority is blocked > booked > locally available > unavailable.
    """

    def __init__(
        self,
        selected_dates: Optional[Iterable[Union[CalendarDate, dict]]] = None,
        on_date_select: Optional[Callable[[List[CalendarDate]], None]] = None,
        mode: Literal["select", "view"] = "select",
        min_date: Optional[DateLike] = None,
        max_date: Optional[DateLike] = None,
        blocked_dates: Iterable[DateLike] = (),
        booked_dates: Iterable[DateLike] = (),
        default_price: float = 0,
        current_month: Optional[DateLike] = None,
        today: Optional[date] = None,
    ):
        today = today or date.today()
        self.on_date_select = on_date_select
        self.mode = mode
        self.min_date = parse_date(min_date) if min_date is not None else today
        self.max_date = parse_date(max_date) if max_date is not None else today + timedelta(days=365)
        self.blocked_dates = {format_date(parse_date(d)) for d in blocked_dates}
        self.booked_dates = {format_date(parse_date(d)) for d in booked_dates}
        self.default_price = default_price
        self.current_month = add_months(parse_date(current_month) if current_month else today, 0)
        self._dates: List[CalendarDate] = []
        self.set_selected_dates(selected_dates or [])

    @property
    def calendar_dates(self) -> List[CalendarDate]:
        return [entry.model_copy() for entry in self._dates]

    @property
    def month_label(self) -> str:
        return f"{MONTH_NAMES[self.current_month.month - 1]} {self.current_month.year}"

    def set_selected_dates(self, dates: Iterable[Union[CalendarDate, dict]]):
        """Replace local entries with the owner's list"""
        self._dates = [
            entry.model_copy() if isinstance(entry, CalendarDate) else CalendarDate.model_validate(entry)
            for entry in dates
        ]

    def _find(self, date_string: str) -> Optional[CalendarDate]:
        for entry in self._dates:
            if entry.date == date_string:
                return entry
        return None

    def get_date_status(self, value: DateLike) -> DateStatus:
        date_string = format_date(parse_date(value))
        if date_string in self.blocked_dates:
            return DateStatus.BLOCKED
        if date_string in self.booked_dates:
            return DateStatus.BOOKED

        entry = self._find(date_string)
        if entry is not None and entry.available:
            return DateStatus.AVAILABLE
        return DateStatus.UNAVAILABLE

    def is_date_disabled(self, value: DateLike) -> bool:
        day = parse_date(value)
        return day < self.min_date or day > self.max_date

    def toggle_date_availability(self, value: DateLike) -> bool:
        """
        Flip availability of a date, adding an available entry if there is none

        Ignored in view mode, for blocked or booked dates, and outside
        [min_date, max_date]. The full updated list goes to on_date_select.

        Returns:
            True if local state changed
        """
        if self.mode == "view":
            return False
        date_string = format_date(parse_date(value))
        if date_string in self.blocked_dates or date_string in self.booked_dates:
            return False
        if self.is_date_disabled(date_string):
            return False

        entry = self._find(date_string)
        if entry is not None:
            self._dates = [
                d.model_copy(update={"available": not d.available}) if d.date == date_string else d
                for d in self._dates
            ]
        else:
            self._dates = self._dates + [
                CalendarDate(date=date_string, available=True, price=self.default_price)
            ]

        if self.on_date_select is not None:
            self.on_date_select(self.calendar_dates)
        return True

    def navigate_month(self, direction: Literal["prev", "next"]) -> date:
        if direction not in ("prev", "next"):
            raise ValueError(f"Unknown direction: {direction}")
        self.current_month = add_months(self.current_month, -1 if direction == "prev" else 1)
        return self.current_month

    def days_in_month(self) -> List[Optional[date]]:
        """Sunday-first grid for the displayed month, padded with None"""
        year, month = self.current_month.year, self.current_month.month
        # monthrange's weekday is Monday=0; shift to Sunday=0
        first_weekday, days_count = calendar.monthrange(year, month)
        padding = (first_weekday + 1) % 7
        days: List[Optional[date]] = [None] * padding
        days.extend(date(year, month, day) for day in range(1, days_count + 1))
        return days

    def month_grid(self) -> List[Optional[DayCell]]:
        cells: List[Optional[DayCell]] = []
        for day in self.days_in_month():
            if day is None:
                cells.append(None)
                continue
            date_string = format_date(day)
            entry = self._find(date_string)
            cells.append(DayCell(
                date=date_string,
                day=day.day,
                status=self.get_date_status(day),
                disabled=self.is_date_disabled(day),
                price=entry.price if entry is not None and entry.price else None,
            ))
        return cells
