# finance_tracker/core/months.py
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date

_MONTH_KEY = re.compile(r"^(\d{4})-(\d{2})$")

MONTH_ABBR = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


@dataclass(frozen=True, order=True)
class MonthKey:
    """A calendar month, canonically written as ``YYYY-MM``."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"Invalid month {self.month} in month key")
        if not 1 <= self.year <= 9999:
            raise ValueError(f"Invalid year {self.year} in month key")

    @classmethod
    def parse(cls, value) -> "MonthKey":
        if isinstance(value, MonthKey):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Unrecognized month key: {value!r}")
        match = _MONTH_KEY.match(value.strip())
        if not match:
            raise ValueError(f"Month key must look like YYYY-MM, got {value!r}")
        return cls(int(match.group(1)), int(match.group(2)))

    @classmethod
    def from_date(cls, value: date) -> "MonthKey":
        return cls(value.year, value.month)

    @property
    def label(self) -> str:
        return f"{MONTH_ABBR[self.month - 1]} {self.year}"

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


def next_month(key: MonthKey) -> MonthKey:
    if key.month == 12:
        return MonthKey(key.year + 1, 1)
    return MonthKey(key.year, key.month + 1)


def previous_month(key: MonthKey) -> MonthKey:
    if key.month == 1:
        return MonthKey(key.year - 1, 12)
    return MonthKey(key.year, key.month - 1)


def shift_month(key: MonthKey, months: int) -> MonthKey:
    """Move ``key`` forward (or back, for negative ``months``) by whole months."""
    month_index = key.year * 12 + key.month - 1 + months
    return MonthKey(month_index // 12, month_index % 12 + 1)


def to_date_range_start(key: MonthKey) -> date:
    return date(key.year, key.month, 1)


def month_range(key: MonthKey) -> tuple[date, date]:
    """Return the half-open ``[start, end)`` date range covering ``key``."""
    return to_date_range_start(key), to_date_range_start(next_month(key))


def current_month(today: date | None = None) -> MonthKey:
    return MonthKey.from_date(today or date.today())
