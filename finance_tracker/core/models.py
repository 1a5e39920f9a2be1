# finance_tracker/core/models.py
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Mapping, Optional

from finance_tracker.core.months import MonthKey

EXPENSE = "expense"
INCOME = "income"
TRANSACTION_TYPES = (EXPENSE, INCOME)

TIER_UNDER = "under"
TIER_WARNING = "warning"
TIER_OVER = "over"
WARNING_THRESHOLD = 80.0
OVER_THRESHOLD = 100.0


def utilization_tier(pct: float) -> str:
    """Classify a utilization percentage; lower bounds are inclusive."""
    if pct >= OVER_THRESHOLD:
        return TIER_OVER
    if pct >= WARNING_THRESHOLD:
        return TIER_WARNING
    return TIER_UNDER


def parse_date(value, record=None) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        # a full ISO timestamp is accepted; trailing junk is not
        try:
            return datetime.fromisoformat(text).date()
        except ValueError as exc:
            raise ValueError(f"Invalid date {value!r} in record: {record}") from exc
    raise ValueError(f"Unrecognized date {value!r} in record: {record}")


def parse_amount(value, record=None) -> float:
    try:
        amount = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid amount {value!r} in record: {record}") from exc
    if not math.isfinite(amount):
        raise ValueError(f"Invalid amount {value!r} in record: {record}")
    return amount


def parse_type(value, record=None) -> str:
    kind = str(value or "").strip().lower()
    if kind not in TRANSACTION_TYPES:
        raise ValueError(f"Type must be 'expense' or 'income', got {value!r} in record: {record}")
    return kind


def _optional_id(value) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


@dataclass(frozen=True)
class Session:
    """The authenticated user every data-access call is scoped to."""

    user_id: int
    email: str


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    type: str = EXPENSE
    icon: str = ""
    color: str = ""

    @classmethod
    def from_record(cls, record: Mapping) -> "Category":
        return cls(
            id=str(record["id"]),
            name=str(record.get("name") or ""),
            type=parse_type(record.get("type", EXPENSE), record),
            icon=record.get("icon") or "",
            color=record.get("color") or "",
        )


@dataclass(frozen=True)
class Transaction:
    id: str
    amount: float
    type: str
    date: date
    category_id: Optional[str] = None
    note: str = ""

    @classmethod
    def from_record(cls, record: Mapping) -> "Transaction":
        return cls(
            id=str(record.get("id", "")),
            amount=parse_amount(record.get("amount"), record),
            type=parse_type(record.get("type"), record),
            date=parse_date(record.get("date"), record),
            category_id=_optional_id(record.get("category_id")),
            note=record.get("note") or "",
        )


@dataclass(frozen=True)
class Budget:
    id: str
    category_id: str
    amount: float
    month: MonthKey

    @classmethod
    def from_record(cls, record: Mapping) -> "Budget":
        return cls(
            id=str(record.get("id", "")),
            category_id=str(record["category_id"]),
            amount=parse_amount(record.get("amount"), record),
            month=MonthKey.parse(record.get("month")),
        )


@dataclass(frozen=True)
class BudgetStatus:
    budget_id: str
    category_id: str
    budget_amount: float
    spent_amount: float
    remaining_amount: float
    utilization_pct: float
    category: Optional[Category] = None

    @property
    def tier(self) -> str:
        return utilization_tier(self.utilization_pct)


@dataclass(frozen=True)
class BudgetSummary:
    month: MonthKey
    statuses: tuple
    total_budget: float
    total_spent: float
    overall_utilization_pct: float

    @property
    def tier(self) -> str:
        return utilization_tier(self.overall_utilization_pct)

    @property
    def over_budget(self) -> bool:
        return self.tier == TIER_OVER

    @property
    def total_remaining(self) -> float:
        return self.total_budget - self.total_spent


@dataclass(frozen=True)
class TrendBucket:
    month: MonthKey
    label: str
    total_income: float = 0.0
    total_expense: float = 0.0


@dataclass(frozen=True)
class MonthlyOverview:
    month: MonthKey
    income: float
    expense: float
    transactions: int

    @property
    def balance(self) -> float:
        return self.income - self.expense
