# finance_tracker/core/aggregator.py
"""Budget and spend aggregation over already-fetched snapshots.

Every function here is pure: it reads immutable ``Transaction``, ``Budget``
and ``Category`` records and returns new immutable records. Nothing is
fetched, cached or mutated. A transaction whose date cannot be parsed raises
``ValueError`` instead of being skipped, so spend is never under-reported.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from finance_tracker.core.models import (
    EXPENSE,
    INCOME,
    Budget,
    BudgetStatus,
    BudgetSummary,
    Category,
    MonthlyOverview,
    Transaction,
    TrendBucket,
    parse_date,
    utilization_tier,
)
from finance_tracker.core.months import MonthKey, month_range, shift_month

__all__ = [
    "spend_by_category",
    "budget_status",
    "summarize_budgets",
    "six_month_trend",
    "monthly_overview",
    "transaction_totals",
    "filter_by_type",
    "recent_transactions",
    "utilization_pct",
    "utilization_tier",
]

logger = logging.getLogger(__name__)

TREND_MONTHS = 6


def utilization_pct(spent: float, budget: float) -> float:
    """Return ``spent`` as a percentage of ``budget``; 0 when budget <= 0."""
    if budget > 0:
        return spent * 100 / budget
    return 0.0


def _in_month(transactions: Iterable[Transaction], month: MonthKey) -> List[Transaction]:
    start, end = month_range(month)
    return [tx for tx in transactions if start <= parse_date(tx.date, tx) < end]


def spend_by_category(month: MonthKey, transactions: Iterable[Transaction]) -> Dict[str, float]:
    """Sum expense amounts per category id for ``month``.

    Categories with no spend are absent from the result and transactions
    without a category are ignored.
    """
    spent: Dict[str, float] = {}
    for tx in _in_month(transactions, month):
        if tx.type != EXPENSE or tx.category_id is None:
            continue
        spent[tx.category_id] = spent.get(tx.category_id, 0.0) + float(tx.amount)
    return spent


def budget_status(
    budget: Budget,
    spent: Dict[str, float],
    category: Optional[Category] = None,
) -> BudgetStatus:
    amount = float(budget.amount)
    spent_amount = spent.get(budget.category_id, 0.0)
    return BudgetStatus(
        budget_id=budget.id,
        category_id=budget.category_id,
        budget_amount=amount,
        spent_amount=spent_amount,
        remaining_amount=amount - spent_amount,
        utilization_pct=utilization_pct(spent_amount, amount),
        category=category,
    )


def summarize_budgets(
    month: MonthKey,
    transactions: Iterable[Transaction],
    budgets: Iterable[Budget],
    categories: Iterable[Category] = (),
) -> BudgetSummary:
    """Pair every budget for ``month`` with its realized spend and totals."""
    month = MonthKey.parse(month)
    spent = spend_by_category(month, transactions)
    by_id = {c.id: c for c in categories}

    statuses = tuple(
        budget_status(b, spent, by_id.get(b.category_id))
        for b in budgets
        if MonthKey.parse(b.month) == month
    )
    total_budget = sum(s.budget_amount for s in statuses)
    total_spent = sum(s.spent_amount for s in statuses)
    logger.debug(
        "Summarized %d budget(s) for %s: spent %.2f of %.2f",
        len(statuses), month, total_spent, total_budget,
    )
    return BudgetSummary(
        month=month,
        statuses=statuses,
        total_budget=total_budget,
        total_spent=total_spent,
        overall_utilization_pct=utilization_pct(total_spent, total_budget),
    )


def six_month_trend(current: MonthKey, transactions: Iterable[Transaction]) -> Tuple[TrendBucket, ...]:
    """Income and expense totals for the six months ending at ``current``.

    Buckets run oldest to newest and months without activity are included
    with zero totals.
    """
    current = MonthKey.parse(current)
    keys = [shift_month(current, offset) for offset in range(1 - TREND_MONTHS, 1)]
    totals = defaultdict(lambda: {INCOME: 0.0, EXPENSE: 0.0})
    wanted = set(keys)
    for tx in transactions:
        key = MonthKey.from_date(parse_date(tx.date, tx))
        if key in wanted and tx.type in (INCOME, EXPENSE):
            totals[key][tx.type] += float(tx.amount)

    return tuple(
        TrendBucket(
            month=key,
            label=key.label,
            total_income=totals[key][INCOME],
            total_expense=totals[key][EXPENSE],
        )
        for key in keys
    )


def transaction_totals(transactions: Iterable[Transaction]) -> Tuple[float, float]:
    """Return ``(income, expense)`` summed over ``transactions``."""
    income = 0.0
    expense = 0.0
    for tx in transactions:
        if tx.type == INCOME:
            income += float(tx.amount)
        elif tx.type == EXPENSE:
            expense += float(tx.amount)
    return income, expense


def monthly_overview(month: MonthKey, transactions: Iterable[Transaction]) -> MonthlyOverview:
    month = MonthKey.parse(month)
    selected = _in_month(transactions, month)
    income, expense = transaction_totals(selected)
    return MonthlyOverview(month=month, income=income, expense=expense, transactions=len(selected))


def filter_by_type(transactions: Iterable[Transaction], kind: Optional[str]) -> List[Transaction]:
    if not kind or kind == "all":
        return list(transactions)
    return [tx for tx in transactions if tx.type == kind]


def recent_transactions(transactions: Iterable[Transaction], limit: int = 5) -> List[Transaction]:
    ordered = sorted(transactions, key=lambda tx: parse_date(tx.date, tx), reverse=True)
    return ordered[:limit]
