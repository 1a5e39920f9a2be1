"""Views over the ledger: fetch a user's snapshots, then aggregate them.

These are the only functions that touch both the database and the
aggregator. Callers (CLI, web API, MCP tools, report outputs) pass an
explicit ``Session`` and receive immutable records back.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Tuple

from finance_tracker.core import aggregator
from finance_tracker.core.models import (
    BudgetStatus,
    BudgetSummary,
    Category,
    MonthlyOverview,
    Session,
    Transaction,
    TrendBucket,
)
from finance_tracker.core.months import MonthKey, current_month, month_range, shift_month
from finance_tracker.database import fetch_budgets, fetch_transactions, list_categories


@dataclass(frozen=True)
class Dashboard:
    overview: MonthlyOverview
    trend: Tuple[TrendBucket, ...]
    recent: Tuple[Transaction, ...]


@dataclass(frozen=True)
class TransactionsView:
    transactions: Tuple[Transaction, ...]
    total_income: float
    total_expense: float


def budget_view(db_path: str, session: Session, month) -> BudgetSummary:
    key = MonthKey.parse(month)
    start, end = month_range(key)
    categories = list_categories(db_path, session)
    budgets = fetch_budgets(db_path, session, key)
    transactions = fetch_transactions(db_path, session, start, end, type="expense")
    return aggregator.summarize_budgets(key, transactions, budgets, categories)


def _trend_window(db_path: str, session: Session, key: MonthKey) -> List[Transaction]:
    window_start, _ = month_range(shift_month(key, 1 - aggregator.TREND_MONTHS))
    _, window_end = month_range(key)
    return fetch_transactions(db_path, session, window_start, window_end)


def trend_view(db_path: str, session: Session, month) -> Tuple[TrendBucket, ...]:
    key = MonthKey.parse(month)
    return aggregator.six_month_trend(key, _trend_window(db_path, session, key))


def dashboard_view(db_path: str, session: Session, today: Optional[date] = None) -> Dashboard:
    key = current_month(today)
    transactions = _trend_window(db_path, session, key)
    recent = aggregator.recent_transactions(fetch_transactions(db_path, session))
    return Dashboard(
        overview=aggregator.monthly_overview(key, transactions),
        trend=aggregator.six_month_trend(key, transactions),
        recent=tuple(recent),
    )


def transactions_view(db_path: str, session: Session, type: Optional[str] = None) -> TransactionsView:
    """All of a user's transactions, newest first, with overall totals.

    Totals cover every transaction regardless of ``type`` so the listing
    can be filtered without changing the summary figures.
    """
    transactions = fetch_transactions(db_path, session)
    income, expense = aggregator.transaction_totals(transactions)
    return TransactionsView(
        transactions=tuple(aggregator.filter_by_type(transactions, type)),
        total_income=income,
        total_expense=expense,
    )


# ---------------------------------------------------------------------------
# JSON-friendly payloads
# ---------------------------------------------------------------------------

def category_payload(category: Category) -> Dict[str, object]:
    return {
        "id": category.id,
        "name": category.name,
        "type": category.type,
        "icon": category.icon,
        "color": category.color,
    }


def transaction_payload(tx: Transaction) -> Dict[str, object]:
    return {
        "id": tx.id,
        "amount": tx.amount,
        "type": tx.type,
        "date": tx.date.isoformat(),
        "category_id": tx.category_id,
        "note": tx.note,
    }


def status_payload(status: BudgetStatus) -> Dict[str, object]:
    return {
        "budget_id": status.budget_id,
        "category_id": status.category_id,
        "category": category_payload(status.category) if status.category else None,
        "budget_amount": status.budget_amount,
        "spent_amount": status.spent_amount,
        "remaining_amount": status.remaining_amount,
        "utilization_pct": status.utilization_pct,
        "tier": status.tier,
    }


def summary_payload(summary: BudgetSummary) -> Dict[str, object]:
    return {
        "month": str(summary.month),
        "budgets": [status_payload(s) for s in summary.statuses],
        "total_budget": summary.total_budget,
        "total_spent": summary.total_spent,
        "total_remaining": summary.total_remaining,
        "overall_utilization_pct": summary.overall_utilization_pct,
        "tier": summary.tier,
    }


def trend_payload(trend) -> List[Dict[str, object]]:
    return [
        {
            "month": str(bucket.month),
            "label": bucket.label,
            "total_income": bucket.total_income,
            "total_expense": bucket.total_expense,
        }
        for bucket in trend
    ]


def dashboard_payload(dashboard: Dashboard) -> Dict[str, object]:
    overview = dashboard.overview
    return {
        "month": str(overview.month),
        "income": overview.income,
        "expense": overview.expense,
        "balance": overview.balance,
        "transactions": overview.transactions,
        "trend": trend_payload(dashboard.trend),
        "recent": [transaction_payload(tx) for tx in dashboard.recent],
    }
