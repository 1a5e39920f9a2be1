from datetime import date

import pytest

from finance_tracker.auth import register_user
from finance_tracker.database import add_budget, add_category, add_transaction
from finance_tracker.ledger import (
    budget_view,
    dashboard_payload,
    dashboard_view,
    summary_payload,
    transactions_view,
    trend_view,
)


def _seed(tmp_path):
    db_path = str(tmp_path / "ledger.db")
    session = register_user(db_path, "ana@example.com", "hunter22")
    food = add_category(db_path, session, "Food", icon="🍜")
    fun = add_category(db_path, session, "Fun")
    salary = add_category(db_path, session, "Salary", "income")

    add_budget(db_path, session, food.id, 1000000, "2024-05")
    add_budget(db_path, session, fun.id, 200000, "2024-05")
    add_budget(db_path, session, food.id, 1000000, "2024-06")

    add_transaction(db_path, session, 300000, "expense", "2024-05-10", food.id)
    add_transaction(db_path, session, 800000, "expense", "2024-06-01", food.id)
    add_transaction(db_path, session, 250000, "expense", "2024-05-20", fun.id)
    add_transaction(db_path, session, 40000, "expense", "2024-05-21")
    add_transaction(db_path, session, 5000000, "income", "2024-05-01", salary.id)
    add_transaction(db_path, session, 4000000, "income", "2024-01-31", salary.id)
    return db_path, session, food, fun


def test_budget_view_for_may(tmp_path):
    db_path, session, food, fun = _seed(tmp_path)

    summary = budget_view(db_path, session, "2024-05")

    by_cat = {s.category_id: s for s in summary.statuses}
    assert set(by_cat) == {food.id, fun.id}
    assert by_cat[food.id].spent_amount == 300000
    assert by_cat[food.id].remaining_amount == 700000
    assert by_cat[food.id].utilization_pct == pytest.approx(30.0)
    assert by_cat[food.id].category.name == "Food"
    assert by_cat[fun.id].tier == "over"
    assert summary.total_budget == 1200000
    assert summary.total_spent == 550000


def test_budget_view_isolated_per_user(tmp_path):
    db_path, _, _, _ = _seed(tmp_path)
    other = register_user(db_path, "bo@example.com", "hunter22")
    summary = budget_view(db_path, other, "2024-05")
    assert summary.statuses == ()
    assert summary.total_budget == 0


def test_dashboard_view(tmp_path):
    db_path, session, _, _ = _seed(tmp_path)

    view = dashboard_view(db_path, session, today=date(2024, 5, 25))

    assert view.overview.income == 5000000
    assert view.overview.expense == 590000
    assert view.overview.balance == 4410000
    assert view.overview.transactions == 4
    assert [str(b.month) for b in view.trend] == [
        "2023-12", "2024-01", "2024-02", "2024-03", "2024-04", "2024-05",
    ]
    assert view.trend[1].total_income == 4000000
    assert view.trend[2].total_income == 0
    assert [tx.date for tx in view.recent] == [
        date(2024, 6, 1), date(2024, 5, 21), date(2024, 5, 20), date(2024, 5, 10), date(2024, 5, 1),
    ]

    payload = dashboard_payload(view)
    assert payload["month"] == "2024-05"
    assert payload["trend"][-1]["total_expense"] == 590000


def test_trend_view_and_summary_payload(tmp_path):
    db_path, session, food, _ = _seed(tmp_path)

    trend = trend_view(db_path, session, "2024-06")
    assert trend[-1].total_expense == 800000
    assert trend[-2].total_expense == 590000

    payload = summary_payload(budget_view(db_path, session, "2024-06"))
    assert payload["month"] == "2024-06"
    assert payload["budgets"][0]["category"]["name"] == "Food"
    assert payload["budgets"][0]["utilization_pct"] == pytest.approx(80.0)
    assert payload["budgets"][0]["tier"] == "warning"


def test_transactions_view_filters_but_keeps_totals(tmp_path):
    db_path, session, _, _ = _seed(tmp_path)

    view = transactions_view(db_path, session, "income")

    assert [t.type for t in view.transactions] == ["income", "income"]
    assert view.total_income == 9000000
    assert view.total_expense == 1390000
