import re
from datetime import date

import pytest

from finance_tracker.core.aggregator import (
    filter_by_type,
    monthly_overview,
    recent_transactions,
    six_month_trend,
    spend_by_category,
    summarize_budgets,
    transaction_totals,
    utilization_pct,
)
from finance_tracker.core.models import Budget, Category, Transaction, utilization_tier
from finance_tracker.core.months import MonthKey

MAY = MonthKey(2024, 5)


def _expense(amount, day, category="food", tx_id="t"):
    return Transaction(id=tx_id, amount=amount, type="expense", date=day, category_id=category)


def _income(amount, day, category="salary", tx_id="i"):
    return Transaction(id=tx_id, amount=amount, type="income", date=day, category_id=category)


def _budget(amount, category="food", month=MAY, budget_id="b1"):
    return Budget(id=budget_id, category_id=category, amount=amount, month=month)


def test_may_scenario_excludes_june_transaction():
    budgets = [_budget(1000000)]
    txs = [
        _expense(300000, date(2024, 5, 10)),
        _expense(800000, date(2024, 6, 1)),
    ]

    summary = summarize_budgets(MAY, txs, budgets)

    assert len(summary.statuses) == 1
    status = summary.statuses[0]
    assert status.spent_amount == 300000
    assert status.remaining_amount == 700000
    assert status.utilization_pct == pytest.approx(30.0)
    assert status.tier == "under"


@pytest.mark.parametrize(
    "spent, pct, tier",
    [
        (450000, 90.0, "warning"),
        (500000, 100.0, "over"),
        (400000, 80.0, "warning"),
        (399999, 79.9998, "under"),
        (650000, 130.0, "over"),
    ],
)
def test_utilization_tiers(spent, pct, tier):
    txs = [_expense(spent, date(2024, 5, 3))]
    status = summarize_budgets(MAY, txs, [_budget(500000)]).statuses[0]
    assert status.utilization_pct == pytest.approx(pct)
    assert status.tier == tier


def test_no_spend_is_under_with_full_remaining():
    status = summarize_budgets(MAY, [], [_budget(500000)]).statuses[0]
    assert status.spent_amount == 0
    assert status.remaining_amount == 500000
    assert status.utilization_pct == 0
    assert status.tier == "under"


def test_tier_boundaries_are_inclusive_on_lower_side():
    assert utilization_tier(79.999) == "under"
    assert utilization_tier(80) == "warning"
    assert utilization_tier(99.999) == "warning"
    assert utilization_tier(100) == "over"


def test_range_boundaries():
    txs = [
        _expense(10, date(2024, 5, 1), tx_id="first-day"),
        _expense(20, date(2024, 5, 31), tx_id="last-day"),
        _expense(40, date(2024, 6, 1), tx_id="next-month"),
        _expense(80, date(2024, 4, 30), tx_id="prev-month"),
    ]
    assert spend_by_category(MAY, txs) == {"food": 30}


def test_income_never_counts_as_spend():
    txs = [
        _income(999, date(2024, 5, 5), category="food"),
        _expense(1, date(2024, 5, 5)),
    ]
    assert spend_by_category(MAY, txs) == {"food": 1}
    status = summarize_budgets(MAY, txs, [_budget(100)]).statuses[0]
    assert status.spent_amount == 1


def test_uncategorized_and_unbudgeted_spend():
    txs = [
        _expense(50, date(2024, 5, 2), category=None),
        _expense(70, date(2024, 5, 2), category="travel"),
    ]
    spent = spend_by_category(MAY, txs)
    assert spent == {"travel": 70}
    assert None not in spent
    assert "food" not in spent

    summary = summarize_budgets(MAY, txs, [_budget(100)])
    assert summary.statuses[0].spent_amount == 0
    assert summary.total_spent == 0


@pytest.mark.parametrize("amount", [0, -250])
def test_non_positive_budget_has_zero_utilization(amount):
    txs = [_expense(100, date(2024, 5, 2))]
    summary = summarize_budgets(MAY, txs, [_budget(amount)])
    status = summary.statuses[0]
    assert status.utilization_pct == 0
    assert status.remaining_amount == amount - 100
    assert summary.overall_utilization_pct == 0


def test_only_budgets_for_the_month_are_reported():
    budgets = [
        _budget(100, budget_id="may"),
        _budget(100, month=MonthKey(2024, 6), budget_id="june"),
        Budget(id="str-month", category_id="rent", amount=50, month="2024-05"),
    ]
    summary = summarize_budgets(MAY, [], budgets)
    assert [s.budget_id for s in summary.statuses] == ["may", "str-month"]


def test_totals_and_overall_utilization():
    budgets = [
        _budget(1000, category="food", budget_id="b1"),
        _budget(500, category="fun", budget_id="b2"),
    ]
    txs = [
        _expense(600, date(2024, 5, 4), category="food"),
        _expense(600, date(2024, 5, 9), category="fun"),
    ]
    summary = summarize_budgets(MAY, txs, budgets)

    assert summary.total_budget == 1500
    assert summary.total_spent == 1200
    assert summary.total_remaining == 300
    assert summary.overall_utilization_pct == pytest.approx(80.0)
    assert summary.tier == "warning"
    assert not summary.over_budget
    assert [s.tier for s in summary.statuses] == ["under", "over"]


def test_empty_month_totals_are_zero():
    summary = summarize_budgets(MAY, [], [])
    assert summary.statuses == ()
    assert summary.total_budget == 0
    assert summary.overall_utilization_pct == 0


def test_categories_are_attached_when_supplied():
    food = Category(id="food", name="Food", icon="🍜", color="#6366f1")
    summary = summarize_budgets(
        MAY, [], [_budget(10), _budget(10, category="gone", budget_id="b2")], [food]
    )
    assert summary.statuses[0].category == food
    assert summary.statuses[1].category is None


@pytest.mark.parametrize("bad", ["2024-05-XX", "2024-05-31 not a date"])
def test_malformed_date_is_an_error_not_a_silent_drop(bad):
    txs = [
        _expense(100, date(2024, 5, 2)),
        Transaction(id="bad", amount=5, type="expense", date=bad, category_id="food"),
    ]
    with pytest.raises(ValueError, match=re.escape(bad)):
        summarize_budgets(MAY, txs, [_budget(500)])


def test_iso_string_dates_are_accepted():
    txs = [Transaction(id="s", amount=5, type="expense", date="2024-05-02", category_id="food")]
    assert spend_by_category(MAY, txs) == {"food": 5}


def test_utilization_pct_helper():
    assert utilization_pct(450000, 500000) == pytest.approx(90.0)
    assert utilization_pct(10, 0) == 0
    assert utilization_pct(10, -5) == 0


def test_six_month_trend_is_dense_and_ordered():
    txs = [
        _income(1000, date(2024, 5, 1)),
        _expense(200, date(2024, 5, 20)),
        _expense(300, date(2024, 1, 15)),
        _income(50, date(2023, 11, 30)),
        _expense(999, date(2023, 12, 31)),
    ]

    trend = six_month_trend(MAY, txs)

    assert [str(b.month) for b in trend] == [
        "2023-12", "2024-01", "2024-02", "2024-03", "2024-04", "2024-05",
    ]
    assert trend[0].total_expense == 999
    assert trend[1].total_expense == 300
    assert (trend[2].total_income, trend[2].total_expense) == (0, 0)
    assert (trend[3].total_income, trend[3].total_expense) == (0, 0)
    assert trend[5].total_income == 1000
    assert trend[5].total_expense == 200
    assert trend[5].label == "May 2024"


def test_six_month_trend_with_no_transactions():
    trend = six_month_trend(MonthKey(2025, 2), [])
    assert len(trend) == 6
    assert str(trend[0].month) == "2024-09"
    assert all(b.total_income == 0 and b.total_expense == 0 for b in trend)


def test_monthly_overview_balance():
    txs = [
        _income(5000, date(2024, 5, 1)),
        _expense(1200, date(2024, 5, 15)),
        _expense(300, date(2024, 5, 31), category=None),
        _expense(10000, date(2024, 6, 1)),
    ]
    overview = monthly_overview(MAY, txs)
    assert overview.income == 5000
    assert overview.expense == 1500
    assert overview.balance == 3500
    assert overview.transactions == 3


def test_transaction_totals_and_filters():
    txs = [
        _income(100, date(2024, 5, 1), tx_id="a"),
        _expense(40, date(2024, 5, 3), tx_id="b"),
        _expense(10, date(2024, 4, 3), tx_id="c"),
    ]
    assert transaction_totals(txs) == (100, 50)
    assert [t.id for t in filter_by_type(txs, "expense")] == ["b", "c"]
    assert len(filter_by_type(txs, "all")) == 3
    assert len(filter_by_type(txs, None)) == 3
    assert [t.id for t in recent_transactions(txs, limit=2)] == ["b", "a"]
