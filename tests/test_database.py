import sqlite3
from datetime import date

import pytest

from finance_tracker.auth import register_user
from finance_tracker.core.months import MonthKey
from finance_tracker.database import (
    add_budget,
    add_category,
    add_transaction,
    delete_budget,
    delete_category,
    delete_transaction,
    fetch_budgets,
    fetch_transactions,
    find_category,
    list_categories,
    update_budget,
    update_category,
    update_transaction,
)


def _setup(tmp_path):
    db_path = str(tmp_path / "ledger.db")
    session = register_user(db_path, "ana@example.com", "hunter22")
    return db_path, session


def test_category_crud(tmp_path):
    db_path, session = _setup(tmp_path)
    food = add_category(db_path, session, "  Food ", "expense", icon="🍜", color="#f43f5e")
    salary = add_category(db_path, session, "Salary", "income")

    assert food.name == "Food"
    assert [c.name for c in list_categories(db_path, session)] == ["Food", "Salary"]
    assert [c.name for c in list_categories(db_path, session, "income")] == ["Salary"]
    assert find_category(db_path, session, "food").id == food.id
    assert find_category(db_path, session, "food", "income") is None

    renamed = update_category(db_path, session, food.id, name="Groceries")
    assert renamed.name == "Groceries"
    assert renamed.icon == "🍜"

    delete_category(db_path, session, salary.id)
    assert [c.name for c in list_categories(db_path, session)] == ["Groceries"]


def test_category_type_change_keeps_budgets_and_transactions_consistent(tmp_path):
    db_path, session = _setup(tmp_path)
    food = add_category(db_path, session, "Food")
    add_budget(db_path, session, food.id, 1000, "2024-05")

    with pytest.raises(ValueError, match="budget"):
        update_category(db_path, session, food.id, type="income")

    gifts = add_category(db_path, session, "Gifts")
    add_transaction(db_path, session, 300, "expense", "2024-05-10", gifts.id)
    with pytest.raises(ValueError, match="expense transaction"):
        update_category(db_path, session, gifts.id, type="income")

    assert {c.name: c.type for c in list_categories(db_path, session)} == {
        "Food": "expense",
        "Gifts": "expense",
    }

    unused = add_category(db_path, session, "Refunds")
    assert update_category(db_path, session, unused.id, type="income").type == "income"


def test_category_validation(tmp_path):
    db_path, session = _setup(tmp_path)
    with pytest.raises(ValueError):
        add_category(db_path, session, "   ")
    with pytest.raises(ValueError):
        add_category(db_path, session, "Gifts", "transfer")
    with pytest.raises(LookupError):
        update_category(db_path, session, 999, name="x")
    with pytest.raises(LookupError):
        delete_category(db_path, session, "abc")


def test_rows_are_scoped_to_the_session_user(tmp_path):
    db_path, ana = _setup(tmp_path)
    bo = register_user(db_path, "bo@example.com", "hunter22")

    food = add_category(db_path, ana, "Food")
    add_transaction(db_path, ana, 100, "expense", "2024-05-02", food.id)
    add_budget(db_path, ana, food.id, 500, "2024-05")

    assert list_categories(db_path, bo) == []
    assert fetch_transactions(db_path, bo) == []
    assert fetch_budgets(db_path, bo) == []

    with pytest.raises(LookupError):
        add_transaction(db_path, bo, 5, "expense", "2024-05-02", food.id)
    with pytest.raises(LookupError):
        add_budget(db_path, bo, food.id, 500, "2024-05")
    with pytest.raises(LookupError):
        delete_category(db_path, bo, food.id)


def test_transaction_crud_and_filters(tmp_path):
    db_path, session = _setup(tmp_path)
    food = add_category(db_path, session, "Food")
    salary = add_category(db_path, session, "Salary", "income")

    t1 = add_transaction(db_path, session, 300000, "expense", "2024-05-10", food.id, "lunch")
    add_transaction(db_path, session, 800000, "expense", date(2024, 6, 1), food.id)
    add_transaction(db_path, session, 5000000, "income", "2024-05-01", salary.id)
    add_transaction(db_path, session, 20000, "expense", "2024-05-31")

    assert t1.category_id == food.id
    assert t1.note == "lunch"

    may = fetch_transactions(db_path, session, date(2024, 5, 1), date(2024, 6, 1))
    assert [t.date for t in may] == [date(2024, 5, 31), date(2024, 5, 10), date(2024, 5, 1)]

    expenses = fetch_transactions(db_path, session, type="expense", category_id=food.id)
    assert [t.amount for t in expenses] == [800000, 300000]

    assert len(fetch_transactions(db_path, session, limit=2)) == 2

    updated = update_transaction(db_path, session, t1.id, amount=350000, note="dinner")
    assert updated.amount == 350000
    assert updated.category_id == food.id
    cleared = update_transaction(db_path, session, t1.id, category_id=None)
    assert cleared.category_id is None

    delete_transaction(db_path, session, t1.id)
    with pytest.raises(LookupError):
        delete_transaction(db_path, session, t1.id)


def test_transaction_validation(tmp_path):
    db_path, session = _setup(tmp_path)
    food = add_category(db_path, session, "Food")

    with pytest.raises(ValueError):
        add_transaction(db_path, session, 0, "expense", "2024-05-01")
    with pytest.raises(ValueError):
        add_transaction(db_path, session, -5, "expense", "2024-05-01")
    with pytest.raises(ValueError):
        add_transaction(db_path, session, 5, "expense", "not-a-date")
    with pytest.raises(ValueError, match="not income"):
        add_transaction(db_path, session, 5, "income", "2024-05-01", food.id)


def test_budget_crud_and_validation(tmp_path):
    db_path, session = _setup(tmp_path)
    food = add_category(db_path, session, "Food")
    salary = add_category(db_path, session, "Salary", "income")

    budget = add_budget(db_path, session, food.id, 1000000, "2024-05")
    add_budget(db_path, session, food.id, 900000, MonthKey(2024, 6))
    assert budget.month == MonthKey(2024, 5)

    assert [b.month for b in fetch_budgets(db_path, session)] == [MonthKey(2024, 5), MonthKey(2024, 6)]
    assert [b.id for b in fetch_budgets(db_path, session, "2024-05")] == [budget.id]

    updated = update_budget(db_path, session, budget.id, amount=1200000)
    assert updated.amount == 1200000
    assert updated.month == MonthKey(2024, 5)

    with pytest.raises(ValueError):
        add_budget(db_path, session, food.id, 0, "2024-05")
    with pytest.raises(ValueError):
        add_budget(db_path, session, food.id, 0.5, "2024-05")
    with pytest.raises(ValueError, match="expense"):
        add_budget(db_path, session, salary.id, 100, "2024-05")
    with pytest.raises(ValueError):
        add_budget(db_path, session, food.id, 100, "2024-13")

    delete_budget(db_path, session, budget.id)
    assert [b.month for b in fetch_budgets(db_path, session)] == [MonthKey(2024, 6)]


def test_deleting_category_drops_budgets_and_uncategorizes_transactions(tmp_path):
    db_path, session = _setup(tmp_path)
    food = add_category(db_path, session, "Food")
    add_transaction(db_path, session, 100, "expense", "2024-05-02", food.id)
    add_budget(db_path, session, food.id, 500, "2024-05")

    delete_category(db_path, session, food.id)

    txs = fetch_transactions(db_path, session)
    assert len(txs) == 1
    assert txs[0].category_id is None
    assert fetch_budgets(db_path, session) == []


def test_corrupt_stored_date_is_reported(tmp_path):
    db_path, session = _setup(tmp_path)
    add_transaction(db_path, session, 100, "expense", "2024-05-02")

    conn = sqlite3.connect(db_path)
    conn.execute("UPDATE transactions SET date = '2024-05-xx'")
    conn.commit()
    conn.close()

    with pytest.raises(ValueError, match="2024-05-xx"):
        fetch_transactions(db_path, session)
