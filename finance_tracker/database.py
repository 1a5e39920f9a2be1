import logging
import sqlite3
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

from finance_tracker.core.models import (
    EXPENSE,
    Budget,
    Category,
    Session,
    Transaction,
    parse_amount,
    parse_date,
    parse_type,
)
from finance_tracker.core.months import MonthKey

logger = logging.getLogger(__name__)

MIN_BUDGET_AMOUNT = 1
_UNSET = object()


def _init_db(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY,
            email TEXT NOT NULL UNIQUE,
            password_hash TEXT NOT NULL,
            created_at TEXT NOT NULL
        );
        CREATE TABLE IF NOT EXISTS categories (
            id INTEGER PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            name TEXT NOT NULL,
            icon TEXT NOT NULL DEFAULT '',
            color TEXT NOT NULL DEFAULT '',
            type TEXT NOT NULL CHECK (type IN ('expense', 'income')),
            created_at TEXT NOT NULL
        );
        CREATE TABLE IF NOT EXISTS transactions (
            id INTEGER PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            amount REAL NOT NULL,
            type TEXT NOT NULL CHECK (type IN ('expense', 'income')),
            date TEXT NOT NULL,
            category_id INTEGER REFERENCES categories(id) ON DELETE SET NULL,
            note TEXT NOT NULL DEFAULT '',
            created_at TEXT NOT NULL
        );
        CREATE TABLE IF NOT EXISTS budgets (
            id INTEGER PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            category_id INTEGER NOT NULL REFERENCES categories(id) ON DELETE CASCADE,
            amount REAL NOT NULL,
            month TEXT NOT NULL
        );
        CREATE INDEX IF NOT EXISTS idx_transactions_user_date
            ON transactions (user_id, date);
        CREATE INDEX IF NOT EXISTS idx_budgets_user_month
            ON budgets (user_id, month);
        """
    )
    conn.commit()


def _connect(db_path: str) -> sqlite3.Connection:
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    _init_db(conn)
    return conn


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def _row_id(value, kind: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise LookupError(f"{kind} {value!r} not found") from exc


def init_db(db_path: str) -> None:
    """Create the schema in ``db_path`` if it does not exist yet."""
    conn = _connect(db_path)
    conn.close()


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

def create_user(db_path: str, email: str, password_hash: str) -> int:
    conn = _connect(db_path)
    try:
        try:
            cur = conn.execute(
                "INSERT INTO users (email, password_hash, created_at) VALUES (?, ?, ?)",
                (email, password_hash, _now()),
            )
        except sqlite3.IntegrityError as exc:
            raise ValueError(f"An account for {email} already exists") from exc
        conn.commit()
        logger.info("Created user %s", email)
        return int(cur.lastrowid)
    finally:
        conn.close()


def get_user_by_email(db_path: str, email: str) -> Optional[Dict[str, object]]:
    conn = _connect(db_path)
    try:
        row = conn.execute(
            "SELECT id, email, password_hash FROM users WHERE email = ?", (email,)
        ).fetchone()
        return dict(row) if row else None
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

def _category_row(conn: sqlite3.Connection, session: Session, category_id) -> sqlite3.Row:
    row = conn.execute(
        "SELECT * FROM categories WHERE id = ? AND user_id = ?",
        (_row_id(category_id, "Category"), session.user_id),
    ).fetchone()
    if row is None:
        raise LookupError(f"Category {category_id} not found")
    return row


def _clean_name(name) -> str:
    clean = str(name or "").strip()
    if not clean:
        raise ValueError("Category name is required")
    return clean


def _insert_category(conn, session: Session, name, type=EXPENSE, icon="", color="") -> Category:
    clean = _clean_name(name)
    kind = parse_type(type)
    cur = conn.execute(
        """
        INSERT INTO categories (user_id, name, icon, color, type, created_at)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (session.user_id, clean, icon or "", color or "", kind, _now()),
    )
    return Category(id=str(cur.lastrowid), name=clean, type=kind, icon=icon or "", color=color or "")


def add_category(
    db_path: str,
    session: Session,
    name: str,
    type: str = EXPENSE,
    icon: str = "",
    color: str = "",
) -> Category:
    conn = _connect(db_path)
    try:
        cat = _insert_category(conn, session, name, type, icon, color)
        conn.commit()
        logger.info("Added %s category %r for user %s", cat.type, cat.name, session.user_id)
        return cat
    finally:
        conn.close()


def _check_type_change(conn: sqlite3.Connection, category: Dict[str, object], kind: str) -> None:
    # budgets only track expense categories; transactions must match their category's type
    if kind != EXPENSE:
        budgets = conn.execute(
            "SELECT COUNT(*) FROM budgets WHERE category_id = ?", (category["id"],)
        ).fetchone()[0]
        if budgets:
            raise ValueError(
                f"Category {category['name']!r} has {budgets} budget(s) and must stay an expense category"
            )
    mismatched = conn.execute(
        "SELECT COUNT(*) FROM transactions WHERE category_id = ? AND type != ?",
        (category["id"], kind),
    ).fetchone()[0]
    if mismatched:
        raise ValueError(
            f"Category {category['name']!r} has {mismatched} {category['type']} transaction(s); "
            f"it cannot become {kind}"
        )


def update_category(
    db_path: str,
    session: Session,
    category_id,
    name: Optional[str] = None,
    type: Optional[str] = None,
    icon: Optional[str] = None,
    color: Optional[str] = None,
) -> Category:
    conn = _connect(db_path)
    try:
        current = dict(_category_row(conn, session, category_id))
        if name is not None:
            current["name"] = _clean_name(name)
        if type is not None:
            kind = parse_type(type)
            if kind != current["type"]:
                _check_type_change(conn, current, kind)
            current["type"] = kind
        if icon is not None:
            current["icon"] = icon
        if color is not None:
            current["color"] = color
        conn.execute(
            """
            UPDATE categories SET name = ?, icon = ?, color = ?, type = ?
            WHERE id = ? AND user_id = ?
            """,
            (current["name"], current["icon"], current["color"], current["type"],
             current["id"], session.user_id),
        )
        conn.commit()
        logger.info("Updated category %s for user %s", current["id"], session.user_id)
        return Category.from_record(current)
    finally:
        conn.close()


def delete_category(db_path: str, session: Session, category_id) -> None:
    """Delete a category; its budgets go with it and its transactions lose it."""
    conn = _connect(db_path)
    try:
        row = _category_row(conn, session, category_id)
        conn.execute("DELETE FROM categories WHERE id = ?", (row["id"],))
        conn.commit()
        logger.info("Deleted category %s for user %s", row["id"], session.user_id)
    finally:
        conn.close()


def list_categories(db_path: str, session: Session, type: Optional[str] = None) -> List[Category]:
    conn = _connect(db_path)
    try:
        query = "SELECT * FROM categories WHERE user_id = ?"
        params: list = [session.user_id]
        if type:
            query += " AND type = ?"
            params.append(parse_type(type))
        query += " ORDER BY created_at, id"
        return [Category.from_record(dict(r)) for r in conn.execute(query, params).fetchall()]
    finally:
        conn.close()


def find_category(db_path: str, session: Session, name: str, type: Optional[str] = None) -> Optional[Category]:
    """Look up a category by case-insensitive name."""
    wanted = (name or "").strip().lower()
    for cat in list_categories(db_path, session, type):
        if cat.name.lower() == wanted:
            return cat
    return None


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------

def _validate_transaction_category(conn, session: Session, category_id, kind: str) -> Optional[int]:
    if category_id is None or category_id == "":
        return None
    row = _category_row(conn, session, category_id)
    if row["type"] != kind:
        raise ValueError(
            f"Category {row['name']!r} is an {row['type']} category, not {kind}"
        )
    return int(row["id"])


def _positive_amount(value) -> float:
    amount = parse_amount(value)
    if amount <= 0:
        raise ValueError(f"Amount must be greater than 0, got {value!r}")
    return amount


def _insert_transaction(conn, session: Session, amount, type, date, category_id=None, note="") -> Transaction:
    value = _positive_amount(amount)
    kind = parse_type(type)
    day = parse_date(date)
    cat_id = _validate_transaction_category(conn, session, category_id, kind)
    clean_note = (note or "").strip()
    cur = conn.execute(
        """
        INSERT INTO transactions (user_id, amount, type, date, category_id, note, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (session.user_id, value, kind, day.isoformat(), cat_id, clean_note, _now()),
    )
    return Transaction(
        id=str(cur.lastrowid),
        amount=value,
        type=kind,
        date=day,
        category_id=str(cat_id) if cat_id is not None else None,
        note=clean_note,
    )


def add_transaction(
    db_path: str,
    session: Session,
    amount,
    type: str,
    date,
    category_id=None,
    note: str = "",
) -> Transaction:
    conn = _connect(db_path)
    try:
        record = _insert_transaction(conn, session, amount, type, date, category_id, note)
        conn.commit()
        logger.info(
            "Added %s of %.2f on %s for user %s", record.type, record.amount, record.date, session.user_id
        )
        return record
    finally:
        conn.close()


def update_transaction(
    db_path: str,
    session: Session,
    transaction_id,
    amount=None,
    type: Optional[str] = None,
    date=None,
    category_id=_UNSET,
    note: Optional[str] = None,
) -> Transaction:
    conn = _connect(db_path)
    try:
        row = conn.execute(
            "SELECT * FROM transactions WHERE id = ? AND user_id = ?",
            (_row_id(transaction_id, "Transaction"), session.user_id),
        ).fetchone()
        if row is None:
            raise LookupError(f"Transaction {transaction_id} not found")
        current = dict(row)
        if amount is not None:
            current["amount"] = _positive_amount(amount)
        if type is not None:
            current["type"] = parse_type(type)
        if date is not None:
            current["date"] = parse_date(date).isoformat()
        if note is not None:
            current["note"] = note.strip()
        if category_id is not _UNSET:
            current["category_id"] = category_id
        current["category_id"] = _validate_transaction_category(
            conn, session, current["category_id"], current["type"]
        )
        conn.execute(
            """
            UPDATE transactions SET amount = ?, type = ?, date = ?, category_id = ?, note = ?
            WHERE id = ? AND user_id = ?
            """,
            (current["amount"], current["type"], current["date"], current["category_id"],
             current["note"], current["id"], session.user_id),
        )
        conn.commit()
        logger.info("Updated transaction %s for user %s", current["id"], session.user_id)
        return Transaction.from_record(current)
    finally:
        conn.close()


def delete_transaction(db_path: str, session: Session, transaction_id) -> None:
    conn = _connect(db_path)
    try:
        cur = conn.execute(
            "DELETE FROM transactions WHERE id = ? AND user_id = ?",
            (_row_id(transaction_id, "Transaction"), session.user_id),
        )
        if cur.rowcount == 0:
            raise LookupError(f"Transaction {transaction_id} not found")
        conn.commit()
        logger.info("Deleted transaction %s for user %s", transaction_id, session.user_id)
    finally:
        conn.close()


def fetch_transactions(
    db_path: str,
    session: Session,
    start_date: date | None = None,
    end_date: date | None = None,
    type: str | None = None,
    category_id=None,
    limit: int | None = None,
) -> List[Transaction]:
    """Retrieve a user's transactions, newest first.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file.
    session:
        The user whose rows are returned; other users' rows are never visible.
    start_date:
        Optional first day to include.
    end_date:
        Optional day to stop before (exclusive), so month ranges can be passed
        as ``[first_day, first_day_of_next_month)``.
    type:
        Optional ``expense`` or ``income`` filter.
    category_id:
        Optional category filter.
    limit:
        Optional maximum number of rows.
    """
    conn = _connect(db_path)
    try:
        conditions = ["user_id = ?"]
        params: list = [session.user_id]
        if start_date:
            conditions.append("date >= ?")
            params.append(start_date.isoformat())
        if end_date:
            conditions.append("date < ?")
            params.append(end_date.isoformat())
        if type:
            conditions.append("type = ?")
            params.append(parse_type(type))
        if category_id is not None:
            conditions.append("category_id = ?")
            params.append(_row_id(category_id, "Category"))
        query = (
            "SELECT id, amount, type, date, category_id, note FROM transactions WHERE "
            + " AND ".join(conditions)
            + " ORDER BY date DESC, id DESC"
        )
        if limit:
            query += " LIMIT ?"
            params.append(int(limit))
        rows = conn.execute(query, params).fetchall()
        return [Transaction.from_record(dict(r)) for r in rows]
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Budgets
# ---------------------------------------------------------------------------

def _budget_amount(value) -> float:
    amount = parse_amount(value)
    if amount < MIN_BUDGET_AMOUNT:
        raise ValueError(f"Budget amount must be at least {MIN_BUDGET_AMOUNT}, got {value!r}")
    return amount


def _expense_category_id(conn, session: Session, category_id) -> int:
    row = _category_row(conn, session, category_id)
    if row["type"] != EXPENSE:
        raise ValueError(f"Budgets can only track expense categories, {row['name']!r} is {row['type']}")
    return int(row["id"])


def _insert_budget(conn, session: Session, category_id, amount, month) -> Budget:
    value = _budget_amount(amount)
    key = MonthKey.parse(month)
    cat_id = _expense_category_id(conn, session, category_id)
    cur = conn.execute(
        "INSERT INTO budgets (user_id, category_id, amount, month) VALUES (?, ?, ?, ?)",
        (session.user_id, cat_id, value, str(key)),
    )
    return Budget(id=str(cur.lastrowid), category_id=str(cat_id), amount=value, month=key)


def add_budget(db_path: str, session: Session, category_id, amount, month) -> Budget:
    conn = _connect(db_path)
    try:
        record = _insert_budget(conn, session, category_id, amount, month)
        conn.commit()
        logger.info(
            "Added budget of %.2f for category %s in %s", record.amount, record.category_id, record.month
        )
        return record
    finally:
        conn.close()


def update_budget(
    db_path: str,
    session: Session,
    budget_id,
    category_id=None,
    amount=None,
    month=None,
) -> Budget:
    conn = _connect(db_path)
    try:
        row = conn.execute(
            "SELECT * FROM budgets WHERE id = ? AND user_id = ?",
            (_row_id(budget_id, "Budget"), session.user_id),
        ).fetchone()
        if row is None:
            raise LookupError(f"Budget {budget_id} not found")
        current = dict(row)
        if category_id is not None:
            current["category_id"] = _expense_category_id(conn, session, category_id)
        if amount is not None:
            current["amount"] = _budget_amount(amount)
        if month is not None:
            current["month"] = str(MonthKey.parse(month))
        conn.execute(
            "UPDATE budgets SET category_id = ?, amount = ?, month = ? WHERE id = ? AND user_id = ?",
            (current["category_id"], current["amount"], current["month"], current["id"], session.user_id),
        )
        conn.commit()
        logger.info("Updated budget %s for user %s", current["id"], session.user_id)
        return Budget.from_record(current)
    finally:
        conn.close()


def delete_budget(db_path: str, session: Session, budget_id) -> None:
    conn = _connect(db_path)
    try:
        cur = conn.execute(
            "DELETE FROM budgets WHERE id = ? AND user_id = ?",
            (_row_id(budget_id, "Budget"), session.user_id),
        )
        if cur.rowcount == 0:
            raise LookupError(f"Budget {budget_id} not found")
        conn.commit()
        logger.info("Deleted budget %s for user %s", budget_id, session.user_id)
    finally:
        conn.close()


def fetch_budgets(db_path: str, session: Session, month=None) -> List[Budget]:
    conn = _connect(db_path)
    try:
        query = "SELECT id, category_id, amount, month FROM budgets WHERE user_id = ?"
        params: list = [session.user_id]
        if month is not None:
            query += " AND month = ?"
            params.append(str(MonthKey.parse(month)))
        query += " ORDER BY month, id"
        return [Budget.from_record(dict(r)) for r in conn.execute(query, params).fetchall()]
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Bulk import
# ---------------------------------------------------------------------------

def append_records(
    db_path: str,
    session: Session,
    categories: Iterable[Mapping] = (),
    transactions: Iterable[Mapping] = (),
    budgets: Iterable[Mapping] = (),
) -> Dict[str, int]:
    """Store an import batch in a single database transaction.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file.
    session:
        The user that owns every stored row.
    categories:
        Mappings with ``name`` and optional ``type``, ``icon`` and ``color``.
        Existing categories with the same name and type are reused.
    transactions:
        Mappings with ``date``, ``amount`` and optional ``type``, ``category``
        (a name, created when missing) and ``note``.
    budgets:
        Mappings with ``category`` (an expense category name), ``amount`` and
        ``month``.

    Nothing is stored when any record is invalid: the first error rolls the
    whole batch back and propagates.
    """
    conn = _connect(db_path)
    try:
        known: Dict[tuple, Category] = {}
        for row in conn.execute(
            "SELECT * FROM categories WHERE user_id = ? ORDER BY created_at, id", (session.user_id,)
        ).fetchall():
            cat = Category.from_record(dict(row))
            known.setdefault((cat.name.lower(), cat.type), cat)

        def resolve(name, kind, icon="", color=""):
            key = (_clean_name(name).lower(), kind)
            if key not in known:
                known[key] = _insert_category(conn, session, name, kind, icon, color)
                logger.info("Created %s category %r during import", kind, known[key].name)
            return known[key].id

        counts = {"categories": 0, "transactions": 0, "budgets": 0}
        for entry in categories:
            kind = parse_type(entry.get("type") or EXPENSE, entry)
            resolve(entry.get("name"), kind, entry.get("icon") or "", entry.get("color") or "")
            counts["categories"] += 1

        for entry in transactions:
            kind = parse_type(entry.get("type") or EXPENSE, entry)
            name = entry.get("category")
            _insert_transaction(
                conn,
                session,
                entry.get("amount"),
                kind,
                parse_date(entry.get("date"), entry),
                resolve(name, kind) if name else None,
                entry.get("note") or "",
            )
            counts["transactions"] += 1

        for entry in budgets:
            _insert_budget(
                conn, session, resolve(entry.get("category"), EXPENSE), entry.get("amount"), entry.get("month")
            )
            counts["budgets"] += 1

        conn.commit()
        logger.info(
            "Imported %d transaction(s) and %d budget(s) for user %s",
            counts["transactions"], counts["budgets"], session.user_id,
        )
        return counts
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
