# finance_tracker/manual.py
import logging

import yaml

from finance_tracker.database import append_records

logger = logging.getLogger(__name__)


def load_snapshot(path):
    """Load categories, transactions and budgets from a YAML file.

    The file is a mapping with optional ``categories``, ``transactions`` and
    ``budgets`` lists. Entries refer to categories by name.
    """
    with open(path, encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping in {path}")

    snapshot = {}
    for section in ('categories', 'transactions', 'budgets'):
        entries = data.get(section) or []
        if not isinstance(entries, list):
            raise ValueError(f"'{section}' in {path} must be a list")
        snapshot[section] = entries
    for entry in snapshot['transactions']:
        if not entry.get('date'):
            raise ValueError(f"Missing 'date' in transaction entry: {entry}")
    for entry in snapshot['budgets']:
        if not entry.get('category') or not entry.get('month'):
            raise ValueError(f"Budget entries need 'category' and 'month': {entry}")
    return snapshot


def import_transactions(db_path, session, records):
    """Store transaction records, creating missing categories by name.

    Either every record is stored or, when one is invalid, none is.
    """
    records = list(records)
    counts = append_records(db_path, session, transactions=records)
    return counts['transactions']


def import_snapshot(db_path, session, snapshot):
    """Store a snapshot loaded by :func:`load_snapshot`; return counts per section."""
    counts = append_records(
        db_path,
        session,
        categories=snapshot.get('categories', []),
        transactions=snapshot.get('transactions', []),
        budgets=snapshot.get('budgets', []),
    )
    logger.debug("Snapshot import counts: %s", counts)
    return counts
