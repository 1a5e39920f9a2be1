# finance_tracker/loaders/csv_loader.py

import re
from pathlib import Path

import pandas as pd

from finance_tracker.core.models import EXPENSE, parse_date, parse_type
from finance_tracker.loaders.base import BaseLoader

# Strip anything that is not a digit, minus sign or dot
_CLEAN_AMOUNT = re.compile(r"[^\d\-.]")
_REQUIRED = ('date', 'amount')


class CSVLoader(BaseLoader):
    """
    Loader for spreadsheet exports of transactions (.csv or .xlsx).
    Expected header columns (case-insensitive):
      date:     ISO date (YYYY-MM-DD) or a spreadsheet date cell
      amount:   number, currency symbols and thousands separators allowed
      type:     optional, 'expense' (default) or 'income'
      category: optional category name
      note:     optional free text

    Amounts are stored as positive values; the type column carries the
    direction. Rows without an amount are skipped, a bad date raises.
    """
    def _read(self, file_path):
        if Path(file_path).suffix.lower() == '.xlsx':
            return pd.read_excel(file_path, dtype=object)
        return pd.read_csv(file_path, dtype=str, keep_default_na=True)

    def load(self, file_path):
        df = self._read(file_path)
        df.columns = [str(c).strip().lower() for c in df.columns]
        missing = [c for c in _REQUIRED if c not in df.columns]
        if missing:
            raise ValueError(f"Missing column(s) {', '.join(missing)} in {file_path}")

        for idx, row in df.iterrows():
            amt_raw = row.get('amount')
            if pd.isna(amt_raw) or str(amt_raw).strip() == '':
                continue

            cleaned = _CLEAN_AMOUNT.sub('', str(amt_raw))
            try:
                amount = abs(float(cleaned))
            except ValueError:
                raise ValueError(f"Could not parse amount '{amt_raw}' on row {idx + 2} of {file_path}")

            raw_date = row.get('date')
            if pd.isna(raw_date):
                raise ValueError(f"Missing date on row {idx + 2} of {file_path}")
            record = {'row': idx + 2, 'file': str(file_path)}
            day = parse_date(raw_date if not isinstance(raw_date, str) else raw_date.strip(), record)

            kind = row.get('type')
            kind = EXPENSE if pd.isna(kind) or not str(kind).strip() else parse_type(kind, record)

            category = row.get('category')
            note = row.get('note')
            yield {
                'date': day,
                'type': kind,
                'amount': amount,
                'category': None if pd.isna(category) else str(category).strip() or None,
                'note': '' if pd.isna(note) else str(note).strip(),
            }
