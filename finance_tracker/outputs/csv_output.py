# finance_tracker/outputs/csv_output.py

import csv
import logging
from decimal import Decimal

from finance_tracker.outputs.base import BaseOutput

logger = logging.getLogger(__name__)


def _money(value):
    return f"{Decimal(str(value)):.2f}"


class CSVOutput(BaseOutput):
    """
    Writes one CSV per month: a row per budget, a TOTAL row, then the
    six-month income/expense trend below a blank line.
    """
    extension = 'csv'

    def write(self, summary, trend):
        out_path = self.report_path(summary)
        with open(out_path, 'w', newline='', encoding='utf-8') as f:
            writer = csv.writer(f)
            writer.writerow(['category', 'budget', 'spent', 'remaining', 'utilization_pct', 'tier'])
            for status in summary.statuses:
                name = status.category.name if status.category else status.category_id
                writer.writerow([
                    name,
                    _money(status.budget_amount),
                    _money(status.spent_amount),
                    _money(status.remaining_amount),
                    f"{status.utilization_pct:.1f}",
                    status.tier,
                ])
            writer.writerow([
                'TOTAL',
                _money(summary.total_budget),
                _money(summary.total_spent),
                _money(summary.total_remaining),
                f"{summary.overall_utilization_pct:.1f}",
                summary.tier,
            ])
            writer.writerow([])
            writer.writerow(['month', 'income', 'expense'])
            for bucket in trend:
                writer.writerow([str(bucket.month), _money(bucket.total_income), _money(bucket.total_expense)])

        logger.info("Written %d budget row(s) to %s", len(summary.statuses), out_path)
        return out_path
