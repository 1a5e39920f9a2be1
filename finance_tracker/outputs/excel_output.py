# finance_tracker/outputs/excel_output.py

"""Excel output module backed by XlsxWriter.

The workbook has a ``Budgets`` worksheet with one row per budget plus a
total row, colored by utilization tier, and a ``Trend`` worksheet holding
the six-month income/expense table with a column chart beside it.
"""

from __future__ import annotations

import logging

import xlsxwriter

from finance_tracker.core.models import TIER_OVER, TIER_WARNING
from finance_tracker.outputs.base import BaseOutput

logger = logging.getLogger(__name__)


class ExcelOutput(BaseOutput):
    """Generate a local Excel workbook for one month's budgets."""

    extension = "xlsx"
    BUDGETS = "Budgets"
    TREND = "Trend"

    def write(self, summary, trend):
        out_path = self.report_path(summary)
        workbook = xlsxwriter.Workbook(out_path)
        amount_fmt = workbook.add_format({"num_format": "#,##0.00"})
        pct_fmt = workbook.add_format({"num_format": "0.0"})
        tier_fmts = {
            TIER_OVER: workbook.add_format({"font_color": "#ef4444", "bold": True}),
            TIER_WARNING: workbook.add_format({"font_color": "#f59e0b"}),
        }

        ws = workbook.add_worksheet(self.BUDGETS)
        ws.freeze_panes(1, 0)
        rows = self.budget_rows(summary)
        headers = ["category", "budget", "spent", "remaining", "utilization_pct", "tier"]
        ws.write_row(0, 0, headers)
        for idx, row in enumerate(rows, start=1):
            ws.write(idx, 0, row[0])
            for col in (1, 2, 3):
                ws.write_number(idx, col, row[col], amount_fmt)
            ws.write_number(idx, 4, row[4], pct_fmt)
            ws.write(idx, 5, row[5], tier_fmts.get(row[5]))
        ws.set_column(0, 0, 24)
        ws.set_column(1, 4, 14)

        trend_ws = workbook.add_worksheet(self.TREND)
        trend_ws.freeze_panes(1, 0)
        trend_ws.write_row(0, 0, ["month", "income", "expense"])
        for idx, bucket in enumerate(trend, start=1):
            trend_ws.write(idx, 0, bucket.label)
            trend_ws.write_number(idx, 1, bucket.total_income, amount_fmt)
            trend_ws.write_number(idx, 2, bucket.total_expense, amount_fmt)
        trend_ws.set_column(1, 2, 14)

        if trend:
            chart = workbook.add_chart({"type": "column"})
            last = len(trend)
            for col, name in ((1, "Income"), (2, "Expense")):
                chart.add_series({
                    "name": name,
                    "categories": [self.TREND, 1, 0, last, 0],
                    "values": [self.TREND, 1, col, last, col],
                })
            chart.set_title({"name": "Income and expense, last 6 months"})
            chart.set_legend({"position": "bottom"})
            trend_ws.insert_chart(0, 4, chart)

        workbook.close()
        logger.info("Written Excel workbook %s", out_path)
        return out_path

    @staticmethod
    def budget_rows(summary):
        rows = []
        for status in summary.statuses:
            name = status.category.name if status.category else str(status.category_id)
            rows.append([
                name,
                status.budget_amount,
                status.spent_amount,
                status.remaining_amount,
                round(status.utilization_pct, 1),
                status.tier,
            ])
        rows.append([
            "TOTAL",
            summary.total_budget,
            summary.total_spent,
            summary.total_remaining,
            round(summary.overall_utilization_pct, 1),
            summary.tier,
        ])
        return rows
