# finance_tracker/outputs/html_output.py

import html
import logging

from finance_tracker.core.models import TIER_OVER, TIER_WARNING
from finance_tracker.outputs.base import BaseOutput

logger = logging.getLogger(__name__)

TIER_COLORS = {
    TIER_OVER: '#ef4444',
    TIER_WARNING: '#f59e0b',
}
DEFAULT_COLOR = '#10b981'


def _bar(pct, color):
    width = max(0.0, min(pct, 100.0))
    return (
        "<div class='bar'>"
        f"<div style='width:{width:.0f}%;background:{color}'></div>"
        "</div>"
    )


class HTMLOutput(BaseOutput):
    """Generate a static HTML budget report with utilization bars."""

    extension = 'html'

    def write(self, summary, trend):
        currency = self.config.get('currency', '')

        def fmt(value):
            return f"{value:,.0f}{currency}"

        overall_color = TIER_COLORS.get(summary.tier, DEFAULT_COLOR)
        html_parts = [
            "<html><head><meta charset='UTF-8'>",
            "<style>body{font-family:sans-serif;}table{border-collapse:collapse;margin-bottom:20px;}"
            "th,td{border:1px solid #ccc;padding:4px 8px;}th{background:#eee;}"
            ".bar{width:160px;height:8px;background:#f3f4f6;border-radius:4px;overflow:hidden;}"
            ".bar div{height:8px;}</style>",
            "</head><body>",
            f"<h1>Budget {summary.month.label}</h1>",
            f"<p>Spent {fmt(summary.total_spent)} of {fmt(summary.total_budget)} "
            f"(<span style='color:{overall_color}'>{summary.overall_utilization_pct:.0f}%</span>)</p>",
            _bar(summary.overall_utilization_pct, overall_color),
        ]
        if summary.over_budget:
            html_parts.append("<p style='color:#ef4444'>Over budget this month!</p>")

        html_parts.append("<h2>Budgets</h2>")
        html_parts.append(
            "<table><tr><th>Category</th><th>Spent</th><th>Budget</th>"
            "<th>Remaining</th><th>Used</th><th></th></tr>"
        )
        for status in summary.statuses:
            color = TIER_COLORS.get(status.tier, DEFAULT_COLOR)
            if status.category:
                name = f"{status.category.icon} {status.category.name}".strip()
            else:
                name = f"Category {status.category_id}"
            html_parts.append(
                f"<tr><td>{html.escape(name)}</td><td>{fmt(status.spent_amount)}</td>"
                f"<td>{fmt(status.budget_amount)}</td><td>{fmt(status.remaining_amount)}</td>"
                f"<td style='color:{color}'>{status.utilization_pct:.0f}%</td>"
                f"<td>{_bar(status.utilization_pct, color)}</td></tr>"
            )
        html_parts.append("</table>")

        html_parts.append("<h2>Last 6 months</h2>")
        html_parts.append("<table><tr><th>Month</th><th>Income</th><th>Expense</th></tr>")
        for bucket in trend:
            html_parts.append(
                f"<tr><td>{bucket.label}</td><td>{fmt(bucket.total_income)}</td>"
                f"<td>{fmt(bucket.total_expense)}</td></tr>"
            )
        html_parts.append("</table>")
        html_parts.append("</body></html>")

        out_path = self.report_path(summary)
        with open(out_path, 'w', encoding='utf-8') as f:
            f.write("\n".join(html_parts))

        logger.info("Written budget report to %s", out_path)
        return out_path
