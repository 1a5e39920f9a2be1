from __future__ import annotations

import os
from pathlib import Path

import anyio
from mcp.server.fastmcp import FastMCP

from finance_tracker.auth import authenticate
from finance_tracker.core.months import MonthKey
from finance_tracker.ledger import budget_view, summary_payload, trend_payload, trend_view

server = FastMCP(name="Spendwise", instructions="Expose Spendwise budgets as MCP tools")


def _credentials(email: str | None, password: str | None) -> tuple[str, str]:
    email = email or os.environ.get("SPENDWISE_EMAIL")
    password = password or os.environ.get("SPENDWISE_PASSWORD")
    if not email or not password:
        raise ValueError("email and password are required (or SPENDWISE_EMAIL/SPENDWISE_PASSWORD)")
    return email, password


def _check_db(db_path: str) -> None:
    if not Path(db_path).exists():
        raise FileNotFoundError(f"Database not found: {db_path}")


@server.tool(
    name="budget_status",
    description="Spend against each budget for a month (YYYY-MM), with utilization tiers",
)
async def budget_status(
    db_path: str,
    month: str,
    email: str | None = None,
    password: str | None = None,
) -> dict:
    """Return the budget summary for ``month``.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file.
    month:
        Month key formatted as ``YYYY-MM``.
    email, password:
        Account credentials; fall back to the SPENDWISE_* environment.
    """

    try:
        key = MonthKey.parse(month)
    except ValueError as exc:
        raise ValueError(f"Invalid month: {month}") from exc
    _check_db(db_path)
    creds = _credentials(email, password)

    def _run() -> dict:
        session = authenticate(db_path, *creds)
        return summary_payload(budget_view(db_path, session, key))

    return await anyio.to_thread.run_sync(_run)


@server.tool(
    name="monthly_trend",
    description="Income and expense totals for the six months ending at a month (YYYY-MM)",
)
async def monthly_trend(
    db_path: str,
    month: str,
    email: str | None = None,
    password: str | None = None,
) -> list[dict]:
    try:
        key = MonthKey.parse(month)
    except ValueError as exc:
        raise ValueError(f"Invalid month: {month}") from exc
    _check_db(db_path)
    creds = _credentials(email, password)

    def _run() -> list[dict]:
        session = authenticate(db_path, *creds)
        return trend_payload(trend_view(db_path, session, key))

    return await anyio.to_thread.run_sync(_run)


def main() -> None:
    server.run()


if __name__ == "__main__":
    main()
