from __future__ import annotations

import argparse
import base64
import json
import logging
import os
from datetime import date
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any
from urllib.parse import parse_qs, urlparse

from finance_tracker.auth import AuthenticationError, authenticate
from finance_tracker.core.models import Session, TRANSACTION_TYPES
from finance_tracker.core.months import MonthKey, current_month
from finance_tracker.database import list_categories
from finance_tracker.ledger import (
    budget_view,
    category_payload,
    dashboard_payload,
    dashboard_view,
    summary_payload,
    transaction_payload,
    transactions_view,
)

logger = logging.getLogger(__name__)


def _extract_credentials(header_value: str | None) -> tuple[str, str] | None:
    if not header_value or not header_value.startswith("Basic "):
        return None
    token = header_value[6:].strip()
    try:
        decoded = base64.b64decode(token, validate=True).decode("utf-8")
    except (ValueError, UnicodeDecodeError):
        return None
    if ":" not in decoded:
        return None
    email, password = decoded.split(":", 1)
    return email, password


def _parse_month(value: str | None) -> MonthKey:
    return MonthKey.parse(value) if value else current_month()


def _parse_date(value: str | None) -> date | None:
    return date.fromisoformat(value) if value else None


def _json_response(handler: BaseHTTPRequestHandler, payload: Any, status: int = 200) -> None:
    body = json.dumps(payload).encode("utf-8")
    handler.send_response(status)
    handler.send_header("Content-Type", "application/json")
    handler.send_header("Cache-Control", "no-store")
    handler.send_header("Content-Length", str(len(body)))
    handler.end_headers()
    handler.wfile.write(body)


def _get_param(query: dict[str, list[str]], key: str) -> str | None:
    values = query.get(key)
    return values[0] if values else None


class SpendwiseHandler(BaseHTTPRequestHandler):
    db_path = "spendwise.db"

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)

    def do_GET(self) -> None:
        session = self._authorize_request()
        if session is None:
            return
        self._handle_api(urlparse(self.path), session)

    def _handle_api(self, parsed, session: Session) -> None:
        query = parse_qs(parsed.query)
        path = parsed.path

        try:
            if path == "/api/budget":
                summary = budget_view(self.db_path, session, _parse_month(_get_param(query, "month")))
                _json_response(self, summary_payload(summary))
                return

            if path == "/api/dashboard":
                view = dashboard_view(self.db_path, session, _parse_date(_get_param(query, "today")))
                _json_response(self, dashboard_payload(view))
                return

            if path == "/api/transactions":
                kind = _get_param(query, "type") or "all"
                if kind not in ("all",) + TRANSACTION_TYPES:
                    _json_response(self, {"error": "type must be all, expense, or income"}, status=400)
                    return
                view = transactions_view(self.db_path, session, kind)
                _json_response(self, {
                    "transactions": [transaction_payload(tx) for tx in view.transactions],
                    "total_income": view.total_income,
                    "total_expense": view.total_expense,
                })
                return

            if path == "/api/categories":
                kind = _get_param(query, "type")
                cats = list_categories(self.db_path, session, kind)
                _json_response(self, [category_payload(c) for c in cats])
                return
        except ValueError as exc:
            _json_response(self, {"error": str(exc)}, status=400)
            return
        except LookupError as exc:
            _json_response(self, {"error": str(exc)}, status=404)
            return
        except Exception as exc:
            logger.exception("Request for %s failed", path)
            _json_response(self, {"error": str(exc)}, status=500)
            return

        _json_response(self, {"error": "not found"}, status=404)

    def _authorize_request(self) -> Session | None:
        credentials = _extract_credentials(self.headers.get("Authorization"))
        if credentials is not None:
            try:
                return authenticate(self.db_path, *credentials)
            except AuthenticationError:
                pass
        self.send_response(401)
        self.send_header("WWW-Authenticate", 'Basic realm="Spendwise"')
        self.send_header("Cache-Control", "no-store")
        self.end_headers()
        return None


def make_handler(db_path: str) -> type[SpendwiseHandler]:
    return type("SpendwiseHandler", (SpendwiseHandler,), {"db_path": db_path})


def main() -> None:
    parser = argparse.ArgumentParser(description="Spendwise JSON API")
    parser.add_argument(
        "--db", dest="db_path",
        default=os.environ.get("SPENDWISE_DB", "spendwise.db"),
        help="Path to SQLite database",
    )
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind (default: 8000)")
    args = parser.parse_args()

    logging.basicConfig(level=os.getenv("SPENDWISE_LOG_LEVEL", "INFO").upper())
    server = ThreadingHTTPServer((args.host, args.port), make_handler(args.db_path))
    logger.info("Spendwise API running at http://%s:%s (db: %s)", args.host, args.port, args.db_path)
    server.serve_forever()


if __name__ == "__main__":
    main()
