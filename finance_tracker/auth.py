from __future__ import annotations

import logging

from werkzeug.security import check_password_hash, generate_password_hash

from finance_tracker.core.models import Session
from finance_tracker.database import create_user, get_user_by_email

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class AuthenticationError(Exception):
    """Raised when an email/password pair does not match an account."""


def _normalize_email(email: str | None) -> str:
    clean = (email or "").strip().lower()
    if not clean or "@" not in clean:
        raise ValueError(f"Invalid email address: {email!r}")
    return clean


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, encoded: str) -> bool:
    """Check ``password`` against a stored hash; a corrupt hash never matches."""
    try:
        return check_password_hash(encoded, password)
    except ValueError:
        logger.warning("Stored password hash is malformed")
        return False


def register_user(db_path: str, email: str, password: str) -> Session:
    clean = _normalize_email(email)
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    user_id = create_user(db_path, clean, hash_password(password))
    return Session(user_id=user_id, email=clean)


def authenticate(db_path: str, email: str | None, password: str | None) -> Session:
    """Return a Session for valid credentials or raise AuthenticationError."""
    try:
        clean = _normalize_email(email)
    except ValueError as exc:
        raise AuthenticationError("Invalid email or password") from exc
    user = get_user_by_email(db_path, clean)
    if user is None or not verify_password(password or "", str(user["password_hash"])):
        logger.warning("Failed sign-in for %s", clean)
        raise AuthenticationError("Invalid email or password")
    return Session(user_id=int(user["id"]), email=clean)
