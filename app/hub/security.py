from __future__ import annotations

import secrets
from dataclasses import dataclass

from flask import Request, current_app, session
from werkzeug.security import check_password_hash, generate_password_hash

DEFAULT_HASH_METHOD = "scrypt:32768:8:1"


@dataclass(frozen=True)
class HashResult:
    """Either a password hash or the reason hashing failed."""

    hash: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.hash is not None


@dataclass(frozen=True)
class VerifyResult:
    """Outcome of comparing a password against a stored hash.

    ``error`` is set when the comparison itself could not run (e.g. a malformed
    stored hash); callers must treat that as an internal failure, not a mismatch.
    """

    matched: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _hash_method() -> str:
    try:
        return current_app.config.get("PASSWORD_HASH_METHOD") or DEFAULT_HASH_METHOD
    except RuntimeError:
        # Outside an app context (scripts).
        return DEFAULT_HASH_METHOD


def hash_password(password: str, method: str | None = None) -> HashResult:
    try:
        return HashResult(hash=generate_password_hash(password, method=method or _hash_method()))
    except (ValueError, TypeError) as e:
        return HashResult(error=f"{type(e).__name__}: {e}")


def verify_password(stored_hash: str | None, password: str) -> VerifyResult:
    if not stored_hash:
        return VerifyResult(error="empty stored hash")
    try:
        return VerifyResult(matched=check_password_hash(stored_hash, password))
    except (ValueError, TypeError) as e:
        return VerifyResult(error=f"{type(e).__name__}: {e}")


_dummy_hashes: dict[str, str] = {}


def dummy_password_hash() -> str:
    """
    A throwaway hash in the configured method, for checking passwords of unknown users
    so that lookups miss at the same cost as a wrong password.
    """
    method = _hash_method()
    if method not in _dummy_hashes:
        _dummy_hashes[method] = generate_password_hash(secrets.token_urlsafe(16), method=method)
    return _dummy_hashes[method]


def ensure_csrf_token() -> str:
    """Ensure a CSRF token exists in the session and return it."""
    token = session.get("csrf_token")
    if not token:
        token = secrets.token_urlsafe(32)
        session["csrf_token"] = token
    return token


def validate_csrf(req: Request) -> bool:
    """Validate CSRF token from form, header, or JSON body."""
    token = req.headers.get("X-CSRF-Token") or req.form.get("csrf_token")

    # Also check JSON body for API-style requests
    if not token and req.is_json:
        json_data = req.get_json(silent=True) or {}
        if isinstance(json_data, dict):
            token = json_data.get("csrf_token")

    expected = session.get("csrf_token")
    return bool(token and expected and secrets.compare_digest(str(token), str(expected)))
