from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from functools import wraps
from typing import Any

from flask import abort, g, redirect, session, url_for

from app.hub.constants import MANAGER_LEVEL, MANAGER_ROLE_ID


@dataclass(frozen=True)
class Identity:
    """Snapshot of the logged-in session, taken once per request."""

    username: str
    level: str | None = None
    roleid: int | None = None


def load_identity() -> Identity | None:
    """
    Builds g.identity from the signed session cookie.
    Anything short of a complete login leaves g.identity = None.
    """
    identity = None
    username = session.get("username")
    if session.get("is_logged_in") and username:
        identity = Identity(username=username, level=session.get("level"), roleid=session.get("roleid"))
    g.identity = identity
    return identity


def current_identity() -> Identity | None:
    if "identity" not in g:
        return load_identity()
    return g.identity


def is_manager(identity: Identity | None) -> bool:
    return identity is not None and identity.level == MANAGER_LEVEL


def is_manager_only(identity: Identity | None) -> bool:
    # Admins carry level "M" too; only the Manager role may administer users.
    return is_manager(identity) and identity.roleid == MANAGER_ROLE_ID


def _gate(
    check: Callable[[Identity | None], bool],
    *,
    redirect_anonymous: bool,
    missing: str,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            identity = current_identity()
            if identity is None and redirect_anonymous:
                return redirect(url_for("auth.login_get"))
            if not check(identity):
                g.missing_permission = missing
                abort(403)
            return fn(*args, identity=identity, **kwargs)

        return wrapped

    return decorator


def require_auth(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Logged-in sessions only; anonymous requests are sent to the login page."""
    return _gate(lambda i: i is not None, redirect_anonymous=True, missing="login")(fn)


def require_manager(fn: Callable[..., Any]) -> Callable[..., Any]:
    """level == "M"; everyone else, anonymous included, gets a 403."""
    return _gate(is_manager, redirect_anonymous=False, missing="manager")(fn)


def require_manager_only(fn: Callable[..., Any]) -> Callable[..., Any]:
    """level == "M" and the Manager role; admins and everyone else get a 403."""
    return _gate(is_manager_only, redirect_anonymous=False, missing="manager_only")(fn)
