from __future__ import annotations

from flask import Blueprint, current_app, g, redirect, render_template, request, url_for
from sqlalchemy.exc import SQLAlchemyError

from app.hub.db import db_session
from app.hub.errors import UserNotFound, ValidationFailed
from app.hub.modules.accounts.service import update_profile
from app.hub.modules.resources.service import resolve_user
from app.hub.rbac import Identity, require_auth

bp = Blueprint("accounts", __name__)


def _render_profile(identity: Identity, user, *, success: str | None = None, error: str | None = None, status: int = 200):
    return (
        render_template(
            "accounts/profile.html",
            identity=identity,
            username=identity.username,
            user=user,
            success_message=success,
            error_message=error,
        ),
        status,
    )


@bp.get("/profile")
@require_auth
def profile(identity: Identity):
    s = db_session()
    try:
        user = resolve_user(s, identity)
    except UserNotFound:
        return redirect(url_for("auth.login_get"))
    except SQLAlchemyError:
        current_app.logger.exception("Error loading profile (request_id=%s)", g.request_id)
        return "Error loading profile", 500
    return _render_profile(identity, user)


@bp.post("/profile")
@require_auth
def profile_update(identity: Identity):
    s = db_session()
    try:
        user = resolve_user(s, identity)
    except UserNotFound:
        return redirect(url_for("auth.login_get"))

    try:
        update_profile(s, user, request.form)
        s.commit()
    except ValidationFailed as e:
        s.rollback()
        return _render_profile(identity, user, error=str(e), status=400)
    except SQLAlchemyError:
        s.rollback()
        current_app.logger.exception("Error updating profile (request_id=%s)", g.request_id)
        user = resolve_user(s, identity)
        return _render_profile(identity, user, error="Failed to update profile. Please try again.", status=500)

    return _render_profile(identity, user, success="Profile updated successfully!")
