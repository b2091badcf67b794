from __future__ import annotations

from flask import Blueprint, current_app, flash, g, jsonify, render_template
from sqlalchemy.exc import SQLAlchemyError

from app.hub.db import db_session
from app.hub.errors import ServiceError, failure_response
from app.hub.models import User
from app.hub.modules.accounts.service import list_roles, list_users, update_role
from app.hub.rbac import Identity, require_manager_only
from app.hub.utils import request_payload

bp = Blueprint("accounts_admin", __name__)


@bp.get("/manager")
@require_manager_only
def manager_index(identity: Identity):
    s = db_session()
    try:
        users = list_users(s)
        roles = list_roles(s)
    except SQLAlchemyError:
        current_app.logger.exception("Error loading manager page (request_id=%s)", g.request_id)
        return "Error loading manager page", 500

    return render_template(
        "accounts/manager.html",
        identity=identity,
        username=identity.username,
        users=users,
        roles=roles,
    )


@bp.post("/api/manager/update-role")
@require_manager_only
def manager_update_role(identity: Identity):
    s = db_session()
    try:
        actor = s.query(User).filter(User.username == identity.username).one_or_none()
        user = update_role(s, actor, request_payload())
        s.commit()
    except (ServiceError, SQLAlchemyError) as e:
        return failure_response(e, "Failed to update user role")
    current_app.logger.info("Role updated for user_id=%s by %s", user.userid, identity.username)
    flash("User role updated successfully!", "success")
    return jsonify({"success": True, "message": "User role updated successfully!"})
