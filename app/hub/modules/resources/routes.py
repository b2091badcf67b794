from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, redirect, render_template, url_for
from sqlalchemy.exc import SQLAlchemyError

from app.hub.db import db_session
from app.hub.errors import ServiceError, UserNotFound, failure_response
from app.hub.modules.resources.service import (
    add_custom_resource,
    build_dashboard,
    delete_custom_resource,
    edit_custom_resource,
    resolve_user,
    toggle_pin,
)
from app.hub.rbac import Identity, require_auth
from app.hub.utils import json_error, parse_int, request_payload

bp = Blueprint("resources", __name__)


# ---------- Dashboard ----------
@bp.get("/dashboard")
@require_auth
def dashboard(identity: Identity):
    s = db_session()
    try:
        user = resolve_user(s, identity)
        dash = build_dashboard(s, user)
    except UserNotFound:
        return redirect(url_for("auth.login_get"))
    except SQLAlchemyError:
        current_app.logger.exception("Error loading dashboard (request_id=%s)", g.request_id)
        return "Error loading dashboard", 500

    return render_template(
        "resources/dashboard.html",
        identity=identity,
        username=identity.username,
        pinned_resources=dash.pinned,
        unpinned_resources=dash.unpinned,
        custom_resources=dash.custom,
        all_resources=dash.all_resources,
        categories=dash.categories,
        pinned_ids=sorted(dash.pinned_ids),
    )


# ---------- Pins ----------
@bp.post("/api/toggle-pin")
@require_auth
def toggle_pin_api(identity: Identity):
    resource_id = parse_int(request_payload().get("resourceId"))
    if resource_id is None:
        return json_error("Resource ID is required", 400)

    s = db_session()
    try:
        user = resolve_user(s, identity)
        is_pinned = toggle_pin(s, user, resource_id)
        s.commit()
    except (ServiceError, SQLAlchemyError) as e:
        return failure_response(e, "Failed to toggle pin")
    return jsonify({"success": True, "isPinned": is_pinned})


# ---------- Custom resources ----------
@bp.post("/api/add-resource")
@require_auth
def add_resource_api(identity: Identity):
    payload = request_payload()
    s = db_session()
    try:
        user = resolve_user(s, identity)
        resource = add_custom_resource(s, user, payload)
        s.commit()
    except (ServiceError, SQLAlchemyError) as e:
        return failure_response(e, "Failed to add resource")
    return jsonify(
        {
            "success": True,
            "message": "Resource added and pinned successfully!",
            "resourceId": resource.resourceid,
        }
    )


@bp.post("/api/edit-resource")
@require_auth
def edit_resource_api(identity: Identity):
    payload = request_payload()
    resource_id = parse_int(payload.get("resourceId"))
    if resource_id is None:
        return json_error("Resource ID, name, and URL are required", 400)

    s = db_session()
    try:
        user = resolve_user(s, identity)
        edit_custom_resource(s, user, resource_id, payload)
        s.commit()
    except (ServiceError, SQLAlchemyError) as e:
        return failure_response(e, "Failed to edit resource")
    return jsonify({"success": True, "message": "Resource updated successfully!"})


@bp.post("/api/delete-resource")
@require_auth
def delete_resource_api(identity: Identity):
    resource_id = parse_int(request_payload().get("resourceId"))
    if resource_id is None:
        return json_error("Resource ID is required", 400)

    s = db_session()
    try:
        user = resolve_user(s, identity)
        delete_custom_resource(s, user, resource_id)
        s.commit()
    except (ServiceError, SQLAlchemyError) as e:
        return failure_response(e, "Failed to delete resource")
    return jsonify({"success": True, "message": "Resource deleted successfully!"})
