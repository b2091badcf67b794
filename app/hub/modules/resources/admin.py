from __future__ import annotations

from flask import Blueprint, current_app, flash, g, jsonify, render_template
from sqlalchemy.exc import SQLAlchemyError

from app.hub.db import db_session
from app.hub.errors import ServiceError, failure_response
from app.hub.models import User
from app.hub.modules.resources.models import Category
from app.hub.modules.resources.service import (
    add_vetted_resource,
    delete_vetted_resource,
    edit_vetted_resource,
    vetted_resources,
)
from app.hub.rbac import Identity, require_manager
from app.hub.utils import parse_int, request_payload

bp = Blueprint("resources_admin", __name__)


def _actor(identity: Identity) -> User | None:
    return db_session().query(User).filter(User.username == identity.username).one_or_none()


@bp.get("/admin")
@require_manager
def admin_index(identity: Identity):
    s = db_session()
    try:
        resources = vetted_resources(s, order_by_id=True)
        categories = s.query(Category).order_by(Category.categoryid.asc()).all()
    except SQLAlchemyError:
        current_app.logger.exception("Error loading admin page (request_id=%s)", g.request_id)
        return "Error loading admin page", 500

    return render_template(
        "resources/admin.html",
        identity=identity,
        username=identity.username,
        vetted_resources=resources,
        categories=categories,
    )


@bp.post("/api/admin/add-resource")
@require_manager
def admin_add_resource(identity: Identity):
    s = db_session()
    try:
        resource = add_vetted_resource(s, _actor(identity), request_payload())
        s.commit()
    except (ServiceError, SQLAlchemyError) as e:
        return failure_response(e, "Failed to add resource")
    flash("Resource added successfully!", "success")
    return jsonify({"success": True, "message": "Resource added successfully!", "resourceId": resource.resourceid})


@bp.post("/api/admin/edit-resource")
@require_manager
def admin_edit_resource(identity: Identity):
    payload = request_payload()
    s = db_session()
    try:
        edit_vetted_resource(s, _actor(identity), parse_int(payload.get("resourceId")), payload)
        s.commit()
    except (ServiceError, SQLAlchemyError) as e:
        return failure_response(e, "Failed to edit resource")
    flash("Resource updated successfully!", "success")
    return jsonify({"success": True, "message": "Resource updated successfully!"})


@bp.post("/api/admin/delete-resource")
@require_manager
def admin_delete_resource(identity: Identity):
    payload = request_payload()
    s = db_session()
    try:
        delete_vetted_resource(s, _actor(identity), parse_int(payload.get("resourceId")))
        s.commit()
    except (ServiceError, SQLAlchemyError) as e:
        return failure_response(e, "Failed to delete resource")
    flash("Resource deleted successfully!", "success")
    return jsonify({"success": True, "message": "Resource deleted successfully!"})
