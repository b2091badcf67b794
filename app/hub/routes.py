from flask import Blueprint, render_template

from app.hub.rbac import current_identity

bp = Blueprint("routes", __name__)


@bp.get("/")
def index():
    identity = current_identity()
    return render_template(
        "public/index.html",
        is_logged_in=identity is not None,
        username=identity.username if identity else None,
        user_level=identity.level if identity else None,
        user_roleid=identity.roleid if identity else None,
    )


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    """
    Fast health check for container probes. No DB access, minimal overhead.
    """
    return "ok", 200
