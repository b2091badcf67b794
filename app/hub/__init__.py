import logging
from datetime import timedelta

from flask import Flask, g, jsonify, render_template, request
from dotenv import load_dotenv

from app.hub.config import load_config
from app.hub.db import init_db, teardown_db_session
from app.hub.routes import bp as routes_bp
from app.hub.auth import bp as auth_bp, load_request_context
from app.hub.modules.resources.routes import bp as resources_bp
from app.hub.modules.resources.admin import bp as resources_admin_bp
from app.hub.modules.accounts.routes import bp as accounts_bp
from app.hub.modules.accounts.admin import bp as accounts_admin_bp

# Login, registration and logout establish or drop the session, so they skip the CSRF check.
_CSRF_EXEMPT_ENDPOINTS = ("auth.login_post", "auth.register_post", "auth.logout")


def _wants_json() -> bool:
    return request.path.startswith("/api/")


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=8)
    app.logger.setLevel(app.config["LOG_LEVEL"])

    @app.before_request
    def _load_request_context_wrapper():
        if request.path.startswith(("/static/", "/health", "/healthz")):
            g.identity = None
            return None
        return load_request_context()

    # CSRF protection (registered after the identity loader so rejections carry a request_id)
    from app.hub.security import ensure_csrf_token, validate_csrf

    @app.context_processor
    def _inject_csrf() -> dict:
        return {"csrf_token": ensure_csrf_token()}

    @app.context_processor
    def _inject_permissions() -> dict:
        from app.hub.rbac import is_manager, is_manager_only

        identity = getattr(g, "identity", None)
        return {"can_admin": is_manager(identity), "can_manage_users": is_manager_only(identity)}

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(("/static/", "/health", "/healthz")):
            return None
        if not app.config.get("CSRF_ENABLED"):
            return None
        ensure_csrf_token()
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            if (request.endpoint or "") in _CSRF_EXEMPT_ENDPOINTS:
                return None
            if not validate_csrf(request):
                if _wants_json():
                    return jsonify({"success": False, "error": "CSRF token missing or invalid."}), 400
                return render_template("errors/400.html", message="CSRF token missing or invalid."), 400

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SESSION_SECRET must be set to a strong value in production (not default).")

    init_db(app)

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(resources_bp)
    app.register_blueprint(resources_admin_bp)
    app.register_blueprint(accounts_bp)
    app.register_blueprint(accounts_admin_bp)

    app.teardown_appcontext(teardown_db_session)

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        if _wants_json():
            return jsonify({"success": False, "error": "Internal server error"}), 500
        return render_template("errors/500.html"), 500

    @app.errorhandler(403)
    def _err_403(e):  # type: ignore[no-redef]
        missing = getattr(g, "missing_permission", None)
        if missing:
            app.logger.warning("Forbidden: missing_permission=%s request_id=%s", missing, getattr(g, "request_id", None))
        if missing == "manager_only":
            message = "Access denied. This page is only accessible to Managers."
        else:
            message = "Access denied. Manager privileges required."
        if _wants_json():
            return jsonify({"success": False, "error": message}), 403
        return render_template("errors/403.html", message=message), 403

    @app.errorhandler(404)
    def _err_404(e):  # type: ignore[no-redef]
        if _wants_json():
            return jsonify({"success": False, "error": "Not found"}), 404
        return render_template("errors/404.html"), 404

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
