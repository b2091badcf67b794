from __future__ import annotations

import uuid

from flask import Blueprint, current_app, g, redirect, render_template, request, session, url_for
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.hub.audit import record_event
from app.hub.constants import CRISIS_RESOURCE_NAME
from app.hub.db import db_session
from app.hub.models import User
from app.hub.modules.resources.models import Resource, UserResource
from app.hub.rbac import load_identity
from app.hub.security import dummy_password_hash, hash_password, verify_password
from app.hub.utils import clean

bp = Blueprint("auth", __name__)

REGISTER_FIELDS = ("username", "password", "email", "level", "phone")
INVALID_CREDENTIALS = "Invalid username or password"
REGISTRATION_FAILED = "Registration failed. That username or email may already be taken."


class RegistrationError(Exception):
    pass


class RegistrationConflict(RegistrationError):
    """Username or email already taken."""


def load_request_context() -> None:
    """
    Assigns a per-request request_id (for audit/log correlation) and the session identity.
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    load_identity()


def register_user(s: Session, *, username: str, password: str, email: str, level: str, phone: str) -> User:
    """
    Create a user and pin the crisis hotline for them.

    Both rows go into the caller's transaction; nothing is committed here.
    """
    hashed = hash_password(password)
    if not hashed.ok:
        raise RegistrationError(f"password hashing failed: {hashed.error}")

    user = User(username=username, password_hash=hashed.hash, email=email, level=level, phone=phone)
    s.add(user)
    try:
        s.flush()
    except IntegrityError as e:
        raise RegistrationConflict("username or email already exists") from e

    crisis = s.query(Resource).filter(Resource.resourcename == CRISIS_RESOURCE_NAME).first()
    if crisis is not None:
        s.add(
            UserResource(
                userid=user.userid,
                resourceid=crisis.resourceid,
                numviewed=0,
                favoritestatus=True,
                rating=None,
            )
        )

    record_event(
        s,
        actor=user,
        action="user.register",
        entity_type="User",
        entity_id=str(user.userid),
        metadata={"username": username, "level": level, "default_pin": crisis.resourceid if crisis else None},
    )
    return user


@bp.get("/login")
def login_get():
    return render_template("auth/login.html", error_message=None)


@bp.post("/login")
def login_post():
    username = (request.form.get("username") or "").strip()
    password = request.form.get("password") or ""

    try:
        s = db_session()
        user = s.query(User).filter(User.username == username).one_or_none() if username else None
        if user is None:
            # Same cost and answer as a wrong password so usernames can't be probed.
            verify_password(dummy_password_hash(), password)
            record_event(
                s,
                actor=None,
                action="auth.login_failed",
                entity_type="User",
                entity_id=username or None,
                reason="Invalid credentials",
                metadata={"username": username},
            )
            s.commit()
            return render_template("auth/login.html", error_message=INVALID_CREDENTIALS), 401

        result = verify_password(user.password_hash, password)
        if not result.ok:
            current_app.logger.error(
                "Password verification error for user_id=%s request_id=%s: %s",
                user.userid,
                g.request_id,
                result.error,
            )
            return render_template("auth/login.html", error_message="An internal authentication error occurred."), 500

        if not result.matched:
            record_event(
                s,
                actor=None,
                action="auth.login_failed",
                entity_type="User",
                entity_id=str(user.userid),
                reason="Invalid credentials",
            )
            s.commit()
            return render_template("auth/login.html", error_message=INVALID_CREDENTIALS), 401

        session.clear()
        session["is_logged_in"] = True
        session["username"] = user.username
        session["level"] = user.level
        session["roleid"] = user.roleid

        record_event(s, actor=user, action="auth.login", entity_type="User", entity_id=str(user.userid))
        s.commit()
        current_app.logger.info("User logged in: %s", user.username)
        return redirect(url_for("resources.dashboard"))
    except SQLAlchemyError:
        db_session().rollback()
        current_app.logger.exception("Login failed (username=%s request_id=%s)", username, g.request_id)
        return render_template("auth/login.html", error_message="Could not process login request."), 500


@bp.get("/register")
def register_get():
    return render_template("auth/register.html", error_message=None)


@bp.post("/register")
def register_post():
    fields = {name: clean(request.form.get(name)) for name in REGISTER_FIELDS}
    # Passwords are taken verbatim; only emptiness is checked.
    fields["password"] = request.form.get("password") or None

    if any(not v for v in fields.values()):
        return render_template("auth/register.html", error_message="Please fill in all required fields."), 400

    s = db_session()
    try:
        register_user(s, **fields)
        s.commit()
    except RegistrationConflict:
        s.rollback()
        current_app.logger.warning("Registration conflict (request_id=%s)", g.request_id)
        return render_template("auth/register.html", error_message=REGISTRATION_FAILED), 409
    except IntegrityError:
        # Unique constraints can also fire at commit time.
        s.rollback()
        current_app.logger.warning("Registration conflict at commit (request_id=%s)", g.request_id)
        return render_template("auth/register.html", error_message=REGISTRATION_FAILED), 409
    except RegistrationError as e:
        s.rollback()
        current_app.logger.error("Registration error (request_id=%s): %s", g.request_id, e)
        return render_template(
            "auth/register.html", error_message="Server error during registration. Please try again."
        ), 500
    except SQLAlchemyError:
        s.rollback()
        current_app.logger.exception("Error inserting user (request_id=%s)", g.request_id)
        return render_template("auth/register.html", error_message=REGISTRATION_FAILED), 500

    current_app.logger.info("New user successfully registered: %s", fields["username"])
    return redirect(url_for("auth.login_get"))


@bp.get("/logout")
def logout():
    identity = getattr(g, "identity", None)
    try:
        if identity is not None:
            s = db_session()
            user = s.query(User).filter(User.username == identity.username).one_or_none()
            record_event(s, actor=user, action="auth.logout", entity_type="User", entity_id=identity.username)
            s.commit()
    except SQLAlchemyError:
        db_session().rollback()
        current_app.logger.exception("Could not record logout (request_id=%s)", g.request_id)

    try:
        session.clear()
    except Exception:
        current_app.logger.exception("Error destroying session (request_id=%s)", g.request_id)
    g.identity = None
    return redirect(url_for("routes.index"))
