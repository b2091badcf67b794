from __future__ import annotations

from typing import TYPE_CHECKING

from app.hub.audit import record_event
from app.hub.errors import NotFound, ValidationFailed
from app.hub.models import Role, User
from app.hub.utils import clean, parse_int

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


def list_users(s: "Session") -> list[User]:
    """All users with their role eagerly attached (users.roleid -> roles)."""
    return s.query(User).outerjoin(Role, User.roleid == Role.roleid).order_by(User.userid.asc()).all()


def list_roles(s: "Session") -> list[Role]:
    return s.query(Role).order_by(Role.roleid.asc()).all()


def update_role(s: "Session", actor: User | None, payload: dict) -> User:
    """Set a user's level and role id.

    Managers may change anyone, themselves included; there is no last-manager check.
    """
    user_id = parse_int(payload.get("userId"))
    level = clean(payload.get("level"))
    role_id = parse_int(payload.get("roleId"))
    if user_id is None or not level or role_id is None:
        raise ValidationFailed("User ID, level, and role ID are required")

    user = s.get(User, user_id)
    if user is None:
        raise NotFound("User not found")

    before = {"level": user.level, "roleid": user.roleid}
    user.level = level
    user.roleid = role_id

    record_event(
        s,
        actor=actor,
        action="user.role_update",
        entity_type="User",
        entity_id=str(user.userid),
        metadata={"before": before, "after": {"level": level, "roleid": role_id}},
    )
    return user


def update_profile(s: "Session", user: User, payload: dict) -> User:
    email = clean(payload.get("email"))
    phone = clean(payload.get("phone"))
    if not email or not phone:
        raise ValidationFailed("Please fill in all fields.")

    user.email = email
    user.phone = phone
    record_event(
        s,
        actor=user,
        action="user.update_profile",
        entity_type="User",
        entity_id=str(user.userid),
        metadata={"email": email, "phone": phone},
    )
    return user
