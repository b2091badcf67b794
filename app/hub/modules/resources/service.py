from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from app.hub.audit import record_event
from app.hub.constants import DEFAULT_CUSTOM_RESOURCE_DESC, UNCATEGORIZED
from app.hub.errors import NotFound, OwnershipViolation, UserNotFound, ValidationFailed
from app.hub.models import User
from app.hub.modules.resources.models import Category, Resource, UserResource
from app.hub.utils import clean, parse_int

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.hub.rbac import Identity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DashboardEntry:
    resource: Resource
    is_pinned: bool


@dataclass
class Dashboard:
    all_resources: list[Resource] = field(default_factory=list)
    pinned: list[Resource] = field(default_factory=list)
    unpinned: list[Resource] = field(default_factory=list)
    custom: list[Resource] = field(default_factory=list)
    # Category name -> entries, in catalog order.
    categories: dict[str, list[DashboardEntry]] = field(default_factory=dict)
    pinned_ids: set[int] = field(default_factory=set)


def resolve_user(s: "Session", identity: "Identity") -> User:
    user = s.query(User).filter(User.username == identity.username).one_or_none()
    if user is None:
        raise UserNotFound("User not found")
    return user


def vetted_resources(s: "Session", *, order_by_id: bool = False) -> list[Resource]:
    q = (
        s.query(Resource)
        .outerjoin(Category, Resource.categoryid == Category.categoryid)
        .filter(Resource.isvetted.is_(True))
    )
    if order_by_id:
        return q.order_by(Resource.resourceid.asc()).all()
    return q.order_by(Category.categoryid.asc().nulls_last(), Resource.resourcename.asc()).all()


def pinned_resource_ids(s: "Session", user: User) -> set[int]:
    rows = (
        s.query(UserResource.resourceid)
        .filter(UserResource.userid == user.userid)
        .filter(UserResource.favoritestatus.is_(True))
        .all()
    )
    return {r[0] for r in rows}


def build_dashboard(s: "Session", user: User) -> Dashboard:
    all_resources = vetted_resources(s)
    custom = (
        s.query(Resource)
        .filter(Resource.submittedby_userid == user.userid)
        .order_by(Resource.resourcename.asc())
        .all()
    )
    pinned_ids = pinned_resource_ids(s, user)

    dash = Dashboard(all_resources=all_resources, custom=custom, pinned_ids=pinned_ids)
    for r in all_resources:
        is_pinned = r.resourceid in pinned_ids
        (dash.pinned if is_pinned else dash.unpinned).append(r)
        dash.categories.setdefault(r.categoryname or UNCATEGORIZED, []).append(DashboardEntry(r, is_pinned))
    return dash


def _pinnable_resource(s: "Session", user: User, resource_id: int) -> Resource:
    # Other users' unvetted submissions are private; treat them as missing.
    resource = (
        s.query(Resource)
        .filter(Resource.resourceid == resource_id)
        .filter(or_(Resource.isvetted.is_(True), Resource.submittedby_userid == user.userid))
        .one_or_none()
    )
    if resource is None:
        raise NotFound("Resource not found")
    return resource


def _pin_entry(s: "Session", user: User, resource_id: int, *, refresh: bool = False) -> UserResource | None:
    return s.get(UserResource, (user.userid, resource_id), populate_existing=refresh)


def toggle_pin(s: "Session", user: User, resource_id: int) -> bool:
    """Flip the caller's pin on a resource and return the new state.

    No row yet means unpinned, so the first toggle creates a pinned row.
    Read-then-write without a lock: concurrent toggles are last-write-wins.
    """
    _pinnable_resource(s, user, resource_id)

    entry = _pin_entry(s, user, resource_id)
    if entry is None:
        try:
            with s.begin_nested():
                s.add(
                    UserResource(
                        userid=user.userid,
                        resourceid=resource_id,
                        numviewed=0,
                        favoritestatus=True,
                        rating=None,
                    )
                )
                s.flush()
            is_pinned = True
        except IntegrityError:
            # A concurrent first toggle inserted the row; flip what it wrote.
            entry = _pin_entry(s, user, resource_id, refresh=True)
            if entry is None:
                raise
    if entry is not None:
        entry.favoritestatus = not entry.favoritestatus
        is_pinned = entry.favoritestatus
    s.flush()

    record_event(
        s,
        actor=user,
        action="resource.pin_toggle",
        entity_type="Resource",
        entity_id=str(resource_id),
        metadata={"is_pinned": is_pinned},
    )
    return is_pinned


def validate_custom_payload(payload: dict) -> list[str]:
    errors = []
    if not clean(payload.get("resourceName")) or not clean(payload.get("resourceUrl")):
        errors.append("Resource name and URL are required")
    return errors


def add_custom_resource(s: "Session", user: User, payload: dict) -> Resource:
    """Store a user submission and pin it for its creator in the same transaction."""
    errors = validate_custom_payload(payload)
    if errors:
        raise ValidationFailed("; ".join(errors))

    resource = Resource(
        resourcename=clean(payload.get("resourceName")),
        resourceurl=clean(payload.get("resourceUrl")),
        resourcedesc=clean(payload.get("resourceDesc")) or DEFAULT_CUSTOM_RESOURCE_DESC,
        resourcephone=None,
        categoryid=None,
        isvetted=False,
        submittedby_userid=user.userid,
    )
    s.add(resource)
    s.flush()

    s.add(
        UserResource(
            userid=user.userid,
            resourceid=resource.resourceid,
            numviewed=0,
            favoritestatus=True,
            rating=None,
        )
    )

    record_event(
        s,
        actor=user,
        action="resource.create",
        entity_type="Resource",
        entity_id=str(resource.resourceid),
        metadata={"name": resource.resourcename, "url": resource.resourceurl},
    )
    return resource


def _owned_resource(s: "Session", user: User, resource_id: int, verb: str) -> Resource:
    resource = (
        s.query(Resource)
        .filter(Resource.resourceid == resource_id)
        .filter(Resource.submittedby_userid == user.userid)
        .one_or_none()
    )
    if resource is None:
        raise OwnershipViolation(f"You can only {verb} resources you created")
    return resource


def edit_custom_resource(s: "Session", user: User, resource_id: int, payload: dict) -> Resource:
    """Update name, URL and description. Vetting and ownership never change here."""
    errors = validate_custom_payload(payload)
    if errors:
        raise ValidationFailed("Resource ID, name, and URL are required")

    resource = _owned_resource(s, user, resource_id, "edit")
    name = clean(payload.get("resourceName"))
    changes = {"old_name": resource.resourcename, "new_name": name}

    resource.resourcename = name
    resource.resourceurl = clean(payload.get("resourceUrl"))
    resource.resourcedesc = clean(payload.get("resourceDesc")) or f"Custom resource: {name}"

    record_event(
        s,
        actor=user,
        action="resource.edit",
        entity_type="Resource",
        entity_id=str(resource.resourceid),
        metadata=changes,
    )
    return resource


def delete_custom_resource(s: "Session", user: User, resource_id: int) -> None:
    resource = _owned_resource(s, user, resource_id, "delete")
    record_event(
        s,
        actor=user,
        action="resource.delete",
        entity_type="Resource",
        entity_id=str(resource.resourceid),
        metadata={"name": resource.resourcename},
    )
    s.delete(resource)


# ---------- Vetted catalog (managers) ----------

def _vetted_fields(payload: dict) -> dict:
    return {
        "resourcename": clean(payload.get("resourceName")),
        "resourceurl": clean(payload.get("resourceUrl")),
        "resourcephone": clean(payload.get("resourcePhone")),
        "resourcedesc": clean(payload.get("resourceDesc")),
        "categoryid": parse_int(payload.get("categoryId")),
    }


def add_vetted_resource(s: "Session", actor: User | None, payload: dict) -> Resource:
    fields = _vetted_fields(payload)
    if not fields["resourcename"]:
        raise ValidationFailed("Resource name is required")

    resource = Resource(**fields, isvetted=True, submittedby_userid=None)
    s.add(resource)
    s.flush()

    record_event(
        s,
        actor=actor,
        action="vetted_resource.create",
        entity_type="Resource",
        entity_id=str(resource.resourceid),
        metadata={"name": resource.resourcename, "categoryid": resource.categoryid},
    )
    return resource


def _vetted_resource(s: "Session", resource_id: int | None) -> Resource:
    if resource_id is None:
        raise ValidationFailed("Resource ID is required")
    resource = (
        s.query(Resource)
        .filter(Resource.resourceid == resource_id)
        .filter(Resource.isvetted.is_(True))
        .one_or_none()
    )
    if resource is None:
        raise NotFound("Vetted resource not found")
    return resource


def edit_vetted_resource(s: "Session", actor: User | None, resource_id: int | None, payload: dict) -> Resource:
    fields = _vetted_fields(payload)
    if not fields["resourcename"]:
        raise ValidationFailed("Resource name is required")

    resource = _vetted_resource(s, resource_id)
    changes = {}
    for name, value in fields.items():
        old = getattr(resource, name)
        if old != value:
            changes[name] = {"old": old, "new": value}
            setattr(resource, name, value)

    record_event(
        s,
        actor=actor,
        action="vetted_resource.edit",
        entity_type="Resource",
        entity_id=str(resource.resourceid),
        metadata={"changes": changes},
    )
    return resource


def delete_vetted_resource(s: "Session", actor: User | None, resource_id: int | None) -> None:
    resource = _vetted_resource(s, resource_id)
    record_event(
        s,
        actor=actor,
        action="vetted_resource.delete",
        entity_type="Resource",
        entity_id=str(resource.resourceid),
        metadata={"name": resource.resourcename},
    )
    s.delete(resource)
    logger.info("Vetted resource %s deleted", resource.resourceid)
