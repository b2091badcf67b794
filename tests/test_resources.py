"""Dashboard, pin toggling, custom resources and the vetted catalog."""
from sqlalchemy.exc import OperationalError

from app.hub.constants import ADMIN_ROLE_ID, MANAGER_ROLE_ID, UNCATEGORIZED
from app.hub.db import session_scope
from app.hub.models import User
from app.hub.modules.resources.models import Resource, UserResource
from app.hub.modules.resources import service
from app.hub.modules.resources.service import build_dashboard, toggle_pin


def _add_custom(client, name="My Therapist", url="https://example.com/t", desc=None):
    body = {"resourceName": name, "resourceUrl": url}
    if desc is not None:
        body["resourceDesc"] = desc
    return client.post("/api/add-resource", json=body)


def _dashboard_for(app, username):
    with session_scope(app) as s:
        user = s.query(User).filter(User.username == username).one()
        return build_dashboard(s, user)


# ---------- Pins ----------

def test_toggle_pin_alternates(client, make_user, login, crisis_id):
    make_user("alice")
    login("alice")

    states = [client.post("/api/toggle-pin", json={"resourceId": crisis_id}).json["isPinned"] for _ in range(3)]
    assert states == [True, False, True]


def test_toggle_pin_accepts_form_bodies(app, client, make_user, login, crisis_id):
    user_id = make_user("alice")
    login("alice")

    r = client.post("/api/toggle-pin", data={"resourceId": str(crisis_id)})
    assert r.status_code == 200
    assert r.json == {"success": True, "isPinned": True}
    with session_scope(app) as s:
        link = s.get(UserResource, (user_id, crisis_id))
        assert link.favoritestatus is True
        assert link.numviewed == 0
        assert link.rating is None


def test_toggle_pin_requires_resource_id(client, make_user, login):
    make_user("alice")
    login("alice")
    r = client.post("/api/toggle-pin", json={})
    assert r.status_code == 400
    assert r.json["error"] == "Resource ID is required"


def test_toggle_pin_unknown_resource(client, make_user, login):
    make_user("alice")
    login("alice")
    r = client.post("/api/toggle-pin", json={"resourceId": 9999})
    assert r.status_code == 404


def test_cannot_pin_another_users_submission(app, client, make_user, login):
    make_user("alice")
    bob_id = make_user("bob")
    login("alice")
    resource_id = _add_custom(client, name="Alice's").json["resourceId"]
    client.get("/logout")

    login("bob")
    r = client.post("/api/toggle-pin", json={"resourceId": resource_id})
    assert r.status_code == 404
    assert r.json["error"] == "Resource not found"
    with session_scope(app) as s:
        assert s.get(UserResource, (bob_id, resource_id)) is None


def test_owner_can_unpin_own_submission(client, make_user, login):
    make_user("alice")
    login("alice")
    resource_id = _add_custom(client).json["resourceId"]
    r = client.post("/api/toggle-pin", json={"resourceId": resource_id})
    assert r.json["isPinned"] is False


def test_first_toggle_racing_another_insert_flips_the_stored_row(app, make_user, crisis_id, monkeypatch):
    user_id = make_user("alice")
    with session_scope(app) as s:
        s.add(UserResource(userid=user_id, resourceid=crisis_id, numviewed=0, favoritestatus=True))

    # The first lookup misses the row, as if another request inserted it just after.
    real_entry = service._pin_entry
    lookups = []

    def stale_entry(s, user, resource_id, *, refresh=False):
        lookups.append(refresh)
        if len(lookups) == 1:
            return None
        return real_entry(s, user, resource_id, refresh=refresh)

    monkeypatch.setattr(service, "_pin_entry", stale_entry)

    with app.test_request_context(), session_scope(app) as s:
        user = s.get(User, user_id)
        assert toggle_pin(s, user, crisis_id) is False

    assert lookups == [False, True]
    with session_scope(app) as s:
        assert s.get(UserResource, (user_id, crisis_id)).favoritestatus is False


def test_toggle_pin_for_vanished_user(client, crisis_id):
    with client.session_transaction() as sess:
        sess["is_logged_in"] = True
        sess["username"] = "ghost"
    r = client.post("/api/toggle-pin", json={"resourceId": crisis_id})
    assert r.status_code == 401
    assert r.json["error"] == "User not found"


def test_dashboard_for_vanished_user_redirects_to_login(client):
    with client.session_transaction() as sess:
        sess["is_logged_in"] = True
        sess["username"] = "ghost"
    r = client.get("/dashboard")
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/login")


# ---------- Custom resources ----------

def test_add_custom_resource_is_unvetted_and_pinned(app, client, make_user, login):
    user_id = make_user("alice")
    login("alice")

    r = _add_custom(client)
    assert r.status_code == 200
    assert r.json["success"] is True
    resource_id = r.json["resourceId"]

    with session_scope(app) as s:
        resource = s.get(Resource, resource_id)
        assert resource.isvetted is False
        assert resource.submittedby_userid == user_id
        assert resource.categoryid is None
        assert resource.resourcephone is None
        assert resource.resourcedesc == "Custom resource added by user"
        link = s.get(UserResource, (user_id, resource_id))
        assert link.favoritestatus is True


def test_add_custom_resource_requires_name_and_url(app, client, make_user, login):
    make_user("alice")
    login("alice")

    r = _add_custom(client, url="")
    assert r.status_code == 400
    assert r.json["error"] == "Resource name and URL are required"
    with session_scope(app) as s:
        assert s.query(Resource).filter(Resource.isvetted.is_(False)).count() == 0


def test_failed_add_leaves_no_orphan_resource(app, client, make_user, login, monkeypatch):
    make_user("alice")
    login("alice")

    def broken_audit(*args, **kwargs):
        raise OperationalError("INSERT INTO audit_events", {}, Exception("database is gone"))

    monkeypatch.setattr(service, "record_event", broken_audit)

    r = _add_custom(client)
    assert r.status_code == 500
    assert r.json == {"success": False, "error": "Failed to add resource"}
    with session_scope(app) as s:
        assert s.query(Resource).filter(Resource.isvetted.is_(False)).count() == 0
        assert s.query(UserResource).count() == 0


def test_owner_can_edit_custom_resource(app, client, make_user, login):
    make_user("alice")
    login("alice")
    resource_id = _add_custom(client).json["resourceId"]

    r = client.post(
        "/api/edit-resource",
        json={"resourceId": resource_id, "resourceName": "Renamed", "resourceUrl": "https://example.com/r"},
    )
    assert r.status_code == 200
    with session_scope(app) as s:
        resource = s.get(Resource, resource_id)
        assert resource.resourcename == "Renamed"
        assert resource.resourceurl == "https://example.com/r"
        assert resource.resourcedesc == "Custom resource: Renamed"
        assert resource.isvetted is False


def test_non_owner_cannot_edit_or_delete(app, client, make_user, login):
    make_user("alice")
    make_user("mallory")
    login("alice")
    resource_id = _add_custom(client, name="Alice's").json["resourceId"]
    client.get("/logout")

    login("mallory")
    r = client.post(
        "/api/edit-resource",
        json={"resourceId": resource_id, "resourceName": "Hijacked", "resourceUrl": "https://evil.example"},
    )
    assert r.status_code == 403
    assert r.json["error"] == "You can only edit resources you created"

    r = client.post("/api/delete-resource", json={"resourceId": resource_id})
    assert r.status_code == 403
    assert r.json["error"] == "You can only delete resources you created"

    with session_scope(app) as s:
        assert s.get(Resource, resource_id).resourcename == "Alice's"


def test_vetted_resources_are_not_user_editable(client, make_user, login, crisis_id):
    make_user("alice")
    login("alice")
    r = client.post(
        "/api/edit-resource",
        json={"resourceId": crisis_id, "resourceName": "x", "resourceUrl": "https://x.example"},
    )
    assert r.status_code == 403
    assert client.post("/api/delete-resource", json={"resourceId": crisis_id}).status_code == 403


def test_edit_requires_id_name_and_url(client, make_user, login):
    make_user("alice")
    login("alice")
    assert client.post("/api/edit-resource", json={"resourceName": "x", "resourceUrl": "y"}).status_code == 400
    resource_id = _add_custom(client).json["resourceId"]
    r = client.post("/api/edit-resource", json={"resourceId": resource_id, "resourceName": "x"})
    assert r.status_code == 400


def test_owner_can_delete_custom_resource(app, client, make_user, login):
    user_id = make_user("alice")
    login("alice")
    resource_id = _add_custom(client).json["resourceId"]

    r = client.post("/api/delete-resource", json={"resourceId": resource_id})
    assert r.status_code == 200
    with session_scope(app) as s:
        assert s.get(Resource, resource_id) is None
        assert s.get(UserResource, (user_id, resource_id)) is None


# ---------- Dashboard ----------

def test_dashboard_groups_and_partitions(app, client, make_user, login, crisis_id):
    make_user("alice")
    login("alice")
    with session_scope(app) as s:
        s.add_all(
            [
                Resource(resourcename="Warmline", categoryid=2, isvetted=True),
                Resource(resourcename="Anchor Group", categoryid=None, isvetted=True),
                Resource(resourcename="Zen Counseling", categoryid=2, isvetted=True),
            ]
        )
    client.post("/api/toggle-pin", json={"resourceId": crisis_id})
    _add_custom(client, name="Alice's link")

    dash = _dashboard_for(app, "alice")
    assert [r.resourcename for r in dash.pinned] == ["988 Suicide & Crisis Lifeline"]
    assert [r.resourcename for r in dash.unpinned] == ["Warmline", "Zen Counseling", "Anchor Group"]
    assert list(dash.categories) == ["Crisis Lines", "Mental Health", UNCATEGORIZED]
    assert [(e.resource.resourcename, e.is_pinned) for e in dash.categories["Crisis Lines"]] == [
        ("988 Suicide & Crisis Lifeline", True)
    ]
    assert [r.resourcename for r in dash.custom] == ["Alice's link"]
    # Custom submissions never show up in the vetted catalog.
    assert all(r.isvetted for r in dash.all_resources)
    assert crisis_id in dash.pinned_ids


def test_dashboard_page_renders(client, make_user, login):
    make_user("alice")
    login("alice")
    _add_custom(client, name="Neighbourhood Pantry")
    r = client.get("/dashboard")
    assert r.status_code == 200
    assert b"Neighbourhood Pantry" in r.data
    assert b"Crisis Lines" in r.data


# ---------- Vetted catalog ----------

def test_admin_added_resource_appears_for_everyone_unpinned(app, client, make_user, login):
    make_user("adam", level="M", roleid=ADMIN_ROLE_ID)
    make_user("alice")
    make_user("bob")
    login("adam")

    r = client.post(
        "/api/admin/add-resource",
        json={"resourceName": "Text Line", "resourceUrl": None, "resourcePhone": "741741", "categoryId": 3},
    )
    assert r.status_code == 200
    assert r.json["success"] is True

    with session_scope(app) as s:
        resource = s.query(Resource).filter(Resource.resourcename == "Text Line").one()
        assert resource.isvetted is True
        assert resource.submittedby_userid is None
        assert resource.resourceurl is None

    for username in ("alice", "bob", "adam"):
        dash = _dashboard_for(app, username)
        entries = dash.categories["Text Support"]
        assert [(e.resource.resourcename, e.is_pinned) for e in entries] == [("Text Line", False)]


def test_admin_add_requires_name(client, make_user, login):
    make_user("mona", level="M", roleid=MANAGER_ROLE_ID)
    login("mona")
    r = client.post("/api/admin/add-resource", json={"resourcePhone": "123"})
    assert r.status_code == 400


def test_admin_edit_updates_vetted_resource(app, client, make_user, login, crisis_id):
    make_user("mona", level="M", roleid=MANAGER_ROLE_ID)
    login("mona")
    r = client.post(
        "/api/admin/edit-resource",
        json={
            "resourceId": crisis_id,
            "resourceName": "988 Lifeline",
            "resourceUrl": "",
            "resourcePhone": "988",
            "resourceDesc": "Call or text 988",
            "categoryId": "2",
        },
    )
    assert r.status_code == 200
    with session_scope(app) as s:
        resource = s.get(Resource, crisis_id)
        assert resource.resourcename == "988 Lifeline"
        assert resource.resourceurl is None
        assert resource.categoryid == 2
        assert resource.isvetted is True


def test_admin_edit_and_delete_ignore_unvetted_rows(app, client, make_user, login):
    make_user("alice")
    make_user("mona", level="M", roleid=MANAGER_ROLE_ID)
    login("alice")
    resource_id = _add_custom(client, name="Alice's").json["resourceId"]
    client.get("/logout")

    login("mona")
    r = client.post("/api/admin/edit-resource", json={"resourceId": resource_id, "resourceName": "Taken over"})
    assert r.status_code == 404
    r = client.post("/api/admin/delete-resource", json={"resourceId": resource_id})
    assert r.status_code == 404

    with session_scope(app) as s:
        resource = s.get(Resource, resource_id)
        assert resource.resourcename == "Alice's"
        assert resource.isvetted is False


def test_admin_delete_vetted_resource(app, client, make_user, login, crisis_id):
    user_id = make_user("alice")
    make_user("mona", level="M", roleid=MANAGER_ROLE_ID)
    login("alice")
    client.post("/api/toggle-pin", json={"resourceId": crisis_id})
    client.get("/logout")

    login("mona")
    r = client.post("/api/admin/delete-resource", json={"resourceId": crisis_id})
    assert r.status_code == 200
    with session_scope(app) as s:
        assert s.get(Resource, crisis_id) is None
        assert s.get(UserResource, (user_id, crisis_id)) is None


def test_admin_page_lists_vetted_only(client, make_user, login):
    make_user("alice")
    make_user("mona", level="M", roleid=MANAGER_ROLE_ID)
    login("alice")
    _add_custom(client, name="Private Link")
    client.get("/logout")

    login("mona")
    r = client.get("/admin")
    assert r.status_code == 200
    assert b"Private Link" not in r.data
    assert b"Lifeline" in r.data
