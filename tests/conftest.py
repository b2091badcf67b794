import pytest

from app.hub import create_app
from app.hub.constants import CRISIS_RESOURCE_NAME, DEFAULT_ROLES, USER_LEVEL, USER_ROLE_ID
from app.hub.db import session_scope
from app.hub.models import Base, Role, User
from app.hub.modules.resources.models import Category, Resource
from app.hub.security import hash_password

TEST_HASH_METHOD = "pbkdf2:sha256:1000"


@pytest.fixture()
def csrf_enabled():
    return False


@pytest.fixture()
def app(tmp_path, monkeypatch, csrf_enabled):
    monkeypatch.setenv("SESSION_SECRET", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("CSRF_ENABLED", "1" if csrf_enabled else "0")
    monkeypatch.setenv("PASSWORD_HASH_METHOD", TEST_HASH_METHOD)
    monkeypatch.delenv("DB_SSL", raising=False)

    app = create_app()
    app.config["TESTING"] = True

    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        for roleid, rolename in DEFAULT_ROLES.items():
            s.add(Role(roleid=roleid, rolename=rolename))
        s.add_all(
            [
                Category(categoryid=1, categoryname="Crisis Lines"),
                Category(categoryid=2, categoryname="Mental Health"),
                Category(categoryid=3, categoryname="Text Support"),
            ]
        )
        s.flush()
        s.add(
            Resource(
                resourcename=CRISIS_RESOURCE_NAME,
                resourcephone="988",
                resourceurl="https://988lifeline.org",
                categoryid=1,
                isvetted=True,
            )
        )

    return app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def make_user(app):
    """Insert a user directly and return its userid."""

    def _make(username, password="pw", *, level=USER_LEVEL, roleid=USER_ROLE_ID, email=None):
        with session_scope(app) as s:
            u = User(
                username=username,
                password_hash=hash_password(password, method=TEST_HASH_METHOD).hash,
                email=email or f"{username}@example.com",
                phone="555-0100",
                level=level,
                roleid=roleid,
            )
            s.add(u)
            s.flush()
            return u.userid

    return _make


@pytest.fixture()
def login(client):
    def _login(username, password="pw"):
        return client.post("/login", data={"username": username, "password": password}, follow_redirects=False)

    return _login


@pytest.fixture()
def crisis_id(app):
    with session_scope(app) as s:
        return s.query(Resource).filter(Resource.resourcename == CRISIS_RESOURCE_NAME).one().resourceid
