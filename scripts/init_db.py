import sys
from pathlib import Path
import os

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.hub.config import load_settings  # noqa: E402
from app.hub.constants import CRISIS_RESOURCE_NAME, DEFAULT_ROLES, MANAGER_LEVEL, MANAGER_ROLE_ID  # noqa: E402
from app.hub.models import Base, Role, User  # noqa: E402
from app.hub.modules.resources.models import Category, Resource  # noqa: E402
from app.hub.security import hash_password  # noqa: E402
from scripts._db_utils import create_script_engine, script_session  # noqa: E402

DEFAULT_CATEGORIES = (
    (1, "Crisis Lines", "Call or text any time, day or night."),
    (2, "Mental Health", "Counseling and therapy services."),
    (3, "Text Support", "Support over SMS and chat."),
    (4, "Community", "Local groups and peer support."),
)


def seed_only(*, database_url: str | None = None) -> None:
    """
    Create tables and seed roles/categories/crisis line/manager account in an idempotent way.
    Does NOT overwrite an existing manager's password.
    """
    manager_username = (os.environ.get("MANAGER_USERNAME") or "manager").strip()
    manager_email = (os.environ.get("MANAGER_EMAIL") or "manager@example.com").strip().lower()
    manager_password = os.environ.get("MANAGER_PASSWORD") or "change-me"

    db_url = (database_url or load_settings().database_url).strip()

    engine = create_script_engine(db_url)
    try:
        Base.metadata.create_all(bind=engine)
    finally:
        engine.dispose()

    with script_session(db_url) as s:
        for roleid, rolename in DEFAULT_ROLES.items():
            if s.get(Role, roleid) is None:
                s.add(Role(roleid=roleid, rolename=rolename))

        for categoryid, name, description in DEFAULT_CATEGORIES:
            if s.get(Category, categoryid) is None:
                s.add(Category(categoryid=categoryid, categoryname=name, categorydescription=description))
        s.flush()

        crisis = s.query(Resource).filter(Resource.resourcename == CRISIS_RESOURCE_NAME).one_or_none()
        if crisis is None:
            s.add(
                Resource(
                    resourcename=CRISIS_RESOURCE_NAME,
                    resourceurl="https://988lifeline.org",
                    resourcephone="988",
                    resourcedesc="Free, confidential support for people in distress, 24/7.",
                    categoryid=1,
                    isvetted=True,
                    submittedby_userid=None,
                )
            )

        user = s.query(User).filter(User.username == manager_username).one_or_none()
        if user is None:
            hashed = hash_password(manager_password)
            if not hashed.ok:
                raise RuntimeError(f"Could not hash manager password: {hashed.error}")
            s.add(
                User(
                    username=manager_username,
                    password_hash=hashed.hash,
                    email=manager_email,
                    level=MANAGER_LEVEL,
                    roleid=MANAGER_ROLE_ID,
                )
            )

    print("Initialized database (seed_only).")
    print(f"Manager username: {manager_username}")
    print("Manager password: (from MANAGER_PASSWORD)")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
