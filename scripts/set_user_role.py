#!/usr/bin/env python3
"""Set a user's level and role from the command line (bootstrap the first manager).

Usage:
  python scripts/set_user_role.py --username alice --role manager
"""

import sys
import argparse
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.hub.config import load_settings  # noqa: E402
from app.hub.constants import (  # noqa: E402
    ADMIN_ROLE_ID,
    MANAGER_LEVEL,
    MANAGER_ROLE_ID,
    USER_LEVEL,
    USER_ROLE_ID,
)
from app.hub.errors import ServiceError  # noqa: E402
from app.hub.models import User  # noqa: E402
from app.hub.modules.accounts.service import update_role  # noqa: E402
from scripts._db_utils import script_session  # noqa: E402

ROLE_CHOICES = {
    "admin": (MANAGER_LEVEL, ADMIN_ROLE_ID),
    "manager": (MANAGER_LEVEL, MANAGER_ROLE_ID),
    "user": (USER_LEVEL, USER_ROLE_ID),
}


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--username", required=True, help="Account to change")
    parser.add_argument("--role", required=True, choices=sorted(ROLE_CHOICES))
    args = parser.parse_args()

    level, role_id = ROLE_CHOICES[args.role]
    with script_session(load_settings().database_url) as s:
        user = s.query(User).filter(User.username == args.username).one_or_none()
        if not user:
            print(f"User not found: {args.username}")
            return
        try:
            update_role(s, None, {"userId": user.userid, "level": level, "roleId": role_id})
        except ServiceError as e:
            print(f"Could not update role: {e}")
            raise SystemExit(1)
    print(f"{args.username} is now {args.role} (level={level}, roleid={role_id})")


if __name__ == "__main__":
    main()
