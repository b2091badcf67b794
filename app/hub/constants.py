"""
Central constants for the support hub.
"""
from __future__ import annotations

# users.level value carried by managers and admins
MANAGER_LEVEL = "M"
USER_LEVEL = "U"

# roles.roleid of the Manager role (admins share level "M" but not this id)
ADMIN_ROLE_ID = 1
MANAGER_ROLE_ID = 2
USER_ROLE_ID = 3

DEFAULT_ROLES = {
    ADMIN_ROLE_ID: "Admin",
    MANAGER_ROLE_ID: "Manager",
    USER_ROLE_ID: "User",
}

# Pinned for every new account when present in the catalog
CRISIS_RESOURCE_NAME = "988 Suicide & Crisis Lifeline"

UNCATEGORIZED = "Uncategorized"
DEFAULT_CUSTOM_RESOURCE_DESC = "Custom resource added by user"
