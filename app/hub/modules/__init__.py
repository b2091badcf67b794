"""
Feature modules live under this package.

Each module owns its models, services and blueprints while reusing the
platform primitives (auth, RBAC, audit, DB session).
"""
