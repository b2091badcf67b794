"""
Release-phase helper.

Goal:
- Fail fast if DATABASE_URL is missing in production (avoid silently using local defaults).
- Create missing tables and seed roles/categories/manager (idempotent; does NOT overwrite passwords).

Usage:
  python scripts/release.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _require_env(name: str) -> str:
    v = (os.environ.get(name) or "").strip()
    if not v:
        raise RuntimeError(f"Missing required environment variable {name}.")
    return v


def run_release() -> None:
    env = (os.environ.get("ENV") or "").strip().lower()
    db_url = None
    if env in ("prod", "production"):
        db_url = _require_env("DATABASE_URL")
        # Guardrail: prevent accidental prod deploys against SQLite.
        if db_url.startswith("sqlite"):
            raise RuntimeError("Refusing to run release on sqlite DATABASE_URL in production. Set DATABASE_URL to Postgres.")

    print("=== Support Hub release start ===", flush=True)
    print(f"ENV={env or '(unset)'}", flush=True)

    print("Creating tables and seeding (idempotent)...", flush=True)
    from scripts import init_db

    init_db.seed_only(database_url=db_url)
    print("Seed complete.", flush=True)
    print("=== Support Hub release done ===", flush=True)


def main() -> None:
    run_release()


if __name__ == "__main__":
    main()
