#!/usr/bin/env python3
"""
Run the release step, then hand the process over to gunicorn serving app.wsgi:app.

Usage:
    python scripts/start.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.hub.config import load_settings  # noqa: E402
from scripts.release import run_release  # noqa: E402


def gunicorn_argv(port: int, workers: int = 2) -> list[str]:
    return [
        "gunicorn",
        "app.wsgi:app",
        "--bind", f"0.0.0.0:{port}",
        "--workers", str(workers),
        "--access-logfile", "-",
        "--error-logfile", "-",
    ]


def main() -> None:
    try:
        settings = load_settings()
        workers = int(os.environ.get("WEB_CONCURRENCY") or 2)
        run_release()
    except (RuntimeError, ValueError) as e:
        print(f"Startup aborted: {e}", flush=True)
        sys.exit(1)

    print(f"Serving Support Hub on port {settings.port} with {workers} workers", flush=True)
    # exec so gunicorn receives the platform's signals directly.
    os.execvp("gunicorn", gunicorn_argv(settings.port, workers))


if __name__ == "__main__":
    main()
