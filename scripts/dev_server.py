#!/usr/bin/env python3
"""Run migrations and start the API with autoreload for local development."""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
BACKEND = ROOT / "backend"

MIGRATE = [sys.executable, "-m", "alembic", "upgrade", "head"]
SERVE = [sys.executable, "-m", "uvicorn", "geartracker.main:app", "--reload"]


def main() -> int:
    migrate = subprocess.run(MIGRATE, cwd=BACKEND, check=False)
    if migrate.returncode != 0:
        print("Migrations failed; not starting the server", file=sys.stderr)
        return migrate.returncode

    server = subprocess.Popen(SERVE, cwd=BACKEND)
    try:
        return server.wait()
    except KeyboardInterrupt:
        server.terminate()
        return server.wait()


if __name__ == "__main__":
    sys.exit(main())
