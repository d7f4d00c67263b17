"""
Create tables directly from the ORM metadata (local development only).
Production uses `alembic upgrade head` via scripts/release.py.

Usage:
  python scripts/init_db.py
"""
import os
import sys
from pathlib import Path

from sqlalchemy import create_engine

# Ensure repo root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.framecamp.models import Base  # noqa: E402


def create_tables(database_url: str | None = None) -> None:
    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///framecamp.db").strip()
    engine = create_engine(db_url, future=True)
    try:
        Base.metadata.create_all(bind=engine)
    finally:
        engine.dispose()
    print(f"Tables created on {db_url.split('@')[-1]}", flush=True)


if __name__ == "__main__":
    create_tables()
