"""
Initialize the preference database.

Run this script to set up your database:
    python -m paperchat.db.init_db
"""
from sqlalchemy.engine import Engine

from .database import Base, make_engine
from .models import Preference  # noqa: F401  (registers the table on Base.metadata)


def init_db(engine: Engine = None) -> Engine:
    """Create all tables. Safe to call repeatedly."""
    engine = engine or make_engine()
    Base.metadata.create_all(bind=engine)
    return engine


if __name__ == "__main__":
    print("Initializing database...")
    created = init_db()
    print(f"✓ Tables created at {created.url}")
    print("  - preferences (settings and conversation logs)")
