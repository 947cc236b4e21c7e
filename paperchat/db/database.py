from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import declarative_base, sessionmaker

from paperchat.config import DATABASE_URL


def make_engine(url: str = DATABASE_URL) -> Engine:
    """
    Build an engine for the preference database.

    SQLite (the default) needs its parent directory and cross-thread access,
    since FastAPI runs sync endpoints in a worker pool.
    """
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite":
        if parsed.database and parsed.database != ":memory:":
            Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)
        return create_engine(url, connect_args={"check_same_thread": False})

    return create_engine(
        url,
        pool_size=5,
        max_overflow=10,
        pool_recycle=3600,      # Recycle connections after 1 hour
        pool_pre_ping=True      # Test connection health before use
    )


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Base class for declarative models
Base = declarative_base()
