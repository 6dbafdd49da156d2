# tracker/db.py
import os
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

# Default dev DB for the client cache table; DATABASE_URL overrides it
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./request_tracker.db")


def _make_engine(url: str):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


engine = _make_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def reconfigure(url: str):
    """Reconfigure the DB engine and session factory at runtime (for tests)."""
    global engine, SessionLocal
    engine = _make_engine(url)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(url: Optional[str] = None):
    """Create tables if they don't exist. Errors propagate to the caller."""
    if url:
        reconfigure(url)
    import tracker.models  # noqa: F401
    Base.metadata.create_all(bind=engine)
