"""Database engine, session factory and the FastAPI `get_db` dependency.

Reads DATABASE_URL from the environment (default: local SQLite file).
Tables are created on startup by the app lifespan hook; there are no
migrations.
"""

from __future__ import annotations

import os

from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

load_dotenv()

DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./fundbridge.db")

_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=_connect_args, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db() -> None:
    """Create all tables (safe to call multiple times)."""
    from . import models  # noqa: F401  (registers mappers on Base.metadata)

    Base.metadata.create_all(bind=engine)


def get_db():
    """Yield a session for the duration of one request, then close it."""
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()
