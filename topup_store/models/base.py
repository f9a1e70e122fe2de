"""
Database engine, session management, and base model.

Every model inherits from Base. Every request gets a session
from get_db().
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from topup_store.config import get_settings

settings = get_settings()

# pool_pre_ping=True tests connections before using them, which
# handles a restarted database or a stale pooled connection.
engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
)

# autocommit=False: the atomic transaction runner decides when
# changes are committed or rolled back.
# autoflush=False: reads inside a transaction never push pending
# writes to the database, so every read sees committed state.
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    pass


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    """
    Generate a document id on the client side.

    Orders and redeemables are referenced by ledger entries
    created in the same transaction, before anything is flushed,
    so their ids cannot come from the database.
    """
    return str(uuid.uuid4())


def get_db():
    """
    Provide a database session for a single request.

    The try/finally guarantees the session is closed even if
    the request fails, so pooled connections are never leaked.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
