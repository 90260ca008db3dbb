# ecopoints/database.py
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from ecopoints.models import Base

logger = logging.getLogger(__name__)


def build_engine(url: str) -> Engine:
    if not url:
        raise RuntimeError("DATABASE_URL is not set")

    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False, "timeout": 30}}
        # in-memory databases live on one connection; share it across threads
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, future=True, **kwargs)

        @event.listens_for(engine, "connect")
        def _sqlite_connect(dbapi_conn, _record):
            # SQLAlchemy emits BEGIN itself (see below)
            dbapi_conn.isolation_level = None

        @event.listens_for(engine, "begin")
        def _sqlite_begin(conn):
            # take the write lock when the transaction starts; writers wait on the busy timeout
            conn.exec_driver_sql("BEGIN IMMEDIATE")

        return engine

    return create_engine(url, pool_pre_ping=True, future=True)


def build_sessionmaker(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)


@contextmanager
def db_session(SessionLocal: sessionmaker) -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_db(request: Request) -> Generator[Session, None, None]:
    with db_session(request.app.state.sessionmaker) as db:
        yield db


def ping(engine: Engine) -> None:
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))


def init_db(engine: Engine) -> None:
    """Create missing tables and indexes (idempotent)."""
    ping(engine)
    Base.metadata.create_all(bind=engine, checkfirst=True)
    logger.info("Database schema ensured (%s)", engine.url.get_backend_name())
