"""
Database connection and session management.
SQLite by default; any SQLAlchemy URL works through DATABASE_URL.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from quizsmith.core.config import settings

Base = declarative_base()


def make_engine(url: str) -> Engine:
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args)


def make_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(bind=bind, autoflush=False, expire_on_commit=False)


engine = make_engine(settings.DATABASE_URL)
SessionLocal = make_session_factory(engine)


def init_db(bind: Engine = engine) -> None:
    # models must be imported so their tables are registered on Base
    from quizsmith.db import models  # noqa: F401

    Base.metadata.create_all(bind=bind)
