from __future__ import annotations

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from taskboard.config import SETTINGS

Base = declarative_base()
MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def make_engine(url: str) -> Engine:
    if url in MEMORY_URLS:
        # one shared connection, otherwise every session sees an empty database
        return create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True)


def make_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(bind=bind, autoflush=False, autocommit=False)


engine = make_engine(SETTINGS.database_url)
SessionLocal = make_session_factory(engine)


def init_db(bind: Engine | None = None) -> None:
    with (bind or engine).connect() as connection:
        connection.execute(text("SELECT 1"))


def create_schema(bind: Engine | None = None) -> None:
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
