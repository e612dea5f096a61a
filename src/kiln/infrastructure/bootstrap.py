"""Composition root: wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.
"""

from __future__ import annotations

import functools
from collections.abc import Callable
from pathlib import Path

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from kiln.infrastructure.config import Settings, load_settings
from kiln.infrastructure.persistence.orm import Base
from kiln.infrastructure.persistence.unit_of_work import SqlAlchemyUnitOfWork


def build_engine(database_url: str, echo: bool = False, lock_timeout: float = 10.0) -> Engine:
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(url, echo=echo, pool_pre_ping=True)

    if url.database in (None, "", ":memory:"):
        # One shared connection, or every session would see its own empty database.
        engine = create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(url, echo=echo, connect_args={"timeout": lock_timeout})
        # SQLite ignores FOR UPDATE and pysqlite defers BEGIN to the first write.
        # BEGIN IMMEDIATE takes the database write lock when the transaction
        # starts, so a second writer waits (then fails) before its first read.
        event.listen(engine, "connect", _disable_pysqlite_begin)
        event.listen(engine, "begin", _begin_immediate)
    event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def _disable_pysqlite_begin(dbapi_connection, connection_record) -> None:
    dbapi_connection.isolation_level = None


def _begin_immediate(conn) -> None:
    conn.exec_driver_sql("BEGIN IMMEDIATE")


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def init_db(engine: Engine) -> None:
    """Create any missing tables."""
    Base.metadata.create_all(engine)


def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


@functools.lru_cache(maxsize=None)
def _engine_for(database_url: str, echo: bool) -> Engine:
    engine = build_engine(database_url, echo=echo)
    init_db(engine)
    return engine


def unit_of_work_factory(
    settings: Settings | None = None,
) -> Callable[[], SqlAlchemyUnitOfWork]:
    settings = settings or load_settings()
    sessions = session_factory(_engine_for(settings.database_url, settings.echo_sql))
    return lambda: SqlAlchemyUnitOfWork(sessions)
