"""Engine construction and time helpers for catalog access."""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime

from sqlalchemy import event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.pool import NullPool
from sqlmodel import create_engine

from catalog_find.errors import ConfigError


def utc_now() -> datetime:
    """Current UTC timestamp."""

    return datetime.now(tz=UTC)


def build_catalog_engine(url: str, *, busy_timeout_ms: int = 5000) -> Engine:
    """Build a SQLAlchemy engine for the catalog database URL.

    One connection is used per run, so no pool is kept. SQLite catalogs (used
    for local copies and tests) get the same busy-timeout policy everywhere.
    """

    try:
        parsed = make_url(url)
    except ArgumentError as error:
        raise ConfigError(f"Invalid catalog database URL {url!r}: {error}") from error

    if parsed.get_backend_name() != "sqlite":
        try:
            return create_engine(parsed, poolclass=NullPool)
        except ModuleNotFoundError as error:
            raise ConfigError(
                f"Database driver for {parsed.drivername!r} is not installed: {error}",
            ) from error

    engine = create_engine(
        parsed,
        connect_args={
            "check_same_thread": False,
            "timeout": max(1.0, busy_timeout_ms / 1000.0),
        },
        poolclass=NullPool,
    )
    event.listen(
        engine,
        "connect",
        lambda dbapi_connection, _: _apply_sqlite_pragmas(
            dbapi_connection,
            busy_timeout_ms=busy_timeout_ms,
        ),
    )
    return engine


def _apply_sqlite_pragmas(dbapi_connection: sqlite3.Connection, *, busy_timeout_ms: int) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute(f"PRAGMA busy_timeout = {max(1, busy_timeout_ms)}")
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()
