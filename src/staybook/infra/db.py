"""psycopg2 connection and transaction helpers.

A stay mutation (pricing, both night ledgers, payments, audit) is one
``txn()``: all of it commits or none of it does.
"""

import os
from contextlib import contextmanager
from typing import Any, Iterator, Sequence
from urllib.parse import urlparse

import psycopg2
from psycopg2.extensions import connection as PgConnection, cursor as PgCursor


def _dsn_has_password(dsn: str) -> bool:
    if "://" in dsn:
        return urlparse(dsn).password is not None
    return any(part.startswith("password=") for part in dsn.split())


def get_conn() -> PgConnection:
    """Open a connection to DATABASE_URL (URI or libpq key=value form).

    When the DSN has no password, DB_PASSWORD is used if set.

    Raises:
        RuntimeError: DATABASE_URL is missing.
    """
    dsn = os.environ.get("DATABASE_URL")
    if not dsn:
        raise RuntimeError("DATABASE_URL environment variable not set")

    extra: dict[str, str] = {}
    password = os.environ.get("DB_PASSWORD")
    if password and not _dsn_has_password(dsn):
        extra["password"] = password
    return psycopg2.connect(dsn, **extra)


@contextmanager
def txn(conn: PgConnection | None = None) -> Iterator[PgCursor]:
    """Yield a cursor; commit when the block exits cleanly, else roll back.

    A connection opened here is closed on exit; a passed-in one is left
    open for the caller.

        with txn() as cur:
            assign_room(cur, "BK-20260301120000-123", 12)
    """
    own = conn is None
    if own:
        conn = get_conn()
    try:
        with conn.cursor() as cur:
            yield cur
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        if own:
            conn.close()


def fetchone(
    cur: PgCursor, query: str, params: Sequence[Any] | None = None
) -> tuple[Any, ...] | None:
    cur.execute(query, params)
    return cur.fetchone()


def fetchall(
    cur: PgCursor, query: str, params: Sequence[Any] | None = None
) -> list[tuple[Any, ...]]:
    cur.execute(query, params)
    return cur.fetchall()


def for_update(
    cur: PgCursor,
    query: str,
    params: Sequence[Any] | None = None,
    *,
    nowait: bool = False,
) -> tuple[Any, ...] | None:
    """Run a SELECT with a row lock held until the transaction ends.

    With nowait=True a row already locked by another booking operation
    raises psycopg2.errors.LockNotAvailable instead of waiting.
    """
    lock = " FOR UPDATE NOWAIT" if nowait else " FOR UPDATE"
    return fetchone(cur, query.rstrip().rstrip(";") + lock, params)
