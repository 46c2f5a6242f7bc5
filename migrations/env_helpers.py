"""Database URL resolution for Alembic.

Kept apart from env.py so it can be imported (and tested) without an
active alembic context.
"""

from __future__ import annotations

import os

from psycopg2.extensions import parse_dsn
from sqlalchemy.engine import URL, make_url

DRIVER = "postgresql+psycopg2"


def _url_from_uri(raw: str, fallback_password: str) -> URL:
    if raw.startswith("postgres://"):
        raw = "postgresql://" + raw[len("postgres://"):]
    url = make_url(raw)
    if url.drivername in ("postgresql", "postgres"):
        url = url.set(drivername=DRIVER)
    if not url.password and fallback_password:
        url = url.set(password=fallback_password)
    return url


def _url_from_libpq(dsn: str, fallback_password: str) -> URL:
    """Build a URL from a libpq key=value DSN.

    Unix-socket hosts (paths) travel in the query string, as libpq expects.
    """
    params = parse_dsn(dsn)
    host = params.get("host", "localhost")
    socket_host = host.startswith("/")
    return URL.create(
        DRIVER,
        username=params.get("user") or None,
        password=params.get("password") or fallback_password or None,
        host=None if socket_host else host,
        port=None if socket_host else int(params.get("port", 5432)),
        database=params.get("dbname") or None,
        query={"host": host} if socket_host else {},
    )


def get_database_url() -> str:
    """SQLAlchemy URL for DATABASE_URL (URI or libpq DSN), with DB_PASSWORD
    filled in when the DSN carries none."""
    raw = os.environ.get("DATABASE_URL")
    if not raw:
        raise RuntimeError("DATABASE_URL is required to run migrations")
    fallback_password = os.environ.get("DB_PASSWORD", "")
    if "://" in raw:
        url = _url_from_uri(raw, fallback_password)
    else:
        url = _url_from_libpq(raw, fallback_password)
    return url.render_as_string(hide_password=False)
