"""Database access layer using psycopg2.

Provides:
- get_conn(): Get a database connection from DATABASE_URL
- database_url(): URL form for migrations, DB_PASSWORD injected
- txn(): Context manager for short, safe transactions
- fetchone(): Query helper
"""

import os
from contextlib import contextmanager
from typing import Any, Iterator, Sequence
from urllib.parse import quote_plus, urlparse, urlunparse

import psycopg2
from psycopg2.extensions import connection as PgConnection, cursor as PgCursor


def database_url() -> str:
    """Postgres URL for SQLAlchemy (migrations).

    Accepts postgres:// and postgresql:// URLs only. When the URL carries no
    password and DB_PASSWORD is set (secret mounted separately), the
    password is injected.

    Raises:
        RuntimeError: If DATABASE_URL is not set or is not a URL.
    """
    url = os.environ.get("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL environment variable not set")
    if "://" not in url:
        raise RuntimeError("DATABASE_URL must be a postgres:// URL to run migrations")

    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]

    db_password = os.environ.get("DB_PASSWORD", "")
    parsed = urlparse(url)
    if db_password and not parsed.password:
        netloc = f"{quote_plus(parsed.username or '')}:{quote_plus(db_password)}@{parsed.hostname or ''}"
        if parsed.port:
            netloc += f":{parsed.port}"
        url = urlunparse(parsed._replace(netloc=netloc))
    return url


def _has_password(dsn: str) -> bool:
    if "://" in dsn:
        return bool(urlparse(dsn).password)
    return "password=" in dsn


def get_conn() -> PgConnection:
    """Get a new database connection from DATABASE_URL.

    Accepts a URL or a libpq key=value DSN. DB_PASSWORD is passed
    separately when the DSN carries no password.

    Raises:
        RuntimeError: If DATABASE_URL is not set.
        psycopg2.Error: On connection failure.
    """
    dsn = os.environ.get("DATABASE_URL")
    if not dsn:
        raise RuntimeError("DATABASE_URL environment variable not set")

    db_password = os.environ.get("DB_PASSWORD", "")
    if db_password and not _has_password(dsn):
        return psycopg2.connect(dsn, password=db_password)
    return psycopg2.connect(dsn)


@contextmanager
def txn(conn: PgConnection | None = None) -> Iterator[PgCursor]:
    """Context manager for a short, safe transaction.

    If conn is None, creates a new connection that is closed on exit.
    Commits on successful exit, rolls back on exception.

    Example:
        with txn() as cur:
            cur.execute("SELECT id FROM customers WHERE phone_number = %s", (phone,))
    """
    owns_conn = conn is None
    if owns_conn:
        conn = get_conn()

    try:
        with conn.cursor() as cur:
            yield cur
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        if owns_conn:
            conn.close()


def fetchone(
    cur: PgCursor,
    query: str,
    params: Sequence[Any] | None = None,
) -> tuple[Any, ...] | None:
    """Execute query and fetch one row (None if no results)."""
    cur.execute(query, params)
    return cur.fetchone()
