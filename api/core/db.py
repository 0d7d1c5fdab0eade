"""
Async database access helpers (raw SQL) using asyncpg.

The relational upload store owns its pool and creates it lazily through
`create_pool()`; the helpers below take that pool explicitly.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...
"""

from __future__ import annotations

import ssl
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import asyncpg

# 57P03 = cannot_connect_now, sent while the server is still starting up.
TRANSIENT_SQLSTATES = frozenset({"57P03"})

_STARTING_UP_MESSAGE = "database system is starting up"


def _sanitize_database_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def _insecure_ssl_context() -> ssl.SSLContext:
    # Hosted Postgres offerings commonly use certificates we cannot verify.
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


def is_transient_db_error(exc: BaseException) -> bool:
    """
    True when the server signals it is not ready yet.
    """
    if isinstance(exc, asyncpg.exceptions.CannotConnectNowError):
        return True
    if getattr(exc, "sqlstate", None) in TRANSIENT_SQLSTATES:
        return True
    return _STARTING_UP_MESSAGE in str(exc).lower()


async def create_pool(database_url: str, *, use_ssl: bool = False) -> asyncpg.Pool:
    url = (database_url or "").strip()
    if not url:
        raise RuntimeError("DATABASE_URL is not set.")
    return await asyncpg.create_pool(
        dsn=_sanitize_database_url(url),
        min_size=1,
        max_size=5,
        command_timeout=30,
        ssl=_insecure_ssl_context() if use_ssl else None,
    )


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


async def fetch_one(pool: asyncpg.Pool, sql: str, *args: Any) -> dict[str, Any] | None:
    """
    Run a query and return a single row as a dict (or None).
    """
    row = await pool.fetchrow(sql, *args)
    return _record_to_dict(row) if row is not None else None


async def fetch_value(pool: asyncpg.Pool, sql: str, *args: Any) -> Any:
    """
    Run a query and return the first column of the first row.
    """
    return await pool.fetchval(sql, *args)


async def execute(pool: asyncpg.Pool, sql: str, *args: Any) -> None:
    """
    Run a statement (INSERT/UPDATE/DELETE/DDL). No result returned.
    """
    await pool.execute(sql, *args)
