"""
PostgreSQL-backed upload store.

Keeps every upload as a row in `uploads`; the latest one is the row with the
greatest (uploaded_at, id). All SQL runs through the fixed-delay retry so a
database that is still starting up does not fail requests outright.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import asyncpg

from core import db
from core.errors import StoreError, StoreUnavailableError, StoreUnconfiguredError
from core.retry import INIT_POLICY, QUERY_POLICY, RetryPolicy, run_with_retry

from .store import DEFAULT_MIME_TYPE, StoredUpload, UploadRecord, UploadStore

T = TypeVar("T")

logger = logging.getLogger(__name__)

CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS uploads (
  id bigserial PRIMARY KEY,
  original_name text NOT NULL,
  mimetype text NOT NULL,
  size_bytes bigint NOT NULL,
  uploaded_at timestamptz NOT NULL DEFAULT now(),
  delimiter text NOT NULL DEFAULT ',',
  has_header boolean NOT NULL DEFAULT true,
  content text NOT NULL
)
"""

_META_COLUMNS = "id, original_name, mimetype, size_bytes, uploaded_at, delimiter, has_header"


def _row_to_record(row: dict[str, Any]) -> UploadRecord:
    return UploadRecord(
        id=int(row["id"]),
        original_name=str(row["original_name"]),
        mime_type=str(row["mimetype"] or DEFAULT_MIME_TYPE),
        size_bytes=int(row["size_bytes"]),
        uploaded_at=row["uploaded_at"],
        delimiter=str(row["delimiter"]),
        has_header=bool(row["has_header"]),
    )


class PostgresUploadStore(UploadStore):
    backend = "postgres"

    def __init__(
        self,
        database_url: str,
        *,
        use_ssl: bool = False,
        init_policy: RetryPolicy = INIT_POLICY,
        query_policy: RetryPolicy = QUERY_POLICY,
        pool_factory: Callable[[], Awaitable[asyncpg.Pool]] | None = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        super().__init__()
        self._database_url = (database_url or "").strip()
        self._init_policy = init_policy
        self._query_policy = query_policy
        self._pool_factory = pool_factory or functools.partial(
            db.create_pool, self._database_url, use_ssl=use_ssl
        )
        self._sleep = sleep
        self._pool: asyncpg.Pool | None = None

    @property
    def configured(self) -> bool:
        return bool(self._database_url)

    def _require_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise StoreError("DB pool is not initialized. Call ensure_ready() first.")
        return self._pool

    async def _run(self, operation: Callable[[], Awaitable[T]], *, policy: RetryPolicy, action: str) -> T:
        """
        Run `operation` under `policy` and classify whatever escapes.
        """
        try:
            return await run_with_retry(
                operation,
                policy=policy,
                is_transient=db.is_transient_db_error,
                sleep=self._sleep,
            )
        except StoreError:
            raise
        except Exception as exc:
            if db.is_transient_db_error(exc):
                logger.error("Database still unavailable after %d attempts (%s): %s", policy.attempts, action, exc)
                raise StoreUnavailableError(str(exc) or "Database is starting up.") from exc
            logger.exception("Failed to %s", action)
            raise StoreError(f"Failed to {action}: {exc}") from exc

    async def ensure_ready(self) -> None:
        # Missing configuration never gets better by retrying.
        if not self.configured:
            raise StoreUnconfiguredError("DATABASE_URL is not set.")
        await super().ensure_ready()

    async def _initialize(self) -> None:
        async def bootstrap() -> None:
            if self._pool is None:
                self._pool = await self._pool_factory()
            await db.execute(self._pool, CREATE_TABLE_SQL)

        await self._run(bootstrap, policy=self._init_policy, action="initialize uploads table")
        logger.info("Uploads table is ready")

    async def put(
        self,
        payload: bytes,
        *,
        original_name: str,
        mime_type: str,
        size_bytes: int,
        delimiter: str,
        has_header: bool,
    ) -> UploadRecord:
        await self.ensure_ready()
        pool = self._require_pool()
        content = payload.decode("utf-8", errors="replace")
        mime_type = mime_type or DEFAULT_MIME_TYPE

        row = await self._run(
            lambda: db.fetch_one(
                pool,
                """
                INSERT INTO uploads (original_name, mimetype, size_bytes, delimiter, has_header, content)
                VALUES ($1, $2, $3, $4, $5, $6)
                RETURNING id, uploaded_at
                """,
                original_name,
                mime_type,
                size_bytes,
                delimiter,
                has_header,
                content,
            ),
            policy=self._query_policy,
            action="insert upload",
        )
        if row is None or "id" not in row:
            raise StoreError("Failed to insert upload: no row returned.")

        return UploadRecord(
            id=int(row["id"]),
            original_name=original_name,
            mime_type=mime_type,
            size_bytes=size_bytes,
            uploaded_at=row["uploaded_at"],
            delimiter=delimiter,
            has_header=has_header,
        )

    async def get_latest(self) -> StoredUpload | None:
        await self.ensure_ready()
        pool = self._require_pool()
        row = await self._run(
            lambda: db.fetch_one(
                pool,
                f"""
                SELECT {_META_COLUMNS}, content
                FROM uploads
                ORDER BY uploaded_at DESC, id DESC
                LIMIT 1
                """,
            ),
            policy=self._query_policy,
            action="read latest upload",
        )
        if row is None:
            return None
        return StoredUpload(record=_row_to_record(row), content=str(row["content"]).encode("utf-8"))

    async def get_latest_meta(self) -> UploadRecord | None:
        await self.ensure_ready()
        pool = self._require_pool()
        row = await self._run(
            lambda: db.fetch_one(
                pool,
                f"""
                SELECT {_META_COLUMNS}
                FROM uploads
                ORDER BY uploaded_at DESC, id DESC
                LIMIT 1
                """,
            ),
            policy=self._query_policy,
            action="read latest upload metadata",
        )
        return _row_to_record(row) if row is not None else None

    async def count(self) -> int:
        await self.ensure_ready()
        pool = self._require_pool()
        value = await self._run(
            lambda: db.fetch_value(pool, "SELECT count(*) FROM uploads"),
            policy=self._query_policy,
            action="count uploads",
        )
        return int(value or 0)

    async def ping(self) -> None:
        await self.ensure_ready()
        pool = self._require_pool()
        await self._run(
            lambda: db.fetch_value(pool, "SELECT 1"),
            policy=self._query_policy,
            action="check database",
        )

    async def close(self) -> None:
        if self._pool is None:
            return None
        await self._pool.close()
        self._pool = None
