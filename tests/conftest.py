"""Shared fixtures for the upload service tests."""

import asyncio
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from core.retry import RetryPolicy
from core.settings import Settings
from main import create_app
from uploads.fs_store import FilesystemUploadStore
from uploads.postgres_store import PostgresUploadStore

FIXED_TIME = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


class StartingUpError(Exception):
    """Stands in for the server's 57P03 'cannot connect now' error."""

    sqlstate = "57P03"


class FakePool:
    """Minimal asyncpg.Pool stand-in that understands the store's statements."""

    def __init__(self, clock=None):
        self.rows = []
        self.fail_with = []
        self.create_table_calls = 0
        self.closed = False
        self._next_id = 1
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _maybe_fail(self):
        if self.fail_with:
            raise self.fail_with.pop(0)

    async def execute(self, sql, *args):
        await asyncio.sleep(0)
        self._maybe_fail()
        if "CREATE TABLE IF NOT EXISTS uploads" in sql:
            self.create_table_calls += 1

    async def fetchrow(self, sql, *args):
        self._maybe_fail()
        if sql.strip().startswith("INSERT INTO uploads"):
            row = {
                "id": self._next_id,
                "original_name": args[0],
                "mimetype": args[1],
                "size_bytes": args[2],
                "delimiter": args[3],
                "has_header": args[4],
                "content": args[5],
                "uploaded_at": self._clock(),
            }
            self._next_id += 1
            self.rows.append(row)
            return {"id": row["id"], "uploaded_at": row["uploaded_at"]}

        if "FROM uploads" in sql and "ORDER BY uploaded_at DESC, id DESC" in sql:
            if not self.rows:
                return None
            return dict(max(self.rows, key=lambda r: (r["uploaded_at"], r["id"])))

        raise AssertionError(f"unexpected query: {sql}")

    async def fetchval(self, sql, *args):
        self._maybe_fail()
        if "count(*)" in sql:
            return len(self.rows)
        return 1

    async def close(self):
        self.closed = True


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def fake_pool():
    return FakePool()


@pytest.fixture
def sleeps():
    return RecordingSleep()


@pytest.fixture
def make_pg_store(fake_pool, sleeps):
    """Build a PostgresUploadStore wired to `fake_pool` with fast retry policies."""
    created = []

    def _make(database_url="postgresql://user:pw@db:5432/app", pool=None, **kwargs):
        pool = pool or fake_pool

        async def pool_factory():
            created.append(pool)
            await asyncio.sleep(0)
            return pool

        kwargs.setdefault("init_policy", RetryPolicy(attempts=4, delay_s=0.5))
        kwargs.setdefault("query_policy", RetryPolicy(attempts=2, delay_s=0.25))
        store = PostgresUploadStore(database_url, pool_factory=pool_factory, sleep=sleeps, **kwargs)
        store.pools_created = created
        return store

    return _make


@pytest.fixture
def fs_store(tmp_path):
    return FilesystemUploadStore(tmp_path / "data")


@pytest.fixture
def make_client():
    """Build a TestClient around an app created from explicit settings."""
    clients = []

    def _make(store=None, **settings_kwargs):
        settings_kwargs.setdefault("store_backend", "memory")
        app = create_app(Settings(**settings_kwargs))
        if store is not None:
            app.state.upload_store = store
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)
