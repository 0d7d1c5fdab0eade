from pathlib import Path

import pytest

from core.retry import INIT_POLICY, QUERY_POLICY, RetryPolicy
from core.settings import DEFAULT_MAX_UPLOAD_BYTES, Settings, load_settings
from uploads.factory import create_store
from uploads.fs_store import FilesystemUploadStore
from uploads.memory_store import MemoryUploadStore
from uploads.postgres_store import PostgresUploadStore

ENV_VARS = [
    "UPLOAD_STORE",
    "DATABASE_URL",
    "PGSSLMODE",
    "PGSSL",
    "DATA_DIR",
    "UPLOAD_TOKEN",
    "MAX_UPLOAD_BYTES",
    "DB_INIT_ATTEMPTS",
    "DB_INIT_DELAY_S",
    "DB_QUERY_ATTEMPTS",
    "DB_QUERY_DELAY_S",
    "LOG_LEVEL",
    "PORT",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    settings = load_settings()

    assert settings.store_backend == "postgres"
    assert settings.database_url == ""
    assert settings.pg_ssl is False
    assert settings.data_dir == Path("data")
    assert settings.upload_token == ""
    assert settings.max_upload_bytes == DEFAULT_MAX_UPLOAD_BYTES
    assert settings.init_policy == INIT_POLICY
    assert settings.query_policy == QUERY_POLICY
    assert settings.port == 3000


def test_values_from_environment(clean_env):
    clean_env.setenv("UPLOAD_STORE", "Filesystem")
    clean_env.setenv("DATA_DIR", "/srv/uploads")
    clean_env.setenv("UPLOAD_TOKEN", " tok ")
    clean_env.setenv("MAX_UPLOAD_BYTES", "2048")
    clean_env.setenv("PGSSLMODE", "require")
    clean_env.setenv("DB_INIT_ATTEMPTS", "20")
    clean_env.setenv("DB_QUERY_DELAY_S", "0.5")

    settings = load_settings()

    assert settings.store_backend == "filesystem"
    assert settings.data_dir == Path("/srv/uploads")
    assert settings.upload_token == "tok"
    assert settings.max_upload_bytes == 2048
    assert settings.pg_ssl is True
    assert settings.init_policy == RetryPolicy(attempts=20, delay_s=1.0)
    assert settings.query_policy == RetryPolicy(attempts=3, delay_s=0.5)


def test_invalid_numbers_fall_back_to_defaults(clean_env):
    clean_env.setenv("MAX_UPLOAD_BYTES", "lots")
    clean_env.setenv("DB_QUERY_ATTEMPTS", "0")
    clean_env.setenv("PORT", "http")

    settings = load_settings()

    assert settings.max_upload_bytes == DEFAULT_MAX_UPLOAD_BYTES
    assert settings.query_policy == QUERY_POLICY
    assert settings.port == 3000


def test_pgssl_flag(clean_env):
    clean_env.setenv("PGSSL", "true")

    assert load_settings().pg_ssl is True


def test_unknown_backend_is_rejected(clean_env):
    clean_env.setenv("UPLOAD_STORE", "s3")

    with pytest.raises(ValueError, match="Unknown UPLOAD_STORE"):
        load_settings()


@pytest.mark.parametrize(
    "backend, expected",
    [
        ("postgres", PostgresUploadStore),
        ("filesystem", FilesystemUploadStore),
        ("memory", MemoryUploadStore),
    ],
)
def test_create_store(backend, expected, tmp_path):
    store = create_store(Settings(store_backend=backend, data_dir=tmp_path, database_url="postgresql://db/app"))

    assert isinstance(store, expected)
    assert store.backend == backend
    assert store.configured
