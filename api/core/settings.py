"""
Environment-driven settings.

Read once at startup (`load_settings()`) and passed to whatever needs them, so
tests can build a `Settings` directly instead of patching the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from .retry import INIT_POLICY, QUERY_POLICY, RetryPolicy

STORE_BACKENDS = ("postgres", "filesystem", "memory")

DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10 MiB
DEFAULT_DATA_DIR = "data"
DEFAULT_PORT = 3000


def _env_str(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip()


def _env_int(name: str, default: int) -> int:
    raw = _env_str(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = _env_str(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_policy(prefix: str, default: RetryPolicy) -> RetryPolicy:
    attempts = _env_int(f"{prefix}_ATTEMPTS", default.attempts)
    delay_s = _env_float(f"{prefix}_DELAY_S", default.delay_s)
    if attempts < 1 or delay_s < 0:
        return default
    return RetryPolicy(attempts=attempts, delay_s=delay_s)


@dataclass(frozen=True)
class Settings:
    store_backend: str = "postgres"
    database_url: str = ""
    pg_ssl: bool = False
    data_dir: Path = field(default_factory=lambda: Path(DEFAULT_DATA_DIR))
    upload_token: str = ""
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    init_policy: RetryPolicy = INIT_POLICY
    query_policy: RetryPolicy = QUERY_POLICY
    log_level: str = "INFO"
    port: int = DEFAULT_PORT

    def __post_init__(self) -> None:
        if self.store_backend not in STORE_BACKENDS:
            raise ValueError(
                f"Unknown UPLOAD_STORE '{self.store_backend}'. Allowed: {list(STORE_BACKENDS)}"
            )
        if self.max_upload_bytes <= 0:
            raise ValueError("MAX_UPLOAD_BYTES must be > 0.")


def load_settings() -> Settings:
    max_upload_bytes = _env_int("MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES)
    if max_upload_bytes <= 0:
        max_upload_bytes = DEFAULT_MAX_UPLOAD_BYTES

    return Settings(
        store_backend=_env_str("UPLOAD_STORE", "postgres").lower() or "postgres",
        database_url=_env_str("DATABASE_URL"),
        pg_ssl=(
            _env_str("PGSSLMODE").lower() == "require"
            or _env_str("PGSSL").lower() == "true"
        ),
        data_dir=Path(_env_str("DATA_DIR", DEFAULT_DATA_DIR) or DEFAULT_DATA_DIR),
        upload_token=_env_str("UPLOAD_TOKEN"),
        max_upload_bytes=max_upload_bytes,
        init_policy=_env_policy("DB_INIT", INIT_POLICY),
        query_policy=_env_policy("DB_QUERY", QUERY_POLICY),
        log_level=_env_str("LOG_LEVEL", "INFO").upper() or "INFO",
        port=_env_int("PORT", DEFAULT_PORT),
    )
