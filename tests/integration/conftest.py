import os
from collections.abc import Generator
from typing import Any

import psycopg
import pytest

from formai.config.settings import Settings
from formai.database.connection import close_pool, get_connection, init_pool
from formai.database.repositories.audit_log_repository import AuditLogRepository

# Entry ids far above anything a seeded database would hold.
_TEST_ENTRY_IDS = (910001, 910002)


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "formai_test")
    return Settings()


def _create_tables(conn: psycopg.Connection[Any]) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS formai_options (
            name VARCHAR(191) PRIMARY KEY,
            value JSONB,
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS entry_meta (
            entry_id BIGINT NOT NULL,
            meta_key VARCHAR(255) NOT NULL,
            meta_value TEXT,
            PRIMARY KEY (entry_id, meta_key)
        )
        """
    )
    conn.commit()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        with get_connection() as conn:
            _create_tables(conn)
    except Exception as e:
        close_pool()
        pytest.skip(
            f"PostgreSQL test DB not available: {e}. "
            "Set DB_* env to point at a scratch database"
        )
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def clean_options(integration_pool: None) -> Generator[None, None, None]:
    with get_connection() as conn:
        conn.execute("DELETE FROM formai_options")
        conn.commit()
    yield
    with get_connection() as conn:
        conn.execute("DELETE FROM formai_options")
        conn.commit()


@pytest.fixture
def test_entry_ids(integration_pool: None) -> Generator[tuple[int, int], None, None]:
    yield _TEST_ENTRY_IDS
    with get_connection() as conn:
        conn.execute(
            "DELETE FROM entry_meta WHERE entry_id = ANY(%s)",
            (list(_TEST_ENTRY_IDS),),
        )
        conn.commit()


@pytest.fixture
def audit_logs(integration_pool: None) -> AuditLogRepository:
    repo = AuditLogRepository()
    repo.truncate()
    return repo
