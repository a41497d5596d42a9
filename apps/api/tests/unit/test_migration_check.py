from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, inspect, text

import orders_api.main as main_module
from orders_api.config import settings
from orders_api.db.migration_check import (
    assert_db_is_up_to_date,
    get_alembic_head_revision,
    get_current_db_revision,
    prepare_schema,
)
from orders_api.main import app


@pytest.fixture
def sqlite_engine(tmp_path: Path):
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'migration-check.db'}")
    try:
        yield engine
    finally:
        engine.dispose()


def test_head_revision_is_initial_schema():
    assert get_alembic_head_revision() == "20261019_0001"


def test_assert_db_is_up_to_date_fails_when_alembic_version_missing(sqlite_engine):
    with pytest.raises(RuntimeError, match="alembic upgrade head"):
        assert_db_is_up_to_date(sqlite_engine)


def test_assert_db_is_up_to_date_passes_at_head(sqlite_engine):
    head = get_alembic_head_revision()
    with sqlite_engine.begin() as connection:
        connection.execute(text("CREATE TABLE alembic_version (version_num VARCHAR(32) NOT NULL)"))
        connection.execute(
            text("INSERT INTO alembic_version (version_num) VALUES (:rev)"), {"rev": head}
        )

    assert get_current_db_revision(sqlite_engine) == head
    assert_db_is_up_to_date(sqlite_engine)


def test_prepare_schema_creates_tables(sqlite_engine, monkeypatch):
    monkeypatch.setattr(settings, "auto_create_schema", True)
    monkeypatch.setattr(settings, "require_migrations", False)
    monkeypatch.setattr(settings, "app_mode", "demo")

    prepare_schema(sqlite_engine)

    tables = set(inspect(sqlite_engine).get_table_names())
    assert {"orders", "order_notifications"} <= tables


def test_prepare_schema_refuses_auto_create_in_production(sqlite_engine, monkeypatch):
    monkeypatch.setattr(settings, "auto_create_schema", True)
    monkeypatch.setattr(settings, "require_migrations", False)
    monkeypatch.setattr(settings, "app_mode", "production")

    with pytest.raises(RuntimeError, match="AUTO_CREATE_SCHEMA"):
        prepare_schema(sqlite_engine)


def test_app_startup_fails_fast_when_revision_missing(tmp_path: Path, monkeypatch):
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'startup-fail.db'}")
    monkeypatch.setattr(main_module, "engine", engine)
    monkeypatch.setattr(settings, "app_mode", "production")
    monkeypatch.setattr(settings, "auto_create_schema", False)
    monkeypatch.setattr(settings, "require_migrations", True)

    try:
        with pytest.raises(RuntimeError, match="alembic upgrade head"):
            with TestClient(app):
                pass
    finally:
        engine.dispose()
