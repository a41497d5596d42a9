from __future__ import annotations

from pathlib import Path
from typing import Optional

from alembic.config import Config
from alembic.script import ScriptDirectory
from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

from orders_api.config import is_production_mode, settings
from orders_api.db.base import Base

_ALEMBIC_VERSION_TABLE = "alembic_version"


def alembic_ini_path() -> Path:
    return Path(__file__).resolve().parents[2] / "alembic.ini"


def get_alembic_head_revision() -> str:
    config = Config(str(alembic_ini_path()))
    config.set_main_option("script_location", str(Path(__file__).resolve().parent / "migrations"))
    return ScriptDirectory.from_config(config).get_current_head()


def get_current_db_revision(engine: Engine) -> Optional[str]:
    if not inspect(engine).has_table(_ALEMBIC_VERSION_TABLE):
        return None

    with engine.connect() as connection:
        result = connection.execute(text("SELECT version_num FROM alembic_version LIMIT 1"))
        return result.scalar_one_or_none()


def assert_db_is_up_to_date(engine: Engine) -> None:
    current = get_current_db_revision(engine)
    head = get_alembic_head_revision()
    if current != head:
        raise RuntimeError(
            f"Database schema at {current or 'no revision'}, expected {head}. "
            "Run: alembic upgrade head"
        )


def prepare_schema(engine: Engine) -> None:
    """Create tables for local runs, or refuse to start on a stale schema."""
    import orders_api.models  # noqa: F401 (register all SQLAlchemy models)

    if settings.require_migrations:
        assert_db_is_up_to_date(engine)
        return
    if not settings.auto_create_schema:
        return
    if is_production_mode():
        raise RuntimeError(
            "ORDERS_AUTO_CREATE_SCHEMA must be disabled in ORDERS_APP_MODE=production"
        )

    Base.metadata.create_all(bind=engine)
