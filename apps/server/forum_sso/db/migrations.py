"""Utilities for running Alembic migrations from application code."""

from __future__ import annotations

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory

from forum_sso.core.config import settings

logger = logging.getLogger(__name__)


def _alembic_config() -> Config:
    """Build an Alembic config wired to the runtime settings."""

    project_root = Path(__file__).resolve().parents[2]
    config_path = project_root / "alembic.ini"
    script_location = project_root / "alembic"

    alembic_cfg = Config(str(config_path))
    alembic_cfg.set_main_option("script_location", str(script_location))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.database_url)
    logger.info(
        "Alembic configured",
        extra={
            "config_path": str(config_path),
            "script_location": str(script_location),
        },
    )
    return alembic_cfg


def run_migrations() -> None:
    """Apply all pending migrations up to the latest revision."""
    from forum_sso.db.session import engine as app_engine

    # Pooled application connections would block DDL on the same tables.
    logger.info("Disposing application database connections before migrations")
    app_engine.dispose()

    cfg = _alembic_config()

    script = ScriptDirectory.from_config(cfg)
    heads_list = list(script.get_heads() or [])
    logger.info("Alembic migration heads: %s", ",".join(heads_list))

    with app_engine.connect() as connection:
        current_rev = MigrationContext.configure(connection).get_current_revision()
    logger.info("Current database revision: %s", current_rev)

    if current_rev and current_rev in heads_list:
        logger.info("Database is already at head revision, skipping migrations")
        return

    logger.info("Applying database migrations (alembic upgrade heads)")
    try:
        command.upgrade(cfg, "heads")
        logger.info("Database migrations applied successfully")
    except Exception:
        logger.exception("Alembic upgrade failed")
        raise


__all__ = ["run_migrations"]
