"""Schema management through the alembic revisions in ``accessgate/migrations``.

Provisioning runs bring the store to the head revision before touching it,
so a store set up by the CLI can later be upgraded with ``alembic upgrade``.
"""

import logging
import os
from typing import Optional

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import inspect
from sqlalchemy.engine import Connection, make_url

from accessgate.db.session import Database

logger = logging.getLogger(__name__)

MIGRATIONS_PATH = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "migrations"
)


def alembic_config(url: str) -> Config:
    """Alembic configuration for ``url`` without an ini file."""
    cfg = Config()
    cfg.set_main_option("script_location", MIGRATIONS_PATH)
    # configparser interpolation: escape percent-encoded credentials
    cfg.set_main_option("sqlalchemy.url", url.replace("%", "%%"))
    return cfg


def head_revision(cfg: Config) -> Optional[str]:
    return ScriptDirectory.from_config(cfg).get_current_head()


def current_revision(connection: Connection) -> Optional[str]:
    return MigrationContext.configure(connection).get_current_revision()


def is_sqlite_memory(url: str) -> bool:
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return False
    database = (parsed.database or "").strip()
    return database in ("", ":memory:") or database.startswith("file::memory:")


def upgrade_schema(database: Database, revision: str = "head") -> str:
    """Bring the connected store to ``revision``.

    Returns one of:
      - ``metadata_created``: in-memory SQLite, tables created from the models
      - ``up_to_date``: already at ``revision``
      - ``stamped``: tables predate version tracking; marked as ``revision``
      - ``migrated``: revisions applied
    """
    if is_sqlite_memory(database.url):
        database.create_schema()
        logger.info("Initialised in-memory SQLite schema without migrations")
        return "metadata_created"

    cfg = alembic_config(database.url)
    target = head_revision(cfg) if revision == "head" else revision

    with database.engine.begin() as connection:
        cfg.attributes["connection"] = connection
        current = current_revision(connection)
        if current == target:
            logger.info("Database schema already at %s", current)
            return "up_to_date"

        if current is None and inspect(connection).has_table("permissions"):
            logger.warning(
                "Tables exist without an alembic version; stamping them as %s", target
            )
            command.stamp(cfg, revision)
            return "stamped"

        command.upgrade(cfg, revision)
    logger.info("Applied migrations up to %s", target)
    return "migrated"
