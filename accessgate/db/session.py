"""Database connection lifecycle.

A ``Database`` is constructed once per process from the configured
connection string and handed to whatever needs sessions. ``connect`` fails
fast with ``StorageConnectionError``; ``disconnect`` is safe to call on
every exit path, including after a failed connect.
"""

import logging
from typing import Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from accessgate.core.errors import StorageConnectionError
from accessgate.db.base import Base
from accessgate.db import models  # noqa: F401  (registers tables on Base.metadata)

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def safe_url(url: str) -> str:
    """Render a connection string with its password masked."""
    try:
        return make_url(url).render_as_string(hide_password=True)
    except SQLAlchemyError:
        return "<invalid database url>"


class Database:
    """Owns the engine and session factory for one target store."""

    def __init__(self, url: str, *, echo: bool = False, **engine_options):
        self.url = url
        self.echo = echo
        self.engine_options = engine_options
        self._engine: Optional[Engine] = None
        self._sessionmaker: Optional[sessionmaker] = None

    @property
    def connected(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise StorageConnectionError("Database is not connected")
        return self._engine

    def connect(self) -> "Database":
        """Create the engine and verify the store answers.

        Raises:
            StorageConnectionError: store unreachable, credentials rejected,
                or the driver for the URL is not installed
        """
        if self._engine is not None:
            return self

        try:
            engine = create_engine(self.url, echo=self.echo, **self.engine_options)
        except (SQLAlchemyError, ImportError) as e:
            raise StorageConnectionError(
                f"Cannot create engine for {safe_url(self.url)}: {e}"
            ) from e

        if engine.dialect.name == "sqlite":
            event.listen(engine, "connect", _enable_sqlite_foreign_keys)

        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            engine.dispose()
            raise StorageConnectionError(f"Cannot connect to {safe_url(self.url)}: {e}") from e

        self._engine = engine
        self._sessionmaker = sessionmaker(bind=engine, expire_on_commit=False)
        logger.info("Connected to %s", safe_url(self.url))
        return self

    def create_schema(self) -> None:
        """Create missing tables. Existing tables and rows are left untouched."""
        Base.metadata.create_all(self.engine)

    def session(self) -> Session:
        if self._sessionmaker is None:
            raise StorageConnectionError("Database is not connected")
        return self._sessionmaker()

    def disconnect(self) -> None:
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        logger.info("Disconnected from %s", safe_url(self.url))

    def __enter__(self) -> "Database":
        return self.connect()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()
