"""SQLite engine, schema creation and session factory for the catalog store.

    get_engine -- Engine for a database file (or ``":memory:"``).
    init_db -- Create the catalogs table if missing; safe on every startup.
    get_session_factory -- Sessions that keep loaded rows usable after commit.

Usage:
    engine = get_engine("data/catalogs.db")
    init_db(engine)
    store = CatalogStore(get_session_factory(engine), PreviewStore("data/previews"))
"""

import logging
from pathlib import Path

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"

# Seconds a writer waits on a locked database before failing
_BUSY_TIMEOUT_MS = 5_000


def get_engine(db_path: str = "data/catalogs.db") -> Engine:
    """Create the SQLite engine for *db_path*.

    File databases get their parent directory created (SQLite creates the
    file but not directories) and use WAL journaling so a reader never
    blocks the pipeline's writes. ``":memory:"`` shares one connection for
    the engine's lifetime, otherwise each connection would see an empty
    database.
    """
    if db_path == MEMORY_DB:
        engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        resolved = Path(db_path).resolve()
        resolved.parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(f"sqlite:///{resolved}")

    @event.listens_for(engine, "connect")
    def _configure_connection(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute(f"PRAGMA busy_timeout = {_BUSY_TIMEOUT_MS}")
        if db_path != MEMORY_DB:
            cursor.execute("PRAGMA journal_mode = WAL")
        cursor.close()

    return engine


def init_db(engine: Engine) -> None:
    """Create all tables if they don't exist."""
    Base.metadata.create_all(engine)
    logger.info("Catalog database ready (%s)", engine.url.database or MEMORY_DB)


def get_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Create a session factory bound to the engine.

    ``expire_on_commit`` is off so rows can be converted to records after
    the session commits.
    """
    return sessionmaker(bind=engine, expire_on_commit=False)
