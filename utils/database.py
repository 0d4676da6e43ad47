"""Database helpers for the Inventory Ledger.

Utilities provided:
- initialize the process-wide SQLAlchemy engine
- create sessions bound to that engine
- dispose the engine at shutdown

The database URL comes from ``DATABASE_URL``; when unset, a local SQLite file
at ``database/database.db`` is used (configurable via ``SQLITE_FILE``). The
module ensures the parent directory of the SQLite file exists before creating
the engine so the database can be created on first use.

Copyright (c) Bryn Gwalad 2025
"""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

# Load environment variables from .env if present
load_dotenv()

# Import models so their tables are registered on SQLModel metadata.
from ledger import models  # noqa: F401

logger = logging.getLogger("inventory_ledger.database")

_engine: Optional[Engine] = None


def database_url() -> str:
    """Return the configured database URL.

    Honors ``DATABASE_URL`` first, then ``SQLITE_FILE``.
    """
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    sqlite_file_name = os.getenv("SQLITE_FILE", "database/database.db")
    # Ensure parent directory exists before creating the engine
    Path(sqlite_file_name).parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{sqlite_file_name}"


def build_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine for ``url``.

    SQLite connections are shared across FastAPI's worker threads, and an
    in-memory SQLite database must live on a single connection.
    """
    kwargs = {"echo": echo}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


def init_db(url: Optional[str] = None) -> Engine:
    """Create the engine once and make sure the tables exist.

    Calling this again while an engine is alive returns the existing engine.
    """
    global _engine
    if _engine is not None:
        return _engine
    url = url or database_url()
    engine = build_engine(url)
    SQLModel.metadata.create_all(engine)
    _engine = engine
    logger.info("Database initialised (%s)", engine.url.render_as_string(hide_password=True))
    return engine


def dispose_db() -> None:
    """Release the engine's connections and forget it."""
    global _engine
    if _engine is None:
        return
    _engine.dispose()
    _engine = None
    logger.info("Database engine disposed")


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Database is not initialised; call init_db() first")
    return _engine


def get_session() -> Session:
    # expire_on_commit=False keeps loaded attributes readable after commit
    return Session(get_engine(), expire_on_commit=False)
