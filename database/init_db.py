"""Database initialization helper.

Creates the configured database (``DATABASE_URL``, or the SQLite file named by
``SQLITE_FILE``) and emits the SQL DDL of the ledger tables into
``database/schema.sql``.

Copyright (c) Bryn Gwalad 2025
"""

from __future__ import annotations
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Ensure project root is on sys.path so `from ledger import models` works when
# running this script directly (python database/init_db.py).
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from sqlmodel import SQLModel
from sqlalchemy.schema import CreateTable
from dotenv import load_dotenv

# Load environment variables from .env (so this script honors .env settings)
load_dotenv()

# Import application models after adjusting sys.path and loading env
from ledger import models  # noqa: F401 - models are registered via SQLModel metadata
from utils.database import build_engine, database_url

logger = logging.getLogger("inventory_ledger.init_db")


def write_schema(engine, schema_path: Path) -> None:
    """Write CREATE TABLE statements for every ledger table to ``schema_path``."""
    schema_path.parent.mkdir(parents=True, exist_ok=True)
    with open(schema_path, "w", encoding="utf-8") as f:
        for table in SQLModel.metadata.sorted_tables:
            ddl = str(CreateTable(table).compile(engine))
            f.write(ddl.strip())
            f.write(";\n\n")


def main(argv: Optional[List[str]] = None) -> None:
    """Create the database tables and emit SQL DDL."""
    p = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    p.add_argument("--database-url", default=None, help="SQLAlchemy URL (default: DATABASE_URL or SQLITE_FILE)")
    p.add_argument("--schema-out", default=str(Path("database") / "schema.sql"), help="Where to write the SQL DDL")
    p.add_argument("--echo", action="store_true", help="Log SQL statements")
    args = p.parse_args(argv)

    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO)

    url = args.database_url or database_url()
    logger.info("Using database URL: %s", url)

    engine = build_engine(url, echo=args.echo)
    try:
        # create all tables
        SQLModel.metadata.create_all(engine)
        logger.info("Tables created.")

        schema_path = Path(args.schema_out)
        write_schema(engine, schema_path)
        logger.info("Wrote SQL DDL to %s", schema_path)
    finally:
        engine.dispose()


if __name__ == "__main__":
    main()
