"""Tests for the schema bootstrap script."""

import os
import sys
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import tempfile
import unittest
from pathlib import Path

from sqlalchemy import create_engine, inspect

from database import init_db as init_db_script


class InitDbScriptTest(unittest.TestCase):
    def test_creates_tables_and_writes_ddl(self):
        with tempfile.TemporaryDirectory() as tmp:
            db_file = Path(tmp) / "ledger.db"
            schema = Path(tmp) / "out" / "schema.sql"
            init_db_script.main(["--database-url", f"sqlite:///{db_file}", "--schema-out", str(schema)])

            engine = create_engine(f"sqlite:///{db_file}")
            try:
                tables = set(inspect(engine).get_table_names())
            finally:
                engine.dispose()
            self.assertTrue({"category", "inventory_item", "taken_history_entry"} <= tables)

            ddl = schema.read_text(encoding="utf-8")
            self.assertIn("CREATE TABLE inventory_item", ddl)
            self.assertIn("CREATE TABLE taken_history_entry", ddl)


if __name__ == "__main__":
    unittest.main()
