"""
SQLite connection manager.

Three tables back the dashboard:
  transactions      one row per transaction (recurring instances are separate rows)
  investment_boxes  boxes, ordered by created_at for display
  app_settings      a single JSON preferences document
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """A persistence operation failed."""


class NotFoundError(StorageError):
    """The targeted row does not exist."""


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS transactions (
    id TEXT PRIMARY KEY,
    description TEXT NOT NULL,
    amount REAL NOT NULL,
    type TEXT NOT NULL,
    category TEXT NOT NULL,
    date TEXT NOT NULL,
    expense_type TEXT,
    income_type TEXT,
    due_date TEXT,
    paid INTEGER,
    recurrence_id TEXT,
    investment_box_id TEXT,
    attachment_url TEXT,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_transactions_date ON transactions(date);
CREATE INDEX IF NOT EXISTS idx_transactions_recurrence ON transactions(recurrence_id);
CREATE INDEX IF NOT EXISTS idx_transactions_box ON transactions(investment_box_id);

CREATE TABLE IF NOT EXISTS investment_boxes (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT,
    target_amount REAL,
    color TEXT,
    interest_rate REAL,
    tax_rate REAL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS app_settings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    settings TEXT NOT NULL,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);
"""


class DatabaseManager:
    """
    Lazily opened SQLite connection with the dashboard schema.

    Use `transaction()` for writes: it commits on success and rolls back (and
    re-raises as StorageError) on sqlite errors.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            if str(self.db_path) != ":memory:":
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.executescript(SCHEMA_SQL)
            self._conn.commit()
            logger.info("SQLite connection opened: %s", self.db_path)
        return self._conn

    def query(self, sql: str, params: tuple = ()) -> List[Dict[str, Any]]:
        try:
            cursor = self.conn.execute(sql, params)
        except sqlite3.Error as e:
            logger.error("Query failed: %s (%s)", sql.split()[0], e)
            raise StorageError(str(e)) from e
        return [dict(row) for row in cursor.fetchall()]

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        conn = self.conn
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error("Transaction rolled back: %s", e)
            raise StorageError(str(e)) from e
        except Exception:
            conn.rollback()
            raise

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("SQLite connection closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
