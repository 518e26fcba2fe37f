"""
Transaction repository.

Recurring instances are independent rows linked by `recurrence_id`; the
"this and future" operations select the group members dated on or after a
cutoff. Dates are stored as ISO strings, so string comparison is date order.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from pathlib import Path
from typing import List, Optional, Sequence

from core.db import DatabaseManager, NotFoundError
from core.schema import RECURRENCE_SHARED_COLUMNS, TRANSACTION_COLUMNS, Transaction, TransactionDraft
from data_prep.loader import RowMappingError, load_legacy_json, transaction_from_row, transaction_to_row

logger = logging.getLogger(__name__)

_INSERT_SQL = (
    f"INSERT INTO transactions (id, {', '.join(TRANSACTION_COLUMNS)}) "
    f"VALUES (?, {', '.join('?' for _ in TRANSACTION_COLUMNS)})"
)


class TransactionRepository:
    def __init__(self, db: DatabaseManager):
        self.db = db

    def fetch_all(self) -> List[Transaction]:
        """All transactions, newest first. Rows that can't be mapped are skipped."""
        rows = self.db.query("SELECT * FROM transactions ORDER BY date DESC, created_at DESC")
        out = []
        for row in rows:
            try:
                out.append(transaction_from_row(row))
            except RowMappingError as e:
                logger.warning("Skipping unreadable transaction: %s", e)
        return out

    def get(self, transaction_id: str) -> Transaction:
        rows = self.db.query("SELECT * FROM transactions WHERE id = ?", (transaction_id,))
        if not rows:
            raise NotFoundError(f"transaction {transaction_id!r} not found")
        return transaction_from_row(rows[0])

    def create(self, drafts: Sequence[TransactionDraft]) -> List[Transaction]:
        """Insert a batch in one database transaction; returns the stored rows with their new ids."""
        created = [Transaction(id=str(uuid.uuid4()), **d.model_dump(exclude={"id"})) for d in drafts]
        if not created:
            return []
        params = []
        for t in created:
            row = transaction_to_row(t)
            params.append((t.id, *[row[c] for c in TRANSACTION_COLUMNS]))
        with self.db.transaction() as conn:
            conn.executemany(_INSERT_SQL, params)
        logger.info("Created %d transaction(s)", len(created))
        return created

    def update(self, transaction: Transaction, apply_to_future: bool = False) -> int:
        """
        Update one row, or with `apply_to_future` the shared fields of every
        member of its recurrence group dated on or after it.
        Returns the number of rows touched.
        """
        row = transaction_to_row(transaction)
        if apply_to_future and transaction.recurrence_id:
            sets = ", ".join(f"{c} = ?" for c in RECURRENCE_SHARED_COLUMNS)
            params = [row[c] for c in RECURRENCE_SHARED_COLUMNS]
            params += [transaction.recurrence_id, row["date"]]
            with self.db.transaction() as conn:
                cur = conn.execute(
                    f"UPDATE transactions SET {sets} WHERE recurrence_id = ? AND date >= ?",
                    params,
                )
            logger.info("Updated %d recurring transaction(s) from %s", cur.rowcount, row["date"])
            return cur.rowcount

        sets = ", ".join(f"{c} = ?" for c in TRANSACTION_COLUMNS)
        params = [row[c] for c in TRANSACTION_COLUMNS] + [transaction.id]
        with self.db.transaction() as conn:
            cur = conn.execute(f"UPDATE transactions SET {sets} WHERE id = ?", params)
            if cur.rowcount == 0:
                raise NotFoundError(f"transaction {transaction.id!r} not found")
        return cur.rowcount

    def delete(
        self,
        transaction_id: str,
        recurrence_id: Optional[str] = None,
        apply_to_future: bool = False,
    ) -> int:
        """
        Delete one row, or with `apply_to_future` every member of the
        recurrence group dated on or after the stored date of `transaction_id`.
        Returns the number of rows removed.
        """
        with self.db.transaction() as conn:
            if apply_to_future and recurrence_id:
                found = conn.execute(
                    "SELECT date FROM transactions WHERE id = ?", (transaction_id,)
                ).fetchone()
                if found is None:
                    logger.warning("Recurring delete: %s no longer exists", transaction_id)
                    return 0
                cur = conn.execute(
                    "DELETE FROM transactions WHERE recurrence_id = ? AND date >= ?",
                    (recurrence_id, found["date"]),
                )
            else:
                cur = conn.execute("DELETE FROM transactions WHERE id = ?", (transaction_id,))
        logger.info("Deleted %d transaction(s)", cur.rowcount)
        return cur.rowcount

    def toggle_paid(self, transaction_id: str, paid: bool) -> None:
        with self.db.transaction() as conn:
            cur = conn.execute(
                "UPDATE transactions SET paid = ? WHERE id = ?", (int(bool(paid)), transaction_id)
            )
            if cur.rowcount == 0:
                raise NotFoundError(f"transaction {transaction_id!r} not found")

    def import_legacy(self, path: str | Path, *, today: date) -> int:
        """Import a legacy JSON export; returns how many transactions were created."""
        drafts = load_legacy_json(path, fallback_date=today)
        if not drafts:
            return 0
        return len(self.create(drafts))
