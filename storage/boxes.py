"""Investment box repository. Boxes are listed in creation order."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import List

from core.db import DatabaseManager, NotFoundError
from core.schema import BOX_COLUMNS, InvestmentBox, InvestmentBoxDraft
from data_prep.loader import RowMappingError, box_from_row, box_to_row

logger = logging.getLogger(__name__)


class InvestmentBoxRepository:
    def __init__(self, db: DatabaseManager):
        self.db = db

    def fetch_boxes(self) -> List[InvestmentBox]:
        rows = self.db.query("SELECT * FROM investment_boxes ORDER BY created_at ASC, rowid ASC")
        out = []
        for row in rows:
            try:
                out.append(box_from_row(row))
            except RowMappingError as e:
                logger.warning("Skipping unreadable box: %s", e)
        return out

    def create_box(self, draft: InvestmentBoxDraft) -> InvestmentBox:
        box = InvestmentBox(id=str(uuid.uuid4()), **draft.model_dump(exclude={"id"}))
        row = box_to_row(box)
        cols = ", ".join(BOX_COLUMNS)
        marks = ", ".join("?" for _ in BOX_COLUMNS)
        with self.db.transaction() as conn:
            conn.execute(
                f"INSERT INTO investment_boxes (id, {cols}, created_at) VALUES (?, {marks}, ?)",
                (box.id, *[row[c] for c in BOX_COLUMNS], datetime.now(timezone.utc).isoformat()),
            )
        logger.info("Created box %r", box.name)
        return box

    def update_box(self, box: InvestmentBox) -> None:
        row = box_to_row(box)
        sets = ", ".join(f"{c} = ?" for c in BOX_COLUMNS)
        with self.db.transaction() as conn:
            cur = conn.execute(
                f"UPDATE investment_boxes SET {sets} WHERE id = ?",
                (*[row[c] for c in BOX_COLUMNS], box.id),
            )
            if cur.rowcount == 0:
                raise NotFoundError(f"box {box.id!r} not found")

    def delete_box(self, box_id: str) -> int:
        """Remove the box. Its transactions stay and become orphans."""
        with self.db.transaction() as conn:
            cur = conn.execute("DELETE FROM investment_boxes WHERE id = ?", (box_id,))
        return cur.rowcount
