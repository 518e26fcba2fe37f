"""
Application state store.

Holds the in-memory copy of every transaction and box plus the user's
preferences. After any mutation the store refetches wholesale from the
repositories; the only local-first update is the paid toggle, which is
reconciled by a reload when the repository call fails.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Literal, Optional

from core.db import StorageError
from core.schema import InvestmentBox, Transaction, UserPreferences
from storage.boxes import InvestmentBoxRepository
from storage.settings import SettingsRepository
from storage.transactions import TransactionRepository

logger = logging.getLogger(__name__)

NoticeLevel = Literal["success", "info", "warning", "error"]


@dataclass(frozen=True)
class Notice:
    level: NoticeLevel
    message: str


class AppState:
    def __init__(
        self,
        transactions_repo: TransactionRepository,
        boxes_repo: InvestmentBoxRepository,
        settings_repo: SettingsRepository,
    ):
        self.transactions_repo = transactions_repo
        self.boxes_repo = boxes_repo
        self.settings_repo = settings_repo

        self.transactions: List[Transaction] = []
        self.boxes: List[InvestmentBox] = []
        self.preferences = UserPreferences()
        self.notices: List[Notice] = []
        self.loaded = False

    # ------------------------------------------------------------------
    # loading
    # ------------------------------------------------------------------
    def load(self) -> None:
        """Merge stored preferences over the defaults, then fetch all data."""
        try:
            prefs = self.settings_repo.fetch_preferences()
        except StorageError as e:
            logger.error("Could not load preferences: %s", e)
            self.notify("error", f"Could not load preferences: {e}")
            prefs = None
        if prefs is not None:
            self.preferences = prefs
        self.reload()
        self.loaded = True

    def reload(self) -> None:
        try:
            self.transactions = self.transactions_repo.fetch_all()
            self.boxes = self.boxes_repo.fetch_boxes()
        except StorageError as e:
            logger.error("Reload failed: %s", e)
            self.notify("error", f"Could not load data: {e}")
            return
        logger.debug("Loaded %d transactions, %d boxes", len(self.transactions), len(self.boxes))

    # ------------------------------------------------------------------
    # notices
    # ------------------------------------------------------------------
    def notify(self, level: NoticeLevel, message: str) -> None:
        self.notices.append(Notice(level, message))

    def drain_notices(self) -> List[Notice]:
        out, self.notices = self.notices, []
        return out

    # ------------------------------------------------------------------
    # lookups / local updates
    # ------------------------------------------------------------------
    def find_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return next((t for t in self.transactions if t.id == transaction_id), None)

    def find_box(self, box_id: str) -> Optional[InvestmentBox]:
        return next((b for b in self.boxes if b.id == box_id), None)

    def optimistic_toggle_paid(self, transaction_id: str, paid: bool) -> bool:
        """
        Flip the paid flag locally, then persist. On failure the store reloads
        from storage and an error notice is queued. Returns whether it stuck.
        """
        self.transactions = [
            t.model_copy(update={"paid": paid}) if t.id == transaction_id else t
            for t in self.transactions
        ]
        try:
            self.transactions_repo.toggle_paid(transaction_id, paid)
        except StorageError as e:
            logger.warning("Paid toggle failed for %s: %s", transaction_id, e)
            self.reload()
            self.notify("error", "Could not update the paid status.")
            return False
        return True
