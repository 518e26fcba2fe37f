"""
User workflows: every action the dashboard can take.

Each workflow validates its input, talks to the repositories and the
attachment store, reloads the state and queues a notice. Failures
(StorageError, DraftError, other ValueErrors) become error notices; nothing
here raises into the UI.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Tuple

from core.config import AppConfig, ProjectionConfig
from core.db import DatabaseManager, StorageError
from core.schema import (
    DEFAULT_CARD_TITLES,
    CategoryTaxonomy,
    InvestmentBox,
    InvestmentBoxDraft,
    Timeframe,
    Transaction,
    TransactionDraft,
    UserPreferences,
)
from core.utils import add_months, month_start, same_month, today_in_timezone
from data_prep.recurrence import (
    clone_month_drafts,
    expand_recurring,
    initial_paid,
    resolve_transaction_day,
)
from storage.attachments import AttachmentStore
from storage.boxes import InvestmentBoxRepository
from storage.settings import SettingsRepository, normalize_card_order
from storage.transactions import TransactionRepository

from .state import AppState

logger = logging.getLogger(__name__)

Attachment = Tuple[str, bytes]  # (original filename, content)


@dataclass(frozen=True)
class CloneResult:
    created: int
    target_month: date
    target_had_data: bool


class FinanceWorkflows:
    def __init__(
        self,
        state: AppState,
        attachments: AttachmentStore,
        *,
        timezone: str,
        default_annual_rate: float,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.state = state
        self.attachments = attachments
        self.timezone = timezone
        self.default_annual_rate = default_annual_rate
        self._clock = clock

    @property
    def transactions_repo(self) -> TransactionRepository:
        return self.state.transactions_repo

    @property
    def boxes_repo(self) -> InvestmentBoxRepository:
        return self.state.boxes_repo

    @property
    def settings_repo(self) -> SettingsRepository:
        return self.state.settings_repo

    def today(self) -> date:
        now = self._clock() if self._clock is not None else None
        return today_in_timezone(self.timezone, now)

    @contextmanager
    def _guard(self, action: str) -> Iterator[None]:
        try:
            yield
        except (StorageError, ValueError) as e:
            logger.error("%s failed: %s", action, e)
            self.state.notify("error", f"{action} failed: {e}")

    def projection_config(self, selected_month: Optional[date] = None) -> ProjectionConfig:
        s = self.state.preferences.settings
        return ProjectionConfig(
            today=self.today(),
            selected_month=selected_month,
            timeframe=s.investment_projection_timeframe,
            predict_contributions=s.predict_contributions,
            default_annual_rate=self.default_annual_rate,
        )

    # ------------------------------------------------------------------
    # transactions
    # ------------------------------------------------------------------
    def add_transaction(
        self,
        draft: TransactionDraft,
        *,
        selected_month: date,
        is_recurring: bool = False,
        attachment: Optional[Attachment] = None,
    ) -> List[Transaction]:
        """
        Store a new transaction in the selected month, or a monthly series
        through December when `is_recurring`. Returns what was created.
        """
        created: List[Transaction] = []
        with self._guard("Saving transaction"):
            url = self.attachments.upload(*attachment) if attachment else None
            day = resolve_transaction_day(selected_month, self.today(), draft.due_date)
            first = draft.model_copy(
                update={"date": day, "paid": initial_paid(draft), "attachment_url": url}
            )
            drafts = expand_recurring(first) if is_recurring else [first]
            created = self.transactions_repo.create(drafts)
            self.state.reload()
            self.state.notify("success", "Transaction added!")
        return created

    def update_transaction(
        self,
        transaction: Transaction,
        *,
        apply_to_future: bool = False,
        attachment: Optional[Attachment] = None,
        remove_attachment: bool = False,
    ) -> bool:
        """Attachment removal/replacement happens before the row update."""
        with self._guard("Updating transaction"):
            original = self.state.find_transaction(transaction.id)
            old_url = original.attachment_url if original else None
            final = transaction

            if remove_attachment and old_url:
                self.attachments.delete(old_url)
                final = final.model_copy(update={"attachment_url": None})
                old_url = None

            if attachment:
                if old_url:
                    self.attachments.delete(old_url)
                final = final.model_copy(update={"attachment_url": self.attachments.upload(*attachment)})

            self.transactions_repo.update(final, apply_to_future=apply_to_future)
            self.state.reload()
            self.state.notify("success", "Transaction updated!")
            return True
        return False

    def delete_transaction(self, transaction_id: str, *, apply_to_future: bool = False) -> bool:
        """
        Delete one transaction (and its attachment), or with `apply_to_future`
        the rest of its recurrence group. Attachments of later group members
        are left in the bucket.
        """
        with self._guard("Deleting transaction"):
            target = self.state.find_transaction(transaction_id)
            if target is not None and target.attachment_url:
                self.attachments.delete(target.attachment_url)
            self.transactions_repo.delete(
                transaction_id,
                target.recurrence_id if target is not None else None,
                apply_to_future,
            )
            self.state.reload()
            self.state.notify("success", "Transaction deleted.")
            return True
        return False

    def toggle_paid(self, transaction_id: str, paid: bool) -> bool:
        return self.state.optimistic_toggle_paid(transaction_id, paid)

    def clone_month(self, selected_month: date) -> Optional[CloneResult]:
        """Copy the selected month's transactions into the next month."""
        drafts = clone_month_drafts(self.state.transactions, selected_month)
        if not drafts:
            self.state.notify("error", "The selected month has no transactions to copy.")
            return None

        target = add_months(month_start(selected_month), 1)
        had_data = any(same_month(t.date, target) for t in self.state.transactions)
        with self._guard("Cloning month"):
            self.transactions_repo.create(drafts)
            self.state.reload()
            if had_data:
                self.state.notify("warning", "The target month already had transactions; copies were added.")
            self.state.notify("success", f"Month copied to {target:%B %Y}!")
            return CloneResult(created=len(drafts), target_month=target, target_had_data=had_data)
        return None

    def import_legacy(self, path: str | Path) -> int:
        count = 0
        with self._guard("Importing data"):
            count = self.transactions_repo.import_legacy(path, today=self.today())
            if count:
                self.state.reload()
                self.state.notify("success", f"{count} transactions imported.")
            else:
                self.state.notify("info", "Nothing to import.")
        return count

    # ------------------------------------------------------------------
    # boxes
    # ------------------------------------------------------------------
    def create_box(self, draft: InvestmentBoxDraft) -> Optional[InvestmentBox]:
        with self._guard("Creating box"):
            box = self.boxes_repo.create_box(draft)
            self.state.reload()
            self.state.notify("success", f"Box {box.name!r} created!")
            return box
        return None

    def update_box(self, box: InvestmentBox) -> bool:
        with self._guard("Updating box"):
            self.boxes_repo.update_box(box)
            self.state.reload()
            self.state.notify("success", "Box updated!")
            return True
        return False

    def edit_box(
        self,
        box_id: str,
        *,
        name: str,
        target_amount: Optional[float] = None,
        interest_rate: Optional[float] = None,
        use_default_rate: bool = False,
    ) -> bool:
        """
        Apply the edit-box form. With `use_default_rate` the rate is stored as
        unset, so projections keep using the default rate; otherwise
        `interest_rate` (annual %) is stored as given.
        """
        box = self.state.find_box(box_id)
        if box is None:
            self.state.notify("error", "Box not found.")
            return False
        changes = {
            "name": (name or "").strip() or box.name,
            "target_amount": target_amount or None,
            "interest_rate": None if use_default_rate else interest_rate,
        }
        return self.update_box(box.model_copy(update=changes))

    def delete_box(self, box_id: str) -> bool:
        with self._guard("Deleting box"):
            self.boxes_repo.delete_box(box_id)
            self.state.reload()
            self.state.notify("success", "Box deleted.")
            return True
        return False

    # ------------------------------------------------------------------
    # preferences
    # ------------------------------------------------------------------
    def save_preferences(self, prefs: UserPreferences) -> bool:
        self.state.preferences = prefs
        with self._guard("Saving preferences"):
            self.settings_repo.save_preferences(prefs)
            return True
        return False

    def update_projection_settings(
        self,
        timeframe: Optional[Timeframe] = None,
        predict_contributions: Optional[bool] = None,
    ) -> bool:
        prefs = self.state.preferences
        changes = {}
        if timeframe is not None:
            changes["investment_projection_timeframe"] = timeframe
        if predict_contributions is not None:
            changes["predict_contributions"] = bool(predict_contributions)
        if not changes:
            return True
        with self._guard("Saving projection settings"):
            settings = prefs.settings.model_validate({**prefs.settings.model_dump(), **changes})
            return self.save_preferences(prefs.model_copy(update={"settings": settings}))
        return False

    def update_categories(self, categories: CategoryTaxonomy) -> bool:
        prefs = self.state.preferences
        settings = prefs.settings.model_copy(update={"categories": categories})
        return self.save_preferences(prefs.model_copy(update={"settings": settings}))

    def move_card(self, card: str, offset: int) -> bool:
        """Shift `card` by `offset` places in the dashboard order, clamped at the ends."""
        order = list(self.state.preferences.card_order)
        if card not in order:
            self.state.notify("error", f"Unknown card: {card}")
            return False
        old = order.index(card)
        new = min(max(old + offset, 0), len(order) - 1)
        if new == old:
            return True
        order.insert(new, order.pop(old))
        return self.save_preferences(
            self.state.preferences.model_copy(update={"card_order": normalize_card_order(order)})
        )

    def rename_card(self, card: str, title: str) -> bool:
        """Set the heading of `card`; a blank title restores the default one."""
        if card not in DEFAULT_CARD_TITLES:
            self.state.notify("error", f"Unknown card: {card}")
            return False
        prefs = self.state.preferences
        titles = {**prefs.card_titles, card: (title or "").strip() or DEFAULT_CARD_TITLES[card]}
        return self.save_preferences(prefs.model_copy(update={"card_titles": titles}))


def create_app(config: AppConfig, *, clock: Optional[Callable[[], datetime]] = None) -> FinanceWorkflows:
    """Wire the database, repositories, state and workflows for `config`."""
    db = DatabaseManager(config.db_path)
    state = AppState(
        TransactionRepository(db),
        InvestmentBoxRepository(db),
        SettingsRepository(db),
    )
    return FinanceWorkflows(
        state,
        AttachmentStore(config.attachments_dir, config.attachment_base_url),
        timezone=config.timezone,
        default_annual_rate=config.default_annual_rate,
        clock=clock,
    )
