"""
Unit tests for the SQLite repositories, preference merging and the
attachment store.
"""

import json
from datetime import date
from pathlib import Path

import pytest

from core.db import NotFoundError, StorageError
from core.schema import InvestmentBoxDraft, UserPreferences
from data_prep.recurrence import expand_recurring
from storage import (
    AttachmentStore,
    InvestmentBoxRepository,
    SettingsRepository,
    TransactionRepository,
    merge_preferences,
)


class TestTransactionRepository:
    """CRUD and recurrence-group operations."""

    @pytest.fixture
    def repo(self, db):
        return TransactionRepository(db)

    @pytest.fixture
    def series(self, repo, make_tx):
        """Three monthly instances (Oct, Nov, Dec) of a fixed expense."""
        draft = make_tx(description="Gym", amount=90.0, on=date(2024, 10, 5), expense_type="fixed")
        repo.create(expand_recurring(draft, recurrence_id="gym"))
        return sorted(repo.fetch_all(), key=lambda t: t.date)

    def test_create_assigns_ids(self, repo, make_tx):
        created = repo.create([make_tx(), make_tx()])
        assert len({t.id for t in created}) == 2
        assert repo.get(created[0].id) == created[0]

    def test_create_empty(self, repo):
        assert repo.create([]) == []

    def test_fetch_all_newest_first(self, repo, make_tx):
        repo.create([make_tx(on=date(2024, 1, 1)), make_tx(on=date(2024, 3, 1)), make_tx(on=date(2024, 2, 1))])
        assert [t.date for t in repo.fetch_all()] == [date(2024, 3, 1), date(2024, 2, 1), date(2024, 1, 1)]

    def test_fetch_all_skips_unreadable_rows(self, repo, db, make_tx):
        repo.create([make_tx()])
        with db.transaction() as conn:
            conn.execute(
                "INSERT INTO transactions (id, description, amount, type, category, date) "
                "VALUES ('bad', 'x', 1, 'transfer', 'x', '2024-01-01')"
            )
        assert len(repo.fetch_all()) == 1

    def test_get_missing(self, repo):
        with pytest.raises(NotFoundError):
            repo.get("nope")

    def test_update_single(self, repo, make_tx):
        t = repo.create([make_tx(amount=10.0)])[0]
        assert repo.update(t.model_copy(update={"amount": 15.0})) == 1
        assert repo.get(t.id).amount == 15.0

    def test_update_missing(self, repo, make_tx):
        t = repo.create([make_tx()])[0]
        repo.delete(t.id)
        with pytest.raises(NotFoundError):
            repo.update(t)

    def test_update_this_and_future(self, repo, series):
        oct_, nov, dec = series

        touched = repo.update(nov.model_copy(update={"amount": 120.0, "description": "Gym+"}), apply_to_future=True)

        assert touched == 2
        assert repo.get(oct_.id).amount == 90.0
        assert repo.get(nov.id).amount == 120.0
        assert repo.get(dec.id).description == "Gym+"
        # dates are per-instance, never shared
        assert repo.get(dec.id).date == date(2024, 12, 5)

    def test_delete_this_and_future(self, repo, series):
        oct_, nov, _ = series

        assert repo.delete(nov.id, "gym", apply_to_future=True) == 2
        assert [t.id for t in repo.fetch_all()] == [oct_.id]

    def test_delete_future_of_missing_row(self, repo, series):
        assert repo.delete("gone", "gym", apply_to_future=True) == 0
        assert len(repo.fetch_all()) == 3

    def test_delete_single(self, repo, series):
        assert repo.delete(series[0].id) == 1
        assert len(repo.fetch_all()) == 2

    def test_toggle_paid(self, repo, make_tx):
        t = repo.create([make_tx(paid=False)])[0]
        repo.toggle_paid(t.id, True)
        assert repo.get(t.id).paid is True

    def test_toggle_paid_missing(self, repo):
        with pytest.raises(NotFoundError):
            repo.toggle_paid("nope", True)

    def test_import_legacy(self, repo, tmp_path, today):
        path = tmp_path / "legacy.json"
        path.write_text(json.dumps([
            {"description": "Salary", "amount": 5000, "type": "income", "category": "Salary",
             "date": "2024-01-05", "incomeType": "fixed"},
            {"description": "Lunch", "amount": 30, "type": "expense", "category": "Food",
             "date": "", "expenseType": "variable"},
        ]))

        assert repo.import_legacy(path, today=today) == 2
        dates = sorted(t.date for t in repo.fetch_all())
        assert dates == [date(2024, 1, 5), today]

    def test_import_legacy_missing_file(self, repo, tmp_path, today):
        assert repo.import_legacy(tmp_path / "none.json", today=today) == 0


class TestInvestmentBoxRepository:

    @pytest.fixture
    def repo(self, db):
        return InvestmentBoxRepository(db)

    def test_creation_order(self, repo):
        for name in ("First", "Second", "Third"):
            repo.create_box(InvestmentBoxDraft(name=name))
        assert [b.name for b in repo.fetch_boxes()] == ["First", "Second", "Third"]

    def test_update(self, repo):
        box = repo.create_box(InvestmentBoxDraft(name="Trip", interest_rate=8.0))
        repo.update_box(box.model_copy(update={"interest_rate": 9.5, "target_amount": 5000.0}))
        stored = repo.fetch_boxes()[0]
        assert stored.interest_rate == 9.5
        assert stored.target_amount == 5000.0

    def test_update_missing(self, repo):
        box = repo.create_box(InvestmentBoxDraft(name="Trip"))
        repo.delete_box(box.id)
        with pytest.raises(NotFoundError):
            repo.update_box(box)

    def test_delete(self, repo):
        box = repo.create_box(InvestmentBoxDraft(name="Trip"))
        assert repo.delete_box(box.id) == 1
        assert repo.delete_box(box.id) == 0
        assert repo.fetch_boxes() == []


class TestPreferences:

    @pytest.fixture
    def repo(self, db):
        return SettingsRepository(db)

    def test_nothing_saved(self, repo):
        assert repo.fetch_preferences() is None

    def test_save_and_fetch(self, repo):
        prefs = UserPreferences()
        prefs = prefs.model_copy(update={
            "settings": prefs.settings.model_copy(update={"title": "Home", "investment_projection_timeframe": "10Y"}),
            "card_colors": {"budget": "#ff0000"},
        })
        repo.save_preferences(prefs)
        repo.save_preferences(prefs)

        loaded = repo.fetch_preferences()

        assert loaded.settings.title == "Home"
        assert loaded.settings.investment_projection_timeframe == "10Y"
        assert loaded.card_colors == {"budget": "#ff0000"}

    def test_corrupt_document(self, repo, db):
        with db.transaction() as conn:
            conn.execute("INSERT INTO app_settings (settings) VALUES ('{oops')")
        assert repo.fetch_preferences() is None

    def test_merge_legacy_camel_case(self):
        prefs = merge_preferences({
            "settings": {
                "title": "Mine",
                "investmentProjectionTimeframe": "3Y",
                "predictContributions": "yes",
                "budgetGoals": {"fixed": 50, "variable": 20, "leisure": 10, "investment": 20},
            },
            "cardOrder": ["budget", "unknown_card", "budget", "pie_chart"],
            "cardTitles": {"budget": "Plan"},
        })

        assert prefs.settings.title == "Mine"
        assert prefs.settings.investment_projection_timeframe == "5Y"
        assert prefs.settings.predict_contributions is True
        assert prefs.settings.budget_goals.fixed == 50
        assert prefs.card_order == ["budget", "pie_chart", "monthly_investments"]
        assert prefs.card_titles["budget"] == "Plan"
        assert prefs.card_titles["pie_chart"] == "Expenses by Category"

    def test_merge_non_dict(self):
        assert merge_preferences(None) == UserPreferences()
        assert merge_preferences({"cardOrder": []}).card_order == UserPreferences().card_order


class TestAttachmentStore:

    @pytest.fixture
    def store(self, tmp_path):
        return AttachmentStore(tmp_path / "bucket")

    def test_upload_and_delete(self, store):
        url = store.upload("receipt.PDF", b"%PDF")
        path = store.path_for(url)

        assert url.startswith("file://")
        assert url.endswith(".PDF")
        assert path.read_bytes() == b"%PDF"

        store.delete(url)
        assert not path.exists()

    def test_delete_missing_file_is_quiet(self, store):
        store.delete("https://cdn.example.com/bucket/does-not-exist.png")

    def test_delete_without_name(self, store, caplog):
        store.delete("")
        assert "Could not extract" in caplog.text

    def test_base_url(self, tmp_path):
        store = AttachmentStore(tmp_path, base_url="https://files.example.com/att/")
        url = store.upload("a.txt", b"x")
        assert url.startswith("https://files.example.com/att/")
        assert (tmp_path / Path(url).name).exists()

    def test_upload_failure(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a dir")
        store = AttachmentStore(blocker / "bucket")
        with pytest.raises(StorageError):
            store.upload("a.txt", b"x")
