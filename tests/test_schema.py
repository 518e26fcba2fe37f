"""
Unit tests for the domain schema and shared utilities.
"""

from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from core.config import ProjectionConfig
from core.schema import CategoryTaxonomy, Transaction, TransactionDraft
from core.utils import add_months, format_brl, parse_date, today_in_timezone


class TestTransactionModel:

    def test_signed_flow(self, make_tx):
        assert make_tx(amount=10.0).signed_flow == 10.0
        assert make_tx(amount=10.0, type="income").signed_flow == -10.0

    def test_investment_flags(self, contribution, redemption, make_tx):
        assert contribution("b", 1.0, date(2024, 1, 1)).is_contribution
        assert redemption("b", 1.0, date(2024, 1, 1)).is_redemption
        assert not make_tx().is_investment

    @pytest.mark.parametrize("amount", [-1.0, float("nan"), float("inf")])
    def test_rejects_bad_amounts(self, make_tx, amount):
        with pytest.raises(ValidationError):
            make_tx(amount=amount)

    def test_rejects_crossed_subtypes(self):
        with pytest.raises(ValidationError):
            TransactionDraft(description="x", amount=1, type="income", category="x",
                             date=date(2024, 1, 1), expense_type="fixed")

    def test_to_draft_drops_id(self, make_tx):
        t = Transaction(id="1", **make_tx().model_dump())
        assert t.to_draft() == make_tx()


class TestCategoryTaxonomy:

    def test_add_rename_remove(self):
        tax = CategoryTaxonomy()
        tax = tax.add("expense", "leisure", "  Concerts ")
        assert tax.get("expense", "leisure")[-1] == "Concerts"

        tax = tax.rename("expense", "leisure", 0, "Dining Out")
        assert tax.get("expense", "leisure")[0] == "Dining Out"

        before = len(tax.get("income", "variable"))
        tax = tax.remove("income", "variable", 0)
        assert len(tax.get("income", "variable")) == before - 1

    def test_blank_name_is_ignored(self):
        tax = CategoryTaxonomy()
        assert tax.add("income", "fixed", "   ") is tax

    def test_unknown_subtype(self):
        with pytest.raises(ValueError):
            CategoryTaxonomy().add("income", "leisure", "Nope")


class TestUtils:

    def test_format_brl(self):
        assert format_brl(1234.5) == "R$ 1.234,50"
        assert format_brl(-0.5) == "-R$ 0,50"

    def test_add_months_clamps(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
        assert add_months(date(2024, 3, 31), -1) == date(2024, 2, 29)

    def test_parse_date(self):
        assert parse_date("2024-03-05T10:00:00") == date(2024, 3, 5)
        assert parse_date(datetime(2024, 3, 5, 23, 0)) == date(2024, 3, 5)
        for bad in (None, "", "nope"):
            with pytest.raises(ValueError):
                parse_date(bad)

    def test_today_in_unknown_timezone_falls_back_to_utc(self):
        now = datetime(2024, 6, 16, 2, 0, tzinfo=timezone.utc)
        assert today_in_timezone("Nowhere/Nothing", now) == date(2024, 6, 16)


class TestProjectionConfig:

    def test_unknown_timeframe(self, today):
        with pytest.raises(ValueError):
            ProjectionConfig(today=today, timeframe="3Y")

    def test_period_defaults_to_today(self, today):
        assert ProjectionConfig(today=today).period == today
