"""
Shared pytest fixtures.

Puts the project root on sys.path so the flat top-level packages import
without installation.
"""

import sys
from datetime import date
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from core.db import DatabaseManager  # noqa: E402
from core.schema import InvestmentBox, TransactionDraft  # noqa: E402


@pytest.fixture
def today():
    """Fixed 'today' used across tests."""
    return date(2024, 6, 15)


@pytest.fixture
def db(tmp_path):
    """Fresh SQLite database in a temp directory."""
    manager = DatabaseManager(tmp_path / "finance.db")
    yield manager
    manager.close()


@pytest.fixture
def make_tx():
    """Factory for transaction drafts with sensible defaults."""
    def _make(
        description="Item",
        amount=100.0,
        type="expense",
        category="Misc",
        on=date(2024, 6, 1),
        expense_type=None,
        income_type=None,
        **extra,
    ):
        if type == "expense" and expense_type is None:
            expense_type = "variable"
        if type == "income" and income_type is None:
            income_type = "fixed"
        return TransactionDraft(
            description=description,
            amount=amount,
            type=type,
            category=category,
            date=on,
            expense_type=expense_type,
            income_type=income_type,
            **extra,
        )
    return _make


@pytest.fixture
def contribution():
    """Factory for investment contributions into a box."""
    def _make(box_id, amount, on):
        return TransactionDraft(
            description="Contribution",
            amount=amount,
            type="expense",
            category="Investments",
            date=on,
            expense_type="investment",
            investment_box_id=box_id,
        )
    return _make


@pytest.fixture
def redemption():
    """Factory for investment redemptions out of a box."""
    def _make(box_id, amount, on):
        return TransactionDraft(
            description="Redemption",
            amount=amount,
            type="income",
            category="Redemption",
            date=on,
            income_type="investment",
            investment_box_id=box_id,
        )
    return _make


@pytest.fixture
def boxes():
    """Two boxes: one at an explicit 0% and one without a configured rate."""
    return [
        InvestmentBox(id="b-flat", name="Flat", interest_rate=0.0, target_amount=2000.0),
        InvestmentBox(id="b-default", name="Default rate"),
    ]
