"""
Month-level metrics for the dashboard header, bill tracker and box list.

All functions take plain lists of transactions and return plain values or
frames; none of them touch storage.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from core.config import DEFAULT_ANNUAL_RATE
from core.schema import InvestmentBox, TransactionDraft
from core.utils import same_month
from engine.simulation import simulate_box_to_date


@dataclass(frozen=True)
class MonthSummary:
    """Header totals for one month."""
    total_income: float
    total_expenses: float  # excludes investment contributions
    total_invested: float  # contributions - redemptions
    balance: float  # income - (expenses + contributions)
    paid_expenses: float


def month_transactions(transactions: Iterable[TransactionDraft], month: date) -> list:
    return [t for t in transactions if same_month(t.date, month)]


def compute_month_summary(transactions: Iterable[TransactionDraft], month: date) -> MonthSummary:
    txs = month_transactions(transactions, month)
    income = sum(t.amount for t in txs if t.type == "income")
    expenses = sum(t.amount for t in txs if t.type == "expense" and not t.is_contribution)
    contributions = sum(t.amount for t in txs if t.type == "expense" and t.is_contribution)
    redemptions = sum(t.amount for t in txs if t.type == "income" and t.is_redemption)
    paid = sum(t.amount for t in txs if t.type == "expense" and t.paid)
    return MonthSummary(
        total_income=float(income),
        total_expenses=float(expenses),
        total_invested=float(contributions - redemptions),
        balance=float(income - (expenses + contributions)),
        paid_expenses=float(paid),
    )


def _open_bills(transactions: Iterable[TransactionDraft]) -> list:
    return [t for t in transactions if t.type == "expense" and t.due_date is not None and not t.paid]


def overdue_bills(transactions: Iterable[TransactionDraft], today: date) -> list:
    """
    Unpaid expenses whose due date is before today.

    Expects one month of transactions (the selected month); recurring bills
    from other months are not filtered out here.
    """
    return [t for t in _open_bills(transactions) if t.due_date < today]


def upcoming_bills(transactions: Iterable[TransactionDraft], today: date) -> list:
    """Unpaid expenses due today or later, soonest first. Pass one month of transactions."""
    return sorted(
        (t for t in _open_bills(transactions) if t.due_date >= today),
        key=lambda t: t.due_date,
    )


def next_bill(transactions: Iterable[TransactionDraft], today: date) -> Optional[TransactionDraft]:
    upcoming = upcoming_bills(transactions, today)
    return upcoming[0] if upcoming else None


def transactions_by_kind(transactions: Iterable[TransactionDraft]) -> Dict[str, list]:
    """Split a month's transactions into the dashboard's list cards."""
    txs = list(transactions)
    return {
        "fixed_income": [t for t in txs if t.type == "income" and t.income_type == "fixed"],
        "variable_income": [t for t in txs if t.type == "income" and t.income_type == "variable"],
        "fixed_expenses": [t for t in txs if t.type == "expense" and t.expense_type == "fixed"],
        "variable_expenses": [t for t in txs if t.type == "expense" and t.expense_type == "variable"],
        "leisure_expenses": [t for t in txs if t.type == "expense" and t.expense_type == "leisure"],
        "investments": sorted((t for t in txs if t.is_investment), key=lambda t: t.date),
    }


def box_balances(
    boxes: Sequence[InvestmentBox],
    transactions: Sequence[TransactionDraft],
    today: date,
    *,
    default_annual_rate: float = DEFAULT_ANNUAL_RATE,
) -> pd.DataFrame:
    """
    One row per box: patrimony and accrued profit as of today, and progress
    towards the target (percent, capped at 100; 0 without a target).
    """
    columns = [
        "box_id", "name", "color", "interest_rate", "patrimony",
        "principal", "profit", "target_amount", "progress_pct",
    ]
    rows: List[dict] = []
    for box in boxes:
        bal = simulate_box_to_date(transactions, box, today, default_annual_rate=default_annual_rate)
        target = box.target_amount
        if target and target > 0:
            progress = min(bal.patrimony / target * 100.0, 100.0)
        else:
            progress = 0.0
        rows.append(
            {
                "box_id": box.id,
                "name": box.name,
                "color": box.color,
                "interest_rate": box.interest_rate,
                "patrimony": bal.patrimony,
                "principal": bal.principal,
                "profit": bal.profit,
                "target_amount": target,
                "progress_pct": progress,
            }
        )
    return pd.DataFrame(rows, columns=columns)
