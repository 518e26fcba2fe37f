"""
Aggregations behind the charts and the monthly sidebar.

Each function builds the transactions frame once and answers with a small
DataFrame ready to plot.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, List

import pandas as pd

from core.schema import TransactionDraft
from data_prep.loader import transactions_frame

MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def category_breakdown(transactions: Iterable[TransactionDraft]) -> pd.DataFrame:
    """Expense totals per category, largest first. Columns: category, amount."""
    df = transactions_frame(transactions)
    df = df[df["type"] == "expense"]
    if df.empty:
        return pd.DataFrame(columns=["category", "amount"])
    out = (
        df.groupby("category", as_index=False)["amount"].sum()
        .sort_values(["amount", "category"], ascending=[False, True], kind="mergesort")
        .reset_index(drop=True)
    )
    return out


def _by_month(df: pd.DataFrame) -> pd.DataFrame:
    df = df.assign(
        month=df["date"].dt.to_period("M").dt.to_timestamp(),
        income=df["amount"].where(df["type"] == "income", 0.0),
        expense=df["amount"].where(df["type"] == "expense", 0.0),
    )
    return df.groupby("month", as_index=False)[["income", "expense"]].sum()


def monthly_income_expense(transactions: Iterable[TransactionDraft], last_n: int = 12) -> pd.DataFrame:
    """
    Income vs expense per calendar month, oldest first, last `last_n` months
    that have data. Columns: month, label (e.g. "Mar/24"), income, expense.
    """
    df = transactions_frame(transactions)
    if df.empty:
        return pd.DataFrame(columns=["month", "label", "income", "expense"])
    out = _by_month(df).sort_values("month").tail(last_n).reset_index(drop=True)
    out.insert(1, "label", [f"{MONTH_ABBR[m.month - 1]}/{m.year % 100:02d}" for m in out["month"]])
    return out


def monthly_summaries(transactions: Iterable[TransactionDraft], year: int) -> pd.DataFrame:
    """Per-month income, expense and balance for `year`, newest month first."""
    df = transactions_frame(transactions)
    df = df[df["date"].dt.year == year]
    if df.empty:
        return pd.DataFrame(columns=["month", "income", "expense", "balance"])
    out = _by_month(df)
    out["balance"] = out["income"] - out["expense"]
    return out.sort_values("month", ascending=False).reset_index(drop=True)


def available_years(transactions: Iterable[TransactionDraft], today: date) -> List[int]:
    """Years with data plus the current one, newest first."""
    years = {t.date.year for t in transactions}
    years.add(today.year)
    return sorted(years, reverse=True)
