"""
Data quality validation for transactions and boxes before they enter the engine.

Catches problems early:
- Non-finite or negative amounts
- Missing or unparseable dates
- Subtypes that don't match the transaction type
- Investment movements without a box, duplicate ids
- Box interest rates that can't be compounded
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Sequence

import numpy as np
import pandas as pd

from core.schema import EXPENSE_TYPES, INCOME_TYPES, InvestmentBox
from core.utils import parse_date

_TX_FIELDS = ("id", "amount", "type", "date", "expense_type", "income_type", "investment_box_id")


class ProjectionInputError(ValueError):
    """Raised by the engine when its inputs fail validation."""


@dataclass
class ValidationResult:
    """Collects all validation warnings/errors for a batch of records."""
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def summary(self) -> str:
        lines = []
        if self.errors:
            lines.append(f"ERRORS ({len(self.errors)}):")
            for e in self.errors:
                lines.append(f"  ✗ {e}")
        if self.warnings:
            lines.append(f"WARNINGS ({len(self.warnings)}):")
            for w in self.warnings:
                lines.append(f"  ⚠ {w}")
        if not lines:
            lines.append("✓ All checks passed.")
        return "\n".join(lines)


def _is_date(v) -> bool:
    try:
        parse_date(v)
    except (TypeError, ValueError):
        return False
    return True


def _as_frame(transactions) -> pd.DataFrame:
    if isinstance(transactions, pd.DataFrame):
        return transactions.reindex(columns=list(_TX_FIELDS))
    # getattr rather than model_dump: records built with model_construct skip
    # pydantic validation and are exactly what this module is meant to catch.
    records = [{c: getattr(t, c, None) for c in _TX_FIELDS} for t in transactions]
    return pd.DataFrame.from_records(records, columns=list(_TX_FIELDS))


def validate_transactions(transactions) -> ValidationResult:
    """
    Run all validation checks on a list of transactions (or a frame of them).
    Returns a ValidationResult with errors (blocking) and warnings (informational).
    """
    result = ValidationResult()
    df = _as_frame(transactions)
    if df.empty:
        return result

    # --- Amounts ---
    amounts = pd.to_numeric(df["amount"], errors="coerce")
    n_bad = int((~np.isfinite(amounts.to_numpy(dtype=float))).sum())
    n_neg = int((amounts < 0).sum())
    if n_bad > 0:
        result.errors.append(f"{n_bad} transactions have a missing or non-finite amount.")
    if n_neg > 0:
        result.errors.append(f"{n_neg} transactions have a negative amount.")

    # --- Dates ---
    ok_dates = df["date"].map(_is_date)
    n_bad_dates = int((~ok_dates.astype(bool)).sum())
    if n_bad_dates > 0:
        result.errors.append(f"{n_bad_dates} transactions have a missing or invalid date.")

    # --- Types / subtypes ---
    n_bad_type = int((~df["type"].isin(["income", "expense"])).sum())
    if n_bad_type > 0:
        result.errors.append(f"{n_bad_type} transactions have an unknown type.")

    is_income = df["type"] == "income"
    is_expense = df["type"] == "expense"
    n_mismatch = int((is_income & df["expense_type"].notna()).sum()) + int(
        (is_expense & df["income_type"].notna()).sum()
    )
    if n_mismatch > 0:
        result.errors.append(f"{n_mismatch} transactions carry a subtype of the other type.")

    n_unknown = int((df["expense_type"].notna() & ~df["expense_type"].isin(EXPENSE_TYPES)).sum())
    n_unknown += int((df["income_type"].notna() & ~df["income_type"].isin(INCOME_TYPES)).sum())
    if n_unknown > 0:
        result.errors.append(f"{n_unknown} transactions have an unknown subtype.")

    # --- Investment links ---
    is_inv = (df["expense_type"] == "investment") | (df["income_type"] == "investment")
    n_no_box = int((is_inv & df["investment_box_id"].isna()).sum())
    if n_no_box > 0:
        result.warnings.append(f"{n_no_box} investment transactions have no box.")

    # --- Ids ---
    ids = df["id"].dropna()
    n_dup = int(ids.duplicated().sum())
    if n_dup > 0:
        result.warnings.append(f"{n_dup} duplicate transaction ids found.")

    return result


def validate_boxes(boxes: Iterable[InvestmentBox]) -> ValidationResult:
    result = ValidationResult()
    seen: set[str] = set()
    for b in boxes:
        rate = getattr(b, "interest_rate", None)
        if rate is not None:
            try:
                r = float(rate)
            except (TypeError, ValueError):
                r = float("nan")
            if not np.isfinite(r):
                result.errors.append(f"Box {b.name!r} has a non-finite interest rate.")
            elif r < 0:
                result.errors.append(f"Box {b.name!r} has a negative interest rate.")
        if b.id in seen:
            result.warnings.append(f"Duplicate box id {b.id!r}.")
        seen.add(b.id)
    return result


def ensure_valid(transactions: Sequence, boxes: Sequence[InvestmentBox]) -> None:
    """Raise ProjectionInputError listing every blocking problem."""
    tx = validate_transactions(transactions)
    bx = validate_boxes(boxes)
    if tx.is_valid and bx.is_valid:
        return
    merged = ValidationResult(errors=tx.errors + bx.errors, warnings=tx.warnings + bx.warnings)
    raise ProjectionInputError(merged.summary())
