"""
Row <-> model mapping for storage, plus importers for legacy exports.

Storage rows are snake_case dicts with ISO date strings. Legacy exports (the
old browser-local format) use camelCase keys; `canonicalize_keys` normalizes
them before validation.
"""

from __future__ import annotations

import json
import logging
import math
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd
from pydantic import ValidationError

from core.schema import (
    BOX_COLUMNS,
    TRANSACTION_COLUMNS,
    InvestmentBox,
    InvestmentBoxDraft,
    Transaction,
    TransactionDraft,
)
from core.utils import parse_date

logger = logging.getLogger(__name__)


class RowMappingError(ValueError):
    """A stored or imported row cannot be turned into a model."""


_KEY_ALIASES: Dict[str, str] = {
    "expenseType": "expense_type",
    "incomeType": "income_type",
    "dueDate": "due_date",
    "recurrenceId": "recurrence_id",
    "investmentBoxId": "investment_box_id",
    "attachmentUrl": "attachment_url",
    "targetAmount": "target_amount",
    "interestRate": "interest_rate",
    "taxRate": "tax_rate",
}

# Keys the old format carried that the current schema dropped.
_LEGACY_ONLY_KEYS = {"interest_rate"}


def canonicalize_keys(record: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy with camelCase aliases renamed to snake_case."""
    return {_KEY_ALIASES.get(k, k): v for k, v in record.items()}


def _none_if_blank(v):
    if v is None:
        return None
    if isinstance(v, float) and math.isnan(v):
        return None
    if isinstance(v, str) and v.strip() == "":
        return None
    return v


def _optional_float(v) -> Optional[float]:
    v = _none_if_blank(v)
    return None if v is None else float(v)


def _optional_date(v) -> Optional[date]:
    v = _none_if_blank(v)
    return None if v is None else parse_date(v)


def transaction_from_row(row: Dict[str, Any]) -> Transaction:
    """Map a storage row to a Transaction; raises RowMappingError on bad data."""
    try:
        paid = _none_if_blank(row.get("paid"))
        return Transaction(
            id=str(row["id"]),
            description=row.get("description") or "",
            amount=float(row["amount"]),
            type=row["type"],
            category=row.get("category") or "",
            date=parse_date(row.get("date")),
            expense_type=_none_if_blank(row.get("expense_type")),
            income_type=_none_if_blank(row.get("income_type")),
            due_date=_optional_date(row.get("due_date")),
            paid=None if paid is None else bool(paid),
            recurrence_id=_none_if_blank(row.get("recurrence_id")),
            investment_box_id=_none_if_blank(row.get("investment_box_id")),
            attachment_url=_none_if_blank(row.get("attachment_url")),
        )
    except (KeyError, TypeError, ValueError, ValidationError) as e:
        raise RowMappingError(f"transaction row {row.get('id')!r}: {e}") from e


def transaction_to_row(t: TransactionDraft) -> Dict[str, Any]:
    data = t.model_dump()
    row = {c: data.get(c) for c in TRANSACTION_COLUMNS}
    row["date"] = t.date.isoformat()
    row["due_date"] = t.due_date.isoformat() if t.due_date else None
    row["paid"] = None if t.paid is None else int(t.paid)
    return row


def box_from_row(row: Dict[str, Any]) -> InvestmentBox:
    try:
        return InvestmentBox(
            id=str(row["id"]),
            name=row["name"],
            description=_none_if_blank(row.get("description")),
            target_amount=_optional_float(row.get("target_amount")),
            color=_none_if_blank(row.get("color")),
            interest_rate=_optional_float(row.get("interest_rate")),
            tax_rate=_optional_float(row.get("tax_rate")),
        )
    except (KeyError, TypeError, ValueError, ValidationError) as e:
        raise RowMappingError(f"box row {row.get('id')!r}: {e}") from e


def box_to_row(box: InvestmentBoxDraft) -> Dict[str, Any]:
    data = box.model_dump()
    return {c: data.get(c) for c in BOX_COLUMNS}


def draft_from_record(record: Dict[str, Any], *, fallback_date: date) -> TransactionDraft:
    """
    Build a draft from an imported record (any key style).
    An unparseable date falls back to `fallback_date`; anything else invalid raises.
    """
    rec = canonicalize_keys(record)
    rec.pop("id", None)
    for k in _LEGACY_ONLY_KEYS:
        rec.pop(k, None)
    try:
        rec["date"] = parse_date(rec.get("date"))
    except ValueError:
        rec["date"] = fallback_date
    try:
        rec["due_date"] = _optional_date(rec.get("due_date"))
    except ValueError:
        rec["due_date"] = None
    rec = {k: _none_if_blank(v) for k, v in rec.items() if k in TRANSACTION_COLUMNS}
    try:
        return TransactionDraft(**rec)
    except ValidationError as e:
        raise RowMappingError(f"imported record {record!r}: {e}") from e


def load_legacy_json(path: str | Path, *, fallback_date: date) -> List[TransactionDraft]:
    """
    Load a legacy JSON export (a list of transaction objects).
    Returns an empty list for a missing file, malformed JSON or a non-list payload.
    """
    p = Path(path)
    if not p.exists():
        return []
    try:
        payload = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        logger.error("Could not parse legacy export %s: %s", p, e)
        return []
    if not isinstance(payload, list):
        return []
    return [draft_from_record(r, fallback_date=fallback_date) for r in payload]


def load_transactions_csv(path: str | Path, *, fallback_date: date) -> List[TransactionDraft]:
    """Load drafts from a CSV with one transaction per row (snake_case or camelCase headers)."""
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    return [draft_from_record(r, fallback_date=fallback_date) for r in df.to_dict("records")]


def transactions_frame(transactions: Iterable[TransactionDraft]) -> pd.DataFrame:
    """
    Tabular view used by the reports. One row per transaction, `date` as
    datetime64 and `flow` holding the signed box flow.
    """
    columns = ["id"] + list(TRANSACTION_COLUMNS) + ["flow", "is_investment"]
    records = []
    for t in transactions:
        rec = t.model_dump()
        rec.setdefault("id", None)
        rec["flow"] = t.signed_flow
        rec["is_investment"] = t.is_investment
        records.append(rec)
    df = pd.DataFrame.from_records(records, columns=columns)
    df["date"] = pd.to_datetime(df["date"])
    df["amount"] = df["amount"].astype(float)
    df["flow"] = df["flow"].astype(float)
    return df
