from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable, Iterator

import numpy as np
import pandas as pd
from dateutil import tz
from dateutil.relativedelta import relativedelta


def require_columns(df: pd.DataFrame, cols: Iterable[str]) -> None:
    missing = [c for c in cols if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")


def annual_to_daily_rate(annual_rate: float) -> float:
    """Daily compounding rate equivalent to an annual rate: (1+r)^(1/365) - 1."""
    return float(np.power(1.0 + annual_rate, 1.0 / 365.0) - 1.0)


def round_cents(x, decimals: int = 2):
    """Round half away from zero (vectorized); returns a float for scalar input."""
    m = 10 ** decimals
    arr = np.asarray(x, dtype=float)
    out = np.sign(arr) * (np.floor(np.abs(arr) * m + 0.5) / m)
    if out.ndim == 0:
        return float(out)
    return out


def month_start(d: date) -> date:
    return date(d.year, d.month, 1)


def add_months(d: date, n: int) -> date:
    """Shift by n calendar months, clamping the day to the target month's length."""
    return d + relativedelta(months=n)


def same_month(a: date, b: date) -> bool:
    return a.year == b.year and a.month == b.month


def iter_days(start: date, end: date) -> Iterator[date]:
    """Every calendar day from start to end, inclusive."""
    d = start
    one = timedelta(days=1)
    while d <= end:
        yield d
        d += one


def today_in_timezone(tz_name: str, now: datetime | None = None) -> date:
    """Calendar date in the given IANA timezone (falls back to UTC if unknown)."""
    zone = tz.gettz(tz_name) or tz.UTC
    if now is None:
        return datetime.now(zone).date()
    if now.tzinfo is None:
        now = now.replace(tzinfo=tz.UTC)
    return now.astimezone(zone).date()


def parse_date(value) -> date:
    """
    Parse an ISO date / datetime string (or date/datetime object) to a date.
    Raises ValueError when the value is missing or unparseable.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError("missing date")
    if not isinstance(value, str) and pd.isna(value):
        raise ValueError("missing date")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    ts = pd.to_datetime(str(value), errors="coerce")
    if pd.isna(ts):
        raise ValueError(f"invalid date: {value!r}")
    return ts.date()


def format_brl(value: float) -> str:
    """Format as Brazilian currency, e.g. R$ 1.234,56."""
    sign = "-" if value < 0 else ""
    s = f"{abs(value):,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}R$ {s}"
