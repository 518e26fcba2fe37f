"""
Chart downsampling — reduce the aggregated daily series to the points the
projection chart plots.
"""

from __future__ import annotations

from datetime import date
from typing import Optional, Tuple

import pandas as pd

from core.schema import Timeframe
from core.utils import require_columns, round_cents

SERIES_COLUMNS = ("date", "patrimony", "principal", "movement", "is_today")


def keeps_future_month(month: int, timeframe: Timeframe) -> bool:
    """Whether a future month's 1st is plotted: every month, quarterly or yearly."""
    if timeframe in ("1Y", "5Y"):
        return True
    if timeframe == "10Y":
        return (month - 1) % 3 == 0
    return month == 1


def downsample_series(daily: pd.DataFrame, *, today: date, timeframe: Timeframe) -> pd.DataFrame:
    """
    Pick the plotted points out of a daily (date, patrimony, principal, movement) frame.

    Kept: today's point, the final day, and 1st-of-month points (past months
    always, future months per `keeps_future_month`). A calendar month never
    gets two points; the 1st of today's month yields to today. `movement` on a
    plotted point is the net flow accumulated since the 1st of its month.
    """
    require_columns(daily, ["date", "patrimony", "principal", "movement"])
    if daily.empty:
        return pd.DataFrame(columns=list(SERIES_COLUMNS))

    dates = pd.to_datetime(daily["date"]).dt.date.to_numpy()
    patrimony = daily["patrimony"].to_numpy(dtype=float)
    principal = daily["principal"].to_numpy(dtype=float)
    movement = daily["movement"].to_numpy(dtype=float)

    today_key = (today.year, today.month)
    last_i = len(dates) - 1
    rows = []
    acc = 0.0
    acc_key: Optional[Tuple[int, int]] = None
    pushed_key: Optional[Tuple[int, int]] = None

    for i, d in enumerate(dates):
        key = (d.year, d.month)
        if key != acc_key:
            acc = 0.0
            acc_key = key
        acc += movement[i]

        is_today = d == today
        if is_today:
            push = True
        elif (
            d.day == 1
            and key != pushed_key
            and key != today_key
            and (d < today or keeps_future_month(d.month, timeframe))
        ):
            push = True
        else:
            push = i == last_i

        if push:
            rows.append((d, patrimony[i], principal[i], acc, is_today))
            pushed_key = key

    out = pd.DataFrame.from_records(rows, columns=list(SERIES_COLUMNS))
    out["date"] = pd.to_datetime(out["date"])
    for c in ("patrimony", "principal", "movement"):
        out[c] = round_cents(out[c].to_numpy(dtype=float))
    out["is_today"] = out["is_today"].astype(bool)
    return out.reset_index(drop=True)
