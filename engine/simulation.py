"""
Per-box daily simulation.

Each box is simulated on its own calendar-day grid:
  1. Interest accrues overnight on the previous day's closing balance, and only
     while that balance is positive (an overdrawn box earns nothing)
  2. The day's actual net flow (contributions +, redemptions -) lands at the
     end of the day
  3. On future 1st-of-month days the forecast contribution is added as well
  4. Principal tracks net cash only, so patrimony - principal is accrued profit

Boxes never interact; the runner sums their paths day by day.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from core.config import DEFAULT_ANNUAL_RATE
from core.schema import InvestmentBox, TransactionDraft
from core.utils import annual_to_daily_rate, iter_days, month_start


@dataclass(frozen=True)
class BoxPath:
    """Daily closing values of one box over the runner's date grid."""
    box_id: str
    annual_rate: float
    projected_contribution: float
    patrimony: np.ndarray
    principal: np.ndarray
    flow: np.ndarray


@dataclass(frozen=True)
class BoxBalance:
    box_id: str
    patrimony: float
    principal: float

    @property
    def profit(self) -> float:
        return self.patrimony - self.principal


def box_annual_rate(box: Optional[InvestmentBox], default_annual_rate: float = DEFAULT_ANNUAL_RATE) -> float:
    """
    Annual rate as a decimal. An unset rate falls back to the default; an
    explicit 0 is honored.
    """
    if box is None or box.interest_rate is None:
        return float(default_annual_rate)
    return float(box.interest_rate) / 100.0


def flows_by_day(transactions: Iterable[TransactionDraft]) -> Dict[date, float]:
    out: Dict[date, float] = defaultdict(float)
    for t in transactions:
        out[t.date] += t.signed_flow
    return dict(out)


def flows_by_month(transactions: Iterable[TransactionDraft]) -> Dict[date, float]:
    """Net flow per month, keyed by the month's first day."""
    out: Dict[date, float] = defaultdict(float)
    for t in transactions:
        out[month_start(t.date)] += t.signed_flow
    return dict(out)


def simulate_path(
    days: Sequence[date],
    daily_flows: Dict[date, float],
    *,
    annual_rate: float,
    today: date,
    monthly_contribution: float = 0.0,
    predict_contributions: bool = False,
):
    """
    Run the day loop over `days` (ascending, contiguous).

    Returns (patrimony, principal, flow) arrays aligned with `days`; `flow`
    includes predicted contributions.
    """
    n = len(days)
    daily_rate = annual_to_daily_rate(annual_rate)
    patrimony = np.zeros(n, dtype=float)
    principal = np.zeros(n, dtype=float)
    flow = np.zeros(n, dtype=float)

    bal = 0.0
    cash = 0.0
    for i, d in enumerate(days):
        if bal > 0:
            bal *= 1.0 + daily_rate

        f = daily_flows.get(d, 0.0)
        if predict_contributions and d > today and d.day == 1:
            f += monthly_contribution

        bal += f
        cash += f
        patrimony[i] = bal
        principal[i] = cash
        flow[i] = f

    return patrimony, principal, flow


def simulate_box_to_date(
    transactions: Iterable[TransactionDraft],
    box: InvestmentBox,
    until: date,
    *,
    default_annual_rate: float = DEFAULT_ANNUAL_RATE,
) -> BoxBalance:
    """
    Patrimony and principal of `box` at the close of `until`, from realized
    investment movements only (no forecast contributions).
    """
    own = [t for t in transactions if t.is_investment and t.investment_box_id == box.id]
    if not own:
        return BoxBalance(box_id=box.id, patrimony=0.0, principal=0.0)

    start = min(min(t.date for t in own), until)
    days: List[date] = list(iter_days(start, until))
    patrimony, principal, _ = simulate_path(
        days,
        flows_by_day(own),
        annual_rate=box_annual_rate(box, default_annual_rate),
        today=until,
    )
    return BoxBalance(box_id=box.id, patrimony=float(patrimony[-1]), principal=float(principal[-1]))
