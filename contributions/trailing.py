"""
TrailingAverageContributionModel — the default heuristic: the mean of the
recent months in which the box received money.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

import numpy as np

from core.utils import add_months, month_start

from .base import ContributionModel, MonthlyFlows


@dataclass(frozen=True)
class TrailingAverageContributionModel(ContributionModel):
    """
    Average of the positive monthly net flows whose month starts on or after
    `today - lookback_months` and no later than the current month.

    Months with a zero or negative net flow are ignored rather than counted
    as zero, so a single redemption does not drag the forecast below zero.
    Returns 0.0 when no month qualifies.
    """

    lookback_months: int = 6

    def forecast(self, monthly_flows: MonthlyFlows, *, today: date) -> float:
        cutoff = add_months(today, -self.lookback_months)
        current = month_start(today)
        positives = [
            float(v)
            for m, v in monthly_flows.items()
            if cutoff <= m <= current and v > 0
        ]
        if not positives:
            return 0.0
        return float(np.mean(positives))
