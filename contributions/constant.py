"""
ConstantContributionModel — a fixed monthly amount supplied by the user.
Useful for "what if I invest X per month" views.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from .base import ContributionModel, MonthlyFlows


@dataclass(frozen=True)
class ConstantContributionModel(ContributionModel):
    amount: float = 0.0

    def __post_init__(self):
        if self.amount < 0:
            raise ValueError("amount must be >= 0")

    def forecast(self, monthly_flows: MonthlyFlows, *, today: date) -> float:
        return float(self.amount)
