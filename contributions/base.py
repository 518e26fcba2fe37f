"""
Base class for contribution models.

A contribution model looks at a box's realized monthly net flows and returns
the amount the projection should add on the 1st of every future month.
"""

from __future__ import annotations

from datetime import date
from typing import Mapping

MonthlyFlows = Mapping[date, float]  # month start -> net flow into the box


class ContributionModel:
    """Interface for forecasting a box's monthly contribution."""

    def forecast(self, monthly_flows: MonthlyFlows, *, today: date) -> float:
        raise NotImplementedError
