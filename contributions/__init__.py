"""
Contribution models — forecast how much a box receives each future month.
"""

from .base import ContributionModel, MonthlyFlows
from .constant import ConstantContributionModel
from .trailing import TrailingAverageContributionModel

__all__ = [
    "ContributionModel",
    "MonthlyFlows",
    "ConstantContributionModel",
    "TrailingAverageContributionModel",
]
