"""
Core package — schema definitions, configuration, storage connection and shared utilities.
No business logic lives here.
"""

from .schema import (
    AppSettings,
    InvestmentBox,
    InvestmentBoxDraft,
    Transaction,
    TransactionDraft,
    UserPreferences,
)
from .config import AppConfig, ProjectionConfig
from .utils import add_months, annual_to_daily_rate, month_start, require_columns, round_cents

__all__ = [
    "AppSettings",
    "InvestmentBox",
    "InvestmentBoxDraft",
    "Transaction",
    "TransactionDraft",
    "UserPreferences",
    "AppConfig",
    "ProjectionConfig",
    "add_months",
    "annual_to_daily_rate",
    "month_start",
    "require_columns",
    "round_cents",
]
