"""
Projection and application configuration.

ProjectionConfig is everything the engine needs besides the data itself. `today`
and `selected_month` are always supplied by the caller so a run is reproducible.
AppConfig carries filesystem and locale settings, read from the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Optional

from .schema import TIMEFRAME_MONTHS, Timeframe

DEFAULT_ANNUAL_RATE = 0.10
DEFAULT_TIMEZONE = "America/Sao_Paulo"


@dataclass(frozen=True)
class ProjectionConfig:
    today: date
    selected_month: Optional[date] = None
    timeframe: Timeframe = "5Y"
    predict_contributions: bool = True

    # rate used for boxes without a configured interest rate (annual, decimal)
    default_annual_rate: float = DEFAULT_ANNUAL_RATE

    # trailing window for the projected monthly contribution
    contribution_lookback_months: int = 6

    def __post_init__(self):
        if self.timeframe not in TIMEFRAME_MONTHS:
            raise ValueError(f"Unknown timeframe: {self.timeframe!r}")
        if self.contribution_lookback_months < 0:
            raise ValueError("contribution_lookback_months must be >= 0")

    @property
    def horizon_months(self) -> int:
        return TIMEFRAME_MONTHS[self.timeframe]

    @property
    def period(self) -> date:
        """Month whose net flow is reported (defaults to today's month)."""
        return self.selected_month or self.today


@dataclass(frozen=True)
class AppConfig:
    data_dir: Path
    db_path: Path
    attachments_dir: Path
    timezone: str = DEFAULT_TIMEZONE
    log_level: str = "INFO"
    default_annual_rate: float = DEFAULT_ANNUAL_RATE
    attachment_base_url: str = field(default="")

    @classmethod
    def from_env(cls, base_dir: Optional[Path] = None) -> "AppConfig":
        """
        Build the config from FINANCE_* environment variables.

        FINANCE_DATA_DIR defaults to <base_dir>/data; the database and the
        attachment bucket live inside it unless overridden.
        """
        base = Path(base_dir) if base_dir is not None else Path.cwd()
        data_dir = Path(os.getenv("FINANCE_DATA_DIR", str(base / "data")))
        db_path = Path(os.getenv("FINANCE_DB_PATH", str(data_dir / "finance.db")))
        attachments_dir = Path(os.getenv("FINANCE_ATTACHMENTS_DIR", str(data_dir / "attachments")))
        rate = os.getenv("FINANCE_DEFAULT_ANNUAL_RATE")
        return cls(
            data_dir=data_dir,
            db_path=db_path,
            attachments_dir=attachments_dir,
            timezone=os.getenv("FINANCE_TIMEZONE", DEFAULT_TIMEZONE),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            default_annual_rate=float(rate) if rate else DEFAULT_ANNUAL_RATE,
            attachment_base_url=os.getenv("FINANCE_ATTACHMENT_BASE_URL", ""),
        )
