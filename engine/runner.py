"""
Projection runner — simulates every box in scope and aggregates their paths.

Orphan transactions (no box, or a box that no longer exists) are dropped
before anything else, so the all-boxes view is exactly the sum of the
single-box views.

The runner is a pure function of (transactions, boxes, config): `today` and
the selected month come from the config, never from the clock.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from contributions.base import ContributionModel
from contributions.trailing import TrailingAverageContributionModel
from core.config import ProjectionConfig
from core.logging_config import get_perf_logger
from core.schema import InvestmentBox, TransactionDraft
from core.utils import add_months, iter_days, month_start, round_cents, same_month
from data_prep.validators import ensure_valid

from .sampling import downsample_series
from .simulation import BoxPath, box_annual_rate, flows_by_day, flows_by_month, simulate_path

logger = logging.getLogger(__name__)

ALL_BOXES = "all"


@dataclass(frozen=True)
class ProjectionSummary:
    current_patrimony: float
    current_principal: float
    current_profit: float
    profit_pct: float
    period_net_flow: float
    annual_rate: float
    projected_monthly_contribution: float
    final_patrimony: float
    final_principal: float
    final_profit: float
    final_date: date
    today_marker: Optional[date]


@dataclass(frozen=True, eq=False)
class ProjectionResult:
    has_any_investment: bool
    has_movement: bool
    series: Optional[pd.DataFrame] = None
    summary: Optional[ProjectionSummary] = None


def _simulate_boxes(
    by_box: Dict[str, List[TransactionDraft]],
    boxes: Dict[str, InvestmentBox],
    days: Sequence[date],
    config: ProjectionConfig,
    model: ContributionModel,
) -> List[BoxPath]:
    paths = []
    for box_id, txs in by_box.items():
        rate = box_annual_rate(boxes[box_id], config.default_annual_rate)
        contribution = model.forecast(flows_by_month(txs), today=config.today)
        patrimony, principal, flow = simulate_path(
            days,
            flows_by_day(txs),
            annual_rate=rate,
            today=config.today,
            monthly_contribution=contribution,
            predict_contributions=config.predict_contributions,
        )
        paths.append(
            BoxPath(
                box_id=box_id,
                annual_rate=rate,
                projected_contribution=contribution,
                patrimony=patrimony,
                principal=principal,
                flow=flow,
            )
        )
    return paths


def weighted_annual_rate(
    by_box: Dict[str, List[TransactionDraft]],
    rates: Dict[str, float],
    today: date,
    default_annual_rate: float,
) -> float:
    """
    Balance-weighted average of the box rates. A box's weight is its net cash
    from movements dated on or before today, floored at 0.
    """
    num = 0.0
    den = 0.0
    for box_id, txs in by_box.items():
        balance = max(0.0, sum(t.signed_flow for t in txs if t.date <= today))
        num += rates[box_id] * balance
        den += balance
    return num / den if den > 0 else float(default_annual_rate)


def run_projection(
    transactions: Sequence[TransactionDraft],
    boxes: Sequence[InvestmentBox],
    config: ProjectionConfig,
    *,
    scope: str = ALL_BOXES,
    contribution_model: Optional[ContributionModel] = None,
) -> ProjectionResult:
    """
    Project the patrimony of one box (or all of them) over the configured horizon.

    Parameters
    ----------
    transactions : all transactions; non-investment ones are ignored
    boxes : all investment boxes
    config : ProjectionConfig
        today, selected month, timeframe, prediction toggle, default rate
    scope : ALL_BOXES or a box id
    contribution_model : ContributionModel, optional
        Forecasts each box's future monthly contribution. Defaults to the
        trailing average over `config.contribution_lookback_months`.

    Returns
    -------
    ProjectionResult
        `series` has one row per plotted point (date, patrimony, principal,
        movement, is_today); `summary` carries today's and the final values.

    Raises
    ------
    ProjectionInputError
        When transactions or boxes fail validation.
    """
    ensure_valid(transactions, boxes)

    box_map = {b.id: b for b in boxes}
    invested = [t for t in transactions if t.is_investment and t.investment_box_id in box_map]
    if not invested:
        return ProjectionResult(has_any_investment=False, has_movement=False)

    scoped = invested if scope == ALL_BOXES else [t for t in invested if t.investment_box_id == scope]
    if not scoped:
        return ProjectionResult(has_any_investment=True, has_movement=False)

    today = config.today
    model = contribution_model or TrailingAverageContributionModel(config.contribution_lookback_months)

    with get_perf_logger(logger, f"run_projection[{scope}/{config.timeframe}]", threshold_ms=500):
        start = min(today, min(t.date for t in scoped))
        end = add_months(month_start(today), config.horizon_months)
        days = list(iter_days(start, end))

        # insertion order follows the box list so runs are reproducible
        order = {box_id: i for i, box_id in enumerate(box_map)}
        by_box: Dict[str, List[TransactionDraft]] = defaultdict(list)
        for t in sorted(scoped, key=lambda t: (order[t.investment_box_id], t.date)):
            by_box[t.investment_box_id].append(t)

        paths = _simulate_boxes(by_box, box_map, days, config, model)

        n = len(days)
        patrimony = np.zeros(n, dtype=float)
        principal = np.zeros(n, dtype=float)
        movement = np.zeros(n, dtype=float)
        for p in paths:
            patrimony += p.patrimony
            principal += p.principal
            movement += p.flow

        daily = pd.DataFrame({"date": days, "patrimony": patrimony, "principal": principal, "movement": movement})
        series = downsample_series(daily, today=today, timeframe=config.timeframe)

    i_today = (today - start).days
    cur_pat = float(patrimony[i_today])
    cur_pri = float(principal[i_today])
    cur_profit = cur_pat - cur_pri
    profit_pct = cur_profit / cur_pri * 100.0 if cur_pri != 0 else 0.0

    period = config.period
    period_net_flow = sum(t.signed_flow for t in scoped if same_month(t.date, period))

    rates = {p.box_id: p.annual_rate for p in paths}
    annual_rate = weighted_annual_rate(by_box, rates, today, config.default_annual_rate)

    last = series.iloc[-1]
    final_pat = float(last["patrimony"])
    final_pri = float(last["principal"])
    today_rows = series.loc[series["is_today"], "date"]

    summary = ProjectionSummary(
        current_patrimony=round_cents(cur_pat),
        current_principal=round_cents(cur_pri),
        current_profit=round_cents(cur_profit),
        profit_pct=float(profit_pct),
        period_net_flow=round_cents(period_net_flow),
        annual_rate=float(annual_rate),
        projected_monthly_contribution=round_cents(sum(p.projected_contribution for p in paths)),
        final_patrimony=final_pat,
        final_principal=final_pri,
        final_profit=round_cents(final_pat - final_pri),
        final_date=last["date"].date(),
        today_marker=today_rows.iloc[0].date() if len(today_rows) else None,
    )
    logger.debug(
        "Projection %s: %d boxes, %d days, %d points, final=%.2f",
        scope, len(paths), n, len(series), final_pat,
    )
    return ProjectionResult(has_any_investment=True, has_movement=True, series=series, summary=summary)
