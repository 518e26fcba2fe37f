"""
Reports — month summaries, bill tracking, chart aggregations, box balances and the budget planner.
"""

from .aggregator import available_years, category_breakdown, monthly_income_expense, monthly_summaries
from .budget import BudgetLine, BudgetReport, build_budget_report, rebalance_goals
from .metrics import (
    MonthSummary,
    box_balances,
    compute_month_summary,
    month_transactions,
    next_bill,
    overdue_bills,
    transactions_by_kind,
    upcoming_bills,
)

__all__ = [
    "available_years",
    "category_breakdown",
    "monthly_income_expense",
    "monthly_summaries",
    "BudgetLine",
    "BudgetReport",
    "build_budget_report",
    "rebalance_goals",
    "MonthSummary",
    "box_balances",
    "compute_month_summary",
    "month_transactions",
    "next_bill",
    "overdue_bills",
    "transactions_by_kind",
    "upcoming_bills",
]
