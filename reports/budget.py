"""
Budget planner — compare the month's expense mix against the goal split.

Goals are percentages of total expenses per expense type (fixed, variable,
leisure, investment). The report answers, per type:
  "How much did I spend?"            -> value
  "What share of expenses was it?"   -> pct_of_expenses
  "Am I over my goal?"               -> over_budget
  "How full is the bar?"             -> fill_pct (share / goal, capped at 100)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List

import pandas as pd

from core.schema import EXPENSE_TYPES, BudgetGoals, TransactionDraft

BUDGET_LABELS: Dict[str, str] = {
    "fixed": "Fixed",
    "variable": "Variable",
    "leisure": "Leisure",
    "investment": "Investments",
}


@dataclass
class BudgetLine:
    expense_type: str
    value: float
    pct_of_expenses: float
    goal: float

    @property
    def over_budget(self) -> bool:
        return self.pct_of_expenses > self.goal

    @property
    def fill_pct(self) -> float:
        if self.goal <= 0:
            return 100.0 if self.pct_of_expenses > 0 else 0.0
        return min(self.pct_of_expenses / self.goal * 100.0, 100.0)


@dataclass
class BudgetReport:
    """Budget planner output for one month."""
    total_expenses: float
    lines: List[BudgetLine] = field(default_factory=list)
    flags: List[str] = field(default_factory=list)

    @property
    def has_expenses(self) -> bool:
        return self.total_expenses > 0

    def to_dataframe(self) -> pd.DataFrame:
        """Convert to a display-friendly table."""
        rows = [
            {
                "Type": BUDGET_LABELS.get(line.expense_type, line.expense_type),
                "Value": line.value,
                "Share (%)": round(line.pct_of_expenses, 1),
                "Goal (%)": line.goal,
                "Fill (%)": round(line.fill_pct, 1),
                "Over budget": line.over_budget,
            }
            for line in self.lines
        ]
        return pd.DataFrame(rows)


def build_budget_report(transactions: Iterable[TransactionDraft], goals: BudgetGoals) -> BudgetReport:
    """
    Budget lines for the given (usually one month's) transactions.

    Only expenses with an expense type count. With no expenses every share
    is 0 and `has_expenses` is False.
    """
    totals = {k: 0.0 for k in EXPENSE_TYPES}
    for t in transactions:
        if t.type == "expense" and t.expense_type:
            totals[t.expense_type] += t.amount
    total = sum(totals.values())

    goal_map = goals.as_dict()
    report = BudgetReport(total_expenses=float(total))
    for key in EXPENSE_TYPES:
        pct = totals[key] / total * 100.0 if total > 0 else 0.0
        line = BudgetLine(expense_type=key, value=totals[key], pct_of_expenses=pct, goal=goal_map[key])
        report.lines.append(line)
        if line.over_budget and total > 0:
            report.flags.append(
                f"{BUDGET_LABELS[key]} over budget: {pct:.1f}% of expenses vs goal {line.goal:g}%"
            )

    if abs(goals.total - 100.0) > 1e-9:
        report.flags.append(f"Goals add up to {goals.total:g}%, not 100%")
    return report


def rebalance_goals(goals: BudgetGoals) -> BudgetGoals:
    """
    Scale goals so they add up to 100.

    Every key but the last is rounded to a whole percent; the last takes the
    remainder. Totals of 0 or exactly 100 are returned unchanged.
    """
    values = goals.as_dict()
    total = sum(values.values())
    if total == 0 or total == 100:
        return goals

    scale = 100.0 / total
    keys = list(EXPENSE_TYPES)
    out: Dict[str, float] = {}
    running = 0.0
    for key in keys[:-1]:
        # half away from zero, like the form's rounding
        adjusted = float(int(values[key] * scale + 0.5))
        out[key] = adjusted
        running += adjusted
    out[keys[-1]] = 100.0 - running
    return BudgetGoals(**out)
