"""
Unit tests for month metrics, chart aggregations, box balances, the budget
planner and the contribution models.
"""

from datetime import date

import pytest

from contributions import ConstantContributionModel, TrailingAverageContributionModel
from core.schema import BudgetGoals, InvestmentBox
from reports import (
    available_years,
    box_balances,
    build_budget_report,
    category_breakdown,
    compute_month_summary,
    monthly_income_expense,
    monthly_summaries,
    next_bill,
    overdue_bills,
    rebalance_goals,
    transactions_by_kind,
    upcoming_bills,
)
from reports.budget import BudgetLine


@pytest.fixture
def june(make_tx, contribution, redemption):
    """A month with income, paid and unpaid bills and box movements."""
    return [
        make_tx(description="Salary", amount=5000.0, type="income", category="Salary", on=date(2024, 6, 5)),
        make_tx(description="Rent", amount=1200.0, expense_type="fixed", category="Rent",
                on=date(2024, 6, 10), due_date=date(2024, 6, 10), paid=True),
        make_tx(description="Power", amount=180.0, expense_type="fixed", category="Electricity",
                on=date(2024, 6, 12), due_date=date(2024, 6, 12), paid=False),
        make_tx(description="Card", amount=300.0, expense_type="variable", category="Credit Card",
                on=date(2024, 6, 20), due_date=date(2024, 6, 20), paid=False),
        make_tx(description="Phone", amount=120.0, expense_type="fixed", category="Phone",
                on=date(2024, 6, 15), due_date=date(2024, 6, 15)),
        contribution("b-flat", 1000.0, date(2024, 6, 6)),
        redemption("b-flat", 200.0, date(2024, 6, 25)),
    ]


class TestMonthSummary:

    def test_totals(self, june, make_tx):
        other_month = make_tx(amount=999.0, on=date(2024, 5, 30))

        s = compute_month_summary(june + [other_month], date(2024, 6, 1))

        assert s.total_income == 5200.0
        assert s.total_expenses == 1800.0
        assert s.total_invested == 800.0
        assert s.balance == 5200.0 - (1800.0 + 1000.0)
        assert s.paid_expenses == 1200.0

    def test_empty_month(self):
        s = compute_month_summary([], date(2024, 6, 1))
        assert s.balance == 0.0


class TestBills:

    def test_overdue_and_upcoming(self, june, today):
        assert [t.description for t in overdue_bills(june, today)] == ["Power"]
        assert [t.description for t in upcoming_bills(june, today)] == ["Phone", "Card"]
        assert next_bill(june, today).description == "Phone"

    def test_no_bills(self, today):
        assert next_bill([], today) is None


class TestKinds:

    def test_split(self, june):
        kinds = transactions_by_kind(june)
        assert [t.description for t in kinds["fixed_income"]] == ["Salary"]
        assert kinds["variable_income"] == []
        assert [t.description for t in kinds["fixed_expenses"]] == ["Rent", "Power", "Phone"]
        assert [t.description for t in kinds["variable_expenses"]] == ["Card"]
        assert [t.description for t in kinds["investments"]] == ["Contribution", "Redemption"]


class TestAggregations:

    def test_category_breakdown(self, june):
        df = category_breakdown(june)
        assert df["category"].tolist()[:3] == ["Rent", "Investments", "Credit Card"]
        assert df["amount"].tolist()[:3] == [1200.0, 1000.0, 300.0]

    def test_category_breakdown_empty(self, make_tx):
        assert category_breakdown([make_tx(type="income")]).empty

    def test_monthly_income_expense(self, june, make_tx):
        txs = june + [make_tx(amount=50.0, on=date(2024, 3, 2))]

        df = monthly_income_expense(txs)

        assert df["label"].tolist() == ["Mar/24", "Jun/24"]
        assert df["expense"].tolist() == [50.0, 2800.0]
        assert df["income"].tolist() == [0.0, 5200.0]

    def test_monthly_income_expense_last_n(self, make_tx):
        txs = [make_tx(on=date(2023, m, 1)) for m in range(1, 13)]
        df = monthly_income_expense(txs, last_n=3)
        assert df["label"].tolist() == ["Oct/23", "Nov/23", "Dec/23"]

    def test_monthly_summaries(self, june, make_tx):
        txs = june + [make_tx(amount=50.0, on=date(2024, 3, 2)), make_tx(on=date(2023, 12, 1))]

        df = monthly_summaries(txs, 2024)

        assert [m.month for m in df["month"]] == [6, 3]
        assert df["balance"].tolist() == [5200.0 - 2800.0, -50.0]

    def test_available_years(self, make_tx, today):
        assert available_years([make_tx(on=date(2022, 1, 1))], today) == [2024, 2022]
        assert available_years([], today) == [2024]


class TestBoxBalances:

    def test_progress_and_profit(self, boxes, contribution, today):
        txs = [contribution("b-flat", 1000.0, date(2024, 1, 1))]

        df = box_balances(boxes, txs, today).set_index("box_id")

        assert df.loc["b-flat", "patrimony"] == pytest.approx(1000.0)
        assert df.loc["b-flat", "profit"] == pytest.approx(0.0)
        assert df.loc["b-flat", "progress_pct"] == pytest.approx(50.0)
        assert df.loc["b-default", "patrimony"] == 0.0
        assert df.loc["b-default", "progress_pct"] == 0.0

    def test_default_rate_for_unset_box(self, contribution):
        box = InvestmentBox(id="x", name="X")
        txs = [contribution("x", 1000.0, date(2023, 1, 1))]

        df = box_balances([box], txs, date(2024, 1, 1), default_annual_rate=0.10)

        assert df.loc[0, "patrimony"] == pytest.approx(1100.0, rel=1e-9)

    def test_progress_is_capped(self, contribution, today):
        box = InvestmentBox(id="x", name="X", interest_rate=0.0, target_amount=100.0)
        df = box_balances([box], [contribution("x", 500.0, date(2024, 1, 1))], today)
        assert df.loc[0, "progress_pct"] == 100.0


class TestBudget:

    def test_report(self, make_tx):
        txs = [
            make_tx(amount=500.0, expense_type="fixed"),
            make_tx(amount=500.0, expense_type="leisure"),
            make_tx(amount=999.0, type="income"),
        ]

        report = build_budget_report(txs, BudgetGoals())
        lines = {line.expense_type: line for line in report.lines}

        assert report.has_expenses
        assert report.total_expenses == 1000.0
        assert lines["fixed"].pct_of_expenses == 50.0
        assert lines["fixed"].over_budget
        assert lines["fixed"].fill_pct == 100.0
        assert not lines["variable"].over_budget
        assert len(report.flags) == 2
        assert report.to_dataframe()["Type"].tolist() == ["Fixed", "Variable", "Leisure", "Investments"]

    def test_no_expenses(self):
        report = build_budget_report([], BudgetGoals())
        assert not report.has_expenses
        assert report.flags == []
        assert all(line.pct_of_expenses == 0.0 for line in report.lines)

    def test_goal_total_flag(self):
        report = build_budget_report([], BudgetGoals(fixed=50))
        assert report.flags == ["Goals add up to 110%, not 100%"]

    def test_zero_goal_fill(self):
        assert BudgetLine("leisure", 10.0, 5.0, 0.0).fill_pct == 100.0
        assert BudgetLine("leisure", 0.0, 0.0, 0.0).fill_pct == 0.0

    def test_negative_goal_is_clamped(self):
        assert BudgetGoals(fixed=-5).fixed == 0.0

    def test_rebalance(self):
        out = rebalance_goals(BudgetGoals(fixed=10, variable=20, leisure=30, investment=0))
        assert out.as_dict() == {"fixed": 17.0, "variable": 33.0, "leisure": 50.0, "investment": 0.0}
        assert out.total == 100.0

    def test_rebalance_noop(self):
        goals = BudgetGoals(fixed=0, variable=0, leisure=0, investment=0)
        assert rebalance_goals(goals) is goals
        default = BudgetGoals()
        assert rebalance_goals(default) is default


class TestContributionModels:

    def test_trailing_mean_of_positive_months(self, today):
        flows = {
            date(2024, 1, 1): 300.0,
            date(2024, 2, 1): -50.0,
            date(2024, 3, 1): 0.0,
            date(2024, 6, 1): 500.0,
            date(2024, 7, 1): 10_000.0,  # future month
            date(2023, 12, 1): 10_000.0,  # before the window
        }
        assert TrailingAverageContributionModel().forecast(flows, today=today) == 400.0

    def test_trailing_nothing_qualifies(self, today):
        assert TrailingAverageContributionModel().forecast({date(2024, 2, 1): -10.0}, today=today) == 0.0

    def test_lookback_window(self, today):
        flows = {date(2024, 3, 1): 100.0, date(2024, 5, 1): 300.0}
        assert TrailingAverageContributionModel(lookback_months=2).forecast(flows, today=today) == 300.0

    def test_constant(self, today):
        assert ConstantContributionModel(250.0).forecast({}, today=today) == 250.0
        with pytest.raises(ValueError):
            ConstantContributionModel(-1.0)
