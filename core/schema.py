"""
Domain schema — transactions, investment boxes and user preferences.

Storage rows use snake_case column names (see TRANSACTION_COLUMNS / BOX_COLUMNS);
the models below are what every other package consumes.
"""

from __future__ import annotations

import datetime as dt
import math
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

TransactionType = Literal["income", "expense"]
ExpenseType = Literal["fixed", "variable", "leisure", "investment"]
IncomeType = Literal["fixed", "variable", "investment"]
Timeframe = Literal["1Y", "5Y", "10Y", "20Y"]
Theme = Literal["light", "dark", "system"]
TransactionModalMode = Literal["income", "expense", "investment"]

TIMEFRAME_MONTHS: Dict[str, int] = {"1Y": 12, "5Y": 60, "10Y": 120, "20Y": 240}

EXPENSE_TYPES: Tuple[str, ...] = ("fixed", "variable", "leisure", "investment")
INCOME_TYPES: Tuple[str, ...] = ("fixed", "variable", "investment")

# Columns persisted for each table (id and created_at are managed by storage).
TRANSACTION_COLUMNS: Tuple[str, ...] = (
    "description",
    "amount",
    "type",
    "category",
    "date",
    "expense_type",
    "income_type",
    "due_date",
    "paid",
    "recurrence_id",
    "investment_box_id",
    "attachment_url",
)

# Fields shared by every member of a recurrence group ("this and future" edits).
RECURRENCE_SHARED_COLUMNS: Tuple[str, ...] = (
    "description",
    "amount",
    "category",
    "expense_type",
    "income_type",
    "investment_box_id",
)

BOX_COLUMNS: Tuple[str, ...] = (
    "name",
    "description",
    "target_amount",
    "color",
    "interest_rate",
    "tax_rate",
)


class TransactionDraft(BaseModel):
    """A transaction that has not been stored yet."""

    model_config = ConfigDict(frozen=True)

    description: str
    amount: float = Field(ge=0, allow_inf_nan=False)
    type: TransactionType
    category: str
    date: dt.date
    expense_type: Optional[ExpenseType] = None
    income_type: Optional[IncomeType] = None
    due_date: Optional[dt.date] = None
    paid: Optional[bool] = None
    recurrence_id: Optional[str] = None
    investment_box_id: Optional[str] = None
    attachment_url: Optional[str] = None

    @model_validator(mode="after")
    def _check_subtypes(self):
        if self.type == "income" and self.expense_type is not None:
            raise ValueError("income transactions cannot carry an expense_type")
        if self.type == "expense" and self.income_type is not None:
            raise ValueError("expense transactions cannot carry an income_type")
        if self.type == "income" and self.due_date is not None:
            raise ValueError("due_date only applies to expenses")
        return self

    @property
    def is_contribution(self) -> bool:
        return self.expense_type == "investment"

    @property
    def is_redemption(self) -> bool:
        return self.income_type == "investment"

    @property
    def is_investment(self) -> bool:
        return self.is_contribution or self.is_redemption

    @property
    def signed_flow(self) -> float:
        """Cash moved into a box: expenses count positive, incomes negative."""
        return self.amount if self.type == "expense" else -self.amount


class Transaction(TransactionDraft):
    id: str

    def to_draft(self) -> TransactionDraft:
        return TransactionDraft(**self.model_dump(exclude={"id"}))


class InvestmentBoxDraft(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    description: Optional[str] = None
    target_amount: Optional[float] = Field(default=None, allow_inf_nan=False)
    color: Optional[str] = None
    interest_rate: Optional[float] = None  # annual %, e.g. 12.0
    tax_rate: Optional[float] = None  # informational, not used by projections


class InvestmentBox(InvestmentBoxDraft):
    id: str


class BudgetGoals(BaseModel):
    """Target share (%) of monthly expenses per expense type."""

    fixed: float = 40
    variable: float = 30
    leisure: float = 10
    investment: float = 20

    @field_validator("fixed", "variable", "leisure", "investment", mode="before")
    @classmethod
    def _non_negative(cls, v):
        try:
            v = float(v)
        except (TypeError, ValueError):
            return 0.0
        if math.isnan(v) or v < 0:
            return 0.0
        return v

    def as_dict(self) -> Dict[str, float]:
        return {k: float(getattr(self, k)) for k in EXPENSE_TYPES}

    @property
    def total(self) -> float:
        return sum(self.as_dict().values())


class IncomeCategories(BaseModel):
    fixed: List[str] = Field(default_factory=lambda: ["Salary"])
    variable: List[str] = Field(
        default_factory=lambda: ["Bonus", "Freelance", "Investment Income", "Other"]
    )
    investment: List[str] = Field(
        default_factory=lambda: ["Redemption", "Dividends", "Interest on Equity", "Asset Sale"]
    )


class ExpenseCategories(BaseModel):
    fixed: List[str] = Field(
        default_factory=lambda: [
            "Rent", "Condo Fee", "Car Financing", "Health Plan", "Internet",
            "Phone", "Gas", "Electricity", "Tithe", "Insurance",
        ]
    )
    variable: List[str] = Field(
        default_factory=lambda: [
            "Groceries", "Transport", "Loan", "Credit Card", "Online Shopping", "Food",
        ]
    )
    leisure: List[str] = Field(
        default_factory=lambda: ["Restaurants", "Travel", "Hobbies", "Streaming", "Leisure & Other"]
    )
    investment: List[str] = Field(
        default_factory=lambda: ["Emergency Fund", "Stocks", "Real Estate Funds", "Savings Box", "Investments"]
    )


class CategoryTaxonomy(BaseModel):
    """Free-text category lists per transaction type and subtype."""

    income: IncomeCategories = Field(default_factory=IncomeCategories)
    expense: ExpenseCategories = Field(default_factory=ExpenseCategories)

    def get(self, type_: TransactionType, subtype: str) -> List[str]:
        group = self.income if type_ == "income" else self.expense
        return list(getattr(group, subtype, []) or [])

    def _with(self, type_: TransactionType, subtype: str, values: List[str]) -> "CategoryTaxonomy":
        data = self.model_dump()
        key = "income" if type_ == "income" else "expense"
        if subtype not in data[key]:
            raise ValueError(f"Unknown {type_} subtype: {subtype!r}")
        data[key][subtype] = values
        return CategoryTaxonomy.model_validate(data)

    def add(self, type_: TransactionType, subtype: str, name: str) -> "CategoryTaxonomy":
        name = name.strip()
        if not name:
            return self
        return self._with(type_, subtype, self.get(type_, subtype) + [name])

    def rename(self, type_: TransactionType, subtype: str, index: int, name: str) -> "CategoryTaxonomy":
        values = self.get(type_, subtype)
        values[index] = name
        return self._with(type_, subtype, values)

    def remove(self, type_: TransactionType, subtype: str, index: int) -> "CategoryTaxonomy":
        values = self.get(type_, subtype)
        del values[index]
        return self._with(type_, subtype, values)


class AppSettings(BaseModel):
    title: str = "Finance Dashboard"
    subtitle: str = "Welcome to your personal finance control panel."
    theme: Theme = "system"
    investment_projection_timeframe: Timeframe = "5Y"
    predict_contributions: bool = True
    budget_goals: BudgetGoals = Field(default_factory=BudgetGoals)
    categories: CategoryTaxonomy = Field(default_factory=CategoryTaxonomy)


DEFAULT_CARD_TITLES: Dict[str, str] = {
    "fixed_income": "Fixed Income",
    "variable_income": "Variable Income",
    "leisure_list": "Leisure & Other",
    "monthly_investments": "Contributions & Redemptions",
    "fixed_expenses": "Fixed Expenses",
    "variable_expenses": "Variable Expenses",
    "investments_list": "Boxes & Net Worth",
    "monthly_chart": "Monthly Income vs Expenses",
    "pie_chart": "Expenses by Category",
    "budget": "Monthly Budget",
    "investments_projection": "Investment Projection",
}

DEFAULT_CARD_ORDER: Tuple[str, ...] = tuple(DEFAULT_CARD_TITLES)


class UserPreferences(BaseModel):
    """Everything persisted in the single preferences document."""

    settings: AppSettings = Field(default_factory=AppSettings)
    card_order: List[str] = Field(default_factory=lambda: list(DEFAULT_CARD_ORDER))
    card_colors: Dict[str, str] = Field(default_factory=dict)
    card_titles: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_CARD_TITLES))
