"""
Turn form input into transaction drafts: day resolution, recurring expansion
and month cloning.

Everything here is pure; ids and storage are the repository's business.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Iterable, List, Optional

from dateutil.relativedelta import relativedelta

from core.schema import TransactionDraft, TransactionModalMode
from core.utils import add_months, same_month


class DraftError(ValueError):
    """Form input that cannot become a transaction."""


def build_draft(
    mode: TransactionModalMode,
    *,
    description: str,
    amount: float,
    category: str,
    on: date,
    expense_type: Optional[str] = "fixed",
    income_type: Optional[str] = "fixed",
    due_date: Optional[date] = None,
    investment_operation: str = "contribution",
    box_id: Optional[str] = None,
) -> TransactionDraft:
    """
    Convert the add/edit form into a draft.

    Parameters
    ----------
    mode : "income", "expense" or "investment"
    on : provisional date; `add_transaction` re-resolves the day
    investment_operation : "contribution" (an investment expense) or
        "redemption" (an investment income); only used in investment mode
    box_id : required in investment mode, ignored otherwise

    Raises
    ------
    DraftError
        Empty description, non-positive amount, missing category, or an
        investment without a box.
    """
    description = (description or "").strip()
    category = (category or "").strip()
    try:
        amount = float(amount)
    except (TypeError, ValueError) as e:
        raise DraftError("Amount must be a number.") from e
    if not description or not category or not amount > 0:
        raise DraftError("Please fill in every field correctly.")
    if mode == "investment" and not box_id:
        raise DraftError("Please select or create an investment box.")

    if mode == "income":
        type_, exp, inc = "income", None, income_type
    elif mode == "expense":
        type_, exp, inc = "expense", expense_type, None
    elif mode == "investment":
        if investment_operation == "contribution":
            type_, exp, inc = "expense", "investment", None
        elif investment_operation == "redemption":
            type_, exp, inc = "income", None, "investment"
        else:
            raise DraftError(f"Unknown investment operation: {investment_operation!r}")
    else:
        raise DraftError(f"Unknown mode: {mode!r}")

    try:
        return TransactionDraft(
            description=description,
            amount=amount,
            type=type_,
            category=category,
            date=on,
            expense_type=exp,
            income_type=inc,
            due_date=due_date if type_ == "expense" else None,
            investment_box_id=box_id if mode == "investment" else None,
        )
    except ValueError as e:
        raise DraftError(str(e)) from e


def resolve_transaction_day(
    selected_month: date,
    today: date,
    due_date: Optional[date] = None,
) -> date:
    """
    Date a new transaction lands on inside the selected month.

    Day priority: the due date's day, else today's day when the selected month
    is the current month, else the selected month's own day. Days past the
    month's end are clamped.
    """
    if due_date is not None:
        day = due_date.day
    elif same_month(selected_month, today):
        day = today.day
    else:
        day = selected_month.day
    return date(selected_month.year, selected_month.month, 1) + relativedelta(day=day)


def initial_paid(draft: TransactionDraft) -> Optional[bool]:
    """Incomes carry no paid flag; expenses with a due date start unpaid."""
    if draft.type == "income":
        return None
    return False if draft.due_date is not None else None


def expand_recurring(
    draft: TransactionDraft,
    *,
    recurrence_id: Optional[str] = None,
) -> List[TransactionDraft]:
    """
    Monthly instances of `draft` from its month through December of the same
    year, sharing one recurrence id.

    The first instance is `draft` itself (with its attachment). Later ones keep
    the first instance's day (clamped to the month length), are unpaid when
    they are expenses, carry no attachment, and have their due date moved
    onto the instance date.
    """
    rid = recurrence_id or str(uuid.uuid4())
    first = draft.model_copy(update={"recurrence_id": rid})
    out = [first]
    day = draft.date.day
    for i in range(1, 12):
        d = add_months(date(draft.date.year, draft.date.month, 1), i) + relativedelta(day=day)
        if d.year > draft.date.year:
            break
        out.append(
            draft.model_copy(
                update={
                    "date": d,
                    "due_date": d if draft.due_date is not None else None,
                    "paid": None if draft.type == "income" else False,
                    "recurrence_id": rid,
                    "attachment_url": None,
                }
            )
        )
    return out


def clone_month_drafts(
    transactions: Iterable[TransactionDraft],
    month: date,
) -> List[TransactionDraft]:
    """
    Copies of every transaction dated in `month`, moved one month forward.

    Dates and due dates shift by one calendar month (clamped); copies drop the
    recurrence id and attachment, and expenses start unpaid.
    """
    out = []
    for t in transactions:
        if not same_month(t.date, month):
            continue
        out.append(
            TransactionDraft(
                description=t.description,
                amount=t.amount,
                type=t.type,
                category=t.category,
                date=add_months(t.date, 1),
                expense_type=t.expense_type,
                income_type=t.income_type,
                due_date=add_months(t.due_date, 1) if t.due_date else None,
                paid=False if t.type == "expense" else None,
                investment_box_id=t.investment_box_id,
            )
        )
    return out
