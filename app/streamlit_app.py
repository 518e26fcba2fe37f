"""
Finance Dashboard
=================

Monthly income / expense tracking, bill tracker, investment boxes and the
investment projection chart.

  Sidebar:  year / month picker with monthly balances, clone month, legacy import
  Header:   month totals and bills
  Cards:    rendered in the order saved in the preferences

Run: finance-dashboard   (or: streamlit run app/streamlit_app.py)
"""

from __future__ import annotations

import sys
from datetime import date
from pathlib import Path
from typing import List

import altair as alt
import pandas as pd
import streamlit as st

# ---------------------------------------------------------------------------
# Make project root importable
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from core.config import AppConfig
from core.logging_config import setup_logger
from core.schema import (
    EXPENSE_TYPES,
    INCOME_TYPES,
    TIMEFRAME_MONTHS,
    BudgetGoals,
    InvestmentBoxDraft,
    Transaction,
)
from core.utils import format_brl

from data_prep.recurrence import DraftError, build_draft
from data_prep.validators import ProjectionInputError

from engine.runner import ALL_BOXES, run_projection

from reports.aggregator import (
    available_years,
    category_breakdown,
    monthly_income_expense,
    monthly_summaries,
)
from reports.budget import build_budget_report, rebalance_goals
from reports.metrics import (
    box_balances,
    compute_month_summary,
    month_transactions,
    overdue_bills,
    transactions_by_kind,
    upcoming_bills,
)

from app.workflows import FinanceWorkflows, create_app

CONFIG = AppConfig.from_env(PROJECT_ROOT)
for _pkg in ("core", "data_prep", "engine", "storage", "reports", "app"):
    setup_logger(_pkg, CONFIG.log_level)

MODE_LABELS = {"income": "Income", "expense": "Expense", "investment": "Investment"}
SUBTYPE_LABELS = {"fixed": "Fixed", "variable": "Variable", "leisure": "Leisure", "investment": "Investment"}
DEFAULT_BOX_COLOR = "#10b981"


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------
def _workflows() -> FinanceWorkflows:
    if "workflows" not in st.session_state:
        wf = create_app(CONFIG)
        wf.state.load()
        st.session_state["workflows"] = wf
        st.session_state["selected_month"] = wf.today()
    return st.session_state["workflows"]


def _show_notices(wf: FinanceWorkflows) -> None:
    for n in wf.state.drain_notices():
        getattr(st, n.level)(n.message)


_THEME_CSS = {
    "light": "<style>.stApp {background-color: #ffffff; color: #262730;}</style>",
    "dark": "<style>.stApp {background-color: #0e1117; color: #fafafa;}</style>",
}


def _apply_theme(theme: str) -> None:
    # "system" keeps whatever the browser and Streamlit config pick
    css = _THEME_CSS.get(theme)
    if css:
        st.markdown(css, unsafe_allow_html=True)


def _label(t: Transaction) -> str:
    return f"{t.date:%d/%m} · {t.description} · {format_brl(t.amount)}"


# ---------------------------------------------------------------------------
# Chart helpers
# ---------------------------------------------------------------------------
def _plot_projection(series: pd.DataFrame, *, height=320):
    d = series.copy()
    d["profit"] = d["patrimony"] - d["principal"]
    base = alt.Chart(d).encode(x=alt.X("date:T", title=None))
    tooltip = [
        alt.Tooltip("date:T", title="Date", format="%b %Y"),
        alt.Tooltip("patrimony:Q", title="Patrimony", format=",.2f"),
        alt.Tooltip("principal:Q", title="Invested", format=",.2f"),
        alt.Tooltip("movement:Q", title="Movement", format=",.2f"),
    ]
    area = base.mark_area(opacity=0.25, color="#10b981", line={"color": "#10b981"}).encode(
        y=alt.Y("patrimony:Q", title="R$", axis=alt.Axis(format=",.0f")),
        tooltip=tooltip,
    )
    principal = base.mark_line(strokeDash=[4, 4], color="#9ca3af").encode(y="principal:Q")
    bars = base.mark_bar(opacity=0.6).encode(
        y="movement:Q",
        color=alt.condition(alt.datum.movement >= 0, alt.value("#10b981"), alt.value("#ef4444")),
    )
    today_rule = (
        alt.Chart(d[d["is_today"]]).mark_rule(color="#6366f1", strokeDash=[2, 2]).encode(x="date:T")
    )
    chart = (area + principal + bars + today_rule).properties(height=height)
    st.altair_chart(chart, use_container_width=True)


def _plot_monthly_bars(df: pd.DataFrame, *, height=280):
    if df.empty:
        st.info("Not enough data to show the chart.")
        return
    long = df.melt(id_vars=["month", "label"], value_vars=["income", "expense"], var_name="series", value_name="value")
    chart = (
        alt.Chart(long).mark_bar()
        .encode(
            x=alt.X("label:N", sort=list(df["label"]), title=None),
            xOffset="series:N",
            y=alt.Y("value:Q", title="R$", axis=alt.Axis(format=",.0f")),
            color=alt.Color(
                "series:N",
                scale=alt.Scale(domain=["income", "expense"], range=["#22c55e", "#ef4444"]),
                title=None,
            ),
            tooltip=["label", "series", alt.Tooltip("value:Q", format=",.2f")],
        )
        .properties(height=height)
    )
    st.altair_chart(chart, use_container_width=True)


def _plot_category_pie(df: pd.DataFrame, *, height=280):
    if df.empty:
        st.info("No expenses this month.")
        return
    chart = (
        alt.Chart(df).mark_arc(innerRadius=50)
        .encode(
            theta="amount:Q",
            color=alt.Color("category:N", sort=list(df["category"])),
            tooltip=["category", alt.Tooltip("amount:Q", format=",.2f")],
        )
        .properties(height=height)
    )
    st.altair_chart(chart, use_container_width=True)


# ---------------------------------------------------------------------------
# Cards
# ---------------------------------------------------------------------------
def _transaction_list(wf: FinanceWorkflows, txs: List[Transaction], *, key: str, payable: bool = False):
    if not txs:
        st.caption("No transactions.")
        return
    for t in txs:
        cols = st.columns([6, 2]) if payable else st.columns([1])
        cols[0].write(f"**{t.description}** · {t.category} · {t.date:%d/%m} · {format_brl(t.amount)}")
        if payable:
            paid = cols[1].checkbox("Paid", value=bool(t.paid), key=f"{key}-paid-{t.id}")
            if paid != bool(t.paid):
                wf.toggle_paid(t.id, paid)
                st.rerun()
    total = sum(t.amount for t in txs)
    st.caption(f"Total: {format_brl(total)}")


def _investments_card(wf: FinanceWorkflows, txs: List[Transaction]):
    names = {b.id: b.name for b in wf.state.boxes}
    if not txs:
        st.caption("No contributions or redemptions this month.")
        return
    rows = [
        {
            "Date": t.date,
            "Box": names.get(t.investment_box_id, "(deleted box)"),
            "Description": t.description,
            "Flow": t.signed_flow,
        }
        for t in txs
    ]
    st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)


def _boxes_card(wf: FinanceWorkflows):
    df = box_balances(
        wf.state.boxes, wf.state.transactions, wf.today(), default_annual_rate=wf.default_annual_rate
    )
    if df.empty:
        st.caption("No investment boxes yet.")
    for row in df.itertuples():
        st.markdown(f"**{row.name}**: {format_brl(row.patrimony)}")
        extras = []
        if pd.notna(row.interest_rate) and row.interest_rate:
            extras.append(f"+{row.interest_rate:g}% p.a.")
        if row.profit > 0.005:
            extras.append(f"+ {format_brl(row.profit)} interest")
        if extras:
            st.caption(" · ".join(extras))
        if row.target_amount and row.target_amount > 0:
            st.progress(int(row.progress_pct), text=f"Goal {format_brl(row.target_amount)}")
    if not df.empty:
        st.metric("Total", format_brl(float(df["patrimony"].sum())))

    with st.expander("Manage boxes"):
        with st.form("new_box", clear_on_submit=True):
            name = st.text_input("Name")
            rate = st.number_input("Interest rate (% p.a.)", min_value=0.0, value=10.0, step=0.5)
            target = st.number_input("Target amount", min_value=0.0, value=0.0, step=100.0)
            color = st.color_picker("Color", DEFAULT_BOX_COLOR)
            if st.form_submit_button("Create box"):
                try:
                    draft = InvestmentBoxDraft(
                        name=name.strip(), interest_rate=rate, target_amount=target or None, color=color
                    )
                except ValueError:
                    st.error("Please give the box a name.")
                else:
                    wf.create_box(draft)
                    st.rerun()

        if wf.state.boxes:
            box = st.selectbox("Box", wf.state.boxes, format_func=lambda b: b.name, key="box_edit_pick")
            default_pct = wf.default_annual_rate * 100
            with st.form("edit_box"):
                name = st.text_input("Name", value=box.name)
                use_default = st.checkbox(
                    f"Use the default rate ({default_pct:g}% p.a.)", value=box.interest_rate is None
                )
                rate = st.number_input(
                    "Interest rate (% p.a.)",
                    min_value=0.0,
                    value=float(default_pct if box.interest_rate is None else box.interest_rate),
                    step=0.5,
                )
                target = st.number_input("Target amount", min_value=0.0, value=float(box.target_amount or 0.0))
                c1, c2 = st.columns(2)
                if c1.form_submit_button("Save"):
                    wf.edit_box(
                        box.id, name=name, target_amount=target, interest_rate=rate, use_default_rate=use_default
                    )
                    st.rerun()
                if c2.form_submit_button("Delete"):
                    wf.delete_box(box.id)
                    st.rerun()


def _budget_card(wf: FinanceWorkflows, month_txs: List[Transaction]):
    report = build_budget_report(month_txs, wf.state.preferences.settings.budget_goals)
    if not report.has_expenses:
        st.info("Add expenses to see the budget analysis.")
        return
    for line in report.lines:
        label = f"{line.expense_type.title()}: {line.pct_of_expenses:.1f}% (goal {line.goal:g}%)"
        st.progress(int(line.fill_pct), text=label + ("  ⚠" if line.over_budget else ""))
    for flag in report.flags:
        st.warning(flag)


def _projection_card(wf: FinanceWorkflows, selected_month: date):
    settings = wf.state.preferences.settings
    options = [ALL_BOXES] + [b.id for b in wf.state.boxes]
    names = {b.id: b.name for b in wf.state.boxes}
    c1, c2, c3 = st.columns([2, 2, 1])
    scope = c1.selectbox("View", options, format_func=lambda k: "All boxes" if k == ALL_BOXES else names[k])
    timeframes = list(TIMEFRAME_MONTHS)
    timeframe = c2.radio(
        "Horizon", timeframes, index=timeframes.index(settings.investment_projection_timeframe), horizontal=True
    )
    predict = c3.toggle("Predict contributions", value=settings.predict_contributions)
    if timeframe != settings.investment_projection_timeframe or predict != settings.predict_contributions:
        wf.update_projection_settings(timeframe=timeframe, predict_contributions=predict)
        st.rerun()

    try:
        result = run_projection(
            wf.state.transactions, wf.state.boxes, wf.projection_config(selected_month), scope=scope
        )
    except ProjectionInputError as e:
        st.error("Projection input failed validation:\n" + str(e))
        return

    if not result.has_any_investment:
        st.info("No investment movements yet. Add a contribution to a box to see the projection.")
        return
    if not result.has_movement:
        st.info("No movement in this box.")
        return

    s = result.summary
    k1, k2, k3, k4 = st.columns(4)
    k1.metric("Patrimony today", format_brl(s.current_patrimony))
    k2.metric("Profit", format_brl(s.current_profit), f"{s.profit_pct:.2f}%")
    k3.metric("Month movement", format_brl(s.period_net_flow))
    k4.metric("Avg rate", f"{s.annual_rate:.2%} p.a.")
    _plot_projection(result.series)
    st.caption(
        f"Projected for {s.final_date:%b %Y}: {format_brl(s.final_patrimony)} "
        f"(profit {format_brl(s.final_profit)}); "
        f"expected monthly contribution {format_brl(s.projected_monthly_contribution)}."
    )


# ---------------------------------------------------------------------------
# Forms
# ---------------------------------------------------------------------------
def _add_transaction_form(wf: FinanceWorkflows, selected_month: date):
    cats = wf.state.preferences.settings.categories
    mode = st.radio("Type", list(MODE_LABELS), format_func=MODE_LABELS.get, horizontal=True, key="add_mode")
    operation = "contribution"
    subtype = "fixed"
    if mode == "income":
        subtype = st.selectbox("Income type", [t for t in INCOME_TYPES if t != "investment"], format_func=SUBTYPE_LABELS.get)
        categories = cats.get("income", subtype)
    elif mode == "expense":
        subtype = st.selectbox("Expense type", [t for t in EXPENSE_TYPES if t != "investment"], format_func=SUBTYPE_LABELS.get)
        categories = cats.get("expense", subtype)
    else:
        operation = st.radio("Operation", ["contribution", "redemption"], horizontal=True)
        categories = cats.get("expense", "investment") if operation == "contribution" else cats.get("income", "investment")

    with st.form("add_tx", clear_on_submit=True):
        description = st.text_input("Description")
        amount = st.number_input("Amount", min_value=0.0, step=10.0)
        category = st.selectbox("Category", categories) if categories else st.text_input("Category")
        box_id = None
        if mode == "investment":
            box_id = st.selectbox(
                "Box", [b.id for b in wf.state.boxes], format_func=lambda k: wf.state.find_box(k).name
            )
        due = st.date_input("Due date", value=None) if mode == "expense" else None
        recurring = st.checkbox("Repeat monthly until December")
        upload = st.file_uploader("Attachment")
        if st.form_submit_button("Add"):
            try:
                draft = build_draft(
                    mode,
                    description=description,
                    amount=amount,
                    category=category,
                    on=selected_month,
                    expense_type=subtype if mode == "expense" else None,
                    income_type=subtype if mode == "income" else None,
                    due_date=due,
                    investment_operation=operation,
                    box_id=box_id,
                )
            except DraftError as e:
                st.error(str(e))
                return
            attachment = (upload.name, upload.getvalue()) if upload is not None else None
            wf.add_transaction(draft, selected_month=selected_month, is_recurring=recurring, attachment=attachment)
            st.rerun()


def _edit_transaction_form(wf: FinanceWorkflows, month_txs: List[Transaction]):
    if not month_txs:
        st.caption("No transactions this month.")
        return
    t = st.selectbox("Transaction", month_txs, format_func=_label, key="edit_pick")
    with st.form("edit_tx"):
        description = st.text_input("Description", value=t.description)
        amount = st.number_input("Amount", min_value=0.0, value=float(t.amount), step=10.0)
        category = st.text_input("Category", value=t.category)
        on = st.date_input("Date", value=t.date)
        future = st.checkbox("Apply to this and future occurrences", disabled=t.recurrence_id is None)
        upload = st.file_uploader("Replace attachment")
        remove = st.checkbox("Remove attachment", disabled=t.attachment_url is None)
        c1, c2 = st.columns(2)
        if c1.form_submit_button("Save"):
            try:
                updated = Transaction.model_validate(
                    {**t.model_dump(), "description": description.strip(), "amount": amount, "category": category.strip(), "date": on}
                )
            except ValueError as e:
                st.error(str(e))
                return
            attachment = (upload.name, upload.getvalue()) if upload is not None else None
            wf.update_transaction(updated, apply_to_future=future, attachment=attachment, remove_attachment=remove)
            st.rerun()
        if c2.form_submit_button("Delete"):
            wf.delete_transaction(t.id, apply_to_future=future)
            st.rerun()


def _settings_form(wf: FinanceWorkflows):
    prefs = wf.state.preferences
    s = prefs.settings
    with st.form("settings"):
        title = st.text_input("Title", value=s.title)
        subtitle = st.text_input("Subtitle", value=s.subtitle)
        theme = st.selectbox("Theme", ["light", "dark", "system"], index=["light", "dark", "system"].index(s.theme))
        st.markdown("**Budget goals (% of expenses)**")
        cols = st.columns(4)
        goals = {
            k: cols[i].number_input(SUBTYPE_LABELS[k], min_value=0.0, max_value=100.0, value=min(float(v), 100.0))
            for i, (k, v) in enumerate(s.budget_goals.as_dict().items())
        }
        c1, c2 = st.columns(2)
        save = c1.form_submit_button("Save")
        rebalance = c2.form_submit_button("Adjust goals to 100%")
    if save or rebalance:
        new_goals = BudgetGoals(**goals)
        if rebalance:
            new_goals = rebalance_goals(new_goals)
        settings = s.model_copy(update={"title": title, "subtitle": subtitle, "theme": theme, "budget_goals": new_goals})
        wf.save_preferences(prefs.model_copy(update={"settings": settings}))
        st.rerun()

    st.markdown("**Categories**")
    c1, c2, c3 = st.columns([1, 1, 2])
    type_ = c1.selectbox("Group", ["income", "expense"], key="cat_type")
    subtypes = INCOME_TYPES if type_ == "income" else EXPENSE_TYPES
    subtype = c2.selectbox("Subtype", subtypes, format_func=SUBTYPE_LABELS.get, key="cat_sub")
    new_name = c3.text_input("New category", key="cat_new")
    names = s.categories.get(type_, subtype)
    st.caption(", ".join(names) or "(none)")
    if st.button("Add category") and new_name.strip():
        wf.update_categories(s.categories.add(type_, subtype, new_name))
        st.rerun()

    if names:
        c1, c2 = st.columns([1, 2])
        index = c1.selectbox(
            "Category", range(len(names)), format_func=names.__getitem__, key=f"cat_pick_{type_}_{subtype}"
        )
        renamed = c2.text_input("Rename to", key=f"cat_rename_{type_}_{subtype}")
        b1, b2 = st.columns(2)
        if b1.button("Rename category") and renamed.strip():
            wf.update_categories(s.categories.rename(type_, subtype, index, renamed))
            st.rerun()
        if b2.button("Remove category"):
            wf.update_categories(s.categories.remove(type_, subtype, index))
            st.rerun()

    st.markdown("**Cards**")
    c1, c2 = st.columns([2, 1])
    card = c1.selectbox(
        "Card", prefs.card_order, format_func=lambda k: prefs.card_titles.get(k, k), key="card_pick"
    )
    b1, b2 = c2.columns(2)
    if b1.button("Move up", key="card_up"):
        wf.move_card(card, -1)
        st.rerun()
    if b2.button("Move down", key="card_down"):
        wf.move_card(card, 1)
        st.rerun()
    title = st.text_input("Card title (blank restores the default)", key=f"card_title_{card}")
    if st.button("Rename card"):
        wf.rename_card(card, title)
        st.rerun()


# ═══════════════════════════════════════════════════════════════════════════
# PAGE
# ═══════════════════════════════════════════════════════════════════════════
wf = _workflows()
state = wf.state
prefs = state.preferences

st.set_page_config(page_title=prefs.settings.title, layout="wide")
_apply_theme(prefs.settings.theme)
_show_notices(wf)

# ═══════════════════════════════════════════════════════════════════════════
# SIDEBAR: MONTH SELECTION
# ═══════════════════════════════════════════════════════════════════════════
with st.sidebar:
    selected_month: date = st.session_state["selected_month"]
    years = available_years(state.transactions, wf.today())
    year = st.selectbox("Year", years, index=years.index(selected_month.year) if selected_month.year in years else 0)
    if year != selected_month.year:
        summaries = monthly_summaries(state.transactions, year)
        first = summaries["month"].iloc[0].date() if not summaries.empty else date(year, 1, 5)
        st.session_state["selected_month"] = first
        st.rerun()

    for row in monthly_summaries(state.transactions, year).itertuples():
        m = row.month.date()
        label = f"{m:%B}: {format_brl(row.balance)}"
        if st.button(label, key=f"month-{m}", type="primary" if m.month == selected_month.month else "secondary"):
            st.session_state["selected_month"] = m
            st.rerun()

    if st.button("Copy month to next", disabled=not month_transactions(state.transactions, selected_month)):
        result = wf.clone_month(selected_month)
        if result is not None:
            st.session_state["selected_month"] = result.target_month
        st.rerun()

    with st.expander("Import legacy data"):
        legacy = st.file_uploader("JSON export", type=["json"], key="legacy_upload")
        if legacy is not None and st.button("Import"):
            target = CONFIG.data_dir / "legacy_import.json"
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(legacy.getvalue())
            wf.import_legacy(target)
            st.rerun()

# ═══════════════════════════════════════════════════════════════════════════
# HEADER
# ═══════════════════════════════════════════════════════════════════════════
st.title(prefs.settings.title)
st.caption(prefs.settings.subtitle)

month_txs = month_transactions(state.transactions, selected_month)
summary = compute_month_summary(state.transactions, selected_month)
m1, m2, m3, m4, m5 = st.columns(5)
m1.metric("Income", format_brl(summary.total_income))
m2.metric("Expenses", format_brl(summary.total_expenses))
m3.metric("Invested", format_brl(summary.total_invested))
m4.metric("Balance", format_brl(summary.balance))
m5.metric("Paid", format_brl(summary.paid_expenses))

today = wf.today()
overdue = overdue_bills(month_txs, today)
upcoming = upcoming_bills(month_txs, today)
if overdue:
    st.error("Overdue: " + "; ".join(f"{t.description} ({t.due_date:%d/%m}) {format_brl(t.amount)}" for t in overdue))
if upcoming:
    st.info("Upcoming: " + "; ".join(f"{t.description} ({t.due_date:%d/%m}) {format_brl(t.amount)}" for t in upcoming[:5]))

with st.expander("Add transaction"):
    _add_transaction_form(wf, selected_month)
with st.expander("Edit / delete transaction"):
    _edit_transaction_form(wf, month_txs)
with st.expander("Settings"):
    _settings_form(wf)

# ═══════════════════════════════════════════════════════════════════════════
# CARDS
# ═══════════════════════════════════════════════════════════════════════════
kinds = transactions_by_kind(month_txs)
renderers = {
    "fixed_income": lambda: _transaction_list(wf, kinds["fixed_income"], key="fi"),
    "variable_income": lambda: _transaction_list(wf, kinds["variable_income"], key="vi"),
    "leisure_list": lambda: _transaction_list(wf, kinds["leisure_expenses"], key="le", payable=True),
    "monthly_investments": lambda: _investments_card(wf, kinds["investments"]),
    "fixed_expenses": lambda: _transaction_list(wf, kinds["fixed_expenses"], key="fe", payable=True),
    "variable_expenses": lambda: _transaction_list(wf, kinds["variable_expenses"], key="ve", payable=True),
    "investments_list": lambda: _boxes_card(wf),
    "monthly_chart": lambda: _plot_monthly_bars(monthly_income_expense(state.transactions)),
    "pie_chart": lambda: _plot_category_pie(category_breakdown(month_txs)),
    "budget": lambda: _budget_card(wf, month_txs),
    "investments_projection": lambda: _projection_card(wf, selected_month),
}

for card in prefs.card_order:
    render = renderers.get(card)
    if render is None:
        continue
    with st.container(border=True):
        st.subheader(prefs.card_titles.get(card, card))
        render()

_show_notices(wf)
