"""
Streamlit Frontend for Expense Tracker

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Every total shown in one display currency
3. Clear error messages next to the form that caused them
4. Visual feedback for all operations
5. No hidden actions

All numbers on screen are derived from the current ledger snapshot.
Writes go through the flows, which refresh the snapshot only after
the store accepted the change.
"""

import asyncio
from datetime import date, datetime
from decimal import Decimal

import plotly.express as px
import streamlit as st

from expense_tracker.audit import create_correlation_id
from expense_tracker.config import get_settings, validate_all_settings
from expense_tracker.models import (
    DEFAULT_CATEGORIES,
    BudgetInput,
    BudgetPeriod,
    DateFilter,
    FilterCriteria,
    Frequency,
    TransactionInput,
    TransactionType,
    TransactionUpdate,
)
from expense_tracker.orchestrator import (
    BudgetFlow,
    DashboardFlow,
    TransactionFlow,
    create_app_components,
)
from expense_tracker.services.storage import DatabaseError, NotFoundError
from expense_tracker.validation import ValidationError, get_user_friendly_summary


# Page configuration
st.set_page_config(
    page_title="Expense Tracker",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .over-budget {
        color: #dc3545;
        font-weight: bold;
    }
</style>
""", unsafe_allow_html=True)


DATE_FILTER_LABELS = {
    DateFilter.ALL: "All Time",
    DateFilter.TODAY: "Today",
    DateFilter.WEEK: "This Week",
    DateFilter.MONTH: "This Month",
}


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    try:
        components = create_app_components(use_storage=True)
    except Exception as e:
        st.error(f"Failed to initialize: {e}")
        components = create_app_components(use_storage=False)

    _, _, dashboard_flow, _ = components
    run_async(dashboard_flow.feed.refresh())
    return components


def show_write_error(e: Exception) -> None:
    """Render a flow error next to the form that raised it."""
    if isinstance(e, ValidationError):
        st.error(get_user_friendly_summary(e.result))
    elif isinstance(e, NotFoundError):
        st.warning("This record no longer exists. The list has been refreshed.")
    else:
        st.error(str(e))


def main():
    """Main application entry point."""
    transaction_flow, budget_flow, dashboard_flow, _ = get_components()
    settings = get_settings().app

    st.sidebar.title("💰 Expense Tracker")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "🧾 Transactions", "🎯 Budgets", "📈 Analytics", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    codes = list(dashboard_flow.converter.table.codes)
    display_currency = st.sidebar.selectbox(
        "Display currency",
        options=codes,
        index=codes.index(settings.default_display_currency)
        if settings.default_display_currency in codes else 0,
    )

    if page == "📊 Dashboard":
        render_dashboard_page(dashboard_flow, display_currency)
    elif page == "🧾 Transactions":
        render_transactions_page(transaction_flow, dashboard_flow, display_currency)
    elif page == "🎯 Budgets":
        render_budgets_page(budget_flow, dashboard_flow)
    elif page == "📈 Analytics":
        render_analytics_page(dashboard_flow, display_currency)
    elif page == "⚙️ Settings":
        render_settings_page(dashboard_flow)


def render_filters(key: str) -> FilterCriteria:
    """Search box, category and date selectors."""
    col1, col2, col3 = st.columns(3)

    with col1:
        search_term = st.text_input(
            "Search",
            placeholder="Title or notes",
            key=f"{key}_search",
        )

    with col2:
        category_filter = st.selectbox(
            "Category",
            options=["all"] + list(DEFAULT_CATEGORIES.all_categories),
            format_func=lambda c: "All Categories" if c == "all" else c,
            key=f"{key}_category",
        )

    with col3:
        date_filter = st.selectbox(
            "Period",
            options=list(DateFilter),
            format_func=lambda d: DATE_FILTER_LABELS[d],
            key=f"{key}_date",
        )

    return FilterCriteria(
        search_term=search_term,
        category_filter=category_filter,
        date_filter=date_filter,
    )


def render_dashboard_page(dashboard_flow: DashboardFlow, display_currency: str):
    """Summary cards, category breakdown and exports."""
    st.title("📊 Dashboard")

    criteria = render_filters("dashboard")
    summary = dashboard_flow.summary(criteria, display_currency)
    money = dashboard_flow.converter.format_money

    col1, col2, col3 = st.columns(3)
    col1.metric("Total Balance", money(summary.balance, display_currency))
    col2.metric("Total Income", money(summary.income, display_currency))
    col3.metric("Total Expenses", money(summary.expenses, display_currency))

    st.markdown("---")

    for type in TransactionType:
        st.subheader(f"{type.value.title()} by Category")
        for share in dashboard_flow.breakdown(summary, type):
            label, value = st.columns([3, 1])
            label.markdown(f"**{share.category}**")
            value.markdown(f"{money(share.amount, display_currency)} ({share.percentage:.1f}%)")
            st.progress(min(float(share.percentage), 100.0) / 100)

    st.markdown("---")
    st.subheader("Export")

    col1, col2 = st.columns(2)
    with col1:
        filename, content = run_async(dashboard_flow.export_csv(criteria))
        st.download_button(
            "⬇️ Download CSV",
            data=content,
            file_name=filename,
            mime="text/csv",
        )
    with col2:
        filename, content = run_async(
            dashboard_flow.export_pdf(criteria, display_currency)
        )
        st.download_button(
            "⬇️ Download PDF",
            data=content,
            file_name=filename,
            mime="application/pdf",
        )


def render_transaction_form(
    key: str,
    categories_for,
    codes: list[str],
    initial=None,
) -> tuple[bool, dict]:
    """
    Transaction form fields.

    The type selector sits outside the form so the category list
    follows it without a submit.
    """
    type = st.radio(
        "Type",
        options=list(TransactionType),
        format_func=lambda t: t.value.title(),
        index=list(TransactionType).index(initial.type) if initial else 1,
        horizontal=True,
        key=f"{key}_type",
    )
    categories = list(categories_for(type))

    with st.form(key=f"{key}_form", clear_on_submit=initial is None):
        col1, col2 = st.columns(2)

        with col1:
            title = st.text_input("Title *", value=initial.title if initial else "")
            amount = st.number_input(
                "Amount *",
                value=float(initial.amount) if initial else 0.0,
                min_value=0.0,
                step=0.01,
                format="%.2f",
            )
            currency = st.selectbox(
                "Currency",
                options=codes,
                index=codes.index(initial.currency) if initial and initial.currency in codes else 0,
            )

        with col2:
            category = st.selectbox(
                "Category *",
                options=categories,
                index=categories.index(initial.category)
                if initial and initial.category in categories else 0,
            )
            on = st.date_input(
                "Date *",
                value=initial.date.date() if initial else date.today(),
            )
            is_recurring = st.checkbox(
                "Recurring",
                value=initial.is_recurring if initial else False,
            )
            frequency = st.selectbox(
                "Frequency",
                options=[None] + list(Frequency),
                format_func=lambda f: "-" if f is None else f.value.title(),
                index=list(Frequency).index(initial.frequency) + 1
                if initial and initial.frequency else 0,
            )

        notes = st.text_area(
            "Notes (optional)",
            value=(initial.notes or "") if initial else "",
        )

        submitted = st.form_submit_button(
            "💾 Save" if initial else "➕ Add Transaction",
            type="primary",
        )

    fields = dict(
        title=title,
        amount=Decimal(str(amount)),
        type=type,
        category=category,
        date=datetime.combine(on, datetime.now().time()),
        currency=currency,
        is_recurring=is_recurring,
        frequency=frequency if is_recurring else None,
        notes=notes or None,
    )
    return submitted, fields


def render_transactions_page(
    transaction_flow: TransactionFlow,
    dashboard_flow: DashboardFlow,
    display_currency: str,
):
    """Add, edit and delete transactions."""
    st.title("🧾 Transactions")
    codes = list(dashboard_flow.converter.table.codes)
    money = dashboard_flow.converter.format_money

    with st.expander("➕ Add Transaction", expanded=True):
        submitted, fields = render_transaction_form(
            "new", transaction_flow.validator.categories_for, codes
        )
        if submitted:
            try:
                transaction = run_async(transaction_flow.create(
                    TransactionInput(**fields),
                    correlation_id=create_correlation_id(),
                ))
                st.success(f"✅ Saved {transaction.title}")
            except (ValidationError, DatabaseError) as e:
                show_write_error(e)

    st.markdown("---")
    criteria = render_filters("transactions")
    transactions = dashboard_flow.filtered(criteria)

    if not transactions:
        st.info("No transactions found. Add one above to get started.")
        return

    for t in transactions:
        converted = dashboard_flow.converter.convert(t.amount, t.currency, display_currency)
        sign = "+" if t.type == TransactionType.INCOME else "-"
        header = (
            f"{t.date.strftime('%Y-%m-%d')} · {t.title} · {t.category} · "
            f"{sign}{money(t.amount, t.currency)}"
        )
        if t.currency != display_currency:
            header += f" ({money(converted, display_currency)})"

        with st.expander(header):
            submitted, fields = render_transaction_form(
                f"edit_{t.id}", transaction_flow.validator.categories_for, codes, initial=t
            )
            if submitted:
                try:
                    run_async(transaction_flow.update(
                        t.id,
                        TransactionUpdate(**fields),
                        correlation_id=create_correlation_id(),
                    ))
                    st.rerun()
                except (ValidationError, DatabaseError) as e:
                    show_write_error(e)

            if st.button("🗑️ Delete", key=f"delete_{t.id}"):
                try:
                    run_async(transaction_flow.delete(
                        t.id, correlation_id=create_correlation_id()
                    ))
                    st.rerun()
                except DatabaseError as e:
                    show_write_error(e)


def render_budgets_page(budget_flow: BudgetFlow, dashboard_flow: DashboardFlow):
    """Budget utilization with progress bars, plus the budget form."""
    st.title("🎯 Budgets")
    settings = get_settings().app
    money = dashboard_flow.converter.format_money

    period = st.selectbox(
        "Period",
        options=list(BudgetPeriod),
        index=list(BudgetPeriod).index(BudgetPeriod.MONTHLY),
        format_func=lambda p: p.value.title(),
    )

    rows = dashboard_flow.budget_utilization(period)
    if not rows:
        st.info("No spending or budgets for this period yet.")

    for row in rows:
        label, value = st.columns([3, 2])
        label.markdown(f"**{row.category}**")
        if row.has_budget:
            text = (
                f"{money(row.amount, settings.budget_currency)} of "
                f"{money(row.budget_amount, settings.budget_currency)} "
                f"({row.percentage:.0f}%)"
            )
            if row.is_over_budget:
                value.markdown(f"<span class='over-budget'>{text}</span>", unsafe_allow_html=True)
            else:
                value.markdown(text)
            st.progress(float(row.bar_percentage) / 100)
        else:
            value.markdown(f"{money(row.amount, settings.budget_currency)} (no budget)")

    st.markdown("---")
    st.subheader("Set a Budget")

    budgets_by_category = {b.category: b for b in dashboard_flow.feed.budgets}

    with st.form(key="budget_form", clear_on_submit=True):
        col1, col2 = st.columns(2)
        with col1:
            category = st.selectbox(
                "Category *",
                options=list(DEFAULT_CATEGORIES.expense),
            )
            amount = st.number_input(
                f"Amount ({settings.budget_currency}) *",
                min_value=0.0,
                step=1.0,
                format="%.2f",
            )
            budget_period = st.selectbox(
                "Budget period *",
                options=list(BudgetPeriod),
                index=list(BudgetPeriod).index(BudgetPeriod.MONTHLY),
                format_func=lambda p: p.value.title(),
            )
        with col2:
            start_date = st.date_input("Start date *", value=date.today())
            end_date = st.date_input("End date (optional)", value=None)

        submitted = st.form_submit_button("💾 Save Budget", type="primary")

    if submitted:
        data = BudgetInput(
            category=category,
            amount=Decimal(str(amount)),
            period=budget_period,
            start_date=start_date,
            end_date=end_date,
        )
        existing = budgets_by_category.get(category)
        try:
            if existing:
                run_async(budget_flow.update(
                    existing.id, data, correlation_id=create_correlation_id()
                ))
            else:
                run_async(budget_flow.create(
                    data, correlation_id=create_correlation_id()
                ))
            st.rerun()
        except (ValidationError, DatabaseError) as e:
            show_write_error(e)

    if budgets_by_category:
        st.subheader("Existing Budgets")
    for budget in budgets_by_category.values():
        col1, col2 = st.columns([4, 1])
        col1.markdown(
            f"**{budget.category}**: {money(budget.amount, settings.budget_currency)} "
            f"{budget.period.value}"
        )
        if col2.button("🗑️", key=f"delete_budget_{budget.id}"):
            try:
                run_async(budget_flow.delete(
                    budget.id, correlation_id=create_correlation_id()
                ))
                st.rerun()
            except DatabaseError as e:
                show_write_error(e)


def render_analytics_page(dashboard_flow: DashboardFlow, display_currency: str):
    """Charts: category shares, income vs expenses, monthly trend."""
    st.title("📈 Analytics")

    criteria = render_filters("analytics")
    summary = dashboard_flow.summary(criteria, display_currency)

    if summary.transaction_count == 0:
        st.info("No transactions to chart yet.")
        return

    col1, col2 = st.columns(2)

    with col1:
        shares = [
            s for s in dashboard_flow.breakdown(summary, TransactionType.EXPENSE)
            if s.amount > 0
        ]
        if shares:
            fig = px.pie(
                names=[s.category for s in shares],
                values=[float(s.amount) for s in shares],
                title=f"Expenses by Category ({display_currency})",
            )
            st.plotly_chart(fig, use_container_width=True)

    with col2:
        bars = dashboard_flow.aggregator.income_vs_expense(summary)
        fig = px.bar(
            x=[b["name"] for b in bars],
            y=[float(b["value"]) for b in bars],
            color=[b["name"] for b in bars],
            title=f"Income vs Expenses ({display_currency})",
            labels={"x": "", "y": display_currency},
        )
        st.plotly_chart(fig, use_container_width=True)

    trend = dashboard_flow.trend(criteria, display_currency)
    if trend:
        months = [p.month for p in trend]
        fig = px.line(
            x=months * 2,
            y=[float(p.income) for p in trend] + [float(p.expenses) for p in trend],
            color=["Income"] * len(trend) + ["Expenses"] * len(trend),
            markers=True,
            title="Monthly Trend",
            labels={"x": "Month", "y": display_currency},
        )
        st.plotly_chart(fig, use_container_width=True)


def render_settings_page(dashboard_flow: DashboardFlow):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Google Sheets (Storage)", "google_sheets"),
        ("Application", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    if not status.get("google_sheets", False):
        st.info("Transactions are kept in memory until Google Sheets is configured.")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your settings. "
        "See `.env.example` for the available variables."
    )

    st.markdown("---")
    st.markdown("### Recent Activity")

    events = run_async(dashboard_flow.recent_activity(limit=20))
    if not events:
        st.info("No activity recorded yet.")
    for event in events:
        line = f"`{event.timestamp:%Y-%m-%d %H:%M}` {event.description}"
        if event.severity.value in ("error", "critical"):
            st.error(line)
        elif event.severity.value == "warning":
            st.warning(line)
        else:
            st.markdown(line)


if __name__ == "__main__":
    main()
