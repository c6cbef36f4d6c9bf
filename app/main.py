"""
Streamlit Frontend for Pocket Ledger

The presentation layer. It only:
1. Renders the dashboard's plain-data views (cards, charts, list)
2. Forwards user actions to edit sessions, deletes and filter selection
3. Maps categories to icons and colors

No ledger logic lives here. Everything shown is read from the
LedgerDashboard on each rerun.
"""

import asyncio

import streamlit as st

from pocket_ledger.config import get_settings, validate_all_settings
from pocket_ledger.dashboard import LedgerDashboard, create_dashboard
from pocket_ledger.ledger.session import EditMode, EditSession
from pocket_ledger.models.transaction import (
    CategoryFilter,
    DateRangeFilter,
    TransactionCategory,
    TransactionType,
)
from pocket_ledger.services.storage import NotFoundError, StorageError
from pocket_ledger.validation import ValidationError


# Page configuration
st.set_page_config(
    page_title="Pocket Ledger",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)


# Presentation only: not part of the data model
CATEGORY_STYLES = {
    TransactionCategory.FOOD: ("🍔", "#8884d8"),
    TransactionCategory.TRANSPORT: ("🚕", "#82ca9d"),
    TransactionCategory.SALARY: ("💵", "#ffc658"),
    TransactionCategory.POCKET_MONEY: ("🎁", "#ff8042"),
    TransactionCategory.LENDING: ("🤝", "#8dd1e1"),
    TransactionCategory.ENTERTAINMENT: ("🎬", "#a4de6c"),
    TransactionCategory.SHOPPING: ("🛒", "#d0ed57"),
    TransactionCategory.BILLS: ("🧾", "#ffc0cb"),
    TransactionCategory.HEALTHCARE: ("🏥", "#ffbb28"),
    TransactionCategory.OTHER: ("📦", "#00C49F"),
}


@st.cache_resource
def get_event_loop() -> asyncio.AbstractEventLoop:
    """One loop for the app's lifetime, so live queries survive reruns."""
    return asyncio.new_event_loop()


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    return get_event_loop().run_until_complete(coro)


def settle(seconds: float = 0.05) -> None:
    """Let pending snapshot deliveries reach the cache."""
    run_async(asyncio.sleep(seconds))


@st.cache_resource
def get_dashboard() -> LedgerDashboard:
    """Get or create the dashboard (cached) and start its live query."""
    dashboard = create_dashboard(use_storage=True)
    try:
        run_async(dashboard.open())
    except StorageError as e:
        st.error(f"Could not open the ledger: {e}")
        dashboard = create_dashboard(use_storage=False)
        run_async(dashboard.open())
    return dashboard


def money(value) -> str:
    symbol = get_settings().app.currency_symbol
    return f"{symbol}{value:,.2f}"


def main():
    """Main application entry point."""
    dashboard = get_dashboard()
    settle()

    st.sidebar.title("💰 Pocket Ledger")
    st.sidebar.markdown("---")
    page = st.sidebar.radio("Navigate to:", ["📊 Dashboard", "⚙️ Settings"], index=0)

    if page == "📊 Dashboard":
        render_dashboard_page(dashboard)
    else:
        render_settings_page()


def render_dashboard_page(dashboard: LedgerDashboard):
    """Render cards, charts, the transaction list and the form."""
    st.title(f"Welcome, {run_async(dashboard.load_display_name())}")

    render_chart_range(dashboard)
    render_cards(dashboard)
    render_charts(dashboard)

    st.markdown("---")
    render_form(dashboard)
    render_transaction_list(dashboard)


def render_chart_range(dashboard: LedgerDashboard):
    current = dashboard.chart_range
    col1, col2 = st.columns(2)
    with col1:
        start = st.date_input("Charts from", value=current.start, key="chart_start")
    with col2:
        end = st.date_input("Charts until", value=current.end, key="chart_end")
    if (start, end) != (current.start, current.end):
        try:
            run_async(dashboard.set_chart_range(start or None, end or None))
        except (StorageError, ValueError) as e:
            st.error(f"Could not change the range: {e}")
        else:
            settle()
            st.rerun()


def render_cards(dashboard: LedgerDashboard):
    totals = dashboard.summary.totals
    col1, col2, col3 = st.columns(3)
    col1.metric("Income", money(totals.income))
    col2.metric("Expense", money(totals.expense))
    col3.metric("Balance", money(totals.balance))


def render_charts(dashboard: LedgerDashboard):
    summary = dashboard.summary
    if not dashboard.cache.current():
        st.info("No transactions in this range yet. Add one below.")
        return

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("Expenses by category")
        breakdown = summary.category_breakdown
        if breakdown:
            st.bar_chart(
                {
                    "category": [row.category.value for row in breakdown],
                    "total": [float(row.total) for row in breakdown],
                },
                x="category",
                y="total",
            )
    with col2:
        st.subheader("Monthly income vs expense")
        st.bar_chart(
            {
                "month": [row.month for row in summary.monthly_series],
                "income": [float(row.income) for row in summary.monthly_series],
                "expense": [float(row.expense) for row in summary.monthly_series],
            },
            x="month",
            y=["income", "expense"],
        )

    st.subheader("Daily expense trend")
    if summary.daily_expense_trend:
        st.line_chart(
            {
                "date": [row.date for row in summary.daily_expense_trend],
                "expense": [float(row.expense) for row in summary.daily_expense_trend],
            },
            x="date",
            y="expense",
        )


def render_form(dashboard: LedgerDashboard):
    """The add/edit dialog, driven by the EditSession kept in session state."""
    session: EditSession = st.session_state.get("edit_session")

    if session is None or session.closed:
        if st.button("➕ Add Transaction", type="primary"):
            st.session_state.edit_session = dashboard.start_create()
            st.rerun()
        return

    title = "Edit Transaction" if session.mode == EditMode.EDIT else "Add Transaction"
    fields = session.fields
    with st.form("transaction_form"):
        st.subheader(title)
        txn_type = st.radio(
            "Type",
            options=list(TransactionType),
            index=list(TransactionType).index(TransactionType(fields["type"])),
            format_func=lambda t: t.value.title(),
            horizontal=True,
        )
        amount = st.text_input(
            "Amount *",
            value="" if fields["amount"] is None else str(fields["amount"]),
        )
        categories = list(TransactionCategory)
        category = st.selectbox(
            "Category *",
            options=categories,
            index=categories.index(fields["category"]) if fields["category"] else None,
            format_func=lambda c: f"{CATEGORY_STYLES[c][0]} {c.value}",
        )
        picked = st.date_input(
            "Date",
            value=fields["date"].date() if fields["date"] else None,
        )
        note = st.text_area("Note (optional)", value=fields["note"] or "")

        col1, col2 = st.columns(2)
        submitted = col1.form_submit_button(
            "Update" if session.mode == EditMode.EDIT else "Add", type="primary"
        )
        cancelled = col2.form_submit_button("Cancel")

    if cancelled:
        session.cancel()
        st.rerun()

    if submitted:
        session.set_field("type", txn_type)
        session.set_field("amount", amount)
        session.set_field("category", category)
        # A picked day keeps the original time when editing the same day
        if picked and not (fields["date"] and fields["date"].date() == picked):
            session.set_field("date", picked)
        session.set_field("note", note)
        try:
            run_async(session.commit())
        except ValidationError as e:
            for issue in e.issues:
                st.error(f"{issue.field.title()}: {issue.message}")
        except NotFoundError:
            st.error("This transaction no longer exists.")
        except StorageError as e:
            st.error(f"Failed to save: {e}. Please try again.")
        else:
            settle()
            st.rerun()


def render_transaction_list(dashboard: LedgerDashboard):
    st.subheader("Recent Transactions")

    view = dashboard.list_view
    mode = st.radio(
        "Filter",
        options=["none", "date_range", "category"],
        index=["none", "date_range", "category"].index(view.active_filter.kind),
        format_func={"none": "All", "date_range": "Date", "category": "Category"}.get,
        horizontal=True,
    )

    if mode == "date_range":
        active = view.active_filter
        col1, col2 = st.columns(2)
        start = col1.date_input(
            "From",
            value=active.start if isinstance(active, DateRangeFilter) else None,
        )
        end = col2.date_input(
            "To",
            value=active.end if isinstance(active, DateRangeFilter) else None,
        )
        view.select_date_filter(start or None, end or None)
    elif mode == "category":
        active = view.active_filter
        selected = st.selectbox(
            "Category",
            options=[None] + list(TransactionCategory),
            index=0 if not isinstance(active, CategoryFilter) or active.category is None
            else list(TransactionCategory).index(active.category) + 1,
            format_func=lambda c: "All Categories" if c is None else c.value,
        )
        view.select_category_filter(selected)
    else:
        view.clear_filter()

    records = dashboard.visible_transactions()
    if not records:
        st.caption("Nothing to show.")
        return

    for record in records:
        icon, color = CATEGORY_STYLES[record.category]
        sign = "+" if record.type == TransactionType.INCOME else "-"
        col1, col2, col3, col4 = st.columns([1, 5, 2, 2])
        col1.markdown(f"<span style='font-size:1.6em;color:{color}'>{icon}</span>", unsafe_allow_html=True)
        col2.markdown(
            f"**{record.category.value}** · {record.date.strftime('%d %b %Y')}"
            + (f"<br/><small>{record.note}</small>" if record.note else ""),
            unsafe_allow_html=True,
        )
        col3.markdown(f"**{sign}{money(record.amount)}**")
        with col4:
            edit_col, delete_col = st.columns(2)
            if edit_col.button("✏️", key=f"edit-{record.id}"):
                try:
                    st.session_state.edit_session = dashboard.start_edit(record.id)
                except NotFoundError:
                    st.error("This transaction no longer exists.")
                st.rerun()
            if delete_col.button("🗑️", key=f"delete-{record.id}"):
                try:
                    run_async(dashboard.delete_transaction(record.id))
                except NotFoundError:
                    st.warning("Already deleted.")
                except StorageError as e:
                    st.error(f"Failed to delete: {e}. Please try again.")
                else:
                    settle()
                    st.rerun()


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    status = validate_all_settings()
    for name, key in [("Google Sheets (Storage)", "google_sheets"), ("Application", "app")]:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your "
        "Google Sheets credentials and `APP_USER_ID`. Without them the "
        "ledger runs in memory and forgets everything on restart."
    )


if __name__ == "__main__":
    main()
