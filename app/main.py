"""
Streamlit Frontend for Care Ledger

The financial dashboard facility staff use daily: metric cards,
the month's transactions, and monthly fee generation.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Explicit confirmation before generating fees
3. Clear error messages in simple language
4. Visual feedback for all operations

The page holds no ledger state of its own. Everything is read from and
written through the session's Ledger Store.
"""

import asyncio
import logging

import streamlit as st

from care_ledger.config import get_settings, validate_all_settings
from care_ledger.metrics import find_overdue_candidates
from care_ledger.models.errors import LedgerError
from care_ledger.models.ledger import LedgerIdentity
from care_ledger.models.periods import month_key
from care_ledger.orchestrator import LedgerSession, create_ledger_session
from care_ledger.presentation import (
    currency_to_decimal,
    filter_transactions,
    format_currency,
    format_currency_input,
    format_date,
    format_month,
    paginate,
    sort_transactions,
    summarize_month,
)
from care_ledger.services.storage import StorageError


# Page configuration
st.set_page_config(
    page_title="Care Ledger",
    page_icon="🏡",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
    }
    .big-number {
        font-size: 2.0em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)


STATUS_LABELS = {
    "pending": "⏳ Pending",
    "paid": "✅ Paid",
    "overdue": "⚠️ Overdue",
    "cancelled": "✖️ Cancelled",
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
def get_session(user_id: str, organization_id: str) -> LedgerSession:
    """Get or create the ledger session for an identity (cached)."""
    identity = LedgerIdentity(
        user_id=user_id,
        organization_id=organization_id or None,
    )
    session = create_ledger_session(identity, use_storage=True)
    run_async(session.start())
    return session


def main():
    """Main application entry point."""
    logging.basicConfig(level=get_settings().app.effective_log_level)

    st.sidebar.title("🏡 Care Ledger")
    st.sidebar.markdown("---")

    user_id = st.sidebar.text_input("User ID", value=st.session_state.get("user_id", ""))
    organization_id = st.sidebar.text_input(
        "Organization ID (optional)",
        value=st.session_state.get("organization_id", ""),
    )
    st.session_state["user_id"] = user_id
    st.session_state["organization_id"] = organization_id

    if not user_id.strip():
        st.info("👈 Enter your user ID in the sidebar to open the ledger.")
        return

    session = get_session(user_id.strip(), organization_id.strip())

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "💸 Transactions", "🧾 Generate Fees", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    if st.sidebar.button("🔄 Reload data"):
        run_async(session.start())
    if st.sidebar.button("🚪 Sign out"):
        session.end()
        get_session.clear()
        st.session_state["user_id"] = ""
        st.rerun()

    if session.store.connection_error:
        st.error(session.store.connection_error)

    # Route to appropriate page
    if page == "📊 Dashboard":
        render_dashboard_page(session)
    elif page == "💸 Transactions":
        render_transactions_page(session)
    elif page == "🧾 Generate Fees":
        render_generation_page(session)
    elif page == "⚙️ Settings":
        render_settings_page()


def render_dashboard_page(session: LedgerSession):
    """Render the metric cards."""
    st.title("📊 Financial Overview")

    metrics = session.store.metrics
    if metrics is None:
        st.info("No financial records yet. Generate monthly fees or add a transaction to get started.")
        return

    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric(
            "Revenue this month",
            format_currency(metrics.monthly_revenue.current),
            delta=f"{metrics.monthly_revenue.trend:.1f}%",
        )
    with col2:
        st.metric(
            "Expenses this month",
            format_currency(metrics.monthly_expenses.current),
            delta=f"{metrics.monthly_expenses.trend:.1f}%",
            delta_color="inverse",
        )
    with col3:
        st.metric("Balance", format_currency(metrics.current_balance))

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("Overdue to receive", format_currency(metrics.overdue_amount.receivables))
    with col2:
        st.metric("Overdue to pay", format_currency(metrics.overdue_amount.payables))
    with col3:
        st.metric("Due in 7 days", format_currency(metrics.upcoming_dues.next_7_days))
    with col4:
        st.metric("Due in 30 days", format_currency(metrics.upcoming_dues.next_30_days))

    render_overdue_candidates(session)


def render_overdue_candidates(session: LedgerSession):
    """List pending fees past their due date; staff decide which to mark overdue."""
    candidates = find_overdue_candidates(session.store.monthly_fees, session.store.today())
    if not candidates:
        return

    st.markdown("---")
    st.markdown(f"### ⚠️ {len(candidates)} fee(s) past due")
    names = session.resident_names

    for fee in candidates:
        col1, col2, col3, col4 = st.columns([4, 2, 2, 2])
        with col1:
            st.markdown(f"**{names.get(fee.resident_id) or 'Resident'}** ({format_month(fee.month)})")
        with col2:
            st.markdown(format_currency(fee.amount))
        with col3:
            st.markdown(f"Due {format_date(fee.due_date)}")
        with col4:
            if st.button("Mark overdue", key=f"overdue-{fee.id}"):
                try:
                    run_async(session.store.mark_fee_overdue(fee.id))
                    st.rerun()
                except (LedgerError, StorageError) as e:
                    st.error(f"❌ Could not save: {e.message}")


STATUS_CHOICES = ["pending", "paid", "overdue", "cancelled"]


def render_row_editor(session: LedgerSession, row) -> None:
    """Inline amount and status editing for one transaction row."""
    with st.expander("Edit"):
        typed = st.text_input(
            "Amount",
            value=format_currency(row.amount),
            key=f"amount-{row.id}",
        )
        amount = currency_to_decimal(format_currency_input(typed))
        st.caption(format_currency(amount))
        if st.button("Save amount", key=f"save-amount-{row.id}"):
            try:
                run_async(session.set_amount(row, amount))
                st.rerun()
            except (LedgerError, StorageError) as e:
                st.error(f"❌ Could not save: {e.message}")

        status = st.selectbox(
            "Status",
            STATUS_CHOICES,
            index=STATUS_CHOICES.index(row.status) if row.status in STATUS_CHOICES else 0,
            format_func=lambda s: STATUS_LABELS.get(s, s),
            key=f"status-{row.id}",
        )
        if status != row.status and st.button("Save status", key=f"save-status-{row.id}"):
            try:
                run_async(session.set_status(row, status))
                st.rerun()
            except (LedgerError, StorageError) as e:
                st.error(f"❌ Could not save: {e.message}")


def render_transactions_page(session: LedgerSession):
    """Render the month's transactions with filters and paging."""
    st.title("💸 Transactions")

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        selected = st.date_input("Month", value=session.store.today())
        month = month_key(selected)
    with col2:
        type_filter = st.selectbox("Type", ["all", "income", "expense"])
    with col3:
        status_filter = st.selectbox("Status", ["all", "pending", "paid", "overdue", "cancelled"])
    with col4:
        search = st.text_input("Search")

    rows = filter_transactions(
        session.transactions(),
        month=month,
        type_filter=type_filter,
        status_filter=status_filter,
        search=search,
    )
    summary = summarize_month(rows)

    st.markdown(f"### {format_month(month)}")
    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("Income", format_currency(summary.income))
        st.caption(f"Pending: {format_currency(summary.pending_income)}")
    with col2:
        st.metric("Expenses", format_currency(summary.expenses))
        st.caption(f"Pending: {format_currency(summary.pending_expenses)}")
    with col3:
        st.metric("Balance", format_currency(summary.balance))
    with col4:
        st.metric("Projected cash flow", format_currency(summary.projected_cash_flow))

    st.markdown("---")

    sort_key = st.selectbox("Sort by", ["due_date", "amount", "description", "status", "entity"])
    descending = st.checkbox("Descending", value=False)
    rows = sort_transactions(rows, key=sort_key, descending=descending)

    page_size = get_settings().app.page_size
    page_number = st.number_input("Page", min_value=1, value=1, step=1)
    page = paginate(rows, page=int(page_number), page_size=page_size)

    if not page.items:
        st.info("📋 No transactions for this month and filters.")
        return

    for row in page.items:
        col1, col2, col3, col4, col5 = st.columns([4, 2, 2, 2, 2])
        with col1:
            icon = "⬆️" if row.type == "income" else "⬇️"
            st.markdown(f"{icon} **{row.description}**  \n{row.entity}")
        with col2:
            st.markdown(format_currency(row.amount))
        with col3:
            st.markdown(f"Due {format_date(row.due_date)}")
        with col4:
            st.markdown(STATUS_LABELS.get(row.status, row.status))
        with col5:
            if row.status in ("pending", "overdue"):
                if st.button("Mark as paid", key=f"settle-{row.id}"):
                    try:
                        run_async(session.set_status(row, "paid"))
                        st.success("Saved.")
                        st.rerun()
                    except (LedgerError, StorageError) as e:
                        st.error(f"❌ Could not save: {e.message}")
        render_row_editor(session, row)

    st.caption(f"Page {page.page} of {page.total_pages} · {page.total} transactions")


def render_generation_page(session: LedgerSession):
    """Render the monthly fee generation form."""
    st.title("🧾 Generate Monthly Fees")
    st.markdown("Creates one pending fee per resident, using each resident's configured amount.")

    selected = st.date_input("Billing month", value=session.store.today())
    month = month_key(selected)
    year = selected.year

    try:
        preview = run_async(session.store.preview_monthly_fees(month, year))
    except (LedgerError, StorageError) as e:
        st.error(f"❌ {e.message}")
        return

    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Residents", preview.resident_count)
    with col2:
        st.metric("Total", format_currency(preview.total_amount))
    with col3:
        st.metric("Due date", format_date(preview.due_date))

    if preview.already_generated:
        st.warning(f"⚠️ Monthly fees for {format_month(month)} were already generated.")

    confirmed = st.checkbox(
        f"I confirm generating the fees for {format_month(month)}",
        disabled=preview.already_generated,
    )
    if st.button("Generate fees", disabled=preview.already_generated or not confirmed):
        try:
            fees = run_async(session.store.generate_monthly_fees(month, year))
            st.success(f"✅ Generated {len(fees)} monthly fees for {format_month(month)}.")
        except (LedgerError, StorageError) as e:
            st.error(f"❌ {e.message}")


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Ledger rules", "ledger"),
        ("Google Sheets (Storage)", "google_sheets"),
        ("Application", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file. "
        "See `.env.example` for the available variables."
    )


if __name__ == "__main__":
    main()
