import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio

import streamlit as st
import pandas as pd
import plotly.express as px

from profitplan.auth import AuthSession, Authenticated, CodeSent
from profitplan.config import get_settings
from profitplan.delivery import OutboxDelivery
from profitplan.errors import AllocatorError, ExportPreconditionFailed
from profitplan.logging_utils import configure_logging

TAG_COLORS = {
    "pink": "#ec4899",
    "blue": "#3b82f6",
    "purple": "#8b5cf6",
    "orange": "#f97316",
    "gray": "#6b7280",
}

settings = get_settings()
configure_logging(settings.log_level)

st.set_page_config(page_title="Profit Plan Allocator", layout="wide")


def run(coro):
    return asyncio.run(coro)


if "auth" not in st.session_state:
    st.session_state.outbox = OutboxDelivery(settings.base_url)
    st.session_state.auth = AuthSession.from_settings(settings, st.session_state.outbox)
    st.session_state.auth_error = ""

auth: AuthSession = st.session_state.auth
outbox: OutboxDelivery = st.session_state.outbox

# deep link: ?code=...&email=...
if not isinstance(auth.state, Authenticated) and "code" in st.query_params:
    try:
        run(auth.verify_link(st.query_params.to_dict()))
        st.session_state.auth_error = ""
    except AllocatorError as e:
        st.session_state.auth_error = e.message
    st.query_params.clear()


def render_sign_in():
    st.title("✨ Profit Plan Allocator")
    st.caption("Plan your profit, get your journal entry")

    if st.session_state.auth_error:
        st.error(st.session_state.auth_error)

    if isinstance(auth.state, CodeSent):
        email = auth.state.email
        st.info(f"📧 We sent a 6-digit code to **{email}**. It expires in {settings.code_ttl_minutes} minutes.")
        message = outbox.last_for(email)
        if message:
            st.warning(f"📝 Demo Mode: your code is **{message.code}** ([magic link]({message.link}))")
        with st.form("verify_form"):
            code = st.text_input("Verification code", max_chars=6)
            submitted = st.form_submit_button("Verify")
        if submitted:
            try:
                run(auth.verify_code(email, code))
                st.session_state.auth_error = ""
            except AllocatorError as e:
                st.session_state.auth_error = e.message
            st.rerun()
        if st.button("Use a different email"):
            auth.restart()
            st.session_state.auth_error = ""
            st.rerun()
        return

    with st.form("email_form"):
        email = st.text_input("Email Address", placeholder="your@email.com")
        submitted = st.form_submit_button("Send Magic Link")
    if submitted:
        try:
            run(auth.request_code(email))
            st.session_state.auth_error = ""
        except AllocatorError as e:
            st.session_state.auth_error = e.message
        st.rerun()


def render_planner():
    plan = auth.session

    st.sidebar.markdown("### 👤 Profile")
    st.sidebar.caption(f"Signed in as {plan.identity}")
    if st.sidebar.button("💾 Save Buckets"):
        try:
            run(auth.save_buckets())
        except AllocatorError as e:
            plan.status = e.message
        st.rerun()
    if st.sidebar.button("🚪 Sign Out"):
        try:
            run(auth.sign_out())
        except AllocatorError as e:
            st.session_state.auth_error = e.message
        st.rerun()

    st.title("💰 Profit Plan Allocator")
    if plan.status:
        st.info(plan.status)

    col1, col2 = st.columns(2)
    with col1:
        plan.profit_text = st.text_input("Profit to allocate ($)", value=plan.profit_text, placeholder="5000.00")
    with col2:
        plan.notes = st.text_input("Notes (used as journal memo)", value=plan.notes)

    st.header("🪣 Buckets")
    for bucket in plan.buckets:
        c_name, c_pct, c_acc, c_del = st.columns([3, 1, 3, 1])
        with c_name:
            name = st.text_input("Name", value=bucket.name, key=f"name_{bucket.id}")
        with c_pct:
            pct = st.text_input("%", value=f"{bucket.percentage:g}", key=f"pct_{bucket.id}")
        with c_acc:
            account = st.text_input("Account", value=bucket.account, key=f"acc_{bucket.id}")
        with c_del:
            st.write("")
            if st.button("🗑", key=f"del_{bucket.id}"):
                plan.delete_bucket(bucket.id)
                st.rerun()
        if name != bucket.name:
            plan.update_bucket(bucket.id, "name", name)
        if pct != f"{bucket.percentage:g}":
            plan.update_bucket(bucket.id, "percentage", pct)
        if account != bucket.account:
            plan.update_bucket(bucket.id, "account", account)

    if st.button("➕ Add Bucket"):
        plan.add_bucket()
        st.rerun()

    total = plan.total_percentage
    if total != 100:
        st.warning(f"Total percentage is {total:.1f}% - should be 100%")
    else:
        st.success("Total percentage is 100%")

    if st.button("Calculate Allocation", disabled=not plan.can_allocate()):
        result = plan.calculate()
        if result.is_left():
            st.error(result.get_error()["message"])

    if not plan.allocations:
        st.info("Enter a profit amount and calculate to see your allocation.")
        return

    st.header("📊 Allocation")
    df = pd.DataFrame([
        {"Bucket": a.bucket_name, "Percent": a.percentage, "Amount": a.amount, "Account": a.account}
        for a in plan.allocations
    ])
    disp = df.assign(
        Percent=df["Percent"].map(lambda v: f"{v:.1f}%"),
        Amount=df["Amount"].map(lambda v: f"${v:,.2f}"),
    )
    st.table(disp)
    st.metric("Total Allocated", f"${plan.total_allocated:,.2f}")

    if df["Amount"].sum() > 0:
        colors = {b.name: TAG_COLORS.get(b.color_tag, TAG_COLORS["gray"]) for b in plan.buckets}
        fig = px.pie(df, values="Amount", names="Bucket", color="Bucket", color_discrete_map=colors,
                     title="Profit Split")
        st.plotly_chart(fig, use_container_width=True)

    st.header("📤 Export")
    try:
        journal = plan.journal_file()
        report = plan.report_file()
    except ExportPreconditionFailed as e:
        st.warning(e.message)
        return
    d1, d2 = st.columns(2)
    with d1:
        st.download_button("⬇ Journal Entry CSV", journal.content, file_name=journal.filename, mime=journal.mime)
    with d2:
        st.download_button("⬇ Detailed Report", report.content, file_name=report.filename, mime=report.mime)


if isinstance(auth.state, Authenticated):
    render_planner()
else:
    render_sign_in()
