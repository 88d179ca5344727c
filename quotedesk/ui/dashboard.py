"""Streamlit dashboard to review, answer, and export HiSAFE quote requests."""
from pathlib import Path
from typing import List, Optional

import streamlit as st

# Allow running via "streamlit run quotedesk/ui/dashboard.py" without installing the package
# by ensuring the repository root is on ``sys.path``.
if __package__ in {None, ""}:
    import sys

    sys.path.append(str(Path(__file__).resolve().parents[2]))

from quotedesk.auth.pkce import AuthRedirect, PKCEAuthenticator
from quotedesk.client.gateway import GatewayError
from quotedesk.client.repository import TaskRepositoryError
from quotedesk.core.config import HiSafeConfig
from quotedesk.core.logging import configure_logging
from quotedesk.core.models import AUTHOR_TYPES, QUOTE_STATUSES, QuoteRequest
from quotedesk.export.sinks import auto_sheets_target, push_to_google_sheets, write_csv, write_excel
from quotedesk.export.templates import quotes_to_rows as export_rows
from quotedesk.mapping.validation import QuoteValidationError
from quotedesk.quotes.review import compute_stats, filter_quotes, quotes_to_rows, status_badge
from quotedesk.quotes.service import QuotesService


def _rerun_app() -> None:
    """Trigger a Streamlit rerun, compatible with newer and older APIs."""

    rerun = getattr(st, "rerun", None) or getattr(st, "experimental_rerun", None)
    if not rerun:
        raise RuntimeError("Streamlit does not expose a rerun helper.")
    rerun()


def _get_service() -> QuotesService:
    """Build the service once per browser session so the bearer header survives reruns."""

    if "service" not in st.session_state:
        st.session_state.service = QuotesService.from_config(HiSafeConfig.from_env())
    return st.session_state.service


def _complete_sign_in(service: QuotesService) -> None:
    """Finish an OAuth callback, then drop ``code``/``state`` from the address bar."""

    params = {key: st.query_params[key] for key in st.query_params}
    service.authenticator.ensure_authenticated(params)
    if "code" in params or "state" in params:
        st.query_params.from_dict(PKCEAuthenticator.strip_callback_params(params))


def _render_sign_in(redirect: AuthRedirect) -> None:
    st.title("HiSAFE Quote Desk")
    if redirect.reason:
        st.error(redirect.reason)
        st.link_button("Sign in again", redirect.url, type="primary")
    else:
        st.info("You need to sign in to HiSAFE to see the quote queue.")
        st.link_button("Continue to HiSAFE sign-in", redirect.url, type="primary")


def _load_session_quotes(service: QuotesService) -> List[QuoteRequest]:
    """Load quotes once per session to keep the app responsive."""

    if "quotes" not in st.session_state:
        with st.spinner("Loading quote requests from HiSAFE..."):
            st.session_state.quotes = service.list_quotes()
        st.session_state.alerts = list(service.alerts)
    return st.session_state.quotes


def _persist_quote(updated: QuoteRequest) -> None:
    """Replace the quote with the same id in session state."""

    st.session_state.quotes = [
        updated if quote.id == updated.id else quote for quote in st.session_state.quotes
    ]


def _flash(message: str, level: str = "success") -> None:
    st.session_state["last_action"] = {"message": message, "level": level}


def _show_flash() -> None:
    action = st.session_state.pop("last_action", None)
    if not action:
        return
    renderer = {"success": st.success, "warning": st.warning, "info": st.info, "error": st.error}.get(
        action["level"], st.info
    )
    renderer(action["message"])


def _queue_dashboard(quotes: List[QuoteRequest]) -> None:
    """Render the sidebar summary of queue health."""

    stats = compute_stats(quotes)
    row1 = st.columns(2)
    row1[0].metric("Total requests", stats.total)
    row1[1].metric("Pending", stats.pending)

    row2 = st.columns(2)
    row2[0].metric("Processing", stats.processing)
    row2[1].metric("Approved", stats.approved)

    row3 = st.columns(2)
    row3[0].metric("Denied", stats.denied)
    row3[1].metric("Total value", f"${stats.total_value:,.2f}")

    finished = stats.approved + stats.denied
    st.progress(finished / stats.total if stats.total else 0)
    st.caption(f"{finished} of {stats.total} answered")


def _quote_details(service: QuotesService, quote: QuoteRequest) -> None:
    st.markdown(f"### {quote.client_name}")
    st.caption(f"Quote {quote.id} | {status_badge(quote.status)} | Updated {quote.updated_at}")

    detail_cols = st.columns(2)
    with detail_cols[0]:
        st.write(f"**E-mail:** {quote.client_email}")
        st.write(f"**Phone:** {quote.client_phone or '-'}")
        st.write(f"**Project type:** {quote.project_type or '-'}")
        st.write(f"**Location:** {quote.location or '-'}")
    with detail_cols[1]:
        st.write(f"**Budget:** {quote.budget or '-'}")
        st.write(f"**Timeline:** {quote.timeline or '-'}")
        cost = f"${quote.estimated_cost:,.2f}" if quote.estimated_cost is not None else "-"
        st.write(f"**Estimated cost:** {cost}")
        st.write(f"**Job:** {quote.job_id or '-'}")
    st.text(quote.project_description or "No description provided.")
    if quote.notes:
        st.caption(f"Notes: {quote.notes}")

    action_cols = st.columns(len(QUOTE_STATUSES))
    for column, status in zip(action_cols, QUOTE_STATUSES):
        with column:
            if st.button(status_badge(status), key=f"status_{quote.id}_{status}", disabled=quote.status == status):
                updated = service.update_status(quote.id, status, current=quote)
                _persist_quote(updated)
                _flash(f"Quote {quote.id} marked {status}.")
                _rerun_app()

    st.markdown("#### Comments")
    if quote.comments:
        for comment in quote.comments:
            st.markdown(f"**{comment.author}** ({comment.author_type}) · {comment.timestamp}")
            st.write(comment.message)
    else:
        st.caption("No comments yet.")

    with st.form(key=f"comment_{quote.id}", clear_on_submit=True):
        message = st.text_area("Add a comment")
        author_cols = st.columns(2)
        author = author_cols[0].text_input("Author", value=st.session_state.get("comment_author", "User"))
        author_type = author_cols[1].radio("Author type", AUTHOR_TYPES, index=1, horizontal=True)
        if st.form_submit_button("Post comment"):
            if not message.strip():
                st.warning("Write a message before posting.")
            else:
                st.session_state["comment_author"] = author
                updated = service.add_comment(quote.id, message, author=author, author_type=author_type)
                _persist_quote(updated)
                _flash(f"Comment added to quote {quote.id}.")
                _rerun_app()


def _render_queue_tab(service: QuotesService, quotes: List[QuoteRequest]) -> None:
    st.markdown("### Queue filters")
    filter_cols = st.columns([1.3, 1])
    with filter_cols[0]:
        selected_statuses = st.multiselect(
            "Filter by status", options=list(QUOTE_STATUSES), default=list(QUOTE_STATUSES)
        )
    with filter_cols[1]:
        search_term = st.text_input("Search client, e-mail, description, or type")

    filtered = filter_quotes(quotes, statuses=selected_statuses, term=search_term)
    if not filtered:
        st.info("No quote requests match the current filters.")
        return

    preview = quotes_to_rows(filtered)
    for row in preview:
        row["status"] = status_badge(row["status"])
    st.dataframe(
        preview,
        use_container_width=True,
        height=320,
        hide_index=True,
        column_order=[
            "id", "status", "client_name", "client_email", "project_type", "estimated_cost", "comments", "updated_at"
        ],
    )

    labels = {quote.id: f"{quote.id} | {quote.client_name}" for quote in filtered}
    selected_id = st.selectbox("Open quote", options=list(labels), format_func=labels.get)
    selected = next(quote for quote in filtered if quote.id == selected_id)
    _quote_details(service, selected)


def _render_new_quote_tab(service: QuotesService) -> None:
    st.markdown("Submit a quote request straight into HiSAFE.")
    with st.form(key="new_quote", clear_on_submit=False):
        cols = st.columns(2)
        data = {
            "client_name": cols[0].text_input("Customer name *"),
            "client_email": cols[1].text_input("Customer e-mail *"),
            "client_phone": cols[0].text_input("Phone"),
            "project_type": cols[1].text_input("Project type"),
            "item_part_name": cols[0].text_input("Item/Part name"),
            "item_part_size": cols[1].text_input("Item/Part size"),
            "budget": cols[0].text_input("Budget"),
            "timeline": cols[1].text_input("Needed by"),
            "location": cols[0].text_input("Location"),
        }
        data["project_description"] = st.text_area("Item/Part description *")
        data["notes"] = st.text_area("Notes")
        submitted = st.form_submit_button("Create quote request", type="primary")

    if not submitted:
        return
    try:
        created = service.create_quote({key: value.strip() for key, value in data.items()})
    except QuoteValidationError as exc:
        for error in exc.errors:
            st.error(error)
        return
    except (GatewayError, TaskRepositoryError) as exc:
        st.error(f"HiSAFE rejected the quote request: {exc}")
        return

    st.session_state.quotes = [created, *st.session_state.get("quotes", [])]
    _flash(f"Quote request {created.id} created for {created.client_name}.")
    _rerun_app()


def _render_export_tab(quotes: List[QuoteRequest]) -> None:
    auto_config = auto_sheets_target() or {}
    export_statuses = st.multiselect(
        "Statuses to export", options=list(QUOTE_STATUSES), default=["approved"]
    )
    export_sink = st.radio(
        "Choose destination",
        options=["csv", "excel", "sheets"],
        format_func=lambda value: value.upper(),
        horizontal=True,
        key="export_sink_choice",
    )
    st.session_state.setdefault("csv_export_path", "output/quotes.csv")
    st.session_state.setdefault("excel_export_path", "output/quotes.xlsx")
    st.session_state.setdefault("sheets_spreadsheet_id", auto_config.get("spreadsheet_id", ""))
    st.session_state.setdefault("sheets_worksheet", auto_config.get("worksheet_title", "Quotes"))
    st.session_state.setdefault(
        "sheets_service_account", str(auto_config.get("service_account_path", "service_account.json"))
    )

    if export_sink == "csv":
        st.text_input("CSV file path", key="csv_export_path")
    elif export_sink == "excel":
        st.text_input("Excel file path", key="excel_export_path")
    else:
        sheet_cols = st.columns(3)
        sheet_cols[0].text_input("Spreadsheet ID", key="sheets_spreadsheet_id")
        sheet_cols[1].text_input("Worksheet title", key="sheets_worksheet")
        sheet_cols[2].text_input("Service account JSON", key="sheets_service_account")

    if not st.button("Export quotes", type="primary"):
        return
    rows = export_rows(filter_quotes(quotes, statuses=export_statuses))
    if not rows:
        st.info("No quote requests match the selected statuses.")
        return

    try:
        if export_sink == "csv":
            target = Path(st.session_state["csv_export_path"] or "output/quotes.csv")
            write_csv(rows, target)
            st.success(f"Saved {len(rows)} quotes to {target.resolve()}")
        elif export_sink == "excel":
            target = Path(st.session_state["excel_export_path"] or "output/quotes.xlsx")
            write_excel(rows, target)
            st.success(f"Excel export saved to {target}")
        else:
            spreadsheet_id = st.session_state["sheets_spreadsheet_id"].strip()
            worksheet = st.session_state["sheets_worksheet"].strip() or "Quotes"
            account_value = st.session_state["sheets_service_account"].strip()
            account_path: Optional[Path] = Path(account_value) if account_value else None
            if not spreadsheet_id:
                st.warning("Provide a spreadsheet ID to sync with Google Sheets.")
                return
            if account_path and not account_path.exists():
                st.warning(f"Service account file not found at {account_path}.")
                return
            push_to_google_sheets(rows, spreadsheet_id, worksheet, account_path)
            st.success(f"Pushed {len(rows)} quotes to Google Sheets worksheet '{worksheet}'.")
    except Exception as exc:  # pragma: no cover - UI feedback
        st.error(f"Export failed: {exc}")


def _render_sidebar(service: QuotesService, quotes: List[QuoteRequest]) -> None:
    with st.sidebar:
        if "current_user" not in st.session_state:
            st.session_state.current_user = service.current_user()
        user = st.session_state.current_user
        st.caption(f"Signed in as {user.get('name') or 'HiSAFE user'}")
        st.subheader("Live dashboard")
        _queue_dashboard(quotes)

        st.subheader("Alerts")
        alerts = st.session_state.get("alerts", [])
        if alerts:
            st.caption(f"{len(alerts)} task(s) loaded with problems.")
            st.dataframe([{"Issue": alert} for alert in alerts], use_container_width=True, hide_index=True)
        else:
            st.success("All tasks mapped cleanly.")

        if st.button("Reload from HiSAFE", type="secondary"):
            st.session_state.pop("quotes", None)
            st.session_state.pop("alerts", None)
            _rerun_app()
        if st.button("Log out", type="secondary"):
            for key in ("quotes", "alerts", "current_user"):
                st.session_state.pop(key, None)
            service.authenticator.logout()


def _render_app(service: QuotesService) -> None:
    _complete_sign_in(service)
    quotes = _load_session_quotes(service)

    st.title("HiSAFE Quote Desk")
    st.caption("Review incoming quote requests, answer them, and keep HiSAFE in sync.")
    _show_flash()
    _render_sidebar(service, quotes)

    queue_tab, new_tab, export_tab = st.tabs(["Quote queue", "New quote request", "Export"])
    with queue_tab:
        _render_queue_tab(service, quotes)
    with new_tab:
        _render_new_quote_tab(service)
    with export_tab:
        _render_export_tab(quotes)


def main() -> None:
    """Launch the quote review dashboard."""

    configure_logging()
    st.set_page_config(page_title="Quote Desk", layout="wide", initial_sidebar_state="expanded")
    service = _get_service()
    try:
        _render_app(service)
    except AuthRedirect as redirect:
        _render_sign_in(redirect)
    except GatewayError as exc:
        st.error(f"HiSAFE request failed: {exc}")


if __name__ == "__main__":
    main()
