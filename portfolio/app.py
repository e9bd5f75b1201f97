# portfolio/app.py
# PNFB Holdings property portfolio screen
#
# Run from repo root: streamlit run portfolio/app.py

from __future__ import annotations

from typing import Dict, List

import streamlit as st

from portfolio.config import ENABLE_DEBUG_UI, LOG_FORMAT, LOG_LEVEL, describe_config
from portfolio.dialogs import AddPropertyDialog, DeletePropertyDialog, EditPropertyDialog, PropertyFormDialog
from portfolio.exceptions import ConfigurationError, RemoteReadError
from portfolio.list_state import PropertyListState
from portfolio.log_config import get_logger, setup_logging
from portfolio.models import OCCUPANCY_OPTIONS, PROPERTY_TYPES, PropertyRecord
from portfolio.repository import PropertyRepository
from portfolio.search import (
    aggregate,
    filter_properties,
    format_total,
    records_to_frame,
)
from portfolio.store_client import create_store_client
from portfolio.dev_observability import (
    clear_debug_history,
    export_snapshot_json,
    get_recent_events,
    snapshot_state,
    track_event,
)

st.set_page_config(
    page_title="PNFB Holdings Properties",
    page_icon="🏠",
    layout="wide",
)

setup_logging(LOG_LEVEL, LOG_FORMAT)
logger = get_logger("portfolio.app")

# --------------------------------------------------------------------
# Page constants
# --------------------------------------------------------------------

UNREALISED_RENTAL = "£ 6000 pcm"

# Relative widths of the table columns (9 fields + actions)
ROW_WIDTHS = [0.5, 2.5, 0.8, 0.8, 0.8, 1.2, 1.3, 1.3, 0.8, 1.0]

KEYS_OF_INTEREST = [
    "search_term",
    "property_list",
    "add_dialog",
    "edit_dialog",
    "delete_dialog",
    "_fetch_attempted",
]

# --------------------------------------------------------------------
# State helpers
# --------------------------------------------------------------------


def init_state() -> None:
    """
    Create the per-session objects once.

    Raises:
        ConfigurationError: If the store is not configured
    """
    ss = st.session_state

    if "repository" not in ss:
        logger.info("Starting portfolio session: %s", describe_config())
        ss["repository"] = PropertyRepository(create_store_client())

    ss.setdefault("search_term", "")
    ss.setdefault("property_list", PropertyListState())
    ss.setdefault("_fetch_attempted", False)

    repository: PropertyRepository = ss["repository"]
    property_list: PropertyListState = ss["property_list"]
    ss.setdefault("add_dialog", AddPropertyDialog(repository, property_list))
    ss.setdefault("edit_dialog", EditPropertyDialog(repository, property_list))
    ss.setdefault("delete_dialog", DeletePropertyDialog(repository, property_list))

    # Widget-key generations, bumped whenever a form is (re)opened
    ss.setdefault("_form_nonce", {"add": 0, "edit": 0})


def bump_form_nonce(prefix: str) -> None:
    st.session_state["_form_nonce"][prefix] += 1


def fetch_properties() -> None:
    """Load the full list once per session; a failure is not retried automatically."""
    ss = st.session_state
    if ss["_fetch_attempted"]:
        return
    ss["_fetch_attempted"] = True

    repository: PropertyRepository = ss["repository"]
    property_list: PropertyListState = ss["property_list"]

    try:
        with st.spinner("Loading..."):
            records = repository.list()
    except RemoteReadError as e:
        property_list.mark_load_failed(e.user_message)
        track_event(ss, "fetch_failed", e.to_debug_info())
        return

    property_list.load(records)
    track_event(ss, "properties_loaded", {"count": len(records)})


def record_submit(dialog_name: str, dialog, ok: bool) -> None:
    details = {"status": dialog.status.value}
    if not ok and dialog.debug_info:
        details["debug_info"] = dialog.debug_info
    track_event(st.session_state, f"{dialog_name}_{'succeeded' if ok else 'failed'}", details)


# --------------------------------------------------------------------
# Dialog rendering
# --------------------------------------------------------------------


def render_debug_info(dialog) -> None:
    """Raw error details, debug UI only."""
    if ENABLE_DEBUG_UI and dialog.debug_info:
        with st.expander("Debug Info", expanded=False):
            st.json(dialog.debug_info)


def render_property_form(dialog: PropertyFormDialog, prefix: str, submit_label: str) -> bool:
    """Render the shared property form; returns True when it was submitted."""
    form = dialog.form
    nonce = st.session_state["_form_nonce"][prefix]

    def key(name: str) -> str:
        return f"{prefix}_{name}_{nonce}"

    type_options = [""] + PROPERTY_TYPES
    if form.type and form.type not in type_options:
        type_options.append(form.type)
    occupancy_options = list(OCCUPANCY_OPTIONS)
    if form.occupied and form.occupied not in occupancy_options:
        occupancy_options.append(form.occupied)

    with st.form(f"{prefix}_property_form_{nonce}", border=False):
        address = st.text_input("Address *", value=form.address, placeholder="Address", key=key("address"))
        property_type = st.selectbox(
            "Type *",
            options=type_options,
            index=type_options.index(form.type) if form.type in type_options else 0,
            format_func=lambda v: v or "Select Type",
            key=key("type"),
        )
        col_beds, col_baths = st.columns(2)
        with col_beds:
            bedrooms = st.text_input("Bedrooms *", value=form.bedrooms, placeholder="Bedrooms", key=key("bedrooms"))
        with col_baths:
            bathrooms = st.text_input(
                "Bathrooms *",
                value=form.bathrooms,
                placeholder="Bathrooms (0.5 steps)",
                key=key("bathrooms"),
            )
        valuation = st.text_input("Valuation *", value=form.valuation, placeholder="Valuation", key=key("valuation"))
        estate_agent = st.text_input("Estate Agent", value=form.estate_agent, placeholder="Estate Agent", key=key("estate_agent"))
        selling_agent = st.text_input("Selling Agent", value=form.selling_agent, placeholder="Selling Agent", key=key("selling_agent"))
        occupied = st.selectbox(
            "Occupied",
            options=occupancy_options,
            index=occupancy_options.index(form.occupied) if form.occupied in occupancy_options else 0,
            key=key("occupied"),
        )

        submitted = st.form_submit_button(
            "Saving..." if dialog.is_submitting else submit_label,
            type="primary",
            disabled=dialog.is_submitting,
        )

    if submitted:
        dialog.update_form(
            address=address,
            type=property_type or "",
            bedrooms=bedrooms,
            bathrooms=bathrooms,
            valuation=valuation,
            estate_agent=estate_agent,
            selling_agent=selling_agent,
            occupied=occupied,
        )
    return submitted


@st.dialog("Add Property")
def add_property_dialog() -> None:
    dialog: AddPropertyDialog = st.session_state["add_dialog"]

    if dialog.succeeded:
        st.success("✅ Property has been added successfully.")
        col_more, col_close = st.columns(2)
        with col_more:
            if st.button("Add Another Property", type="primary", key="add_another_btn"):
                dialog.add_another()
                bump_form_nonce("add")
                st.rerun(scope="fragment")
        with col_close:
            if st.button("Close", key="add_close_btn"):
                dialog.close()
                st.rerun()
        return

    if dialog.error:
        st.error(dialog.error)
    render_debug_info(dialog)

    if render_property_form(dialog, "add", "Add Property"):
        with st.spinner("Adding..."):
            ok = dialog.submit()
        record_submit("add", dialog, ok)
        st.rerun(scope="fragment")

    if st.button("Cancel", key="add_cancel_btn", disabled=dialog.is_submitting):
        dialog.close()
        st.rerun()


@st.dialog("Edit Property")
def edit_property_dialog() -> None:
    dialog: EditPropertyDialog = st.session_state["edit_dialog"]

    if dialog.succeeded:
        st.success("✅ Property has been updated successfully.")
        if st.button("Close", key="edit_close_btn"):
            dialog.close()
            st.rerun()
        return

    if dialog.error:
        st.error(dialog.error)
    render_debug_info(dialog)

    if render_property_form(dialog, "edit", "Save Changes"):
        with st.spinner("Saving..."):
            ok = dialog.submit()
        record_submit("edit", dialog, ok)
        st.rerun(scope="fragment")

    if st.button("Cancel", key="edit_cancel_btn", disabled=dialog.is_submitting):
        dialog.close()
        st.rerun()


@st.dialog("Confirm Deletion")
def delete_property_dialog() -> None:
    dialog: DeletePropertyDialog = st.session_state["delete_dialog"]
    record = dialog.record
    if record is None:
        return

    if dialog.error:
        st.error(dialog.error)
    render_debug_info(dialog)

    st.markdown(f"Are you sure you want to delete this property?  \n**{record.address}**")
    st.caption(":red[This action cannot be undone.]")

    col_cancel, col_delete = st.columns(2)
    with col_cancel:
        if st.button("Cancel", key="delete_cancel_btn", disabled=dialog.is_submitting):
            dialog.close()
            st.rerun()
    with col_delete:
        if st.button("Delete", type="primary", key="delete_confirm_btn", disabled=dialog.is_submitting):
            with st.spinner("Deleting..."):
                ok = dialog.submit()
            record_submit("delete", dialog, ok)
            # Success closes the dialog; failure re-renders it with the error
            if ok:
                st.rerun()
            st.rerun(scope="fragment")


def open_add_dialog() -> None:
    st.session_state["add_dialog"].open()
    bump_form_nonce("add")
    add_property_dialog()


def open_edit_dialog(record: PropertyRecord) -> None:
    st.session_state["edit_dialog"].open(record)
    bump_form_nonce("edit")
    edit_property_dialog()


def open_delete_dialog(record: PropertyRecord) -> None:
    st.session_state["delete_dialog"].open(record)
    delete_property_dialog()


# --------------------------------------------------------------------
# Page sections
# --------------------------------------------------------------------


def render_header() -> None:
    col_title, col_search, col_add = st.columns([3, 2, 1], vertical_alignment="bottom")
    with col_title:
        st.markdown("## PNFB Holdings Properties")
    with col_search:
        # Commits on Enter or blur; the table is filtered on that rerun
        st.text_input(
            "Search properties",
            key="search_term",
            placeholder="🔍 Search properties...",
            label_visibility="collapsed",
        )
    with col_add:
        if st.button("Add Property", type="primary", key="add_property_btn", use_container_width=True):
            open_add_dialog()
    st.markdown("---")


def render_summary(property_list: PropertyListState) -> None:
    # Count reflects the whole portfolio, not the current search
    summary = aggregate(property_list.records)
    col_count, col_value, col_rent = st.columns(3)
    with col_count:
        st.metric("Properties", summary.count)
    with col_value:
        st.metric("Asset Valuation", format_total(summary.total_valuation))
    with col_rent:
        st.metric("Unrealised Rental", UNREALISED_RENTAL)


def render_table(visible: List[PropertyRecord]) -> None:
    headers = [
        "ID", "Address", "Type", "Bedrooms", "Bathrooms",
        "Last Valuation", "Estate Agent", "Selling Agent", "Occupied", "Actions",
    ]
    header_cols = st.columns(ROW_WIDTHS)
    for col, label in zip(header_cols, headers):
        col.markdown(f"**{label}**")

    if not visible:
        st.caption("No properties match the current search.")
        return

    frame = records_to_frame(visible)
    for idx, (record, row) in enumerate(zip(visible, frame.to_dict("records"))):
        cols = st.columns(ROW_WIDTHS)
        cells: Dict[str, str] = {k: str(v) for k, v in row.items()}
        for col, label in zip(cols[:-1], headers[:-1]):
            col.write(cells.get(label, "") or " ")
        with cols[-1]:
            col_edit, col_delete = st.columns(2)
            # Index in the key: the list does not deduplicate ids
            with col_edit:
                if st.button("✏️", key=f"edit_{record.id}_{idx}", help="Edit"):
                    open_edit_dialog(record)
            with col_delete:
                if st.button("🗑️", key=f"delete_{record.id}_{idx}", help="Delete"):
                    open_delete_dialog(record)

    st.download_button(
        "Download visible properties as CSV",
        frame.to_csv(index=False),
        file_name="pnfb_properties.csv",
        mime="text/csv",
    )


def render_diagnostics() -> None:
    ss = st.session_state
    with st.expander("🛠 Diagnostics (DEV)", expanded=False):
        st.json(snapshot_state(ss, KEYS_OF_INTEREST))
        st.markdown("**Recent events**")
        st.json(get_recent_events(ss, limit=30))
        col_export, col_clear = st.columns(2)
        with col_export:
            st.download_button(
                "Export snapshot JSON",
                export_snapshot_json(ss, KEYS_OF_INTEREST),
                file_name="portfolio_debug_snapshot.json",
                mime="application/json",
            )
        with col_clear:
            if st.button("Clear event history", key="clear_debug_history_btn"):
                clear_debug_history(ss)
                st.rerun()


# ============================================================================
# Manual check
#   1. streamlit run portfolio/app.py with SUPABASE_URL / SUPABASE_KEY set
#   2. Search "oak" and "OAK": same rows, ordered by ID
#   3. Add a property with an empty Estate Agent: row appears after Close
#   4. Edit it, then Delete it: dialog closes and the row disappears
# ============================================================================


def main() -> None:
    try:
        init_state()
    except ConfigurationError as e:
        logger.error("Store configuration error: %s", e)
        st.error(f"⚙️ Configuration error: {e}")
        st.stop()

    fetch_properties()

    ss = st.session_state
    property_list: PropertyListState = ss["property_list"]

    render_header()
    render_summary(property_list)

    if not property_list.loaded:
        if property_list.load_error:
            st.error(property_list.load_error)
        st.markdown("Loading...")
    else:
        visible = filter_properties(property_list.records, ss["search_term"])
        render_table(visible)

    if ENABLE_DEBUG_UI:
        render_diagnostics()


if __name__ == "__main__":
    main()
