import html
import logging
from contextlib import contextmanager
from typing import Dict, List, Optional

import pandas as pd
import streamlit as st

from ma_plans.data import (
    PLAN_FIELDS,
    derive_carrier_facets,
    empty_plans_frame,
    format_currency_0,
    is_csv_upload,
    load_plan_data,
    prepare_context,
)
from ma_plans.filters import (
    DEFAULT_CARRIERS,
    OTHER_CARRIER,
    PLAN_TYPE_OPTIONS,
    SORT_OPTIONS,
    normalize_filters,
    select_all_carriers,
    select_no_carriers,
    toggle_carrier,
)
from ma_plans.metrics_debug import compute_debug
from ma_plans.metrics_plans import compute_plans

logger = logging.getLogger(__name__)


# ---------- UI / layout helpers ----------
def inject_base_styles():
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .breadcrumb {color: #6b7280;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-header {display: flex;justify-content: space-between;align-items: center;margin-bottom: 8px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        table.plans {width: 100%;border-collapse: collapse;font-size: 0.9rem;}
        table.plans th {background: #2563eb;color: #ffffff;text-align: left;padding: 10px 14px;}
        table.plans td {padding: 10px 14px;border-bottom: 1px solid #e5e7eb;color: #4b5563;vertical-align: top;}
        table.plans tr:nth-child(even) td {background: #f9fafb;}
        table.plans td.plan-name {color: #111827;font-weight: 500;}
        table.plans td.otc {max-width: 20rem;white-space: normal;word-break: break-word;}
        table.plans td.otc span {cursor: help;border-bottom: 1px dotted #9ca3af;}
        </style>
        """,
        unsafe_allow_html=True,
    )


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(
        f"""
        <div class="card">
          <div class="card-header">
            <div class="card-title">{title}</div>
          </div>
        """,
        unsafe_allow_html=True,
    )
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def format_filter_summary(plan_type: str, selected_carriers: List[str], sort_by: str) -> str:
    type_chip = f"Type: {plan_type}" if plan_type else "Type: All"
    if not selected_carriers:
        carrier_chip = "Carriers: none"
    elif len(selected_carriers) <= 2:
        carrier_chip = f"Carriers: {', '.join(selected_carriers)}"
    else:
        carrier_chip = f"Carriers: {len(selected_carriers)} selected"
    sort_chip = f"Sort: {SORT_OPTIONS.get(sort_by, SORT_OPTIONS[''])}"
    return "".join([f"<span class='chip'>{html.escape(txt)}</span>" for txt in [type_chip, carrier_chip, sort_chip]])


def render_page_header(title: str, breadcrumb: str, filter_summary_html: str, export_df: Optional[pd.DataFrame] = None, export_name: str = "export.csv"):
    c1, c2 = st.columns([8, 2])
    with c1:
        st.markdown(
            f"<div class='app-top-bar'><div class='breadcrumb'>{breadcrumb}</div><div class='page-title'>{title}</div></div>",
            unsafe_allow_html=True,
        )
    with c2:
        if export_df is not None and not export_df.empty:
            st.download_button(
                "Export CSV",
                data=export_df.to_csv(index=False).encode("utf-8"),
                file_name=export_name,
                mime="text/csv",
            )
    st.markdown(f"<div class='chip-row'>{filter_summary_html}</div>", unsafe_allow_html=True)


def render_plan_table(rows: List[Dict[str, object]]) -> str:
    head = "".join(
        f"<th>{h}</th>"
        for h in ["Plan Name", "Carrier", "Type", "Specialist CoPay", "Monthly Premium", "OTC / Food Card", "SOB Link"]
    )
    body = []
    for row in rows:
        esc = {k: html.escape(str(row.get(k) or "")) for k in row}
        body.append(
            "<tr>"
            f"<td class='plan-name'>{esc['name']}</td>"
            f"<td>{esc['carrier']}</td>"
            f"<td>{esc['type']}</td>"
            f"<td>{esc['specialist_copay']}</td>"
            f"<td>{esc['premium']}</td>"
            f"<td class='otc'><span title=\"{esc['otc_full']}\">{esc['otc_summary']}</span></td>"
            f"<td><a href=\"{esc['sob_link']}\" target=\"_blank\" rel=\"noreferrer\">View SOB</a></td>"
            "</tr>"
        )
    return f"<table class='plans'><thead><tr>{head}</tr></thead><tbody>{''.join(body)}</tbody></table>"


# ---------- Session state ----------
def _carrier_key(carrier: str) -> str:
    return f"carrier::{carrier}"


def _set_carriers(selection: List[str]):
    st.session_state["selected_carriers"] = selection


def _sync_carrier_widgets():
    # Hidden checkboxes lose their widget state, so rebuild it from the selection each run.
    selection = st.session_state["selected_carriers"]
    for c in [*DEFAULT_CARRIERS, OTHER_CARRIER]:
        st.session_state[_carrier_key(c)] = c in selection


def _on_carrier_toggle(carrier: str):
    st.session_state["selected_carriers"] = toggle_carrier(st.session_state["selected_carriers"], carrier)


def init_session_state():
    if "data_ctx" in st.session_state:
        return
    st.session_state["data_ctx"] = {"files": [], "plans": empty_plans_frame()}
    st.session_state["upload_id"] = None
    _set_carriers(list(DEFAULT_CARRIERS))


def handle_upload(uploaded):
    if uploaded is None or uploaded.file_id == st.session_state["upload_id"]:
        return
    st.session_state["upload_id"] = uploaded.file_id
    # One widget serves both drop and browse, so browsed files get the CSV check too.
    if not is_csv_upload(uploaded.name, uploaded.type):
        logger.info("Ignoring non-CSV upload %s", uploaded.name)
        return
    data_ctx = load_plan_data(uploaded.getvalue(), uploaded.name)
    if data_ctx is None:
        return
    st.session_state["data_ctx"] = data_ctx


# ---------- UI setup ----------
st.set_page_config(page_title="Medicare Advantage Plan Dashboard", layout="wide")
inject_base_styles()
init_session_state()
st.title("Medicare Advantage Plan Dashboard")

handle_upload(
    st.file_uploader(
        "Upload Medicare Plan Data",
        help="Drag and drop your CSV file here, or click to browse.",
    )
)
data_ctx = st.session_state["data_ctx"]

# Carrier facets come from the loaded plans; recomputed on every rerun.
other_carriers = derive_carrier_facets(data_ctx["plans"], DEFAULT_CARRIERS)

with card("Filters"):
    type_col, carrier_col, sort_col = st.columns(3)
    with type_col:
        plan_type = st.selectbox(
            "Filter by Plan Type",
            options=["", *PLAN_TYPE_OPTIONS],
            format_func=lambda v: v or "All Plan Types",
        )
    with carrier_col:
        st.markdown("**Filter by Carrier**")
        btn_cols = st.columns(2)
        btn_cols[0].button("Select All", on_click=_set_carriers, args=(select_all_carriers(DEFAULT_CARRIERS, other_carriers),))
        btn_cols[1].button("Select None", on_click=_set_carriers, args=(select_no_carriers(),))
        _sync_carrier_widgets()
        for carrier in DEFAULT_CARRIERS:
            st.checkbox(carrier, key=_carrier_key(carrier), on_change=_on_carrier_toggle, args=(carrier,))
        if other_carriers:
            st.checkbox(
                f"{OTHER_CARRIER} ({len(other_carriers)})",
                key=_carrier_key(OTHER_CARRIER),
                on_change=_on_carrier_toggle,
                args=(OTHER_CARRIER,),
                help=", ".join(other_carriers),
            )
    with sort_col:
        sort_by = st.selectbox(
            "Sort by OTC Amount",
            options=list(SORT_OPTIONS),
            format_func=SORT_OPTIONS.get,
            help="Sorts by the highest dollar amount found in OTC/Food Card text",
        )

filters = normalize_filters(
    {
        "plan_type": plan_type,
        "selected_carriers": st.session_state["selected_carriers"],
        "sort_by": sort_by,
    }
)
ctx = prepare_context(filters, data_ctx)
payload = compute_plans(filters, ctx)
kpis = payload["kpis"]

filtered_plans = ctx["filtered_plans"]
render_page_header(
    "Plans",
    "Home / Plans",
    format_filter_summary(filters.plan_type, filters.selected_carriers, filters.sort_by),
    export_df=filtered_plans[PLAN_FIELDS] if not filtered_plans.empty else None,
    export_name="plans.csv",
)

kpi_cols = st.columns(4)
kpi_cols[0].metric("Plans loaded", f"{kpis['plan_count']:,}")
kpi_cols[1].metric("Plans shown", f"{kpis['visible_count']:,}")
kpi_cols[2].metric("Top OTC amount", format_currency_0(kpis["max_otc_amount"]))
kpi_cols[3].metric("Other carriers", f"{kpis['other_carrier_count']:,}")

if kpis["plan_count"] == 0:
    st.info("Upload a CSV file with plan data to get started.")
elif not payload["rows"]:
    st.info("No plans match the current filters.")
else:
    with card("Plans"):
        st.markdown(render_plan_table(payload["rows"]), unsafe_allow_html=True)
    if "plans_by_type" in payload["charts"]:
        with card("Plans by type"):
            st.vega_lite_chart(payload["charts"]["plans_by_type"], use_container_width=True)

with st.expander("Data quality", expanded=False):
    debug = compute_debug(filters, ctx)
    if debug["missing_columns"]:
        st.warning(f"Missing columns: {', '.join(debug['missing_columns'])}")
    st.write(debug["row_counts"])
    st.write(debug["checks"])
    if debug["carrier_counts"]:
        st.markdown("**Plans per carrier**")
        st.dataframe(pd.DataFrame(debug["carrier_counts"]), hide_index=True)
    if debug["unknown_type_names"]:
        st.markdown("**Unclassified plan names**")
        st.dataframe(pd.DataFrame({"name": debug["unknown_type_names"]}), hide_index=True)
    st.caption("Plans with an Unknown carrier are not reachable through the carrier filter.")
