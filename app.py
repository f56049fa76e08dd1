import pandas as pd
import streamlit as st
from streamlit.logger import get_logger

from ua_forecast.analysis import inputs_from_mapping, monthly_dual_chart, read_anchors, retention_chart, roas_chart
from ua_forecast.constants import ANCHOR_KEYS, DAYS_PER_MONTH, HORIZON_DAYS, HORIZON_MONTHS, NET_FACTOR, ROAS_CHECKPOINTS
from ua_forecast.export import build_workbook, collect_export_bundle, export_tables, table_to_csv
from ua_forecast.model import forecast
from ua_forecast.retention import day_to_day_decay
from ua_forecast.types import CohortBudgetSchedule, ForecastInputs
from ua_forecast.ui import format_currency, format_pct, inject_brand_styles, render_brand_header, render_kpi_cards

# MUST be the first Streamlit call:
st.set_page_config(page_title="UA Cohort Forecaster", layout="wide")

# Streamlit logger (appears in deployment logs)
logger = get_logger(__name__)
logger.info("App startup: UA Cohort Forecaster")

DEFAULTS = ForecastInputs()
BUDGET_MODES = ["Constant", "Monthly ramp"]


def number_input_state(label: str, *, key: str, default_value, **kwargs):
    kwargs["key"] = key
    if key not in st.session_state:
        kwargs["value"] = default_value
    return st.number_input(label, **kwargs)


def _apply_pending_state_updates() -> None:
    """Apply any deferred session state updates before widgets render."""

    pending = st.session_state.pop("_pending_state_update", None)
    if isinstance(pending, dict):
        for k, v in pending.items():
            st.session_state[k] = v


def anchors_upload() -> None:
    uploaded = st.sidebar.file_uploader(
        "Load retention anchors (CSV/XLSX)",
        type=["csv", "xlsx", "xls"],
        key="anchors_file",
        help="Two columns: day (1, 7, ... or D1, D7, ...) and retention (% or fraction).",
    )
    if uploaded is None or st.session_state.get("anchors_file_applied") == uploaded.name:
        return
    try:
        anchors = read_anchors(uploaded)
    except ValueError as e:
        st.sidebar.error(f"Could not read anchors: {e}")
        return
    logger.info(f"Anchors loaded from {uploaded.name}: {anchors.as_mapping()}")
    st.session_state["_pending_state_update"] = {f"ret_{k}": v for k, v in anchors.as_mapping().items()}
    st.session_state["anchors_file_applied"] = uploaded.name
    st.rerun()


def sidebar_inputs() -> ForecastInputs:
    st.sidebar.header("Inputs")

    with st.sidebar.expander("Acquisition", expanded=True):
        budget = number_input_state(
            "Monthly budget (UA, USD)", key="monthly_budget", default_value=DEFAULTS.monthly_budget, step=1000.0
        )
        cpi = number_input_state("CPI (USD)", key="cpi", default_value=DEFAULTS.cpi, step=0.01)
        mode = st.radio("Cohort budgets", BUDGET_MODES, index=0, key="budget_mode", horizontal=True)
        ramp = 0.0
        if mode == "Monthly ramp":
            ramp = number_input_state(
                "Budget growth per cohort", key="budget_ramp", default_value=0.05, step=0.01, format="%0.3f"
            )

    with st.sidebar.expander("Monetization", expanded=True):
        arpdau = number_input_state("ARPDAU (USD)", key="arpdau", default_value=DEFAULTS.arpdau, step=0.01)

    default_anchors = DEFAULTS.anchors.as_mapping()
    with st.sidebar.expander("Retention anchors (%)", expanded=True):
        anchors = {
            k: number_input_state(f"{k} retention (%)", key=f"ret_{k}", default_value=default_anchors[k], step=0.1)
            for k in ANCHOR_KEYS
        }

    inputs = inputs_from_mapping({"monthlyBudget": budget, "cpi": cpi, "arpdaus": arpdau, "anchors": anchors})
    if mode == "Monthly ramp":
        inputs = ForecastInputs(
            monthly_budget=inputs.monthly_budget,
            cpi=inputs.cpi,
            arpdau=inputs.arpdau,
            anchors=inputs.anchors,
            budget_schedule=CohortBudgetSchedule.ramp(inputs.monthly_budget, ramp),
        )
    return inputs


def render_dashboard(inputs: ForecastInputs, result) -> None:
    render_kpi_cards(
        [
            ("Installs / month", f"{round(result.installs_per_cohort):,}"),
            ("Gross LTV", format_currency(result.gross_ltv)),
            ("Net LTV (30% off)", format_currency(result.net_ltv)),
        ]
    )
    payback = result.summary["payback_month"]
    col1, col2, col3 = st.columns(3)
    col1.metric("Total UA spend", format_currency(result.summary["total_ua_spend"]))
    col2.metric("Ending cumulative margin", format_currency(result.summary["ending_cumulative_margin"]))
    col3.metric("Payback month (cumulative)", "—" if payback is None else str(payback))

    st.subheader(f"Retention curve (D0–D{HORIZON_DAYS})")
    st.altair_chart(retention_chart(result, inputs.anchors), use_container_width=True)
    with st.expander("Curve diagnostics", expanded=False):
        decay = day_to_day_decay(result.retention)
        st.caption("Day-over-day retention ratio (1.0 = no loss that day).")
        st.line_chart(pd.DataFrame({"day": range(1, len(decay) + 1), "ratio": decay}).set_index("day"))

    c1, c2 = st.columns(2)
    with c1:
        st.subheader("Revenue (net) — monthly")
        st.altair_chart(
            monthly_dual_chart(result, "revenue_net", "revenue_net_cumulative", "Net revenue"),
            use_container_width=True,
        )
    with c2:
        st.subheader("Margin after UA — monthly")
        st.altair_chart(
            monthly_dual_chart(result, "margin", "margin_cumulative", "Margin"),
            use_container_width=True,
        )

    c3, c4 = st.columns([2, 1])
    with c3:
        st.subheader("Cohort ROAS over time")
        st.altair_chart(roas_chart(result), use_container_width=True)
    with c4:
        st.subheader("ROAS checkpoints")
        st.dataframe(
            pd.DataFrame(
                {"Day": [f"D{d}" for d in result.roas], "ROAS (%)": [format_pct(v) for v in result.roas.values()]}
            ),
            hide_index=True,
            width="stretch",
        )

    with st.expander("Monthly details", expanded=False):
        st.dataframe(result.monthly, width="stretch")


def render_formulas() -> None:
    st.subheader("Formulas & Assumptions")
    anchor_list = ", ".join(ANCHOR_KEYS)
    checkpoints = "/".join(str(d) for d in ROAS_CHECKPOINTS)
    st.markdown(
        f"""
**Cohort & horizon**
- Horizon: {HORIZON_MONTHS} months, modelled as {DAYS_PER_MONTH}-day months ({HORIZON_DAYS} days total).
- A new install cohort starts each month with the UA budget (constant unless a ramp is selected).

**Installs**
- Installs per cohort = **Budget ÷ CPI** (0 when budget or CPI is not positive).

**Retention curve**
- Inputs: {anchor_list} (as % or decimal; values above 1 are read as %).
- Piecewise exponential (log-linear) between anchors; beyond D360 the last segment's daily decay continues.
- D0 = 100%; the curve is constrained to be non-increasing.

**Revenue**
- Daily gross revenue on cohort day *t* = **Installs × Retention(t) × ARPDAU**.
- Gross LTV = **Σ Retention(t) × ARPDAU**; net LTV and net revenue = **Gross × {NET_FACTOR}**.
- Calendar revenue sums every active cohort into the month each cohort day falls in.

**Margin after UA**
- Monthly margin = **Net revenue − UA spend** (spend lands in the cohort's launch month).

**ROAS**
- At D{checkpoints}: **cohort net revenue to date ÷ UA spend**.
        """
    )


def render_downloads(inputs: ForecastInputs, result) -> None:
    st.subheader("Download Data")
    st.caption("Export all inputs and outputs as one workbook, or single tables as CSV.")
    c1, c2 = st.columns(2)
    with c1:
        st.download_button(
            "Export XLSX",
            data=build_workbook(inputs, result),
            file_name="ua_forecast.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )
    with c2:
        st.download_button(
            "Download all tables (.zip)",
            data=collect_export_bundle(inputs, result),
            file_name="ua_forecast_tables.zip",
            mime="application/zip",
        )

    for name, df in export_tables(inputs, result).items():
        st.download_button(
            f"Download {name}.csv",
            data=table_to_csv(df),
            file_name=f"{name}.csv",
            mime="text/csv",
            key=f"csv_{name}",
        )


inject_brand_styles()
_apply_pending_state_updates()
render_brand_header()
anchors_upload()

inputs = sidebar_inputs()
result = forecast(inputs)
logger.info(
    f"Forecast evaluated: installs={result.installs_per_cohort:,.0f} net_ltv={result.net_ltv:.3f} "
    f"roas_d360={result.roas.get(360, 0.0):.3f}"
)

tab_dash, tab_formulas, tab_download = st.tabs(["Dashboard", "Formulas & Assumptions", "Download Data"])

with tab_dash:
    render_dashboard(inputs, result)

with tab_formulas:
    render_formulas()

with tab_download:
    render_downloads(inputs, result)
