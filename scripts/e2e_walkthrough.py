"""
End-to-end walkthrough (visual).

Run with:
    streamlit run scripts/e2e_walkthrough.py

Tip: set breakpoints anywhere in ua_forecast/*
"""

import io
import os
import zipfile

import altair as alt
import numpy as np
import pandas as pd
import streamlit as st

from ua_forecast.analysis import inputs_from_mapping, read_anchors
from ua_forecast.constants import ANCHOR_DAYS, HORIZON_DAYS, HORIZON_MONTHS, NET_FACTOR
from ua_forecast.export import build_workbook, collect_export_bundle
from ua_forecast.model import forecast
from ua_forecast.retention import build_retention_curve, monotone_anchor_points
from ua_forecast.types import CohortBudgetSchedule, ForecastInputs

VISUALIZE = os.getenv("E2E_VISUALIZE", "1") != "0"

DEMO_RAW = {
    "monthlyBudget": "250000",
    "cpi": "4.0",
    "arpdaus": 0.25,
    "anchors": {"D1": 35, "D7": 12, "D14": 8, "D30": 5, "D90": 3, "D180": 2.2, "D360": 1.5},
}


def _anchors_csv() -> io.BytesIO:
    rows = "\n".join(f"D{d},{v}" for d, v in zip(ANCHOR_DAYS, DEMO_RAW["anchors"].values()))
    return io.BytesIO(f"day,retention\n{rows}\n".encode("utf-8"))


def _curve_chart(curve: np.ndarray, title: str) -> None:
    if not VISUALIZE:
        return
    df = pd.DataFrame({"day": np.arange(len(curve)), "retention": curve})
    chart = (
        alt.Chart(df)
        .mark_line()
        .encode(
            x=alt.X("day:Q", title="Cohort day"),
            y=alt.Y("retention:Q", scale=alt.Scale(type="symlog"), axis=alt.Axis(format="%")),
            tooltip=["day:Q", alt.Tooltip("retention:Q", format=".2%")],
        )
    )
    st.altair_chart(chart, use_container_width=True)
    st.caption(title)


def _assert(cond: bool, msg: str) -> None:
    if not cond:
        raise AssertionError(msg)


def main() -> None:
    st.set_page_config(page_title="E2E Walkthrough", layout="wide")
    st.title("UA Cohort Forecaster: End-to-End Walkthrough")

    # 1) Inputs from the dashboard shape (strings coerced)
    st.subheader("1) Coerce raw inputs")
    inputs = inputs_from_mapping(DEMO_RAW)
    st.write(inputs)

    # 2) Anchors from a file
    st.subheader("2) Read anchors from CSV")
    anchors = read_anchors(_anchors_csv())
    st.write(anchors.as_mapping())
    _assert(anchors == inputs.anchors, "File anchors should match form anchors")

    # 3) Retention curve
    st.subheader("3) Build retention curve")
    curve = build_retention_curve(inputs.anchors)
    _curve_chart(curve, f"Daily retention D0–D{HORIZON_DAYS} (symlog)")
    _assert(curve[0] == 1.0, "D0 must be 100%")
    _assert(bool(np.all(np.diff(curve) <= 0)), "Curve must be non-increasing")
    for day, frac in monotone_anchor_points(inputs.anchors):
        _assert(np.isclose(curve[day], frac), f"Curve misses anchor D{day}")

    # 4) Forecast
    st.subheader("4) Forecast")
    result = forecast(inputs, curve)
    st.write(result.summary)
    if VISUALIZE:
        st.dataframe(result.monthly.head(12))
        st.bar_chart(result.monthly.set_index("month")[["revenue_net", "margin"]])
    _assert(result.installs_per_cohort == 62_500.0, "Installs per cohort mismatch")
    _assert(np.allclose(result.cohort.daily_net, result.cohort.daily_gross * NET_FACTOR), "Net factor mismatch")
    _assert(0.0 < result.roas[7] < 1.0, "D7 ROAS should be a small positive fraction")

    # 5) Budget ramp scenario
    st.subheader("5) Budget ramp scenario")
    ramp = ForecastInputs(
        monthly_budget=inputs.monthly_budget,
        cpi=inputs.cpi,
        arpdau=inputs.arpdau,
        anchors=inputs.anchors,
        budget_schedule=CohortBudgetSchedule.ramp(inputs.monthly_budget, 0.05),
    )
    ramp_result = forecast(ramp, curve)
    st.write(ramp_result.summary)
    _assert(ramp_result.calendar.ua_spend[-1] > result.calendar.ua_spend[-1], "Ramp should raise late spend")

    # 6) Exports
    st.subheader("6) Exports")
    workbook = build_workbook(inputs, result)
    bundle = collect_export_bundle(inputs, result)
    with zipfile.ZipFile(io.BytesIO(bundle)) as zf:
        names = zf.namelist()
    st.write({"workbook_bytes": len(workbook), "bundle_files": names})
    if VISUALIZE:
        st.download_button("Download workbook", data=workbook, file_name="ua_forecast.xlsx")

    # Extra invariants
    m = result.monthly
    _assert(len(m) == HORIZON_MONTHS, "Monthly table length")
    _assert(m["revenue_net_cumulative"].is_monotonic_increasing, "Cumulative net revenue must be monotone")


if __name__ == "__main__":
    main()
