from __future__ import annotations

import math
import re
from contextlib import suppress
from typing import Any, Mapping, Optional

import altair as alt
import numpy as np
import pandas as pd

from ua_forecast.constants import ANCHOR_DAYS, ANCHOR_KEYS
from ua_forecast.types import ForecastInputs, ForecastResult, RetentionAnchors


_LEADING_NUMBER = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def to_number(value: Any) -> float:
    """Coerce form input to a finite float; anything unparseable becomes 0.

    Strings are read up to the end of their leading number, so "250000 USD"
    gives 250000 and "4.0x" gives 4.0.
    """
    if isinstance(value, str):
        m = _LEADING_NUMBER.match(value.strip())
        value = m.group(0) if m else None
    try:
        n = float(value)
    except (TypeError, ValueError):
        return 0.0
    return n if math.isfinite(n) else 0.0


def inputs_from_mapping(raw: Mapping[str, Any]) -> ForecastInputs:
    """Build `ForecastInputs` from the dashboard's input shape.

    Accepts ``{"monthlyBudget", "cpi", "arpdaus", "anchors": {"D1", ..., "D360"}}``
    as well as the snake_case names used by `ForecastInputs`. Every number is
    passed through `to_number`, so missing or malformed values become 0.
    """

    def _pick(*keys: str) -> Any:
        for k in keys:
            if k in raw:
                return raw[k]
        return None

    raw_anchors = _pick("anchors") or {}
    if isinstance(raw_anchors, RetentionAnchors):
        anchors = raw_anchors
    else:
        anchors = RetentionAnchors.from_mapping({k: to_number(raw_anchors.get(k)) for k in ANCHOR_KEYS})

    return ForecastInputs(
        monthly_budget=to_number(_pick("monthlyBudget", "monthly_budget")),
        cpi=to_number(_pick("cpi")),
        arpdau=to_number(_pick("arpdaus", "arpdau")),
        anchors=anchors,
    )


def read_anchors(file_like, day_col: str = "day", retention_col: str = "retention") -> RetentionAnchors:
    """Parse a CSV/XLSX of observed retention into `RetentionAnchors`.

    Day labels may be integers (7) or keys ("D7"). Rows for days other than
    the anchor days are ignored; anchor days with no row are read as 0.
    """
    with suppress(Exception):
        file_like.seek(0)

    if getattr(file_like, "name", "").lower().endswith((".xlsx", ".xls")):
        df = pd.read_excel(file_like)
    else:
        df = pd.read_csv(file_like)

    df.columns = [str(c).strip().lower() for c in df.columns]
    day_col, retention_col = day_col.lower(), retention_col.lower()
    if not {day_col, retention_col}.issubset(df.columns):
        raise ValueError(f"Retention file needs '{day_col}' and '{retention_col}' columns")

    days = pd.to_numeric(df[day_col].astype(str).str.strip().str.upper().str.lstrip("D"), errors="coerce")
    values = pd.to_numeric(df[retention_col], errors="coerce")
    s = pd.Series(values.to_numpy(), index=days.to_numpy()).dropna()
    s = s[~s.index.isna()]
    # Fractional day labels (7.9) are not anchor days
    day_values = s.index.to_numpy(dtype=float)
    s = s[day_values == np.floor(day_values)]
    s.index = s.index.astype(int)
    s = s[~s.index.duplicated(keep="last")]

    return RetentionAnchors.from_mapping({f"D{d}": to_number(s.get(d, 0.0)) for d in ANCHOR_DAYS})


def retention_chart(result: ForecastResult, anchors: Optional[RetentionAnchors] = None) -> alt.Chart:
    df = result.daily[["day", "retention"]]
    base = alt.Chart(df).encode(x=alt.X("day:Q", title="Cohort day"))
    line = base.mark_line(color="#D4AF37", strokeWidth=2).encode(
        y=alt.Y("retention:Q", title="Retention", axis=alt.Axis(format="%")),
        tooltip=[alt.Tooltip("day:Q", title="Day"), alt.Tooltip("retention:Q", title="Retention", format=".2%")],
    )
    layers = [line]
    if anchors is not None:
        pts = pd.DataFrame(
            {"day": [d for d, _ in anchors.points()], "retention": [float(result.retention[d]) for d in ANCHOR_DAYS]}
        )
        layers.append(
            alt.Chart(pts)
            .mark_point(color="#888888", filled=True, size=50)
            .encode(x="day:Q", y="retention:Q", tooltip=["day:Q", alt.Tooltip("retention:Q", format=".2%")])
        )
    return alt.layer(*layers).properties(height=300)


def monthly_dual_chart(result: ForecastResult, column: str, cumulative_column: str, title: str) -> alt.Chart:
    """Grouped monthly bars of one calendar series next to its running total."""
    df = result.monthly[["month", column, cumulative_column]]
    folded = alt.Chart(df).transform_fold([column, cumulative_column], as_=["Series", "Value"])
    return (
        folded.mark_bar()
        .encode(
            x=alt.X("month:O", title="Month"),
            xOffset="Series:N",
            y=alt.Y("Value:Q", title=title, axis=alt.Axis(format="$,.0f")),
            color=alt.Color(
                "Series:N",
                scale=alt.Scale(domain=[column, cumulative_column], range=["#D4AF37", "#888888"]),
                title=None,
            ),
            tooltip=[
                alt.Tooltip("month:O", title="Month"),
                alt.Tooltip("Series:N"),
                alt.Tooltip("Value:Q", format="$,.0f"),
            ],
        )
        .properties(height=300)
    )


def roas_chart(result: ForecastResult) -> alt.Chart:
    return (
        alt.Chart(result.roas_frame())
        .mark_line(point=True, color="#D4AF37", strokeWidth=2.5)
        .encode(
            x=alt.X("day:Q", title="Cohort day"),
            y=alt.Y("roas:Q", title="ROAS", axis=alt.Axis(format="%")),
            tooltip=[alt.Tooltip("day:Q", title="Day"), alt.Tooltip("roas:Q", title="ROAS", format=".1%")],
        )
        .properties(height=300)
    )
