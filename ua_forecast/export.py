import io
import json
import zipfile
from datetime import datetime, timezone

import pandas as pd
from streamlit.logger import get_logger

from ua_forecast.types import ForecastInputs, ForecastResult

logger = get_logger(__name__)

APP_NAME = "UA Cohort Forecaster"
SCHEMA_VERSION = 1

# Excel caps sheet names at 31 characters
_MAX_SHEET_NAME = 31


def export_tables(inputs: ForecastInputs, result: ForecastResult) -> dict[str, pd.DataFrame]:
    """Row-per-day / row-per-month tables handed to spreadsheet export."""
    input_rows = [
        {"Metric": "Monthly Budget", "Value": inputs.monthly_budget},
        {"Metric": "CPI", "Value": inputs.cpi},
        {"Metric": "ARPDAU", "Value": inputs.arpdau},
    ]
    input_rows += [{"Metric": k, "Value": v} for k, v in inputs.anchors.as_mapping().items()]

    monthly = result.monthly
    return {
        "Inputs": pd.DataFrame(input_rows, columns=["Metric", "Value"]),
        "RetentionCurve": result.daily[["day", "retention"]].rename(columns={"day": "Day", "retention": "Retention"}),
        "MonthlyRevenueNet": monthly[["month", "revenue_net"]].rename(
            columns={"month": "Month", "revenue_net": "NetRevenue"}
        ),
        "MonthlyRevenueNetCumulative": monthly[["month", "revenue_net_cumulative"]].rename(
            columns={"month": "Month", "revenue_net_cumulative": "CumulativeNetRevenue"}
        ),
        "MonthlyMargin": monthly[["month", "margin"]].rename(columns={"month": "Month", "margin": "Margin"}),
        "MonthlyMarginCumulative": monthly[["month", "margin_cumulative"]].rename(
            columns={"month": "Month", "margin_cumulative": "CumulativeMargin"}
        ),
        "ROAS": result.roas_frame().rename(columns={"day": "Day", "roas": "ROAS"}),
    }


def build_workbook(inputs: ForecastInputs, result: ForecastResult) -> bytes:
    buf = io.BytesIO()
    tables = export_tables(inputs, result)
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        for name, df in tables.items():
            df.to_excel(writer, sheet_name=name[:_MAX_SHEET_NAME], index=False)
    logger.info(f"Workbook written with sheets: {list(tables)}")
    return buf.getvalue()


def table_to_csv(df: pd.DataFrame) -> bytes:
    return df.to_csv(index=False).encode("utf-8")


def collect_export_bundle(inputs: ForecastInputs, result: ForecastResult) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, mode="w", compression=zipfile.ZIP_DEFLATED) as zf:
        meta = {
            "schema_version": SCHEMA_VERSION,
            "app_name": APP_NAME,
            "exported_at": datetime.now(timezone.utc).isoformat(),
            "summary": result.summary,
        }
        zf.writestr("metadata.json", json.dumps(meta, indent=2))

        for name, df in export_tables(inputs, result).items():
            zf.writestr(f"{name}.csv", df.to_csv(index=False))

    buf.seek(0)
    return buf.getvalue()
