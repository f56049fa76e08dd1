from ua_forecast.model import forecast
from ua_forecast.retention import build_retention_curve
from ua_forecast.types import CohortBudgetSchedule, CohortCurveSchedule, ForecastInputs, ForecastResult, RetentionAnchors

__all__ = [
    "CohortBudgetSchedule",
    "CohortCurveSchedule",
    "ForecastInputs",
    "ForecastResult",
    "RetentionAnchors",
    "build_retention_curve",
    "forecast",
]
