from __future__ import annotations

from typing import Callable, Optional, Sequence

import numpy as np
from streamlit.logger import get_logger

from ua_forecast.constants import DAYS_PER_MONTH, HORIZON_DAYS, HORIZON_MONTHS, NET_FACTOR, ROAS_CHECKPOINTS
from ua_forecast.retention import build_retention_curve
from ua_forecast.types import CalendarAggregate, CohortSeries, ForecastInputs, ForecastResult

logger = get_logger(__name__)


def _frozen(values: np.ndarray) -> np.ndarray:
    values.setflags(write=False)
    return values


def installs_for_budget(budget: float, cpi: float) -> float:
    if budget > 0 and cpi > 0:
        return budget / cpi
    return 0.0


def cohort_series(installs: float, curve: np.ndarray, arpdau: float) -> CohortSeries:
    daily_gross = installs * curve * arpdau
    daily_net = daily_gross * NET_FACTOR
    return CohortSeries(
        installs=float(installs),
        daily_gross=_frozen(daily_gross),
        daily_net=_frozen(daily_net),
        cumulative_net=_frozen(np.cumsum(daily_net)),
    )


def lifetime_values(cohort: CohortSeries) -> tuple[float, float]:
    """Gross and net revenue per install over the full horizon."""
    gross_ltv = float(cohort.daily_gross.sum()) / max(cohort.installs, 1.0)
    return gross_ltv, gross_ltv * NET_FACTOR


def roas_table(cohort: CohortSeries, spend: float, checkpoints: Sequence[int] = ROAS_CHECKPOINTS) -> dict[int, float]:
    last = len(cohort.cumulative_net) - 1
    roas: dict[int, float] = {}
    for day in checkpoints:
        # Checkpoints past the horizon read the final cumulative value
        roas[day] = float(cohort.cumulative_net[min(day, last)]) / spend if spend > 0 else 0.0
    return roas


def aggregate_calendar(
    cohort_spend: Sequence[float],
    cohort_gross: Callable[[int], np.ndarray],
    horizon_months: int = HORIZON_MONTHS,
    days_per_month: int = DAYS_PER_MONTH,
) -> CalendarAggregate:
    """Fold one cohort per calendar month into calendar-month totals.

    Cohort c launches at the start of month c and its spend lands in that
    month. Day t of its lifetime falls in calendar month (c * days_per_month + t)
    // days_per_month. Days that map past the horizon are never visited: a
    cohort launched in month c contributes at most (horizon_months - c) months
    of its lifetime.
    """
    ua_spend = np.zeros(horizon_months, dtype=float)
    revenue_gross = np.zeros(horizon_months, dtype=float)
    revenue_net = np.zeros(horizon_months, dtype=float)

    for c in range(horizon_months):
        ua_spend[c] += float(cohort_spend[c])
        daily_gross = cohort_gross(c)
        in_window = min(len(daily_gross), (horizon_months - c) * days_per_month)
        if in_window <= 0:
            continue
        gross = daily_gross[:in_window]
        months = (c * days_per_month + np.arange(in_window)) // days_per_month
        revenue_gross += np.bincount(months, weights=gross, minlength=horizon_months)
        revenue_net += np.bincount(months, weights=gross * NET_FACTOR, minlength=horizon_months)

    margin = revenue_net - ua_spend
    return CalendarAggregate(
        ua_spend=_frozen(ua_spend),
        revenue_gross=_frozen(revenue_gross),
        revenue_net=_frozen(revenue_net),
        margin=_frozen(margin),
        revenue_net_cumulative=_frozen(np.cumsum(revenue_net)),
        margin_cumulative=_frozen(np.cumsum(margin)),
    )


def forecast(inputs: ForecastInputs, curve: Optional[np.ndarray] = None) -> ForecastResult:
    """Project cohort revenue, LTV, ROAS and calendar-month totals.

    Model notes:
    - One cohort launches every month of the horizon. Each spends its budget
      (monthly_budget unless a budget_schedule is set) at the given CPI.
    - Daily gross revenue = installs x retention(t) x ARPDAU; net keeps
      NET_FACTOR of gross.
    - A curve_schedule gives each cohort its own retention anchors; cohorts
      it does not cover follow inputs.anchors.
    - LTV, ROAS and the per-day series describe a cohort spending
      monthly_budget on inputs.anchors.
    - Degenerate inputs (zero or negative budget, CPI or ARPDAU) give zeroed
      figures, never an exception.
    """
    if curve is None:
        curve = build_retention_curve(inputs.anchors)

    installs = installs_for_budget(inputs.monthly_budget, inputs.cpi)
    cohort = cohort_series(installs, curve, inputs.arpdau)
    gross_ltv, net_ltv = lifetime_values(cohort)
    roas = roas_table(cohort, inputs.monthly_budget)

    if inputs.budget_schedule is None and inputs.curve_schedule is None:
        spend = [float(inputs.monthly_budget)] * HORIZON_MONTHS

        def gross_for(_c: int) -> np.ndarray:
            return cohort.daily_gross

    else:
        spend = [inputs.budget_for_cohort(c) for c in range(HORIZON_MONTHS)]
        # Cohorts sharing anchors share one curve
        curves = {inputs.anchors: curve}

        def gross_for(c: int) -> np.ndarray:
            anchors = inputs.anchors_for_cohort(c)
            if anchors not in curves:
                curves[anchors] = build_retention_curve(anchors)
            return installs_for_budget(spend[c], inputs.cpi) * curves[anchors] * inputs.arpdau

    calendar = aggregate_calendar(spend, gross_for)

    logger.debug(
        "forecast: installs=%.1f gross_ltv=%.4f net_ltv=%.4f horizon_days=%d",
        installs,
        gross_ltv,
        net_ltv,
        HORIZON_DAYS,
    )
    return ForecastResult(
        inputs=inputs,
        retention=curve,
        cohort=cohort,
        gross_ltv=gross_ltv,
        net_ltv=net_ltv,
        roas=roas,
        calendar=calendar,
    )
