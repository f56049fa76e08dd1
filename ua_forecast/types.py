from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Mapping, Optional

import numpy as np
import pandas as pd

from ua_forecast.constants import ANCHOR_DAYS, ANCHOR_KEYS, ROAS_CHECKPOINTS


@dataclass(frozen=True)
class RetentionAnchors:
    """Observed retention at fixed cohort ages, as percent (35) or fraction (0.35)."""

    d1: float = 35.0
    d7: float = 12.0
    d14: float = 8.0
    d30: float = 5.0
    d90: float = 3.0
    d180: float = 2.2
    d360: float = 1.5

    def points(self) -> list[tuple[int, float]]:
        values = (self.d1, self.d7, self.d14, self.d30, self.d90, self.d180, self.d360)
        return sorted(zip(ANCHOR_DAYS, (float(v) for v in values)))

    def as_mapping(self) -> dict[str, float]:
        return {key: value for key, (_day, value) in zip(ANCHOR_KEYS, self.points())}

    @staticmethod
    def from_mapping(values: Mapping[str, float]) -> "RetentionAnchors":
        # Missing keys count as zero retention
        args = [float(values.get(key, 0.0)) for key in ANCHOR_KEYS]
        return RetentionAnchors(*args)


@dataclass(frozen=True)
class CohortBudgetSchedule:
    """Defines the UA budget of each monthly cohort as a function of cohort index (starting at 0)."""

    get_budget_for_cohort: Callable[[int], float]

    @staticmethod
    def constant(monthly_budget: float) -> "CohortBudgetSchedule":
        return CohortBudgetSchedule(lambda _c: float(monthly_budget))

    @staticmethod
    def ramp(start_budget: float, monthly_growth: float) -> "CohortBudgetSchedule":
        def _budget(cohort_index: int) -> float:
            # Compounded monthly: cohort 0 spends start_budget
            return float(start_budget) * (1.0 + float(monthly_growth)) ** cohort_index

        return CohortBudgetSchedule(_budget)


@dataclass(frozen=True)
class CohortCurveSchedule:
    """Defines the retention anchors of each monthly cohort as a function of cohort index (starting at 0)."""

    get_anchors_for_cohort: Callable[[int], RetentionAnchors]

    @staticmethod
    def constant(anchors: RetentionAnchors) -> "CohortCurveSchedule":
        return CohortCurveSchedule(lambda _c: anchors)

    @staticmethod
    def by_cohort(overrides: Mapping[int, RetentionAnchors], default: RetentionAnchors) -> "CohortCurveSchedule":
        """Cohorts listed in `overrides` use their own anchors; the rest use `default`."""
        table = dict(overrides)
        return CohortCurveSchedule(lambda c: table.get(c, default))


@dataclass(frozen=True)
class ForecastInputs:
    # Acquisition
    monthly_budget: float = 250_000.0
    cpi: float = 4.0

    # Monetization
    arpdau: float = 0.25

    # Retention
    anchors: RetentionAnchors = field(default_factory=RetentionAnchors)

    # Optional: per-cohort budgets. None means every cohort spends monthly_budget.
    budget_schedule: Optional[CohortBudgetSchedule] = None

    # Optional: per-cohort retention. None means every cohort follows anchors.
    curve_schedule: Optional[CohortCurveSchedule] = None

    def budget_for_cohort(self, cohort_index: int) -> float:
        if self.budget_schedule is None:
            return float(self.monthly_budget)
        return float(self.budget_schedule.get_budget_for_cohort(cohort_index))

    def anchors_for_cohort(self, cohort_index: int) -> RetentionAnchors:
        if self.curve_schedule is None:
            return self.anchors
        return self.curve_schedule.get_anchors_for_cohort(cohort_index)


@dataclass(frozen=True)
class CohortSeries:
    """Per-day revenue of one cohort, indexed by cohort age in days."""

    installs: float
    daily_gross: np.ndarray
    daily_net: np.ndarray
    cumulative_net: np.ndarray

    def to_frame(self, retention: np.ndarray) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "day": np.arange(len(self.daily_gross)),
                "retention": retention,
                "gross_revenue": self.daily_gross,
                "net_revenue": self.daily_net,
                "cumulative_net_revenue": self.cumulative_net,
            }
        )


@dataclass(frozen=True)
class CalendarAggregate:
    """Per-calendar-month totals across all cohorts (month index 0 = launch month of cohort 0)."""

    ua_spend: np.ndarray
    revenue_gross: np.ndarray
    revenue_net: np.ndarray
    margin: np.ndarray
    revenue_net_cumulative: np.ndarray
    margin_cumulative: np.ndarray

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "month": np.arange(1, len(self.ua_spend) + 1),
                "ua_spend": self.ua_spend,
                "revenue_gross": self.revenue_gross,
                "revenue_net": self.revenue_net,
                "margin": self.margin,
                "revenue_net_cumulative": self.revenue_net_cumulative,
                "margin_cumulative": self.margin_cumulative,
            }
        )


@dataclass(frozen=True)
class ForecastResult:
    inputs: ForecastInputs
    retention: np.ndarray
    cohort: CohortSeries
    gross_ltv: float
    net_ltv: float
    roas: dict[int, float]
    calendar: CalendarAggregate

    @property
    def installs_per_cohort(self) -> float:
        return self.cohort.installs

    @property
    def daily(self) -> pd.DataFrame:
        return self.cohort.to_frame(self.retention)

    @property
    def monthly(self) -> pd.DataFrame:
        return self.calendar.to_frame()

    def roas_frame(self) -> pd.DataFrame:
        return pd.DataFrame({"day": list(self.roas), "roas": list(self.roas.values())})

    @property
    def summary(self) -> dict[str, Optional[float | int]]:
        cum_margin = self.calendar.margin_cumulative
        positive = np.flatnonzero(cum_margin > 0)
        # First month (1-based) in which cumulative margin turns positive
        payback_month = int(positive[0] + 1) if positive.size else None
        return {
            "installs_per_cohort": float(self.installs_per_cohort),
            "gross_ltv": float(self.gross_ltv),
            "net_ltv": float(self.net_ltv),
            "roas_d7": float(self.roas.get(ROAS_CHECKPOINTS[0], 0.0)),
            "roas_d360": float(self.roas.get(360, 0.0)),
            "roas_d1080": float(self.roas.get(ROAS_CHECKPOINTS[-1], 0.0)),
            "total_ua_spend": float(self.calendar.ua_spend.sum()),
            "total_net_revenue": float(self.calendar.revenue_net.sum()),
            "ending_cumulative_margin": float(cum_margin[-1]) if cum_margin.size else 0.0,
            "payback_month": payback_month,
        }
