import numpy as np
import pytest

from ua_forecast.constants import DAYS_PER_MONTH, HORIZON_DAYS, HORIZON_MONTHS, NET_FACTOR, ROAS_CHECKPOINTS
from ua_forecast.model import (
    aggregate_calendar,
    cohort_series,
    forecast,
    installs_for_budget,
    lifetime_values,
    roas_table,
)
from ua_forecast.retention import build_retention_curve
from ua_forecast.types import CohortBudgetSchedule, CohortCurveSchedule, ForecastInputs, RetentionAnchors


def _reference_calendar_net(daily_net: np.ndarray) -> np.ndarray:
    """Straight day-by-day accumulation with an early exit once a cohort leaves the horizon."""
    monthly = np.zeros(HORIZON_MONTHS)
    for cohort in range(HORIZON_MONTHS):
        for t in range(HORIZON_DAYS + 1):
            m = (cohort * DAYS_PER_MONTH + t) // DAYS_PER_MONTH
            if m >= HORIZON_MONTHS:
                break
            monthly[m] += daily_net[t]
    return monthly


def test_forecast_demo_scenario():
    result = forecast(ForecastInputs())
    assert result.installs_per_cohort == 62_500.0
    assert result.retention[0] == 1.0
    assert result.retention[1] == 0.35
    assert 0.0 < result.roas[7] < 0.5
    assert result.roas[7] < result.roas[30] < result.roas[360] < result.roas[1080]
    assert set(result.roas) == set(ROAS_CHECKPOINTS)
    assert result.net_ltv == pytest.approx(result.gross_ltv * NET_FACTOR)
    assert len(result.daily) == HORIZON_DAYS + 1
    assert len(result.monthly) == HORIZON_MONTHS


@pytest.mark.parametrize(
    "budget, cpi, expected",
    [
        (250_000.0, 4.0, 62_500.0),
        (0.0, 4.0, 0.0),
        (-100.0, 4.0, 0.0),
        (1_000.0, 0.0, 0.0),
        (1_000.0, -2.0, 0.0),
    ],
)
def test_installs_for_budget(budget, cpi, expected):
    assert installs_for_budget(budget, cpi) == expected


@pytest.mark.parametrize("budget, cpi", [(0.0, 4.0), (250_000.0, 0.0), (-5.0, 4.0), (250_000.0, -1.0)])
def test_zero_cost_basis_degenerates_to_zero(budget, cpi):
    result = forecast(ForecastInputs(monthly_budget=budget, cpi=cpi))
    assert result.installs_per_cohort == 0.0
    assert np.all(result.cohort.daily_gross == 0.0)
    assert np.all(result.cohort.daily_net == 0.0)
    assert result.gross_ltv == 0.0
    assert result.net_ltv == 0.0
    assert all(np.isfinite(v) for v in result.roas.values())


def test_zero_budget_roas_is_zero():
    result = forecast(ForecastInputs(monthly_budget=0.0))
    assert all(v == 0.0 for v in result.roas.values())


def test_net_is_exact_share_of_gross():
    cohort = forecast(ForecastInputs()).cohort
    np.testing.assert_array_equal(cohort.daily_net, cohort.daily_gross * NET_FACTOR)


def test_lifetime_values_per_install():
    curve = build_retention_curve(RetentionAnchors())
    cohort = cohort_series(1_000.0, curve, 0.5)
    gross_ltv, net_ltv = lifetime_values(cohort)
    assert gross_ltv == pytest.approx(curve.sum() * 0.5)
    assert net_ltv == pytest.approx(curve.sum() * 0.5 * NET_FACTOR)


def test_roas_checkpoint_past_horizon_clamps_to_last_value():
    curve = build_retention_curve(RetentionAnchors())
    cohort = cohort_series(100.0, curve, 1.0)
    roas = roas_table(cohort, spend=400.0, checkpoints=(7, HORIZON_DAYS, 5_000))
    assert roas[7] == pytest.approx(cohort.cumulative_net[7] / 400.0)
    assert roas[HORIZON_DAYS] == pytest.approx(cohort.cumulative_net[-1] / 400.0)
    assert roas[5_000] == roas[HORIZON_DAYS]


def test_calendar_matches_day_by_day_accumulation():
    result = forecast(ForecastInputs())
    reference = _reference_calendar_net(result.cohort.daily_net)
    np.testing.assert_allclose(result.calendar.revenue_net, reference, rtol=1e-10)
    np.testing.assert_allclose(result.calendar.revenue_gross, reference / NET_FACTOR, rtol=1e-10)


def test_calendar_month_is_cohort_revenue_to_date():
    # With identical cohorts, month m collects days 0..30(m+1)-1 of one cohort's lifetime
    result = forecast(ForecastInputs())
    cum = result.cohort.cumulative_net
    for m in (0, 1, 12, HORIZON_MONTHS - 1):
        assert result.calendar.revenue_net[m] == pytest.approx(cum[DAYS_PER_MONTH * (m + 1) - 1], rel=1e-10)


def test_calendar_conservation():
    result = forecast(ForecastInputs())
    daily_net = result.cohort.daily_net
    in_window = sum(daily_net[: (HORIZON_MONTHS - c) * DAYS_PER_MONTH].sum() for c in range(HORIZON_MONTHS))
    assert result.calendar.revenue_net.sum() == pytest.approx(in_window, rel=1e-10)


def test_calendar_spend_margin_and_cumulative():
    inputs = ForecastInputs()
    cal = forecast(inputs).calendar
    np.testing.assert_array_equal(cal.ua_spend, np.full(HORIZON_MONTHS, inputs.monthly_budget))
    np.testing.assert_allclose(cal.margin, cal.revenue_net - cal.ua_spend)
    np.testing.assert_allclose(cal.revenue_net_cumulative, np.cumsum(cal.revenue_net))
    np.testing.assert_allclose(cal.margin_cumulative, np.cumsum(cal.margin))


def test_aggregate_calendar_ignores_days_past_horizon():
    daily = np.ones(HORIZON_DAYS + 1)
    cal = aggregate_calendar([0.0] * HORIZON_MONTHS, lambda _c: daily)
    # Every month holds a full 30 days from each cohort launched so far
    expected = DAYS_PER_MONTH * NET_FACTOR * np.arange(1, HORIZON_MONTHS + 1)
    np.testing.assert_allclose(cal.revenue_net, expected)


def test_aggregate_calendar_short_horizon():
    daily = np.arange(10, dtype=float)
    cal = aggregate_calendar([5.0, 5.0], lambda _c: daily, horizon_months=2, days_per_month=3)
    # cohort 0: days 0-2 -> m0, 3-5 -> m1; cohort 1: days 0-2 -> m1
    np.testing.assert_allclose(cal.revenue_gross, [0 + 1 + 2, (3 + 4 + 5) + (0 + 1 + 2)])
    np.testing.assert_allclose(cal.margin, cal.revenue_net - 5.0)


def test_constant_schedule_matches_uniform_cohorts():
    base = forecast(ForecastInputs())
    scheduled = forecast(ForecastInputs(budget_schedule=CohortBudgetSchedule.constant(250_000.0)))
    np.testing.assert_allclose(scheduled.calendar.revenue_net, base.calendar.revenue_net)
    np.testing.assert_allclose(scheduled.calendar.ua_spend, base.calendar.ua_spend)


def test_budget_ramp_scales_each_cohort():
    inputs = ForecastInputs(budget_schedule=CohortBudgetSchedule.ramp(100_000.0, 0.10))
    result = forecast(inputs)
    np.testing.assert_allclose(result.calendar.ua_spend, 100_000.0 * 1.1 ** np.arange(HORIZON_MONTHS))
    # Month 0 only holds cohort 0, which spends 100k at CPI 4
    curve = result.retention
    expected_m0 = 25_000.0 * curve[:DAYS_PER_MONTH].sum() * inputs.arpdau * NET_FACTOR
    assert result.calendar.revenue_net[0] == pytest.approx(expected_m0)
    # Reference cohort still uses monthly_budget
    assert result.installs_per_cohort == 62_500.0


def test_constant_curve_schedule_matches_uniform_cohorts():
    base = forecast(ForecastInputs())
    scheduled = forecast(ForecastInputs(curve_schedule=CohortCurveSchedule.constant(RetentionAnchors())))
    np.testing.assert_allclose(scheduled.calendar.revenue_net, base.calendar.revenue_net)
    np.testing.assert_allclose(scheduled.calendar.margin, base.calendar.margin)


def test_curve_schedule_overrides_one_cohort():
    better = RetentionAnchors(d1=50, d7=30, d14=20, d30=15, d90=10, d180=8, d360=6)
    inputs = ForecastInputs(curve_schedule=CohortCurveSchedule.by_cohort({0: better}, default=RetentionAnchors()))
    base = forecast(ForecastInputs())
    result = forecast(inputs)

    # Month 0 only holds cohort 0, which now follows the better curve
    curve0 = build_retention_curve(better)
    expected_m0 = 62_500.0 * curve0[:DAYS_PER_MONTH].sum() * inputs.arpdau * NET_FACTOR
    assert result.calendar.revenue_net[0] == pytest.approx(expected_m0)
    assert result.calendar.revenue_net[0] > base.calendar.revenue_net[0]
    np.testing.assert_array_equal(result.calendar.ua_spend, base.calendar.ua_spend)

    # Reference cohort, LTV and ROAS stay on inputs.anchors
    np.testing.assert_array_equal(result.retention, base.retention)
    assert result.net_ltv == pytest.approx(base.net_ltv)
    assert result.roas == pytest.approx(base.roas)


def test_forecast_is_idempotent():
    inputs = ForecastInputs()
    a = forecast(inputs)
    b = forecast(inputs)
    np.testing.assert_array_equal(a.retention, b.retention)
    np.testing.assert_array_equal(a.cohort.daily_gross, b.cohort.daily_gross)
    np.testing.assert_array_equal(a.calendar.revenue_net, b.calendar.revenue_net)
    assert a.roas == b.roas
    assert a.summary == b.summary


def test_outputs_are_read_only():
    result = forecast(ForecastInputs())
    with pytest.raises(ValueError):
        result.cohort.daily_gross[0] = 1.0
    with pytest.raises(ValueError):
        result.calendar.revenue_net[0] = 1.0


def test_summary_payback():
    result = forecast(ForecastInputs(arpdau=0.0))
    assert result.summary["payback_month"] is None
    assert result.summary["ending_cumulative_margin"] == pytest.approx(-250_000.0 * HORIZON_MONTHS)

    rich = forecast(ForecastInputs(arpdau=5.0)).summary
    assert isinstance(rich["payback_month"], int)
    assert rich["payback_month"] >= 1


# end
