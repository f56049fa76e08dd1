from __future__ import annotations

import math

import numpy as np

from ua_forecast.constants import HORIZON_DAYS, PERCENT_THRESHOLD, RETENTION_EPSILON
from ua_forecast.types import RetentionAnchors


def normalize_anchor_value(value: float) -> float:
    """Read values above 1 as percentages and bound the result to [0, 1]."""
    value = float(value)
    if not math.isfinite(value):
        return 0.0
    if value > PERCENT_THRESHOLD:
        value /= 100.0
    return min(max(value, 0.0), 1.0)


def monotone_anchor_points(anchors: RetentionAnchors) -> list[tuple[int, float]]:
    """Normalized anchors sorted by day, each clamped to at most the previous one."""
    points: list[tuple[int, float]] = []
    for day, value in anchors.points():
        frac = normalize_anchor_value(value)
        if points:
            frac = min(frac, points[-1][1])
        points.append((day, frac))
    return points


def build_retention_curve(anchors: RetentionAnchors, horizon_days: int = HORIZON_DAYS) -> np.ndarray:
    """Build the daily retention curve for days 0..horizon_days.

    Model notes:
    - Day 0 is 100% retained.
    - Between consecutive anchors (a, ya) and (b, yb) retention is interpolated
      geometrically, ya * (yb / ya) ** ((t - a) / (b - a)), i.e. a straight line
      in log-retention space.
    - Past the last anchor the curve keeps decaying at the daily rate of the
      last anchor segment.
    - A final pass forces the curve to be non-increasing and non-negative.

    The returned array is read-only.
    """
    points = monotone_anchor_points(anchors)
    curve = np.zeros(horizon_days + 1, dtype=float)
    curve[0] = 1.0

    for (a, ya), (b, yb) in zip(points[:-1], points[1:]):
        if a > horizon_days:
            break
        t = np.arange(a, min(b, horizon_days) + 1)
        ratio = (t - a) / (b - a)
        curve[t] = np.clip(ya * (yb / max(ya, RETENTION_EPSILON)) ** ratio, 0.0, 1.0)

    (last_a, ya), (last_b, yb) = points[-2], points[-1]
    daily_decay = ((yb or RETENTION_EPSILON) / max(ya, RETENTION_EPSILON)) ** (1.0 / (last_b - last_a))
    for t in range(last_b + 1, horizon_days + 1):
        curve[t] = curve[t - 1] * daily_decay

    # Non-increasing & >= 0
    for t in range(1, horizon_days + 1):
        curve[t] = max(0.0, min(curve[t], curve[t - 1]))

    curve.setflags(write=False)
    return curve


def day_to_day_decay(curve: np.ndarray) -> np.ndarray:
    """Ratio curve[t] / curve[t-1] for t >= 1 (0 where the previous day is already 0)."""
    prev = curve[:-1]
    ratios = np.zeros_like(prev)
    np.divide(curve[1:], prev, out=ratios, where=prev > 0)
    return ratios
