"""
A simple plotting tool for checking a retention curve against its anchors.
"""

from typing import Optional

import matplotlib.pyplot as plt
import matplotlib.ticker as mticker
import numpy as np

from ua_forecast.retention import monotone_anchor_points
from ua_forecast.types import RetentionAnchors


def plot_retention_curve(
    curve: np.ndarray,
    anchors: Optional[RetentionAnchors] = None,
    title: Optional[str] = None,
    log_scale: bool = False,
    show: bool = True,
):
    """Draw the daily retention curve and, optionally, the anchors it passes through.

    This creates a standard pop-up window via matplotlib when run in a local
    Python session (e.g., from a script or REPL).

    Parameters
    ----------
    curve : np.ndarray
        Daily retention fractions, index = cohort day.
    anchors : Optional[RetentionAnchors]
        Anchors to overlay. They are drawn after normalization and the
        monotone clamp, i.e. the values the curve actually interpolates.
    title : Optional[str]
        Chart title. Defaults to a summary with D1 and the final day.
    log_scale : bool
        If True, use a log y-axis, where each anchor segment is a straight line.
    show : bool
        If True, call ``plt.show()`` before returning.

    Returns
    -------
    matplotlib.axes.Axes
        The Axes object for further customization.
    """
    days = np.arange(len(curve))
    if title is None:
        title = f"Retention curve (D1: {curve[1]:.1%}, D{len(curve) - 1}: {curve[-1]:.2%})"

    fig, ax = plt.subplots(figsize=(10, 5))
    ax.plot(days, curve, linewidth=1.8, label="Daily retention", color="#D4AF37")

    if anchors is not None:
        pts = monotone_anchor_points(anchors)
        ax.scatter([d for d, _ in pts], [v for _, v in pts], color="#1f77b4", zorder=3, label="Anchors")

    if log_scale:
        ax.set_yscale("log")
    else:
        ax.yaxis.set_major_formatter(mticker.PercentFormatter(xmax=1.0))

    ax.set_title(title)
    ax.set_ylabel("Retention")
    ax.set_xlabel("Cohort day")
    ax.grid(True, linestyle=":", alpha=0.5)
    ax.legend()
    plt.tight_layout()
    if show:
        plt.show()
    return ax
