"""Fixed configuration of the forecasting engine.

The horizon is modelled as 36 thirty-day months so that every cohort maps onto
calendar months the same way.
"""

HORIZON_MONTHS = 36
DAYS_PER_MONTH = 30
HORIZON_DAYS = HORIZON_MONTHS * DAYS_PER_MONTH  # 1080

# Share of gross revenue kept after the 30% platform/store fee
NET_FACTOR = 0.7

ROAS_CHECKPOINTS = (7, 30, 90, 180, 360, 720, 1080)

ANCHOR_DAYS = (1, 7, 14, 30, 90, 180, 360)
ANCHOR_KEYS = tuple(f"D{d}" for d in ANCHOR_DAYS)

# Anchor values above this are read as percentages (35 -> 0.35). A value of
# exactly 1.0 is read as a fraction, i.e. 100%.
PERCENT_THRESHOLD = 1.0

# Floor for the base of retention ratios so that a zero anchor never divides
# by zero; a zero anchor makes the curve decay from this floor toward 0.
RETENTION_EPSILON = 1e-9
