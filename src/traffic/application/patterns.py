"""
Time-of-day traffic intensity.
"""
import math
from datetime import datetime

MORNING_PEAK_MINUTE = 9 * 60
EVENING_PEAK_MINUTE = 18 * 60
PEAK_WIDTH_MINUTES = 120
BASE_FLOW = 0.2

def gaussian(x: float, center: float, width: float) -> float:
    diff = x - center
    return math.exp(-(diff * diff) / (2 * width * width))

def intensity(minute_of_day: float) -> float:
    """Morning and evening peaks over a 0.2 floor, capped at 1."""
    return min(
        1.0,
        gaussian(minute_of_day, MORNING_PEAK_MINUTE, PEAK_WIDTH_MINUTES)
        + gaussian(minute_of_day, EVENING_PEAK_MINUTE, PEAK_WIDTH_MINUTES)
        + BASE_FLOW,
    )

def minute_of_day(ts: datetime) -> int:
    """Minutes since local midnight."""
    local = ts.astimezone() if ts.tzinfo is not None else ts
    return local.hour * 60 + local.minute
