"""
Parsing and validation of raw request parameters.
"""
import math
from datetime import datetime, timezone
from typing import Optional

from ..domain import validate_city
from ...common.exceptions import ValidationError

MIN_HORIZON_MINUTES = 1
MAX_HORIZON_MINUTES = 120
DEFAULT_HORIZON_MINUTES = 15

def parse_city(raw: Optional[str]) -> str:
    return validate_city(raw)

def parse_timestamp(raw: Optional[str], field: str) -> Optional[datetime]:
    """ISO-8601 string to an aware UTC datetime; naive input is taken as UTC."""
    if raw is None or str(raw).strip() == "":
        return None
    text = str(raw).strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    try:
        ts = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"Invalid {field} timestamp", field=field)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)

def parse_horizon(raw) -> int:
    """Horizon in whole minutes within [1, 120]; missing means 15."""
    if raw is None or str(raw).strip() == "":
        return DEFAULT_HORIZON_MINUTES
    try:
        value = float(raw)
    except (TypeError, ValueError):
        value = math.nan
    if not math.isfinite(value) or value < MIN_HORIZON_MINUTES or value > MAX_HORIZON_MINUTES:
        raise ValidationError(
            f"horizonMinutes must be {MIN_HORIZON_MINUTES}..{MAX_HORIZON_MINUTES}",
            field="horizonMinutes",
        )
    return int(math.floor(value))
