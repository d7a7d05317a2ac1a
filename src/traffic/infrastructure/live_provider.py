"""
Live traffic readings from the TomTom Traffic Flow API (flowSegmentData).
"""
import logging
import time
from typing import Optional

import requests

from ..domain import Feature, Snapshot, SOURCE_EXTERNAL, utc_now
from ...common.exceptions import UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.tomtom.com/traffic/services/4/flowSegmentData/relative0/10/json"

# One representative (lat, lng) per city keeps us to a single request per call
CITY_COORDS = {
    "Bangalore": (12.9716, 77.5946),
    "Mumbai": (19.0760, 72.8777),
    "Delhi": (28.6139, 77.2090),
}

def infer_congestion(relative_speed: Optional[float], current_speed: Optional[float]) -> float:
    """
    Congestion in [0, 1] from relative speed (% of free flow) or, failing that,
    from current speed bands.
    """
    if relative_speed is not None:
        c = max(0.0, min(1.0, (100 - relative_speed) / 100))
        if current_speed is not None and current_speed < 20:
            return min(1.0, c + 0.15)
        return c
    if current_speed is not None:
        if current_speed >= 70:
            return 0.05
        if current_speed >= 50:
            return 0.2
        if current_speed >= 30:
            return 0.45
        if current_speed >= 15:
            return 0.7
        return 0.9
    return 0.5

def approximate_density(current_speed: Optional[float]) -> float:
    # The API does not report density; inverse of speed on a fixed scale
    if current_speed is None:
        return 20.0
    return round(80 / max(5.0, current_speed), 2)

def build_segment_id(city: str, frc, speed: Optional[float]) -> str:
    frc_part = str(frc) if frc is not None else "NA"
    speed_part = str(int(round(speed))) if speed is not None else "NA"
    return f"tt_{city}_{frc_part}_{speed_part}"

def _number(value) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if number == number and abs(number) != float("inf") else None

class TomTomLiveDataProvider:
    """
    Fetches one flow segment per city and normalizes it into a Snapshot.
    Every failure (missing key, timeout, HTTP error, malformed body) surfaces as UpstreamError.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = 5.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def fetch(self, city: str) -> Snapshot:
        if not self.api_key:
            raise UpstreamError("TOMTOM_API_KEY not configured", code="CONFIG_MISSING")
        coords = CITY_COORDS.get(city)
        if coords is None:
            raise UpstreamError(f"Unsupported city {city}", code="UNSUPPORTED_CITY")

        started = time.time()
        lat, lng = coords
        try:
            response = self.session.get(
                self.base_url,
                params={"point": f"{lat},{lng}", "unit": "KMPH", "key": self.api_key},
                headers={"accept": "application/json"},
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            logger.error(f"TomTom fetch failed for {city} after {time.time() - started:.2f}s: {e}")
            raise UpstreamError(f"TomTom fetch failed: {e}", code="UPSTREAM_FETCH_FAILED") from e

        if not response.ok:
            # Body may echo the request; never log the key
            logger.warning(f"TomTom non-OK response {response.status_code} {response.reason}: {response.text[:300]}")
            raise UpstreamError(f"TomTom API error: {response.status_code} {response.reason}")

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError("Malformed upstream response", code="UPSTREAM_MALFORMED") from e

        try:
            snapshot = self._to_snapshot(city, data, coords)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise UpstreamError("Malformed upstream response", code="UPSTREAM_MALFORMED") from e
        logger.info(f"TomTom snapshot fetched for {city} in {time.time() - started:.2f}s")
        return snapshot

    def _to_snapshot(self, city: str, data, coords) -> Snapshot:
        seg = data.get("flowSegmentData") if isinstance(data, dict) else None
        if not seg or not isinstance(seg, dict):
            raise UpstreamError("Malformed upstream response", code="UPSTREAM_MALFORMED")

        shape = seg.get("coordinates")
        if shape is not None and not isinstance(shape, dict):
            raise UpstreamError("Malformed upstream response", code="UPSTREAM_MALFORMED")
        points = (shape or {}).get("coordinate") or []
        if not isinstance(points, list):
            raise UpstreamError("Malformed upstream response", code="UPSTREAM_MALFORMED")
        first = points[0] if points else {"latitude": coords[0], "longitude": coords[1]}
        last = points[-1] if points else first
        line = (
            (float(first["longitude"]), float(first["latitude"])),
            (float(last["longitude"]), float(last["latitude"])),
        )

        current_speed = _number(seg.get("currentSpeed"))
        free_flow = _number(seg.get("freeFlowSpeed"))
        relative = None
        if current_speed is not None and free_flow is not None and free_flow > 0:
            relative = current_speed / free_flow * 100

        feature = Feature(
            id=build_segment_id(city, seg.get("frc"), current_speed),
            coordinates=line,
            speed_kph=round(current_speed, 2) if current_speed is not None else None,
            density_vpkm=approximate_density(current_speed),
            congestion=round(infer_congestion(relative, current_speed), 3),
        )
        return Snapshot(
            city=city,
            timestamp=utc_now(),
            features=(feature,),
            source=SOURCE_EXTERNAL,
        )
