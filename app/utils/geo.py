"""Distances from headquarters to schools"""

import math
from typing import Any, Optional, Tuple

from app.config import settings
from app.utils.money import round_half_up

EARTH_RADIUS_KM = 6371.0


def hq_coordinates() -> Tuple[float, float]:
    return settings.HQ_LATITUDE, settings.HQ_LONGITUDE


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> int:
    """Great-circle distance in whole km (half-up)"""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return round_half_up(EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a)))


def distance_km_for_school(school: Any, origin: Optional[Tuple[float, float]] = None) -> Optional[float]:
    """
    Travel distance for a school: the preset ``distance_km`` when stored,
    else the straight-line distance from ``origin`` (headquarters by
    default) to the school's coordinates. None when neither is known, so
    callers can fall back to the default transport band.
    """
    preset = getattr(school, "distance_km", None)
    if preset is not None:
        return preset
    latitude = getattr(school, "latitude", None)
    longitude = getattr(school, "longitude", None)
    if latitude is None or longitude is None:
        return None
    lat, lon = origin or hq_coordinates()
    return float(haversine_km(lat, lon, latitude, longitude))
