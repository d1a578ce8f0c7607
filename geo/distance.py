import math
from typing import Optional

EARTH_RADIUS_KM = 6371


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle (haversine) distance in km, rounded to one decimal."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(EARTH_RADIUS_KM * c, 1)


def distance_between(first: Optional[dict], second: Optional[dict]) -> Optional[float]:
    """Distance between two address documents, or None if either lacks coordinates."""
    if not first or not second:
        return None
    coords = (first.get("latitude"), first.get("longitude"), second.get("latitude"), second.get("longitude"))
    if any(value is None for value in coords):
        return None
    return calculate_distance(*coords)
