from math import radians, sin, cos, atan2, sqrt
from typing import Any, Dict, Optional

EARTH_RADIUS_KM = 6371.0


def calculate_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle (haversine) distance between two points, in km."""
    dlat = radians(lat2 - lat1)
    dlng = radians(lng2 - lng1)
    a = sin(dlat / 2) ** 2 + cos(radians(lat1)) * cos(radians(lat2)) * sin(dlng / 2) ** 2
    return EARTH_RADIUS_KM * 2 * atan2(sqrt(a), sqrt(1 - a))


def valid_location(loc: Optional[dict]) -> bool:
    if not loc:
        return False
    try:
        lat = float(loc.get("lat"))
        lng = float(loc.get("lng"))
    except (TypeError, ValueError):
        return False
    # (0, 0) is what half-filled forms send; treat it as "no location"
    return not (lat == 0.0 and lng == 0.0)


def with_geo(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Mirror ``location`` into a GeoJSON ``geo`` point for the 2dsphere index."""
    loc = doc.get("location")
    if valid_location(loc):
        lat, lng = float(loc["lat"]), float(loc["lng"])
        doc["location"] = {"lat": lat, "lng": lng}
        doc["geo"] = {"type": "Point", "coordinates": [lng, lat]}
    else:
        doc["location"] = None
        doc["geo"] = None
    return doc


def radius_in_radians(radius_km: float) -> float:
    return radius_km / EARTH_RADIUS_KM
