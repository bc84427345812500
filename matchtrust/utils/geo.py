"""Great-circle distance between WGS84 coordinates."""

import math

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Distance in kilometers between two (latitude, longitude) points in degrees.

    Uses the haversine formula on a sphere of radius 6371 km. Inputs outside
    [-90, 90] / [-180, 180] are the caller's responsibility.

    Example:
        >>> round(haversine_km(28.6139, 77.2090, 28.6140, 77.2100), 3)
        0.098
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    # Rounding can push `a` a hair past 1.0 for antipodal points
    a = min(1.0, a)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def bounding_box(lat: float, lon: float, radius_km: float) -> tuple[float, float, float, float]:
    """Latitude/longitude box that contains every point within ``radius_km``.

    Used as an index-friendly prefilter before the exact haversine check.
    Near the poles, or when the radius wraps the antimeridian, longitude is
    left unbounded.

    Returns:
        Tuple of (min_lat, max_lat, min_lon, max_lon)
    """
    lat_delta = math.degrees(radius_km / EARTH_RADIUS_KM)
    min_lat = max(-90.0, lat - lat_delta)
    max_lat = min(90.0, lat + lat_delta)

    cos_lat = math.cos(math.radians(lat))
    if cos_lat < 1e-9 or min_lat <= -90.0 or max_lat >= 90.0:
        return min_lat, max_lat, -180.0, 180.0

    lon_delta = math.degrees(radius_km / (EARTH_RADIUS_KM * cos_lat))
    if lon_delta >= 180.0 or lon - lon_delta < -180.0 or lon + lon_delta > 180.0:
        return min_lat, max_lat, -180.0, 180.0

    return min_lat, max_lat, lon - lon_delta, lon + lon_delta


def is_valid_coordinate(lat: float, lon: float) -> bool:
    """True when both values are finite and inside WGS84 ranges."""
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0
