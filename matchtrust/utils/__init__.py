"""Utility functions for geodesic distance, time handling, and text tokenizing."""

from .geo import EARTH_RADIUS_KM, bounding_box, haversine_km, is_valid_coordinate
from .text import normalize_text, tokenize
from .timestamps import ensure_utc, format_timestamp, parse_timestamp, utc_now

__all__ = [
    # Geo
    "EARTH_RADIUS_KM",
    "haversine_km",
    "bounding_box",
    "is_valid_coordinate",
    # Text
    "normalize_text",
    "tokenize",
    # Timestamps
    "utc_now",
    "ensure_utc",
    "format_timestamp",
    "parse_timestamp",
]
