"""Geospatial utilities used for distance calculations."""

from __future__ import annotations

from math import atan2, cos, isfinite, radians, sin, sqrt
from numbers import Real

from blusocial.utils.errors import InvalidInputError

EARTH_RADIUS_KM = 6371.0


def validate_coordinates(lat: float, lng: float) -> None:
    """Raise InvalidInputError unless (lat, lng) is a usable coordinate.

    Latitude must lie in [-90, 90] and longitude in [-180, 180]. Booleans,
    strings, NaN and infinities are rejected.
    """

    for label, value in (("lat", lat), ("lng", lng)):
        if isinstance(value, bool) or not isinstance(value, Real):
            raise InvalidInputError(
                f"{label} must be a number, got {type(value).__name__}"
            )
        if not isfinite(value):
            raise InvalidInputError(f"{label} must be finite, got {value}")

    if not -90.0 <= lat <= 90.0:
        raise InvalidInputError(f"lat out of range [-90, 90]: {lat}")
    if not -180.0 <= lng <= 180.0:
        raise InvalidInputError(f"lng out of range [-180, 180]: {lng}")


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Calculate great-circle distance between two lat/lng points in kilometers.

    Args:
        lat1: Latitude of the first point.
        lng1: Longitude of the first point.
        lat2: Latitude of the second point.
        lng2: Longitude of the second point.

    Returns:
        Distance in kilometers on a spherical Earth (mean radius 6371 km).

    Raises:
        InvalidInputError: If either coordinate is non-numeric or out of range.

    Notes:
        The haversine term is clamped to [0, 1] before the inverse trig step,
        so rounding near the poles or antipodes never yields NaN.
    """

    validate_coordinates(lat1, lng1)
    validate_coordinates(lat2, lng2)

    lat1_rad = radians(lat1)
    lng1_rad = radians(lng1)
    lat2_rad = radians(lat2)
    lng2_rad = radians(lng2)

    delta_lat = lat2_rad - lat1_rad
    delta_lng = lng2_rad - lng1_rad

    a = sin(delta_lat / 2) ** 2 + cos(lat1_rad) * cos(lat2_rad) * sin(
        delta_lng / 2
    ) ** 2
    a = min(1.0, max(0.0, a))
    c = 2 * atan2(sqrt(a), sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def haversine_meters(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Calculate distance between two lat/lng points in meters."""

    return haversine_km(lat1, lng1, lat2, lng2) * 1000.0
