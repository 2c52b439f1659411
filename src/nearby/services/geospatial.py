"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Iterable, Sequence

from shapely.geometry import MultiPoint

from ..models.domain import GeoPoint

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_km(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points in kilometers."""

    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)


def centroid(points: Iterable[GeoPoint]) -> GeoPoint | None:
    """Arithmetic mean of the points; assumes a small, non-wrapping patch."""

    points = list(points)
    if not points:
        return None
    lat = sum(p.latitude for p in points) / len(points)
    lon = sum(p.longitude for p in points) / len(points)
    return GeoPoint(lat, lon)


def bounds(points: Iterable[GeoPoint]) -> tuple[float, float, float, float] | None:
    """Return (south, west, north, east) enclosing all points."""

    points = list(points)
    if not points:
        return None
    lats = [p.latitude for p in points]
    lons = [p.longitude for p in points]
    return (min(lats), min(lons), max(lats), max(lons))


def hull_coordinates(points: Sequence[GeoPoint]) -> list[tuple[float, float]] | None:
    """Closed convex hull ring as (lat, lon) pairs, or None when degenerate."""

    distinct = {(p.longitude, p.latitude) for p in points}
    if len(distinct) < 3:
        return None
    # Shapely works in (x, y) = (lon, lat)
    hull = MultiPoint(sorted(distinct)).convex_hull
    if hull.is_empty or hull.geom_type != "Polygon":
        return None
    return [(lat, lon) for lon, lat in hull.exterior.coords]
