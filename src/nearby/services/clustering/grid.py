"""Grid pre-bucketing of order coordinates.

Cells are roughly `radius_km` on a side so the cluster builder only compares
orders that share a cell. Two orders within the radius but on opposite sides of
a cell edge land in different buckets and are never merged; that approximation
is part of the observable clustering behaviour.
"""

from __future__ import annotations

import math
from typing import Iterable

from ...models.domain import GeoPoint, OrderRecord

KM_PER_DEGREE = 111.0
_MIN_COS = 1e-6

BucketKey = tuple[int, int]


def bucket_key(point: GeoPoint, radius_km: float) -> BucketKey:
    if radius_km <= 0:
        raise ValueError("radius_km must be > 0 for grid bucketing")
    lat_step = radius_km / KM_PER_DEGREE
    cos_lat = max(abs(math.cos(math.radians(point.latitude))), _MIN_COS)
    lon_step = radius_km / (KM_PER_DEGREE * cos_lat)
    return (math.floor(point.latitude / lat_step), math.floor(point.longitude / lon_step))


def build_buckets(records: Iterable[OrderRecord], radius_km: float) -> dict[BucketKey, list[OrderRecord]]:
    """Group coordinate-bearing records by cell, keeping first-seen and input order."""
    buckets: dict[BucketKey, list[OrderRecord]] = {}
    for record in records:
        if record.coords is None:
            continue
        buckets.setdefault(bucket_key(record.coords, radius_km), []).append(record)
    return buckets
