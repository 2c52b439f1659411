"""Complete-linkage cluster construction."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Sequence

from ...models.domain import Cluster, OrderRecord
from ..geospatial import centroid, distance_km
from .grid import build_buckets

logger = logging.getLogger(__name__)

NO_COORDS_CLUSTER_ID = "no-coords"


def _fits(record: OrderRecord, members: Sequence[OrderRecord], radius_km: float) -> bool:
    return all(distance_km(record.coords, member.coords) <= radius_km for member in members)


def link_bucket(records: Sequence[OrderRecord], radius_km: float) -> list[list[OrderRecord]]:
    """Assign each record to the first group whose every member is within the radius.

    This is not nearest-group assignment: groups are tried in creation order and
    a record that fits none of them seeds a new group.
    """
    groups: list[list[OrderRecord]] = []
    for record in records:
        for group in groups:
            if _fits(record, group, radius_km):
                group.append(record)
                break
        else:
            groups.append([record])
    return groups


def build_clusters(
    records: Sequence[OrderRecord],
    radius_km: float,
    *,
    max_workers: int = 1,
) -> list[Cluster]:
    """Partition records into radius-bounded clusters plus one no-coords cluster.

    Labels are left empty; see `labels.apply_unique_labels`.
    """
    located = [record for record in records if record.coords is not None]
    missing = [record for record in records if record.coords is None]

    if radius_km > 0:
        buckets = list(build_buckets(located, radius_km).values())
        if max_workers > 1 and len(buckets) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                grouped = list(executor.map(lambda bucket: link_bucket(bucket, radius_km), buckets))
        else:
            grouped = [link_bucket(bucket, radius_km) for bucket in buckets]
        groups = [group for bucket_groups in grouped for group in bucket_groups]
    else:
        groups = [[record] for record in located]

    clusters = [
        Cluster(
            id=f"cluster-{index}",
            members=group,
            centroid=centroid(member.coords for member in group),
        )
        for index, group in enumerate(groups, start=1)
    ]
    if missing:
        clusters.append(Cluster(id=NO_COORDS_CLUSTER_ID, members=missing, centroid=None, is_no_coords=True))

    logger.debug(
        "Built %d clusters from %d located and %d unlocated orders (radius %.3f km)",
        len(clusters),
        len(located),
        len(missing),
        radius_km,
    )
    return clusters
