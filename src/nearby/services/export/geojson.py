"""GeoJSON export of clustering results for map display."""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

from ...models.domain import Cluster
from ..geospatial import bounds, hull_coordinates
from ..orders.status import normalize_status


def generate_cluster_color(index: int) -> str:
    """Generate distinct colors for clusters."""
    colors = [
        "#02d8e0", "#e0003e", "#38e000", "#0000c1", "#e0e005",
        "#611cc7", "#e0af00", "#13aae0", "#a4d819", "#00e0bb",
        "#e000a2", "#e000e0", "#09e0e0", "#e0002f", "#22e000",
        "#15dde0", "#e00017", "#08e000", "#3100e0", "#e0bb0b",
    ]
    return colors[index % len(colors)]


def _cluster_geometry(cluster: Cluster) -> Dict[str, Any] | None:
    ring = hull_coordinates(cluster.points())
    if ring:
        # GeoJSON positions are [lon, lat]
        return {"type": "Polygon", "coordinates": [[[lon, lat] for lat, lon in ring]]}
    if cluster.centroid is not None:
        return {"type": "Point", "coordinates": [cluster.centroid.longitude, cluster.centroid.latitude]}
    return None


def clusters_to_geojson(clusters: Sequence[Cluster]) -> Dict[str, Any]:
    """Convert clusters to a FeatureCollection: one area feature per cluster plus its order markers.

    The no-coords cluster has nothing to draw and is skipped.
    """
    features: List[Dict[str, Any]] = []

    for idx, cluster in enumerate(clusters):
        geometry = _cluster_geometry(cluster)
        if geometry is None:
            continue
        color = generate_cluster_color(idx)
        box = bounds(cluster.points())
        features.append(
            {
                "type": "Feature",
                "geometry": geometry,
                "properties": {
                    "kind": "cluster",
                    "cluster_id": cluster.id,
                    "label": cluster.label,
                    "count": cluster.count,
                    "color": color,
                    "bounds": list(box) if box else None,
                },
            }
        )
        for member in cluster.members:
            if member.coords is None:
                continue
            features.append(
                {
                    "type": "Feature",
                    "geometry": {
                        "type": "Point",
                        "coordinates": [member.coords.longitude, member.coords.latitude],
                    },
                    "properties": {
                        "kind": "order",
                        "cluster_id": cluster.id,
                        "label": cluster.label,
                        "order_id": member.id,
                        "status": normalize_status(member.status),
                        "color": color,
                    },
                }
            )

    return {"type": "FeatureCollection", "features": features}
