"""Export services."""

from .geojson import clusters_to_geojson, generate_cluster_color

__all__ = ["clusters_to_geojson", "generate_cluster_color"]
