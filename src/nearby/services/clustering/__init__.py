"""Geo-proximity order clustering."""

from .builder import build_clusters
from .labels import apply_unique_labels, label_for
from .service import cluster_orders

__all__ = ["build_clusters", "apply_unique_labels", "label_for", "cluster_orders"]
