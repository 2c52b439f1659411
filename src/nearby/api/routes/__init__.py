"""Route group exports."""

from . import batches, clusters, health, orders

__all__ = ["clusters", "batches", "orders", "health"]
