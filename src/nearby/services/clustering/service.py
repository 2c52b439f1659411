"""High-level orchestration for nearby-order clustering."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, Optional, Sequence

import httpx

from ...config import settings
from ...models.domain import Cluster, OrderRecord
from ...schemas.clusters import (
    ClusterModel,
    ClusterOrderModel,
    ClusterRequest,
    ClusterResponse,
    GeoPointModel,
)
from ..backend.client import MerchantBackendClient, OrderFeed
from ..export.geojson import clusters_to_geojson
from ..orders.ingest import ingest_orders
from ..orders.status import is_batchable, is_cluster_eligible, normalize_status
from .builder import build_clusters
from .labels import apply_unique_labels, derive_location_key

logger = logging.getLogger(__name__)

_feeds: dict[tuple[str, str], OrderFeed] = {}
_feeds_lock = threading.Lock()


def cluster_orders(
    orders: Sequence[OrderRecord],
    radius_km: float,
    *,
    eligible: Callable[[OrderRecord], bool] = is_cluster_eligible,
    ban_words: Iterable[str] = (),
    max_workers: int = 1,
) -> list[Cluster]:
    """Cluster eligible orders; result is labelled and sorted by size, largest first."""
    candidates = [order for order in orders if eligible(order)]
    if not candidates:
        return []
    clusters = build_clusters(candidates, radius_km, max_workers=max_workers)
    return apply_unique_labels(clusters, ban_words)


def order_feed(business_id: str, owner_type: str) -> OrderFeed:
    """Shared feed per merchant and owner type so overlapping fetches resolve newest-first."""
    with _feeds_lock:
        return _feeds.setdefault((business_id, owner_type), OrderFeed())


def _resolve_radius(radius_km: Optional[float]) -> float:
    if radius_km is None or radius_km <= 0:
        return settings.default_radius_km
    return float(radius_km)


def _resolve_ban_words(
    payload: ClusterRequest,
    client: Optional[MerchantBackendClient],
) -> tuple[str, ...]:
    ban_words = list(settings.label_ban_words)
    location = (payload.merchant_location or "").strip().lower() or None

    if location is None and payload.business_id and client is not None:
        try:
            business = client.fetch_business(payload.business_id)
        except (ConnectionError, ValueError, RuntimeError, httpx.HTTPError) as exc:
            logger.warning(f"Business details unavailable for {payload.business_id}: {exc}")
            business = None
        if business:
            address = business.get("address") or business.get("business_address") or business.get("location")
            location = derive_location_key(address if isinstance(address, str) else None)

    if location:
        ban_words.append(location)
    return tuple(ban_words)


def _order_model(order: OrderRecord) -> ClusterOrderModel:
    return ClusterOrderModel(
        id=order.id,
        order_code=order.order_code,
        numeric_id=order.numeric_id,
        status=order.status,
        status_norm=normalize_status(order.status),
        address=order.address_text,
        customer_name=order.customer_name,
        coords=GeoPointModel(lat=order.coords.latitude, lng=order.coords.longitude) if order.coords else None,
    )


def cluster_to_model(cluster: Cluster) -> ClusterModel:
    return ClusterModel(
        id=cluster.id,
        label=cluster.label,
        count=cluster.count,
        is_no_coords=cluster.is_no_coords,
        centroid=(
            GeoPointModel(lat=cluster.centroid.latitude, lng=cluster.centroid.longitude)
            if cluster.centroid
            else None
        ),
        ready_count=sum(1 for member in cluster.members if is_batchable(member)),
        orders=[_order_model(member) for member in cluster.members],
    )


def process_cluster_request(
    payload: ClusterRequest,
    *,
    client: Optional[MerchantBackendClient] = None,
) -> ClusterResponse:
    radius_km = _resolve_radius(payload.radius_km)

    if payload.orders is None:
        if not payload.business_id:
            raise ValueError("Either orders or business_id must be provided.")
        client = client or MerchantBackendClient()
        owner_type = payload.owner_type or settings.default_owner_type
        feed = order_feed(payload.business_id, owner_type)
        raw_orders = feed.refresh(lambda: client.fetch_orders(payload.business_id, owner_type))
    else:
        raw_orders = payload.orders

    records = ingest_orders(raw_orders)
    eligible_count = sum(1 for record in records if is_cluster_eligible(record))

    if client is None and payload.business_id and not payload.merchant_location and settings.business_details_endpoint:
        client = MerchantBackendClient()
    ban_words = _resolve_ban_words(payload, client)

    clusters = cluster_orders(records, radius_km, ban_words=ban_words, max_workers=settings.cluster_workers)
    no_coords = next((cluster for cluster in clusters if cluster.is_no_coords), None)

    logger.info(
        f"Clustered {eligible_count}/{len(records)} eligible orders into {len(clusters)} clusters "
        f"(radius {radius_km} km)"
    )

    return ClusterResponse(
        radius_km=radius_km,
        clusters=[cluster_to_model(cluster) for cluster in clusters],
        metadata={
            "radius_km": radius_km,
            "order_count": len(records),
            "eligible_count": eligible_count,
            "cluster_count": len(clusters),
            "no_coords_count": no_coords.count if no_coords else 0,
        },
        geojson=clusters_to_geojson(clusters) if payload.include_geojson else None,
    )
