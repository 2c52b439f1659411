"""Turn a chosen cluster's READY orders into a delivery batch request."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence

from ...models.domain import BatchRequest, BatchResult, OrderRecord
from ...schemas.batches import BatchCreateRequest, BatchResponse
from ..backend.client import MerchantBackendClient
from ..orders.ingest import find_order, ingest_orders
from ..orders.status import READY, latest_status

logger = logging.getLogger(__name__)


def ready_orders(
    members: Sequence[OrderRecord],
    overrides: Optional[Mapping[str, Any]] = None,
) -> list[OrderRecord]:
    return [order for order in members if latest_status(order, overrides) == READY]


def select_orders(
    orders: Sequence[OrderRecord],
    selected_ids: Optional[Sequence[Any]] = None,
) -> list[OrderRecord]:
    """Keep orders matching any selected id; no selection means all of them."""
    if not selected_ids:
        return list(orders)
    picked = {found.id for found in (find_order(orders, wanted) for wanted in selected_ids) if found is not None}
    return [order for order in orders if order.id in picked]


def _numeric_or_raw(value: Any) -> Any:
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        return text


def build_batch_request(
    orders: Sequence[OrderRecord],
    business_id: Any,
    *,
    owner_type: Optional[str] = None,
    delivery_option: Optional[str] = None,
) -> BatchRequest:
    if business_id is None or not str(business_id).strip():
        raise ValueError("Business ID / merchant ID is missing.")

    codes = [order.order_code.strip() for order in orders if order.order_code and order.order_code.strip()]
    if not codes:
        raise ValueError("There are no READY orders to group yet.")

    return BatchRequest(
        business_id=_numeric_or_raw(business_id),
        order_codes=codes,
        order_ids_numeric=[order.numeric_id for order in orders if order.numeric_id is not None],
        owner_type=owner_type or None,
        delivery_option=delivery_option.upper() if delivery_option else None,
    )


def _first(source: Any, *paths: tuple[str, ...]) -> Any:
    for path in paths:
        value = source
        for key in path:
            value = value.get(key) if isinstance(value, Mapping) else None
        if value is not None:
            return value
    return None


def parse_batch_response(body: Any, fallback_ids: Sequence[str]) -> BatchResult:
    """The backend's batch id and order ids are authoritative; codes sent are the fallback."""
    batch_id = _first(body, ("batch_id",), ("data", "batch_id"), ("batchId",), ("data", "batchId"))
    order_ids = _first(
        body,
        ("order_ids",),
        ("data", "order_ids"),
        ("orderIds",),
        ("data", "orderIds"),
        ("orders",),
        ("data", "orders"),
    )
    ids = [str(item) for item in order_ids if item is not None and str(item)] if isinstance(order_ids, list) else []
    return BatchResult(
        batch_id=str(batch_id) if batch_id is not None else None,
        order_ids=ids or list(fallback_ids),
        raw=body if isinstance(body, dict) else None,
    )


def create_batch(
    payload: BatchCreateRequest,
    *,
    client: Optional[MerchantBackendClient] = None,
) -> BatchResponse:
    members = ingest_orders(payload.orders)
    ready = ready_orders(members, payload.status_overrides)
    if not ready:
        raise ValueError("There are no orders in READY status in this cluster yet.")

    chosen = select_orders(ready, payload.selected_order_ids)
    if not chosen:
        raise ValueError("None of the selected orders are READY.")

    request = build_batch_request(
        chosen,
        payload.business_id,
        owner_type=payload.owner_type,
        delivery_option=payload.delivery_option,
    )
    request_body = request.to_payload()

    client = client or MerchantBackendClient()
    logger.info(f"Creating batch for business {payload.business_id} with {len(request.order_codes)} orders")
    body = client.create_batch(request_body)
    result = parse_batch_response(body, request.order_codes)

    return BatchResponse(
        batch_id=result.batch_id,
        order_ids=result.order_ids,
        request=request_body,
        backend_response=body,
    )
