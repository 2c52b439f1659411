"""Order status endpoints backing the order list and cluster detail views."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...schemas.batches import (
    StatusTabModel,
    StatusTabsRequest,
    StatusTabsResponse,
    VisibleOrdersRequest,
    VisibleOrdersResponse,
)
from ...services.orders.ingest import ingest_orders
from ...services.orders.status import READY, TRACKABLE, is_list_visible, latest_status, status_tabs

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("/status-tabs", response_model=StatusTabsResponse, status_code=status.HTTP_200_OK)
def get_status_tabs(payload: StatusTabsRequest) -> StatusTabsResponse:
    """Per-status counts for a cluster's orders, applying live status overrides."""
    records = ingest_orders(payload.orders)
    statuses = [latest_status(record, payload.status_overrides) for record in records]
    return StatusTabsResponse(
        tabs=[StatusTabModel(**tab) for tab in status_tabs(records, payload.status_overrides)],
        ready_count=sum(1 for value in statuses if value == READY),
        trackable_count=sum(1 for value in statuses if value in TRACKABLE),
    )


@router.post("/visible", response_model=VisibleOrdersResponse, status_code=status.HTTP_200_OK)
def get_visible_orders(payload: VisibleOrdersRequest) -> VisibleOrdersResponse:
    """Orders shown on the order list: everything but declined/rejected ones."""
    records = ingest_orders(payload.orders)
    visible = [record.id for record in records if is_list_visible(record)]
    return VisibleOrdersResponse(order_ids=visible, hidden_count=len(records) - len(visible))
