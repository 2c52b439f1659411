"""Batch creation and order status schemas."""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator


class BatchCreateRequest(BaseModel):
    business_id: str = Field(..., description="Merchant/business id the batch is created for.")
    orders: Any = Field(..., description="Member orders of the chosen cluster (raw payload or list).")
    selected_order_ids: Optional[List[str]] = Field(
        default=None,
        description="Subset of READY orders to dispatch; all READY orders when omitted.",
    )
    status_overrides: Optional[dict[str, str]] = Field(
        default=None,
        description="Latest statuses keyed by any order id alias (from polling or push).",
    )
    owner_type: Optional[str] = None
    delivery_option: Optional[str] = None

    @field_validator("business_id", mode="before")
    @classmethod
    def _coerce_business_id(cls, value: Any) -> str:
        text = "" if value is None else str(value).strip()
        if not text:
            raise ValueError("business_id is required")
        return text

    @field_validator("selected_order_ids", mode="before")
    @classmethod
    def _coerce_ids(cls, value: Any) -> Optional[List[str]]:
        if value is None:
            return None
        return [str(item) for item in value]


class BatchResponse(BaseModel):
    batch_id: Optional[str] = None
    order_ids: List[str]
    request: dict
    backend_response: Optional[Any] = None


class StatusTabModel(BaseModel):
    key: str
    label: str
    count: int


class StatusTabsRequest(BaseModel):
    orders: Any
    status_overrides: Optional[dict[str, str]] = None


class StatusTabsResponse(BaseModel):
    tabs: List[StatusTabModel]
    ready_count: int
    trackable_count: int


class VisibleOrdersRequest(BaseModel):
    orders: Any


class VisibleOrdersResponse(BaseModel):
    order_ids: List[str]
    hidden_count: int
