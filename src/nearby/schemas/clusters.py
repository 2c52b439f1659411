"""Pydantic request/response models for clustering endpoints."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


class GeoPointModel(BaseModel):
    lat: float
    lng: float


class ClusterRequest(BaseModel):
    orders: Optional[Any] = Field(
        default=None,
        description="Raw orders: {data: [{orders: [...]}]}, {data: [...]} or a list. Fetched from the backend when omitted.",
    )
    business_id: Optional[str] = Field(default=None, description="Merchant business id used to fetch orders.")
    owner_type: Optional[str] = Field(default=None, description="Owner type (food/mart) forwarded to the backend.")
    radius_km: Optional[float] = Field(default=None, description="Clustering radius; defaults from settings.")
    merchant_location: Optional[str] = Field(
        default=None,
        description="Merchant locality excluded from labels (derived from business details when omitted).",
    )
    include_geojson: bool = Field(default=False, description="Attach a GeoJSON FeatureCollection to the response.")

    @field_validator("business_id", mode="before")
    @classmethod
    def _coerce_business_id(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None


class ClusterOrderModel(BaseModel):
    id: str
    order_code: str
    numeric_id: Optional[int] = None
    status: str
    status_norm: str
    address: str
    customer_name: Optional[str] = None
    coords: Optional[GeoPointModel] = None


class ClusterModel(BaseModel):
    id: str
    label: str
    count: int
    is_no_coords: bool
    centroid: Optional[GeoPointModel] = None
    ready_count: int
    orders: list[ClusterOrderModel]


class ClusterResponse(BaseModel):
    radius_km: float
    clusters: list[ClusterModel]
    metadata: dict
    geojson: Optional[dict] = None
