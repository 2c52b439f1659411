"""Domain models for orders, clusters and delivery batches."""

from dataclasses import dataclass, field
from typing import Any, List, Optional


@dataclass(frozen=True, slots=True)
class GeoPoint:
    """Latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float


@dataclass(slots=True)
class OrderRecord:
    """An order as seen by the clustering engine.

    Built once per fetch by the ingestion adapter; the engine only reads it and
    redistributes references into clusters.
    """

    id: str
    status: str
    coords: Optional[GeoPoint]
    address_text: str
    order_code: str
    numeric_id: Optional[int] = None
    keys: tuple[str, ...] = ()
    customer_name: Optional[str] = None
    raw: dict = field(default_factory=dict)


@dataclass(slots=True)
class Cluster:
    """A group of orders whose members all lie within the clustering radius."""

    id: str
    members: List[OrderRecord]
    centroid: Optional[GeoPoint]
    label: str = ""
    is_no_coords: bool = False

    @property
    def count(self) -> int:
        return len(self.members)

    def points(self) -> list[GeoPoint]:
        return [member.coords for member in self.members if member.coords is not None]


@dataclass(slots=True)
class BatchRequest:
    """Batch-creation request sent to the merchant backend."""

    business_id: Any
    order_codes: List[str]
    order_ids_numeric: List[int] = field(default_factory=list)
    owner_type: Optional[str] = None
    delivery_option: Optional[str] = None

    def to_payload(self) -> dict:
        payload: dict[str, Any] = {
            "merchant_id": self.business_id,
            "business_id": self.business_id,
            "order_codes": list(self.order_codes),
            "order_ids": list(self.order_codes),
        }
        if self.order_ids_numeric:
            payload["order_ids_numeric"] = list(self.order_ids_numeric)
        if self.owner_type:
            payload["owner_type"] = self.owner_type
        if self.delivery_option:
            payload["delivery_option"] = self.delivery_option
        return payload


@dataclass(slots=True)
class BatchResult:
    batch_id: Optional[str]
    order_ids: List[str]
    raw: Optional[dict] = None
