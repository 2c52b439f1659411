"""Ingestion adapter turning raw backend order payloads into OrderRecords.

The merchant backend has shipped many field-name variants over time for ids,
coordinates, statuses and addresses. All of that tolerance lives here so the
clustering types stay strict.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Callable, Iterable, Mapping, Optional

from ...models.domain import GeoPoint, OrderRecord

logger = logging.getLogger(__name__)

_ABSENT_STRINGS = {"", "null", "undefined", "none", "nan"}
_ORDER_PREFIX = re.compile(r"^(ORD|FOOD)[-_]?", re.IGNORECASE)
_DIGITS = re.compile(r"[0-9]+")


def _get(source: Any, *path: str) -> Any:
    value = source
    for key in path:
        if not isinstance(value, Mapping):
            return None
        value = value.get(key)
    return value


def _to_float(value: Any) -> Optional[float]:
    """Parse a finite float, treating null-ish markers as absent rather than zero."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if text.lower() in _ABSENT_STRINGS:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _clean(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value).strip()


# Priority order matters: the first pair that parses and is in range wins.
COORDINATE_CANDIDATES: tuple[tuple[tuple[str, ...], tuple[str, ...]], ...] = (
    (("coords", "lat"), ("coords", "lng")),
    (("deliver_to", "lat"), ("deliver_to", "lng")),
    (("deliver_to", "latitude"), ("deliver_to", "longitude")),
    (("delivery_address", "lat"), ("delivery_address", "lng")),
    (("delivery_lat",), ("delivery_lng",)),
    (("delivery_latitude",), ("delivery_longitude",)),
    (("deliveryLatitude",), ("deliveryLongitude",)),
    (("lat",), ("lng",)),
    (("latitude",), ("longitude",)),
    (("lat",), ("long",)),
    (("destination", "lat"), ("destination", "lng")),
    (("geo", "lat"), ("geo", "lng")),
    (("delivery_address", "latitude"), ("delivery_address", "longitude")),
    (("delivery_address", "Latitude"), ("delivery_address", "Longitude")),
    (("delivery_address", "coords", "lat"), ("delivery_address", "coords", "lng")),
)


def extract_coords(order: Mapping[str, Any]) -> Optional[GeoPoint]:
    """Return the first valid coordinate pair found on the order, if any."""
    if not isinstance(order, Mapping):
        return None
    for lat_path, lng_path in COORDINATE_CANDIDATES:
        lat = _to_float(_get(order, *lat_path))
        lng = _to_float(_get(order, *lng_path))
        if lat is None or lng is None:
            continue
        if abs(lat) <= 90 and abs(lng) <= 180:
            return GeoPoint(lat, lng)
    return None


def _address_from_field(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, Mapping):
        for key in ("address", "formatted", "label"):
            text = value.get(key)
            if isinstance(text, str) and text.strip():
                return text.strip()
    return ""


def address_text(order: Mapping[str, Any]) -> str:
    """Best-effort human-readable delivery address, or an empty string."""
    for key in (
        "delivery_address",
        "dropoff_address",
        "shipping_address",
        "address",
        "customer_address",
        "general_place",
    ):
        text = _address_from_field(order.get(key))
        if text:
            return text
    return _address_from_field(_get(order, "deliver_to", "address"))


def order_code(order: Mapping[str, Any]) -> Optional[str]:
    for key in ("order_id", "id", "orderId", "order_no", "orderNo", "order_code"):
        text = _clean(order.get(key))
        if text:
            return text
    return None


def _to_int(value: Any) -> Optional[int]:
    """Parse an exact integer id; fractional or unparseable values are absent."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        text = value.strip()
        if _DIGITS.fullmatch(text):
            return int(text)
    return None


def numeric_order_id(order: Mapping[str, Any]) -> Optional[int]:
    for key in (
        "order_db_id",
        "db_id",
        "order_table_id",
        "numeric_order_id",
        "order_numeric_id",
        "orderIdNumeric",
        "order_id_numeric",
        "id",
    ):
        number = _to_int(order.get(key))
        if number is not None and number > 0:
            return number
    return None


def order_keys(order: Mapping[str, Any]) -> tuple[str, ...]:
    """All identity aliases an order may be referred to by, first seen first."""
    keys: list[str] = []
    code = order_code(order)
    if code:
        keys.append(code)
    numeric = numeric_order_id(order)
    if numeric:
        keys.append(str(numeric))
    for key in (
        "order_id",
        "id",
        "order_code",
        "order_no",
        "orderNo",
        "order_db_id",
        "db_id",
        "order_table_id",
        "numeric_order_id",
        "order_numeric_id",
        "orderIdNumeric",
        "order_id_numeric",
    ):
        text = _clean(order.get(key))
        if text:
            keys.append(text)
    return tuple(dict.fromkeys(keys))


def same_order(a: Any, b: Any) -> bool:
    """Compare order identifiers across their pretty and numeric spellings."""
    left, right = _clean(a), _clean(b)
    if not left or not right:
        return False
    if left == right:
        return True
    left_int, right_int = _to_int(left), _to_int(right)
    if left_int is not None and right_int is not None:
        return left_int == right_int
    left_num, right_num = _to_float(left), _to_float(right)
    if left_num is not None and right_num is not None and left_num == right_num:
        return True
    return _ORDER_PREFIX.sub("", left) == _ORDER_PREFIX.sub("", right)


def raw_status(order: Mapping[str, Any]) -> str:
    for key in ("status", "order_status", "current_status", "orderStatus"):
        text = _clean(order.get(key))
        if text:
            return text
    return ""


def flatten_orders(payload: Any) -> list[dict]:
    """Flatten `{data: [{orders: [...]}]}`, `{data: [...]}` or bare lists into raw orders."""
    if isinstance(payload, Mapping):
        payload = payload.get("data")
    if not isinstance(payload, list):
        return []

    orders: list[dict] = []
    for entry in payload:
        if not isinstance(entry, Mapping):
            continue
        nested = entry.get("orders")
        if isinstance(nested, list):
            orders.extend(dict(order) for order in nested if isinstance(order, Mapping))
        else:
            orders.append(dict(entry))
    return orders


def to_order_record(raw: Mapping[str, Any]) -> Optional[OrderRecord]:
    code = order_code(raw)
    if not code:
        return None
    customer_name = raw.get("customer_name")
    return OrderRecord(
        id=code,
        status=raw_status(raw),
        coords=extract_coords(raw),
        address_text=address_text(raw),
        order_code=code,
        numeric_id=numeric_order_id(raw),
        keys=order_keys(raw),
        customer_name=str(customer_name) if customer_name else None,
        raw=dict(raw),
    )


def ingest_orders(
    payload: Any,
    *,
    keep: Callable[[OrderRecord], bool] | None = None,
) -> list[OrderRecord]:
    """Build OrderRecords from a raw payload, dropping id-less orders and duplicates."""
    records: list[OrderRecord] = []
    seen: set[str] = set()
    dropped = 0
    for raw in flatten_orders(payload):
        record = to_order_record(raw)
        if record is None:
            dropped += 1
            continue
        if record.id in seen:
            continue
        seen.add(record.id)
        if keep is None or keep(record):
            records.append(record)
    if dropped:
        logger.debug("Dropped %d orders without a resolvable id", dropped)
    return records


def find_order(records: Iterable[OrderRecord], order_id: Any) -> Optional[OrderRecord]:
    for record in records:
        if any(same_order(key, order_id) for key in record.keys or (record.id,)):
            return record
    return None
