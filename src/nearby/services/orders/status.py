"""Order status normalisation and eligibility predicates.

Status transitions are owned by the merchant backend; everything here is a pure
re-classification of whatever status string the backend last reported.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping, Optional

from ...models.domain import OrderRecord

PENDING = "PENDING"
CONFIRMED = "CONFIRMED"
ACCEPTED = "ACCEPTED"
READY = "READY"
ASSIGNED = "ASSIGNED"
OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
DELIVERED = "DELIVERED"
COMPLETED = "COMPLETED"
DECLINED = "DECLINED"
REJECTED = "REJECTED"
CANCELLED = "CANCELLED"
UNKNOWN = "UNKNOWN"

_ALIASES = {
    "ON_ROAD": OUT_FOR_DELIVERY,
    "ONROAD": OUT_FOR_DELIVERY,
    "OUT_FOR_DEL": OUT_FOR_DELIVERY,
    "DELIVERING": OUT_FOR_DELIVERY,
    "ACCEPT": ACCEPTED,
    "RIDER_ASSIGNED": ASSIGNED,
    "DRIVER_ASSIGNED": ASSIGNED,
    "COMPLETE": COMPLETED,
    "CANCELED": CANCELLED,
    "REJECT": REJECTED,
    "DECLINE": DECLINED,
}

_SEPARATORS = re.compile(r"[\s\-]+")

NOT_CLUSTERED = frozenset({PENDING, DELIVERED, COMPLETED})
HIDDEN_FROM_LIST = frozenset({DECLINED, REJECTED})
TRACKABLE = frozenset({ASSIGNED, OUT_FOR_DELIVERY, DELIVERED, COMPLETED})


def normalize_status(raw: Any) -> str:
    """Fold raw status spellings into the closed upper-case status set."""
    if raw is None:
        return UNKNOWN
    text = _SEPARATORS.sub("_", str(raw).strip().upper())
    if not text:
        return UNKNOWN
    return _ALIASES.get(text, text)


def _status_of(order: OrderRecord | str) -> str:
    if isinstance(order, OrderRecord):
        return normalize_status(order.status)
    return normalize_status(order)


def is_cluster_eligible(order: OrderRecord | str) -> bool:
    """Unconfirmed and finished orders stay out of live delivery clusters."""
    return _status_of(order) not in NOT_CLUSTERED


def is_list_visible(order: OrderRecord | str) -> bool:
    return _status_of(order) not in HIDDEN_FROM_LIST


def is_batchable(order: OrderRecord | str) -> bool:
    return _status_of(order) == READY


def is_trackable(order: OrderRecord | str) -> bool:
    return _status_of(order) in TRACKABLE


def status_label(status: Any) -> str:
    key = normalize_status(status)
    if key == OUT_FOR_DELIVERY:
        return "Out for delivery"
    return key.replace("_", " ").lower().capitalize()


def latest_status(order: OrderRecord, overrides: Optional[Mapping[str, Any]] = None) -> str:
    """Normalised status, preferring a live override keyed by any identity alias."""
    if overrides:
        for key in order.keys or (order.id,):
            value = overrides.get(key)
            if value:
                return normalize_status(value)
    return normalize_status(order.status)


def status_tabs(
    orders: Iterable[OrderRecord],
    overrides: Optional[Mapping[str, Any]] = None,
) -> list[dict]:
    """Per-status counts for the cluster detail tabs, led by an ALL tab."""
    orders = list(orders)
    counts: dict[str, int] = {}
    for order in orders:
        key = latest_status(order, overrides)
        counts[key] = counts.get(key, 0) + 1

    tabs = [{"key": "ALL", "label": "All", "count": len(orders)}]
    for key in sorted(counts):
        tabs.append({"key": key, "label": status_label(key), "count": counts[key]})
    return tabs
