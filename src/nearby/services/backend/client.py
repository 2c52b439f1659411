"""HTTP client for the merchant backend (orders, business details, batches)."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Optional
from urllib.parse import quote

import httpx

from ...config import settings

logger = logging.getLogger(__name__)

_PLACEHOLDERS = ("{business_id}", "{businessId}", ":business_id", ":businessId")


class BackendError(RuntimeError):
    """The merchant backend answered with a non-success status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _fill_placeholders(template: str, value: str) -> str:
    url = template
    for placeholder in _PLACEHOLDERS:
        url = url.replace(placeholder, value)
    return url


def build_orders_url(template: str | None, business_id: Any, owner_type: str | None = None) -> str | None:
    """Resolve the grouped-orders endpoint for a business.

    Without a placeholder the business id is added as a query parameter;
    `owner_type` is always appended when given.
    """
    raw_id = str(business_id).strip() if business_id is not None else ""
    tpl = (template or "").strip()
    if not raw_id or not tpl:
        return None

    encoded = quote(raw_id, safe="")
    url = _fill_placeholders(tpl, encoded)
    if url == tpl:
        sep = "&" if "?" in url else "?"
        url = f"{url}{sep}business_id={encoded}"
    if owner_type:
        sep = "&" if "?" in url else "?"
        url = f"{url}{sep}owner_type={quote(str(owner_type), safe='')}"
    return url


def build_business_url(template: str | None, business_id: Any) -> str | None:
    raw_id = str(business_id).strip() if business_id is not None else ""
    tpl = (template or "").strip()
    if not raw_id or not tpl:
        return None

    encoded = quote(raw_id, safe="")
    url = _fill_placeholders(tpl, encoded)
    if url == tpl:
        url = f"{tpl.rstrip('/')}/{encoded}"
    return url


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "error", "details"):
            if body.get(key):
                return str(body[key])
    return response.text.strip() or f"Server returned status {response.status_code}."


class MerchantBackendClient:
    def __init__(
        self,
        *,
        order_endpoint: str | None = None,
        business_details_endpoint: str | None = None,
        group_nearby_order_endpoint: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.order_endpoint = order_endpoint or settings.order_endpoint
        self.business_details_endpoint = business_details_endpoint or settings.business_details_endpoint
        self.group_nearby_order_endpoint = group_nearby_order_endpoint or settings.group_nearby_order_endpoint
        self.token = token or settings.backend_token
        self.timeout = timeout if timeout is not None else settings.backend_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.backend_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.backend_backoff_seconds
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            transport=self._transport,
        )

    def _headers(self, *, json_body: bool = False) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if json_body:
            headers["Content-Type"] = "application/json"
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(self, method: str, url: str, *, json: Any = None) -> Any:
        attempt = 0
        with self._get_client() as client:
            while True:
                try:
                    response = client.request(method, url, json=json, headers=self._headers(json_body=json is not None))
                    if response.status_code >= 500 and attempt < self.max_retries:
                        attempt += 1
                        logger.debug(f"Backend {method} {url} returned {response.status_code}, retry {attempt}/{self.max_retries}")
                        time.sleep(self.backoff_seconds * attempt)
                        continue
                    if response.is_error:
                        raise BackendError(_error_message(response), status_code=response.status_code)
                    if not response.content:
                        return None
                    try:
                        return response.json()
                    except ValueError:
                        return None
                except httpx.TimeoutException as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"Backend request timed out after {self.max_retries} retries: {e}")
                        raise ConnectionError(f"Merchant backend timed out: {url}") from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"Backend request timeout, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    time.sleep(wait_time)
                except httpx.TransportError as e:
                    raise ConnectionError(f"Cannot reach merchant backend: {e}") from e

    def fetch_orders(self, business_id: Any, owner_type: str | None = None) -> Any:
        url = build_orders_url(self.order_endpoint, business_id, owner_type)
        if not url:
            raise ValueError("Order endpoint is not configured or business id is missing.")
        return self._request("GET", url)

    def fetch_business(self, business_id: Any) -> Optional[dict]:
        url = build_business_url(self.business_details_endpoint, business_id)
        if not url:
            return None
        body = self._request("GET", url)
        if isinstance(body, dict) and isinstance(body.get("data"), dict):
            return body["data"]
        return body if isinstance(body, dict) else None

    def create_batch(self, payload: dict) -> Any:
        url = (self.group_nearby_order_endpoint or "").strip()
        if not url:
            raise ValueError("Group nearby order endpoint is not configured.")
        return self._request("POST", url, json=payload)


class OrderFeed:
    """Holds the latest order snapshot; only the newest fetch may replace it.

    A fetch started before another one finishes is superseded: its response is
    discarded rather than merged.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._generation = 0
        self._published = 0
        self.snapshot: Any = None

    def begin(self) -> int:
        with self._lock:
            self._generation += 1
            return self._generation

    def publish(self, generation: int, result: Any) -> bool:
        with self._lock:
            if generation != self._generation:
                logger.debug(f"Discarding stale order snapshot (generation {generation} < {self._generation})")
                return False
            self.snapshot = result
            self._published = generation
            return True

    def refresh(self, fetch: Callable[[], Any]) -> Any:
        """Run one fetch; a superseded caller gets a newer published snapshot when one exists."""
        generation = self.begin()
        result = fetch()
        if self.publish(generation, result):
            return result
        with self._lock:
            return self.snapshot if self._published > generation else result


def check_health(client: MerchantBackendClient | None = None) -> bool:
    """Check the merchant backend by requesting the orders endpoint root."""
    client = client or MerchantBackendClient()
    if not client.order_endpoint:
        return False
    base = client.order_endpoint.split("{")[0].split("/:")[0]
    try:
        with client._get_client() as http:
            response = http.get(base, headers=client._headers())
        return response.status_code < 500
    except httpx.HTTPError:
        return False
