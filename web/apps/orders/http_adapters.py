"""HTTP catalog client with retries, a circuit breaker and context headers.

This module implements the ``CatalogPort`` against the catalog service
using ``httpx``. It adds:

- Request correlation: propagates ``X-Request-ID`` from the ContextVar set
    by the gateway middleware.
- A circuit breaker so an unhealthy catalog is not hammered, with a single
    HALF_OPEN probe once the reset timeout has elapsed.
- Bounded retries with exponential backoff for transport errors and 5xx.
    Lookups are read-only, so repeating them is safe; order commits are
    never retried anywhere.
"""

import os
import sys
import threading
import time
from typing import List, Optional

import httpx
from django.conf import settings
from django.utils.module_loading import import_string

from .domain import CatalogPort, Product

REQUEST_ID_CTX = import_string("gateway.middleware.REQUEST_ID_CTX")

# Largest id list the catalog service accepts per lookup
LOOKUP_BATCH_SIZE = 500


def _is_test_mode() -> bool:
    return (
        "pytest" in sys.modules
        or os.environ.get("PYTEST_CURRENT_TEST") is not None
        or os.environ.get("PYTEST_RUNNING") == "1"
    )


# ---------------- Circuit Breaker ---------------- #

class CircuitOpenError(RuntimeError):
    """Raised instead of calling a dependency whose circuit is open."""


class CircuitBreaker:
    """Failure counter guarding one downstream dependency.

    States:
    - CLOSED: calls pass; ``fail_threshold`` consecutive failures open it.
    - OPEN: calls are refused until ``reset_timeout`` seconds have passed.
    - HALF_OPEN: one probe call is let through; success closes the
      circuit, failure opens it again.

    All state changes happen under an internal lock so the breaker can be
    shared by the threads of a gunicorn worker.
    """

    CLOSED, OPEN, HALF_OPEN = "CLOSED", "OPEN", "HALF_OPEN"

    def __init__(self, name: str, fail_threshold: int, reset_timeout: float):
        self.name = name
        self.fail_threshold = fail_threshold
        self.reset_timeout = reset_timeout
        self._lock = threading.RLock()
        self._failures = 0
        self._state = self.CLOSED
        self._opened_at = 0.0
        self._probing = False

    @property
    def state(self) -> str:
        with self._lock:
            if self._state == self.OPEN and time.monotonic() - self._opened_at >= self.reset_timeout:
                self._state = self.HALF_OPEN
                self._probing = False
            return self._state

    def before_call(self) -> str:
        """Admit or refuse a call.

        Returns:
            str: The state the call was admitted in.

        Raises:
            CircuitOpenError: If the circuit is OPEN, or HALF_OPEN with a
                probe already in flight.
        """
        with self._lock:
            st = self.state
            if st == self.OPEN:
                raise CircuitOpenError(f"{self.name}: CIRCUIT_OPEN")
            if st == self.HALF_OPEN:
                if self._probing:
                    raise CircuitOpenError(f"{self.name}: CIRCUIT_HALF_OPEN_BUSY")
                self._probing = True
            return st

    def on_success(self):
        with self._lock:
            self._failures = 0
            self._state = self.CLOSED
            self._probing = False

    def on_failure(self):
        with self._lock:
            self._failures += 1
            if self._state == self.HALF_OPEN or (
                self._failures >= self.fail_threshold and self._state != self.OPEN
            ):
                self._state = self.OPEN
                self._opened_at = time.monotonic()
            self._probing = False

    def reset(self):
        self.on_success()


catalog_breaker = CircuitBreaker(
    "catalog",
    getattr(settings, "HTTP_CIRCUIT_FAIL_THRESHOLD", 5),
    getattr(settings, "HTTP_CIRCUIT_RESET_TIMEOUT", 30.0),
)


# ---------------- Helpers ---------------- #

def _request_headers(extra: Optional[dict] = None) -> dict:
    """Base outgoing headers: ``X-Request-ID`` when known, plus ``extra``."""
    headers: dict[str, str] = {}
    rid = REQUEST_ID_CTX.get()
    if rid and rid != "-":
        headers["X-Request-ID"] = rid
    if extra:
        headers.update(extra)
    return headers


def _retry_policy():
    """Return retry configuration as (max_retries, backoff_base_seconds)."""
    max_retries = getattr(settings, "HTTP_RETRY_MAX", 3)
    backoff = getattr(settings, "HTTP_RETRY_BACKOFF_BASE", 0.15)
    if _is_test_mode():
        backoff = 0.0
    return max_retries, backoff


def _should_retry(resp: Optional[httpx.Response], exc: Optional[Exception]) -> bool:
    if exc is not None:
        return True
    return resp is not None and 500 <= resp.status_code < 600


def _status_error(resp: httpx.Response) -> httpx.HTTPStatusError:
    try:
        request = resp.request
    except RuntimeError:
        # responses built by hand carry no request
        request = None
    return httpx.HTTPStatusError(
        f"Unexpected status {resp.status_code} from catalog lookup",
        request=request,
        response=resp,
    )


def _product_from_json(data: dict) -> Product:
    return Product(
        id=str(data["id"]),
        name=data["name"],
        price_cents=int(data["price_cents"]),
        image=data.get("image"),
    )


# ---------------- Catalog Adapter ---------------- #

class HttpCatalogClient(CatalogPort):
    """HTTP client for the catalog service's ``/products/lookup`` endpoint."""

    def __init__(self, base_url: str | None = None, timeout: float | None = None,
                 breaker: CircuitBreaker | None = None):
        self.base_url = base_url or settings.CATALOG_BASE_URL
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECS
        self.breaker = breaker or catalog_breaker

    def lookup(self, product_ids: List[str]) -> dict:
        """Fetch products by id, in batches the catalog accepts.

        Ids are deduplicated and sent ``CATALOG_LOOKUP_BATCH_SIZE`` at a time;
        the partial results are merged. Ids missing from the responses are
        treated as unknown products.

        Args:
            product_ids: Ids to look up.

        Returns:
            dict[str, Product]: Found products keyed by id.

        Raises:
            CircuitOpenError: If the catalog circuit is open.
            httpx.RequestError: For transport errors after retries.
            httpx.HTTPStatusError: For any non-200 reply that is not retried,
                or a 5xx that persists after retries.
        """
        ids = list(dict.fromkeys(product_ids))
        size = max(1, getattr(settings, "CATALOG_LOOKUP_BATCH_SIZE", LOOKUP_BATCH_SIZE))
        found: dict = {}
        for start in range(0, len(ids), size):
            found.update(self._lookup_batch(ids[start:start + size]))
        return found

    def _lookup_batch(self, ids: List[str]) -> dict:
        """One ``/products/lookup`` call with retries on transport errors and 5xx."""
        payload = {"ids": ids}
        max_retries, backoff = _retry_policy()
        tries = 0

        state = self.breaker.before_call()
        headers = _request_headers({"X-Circuit-State": state, "X-Retry-Count": "0"})

        with httpx.Client(timeout=self.timeout) as client:
            while True:
                resp = None
                exc = None
                try:
                    resp = client.post(f"{self.base_url}/products/lookup", json=payload, headers=headers)
                    if resp.status_code == 200:
                        self.breaker.on_success()
                        products = [_product_from_json(p) for p in resp.json().get("products", [])]
                        return {p.id: p for p in products}
                    if not _should_retry(resp, None):
                        # 4xx and unexpected 2xx/3xx say nothing about the catalog's health
                        self.breaker.on_success()
                        raise _status_error(resp)
                except httpx.RequestError as e:
                    exc = e

                tries += 1
                headers["X-Retry-Count"] = str(tries)

                if tries > max_retries:
                    self.breaker.on_failure()
                    if exc:
                        raise exc
                    raise _status_error(resp)

                sleep_s = backoff * (2 ** (tries - 1))
                cap = getattr(settings, "HTTP_RETRY_MAX_SLEEP", 0.5)
                if sleep_s > 0:
                    time.sleep(min(sleep_s, cap))
