# Makes the Django project packages (apps, config, gateway) importable before collection
import sys
from pathlib import Path

import pytest
from django.core.cache import cache

BASE_DIR = Path(__file__).resolve().parent  # .../web
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from apps.orders.adapters import CatalogStub  # noqa: E402
from apps.orders.domain import Product  # noqa: E402
from apps.orders.http_adapters import catalog_breaker  # noqa: E402

CUSTOMER = {"HTTP_X_USER_ID": "user-42"}
ADMIN = {"HTTP_X_USER_ID": "admin-1", "HTTP_X_USER_ROLE": "admin"}


@pytest.fixture(autouse=True)
def catalog(settings, monkeypatch):
    """Every test prices against a fresh in-process catalog."""
    settings.USE_HTTP_CATALOG = False
    stub = CatalogStub(
        [
            Product(id="TEE", name="Basic Tee", price_cents=1500, image="tee.png"),
            Product(id="HOODIE", name="Zip Hoodie", price_cents=4200, image=["hoodie-front.png", "hoodie-back.png"]),
            Product(id="CAP", name="Logo Cap", price_cents=900, image="cap.png"),
        ]
    )
    monkeypatch.setattr("apps.orders.providers.get_catalog", lambda: stub, raising=True)
    return stub


@pytest.fixture(autouse=True)
def fresh_process_state():
    # circuit breaker and throttle counters outlive a single test otherwise
    catalog_breaker.reset()
    cache.clear()
    yield
    catalog_breaker.reset()


@pytest.fixture()
def customer_headers():
    return dict(CUSTOMER)


@pytest.fixture()
def admin_headers():
    return dict(ADMIN)
