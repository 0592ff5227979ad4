"""API tests for the catalog service.

The service runs against a temporary SQLite database (see the catalog
``conftest.py``); ``TestClient`` as a context manager triggers the startup
hook that creates the schema.
"""
import pytest
from fastapi.testclient import TestClient

from main import app


@pytest.fixture()
def client():
    with TestClient(app) as c:
        yield c


def test_lookup_returns_only_known_products(client):
    client.put("/products/TEE-1", json={"name": "Tee", "price_cents": 1500, "image": "tee.png"})
    client.put("/products/HOOD-1", json={"name": "Hoodie", "price_cents": 4200, "image": ["a.png", "b.png"]})

    r = client.post("/products/lookup", json={"ids": ["TEE-1", "HOOD-1", "NOPE"]})
    assert r.status_code == 200
    products = {p["id"]: p for p in r.json()["products"]}
    assert set(products) == {"TEE-1", "HOOD-1"}
    assert products["TEE-1"]["image"] == "tee.png"
    assert products["HOOD-1"]["image"] == ["a.png", "b.png"]
    assert products["HOOD-1"]["price_cents"] == 4200


def test_lookup_rejects_empty_id_list(client):
    r = client.post("/products/lookup", json={"ids": []})
    assert r.status_code == 422


def test_upsert_replaces_price(client):
    client.put("/products/CAP-1", json={"name": "Cap", "price_cents": 900, "image": "cap.png"})
    client.put("/products/CAP-1", json={"name": "Cap", "price_cents": 1100, "image": "cap.png"})
    r = client.get("/products/CAP-1")
    assert r.status_code == 200
    assert r.json()["price_cents"] == 1100


def test_get_unknown_product_is_404(client):
    r = client.get("/products/missing")
    assert r.status_code == 404


def test_request_id_is_echoed(client):
    r = client.get("/health", headers={"X-Request-ID": "rid-123"})
    assert r.status_code == 200
    assert r.headers["X-Request-ID"] == "rid-123"
