"""API tests for the guest checkout endpoint.

These tests exercise the guest order API for the main scenarios: successful
creation, missing fields, unknown products and an unavailable catalog. The
autouse ``catalog`` fixture supplies an in-process catalog stub, so prices
are deterministic.
"""
import httpx
import pytest
from uuid import UUID

from apps.orders.models import GuestUserModel, OrderModel


GUEST_URL = "/api/orders/guest/"


def guest_payload(**overrides):
    payload = {
        "full_name": "Rahim Uddin",
        "phone": "+8801712345678",
        "alternate_phone": "+8801812345678",
        "full_address": "House 12, Road 5, Dhanmondi, Dhaka",
        "items": [
            {"product_id": "TEE", "quantity": 2, "size": "M"},
            {"product_id": "HOODIE", "quantity": 1, "size": "L"},
        ],
        "delivery_charge_cents": 250,
        "note": "Leave at the gate",
        "idempotency_token": "guest-tok-1",
    }
    payload.update(overrides)
    return payload


@pytest.mark.django_db
def test_guest_order_created(client):
    """Returns 201 with the tracking id and a server-priced order."""
    r = client.post(GUEST_URL, data=guest_payload(), content_type="application/json")
    assert r.status_code == 201
    body = r.json()
    UUID(body["tracking_id"])
    order = body["order"]
    assert order["tracking_id"] == body["tracking_id"]
    assert order["amount_cents"] == 2 * 1500 + 4200 + 250
    assert order["delivery_charge_cents"] == 250
    assert order["buyer_kind"] == "GuestUser"
    assert order["payment_method"] == "COD"
    assert order["paid"] is False
    assert order["status"] == "Pending"
    assert order["note"] == "Leave at the gate"
    assert order["address"]["alternate_phone"] == "+8801812345678"
    assert [i["images"] for i in order["items"]] == [["tee.png"], ["hoodie-front.png", "hoodie-back.png"]]

    row = OrderModel.objects.get()
    guest = GuestUserModel.objects.get()
    assert row.buyer_kind == "GuestUser"
    assert row.buyer_ref == str(guest.id)
    assert str(row.tracking_id) == body["tracking_id"]
    assert [line.images for line in row.lines.all()] == [["tee.png"], ["hoodie-front.png", "hoodie-back.png"]]


@pytest.mark.django_db
def test_client_supplied_amount_and_tracking_id_are_ignored(client):
    payload = guest_payload(amount_cents=1, tracking_id="00000000-0000-4000-8000-000000000000")
    r = client.post(GUEST_URL, data=payload, content_type="application/json")
    assert r.status_code == 201
    order = r.json()["order"]
    assert order["amount_cents"] == 2 * 1500 + 4200 + 250
    assert order["tracking_id"] != "00000000-0000-4000-8000-000000000000"


@pytest.mark.django_db
def test_each_guest_order_gets_its_own_identity(client):
    client.post(GUEST_URL, data=guest_payload(idempotency_token="a"), content_type="application/json")
    client.post(GUEST_URL, data=guest_payload(idempotency_token="b"), content_type="application/json")
    assert GuestUserModel.objects.count() == 2
    assert OrderModel.objects.values("buyer_ref").distinct().count() == 2


@pytest.mark.django_db
@pytest.mark.parametrize("field", ["full_name", "phone", "full_address", "items", "idempotency_token"])
def test_missing_required_field_returns_400_and_persists_nothing(client, field):
    payload = guest_payload()
    del payload[field]
    r = client.post(GUEST_URL, data=payload, content_type="application/json")
    assert r.status_code == 400
    assert r.json()["detail"] == "VALIDATION_ERROR"
    assert field in r.json()["message"]
    assert OrderModel.objects.count() == 0
    assert GuestUserModel.objects.count() == 0


@pytest.mark.django_db
def test_empty_items_returns_400(client):
    r = client.post(GUEST_URL, data=guest_payload(items=[]), content_type="application/json")
    assert r.status_code == 400
    assert OrderModel.objects.count() == 0


@pytest.mark.django_db
def test_invalid_quantity_returns_400(client):
    r = client.post(GUEST_URL, data=guest_payload(items=[{"product_id": "TEE", "quantity": 0}]), content_type="application/json")
    assert r.status_code == 400


@pytest.mark.django_db
def test_unknown_product_returns_422_and_persists_nothing(client):
    items = [{"product_id": "TEE", "quantity": 1}, {"product_id": "GHOST", "quantity": 1}]
    r = client.post(GUEST_URL, data=guest_payload(items=items), content_type="application/json")
    assert r.status_code == 422
    body = r.json()
    assert body["detail"] == "PRODUCT_NOT_FOUND"
    assert body["missing_product_ids"] == ["GHOST"]
    assert OrderModel.objects.count() == 0
    assert GuestUserModel.objects.count() == 0


@pytest.mark.django_db
def test_token_can_come_from_idempotency_key_header(client):
    payload = guest_payload()
    del payload["idempotency_token"]
    r = client.post(GUEST_URL, data=payload, content_type="application/json", HTTP_IDEMPOTENCY_KEY="hdr-1")
    assert r.status_code == 201
    assert OrderModel.objects.get().idempotency_token == "hdr-1"


@pytest.mark.django_db
def test_catalog_outage_returns_503(client, catalog, monkeypatch):
    def down(product_ids):
        raise httpx.ConnectError("catalog down")

    monkeypatch.setattr(catalog, "lookup", down)
    r = client.post(GUEST_URL, data=guest_payload(), content_type="application/json")
    assert r.status_code == 503
    assert r.json()["detail"] == "UPSTREAM_UNAVAILABLE"
    assert OrderModel.objects.count() == 0
    assert GuestUserModel.objects.count() == 0


@pytest.mark.django_db
def test_response_carries_request_id(client):
    r = client.post(GUEST_URL, data=guest_payload(), content_type="application/json", HTTP_X_REQUEST_ID="rid-9")
    assert r["X-Request-ID"] == "rid-9"
