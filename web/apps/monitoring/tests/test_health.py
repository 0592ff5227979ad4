import pytest

from apps.orders.http_adapters import catalog_breaker


@pytest.mark.django_db
def test_health_ok_with_stub_catalog(client):
    r = client.get("/health/")
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["components"]["db"] == {"ok": True}
    assert body["components"]["catalog"]["mode"] == "stub"


@pytest.mark.django_db
def test_health_reports_open_catalog_circuit(client, settings):
    settings.USE_HTTP_CATALOG = True
    for _ in range(catalog_breaker.fail_threshold):
        catalog_breaker.on_failure()

    r = client.get("/health/")
    assert r.status_code == 503
    catalog = r.json()["components"]["catalog"]
    assert catalog == {"ok": False, "mode": "http", "circuit": "OPEN"}
