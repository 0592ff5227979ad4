from django.conf import settings
from django.db import connection
from django.db.utils import Error as DatabaseError
from django.http import JsonResponse

from apps.orders.http_adapters import catalog_breaker


def health_view(_request):
    db_ok = False
    try:
        with connection.cursor() as cur:
            cur.execute("SELECT 1;")
        db_ok = True
    except DatabaseError:
        db_ok = False

    if getattr(settings, "USE_HTTP_CATALOG", False):
        circuit = catalog_breaker.state
        catalog = {"ok": circuit != catalog_breaker.OPEN, "mode": "http", "circuit": circuit}
    else:
        catalog = {"ok": True, "mode": "stub"}

    ok = db_ok and catalog["ok"]
    code = 200 if ok else 503
    return JsonResponse(
        {"ok": ok, "components": {"db": {"ok": db_ok}, "catalog": catalog}},
        status=code,
    )
