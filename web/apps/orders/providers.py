"""Service provider helpers for wiring the order services with their ports.

``get_catalog`` returns the HTTP catalog client when
``settings.USE_HTTP_CATALOG`` is truthy and the in-process ``CatalogStub``
otherwise. The ``get_*_service`` factories build the services from the ORM
repositories and whatever ``get_catalog`` returns, so tests can swap the
catalog by patching that single function.
"""

from django.conf import settings
from django.db import transaction

from .adapters import CatalogStub
from .domain import CatalogPort
from .http_adapters import HttpCatalogClient
from .repository import GuestIdentityStore, OrderRepository
from .services import OrderPlacementService, OrderQueryService, OrderStatusService

_stub_catalog = CatalogStub()


def get_catalog() -> CatalogPort:
    if getattr(settings, "USE_HTTP_CATALOG", False):
        return HttpCatalogClient()
    return _stub_catalog


def get_placement_service() -> OrderPlacementService:
    return OrderPlacementService(
        catalog=get_catalog(),
        guests=GuestIdentityStore(),
        orders=OrderRepository(),
        atomic=transaction.atomic,
    )


def get_query_service() -> OrderQueryService:
    return OrderQueryService(
        orders=OrderRepository(),
        guests=GuestIdentityStore(),
        catalog=get_catalog(),
    )


def get_status_service() -> OrderStatusService:
    return OrderStatusService(orders=OrderRepository())
