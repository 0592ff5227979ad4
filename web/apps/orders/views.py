"""HTTP views for the orders app.

This module contains DRF API views for the storefront orders API. Views are
kept intentionally small: they validate requests (via Pydantic), map to
domain DTOs, delegate to the order services, and return an HTTP response.

Services are obtained from ``providers`` on every request, so tests and
local development can swap the catalog implementation without touching view
logic.

Every view answers with a structured body. Domain errors are mapped through
``ERROR_STATUS``; catalog outages become 503 ``UPSTREAM_UNAVAILABLE``; any
other failure is logged and answered with 500 ``SERVER_ERROR``.

Idempotency: guest checkouts must carry an idempotency token, either as the
``idempotency_token`` body field or the ``Idempotency-Key`` header.
Resubmitting a token answers 409 ``DUPLICATE_ORDER`` with the tracking id of
the order already placed, so a client can treat it as "already submitted".
"""

import logging

import httpx
from django.conf import settings
from pydantic import ValidationError
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from gateway.authentication import IsAdminCaller

from . import providers
from .domain import (
    DuplicateOrder,
    InvalidStatusTransition,
    OrderError,
    OrderNotFound,
    OrderValidationError,
    OrderView,
    ProductNotFound,
    ResolutionError,
)
from .http_adapters import CircuitOpenError
from .schemas import (
    GuestOrderIn,
    OrderReadDTO,
    PageQuery,
    PlaceOrderIn,
    StatusUpdateIn,
    describe_validation_error,
)

logger = logging.getLogger("orders")

IDEMPOTENCY_HEADER = "Idempotency-Key"

# Checked in order, so subclasses come before their bases
ERROR_STATUS = (
    (OrderValidationError, status.HTTP_400_BAD_REQUEST),
    (DuplicateOrder, status.HTTP_409_CONFLICT),
    (InvalidStatusTransition, status.HTTP_409_CONFLICT),
    (ResolutionError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (OrderNotFound, status.HTTP_404_NOT_FOUND),
)


def error_response(exc: OrderError) -> Response:
    code = status.HTTP_400_BAD_REQUEST
    for cls, http_status in ERROR_STATUS:
        if isinstance(exc, cls):
            code = http_status
            break
    body = {"detail": str(exc), "message": exc.message}
    if isinstance(exc, ProductNotFound):
        body["missing_product_ids"] = exc.missing_ids
    if isinstance(exc, DuplicateOrder) and exc.tracking_id:
        body["tracking_id"] = str(exc.tracking_id)
    return Response(body, status=code)


def validation_response(exc: ValidationError) -> Response:
    return Response(
        {"detail": OrderValidationError.code, "message": describe_validation_error(exc)},
        status=status.HTTP_400_BAD_REQUEST,
    )


def upstream_unavailable() -> Response:
    return Response(
        {"detail": "UPSTREAM_UNAVAILABLE", "message": "Product catalog is unavailable, try again later"},
        status=status.HTTP_503_SERVICE_UNAVAILABLE,
    )


def server_error() -> Response:
    return Response(
        {"detail": "SERVER_ERROR", "message": "Server Error"},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def with_token(request) -> dict:
    """Request body with the ``Idempotency-Key`` header as fallback token."""
    data = dict(request.data) if isinstance(request.data, dict) else {}
    header = request.headers.get(IDEMPOTENCY_HEADER)
    if header and not data.get("idempotency_token"):
        data["idempotency_token"] = header
    return data


def page_params(request) -> PageQuery:
    q = PageQuery.model_validate(
        {
            "page": request.GET.get("page", 1),
            "page_size": request.GET.get("page_size", settings.ORDERS_PAGE_SIZE),
        }
    )
    q.page_size = min(q.page_size, settings.ORDERS_MAX_PAGE_SIZE)
    return q


def placed_response(view: OrderView) -> Response:
    order = OrderReadDTO.from_view(view).model_dump(mode="json")
    return Response({"tracking_id": order["tracking_id"], "order": order}, status=status.HTTP_201_CREATED)


def page_response(result) -> Response:
    return Response(
        {
            "count": result.count,
            "page": result.page,
            "page_size": result.page_size,
            "results": [OrderReadDTO.from_view(v).model_dump(mode="json") for v in result.items],
        },
        status=status.HTTP_200_OK,
    )


class GuestOrderView(APIView):
    """Place an order for an unauthenticated buyer (cash on delivery).

    Validates the payload, prices the items from the catalog, creates a
    fresh guest identity and commits the order exactly once per
    idempotency token.
    """

    permission_classes = [AllowAny]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "orders_create"

    def post(self, request):
        """Create a guest order.

        Returns:
            Response: One of the following responses.
            - 201 with {tracking_id, order}.
            - 400 {detail: "VALIDATION_ERROR"} for missing/invalid fields.
            - 409 {detail: "DUPLICATE_ORDER", tracking_id} when the token
              was already used.
            - 422 {detail: "PRODUCT_NOT_FOUND", missing_product_ids} when a
              product does not resolve.
            - 503 {detail: "UPSTREAM_UNAVAILABLE"} when the catalog is down.
            - 500 {detail: "SERVER_ERROR"} otherwise.
        """
        try:
            dto = GuestOrderIn.model_validate(with_token(request))
        except ValidationError as e:
            return validation_response(e)

        try:
            order = providers.get_placement_service().place_guest_order(dto.to_domain())
        except OrderError as e:
            return error_response(e)
        except (httpx.HTTPError, CircuitOpenError):
            logger.warning("catalog unavailable during guest checkout", exc_info=True)
            return upstream_unavailable()
        except Exception:
            logger.exception("guest order failed")
            return server_error()

        return placed_response(OrderView(order=order))


class TrackOrderView(APIView):
    """Public lookup of an order by its tracking id."""

    permission_classes = [AllowAny]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "orders_detail"

    def get(self, request, tracking_id):
        try:
            view = providers.get_query_service().track_by_public_id(tracking_id)
        except OrderError as e:
            return error_response(e)
        except (httpx.HTTPError, CircuitOpenError):
            logger.warning("catalog unavailable during tracking", exc_info=True)
            return upstream_unavailable()
        except Exception:
            logger.exception("track order failed")
            return server_error()
        return Response({"order": OrderReadDTO.from_view(view).model_dump(mode="json")}, status=200)


class OrdersCollectionView(APIView):
    """``GET`` lists every order (admin); ``POST`` places the caller's order."""

    throttle_classes = [ScopedRateThrottle]

    def get_permissions(self):
        if self.request.method == "GET":
            return [IsAuthenticated(), IsAdminCaller()]
        return [IsAuthenticated()]

    def get_throttles(self):
        # DRF evaluates throttles in initial(), before get/post
        self.throttle_scope = "orders_list" if self.request.method == "GET" else "orders_create"
        return [throttle() for throttle in self.throttle_classes]

    def get(self, request):
        try:
            q = page_params(request)
        except ValidationError as e:
            return validation_response(e)
        try:
            result = providers.get_query_service().list_all(q.page, q.page_size)
        except (httpx.HTTPError, CircuitOpenError):
            logger.warning("catalog unavailable while listing orders", exc_info=True)
            return upstream_unavailable()
        except Exception:
            logger.exception("list orders failed")
            return server_error()
        return page_response(result)

    def post(self, request):
        """Place an order for the authenticated caller.

        The total excludes any delivery charge. An idempotency token is
        optional here; when sent it is enforced like on guest checkout.
        """
        try:
            dto = PlaceOrderIn.model_validate(with_token(request))
        except ValidationError as e:
            return validation_response(e)

        try:
            order = providers.get_placement_service().place_order(
                user_id=request.user.user_id,
                items=[i.to_domain() for i in dto.items],
                address=dto.address.to_domain(),
                idempotency_token=dto.idempotency_token,
                note=dto.note or "",
            )
        except OrderError as e:
            return error_response(e)
        except (httpx.HTTPError, CircuitOpenError):
            logger.warning("catalog unavailable during checkout", exc_info=True)
            return upstream_unavailable()
        except Exception:
            logger.exception("place order failed")
            return server_error()

        return placed_response(OrderView(order=order))


class MyOrdersView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "orders_list"

    def get(self, request):
        try:
            q = page_params(request)
        except ValidationError as e:
            return validation_response(e)
        try:
            result = providers.get_query_service().list_for_user(request.user.user_id, q.page, q.page_size)
        except (httpx.HTTPError, CircuitOpenError):
            logger.warning("catalog unavailable while listing caller orders", exc_info=True)
            return upstream_unavailable()
        except Exception:
            logger.exception("list caller orders failed")
            return server_error()
        return page_response(result)


class OrderStatusView(APIView):
    """Admin-only status change along the allowed transitions."""

    permission_classes = [IsAuthenticated, IsAdminCaller]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "orders_detail"

    def post(self, request):
        try:
            dto = StatusUpdateIn.model_validate(request.data)
        except ValidationError as e:
            return validation_response(e)

        try:
            order = providers.get_status_service().update_status(dto.order_id, dto.status)
        except OrderError as e:
            return error_response(e)
        except Exception:
            logger.exception("status update failed")
            return server_error()

        body = OrderReadDTO.from_view(OrderView(order=order)).model_dump(mode="json")
        return Response({"success": True, "order": body}, status=status.HTTP_200_OK)
