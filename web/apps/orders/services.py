"""Order services: placement, queries and status changes.

The services orchestrate the ports defined in ``domain``. They do not know
about HTTP or the ORM; the Django wiring lives in ``providers``.
"""

import logging
import uuid
from contextlib import nullcontext
from typing import Callable, List, Optional

from .domain import (
    ALLOWED_TRANSITIONS,
    PAYMENT_METHOD_COD,
    Address,
    BuyerKind,
    CatalogPort,
    GuestOrderRequest,
    GuestStorePort,
    InvalidStatusTransition,
    LineItemRequest,
    Order,
    OrderNotFound,
    OrderStatus,
    OrderStorePort,
    OrderValidationError,
    OrderView,
    Page,
)
from .idempotency import OrderIdempotencyGuard
from .pricing import ProductPriceResolver, order_subtotal_cents

logger = logging.getLogger("orders")


def _require(value, field_name: str) -> None:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise OrderValidationError(f"{field_name} is required")


def _check_items(items: List[LineItemRequest]) -> None:
    if not items:
        raise OrderValidationError("items must contain at least one product")
    for it in items:
        _require(it.product_id, "items.product_id")
        if not isinstance(it.quantity, int) or isinstance(it.quantity, bool) or it.quantity <= 0:
            raise OrderValidationError(f"quantity for product {it.product_id} must be a positive integer")


def _check_address(address: Optional[Address]) -> None:
    if address is None:
        raise OrderValidationError("address is required")
    _require(address.full_name, "address.full_name")
    _require(address.phone, "address.phone")
    _require(address.full_address, "address.full_address")


class OrderPlacementService:
    """Places guest and authenticated orders.

    Both variants price items from the catalog, never from the client, and
    commit through the idempotency guard. ``atomic`` is a factory for a
    context manager that groups the guest identity insert with the order
    insert, so a rejected commit leaves no guest record behind.
    """

    def __init__(
        self,
        catalog: CatalogPort,
        guests: GuestStorePort,
        orders: OrderStorePort,
        atomic: Callable = nullcontext,
        new_tracking_id: Callable[[], uuid.UUID] = uuid.uuid4,
    ):
        self.resolver = ProductPriceResolver(catalog)
        self.guests = guests
        self.guard = OrderIdempotencyGuard(orders)
        self.atomic = atomic
        self.new_tracking_id = new_tracking_id

    def place_guest_order(self, req: GuestOrderRequest) -> Order:
        """Place an order for an unauthenticated buyer.

        Steps: validate, idempotency pre-check, price items, then atomically
        create a fresh guest identity and commit the order. The total is the
        sum of line totals plus the delivery charge.

        Args:
            req: The guest checkout submission.

        Returns:
            Order: The persisted order, including its ``tracking_id``.

        Raises:
            OrderValidationError: A required field is missing or invalid.
            DuplicateOrder: The idempotency token was already used.
            ProductNotFound: A product id does not resolve.
            ResolutionError: A product cannot be snapshotted.
        """
        _require(req.full_name, "full_name")
        _require(req.phone, "phone")
        _require(req.full_address, "full_address")
        _check_items(req.items)
        _require(req.idempotency_token, "idempotency_token")
        if req.delivery_charge_cents is not None and req.delivery_charge_cents < 0:
            raise OrderValidationError("delivery_charge_cents cannot be negative")

        self.guard.ensure_absent(req.idempotency_token)
        priced = self.resolver.resolve(req.items)
        amount = order_subtotal_cents(priced) + (req.delivery_charge_cents or 0)

        with self.atomic():
            guest_id = self.guests.create_guest(
                req.full_name, req.phone, req.alternate_phone, req.full_address
            )
            order = Order(
                id=None,
                buyer_kind=BuyerKind.GUEST,
                buyer_ref=guest_id,
                items=priced,
                address=Address(
                    full_name=req.full_name,
                    phone=req.phone,
                    full_address=req.full_address,
                    alternate_phone=req.alternate_phone,
                ),
                amount_cents=amount,
                tracking_id=self.new_tracking_id(),
                idempotency_token=req.idempotency_token,
                note=req.note or "",
                delivery_charge_cents=req.delivery_charge_cents,
                payment_method=PAYMENT_METHOD_COD,
            )
            stored = self.guard.place_if_absent(order)

        logger.info(
            "guest order placed",
            extra={"tracking_id": str(stored.tracking_id), "amount_cents": stored.amount_cents},
        )
        return stored

    def place_order(
        self,
        user_id: str,
        items: List[LineItemRequest],
        address: Address,
        idempotency_token: Optional[str] = None,
        note: str = "",
    ) -> Order:
        """Place an order for an authenticated customer.

        No delivery charge is applied to the stored total on this path. The
        idempotency token is optional; when given it is enforced exactly as
        for guest orders.

        Raises:
            OrderValidationError: Missing user id, items or address fields.
            DuplicateOrder: The supplied token was already used.
            ProductNotFound: A product id does not resolve.
        """
        _require(user_id, "user_id")
        _check_items(items)
        _check_address(address)

        self.guard.ensure_absent(idempotency_token)
        priced = self.resolver.resolve(items)

        order = Order(
            id=None,
            buyer_kind=BuyerKind.USER,
            buyer_ref=str(user_id),
            items=priced,
            address=address,
            amount_cents=order_subtotal_cents(priced),
            tracking_id=self.new_tracking_id(),
            idempotency_token=idempotency_token or None,
            note=note or "",
            payment_method=PAYMENT_METHOD_COD,
            status=OrderStatus.PENDING,
        )
        with self.atomic():
            stored = self.guard.place_if_absent(order)

        logger.info(
            "order placed",
            extra={"tracking_id": str(stored.tracking_id), "user_id": str(user_id), "amount_cents": stored.amount_cents},
        )
        return stored


class OrderQueryService:
    """Read side: tracking lookups and order listings with joins."""

    def __init__(self, orders: OrderStorePort, guests: GuestStorePort, catalog: CatalogPort):
        self.orders = orders
        self.guests = guests
        self.catalog = catalog

    def track_by_public_id(self, tracking_id) -> OrderView:
        order = self.orders.get_by_tracking_id(tracking_id)
        if order is None:
            raise OrderNotFound(f"No order with tracking id {tracking_id}")
        return self._join([order], with_buyer=True)[0]

    def list_all(self, page: int, page_size: int) -> Page:
        result = self.orders.list_all(page, page_size)
        return Page(
            items=self._join(result.items, with_buyer=True),
            count=result.count,
            page=result.page,
            page_size=result.page_size,
        )

    def list_for_user(self, user_id: str, page: int, page_size: int) -> Page:
        result = self.orders.list_for_buyer(BuyerKind.USER, str(user_id), page, page_size)
        return Page(
            items=self._join(result.items, with_buyer=False),
            count=result.count,
            page=result.page,
            page_size=result.page_size,
        )

    def _join(self, orders: List[Order], with_buyer: bool) -> List[OrderView]:
        # one catalog round-trip for every product referenced on the page
        product_ids = list(dict.fromkeys(it.product_id for o in orders for it in o.items))
        live = self.catalog.lookup(product_ids) if product_ids else {}

        views = []
        for o in orders:
            views.append(
                OrderView(
                    order=o,
                    buyer=self._buyer(o) if with_buyer else None,
                    products={it.product_id: live.get(it.product_id) for it in o.items},
                )
            )
        return views

    def _buyer(self, order: Order) -> dict:
        buyer = {"kind": order.buyer_kind.value, "id": order.buyer_ref}
        if order.buyer_kind is BuyerKind.GUEST:
            guest = self.guests.get_guest(order.buyer_ref)
            if guest is not None:
                buyer.update(
                    full_name=guest.full_name,
                    phone=guest.phone,
                    alternate_phone=guest.alternate_phone,
                    full_address=guest.full_address,
                )
        return buyer


class OrderStatusService:
    """Administrative status changes along ``ALLOWED_TRANSITIONS``."""

    def __init__(self, orders: OrderStorePort):
        self.orders = orders

    def update_status(self, order_id, new_status) -> Order:
        """Move an order to ``new_status``.

        The order is looked up first, so an unknown id is reported as
        ``OrderNotFound`` whatever ``new_status`` holds. Re-applying the
        current status is accepted and changes nothing.

        Raises:
            OrderNotFound: No order has ``order_id``.
            OrderValidationError: ``new_status`` is not a known status.
            InvalidStatusTransition: The move is not allowed from the
                order's current status.
        """
        order = self.orders.get(order_id)
        if order is None:
            raise OrderNotFound(f"No order with id {order_id}")

        try:
            target = OrderStatus(new_status)
        except ValueError:
            allowed = ", ".join(s.value for s in OrderStatus)
            raise OrderValidationError(f"Unknown status {new_status!r}; expected one of {allowed}") from None
        if order.status == target:
            return order
        if target not in ALLOWED_TRANSITIONS[order.status]:
            raise InvalidStatusTransition(order.status, target)

        updated = self.orders.update_status(order_id, target)
        if updated is None:
            raise OrderNotFound(f"No order with id {order_id}")
        logger.info(
            "order status updated",
            extra={"order_id": str(order_id), "from_status": order.status.value, "to_status": target.value},
        )
        return updated
