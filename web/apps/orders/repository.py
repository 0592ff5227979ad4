"""Repository layer for persisting orders and guest identities.

This module implements the ``OrderStorePort`` and ``GuestStorePort``
protocols on top of the Django ORM, mapping between ORM rows and the
domain dataclasses so the services never see model instances.
"""

import dataclasses
import uuid
from typing import Optional

from django.core.paginator import Paginator
from django.db import IntegrityError, transaction
from django.utils import timezone

from .domain import (
    Address,
    BuyerKind,
    DuplicateOrder,
    GuestUser,
    Order,
    OrderStatus,
    OrderValidationError,
    Page,
    PricedLineItem,
)
from .models import GuestUserModel, OrderLineModel, OrderModel


def _as_uuid(value) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def _to_domain(obj: OrderModel) -> Order:
    items = [
        PricedLineItem(
            product_id=line.product_id,
            name=line.name,
            unit_price_cents=line.unit_price_cents,
            quantity=line.quantity,
            images=tuple(line.images),
            size=line.size,
        )
        for line in obj.lines.all()
    ]
    return Order(
        id=str(obj.id),
        buyer_kind=BuyerKind(obj.buyer_kind),
        buyer_ref=obj.buyer_ref,
        items=items,
        address=Address(
            full_name=obj.full_name,
            phone=obj.phone,
            full_address=obj.full_address,
            alternate_phone=obj.alternate_phone,
        ),
        amount_cents=obj.amount_cents,
        tracking_id=obj.tracking_id,
        idempotency_token=obj.idempotency_token,
        note=obj.note,
        delivery_charge_cents=obj.delivery_charge_cents,
        payment_method=obj.payment_method,
        paid=obj.paid,
        status=OrderStatus(obj.status),
        created_at=obj.created_at,
        updated_at=obj.updated_at,
    )


class OrderRepository:
    """Repository that persists Order domain objects using Django ORM.

    The idempotency token column carries the ``ux_orders_idempotency_token``
    unique constraint; ``create`` turns a violation of it into
    ``DuplicateOrder``.
    """

    def _queryset(self):
        return OrderModel.objects.prefetch_related("lines")

    def find_by_token(self, token: str) -> Optional[Order]:
        obj = self._queryset().filter(idempotency_token=token).first()
        return _to_domain(obj) if obj else None

    def create(self, order: Order) -> Order:
        """Persist a new order and its line items.

        The insert runs in a nested savepoint so a constraint violation only
        rolls back this block and leaves any enclosing transaction usable.

        Args:
            order: Domain ``Order`` with ``id`` unset.

        Returns:
            Order: A copy of ``order`` with ``id`` and timestamps filled in.

        Raises:
            DuplicateOrder: If another order already holds the token.
            IntegrityError: For any other constraint violation.
        """
        try:
            with transaction.atomic():
                obj = OrderModel.objects.create(
                    buyer_kind=order.buyer_kind.value,
                    buyer_ref=order.buyer_ref,
                    full_name=order.address.full_name,
                    phone=order.address.phone,
                    alternate_phone=order.address.alternate_phone,
                    full_address=order.address.full_address,
                    note=order.note,
                    amount_cents=order.amount_cents,
                    delivery_charge_cents=order.delivery_charge_cents,
                    payment_method=order.payment_method,
                    paid=order.paid,
                    status=order.status.value,
                    tracking_id=order.tracking_id,
                    idempotency_token=order.idempotency_token,
                )
                OrderLineModel.objects.bulk_create(
                    [
                        OrderLineModel(
                            order=obj,
                            position=pos,
                            product_id=it.product_id,
                            name=it.name,
                            unit_price_cents=it.unit_price_cents,
                            quantity=it.quantity,
                            size=it.size,
                            images=list(it.images),
                        )
                        for pos, it in enumerate(order.items)
                    ]
                )
        except IntegrityError:
            token = order.idempotency_token
            if token:
                existing = OrderModel.objects.filter(idempotency_token=token).first()
                if existing is not None:
                    raise DuplicateOrder(token, existing.tracking_id) from None
            raise

        return dataclasses.replace(
            order, id=str(obj.id), created_at=obj.created_at, updated_at=obj.updated_at
        )

    def get(self, order_id) -> Optional[Order]:
        oid = _as_uuid(order_id)
        if oid is None:
            return None
        obj = self._queryset().filter(id=oid).first()
        return _to_domain(obj) if obj else None

    def get_by_tracking_id(self, tracking_id) -> Optional[Order]:
        tid = _as_uuid(tracking_id)
        if tid is None:
            return None
        obj = self._queryset().filter(tracking_id=tid).first()
        return _to_domain(obj) if obj else None

    def _page(self, qs, page: int, page_size: int) -> Page:
        p = Paginator(qs, page_size)
        page_obj = p.get_page(page)
        return Page(
            items=[_to_domain(o) for o in page_obj.object_list],
            count=p.count,
            page=page_obj.number,
            page_size=page_size,
        )

    def list_all(self, page: int, page_size: int) -> Page:
        return self._page(self._queryset().order_by("-created_at", "-id"), page, page_size)

    def list_for_buyer(self, kind: BuyerKind, ref: str, page: int, page_size: int) -> Page:
        qs = self._queryset().filter(buyer_kind=kind.value, buyer_ref=ref).order_by("-created_at", "-id")
        return self._page(qs, page, page_size)

    def update_status(self, order_id, status: OrderStatus) -> Optional[Order]:
        """Overwrite only the status column (and ``updated_at``).

        Returns:
            Order | None: The refreshed order, or None if ``order_id`` is
            unknown.
        """
        oid = _as_uuid(order_id)
        if oid is None:
            return None
        # .update() skips auto_now, so updated_at is set explicitly
        changed = OrderModel.objects.filter(id=oid).update(status=status.value, updated_at=timezone.now())
        if not changed:
            return None
        return self.get(oid)


class GuestIdentityStore:
    """Creates and reads ephemeral guest buyer records."""

    def create_guest(self, full_name: str, phone: str, alternate_phone: Optional[str], full_address: str) -> str:
        """Insert a new guest identity and return its id as a string.

        A new row is created on every call, even for a returning buyer.

        Raises:
            OrderValidationError: If full_name, phone or full_address is blank.
        """
        for name, value in (("full_name", full_name), ("phone", phone), ("full_address", full_address)):
            if not value or not str(value).strip():
                raise OrderValidationError(f"{name} is required")
        obj = GuestUserModel.objects.create(
            full_name=full_name,
            phone=phone,
            alternate_phone=alternate_phone or None,
            full_address=full_address,
        )
        return str(obj.id)

    def get_guest(self, guest_id: str) -> Optional[GuestUser]:
        gid = _as_uuid(guest_id)
        if gid is None:
            return None
        obj = GuestUserModel.objects.filter(id=gid).first()
        if obj is None:
            return None
        return GuestUser(
            id=str(obj.id),
            full_name=obj.full_name,
            phone=obj.phone,
            full_address=obj.full_address,
            alternate_phone=obj.alternate_phone,
        )
