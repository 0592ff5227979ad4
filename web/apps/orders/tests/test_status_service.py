"""Unit tests for ``OrderStatusService`` transitions."""

import dataclasses
import uuid

import pytest

from apps.orders.domain import (
    Address,
    BuyerKind,
    InvalidStatusTransition,
    Order,
    OrderNotFound,
    OrderStatus,
    OrderValidationError,
)
from apps.orders.services import OrderStatusService


class MemoryStore:
    def __init__(self, *orders):
        self.by_id = {o.id: o for o in orders}
        self.updates = 0

    def get(self, order_id):
        return self.by_id.get(str(order_id))

    def update_status(self, order_id, status):
        self.updates += 1
        order = dataclasses.replace(self.by_id[str(order_id)], status=status)
        self.by_id[order.id] = order
        return order


def make_order(status=OrderStatus.PENDING):
    return Order(
        id=str(uuid.uuid4()),
        buyer_kind=BuyerKind.USER,
        buyer_ref="u1",
        items=[],
        address=Address("A", "+8801700000000", "Dhaka"),
        amount_cents=1000,
        tracking_id=uuid.uuid4(),
        status=status,
    )


@pytest.mark.parametrize(
    "start,target",
    [
        (OrderStatus.PENDING, "Confirmed"),
        (OrderStatus.PENDING, "Cancelled"),
        (OrderStatus.CONFIRMED, "Shipped"),
        (OrderStatus.CONFIRMED, "Cancelled"),
        (OrderStatus.SHIPPED, "Delivered"),
    ],
)
def test_allowed_transitions(start, target):
    order = make_order(start)
    store = MemoryStore(order)
    out = OrderStatusService(store).update_status(order.id, target)
    assert out.status == OrderStatus(target)
    assert out.amount_cents == order.amount_cents


@pytest.mark.parametrize(
    "start,target",
    [
        (OrderStatus.PENDING, "Delivered"),
        (OrderStatus.SHIPPED, "Cancelled"),
        (OrderStatus.DELIVERED, "Pending"),
        (OrderStatus.CANCELLED, "Confirmed"),
    ],
)
def test_disallowed_transitions(start, target):
    order = make_order(start)
    store = MemoryStore(order)
    with pytest.raises(InvalidStatusTransition) as e:
        OrderStatusService(store).update_status(order.id, target)
    assert str(e.value) == "INVALID_STATUS_TRANSITION"
    assert store.updates == 0


def test_unknown_status_string_is_a_validation_error():
    order = make_order()
    with pytest.raises(OrderValidationError):
        OrderStatusService(MemoryStore(order)).update_status(order.id, "Shiped")


def test_unknown_order_is_not_found():
    with pytest.raises(OrderNotFound):
        OrderStatusService(MemoryStore()).update_status(uuid.uuid4(), "Confirmed")


def test_reapplying_current_status_is_a_noop():
    order = make_order(OrderStatus.SHIPPED)
    store = MemoryStore(order)
    out = OrderStatusService(store).update_status(order.id, "Shipped")
    assert out.status == OrderStatus.SHIPPED
    assert store.updates == 0


def test_unknown_order_wins_over_unknown_status():
    with pytest.raises(OrderNotFound):
        OrderStatusService(MemoryStore()).update_status(uuid.uuid4(), "Shiped")
