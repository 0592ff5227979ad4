"""ORM repository tests: uniqueness, round-trips and guest identities."""

import uuid

import pytest

from apps.orders.domain import (
    Address,
    BuyerKind,
    DuplicateOrder,
    Order,
    OrderStatus,
    OrderValidationError,
    PricedLineItem,
)
from apps.orders.models import GuestUserModel, OrderModel
from apps.orders.repository import GuestIdentityStore, OrderRepository


def new_order(token="tok-1", buyer_ref="user-1"):
    return Order(
        id=None,
        buyer_kind=BuyerKind.USER,
        buyer_ref=buyer_ref,
        items=[
            PricedLineItem("TEE", "Basic Tee", 1500, 2, ("tee.png",), "M"),
            PricedLineItem("HOODIE", "Zip Hoodie", 4200, 1, ("f.png", "b.png")),
        ],
        address=Address("Karim", "+8801811111111", "Chattogram"),
        amount_cents=7200,
        tracking_id=uuid.uuid4(),
        idempotency_token=token,
    )


@pytest.mark.django_db
def test_create_round_trips_order_and_lines():
    repo = OrderRepository()
    stored = repo.create(new_order())

    assert stored.id is not None and stored.created_at is not None
    loaded = repo.get_by_tracking_id(stored.tracking_id)
    assert loaded.id == stored.id
    assert loaded.status == OrderStatus.PENDING
    assert [(i.product_id, i.images, i.size) for i in loaded.items] == [
        ("TEE", ("tee.png",), "M"),
        ("HOODIE", ("f.png", "b.png"), None),
    ]
    assert repo.find_by_token("tok-1").id == stored.id


@pytest.mark.django_db
def test_unique_token_constraint_raises_duplicate_order():
    repo = OrderRepository()
    first = repo.create(new_order("tok-dup"))
    with pytest.raises(DuplicateOrder) as e:
        repo.create(new_order("tok-dup"))
    assert e.value.tracking_id == first.tracking_id
    assert OrderModel.objects.count() == 1


@pytest.mark.django_db
def test_orders_without_token_do_not_collide():
    repo = OrderRepository()
    repo.create(new_order(None))
    repo.create(new_order(None))
    assert OrderModel.objects.filter(idempotency_token__isnull=True).count() == 2


@pytest.mark.django_db
def test_lookups_with_malformed_ids_return_none():
    repo = OrderRepository()
    assert repo.get("nope") is None
    assert repo.get_by_tracking_id("nope") is None
    assert repo.update_status("nope", OrderStatus.CONFIRMED) is None
    assert GuestIdentityStore().get_guest("nope") is None


@pytest.mark.django_db
def test_list_for_buyer_filters_by_kind_and_ref():
    repo = OrderRepository()
    repo.create(new_order("a", buyer_ref="user-1"))
    repo.create(new_order("b", buyer_ref="user-2"))
    page = repo.list_for_buyer(BuyerKind.USER, "user-1", 1, 10)
    assert page.count == 1
    assert page.items[0].buyer_ref == "user-1"
    assert repo.list_for_buyer(BuyerKind.GUEST, "user-1", 1, 10).count == 0


@pytest.mark.django_db
def test_out_of_range_page_returns_last_page():
    repo = OrderRepository()
    for i in range(3):
        repo.create(new_order(f"t{i}"))
    page = repo.list_all(page=9, page_size=2)
    assert page.page == 2
    assert len(page.items) == 1


@pytest.mark.django_db
def test_guest_store_inserts_a_new_row_every_time():
    store = GuestIdentityStore()
    a = store.create_guest("Rahim", "+8801712345678", None, "Dhaka")
    b = store.create_guest("Rahim", "+8801712345678", None, "Dhaka")
    assert a != b
    assert GuestUserModel.objects.count() == 2
    guest = store.get_guest(a)
    assert guest.full_name == "Rahim"
    assert guest.alternate_phone is None


@pytest.mark.django_db
@pytest.mark.parametrize("blank", ["full_name", "phone", "full_address"])
def test_guest_store_rejects_blank_fields(blank):
    fields = {"full_name": "Rahim", "phone": "+8801712345678", "alternate_phone": None, "full_address": "Dhaka"}
    fields[blank] = " "
    with pytest.raises(OrderValidationError):
        GuestIdentityStore().create_guest(**fields)
    assert GuestUserModel.objects.count() == 0
