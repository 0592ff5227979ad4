"""Domain models, errors and ports for storefront orders.

This module contains the dataclasses used as DTOs between the HTTP layer,
the services and the storage adapters, the error taxonomy raised by the
order services, and the protocol definitions (ports) for the collaborators
the services depend on: the product catalog, the guest identity store and
the order store.

Nothing in here imports Django so the services can be exercised with
in-memory fakes.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Generic, List, Optional, Protocol, TypeVar, Union


PAYMENT_METHOD_COD = "COD"


# ---- Enums ----
class BuyerKind(str, Enum):
    """Which identity collection an order's ``buyer_ref`` resolves against."""

    USER = "User"
    GUEST = "GuestUser"


class OrderStatus(str, Enum):
    """Closed set of order states.

    Transitions allowed between them are listed in ``ALLOWED_TRANSITIONS``.
    """

    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}


# ---- Errors ----
class OrderError(ValueError):
    """Base class for order errors.

    ``str(err)`` is the short machine-readable code (e.g. ``DUPLICATE_ORDER``)
    and ``err.message`` carries the human-readable explanation.
    """

    code = "ORDER_ERROR"

    def __init__(self, message: str | None = None):
        super().__init__(self.code)
        self.message = message or self.code


class OrderValidationError(OrderError):
    code = "VALIDATION_ERROR"


class DuplicateOrder(OrderError):
    """An order with the same idempotency token already exists."""

    code = "DUPLICATE_ORDER"

    def __init__(self, token: str, tracking_id: uuid.UUID | None = None):
        super().__init__(f"An order was already submitted with token {token!r}")
        self.token = token
        self.tracking_id = tracking_id


class ResolutionError(OrderError):
    code = "PRODUCT_RESOLUTION_FAILED"


class ProductNotFound(ResolutionError):
    code = "PRODUCT_NOT_FOUND"

    def __init__(self, missing_ids: List[str]):
        super().__init__("Unknown product id(s): " + ", ".join(missing_ids))
        self.missing_ids = list(missing_ids)


class OrderNotFound(OrderError):
    code = "NOT_FOUND"


class InvalidStatusTransition(OrderError):
    code = "INVALID_STATUS_TRANSITION"

    def __init__(self, current: OrderStatus, requested: OrderStatus):
        super().__init__(f"Cannot move an order from {current.value} to {requested.value}")
        self.current = current
        self.requested = requested


# ---- Entities / DTOs ----
@dataclass(frozen=True)
class LineItemRequest:
    """A product requested by the client, before pricing."""

    product_id: str
    quantity: int
    size: Optional[str] = None


@dataclass(frozen=True)
class Product:
    """Catalog view of a product.

    ``image`` is kept exactly as the catalog stores it: a single reference,
    a list of references, or nothing.
    """

    id: str
    name: str
    price_cents: int
    image: Union[str, List[str], None] = None


@dataclass(frozen=True)
class PricedLineItem:
    """A line item with the name, price and images snapshotted at order time."""

    product_id: str
    name: str
    unit_price_cents: int
    quantity: int
    images: tuple
    size: Optional[str] = None

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity


@dataclass(frozen=True)
class Address:
    full_name: str
    phone: str
    full_address: str
    alternate_phone: Optional[str] = None


@dataclass(frozen=True)
class GuestUser:
    id: str
    full_name: str
    phone: str
    full_address: str
    alternate_phone: Optional[str] = None


@dataclass(frozen=True)
class GuestOrderRequest:
    """Everything an unauthenticated checkout submits."""

    full_name: str
    phone: str
    full_address: str
    items: List[LineItemRequest]
    idempotency_token: str
    alternate_phone: Optional[str] = None
    delivery_charge_cents: Optional[int] = None
    note: str = ""


@dataclass
class Order:
    """Order aggregate.

    Attributes:
        id: Storage identifier, or None until persisted.
        buyer_kind: Discriminates whether ``buyer_ref`` is a registered user
            id or a guest identity id.
        items: Priced line items in submission order.
        amount_cents: Server-computed total in integer cents.
        tracking_id: Public identifier used to look the order up without
            authentication.
        idempotency_token: Client token; unique across all orders when set.
    """

    id: Optional[str]
    buyer_kind: BuyerKind
    buyer_ref: str
    items: List[PricedLineItem]
    address: Address
    amount_cents: int
    tracking_id: uuid.UUID
    idempotency_token: Optional[str] = None
    note: str = ""
    delivery_charge_cents: Optional[int] = None
    payment_method: str = PAYMENT_METHOD_COD
    paid: bool = False
    status: OrderStatus = OrderStatus.PENDING
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class OrderView:
    """An order with its buyer and live catalog products joined in.

    ``buyer`` is None when the buyer was not requested. ``products`` maps a
    product id to the current catalog entry, or None when the product no
    longer exists.
    """

    order: Order
    buyer: Optional[dict] = None
    products: dict = field(default_factory=dict)


T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    items: List[T]
    count: int
    page: int
    page_size: int


# ---- Ports (DIP) ----
class CatalogPort(Protocol):
    """Read access to the product catalog."""

    def lookup(self, product_ids: List[str]) -> dict:
        """Fetch the products with the given ids.

        Args:
            product_ids: Ids to look up. Duplicates are allowed.

        Returns:
            dict[str, Product]: Found products keyed by id. Unknown ids are
            absent from the result rather than raising.
        """
        raise NotImplementedError()


class GuestStorePort(Protocol):
    def create_guest(
        self, full_name: str, phone: str, alternate_phone: Optional[str], full_address: str
    ) -> str:
        raise NotImplementedError()

    def get_guest(self, guest_id: str) -> Optional[GuestUser]:
        raise NotImplementedError()


class OrderStorePort(Protocol):
    """Persistence operations the order services rely on.

    ``create`` must raise ``DuplicateOrder`` when the storage uniqueness
    constraint on the idempotency token rejects the insert.
    """

    def find_by_token(self, token: str) -> Optional[Order]:
        raise NotImplementedError()

    def create(self, order: Order) -> Order:
        raise NotImplementedError()

    def get(self, order_id) -> Optional[Order]:
        raise NotImplementedError()

    def get_by_tracking_id(self, tracking_id) -> Optional[Order]:
        raise NotImplementedError()

    def list_all(self, page: int, page_size: int) -> Page:
        raise NotImplementedError()

    def list_for_buyer(self, kind: BuyerKind, ref: str, page: int, page_size: int) -> Page:
        raise NotImplementedError()

    def update_status(self, order_id, status: OrderStatus) -> Optional[Order]:
        raise NotImplementedError()
