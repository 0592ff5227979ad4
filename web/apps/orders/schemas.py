"""Pydantic schemas for orders.

This module exposes the request validation schemas used by the orders API
and the read schemas that shape order responses.
"""

import re
import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .domain import Address, GuestOrderRequest, LineItemRequest, OrderView


PHONE_RE = re.compile(r"^\+?[0-9][0-9 ()-]{5,31}$")


def describe_validation_error(exc: ValidationError) -> str:
    """Flatten pydantic errors into one human-readable sentence."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "body"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


def _validate_phone(v: Optional[str]) -> Optional[str]:
    if v is None or v == "":
        return v
    if not PHONE_RE.match(v):
        raise ValueError("Invalid phone number")
    return v


class _In(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)


class LineItemIn(_In):
    """Input schema for a single requested product.

    Attributes:
        product_id: Catalog id of the product.
        quantity: Positive number of units.
        size: Optional size label (e.g. "M", "42").
    """

    product_id: str = Field(min_length=1, max_length=64)
    quantity: int = Field(gt=0)
    size: Optional[str] = Field(default=None, max_length=32)

    def to_domain(self) -> LineItemRequest:
        return LineItemRequest(product_id=self.product_id, quantity=self.quantity, size=self.size or None)


class AddressIn(_In):
    full_name: str = Field(min_length=1, max_length=200)
    phone: str = Field(min_length=1, max_length=32)
    alternate_phone: Optional[str] = Field(default=None, max_length=32)
    full_address: str = Field(min_length=1)

    @field_validator("phone", "alternate_phone")
    @classmethod
    def validate_phones(cls, v: Optional[str]) -> Optional[str]:
        return _validate_phone(v)

    def to_domain(self) -> Address:
        return Address(
            full_name=self.full_name,
            phone=self.phone,
            full_address=self.full_address,
            alternate_phone=self.alternate_phone or None,
        )


class GuestOrderIn(_In):
    """Schema for a guest checkout.

    Every field except ``alternate_phone``, ``delivery_charge_cents`` and
    ``note`` is required. ``idempotency_token`` is generated by the client
    once per logical submission and reused on retries.
    """

    full_name: str = Field(min_length=1, max_length=200)
    phone: str = Field(min_length=1, max_length=32)
    alternate_phone: Optional[str] = Field(default=None, max_length=32)
    full_address: str = Field(min_length=1)
    items: list[LineItemIn] = Field(min_length=1)
    delivery_charge_cents: Optional[int] = Field(default=None, ge=0)
    note: Optional[str] = Field(default=None, max_length=2000)
    idempotency_token: str = Field(min_length=1, max_length=200)

    @field_validator("phone", "alternate_phone")
    @classmethod
    def validate_phones(cls, v: Optional[str]) -> Optional[str]:
        return _validate_phone(v)

    def to_domain(self) -> GuestOrderRequest:
        return GuestOrderRequest(
            full_name=self.full_name,
            phone=self.phone,
            alternate_phone=self.alternate_phone or None,
            full_address=self.full_address,
            items=[i.to_domain() for i in self.items],
            idempotency_token=self.idempotency_token,
            delivery_charge_cents=self.delivery_charge_cents,
            note=self.note or "",
        )


class PlaceOrderIn(_In):
    """Schema for an authenticated customer's order."""

    items: list[LineItemIn] = Field(min_length=1)
    address: AddressIn
    note: Optional[str] = Field(default=None, max_length=2000)
    idempotency_token: Optional[str] = Field(default=None, min_length=1, max_length=200)


class StatusUpdateIn(_In):
    order_id: uuid.UUID
    status: str = Field(min_length=1, max_length=32)


class PageQuery(BaseModel):
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1)


# ---- Read schemas ----
class ProductOut(BaseModel):
    id: str
    name: str
    price_cents: int
    image: Optional[str | list[str]] = None


class LineItemOut(BaseModel):
    product_id: str
    name: str
    unit_price_cents: int
    quantity: int
    size: Optional[str] = None
    images: list[str]
    product: Optional[ProductOut] = None


class AddressOut(BaseModel):
    full_name: str
    phone: str
    alternate_phone: Optional[str] = None
    full_address: str


class OrderReadDTO(BaseModel):
    id: str
    tracking_id: uuid.UUID
    buyer_kind: str
    buyer: Optional[dict] = None
    items: list[LineItemOut]
    address: AddressOut
    note: str
    amount_cents: int
    delivery_charge_cents: Optional[int] = None
    payment_method: str
    paid: bool
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_view(cls, view: OrderView) -> "OrderReadDTO":
        o = view.order
        items = []
        for it in o.items:
            live = view.products.get(it.product_id)
            items.append(
                LineItemOut(
                    product_id=it.product_id,
                    name=it.name,
                    unit_price_cents=it.unit_price_cents,
                    quantity=it.quantity,
                    size=it.size,
                    images=list(it.images),
                    product=(
                        ProductOut(id=live.id, name=live.name, price_cents=live.price_cents, image=live.image)
                        if live is not None
                        else None
                    ),
                )
            )
        return cls(
            id=o.id,
            tracking_id=o.tracking_id,
            buyer_kind=o.buyer_kind.value,
            buyer=view.buyer,
            items=items,
            address=AddressOut(
                full_name=o.address.full_name,
                phone=o.address.phone,
                alternate_phone=o.address.alternate_phone,
                full_address=o.address.full_address,
            ),
            note=o.note,
            amount_cents=o.amount_cents,
            delivery_charge_cents=o.delivery_charge_cents,
            payment_method=o.payment_method,
            paid=o.paid,
            status=o.status.value,
            created_at=o.created_at,
            updated_at=o.updated_at,
        )
