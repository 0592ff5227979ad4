import uuid
from django.db import models


class GuestUserModel(models.Model):
    # Created once per guest order; never looked up by phone or name
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    full_name = models.CharField(max_length=200)
    phone = models.CharField(max_length=32)
    alternate_phone = models.CharField(max_length=32, null=True, blank=True)
    full_address = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "guest_users"


class OrderModel(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    class BuyerKind(models.TextChoices):
        USER = "User"
        GUEST = "GuestUser"

    class Status(models.TextChoices):
        PENDING = "Pending"
        CONFIRMED = "Confirmed"
        SHIPPED = "Shipped"
        DELIVERED = "Delivered"
        CANCELLED = "Cancelled"

    # Resolves against the registered-user directory or guest_users, per buyer_kind
    buyer_kind = models.CharField(max_length=16, choices=BuyerKind.choices)
    buyer_ref = models.CharField(max_length=64)

    # Shipping address snapshot
    full_name = models.CharField(max_length=200)
    phone = models.CharField(max_length=32)
    alternate_phone = models.CharField(max_length=32, null=True, blank=True)
    full_address = models.TextField()

    note = models.TextField(blank=True, default="")
    amount_cents = models.PositiveIntegerField(default=0)
    delivery_charge_cents = models.PositiveIntegerField(null=True, blank=True)
    payment_method = models.CharField(max_length=16, default="COD")
    paid = models.BooleanField(default=False)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)

    tracking_id = models.UUIDField(unique=True, default=uuid.uuid4, editable=False)
    idempotency_token = models.CharField(max_length=200, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(fields=["idempotency_token"], name="ux_orders_idempotency_token"),
        ]
        indexes = [
            models.Index(fields=["buyer_kind", "buyer_ref"], name="ix_orders_buyer"),
        ]


class OrderLineModel(models.Model):
    order = models.ForeignKey(OrderModel, related_name="lines", on_delete=models.CASCADE)
    position = models.PositiveIntegerField()

    product_id = models.CharField(max_length=64)
    name = models.CharField(max_length=255)
    unit_price_cents = models.PositiveIntegerField()
    quantity = models.PositiveIntegerField()
    size = models.CharField(max_length=32, null=True, blank=True)
    images = models.JSONField(default=list)

    class Meta:
        db_table = "order_lines"
        ordering = ["position"]
        constraints = [
            models.UniqueConstraint(fields=["order", "position"], name="ux_order_lines_position"),
        ]
