import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="GuestUserModel",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("full_name", models.CharField(max_length=200)),
                ("phone", models.CharField(max_length=32)),
                ("alternate_phone", models.CharField(blank=True, max_length=32, null=True)),
                ("full_address", models.TextField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "db_table": "guest_users",
            },
        ),
        migrations.CreateModel(
            name="OrderModel",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("buyer_kind", models.CharField(choices=[("User", "User"), ("GuestUser", "Guest")], max_length=16)),
                ("buyer_ref", models.CharField(max_length=64)),
                ("full_name", models.CharField(max_length=200)),
                ("phone", models.CharField(max_length=32)),
                ("alternate_phone", models.CharField(blank=True, max_length=32, null=True)),
                ("full_address", models.TextField()),
                ("note", models.TextField(blank=True, default="")),
                ("amount_cents", models.PositiveIntegerField(default=0)),
                ("delivery_charge_cents", models.PositiveIntegerField(blank=True, null=True)),
                ("payment_method", models.CharField(default="COD", max_length=16)),
                ("paid", models.BooleanField(default=False)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("Pending", "Pending"),
                            ("Confirmed", "Confirmed"),
                            ("Shipped", "Shipped"),
                            ("Delivered", "Delivered"),
                            ("Cancelled", "Cancelled"),
                        ],
                        default="Pending",
                        max_length=16,
                    ),
                ),
                ("tracking_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("idempotency_token", models.CharField(blank=True, max_length=200, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "orders",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="OrderLineModel",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("position", models.PositiveIntegerField()),
                ("product_id", models.CharField(max_length=64)),
                ("name", models.CharField(max_length=255)),
                ("unit_price_cents", models.PositiveIntegerField()),
                ("quantity", models.PositiveIntegerField()),
                ("size", models.CharField(blank=True, max_length=32, null=True)),
                ("images", models.JSONField(default=list)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lines",
                        to="orders.ordermodel",
                    ),
                ),
            ],
            options={
                "db_table": "order_lines",
                "ordering": ["position"],
            },
        ),
        migrations.AddConstraint(
            model_name="ordermodel",
            constraint=models.UniqueConstraint(fields=("idempotency_token",), name="ux_orders_idempotency_token"),
        ),
        migrations.AddIndex(
            model_name="ordermodel",
            index=models.Index(fields=["buyer_kind", "buyer_ref"], name="ix_orders_buyer"),
        ),
        migrations.AddConstraint(
            model_name="orderlinemodel",
            constraint=models.UniqueConstraint(fields=("order", "position"), name="ux_order_lines_position"),
        ),
    ]
