from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("catalog", "0001_initial"),
        ("payments", "0001_initial"),
        ("promotions", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Cart",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("session_key", models.CharField(blank=True, default="", max_length=40)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("user", models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name="cart", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "constraints": [
                    models.CheckConstraint(condition=models.Q(models.Q(("user", None), _negated=True), models.Q(("session_key", ""), _negated=True), _connector="OR"), name="chk_cart_user_or_session"),
                    models.UniqueConstraint(condition=models.Q(("session_key", ""), _negated=True), fields=("session_key",), name="uniq_cart_session_key"),
                ],
            },
        ),
        migrations.CreateModel(
            name="CartItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("qty", models.PositiveIntegerField(default=1)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("cart", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="items", to="checkout.cart")),
                ("variant", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="cart_items", to="catalog.variant")),
            ],
            options={
                "ordering": ["-updated_at", "-id"],
                "constraints": [
                    models.UniqueConstraint(fields=("cart", "variant"), name="uniq_cart_variant"),
                    models.CheckConstraint(condition=models.Q(("qty__gte", 1)), name="chk_cart_qty_gte_1"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("order_code", models.CharField(max_length=40, unique=True)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("processing", "Processing"), ("shipped", "Shipped"), ("delivered", "Delivered"), ("cancelled", "Cancelled")], default="pending", max_length=20)),
                ("payment_status", models.CharField(choices=[("unpaid", "Unpaid"), ("paid", "Paid")], default="unpaid", max_length=20)),
                ("payment_kind", models.CharField(blank=True, default="", max_length=20)),
                ("voucher_code", models.CharField(blank=True, default="", max_length=40)),
                ("currency", models.CharField(default="VND", max_length=3)),
                ("subtotal", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("discount_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("shipping_fee", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("final_total", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("shipping_full_name", models.CharField(blank=True, default="", max_length=200)),
                ("shipping_phone", models.CharField(blank=True, default="", max_length=32)),
                ("shipping_line1", models.CharField(blank=True, default="", max_length=255)),
                ("shipping_ward", models.CharField(blank=True, default="", max_length=120)),
                ("shipping_district", models.CharField(blank=True, default="", max_length=120)),
                ("shipping_city", models.CharField(blank=True, default="", max_length=120)),
                ("shipping_country_code", models.CharField(blank=True, default="", max_length=2)),
                ("gateway_transaction_no", models.CharField(blank=True, default="", max_length=64)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("cancel_reason", models.CharField(blank=True, default="", max_length=255)),
                ("cancelled_by", models.CharField(blank=True, choices=[("user", "User"), ("admin", "Admin"), ("system", "System")], default="", max_length=20)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("payment_method", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="orders", to="payments.paymentmethod")),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="orders", to=settings.AUTH_USER_MODEL)),
                ("voucher", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="orders", to="promotions.voucher")),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["user", "-created_at"], name="checkout_order_user_idx"),
                    models.Index(fields=["status", "-created_at"], name="checkout_order_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("final_total", models.F("subtotal") - models.F("discount_amount") + models.F("shipping_fee"))), name="chk_order_final_total"),
                    models.CheckConstraint(condition=models.Q(("discount_amount__gte", 0), ("shipping_fee__gte", 0)), name="chk_order_amounts_gte_0"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("sku", models.CharField(max_length=64)),
                ("name", models.CharField(max_length=255)),
                ("color", models.CharField(blank=True, default="", max_length=80)),
                ("size", models.CharField(blank=True, default="", max_length=40)),
                ("unit_price", models.DecimalField(decimal_places=2, max_digits=14)),
                ("qty", models.PositiveIntegerField()),
                ("line_total", models.DecimalField(decimal_places=2, max_digits=14)),
                ("order", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="lines", to="checkout.order")),
                ("variant", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="order_lines", to="catalog.variant")),
            ],
            options={
                "ordering": ["id"],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("qty__gte", 1)), name="chk_order_line_qty_gte_1"),
                ],
            },
        ),
    ]
