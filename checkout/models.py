from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import models


class Cart(models.Model):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.CASCADE,
        related_name="cart",
    )
    # Anonymous carts are stored per Django session.
    session_key = models.CharField(max_length=40, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=(~models.Q(user=None) | ~models.Q(session_key="")),
                name="chk_cart_user_or_session",
            ),
            models.UniqueConstraint(
                fields=["session_key"],
                condition=~models.Q(session_key=""),
                name="uniq_cart_session_key",
            ),
        ]

    def __str__(self) -> str:
        if self.user_id:
            return f"cart:user:{self.user_id}"
        if self.session_key:
            return f"cart:session:{self.session_key}"
        return f"cart:{self.id}"


class CartItem(models.Model):
    cart = models.ForeignKey(
        Cart, on_delete=models.CASCADE, related_name="items")
    variant = models.ForeignKey(
        "catalog.Variant", on_delete=models.CASCADE, related_name="cart_items"
    )
    qty = models.PositiveIntegerField(default=1)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["cart", "variant"], name="uniq_cart_variant"),
            models.CheckConstraint(condition=models.Q(
                qty__gte=1), name="chk_cart_qty_gte_1"),
        ]
        ordering = ["-updated_at", "-id"]

    def __str__(self) -> str:
        return f"cart:{self.cart_id} variant:{self.variant_id} x{self.qty}"


class Order(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        PROCESSING = "processing", "Processing"
        SHIPPED = "shipped", "Shipped"
        DELIVERED = "delivered", "Delivered"
        CANCELLED = "cancelled", "Cancelled"

    class PaymentStatus(models.TextChoices):
        UNPAID = "unpaid", "Unpaid"
        PAID = "paid", "Paid"

    class CancelledBy(models.TextChoices):
        USER = "user", "User"
        ADMIN = "admin", "Admin"
        SYSTEM = "system", "System"

    order_code = models.CharField(max_length=40, unique=True)

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="orders",
    )

    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PENDING)
    payment_status = models.CharField(
        max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.UNPAID)

    payment_method = models.ForeignKey(
        "payments.PaymentMethod",
        on_delete=models.PROTECT,
        related_name="orders",
    )
    # Snapshot of PaymentMethod.kind at checkout time.
    payment_kind = models.CharField(max_length=20, blank=True, default="")

    voucher = models.ForeignKey(
        "promotions.Voucher",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="orders",
    )
    voucher_code = models.CharField(max_length=40, blank=True, default="")

    currency = models.CharField(max_length=3, default="VND")

    subtotal = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00"))
    discount_amount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00"))
    shipping_fee = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00"))
    final_total = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00"))

    # Shipping address snapshot (copied from accounts.UserAddress)
    shipping_full_name = models.CharField(
        max_length=200, blank=True, default="")
    shipping_phone = models.CharField(max_length=32, blank=True, default="")
    shipping_line1 = models.CharField(max_length=255, blank=True, default="")
    shipping_ward = models.CharField(max_length=120, blank=True, default="")
    shipping_district = models.CharField(
        max_length=120, blank=True, default="")
    shipping_city = models.CharField(max_length=120, blank=True, default="")
    shipping_country_code = models.CharField(
        max_length=2, blank=True, default="")

    gateway_transaction_no = models.CharField(
        max_length=64, blank=True, default="")
    paid_at = models.DateTimeField(null=True, blank=True)

    cancel_reason = models.CharField(max_length=255, blank=True, default="")
    cancelled_by = models.CharField(
        max_length=20, choices=CancelledBy.choices, blank=True, default="")
    cancelled_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["user", "-created_at"], name="checkout_order_user_idx"),
            models.Index(fields=["status", "-created_at"], name="checkout_order_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(
                    final_total=models.F("subtotal")
                    - models.F("discount_amount")
                    + models.F("shipping_fee")
                ),
                name="chk_order_final_total",
            ),
            models.CheckConstraint(
                condition=models.Q(discount_amount__gte=0) & models.Q(
                    shipping_fee__gte=0),
                name="chk_order_amounts_gte_0",
            ),
        ]
        ordering = ["-created_at", "-id"]

    def __str__(self) -> str:
        return f"order:{self.order_code} user:{self.user_id} {self.status}"

    @property
    def is_terminal(self) -> bool:
        return self.status in {self.Status.DELIVERED, self.Status.CANCELLED}


class OrderLine(models.Model):
    order = models.ForeignKey(
        Order, on_delete=models.CASCADE, related_name="lines")
    # Kept nullable so deleting a variant never rewrites order history.
    variant = models.ForeignKey(
        "catalog.Variant",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="order_lines",
    )

    sku = models.CharField(max_length=64)
    name = models.CharField(max_length=255)
    color = models.CharField(max_length=80, blank=True, default="")
    size = models.CharField(max_length=40, blank=True, default="")

    unit_price = models.DecimalField(max_digits=14, decimal_places=2)
    qty = models.PositiveIntegerField()
    line_total = models.DecimalField(max_digits=14, decimal_places=2)

    class Meta:
        constraints = [
            models.CheckConstraint(condition=models.Q(
                qty__gte=1), name="chk_order_line_qty_gte_1"),
        ]
        ordering = ["id"]

    def __str__(self) -> str:
        return f"order:{self.order_id} {self.sku} x{self.qty}"
