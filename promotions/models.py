from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.utils import timezone


class Voucher(models.Model):
    class DiscountType(models.TextChoices):
        PERCENTAGE = "percentage", "Percentage"
        FIXED = "fixed", "Fixed amount"

    code = models.SlugField(max_length=40, unique=True)
    name = models.CharField(max_length=150, blank=True, default="")

    discount_type = models.CharField(max_length=20, choices=DiscountType.choices)
    value = models.DecimalField(max_digits=14, decimal_places=2)

    # Order value bounds; max is open-ended when empty.
    min_order_value = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    max_order_value = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    max_discount_amount = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)

    # Remaining redemptions; empty means unlimited.
    quantity = models.PositiveIntegerField(null=True, blank=True)

    is_active = models.BooleanField(default=True)
    start_at = models.DateTimeField(null=True, blank=True)
    end_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["code"]
        constraints = [
            models.CheckConstraint(condition=models.Q(value__gte=0), name="chk_voucher_value_gte_0"),
        ]

    def clean(self):
        super().clean()
        # Codes are matched case-insensitively; stored lowercase.
        self.code = (self.code or "").strip().lower()

    def save(self, *args, **kwargs):
        self.code = (self.code or "").strip().lower()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return self.code

    def is_valid_now(self, *, now=None) -> bool:
        now = now or timezone.now()
        if not self.is_active:
            return False
        if self.start_at and now < self.start_at:
            return False
        if self.end_at and now > self.end_at:
            return False
        return True


class VoucherRedemption(models.Model):
    """One row per user who has ever redeemed a voucher.

    The unique user column is the global usage set: a second redemption by the
    same user fails at the database, whichever voucher it targets.
    """

    user = models.OneToOneField(
        "accounts.User",
        on_delete=models.CASCADE,
        related_name="voucher_redemption",
    )
    voucher = models.ForeignKey(Voucher, on_delete=models.PROTECT, related_name="redemptions")
    order = models.OneToOneField(
        "checkout.Order",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="voucher_redemption",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["voucher", "-created_at"], name="promo_redemption_voucher_idx"),
        ]

    def __str__(self) -> str:
        return f"voucher:{self.voucher_id} user:{self.user_id} order:{self.order_id}"
