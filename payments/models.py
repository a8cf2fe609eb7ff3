from __future__ import annotations

from django.db import models
from django.utils import timezone


class PaymentMethod(models.Model):
    class Kind(models.TextChoices):
        COD = "cod", "Pay on delivery"
        GATEWAY = "gateway", "Online gateway"

    code = models.SlugField(max_length=50, unique=True)
    name = models.CharField(max_length=200)
    kind = models.CharField(max_length=20, choices=Kind.choices, default=Kind.COD)
    provider = models.CharField(max_length=50, blank=True, default="")

    is_active = models.BooleanField(default=True)
    sort_order = models.IntegerField(default=0)

    instructions = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["sort_order", "code"]
        indexes = [
            models.Index(fields=["is_active", "sort_order"], name="payments_pm_active_sort_idx"),
        ]

    def __str__(self) -> str:
        return self.code

    @property
    def is_online(self) -> bool:
        return self.kind == self.Kind.GATEWAY


class PaymentSession(models.Model):
    """One online payment attempt for an order.

    Consumed once: `consumed_at` is set by whichever outcome (paid, failed,
    expired) reaches it first.
    """

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        SUCCEEDED = "succeeded", "Succeeded"
        FAILED = "failed", "Failed"
        EXPIRED = "expired", "Expired"

    order = models.OneToOneField(
        "checkout.Order",
        on_delete=models.CASCADE,
        related_name="payment_session",
    )
    order_code = models.CharField(max_length=40, unique=True)
    provider = models.CharField(max_length=50, default="vnpay")
    # Provider-side request id, where the provider asks for one.
    request_id = models.CharField(max_length=80, blank=True, default="")

    amount = models.DecimalField(max_digits=14, decimal_places=2)
    # Amount in the provider's integer unit (VNPay: x100, MoMo: whole VND).
    amount_minor = models.BigIntegerField()
    currency = models.CharField(max_length=3, default="VND")

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    expires_at = models.DateTimeField()

    params = models.JSONField(default=dict, blank=True)
    redirect_url = models.TextField(blank=True, default="")

    gateway_transaction_no = models.CharField(max_length=64, blank=True, default="")
    response_code = models.CharField(max_length=8, blank=True, default="")
    raw_response = models.JSONField(default=dict, blank=True)

    consumed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["status", "expires_at"], name="payments_ps_status_exp_idx"),
        ]

    def __str__(self) -> str:
        return f"payment:{self.order_code} {self.status}"

    def is_expired(self, *, now=None) -> bool:
        return (now or timezone.now()) >= self.expires_at
