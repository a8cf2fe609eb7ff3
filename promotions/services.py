from __future__ import annotations

import logging
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.db.models import F, Q
from django.utils import timezone

from api.errors import (
    VoucherAlreadyUsed,
    VoucherExhausted,
    VoucherExpired,
    VoucherNotFound,
    VoucherOutOfRange,
)
from pricing.services import quantize_money

from .models import Voucher, VoucherRedemption

logger = logging.getLogger(__name__)


def normalize_code(code: str) -> str:
    return (code or "").strip().lower()


class VoucherLedger:
    """Voucher eligibility and the one-voucher-per-user redemption set.

    `validate` is advisory and may be called any number of times. `redeem` is
    binding and runs once, when the order is created.
    """

    def get(self, code: str) -> Voucher:
        c = normalize_code(code)
        voucher = Voucher.objects.filter(code__iexact=c).first() if c else None
        if voucher is None:
            raise VoucherNotFound(f"Voucher {code!r} not found", voucher_code=c)
        return voucher

    def has_redeemed(self, *, user_id: int) -> bool:
        return VoucherRedemption.objects.filter(user_id=int(user_id)).exists()

    def validate(self, *, code: str, user_id: int, order_value: Decimal, now=None) -> Voucher:
        voucher = self.get(code)
        order_value = Decimal(order_value)

        if not voucher.is_valid_now(now=now or timezone.now()):
            raise VoucherExpired(voucher_code=voucher.code)

        if order_value < Decimal(voucher.min_order_value):
            raise VoucherOutOfRange(
                f"Order value must be at least {voucher.min_order_value}",
                voucher_code=voucher.code,
            )
        if voucher.max_order_value is not None and order_value > Decimal(voucher.max_order_value):
            raise VoucherOutOfRange(
                f"Order value must not exceed {voucher.max_order_value}",
                voucher_code=voucher.code,
            )

        if self.has_redeemed(user_id=user_id):
            raise VoucherAlreadyUsed(voucher_code=voucher.code, user_id=int(user_id))

        if voucher.quantity is not None and int(voucher.quantity) <= 0:
            raise VoucherExhausted(voucher_code=voucher.code)

        return voucher

    def compute_discount(self, voucher: Voucher, order_value: Decimal) -> Decimal:
        order_value = Decimal(order_value)
        if order_value <= 0:
            return Decimal("0.00")

        value = Decimal(voucher.value)
        if voucher.discount_type == Voucher.DiscountType.PERCENTAGE:
            discount = order_value * value / Decimal(100)
            if voucher.max_discount_amount is not None:
                discount = min(discount, Decimal(voucher.max_discount_amount))
        else:
            discount = min(value, order_value)

        discount = max(Decimal("0"), min(discount, order_value))
        return quantize_money(discount)

    def redeem(self, voucher: Voucher, *, user_id: int, order=None) -> VoucherRedemption:
        """Consumes the user's single voucher use and one unit of quantity.

        Both writes are conditional at the database; losing either race raises
        and rolls back the other.
        """
        with transaction.atomic():
            try:
                with transaction.atomic():
                    redemption = VoucherRedemption.objects.create(
                        user_id=int(user_id),
                        voucher=voucher,
                        order=order,
                    )
            except IntegrityError as exc:
                raise VoucherAlreadyUsed(voucher_code=voucher.code, user_id=int(user_id)) from exc

            # NULL quantity stays NULL under the decrement.
            updated = (
                Voucher.objects.filter(id=voucher.id, is_active=True)
                .filter(Q(quantity__isnull=True) | Q(quantity__gt=0))
                .update(quantity=F("quantity") - 1, updated_at=timezone.now())
            )
            if updated != 1:
                raise VoucherExhausted(voucher_code=voucher.code)

        logger.info(
            "Voucher redeemed",
            extra={"voucher_code": voucher.code, "user_id": int(user_id)},
        )
        return redemption

    def attach_order(self, redemption: VoucherRedemption, order) -> None:
        VoucherRedemption.objects.filter(pk=redemption.pk).update(order=order)
        redemption.order = order
