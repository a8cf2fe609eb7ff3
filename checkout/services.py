from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from django.db import transaction

from accounts.models import UserAddress
from api.errors import (
    AddressInvalid,
    CartEmpty,
    InsufficientStock,
    PaymentMethodInvalid,
    ProductUnavailable,
)
from catalog.services import StockLine
from payments.models import PaymentMethod
from pricing.services import PriceBreakdown

from .carts import CartLine, CartSource
from .models import Order

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutResult:
    order: Order
    payment_url: str | None = None


@dataclass(frozen=True)
class VoucherCheck:
    code: str
    subtotal: Decimal
    discount_amount: Decimal


class CheckoutOrchestrator:
    """Turns a cart into a pending order.

    Validation and pricing touch nothing. Stock is reserved next; from there
    until the order row exists, any failure hands the reservation back before
    the error reaches the caller.
    """

    def __init__(self, *, stock, vouchers, pricing, orders, gateway):
        self.stock = stock
        self.vouchers = vouchers
        self.pricing = pricing
        self.orders = orders
        self.gateway = gateway

    def load_lines(self, cart: CartSource) -> list[CartLine]:
        lines = cart.lines()
        if not lines:
            raise CartEmpty()

        wanted: dict[int, int] = {}
        for ln in lines:
            v = ln.variant
            if not v.is_active or not v.product.is_active:
                raise ProductUnavailable(
                    f"Item {v.sku} is no longer available",
                    variant_id=v.id,
                    sku=v.sku,
                )
            wanted[v.id] = wanted.get(v.id, 0) + int(ln.qty)

        # Advisory only; the reservation is what actually guards stock.
        for ln in lines:
            v = ln.variant
            if int(v.stock) < wanted[v.id]:
                raise InsufficientStock(
                    f"Insufficient stock for item {v.sku}",
                    variant_id=v.id,
                    sku=v.sku,
                )
        return lines

    def resolve_address(self, user, address_id) -> UserAddress:
        if address_id is None:
            raise AddressInvalid("Shipping address is required")
        address = UserAddress.objects.filter(id=int(address_id), user=user).first()
        if address is None:
            raise AddressInvalid("Shipping address not found", address_id=address_id)
        if not (address.line1 or "").strip() or not (address.city or "").strip():
            raise AddressInvalid("Shipping address is incomplete", address_id=address.id)
        return address

    def resolve_payment_method(self, payment_method_id) -> PaymentMethod:
        qs = PaymentMethod.objects.filter(is_active=True)
        method = None
        if isinstance(payment_method_id, int) or str(payment_method_id or "").isdigit():
            method = qs.filter(id=int(payment_method_id)).first()
        elif payment_method_id:
            method = qs.filter(code=str(payment_method_id).strip()).first()
        if method is None:
            raise PaymentMethodInvalid(payment_method_id=str(payment_method_id))
        if method.is_online and not self.gateway.supports(method.provider):
            raise PaymentMethodInvalid(
                f"Payment provider '{method.provider}' is not configured",
                payment_method_id=str(payment_method_id),
            )
        return method

    def _voucher_for(self, user, code: str | None, lines: list[CartLine]):
        code = (code or "").strip()
        if not code:
            return None
        return self.vouchers.validate(
            code=code,
            user_id=user.id,
            order_value=self.pricing.subtotal(lines),
        )

    def preview(self, user, cart: CartSource, *, address_id=None, voucher_code: str | None = None) -> PriceBreakdown:
        lines = self.load_lines(cart)
        address = self.resolve_address(user, address_id) if address_id is not None else None
        voucher = self._voucher_for(user, voucher_code, lines)
        return self.pricing.compute(lines, address=address, voucher=voucher)

    def check_voucher(self, user, cart: CartSource, *, code: str) -> VoucherCheck:
        lines = self.load_lines(cart)
        subtotal = self.pricing.subtotal(lines)
        voucher = self.vouchers.validate(code=code, user_id=user.id, order_value=subtotal)
        return VoucherCheck(
            code=voucher.code,
            subtotal=subtotal,
            discount_amount=self.vouchers.compute_discount(voucher, subtotal),
        )

    def checkout(
        self,
        user,
        cart: CartSource,
        *,
        address_id,
        payment_method_id,
        voucher_code: str | None = None,
        client_ip: str = "",
    ) -> CheckoutResult:
        lines = self.load_lines(cart)
        address = self.resolve_address(user, address_id)
        method = self.resolve_payment_method(payment_method_id)
        voucher = self._voucher_for(user, voucher_code, lines)
        breakdown = self.pricing.compute(lines, address=address, voucher=voucher)

        if method.is_online and breakdown.final_total <= 0:
            raise PaymentMethodInvalid("Online payment needs a positive amount")

        reserved = self.stock.reserve_all(
            StockLine(variant_id=ln.variant.id, qty=ln.qty, sku=ln.variant.sku) for ln in lines
        )

        payment_url = None
        try:
            with transaction.atomic():
                redemption = None
                if voucher is not None:
                    redemption = self.vouchers.redeem(voucher, user_id=user.id)

                order = self.orders.create(
                    user=user,
                    breakdown=breakdown,
                    address=address,
                    payment_method=method,
                    voucher=voucher,
                )
                if redemption is not None:
                    self.vouchers.attach_order(redemption, order)

                if method.is_online:
                    session = self.gateway.create_session(order, client_ip=client_ip)
                    payment_url = session.redirect_url
        except Exception:
            logger.warning(
                "Checkout failed after stock reservation, releasing",
                extra={"user_id": user.id, "variant_ids": [r.variant_id for r in reserved]},
            )
            self.stock.release_all(reserved)
            raise

        if not method.is_online:
            # Online orders keep the cart until the payment is confirmed.
            cart.remove_ordered((p.variant_id, p.qty) for p in breakdown.lines)

        logger.info(
            "Checkout completed",
            extra={
                "order_code": order.order_code,
                "user_id": user.id,
                "payment_kind": method.kind,
            },
        )
        return CheckoutResult(order=order, payment_url=payment_url)
