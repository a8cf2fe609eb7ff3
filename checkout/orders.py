from __future__ import annotations

import logging
import secrets

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from api.errors import InvalidStateTransition, OrderNotFound
from catalog.services import StockLedger, StockLine

from .models import Order, OrderLine

logger = logging.getLogger(__name__)

S = Order.Status

TRANSITIONS: dict[str, frozenset[str]] = {
    S.PENDING: frozenset({S.PROCESSING, S.CANCELLED}),
    S.PROCESSING: frozenset({S.SHIPPED, S.CANCELLED}),
    S.SHIPPED: frozenset({S.DELIVERED}),
    S.DELIVERED: frozenset(),
    S.CANCELLED: frozenset(),
}

USER_CANCELLABLE = frozenset({S.PENDING, S.PROCESSING})

ORDER_CODE_ATTEMPTS = 5


def generate_order_code(*, now=None) -> str:
    now = now or timezone.now()
    prefix = (getattr(settings, "ORDER_CODE_PREFIX", "ORD") or "ORD").strip().upper()
    return f"{prefix}{now:%Y%m%d}{secrets.token_hex(3).upper()}"


def can_transition(*, current: str, target: str, actor: str) -> bool:
    if target not in TRANSITIONS.get(current, frozenset()):
        return False
    if actor == Order.CancelledBy.USER:
        return target == S.CANCELLED and current in USER_CANCELLABLE
    if actor == Order.CancelledBy.SYSTEM:
        return target == S.CANCELLED and current == S.PENDING
    return True


class OrderStore:
    """Orders and their status machine.

    Status writes are compare-and-set on the current status, so two callers
    racing on the same order get one winner and the side effects (stock
    release, payment marking) run once.
    """

    def __init__(self, *, stock: StockLedger):
        self.stock = stock

    def get(self, order_code: str, *, user=None) -> Order:
        qs = Order.objects.select_related("payment_method", "user")
        if user is not None:
            qs = qs.filter(user=user)
        order = qs.filter(order_code=(order_code or "").strip()).first()
        if order is None:
            raise OrderNotFound(order_code=order_code)
        return order

    def list_for_user(self, user, *, status: str | None = None, limit: int = 20):
        qs = Order.objects.filter(user=user).select_related("payment_method").prefetch_related("lines")
        if status:
            qs = qs.filter(status=status)
        return list(qs.order_by("-created_at", "-id")[: max(1, min(int(limit), 100))])

    def create(
        self,
        *,
        user,
        breakdown,
        address,
        payment_method,
        voucher=None,
        currency: str | None = None,
    ) -> Order:
        """Persists a pending order with frozen prices and an address snapshot.

        Must run inside the caller's transaction; lines are written with the order.
        """
        fields = dict(
            user=user,
            status=S.PENDING,
            payment_status=Order.PaymentStatus.UNPAID,
            payment_method=payment_method,
            payment_kind=payment_method.kind,
            voucher=voucher,
            voucher_code=voucher.code if voucher is not None else "",
            currency=currency or settings.STORE_CURRENCY,
            subtotal=breakdown.subtotal,
            discount_amount=breakdown.discount_amount,
            shipping_fee=breakdown.shipping_fee,
            final_total=breakdown.final_total,
            shipping_full_name=address.full_name,
            shipping_phone=address.phone,
            shipping_line1=address.line1,
            shipping_ward=address.ward,
            shipping_district=address.district,
            shipping_city=address.city,
            shipping_country_code=address.country_code,
        )

        order = None
        for attempt in range(ORDER_CODE_ATTEMPTS):
            try:
                with transaction.atomic():
                    order = Order.objects.create(order_code=generate_order_code(), **fields)
                break
            except IntegrityError:
                if attempt + 1 >= ORDER_CODE_ATTEMPTS:
                    raise
                logger.warning("Order code collision, retrying", extra={"attempt": attempt + 1})

        OrderLine.objects.bulk_create(
            [
                OrderLine(
                    order=order,
                    variant_id=p.variant_id,
                    sku=p.sku,
                    name=p.name,
                    color=p.color,
                    size=p.size,
                    unit_price=p.unit_price,
                    qty=p.qty,
                    line_total=p.line_total,
                )
                for p in breakdown.lines
            ]
        )

        logger.info(
            "Order created",
            extra={
                "order_code": order.order_code,
                "user_id": user.id,
                "final_total": str(order.final_total),
                "payment_kind": order.payment_kind,
            },
        )
        return order

    def stock_lines(self, order: Order) -> list[StockLine]:
        return [
            StockLine(variant_id=int(ln.variant_id), qty=int(ln.qty), sku=ln.sku)
            for ln in order.lines.all()
            if ln.variant_id
        ]

    def transition(self, order: Order, target: str, *, actor: str, reason: str = "") -> Order:
        current = order.status
        if not can_transition(current=current, target=target, actor=actor):
            raise InvalidStateTransition(
                f"Cannot move order from {current} to {target}",
                order_code=order.order_code,
                current=current,
                target=target,
            )

        now = timezone.now()
        updates = {"status": target, "updated_at": now}
        if target == S.CANCELLED:
            updates.update(cancel_reason=(reason or "")[:255], cancelled_by=actor, cancelled_at=now)

        with transaction.atomic():
            updated = Order.objects.filter(pk=order.pk, status=current).update(**updates)
            if updated != 1:
                order.refresh_from_db()
                raise InvalidStateTransition(
                    f"Order changed concurrently (now {order.status})",
                    order_code=order.order_code,
                    current=order.status,
                    target=target,
                )
            if target == S.CANCELLED:
                self.stock.release_all(self.stock_lines(order))

        order.refresh_from_db()
        logger.info(
            "Order status changed",
            extra={
                "order_code": order.order_code,
                "from_status": current,
                "to_status": target,
                "actor": actor,
            },
        )
        return order

    def cancel(self, order: Order, *, actor: str, reason: str = "") -> Order:
        return self.transition(order, S.CANCELLED, actor=actor, reason=reason)

    def mark_paid(self, order: Order, *, transaction_no: str = "", paid_at=None) -> bool:
        """pending/unpaid -> processing/paid. False when someone else got there first."""
        now = timezone.now()
        updated = Order.objects.filter(
            pk=order.pk,
            status=S.PENDING,
            payment_status=Order.PaymentStatus.UNPAID,
        ).update(
            status=S.PROCESSING,
            payment_status=Order.PaymentStatus.PAID,
            gateway_transaction_no=(transaction_no or "")[:64],
            paid_at=paid_at or now,
            updated_at=now,
        )
        order.refresh_from_db()
        if updated != 1:
            logger.info("Order already settled, paid mark skipped", extra={"order_code": order.order_code})
            return False

        logger.info(
            "Order status changed",
            extra={
                "order_code": order.order_code,
                "from_status": S.PENDING,
                "to_status": S.PROCESSING,
                "actor": Order.CancelledBy.SYSTEM,
            },
        )
        return True

    def cancel_unpaid(self, order: Order, *, reason: str) -> bool:
        """System cancel of a pending order; releases stock once. False on no-op."""
        now = timezone.now()
        with transaction.atomic():
            updated = Order.objects.filter(
                pk=order.pk,
                status=S.PENDING,
                payment_status=Order.PaymentStatus.UNPAID,
            ).update(
                status=S.CANCELLED,
                cancel_reason=(reason or "")[:255],
                cancelled_by=Order.CancelledBy.SYSTEM,
                cancelled_at=now,
                updated_at=now,
            )
            if updated == 1:
                self.stock.release_all(self.stock_lines(order))

        order.refresh_from_db()
        if updated != 1:
            return False

        logger.info(
            "Order status changed",
            extra={
                "order_code": order.order_code,
                "from_status": S.PENDING,
                "to_status": S.CANCELLED,
                "actor": Order.CancelledBy.SYSTEM,
                "reason": reason,
            },
        )
        return True

    def delete(self, order: Order) -> None:
        if order.status != S.CANCELLED:
            raise InvalidStateTransition(
                "Only cancelled orders can be deleted",
                order_code=order.order_code,
                current=order.status,
            )
        deleted, _ = Order.objects.filter(pk=order.pk, status=S.CANCELLED).delete()
        if not deleted:
            raise OrderNotFound(order_code=order.order_code)
        logger.info("Order deleted", extra={"order_code": order.order_code})
