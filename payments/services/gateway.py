from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from django.utils.module_loading import import_string

from api.errors import (
    OrderNotFound,
    PaymentAmountMismatch,
    PaymentMethodInvalid,
    PaymentSessionExpired,
)
from checkout.carts import UserCartSource
from checkout.models import Order

from ..models import PaymentSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GatewayRequest:
    """What a provider hands back for a new session: where to send the buyer."""

    params: dict
    redirect_url: str
    amount_minor: int
    currency: str = "VND"
    request_id: str = ""


@dataclass(frozen=True)
class GatewayResult:
    order_code: str
    amount_minor: int | None
    response_code: str
    transaction_no: str
    succeeded: bool
    cancelled: bool = False
    raw: dict = field(default_factory=dict)


@dataclass(frozen=True)
class ReconcileOutcome:
    order_code: str
    outcome: str  # "paid" | "failed" | "already_reconciled"
    order_status: str
    payment_status: str

    @property
    def is_paid(self) -> bool:
        return self.payment_status == Order.PaymentStatus.PAID


def load_providers() -> dict:
    return {name: import_string(path).from_settings() for name, path in settings.PAYMENT_PROVIDERS.items()}


class PaymentGatewayAdapter:
    """Redirect gateways keyed by `PaymentMethod.provider`.

    Providers only sign and verify. Browser callback and server IPN of every
    provider end in `reconcile`, which settles a session at most once however
    the two calls interleave.
    """

    def __init__(self, *, orders, providers: dict | None = None):
        self.orders = orders
        self._providers = providers

    @property
    def providers(self) -> dict:
        # Built lazily so settings overrides apply.
        return self._providers if self._providers is not None else load_providers()

    def supports(self, name: str) -> bool:
        return (name or settings.PAYMENT_DEFAULT_PROVIDER) in self.providers

    def provider(self, name: str | None = None):
        key = name or settings.PAYMENT_DEFAULT_PROVIDER
        try:
            return self.providers[key]
        except KeyError:
            raise PaymentMethodInvalid(f"Unknown payment provider '{key}'", provider=key) from None

    def create_session(self, order: Order, *, client_ip: str, now=None) -> PaymentSession:
        provider = self.provider(order.payment_method.provider)
        now = now or timezone.now()
        expires_at = now + timedelta(minutes=int(settings.PAYMENT_SESSION_TTL_MINUTES))

        req = provider.build_request(order, client_ip=client_ip, now=now, expires_at=expires_at)

        session = PaymentSession.objects.create(
            order=order,
            order_code=order.order_code,
            provider=provider.name,
            request_id=req.request_id,
            amount=order.final_total,
            amount_minor=req.amount_minor,
            currency=req.currency,
            expires_at=expires_at,
            params=req.params,
            redirect_url=req.redirect_url,
        )
        logger.info(
            "Payment session created",
            extra={"order_code": order.order_code, "provider": provider.name, "amount_minor": req.amount_minor},
        )
        return session

    def verify_callback(self, params, *, provider: str | None = None) -> GatewayResult:
        return self.provider(provider).verify(params)

    def _outcome(self, order: Order, outcome: str) -> ReconcileOutcome:
        return ReconcileOutcome(
            order_code=order.order_code,
            outcome=outcome,
            order_status=order.status,
            payment_status=order.payment_status,
        )

    def reconcile(self, params, *, provider: str | None = None, now=None) -> ReconcileOutcome:
        gateway = self.provider(provider)
        result = gateway.verify(params)
        now = now or timezone.now()

        session = (
            PaymentSession.objects.select_related("order", "order__user")
            .filter(order_code=result.order_code, provider=gateway.name)
            .first()
        )
        if session is None:
            raise OrderNotFound(order_code=result.order_code)

        if result.amount_minor != session.amount_minor:
            logger.warning(
                "Gateway amount mismatch",
                extra={
                    "order_code": session.order_code,
                    "expected_minor": session.amount_minor,
                    "received_minor": result.amount_minor,
                },
            )
            raise PaymentAmountMismatch(order_code=session.order_code)

        order = session.order
        if (
            session.consumed_at is not None
            or order.status != Order.Status.PENDING
            or order.payment_status != Order.PaymentStatus.UNPAID
        ):
            if result.succeeded and session.status != PaymentSession.Status.SUCCEEDED:
                logger.error(
                    "Payment succeeded for an order that is no longer payable; refund required",
                    extra={"order_code": order.order_code, "transaction_no": result.transaction_no},
                )
            logger.info("Duplicate reconciliation ignored", extra={"order_code": order.order_code})
            return self._outcome(order, "already_reconciled")

        if session.is_expired(now=now):
            self.expire_session(session, now=now)
            if result.succeeded:
                logger.error(
                    "Payment succeeded after the session expired; refund required",
                    extra={"order_code": order.order_code, "transaction_no": result.transaction_no},
                )
            raise PaymentSessionExpired(order_code=order.order_code)

        new_status = PaymentSession.Status.SUCCEEDED if result.succeeded else PaymentSession.Status.FAILED
        with transaction.atomic():
            claimed = PaymentSession.objects.filter(pk=session.pk, consumed_at__isnull=True).update(
                consumed_at=now,
                status=new_status,
                response_code=result.response_code[:8],
                gateway_transaction_no=result.transaction_no[:64],
                raw_response=result.raw,
                updated_at=now,
            )
            if claimed != 1:
                order.refresh_from_db()
                logger.info("Duplicate reconciliation ignored", extra={"order_code": order.order_code})
                return self._outcome(order, "already_reconciled")

            if result.succeeded:
                if not self.orders.mark_paid(order, transaction_no=result.transaction_no, paid_at=now):
                    logger.error(
                        "Payment succeeded for an order that is no longer payable; refund required",
                        extra={"order_code": order.order_code, "transaction_no": result.transaction_no},
                    )
                    return self._outcome(order, "already_reconciled")
                UserCartSource(order.user).remove_ordered(
                    (ln.variant_id, ln.qty) for ln in order.lines.all()
                )
                outcome = "paid"
            else:
                reason = "payment cancelled" if result.cancelled else f"payment failed ({result.response_code})"
                self.orders.cancel_unpaid(order, reason=reason)
                outcome = "failed"

        logger.info(
            "Payment reconciled",
            extra={
                "order_code": order.order_code,
                "provider": gateway.name,
                "outcome": outcome,
                "response_code": result.response_code,
            },
        )
        return self._outcome(order, outcome)

    def expire_session(self, session: PaymentSession, *, now=None) -> bool:
        now = now or timezone.now()
        with transaction.atomic():
            claimed = PaymentSession.objects.filter(pk=session.pk, consumed_at__isnull=True).update(
                consumed_at=now,
                status=PaymentSession.Status.EXPIRED,
                updated_at=now,
            )
            if claimed != 1:
                return False
            self.orders.cancel_unpaid(session.order, reason="payment session expired")

        logger.info("Payment session expired", extra={"order_code": session.order_code})
        return True

    def due_sessions(self, *, now=None):
        now = now or timezone.now()
        return (
            PaymentSession.objects.select_related("order")
            .filter(consumed_at__isnull=True, expires_at__lte=now)
            .order_by("expires_at", "id")
        )

    def expire_due_sessions(self, *, now=None) -> int:
        now = now or timezone.now()
        expired = 0
        for session in self.due_sessions(now=now):
            if self.expire_session(session, now=now):
                expired += 1
        logger.info("Payment session sweep finished", extra={"expired": expired})
        return expired

    def check_expiry(self, order: Order, *, now=None) -> Order:
        """Expires the order's payment session on access if it is overdue."""
        if order.status != Order.Status.PENDING:
            return order
        session = PaymentSession.objects.select_related("order").filter(order=order).first()
        if session is None or session.consumed_at is not None:
            return order
        if session.is_expired(now=now) and self.expire_session(session, now=now):
            order.refresh_from_db()
        return order
