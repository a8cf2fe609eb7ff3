from __future__ import annotations

import json
import logging
from urllib.parse import urlencode

from django.conf import settings
from django.http import HttpResponseRedirect
from ninja import Router

from api.errors import (
    InvalidSignature,
    OrderNotFound,
    PaymentAmountMismatch,
    PaymentSessionExpired,
    ShopError,
)
from checkout.wiring import get_services

from .schemas import IpnAckOut


router = Router(tags=["payments"])

logger = logging.getLogger(__name__)

IPN_CONFIRMED = ("00", "Confirm Success")
IPN_ORDER_NOT_FOUND = ("01", "Order not found")
IPN_ALREADY_CONFIRMED = ("02", "Order already confirmed")
IPN_INVALID_AMOUNT = ("04", "Invalid amount")
IPN_INVALID_SIGNATURE = ("97", "Invalid signature")
IPN_UNKNOWN_ERROR = ("99", "Unknown error")


def _ack(pair: tuple[str, str]) -> IpnAckOut:
    return IpnAckOut(code=pair[0], message=pair[1])


def _redirect(base: str, *, order_code: str, retry: bool = False) -> HttpResponseRedirect:
    query = {"order_code": order_code} if order_code else {}
    if retry:
        query["retry"] = "1"
    sep = "&" if "?" in base else "?"
    return HttpResponseRedirect(f"{base}{sep}{urlencode(query)}" if query else base)


def _browser_return(request, provider: str):
    """Browser return from a gateway; always ends in a redirect to the storefront."""
    params = request.GET
    gateway = get_services().gateway
    order_code = (params.get(gateway.provider(provider).order_code_field) or "").strip()

    try:
        outcome = gateway.reconcile(params, provider=provider)
    except ShopError as exc:
        logger.info(
            "Gateway callback not settled",
            extra={"order_code": order_code, "provider": provider, "error_code": exc.code},
        )
        return _redirect(settings.PAYMENT_FAILURE_URL, order_code=order_code, retry=True)
    except Exception:
        logger.exception("Gateway callback failed", extra={"order_code": order_code, "provider": provider})
        return _redirect(settings.PAYMENT_FAILURE_URL, order_code=order_code, retry=True)

    if outcome.is_paid:
        return _redirect(settings.PAYMENT_SUCCESS_URL, order_code=outcome.order_code)
    return _redirect(settings.PAYMENT_FAILURE_URL, order_code=outcome.order_code, retry=True)


@router.get("/vnpay/callback", include_in_schema=False)
def vnpay_callback(request):
    return _browser_return(request, "vnpay")


@router.api_operation(["GET", "POST"], "/vnpay/ipn", response=IpnAckOut)
def vnpay_ipn(request):
    params = request.GET if request.method == "GET" else (request.POST or request.GET)

    try:
        outcome = get_services().gateway.reconcile(params, provider="vnpay")
    except InvalidSignature:
        return _ack(IPN_INVALID_SIGNATURE)
    except OrderNotFound:
        return _ack(IPN_ORDER_NOT_FOUND)
    except PaymentAmountMismatch:
        return _ack(IPN_INVALID_AMOUNT)
    except PaymentSessionExpired:
        # Order is already cancelled; the gateway must stop retrying.
        return _ack(IPN_ALREADY_CONFIRMED)
    except Exception:
        logger.exception("VNPay IPN failed", extra={"order_code": params.get("vnp_TxnRef", "")})
        return _ack(IPN_UNKNOWN_ERROR)

    if outcome.outcome == "already_reconciled":
        return _ack(IPN_ALREADY_CONFIRMED)
    return _ack(IPN_CONFIRMED)


@router.get("/momo/callback", include_in_schema=False)
def momo_callback(request):
    return _browser_return(request, "momo")


@router.post("/momo/ipn", response={204: None, 400: IpnAckOut, 500: IpnAckOut})
def momo_ipn(request):
    """MoMo retries the notification until it gets a 204."""
    try:
        payload = json.loads(request.body or b"{}")
    except ValueError:
        return 400, IpnAckOut(code="bad_request", message="Body is not JSON")
    if not isinstance(payload, dict):
        return 400, IpnAckOut(code="bad_request", message="Body is not a JSON object")

    try:
        get_services().gateway.reconcile(payload, provider="momo")
    except PaymentSessionExpired:
        # Order is already cancelled; nothing left to settle.
        return 204, None
    except ShopError as exc:
        return 400, IpnAckOut(code=exc.code, message=exc.detail)
    except Exception:
        logger.exception("MoMo IPN failed", extra={"order_code": str(payload.get("orderId", ""))})
        return 500, IpnAckOut(code="error", message="Unknown error")

    return 204, None
