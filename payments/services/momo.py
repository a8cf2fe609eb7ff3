from __future__ import annotations

import hashlib
import hmac
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

import requests
from django.conf import settings

from api.errors import InvalidSignature, PaymentProviderUnavailable
from checkout.models import Order

from .gateway import GatewayRequest, GatewayResult

logger = logging.getLogger(__name__)

SIGNATURE_FIELD = "signature"

# Signed fields, in the order MoMo concatenates them.
CREATE_FIELDS = (
    "accessKey",
    "amount",
    "extraData",
    "ipnUrl",
    "orderId",
    "orderInfo",
    "partnerCode",
    "redirectUrl",
    "requestId",
    "requestType",
)
RESULT_FIELDS = (
    "accessKey",
    "amount",
    "extraData",
    "message",
    "orderId",
    "orderInfo",
    "orderType",
    "partnerCode",
    "payType",
    "requestId",
    "responseTime",
    "resultCode",
    "transId",
)

RESULT_SUCCESS = "0"
# 1003: cancelled, 1006: declined by the user in the wallet app.
RESULT_CANCELLED = frozenset({"1003", "1006"})


@dataclass(frozen=True)
class MomoConfig:
    endpoint: str
    partner_code: str
    access_key: str
    secret_key: str
    redirect_url: str
    ipn_url: str
    partner_name: str = "Store"
    store_id: str = ""
    request_type: str = "payWithMethod"
    lang: str = "vi"
    currency: str = "VND"
    timeout: int = 30

    @classmethod
    def from_settings(cls) -> "MomoConfig":
        return cls(
            endpoint=settings.MOMO_ENDPOINT,
            partner_code=settings.MOMO_PARTNER_CODE,
            access_key=settings.MOMO_ACCESS_KEY,
            secret_key=settings.MOMO_SECRET_KEY,
            redirect_url=settings.MOMO_REDIRECT_URL,
            ipn_url=settings.MOMO_IPN_URL,
            partner_name=settings.MOMO_PARTNER_NAME,
            store_id=settings.MOMO_STORE_ID or settings.MOMO_PARTNER_CODE,
            request_type=settings.MOMO_REQUEST_TYPE,
            lang=settings.MOMO_LANG,
            currency=settings.STORE_CURRENCY,
            timeout=int(settings.MOMO_TIMEOUT_SECONDS),
        )


def _text(value) -> str:
    return "" if value is None else str(value)


def raw_signature(data: dict, fields) -> str:
    """`key=value` pairs in MoMo's fixed field order; values are not encoded."""
    return "&".join(f"{name}={_text(data.get(name))}" for name in fields)


def sign(data: dict, fields, secret: str) -> str:
    return hmac.new(
        secret.encode("utf-8"),
        raw_signature(data, fields).encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def to_wallet_amount(amount: Decimal) -> int:
    # MoMo takes whole VND.
    return int(Decimal(amount).to_integral_value(rounding=ROUND_HALF_UP))


class MomoProvider:
    """Wallet checkout: the pay URL comes from a signed JSON call to MoMo.

    The browser return (query string) and the IPN (JSON body) carry the
    same signed result fields.
    """

    name = "momo"
    order_code_field = "orderId"

    def __init__(self, config: MomoConfig):
        self.config = config

    @classmethod
    def from_settings(cls) -> "MomoProvider":
        return cls(MomoConfig.from_settings())

    def build_request(self, order: Order, *, client_ip: str, now: datetime, expires_at: datetime) -> GatewayRequest:
        cfg = self.config
        amount = to_wallet_amount(order.final_total)
        request_id = f"{order.order_code}_{int(now.timestamp() * 1000)}"

        body = {
            "partnerCode": cfg.partner_code,
            "partnerName": cfg.partner_name,
            "storeId": cfg.store_id,
            "requestId": request_id,
            "amount": str(amount),
            "orderId": order.order_code,
            "orderInfo": f"Payment for order {order.order_code}",
            "redirectUrl": cfg.redirect_url,
            "ipnUrl": cfg.ipn_url,
            "lang": cfg.lang,
            "requestType": cfg.request_type,
            "autoCapture": True,
            "extraData": "",
            "orderGroupId": "",
        }
        body[SIGNATURE_FIELD] = sign({**body, "accessKey": cfg.access_key}, CREATE_FIELDS, cfg.secret_key)

        try:
            r = requests.post(cfg.endpoint, json=body, timeout=cfg.timeout)
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(
                "MoMo create request failed",
                extra={"order_code": order.order_code, "error": str(e)},
            )
            raise PaymentProviderUnavailable(order_code=order.order_code) from e

        result_code = _text(data.get("resultCode"))
        pay_url = _text(data.get("payUrl"))
        if result_code != RESULT_SUCCESS or not pay_url:
            logger.warning(
                "MoMo refused the payment request",
                extra={
                    "order_code": order.order_code,
                    "result_code": result_code,
                    "momo_message": _text(data.get("message")),
                },
            )
            raise PaymentProviderUnavailable(
                f"MoMo refused the payment request ({result_code})",
                order_code=order.order_code,
            )

        return GatewayRequest(
            params={k: v for k, v in body.items() if k != SIGNATURE_FIELD},
            redirect_url=pay_url,
            amount_minor=amount,
            currency=cfg.currency,
            request_id=request_id,
        )

    def verify(self, params) -> GatewayResult:
        data = {str(k): v for k, v in dict(params.items()).items()}
        provided = _text(data.get(SIGNATURE_FIELD))
        secret = self.config.secret_key

        expected = sign({**data, "accessKey": self.config.access_key}, RESULT_FIELDS, secret) if secret else ""
        if not provided or not expected or not hmac.compare_digest(expected.encode(), provided.encode()):
            logger.warning(
                "MoMo signature rejected",
                extra={"order_code": _text(data.get("orderId"))},
            )
            raise InvalidSignature()

        raw_amount = _text(data.get("amount"))
        result_code = _text(data.get("resultCode"))

        return GatewayResult(
            order_code=_text(data.get("orderId")),
            amount_minor=int(raw_amount) if raw_amount.isdigit() else None,
            response_code=result_code,
            transaction_no=_text(data.get("transId")),
            succeeded=result_code == RESULT_SUCCESS,
            cancelled=result_code in RESULT_CANCELLED,
            raw={name: _text(data.get(name)) for name in RESULT_FIELDS if name != "accessKey"},
        )
