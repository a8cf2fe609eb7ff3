from __future__ import annotations

import hashlib
import hmac
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from urllib.parse import quote_plus
from zoneinfo import ZoneInfo

from django.conf import settings

from api.errors import InvalidSignature
from checkout.models import Order

from .gateway import GatewayRequest, GatewayResult

logger = logging.getLogger(__name__)

SIGNATURE_FIELD = "vnp_SecureHash"
UNSIGNED_FIELDS = frozenset({"vnp_SecureHash", "vnp_SecureHashType"})
PARAM_PREFIX = "vnp_"

RESPONSE_SUCCESS = "00"
RESPONSE_CANCELLED = "24"

DATE_FORMAT = "%Y%m%d%H%M%S"


@dataclass(frozen=True)
class VnpayConfig:
    url: str
    tmn_code: str
    hash_secret: str
    return_url: str
    version: str = "2.1.0"
    locale: str = "vn"
    currency: str = "VND"
    tz_name: str = "Asia/Ho_Chi_Minh"

    @classmethod
    def from_settings(cls) -> "VnpayConfig":
        return cls(
            url=settings.VNPAY_URL,
            tmn_code=settings.VNPAY_TMN_CODE,
            hash_secret=settings.VNPAY_HASH_SECRET,
            return_url=settings.VNPAY_RETURN_URL,
            version=settings.VNPAY_VERSION,
            locale=settings.VNPAY_LOCALE,
            currency=settings.STORE_CURRENCY,
            tz_name=settings.VNPAY_TIMEZONE,
        )


def to_minor_units(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def canonical_query(params: dict) -> str:
    """Sorted, URL-encoded `key=value` pairs joined with `&`.

    The signature field and empty values are left out, on both the signing
    and the verifying side.
    """
    pairs = []
    for key in sorted(params):
        if key in UNSIGNED_FIELDS:
            continue
        value = params[key]
        if value is None or str(value) == "":
            continue
        pairs.append(f"{quote_plus(str(key))}={quote_plus(str(value))}")
    return "&".join(pairs)


def sign(params: dict, secret: str) -> str:
    return hmac.new(
        secret.encode("utf-8"),
        canonical_query(params).encode("utf-8"),
        hashlib.sha512,
    ).hexdigest()


class VnpayProvider:
    """Redirect with a signed query string; results come back the same way."""

    name = "vnpay"
    order_code_field = "vnp_TxnRef"

    def __init__(self, config: VnpayConfig):
        self.config = config

    @classmethod
    def from_settings(cls) -> "VnpayProvider":
        return cls(VnpayConfig.from_settings())

    def _format_date(self, dt: datetime) -> str:
        return dt.astimezone(ZoneInfo(self.config.tz_name)).strftime(DATE_FORMAT)

    def build_request(self, order: Order, *, client_ip: str, now: datetime, expires_at: datetime) -> GatewayRequest:
        cfg = self.config
        amount_minor = to_minor_units(order.final_total)

        params = {
            "vnp_Version": cfg.version,
            "vnp_Command": "pay",
            "vnp_TmnCode": cfg.tmn_code,
            "vnp_Amount": str(amount_minor),
            "vnp_CurrCode": cfg.currency,
            "vnp_TxnRef": order.order_code,
            "vnp_OrderInfo": f"Payment for order {order.order_code}",
            "vnp_OrderType": "other",
            "vnp_Locale": cfg.locale,
            "vnp_ReturnUrl": cfg.return_url,
            "vnp_IpAddr": client_ip or "127.0.0.1",
            "vnp_CreateDate": self._format_date(now),
            "vnp_ExpireDate": self._format_date(expires_at),
        }
        signature = sign(params, cfg.hash_secret)

        sep = "&" if "?" in cfg.url else "?"
        redirect_url = f"{cfg.url}{sep}{canonical_query(params)}&{SIGNATURE_FIELD}={signature}"
        return GatewayRequest(
            params=params,
            redirect_url=redirect_url,
            amount_minor=amount_minor,
            currency=cfg.currency,
        )

    def verify(self, params) -> GatewayResult:
        data = {str(k): str(v) for k, v in dict(params.items()).items() if str(k).startswith(PARAM_PREFIX)}
        provided = data.get(SIGNATURE_FIELD, "")
        secret = self.config.hash_secret

        expected = sign(data, secret) if secret else ""
        if not provided or not expected or not hmac.compare_digest(expected.encode(), provided.encode()):
            logger.warning(
                "VNPay signature rejected",
                extra={"order_code": data.get("vnp_TxnRef", "")},
            )
            raise InvalidSignature()

        raw_amount = data.get("vnp_Amount", "")
        response_code = data.get("vnp_ResponseCode", "")
        transaction_status = data.get("vnp_TransactionStatus", "")

        return GatewayResult(
            order_code=data.get("vnp_TxnRef", ""),
            amount_minor=int(raw_amount) if raw_amount.isdigit() else None,
            response_code=response_code,
            transaction_no=data.get("vnp_TransactionNo", ""),
            succeeded=response_code == RESPONSE_SUCCESS and transaction_status in {"", RESPONSE_SUCCESS},
            cancelled=response_code == RESPONSE_CANCELLED,
            raw={k: v for k, v in data.items() if k not in UNSIGNED_FIELDS},
        )
