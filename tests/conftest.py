from __future__ import annotations

from decimal import Decimal
from itertools import count
from types import SimpleNamespace

import pytest
import requests
from django.conf import settings

from accounts.jwt_utils import issue_access_token
from accounts.models import UserAddress
from catalog.models import Color, Product, Size, Variant
from checkout.carts import UserCartSource
from checkout.wiring import get_services
from payments.models import PaymentMethod
from payments.services import momo
from payments.services.vnpay import SIGNATURE_FIELD, sign
from promotions.models import Voucher

_seq = count(1)


@pytest.fixture
def services():
    return get_services()


@pytest.fixture
def user(django_user_model):
    return django_user_model.objects.create_user(email="buyer@example.com", password="pass12345")


@pytest.fixture
def other_user(django_user_model):
    return django_user_model.objects.create_user(email="other@example.com", password="pass12345")


@pytest.fixture
def staff_user(django_user_model):
    return django_user_model.objects.create_user(
        email="staff@example.com", password="pass12345", is_staff=True
    )


@pytest.fixture
def address(user):
    return UserAddress.objects.create(
        user=user,
        full_name="Nguyen Van A",
        phone="0900000000",
        line1="1 Le Loi",
        ward="Ben Nghe",
        district="District 1",
        city="Ho Chi Minh",
        is_default=True,
    )


@pytest.fixture
def far_address(user):
    return UserAddress.objects.create(
        user=user,
        full_name="Nguyen Van A",
        phone="0900000000",
        line1="5 Tran Phu",
        city="Da Nang",
    )


@pytest.fixture
def make_variant(db):
    def _make(*, price="100000", stock=10, sku=None, is_active=True, product_active=True):
        n = next(_seq)
        product = Product.objects.create(
            sku=f"P{n}",
            name=f"Shirt {n}",
            slug=f"shirt-{n}",
            is_active=product_active,
        )
        color, _ = Color.objects.get_or_create(name="Black")
        size, _ = Size.objects.get_or_create(name=f"M{n}")
        return Variant.objects.create(
            product=product,
            sku=sku or f"SKU-{n}",
            color=color,
            size=size,
            price=Decimal(price),
            stock=stock,
            is_active=is_active,
        )

    return _make


@pytest.fixture
def variant(make_variant):
    return make_variant(price="100000", stock=10)


@pytest.fixture
def cod_method(db):
    return PaymentMethod.objects.create(code="cod", name="Pay on delivery", kind=PaymentMethod.Kind.COD)


@pytest.fixture
def gateway_method(db):
    return PaymentMethod.objects.create(
        code="vnpay", name="VNPay", kind=PaymentMethod.Kind.GATEWAY, provider="vnpay"
    )


@pytest.fixture
def momo_method(db):
    return PaymentMethod.objects.create(
        code="momo", name="MoMo wallet", kind=PaymentMethod.Kind.GATEWAY, provider="momo"
    )


@pytest.fixture
def save10(db):
    return Voucher.objects.create(
        code="SAVE10",
        discount_type=Voucher.DiscountType.PERCENTAGE,
        value=Decimal("10"),
        min_order_value=Decimal("100000"),
        max_discount_amount=Decimal("50000"),
    )


@pytest.fixture
def fixed20k(db):
    return Voucher.objects.create(
        code="minus20k",
        discount_type=Voucher.DiscountType.FIXED,
        value=Decimal("20000"),
    )


@pytest.fixture
def fill_cart():
    def _fill(user, *pairs):
        cart = UserCartSource(user)
        for variant, qty in pairs:
            cart.add(variant=variant, qty=qty)
        return cart

    return _fill


def gateway_params(session, *, response_code="00", transaction_status=None, amount_minor=None, transaction_no="14000001"):
    """Parameters as the gateway would send them back, signed with the test secret."""
    params = {
        "vnp_TmnCode": settings.VNPAY_TMN_CODE,
        "vnp_TxnRef": session.order_code,
        "vnp_Amount": str(session.amount_minor if amount_minor is None else amount_minor),
        "vnp_OrderInfo": f"Payment for order {session.order_code}",
        "vnp_ResponseCode": response_code,
        "vnp_TransactionStatus": response_code if transaction_status is None else transaction_status,
        "vnp_TransactionNo": transaction_no,
        "vnp_BankCode": "NCB",
        "vnp_PayDate": "20250101120000",
    }
    params[SIGNATURE_FIELD] = sign(params, settings.VNPAY_HASH_SECRET)
    return params


@pytest.fixture
def signed_params():
    return gateway_params


def momo_result(session, *, result_code=0, amount=None, trans_id=4088878653, message="Successful."):
    """A MoMo result as posted to the IPN (JSON types), signed with the test secret."""
    data = {
        "partnerCode": settings.MOMO_PARTNER_CODE,
        "orderId": session.order_code,
        "requestId": session.request_id,
        "amount": session.amount_minor if amount is None else amount,
        "orderInfo": f"Payment for order {session.order_code}",
        "orderType": "momo_wallet",
        "transId": trans_id,
        "resultCode": result_code,
        "message": message,
        "payType": "qr",
        "responseTime": 1735732800000,
        "extraData": "",
    }
    data[momo.SIGNATURE_FIELD] = momo.sign(
        {**data, "accessKey": settings.MOMO_ACCESS_KEY}, momo.RESULT_FIELDS, settings.MOMO_SECRET_KEY
    )
    return data


@pytest.fixture
def momo_signed():
    return momo_result


class FakeMomoResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


@pytest.fixture
def momo_api(monkeypatch):
    """Stands in for MoMo's create endpoint; records each request body."""
    calls = []
    state = {"response": None}

    def _post(url, json=None, timeout=None, **kwargs):
        calls.append({"url": url, "json": json, "timeout": timeout})
        if isinstance(state["response"], Exception):
            raise state["response"]
        if state["response"] is not None:
            return state["response"]
        return FakeMomoResponse(
            {
                "partnerCode": json["partnerCode"],
                "orderId": json["orderId"],
                "requestId": json["requestId"],
                "amount": int(json["amount"]),
                "resultCode": 0,
                "message": "Successful.",
                "payUrl": f"https://momo.test/pay?t={json['orderId']}",
            }
        )

    monkeypatch.setattr(momo.requests, "post", _post)
    return SimpleNamespace(calls=calls, state=state, respond=FakeMomoResponse)


@pytest.fixture
def login(client):
    def _login(user):
        client.cookies[settings.AUTH_COOKIE_ACCESS_NAME] = issue_access_token(user_id=user.id)
        return client

    return _login


@pytest.fixture
def place_order(services, fill_cart, address, cod_method):
    """Checks out `pairs` of (variant, qty) for the default buyer."""

    def _place(*pairs, method=None, voucher_code=None):
        cart = fill_cart(address.user, *pairs)
        return services.checkout.checkout(
            address.user,
            cart,
            address_id=address.id,
            payment_method_id=(method or cod_method).id,
            voucher_code=voucher_code,
            client_ip="10.0.0.1",
        )

    return _place
