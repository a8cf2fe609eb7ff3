from __future__ import annotations

import json
from types import SimpleNamespace

import pytest
import requests
from django.conf import settings

from api.errors import InvalidSignature, OrderNotFound, PaymentMethodInvalid, PaymentProviderUnavailable
from checkout.carts import UserCartSource
from checkout.models import Order
from payments.models import PaymentMethod, PaymentSession
from payments.services import momo

pytestmark = pytest.mark.django_db

BASE = "/api"


@pytest.fixture
def momo_order(place_order, make_variant, momo_method, momo_api):
    v = make_variant(price="100000", stock=10)
    result = place_order((v, 2), method=momo_method)
    session = PaymentSession.objects.get(order=result.order)
    return SimpleNamespace(order=result.order, session=session, variant=v, url=result.payment_url, api=momo_api)


def _post_ipn(client, payload):
    return client.post(f"{BASE}/payments/momo/ipn", data=json.dumps(payload), content_type="application/json")


def test_create_request_is_signed_in_field_order(momo_order):
    (call,) = momo_order.api.calls
    body = call["json"]
    code = momo_order.order.order_code

    assert call["url"] == settings.MOMO_ENDPOINT
    assert call["timeout"] == settings.MOMO_TIMEOUT_SECONDS
    assert body["amount"] == "220000"
    assert body["orderId"] == code
    assert body["requestId"].startswith(f"{code}_")

    raw = momo.raw_signature({**body, "accessKey": settings.MOMO_ACCESS_KEY}, momo.CREATE_FIELDS)
    assert raw.startswith(
        f"accessKey=test-access-key&amount=220000&extraData=&ipnUrl=http://testserver/api/payments/momo/ipn&orderId={code}&"
    )
    assert raw.endswith("&requestType=payWithMethod")
    assert body["signature"] == momo.sign(
        {**body, "accessKey": settings.MOMO_ACCESS_KEY}, momo.CREATE_FIELDS, settings.MOMO_SECRET_KEY
    )


def test_session_records_provider(momo_order):
    session = momo_order.session
    assert session.provider == "momo"
    assert session.amount_minor == 220000
    assert session.request_id == momo_order.api.calls[0]["json"]["requestId"]
    assert momo_order.url == f"https://momo.test/pay?t={momo_order.order.order_code}"
    assert "signature" not in session.params


@pytest.mark.parametrize(
    "payload,status_code",
    [
        ({"resultCode": 11, "message": "Access denied"}, 200),
        ({"resultCode": 0, "message": "Successful."}, 200),
        ({}, 503),
        (None, None),
    ],
    ids=["refused", "no-pay-url", "http-error", "unreachable"],
)
def test_create_failure_rolls_back_checkout(place_order, make_variant, momo_method, momo_api, user, payload, status_code):
    v = make_variant(price="100000", stock=10)
    if payload is None:
        momo_api.state["response"] = requests.ConnectionError("connection refused")
    else:
        momo_api.state["response"] = momo_api.respond(payload, status_code=status_code)

    with pytest.raises(PaymentProviderUnavailable):
        place_order((v, 2), method=momo_method)

    assert not Order.objects.exists()
    assert not PaymentSession.objects.exists()
    v.refresh_from_db()
    assert v.stock == 10
    assert len(UserCartSource(user).lines()) == 1


def test_ipn_success_marks_paid_once(client, momo_order, momo_signed, user):
    payload = momo_signed(momo_order.session)

    assert _post_ipn(client, payload).status_code == 204

    order = Order.objects.get(pk=momo_order.order.pk)
    assert order.status == Order.Status.PROCESSING
    assert order.payment_status == Order.PaymentStatus.PAID
    assert order.gateway_transaction_no == "4088878653"
    assert UserCartSource(user).lines() == []

    # MoMo retries; the replay is acknowledged without a second effect.
    assert _post_ipn(client, payload).status_code == 204
    momo_order.variant.refresh_from_db()
    assert momo_order.variant.stock == 8

    session = PaymentSession.objects.get(pk=momo_order.session.pk)
    assert session.status == PaymentSession.Status.SUCCEEDED
    assert session.response_code == "0"


@pytest.mark.parametrize(
    "result_code,reason",
    [(1006, "payment cancelled"), (1003, "payment cancelled"), (1001, "payment failed (1001)")],
)
def test_ipn_unsuccessful_result_cancels_order(client, momo_order, momo_signed, result_code, reason):
    payload = momo_signed(momo_order.session, result_code=result_code, message="Declined")

    assert _post_ipn(client, payload).status_code == 204

    order = Order.objects.get(pk=momo_order.order.pk)
    assert order.status == Order.Status.CANCELLED
    assert order.cancel_reason == reason
    momo_order.variant.refresh_from_db()
    assert momo_order.variant.stock == 10


def test_ipn_rejects_bad_input(client, momo_order, momo_signed):
    bad = {**momo_signed(momo_order.session), "signature": "0" * 64}
    res = _post_ipn(client, bad)
    assert res.status_code == 400
    assert res.json()["code"] == "invalid_signature"

    res = _post_ipn(client, momo_signed(momo_order.session, amount=1000))
    assert res.status_code == 400
    assert res.json()["code"] == "payment_amount_mismatch"

    res = client.post(f"{BASE}/payments/momo/ipn", data="not json", content_type="application/json")
    assert res.status_code == 400

    order = Order.objects.get(pk=momo_order.order.pk)
    assert order.status == Order.Status.PENDING


def test_callback_redirects(client, momo_order, momo_signed):
    params = {k: str(v) for k, v in momo_signed(momo_order.session).items()}

    res = client.get(f"{BASE}/payments/momo/callback", params)
    assert res.status_code == 302
    assert res["Location"] == f"http://shop.test/checkout/success?order_code={momo_order.order.order_code}"

    res = client.get(f"{BASE}/payments/momo/callback", {**params, "resultCode": "1006"})
    assert res["Location"].startswith("http://shop.test/checkout/fail?")


def test_other_provider_cannot_settle_momo_session(services, momo_order, signed_params):
    # A correctly VNPay-signed result for the same order code.
    with pytest.raises(OrderNotFound):
        services.gateway.reconcile(signed_params(momo_order.session), provider="vnpay")

    order = Order.objects.get(pk=momo_order.order.pk)
    assert order.status == Order.Status.PENDING


def test_unconfigured_provider_is_refused_before_reserving(place_order, make_variant):
    v = make_variant(stock=5)
    method = PaymentMethod.objects.create(
        code="paypal", name="PayPal", kind=PaymentMethod.Kind.GATEWAY, provider="paypal"
    )

    with pytest.raises(PaymentMethodInvalid):
        place_order((v, 1), method=method)

    v.refresh_from_db()
    assert v.stock == 5


def test_blank_provider_uses_default(services):
    assert services.gateway.provider("").name == settings.PAYMENT_DEFAULT_PROVIDER
    assert services.gateway.supports("momo")
    assert not services.gateway.supports("paypal")


@pytest.mark.parametrize(
    "field",
    [name for name in momo.RESULT_FIELDS if name != "accessKey"] + [momo.SIGNATURE_FIELD],
)
def test_any_single_character_change_is_rejected(services, momo_signed, field):
    session = SimpleNamespace(order_code="TST20250101ABCDEF", amount_minor=220000, request_id="TST20250101ABCDEF_1")
    genuine = {k: str(v) for k, v in momo_signed(session).items()}
    services.gateway.verify_callback(genuine, provider="momo")

    value = genuine[field]
    mutations = [value[:i] + ("1" if ch == "0" else "0") + value[i + 1:] for i, ch in enumerate(value)]
    mutations.append(value + "0")
    for mutated in mutations:
        with pytest.raises(InvalidSignature):
            services.gateway.verify_callback({**genuine, field: mutated}, provider="momo")
