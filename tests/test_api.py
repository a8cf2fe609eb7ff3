from __future__ import annotations

import json
from decimal import Decimal

import pytest

from checkout.models import Order
from payments.models import PaymentMethod, PaymentSession
from payments.services.vnpay import SIGNATURE_FIELD

pytestmark = pytest.mark.django_db

BASE = "/api"


def _post(client, path, payload=None):
    return client.post(f"{BASE}{path}", data=json.dumps(payload or {}), content_type="application/json")


def test_health(client):
    assert client.get(f"{BASE}/health").json() == {"status": "ok"}


def test_payment_methods_lists_active_only(client, cod_method, gateway_method):
    gateway_method.is_active = False
    gateway_method.save()

    data = client.get(f"{BASE}/checkout/payment-methods").json()
    assert [m["code"] for m in data] == ["cod"]


def test_payment_methods_hide_unconfigured_providers(client, cod_method, gateway_method, momo_method):
    PaymentMethod.objects.create(code="paypal", name="PayPal", kind=PaymentMethod.Kind.GATEWAY, provider="paypal")

    data = client.get(f"{BASE}/checkout/payment-methods").json()
    assert {m["code"]: m["provider"] for m in data} == {"cod": "", "momo": "momo", "vnpay": "vnpay"}


def test_guest_cart_is_merged_on_login(client, login, user, make_variant):
    v = make_variant(stock=5)

    res = _post(client, "/checkout/cart/items", {"variant_id": v.id, "qty": 2})
    assert res.status_code == 200
    assert res.json()["items"][0]["qty"] == 2

    login(user)
    data = client.get(f"{BASE}/checkout/cart").json()
    assert [(i["variant_id"], i["qty"]) for i in data["items"]] == [(v.id, 2)]
    assert Decimal(data["subtotal"]) == Decimal("200000")


def test_cart_rejects_more_than_stock(client, login, user, make_variant):
    v = make_variant(stock=2)
    login(user)

    res = _post(client, "/checkout/cart/items", {"variant_id": v.id, "qty": 3})
    assert res.status_code == 409
    assert res.json()["code"] == "insufficient_stock"


def test_cart_update_and_delete(client, login, user, make_variant):
    v = make_variant(stock=5)
    login(user)
    item_id = _post(client, "/checkout/cart/items", {"variant_id": v.id, "qty": 1}).json()["items"][0]["id"]

    res = client.patch(
        f"{BASE}/checkout/cart/items/{item_id}",
        data=json.dumps({"qty": 4}),
        content_type="application/json",
    )
    assert res.json()["items"][0]["qty"] == 4

    res = client.delete(f"{BASE}/checkout/cart/items/{item_id}")
    assert res.json()["items"] == []
    assert client.delete(f"{BASE}/checkout/cart/items/{item_id}").status_code == 404


def test_checkout_requires_login(client, address, cod_method):
    res = _post(client, "/checkout/checkout", {"address_id": address.id, "payment_method_id": cod_method.id})
    assert res.status_code == 401


def test_checkout_error_shape(client, login, user, address, cod_method):
    login(user)
    res = _post(client, "/checkout/checkout", {"address_id": address.id, "payment_method_id": cod_method.id})

    assert res.status_code == 400
    assert res.json() == {"code": "cart_empty", "detail": "Cart is empty"}


def test_preview_and_checkout(client, login, user, address, cod_method, make_variant, save10):
    v = make_variant(price="150000", stock=5)
    login(user)
    _post(client, "/checkout/cart/items", {"variant_id": v.id, "qty": 2})

    preview = _post(client, "/checkout/preview", {"address_id": address.id, "voucher_code": "save10"}).json()
    assert Decimal(preview["discount_amount"]) == Decimal("30000")
    assert Decimal(preview["final_total"]) == Decimal("290000")

    check = _post(client, "/checkout/vouchers/validate", {"code": "SAVE10"}).json()
    assert check["code"] == "save10"

    res = _post(
        client,
        "/checkout/checkout",
        {"address_id": address.id, "payment_method_id": "cod", "voucher_code": "save10"},
    )
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "pending"
    assert body["payment_url"] is None
    assert Decimal(body["final_total"]) == Decimal("290000")

    order = client.get(f"{BASE}/checkout/orders/{body['order_code']}").json()
    assert order["shipping_address"]["city"] == "Ho Chi Minh"
    assert order["lines"][0]["qty"] == 2

    assert client.get(f"{BASE}/checkout/cart").json()["items"] == []


def test_voucher_already_used_response(client, login, user, place_order, make_variant, save10):
    place_order((make_variant(price="150000"), 1), voucher_code="save10")
    login(user)
    _post(client, "/checkout/cart/items", {"variant_id": make_variant(price="150000").id, "qty": 1})

    res = _post(client, "/checkout/vouchers/validate", {"code": "save10"})
    assert res.status_code == 409
    assert res.json()["code"] == "voucher_already_used"


def test_orders_are_private(client, login, other_user, place_order, variant):
    order = place_order((variant, 1)).order
    login(other_user)

    res = client.get(f"{BASE}/checkout/orders/{order.order_code}")
    assert res.status_code == 404
    assert res.json()["code"] == "order_not_found"
    assert client.get(f"{BASE}/checkout/orders").json() == []


def test_user_cancel(client, login, user, place_order, make_variant):
    v = make_variant(stock=3)
    order = place_order((v, 1)).order
    login(user)

    res = _post(client, f"/checkout/orders/{order.order_code}/cancel", {"reason": "changed my mind"})
    assert res.status_code == 200
    assert res.json()["status"] == "cancelled"

    res = _post(client, f"/checkout/orders/{order.order_code}/cancel", {"reason": "again"})
    assert res.status_code == 409
    assert res.json()["code"] == "invalid_state_transition"

    v.refresh_from_db()
    assert v.stock == 3


def test_gateway_order_exposes_payment_url(client, login, user, place_order, variant, gateway_method):
    result = place_order((variant, 1), method=gateway_method)
    login(user)

    data = client.get(f"{BASE}/checkout/orders/{result.order.order_code}").json()
    assert data["payment_url"] == result.payment_url


def test_callback_redirects(client, place_order, variant, gateway_method, signed_params):
    result = place_order((variant, 1), method=gateway_method)
    session = PaymentSession.objects.get(order=result.order)

    res = client.get(f"{BASE}/payments/vnpay/callback", signed_params(session))
    assert res.status_code == 302
    assert res["Location"] == f"http://shop.test/checkout/success?order_code={result.order.order_code}"

    # The callback is safe to replay.
    res = client.get(f"{BASE}/payments/vnpay/callback", signed_params(session))
    assert res["Location"].startswith("http://shop.test/checkout/success")


def test_callback_with_bad_signature(client, place_order, variant, gateway_method, signed_params):
    result = place_order((variant, 1), method=gateway_method)
    params = signed_params(PaymentSession.objects.get(order=result.order))
    params["vnp_ResponseCode"] = "24"

    res = client.get(f"{BASE}/payments/vnpay/callback", params)
    assert res.status_code == 302
    assert res["Location"].startswith("http://shop.test/checkout/fail?")
    assert "retry=1" in res["Location"]

    result.order.refresh_from_db()
    assert result.order.status == Order.Status.PENDING


def test_ipn_codes(client, place_order, make_variant, gateway_method, signed_params):
    result = place_order((make_variant(), 1), method=gateway_method)
    session = PaymentSession.objects.get(order=result.order)
    url = f"{BASE}/payments/vnpay/ipn"

    bad = signed_params(session)
    bad[SIGNATURE_FIELD] = "0" * 128
    assert client.get(url, bad).json()["code"] == "97"
    assert client.get(url, signed_params(session, amount_minor=1)).json()["code"] == "04"

    assert client.get(url, signed_params(session)).json() == {"code": "00", "message": "Confirm Success"}
    assert client.get(url, signed_params(session)).json()["code"] == "02"

    result.order.refresh_from_db()
    assert result.order.payment_status == Order.PaymentStatus.PAID


def test_admin_status_requires_staff(client, login, user, place_order, variant):
    order = place_order((variant, 1)).order
    login(user)

    res = _post(client, f"/admin/orders/{order.order_code}/status", {"status": "processing"})
    assert res.status_code == 403


def test_admin_status_and_delete(client, login, staff_user, place_order, variant):
    order = place_order((variant, 1)).order
    login(staff_user)

    res = _post(client, f"/admin/orders/{order.order_code}/status", {"status": "processing"})
    assert res.json()["status"] == "processing"

    res = _post(client, f"/admin/orders/{order.order_code}/status", {"status": "pending"})
    assert res.status_code == 409

    res = client.delete(f"{BASE}/admin/orders/{order.order_code}")
    assert res.status_code == 409

    _post(client, f"/admin/orders/{order.order_code}/status", {"status": "cancelled", "reason": "fraud"})
    res = client.delete(f"{BASE}/admin/orders/{order.order_code}")
    assert res.json() == {"status": "ok"}
    assert not Order.objects.filter(order_code=order.order_code).exists()
