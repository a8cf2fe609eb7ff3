from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace

import pytest

from pricing.services import PricingCalculator, quantize_money
from promotions.services import VoucherLedger
from shipping.services import (
    FlatShippingPolicy,
    ReferenceCityShippingPolicy,
    get_shipping_policy,
)

pytestmark = pytest.mark.django_db


def _line(variant, qty):
    return SimpleNamespace(variant=variant, qty=qty)


@pytest.fixture
def calculator():
    return PricingCalculator(
        shipping_policy=ReferenceCityShippingPolicy(
            reference_cities=["Ho Chi Minh"],
            reference_fee="20000",
            other_fee="50000",
        ),
        voucher_ledger=VoucherLedger(),
    )


def test_reference_city_policy():
    policy = ReferenceCityShippingPolicy(reference_cities=["Ho Chi Minh", "TP.HCM"], reference_fee="20000", other_fee="50000")
    assert policy.fee_for(SimpleNamespace(city="  ho chi   MINH ")) == Decimal("20000.00")
    assert policy.fee_for(SimpleNamespace(city="TP.HCM")) == Decimal("20000.00")
    assert policy.fee_for(SimpleNamespace(city="Ha Noi")) == Decimal("50000.00")
    assert policy.fee_for(None) == Decimal("50000.00")


def test_policy_is_loaded_from_settings(settings):
    settings.SHIPPING_FEE_POLICY = "shipping.services.FlatShippingPolicy"
    settings.SHIPPING_FEE_OTHER = "30000"
    policy = get_shipping_policy()
    assert isinstance(policy, FlatShippingPolicy)
    assert policy.fee_for(SimpleNamespace(city="Ho Chi Minh")) == Decimal("30000.00")


def test_breakdown_without_voucher(calculator, make_variant, address):
    a = make_variant(price="100000")
    b = make_variant(price="50000")

    bd = calculator.compute([_line(a, 2), _line(b, 1)], address=address)

    assert bd.subtotal == Decimal("250000.00")
    assert bd.discount_amount == Decimal("0.00")
    assert bd.shipping_fee == Decimal("20000.00")
    assert bd.final_total == Decimal("270000.00")
    assert [p.line_total for p in bd.lines] == [Decimal("200000.00"), Decimal("50000.00")]


def test_breakdown_with_percentage_voucher(calculator, make_variant, far_address, save10):
    v = make_variant(price="150000")

    bd = calculator.compute([_line(v, 2)], address=far_address, voucher=save10)

    # 10% of 300,000 = 30,000 (under the 50,000 cap); shipping outside the reference city.
    assert bd.subtotal == Decimal("300000.00")
    assert bd.discount_amount == Decimal("30000.00")
    assert bd.shipping_fee == Decimal("50000.00")
    assert bd.final_total == Decimal("320000.00")
    assert bd.final_total == bd.subtotal - bd.discount_amount + bd.shipping_fee
    assert bd.voucher_code == "save10"


def test_prices_come_from_the_live_variant(calculator, make_variant, address):
    v = make_variant(price="100000")
    v.price = Decimal("120000")
    v.save()

    bd = calculator.compute([_line(v, 1)], address=address)
    assert bd.subtotal == Decimal("120000.00")


def test_compute_does_not_touch_ledgers(calculator, make_variant, address, save10, user):
    v = make_variant(price="200000", stock=3)
    calculator.compute([_line(v, 2)], address=address, voucher=save10)

    v.refresh_from_db()
    assert v.stock == 3
    assert not save10.redemptions.exists()


def test_quantize_money_rounds_half_up():
    assert quantize_money(Decimal("1.005")) == Decimal("1.01")
