from __future__ import annotations

import pytest

from api.errors import InsufficientStock
from catalog.models import Variant
from catalog.services import StockLedger, StockLine, merge_stock_lines

pytestmark = pytest.mark.django_db


def _stock(variant) -> int:
    return Variant.objects.values_list("stock", flat=True).get(id=variant.id)


def test_reserve_decrements_stock(make_variant):
    v = make_variant(stock=5)
    StockLedger().reserve(variant_id=v.id, qty=3)
    assert _stock(v) == 2


def test_reserve_more_than_available_fails_without_change(make_variant):
    v = make_variant(stock=2, sku="TEE-RED-M")

    with pytest.raises(InsufficientStock) as exc:
        StockLedger().reserve(variant_id=v.id, qty=3, sku=v.sku)

    assert "TEE-RED-M" in exc.value.detail
    assert _stock(v) == 2


def test_reserve_rejects_non_positive_qty(variant):
    with pytest.raises(ValueError):
        StockLedger().reserve(variant_id=variant.id, qty=0)


def test_two_reservations_for_last_unit_only_one_wins(make_variant):
    v = make_variant(stock=1)
    ledger = StockLedger()

    # Both callers read stock=1 before writing; the conditional update decides.
    stale_a = Variant.objects.get(id=v.id)
    stale_b = Variant.objects.get(id=v.id)
    assert stale_a.stock == stale_b.stock == 1

    ledger.reserve(variant_id=stale_a.id, qty=1)
    with pytest.raises(InsufficientStock):
        ledger.reserve(variant_id=stale_b.id, qty=1)

    assert _stock(v) == 0


def test_release_gives_stock_back(make_variant):
    v = make_variant(stock=0)
    assert StockLedger().release(variant_id=v.id, qty=4) is True
    assert _stock(v) == 4


def test_release_for_missing_variant_is_skipped():
    assert StockLedger().release(variant_id=999999, qty=1) is False


def test_reserve_all_is_all_or_nothing(make_variant):
    a = make_variant(stock=5)
    b = make_variant(stock=1)
    ledger = StockLedger()

    with pytest.raises(InsufficientStock):
        ledger.reserve_all([StockLine(a.id, 2, a.sku), StockLine(b.id, 3, b.sku)])

    assert _stock(a) == 5
    assert _stock(b) == 1


def test_reserve_all_returns_merged_lines(make_variant):
    a = make_variant(stock=5)
    b = make_variant(stock=5)

    reserved = StockLedger().reserve_all(
        [StockLine(b.id, 1, b.sku), StockLine(a.id, 1, a.sku), StockLine(b.id, 2, b.sku)]
    )

    assert [(r.variant_id, r.qty) for r in reserved] == sorted([(a.id, 1), (b.id, 3)])
    assert _stock(a) == 4
    assert _stock(b) == 2


def test_merge_stock_lines_orders_by_variant_id():
    merged = merge_stock_lines([StockLine(9, 1), StockLine(3, 2), StockLine(9, 4)])
    assert [(m.variant_id, m.qty) for m in merged] == [(3, 2), (9, 5)]


def test_available(make_variant):
    v = make_variant(stock=7)
    assert StockLedger().available(variant_id=v.id) == 7
    assert StockLedger().available(variant_id=999999) == 0
