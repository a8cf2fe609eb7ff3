from __future__ import annotations

import pytest

from checkout.carts import SessionCartSource, UserCartSource, merge_guest_cart

pytestmark = pytest.mark.django_db


def test_add_accumulates_per_variant(user, variant):
    cart = UserCartSource(user)
    cart.add(variant=variant, qty=1)
    cart.add(variant=variant, qty=2)

    assert [(ln.variant.id, ln.qty) for ln in cart.lines()] == [(variant.id, 3)]
    assert cart.qty_for_variant(variant_id=variant.id) == 3


def test_set_qty_zero_removes(user, variant):
    cart = UserCartSource(user)
    item = cart.add(variant=variant, qty=2)

    assert cart.set_qty(item_id=item.id, qty=0)
    assert cart.lines() == []


def test_remove_ordered_keeps_later_additions(user, make_variant):
    a, b = make_variant(), make_variant()
    cart = UserCartSource(user)
    cart.add(variant=a, qty=3)
    cart.add(variant=b, qty=1)

    cart.remove_ordered([(a.id, 2), (b.id, 1)])

    assert [(ln.variant.id, ln.qty) for ln in cart.lines()] == [(a.id, 1)]


def test_guest_cart_without_session_is_empty():
    assert SessionCartSource("").lines() == []


def test_merge_guest_cart(user, make_variant):
    a, b = make_variant(), make_variant()
    UserCartSource(user).add(variant=a, qty=1)
    guest = SessionCartSource("guest-session-1")
    guest.add(variant=a, qty=2)
    guest.add(variant=b, qty=1)

    assert merge_guest_cart(session_key="guest-session-1", user=user)

    lines = {ln.variant.id: ln.qty for ln in UserCartSource(user).lines()}
    assert lines == {a.id: 3, b.id: 1}
    assert guest.get_cart() is None
    assert not merge_guest_cart(session_key="guest-session-1", user=user)
