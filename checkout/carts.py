from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from django.db import transaction
from django.db.models import F

from accounts.auth import user_from_access_cookie
from catalog.models import Variant

from .models import Cart, CartItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CartLine:
    item_id: int
    variant: Variant
    qty: int


class CartSource:
    """A cart persisted under one owner key.

    Subclasses only decide how the cart row is found and created; everything
    the checkout needs is written once here.
    """

    def _lookup(self) -> Cart | None:
        raise NotImplementedError

    def _create(self) -> Cart:
        raise NotImplementedError

    def get_cart(self, *, create: bool = False) -> Cart | None:
        cart = self._lookup()
        if cart is None and create:
            cart = self._create()
        return cart

    def lines(self) -> list[CartLine]:
        cart = self.get_cart()
        if cart is None:
            return []
        items = (
            CartItem.objects.select_related("variant", "variant__product", "variant__color", "variant__size")
            .filter(cart=cart)
            .order_by("id")
        )
        return [CartLine(item_id=int(it.id), variant=it.variant, qty=int(it.qty)) for it in items]

    def qty_for_variant(self, *, variant_id: int, exclude_item_id: int | None = None) -> int:
        cart = self.get_cart()
        if cart is None:
            return 0
        qs = CartItem.objects.filter(cart=cart, variant_id=int(variant_id))
        if exclude_item_id is not None:
            qs = qs.exclude(id=int(exclude_item_id))
        return int(sum(qs.values_list("qty", flat=True)))

    def add(self, *, variant: Variant, qty: int) -> CartItem:
        qty = int(qty)
        if qty <= 0:
            raise ValueError("qty must be positive")

        cart = self.get_cart(create=True)
        with transaction.atomic():
            item, created = CartItem.objects.get_or_create(
                cart=cart,
                variant=variant,
                defaults={"qty": qty},
            )
            if not created:
                CartItem.objects.filter(id=item.id).update(qty=F("qty") + qty)
                item.refresh_from_db(fields=["qty", "updated_at"])
        return item

    def get_item(self, item_id: int) -> CartItem | None:
        cart = self.get_cart()
        if cart is None:
            return None
        return CartItem.objects.select_related("variant").filter(cart=cart, id=int(item_id)).first()

    def set_qty(self, *, item_id: int, qty: int) -> bool:
        """Sets an item's quantity; zero or less removes it."""
        item = self.get_item(item_id)
        if item is None:
            return False
        if int(qty) <= 0:
            item.delete()
            return True
        item.qty = int(qty)
        item.save(update_fields=["qty", "updated_at"])
        return True

    def remove(self, *, item_id: int) -> bool:
        item = self.get_item(item_id)
        if item is None:
            return False
        item.delete()
        return True

    def remove_ordered(self, lines: Iterable[tuple[int, int]]) -> None:
        """Takes ordered (variant_id, qty) pairs out of the cart.

        Items added after the order was placed stay in the cart.
        """
        cart = self.get_cart()
        if cart is None:
            return
        with transaction.atomic():
            for variant_id, qty in lines:
                if variant_id is None:
                    continue
                qs = CartItem.objects.filter(cart=cart, variant_id=int(variant_id))
                qs.filter(qty__lte=int(qty)).delete()
                qs.filter(qty__gt=int(qty)).update(qty=F("qty") - int(qty))

    def clear(self) -> None:
        cart = self.get_cart()
        if cart is not None:
            CartItem.objects.filter(cart=cart).delete()


class UserCartSource(CartSource):
    def __init__(self, user):
        self.user = user

    def _lookup(self) -> Cart | None:
        return Cart.objects.filter(user=self.user).first()

    def _create(self) -> Cart:
        cart, _ = Cart.objects.get_or_create(user=self.user, defaults={"session_key": ""})
        return cart


class SessionCartSource(CartSource):
    def __init__(self, session_key: str):
        self.session_key = session_key or ""

    def _lookup(self) -> Cart | None:
        if not self.session_key:
            return None
        return Cart.objects.filter(user=None, session_key=self.session_key).first()

    def _create(self) -> Cart:
        if not self.session_key:
            raise ValueError("session_key is required for a guest cart")
        cart, _ = Cart.objects.get_or_create(user=None, session_key=self.session_key)
        return cart


def merge_guest_cart(*, session_key: str, user) -> bool:
    """Moves a guest cart's items into the user's cart and drops the guest cart."""
    guest = SessionCartSource(session_key).get_cart()
    if guest is None:
        return False

    target = UserCartSource(user).get_cart(create=True)
    with transaction.atomic():
        for it in CartItem.objects.filter(cart=guest).order_by("id"):
            existing = CartItem.objects.filter(cart=target, variant_id=it.variant_id).first()
            if existing:
                CartItem.objects.filter(id=existing.id).update(qty=F("qty") + it.qty)
            else:
                CartItem.objects.create(cart=target, variant_id=it.variant_id, qty=it.qty)
        CartItem.objects.filter(cart=guest).delete()
        guest.delete()

    logger.info("Guest cart merged", extra={"user_id": user.id})
    return True


def _session_key(request, *, create: bool) -> str:
    session = getattr(request, "session", None)
    if session is None:
        return ""
    key = session.session_key or ""
    if not key and create:
        # Guest sessions are only created on write.
        session["cart_init"] = True
        session.save()
        key = session.session_key or ""
    return key


def request_user(request):
    u = getattr(request, "auth", None)
    if u is not None and getattr(u, "is_authenticated", False):
        return u
    u = getattr(request, "user", None)
    if u is not None and getattr(u, "is_authenticated", False):
        return u
    return user_from_access_cookie(request)


def cart_source_for_request(request, *, create: bool = False) -> CartSource | None:
    """Selects the cart by the caller's identity.

    Authenticated callers get their user cart, absorbing any guest cart still
    attached to the session. Guests get the session cart.
    """
    user = request_user(request)
    if user is not None:
        key = _session_key(request, create=False)
        if key:
            merge_guest_cart(session_key=key, user=user)
        return UserCartSource(user)

    key = _session_key(request, create=create)
    if not key:
        return None
    return SessionCartSource(key)
