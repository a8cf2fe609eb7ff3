from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from ninja import Router
from ninja.errors import HttpError

from accounts.auth import JWTAuth
from api.errors import InsufficientStock, ProductUnavailable
from catalog.models import Variant
from payments.models import PaymentMethod
from pricing.services import price_line, quantize_money

from .carts import UserCartSource, cart_source_for_request
from .models import Order
from .schemas import (
    CartItemAddIn,
    CartItemOut,
    CartItemUpdateIn,
    CartOut,
    CheckoutIn,
    CheckoutOut,
    CheckoutPreviewIn,
    CheckoutPreviewOut,
    OrderCancelIn,
    OrderLineOut,
    OrderOut,
    OrderStatusIn,
    PaymentMethodOut,
    PriceLineOut,
    ShippingAddressOut,
    VoucherCheckIn,
    VoucherCheckOut,
)
from .wiring import get_services


router = Router(tags=["checkout"])
admin_router = Router(tags=["admin"])

_auth = JWTAuth()


def _require_user(request):
    user = request.auth
    if not user:
        raise HttpError(401, "Unauthorized")
    return user


def _require_staff(request):
    user = _require_user(request)
    if not getattr(user, "is_staff", False):
        raise HttpError(403, "Forbidden")
    return user


def client_ip(request) -> str:
    forwarded = (request.META.get("HTTP_X_FORWARDED_FOR") or "").split(",")[0].strip()
    return forwarded or request.META.get("REMOTE_ADDR") or ""


def _serialize_cart(cart) -> CartOut:
    items: list[CartItemOut] = []
    subtotal = Decimal("0.00")
    for ln in cart.lines() if cart is not None else []:
        p = price_line(ln.variant, ln.qty)
        subtotal += p.line_total
        items.append(
            CartItemOut(
                id=ln.item_id,
                variant_id=p.variant_id,
                sku=p.sku,
                name=p.name,
                color=p.color,
                size=p.size,
                qty=p.qty,
                stock_available=max(0, int(ln.variant.stock)),
                unit_price=p.unit_price,
                line_total=p.line_total,
            )
        )
    return CartOut(
        currency=settings.STORE_CURRENCY,
        items=items,
        subtotal=quantize_money(subtotal),
    )


def _check_cart_qty(cart, *, variant: Variant, qty: int, exclude_item_id: int | None = None) -> None:
    # Variant-level cap (sum of all cart lines for this variant).
    other_qty = cart.qty_for_variant(variant_id=variant.id, exclude_item_id=exclude_item_id) if cart else 0
    if int(other_qty) + int(qty) > int(variant.stock):
        raise InsufficientStock(f"Insufficient stock for item {variant.sku}", variant_id=variant.id, sku=variant.sku)


def _serialize_order(order: Order) -> OrderOut:
    payment_url = None
    session = getattr(order, "payment_session", None) if order.payment_kind == PaymentMethod.Kind.GATEWAY else None
    if session is not None and session.consumed_at is None and order.status == Order.Status.PENDING:
        payment_url = session.redirect_url

    return OrderOut(
        order_code=order.order_code,
        status=order.status,
        payment_status=order.payment_status,
        payment_method=order.payment_method.code,
        currency=order.currency,
        subtotal=order.subtotal,
        discount_amount=order.discount_amount,
        shipping_fee=order.shipping_fee,
        final_total=order.final_total,
        voucher_code=order.voucher_code,
        shipping_address=ShippingAddressOut(
            full_name=order.shipping_full_name,
            phone=order.shipping_phone,
            line1=order.shipping_line1,
            ward=order.shipping_ward,
            district=order.shipping_district,
            city=order.shipping_city,
            country_code=order.shipping_country_code,
        ),
        lines=[
            OrderLineOut(
                sku=ln.sku,
                name=ln.name,
                color=ln.color,
                size=ln.size,
                unit_price=ln.unit_price,
                qty=ln.qty,
                line_total=ln.line_total,
            )
            for ln in order.lines.all()
        ],
        payment_url=payment_url,
        cancel_reason=order.cancel_reason,
        created_at=order.created_at,
        paid_at=order.paid_at,
    )


@router.get("/payment-methods", response=list[PaymentMethodOut])
def payment_methods(request):
    gateway = get_services().gateway
    return [
        PaymentMethodOut(
            id=m.id,
            code=m.code,
            name=m.name,
            kind=m.kind,
            provider=m.provider if m.is_online else "",
            instructions=m.instructions,
        )
        for m in PaymentMethod.objects.filter(is_active=True).order_by("sort_order", "code")
        # Online methods without a configured provider cannot be checked out.
        if not m.is_online or gateway.supports(m.provider)
    ]


@router.get("/cart", response=CartOut)
def get_cart(request):
    return _serialize_cart(cart_source_for_request(request, create=False))


@router.post("/cart/items", response=CartOut)
def add_cart_item(request, payload: CartItemAddIn):
    qty = int(payload.qty or 0)
    if qty <= 0:
        raise HttpError(400, "qty must be positive")

    variant = (
        Variant.objects.select_related("product")
        .filter(id=payload.variant_id)
        .first()
    )
    if not variant:
        raise HttpError(404, "Variant not found")
    if not variant.is_purchasable:
        raise ProductUnavailable(f"Item {variant.sku} is not available", variant_id=variant.id, sku=variant.sku)

    cart = cart_source_for_request(request, create=True)
    if cart is None:
        raise HttpError(400, "Session is required")

    _check_cart_qty(cart, variant=variant, qty=qty)
    cart.add(variant=variant, qty=qty)
    return _serialize_cart(cart)


@router.patch("/cart/items/{item_id}", response=CartOut)
def update_cart_item(request, item_id: int, payload: CartItemUpdateIn):
    cart = cart_source_for_request(request, create=False)
    item = cart.get_item(item_id) if cart is not None else None
    if item is None:
        raise HttpError(404, "Cart item not found")

    qty = int(payload.qty or 0)
    if qty > 0:
        _check_cart_qty(cart, variant=item.variant, qty=qty, exclude_item_id=item.id)
    cart.set_qty(item_id=item.id, qty=qty)
    return _serialize_cart(cart)


@router.delete("/cart/items/{item_id}", response=CartOut)
def delete_cart_item(request, item_id: int):
    cart = cart_source_for_request(request, create=False)
    if cart is None or not cart.remove(item_id=item_id):
        raise HttpError(404, "Cart item not found")
    return _serialize_cart(cart)


@router.post("/preview", response=CheckoutPreviewOut, auth=_auth)
def checkout_preview(request, payload: CheckoutPreviewIn):
    user = _require_user(request)
    services = get_services()

    breakdown = services.checkout.preview(
        user,
        cart_source_for_request(request) or UserCartSource(user),
        address_id=payload.address_id,
        voucher_code=payload.voucher_code,
    )
    return CheckoutPreviewOut(
        currency=settings.STORE_CURRENCY,
        lines=[
            PriceLineOut(
                variant_id=p.variant_id,
                sku=p.sku,
                name=p.name,
                color=p.color,
                size=p.size,
                unit_price=p.unit_price,
                qty=p.qty,
                line_total=p.line_total,
            )
            for p in breakdown.lines
        ],
        subtotal=breakdown.subtotal,
        discount_amount=breakdown.discount_amount,
        shipping_fee=breakdown.shipping_fee,
        final_total=breakdown.final_total,
        voucher_code=breakdown.voucher_code,
    )


@router.post("/vouchers/validate", response=VoucherCheckOut, auth=_auth)
def validate_voucher(request, payload: VoucherCheckIn):
    user = _require_user(request)
    res = get_services().checkout.check_voucher(
        user,
        cart_source_for_request(request) or UserCartSource(user),
        code=payload.code,
    )
    return VoucherCheckOut(code=res.code, subtotal=res.subtotal, discount_amount=res.discount_amount)


@router.post("/checkout", response=CheckoutOut, auth=_auth)
def checkout(request, payload: CheckoutIn):
    user = _require_user(request)

    result = get_services().checkout.checkout(
        user,
        cart_source_for_request(request) or UserCartSource(user),
        address_id=payload.address_id,
        payment_method_id=payload.payment_method_id,
        voucher_code=payload.voucher_code,
        client_ip=client_ip(request),
    )
    order = result.order
    return CheckoutOut(
        order_code=order.order_code,
        final_total=order.final_total,
        status=order.status,
        payment_status=order.payment_status,
        payment_url=result.payment_url,
    )


@router.get("/orders", response=list[OrderOut], auth=_auth)
def list_orders(request, status: str | None = None, limit: int = 20):
    user = _require_user(request)
    if status and status not in Order.Status.values:
        raise HttpError(400, "Invalid status")

    services = get_services()
    orders = services.orders.list_for_user(user, status=status, limit=limit)
    return [_serialize_order(services.gateway.check_expiry(o)) for o in orders]


@router.get("/orders/{order_code}", response=OrderOut, auth=_auth)
def get_order(request, order_code: str):
    user = _require_user(request)
    services = get_services()
    order = services.orders.get(order_code, user=user)
    return _serialize_order(services.gateway.check_expiry(order))


@router.post("/orders/{order_code}/cancel", response=OrderOut, auth=_auth)
def cancel_order(request, order_code: str, payload: OrderCancelIn):
    user = _require_user(request)
    services = get_services()
    order = services.gateway.check_expiry(services.orders.get(order_code, user=user))
    order = services.orders.cancel(order, actor=Order.CancelledBy.USER, reason=payload.reason)
    return _serialize_order(order)


@admin_router.post("/orders/{order_code}/status", response=OrderOut, auth=_auth)
def admin_set_order_status(request, order_code: str, payload: OrderStatusIn):
    _require_staff(request)
    if payload.status not in Order.Status.values:
        raise HttpError(400, "Invalid status")

    services = get_services()
    order = services.orders.get(order_code)
    order = services.orders.transition(
        order,
        payload.status,
        actor=Order.CancelledBy.ADMIN,
        reason=payload.reason,
    )
    return _serialize_order(order)


@admin_router.delete("/orders/{order_code}", auth=_auth)
def admin_delete_order(request, order_code: str):
    _require_staff(request)
    services = get_services()
    services.orders.delete(services.orders.get(order_code))
    return {"status": "ok"}
