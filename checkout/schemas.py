from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from ninja import Schema


class CartItemOut(Schema):
    id: int
    variant_id: int
    sku: str
    name: str
    color: str = ""
    size: str = ""
    qty: int
    stock_available: int
    unit_price: Decimal
    line_total: Decimal


class CartOut(Schema):
    currency: str = "VND"
    items: list[CartItemOut]
    subtotal: Decimal


class CartItemAddIn(Schema):
    variant_id: int
    qty: int = 1


class CartItemUpdateIn(Schema):
    qty: int


class PaymentMethodOut(Schema):
    id: int
    code: str
    name: str
    kind: str
    provider: str = ""
    instructions: str = ""


class CheckoutPreviewIn(Schema):
    address_id: int | None = None
    voucher_code: str | None = None


class PriceLineOut(Schema):
    variant_id: int
    sku: str
    name: str
    color: str = ""
    size: str = ""
    unit_price: Decimal
    qty: int
    line_total: Decimal


class CheckoutPreviewOut(Schema):
    currency: str = "VND"
    lines: list[PriceLineOut]
    subtotal: Decimal
    discount_amount: Decimal
    shipping_fee: Decimal
    final_total: Decimal
    voucher_code: str = ""


class VoucherCheckIn(Schema):
    code: str


class VoucherCheckOut(Schema):
    code: str
    subtotal: Decimal
    discount_amount: Decimal


class CheckoutIn(Schema):
    address_id: int
    payment_method_id: int | str
    voucher_code: str | None = None


class CheckoutOut(Schema):
    order_code: str
    final_total: Decimal
    status: str
    payment_status: str
    payment_url: str | None = None


class OrderLineOut(Schema):
    sku: str
    name: str
    color: str = ""
    size: str = ""
    unit_price: Decimal
    qty: int
    line_total: Decimal


class ShippingAddressOut(Schema):
    full_name: str
    phone: str
    line1: str
    ward: str = ""
    district: str = ""
    city: str
    country_code: str = ""


class OrderOut(Schema):
    order_code: str
    status: str
    payment_status: str
    payment_method: str
    currency: str
    subtotal: Decimal
    discount_amount: Decimal
    shipping_fee: Decimal
    final_total: Decimal
    voucher_code: str = ""
    shipping_address: ShippingAddressOut
    lines: list[OrderLineOut] = []
    payment_url: str | None = None
    cancel_reason: str = ""
    created_at: datetime
    paid_at: datetime | None = None


class OrderCancelIn(Schema):
    reason: str = ""


class OrderStatusIn(Schema):
    status: str
    reason: str = ""
