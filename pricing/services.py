from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP

MONEY_PLACES = Decimal("0.01")


def quantize_money(amount: Decimal) -> Decimal:
    return amount.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PricedLine:
    variant_id: int
    sku: str
    name: str
    color: str
    size: str
    unit_price: Decimal
    qty: int
    line_total: Decimal


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: Decimal
    discount_amount: Decimal
    shipping_fee: Decimal
    final_total: Decimal
    lines: list[PricedLine] = field(default_factory=list)
    voucher_code: str = ""


def price_line(variant, qty: int) -> PricedLine:
    qty_i = int(qty)
    if qty_i <= 0:
        raise ValueError("qty must be positive")

    unit_price = quantize_money(Decimal(variant.price))
    return PricedLine(
        variant_id=int(variant.id),
        sku=variant.sku,
        name=variant.product.name,
        color=variant.color.name if variant.color_id else "",
        size=variant.size.name if variant.size_id else "",
        unit_price=unit_price,
        qty=qty_i,
        line_total=quantize_money(unit_price * qty_i),
    )


class PricingCalculator:
    """Server-side order totals from live variant prices.

    Reads only. Nothing here reserves stock or redeems vouchers.
    """

    def __init__(self, *, shipping_policy, voucher_ledger):
        self.shipping_policy = shipping_policy
        self.voucher_ledger = voucher_ledger

    def shipping_fee(self, address) -> Decimal:
        return quantize_money(Decimal(self.shipping_policy.fee_for(address)))

    def subtotal(self, lines: Iterable) -> Decimal:
        return quantize_money(sum((price_line(ln.variant, ln.qty).line_total for ln in lines), Decimal("0")))

    def compute(self, lines: Iterable, *, address, voucher=None) -> PriceBreakdown:
        """`lines` yield objects with a live `variant` and a `qty`."""
        priced = [price_line(ln.variant, ln.qty) for ln in lines]

        subtotal = quantize_money(sum((p.line_total for p in priced), Decimal("0")))
        shipping_fee = self.shipping_fee(address)

        discount = Decimal("0.00")
        if voucher is not None:
            discount = self.voucher_ledger.compute_discount(voucher, subtotal)

        final_total = quantize_money(max(Decimal("0"), subtotal - discount + shipping_fee))

        return PriceBreakdown(
            subtotal=subtotal,
            discount_amount=discount,
            shipping_fee=shipping_fee,
            final_total=final_total,
            lines=priced,
            voucher_code=voucher.code if voucher is not None else "",
        )
