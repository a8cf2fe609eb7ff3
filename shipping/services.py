from __future__ import annotations

from decimal import Decimal
from typing import Protocol

from django.conf import settings
from django.utils.module_loading import import_string

from pricing.services import quantize_money


class ShippingPolicy(Protocol):
    def fee_for(self, address) -> Decimal: ...


def _normalize_city(value: str) -> str:
    return " ".join((value or "").split()).casefold()


class ReferenceCityShippingPolicy:
    """Two flat rates: one for the reference city, another for everywhere else."""

    def __init__(
        self,
        *,
        reference_cities: list[str] | None = None,
        reference_fee: Decimal | str | None = None,
        other_fee: Decimal | str | None = None,
    ):
        cities = reference_cities if reference_cities is not None else settings.SHIPPING_REFERENCE_CITIES
        self.reference_cities = {_normalize_city(c) for c in cities if _normalize_city(c)}
        self.reference_fee = quantize_money(
            Decimal(str(reference_fee if reference_fee is not None else settings.SHIPPING_FEE_REFERENCE_CITY))
        )
        self.other_fee = quantize_money(
            Decimal(str(other_fee if other_fee is not None else settings.SHIPPING_FEE_OTHER))
        )

    def fee_for(self, address) -> Decimal:
        city = _normalize_city(getattr(address, "city", "") or "")
        if city and city in self.reference_cities:
            return self.reference_fee
        return self.other_fee


class FlatShippingPolicy:
    def __init__(self, *, fee: Decimal | str | None = None):
        self.fee = quantize_money(Decimal(str(fee if fee is not None else settings.SHIPPING_FEE_OTHER)))

    def fee_for(self, address) -> Decimal:
        return self.fee


def get_shipping_policy(path: str | None = None) -> ShippingPolicy:
    cls = import_string(path or settings.SHIPPING_FEE_POLICY)
    return cls()
