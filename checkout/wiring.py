from __future__ import annotations

from dataclasses import dataclass

from catalog.services import StockLedger
from payments.services.gateway import PaymentGatewayAdapter
from pricing.services import PricingCalculator
from promotions.services import VoucherLedger
from shipping.services import get_shipping_policy

from .orders import OrderStore
from .services import CheckoutOrchestrator


@dataclass(frozen=True)
class CheckoutServices:
    stock: StockLedger
    vouchers: VoucherLedger
    pricing: PricingCalculator
    orders: OrderStore
    gateway: PaymentGatewayAdapter
    checkout: CheckoutOrchestrator


def build_services(*, shipping_policy=None, providers=None) -> CheckoutServices:
    stock = StockLedger()
    vouchers = VoucherLedger()
    pricing = PricingCalculator(
        shipping_policy=shipping_policy or get_shipping_policy(),
        voucher_ledger=vouchers,
    )
    orders = OrderStore(stock=stock)
    gateway = PaymentGatewayAdapter(orders=orders, providers=providers)
    checkout = CheckoutOrchestrator(
        stock=stock,
        vouchers=vouchers,
        pricing=pricing,
        orders=orders,
        gateway=gateway,
    )
    return CheckoutServices(
        stock=stock,
        vouchers=vouchers,
        pricing=pricing,
        orders=orders,
        gateway=gateway,
        checkout=checkout,
    )


def get_services() -> CheckoutServices:
    from django.apps import apps

    return apps.get_app_config("checkout").services
