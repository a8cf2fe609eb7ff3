from __future__ import annotations


class ShopError(Exception):
    """Base for domain errors surfaced to API callers.

    `code` is stable and machine-readable; `status_code` is the HTTP status
    the API layer answers with.
    """

    status_code = 400
    code = "error"
    default_detail = "Request failed"

    def __init__(self, detail: str | None = None, **context):
        self.detail = detail or self.default_detail
        self.context = context
        super().__init__(self.detail)


class CartEmpty(ShopError):
    code = "cart_empty"
    default_detail = "Cart is empty"


class ProductUnavailable(ShopError):
    status_code = 409
    code = "product_unavailable"
    default_detail = "Product is not available"


class InsufficientStock(ShopError):
    status_code = 409
    code = "insufficient_stock"
    default_detail = "Not enough stock"


class AddressInvalid(ShopError):
    code = "address_invalid"
    default_detail = "Shipping address is invalid"


class PaymentMethodInvalid(ShopError):
    code = "payment_method_invalid"
    default_detail = "Unsupported payment method"


class VoucherError(ShopError):
    code = "voucher_invalid"
    default_detail = "Voucher cannot be applied"


class VoucherNotFound(VoucherError):
    status_code = 404
    code = "voucher_not_found"
    default_detail = "Voucher not found"


class VoucherExpired(VoucherError):
    code = "voucher_expired"
    default_detail = "Voucher is not active"


class VoucherOutOfRange(VoucherError):
    code = "voucher_out_of_range"
    default_detail = "Order value is outside the voucher range"


class VoucherAlreadyUsed(VoucherError):
    status_code = 409
    code = "voucher_already_used"
    default_detail = "Voucher already used"


class VoucherExhausted(VoucherError):
    status_code = 409
    code = "voucher_exhausted"
    default_detail = "Voucher usage limit reached"


class OrderNotFound(ShopError):
    status_code = 404
    code = "order_not_found"
    default_detail = "Order not found"


class InvalidStateTransition(ShopError):
    status_code = 409
    code = "invalid_state_transition"
    default_detail = "Order status change is not allowed"


class PaymentError(ShopError):
    code = "payment_error"
    default_detail = "Payment could not be processed"


class InvalidSignature(PaymentError):
    code = "invalid_signature"
    default_detail = "Invalid signature"


class PaymentSessionExpired(PaymentError):
    status_code = 410
    code = "payment_session_expired"
    default_detail = "Payment session expired"


class PaymentAmountMismatch(PaymentError):
    code = "payment_amount_mismatch"
    default_detail = "Paid amount does not match the order"


class PaymentProviderUnavailable(PaymentError):
    status_code = 502
    code = "payment_provider_unavailable"
    default_detail = "Payment provider is unavailable"
