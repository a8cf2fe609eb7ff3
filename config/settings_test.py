from __future__ import annotations

from .settings_base import *  # noqa: F403

DEBUG = False

SECRET_KEY = "test-secret-key-with-enough-length-for-hs256-signing"

# File-backed so threaded tests share one database; IMMEDIATE makes writers
# queue on the lock instead of failing an upgrade mid-transaction.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "test-db.sqlite3",  # noqa: F405
        "OPTIONS": {"timeout": 20, "transaction_mode": "IMMEDIATE"},
        "TEST": {"NAME": BASE_DIR / ".pytest-db.sqlite3"},  # noqa: F405
    }
}

# TEST_DATABASE_URL=postgres://... runs the suite on Postgres instead.
if env("TEST_DATABASE_URL", default=""):  # noqa: F405
    DATABASES = {"default": env.db("TEST_DATABASE_URL")}  # noqa: F405

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

STORE_CURRENCY = "VND"
ORDER_CODE_PREFIX = "TST"

SHIPPING_FEE_POLICY = "shipping.services.ReferenceCityShippingPolicy"
SHIPPING_REFERENCE_CITIES = ["Ho Chi Minh", "TP.HCM"]
SHIPPING_FEE_REFERENCE_CITY = "20000"
SHIPPING_FEE_OTHER = "50000"

PAYMENT_DEFAULT_PROVIDER = "vnpay"
PAYMENT_SESSION_TTL_MINUTES = 15
PAYMENT_SUCCESS_URL = "http://shop.test/checkout/success"
PAYMENT_FAILURE_URL = "http://shop.test/checkout/fail"

VNPAY_URL = "https://gateway.test/pay"
VNPAY_TMN_CODE = "TESTMERCH"
VNPAY_HASH_SECRET = "test-hash-secret"
VNPAY_RETURN_URL = "http://testserver/api/payments/vnpay/callback"

MOMO_ENDPOINT = "https://momo.test/v2/gateway/api/create"
MOMO_PARTNER_CODE = "MOMOTEST"
MOMO_ACCESS_KEY = "test-access-key"
MOMO_SECRET_KEY = "test-momo-secret"
MOMO_REDIRECT_URL = "http://testserver/api/payments/momo/callback"
MOMO_IPN_URL = "http://testserver/api/payments/momo/ipn"
