from __future__ import annotations

from django.core.exceptions import ImproperlyConfigured

from .settings_base import *  # noqa: F403

DEBUG = env.bool("DEBUG", default=False)  # type: ignore[name-defined]  # noqa: F405

# Security hardening for production (tunable via env)
SECURE_SSL_REDIRECT = env.bool("SECURE_SSL_REDIRECT", default=True)  # type: ignore[name-defined]  # noqa: F405
SESSION_COOKIE_SECURE = env.bool("SESSION_COOKIE_SECURE", default=True)  # type: ignore[name-defined]  # noqa: F405
CSRF_COOKIE_SECURE = env.bool("CSRF_COOKIE_SECURE", default=True)  # type: ignore[name-defined]  # noqa: F405
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")

# Credentials of the default gateway are mandatory.
_REQUIRED_BY_PROVIDER = {
    "vnpay": ("VNPAY_TMN_CODE", "VNPAY_HASH_SECRET"),
    "momo": ("MOMO_PARTNER_CODE", "MOMO_ACCESS_KEY", "MOMO_SECRET_KEY"),
}
_missing = [
    name
    for name in _REQUIRED_BY_PROVIDER.get(PAYMENT_DEFAULT_PROVIDER, ())  # type: ignore[name-defined]  # noqa: F405
    if not globals().get(name)
]
if _missing:
    raise ImproperlyConfigured(f"Payment settings required: {', '.join(_missing)}")
