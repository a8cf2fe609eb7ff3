from __future__ import annotations

from .settings_base import *  # noqa: F403

# Development defaults
DEBUG = env.bool("DEBUG", default=True)  # type: ignore[name-defined]  # noqa: F405
NINJA_ENABLE_DOCS = True

# Sandbox credentials must come from .env; payment URLs are unsigned otherwise.
if not VNPAY_HASH_SECRET:  # type: ignore[name-defined]  # noqa: F405
    VNPAY_HASH_SECRET = "dev-only-hash-secret"
    VNPAY_TMN_CODE = VNPAY_TMN_CODE or "DEVMERCH"  # type: ignore[name-defined]  # noqa: F405

LOGGING["root"]["level"] = env("LOG_LEVEL", default="DEBUG")  # type: ignore[name-defined]  # noqa: F405
