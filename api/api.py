from __future__ import annotations

import logging

from django.conf import settings
from ninja import NinjaAPI

from accounts.api import router as auth_router
from checkout.api import admin_router as checkout_admin_router
from checkout.api import router as checkout_router
from payments.api import router as payments_router

from .errors import ShopError

logger = logging.getLogger(__name__)

docs_url = "/docs" if getattr(settings, "NINJA_ENABLE_DOCS", True) else None
openapi_url = "/openapi.json" if getattr(settings,
                                         "NINJA_ENABLE_DOCS", True) else None

api = NinjaAPI(
    title="Store checkout API",
    version="1",
    docs_url=docs_url,
    openapi_url=openapi_url,
)

api.add_router("/auth", auth_router)
api.add_router("/checkout", checkout_router)
api.add_router("/admin", checkout_admin_router)
api.add_router("/payments", payments_router)


@api.exception_handler(ShopError)
def shop_error(request, exc: ShopError):
    logger.info("Request rejected: %s", exc.code, extra={"path": request.path, **exc.context})
    return api.create_response(
        request,
        {"code": exc.code, "detail": exc.detail},
        status=exc.status_code,
    )


@api.get("/health")
def health(request):
    return {"status": "ok"}
