from __future__ import annotations

from django.contrib.auth import get_user_model
from django.conf import settings
from ninja.security import HttpBearer

from .jwt_utils import user_id_from_token

User = get_user_model()


def user_from_access_cookie(request):
    cookie_name = getattr(settings, "AUTH_COOKIE_ACCESS_NAME", "access_token")
    token = (request.COOKIES.get(cookie_name) or "").strip()
    if not token:
        return None

    user_id = user_id_from_token(token, expected_type="access")
    if user_id is None:
        return None

    return User.objects.filter(id=user_id, is_active=True).first()


class JWTAuth(HttpBearer):
    def __call__(self, request):
        # Cookie-only auth: access token is stored in HttpOnly cookie.
        return user_from_access_cookie(request)

    def authenticate(self, request, token: str):
        user_id = user_id_from_token(token, expected_type="access")
        if user_id is None:
            return None
        return User.objects.filter(id=user_id, is_active=True).first()

