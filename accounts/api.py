from __future__ import annotations

from django.conf import settings
from django.contrib.auth import authenticate
from django.http import JsonResponse
from ninja import Router
from ninja.errors import HttpError

from .auth import JWTAuth
from .jwt_utils import issue_access_token, issue_refresh_token, user_id_from_token
from .schemas import LoginIn, MeOut, RefreshIn, StatusOut

router = Router(tags=["auth"])
auth = JWTAuth()


def _cookie_samesite() -> str:
    v = (getattr(settings, "AUTH_COOKIE_SAMESITE", "lax") or "lax").lower()
    if v == "strict":
        return "Strict"
    if v == "none":
        return "None"
    return "Lax"


def _cookie_secure(request) -> bool:
    # Prefer explicit override via settings. Otherwise, use actual request scheme.
    explicit = getattr(settings, "AUTH_COOKIE_SECURE", None)
    if explicit is True or explicit is False:
        return bool(explicit)
    return bool(request.is_secure())


def _set_auth_cookies(request, response: JsonResponse, *, access: str, refresh: str | None):
    cookies = [(settings.AUTH_COOKIE_ACCESS_NAME, access)]
    if refresh is not None:
        cookies.append((settings.AUTH_COOKIE_REFRESH_NAME, refresh))

    for name, value in cookies:
        response.set_cookie(
            name,
            value,
            httponly=True,
            secure=_cookie_secure(request),
            samesite=_cookie_samesite(),
            path="/",
        )


@router.post("/login", response=StatusOut)
def login(request, payload: LoginIn):
    user = authenticate(request, username=payload.email,
                        password=payload.password)
    if user is None:
        raise HttpError(401, "Invalid credentials")

    resp = JsonResponse({"status": "ok"})
    _set_auth_cookies(
        request,
        resp,
        access=issue_access_token(user_id=user.id),
        refresh=issue_refresh_token(user_id=user.id),
    )
    return resp


@router.post("/refresh", response=StatusOut)
def refresh(request, payload: RefreshIn | None = None):
    token = ((payload.refresh if payload else None) or "").strip()
    if not token:
        token = (request.COOKIES.get(settings.AUTH_COOKIE_REFRESH_NAME) or "").strip()

    user_id = user_id_from_token(token, expected_type="refresh") if token else None
    if user_id is None:
        raise HttpError(401, "Invalid refresh token")

    resp = JsonResponse({"status": "ok"})
    _set_auth_cookies(request, resp, access=issue_access_token(user_id=user_id), refresh=None)
    return resp


@router.post("/logout", response=StatusOut)
def logout(request):
    resp = JsonResponse({"status": "ok"})
    resp.delete_cookie(settings.AUTH_COOKIE_ACCESS_NAME, path="/")
    resp.delete_cookie(settings.AUTH_COOKIE_REFRESH_NAME, path="/")
    return resp


@router.get("/me", response=MeOut, auth=auth)
def me(request):
    user = request.auth
    return MeOut(
        id=user.id,
        email=user.email,
        name=user.name,
        is_staff=user.is_staff,
        addresses=list(user.addresses.all()),
    )
