from __future__ import annotations

from ninja import Schema


class LoginIn(Schema):
    email: str
    password: str


class RefreshIn(Schema):
    refresh: str | None = None


class StatusOut(Schema):
    status: str


class AddressOut(Schema):
    id: int
    full_name: str
    phone: str
    line1: str
    ward: str
    district: str
    city: str
    country_code: str
    is_default: bool


class MeOut(Schema):
    id: int
    email: str
    name: str
    is_staff: bool
    addresses: list[AddressOut] = []
