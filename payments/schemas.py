from __future__ import annotations

from ninja import Schema


class IpnAckOut(Schema):
    code: str
    message: str
