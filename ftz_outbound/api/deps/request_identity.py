from __future__ import annotations

from fastapi import Request

from ftz_outbound.models.mixins import SYSTEM_USER
from ftz_outbound.schemas.request_identity import RequestIdentity

DEFAULT_REQUEST_EMAIL = SYSTEM_USER


def _identity_from_header(request: Request) -> RequestIdentity:
    email = (
        request.headers.get("X-User-Email")
        or request.headers.get("X-User")
        or DEFAULT_REQUEST_EMAIL
    )
    return RequestIdentity(
        email=(email or "").strip().lower() or None,
        auth_source="header",
    )


def get_request_identity(request: Request) -> RequestIdentity:
    return _identity_from_header(request)


def get_request_email(request: Request) -> str:
    identity = get_request_identity(request)
    return identity.email or DEFAULT_REQUEST_EMAIL
