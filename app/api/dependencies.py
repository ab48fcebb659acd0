"""API Dependencies — shopper identity, Rye client and guest cookie plumbing.

Invariants:
    - The account id is whatever the upstream auth layer put in the configured
      header; this service never authenticates on its own
    - The shopper IP forwarded to Rye is the first X-Forwarded-For hop, else
      the socket peer
    - get_rye_client reads the module attribute at call time (initialized in lifespan)
"""

from fastapi import Request, Response

import app.infrastructure.rye_client as rye_module
from app.config import get_settings
from app.infrastructure.rye_client import ResilientRyeClient
from app.services.shopper_cart import Shopper


def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def get_shopper(request: Request) -> Shopper:
    settings = get_settings()
    account_id = (request.headers.get(settings.account_header) or "").strip() or None
    return Shopper(
        account_id=account_id,
        guest_token=request.cookies.get(settings.guest_cart_cookie_name),
        ip=_client_ip(request),
    )


def get_rye_client() -> ResilientRyeClient:
    if rye_module.rye_client is None:
        raise RuntimeError("Rye client not initialized")
    return rye_module.rye_client


def set_guest_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    response.set_cookie(
        settings.guest_cart_cookie_name,
        token,
        max_age=settings.guest_cart_cookie_max_age,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.guest_cart_cookie_secure,
    )
