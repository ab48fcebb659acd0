"""Resilient Rye Client — GraphQL over httpx with retry, backoff, and error mapping.

Invariants:
    - Rate limits (429): exponential backoff with jitter, respects Retry-After header
    - Connection failures (request never reached Rye): retried for every operation
    - HTTP 5xx: retried only for read operations, since a mutation may already
      have been applied remotely (no double add-to-cart)
    - Client errors (4xx except 429): immediate failure, no retry
    - All failures mapped to RyeAPIError (core/errors.py)
    - Mutations that return no cart raise RYE_NO_CART

Design Decisions:
    - Wrapper over raw httpx: isolates retry logic from cart services
    - ±25% jitter on backoff: prevents thundering herd on shared rate limits
    - Shopper IP is forwarded per call (Rye-Shopper-IP); falls back to settings
"""

import asyncio
import logging
import random

import httpx

from app.core.errors import ErrorContext, RyeAPIError
from app.infrastructure import rye_queries

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = {500, 502, 503, 504}


def status_for_rye_code(code: str | None) -> int:
    """HTTP status this service answers with for a Rye GraphQL error code."""
    code = code or ""
    if code == "CART_EXPIRED_ERROR":
        return 410
    if "NOT_FOUND" in code:
        return 404
    if "UNAUTHENTICATED" in code or "FORBIDDEN" in code:
        return 401
    return 400


def _error_code(error: dict) -> str:
    return (
        (error.get("extensions") or {}).get("code")
        or error.get("code")
        or "GRAPHQL_ERROR"
    )


def raise_for_errors(
    errors: list[dict] | None, context: ErrorContext | None = None,
) -> None:
    """Raise RyeAPIError for a non-empty GraphQL `errors` list."""
    if not errors:
        return
    code = _error_code(errors[0])
    message = "; ".join(e.get("message", "") for e in errors)
    raise RyeAPIError(
        message, code, status_for_rye_code(code),
        remote_errors=errors, context=context,
    )


class ResilientRyeClient:
    """Wraps httpx.AsyncClient with Rye auth, retry logic, and error mapping."""

    def __init__(
        self,
        endpoint: str,
        secret_key: str,
        default_shopper_ip: str = "127.0.0.1",
        max_retries: int = 3,
        base_delay_ms: int = 500,
        max_delay_ms: int = 8_000,
        timeout_seconds: int = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.endpoint = endpoint
        self.default_shopper_ip = default_shopper_ip
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms
        self.client = httpx.AsyncClient(
            headers={
                "Authorization": secret_key,
                "Content-Type": "application/json",
            },
            timeout=timeout_seconds,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    # ─── Transport ───────────────────────────────────────────────

    async def execute(
        self,
        query: str,
        variables: dict,
        *,
        shopper_ip: str | None = None,
        idempotent: bool = False,
        context: ErrorContext | None = None,
    ) -> dict:
        """POST one GraphQL operation and return its `data` object."""
        operation = query.strip().split("(")[0]
        headers = {"Rye-Shopper-IP": shopper_ip or self.default_shopper_ip}
        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.post(
                    self.endpoint,
                    json={"query": query, "variables": variables},
                    headers=headers,
                )
            except httpx.TimeoutException:
                raise RyeAPIError(
                    "Rye API did not respond", "RYE_TIMEOUT", 504, context=context,
                )
            except httpx.TransportError as e:
                await self._handle_transient_error(e, attempt, context)
                continue

            if response.status_code == 429:
                await self._handle_rate_limit(response, attempt, context)
                continue
            if response.status_code in _RETRYABLE_STATUS and idempotent:
                await self._handle_transient_error(
                    f"HTTP {response.status_code}", attempt, context,
                )
                continue
            if response.status_code >= 400:
                raise self._http_error(response, context)

            body = response.json()
            raise_for_errors(body.get("errors"), context)
            logger.info(
                f"Rye {operation} succeeded", extra={"attempt": attempt + 1},
            )
            return body.get("data") or {}

        raise RyeAPIError(
            "Rye API unavailable after retries", "RYE_UNAVAILABLE", 503, context=context,
        )

    def _http_error(self, response: httpx.Response, context: ErrorContext | None) -> RyeAPIError:
        """Map a non-2xx response to RyeAPIError, surfacing the first GraphQL error."""
        status = response.status_code
        try:
            data = response.json()
        except ValueError:
            data = None
        errors = data.get("errors") if isinstance(data, dict) else None
        if errors:
            first = errors[0]
            return RyeAPIError(
                first.get("message", f"HTTP {status}"), _error_code(first), status,
                remote_errors=errors, context=context,
            )
        return RyeAPIError(
            f"Rye API HTTP Error: {status}", f"HTTP_{status}", status,
            remote_errors=data if data is not None else response.text, context=context,
        )

    async def _handle_rate_limit(
        self, response: httpx.Response, attempt: int, context: ErrorContext | None,
    ) -> None:
        """Handle rate limit response with retry or raise."""
        retry_after_ms = self._extract_retry_after(response)
        if attempt >= self.max_retries:
            raise RyeAPIError(
                "Rate limit exceeded after retries", "RYE_RATE_LIMITED", 429,
                retry_after_ms=retry_after_ms, context=context,
            )
        delay = retry_after_ms or self._backoff(attempt)
        logger.warning(
            f"Rye rate limit hit, retry after {delay}ms", extra={"attempt": attempt + 1},
        )
        await asyncio.sleep(delay / 1000)

    async def _handle_transient_error(
        self, error: object, attempt: int, context: ErrorContext | None,
    ) -> None:
        """Handle transient errors with retry or raise."""
        if attempt >= self.max_retries:
            raise RyeAPIError(
                f"Transient failure after {self.max_retries} retries: {error}",
                "RYE_UNAVAILABLE", 503, context=context,
            )
        delay = self._backoff(attempt)
        logger.warning(
            f"Rye transient error, retry after {delay}ms: {error}",
            extra={"attempt": attempt + 1},
        )
        await asyncio.sleep(delay / 1000)

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311

    def _extract_retry_after(self, response: httpx.Response) -> int | None:
        """Extract Retry-After header (returns milliseconds)."""
        val = response.headers.get("retry-after")
        if val and val.isdigit():
            return int(val) * 1000
        return None

    # ─── Cart operations ─────────────────────────────────────────

    def _cart_from(
        self, data: dict, field: str, context: ErrorContext | None,
    ) -> dict:
        payload = data.get(field) or {}
        raise_for_errors(payload.get("errors"), context)
        cart = payload.get("cart")
        if not cart:
            raise RyeAPIError(
                f"Rye API did not return a cart for {field}", "RYE_NO_CART", 502,
                context=context,
            )
        return cart

    async def get_cart(
        self, cart_id: str, *, shopper_ip: str | None = None,
        context: ErrorContext | None = None,
    ) -> dict | None:
        """Fetch a cart; None when Rye answers without one."""
        data = await self.execute(
            rye_queries.GET_CART, {"cartId": cart_id},
            shopper_ip=shopper_ip, idempotent=True, context=context,
        )
        payload = data.get("getCart") or {}
        raise_for_errors(payload.get("errors"), context)
        return payload.get("cart")

    async def create_cart(
        self, items: dict, *, shopper_ip: str | None = None,
        context: ErrorContext | None = None,
    ) -> dict:
        data = await self.execute(
            rye_queries.CREATE_CART, {"input": {"items": items}},
            shopper_ip=shopper_ip, context=context,
        )
        cart = self._cart_from(data, "createCart", context)
        if not cart.get("id"):
            raise RyeAPIError(
                "Rye API created a cart without an id", "RYE_NO_CART", 502, context=context,
            )
        return cart

    async def add_cart_items(
        self, cart_id: str, items: dict, *, shopper_ip: str | None = None,
        context: ErrorContext | None = None,
    ) -> dict:
        data = await self.execute(
            rye_queries.ADD_CART_ITEMS, {"input": {"id": cart_id, "items": items}},
            shopper_ip=shopper_ip, context=context,
        )
        return self._cart_from(data, "addCartItems", context)

    async def update_cart_items(
        self, cart_id: str, items: dict, *, shopper_ip: str | None = None,
        context: ErrorContext | None = None,
    ) -> dict:
        data = await self.execute(
            rye_queries.UPDATE_CART_ITEMS, {"input": {"id": cart_id, "items": items}},
            shopper_ip=shopper_ip, context=context,
        )
        return self._cart_from(data, "updateCartItems", context)

    async def delete_cart_items(
        self, cart_id: str, items: dict, *, shopper_ip: str | None = None,
        context: ErrorContext | None = None,
    ) -> dict:
        data = await self.execute(
            rye_queries.DELETE_CART_ITEMS, {"input": {"id": cart_id, "items": items}},
            shopper_ip=shopper_ip, context=context,
        )
        return self._cart_from(data, "deleteCartItems", context)

    async def update_buyer_identity(
        self, cart_id: str, buyer_identity: dict, *, shopper_ip: str | None = None,
        context: ErrorContext | None = None,
    ) -> dict:
        data = await self.execute(
            rye_queries.UPDATE_BUYER_IDENTITY,
            {"input": {"id": cart_id, "buyerIdentity": buyer_identity}},
            shopper_ip=shopper_ip, context=context,
        )
        return self._cart_from(data, "updateCartBuyerIdentity", context)

    async def submit_cart(
        self, cart_id: str, payment_token: str, *, shopper_ip: str | None = None,
        context: ErrorContext | None = None,
    ) -> dict:
        """Submit the cart; per-store outcomes are in the returned cart's stores."""
        data = await self.execute(
            rye_queries.SUBMIT_CART,
            {"input": {"id": cart_id, "token": payment_token}},
            shopper_ip=shopper_ip, context=context,
        )
        return self._cart_from(data, "submitCart", context)

    async def get_order(
        self, order_id: str, *, shopper_ip: str | None = None,
        context: ErrorContext | None = None,
    ) -> dict | None:
        data = await self.execute(
            rye_queries.GET_ORDER, {"orderId": order_id},
            shopper_ip=shopper_ip, idempotent=True, context=context,
        )
        return data.get("orderByID")


# Singleton (initialized on startup)
rye_client: ResilientRyeClient | None = None


def init_rye_client(**kwargs) -> ResilientRyeClient:
    global rye_client
    rye_client = ResilientRyeClient(**kwargs)
    return rye_client


async def close_rye_client() -> None:
    global rye_client
    if rye_client:
        await rye_client.aclose()
        rye_client = None
