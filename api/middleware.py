"""Shop isolation middleware using ContextVar.

Extracts the current shop from the X-Shopify-Shop-Domain request header.
The shop is stored in a ContextVar so that downstream code (the
configuration repository, log records) can call get_current_shop()
without explicit parameter passing.
"""

from contextvars import ContextVar

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

SHOP_HEADER = "X-Shopify-Shop-Domain"

# ---------------------------------------------------------------------------
# Context variable: per-task shop state
# ---------------------------------------------------------------------------

_current_shop: ContextVar[str] = ContextVar("current_shop", default="default")


def get_current_shop() -> str:
    """Return the shop domain for the current request.

    Safe to call from any async context within the request lifecycle::

        shop = get_current_shop()
        blob = repo.load(shop)
    """
    return _current_shop.get()


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

class ShopMiddleware(BaseHTTPMiddleware):
    """Extract the shop from request headers.

    Falls back to "default" when the header is missing or blank. The shop
    is also bound into structlog's context so every log line carries it.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        shop = (request.headers.get(SHOP_HEADER) or "").strip().lower() or "default"

        token = _current_shop.set(shop)
        try:
            with structlog.contextvars.bound_contextvars(shop=shop):
                response = await call_next(request)
            return response
        finally:
            _current_shop.reset(token)
