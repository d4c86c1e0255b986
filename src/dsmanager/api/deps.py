# Shared FastAPI dependencies for the API layer.
# Created: 2026-10-19

from __future__ import annotations

from collections.abc import Callable
from functools import partial
from typing import Any

from fastapi import Depends, Request, Response

from dsmanager.api.errors import ApiError
from dsmanager.opencloud import OpenCloudClient
from dsmanager.security.rate_limiter import (
    RateLimitInfo,
    SlidingWindowRateLimiter,
    get_default_limiter,
)

ClientFactory = Callable[[str, str], OpenCloudClient]


def get_client_factory() -> ClientFactory:
    """Return a callable building an OpenCloudClient for ``(universe_id, api_token)``.

    Overridden in tests to point clients at a stub transport.
    """
    from dsmanager.config import get_settings

    settings = get_settings()
    return partial(
        OpenCloudClient,
        base_url=settings.opencloud_base_url,
        timeout=settings.request_timeout,
    )


def get_rate_limiter(request: Request) -> SlidingWindowRateLimiter:
    """The app's own limiter when it has one, else the shared default."""
    limiter = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        return get_default_limiter()
    return limiter


def client_key(request: Request) -> str:
    """Identify the caller for rate limiting: forwarded address, real IP, then peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "anonymous"


async def enforce_rate_limit(
    request: Request,
    response: Response,
    limiter: SlidingWindowRateLimiter = Depends(get_rate_limiter),
) -> RateLimitInfo:
    """Count this request against the caller's window; 429 when over the limit.

    The X-RateLimit-* headers go on every response of the route, errors included.
    """
    info = limiter.check(client_key(request))
    headers = info.headers()
    request.state.rate_limit_headers = headers
    if info.limited:
        raise ApiError(429, "Too many requests", headers=headers)
    response.headers.update(headers)
    return info


def resolve_api_token(request: Request, *fallbacks: str | None) -> str | None:
    """API token from the ``x-api-key`` header, else the first non-empty fallback."""
    header = request.headers.get("x-api-key")
    if header:
        return header
    for value in fallbacks:
        if value:
            return value
    return None


def _join_names(names: list[str]) -> str:
    if len(names) == 1:
        return names[0]
    if len(names) == 2:
        return f"{names[0]} or {names[1]}"
    return f"{', '.join(names[:-1])}, or {names[-1]}"


def require_params(params: dict[str, Any]) -> None:
    """Raise a 400 naming every parameter that is None or empty."""
    missing = [name for name, value in params.items() if value is None or value == ""]
    if missing:
        raise ApiError(400, f"Missing {_join_names(missing)}")
