from fastapi import Header, HTTPException, Request
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_429_TOO_MANY_REQUESTS
from datetime import datetime, timezone
from .config import settings
from .cache import counters

def require_api_key(x_api_key: str | None = Header(default=None, alias="x-api-key")):
    """
    Simple header-based API key check for the collaborator-facing routes.
    Browser flows authenticate with the design-provider cookie instead.
    """
    if not settings.API_KEY:
        # If unset, we allow requests (dev convenience).
        return
    if x_api_key != settings.API_KEY:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid API key")

def rate_limit(request: Request):
    """
    Basic RPM limiter protecting the listings provider quota.
    Keyed by API key (if present) or client IP.
    """
    rpm = max(1, settings.RATE_LIMIT_RPM)
    client_ip = request.client.host if request.client else "unknown"
    api_key = request.headers.get("x-api-key") or "anon"
    minute_bucket = datetime.now(timezone.utc).strftime("%Y%m%d%H%M")
    key = f"rate:{api_key}:{client_ip}:{minute_bucket}"

    if counters.incr(key, ttl_seconds=60) > rpm:
        raise HTTPException(status_code=HTTP_429_TOO_MANY_REQUESTS, detail="Rate limit exceeded")
