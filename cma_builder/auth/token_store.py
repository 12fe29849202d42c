"""Browser-session token storage in HTTP-only cookies.

Nothing is persisted server-side: the cookie is the only copy of the provider
tokens and it dies with its max-age or on disconnect.
"""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import Request, Response

from ..core.config import settings
from ..data.base import TokenPair
from ..errors import UnauthenticatedError

ACCESS_COOKIE = "canva_access_token"
REFRESH_COOKIE = "canva_refresh_token"

REFRESH_MAX_AGE = 60 * 60 * 24 * 30
DEFAULT_ACCESS_MAX_AGE = 3600


class TokenStore:
    """Reads and writes one browser session's ``TokenPair``."""

    def __init__(self, secure: bool | None = None):
        self.secure = settings.cookies_secure if secure is None else secure

    def save(self, response: Response, tokens: TokenPair, now: datetime | None = None) -> None:
        now = now or datetime.now(timezone.utc)
        max_age = int((tokens.expires_at - now).total_seconds())
        if max_age <= 0:
            max_age = DEFAULT_ACCESS_MAX_AGE
        response.set_cookie(
            key=ACCESS_COOKIE,
            value=tokens.access_token,
            max_age=max_age,
            httponly=True,
            secure=self.secure,
            samesite="lax",
            path="/",
        )
        if tokens.refresh_token:
            response.set_cookie(
                key=REFRESH_COOKIE,
                value=tokens.refresh_token,
                max_age=REFRESH_MAX_AGE,
                httponly=True,
                secure=self.secure,
                samesite="lax",
                path="/",
            )

    def access_token(self, request: Request) -> str | None:
        return request.cookies.get(ACCESS_COOKIE) or None

    def clear(self, response: Response) -> None:
        response.delete_cookie(key=ACCESS_COOKIE, path="/")
        response.delete_cookie(key=REFRESH_COOKIE, path="/")


token_store = TokenStore()


def require_access_token(request: Request) -> str:
    """FastAPI dependency: the session's bearer token or 401."""
    token = token_store.access_token(request)
    if not token:
        raise UnauthenticatedError("Not connected to Canva")
    return token
