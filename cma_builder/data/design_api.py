import logging
from typing import Any, Optional
import httpx
from .base import ConnectionStatus
from ..core.config import settings
from ..core.metrics import record_upstream
from ..errors import (
    InvalidRequestError,
    NotFoundError,
    UnauthenticatedError,
    UpstreamUnavailableError,
)

logger = logging.getLogger(__name__)

PROVIDER = "canva"

class DesignApi:
    """
    Bearer-authenticated JSON transport for the design provider's REST API.
    One AsyncClient and one outbound request per call; no retries.
    """
    def __init__(self, base_url: str, timeout: float = 30.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self._transport)

    async def request(self, method: str, path: str, access_token: Optional[str],
                      params: Optional[dict] = None, json: Optional[dict] = None) -> dict[str, Any]:
        if not access_token:
            raise UnauthenticatedError("Not connected to Canva")

        # Drop unset filters so the provider applies its defaults
        if params:
            params = {k: v for k, v in params.items() if v is not None and v != ""}

        try:
            async with self._client() as client:
                r = await client.request(
                    method, path, params=params or None, json=json,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as exc:
            record_upstream(PROVIDER, None)
            logger.warning("Canva %s %s failed: %s", method, path, exc.__class__.__name__)
            raise UpstreamUnavailableError("Canva API is unreachable") from exc

        record_upstream(PROVIDER, r.status_code)
        if r.status_code in (401, 403):
            raise UnauthenticatedError("Canva token is missing, expired or lacks scope", r.status_code)
        if r.status_code == 404:
            raise NotFoundError(f"Canva resource not found: {path}")
        if r.status_code == 429 or r.status_code >= 500:
            logger.warning("Canva %s %s returned %s", method, path, r.status_code)
            raise UpstreamUnavailableError(f"Canva API error {r.status_code}", details={"body": r.text[:500]})
        if r.status_code >= 400:
            raise InvalidRequestError(f"Canva rejected the request ({r.status_code})",
                                      details={"body": r.text[:500]})
        try:
            data = r.json() if r.content else {}
        except ValueError as exc:
            raise UpstreamUnavailableError("Canva returned a non-JSON response") from exc
        if not isinstance(data, dict):
            raise UpstreamUnavailableError("Canva returned an unexpected response shape")
        return data

    async def connection_status(self, access_token: Optional[str]) -> ConnectionStatus:
        """Whether the cookie token still works; reports instead of raising."""
        if not access_token:
            return ConnectionStatus(connected=False, reason="token_missing")
        try:
            data = await self.request("GET", "/users/me", access_token)
        except UnauthenticatedError:
            return ConnectionStatus(connected=False, reason="token_expired")
        except (UpstreamUnavailableError, InvalidRequestError, NotFoundError):
            return ConnectionStatus(connected=False, reason="api_error")
        profile = data.get("profile") or data
        name = profile.get("display_name") or profile.get("name") or "Canva User"
        return ConnectionStatus(connected=True, display_name=name)

def design_api() -> DesignApi:
    return DesignApi(settings.CANVA_API_BASE, timeout=settings.HTTP_TIMEOUT_SECONDS)
