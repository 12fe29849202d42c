"""OAuth 2.0 Authorization Code + PKCE flow against the design provider.

The flow is stateless on our side:

1. ``begin_authorization`` creates a verifier, derives its challenge and signs
   ``(verifier, return_to)`` into ``state``
2. the provider redirects back with ``code`` and the untouched ``state``
3. ``complete_authorization`` recovers the verifier from ``state`` and
   exchanges ``code + verifier`` for a ``TokenPair``
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any
from urllib.parse import urlencode

import httpx

from ..core.config import settings
from ..core.metrics import record_upstream
from ..core.utils import is_safe_return_path
from ..data.base import TokenPair
from ..errors import CmaError, TokenExchangeError, UpstreamUnavailableError
from .pkce import code_challenge, generate_code_verifier
from .state import decode_state, encode_state

logger = logging.getLogger(__name__)

DEFAULT_EXPIRES_IN = 3600


@dataclass
class AuthSession:
    """One authorization attempt; only ``state`` survives the redirect."""

    pkce_verifier: str
    pkce_challenge: str
    return_to: str
    state: str
    authorization_url: str


class AuthFlow:
    """PKCE authorization flow for the design provider.

    Usage:
        flow = AuthFlow.from_settings()
        session = flow.begin_authorization("/cma/5/export")
        # redirect the browser to session.authorization_url
        tokens, return_to = await flow.complete_authorization(code, state)
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        state_secret: str,
        auth_url: str = "https://www.canva.com/api/oauth/authorize",
        token_url: str = "https://api.canva.com/rest/v1/oauth/token",
        scopes: list[str] | None = None,
        state_ttl_seconds: int = 600,
        default_return_to: str = "/dashboard",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.state_secret = state_secret
        self.auth_url = auth_url
        self.token_url = token_url
        self.scopes = scopes or []
        self.state_ttl_seconds = state_ttl_seconds
        self.default_return_to = default_return_to
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls) -> "AuthFlow":
        """Create a flow from environment configuration.

        Raises:
            CmaError: If the Canva client credentials are not configured
        """
        if not settings.CANVA_CLIENT_ID or not settings.CANVA_CLIENT_SECRET:
            raise CmaError("Canva OAuth is not configured")
        return cls(
            client_id=settings.CANVA_CLIENT_ID,
            client_secret=settings.CANVA_CLIENT_SECRET,
            redirect_uri=settings.CANVA_REDIRECT_URI,
            state_secret=settings.state_secret,
            auth_url=settings.CANVA_AUTH_URL,
            token_url=f"{settings.CANVA_API_BASE.rstrip('/')}/oauth/token",
            scopes=settings.CANVA_SCOPES.split(),
            state_ttl_seconds=settings.OAUTH_STATE_TTL_SECONDS,
            default_return_to=settings.DEFAULT_RETURN_PATH,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )

    def safe_return_to(self, return_to: str | None) -> str:
        return return_to if is_safe_return_path(return_to) else self.default_return_to

    def begin_authorization(self, return_to: str | None = None) -> AuthSession:
        """Build the provider authorization URL for a fresh PKCE attempt.

        Args:
            return_to: Same-site path to resume after the callback; anything
                else falls back to the default landing path

        Returns:
            AuthSession whose ``authorization_url`` the browser is sent to
        """
        path = self.safe_return_to(return_to)
        verifier = generate_code_verifier()
        challenge = code_challenge(verifier)
        state = encode_state(verifier, path, self.state_secret)

        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "code_challenge": challenge,
            "code_challenge_method": "S256",
            "state": state,
        }
        if self.scopes:
            params["scope"] = " ".join(self.scopes)

        return AuthSession(
            pkce_verifier=verifier,
            pkce_challenge=challenge,
            return_to=path,
            state=state,
            authorization_url=f"{self.auth_url}?{urlencode(params)}",
        )

    def decode_state(self, state: str | None) -> tuple[str, str]:
        """Recover ``(verifier, return_to)``; raises InvalidStateError."""
        return decode_state(state, self.state_secret, max_age_seconds=self.state_ttl_seconds)

    async def complete_authorization(self, code: str, state: str) -> tuple[TokenPair, str]:
        """Validate ``state`` and trade ``code`` for tokens.

        Raises:
            InvalidStateError: If state is corrupted, forged or expired
            TokenExchangeError: If the provider rejects the exchange
            UpstreamUnavailableError: If the token endpoint is unreachable
        """
        verifier, return_to = self.decode_state(state)
        tokens = await self.exchange_code(code, verifier)
        return tokens, self.safe_return_to(return_to)

    async def exchange_code(self, code: str, verifier: str) -> TokenPair:
        if not code:
            raise TokenExchangeError("Authorization code is missing", status_code=400)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.token_url,
                    data={
                        "grant_type": "authorization_code",
                        "code": code,
                        "code_verifier": verifier,
                        "redirect_uri": self.redirect_uri,
                    },
                    auth=(self.client_id, self.client_secret),
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
        except httpx.HTTPError as exc:
            record_upstream("canva", None)
            raise UpstreamUnavailableError("Canva token endpoint is unreachable") from exc

        record_upstream("canva", response.status_code)
        if response.status_code != 200:
            try:
                error_data = response.json() if response.content else {}
            except ValueError:
                error_data = {"raw_response": response.text[:500]}
            logger.warning("Canva token exchange failed: %s %s",
                           response.status_code, error_data.get("error", "unknown"))
            raise TokenExchangeError(
                f"Token exchange failed: {response.status_code}",
                details=error_data,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise TokenExchangeError("Token response was not JSON") from exc
        return self._parse_token_response(data)

    def _parse_token_response(self, data: dict[str, Any]) -> TokenPair:
        """Raises TokenExchangeError if the access token is missing."""
        access_token = data.get("access_token") if isinstance(data, dict) else None
        if not access_token:
            raise TokenExchangeError(
                "Invalid token response: missing access_token",
                details={"response_keys": list(data) if isinstance(data, dict) else []},
            )
        try:
            expires_in = int(data.get("expires_in") or DEFAULT_EXPIRES_IN)
        except (TypeError, ValueError):
            expires_in = DEFAULT_EXPIRES_IN
        return TokenPair(
            access_token=access_token,
            refresh_token=data.get("refresh_token"),
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
            scope=data.get("scope", ""),
        )
