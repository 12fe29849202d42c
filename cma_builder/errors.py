"""Error taxonomy shared by the clients, services and routers.

Every error carries the HTTP status and the short ``error_code`` used when the
failure has to be reported through a redirect instead of a JSON body.
"""

from __future__ import annotations


class CmaError(Exception):
    """Base exception for the integration and report-lifecycle layer."""

    status_code = 500
    error_code = "internal_error"

    def __init__(self, message: str, status_code: int | None = None, details: dict | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}


class InvalidStateError(CmaError):
    """OAuth ``state`` is corrupted, forged, malformed or expired."""

    status_code = 400
    error_code = "invalid_state"


class TokenExchangeError(CmaError):
    """The provider rejected the authorization-code exchange."""

    status_code = 502
    error_code = "exchange_failed"


class UnauthenticatedError(CmaError):
    """Bearer token missing, expired or rejected by the provider."""

    status_code = 401
    error_code = "unauthenticated"


class InvalidRequestError(CmaError):
    """Caller omitted a required field or sent an unsupported value."""

    status_code = 400
    error_code = "invalid_request"


class UpstreamUnavailableError(CmaError):
    """Network failure or 5xx/429 from a third-party API."""

    status_code = 502
    error_code = "upstream_unavailable"


class NotFoundError(CmaError):
    """Unknown report id or listing."""

    status_code = 404
    error_code = "not_found"
