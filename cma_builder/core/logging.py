import json
import logging
import re
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Callable
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-Id"

# Request id of the request currently being served (None outside a request)
request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

# OAuth material that can show up in URLs or provider error bodies
_SECRET_PARAMS = re.compile(
    r"(?P<key>\b(?:code|state|code_verifier|access_token|refresh_token|client_secret)=)[^&\s\"']+"
)
_BEARER = re.compile(r"(Bearer\s+)[A-Za-z0-9\-._~+/]+=*")

def redact(text: str) -> str:
    text = _SECRET_PARAMS.sub(r"\g<key>[redacted]", text)
    return _BEARER.sub(r"\1[redacted]", text)

class JsonFormatter(logging.Formatter):
    """One JSON object per line; request id and exception text when present."""
    def format(self, record):
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": redact(record.getMessage()),
        }
        rid = getattr(record, "request_id", None)
        if rid:
            payload["request_id"] = rid
        if record.exc_info:
            payload["exc"] = redact(self.formatException(record.exc_info))
        return json.dumps(payload)

class RequestIdFilter(logging.Filter):
    """Stamps the current request id onto every record."""
    def filter(self, record):
        if not getattr(record, "request_id", None):
            record.request_id = request_id_var.get()
        return True

def configure_logging(level: int = logging.INFO):
    """
    Route the root logger (and so uvicorn's) through the JSON formatter.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    handler.addFilter(RequestIdFilter())
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]
    # httpx logs every request URL at INFO; the token exchange URL is noise at best
    logging.getLogger("httpx").setLevel(logging.WARNING)

class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Reuses an inbound X-Request-Id or mints one, exposes it to log records
    through request_id_var and echoes it on the response.
    """
    async def dispatch(self, request: Request, call_next: Callable):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        try:
            response: Response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
