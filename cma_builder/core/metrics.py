import time
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# Define metrics (names follow Prometheus conventions)
REQ_COUNT = Counter("http_requests_total", "Total HTTP requests", ["path","method","code"])
REQ_LATENCY = Histogram("http_request_duration_seconds", "Request latency", ["path","method"])

# Outbound calls to the design and listings providers
UPSTREAM_REQUESTS = Counter(
    "upstream_requests_total", "Calls made to third-party APIs", ["provider","outcome"]
)
REPORTS_PUBLISHED = Counter(
    "reports_published_total", "Report publish operations", ["first_publish"]
)

def record_upstream(provider: str, status_code: int | None) -> None:
    """Count one upstream call; status_code None means a transport failure."""
    if status_code is None:
        outcome = "error"
    elif status_code < 400:
        outcome = "ok"
    elif status_code < 500:
        outcome = "client_error"
    else:
        outcome = "server_error"
    UPSTREAM_REQUESTS.labels(provider=provider, outcome=outcome).inc()

class PromMiddleware(BaseHTTPMiddleware):
    """
    Measures latency and counts requests.
    """
    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed = time.perf_counter() - start

        # Route template keeps report ids and MLS numbers out of the labels
        route = request.scope.get("route")
        path = getattr(route, "path", None) or "unmatched"
        method = request.method
        code = str(response.status_code)

        REQ_COUNT.labels(path=path, method=method, code=code).inc()
        REQ_LATENCY.labels(path=path, method=method).observe(elapsed)
        return response

async def metrics_endpoint(request: Request):
    """
    GET /v1/metrics, scraped by Prometheus.
    """
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
