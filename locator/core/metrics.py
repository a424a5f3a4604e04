import time
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# Define metrics (names follow Prometheus conventions)
REQ_COUNT = Counter("http_requests_total", "Total HTTP requests", ["path","method","code"])
REQ_LATENCY = Histogram("http_request_duration_seconds", "Request latency", ["path","method"])

# Location pipeline
GEOCODE_CACHE = Counter("geocode_cache_lookups_total", "Reverse-geocode cache lookups", ["result"])
GEOCODE_ATTEMPTS = Counter(
    "geocode_strategy_attempts_total", "Geocode strategy attempts", ["op","strategy","outcome"]
)
GEOCODE_DEGRADED = Counter("geocode_degraded_total", "Lookups where every strategy failed", ["op"])
SERVICEABILITY_FALLBACKS = Counter(
    "serviceability_fallbacks_total", "Serviceability checks answered with the fallback verdict"
)

class PromMiddleware(BaseHTTPMiddleware):
    """
    Measures latency and counts requests.
    """
    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed = time.perf_counter() - start

        # Route template keeps /details/{place_id} to one label set
        route = request.scope.get("route")
        path = getattr(route, "path", request.url.path)
        method = request.method
        code = str(response.status_code)

        REQ_COUNT.labels(path=path, method=method, code=code).inc()
        REQ_LATENCY.labels(path=path, method=method).observe(elapsed)
        return response

async def metrics_endpoint(request: Request):
    """
    GET /api/metrics: scraped by Prometheus.
    """
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
