from __future__ import annotations
import time
from fastapi import Response, Request
from prometheus_client import Counter, Histogram, CollectorRegistry, CONTENT_TYPE_LATEST, generate_latest

REGISTRY = CollectorRegistry(auto_describe=True)

# ---------- Metric definitions ----------
HTTP_REQS = Counter("http_requests_total", "HTTP requests", ["method", "path", "status"], registry=REGISTRY)
HTTP_LATENCY = Histogram("http_request_duration_seconds", "HTTP request latency", ["method", "path"], registry=REGISTRY)

OTP_ISSUED = Counter("otp_issued_total", "OTPs generated and stored", registry=REGISTRY)
OTP_VERIFIED = Counter("otp_verified_total", "OTP verification attempts", ["result"], registry=REGISTRY)
OTP_NOTIFY_FAILED = Counter("otp_notification_failures_total", "OTP emails that could not be sent", registry=REGISTRY)
OTP_PURGED = Counter("otp_ledger_purged_total", "Expired ledger entries purged by the sweeper", registry=REGISTRY)


# ---------- /metrics endpoint factory ----------
def metrics_app():
    async def _metrics(request: Request):
        if not request.app.state.settings.METRICS_ENABLED:
            return Response(status_code=404)
        data = generate_latest(REGISTRY)
        return Response(content=data, media_type=CONTENT_TYPE_LATEST)
    return _metrics


# ---------- HTTP middleware for latency/counters ----------
class MetricsHTTPMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            return await self.app(scope, receive, send)
        method = scope["method"]
        path = scope["path"]
        t0 = time.perf_counter()

        async def send_wrapper(message):
            if message["type"] == "http.response.start":
                HTTP_REQS.labels(method=method, path=path, status=message["status"]).inc()
                HTTP_LATENCY.labels(method=method, path=path).observe(time.perf_counter() - t0)
            await send(message)

        await self.app(scope, receive, send_wrapper)
