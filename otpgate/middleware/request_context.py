from __future__ import annotations
import logging
import time
from datetime import datetime, timezone
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from ..observability.logging import get_request_id, bind_record

log = logging.getLogger("otpgate.request")


class RequestContextMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, header: str = "X-Request-ID"):
        super().__init__(app)
        self.header = header

    def _emit(self, level: int, msg: str, rid: str, extra: str) -> None:
        rec = bind_record(logging.LogRecord(
            name=log.name, level=level, pathname=__file__, lineno=0,
            msg=msg, args=(), exc_info=None
        ), request_id=rid, extra=extra)
        log.handle(rec)

    async def dispatch(self, request: Request, call_next):
        rid = get_request_id(request, self.header)
        start = time.perf_counter()
        timestamp = datetime.now(timezone.utc).isoformat()
        origin = request.headers.get("origin") or "-"

        try:
            response = await call_next(request)
        except Exception:
            dur_ms = int((time.perf_counter() - start) * 1000)
            self._emit(logging.ERROR, "unhandled_error", rid,
                       f"timestamp={timestamp} path={request.url.path} method={request.method} ms={dur_ms} origin={origin}")
            raise

        dur_ms = int((time.perf_counter() - start) * 1000)
        response.headers[self.header] = rid
        self._emit(logging.INFO, "request", rid,
                   f"timestamp={timestamp} path={request.url.path} method={request.method} "
                   f"status={response.status_code} ms={dur_ms} origin={origin}")
        return response
