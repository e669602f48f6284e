"""Reject cross-origin requests from origins outside the allow-list.

CORSMiddleware only withholds the CORS headers from a disallowed origin; the
handler still runs. This guard stops such requests before they reach any
route. Requests without an Origin header (curl, server to server) pass.
"""
import logging
from typing import Iterable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)


class OriginGuardMiddleware(BaseHTTPMiddleware):

    def __init__(self, app, allowed_origins: Iterable[str]):
        super().__init__(app)
        self.allowed_origins = frozenset(o.rstrip("/") for o in allowed_origins)

    async def dispatch(self, request: Request, call_next):
        origin = request.headers.get("origin")
        if origin and origin.rstrip("/") not in self.allowed_origins:
            logger.warning(f"Blocked request from origin {origin} to {request.url.path}")
            return JSONResponse(status_code=403, content={"message": "Not allowed by CORS"})
        return await call_next(request)
