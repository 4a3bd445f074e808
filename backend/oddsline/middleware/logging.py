"""Request logging: one JSON line per HTTP request on the "oddsline" logger."""

import hashlib
import json
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("oddsline")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def _client_ip_hash(request: Request) -> str | None:
    if not request.client:
        return None
    return hashlib.sha256((request.client.host or "").encode()).hexdigest()[:12]


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:8]
        request.state.request_id = request_id
        started = time.perf_counter()

        response: Response = await call_next(request)

        entry = {
            "event": "http_request",
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            "client_ip_hash": _client_ip_hash(request),
        }
        logger.log(logging.WARNING if response.status_code >= 400 else logging.INFO, json.dumps(entry))

        response.headers["X-Request-ID"] = request_id
        return response


def setup_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S")
