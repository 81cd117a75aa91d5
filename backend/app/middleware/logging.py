"""
backend/app/middleware/logging.py

Purpose:
    Per-request JSON access log for the battle API and the process-wide
    logging setup.

Dependencies:
    - starlette
"""

import hashlib
import json
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("nova.http")

REQUEST_ID_HEADER = "X-Request-ID"
_SESSION_COOKIE = "access_token"


def _short_hash(value: str) -> str:
    return hashlib.sha256(value.encode()).hexdigest()[:12]


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """One JSON line per request; 4xx/5xx responses log at WARNING.

    An inbound X-Request-ID is reused so client retries of the same
    evaluation can be correlated across log lines.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = (request.headers.get(REQUEST_ID_HEADER) or "")[:32] or uuid.uuid4().hex[:8]
        request.state.request_id = request_id
        started = time.perf_counter()

        response: Response = await call_next(request)

        entry = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            "session": _SESSION_COOKIE in request.cookies,
            "client_ip_hash": _short_hash(request.client.host or "") if request.client else None,
        }
        if request.query_params:
            entry["query"] = dict(request.query_params)

        logger.log(
            logging.WARNING if response.status_code >= 400 else logging.INFO,
            json.dumps(entry),
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
    # Motor/pymongo heartbeat chatter
    logging.getLogger("pymongo").setLevel(logging.WARNING)
