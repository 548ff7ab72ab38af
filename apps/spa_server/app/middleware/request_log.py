"""
middleware/request_log.py

Outermost middleware:
  - accepts or generates an X-Request-ID and exposes it via request.state
    and the logging context
  - writes one access-log line per request (method, path, status, duration,
    response length)
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from ..core.logging import request_id_var

logger = logging.getLogger("apps.spa_server.access")


class RequestLogMiddleware(BaseHTTPMiddleware):

    header_name: str = "X-Request-ID"

    async def dispatch(self, request: Request, call_next):
        incoming: Optional[str] = request.headers.get(self.header_name)
        rid = incoming.strip() if incoming and incoming.strip() else str(uuid.uuid4())

        request.state.request_id = rid
        token = request_id_var.set(rid)
        started = time.perf_counter()
        try:
            response: Response = await call_next(request)
            duration_ms = round((time.perf_counter() - started) * 1000, 3)
            logger.info(
                f"{request.method} {request.url.path} {response.status_code} {duration_ms} ms",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status": response.status_code,
                    "durationMs": duration_ms,
                    "contentLength": response.headers.get("content-length", "-"),
                },
            )
        finally:
            # Restore previous context to avoid leaking the id across requests
            request_id_var.reset(token)

        response.headers[self.header_name] = rid
        return response
