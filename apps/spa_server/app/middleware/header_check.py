"""
middleware/header_check.py

Rejects state-changing requests whose Origin or Referer header is not on the
configured whitelist (see security/origin_guard.py for the exact rules).

Runs before CSRF and every route handler: a rejected request gets a 403
envelope and never reaches the application.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

from ..security.origin_guard import OriginGuard

logger = logging.getLogger(__name__)


class HeaderCheckMiddleware(BaseHTTPMiddleware):
    """
    Pass either a ready `guard` or the raw `whitelist` it should be built from.
    """

    def __init__(
        self,
        app: ASGIApp,
        whitelist: Optional[Iterable[str]] = None,
        guard: Optional[OriginGuard] = None,
    ) -> None:
        super().__init__(app)
        if guard is None:
            if whitelist is None:
                raise ValueError("HeaderCheckMiddleware needs a whitelist or a guard")
            guard = OriginGuard(whitelist)
        self.guard = guard

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        origin = request.headers.get("Origin")
        referer = request.headers.get("Referer")

        decision = self.guard.evaluate(request.method, origin, referer)
        if decision.allowed:
            return await call_next(request)

        err = decision.error
        logger.warning(
            err.message,
            extra={
                "method": request.method,
                "path": request.url.path,
                "origin": origin,
                "referer": referer,
                "code": err.code,
            },
        )
        return err.to_response(request)
