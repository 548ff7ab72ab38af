"""
middleware/security_headers.py

Security headers applied to every response, including error responses
produced by inner middleware (guard and CSRF rejections).

- X-Frame-Options: one policy only (DENY or SAMEORIGIN, from settings)
- Content-Security-Policy: built from the configured directive map
- X-Content-Type-Options: nosniff
"""

from __future__ import annotations

from typing import Mapping, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp


def build_csp(policy: Mapping[str, str]) -> str:
    """
    Serialize a directive map into a header value.
    Example: {"default-src": "'self'", "img-src": "'self' data:"}
             -> "default-src 'self'; img-src 'self' data:"
    """
    parts = []
    for directive, sources in policy.items():
        directive = directive.strip()
        if not directive:
            continue
        sources = (sources or "").strip()
        parts.append(f"{directive} {sources}" if sources else directive)
    return "; ".join(parts)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Handlers may set their own values; we only fill in what is missing.
    """

    def __init__(self, app: ASGIApp, frame_options: str = "DENY", csp_policy: Optional[Mapping[str, str]] = None) -> None:
        super().__init__(app)
        self.frame_options = frame_options
        self.csp = build_csp(csp_policy) if csp_policy else None

    async def dispatch(self, request: Request, call_next):
        resp: Response = await call_next(request)

        # Disallow (or restrict) embedding in iframes
        resp.headers.setdefault("X-Frame-Options", self.frame_options)
        if self.csp:
            resp.headers.setdefault("Content-Security-Policy", self.csp)
        # Prevent content-type sniffing
        resp.headers.setdefault("X-Content-Type-Options", "nosniff")

        return resp
