"""
middleware/csrf.py

CSRF defense for browser sessions (double-submit, Angular convention):
- Keeps a CSRF secret in the signed session (SessionMiddleware must run outside).
- Sets a fresh readable CSRF cookie on every response.
- Requires the token in the CSRF header for state-changing methods.

Origin/Referer checks live in HeaderCheckMiddleware, which runs before this.
"""

from __future__ import annotations

from typing import Callable, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

from ..core.errors import AppError
from ..security.cookie_service import (
    SESSION_SECRET_KEY,
    create_csrf_token,
    generate_csrf_secret,
    set_csrf_cookie,
    verify_csrf_token,
)


SAFE_METHODS = {"GET", "HEAD", "OPTIONS"}


class CSRFMiddleware(BaseHTTPMiddleware):
    """
    When does this run?
    -------------------
    - Token issuing: every request (the cookie is refreshed on each response).
    - Token checking: every method other than GET/HEAD/OPTIONS.

    What does it verify?
    --------------------
    The header (X-XSRF-TOKEN by default) carries a token derived from the
    secret stored in this session.
    """

    def __init__(self, app: ASGIApp, cookie_name: str = "XSRF-TOKEN", header_name: str = "X-XSRF-TOKEN") -> None:
        super().__init__(app)
        self.cookie_name = cookie_name
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        secret = self._session_secret(request)

        if request.method in SAFE_METHODS:
            response = await call_next(request)
        else:
            error = self._check_token(request, secret)
            if error is not None:
                response = error.to_response(request)
            else:
                response = await call_next(request)

        set_csrf_cookie(response, self.cookie_name, create_csrf_token(secret))
        return response

    # ---------------- Internal helpers ----------------

    @staticmethod
    def _session_secret(request: Request) -> str:
        """Return the session's CSRF secret, creating it on first use."""
        session = request.session
        secret = session.get(SESSION_SECRET_KEY)
        if not secret:
            secret = generate_csrf_secret()
            session[SESSION_SECRET_KEY] = secret
        return secret

    def _check_token(self, request: Request, secret: str) -> Optional[AppError]:
        token: Optional[str] = request.headers.get(self.header_name)
        if not token:
            return AppError(
                "CSRF_FAILED",
                "Missing CSRF token.",
                status=403,
                details={"header": self.header_name},
            )
        if not verify_csrf_token(secret, token):
            return AppError("CSRF_FAILED", "CSRF token mismatch.", status=403)
        return None
