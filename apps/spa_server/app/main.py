"""
main.py

FastAPI application factory for the SPA server.

What this file does:
--------------------
- Sets up JSON logging (with requestId) and builds the FastAPI app.
- Adds middlewares (outermost first):
    1) RequestLog      (X-Request-ID + one access line per request)
    2) SecurityHeaders (X-Frame-Options, CSP, nosniff; also on rejections)
    3) HeaderCheck     (Origin/Referer whitelist for state-changing methods)
    4) Session         (signed cookie session)
    5) CSRF            (XSRF-TOKEN cookie + X-XSRF-TOKEN header check)
- Mounts routes:
    - /healthz
    - JSON API under API_BASE_PATH (e.g., /api)
    - static files / SPA deep links (last, catches everything else)
- Installs uniform error handlers so all errors look like:
    { "error": { "code", "message", "requestId", "details?" } }
"""

from __future__ import annotations

from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from .core.config import Settings, get_settings
from .core.logging import configure_logging
from .core.errors import (
    http_exception_handler,
    app_error_handler,
    validation_exception_handler,
    unhandled_exception_handler,
    AppError,
)
from .middleware.request_log import RequestLogMiddleware
from .middleware.security_headers import SecurityHeadersMiddleware
from .middleware.header_check import HeaderCheckMiddleware
from .middleware.csrf import CSRFMiddleware
from .routers import api as api_router
from .routers import health as health_router
from .routers.static_site import register_static_site
from .security.origin_guard import OriginGuard


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build and configure the FastAPI application.

    Middleware order matters: add_middleware() wraps, so the last one added
    runs first. CSRF is added first and ends up innermost.
    """
    s = settings or get_settings()

    # 1) Logging
    configure_logging(s.LOG_LEVEL, service=s.APP_NAME, stage=s.APP_STAGE)

    # 2) App instance
    app = FastAPI(
        title=s.APP_NAME,
        version="1.0.0",
        openapi_url="/openapi.json" if not s.is_build else None,
        # Swagger UI loads its assets from a CDN, which the CSP blocks
        docs_url=None,
        redoc_url=None,
    )
    app.state.settings = s

    # Fails fast on a malformed whitelist entry
    guard = OriginGuard(s.ALLOWED_ORIGIN_LIST)
    app.state.origin_guard = guard

    # 3) Middlewares (innermost first)
    app.add_middleware(CSRFMiddleware, cookie_name=s.CSRF_COOKIE, header_name=s.CSRF_HEADER)
    app.add_middleware(
        SessionMiddleware,
        secret_key=s.SESSION_SECRET,
        session_cookie=s.SESSION_COOKIE,
        max_age=s.SESSION_MAX_AGE_SEC,
        same_site="lax",
        https_only=True,
    )
    app.add_middleware(HeaderCheckMiddleware, guard=guard)
    app.add_middleware(SecurityHeadersMiddleware, frame_options=s.FRAME_OPTIONS, csp_policy=s.CSP_POLICY)
    app.add_middleware(RequestLogMiddleware)

    # 4) Routers
    app.include_router(health_router.router, prefix="")
    app.include_router(api_router.router, prefix=s.API_BASE_PATH.rstrip("/"))
    # Catch-all, keep last
    register_static_site(app, s)

    # 5) Error handlers (uniform envelope everywhere)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    return app
