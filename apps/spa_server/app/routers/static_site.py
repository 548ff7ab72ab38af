"""
routers/static_site.py

Static file + single-page-app routing, chosen by APP_STAGE:

- build : files from BUILD_DIR; deep links -> BUILD_DIR/index.html
- dev   : files from CLIENT_DIR, then TMP_DIR; deep links -> CLIENT_DIR/index.html

Misses under /app/* are template URLs the client asked for by mistake; they
get a 404 instead of the SPA shell. Must be registered after every other
route because it catches all GET/HEAD paths.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import FileResponse

from ..core.config import Settings
from ..core.errors import AppError

logger = logging.getLogger(__name__)

TEMPLATE_PREFIX = "app/"


def resolve_static(roots: Iterable[Path], rel_path: str) -> Optional[Path]:
    """
    First existing file for `rel_path` across `roots`, or None.
    Directories resolve to their index.html. Paths escaping a root are ignored.
    """
    rel_path = rel_path.lstrip("/")
    for root in roots:
        try:
            base = root.resolve()
            candidate = (base / rel_path).resolve()
        except (ValueError, OSError):
            # e.g. an embedded NUL byte; nothing on disk can match
            continue
        if candidate != base and base not in candidate.parents:
            continue
        if candidate.is_dir():
            candidate = candidate / "index.html"
        if candidate.is_file():
            return candidate
    return None


def _not_found(path: str) -> AppError:
    return AppError("NOT_FOUND", "Not found.", status=404, details={"path": path})


def register_static_site(app: FastAPI, settings: Settings) -> None:
    roots: List[Path] = settings.STATIC_ROOTS
    index_file: Path = settings.INDEX_FILE

    logger.info(
        "Serving %s site from %s",
        "BUILD" if settings.is_build else "DEV",
        ", ".join(str(r) for r in roots),
    )

    if settings.FAVICON_PATH and Path(settings.FAVICON_PATH).is_file():
        favicon = Path(settings.FAVICON_PATH)

        async def serve_favicon():
            return FileResponse(favicon, media_type="image/x-icon")

        app.add_api_route("/favicon.ico", serve_favicon, methods=["GET", "HEAD"], include_in_schema=False)

    async def serve_site(full_path: str, request: Request):
        if "\x00" in full_path:
            raise _not_found(request.url.path)

        hit = resolve_static(roots, full_path)
        if hit is not None:
            return FileResponse(hit)

        if full_path.lstrip("/").startswith(TEMPLATE_PREFIX):
            raise _not_found(request.url.path)

        # Any deep link returns the SPA shell
        if index_file.is_file():
            return FileResponse(index_file, media_type="text/html")
        raise _not_found(request.url.path)

    app.add_api_route("/{full_path:path}", serve_site, methods=["GET", "HEAD"], include_in_schema=False)
