"""
routers/health.py

Liveness endpoint for deploys and runtime monitoring.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse


router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz(request: Request):
    """
    Returns 200 if the process is running and able to respond to HTTP requests.
    No external dependencies are checked here.
    """
    settings = request.app.state.settings
    return JSONResponse({"status": "ok", "stage": settings.APP_STAGE})
