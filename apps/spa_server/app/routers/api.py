"""
routers/api.py

JSON API mounted under API_BASE_PATH (default /api).

Unsafe methods here only run after the origin check and the CSRF check have
passed, so handlers don't repeat either.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field


router = APIRouter(tags=["api"])


class EchoIn(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000)


@router.get("/session")
async def session_info(request: Request) -> Dict[str, Any]:
    """Whether the caller has a session and which header carries the CSRF token."""
    settings = request.app.state.settings
    return {
        "session": bool(request.session),
        "csrfHeader": settings.CSRF_HEADER,
        "csrfCookie": settings.CSRF_COOKIE,
    }


@router.post("/echo")
async def echo(body: EchoIn) -> Dict[str, Any]:
    return {"message": body.message}
