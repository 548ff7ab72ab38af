"""
security/cookie_service.py

CSRF token helpers for browser sessions (Angular double-submit convention):
- a random secret is stored once per session (never sent to the browser)
- every response carries a readable XSRF-TOKEN cookie holding a freshly
  salted token derived from that secret
- the frontend echoes the cookie in the X-XSRF-TOKEN header on unsafe requests

Tokens are "<salt>-<mac>" where mac = HMAC-SHA256(secret, salt), so a new
token can be handed out on every response while any of them stays valid
for the lifetime of the session secret.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets
from typing import Optional

from fastapi import Response


SESSION_SECRET_KEY = "_csrf_secret"


def generate_csrf_secret() -> str:
    """Per-session secret; 18 bytes -> 24 char urlsafe string."""
    return secrets.token_urlsafe(18)


def _mac(secret: str, salt: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), salt.encode("ascii"), hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def create_csrf_token(secret: str, salt: Optional[str] = None) -> str:
    """Salt is hex so the first '-' always separates it from the mac."""
    salt = salt or secrets.token_hex(8)
    return f"{salt}-{_mac(secret, salt)}"


def verify_csrf_token(secret: Optional[str], token: Optional[str]) -> bool:
    if not secret or not token:
        return False
    salt, sep, _ = token.partition("-")
    if not sep or not salt:
        return False
    try:
        expected = create_csrf_token(secret, salt)
    except UnicodeEncodeError:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), token.encode("utf-8"))


def set_csrf_cookie(response: Response, name: str, token: str, max_age: Optional[int] = None) -> None:
    """
    Readable (non-HttpOnly) cookie so the frontend can copy it into the header.
    """
    response.set_cookie(
        key=name,
        value=token,
        max_age=max_age,
        path="/",
        secure=True,
        httponly=False,  # FE must be able to read it
        samesite="lax",
    )
