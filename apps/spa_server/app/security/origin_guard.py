"""
security/origin_guard.py

Origin / Referer allow-list check for state-changing requests.

Rules (evaluated per request, no state):
- GET / HEAD / OPTIONS are always allowed.
- If neither Origin nor Referer is sent, the request is allowed.
- Otherwise Origin is checked first, then Referer; the first header whose
  base URL (scheme://host[:port]) is not in the whitelist rejects the request.

A rejected request must be answered with 403 and must not reach any handler.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple
from urllib.parse import urlsplit

from ..core.errors import AppError


SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})

# Base URL of anything that can't be parsed into scheme + host. Browsers send
# the same literal for opaque origins, and it is refused as a whitelist entry.
UNPARSEABLE_ORIGIN = "null"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------
class HeaderCheckError(AppError):
    """Origin or Referer header does not match the whitelist."""

    header = ""

    def __init__(self, code: str, value: str, raw: Optional[str] = None):
        super().__init__(
            code,
            f"Invalid {self.header} header {value}",
            status=403,
            details={self.header: value, "raw": raw if raw is not None else value},
        )
        self.value = value
        self.raw = raw if raw is not None else value


class InvalidOriginHeader(HeaderCheckError):
    header = "origin"

    def __init__(self, value: str, raw: Optional[str] = None):
        super().__init__("INVALID_ORIGIN", value, raw)


class InvalidRefererHeader(HeaderCheckError):
    header = "referer"

    def __init__(self, value: str, raw: Optional[str] = None):
        super().__init__("INVALID_REFERER", value, raw)


# ---------------------------------------------------------------------------
# Decision
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Decision:
    allowed: bool
    error: Optional[HeaderCheckError] = None

    @property
    def reason(self) -> Optional[str]:
        return self.error.message if self.error else None


ALLOW = Decision(allowed=True)


def get_base_url(source_url: Optional[str]) -> Optional[str]:
    """
    Reduce a URL to its base: 'HTTP://Example.com:8080/path?q' -> 'http://example.com:8080'.

    Returns None for a missing or blank value and UNPARSEABLE_ORIGIN when the
    value has no scheme or host. Never raises.
    """
    if source_url is None:
        return None
    value = source_url.strip()
    if not value:
        return None

    try:
        parts = urlsplit(value)
        host = parts.hostname
        port = parts.port  # ValueError on a non-numeric / out-of-range port
    except ValueError:
        return UNPARSEABLE_ORIGIN

    scheme = parts.scheme.lower()
    if not scheme or not host:
        return UNPARSEABLE_ORIGIN

    if ":" in host:
        host = f"[{host}]"  # IPv6 literal
    base = f"{scheme}://{host}"
    if port is not None:
        base = f"{base}:{port}"
    return base


class OriginGuard:
    """
    Built once at startup with the whitelist; `evaluate()` is a pure function
    of the request method and headers.
    """

    def __init__(self, whitelist: Iterable[str]):
        entries = []
        for entry in whitelist:
            base = get_base_url(entry)
            if base is None or base == UNPARSEABLE_ORIGIN:
                raise ValueError(f"Whitelist entry is not a scheme://host origin: {entry!r}")
            if base not in entries:
                entries.append(base)
        self._ordered: Tuple[str, ...] = tuple(entries)
        self._allowed = frozenset(entries)

    @property
    def whitelist(self) -> Tuple[str, ...]:
        return self._ordered

    def is_allowed(self, base_url: str) -> bool:
        return base_url in self._allowed

    def evaluate(self, method: str, origin: Optional[str] = None, referer: Optional[str] = None) -> Decision:
        if method in SAFE_METHODS:
            return ALLOW

        origin_base = get_base_url(origin)
        referer_base = get_base_url(referer)

        if origin_base is None and referer_base is None:
            # Non-browser clients and some legacy browsers send neither header.
            return ALLOW

        if origin_base is not None and not self.is_allowed(origin_base):
            return Decision(allowed=False, error=InvalidOriginHeader(origin_base, origin))
        if referer_base is not None and not self.is_allowed(referer_base):
            return Decision(allowed=False, error=InvalidRefererHeader(referer_base, referer))
        return ALLOW

