"""
core/logging.py

JSON logging setup with request ID propagation.

Every line is a single JSON object so logs stay machine-readable. Each line
includes a requestId (when one is active) so one request can be traced
through the middleware chain.
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Context variable set by RequestLogMiddleware
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Extra attributes copied from the record into the payload when present.
_EXTRA_KEYS = (
    "method",
    "path",
    "status",
    "durationMs",
    "contentLength",
    "origin",
    "referer",
    "code",
)


class JsonFormatter(logging.Formatter):
    """
    Minimal JSON log formatter that adds common fields and pulls requestId
    from the context variable set by the middleware.
    """

    def __init__(self, service: str, stage: str):
        super().__init__()
        self.service = service
        self.stage = stage

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "service": self.service,
            "stage": self.stage,
        }

        rid = request_id_var.get()
        if rid:
            payload["requestId"] = rid

        for key in _EXTRA_KEYS:
            if hasattr(record, key):
                payload[key] = getattr(record, key)

        # Short exception info only; stack handling is left to handlers
        if record.exc_info:
            payload["exc"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
            }

        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str)


def _setup_handler(level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def configure_logging(level_str: str = "INFO", *, service: str = "spa-server", stage: str = "dev") -> None:
    """
    Configure root and uvicorn loggers to use JSON.

    Called once by create_app(); calling it again replaces the handlers.
    """
    level = getattr(logging, (level_str or "INFO").upper(), logging.INFO)

    formatter = JsonFormatter(service=service, stage=stage)
    handler = _setup_handler(level, formatter)

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    root.setLevel(level)
    root.addHandler(handler)

    # uvicorn.access is silenced: RequestLogMiddleware writes the access line.
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(name)
        for h in list(lg.handlers):
            lg.removeHandler(h)
        lg.setLevel(level if name != "uvicorn.access" else logging.WARNING)
        lg.propagate = True
