"""
core/config.py

Typed settings loader for the SPA server.
Pydantic v2 + pydantic-settings.
Loads .env.local (or .env) automatically for local development.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Load environment early (.env.local preferred). We try both the server
# folder and the repo root so it works no matter where the process starts.
# ---------------------------------------------------------------------------
SERVER_DIR = Path(__file__).resolve().parents[2]           # .../apps/spa_server
ROOT_DIR = SERVER_DIR.parents[1]                            # repo root

_env_candidates = [
    SERVER_DIR / ".env.local",
    ROOT_DIR / ".env.local",
    SERVER_DIR / ".env",
    ROOT_DIR / ".env",
]

for _p in _env_candidates:
    if _p.exists():
        load_dotenv(_p, override=False)
        break


DEFAULT_CSP_POLICY: Dict[str, str] = {
    "default-src": "'self'",
    "script-src": "'self'",
    "style-src": "'self'",
    "img-src": "'self' data:",
    "frame-ancestors": "'none'",  # mirrors X-Frame-Options
}


# ---------------------------------------------------------------------------
# Settings Model
# ---------------------------------------------------------------------------
class Settings(BaseSettings):
    # ----- Service -----
    APP_NAME: str = "spa-server"
    APP_STAGE: str = "dev"  # build|dev
    HOST: str = "0.0.0.0"
    PORT: int = 8001
    LOG_LEVEL: str = "INFO"
    API_BASE_PATH: str = "/api"

    # ----- Origin whitelist (comma-separated) -----
    ALLOWED_ORIGINS: str = "https://localhost:8001"

    # ----- Session / CSRF -----
    SESSION_SECRET: str = "dev-only-change-me"
    SESSION_COOKIE: str = "spa_session"
    SESSION_MAX_AGE_SEC: int = 1209600  # 14 days
    # Angular's $http reads XSRF-TOKEN and echoes it as X-XSRF-TOKEN.
    CSRF_COOKIE: str = "XSRF-TOKEN"
    CSRF_HEADER: str = "X-XSRF-TOKEN"

    # ----- Response security headers -----
    FRAME_OPTIONS: str = "DENY"
    CSP_POLICY: Dict[str, str] = DEFAULT_CSP_POLICY

    # ----- TLS -----
    TLS_CERT_FILE: str = "server-cert.pem"
    TLS_KEY_FILE: str = "server-key.pem"
    TLS_KEY_PASSWORD: Optional[str] = None

    # ----- Static site -----
    BUILD_DIR: str = "./build"
    CLIENT_DIR: str = "./src/client"
    TMP_DIR: str = "./tmp"
    FAVICON_PATH: Optional[str] = "./src/server/favicon.ico"

    # ----- Pydantic Settings Config -----
    model_config = SettingsConfigDict(
        env_file=None,  # already loaded manually above
        case_sensitive=False,
        extra="ignore",
    )

    # ----- Validators -----
    @field_validator("APP_STAGE", "LOG_LEVEL", mode="before")
    @classmethod
    def strip_value(cls, v):
        return (v or "").strip() if isinstance(v, str) else v

    @field_validator("FRAME_OPTIONS")
    @classmethod
    def single_frame_policy(cls, v: str) -> str:
        v = v.strip().upper()
        if v not in ("DENY", "SAMEORIGIN"):
            # ALLOW-FROM is obsolete; CSP frame-ancestors covers that case.
            raise ValueError("FRAME_OPTIONS must be DENY or SAMEORIGIN")
        return v

    # ----- Derived values -----
    @property
    def ALLOWED_ORIGIN_LIST(self) -> List[str]:
        return [o.strip().rstrip("/") for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]

    @property
    def is_build(self) -> bool:
        return self.APP_STAGE.lower() == "build"

    @property
    def STATIC_ROOTS(self) -> List[Path]:
        """Directories searched in order for static files."""
        if self.is_build:
            return [Path(self.BUILD_DIR)]
        return [Path(self.CLIENT_DIR), Path(self.TMP_DIR)]

    @property
    def INDEX_FILE(self) -> Path:
        """The SPA shell returned for deep links."""
        base = self.BUILD_DIR if self.is_build else self.CLIENT_DIR
        return Path(base) / "index.html"


# ---------------------------------------------------------------------------
# Cached accessor
# ---------------------------------------------------------------------------
@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached accessor so the app constructs Settings only once per process."""
    return Settings()
