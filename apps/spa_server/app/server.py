"""
server.py

HTTPS bootstrap: turns Settings into an explicit ServerConfig and runs the
app under uvicorn with TLS.

Local run:
    spa-server
or
    uvicorn apps.spa_server.app.main:create_app --factory --port 8001 \
        --ssl-certfile server-cert.pem --ssl-keyfile server-key.pem
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI

from .core.config import Settings, get_settings
from .main import create_app

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServerConfig:
    host: str
    port: int
    stage: str
    cert_file: Path
    key_file: Path
    key_password: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def from_settings(cls, s: Settings) -> "ServerConfig":
        return cls(
            host=s.HOST,
            port=s.PORT,
            stage=s.APP_STAGE,
            cert_file=Path(s.TLS_CERT_FILE),
            key_file=Path(s.TLS_KEY_FILE),
            key_password=s.TLS_KEY_PASSWORD,
            log_level=s.LOG_LEVEL,
        )

    def validate(self) -> None:
        for label, path in (("certificate", self.cert_file), ("private key", self.key_file)):
            if not path.is_file():
                raise FileNotFoundError(f"TLS {label} not found: {path}")


def run_server(config: ServerConfig, app: FastAPI) -> None:
    """
    Start the HTTPS server. Blocks until uvicorn exits.
    `app` must be built from the same Settings as `config`.
    Raises FileNotFoundError before binding if the TLS material is missing.
    """
    config.validate()

    logger.info(
        "Starting HTTPS server on port %s (stage=%s, cwd=%s)",
        config.port,
        config.stage,
        os.getcwd(),
    )
    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        ssl_certfile=str(config.cert_file),
        ssl_keyfile=str(config.key_file),
        ssl_keyfile_password=config.key_password,
        server_header=False,
        log_config=None,  # keep the JSON handlers installed by create_app()
        log_level=config.log_level.lower(),
    )


def main() -> None:
    s = get_settings()
    run_server(ServerConfig.from_settings(s), create_app(s))


if __name__ == "__main__":
    main()
