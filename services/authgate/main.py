"""
wwwhisper gate - authorization in front of any ASGI application.

Every request is checked with the wwwhisper backend before it reaches the
protected application; the backend's own login and admin pages are proxied
under /wwwhisper/.

Run the default site (static files from SITE_ROOT) with:

    uvicorn --factory services.authgate.main:create_app
"""

import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI
from starlette.staticfiles import StaticFiles
from starlette.types import ASGIApp

from .client import WwwhisperClient
from .config import GateConfig
from .core.logging_config import setup_logging
from .middleware import WwwhisperMiddleware
from .version import __version__

logger = logging.getLogger("authgate.main")


def wwwhisper(app: ASGIApp, gate_config: Optional[GateConfig] = None) -> ASGIApp:
    """
    Put the authorization gate in front of ``app``.

    Returns ``app`` itself when the gate is disabled.

    Raises:
        ConfigurationError: neither WWWHISPER_URL nor WWWHISPER_DISABLE is set
    """
    if gate_config is None:
        gate_config = GateConfig()

    endpoint = gate_config.resolve_endpoint()
    if endpoint is None:
        logger.warning("WWWHISPER_DISABLE set, requests are served without authorization.")
        return app

    client = WwwhisperClient.from_config(endpoint, gate_config)
    logger.info("Authorizing requests with wwwhisper at %s", endpoint)
    return WwwhisperMiddleware(app, client, inject_logout=gate_config.WWWHISPER_INJECT_LOGOUT)


def create_site_app(gate_config: GateConfig) -> FastAPI:
    """Default protected application: a static site."""
    app = FastAPI(
        title="wwwhisper protected site",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.mount("/", StaticFiles(directory=gate_config.SITE_ROOT, html=True), name="site")
    return app


def create_app(
    protected_app: Optional[ASGIApp] = None, gate_config: Optional[GateConfig] = None
) -> ASGIApp:
    """Configure logging and build the gated application."""
    if gate_config is None:
        gate_config = GateConfig()
    setup_logging(gate_config.LOG_CONFIG_PATH)

    if protected_app is None:
        protected_app = create_site_app(gate_config)
    return wwwhisper(protected_app, gate_config)


def run() -> None:
    gate_config = GateConfig()
    host, _, port = gate_config.UVICORN_BIND_ADDR.rpartition(":")
    uvicorn.run(
        "services.authgate.main:create_app",
        factory=True,
        host=host.strip("[]") or "0.0.0.0",
        port=int(port),
        workers=gate_config.UVICORN_WORKERS,
        proxy_headers=True,
        log_config=None,
    )


if __name__ == "__main__":
    run()
