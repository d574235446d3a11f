"""
Where: services/authgate/tests/support.py
What: Shared constants and a recording protected app for gate tests.
"""

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import HTMLResponse, PlainTextResponse, Response
from starlette.routing import Route, WebSocketRoute
from starlette.websockets import WebSocket

from services.authgate.config import GateConfig

BACKEND_URL = "http://wwwhisper.test:10000"
AUTH_QUERY = "/wwwhisper/auth/api/is-authorized/"
SCRIPT = '<script type="text/javascript" src="/wwwhisper/auth/iframe.js"></script>\n'


def make_config(**overrides) -> GateConfig:
    settings = {
        "WWWHISPER_URL": BACKEND_URL,
        "LOG_CONFIG_PATH": "/tmp/authgate-missing-logging.yml",
    }
    settings.update(overrides)
    return GateConfig(_env_file=None, **settings)


class ProtectedSite:
    """Downstream application that records what reached it."""

    def __init__(self):
        self.calls = []
        self.app = Starlette(
            routes=[
                WebSocketRoute("/private/ws", self.socket),
                Route("/plain", self.plain),
                Route("/{path:path}", self.page, methods=["GET", "POST"]),
            ]
        )

    async def page(self, request: Request) -> Response:
        self.calls.append(request)
        user = request.state.remote_user
        return HTMLResponse(f"<html><body><b>Protected site</b> {user}</body></html>")

    async def plain(self, request: Request) -> Response:
        self.calls.append(request)
        return PlainTextResponse("<html><body>not html</body></html>")

    async def socket(self, websocket: WebSocket) -> None:
        self.calls.append(websocket)
        await websocket.accept()
        await websocket.send_text(f"secret data for {websocket.state.remote_user}")
        await websocket.close()
