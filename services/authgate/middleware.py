"""
Where: services/authgate/middleware.py
What: ASGI middleware enforcing wwwhisper authorization in front of a protected app.
Why: Every request is authorized by the backend before the app sees it.

Request lifecycle:
    normalize path -> login path? proxy to backend
                   -> otherwise query is-authorized
                        denied  -> relay backend response
                        granted -> /wwwhisper/ path? proxy to backend
                                   otherwise call the app (HTML gets the iframe script)

Websocket handshakes go through the same authorization; a refused
handshake is closed, or answered with the backend response where the
server supports the websocket denial response extension.
"""

import logging
import time
from typing import Optional
from urllib.parse import quote

import httpx
from starlette.datastructures import Headers, MutableHeaders
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response, StreamingResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send
from starlette.websockets import WebSocketClose

from services.common.core.request_context import clear_request_id, generate_request_id

from .client import WwwhisperClient
from .core.headers import auth_query_headers, proxy_headers, relay_headers
from .core.injector import InjectingSend
from .core.paths import is_login_path, is_wwwhisper_path, normalize_path
from .exceptions import AuthQueryError, BackendError, ProxyRequestError
from .models import SubRequest

logger = logging.getLogger("authgate.middleware")

# Characters kept literal when re-encoding the normalized path.
_PATH_SAFE = "/:@!$&'()*+,;=-._~"

_BODY_METHODS = ("POST", "PUT", "PATCH")


class WwwhisperMiddleware:
    """
    Pure ASGI middleware, so that proxied and application bodies are
    streamed instead of buffered.
    """

    def __init__(self, app: ASGIApp, client: WwwhisperClient, inject_logout: bool = True):
        self.app = app
        self.client = client
        self.inject_logout = inject_logout

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self.app(scope, receive, self.closing_on_shutdown(send))
            return

        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        method = scope.get("method", "WEBSOCKET")
        request_id = generate_request_id()
        status_code: Optional[int] = None

        async def send_with_status(message: Message) -> None:
            nonlocal status_code
            if message["type"] in ("http.response.start", "websocket.http.response.start"):
                status_code = message["status"]
            await send(message)

        try:
            await self.authorize(scope, receive, send_with_status)
        finally:
            latency_ms = round((time.perf_counter() - start_time) * 1000, 2)
            logger.info(
                "%s %s %s",
                method,
                scope["path"],
                status_code,
                extra={
                    "request_id": request_id,
                    "method": method,
                    "path": scope["path"],
                    "status": status_code,
                    "latency_ms": latency_ms,
                    "client_ip": scope["client"][0] if scope.get("client") else None,
                },
            )
            clear_request_id()

    def closing_on_shutdown(self, send: Send) -> Send:
        async def send_lifespan(message: Message) -> None:
            if message["type"] == "lifespan.shutdown.complete":
                logger.info("Gate shutting down, closing backend client.")
                await self.client.aclose()
            await send(message)

        return send_lifespan

    async def authorize(self, scope: Scope, receive: Receive, send: Send) -> None:
        path = normalize_path(scope["path"])
        scope = dict(scope, path=path, raw_path=quote(path, safe=_PATH_SAFE).encode("ascii"))
        websocket = scope["type"] == "websocket"

        # Login page and iframe assets must be reachable without a session.
        if is_login_path(path):
            await self.proxy_to_backend(scope, receive, send)
            return

        try:
            outcome = await self.client.check_authorization(path, auth_query_headers(scope))
        except AuthQueryError as exc:
            await self.backend_failed(exc, scope, receive, send)
            return

        if not outcome.granted:
            logger.debug(
                "Access to %s denied: %s",
                path,
                outcome.status_code,
                extra={"path": path, "status": outcome.status_code},
            )
            if websocket:
                await self.refuse(await read_denial(outcome.response), scope, receive, send)
            else:
                await self.relay(outcome.response, scope, receive, send)
            return

        if outcome.user is not None:
            send = echo_user(outcome.user, send)

        if is_wwwhisper_path(path):
            await self.proxy_to_backend(scope, receive, send)
            return

        scope["state"] = dict(scope.get("state") or {}, remote_user=outcome.user)
        if self.inject_logout and not websocket:
            # File responses must go through body messages to be rewritten.
            extensions = dict(scope.get("extensions") or {})
            extensions.pop("http.response.pathsend", None)
            scope["extensions"] = extensions
            send = InjectingSend(send)
        await self.app(scope, receive, send)

    async def proxy_to_backend(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "websocket":
            # The backend serves no websocket endpoints.
            await self.refuse(PlainTextResponse("Not Found", status_code=404), scope, receive, send)
            return

        target = scope["raw_path"].decode("ascii")
        if scope.get("query_string"):
            target += "?" + scope["query_string"].decode("latin-1")

        request = Request(scope, receive)
        body = request.stream() if has_body(scope, request.headers) else None
        sub_request = SubRequest(
            method=scope["method"], path=target, headers=proxy_headers(scope), body=body
        )
        try:
            response = await self.client.proxy(sub_request)
        except ProxyRequestError as exc:
            await self.backend_failed(exc, scope, receive, send)
            return
        await self.relay(response, scope, receive, send)

    async def relay(
        self, response: httpx.Response, scope: Scope, receive: Receive, send: Send
    ) -> None:
        """Stream a backend response to the client chunk by chunk."""
        relayed = StreamingResponse(response.aiter_raw(), status_code=response.status_code)
        relayed.raw_headers = relay_headers(response.headers)
        try:
            await relayed(scope, receive, send)
        finally:
            await response.aclose()

    async def refuse(
        self, response: Response, scope: Scope, receive: Receive, send: Send, code: int = 1008
    ) -> None:
        """
        Reject a websocket handshake.

        Servers supporting the denial response extension get ``response``
        as a plain HTTP answer; others only see the handshake closed.
        """
        if "websocket.http.response" in (scope.get("extensions") or {}):
            await response(scope, receive, send)
        else:
            await WebSocketClose(code=code)(scope, receive, send)

    async def backend_failed(
        self, exc: BackendError, scope: Scope, receive: Receive, send: Send
    ) -> None:
        logger.error(
            "%s",
            exc,
            extra={"path": scope["path"], "method": scope.get("method", "WEBSOCKET")},
        )
        response = PlainTextResponse(exc.message, status_code=500)
        if scope["type"] == "websocket":
            await self.refuse(response, scope, receive, send, code=1011)
        else:
            await response(scope, receive, send)


def has_body(scope: Scope, headers: Headers) -> bool:
    if "content-length" in headers or "transfer-encoding" in headers:
        return True
    # HTTP/2 requests may carry a body without either framing header.
    return scope["method"] in _BODY_METHODS


async def read_denial(response: httpx.Response) -> Response:
    """Buffer a backend denial so it can answer a websocket handshake."""
    try:
        body = b"".join([chunk async for chunk in response.aiter_raw()])
    finally:
        await response.aclose()
    denial = Response(body, status_code=response.status_code)
    denial.raw_headers = [
        (name, value) for name, value in relay_headers(response.headers) if name != b"content-length"
    ]
    denial.raw_headers.append((b"content-length", str(len(body)).encode("latin-1")))
    return denial


def echo_user(user: str, send: Send) -> Send:
    """Wrap ``send`` so the client response names the authenticated user."""

    async def send_with_user(message: Message) -> None:
        if message["type"] in ("http.response.start", "websocket.accept"):
            message.setdefault("headers", [])
            MutableHeaders(scope=message)["User"] = user
        await send(message)

    return send_with_user
