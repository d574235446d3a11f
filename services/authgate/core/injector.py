"""
Where: services/authgate/core/injector.py
What: Inserts the wwwhisper iframe script into HTML responses of the protected app.
Why: The script renders the login/logout widget on every protected page.
"""

import logging
from typing import List, Optional

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import Message, Send

from .paths import LOGIN_PREFIX

logger = logging.getLogger("authgate.injector")

SCRIPT_TAG = (
    f'<script type="text/javascript" src="{LOGIN_PREFIX}iframe.js"></script>\n'
).encode("ascii")

_CLOSING_BODY = b"</body>"


def should_inject(headers: Headers) -> bool:
    """
    Only uncompressed HTML is rewritten; compressed bytes would be corrupted.
    """
    content_type = headers.get("content-type", "")
    if "text/html" not in content_type.lower():
        return False
    encoding = headers.get("content-encoding", "").strip().lower()
    return encoding in ("", "identity")


def inject_script(body: bytes) -> bytes:
    """
    Insert the script tag right before the last closing body tag.

    A document without one is returned unchanged.
    """
    idx = body.lower().rfind(_CLOSING_BODY)
    if idx == -1:
        return body
    return body[:idx] + SCRIPT_TAG + body[idx:]


class InjectingSend:
    """
    ASGI ``send`` wrapper applying the injection to one response.

    The decision is taken once, from the headers of ``http.response.start``.
    Responses that are not injected stream through untouched; injected ones
    are held until the last body chunk arrives.
    """

    def __init__(self, send: Send):
        self.send = send
        self.inject: Optional[bool] = None
        self._start: Optional[Message] = None
        self._chunks: List[bytes] = []

    async def __call__(self, message: Message) -> None:
        message_type = message["type"]

        if message_type == "http.response.start":
            self.inject = should_inject(Headers(raw=message.get("headers", [])))
            if not self.inject:
                await self.send(message)
                return
            self._start = message
            return

        if message_type == "http.response.pathsend" and self._start is not None:
            # The file is sent by the server, so it goes out unmodified.
            logger.debug("HTML sent with pathsend, passed through unmodified")
            self.inject = False
            start, self._start = self._start, None
            await self.send(start)
            await self.send(message)
            return

        if message_type != "http.response.body" or not self.inject:
            await self.send(message)
            return

        self._chunks.append(message.get("body", b""))
        if message.get("more_body", False):
            return

        original = b"".join(self._chunks)
        self._chunks = []
        body = inject_script(original)

        start = self._start
        if body is not original:
            start = dict(start)
            start["headers"] = list(start.get("headers", []))
            del MutableHeaders(scope=start)["content-length"]
        else:
            logger.debug("No closing body tag, HTML passed through unmodified")

        await self.send(start)
        await self.send({"type": "http.response.body", "body": body, "more_body": False})
