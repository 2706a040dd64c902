"""Middleware binding a request id to every log record emitted while serving it."""
from __future__ import annotations

from uuid import uuid4

from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from app.core.log import log_context

REQUEST_ID_HEADER = "x-request-id"


class RequestContextMiddleware:
    """ASGI middleware that binds ``request_id`` and ``path`` to the log context.

    An incoming ``X-Request-ID`` header is reused; otherwise a new id is
    generated. The id is echoed back on the response.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        request_id = headers.get(REQUEST_ID_HEADER.encode("latin-1"), b"").decode("latin-1") or uuid4().hex

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)[REQUEST_ID_HEADER] = request_id
            await send(message)

        with log_context.bound(request_id=request_id, path=scope.get("path")):
            await self.app(scope, receive, send_with_request_id)


__all__ = ["RequestContextMiddleware", "REQUEST_ID_HEADER"]
