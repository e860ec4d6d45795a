from __future__ import annotations

import asyncio
from collections.abc import Callable

from starlette.datastructures import MutableHeaders
from starlette.requests import Request

from asgi_stream_compression.interceptor import CompressingResponse
from asgi_stream_compression.response import ASGIResponse, BaseResponse
from asgi_stream_compression.types import ASGIApp, Message, Receive, Scope, Send

Intercept = Callable[[Request, BaseResponse], CompressingResponse]


class CompressionResponder:
    """
    Drives one HTTP request: the app's ASGI messages become write/end calls
    on an intercepted response, and backpressure on the way out suspends the
    app's ``send`` until the response drains.
    """

    transport: ASGIResponse
    response: CompressingResponse

    def __init__(self, app: ASGIApp, intercept: Intercept) -> None:
        self.app = app
        self.intercept = intercept
        self.drained = asyncio.Event()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        self.transport = ASGIResponse(send, method=scope.get("method", "GET"))
        self.response = self.intercept(Request(scope), self.transport)
        self.response.on("drain", self.drained.set)
        self.response.on("close", self.drained.set)

        writer = asyncio.ensure_future(self.transport.run())
        try:
            await self.app(scope, receive, self.send_with_compression)
        except BaseException:
            writer.cancel()
            raise

        if not self.response.ended:
            # deliver what was queued; the body stays unfinished
            self.transport.stop()
        await writer

    async def send_with_compression(self, message: Message) -> None:
        message_type = message["type"]

        if message_type == "http.response.start":
            self.transport.status_code = message["status"]
            self.transport.headers = MutableHeaders(raw=list(message.get("headers", [])))

        elif message_type == "http.response.body":
            body = message.get("body", b"")

            if not message.get("more_body", False):
                self.response.end(body)
                return

            self.drained.clear()
            if not self.response.write(body) and not self.transport.closed:
                await self.drained.wait()
