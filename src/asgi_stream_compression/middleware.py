from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from starlette.requests import Request

from asgi_stream_compression.interceptor import CompressingResponse
from asgi_stream_compression.negotiation import DEFAULT_THRESHOLD
from asgi_stream_compression.options import CompressionOptions
from asgi_stream_compression.responder import CompressionResponder
from asgi_stream_compression.response import BaseResponse
from asgi_stream_compression.types import ASGIApp, Filter, Receive, Scope, Send


def compression(
    filter_fn: Filter | None = None,
    threshold: int | float | str | None = DEFAULT_THRESHOLD,
    brotli_enabled: bool = True,
    brotli_options: Mapping[str, Any] | None = None,
    **zlib_options: Any,
) -> Callable[[Request, BaseResponse], CompressingResponse]:
    """
    Builds the per-request interception function.

    Extra keyword arguments (``level``, ``wbits``, ``memLevel``, ...) go to the
    gzip and deflate encoders.
    """
    options = CompressionOptions.create(
        filter_fn=filter_fn,
        threshold=threshold,
        brotli_enabled=brotli_enabled,
        brotli_options=brotli_options,
        **zlib_options,
    )

    def intercept(request: Request, response: BaseResponse) -> CompressingResponse:
        return CompressingResponse(request, response, options)

    return intercept


class CompressionMiddleware:
    def __init__(self, app: ASGIApp, **options: Any) -> None:
        self.app = app
        self.intercept = compression(**options)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        responder = CompressionResponder(self.app, self.intercept)
        await responder(scope, receive, send)
