from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from asgi_stream_compression import compressors
from asgi_stream_compression.negotiation import (
    Encoding,
    is_transform_allowed,
    meets_threshold,
    parse_content_length,
    select_encoding,
    vary,
)
from asgi_stream_compression.options import CompressionOptions
from asgi_stream_compression.response import chunk_length, to_bytes
from asgi_stream_compression.streams import (
    CompressionStream,
    create_transform,
    pipe_to_response,
)
from asgi_stream_compression.types import Chunk, Listener

if TYPE_CHECKING:
    from starlette.datastructures import MutableHeaders
    from starlette.requests import Request

    from asgi_stream_compression.response import BaseResponse

logger = logging.getLogger(__name__)


class State(enum.Enum):
    UNDECIDED = "undecided"
    NO_COMPRESSION = "no-compression"
    COMPRESSING = "compressing"


@dataclass(frozen=True)
class CompressionDecision:
    should_compress: bool
    encoding: Encoding = Encoding.IDENTITY


NO_COMPRESSION = CompressionDecision(should_compress=False)


class CompressingResponse:
    """
    Decorates a response so its body is compressed when negotiation allows.

    The decision is deferred until the response head is about to be sent.
    Until then ``drain`` listeners are held back, since it is not yet known
    whether backpressure will come from the socket or from the compressor.
    """

    def __init__(
        self,
        request: Request,
        response: BaseResponse,
        options: CompressionOptions,
    ) -> None:
        self.request = request
        self.response = response
        self.options = options

        self.state = State.UNDECIDED
        self.decision: CompressionDecision | None = None
        self.stream: CompressionStream | None = None
        self.ended = False

        self._length: int | None = None
        self._pending_listeners: list[tuple[str, Listener]] | None = []

        response.on_headers(self._on_headers)

    # response surface

    @property
    def headers(self) -> MutableHeaders:
        return self.response.headers

    @property
    def status_code(self) -> int:
        return self.response.status_code

    @status_code.setter
    def status_code(self, value: int) -> None:
        self.response.status_code = value

    @property
    def headers_sent(self) -> bool:
        return self.response.headers_sent

    def write_head(self, status_code: int | None = None) -> None:
        self.response.write_head(status_code)

    def write(self, chunk: Chunk, encoding: str | None = None) -> bool:
        if self.ended:
            return False

        if not self.response.headers_sent:
            self.response.write_head()

        if self.stream is not None:
            return self.stream.write(to_bytes(chunk, encoding))
        return self.response.write(chunk, encoding)

    def end(self, chunk: Chunk | None = None, encoding: str | None = None) -> bool:
        if self.ended:
            return False

        if not self.response.headers_sent:
            # estimate the length
            if not self.response.headers.get("content-length"):
                self._length = chunk_length(chunk, encoding)
            self.response.write_head()

        self.ended = True

        if self.stream is None:
            return self.response.end(chunk, encoding)
        return self.stream.end(to_bytes(chunk, encoding) if chunk else None)

    def flush(self) -> None:
        if self.stream is not None:
            self.stream.flush()

    def on(self, event: str, listener: Listener) -> CompressingResponse:
        if event != "drain":
            self.response.on(event, listener)
        elif self.stream is not None:
            self.stream.on(event, listener)
        elif self._pending_listeners is None:
            self.response.on(event, listener)
        else:
            # buffer listeners for future stream
            self._pending_listeners.append((event, listener))
        return self

    def once(self, event: str, listener: Listener) -> CompressingResponse:
        def wrapper(*args: object) -> None:
            self.remove_listener(event, wrapper)
            listener(*args)

        return self.on(event, wrapper)

    def remove_listener(self, event: str, listener: Listener) -> CompressingResponse:
        if self._pending_listeners and (event, listener) in self._pending_listeners:
            self._pending_listeners.remove((event, listener))
        elif event == "drain" and self.stream is not None:
            self.stream.remove_listener(event, listener)
        else:
            self.response.remove_listener(event, listener)
        return self

    def emit(self, event: str, *args: object) -> bool:
        return self.response.emit(event, *args)

    # decision

    def _on_headers(self) -> None:
        if self.state is not State.UNDECIDED:
            return

        request, response = self.request, self.response
        headers = response.headers

        # determine if request is filtered
        if not self.options.filter_fn(request, response):
            self._no_compression("filtered")
            return

        # determine if the entity should be transformed
        if not is_transform_allowed(headers):
            self._no_compression("no transform")
            return

        vary(headers, "Accept-Encoding")

        threshold = self.options.threshold
        declared = parse_content_length(headers.get("content-length"))
        if not (meets_threshold(declared, threshold) and meets_threshold(self._length, threshold)):
            self._no_compression("size below threshold")
            return

        content_encoding = headers.get("content-encoding") or Encoding.IDENTITY.value
        if content_encoding.strip().lower() != Encoding.IDENTITY.value:
            self._no_compression("already encoded")
            return

        if request.method == "HEAD":
            self._no_compression("HEAD request")
            return

        encoding = select_encoding(
            request.headers.get("accept-encoding"),
            brotli_available=compressors.BROTLI_AVAILABLE,
            brotli_enabled=self.options.brotli_enabled,
        )
        if encoding is Encoding.IDENTITY:
            self._no_compression("not acceptable")
            return

        self._compress(encoding)

    def _no_compression(self, reason: str) -> None:
        logger.debug("no compression: %s", reason)
        self.decision = NO_COMPRESSION
        self.state = State.NO_COMPRESSION
        self._length = None

        listeners, self._pending_listeners = self._pending_listeners or [], None
        for event, listener in listeners:
            self.response.on(event, listener)

    def _compress(self, encoding: Encoding) -> None:
        logger.debug("%s compression", encoding.value)
        stream = create_transform(
            encoding,
            zlib_options=self.options.zlib_options,
            brotli_options=self.options.brotli_options,
        )

        # add buffered listeners to stream
        listeners, self._pending_listeners = self._pending_listeners or [], None
        for event, listener in listeners:
            stream.on(event, listener)

        headers = self.response.headers
        headers["content-encoding"] = encoding.value
        if "content-length" in headers:
            del headers["content-length"]

        pipe_to_response(stream, self.response)

        self.stream = stream
        self.decision = CompressionDecision(should_compress=True, encoding=encoding)
        self.state = State.COMPRESSING
        self._length = None
