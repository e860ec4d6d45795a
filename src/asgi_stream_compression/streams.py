from __future__ import annotations

from collections import deque
from collections.abc import Mapping
from typing import Any

from asgi_stream_compression.compressors import (
    BrotliCompressor,
    Compressor,
    DeflateCompressor,
    GzipCompressor,
)
from asgi_stream_compression.events import EventEmitter
from asgi_stream_compression.negotiation import Encoding
from asgi_stream_compression.response import DEFAULT_HIGH_WATER_MARK, BaseResponse


class CompressionStream(EventEmitter):
    """
    Push-based compressing transform.

    Compressed output is emitted as ``data`` events. While paused, output
    accumulates in the readable buffer; ``write`` returns False once that
    buffer reaches ``high_water_mark`` and ``drain`` follows when ``resume``
    empties it.

    Events: ``data``, ``drain``, ``finish``, ``end``.
    """

    def __init__(
        self,
        compressor: Compressor,
        encoding: Encoding,
        high_water_mark: int = DEFAULT_HIGH_WATER_MARK,
    ) -> None:
        super().__init__()
        self.compressor = compressor
        self.encoding = encoding
        self.high_water_mark = high_water_mark

        self.paused = False
        self.writable_ended = False
        self.readable_ended = False

        self._buffer: deque[bytes] = deque()
        self._buffered_bytes = 0
        self._need_drain = False

    def write(self, data: bytes) -> bool:
        if self.writable_ended:
            raise RuntimeError("write after end")

        self._push(self.compressor.compress(data))

        if self._buffered_bytes >= self.high_water_mark:
            self._need_drain = True
            return False
        return True

    def flush(self) -> None:
        if self.writable_ended:
            return
        self._push(self.compressor.flush())

    def end(self, data: bytes | None = None) -> bool:
        if self.writable_ended:
            return False

        if data:
            self._push(self.compressor.compress(data))
        self._push(self.compressor.finish())

        self.writable_ended = True
        self.emit("finish")
        self._maybe_end()
        return True

    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False

        while self._buffer and not self.paused:
            chunk = self._buffer.popleft()
            self._buffered_bytes -= len(chunk)
            self.emit("data", chunk)

        if self._buffer:
            return

        if self._need_drain:
            self._need_drain = False
            self.emit("drain")

        self._maybe_end()

    def _push(self, chunk: bytes) -> None:
        if not chunk:
            return
        # keep order: nothing overtakes what is already buffered
        if self.paused or self._buffer:
            self._buffer.append(chunk)
            self._buffered_bytes += len(chunk)
            return
        self.emit("data", chunk)

    def _maybe_end(self) -> None:
        if self.writable_ended and not self._buffer and not self.readable_ended:
            self.readable_ended = True
            self.emit("end")


def create_transform(
    encoding: Encoding,
    zlib_options: Mapping[str, Any],
    brotli_options: Mapping[str, Any],
) -> CompressionStream:
    if encoding is Encoding.BROTLI:
        compressor: Compressor = BrotliCompressor(**brotli_options)
    elif encoding is Encoding.GZIP:
        compressor = GzipCompressor(**zlib_options)
    elif encoding is Encoding.DEFLATE:
        compressor = DeflateCompressor(**zlib_options)
    else:
        raise ValueError(f"no compressing transform for {encoding.value!r}")

    return CompressionStream(compressor, encoding)


def pipe_to_response(stream: CompressionStream, response: BaseResponse) -> None:
    """
    Routes compressed output into ``response``.

    Socket backpressure pauses the stream; the response's ``drain`` resumes it.
    The response ends once the stream has emitted everything.
    """

    def on_data(chunk: bytes) -> None:
        if response.write(chunk) is False:
            stream.pause()

    def on_end() -> None:
        response.end()

    def on_drain() -> None:
        stream.resume()

    stream.on("data", on_data)
    stream.on("end", on_end)
    response.on("drain", on_drain)
