from __future__ import annotations

import asyncio
import codecs
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Callable

from starlette.datastructures import MutableHeaders

from asgi_stream_compression.events import EventEmitter
from asgi_stream_compression.types import Chunk, Message, Send

DEFAULT_HIGH_WATER_MARK = 16 * 1024

# text encodings whose str form carries binary data
BINARY_TEXT_ENCODINGS = frozenset({"hex", "base64"})


def to_bytes(chunk: Chunk, encoding: str | None = None) -> bytes:
    if isinstance(chunk, (bytes, bytearray, memoryview)):
        return bytes(chunk)
    if isinstance(chunk, str):
        if encoding and encoding.lower() in BINARY_TEXT_ENCODINGS:
            return codecs.decode(chunk.encode("ascii"), encoding.lower())
        return chunk.encode(encoding or "utf-8")
    raise TypeError(f"chunk must be bytes or str, not {type(chunk).__name__}")


def chunk_length(chunk: Chunk | None, encoding: str | None = None) -> int:
    if not chunk:
        return 0
    return len(to_bytes(chunk, encoding))


class BaseResponse(EventEmitter, ABC):
    """
    Writable side of an HTTP response.

    Headers stay mutable until ``write_head`` runs; it is called implicitly by
    the first ``write``/``end``. Hooks registered with ``on_headers`` run right
    before the head goes out, most recent first.

    Events: ``drain``, ``finish``, ``close``, ``error``.
    """

    def __init__(
        self,
        method: str = "GET",
        status_code: int = 200,
        headers: MutableHeaders | None = None,
    ) -> None:
        super().__init__()
        self.method = method
        self.status_code = status_code
        self.headers = headers if headers is not None else MutableHeaders()
        self.headers_sent = False
        self.finished = False
        self.closed = False
        self._header_hooks: list[Callable[[], None]] = []
        self._need_drain = False

    def on_headers(self, callback: Callable[[], None]) -> None:
        self._header_hooks.append(callback)

    def write_head(self, status_code: int | None = None) -> None:
        if self.headers_sent:
            return
        if status_code is not None:
            self.status_code = status_code

        hooks, self._header_hooks = self._header_hooks, []
        for hook in reversed(hooks):
            hook()

        self.headers_sent = True
        self._write_head()

    def write(self, chunk: Chunk, encoding: str | None = None) -> bool:
        if self.finished or self.closed:
            return False
        if not self.headers_sent:
            self.write_head()

        ready = self._write_body(to_bytes(chunk, encoding), more_body=True)
        if not ready:
            self._need_drain = True
        return ready

    def end(self, chunk: Chunk | None = None, encoding: str | None = None) -> bool:
        if self.finished or self.closed:
            return False
        if not self.headers_sent:
            self.write_head()

        self.finished = True
        self._write_body(to_bytes(chunk, encoding) if chunk else b"", more_body=False)
        return True

    def destroy(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.emit("close")

    def _drained(self) -> None:
        if self._need_drain:
            self._need_drain = False
            self.emit("drain")

    @abstractmethod
    def _write_head(self) -> None:
        """Transmits status and headers."""
        raise NotImplementedError

    @abstractmethod
    def _write_body(self, body: bytes, more_body: bool) -> bool:
        """Transmits a body chunk. Returns False when the caller should wait for drain."""
        raise NotImplementedError


class ASGIResponse(BaseResponse):
    """
    Response backed by an ASGI ``send`` callable.

    Messages are queued synchronously and delivered by ``run()``, which must
    be running for the response to make progress.
    """

    def __init__(
        self,
        send: Send,
        method: str = "GET",
        high_water_mark: int = DEFAULT_HIGH_WATER_MARK,
    ) -> None:
        super().__init__(method=method)
        self.send = send
        self.high_water_mark = high_water_mark
        self.buffered_bytes = 0
        self._messages: deque[Message] = deque()
        self._wakeup = asyncio.Event()
        self._stopping = False

    def _write_head(self) -> None:
        self._enqueue(
            {
                "type": "http.response.start",
                "status": self.status_code,
                "headers": self.headers.raw,
            }
        )

    def _write_body(self, body: bytes, more_body: bool) -> bool:
        self.buffered_bytes += len(body)
        self._enqueue({"type": "http.response.body", "body": body, "more_body": more_body})
        return self.buffered_bytes < self.high_water_mark

    def _enqueue(self, message: Message) -> None:
        self._messages.append(message)
        self._wakeup.set()

    def destroy(self) -> None:
        super().destroy()
        self._wakeup.set()

    def stop(self) -> None:
        """Lets ``run()`` return once every queued message has been sent."""
        self._stopping = True
        self._wakeup.set()

    async def run(self) -> None:
        while not self.closed:
            while not self._messages:
                if self.closed or self._stopping:
                    return
                self._wakeup.clear()
                await self._wakeup.wait()

            message = self._messages.popleft()
            try:
                await self.send(message)
            except Exception as exc:
                self.emit("error", exc)
                self.destroy()
                raise

            if message["type"] != "http.response.body":
                continue

            self.buffered_bytes -= len(message["body"])
            if not message["more_body"]:
                self.emit("finish")
                self.destroy()
            elif not self._messages:
                self._drained()
