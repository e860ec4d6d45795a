from __future__ import annotations

import zlib
from abc import ABC, abstractmethod
from typing import Any, Protocol

try:
    import brotli
except ImportError:
    brotli = None

BROTLI_AVAILABLE = brotli is not None

BROTLI_DEFAULT_QUALITY = 4

ZLIB_OPTIONS = frozenset({"level", "method", "wbits", "memLevel", "strategy"})

# window size only; the gzip or zlib wrapper is picked by the compressor
MIN_WBITS = 9


def check_wbits(wbits: int) -> None:
    if not MIN_WBITS <= wbits <= zlib.MAX_WBITS:
        raise ValueError(f"wbits must be between {MIN_WBITS} and {zlib.MAX_WBITS}, got {wbits!r}")


class Compressor(Protocol):
    def compress(self, data: bytes) -> bytes: ...

    def flush(self) -> bytes: ...

    def finish(self) -> bytes: ...


class BaseCompressor(ABC):
    @abstractmethod
    def compress(self, data: bytes) -> bytes: ...

    @abstractmethod
    def flush(self) -> bytes:
        """Emits everything compressed so far without ending the stream."""

    @abstractmethod
    def finish(self) -> bytes: ...


class ZlibCompressor(BaseCompressor):
    WBITS_OFFSET = 0

    def __init__(
        self,
        level: int = zlib.Z_DEFAULT_COMPRESSION,
        method: int = zlib.DEFLATED,
        wbits: int = zlib.MAX_WBITS,
        memLevel: int = zlib.DEF_MEM_LEVEL,
        strategy: int = zlib.Z_DEFAULT_STRATEGY,
    ) -> None:
        check_wbits(wbits)
        self._compressobj = zlib.compressobj(
            level=level,
            method=method,
            wbits=wbits + self.WBITS_OFFSET,
            memLevel=memLevel,
            strategy=strategy,
        )

    def compress(self, data: bytes) -> bytes:
        return self._compressobj.compress(data)

    def flush(self) -> bytes:
        return self._compressobj.flush(zlib.Z_SYNC_FLUSH)

    def finish(self) -> bytes:
        return self._compressobj.flush(zlib.Z_FINISH)


class GzipCompressor(ZlibCompressor):
    # wbits + 16: zlib generates gzip header & trailer
    WBITS_OFFSET = 16


class DeflateCompressor(ZlibCompressor):
    # zlib-wrapped deflate (RFC 1950), what HTTP "deflate" means
    WBITS_OFFSET = 0


class BrotliCompressor(BaseCompressor):
    def __init__(self, quality: int = BROTLI_DEFAULT_QUALITY, **options: Any) -> None:
        if brotli is None:
            raise ImportError(
                "brotli extra is required. Install with: pip install 'asgi-stream-compression[brotli]'"
            )
        self._compressor = brotli.Compressor(quality=quality, **options)

    def compress(self, data: bytes) -> bytes:
        return self._compressor.process(data)

    def flush(self) -> bytes:
        return self._compressor.flush()

    def finish(self) -> bytes:
        return self._compressor.finish()
