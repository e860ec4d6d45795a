from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from asgi_stream_compression.compressors import (
    BROTLI_DEFAULT_QUALITY,
    ZLIB_OPTIONS,
    check_wbits,
)
from asgi_stream_compression.negotiation import (
    DEFAULT_THRESHOLD,
    parse_bytes,
    should_compress,
)
from asgi_stream_compression.types import Filter


@dataclass(frozen=True)
class CompressionOptions:
    """
    Resolved middleware configuration.

    :param filter_fn: Predicate over (request, response); replaces the
                      content-type check when given.
    :param threshold: Minimum body size in bytes worth compressing.
    :param brotli_enabled: Offer "br" when the brotli package is installed.
    :param brotli_options: Passed to ``brotli.Compressor``.
    :param zlib_options: Passed to ``zlib.compressobj`` for gzip and deflate.
    """

    filter_fn: Filter = should_compress
    threshold: int = DEFAULT_THRESHOLD
    brotli_enabled: bool = True
    brotli_options: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({"quality": BROTLI_DEFAULT_QUALITY})
    )
    zlib_options: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def create(
        cls,
        filter_fn: Filter | None = None,
        threshold: int | float | str | None = DEFAULT_THRESHOLD,
        brotli_enabled: bool = True,
        brotli_options: Mapping[str, Any] | None = None,
        **zlib_options: Any,
    ) -> CompressionOptions:
        unknown = set(zlib_options) - ZLIB_OPTIONS
        if unknown:
            raise TypeError(f"unknown compression options: {', '.join(sorted(unknown))}")
        if "wbits" in zlib_options:
            check_wbits(zlib_options["wbits"])

        parsed_threshold = parse_bytes(threshold)
        if parsed_threshold is None:
            parsed_threshold = DEFAULT_THRESHOLD

        resolved_brotli = {"quality": BROTLI_DEFAULT_QUALITY}
        if brotli_options is not None:
            resolved_brotli = dict(brotli_options)

        return cls(
            filter_fn=filter_fn or should_compress,
            threshold=parsed_threshold,
            brotli_enabled=bool(brotli_enabled),
            brotli_options=MappingProxyType(resolved_brotli),
            zlib_options=MappingProxyType(dict(zlib_options)),
        )
