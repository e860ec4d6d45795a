from __future__ import annotations

import enum
import functools
import re
from collections.abc import Mapping
from typing import TYPE_CHECKING

from asgi_stream_compression.compressible import compressible

if TYPE_CHECKING:
    from starlette.datastructures import Headers, MutableHeaders
    from starlette.requests import Request

    from asgi_stream_compression.response import BaseResponse


DEFAULT_THRESHOLD = 1024

NO_TRANSFORM_RE = re.compile(r"(?:^|,)\s*?no-transform\s*?(?:,|$)")

BYTE_SIZE_RE = re.compile(r"^\s*([-+]?\d+(?:\.\d+)?)\s*(b|kb|mb|gb|tb|pb)?\s*$", re.IGNORECASE)

BYTE_UNITS = {
    "b": 1,
    "kb": 1 << 10,
    "mb": 1 << 20,
    "gb": 1 << 30,
    "tb": 1 << 40,
    "pb": 1 << 50,
}


class Encoding(str, enum.Enum):
    IDENTITY = "identity"
    BROTLI = "br"
    GZIP = "gzip"
    DEFLATE = "deflate"


# NOTE: server preference, independent of the client's header order
CANDIDATE_ENCODINGS: tuple[Encoding, ...] = (
    Encoding.BROTLI,
    Encoding.GZIP,
    Encoding.DEFLATE,
)


def is_compressible_type(headers: Mapping[str, str]) -> bool:
    content_type = headers.get("content-type")
    if content_type is None:
        return False
    return bool(compressible(content_type))


def should_compress(request: Request, response: BaseResponse) -> bool:
    """
    Default filter: compress when the declared content type is compressible.
    Exported so custom filters can fall back to it.
    """
    return is_compressible_type(response.headers)


def joined_header(headers: Headers, name: str) -> str:
    """Every line of a repeated header, folded into one comma-separated value."""
    return ", ".join(headers.getlist(name))


def is_transform_allowed(headers: Headers) -> bool:
    # https://tools.ietf.org/html/rfc7234#section-5.2.2.4
    cache_control = joined_header(headers, "cache-control")
    return not cache_control or NO_TRANSFORM_RE.search(cache_control) is None


@functools.lru_cache(maxsize=1024)
def parse_accept_encoding(accept_header: str) -> dict[str, float]:
    """
    Parses an Accept-Encoding header into {coding: q}.
    Cached to minimize parsing overhead on repetitive headers.

    Duplicate codings keep their highest q-value.
    """
    preferences: dict[str, float] = {}
    if not accept_header:
        return preferences

    for part in accept_header.split(","):
        pieces = part.split(";")
        coding = pieces[0].strip().lower()
        if not coding:
            continue

        q_value = 1.0
        for param in pieces[1:]:
            key, _, value = param.partition("=")
            if key.strip().lower() == "q":
                try:
                    q_value = float(value.strip())
                except ValueError:
                    pass
                break

        preferences[coding] = max(q_value, preferences.get(coding, q_value))

    return preferences


def accepts_encoding(accept_header: str | None, encoding: str) -> bool:
    preferences = parse_accept_encoding(accept_header or "")

    # exact match beats the wildcard, even when it excludes (q=0)
    q_value = preferences.get(encoding.lower())
    if q_value is None:
        q_value = preferences.get("*")
    if q_value is None:
        return encoding.lower() == Encoding.IDENTITY
    return q_value > 0


def select_encoding(
    accept_header: str | None,
    brotli_available: bool,
    brotli_enabled: bool,
) -> Encoding:
    for encoding in CANDIDATE_ENCODINGS:
        if encoding is Encoding.BROTLI and not (brotli_available and brotli_enabled):
            continue
        if accepts_encoding(accept_header, encoding.value):
            return encoding
    return Encoding.IDENTITY


def meets_threshold(length: int | None, threshold: int) -> bool:
    """Only a known length below the threshold fails."""
    return length is None or length >= threshold


def parse_content_length(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def parse_bytes(value: int | float | str | None) -> int | None:
    """
    Parses a byte size: 1024, "1024", "1kb", "1.5 MB".
    Returns None when the value can't be parsed.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if not isinstance(value, str):
        return None

    match = BYTE_SIZE_RE.match(value)
    if match is None:
        return None

    number, unit = match.groups()
    return int(float(number) * BYTE_UNITS[(unit or "b").lower()])


def vary(headers: MutableHeaders, field: str) -> None:
    """Adds ``field`` to the Vary header unless it is already covered."""
    existing = joined_header(headers, "vary")
    listed = [value.strip().lower() for value in existing.split(",")]
    if "*" in listed or field.lower() in listed:
        return

    # setting replaces every line, so the merged value keeps them all
    headers["vary"] = f"{existing}, {field}" if existing.strip() else field
