"""
MIME compressibility lookup.

``compressible`` answers True/False for known types and None when the type
is unknown, so callers can decide how to treat the unknown case.
"""
from __future__ import annotations

import re

# Known types and whether compressing them pays off
COMPRESSIBLE_TYPES: dict[str, bool] = {
    "application/ecmascript": True,
    "application/graphql+json": True,
    "application/javascript": True,
    "application/json": True,
    "application/ld+json": True,
    "application/manifest+json": True,
    "application/rss+xml": True,
    "application/atom+xml": True,
    "application/vnd.api+json": True,
    "application/wasm": True,
    "application/x-javascript": True,
    "application/x-ndjson": True,
    "application/x-www-form-urlencoded": True,
    "application/xhtml+xml": True,
    "application/xml": True,
    "font/otf": True,
    "font/ttf": True,
    "image/bmp": True,
    "image/svg+xml": True,
    "image/x-icon": True,
    "text/css": True,
    "text/csv": True,
    "text/event-stream": True,
    "text/html": True,
    "text/javascript": True,
    "text/markdown": True,
    "text/plain": True,
    "text/xml": True,
    # already compressed
    "application/gzip": False,
    "application/octet-stream": False,
    "application/pdf": False,
    "application/zip": False,
    "application/x-bzip2": False,
    "application/x-7z-compressed": False,
    "application/zstd": False,
    "audio/mpeg": False,
    "audio/ogg": False,
    "font/woff": False,
    "font/woff2": False,
    "image/avif": False,
    "image/gif": False,
    "image/jpeg": False,
    "image/png": False,
    "image/webp": False,
    "video/mp4": False,
    "video/webm": False,
}

COMPRESSIBLE_TYPE_RE = re.compile(r"^text/|\+(?:json|text|xml)$", re.IGNORECASE)


def compressible(content_type: str | None) -> bool | None:
    if not content_type:
        return None

    mime_type = content_type.split(";", 1)[0].strip().lower()

    known = COMPRESSIBLE_TYPES.get(mime_type)
    if known is not None:
        return known

    if COMPRESSIBLE_TYPE_RE.search(mime_type):
        return True

    return None
