import pytest
from starlette.datastructures import MutableHeaders

from asgi_stream_compression.compressible import compressible
from asgi_stream_compression.negotiation import (
    Encoding,
    accepts_encoding,
    is_compressible_type,
    is_transform_allowed,
    meets_threshold,
    parse_accept_encoding,
    parse_bytes,
    parse_content_length,
    select_encoding,
    vary,
)


def test_select_encoding_server_preference():
    # Default priority: br > gzip > deflate
    assert select_encoding("gzip, deflate", True, True) is Encoding.GZIP
    assert select_encoding("deflate, gzip", True, True) is Encoding.GZIP  # Follows server preference
    assert select_encoding("gzip, deflate, br", True, True) is Encoding.BROTLI


def test_select_encoding_brotli_disabled_or_missing():
    assert select_encoding("br, gzip", True, True) is Encoding.BROTLI
    assert select_encoding("br, gzip", True, False) is Encoding.GZIP
    assert select_encoding("br, gzip", False, True) is Encoding.GZIP
    assert select_encoding("br", False, True) is Encoding.IDENTITY


def test_select_encoding_q_values_only_exclude():
    # q-values don't reorder, they only rule codings out
    assert select_encoding("gzip;q=0.5, deflate;q=1.0", False, False) is Encoding.GZIP
    assert select_encoding("gzip;q=0, deflate", False, False) is Encoding.DEFLATE
    assert select_encoding("br;q=0, gzip;q=0.1", True, True) is Encoding.GZIP


def test_select_encoding_wildcard():
    # Wildcard returns server's first preference
    assert select_encoding("*", True, True) is Encoding.BROTLI
    assert select_encoding("*", False, True) is Encoding.GZIP
    # exact q=0 wins over the wildcard
    assert select_encoding("gzip;q=0, *", False, False) is Encoding.DEFLATE
    assert select_encoding("*;q=0", True, True) is Encoding.IDENTITY


def test_select_encoding_identity_and_unknown():
    assert select_encoding("identity, gzip", False, False) is Encoding.GZIP
    assert select_encoding("identity", True, True) is Encoding.IDENTITY
    assert select_encoding("bogus", True, True) is Encoding.IDENTITY
    assert select_encoding("", True, True) is Encoding.IDENTITY
    assert select_encoding(None, True, True) is Encoding.IDENTITY


def test_accepts_encoding():
    assert accepts_encoding("GZIP", "gzip")
    assert accepts_encoding("gzip ; q=0.3", "gzip")
    assert not accepts_encoding("gzip; q=0", "gzip")
    assert accepts_encoding("gzip;q=bogus", "gzip")
    # without a header only identity is acceptable
    assert accepts_encoding(None, "identity")
    assert not accepts_encoding(None, "gzip")


def test_parse_accept_encoding_keeps_highest_q():
    assert parse_accept_encoding("gzip;q=0.2, gzip;q=0.8, ,br") == {"gzip": 0.8, "br": 1.0}


@pytest.mark.parametrize(
    "content_type, expected",
    [
        ("text/plain", True),
        ("text/html; charset=utf-8", True),
        ("application/json", True),
        ("application/vnd.custom+json", True),
        ("image/svg+xml", True),
        ("image/jpeg", False),
        ("application/x-bogus", False),
        (None, False),
    ],
)
def test_is_compressible_type(content_type, expected):
    headers = MutableHeaders()
    if content_type is not None:
        headers["content-type"] = content_type
    assert is_compressible_type(headers) is expected


def test_compressible_unknown_is_none():
    assert compressible("application/x-bogus") is None
    assert compressible("IMAGE/PNG") is False
    assert compressible("") is None


@pytest.mark.parametrize(
    "cache_control, expected",
    [
        (None, True),
        ("public, max-age=60", True),
        ("no-transform", False),
        ("public,no-transform", False),
        ("no-transform , max-age=0", False),
        ("public, no-transform", False),
        ("no-transforms", True),
        ("No-Transform", True),
    ],
)
def test_is_transform_allowed(cache_control, expected):
    headers = MutableHeaders()
    if cache_control is not None:
        headers["cache-control"] = cache_control
    assert is_transform_allowed(headers) is expected


def test_meets_threshold():
    assert meets_threshold(None, 1024)
    assert meets_threshold(1024, 1024)
    assert not meets_threshold(1023, 1024)
    assert meets_threshold(0, 0)


@pytest.mark.parametrize(
    "value, expected",
    [
        (0, 0),
        (1000, 1000),
        (1.9, 1),
        ("1000", 1000),
        ("1kb", 1024),
        ("1KB", 1024),
        ("1.5 mb", 1536 * 1024),
        ("512b", 512),
        ("lots", None),
        ("", None),
        (None, None),
        (True, None),
    ],
)
def test_parse_bytes(value, expected):
    assert parse_bytes(value) == expected


def test_parse_content_length():
    assert parse_content_length("12") == 12
    assert parse_content_length(" 2048 ") == 2048
    assert parse_content_length("twelve") is None
    assert parse_content_length(None) is None


def test_vary_appends_once():
    headers = MutableHeaders()
    vary(headers, "Accept-Encoding")
    vary(headers, "Accept-Encoding")
    assert headers["vary"] == "Accept-Encoding"

    headers = MutableHeaders({"vary": "Origin"})
    vary(headers, "Accept-Encoding")
    assert headers["vary"] == "Origin, Accept-Encoding"

    headers = MutableHeaders({"vary": "origin, accept-encoding"})
    vary(headers, "Accept-Encoding")
    assert headers["vary"] == "origin, accept-encoding"

    headers = MutableHeaders({"vary": "*"})
    vary(headers, "Accept-Encoding")
    assert headers["vary"] == "*"


def test_is_transform_allowed_reads_every_cache_control_line():
    headers = MutableHeaders(
        raw=[(b"cache-control", b"public"), (b"cache-control", b"no-transform")]
    )
    assert is_transform_allowed(headers) is False

    headers = MutableHeaders(
        raw=[(b"cache-control", b"public"), (b"cache-control", b"max-age=60")]
    )
    assert is_transform_allowed(headers) is True


def test_vary_merges_repeated_lines():
    headers = MutableHeaders(raw=[(b"vary", b"Origin"), (b"vary", b"Cookie")])
    vary(headers, "Accept-Encoding")
    assert headers.getlist("vary") == ["Origin, Cookie, Accept-Encoding"]

    headers = MutableHeaders(raw=[(b"vary", b"Origin"), (b"vary", b"Accept-Encoding")])
    vary(headers, "Accept-Encoding")
    assert headers.getlist("vary") == ["Origin", "Accept-Encoding"]
