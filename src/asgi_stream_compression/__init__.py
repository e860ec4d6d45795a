from asgi_stream_compression.interceptor import CompressingResponse
from asgi_stream_compression.middleware import CompressionMiddleware, compression
from asgi_stream_compression.negotiation import Encoding, should_compress
from asgi_stream_compression.response import ASGIResponse, BaseResponse

__all__ = [
    "ASGIResponse",
    "BaseResponse",
    "CompressingResponse",
    "CompressionMiddleware",
    "Encoding",
    "compression",
    "should_compress",
]
