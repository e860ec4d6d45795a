from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from starlette.requests import Request

    from asgi_stream_compression.response import BaseResponse

# ASGI types
Scope = dict[str, Any]
Message = dict[str, Any]
Receive = Callable[[], Awaitable[Message]]
Send = Callable[[Message], Awaitable[None]]
ASGIApp = Callable[[Scope, Receive, Send], Awaitable[None]]

# Response stream types
Chunk = bytes | bytearray | memoryview | str
Listener = Callable[..., Any]
Filter = Callable[["Request", "BaseResponse"], bool]
