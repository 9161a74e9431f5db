"""Capped reading of POST bodies."""

from __future__ import annotations

from dataclasses import dataclass

from starlette.requests import Request

DEFAULT_MAX_BODY_BYTES = 4 * 1024 * 1024


@dataclass(frozen=True)
class BodyTooLargeError(Exception):
    max_body_bytes: int

    def __str__(self) -> str:
        return f"Request body is larger than {self.max_body_bytes} bytes"


async def read_request_body(request: Request, *, max_body_bytes: int | None = DEFAULT_MAX_BODY_BYTES) -> bytes:
    """Read a request body, refusing to buffer more than ``max_body_bytes``.

    A declared Content-Length above the cap is rejected before any of the body
    is read; otherwise the cap is enforced chunk by chunk.
    """
    if max_body_bytes is None:
        return await request.body()
    if max_body_bytes <= 0:
        raise ValueError("max_body_bytes must be positive or None")

    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > max_body_bytes:
        raise BodyTooLargeError(max_body_bytes)

    received = bytearray()
    async for chunk in request.stream():
        if len(received) + len(chunk) > max_body_bytes:
            raise BodyTooLargeError(max_body_bytes)
        received.extend(chunk)
    return bytes(received)
