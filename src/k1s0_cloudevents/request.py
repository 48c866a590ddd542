"""Read-only views over inbound HTTP requests."""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterable, Sequence
from typing import TYPE_CHECKING, Protocol

from .exceptions import CloudEventsError, CloudEventsErrorCodes

if TYPE_CHECKING:
    import httpx
    from starlette.requests import Request


class HttpRequestView(Protocol):
    """The parts of an inbound request the decoder reads."""

    @property
    def content_type(self) -> str | None: ...

    @property
    def headers(self) -> Sequence[tuple[str, Sequence[str]]]: ...

    def stream(self) -> AsyncIterator[bytes]: ...


def group_headers(pairs: Iterable[tuple[str, str]]) -> list[tuple[str, list[str]]]:
    """Group raw header pairs by case-insensitive name.

    Each group keeps the casing of the first occurrence, and groups are
    ordered by first occurrence.
    """
    groups: dict[str, tuple[str, list[str]]] = {}
    for name, value in pairs:
        key = name.lower()
        if key in groups:
            groups[key][1].append(value)
        else:
            groups[key] = (name, [value])
    return list(groups.values())


async def read_body(stream: AsyncIterator[bytes], max_bytes: int | None = None) -> bytes:
    """Drain ``stream`` into memory.

    Raises:
        CloudEventsError: the body exceeds ``max_bytes``.
    """
    buffer = bytearray()
    async for chunk in stream:
        buffer.extend(chunk)
        if max_bytes is not None and len(buffer) > max_bytes:
            raise CloudEventsError(
                code=CloudEventsErrorCodes.BODY_TOO_LARGE,
                message=f"Request body exceeds {max_bytes} bytes",
            )
    return bytes(buffer)


async def limit_stream(stream: AsyncIterator[bytes], max_bytes: int) -> AsyncIterator[bytes]:
    """Pass chunks through, failing once more than ``max_bytes`` have been seen."""
    seen = 0
    async for chunk in stream:
        seen += len(chunk)
        if seen > max_bytes:
            raise CloudEventsError(
                code=CloudEventsErrorCodes.BODY_TOO_LARGE,
                message=f"Request body exceeds {max_bytes} bytes",
            )
        yield chunk


def _decode_header_bytes(value: bytes) -> str:
    # UTF-8, falling back to latin-1 like httpx.Headers.
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError:
        return value.decode("latin-1")


class StarletteRequestView:
    """View over a Starlette (or FastAPI) request."""

    def __init__(self, request: Request) -> None:
        self._request = request

    @property
    def content_type(self) -> str | None:
        return self._request.headers.get("content-type")

    @property
    def headers(self) -> list[tuple[str, list[str]]]:
        return group_headers(
            (name.decode("latin-1"), _decode_header_bytes(value))
            for name, value in self._request.headers.raw
        )

    def stream(self) -> AsyncIterator[bytes]:
        return self._request.stream()


class HttpxRequestView:
    """View over an ``httpx.Request``, e.g. inside a mock transport handler."""

    def __init__(self, request: httpx.Request) -> None:
        self._request = request

    @property
    def content_type(self) -> str | None:
        return self._request.headers.get("content-type")

    @property
    def headers(self) -> list[tuple[str, list[str]]]:
        return group_headers(self._request.headers.multi_items())

    async def stream(self) -> AsyncIterator[bytes]:
        body = await self._request.aread()
        if body:
            yield body
