"""Shared fixtures for cloudevents tests."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable

import pytest
from k1s0_cloudevents.request import group_headers


class FakeRequest:
    """In-memory HttpRequestView whose body can only be read once."""

    def __init__(
        self,
        headers: list[tuple[str, str]] | None = None,
        body: bytes = b"",
        content_type: str | None = None,
        chunk_size: int = 4,
    ) -> None:
        pairs = list(headers or [])
        if content_type is not None:
            pairs.append(("Content-Type", content_type))
        self._headers = group_headers(pairs)
        self._content_type = content_type
        self._body = body
        self._chunk_size = chunk_size
        self.stream_calls = 0

    @property
    def content_type(self) -> str | None:
        return self._content_type

    @property
    def headers(self) -> list[tuple[str, list[str]]]:
        return self._headers

    async def _chunks(self) -> AsyncIterator[bytes]:
        for start in range(0, len(self._body), self._chunk_size):
            yield self._body[start : start + self._chunk_size]

    def stream(self) -> AsyncIterator[bytes]:
        self.stream_calls += 1
        if self.stream_calls > 1:
            raise RuntimeError("body already consumed")
        return self._chunks()


@pytest.fixture
def make_request() -> Callable[..., FakeRequest]:
    return FakeRequest
