"""Event formatter interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable, Sequence

from .attributes import CloudEventAttribute
from .content_type import ContentType
from .event import CloudEvent
from .exceptions import CloudEventsError, CloudEventsErrorCodes


class CloudEventFormatter(ABC):
    """Converts between a wire format (JSON, Avro, Protobuf, ...) and CloudEvents."""

    @abstractmethod
    async def decode_structured_mode_message(
        self,
        body: AsyncIterator[bytes],
        content_type: ContentType | None,
        extension_attributes: Sequence[CloudEventAttribute],
    ) -> CloudEvent:
        """Decode a whole event (attributes and data) from a structured-mode body."""
        ...

    @abstractmethod
    def decode_binary_mode_event_data(
        self, body: bytes, cloud_event: CloudEvent
    ) -> None | Awaitable[None]:
        """Set ``cloud_event.data`` from a binary-mode body.

        Implementations may be coroutines; callers await the result when it
        is awaitable.
        """
        ...

    async def decode_batch_mode_message(
        self,
        body: AsyncIterator[bytes],
        content_type: ContentType | None,
        extension_attributes: Sequence[CloudEventAttribute],
    ) -> list[CloudEvent]:
        """Decode a batch of events. Formats without a batch mode raise."""
        raise CloudEventsError(
            code=CloudEventsErrorCodes.UNSUPPORTED_OPERATION,
            message=f"{type(self).__name__} does not support batch mode",
        )
