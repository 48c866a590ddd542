"""CloudEvent decoding from inbound HTTP requests.

Two content modes are supported. A request whose content type starts with
``application/cloudevents`` is in structured mode and its body is handed to
the formatter as a whole. Any other request is in binary mode: the context
attributes come from ``ce-`` headers, the data content type from
Content-Type, and the body is the event data.
"""

from __future__ import annotations

import inspect
from collections.abc import AsyncIterator

import structlog

from .attributes import CloudEventAttribute
from .config import DecoderConfig
from .content_type import (
    create_content_type_or_none,
    is_cloud_events_batch_content_type,
    is_cloud_events_content_type,
)
from .event import CloudEvent
from .exceptions import (
    CloudEventsError,
    CloudEventsErrorCodes,
    DuplicateAttributeHeaderError,
    MissingFormatterError,
    MissingSpecVersionError,
    UnsupportedSpecVersionError,
)
from .formatter import CloudEventFormatter
from .http_utilities import (
    SPEC_VERSION_HTTP_HEADER,
    decode_header_value,
    get_attribute_name_from_header_name,
)
from .request import HttpRequestView, limit_stream, read_body
from .spec_version import SPEC_VERSION_ATTRIBUTE, CloudEventsSpecVersion

logger = structlog.get_logger(__name__)


def has_cloud_events_content_type(request: HttpRequestView) -> bool:
    """True when the request is a structured-mode CloudEvent."""
    return is_cloud_events_content_type(request.content_type)


def _find_header(request: HttpRequestView, header_name: str) -> list[str] | None:
    for name, values in request.headers:
        if name.lower() == header_name:
            return list(values)
    return None


def is_cloud_event(request: HttpRequestView) -> bool:
    """True for structured-mode requests and binary-mode requests with a spec version header."""
    return has_cloud_events_content_type(request) or bool(
        _find_header(request, SPEC_VERSION_HTTP_HEADER)
    )


def is_cloud_event_batch(request: HttpRequestView) -> bool:
    return is_cloud_events_batch_content_type(request.content_type)


class CloudEventDecoder:
    """Decodes CloudEvents from request views. Holds no per-request state."""

    def __init__(self, config: DecoderConfig | None = None) -> None:
        self._config = config or DecoderConfig()

    def _body(self, request: HttpRequestView) -> AsyncIterator[bytes]:
        stream = request.stream()
        if self._config.max_body_bytes is not None:
            return limit_stream(stream, self._config.max_body_bytes)
        return stream

    async def decode(
        self,
        request: HttpRequestView,
        formatter: CloudEventFormatter,
        *extension_attributes: CloudEventAttribute,
    ) -> CloudEvent:
        """Decode a single CloudEvent from ``request``.

        Args:
            request: the inbound request
            formatter: format used for structured bodies and binary data
            extension_attributes: extensions to recognize and type

        Raises:
            MissingFormatterError: formatter is None
            MissingSpecVersionError: binary-mode request without ce-specversion
            UnsupportedSpecVersionError: ce-specversion is not a registered version
            DuplicateAttributeHeaderError: an attribute header is repeated and
                the policy is "reject"
        """
        if formatter is None:
            raise MissingFormatterError()

        if has_cloud_events_content_type(request):
            logger.debug("decoding structured mode cloudevent", content_type=request.content_type)
            return await formatter.decode_structured_mode_message(
                self._body(request),
                create_content_type_or_none(request.content_type),
                extension_attributes,
            )

        cloud_event = self._decode_binary_attributes(request, extension_attributes)
        body = await read_body(request.stream(), self._config.max_body_bytes)
        result = formatter.decode_binary_mode_event_data(body, cloud_event)
        if inspect.isawaitable(result):
            await result
        logger.debug(
            "decoded binary mode cloudevent",
            event_id=cloud_event.id,
            event_type=cloud_event.type,
            body_size=len(body),
        )
        return cloud_event

    def _decode_binary_attributes(
        self,
        request: HttpRequestView,
        extension_attributes: tuple[CloudEventAttribute, ...],
    ) -> CloudEvent:
        version_values = _find_header(request, SPEC_VERSION_HTTP_HEADER)
        if not version_values:
            logger.warning("request is not a cloudevent", content_type=request.content_type)
            raise MissingSpecVersionError()
        version_id = version_values[0]
        version = CloudEventsSpecVersion.from_version_id(version_id)
        if version is None:
            logger.warning("unsupported cloudevents spec version", version_id=version_id)
            raise UnsupportedSpecVersionError(version_id)

        cloud_event = CloudEvent(version, extension_attributes)
        for header_name, values in request.headers:
            attribute_name = get_attribute_name_from_header_name(header_name)
            if attribute_name is None:
                continue
            if len(values) > 1 and self._config.duplicate_header_policy == "reject":
                logger.warning("duplicate cloudevents attribute header", header=header_name)
                raise DuplicateAttributeHeaderError(header_name)
            if attribute_name == SPEC_VERSION_ATTRIBUTE.name:
                continue
            cloud_event.set_attribute_from_string(attribute_name, decode_header_value(values[-1]))

        cloud_event.data_content_type = request.content_type
        return cloud_event

    async def decode_batch(
        self,
        request: HttpRequestView,
        formatter: CloudEventFormatter,
        *extension_attributes: CloudEventAttribute,
    ) -> list[CloudEvent]:
        """Decode a batch-mode request into a list of CloudEvents."""
        if formatter is None:
            raise MissingFormatterError()
        if not is_cloud_event_batch(request):
            raise CloudEventsError(
                code=CloudEventsErrorCodes.NOT_A_BATCH,
                message=f"Content type {request.content_type!r} is not a CloudEvents batch",
            )
        events = await formatter.decode_batch_mode_message(
            self._body(request),
            create_content_type_or_none(request.content_type),
            extension_attributes,
        )
        logger.debug("decoded cloudevent batch", count=len(events))
        return events


async def read_cloud_event(
    request: HttpRequestView,
    formatter: CloudEventFormatter,
    *extension_attributes: CloudEventAttribute,
    config: DecoderConfig | None = None,
) -> CloudEvent:
    """Decode a CloudEvent from ``request`` with a one-off decoder."""
    return await CloudEventDecoder(config).decode(request, formatter, *extension_attributes)


async def read_cloud_event_batch(
    request: HttpRequestView,
    formatter: CloudEventFormatter,
    *extension_attributes: CloudEventAttribute,
    config: DecoderConfig | None = None,
) -> list[CloudEvent]:
    return await CloudEventDecoder(config).decode_batch(request, formatter, *extension_attributes)
