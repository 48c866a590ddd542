"""JSON event format."""

from __future__ import annotations

import base64
import binascii
import json
from collections.abc import AsyncIterator, Sequence
from typing import Any

from .attributes import CloudEventAttribute, CloudEventAttributeType
from .content_type import ContentType, create_content_type_or_none, is_json_media_type
from .event import CloudEvent
from .exceptions import (
    CloudEventsError,
    CloudEventsErrorCodes,
    MissingSpecVersionError,
    UnsupportedSpecVersionError,
)
from .formatter import CloudEventFormatter
from .request import read_body
from .spec_version import SPEC_VERSION_ATTRIBUTE, CloudEventsSpecVersion

DATA_PROPERTY = "data"
DATA_BASE64_PROPERTY = "data_base64"
_NON_ATTRIBUTE_PROPERTIES = frozenset(
    {SPEC_VERSION_ATTRIBUTE.name, DATA_PROPERTY, DATA_BASE64_PROPERTY}
)


def _format_error(message: str, cause: Exception | None = None) -> CloudEventsError:
    return CloudEventsError(
        code=CloudEventsErrorCodes.INVALID_FORMAT,
        message=message,
        cause=cause,
    )


def _decode_text(body: bytes, content_type: ContentType | None) -> str:
    charset = (content_type.charset if content_type else None) or "utf-8"
    try:
        return body.decode(charset)
    except LookupError as e:
        raise CloudEventsError(
            code=CloudEventsErrorCodes.INVALID_CONTENT_TYPE,
            message=f"Unknown charset: {charset}",
            cause=e,
        ) from e
    except UnicodeDecodeError as e:
        raise _format_error(f"Body is not valid {charset}", e) from e


def _is_json_content(data_content_type: str | None) -> bool:
    if data_content_type is None:
        return True
    parsed = create_content_type_or_none(data_content_type)
    return parsed is not None and is_json_media_type(parsed.media_type)


class JsonEventFormatter(CloudEventFormatter):
    """Formatter for the CloudEvents JSON event format.

    Binary-mode data is interpreted by the event's data content type:
    JSON media types (or no content type) are parsed, ``text/*`` bodies are
    decoded to ``str`` and everything else is kept as ``bytes``.
    """

    def _parse(self, body: bytes, content_type: ContentType | None) -> Any:
        text = _decode_text(body, content_type)
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise _format_error(f"Invalid JSON: {e.msg}", e) from e

    async def decode_structured_mode_message(
        self,
        body: AsyncIterator[bytes],
        content_type: ContentType | None,
        extension_attributes: Sequence[CloudEventAttribute],
    ) -> CloudEvent:
        document = self._parse(await read_body(body), content_type)
        if not isinstance(document, dict):
            raise _format_error("Structured mode content must be a JSON object")
        return self.decode_json_object(document, extension_attributes)

    async def decode_batch_mode_message(
        self,
        body: AsyncIterator[bytes],
        content_type: ContentType | None,
        extension_attributes: Sequence[CloudEventAttribute],
    ) -> list[CloudEvent]:
        document = self._parse(await read_body(body), content_type)
        if not isinstance(document, list):
            raise _format_error("Batch mode content must be a JSON array")
        events = []
        for item in document:
            if not isinstance(item, dict):
                raise _format_error("Each batch element must be a JSON object")
            events.append(self.decode_json_object(item, extension_attributes))
        return events

    def decode_binary_mode_event_data(self, body: bytes, cloud_event: CloudEvent) -> None:
        if not body:
            cloud_event.data = None
            return
        data_content_type = cloud_event.data_content_type
        content_type = create_content_type_or_none(data_content_type)
        if _is_json_content(data_content_type):
            cloud_event.data = self._parse(body, content_type)
        elif content_type is not None and content_type.media_type.startswith("text/"):
            cloud_event.data = _decode_text(body, content_type)
        else:
            cloud_event.data = body

    def decode_json_object(
        self,
        document: dict[str, Any],
        extension_attributes: Sequence[CloudEventAttribute],
    ) -> CloudEvent:
        """Build a CloudEvent from a parsed structured-mode JSON object."""
        version_id = document.get(SPEC_VERSION_ATTRIBUTE.name)
        if version_id is None:
            raise MissingSpecVersionError("Structured mode content does not represent a CloudEvent")
        if not isinstance(version_id, str):
            raise _format_error("specversion must be a string")
        version = CloudEventsSpecVersion.from_version_id(version_id)
        if version is None:
            raise UnsupportedSpecVersionError(version_id)

        declared = {attr.name for attr in extension_attributes}
        extensions = list(extension_attributes)
        # Undeclared non-string extensions are typed from their JSON value.
        for name, value in document.items():
            if name in _NON_ATTRIBUTE_PROPERTIES:
                continue
            if name in declared or version.get_attribute_by_name(name) is not None:
                continue
            if isinstance(value, bool):
                extensions.append(
                    CloudEventAttribute.create_extension(name, CloudEventAttributeType.BOOLEAN)
                )
            elif isinstance(value, int):
                extensions.append(
                    CloudEventAttribute.create_extension(name, CloudEventAttributeType.INTEGER)
                )

        event = CloudEvent(version, extensions)
        for name, value in document.items():
            if name in _NON_ATTRIBUTE_PROPERTIES:
                continue
            if value is None:
                continue
            if isinstance(value, str):
                event.set_attribute_from_string(name, value)
            elif isinstance(value, (bool, int)):
                event[name] = value
            else:
                raise _format_error(f"Invalid JSON value for attribute '{name}'")

        self._decode_data(document, event)
        return event.validate()

    def _decode_data(self, document: dict[str, Any], event: CloudEvent) -> None:
        if DATA_PROPERTY in document and DATA_BASE64_PROPERTY in document:
            raise _format_error("Structured mode content cannot contain both data and data_base64")
        if DATA_BASE64_PROPERTY in document:
            encoded = document[DATA_BASE64_PROPERTY]
            if not isinstance(encoded, str):
                raise _format_error("data_base64 must be a string")
            try:
                event.data = base64.b64decode(encoded, validate=True)
            except binascii.Error as e:
                raise _format_error("data_base64 is not valid base64", e) from e
        elif DATA_PROPERTY in document:
            token = document[DATA_PROPERTY]
            if _is_json_content(event.data_content_type) or isinstance(token, str) or token is None:
                event.data = token
            else:
                raise _format_error(
                    f"Data for content type {event.data_content_type!r} must be a JSON string"
                )
