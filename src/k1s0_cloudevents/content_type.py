"""Content type parsing."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from .event import BATCH_MEDIA_TYPE, MEDIA_TYPE
from .exceptions import CloudEventsError, CloudEventsErrorCodes

_TOKEN = r"[!#$%&'*+.^_`|~0-9A-Za-z-]+"
_MEDIA_TYPE_RE = re.compile(rf"({_TOKEN})/({_TOKEN})")
_PARAMETER_RE = re.compile(rf"\s*({_TOKEN})\s*=\s*(\"(?:[^\"\\]|\\.)*\"|{_TOKEN})\s*")

JSON_MEDIA_TYPE = "application/json"


@dataclass(frozen=True)
class ContentType:
    """A parsed ``type/subtype; name=value`` content type."""

    media_type: str
    parameters: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def charset(self) -> str | None:
        return self.parameters.get("charset")

    @classmethod
    def parse(cls, value: str) -> ContentType:
        """Parse a Content-Type header value.

        The media type and parameter names are lower-cased; parameter values
        keep their case with surrounding quotes removed.
        """
        media, _, rest = value.partition(";")
        if not _MEDIA_TYPE_RE.fullmatch(media.strip()):
            raise CloudEventsError(
                code=CloudEventsErrorCodes.INVALID_CONTENT_TYPE,
                message=f"Invalid content type: {value!r}",
            )
        parameters: dict[str, str] = {}
        if rest:
            for item in rest.split(";"):
                if not item.strip():
                    continue
                match = _PARAMETER_RE.fullmatch(item)
                if match is None:
                    raise CloudEventsError(
                        code=CloudEventsErrorCodes.INVALID_CONTENT_TYPE,
                        message=f"Invalid content type parameter {item.strip()!r} in {value!r}",
                    )
                param_value = match.group(2)
                if param_value.startswith('"'):
                    param_value = re.sub(r"\\(.)", r"\1", param_value[1:-1])
                parameters[match.group(1).lower()] = param_value
        return cls(media_type=media.strip().lower(), parameters=MappingProxyType(parameters))

    def __str__(self) -> str:
        params = "".join(f"; {k}={v}" for k, v in self.parameters.items())
        return f"{self.media_type}{params}"


def create_content_type_or_none(value: str | None) -> ContentType | None:
    """Parse ``value``, returning None when it is absent or unparseable."""
    if not value:
        return None
    try:
        return ContentType.parse(value)
    except CloudEventsError:
        return None


def is_json_media_type(media_type: str | None) -> bool:
    """True for ``application/json`` and any ``+json`` structured syntax suffix."""
    if media_type is None:
        return False
    media_type = media_type.lower()
    return media_type == JSON_MEDIA_TYPE or media_type.endswith("+json")


def is_cloud_events_content_type(content_type: str | None) -> bool:
    """True for any ``application/cloudevents`` content type, batch included.

    A batch body sent to a single-event decode goes to the structured
    formatter, which rejects it, rather than being read as binary data.
    """
    if not content_type:
        return False
    return content_type.lower().startswith(MEDIA_TYPE)


def is_cloud_events_batch_content_type(content_type: str | None) -> bool:
    return bool(content_type) and content_type.lower().startswith(BATCH_MEDIA_TYPE)
