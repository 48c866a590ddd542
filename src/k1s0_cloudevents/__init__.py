"""k1s0 cloudevents library."""

from .attributes import CloudEventAttribute, CloudEventAttributeType
from .config import DecoderConfig, load_config
from .content_type import ContentType, create_content_type_or_none
from .decoder import (
    CloudEventDecoder,
    has_cloud_events_content_type,
    is_cloud_event,
    is_cloud_event_batch,
    read_cloud_event,
    read_cloud_event_batch,
)
from .event import CloudEvent
from .exceptions import (
    CloudEventDecodingError,
    CloudEventsError,
    CloudEventsErrorCodes,
    DuplicateAttributeHeaderError,
    MissingFormatterError,
    MissingSpecVersionError,
    UnsupportedSpecVersionError,
)
from .formatter import CloudEventFormatter
from .http_utilities import (
    HTTP_HEADER_PREFIX,
    SPEC_VERSION_HTTP_HEADER,
    decode_header_value,
    encode_header_value,
    get_attribute_name_from_header_name,
    get_header_name_for_attribute,
)
from .json_formatter import JsonEventFormatter
from .request import HttpRequestView, HttpxRequestView, StarletteRequestView
from .spec_version import CloudEventsSpecVersion

__all__ = [
    "CloudEvent",
    "CloudEventAttribute",
    "CloudEventAttributeType",
    "CloudEventsSpecVersion",
    "CloudEventFormatter",
    "JsonEventFormatter",
    "ContentType",
    "create_content_type_or_none",
    "HttpRequestView",
    "StarletteRequestView",
    "HttpxRequestView",
    "CloudEventDecoder",
    "read_cloud_event",
    "read_cloud_event_batch",
    "has_cloud_events_content_type",
    "is_cloud_event",
    "is_cloud_event_batch",
    "HTTP_HEADER_PREFIX",
    "SPEC_VERSION_HTTP_HEADER",
    "get_attribute_name_from_header_name",
    "get_header_name_for_attribute",
    "encode_header_value",
    "decode_header_value",
    "DecoderConfig",
    "load_config",
    "CloudEventsError",
    "CloudEventsErrorCodes",
    "CloudEventDecodingError",
    "MissingSpecVersionError",
    "UnsupportedSpecVersionError",
    "MissingFormatterError",
    "DuplicateAttributeHeaderError",
]
