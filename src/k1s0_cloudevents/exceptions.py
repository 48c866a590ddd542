"""cloudevents library exceptions."""

from __future__ import annotations


class CloudEventsError(Exception):
    """Base error for the cloudevents library."""

    def __init__(
        self,
        code: str,
        message: str,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return f"{self.code}: {super().__str__()}"


class CloudEventsErrorCodes:
    """CloudEventsError code constants."""

    MISSING_SPEC_VERSION: str = "MISSING_SPEC_VERSION"
    UNSUPPORTED_SPEC_VERSION: str = "UNSUPPORTED_SPEC_VERSION"
    MISSING_FORMATTER: str = "MISSING_FORMATTER"
    DUPLICATE_ATTRIBUTE_HEADER: str = "DUPLICATE_ATTRIBUTE_HEADER"
    INVALID_HEADER_VALUE: str = "INVALID_HEADER_VALUE"
    INVALID_ATTRIBUTE: str = "INVALID_ATTRIBUTE"
    INVALID_EVENT: str = "INVALID_EVENT"
    INVALID_CONTENT_TYPE: str = "INVALID_CONTENT_TYPE"
    INVALID_FORMAT: str = "INVALID_FORMAT"
    NOT_A_BATCH: str = "NOT_A_BATCH"
    UNSUPPORTED_OPERATION: str = "UNSUPPORTED_OPERATION"
    BODY_TOO_LARGE: str = "BODY_TOO_LARGE"
    READ_FILE: str = "READ_FILE_ERROR"
    PARSE_YAML: str = "PARSE_YAML_ERROR"
    VALIDATION: str = "VALIDATION_ERROR"


class CloudEventDecodingError(CloudEventsError):
    """The message could not be identified as a CloudEvent."""


class MissingSpecVersionError(CloudEventDecodingError):
    """No spec version was found in the message."""

    def __init__(self, message: str = "Request is not a CloudEvent") -> None:
        super().__init__(CloudEventsErrorCodes.MISSING_SPEC_VERSION, message)


class UnsupportedSpecVersionError(CloudEventDecodingError):
    """The declared spec version is not registered."""

    def __init__(self, version_id: str) -> None:
        super().__init__(
            CloudEventsErrorCodes.UNSUPPORTED_SPEC_VERSION,
            f"Unsupported CloudEvents spec version '{version_id}'",
        )
        self.version_id = version_id


class MissingFormatterError(CloudEventDecodingError):
    """No event formatter was supplied."""

    def __init__(self) -> None:
        super().__init__(
            CloudEventsErrorCodes.MISSING_FORMATTER,
            "An event formatter is required to decode a CloudEvent",
        )


class DuplicateAttributeHeaderError(CloudEventDecodingError):
    """An attribute header appeared more than once."""

    def __init__(self, header_name: str) -> None:
        super().__init__(
            CloudEventsErrorCodes.DUPLICATE_ATTRIBUTE_HEADER,
            f"Header '{header_name}' is present more than once",
        )
        self.header_name = header_name
