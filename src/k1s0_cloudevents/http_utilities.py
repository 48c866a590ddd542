"""Header naming and header value encoding for the CloudEvents HTTP binding."""

from __future__ import annotations

import re

from .exceptions import CloudEventsError, CloudEventsErrorCodes

HTTP_HEADER_PREFIX = "ce-"
SPEC_VERSION_HTTP_HEADER = HTTP_HEADER_PREFIX + "specversion"

_ESCAPE_RE = re.compile(r"%([0-9A-Fa-f]{2})")


def get_attribute_name_from_header_name(header_name: str) -> str | None:
    """Map a ``ce-`` header to its attribute name, or None for other headers."""
    lowered = header_name.lower()
    if not lowered.startswith(HTTP_HEADER_PREFIX) or len(lowered) == len(HTTP_HEADER_PREFIX):
        return None
    return lowered[len(HTTP_HEADER_PREFIX):]


def get_header_name_for_attribute(attribute_name: str) -> str:
    return HTTP_HEADER_PREFIX + attribute_name


def _needs_escape(ch: str) -> bool:
    return ch in ' "%' or not ("\x21" <= ch <= "\x7e")


def encode_header_value(value: str) -> str:
    """Percent-encode space, '"', '%' and every non-printable or non-ASCII character."""
    if not any(_needs_escape(ch) for ch in value):
        return value
    parts: list[str] = []
    for ch in value:
        if _needs_escape(ch):
            parts.extend(f"%{b:02X}" for b in ch.encode("utf-8"))
        else:
            parts.append(ch)
    return "".join(parts)


def decode_header_value(value: str) -> str:
    """Reverse :func:`encode_header_value`.

    Raises:
        CloudEventsError: a '%' is not followed by two hex digits, or the
            escaped bytes are not valid UTF-8.
    """
    if "%" not in value:
        return value
    buffer = bytearray()
    pos = 0
    while pos < len(value):
        ch = value[pos]
        if ch != "%":
            buffer.extend(ch.encode("utf-8"))
            pos += 1
            continue
        match = _ESCAPE_RE.match(value, pos)
        if match is None:
            raise CloudEventsError(
                code=CloudEventsErrorCodes.INVALID_HEADER_VALUE,
                message=f"Invalid percent-encoding in header value: {value!r}",
            )
        buffer.append(int(match.group(1), 16))
        pos = match.end()
    try:
        return buffer.decode("utf-8")
    except UnicodeDecodeError as e:
        raise CloudEventsError(
            code=CloudEventsErrorCodes.INVALID_HEADER_VALUE,
            message=f"Header value is not valid UTF-8 once decoded: {value!r}",
            cause=e,
        ) from e
