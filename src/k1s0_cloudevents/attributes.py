"""CloudEvent attribute types and declarations."""

from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any
from urllib.parse import urlparse

from .exceptions import CloudEventsError, CloudEventsErrorCodes

_NAME_RE = re.compile(r"[a-z0-9]+")
_INTEGER_RE = re.compile(r"-?[0-9]+")
_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1

# Names that may appear in a structured event but are never attributes.
RESERVED_NAMES = frozenset({"data", "data_base64"})


def _invalid(message: str, cause: Exception | None = None) -> CloudEventsError:
    return CloudEventsError(
        code=CloudEventsErrorCodes.INVALID_ATTRIBUTE,
        message=message,
        cause=cause,
    )


class CloudEventAttributeType(str, Enum):
    """The type system defined for CloudEvent attribute values."""

    BOOLEAN = "Boolean"
    INTEGER = "Integer"
    STRING = "String"
    URI = "URI"
    URI_REFERENCE = "URI-reference"
    TIMESTAMP = "Timestamp"
    BINARY = "Binary"

    def parse(self, text: str) -> Any:
        """Parse the canonical string form of a value of this type."""
        if self is CloudEventAttributeType.BOOLEAN:
            if text == "true":
                return True
            if text == "false":
                return False
            raise _invalid(f"Invalid Boolean value: {text!r}")
        if self is CloudEventAttributeType.INTEGER:
            if not _INTEGER_RE.fullmatch(text):
                raise _invalid(f"Invalid Integer value: {text!r}")
            return self.validate(int(text))
        if self is CloudEventAttributeType.TIMESTAMP:
            try:
                parsed = datetime.fromisoformat(text)
            except ValueError as e:
                raise _invalid(f"Invalid Timestamp value: {text!r}", e) from e
            return self.validate(parsed)
        if self is CloudEventAttributeType.BINARY:
            try:
                return base64.b64decode(text, validate=True)
            except binascii.Error as e:
                raise _invalid(f"Invalid Binary value: {text!r}", e) from e
        return self.validate(text)

    def format(self, value: Any) -> str:
        """Return the canonical string form of ``value``."""
        value = self.validate(value)
        if self is CloudEventAttributeType.BOOLEAN:
            return "true" if value else "false"
        if self is CloudEventAttributeType.INTEGER:
            return str(value)
        if self is CloudEventAttributeType.TIMESTAMP:
            if value.utcoffset() == timedelta(0):
                return value.replace(tzinfo=None).isoformat() + "Z"
            return value.isoformat()
        if self is CloudEventAttributeType.BINARY:
            return base64.b64encode(value).decode("ascii")
        return value

    def validate(self, value: Any) -> Any:
        """Check that ``value`` is a legal native value of this type."""
        if self is CloudEventAttributeType.BOOLEAN:
            if not isinstance(value, bool):
                raise _invalid(f"Expected bool for Boolean, got {type(value).__name__}")
        elif self is CloudEventAttributeType.INTEGER:
            if isinstance(value, bool) or not isinstance(value, int):
                raise _invalid(f"Expected int for Integer, got {type(value).__name__}")
            if not _INT32_MIN <= value <= _INT32_MAX:
                raise _invalid(f"Integer value out of range: {value}")
        elif self is CloudEventAttributeType.TIMESTAMP:
            if not isinstance(value, datetime):
                raise _invalid(f"Expected datetime for Timestamp, got {type(value).__name__}")
            if value.tzinfo is None:
                raise _invalid(f"Timestamp must carry a UTC offset: {value.isoformat()}")
        elif self is CloudEventAttributeType.BINARY:
            if not isinstance(value, (bytes, bytearray)):
                raise _invalid(f"Expected bytes for Binary, got {type(value).__name__}")
            value = bytes(value)
        else:
            if not isinstance(value, str):
                raise _invalid(f"Expected str for {self.value}, got {type(value).__name__}")
            if self is CloudEventAttributeType.URI and not urlparse(value).scheme:
                raise _invalid(f"URI must be absolute: {value!r}")
        return value


@dataclass(frozen=True)
class CloudEventAttribute:
    """Declaration of an attribute: its name, type, and role."""

    name: str
    type: CloudEventAttributeType
    required: bool = False
    is_extension: bool = False

    @classmethod
    def create_extension(
        cls,
        name: str,
        type: CloudEventAttributeType = CloudEventAttributeType.STRING,
    ) -> CloudEventAttribute:
        """Declare an extension attribute, validating its name."""
        validate_attribute_name(name)
        return cls(name=name, type=type, required=False, is_extension=True)

    def parse(self, text: str) -> Any:
        try:
            return self.type.parse(text)
        except CloudEventsError as e:
            raise _invalid(f"Attribute '{self.name}': {e.args[0]}", e) from e

    def format(self, value: Any) -> str:
        return self.type.format(value)

    def validate(self, value: Any) -> Any:
        try:
            return self.type.validate(value)
        except CloudEventsError as e:
            raise _invalid(f"Attribute '{self.name}': {e.args[0]}", e) from e


def validate_attribute_name(name: str) -> None:
    """Attribute names are non-empty lowercase ASCII letters and digits."""
    if not _NAME_RE.fullmatch(name):
        raise _invalid(f"Invalid attribute name: {name!r}")
    if name in RESERVED_NAMES:
        raise _invalid(f"Reserved attribute name: {name!r}")
