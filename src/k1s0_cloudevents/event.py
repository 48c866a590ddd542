"""CloudEvent model."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any

from .attributes import CloudEventAttribute, CloudEventAttributeType, validate_attribute_name
from .exceptions import CloudEventsError, CloudEventsErrorCodes
from .spec_version import SPEC_VERSION_ATTRIBUTE, CloudEventsSpecVersion

# MIME type prefix shared by the structured and batch content modes.
MEDIA_TYPE = "application/cloudevents"
BATCH_MEDIA_TYPE = MEDIA_TYPE + "-batch"


class CloudEvent:
    """A CloudEvent: context attributes plus optional data.

    The spec version is structural and never stored as an attribute value.
    Extension attributes that are not declared up front are created as
    String extensions the first time a string value is assigned to them.
    """

    def __init__(
        self,
        spec_version: CloudEventsSpecVersion | None = None,
        extension_attributes: Iterable[CloudEventAttribute] | None = None,
    ) -> None:
        self._spec_version = spec_version or CloudEventsSpecVersion.DEFAULT
        self._extensions: dict[str, CloudEventAttribute] = {}
        self._values: dict[str, tuple[CloudEventAttribute, Any]] = {}
        self.data: Any = None
        for attribute in extension_attributes or ():
            self._add_extension(attribute)

    def _add_extension(self, attribute: CloudEventAttribute) -> None:
        if not attribute.is_extension:
            raise CloudEventsError(
                code=CloudEventsErrorCodes.INVALID_ATTRIBUTE,
                message=f"Attribute '{attribute.name}' is not an extension attribute",
            )
        if (
            attribute.name == SPEC_VERSION_ATTRIBUTE.name
            or self._spec_version.get_attribute_by_name(attribute.name) is not None
        ):
            raise CloudEventsError(
                code=CloudEventsErrorCodes.INVALID_ATTRIBUTE,
                message=f"Extension '{attribute.name}' conflicts with a core attribute",
            )
        existing = self._extensions.get(attribute.name)
        if existing is not None and existing != attribute:
            raise CloudEventsError(
                code=CloudEventsErrorCodes.INVALID_ATTRIBUTE,
                message=f"Extension '{attribute.name}' is declared more than once",
            )
        self._extensions[attribute.name] = attribute

    @property
    def spec_version(self) -> CloudEventsSpecVersion:
        return self._spec_version

    @property
    def extension_attributes(self) -> tuple[CloudEventAttribute, ...]:
        return tuple(self._extensions.values())

    def get_attribute(self, name: str) -> CloudEventAttribute | None:
        """Return the declaration for ``name``, core or extension."""
        return self._spec_version.get_attribute_by_name(name) or self._extensions.get(name)

    def _resolve_for_write(self, name: str) -> CloudEventAttribute:
        if name == SPEC_VERSION_ATTRIBUTE.name:
            raise CloudEventsError(
                code=CloudEventsErrorCodes.INVALID_ATTRIBUTE,
                message="The spec version cannot be set as an attribute",
            )
        attribute = self.get_attribute(name)
        if attribute is None:
            validate_attribute_name(name)
            attribute = CloudEventAttribute.create_extension(name, CloudEventAttributeType.STRING)
            self._extensions[name] = attribute
        return attribute

    def set_attribute_from_string(self, name: str, value: str) -> None:
        """Parse ``value`` according to the attribute's type and store it."""
        attribute = self._resolve_for_write(name)
        self._values[name] = (attribute, attribute.parse(value))

    def __getitem__(self, name: str) -> Any:
        return self._values[name][1]

    def __setitem__(self, name: str, value: Any) -> None:
        if value is None:
            self._values.pop(name, None)
            return
        if (
            name != SPEC_VERSION_ATTRIBUTE.name
            and self.get_attribute(name) is None
            and not isinstance(value, str)
        ):
            raise CloudEventsError(
                code=CloudEventsErrorCodes.INVALID_ATTRIBUTE,
                message=f"Unknown attribute '{name}' can only be set from a string",
            )
        attribute = self._resolve_for_write(name)
        self._values[name] = (attribute, attribute.validate(value))

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def _value(self, name: str) -> Any:
        entry = self._values.get(name)
        return entry[1] if entry is not None else None

    def get_populated_attributes(self) -> list[tuple[CloudEventAttribute, Any]]:
        """Return (declaration, value) pairs for every attribute with a value."""
        return list(self._values.values())

    @property
    def id(self) -> str | None:
        return self._value("id")

    @id.setter
    def id(self, value: str | None) -> None:
        self["id"] = value

    @property
    def source(self) -> str | None:
        return self._value("source")

    @source.setter
    def source(self, value: str | None) -> None:
        self["source"] = value

    @property
    def type(self) -> str | None:
        return self._value("type")

    @type.setter
    def type(self, value: str | None) -> None:
        self["type"] = value

    @property
    def data_content_type(self) -> str | None:
        return self._value("datacontenttype")

    @data_content_type.setter
    def data_content_type(self, value: str | None) -> None:
        self["datacontenttype"] = value

    @property
    def data_schema(self) -> str | None:
        return self._value("dataschema")

    @data_schema.setter
    def data_schema(self, value: str | None) -> None:
        self["dataschema"] = value

    @property
    def subject(self) -> str | None:
        return self._value("subject")

    @subject.setter
    def subject(self, value: str | None) -> None:
        self["subject"] = value

    @property
    def time(self) -> datetime | None:
        return self._value("time")

    @time.setter
    def time(self, value: datetime | None) -> None:
        self["time"] = value

    @property
    def is_valid(self) -> bool:
        return all(attr.name in self._values for attr in self._spec_version.required_attributes)

    def validate(self) -> CloudEvent:
        """Raise if any required attribute is missing, otherwise return self."""
        missing = [
            attr.name
            for attr in self._spec_version.required_attributes
            if attr.name not in self._values
        ]
        if missing:
            raise CloudEventsError(
                code=CloudEventsErrorCodes.INVALID_EVENT,
                message=f"Missing required attributes: {', '.join(missing)}",
            )
        return self

    def __repr__(self) -> str:
        return (
            f"CloudEvent(specversion={self._spec_version.version_id!r}, "
            f"id={self.id!r}, type={self.type!r}, source={self.source!r})"
        )
