"""CloudEvents spec versions and their attribute sets."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import ClassVar

from .attributes import CloudEventAttribute, CloudEventAttributeType

SPEC_VERSION_ATTRIBUTE = CloudEventAttribute(
    name="specversion",
    type=CloudEventAttributeType.STRING,
    required=True,
)


class CloudEventsSpecVersion:
    """A registered spec version.

    Instances are immutable and only created at import time; look them up
    with :meth:`from_version_id`.
    """

    _registry: ClassVar[dict[str, CloudEventsSpecVersion]] = {}

    V1_0: ClassVar[CloudEventsSpecVersion]
    DEFAULT: ClassVar[CloudEventsSpecVersion]

    def __init__(self, version_id: str, attributes: Iterable[CloudEventAttribute]) -> None:
        self._version_id = version_id
        self._attributes: Mapping[str, CloudEventAttribute] = MappingProxyType(
            {attr.name: attr for attr in attributes}
        )

    @property
    def version_id(self) -> str:
        return self._version_id

    @property
    def all_attributes(self) -> Mapping[str, CloudEventAttribute]:
        """Attributes defined by this version, excluding ``specversion``."""
        return self._attributes

    @property
    def required_attributes(self) -> list[CloudEventAttribute]:
        return [attr for attr in self._attributes.values() if attr.required]

    def get_attribute_by_name(self, name: str) -> CloudEventAttribute | None:
        return self._attributes.get(name)

    @classmethod
    def from_version_id(cls, version_id: str | None) -> CloudEventsSpecVersion | None:
        """Resolve a version id, returning None when it is not registered."""
        if version_id is None:
            return None
        return cls._registry.get(version_id)

    @classmethod
    def _register(cls, version: CloudEventsSpecVersion) -> CloudEventsSpecVersion:
        cls._registry[version.version_id] = version
        return version

    def __repr__(self) -> str:
        return f"CloudEventsSpecVersion({self._version_id!r})"


CloudEventsSpecVersion.V1_0 = CloudEventsSpecVersion._register(
    CloudEventsSpecVersion(
        "1.0",
        [
            CloudEventAttribute("id", CloudEventAttributeType.STRING, required=True),
            CloudEventAttribute("source", CloudEventAttributeType.URI_REFERENCE, required=True),
            CloudEventAttribute("type", CloudEventAttributeType.STRING, required=True),
            CloudEventAttribute("datacontenttype", CloudEventAttributeType.STRING),
            CloudEventAttribute("dataschema", CloudEventAttributeType.URI),
            CloudEventAttribute("subject", CloudEventAttributeType.STRING),
            CloudEventAttribute("time", CloudEventAttributeType.TIMESTAMP),
        ],
    )
)
CloudEventsSpecVersion.DEFAULT = CloudEventsSpecVersion.V1_0
