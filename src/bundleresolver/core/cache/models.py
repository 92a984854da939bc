"""Catalog entry data model: properties, source references, and entries.

An ``Entry`` is one installable bundle from a catalog. Entries are immutable
once loaded; a catalog refresh builds a new cache rather than mutating the
entries of an existing one.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any

from bundleresolver.core.version import Version
from bundleresolver.exceptions import InvalidVersionError


# ---------------------------------------------------------------------------
# Well-known property types
# ---------------------------------------------------------------------------

PACKAGE_TYPE = "olm.package"
GVK_TYPE = "olm.gvk"
LABEL_TYPE = "olm.label"
DEPRECATED_TYPE = "olm.deprecated"
MAX_OPENSHIFT_VERSION_TYPE = "olm.maxOpenShiftVersion"

PACKAGE_REQUIRED_TYPE = "olm.package.required"
GVK_REQUIRED_TYPE = "olm.gvk.required"
LABEL_REQUIRED_TYPE = "olm.label.required"


# ---------------------------------------------------------------------------
# Property
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Property:
    """A typed declaration on an entry.

    Attributes:
        type: Type tag such as ``"olm.package"`` or ``"olm.gvk"``.
        value: Raw payload, normally JSON text, interpreted per type.
    """

    type: str
    value: str

    @classmethod
    def from_obj(cls, type_: str, obj: Any) -> Property:
        """Build a property whose value is the JSON encoding of *obj*."""
        return cls(type=type_, value=json.dumps(obj, sort_keys=True))

    def json(self) -> Any:
        """Decode the value as JSON.

        Raises:
            ValueError: If the value is not valid JSON.
        """
        return json.loads(self.value)


@dataclass(frozen=True)
class GroupVersionKind:
    """An API identity provided or required by a bundle."""

    group: str
    version: str
    kind: str

    def __str__(self) -> str:
        return f"{self.group}/{self.version}/{self.kind}"


@dataclass(frozen=True)
class SourceInfo:
    """Where an entry came from.

    Attributes:
        catalog: Catalog source name.
        namespace: Namespace the catalog lives in; empty for global catalogs.
        channel: Channel the entry was loaded from.
    """

    catalog: str = ""
    namespace: str = ""
    channel: str = ""


# ---------------------------------------------------------------------------
# Entry
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Entry:
    """A single bundle in the catalog cache.

    Attributes:
        name: Bundle name, e.g. ``"anakin.v0.1.1"``.
        package: Package the bundle belongs to.
        version: Version string as published.
        properties: Properties the bundle declares.
        dependencies: Properties the bundle requires from other entries
            (``olm.package``, ``olm.gvk`` or ``olm.label`` payloads).
        conflicts: Properties identifying entries that cannot be installed
            alongside this one, in the same payload forms.
        source: Catalog, namespace and channel of origin.
        replaces: Name of the bundle this one replaces in its channel.
        skips: Names of bundles this one skips.
    """

    name: str
    package: str
    version: str
    properties: tuple[Property, ...] = ()
    dependencies: tuple[Property, ...] = ()
    conflicts: tuple[Property, ...] = ()
    source: SourceInfo = field(default_factory=SourceInfo)
    replaces: str = ""
    skips: tuple[str, ...] = ()

    @property
    def key(self) -> tuple[str, str, str]:
        """Identity triple: (package, bundle name, version)."""
        return (self.package, self.name, self.version)

    @property
    def identifier(self) -> str:
        return f"{self.package}/{self.name}@{self.version}"

    @cached_property
    def parsed_version(self) -> Version | None:
        """Tolerantly parsed version, or None when it cannot be parsed."""
        try:
            return Version.parse_tolerant(self.version)
        except InvalidVersionError:
            return None

    def properties_of(self, type_: str) -> list[Property]:
        return [p for p in self.properties if p.type == type_]

    def provided_apis(self) -> set[GroupVersionKind]:
        """Return the APIs declared through ``olm.gvk`` properties.

        Malformed payloads are skipped.
        """
        apis: set[GroupVersionKind] = set()
        for prop in self.properties_of(GVK_TYPE):
            gvk = _decode_gvk(prop)
            if gvk is not None:
                apis.add(gvk)
        return apis

    def labels(self) -> set[str]:
        """Return the labels declared through ``olm.label`` properties."""
        labels: set[str] = set()
        for prop in self.properties_of(LABEL_TYPE):
            try:
                data = prop.json()
            except ValueError:
                continue
            if isinstance(data, dict) and isinstance(data.get("label"), str):
                labels.add(data["label"])
        return labels

    @property
    def deprecated(self) -> bool:
        return bool(self.properties_of(DEPRECATED_TYPE))

    def __str__(self) -> str:
        return self.identifier


def _decode_gvk(prop: Property) -> GroupVersionKind | None:
    try:
        data = prop.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    try:
        return GroupVersionKind(
            group=str(data["group"]),
            version=str(data["version"]),
            kind=str(data["kind"]),
        )
    except KeyError:
        return None
