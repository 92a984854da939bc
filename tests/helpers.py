"""Shared factories for catalog entries and fake cluster clients."""

from __future__ import annotations

from typing import Any, Mapping

from bundleresolver.core.cache import (
    GVK_TYPE,
    LABEL_TYPE,
    MAX_OPENSHIFT_VERSION_TYPE,
    PACKAGE_TYPE,
    Entry,
    Property,
    SourceInfo,
)


def make_entry(
    name: str,
    package: str,
    version: str,
    *,
    max_ocp: str | list[str] | None = None,
    requires: list[tuple[str, str]] | None = None,
    requires_apis: list[tuple[str, str, str]] | None = None,
    requires_labels: list[str] | None = None,
    provides: list[tuple[str, str, str]] | None = None,
    labels: list[str] | None = None,
    conflicts: list[tuple[str, str]] | None = None,
    channel: str = "stable",
    catalog: str = "community",
    namespace: str = "olm",
) -> Entry:
    """Convenience factory for Entry instances.

    ``max_ocp`` is the raw ``olm.maxOpenShiftVersion`` value; pass a list to
    declare the property more than once.
    """
    properties = [Property.from_obj(PACKAGE_TYPE, {"packageName": package, "version": version})]
    for group, ver, kind in provides or []:
        properties.append(Property.from_obj(GVK_TYPE, {"group": group, "version": ver, "kind": kind}))
    for label in labels or []:
        properties.append(Property.from_obj(LABEL_TYPE, {"label": label}))
    if max_ocp is not None:
        values = max_ocp if isinstance(max_ocp, list) else [max_ocp]
        properties.extend(Property(MAX_OPENSHIFT_VERSION_TYPE, v) for v in values)

    dependencies = [
        Property.from_obj(PACKAGE_TYPE, {"packageName": pkg, "version": rng})
        for pkg, rng in requires or []
    ]
    dependencies += [
        Property.from_obj(GVK_TYPE, {"group": g, "version": v, "kind": k})
        for g, v, k in requires_apis or []
    ]
    dependencies += [Property.from_obj(LABEL_TYPE, {"label": label}) for label in requires_labels or []]

    return Entry(
        name=name,
        package=package,
        version=version,
        properties=tuple(properties),
        dependencies=tuple(dependencies),
        conflicts=tuple(
            Property.from_obj(PACKAGE_TYPE, {"packageName": pkg, "version": rng})
            for pkg, rng in conflicts or []
        ),
        source=SourceInfo(catalog=catalog, namespace=namespace, channel=channel),
    )


def cluster_version_resource(version: str | None) -> dict[str, Any]:
    """A ClusterVersion resource whose desired release is *version*."""
    desired: dict[str, Any] = {}
    if version is not None:
        desired["version"] = version
    return {
        "apiVersion": "config.openshift.io/v1",
        "kind": "ClusterVersion",
        "metadata": {"name": "version"},
        "status": {"desired": desired},
    }


class FakeClusterVersionClient:
    """In-memory ClusterVersion client that counts its calls."""

    def __init__(
        self,
        version: str | None = "4.10.3",
        *,
        error: Exception | None = None,
        resource: Any = None,
        return_none: bool = False,
    ) -> None:
        self.version = version
        self.error = error
        self.resource = resource
        self.return_none = return_none
        self.calls: list[str] = []

    def get(self, name: str) -> Mapping[str, Any] | None:
        self.calls.append(name)
        if self.error is not None:
            raise self.error
        if self.return_none:
            return None
        if self.resource is not None:
            return self.resource
        return cluster_version_resource(self.version)
