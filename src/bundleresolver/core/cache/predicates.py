"""Composable boolean tests over catalog entries.

Predicates are pure value objects with two capabilities: ``test(entry)`` and
a human-readable ``str()``. They hold no reference into a cache, so one
predicate can be reused across queries and across cache rebuilds.

``test`` never raises. An entry that lacks the data a predicate needs (no
parsable version, a malformed property payload) evaluates to ``False``,
excluding it rather than aborting the query.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable

from bundleresolver.core.cache.models import (
    GVK_REQUIRED_TYPE,
    GVK_TYPE,
    LABEL_REQUIRED_TYPE,
    LABEL_TYPE,
    PACKAGE_REQUIRED_TYPE,
    PACKAGE_TYPE,
    Entry,
    GroupVersionKind,
    Property,
)
from bundleresolver.core.version import Version, VersionRange
from bundleresolver.exceptions import InvalidVersionError

logger = logging.getLogger(__name__)


class Predicate(ABC):
    """A pure boolean test over an entry."""

    @abstractmethod
    def test(self, entry: Entry) -> bool:
        """Return True if *entry* satisfies this predicate."""

    @abstractmethod
    def __str__(self) -> str:
        """Describe the predicate for diagnostics."""

    def __and__(self, other: Predicate) -> Predicate:
        return AndPredicate((self, other))

    def __or__(self, other: Predicate) -> Predicate:
        return OrPredicate((self, other))

    def __invert__(self) -> Predicate:
        return NotPredicate(self)


# ---------------------------------------------------------------------------
# Identity predicates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PackagePredicate(Predicate):
    """Matches entries belonging to a package."""

    package: str

    def test(self, entry: Entry) -> bool:
        return entry.package == self.package

    def __str__(self) -> str:
        return f"with package: {self.package}"


@dataclass(frozen=True)
class ChannelPredicate(Predicate):
    """Matches entries loaded from a channel."""

    channel: str

    def test(self, entry: Entry) -> bool:
        return entry.source.channel == self.channel

    def __str__(self) -> str:
        return f"with channel: {self.channel}"


@dataclass(frozen=True)
class CatalogPredicate(Predicate):
    """Matches entries from one catalog, optionally in one namespace."""

    catalog: str
    namespace: str | None = None

    def test(self, entry: Entry) -> bool:
        if entry.source.catalog != self.catalog:
            return False
        return self.namespace is None or entry.source.namespace == self.namespace

    def __str__(self) -> str:
        if self.namespace is None:
            return f"from catalog: {self.catalog}"
        return f"from catalog: {self.catalog}/{self.namespace}"


@dataclass(frozen=True)
class BundleNamePredicate(Predicate):
    """Matches one bundle by name."""

    name: str

    def test(self, entry: Entry) -> bool:
        return entry.name == self.name

    def __str__(self) -> str:
        return f"with bundle name: {self.name}"


@dataclass(frozen=True)
class LabelPredicate(Predicate):
    """Matches entries declaring a label through an ``olm.label`` property."""

    label: str

    def test(self, entry: Entry) -> bool:
        return self.label in entry.labels()

    def __str__(self) -> str:
        return f"with label: {self.label}"


@dataclass(frozen=True)
class ProvidingAPIPredicate(Predicate):
    """Matches entries that provide an API (``olm.gvk`` property)."""

    api: GroupVersionKind

    def test(self, entry: Entry) -> bool:
        return self.api in entry.provided_apis()

    def __str__(self) -> str:
        return f"providing an API with group: {self.api.group}, version: {self.api.version}, kind: {self.api.kind}"


# ---------------------------------------------------------------------------
# Version predicates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VersionCeilingPredicate(Predicate):
    """Matches entries whose version is less than or equal to a ceiling."""

    ceiling: Version

    def test(self, entry: Entry) -> bool:
        version = entry.parsed_version
        return version is not None and version <= self.ceiling

    def __str__(self) -> str:
        return f"with version <= {self.ceiling}"


@dataclass(frozen=True)
class VersionInRangePredicate(Predicate):
    """Matches entries whose version lies in a range."""

    range: VersionRange

    def test(self, entry: Entry) -> bool:
        version = entry.parsed_version
        return version is not None and self.range.contains(version)

    def __str__(self) -> str:
        return f"with version in range: {self.range}"


# ---------------------------------------------------------------------------
# Generic and combinator predicates
# ---------------------------------------------------------------------------


class FuncPredicate(Predicate):
    """Wraps an ad hoc function, for provider-specific tests.

    Exceptions raised by the function count as a non-match.
    """

    def __init__(self, fn: Callable[[Entry], bool], description: str) -> None:
        self._fn = fn
        self._description = description

    def test(self, entry: Entry) -> bool:
        try:
            return bool(self._fn(entry))
        except Exception:
            logger.debug("Predicate %r failed on %s", self._description, entry, exc_info=True)
            return False

    def __str__(self) -> str:
        return self._description


@dataclass(frozen=True)
class AndPredicate(Predicate):
    predicates: tuple[Predicate, ...]

    def test(self, entry: Entry) -> bool:
        return all(p.test(entry) for p in self.predicates)

    def __str__(self) -> str:
        return " and ".join(str(p) for p in self.predicates)


@dataclass(frozen=True)
class OrPredicate(Predicate):
    predicates: tuple[Predicate, ...]

    def test(self, entry: Entry) -> bool:
        return any(p.test(entry) for p in self.predicates)

    def __str__(self) -> str:
        return " or ".join(f"({p})" for p in self.predicates)


@dataclass(frozen=True)
class NotPredicate(Predicate):
    predicate: Predicate

    def test(self, entry: Entry) -> bool:
        return not self.predicate.test(entry)

    def __str__(self) -> str:
        return f"not ({self.predicate})"


@dataclass(frozen=True)
class NonePredicate(Predicate):
    """Matches nothing. Stands in for dependencies that cannot be understood."""

    reason: str = "no entries"

    def test(self, entry: Entry) -> bool:
        return False

    def __str__(self) -> str:
        return self.reason


# ---------------------------------------------------------------------------
# Dependency declarations -> predicates
# ---------------------------------------------------------------------------


def dependency_predicate(dep: Property) -> Predicate:
    """Convert a dependency (or conflict) declaration into a target predicate.

    Supported payloads:

    - ``olm.package``: ``{"packageName": "x", "version": ">=1.0.0"}``
    - ``olm.gvk``: ``{"group": "g", "version": "v1", "kind": "K"}``
    - ``olm.label``: ``{"label": "l"}``

    The ``.required`` type aliases are accepted too. A declaration that
    cannot be understood yields a ``NonePredicate`` so that nothing can
    satisfy it: an entry is never installed without a dependency it asked
    for.
    """
    try:
        data: Any = dep.json()
    except ValueError:
        logger.warning("Malformed %s dependency payload: %r", dep.type, dep.value)
        return NonePredicate(f"malformed {dep.type} dependency {dep.value!r}")
    if not isinstance(data, dict):
        return NonePredicate(f"malformed {dep.type} dependency {dep.value!r}")

    if dep.type in (PACKAGE_TYPE, PACKAGE_REQUIRED_TYPE):
        name = data.get("packageName")
        if not isinstance(name, str) or not name:
            return NonePredicate(f"{dep.type} dependency without packageName")
        raw_range = data.get("version") or data.get("versionRange") or ""
        try:
            version_range = VersionRange(str(raw_range))
        except InvalidVersionError as exc:
            return NonePredicate(f"invalid version range {raw_range!r} for package {name}: {exc}")
        predicate: Predicate = PackagePredicate(name)
        if str(raw_range).strip() not in ("", "*"):
            predicate = AndPredicate((predicate, VersionInRangePredicate(version_range)))
        return predicate

    if dep.type in (GVK_TYPE, GVK_REQUIRED_TYPE):
        try:
            gvk = GroupVersionKind(
                group=str(data["group"]),
                version=str(data["version"]),
                kind=str(data["kind"]),
            )
        except KeyError:
            return NonePredicate(f"incomplete {dep.type} dependency {dep.value!r}")
        return ProvidingAPIPredicate(gvk)

    if dep.type in (LABEL_TYPE, LABEL_REQUIRED_TYPE):
        label = data.get("label")
        if not isinstance(label, str) or not label:
            return NonePredicate(f"{dep.type} dependency without label")
        return LabelPredicate(label)

    logger.warning("Unsupported dependency type %r", dep.type)
    return NonePredicate(f"unsupported dependency type {dep.type!r}")
