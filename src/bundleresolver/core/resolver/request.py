"""Resolution requests.

A request lists requirements, each describing "some entry matching these
predicates must be installed". Requirements take part in solving as
placeholder variables: each one is mandatory and depends on the entries its
predicates match.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from bundleresolver.core.cache.predicates import (
    AndPredicate,
    CatalogPredicate,
    ChannelPredicate,
    PackagePredicate,
    Predicate,
    VersionInRangePredicate,
)
from bundleresolver.core.version import VersionRange


@dataclass(frozen=True)
class Requirement:
    """Something the caller wants installed.

    Attributes:
        description: Human-readable name used in explanations.
        predicates: Entries matching all of these satisfy the requirement.
    """

    description: str
    predicates: tuple[Predicate, ...]

    @classmethod
    def package(
        cls,
        name: str,
        *,
        channel: str | None = None,
        version_range: str | None = None,
        catalog: str | None = None,
        namespace: str | None = None,
    ) -> Requirement:
        """Require a bundle of package *name*, optionally narrowed.

        A catalog is identified by its name and, optionally, its namespace;
        *namespace* narrows *catalog* and is meaningless without it.

        Raises:
            InvalidVersionError: If *version_range* cannot be parsed.
            ValueError: If *namespace* is given without *catalog*.
        """
        if namespace and not catalog:
            raise ValueError(f"namespace {namespace!r} given without a catalog")
        predicates: list[Predicate] = [PackagePredicate(name)]
        description = f"package {name}"
        if channel:
            predicates.append(ChannelPredicate(channel))
            description += f" in channel {channel}"
        if version_range:
            predicates.append(VersionInRangePredicate(VersionRange(version_range)))
            description += f" with version in range {version_range}"
        if catalog:
            predicates.append(CatalogPredicate(catalog, namespace))
            description += f" from catalog {catalog}"
            if namespace:
                description += f" in namespace {namespace}"
        return cls(description=description, predicates=tuple(predicates))

    @property
    def identifier(self) -> str:
        return f"request for {self.description}"

    @property
    def predicate(self) -> Predicate:
        """The conjunction of this requirement's predicates."""
        if len(self.predicates) == 1:
            return self.predicates[0]
        return AndPredicate(self.predicates)

    def __str__(self) -> str:
        return self.identifier


@dataclass(frozen=True)
class ResolutionRequest:
    """The set of requirements one resolution must satisfy together."""

    requirements: tuple[Requirement, ...] = ()

    @classmethod
    def of(cls, requirements: Iterable[Requirement]) -> ResolutionRequest:
        return cls(tuple(requirements))

    @classmethod
    def packages(cls, *names: str) -> ResolutionRequest:
        """Request the newest compatible bundle of each named package."""
        return cls(tuple(Requirement.package(name) for name in names))
