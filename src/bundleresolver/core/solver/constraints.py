"""Typed solver clauses with human-readable explanations.

The constraint model is a closed set of frozen variants:

- ``Mandatory(x)``: x must be installed.
- ``Prohibited(x)``: x must not be installed.
- ``Dependency(x, targets)``: installing x requires at least one target.
- ``Conflict(x, y)``: x and y are never installed together.
- ``AtMostOne(xs)``: at most one of xs is installed.

Each variant knows how to encode itself as CNF given a literal for each
subject, and carries the explanation string that ends up in failure
diagnostics. Constraints are built fresh for every resolution and never
persisted.

In CNF, a dependency becomes the implication clause
``~x OR t1 OR ... OR tn`` and a conflict the exclusion clause
``~x OR ~y`` (the OPIUM encoding, Tucker et al., ICSE 2007).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Protocol, Union, runtime_checkable

from bundleresolver.core.cache.predicates import Predicate


@runtime_checkable
class Installable(Protocol):
    """Anything the solver decides to install or not."""

    @property
    def identifier(self) -> str: ...


LiteralOf = Callable[[Installable], int]


def _names(subjects: tuple[Installable, ...]) -> str:
    return ", ".join(s.identifier for s in subjects)


@dataclass(frozen=True)
class Mandatory:
    subject: Installable
    explanation: str = ""

    def __post_init__(self) -> None:
        if not self.explanation:
            object.__setattr__(self, "explanation", f"{self.subject.identifier} is mandatory")

    @property
    def subjects(self) -> tuple[Installable, ...]:
        return (self.subject,)

    def clauses(self, lit: LiteralOf) -> list[list[int]]:
        return [[lit(self.subject)]]


@dataclass(frozen=True)
class Prohibited:
    subject: Installable
    explanation: str = ""

    def __post_init__(self) -> None:
        if not self.explanation:
            object.__setattr__(self, "explanation", f"{self.subject.identifier} is prohibited")

    @property
    def subjects(self) -> tuple[Installable, ...]:
        return (self.subject,)

    def clauses(self, lit: LiteralOf) -> list[list[int]]:
        return [[-lit(self.subject)]]


@dataclass(frozen=True)
class Dependency:
    """Installing ``subject`` requires at least one of ``targets``.

    Targets are listed in order of preference. ``predicate`` records the
    declaration the targets were found by, for diagnostics.
    """

    subject: Installable
    targets: tuple[Installable, ...]
    predicate: Predicate | None = None
    explanation: str = ""

    def __post_init__(self) -> None:
        if self.explanation:
            return
        if self.targets:
            text = f"{self.subject.identifier} requires at least one of {_names(self.targets)}"
        elif self.predicate is not None:
            text = f"{self.subject.identifier} has a dependency without any candidates to satisfy it: {self.predicate}"
        else:
            text = f"{self.subject.identifier} has a dependency without any candidates to satisfy it"
        object.__setattr__(self, "explanation", text)

    @property
    def subjects(self) -> tuple[Installable, ...]:
        return (self.subject,) + self.targets

    def clauses(self, lit: LiteralOf) -> list[list[int]]:
        return [[-lit(self.subject)] + [lit(t) for t in self.targets]]


@dataclass(frozen=True)
class Conflict:
    subject: Installable
    other: Installable
    explanation: str = ""

    def __post_init__(self) -> None:
        if not self.explanation:
            object.__setattr__(
                self,
                "explanation",
                f"{self.subject.identifier} conflicts with {self.other.identifier}",
            )

    @property
    def subjects(self) -> tuple[Installable, ...]:
        return (self.subject, self.other)

    def clauses(self, lit: LiteralOf) -> list[list[int]]:
        return [[-lit(self.subject), -lit(self.other)]]


@dataclass(frozen=True)
class AtMostOne:
    members: tuple[Installable, ...]
    explanation: str = ""

    def __post_init__(self) -> None:
        if not self.explanation:
            object.__setattr__(
                self, "explanation", f"{_names(self.members)} permits at most 1"
            )

    @property
    def subjects(self) -> tuple[Installable, ...]:
        return self.members

    def clauses(self, lit: LiteralOf) -> list[list[int]]:
        lits = [lit(m) for m in self.members]
        return [
            [-lits[i], -lits[j]]
            for i in range(len(lits))
            for j in range(i + 1, len(lits))
        ]


Constraint = Union[Mandatory, Prohibited, Dependency, Conflict, AtMostOne]


def with_explanation(constraint: Constraint, explanation: str) -> Constraint:
    """Return a copy of *constraint* that renders as *explanation*."""
    return replace(constraint, explanation=explanation)
