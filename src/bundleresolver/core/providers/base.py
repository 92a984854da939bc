"""Constraint provider interface.

A constraint provider contributes deployment-specific constraints for one
catalog entry at a time. The resolver queries every registered provider once
per candidate entry and feeds the results to the solver alongside the
constraints derived from the entries themselves.

Providers come in a closed set of kinds. A resolver holds at most one
provider of each kind.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable

from bundleresolver.core.cache.models import Entry
from bundleresolver.core.solver.constraints import Constraint


class ProviderKind(Enum):
    """The kinds of constraint provider a resolver can hold."""

    PLATFORM_VERSION = "platform-version"
    RUNTIME_CONSTRAINTS = "runtime-constraints"
    CUSTOM = "custom"


class ConstraintProvider(ABC):
    """Source of additional constraints for catalog entries.

    Subclasses set ``kind`` and implement ``constraints``. Providers are
    immutable after construction, so concurrent resolutions may query one
    provider without locking.
    """

    kind: ProviderKind

    @abstractmethod
    def constraints(self, entry: Entry) -> list[Constraint]:
        """Return the constraints this provider imposes on *entry*.

        Per-entry policy violations are reported as ``Prohibited``
        constraints. Raising aborts the whole resolution, so providers only
        raise for configuration or infrastructure failures.
        """


class FunctionConstraintProvider(ConstraintProvider):
    """Adapts a plain function to the provider interface."""

    def __init__(
        self,
        fn: Callable[[Entry], list[Constraint]],
        kind: ProviderKind = ProviderKind.CUSTOM,
    ) -> None:
        self._fn = fn
        self.kind = kind

    def constraints(self, entry: Entry) -> list[Constraint]:
        return list(self._fn(entry) or [])

    def __repr__(self) -> str:
        return f"FunctionConstraintProvider({self._fn!r}, kind={self.kind})"
