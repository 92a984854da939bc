"""Installation plans.

A plan is the ordered sequence of entries chosen by resolution. An entry
that satisfies another entry's dependency always comes first. Ties are
broken by package, then bundle name, so the same selection always yields the
same plan.
"""

from __future__ import annotations

import heapq
import logging
from dataclasses import dataclass
from typing import Hashable, Iterator, Mapping, Sequence, TypeVar

from bundleresolver.core.cache.models import Entry

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Hashable)


@dataclass(frozen=True)
class Step:
    """One entry to install.

    Attributes:
        entry: The bundle to install.
        requires: Entries in the same plan that satisfy this entry's
            dependencies; each appears earlier in the plan unless the two
            lie on a dependency cycle.
    """

    entry: Entry
    requires: tuple[Entry, ...] = ()


@dataclass(frozen=True)
class InstallPlan:
    """Dependency-ordered installation steps."""

    steps: tuple[Step, ...] = ()

    @classmethod
    def build(
        cls,
        selected: Sequence[Entry],
        requires: Mapping[Entry, set[Entry]],
    ) -> InstallPlan:
        """Order *selected* so dependency providers precede their dependents.

        Args:
            selected: Entries chosen by the solver.
            requires: For each selected entry, the selected entries that
                satisfy its dependencies.

        Dependency cycles cannot be ordered strictly. Entries are grouped
        into strongly connected components; components are ordered so that
        providers come first, and inside a cycle the order is cut at its
        smallest (package, bundle name) member. An entry outside a cycle
        always follows everything it requires.
        """
        nodes = sorted(set(selected), key=_tie_key)
        member = set(nodes)
        deps: dict[Entry, set[Entry]] = {
            e: {d for d in requires.get(e, set()) if d in member and d != e} for e in nodes
        }

        component_of: dict[Entry, frozenset[Entry]] = {}
        for component in _strongly_connected(nodes, deps):
            for entry in component:
                component_of[entry] = component
        components = sorted(set(component_of.values()), key=_component_key)
        component_deps = {
            c: {component_of[d] for e in c for d in deps[e]} - {c} for c in components
        }

        ordered: list[Entry] = []
        for component in _topological(components, component_deps):
            if len(component) > 1:
                logger.warning(
                    "Dependency cycle through %s; ordering it from %s",
                    ", ".join(sorted(e.name for e in component)),
                    min(component, key=_tie_key).name,
                )
            inner = {e: deps[e] & component for e in component}
            ordered.extend(_topological(sorted(component, key=_tie_key), inner))

        steps = tuple(
            Step(entry=e, requires=tuple(sorted(deps[e], key=_tie_key))) for e in ordered
        )
        return cls(steps=steps)

    @property
    def entries(self) -> list[Entry]:
        return [step.entry for step in self.steps]

    def bundle_names(self) -> list[str]:
        return [step.entry.name for step in self.steps]

    def by_package(self) -> dict[str, Entry]:
        return {step.entry.package: step.entry for step in self.steps}

    def __iter__(self) -> Iterator[Step]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)


def _tie_key(entry: Entry) -> tuple[str, str, str]:
    return (entry.package, entry.name, entry.version)


def _component_key(component: frozenset[Entry]) -> tuple[str, str, str]:
    return min(_tie_key(e) for e in component)


def _topological(nodes: Sequence[T], deps: Mapping[T, set[T]]) -> list[T]:
    """Kahn's algorithm, placing the earliest ready node of *nodes* first.

    When nothing is ready, the earliest unplaced node is placed anyway. Only
    a cyclic graph gets there, so callers pass acyclic graphs or a single
    strongly connected component.
    """
    dependents: dict[T, list[T]] = {n: [] for n in nodes}
    for node in nodes:
        for dep in deps[node]:
            dependents[dep].append(node)

    position = {n: i for i, n in enumerate(nodes)}
    pending = {n: len(deps[n]) for n in nodes}
    ready = [position[n] for n in nodes if pending[n] == 0]
    heapq.heapify(ready)
    ordered: list[T] = []
    placed: set[T] = set()

    while len(ordered) < len(nodes):
        if not ready:
            cut = next(n for n in nodes if n not in placed)
            ready.append(position[cut])
        node = nodes[heapq.heappop(ready)]
        if node in placed:
            continue
        placed.add(node)
        ordered.append(node)
        for dependent in dependents[node]:
            if dependent in placed:
                continue
            pending[dependent] -= 1
            if pending[dependent] == 0:
                heapq.heappush(ready, position[dependent])
    return ordered


def _strongly_connected(
    nodes: Sequence[Entry], deps: Mapping[Entry, set[Entry]]
) -> list[frozenset[Entry]]:
    """Tarjan's algorithm, iterative so long chains do not hit the recursion limit."""
    index: dict[Entry, int] = {}
    low: dict[Entry, int] = {}
    stack: list[Entry] = []
    on_stack: set[Entry] = set()
    components: list[frozenset[Entry]] = []

    def visit(entry: Entry) -> Iterator[Entry]:
        index[entry] = low[entry] = len(index)
        stack.append(entry)
        on_stack.add(entry)
        return iter(sorted(deps[entry], key=_tie_key))

    for root in nodes:
        if root in index:
            continue
        work = [(root, visit(root))]
        while work:
            entry, edges = work[-1]
            for dep in edges:
                if dep not in index:
                    work.append((dep, visit(dep)))
                    break
                if dep in on_stack:
                    low[entry] = min(low[entry], index[dep])
            else:
                work.pop()
                if work:
                    parent = work[-1][0]
                    low[parent] = min(low[parent], low[entry])
                if low[entry] == index[entry]:
                    component = set()
                    while True:
                        popped = stack.pop()
                        on_stack.discard(popped)
                        component.add(popped)
                        if popped == entry:
                            break
                    components.append(frozenset(component))
    return components
