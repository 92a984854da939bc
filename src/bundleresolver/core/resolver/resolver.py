"""SAT-based bundle resolver.

Turns a resolution request into a typed constraint system over the catalog
cache, hands it to the SAT layer, and turns the answer into an installation
plan (or a minimal explanation of why none exists).

Constraint assembly, for every resolution:

1. Each requirement becomes a mandatory placeholder that depends on the
   entries its predicates match.
2. Candidates are gathered breadth-first: every entry reachable from a
   requirement through dependency declarations.
3. Each candidate contributes a dependency constraint per declared
   dependency, a conflict constraint per declared conflict, and takes part in
   "at most one bundle per package" and "at most one provider per API".
4. Every registered constraint provider is queried once per candidate and
   its constraints are added verbatim.

A resolver goes through ``UNINITIALIZED -> INITIALIZING -> READY``. Init
hooks run exactly once, on the first resolution or an explicit
``initialize()``, and are where providers are attached from the environment.
After that the provider set is frozen.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict, deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Sequence

from bundleresolver.config import DEFAULT_SOLVER_NAME
from bundleresolver.core.cache.cache import Cache, CacheHolder
from bundleresolver.core.cache.models import Entry
from bundleresolver.core.cache.predicates import dependency_predicate
from bundleresolver.core.providers.base import ConstraintProvider, ProviderKind
from bundleresolver.core.resolver.plan import InstallPlan
from bundleresolver.core.resolver.request import Requirement, ResolutionRequest
from bundleresolver.core.solver.constraints import (
    AtMostOne,
    Conflict,
    Constraint,
    Dependency,
    Mandatory,
)
from bundleresolver.core.solver.context import Context, background
from bundleresolver.core.solver.sat import Preference, SatProblem
from bundleresolver.exceptions import (
    ConfigurationError,
    DuplicateProviderError,
    NotSatisfiableError,
)

logger = logging.getLogger(__name__)

InitHook = Callable[["SatResolver"], None]


# ---------------------------------------------------------------------------
# Resolution: the outcome of one resolve() call
# ---------------------------------------------------------------------------


@dataclass
class Resolution:
    """Result of SAT-based resolution.

    Attributes:
        success: True if a satisfying selection was found.
        plan: Ordered installation steps. Empty if resolution failed.
        conflicts: A minimal set of constraints that cannot hold together.
            Empty if resolution succeeded.
    """

    success: bool
    plan: InstallPlan = field(default_factory=InstallPlan)
    conflicts: list[Constraint] = field(default_factory=list)

    @property
    def explanations(self) -> list[str]:
        """Human-readable reason for each conflicting constraint."""
        return [c.explanation for c in self.conflicts]

    def raise_for_status(self) -> InstallPlan:
        """Return the plan, or raise if resolution failed.

        Raises:
            NotSatisfiableError: Carrying the conflicting constraints.
        """
        if not self.success:
            raise NotSatisfiableError(self.conflicts)
        return self.plan


class ResolverState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


# ---------------------------------------------------------------------------
# SatResolver
# ---------------------------------------------------------------------------


class SatResolver:
    """Resolves bundle requests against a catalog cache.

    Args:
        cache: The catalog to resolve against. A ``CacheHolder`` lets the
            catalog be swapped between resolutions; each resolution works on
            the snapshot current when it starts.
        providers: Constraint providers to attach immediately.
        init_hooks: Callables run once, with this resolver, before the first
            resolution. They typically attach providers.
        solver_name: python-sat solver backend.

    Raises:
        DuplicateProviderError: If *providers* holds two of one kind.
    """

    def __init__(
        self,
        cache: Cache | CacheHolder,
        *,
        providers: Iterable[ConstraintProvider] = (),
        init_hooks: Iterable[InitHook] = (),
        solver_name: str = DEFAULT_SOLVER_NAME,
    ) -> None:
        self._cache = cache if isinstance(cache, CacheHolder) else CacheHolder(cache)
        self._init_hooks = list(init_hooks)
        self._solver_name = solver_name
        self._providers: dict[ProviderKind, ConstraintProvider] = {}
        self._state = ResolverState.UNINITIALIZED
        # Reentrant: init hooks call add_provider while initialize holds it.
        self._lock = threading.RLock()
        for provider in providers:
            self.add_provider(provider)

    # -- lifecycle ----------------------------------------------------------

    @property
    def state(self) -> ResolverState:
        return self._state

    @property
    def cache(self) -> CacheHolder:
        return self._cache

    @property
    def providers(self) -> tuple[ConstraintProvider, ...]:
        with self._lock:
            return tuple(self._providers.values())

    def provider(self, kind: ProviderKind) -> ConstraintProvider | None:
        with self._lock:
            return self._providers.get(kind)

    def require_vacant(self, kind: ProviderKind) -> None:
        """Fail fatally if a provider of *kind* is already registered.

        Raises:
            DuplicateProviderError: If the slot is taken.
        """
        with self._lock:
            if kind in self._providers:
                message = f"resolver already has a {kind.value} constraint provider defined"
                logger.critical(message)
                raise DuplicateProviderError(message)

    def add_provider(self, provider: ConstraintProvider) -> None:
        """Register *provider*.

        Raises:
            DuplicateProviderError: If a provider of the same kind exists.
            ConfigurationError: If the resolver is already initialized.
        """
        with self._lock:
            self.require_vacant(provider.kind)
            if self._state is ResolverState.READY:
                raise ConfigurationError(
                    f"cannot add {provider.kind.value} constraint provider after initialization"
                )
            self._providers[provider.kind] = provider
            logger.info("Registered %s constraint provider", provider.kind.value)

    def initialize(self) -> None:
        """Run the init hooks once and freeze the provider set.

        Hooks run exactly once per successful initialization; later calls
        return immediately. A failed attempt does not count: a hook that
        raises rolls back the providers attached during this attempt and
        leaves the resolver uninitialized, so the next call (or the next
        ``resolve``) runs every hook again from the first. Hooks must
        therefore tolerate being retried after a failure.
        """
        with self._lock:
            if self._state is not ResolverState.UNINITIALIZED:
                return
            self._state = ResolverState.INITIALIZING
            before = dict(self._providers)
            try:
                for hook in self._init_hooks:
                    hook(self)
            except BaseException:
                self._providers = before
                self._state = ResolverState.UNINITIALIZED
                raise
            self._state = ResolverState.READY
            logger.debug(
                "Resolver ready with %d constraint provider(s)", len(self._providers)
            )

    # -- resolution ---------------------------------------------------------

    def resolve(self, request: ResolutionRequest, ctx: Context | None = None) -> Resolution:
        """Resolve *request* against the current catalog snapshot.

        Args:
            request: The requirements to satisfy together.
            ctx: Cancellation context. Defaults to one that never expires.

        Returns:
            A successful ``Resolution`` carrying the plan, or an unsuccessful
            one carrying a minimal set of conflicting constraints.

        Raises:
            ResolutionCancelled: If *ctx* is cancelled or expires.
            ClusterVersionError: If a provider needs the cluster version and
                it cannot be fetched.
            ConfigurationError: If a provider is misconfigured.
        """
        self.initialize()
        ctx = ctx or background()
        cache = self._cache.current
        providers = self.providers

        assembly = _Assembly(cache, ctx)
        for requirement in request.requirements:
            assembly.add_requirement(requirement)
        assembly.expand()
        for entry in assembly.candidates:
            for provider in providers:
                ctx.check()
                assembly.constraints.extend(provider.constraints(entry))

        logger.debug(
            "Resolving %d requirement(s) over %d candidate(s) with %d constraint(s)",
            len(request.requirements),
            len(assembly.candidates),
            len(assembly.constraints),
        )

        problem = SatProblem(
            assembly.constraints, assembly.preferences(), solver_name=self._solver_name
        )
        try:
            selected = problem.solve(ctx)
        except NotSatisfiableError as exc:
            logger.info("Resolution failed: %s", exc)
            return Resolution(success=False, conflicts=exc.constraints)

        chosen = [s for s in selected if isinstance(s, Entry)]
        plan = InstallPlan.build(chosen, assembly.requires_among(set(chosen)))
        logger.info("Resolved %s", ", ".join(plan.bundle_names()) or "nothing")
        return Resolution(success=True, plan=plan)

    def resolve_or_raise(
        self, request: ResolutionRequest, ctx: Context | None = None
    ) -> InstallPlan:
        """Like ``resolve``, but raise ``NotSatisfiableError`` on failure."""
        return self.resolve(request, ctx).raise_for_status()


# ---------------------------------------------------------------------------
# Constraint assembly
# ---------------------------------------------------------------------------


class _Assembly:
    """Builds the constraint system for one resolution."""

    def __init__(self, cache: Cache, ctx: Context) -> None:
        self._cache = cache
        self._ctx = ctx
        self.constraints: list[Constraint] = []
        self.candidates: list[Entry] = []
        self._seen: set[Entry] = set()
        self._queue: deque[Entry] = deque()
        self._dependencies: list[Dependency] = []

    def add_requirement(self, requirement: Requirement) -> None:
        matches = tuple(self._cache.find(*requirement.predicates))
        self.constraints.append(Mandatory(requirement))
        self.constraints.append(
            Dependency(requirement, matches, predicate=requirement.predicate)
        )
        self._enqueue(matches)

    def expand(self) -> None:
        while self._queue:
            self._ctx.check()
            entry = self._queue.popleft()
            for declared in entry.dependencies:
                predicate = dependency_predicate(declared)
                targets = tuple(self._cache.find(predicate))
                dependency = Dependency(entry, targets, predicate=predicate)
                self.constraints.append(dependency)
                self._dependencies.append(dependency)
                self._enqueue(targets)

        self._add_conflicts()
        self._add_uniqueness()

    def _enqueue(self, entries: Sequence[Entry]) -> None:
        for entry in entries:
            if entry not in self._seen:
                self._seen.add(entry)
                self.candidates.append(entry)
                self._queue.append(entry)

    def _add_conflicts(self) -> None:
        for entry in self.candidates:
            for declared in entry.conflicts:
                predicate = dependency_predicate(declared)
                for other in self._cache.find(predicate):
                    if other != entry and other in self._seen:
                        self.constraints.append(
                            Conflict(
                                entry,
                                other,
                                f"{entry.identifier} conflicts with {other.identifier} ({predicate})",
                            )
                        )

    def _add_uniqueness(self) -> None:
        by_package: dict[str, list[Entry]] = defaultdict(list)
        by_api: dict[str, list[Entry]] = defaultdict(list)
        for entry in self.candidates:
            by_package[entry.package].append(entry)
            for api in entry.provided_apis():
                by_api[str(api)].append(entry)

        for package in sorted(by_package):
            members = by_package[package]
            if len(members) > 1:
                self.constraints.append(
                    AtMostOne(tuple(members), f"at most one bundle of package {package}")
                )
        for api in sorted(by_api):
            members = by_api[api]
            if len({e.package for e in members}) > 1:
                self.constraints.append(
                    AtMostOne(tuple(members), f"at most one provider of {api}")
                )

    def preferences(self) -> list[Preference]:
        """Rank candidates within their package, newest first.

        Candidates were gathered in cache order, so ordering them by their
        position in the package's version list gives rank 0 to the newest.
        """
        by_package: dict[str, list[Entry]] = defaultdict(list)
        for entry in self.candidates:
            by_package[entry.package].append(entry)

        preferences: list[Preference] = []
        for package, members in by_package.items():
            order = {e: i for i, e in enumerate(self._cache.versions_of(package))}
            ranked = sorted(members, key=lambda e: order.get(e, len(order)))
            for rank, entry in enumerate(ranked):
                preferences.append(Preference(entry, group=package, rank=rank))
        return preferences

    def requires_among(self, chosen: set[Entry]) -> dict[Entry, set[Entry]]:
        """Map each chosen entry to the chosen entries satisfying its dependencies."""
        requires: dict[Entry, set[Entry]] = defaultdict(set)
        for dependency in self._dependencies:
            if dependency.subject in chosen:
                requires[dependency.subject].update(
                    t for t in dependency.targets if t in chosen
                )
        return requires

