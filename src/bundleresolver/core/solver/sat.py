"""SAT encoding, solving, conflict explanation, and preference optimization.

Encodes a set of typed constraints as CNF and uses a CDCL solver (Glucose3
via python-sat by default) to find an installable selection.

Every constraint is guarded by its own selector literal: the clauses of
constraint *c* are added as ``~s_c OR clause`` and solving assumes every
``s_c``. When the problem is unsatisfiable the solver's core is therefore a
set of selectors, which maps straight back to the constraints responsible.
The core is then shrunk to a minimal unsatisfiable subset by deletion, so the
explanation names only constraints that are really in conflict.

Among satisfying selections the solver prefers, lexicographically:

1. the fewest installed subjects (entries carrying a ``Preference``);
2. the lowest preference penalty, i.e. the sum of each installed entry's
   rank within its group (rank 0 is the newest version of a package).

Both objectives are minimized by incremental bound tightening with
cardinality encodings (``pysat.card.CardEnc``), so the preference is carried
by the solver rather than by filtering its answers.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Sequence

from pysat.card import CardEnc, EncType
from pysat.solvers import Solver

from bundleresolver.core.solver.constraints import Constraint, Installable
from bundleresolver.core.solver.context import Context, background
from bundleresolver.exceptions import (
    NotSatisfiableError,
    ResolutionCancelled,
    ResolutionError,
)

logger = logging.getLogger(__name__)

# How often a running solve checks its context for cancellation (seconds).
_POLL_INTERVAL = 0.01


@dataclass(frozen=True)
class Preference:
    """Optimization weight for one installable subject.

    Attributes:
        subject: The installable the weight applies to.
        group: Subjects of one group are alternatives, e.g. versions of a
            package.
        rank: Position within the group, 0 being the most preferred.
    """

    subject: Installable
    group: str
    rank: int = 0


class SatProblem:
    """A resolution problem ready to be handed to the SAT solver.

    Args:
        constraints: Constraints that must all hold.
        preferences: Optimization weights. Subjects without one are free of
            cost, which is how requirement placeholders are treated.
        solver_name: python-sat solver backend.
    """

    def __init__(
        self,
        constraints: Sequence[Constraint],
        preferences: Sequence[Preference] = (),
        *,
        solver_name: str = "g3",
    ) -> None:
        self._constraints = list(constraints)
        self._preferences = list(preferences)
        self._solver_name = solver_name

        # Step 1: one boolean variable per subject, in first-seen order
        self._var_of: dict[Installable, int] = {}
        for constraint in self._constraints:
            for subject in constraint.subjects:
                self._variable(subject)
        for pref in self._preferences:
            self._variable(pref.subject)

        # Step 2: one selector per constraint, guarding its clauses
        self._top = len(self._var_of)
        self._selectors: list[int] = []
        self._constraint_of: dict[int, Constraint] = {}
        self._hard: list[list[int]] = []
        for constraint in self._constraints:
            selector = self._fresh()
            self._selectors.append(selector)
            self._constraint_of[selector] = constraint
            for clause in constraint.clauses(self.literal):
                self._hard.append([-selector] + clause)

    # -- variables ----------------------------------------------------------

    def _variable(self, subject: Installable) -> int:
        var = self._var_of.get(subject)
        if var is None:
            var = len(self._var_of) + 1
            self._var_of[subject] = var
        return var

    def _fresh(self) -> int:
        self._top += 1
        return self._top

    def literal(self, subject: Installable) -> int:
        """Return the SAT variable standing for *subject*."""
        return self._var_of[subject]

    def selector(self, constraint: Constraint) -> int:
        """Return the selector literal guarding *constraint*."""
        for selector, candidate in self._constraint_of.items():
            if candidate is constraint:
                return selector
        raise KeyError(constraint)

    @property
    def clauses(self) -> list[list[int]]:
        """The guarded CNF, one or more clauses per constraint."""
        return [list(c) for c in self._hard]

    # -- solving ------------------------------------------------------------

    def solve(self, ctx: Context | None = None) -> list[Installable]:
        """Find the preferred satisfying selection.

        Args:
            ctx: Cancellation context. Defaults to one that never expires.

        Returns:
            The subjects chosen for installation, in variable order.

        Raises:
            NotSatisfiableError: With a minimal set of conflicting
                constraints, if no selection satisfies every constraint.
            ResolutionCancelled: If *ctx* is cancelled or expires.
        """
        ctx = ctx or background()
        ctx.check()

        solver = Solver(name=self._solver_name, bootstrap_with=self._hard)
        try:
            if not self._run(solver, self._selectors, ctx):
                core = self._minimal_core(solver, solver.get_core() or self._selectors, ctx)
                conflicts = [self._constraint_of[s] for s in core]
                logger.debug("Unsatisfiable: %d constraints in minimal core", len(conflicts))
                raise NotSatisfiableError(conflicts)
            model = self._optimize(solver, ctx)
        finally:
            solver.delete()

        return [subject for subject, var in self._var_of.items() if var in model]

    def _run(self, solver: Solver, assumptions: Sequence[int], ctx: Context) -> bool:
        ctx.check()
        solver.clear_interrupt()
        with _interrupt_when_cancelled(solver, ctx):
            result = solver.solve_limited(assumptions=list(assumptions), expect_interrupt=True)
        if result is None:
            ctx.check()
            raise ResolutionCancelled("solver interrupted")
        return result

    @staticmethod
    def _model(solver: Solver) -> set[int]:
        return {lit for lit in solver.get_model() or () if lit > 0}

    def _minimal_core(
        self, solver: Solver, core: Sequence[int], ctx: Context
    ) -> list[int]:
        """Shrink an unsatisfiable core to a minimal unsatisfiable subset.

        Deletion-based: drop one selector at a time and keep it dropped if
        the rest is still unsatisfiable. The solver's core for each
        unsatisfiable attempt trims further selectors in one step.
        """
        order = {s: i for i, s in enumerate(self._selectors)}
        mus = sorted(set(core), key=order.__getitem__)
        i = 0
        while i < len(mus):
            candidate = mus[:i] + mus[i + 1:]
            if self._run(solver, candidate, ctx):
                i += 1
                continue
            refined = set(solver.get_core() or candidate)
            mus = [s for s in candidate if s in refined]
        return mus

    def _optimize(self, solver: Solver, ctx: Context) -> set[int]:
        model = self._model(solver)
        if not self._preferences:
            return model

        assumptions = list(self._selectors)

        # Objective 1: fewest installed subjects
        installed = [self.literal(p.subject) for p in self._unique_preferences()]
        model, assumptions = self._minimize(solver, installed, assumptions, model, ctx)

        # Objective 2: lowest preference penalty. The penalty literals are new
        # variables, so the model must be refreshed before it can bound them.
        penalty = self._penalty_literals(solver)
        if penalty:
            if not self._run(solver, assumptions, ctx):
                raise ResolutionError("solver lost the installed-count optimum")
            model = self._model(solver)
        model, _ = self._minimize(solver, penalty, assumptions, model, ctx)
        return model

    def _unique_preferences(self) -> list[Preference]:
        seen: set[Installable] = set()
        unique: list[Preference] = []
        for pref in self._preferences:
            if pref.subject not in seen:
                seen.add(pref.subject)
                unique.append(pref)
        return unique

    def _penalty_literals(self, solver: Solver) -> list[int]:
        """Unary encoding of each group's chosen rank.

        For every group and every rank level ``j >= 1`` a fresh literal
        ``q_j`` is implied by each member of rank ``j`` or worse. With at
        most one member per group installed, the number of true ``q``
        literals a minimal model needs equals the summed ranks.
        """
        groups: dict[str, list[Preference]] = defaultdict(list)
        for pref in self._unique_preferences():
            groups[pref.group].append(pref)

        penalty: list[int] = []
        for group in sorted(groups):
            members = groups[group]
            for level in range(1, max(p.rank for p in members) + 1):
                q = self._fresh()
                penalty.append(q)
                for pref in members:
                    if pref.rank >= level:
                        solver.add_clause([-self.literal(pref.subject), q])
        return penalty

    def _minimize(
        self,
        solver: Solver,
        lits: list[int],
        assumptions: list[int],
        model: set[int],
        ctx: Context,
    ) -> tuple[set[int], list[int]]:
        """Tighten ``sum(lits) <= bound`` until unsatisfiable.

        Returns the best model and the assumptions that keep the optimum in
        force for later objectives.
        """
        if not lits:
            return model, assumptions

        best = sum(1 for lit in lits if lit in model)
        while best > 0:
            activation = self._fresh()
            self._add_atmost(solver, lits, best - 1, activation)
            if not self._run(solver, assumptions + [activation], ctx):
                solver.add_clause([-activation])
                break
            model = self._model(solver)
            best = sum(1 for lit in lits if lit in model)

        logger.debug("Objective optimum %d over %d literals", best, len(lits))
        activation = self._fresh()
        self._add_atmost(solver, lits, best, activation)
        return model, assumptions + [activation]

    def _add_atmost(self, solver: Solver, lits: list[int], bound: int, activation: int) -> None:
        if bound >= len(lits):
            return
        if bound == 0:
            clauses = [[-lit] for lit in lits]
        else:
            enc = CardEnc.atmost(
                lits=lits, bound=bound, top_id=self._top, encoding=EncType.seqcounter
            )
            self._top = max(self._top, enc.nv)
            clauses = enc.clauses
        for clause in clauses:
            solver.add_clause([-activation] + clause)


@contextmanager
def _interrupt_when_cancelled(solver: Solver, ctx: Context) -> Iterator[None]:
    """Interrupt *solver* from a watcher thread once *ctx* is cancelled."""
    done = threading.Event()

    def _watch() -> None:
        while not done.wait(_POLL_INTERVAL):
            if ctx.cancelled:
                solver.interrupt()
                return

    watcher = threading.Thread(target=_watch, name="sat-cancel-watch", daemon=True)
    watcher.start()
    try:
        yield
    finally:
        done.set()
        watcher.join()
