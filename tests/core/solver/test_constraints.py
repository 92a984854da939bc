"""Tests for constraint variants: explanations and CNF encoding."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from bundleresolver.core.cache import PackagePredicate
from bundleresolver.core.solver import (
    AtMostOne,
    Conflict,
    Dependency,
    Installable,
    Mandatory,
    Prohibited,
    with_explanation,
)


@dataclass(frozen=True)
class _Var:
    identifier: str


A, B, C = _Var("a"), _Var("b"), _Var("c")
_LITS = {A: 1, B: 2, C: 3}


def _lit(subject: Installable) -> int:
    return _LITS[subject]


class TestExplanations:
    """Tests for default explanation strings."""

    def test_mandatory(self) -> None:
        assert Mandatory(A).explanation == "a is mandatory"

    def test_prohibited(self) -> None:
        assert Prohibited(A).explanation == "a is prohibited"

    def test_dependency_with_targets(self) -> None:
        assert Dependency(A, (B, C)).explanation == "a requires at least one of b, c"

    def test_dependency_without_candidates_names_predicate(self) -> None:
        dep = Dependency(A, (), predicate=PackagePredicate("luke"))
        assert dep.explanation == (
            "a has a dependency without any candidates to satisfy it: with package: luke"
        )

    def test_dependency_without_candidates_or_predicate(self) -> None:
        assert Dependency(A, ()).explanation == (
            "a has a dependency without any candidates to satisfy it"
        )

    def test_conflict(self) -> None:
        assert Conflict(A, B).explanation == "a conflicts with b"

    def test_at_most_one(self) -> None:
        assert AtMostOne((A, B)).explanation == "a, b permits at most 1"

    def test_explicit_explanation_kept(self) -> None:
        assert Prohibited(A, "nope").explanation == "nope"

    def test_with_explanation_returns_copy(self) -> None:
        original = Mandatory(A)
        changed = with_explanation(original, "must have a")
        assert changed.explanation == "must have a"
        assert changed.subject is A
        assert original.explanation == "a is mandatory"


class TestClauses:
    """Tests for the CNF each variant produces."""

    @pytest.mark.parametrize(
        ("constraint", "expected"),
        [
            (Mandatory(A), [[1]]),
            (Prohibited(A), [[-1]]),
            (Dependency(A, (B, C)), [[-1, 2, 3]]),
            (Dependency(A, ()), [[-1]]),
            (Conflict(A, B), [[-1, -2]]),
            (AtMostOne((A, B, C)), [[-1, -2], [-1, -3], [-2, -3]]),
            (AtMostOne((A,)), []),
        ],
    )
    def test_encoding(self, constraint, expected: list[list[int]]) -> None:
        assert constraint.clauses(_lit) == expected

    def test_subjects(self) -> None:
        assert Dependency(A, (B, C)).subjects == (A, B, C)
        assert Conflict(A, B).subjects == (A, B)
        assert Mandatory(A).subjects == (A,)

    def test_constraints_are_frozen(self) -> None:
        with pytest.raises(AttributeError):
            Mandatory(A).subject = B  # type: ignore[misc]
