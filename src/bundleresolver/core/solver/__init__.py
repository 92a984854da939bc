"""Constraint model and SAT-based solving.

The solver treats the SAT search itself as a dependency (python-sat); this
package owns the translation from typed constraints to CNF, the minimal
conflict explanation on failure, and the preference optimization on success.
"""

from bundleresolver.core.solver.constraints import (
    AtMostOne,
    Conflict,
    Constraint,
    Dependency,
    Installable,
    Mandatory,
    Prohibited,
    with_explanation,
)
from bundleresolver.core.solver.context import Context, background
from bundleresolver.core.solver.sat import Preference, SatProblem

__all__ = [
    "AtMostOne",
    "Conflict",
    "Constraint",
    "Dependency",
    "Installable",
    "Mandatory",
    "Prohibited",
    "with_explanation",
    "Context",
    "background",
    "Preference",
    "SatProblem",
]
