"""bundleresolver exception hierarchy.

All recoverable exceptions inherit from BundleResolverError, giving callers a
single base class to catch when they want to handle any resolver-specific
failure without swallowing unrelated errors.

Policy violations found on individual bundles (malformed version properties,
duplicate reserved properties) are never raised: they become ``Prohibited``
constraints on the offending entry. The one deliberately fatal condition,
registering a second constraint provider of the same kind, is a
``SystemExit`` so that generic ``except Exception`` handlers cannot mask it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from bundleresolver.core.solver.constraints import Constraint


class BundleResolverError(Exception):
    """Base exception for all bundleresolver errors."""


class ConfigurationError(BundleResolverError):
    """Raised when the resolver or a provider is wired up incorrectly.

    Covers a platform-version provider constructed without a cluster
    properties source, malformed environment settings, and providers added
    after the resolver finished initializing.
    """


class CacheError(BundleResolverError):
    """Raised when a catalog cache cannot be built.

    Covers duplicate (package, bundle, version) identities within one cache.
    """


class InvalidVersionError(BundleResolverError, ValueError):
    """Raised when a version or version range string cannot be parsed."""


class ClusterVersionError(BundleResolverError):
    """Raised when the running platform version cannot be determined.

    These failures are transient: the cluster properties cache does not
    remember them, so the next call retries the fetch.
    """


class ResolutionError(BundleResolverError):
    """Raised when dependency resolution cannot be carried out."""


class NotSatisfiableError(ResolutionError):
    """Raised when the constraint system has no satisfying assignment.

    Carries a minimal subset of constraints that cannot hold together, so
    callers can render the human-readable explanation of each one.
    """

    def __init__(self, constraints: Sequence[Constraint]) -> None:
        self.constraints = list(constraints)
        super().__init__(
            "constraints not satisfiable: "
            + ", ".join(c.explanation for c in self.constraints)
        )


class ResolutionCancelled(ResolutionError):
    """Raised when a resolution is cancelled or runs past its deadline."""


class DuplicateProviderError(SystemExit):
    """Raised when a second constraint provider of one kind is registered.

    A silently overwritten provider would produce wrong resolution results
    with no diagnostic, so this terminates the process unless a caller
    intercepts ``SystemExit`` on purpose.
    """
