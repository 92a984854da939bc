"""Pluggable constraint providers.

Deployment-specific policy attaches to the resolver through these providers
without changing its core logic:

- ``PlatformVersionConstraintProvider``: prohibits bundles whose declared
  maximum platform version is older than the running cluster.
- ``RuntimeConstraintsProvider``: prohibits bundles excluded by a static
  policy file.
- ``FunctionConstraintProvider``: adapts an ad hoc function.
"""

from bundleresolver.core.providers.base import (
    ConstraintProvider,
    FunctionConstraintProvider,
    ProviderKind,
)
from bundleresolver.core.providers.cluster import (
    CLUSTER_VERSION_NAME,
    ClusterProperties,
    ClusterVersionClient,
    HttpClusterVersionClient,
)
from bundleresolver.core.providers.platform import (
    InvalidPropertyError,
    MaxPlatformVersionPredicate,
    PlatformVersionConstraintProvider,
    max_platform_version,
)
from bundleresolver.core.providers.runtime import (
    RuntimeConstraintsLoadError,
    RuntimeConstraintsProvider,
)

__all__ = [
    "ConstraintProvider",
    "FunctionConstraintProvider",
    "ProviderKind",
    "CLUSTER_VERSION_NAME",
    "ClusterProperties",
    "ClusterVersionClient",
    "HttpClusterVersionClient",
    "InvalidPropertyError",
    "MaxPlatformVersionPredicate",
    "PlatformVersionConstraintProvider",
    "max_platform_version",
    "RuntimeConstraintsLoadError",
    "RuntimeConstraintsProvider",
]
