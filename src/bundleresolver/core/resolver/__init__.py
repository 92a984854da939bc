"""Bundle resolution: requests in, ordered installation plans out."""

from bundleresolver.core.resolver.hooks import (
    default_init_hooks,
    in_cluster_properties,
    new_default_resolver,
    platform_version_init_hook,
    runtime_constraints_init_hook,
)
from bundleresolver.core.resolver.plan import InstallPlan, Step
from bundleresolver.core.resolver.request import Requirement, ResolutionRequest
from bundleresolver.core.resolver.resolver import (
    InitHook,
    Resolution,
    ResolverState,
    SatResolver,
)

__all__ = [
    "default_init_hooks",
    "in_cluster_properties",
    "new_default_resolver",
    "platform_version_init_hook",
    "runtime_constraints_init_hook",
    "InstallPlan",
    "Step",
    "Requirement",
    "ResolutionRequest",
    "InitHook",
    "Resolution",
    "ResolverState",
    "SatResolver",
]
