"""Resolver init hooks that attach providers from the environment.

Hooks run once, while the resolver initializes. Each checks that no
provider of its kind is registered yet, reads its settings, and attaches its
provider if the environment enables it.
"""

from __future__ import annotations

import logging
from typing import Callable

from bundleresolver.config import ResolverSettings
from bundleresolver.core.cache.cache import Cache, CacheHolder
from bundleresolver.core.providers.base import ProviderKind
from bundleresolver.core.providers.cluster import ClusterProperties, HttpClusterVersionClient
from bundleresolver.core.providers.platform import PlatformVersionConstraintProvider
from bundleresolver.core.providers.runtime import RuntimeConstraintsProvider
from bundleresolver.core.resolver.resolver import InitHook, SatResolver

logger = logging.getLogger(__name__)

ClusterPropertiesFactory = Callable[[ResolverSettings], ClusterProperties]


def in_cluster_properties(settings: ResolverSettings) -> ClusterProperties:
    """Cluster properties backed by the pod's service account."""
    return ClusterProperties(
        HttpClusterVersionClient.in_cluster(), ttl=settings.cluster_version_ttl
    )


def platform_version_init_hook(
    cluster_properties_factory: ClusterPropertiesFactory | None = None,
    settings: ResolverSettings | None = None,
) -> InitHook:
    """Attach the platform-version provider when ``SYSTEM_CONSTRAINTS=true``.

    The cluster version is fetched while the hook runs, so a cluster that
    cannot report its version fails initialization instead of failing every
    resolution later.

    Args:
        cluster_properties_factory: Builds the cluster properties source.
            Defaults to the in-cluster service account client.
        settings: Settings to use. None reads the environment when the hook
            runs.

    Raises (from the returned hook):
        DuplicateProviderError: If a platform-version provider is already
            registered.
        ConfigurationError: If the in-cluster client cannot be configured.
        ClusterVersionError: If the cluster version cannot be fetched.
    """
    factory = cluster_properties_factory or in_cluster_properties

    def hook(resolver: SatResolver) -> None:
        resolver.require_vacant(ProviderKind.PLATFORM_VERSION)
        cfg = settings or ResolverSettings.from_env()
        if not cfg.system_constraints_enabled:
            logger.info("System constraints are off")
            return

        cluster_properties = factory(cfg)
        try:
            version = cluster_properties.version()
        except Exception:
            logger.error("Cannot determine cluster version")
            raise
        logger.info("Loaded system properties, cluster version %s", version)
        resolver.add_provider(PlatformVersionConstraintProvider(cluster_properties))

    return hook


def runtime_constraints_init_hook(settings: ResolverSettings | None = None) -> InitHook:
    """Attach the runtime-constraints provider when a policy file is set."""

    def hook(resolver: SatResolver) -> None:
        resolver.require_vacant(ProviderKind.RUNTIME_CONSTRAINTS)
        cfg = settings or ResolverSettings.from_env()
        if cfg.runtime_constraints_path is None:
            logger.info("Runtime constraints are off")
            return
        resolver.add_provider(RuntimeConstraintsProvider(cfg.runtime_constraints_path))

    return hook


def default_init_hooks(
    settings: ResolverSettings | None = None,
    cluster_properties_factory: ClusterPropertiesFactory | None = None,
) -> list[InitHook]:
    return [
        platform_version_init_hook(cluster_properties_factory, settings),
        runtime_constraints_init_hook(settings),
    ]


def new_default_resolver(
    cache: Cache | CacheHolder,
    settings: ResolverSettings | None = None,
    cluster_properties_factory: ClusterPropertiesFactory | None = None,
) -> SatResolver:
    """Build a resolver wired up the way a deployment runs it.

    Settings default to the environment, read once here.
    """
    cfg = settings or ResolverSettings.from_env()
    return SatResolver(
        cache,
        init_hooks=default_init_hooks(cfg, cluster_properties_factory),
        solver_name=cfg.solver_name,
    )
