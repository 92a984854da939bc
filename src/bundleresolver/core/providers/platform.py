"""Platform-version constraint provider.

Bundles may declare the newest platform release they support with the
reserved ``olm.maxOpenShiftVersion`` property, e.g. ``"4.10"``. When the
running cluster is newer than that ceiling the bundle is prohibited.

Only compatibility at the minor level matters: the cluster version is
truncated to ``<major>.<minor>`` before the comparison, and the property
itself must be exactly ``<major>.<minor>``.

Every problem with an individual bundle's property (declared twice, empty,
unparsable, carrying a patch, pre-release tag or build metadata) turns into a
``Prohibited`` constraint on that bundle alone. One malformed bundle never
blocks resolution of the rest of the catalog.
"""

from __future__ import annotations

import logging

from bundleresolver.core.cache.models import MAX_OPENSHIFT_VERSION_TYPE, Entry
from bundleresolver.core.cache.predicates import Predicate
from bundleresolver.core.providers.base import ConstraintProvider, ProviderKind
from bundleresolver.core.providers.cluster import ClusterProperties
from bundleresolver.core.solver.constraints import Constraint, Prohibited
from bundleresolver.core.version import Version
from bundleresolver.exceptions import ConfigurationError, InvalidVersionError

logger = logging.getLogger(__name__)


class InvalidPropertyError(ValueError):
    """A bundle's ``olm.maxOpenShiftVersion`` property is not acceptable."""


def max_platform_version(entry: Entry) -> Version | None:
    """Extract an entry's platform-version ceiling.

    Returns:
        The declared ``<major>.<minor>`` ceiling, or None when the entry
        does not declare one.

    Raises:
        InvalidPropertyError: If the property is declared more than once, is
            empty, cannot be parsed, or is not exactly ``<major>.<minor>``.
    """
    declared = entry.properties_of(MAX_OPENSHIFT_VERSION_TYPE)
    if len(declared) > 1:
        raise InvalidPropertyError(
            f'defining more than one "{MAX_OPENSHIFT_VERSION_TYPE}" property is not allowed'
        )
    if not declared:
        return None

    # Account for any additional quoting
    value = declared[0].value.strip('"')
    if value == "":
        # Handle "" separately, so parsing doesn't treat it as a zero
        raise InvalidPropertyError('value cannot be "" (an empty string)')

    try:
        version = Version.parse_tolerant(value)
    except InvalidVersionError as exc:
        raise InvalidPropertyError(f'failed to parse "{value}" as semver: {exc}') from exc

    defects = []
    if version.has_patch:
        defects.append(f"patch component {version.patch}")
    if version.has_prerelease:
        defects.append("pre-release tag " + ".".join(str(i) for i in version.prerelease))
    if version.has_build:
        defects.append("build metadata " + ".".join(version.build))
    if defects:
        raise InvalidPropertyError(
            f'property "{MAX_OPENSHIFT_VERSION_TYPE}" must specify only <major>.<minor> '
            f"version, got invalid value {version} ({', '.join(defects)} not allowed)"
        )
    return version.truncated()


class PlatformVersionConstraintProvider(ConstraintProvider):
    """Prohibits bundles whose platform ceiling is below the cluster version.

    Args:
        cluster_properties: Source of the running cluster version.
    """

    kind = ProviderKind.PLATFORM_VERSION

    def __init__(self, cluster_properties: ClusterProperties | None) -> None:
        self._cluster_properties = cluster_properties

    def constraints(self, entry: Entry) -> list[Constraint]:
        """Return a ``Prohibited`` constraint if *entry* is incompatible.

        Raises:
            ConfigurationError: If no cluster properties source is set.
            ClusterVersionError: If the cluster version cannot be fetched.
        """
        if self._cluster_properties is None:
            raise ConfigurationError("nil clusterProperties")

        try:
            ceiling = max_platform_version(entry)
        except InvalidPropertyError as exc:
            # All parsing errors prohibit the entry; resolution continues.
            logger.debug("Prohibiting %s: %s", entry, exc)
            return [
                Prohibited(
                    entry,
                    f'invalid "{MAX_OPENSHIFT_VERSION_TYPE}" property: {exc}',
                )
            ]

        if ceiling is None:
            return []

        # Drop the patch, only compatibility with the minor release matters.
        cluster_version = self._cluster_properties.version().truncated()

        if ceiling < cluster_version:
            return [
                Prohibited(
                    entry,
                    f'bundle incompatible with openshift cluster, "{MAX_OPENSHIFT_VERSION_TYPE}" '
                    f"< cluster version: ({ceiling.short()} < {cluster_version.short()})",
                )
            ]
        return []


class MaxPlatformVersionPredicate(Predicate):
    """Cache predicate admitting entries compatible with a cluster version.

    Entries without a ceiling are admitted; entries whose ceiling cannot be
    read are excluded.
    """

    def __init__(self, cluster_version: Version) -> None:
        self._version = cluster_version.truncated()

    def test(self, entry: Entry) -> bool:
        try:
            ceiling = max_platform_version(entry)
        except InvalidPropertyError:
            logger.debug("Excluding %s: unreadable %s", entry, MAX_OPENSHIFT_VERSION_TYPE)
            return False
        return ceiling is None or ceiling >= self._version

    def __str__(self) -> str:
        return f"with {MAX_OPENSHIFT_VERSION_TYPE} >= {self._version.short()}"
