"""Tests for the platform-version constraint provider."""

from __future__ import annotations

import pytest

from bundleresolver.core.providers import (
    ClusterProperties,
    InvalidPropertyError,
    MaxPlatformVersionPredicate,
    PlatformVersionConstraintProvider,
    ProviderKind,
    max_platform_version,
)
from bundleresolver.core.solver import Prohibited
from bundleresolver.core.version import Version
from bundleresolver.exceptions import ClusterVersionError, ConfigurationError
from tests.helpers import FakeClusterVersionClient, make_entry


def _provider(cluster_version: str) -> tuple[PlatformVersionConstraintProvider, FakeClusterVersionClient]:
    client = FakeClusterVersionClient(cluster_version)
    return PlatformVersionConstraintProvider(ClusterProperties(client)), client


# ===========================================================================
# max_platform_version
# ===========================================================================


class TestMaxPlatformVersion:
    """Tests for reading the olm.maxOpenShiftVersion property."""

    def test_absent(self) -> None:
        assert max_platform_version(make_entry("a.v1", "a", "1.0.0")) is None

    @pytest.mark.parametrize("raw", ["4.10", '"4.10"', "4.10.0", "v4.10", " 4.10 "])
    def test_accepted_forms(self, raw: str) -> None:
        entry = make_entry("a.v1", "a", "1.0.0", max_ocp=raw)
        assert max_platform_version(entry) == Version(4, 10)

    def test_major_only(self) -> None:
        entry = make_entry("a.v1", "a", "1.0.0", max_ocp="4")
        assert max_platform_version(entry) == Version(4, 0)

    def test_declared_twice(self) -> None:
        entry = make_entry("a.v1", "a", "1.0.0", max_ocp=["4.9", "4.10"])
        with pytest.raises(InvalidPropertyError) as exc_info:
            max_platform_version(entry)
        assert str(exc_info.value) == (
            'defining more than one "olm.maxOpenShiftVersion" property is not allowed'
        )

    @pytest.mark.parametrize("raw", ["", '""'])
    def test_empty(self, raw: str) -> None:
        entry = make_entry("a.v1", "a", "1.0.0", max_ocp=raw)
        with pytest.raises(InvalidPropertyError) as exc_info:
            max_platform_version(entry)
        assert str(exc_info.value) == 'value cannot be "" (an empty string)'

    def test_unparsable(self) -> None:
        entry = make_entry("a.v1", "a", "1.0.0", max_ocp="bad version")
        with pytest.raises(InvalidPropertyError) as exc_info:
            max_platform_version(entry)
        assert str(exc_info.value) == (
            "failed to parse \"bad version\" as semver: "
            "invalid character(s) found in major number 'bad version'"
        )

    def test_short_with_prerelease_is_parse_error(self) -> None:
        entry = make_entry("a.v1", "a", "1.0.0", max_ocp="4.10-preview")
        with pytest.raises(InvalidPropertyError, match="short version cannot contain a pre-release tag"):
            max_platform_version(entry)

    def test_patch_rejected(self) -> None:
        entry = make_entry("a.v1", "a", "1.0.0", max_ocp="4.10.99")
        with pytest.raises(InvalidPropertyError) as exc_info:
            max_platform_version(entry)
        assert str(exc_info.value) == (
            'property "olm.maxOpenShiftVersion" must specify only <major>.<minor> version, '
            "got invalid value 4.10.99 (patch component 99 not allowed)"
        )

    def test_every_defect_listed(self) -> None:
        entry = make_entry("a.v1", "a", "1.0.0", max_ocp="4.10.1-rc.1+abc")
        with pytest.raises(InvalidPropertyError) as exc_info:
            max_platform_version(entry)
        message = str(exc_info.value)
        assert "patch component 1, pre-release tag rc.1, build metadata abc not allowed" in message

    @pytest.mark.parametrize("raw", ["4.10.0-preview", "4.10.0+build"])
    def test_prerelease_or_build_on_full_version_rejected(self, raw: str) -> None:
        entry = make_entry("a.v1", "a", "1.0.0", max_ocp=raw)
        with pytest.raises(InvalidPropertyError, match="must specify only <major>.<minor>"):
            max_platform_version(entry)


# ===========================================================================
# PlatformVersionConstraintProvider
# ===========================================================================


class TestPlatformVersionConstraintProvider:
    """Tests for the constraints produced per entry."""

    def test_kind(self) -> None:
        provider, _ = _provider("4.10.0")
        assert provider.kind is ProviderKind.PLATFORM_VERSION

    def test_nil_cluster_properties(self) -> None:
        provider = PlatformVersionConstraintProvider(None)
        with pytest.raises(ConfigurationError, match="nil clusterProperties"):
            provider.constraints(make_entry("a.v1", "a", "1.0.0"))

    def test_no_property_no_constraint(self) -> None:
        provider, client = _provider("4.10.0")
        assert provider.constraints(make_entry("a.v1", "a", "1.0.0")) == []
        assert client.calls == []

    def test_compatible_cluster(self) -> None:
        provider, _ = _provider("1.0.0")
        entry = make_entry("anakin.v0.1.1", "anakin", "0.1.1", max_ocp="2.0")
        assert provider.constraints(entry) == []

    def test_equal_minor_is_compatible(self) -> None:
        """Only the minor release matters; the cluster's patch is dropped."""
        provider, _ = _provider("4.10.7")
        entry = make_entry("a.v1", "a", "1.0.0", max_ocp="4.10")
        assert provider.constraints(entry) == []

    def test_prerelease_cluster_truncated(self) -> None:
        provider, _ = _provider("4.11.0-rc.3")
        entry = make_entry("a.v1", "a", "1.0.0", max_ocp="4.11")
        assert provider.constraints(entry) == []

    def test_newer_cluster_prohibits(self) -> None:
        provider, _ = _provider("3.0.0")
        entry = make_entry("anakin.v0.1.1", "anakin", "0.1.1", max_ocp="2.0")
        constraints = provider.constraints(entry)
        assert len(constraints) == 1
        constraint = constraints[0]
        assert isinstance(constraint, Prohibited)
        assert constraint.subject == entry
        assert constraint.explanation == (
            'bundle incompatible with openshift cluster, "olm.maxOpenShiftVersion" '
            "< cluster version: (2.0 < 3.0)"
        )

    @pytest.mark.parametrize("raw", ["", "bad version", "4.10.99", ["4.9", "4.10"]])
    def test_invalid_property_prohibits_without_cluster_lookup(self, raw) -> None:
        """Per-entry property problems never abort the resolution."""
        provider, client = _provider("4.10.0")
        entry = make_entry("a.v1", "a", "1.0.0", max_ocp=raw)
        constraints = provider.constraints(entry)
        assert len(constraints) == 1
        assert isinstance(constraints[0], Prohibited)
        assert constraints[0].explanation.startswith('invalid "olm.maxOpenShiftVersion" property: ')
        assert client.calls == []

    def test_cluster_failure_propagates(self) -> None:
        client = FakeClusterVersionClient(error=RuntimeError("unreachable"))
        provider = PlatformVersionConstraintProvider(ClusterProperties(client))
        entry = make_entry("a.v1", "a", "1.0.0", max_ocp="4.10")
        with pytest.raises(ClusterVersionError, match="unreachable"):
            provider.constraints(entry)

    def test_cluster_version_fetched_once(self) -> None:
        provider, client = _provider("4.10.0")
        for i in range(5):
            provider.constraints(make_entry(f"a.v{i}", "a", f"1.0.{i}", max_ocp="4.12"))
        assert len(client.calls) == 1


# ===========================================================================
# MaxPlatformVersionPredicate
# ===========================================================================


class TestMaxPlatformVersionPredicate:
    """Tests for the cache-side compatibility filter."""

    def test_filters(self) -> None:
        pred = MaxPlatformVersionPredicate(Version.parse("4.10.3"))
        assert pred.test(make_entry("a.v1", "a", "1.0.0"))
        assert pred.test(make_entry("a.v2", "a", "2.0.0", max_ocp="4.10"))
        assert not pred.test(make_entry("a.v3", "a", "3.0.0", max_ocp="4.9"))
        assert not pred.test(make_entry("a.v4", "a", "4.0.0", max_ocp="bad"))

    def test_str(self) -> None:
        assert str(MaxPlatformVersionPredicate(Version.parse("4.10.3"))) == (
            "with olm.maxOpenShiftVersion >= 4.10"
        )
