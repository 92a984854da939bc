"""Tests for semantic version parsing, precedence, truncation, and ranges."""

from __future__ import annotations

import pytest

from bundleresolver.core.version import Version, VersionRange
from bundleresolver.exceptions import InvalidVersionError


# ===========================================================================
# Strict parsing
# ===========================================================================


class TestStrictParse:
    """Tests for Version.parse."""

    def test_full_version(self) -> None:
        """All components, pre-release and build metadata are captured."""
        v = Version.parse("1.2.3-alpha.1+build.5")
        assert (v.major, v.minor, v.patch) == (1, 2, 3)
        assert v.prerelease == ("alpha", 1)
        assert v.build == ("build", "5")

    def test_str_round_trips_text(self) -> None:
        assert str(Version.parse("1.2.3-rc.1+sha.abc")) == "1.2.3-rc.1+sha.abc"

    @pytest.mark.parametrize("text", ["1.2", "1", "v1.2.3", "01.2.3", "1.2.3-", "1.2.3+", ""])
    def test_rejects_non_semver(self, text: str) -> None:
        """Short forms, prefixes and leading zeroes are strict-mode errors."""
        with pytest.raises(InvalidVersionError):
            Version.parse(text)

    def test_rejects_leading_zero_numeric_prerelease(self) -> None:
        with pytest.raises(InvalidVersionError, match="leading zeroes"):
            Version.parse("1.0.0-01")


# ===========================================================================
# Tolerant parsing
# ===========================================================================


class TestTolerantParse:
    """Tests for Version.parse_tolerant."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("4.10", Version(4, 10, 0)),
            ("4", Version(4, 0, 0)),
            ("v1.2", Version(1, 2, 0)),
            (" 1.0.0 ", Version(1, 0, 0)),
            ("01.02.03", Version(1, 2, 3)),
            ("4.10.0-preview", Version(4, 10, 0, ("preview",))),
        ],
    )
    def test_accepts_common_forms(self, text: str, expected: Version) -> None:
        assert Version.parse_tolerant(text) == expected

    def test_short_version_with_prerelease_rejected(self) -> None:
        """A pre-release tag on a short version would be silently misread."""
        with pytest.raises(InvalidVersionError) as exc_info:
            Version.parse_tolerant("4.10-preview")
        assert str(exc_info.value) == "short version cannot contain a pre-release tag ('preview')"

    def test_short_version_with_build_rejected(self) -> None:
        with pytest.raises(InvalidVersionError, match="short version cannot contain build metadata"):
            Version.parse_tolerant("4.10+build")

    def test_garbage_names_the_failing_component(self) -> None:
        with pytest.raises(InvalidVersionError) as exc_info:
            Version.parse_tolerant("bad version")
        assert str(exc_info.value) == "invalid character(s) found in major number 'bad version'"

    @pytest.mark.parametrize("text", ["", "   ", "v", "1.2.3.4"])
    def test_rejects_empty_and_overlong(self, text: str) -> None:
        with pytest.raises(InvalidVersionError):
            Version.parse_tolerant(text)


# ===========================================================================
# Precedence
# ===========================================================================


class TestPrecedence:
    """Tests for SemVer ordering and equality."""

    def test_semver_precedence_chain(self) -> None:
        """The ordering example from the SemVer document holds."""
        chain = [
            "1.0.0-alpha",
            "1.0.0-alpha.1",
            "1.0.0-alpha.beta",
            "1.0.0-beta",
            "1.0.0-beta.2",
            "1.0.0-beta.11",
            "1.0.0-rc.1",
            "1.0.0",
        ]
        versions = [Version.parse(t) for t in chain]
        assert versions == sorted(reversed(versions))
        for lower, higher in zip(versions, versions[1:]):
            assert lower < higher

    def test_build_metadata_ignored(self) -> None:
        a = Version.parse("1.0.0+one")
        b = Version.parse("1.0.0+two")
        assert a == b
        assert hash(a) == hash(b)

    def test_numeric_components_compare_as_numbers(self) -> None:
        assert Version.parse("4.9.0") < Version.parse("4.10.0")

    def test_not_equal_to_other_types(self) -> None:
        assert Version(1, 0, 0) != "1.0.0"


# ===========================================================================
# Derived values
# ===========================================================================


class TestDerived:
    """Tests for truncation and component flags."""

    def test_truncated_drops_patch_prerelease_and_build(self) -> None:
        v = Version.parse("4.10.3-rc.1+abc")
        t = v.truncated()
        assert t == Version(4, 10, 0)
        assert not t.has_prerelease and not t.has_build and not t.has_patch

    def test_short_rendering(self) -> None:
        assert Version.parse("4.10.3").short() == "4.10"

    def test_component_flags(self) -> None:
        v = Version.parse("1.2.3-pre+b")
        assert v.has_patch and v.has_prerelease and v.has_build
        assert not Version(1, 2).has_patch


# ===========================================================================
# Ranges
# ===========================================================================


class TestVersionRange:
    """Tests for VersionRange parsing and matching."""

    @pytest.mark.parametrize(
        ("raw", "inside", "outside"),
        [
            (">=1.0.0 <2.0.0", "1.5.0", "2.0.0"),
            (">=1.0.0, <2.0.0", "1.0.0", "0.9.9"),
            (">= 1.0.0", "1.0.0", "0.1.0"),
            ("1.0.0 || >=3.0.0", "3.1.0", "2.0.0"),
            ("!=1.2.0", "1.2.1", "1.2.0"),
            (">1.0.0", "1.0.1", "1.0.0"),
            ("<=1.0.0", "1.0.0", "1.0.1"),
            ("==1.0.0", "1.0.0", "1.0.1"),
            ("1.0.0", "1.0.0", "1.0.1"),
        ],
    )
    def test_contains(self, raw: str, inside: str, outside: str) -> None:
        rng = VersionRange(raw)
        assert rng.contains(Version.parse_tolerant(inside))
        assert not rng.contains(Version.parse_tolerant(outside))

    @pytest.mark.parametrize("raw", ["", "*", "  "])
    def test_any_version(self, raw: str) -> None:
        assert VersionRange(raw).contains(Version(99, 1, 2))

    @pytest.mark.parametrize("raw", ["~>1.0", "1.0.0 ||", ">=", ">=bad"])
    def test_invalid_ranges_fail_at_construction(self, raw: str) -> None:
        with pytest.raises(InvalidVersionError):
            VersionRange(raw)

    def test_str(self) -> None:
        assert str(VersionRange(" >=1.0.0 ")) == ">=1.0.0"
        assert str(VersionRange("")) == "*"
