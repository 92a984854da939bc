"""Semantic versions, tolerant parsing, truncation, and version ranges.

Versions follow SemVer 2.0.0 precedence rules (section 11): the numeric core
is compared first, a pre-release has lower precedence than the associated
normal version, and build metadata never affects precedence or equality.

Catalog metadata is rarely strict SemVer, so ``Version.parse_tolerant``
accepts the forms bundle authors actually write (``v1.2``, ``4.10``,
`` 1.0.0 ``) while still refusing short versions that carry a pre-release
tag or build metadata, which would otherwise be silently misread.

References
----------
.. [SemVer] Preston-Werner, T. (2013). "Semantic Versioning 2.0.0."
   https://semver.org/
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import total_ordering

from bundleresolver.exceptions import InvalidVersionError


_NUMERIC_RE = re.compile(r"^[0-9]+$")
_IDENTIFIER_RE = re.compile(r"^[0-9A-Za-z-]+$")
_PART_NAMES = ("major", "minor", "patch")


# ---------------------------------------------------------------------------
# Version: a parsed semantic version
# ---------------------------------------------------------------------------


@total_ordering
@dataclass(frozen=True, eq=False)
class Version:
    """An immutable semantic version.

    Attributes:
        major: Major version number.
        minor: Minor version number.
        patch: Patch version number.
        prerelease: Dot-separated pre-release identifiers; numeric
            identifiers are stored as ints.
        build: Dot-separated build metadata identifiers.
    """

    major: int
    minor: int = 0
    patch: int = 0
    prerelease: tuple[int | str, ...] = ()
    build: tuple[str, ...] = ()

    # -- parsing ------------------------------------------------------------

    @classmethod
    def parse(cls, text: str) -> Version:
        """Parse a strict ``MAJOR.MINOR.PATCH[-PRE][+BUILD]`` version.

        Raises:
            InvalidVersionError: If *text* is not a valid semantic version.
        """
        if not text:
            raise InvalidVersionError("version string empty")
        core, prerelease, build = _split_metadata(text)
        parts = core.split(".")
        if len(parts) != 3:
            raise InvalidVersionError(
                f"no major, minor and patch elements found in {text!r}"
            )
        numbers = [_parse_number(p, name, strict=True) for p, name in zip(parts, _PART_NAMES)]
        return cls(
            numbers[0],
            numbers[1],
            numbers[2],
            _parse_prerelease(prerelease),
            _parse_build(build),
        )

    @classmethod
    def parse_tolerant(cls, text: str) -> Version:
        """Parse a version leniently.

        Surrounding whitespace and a leading ``v`` are removed, leading zeros
        in the numeric core are accepted, and ``MAJOR`` or ``MAJOR.MINOR``
        short forms are padded with zeros. A short form must not carry a
        pre-release tag or build metadata.

        Raises:
            InvalidVersionError: If *text* cannot be read as a version.
        """
        value = text.strip()
        if value[:1] in ("v", "V"):
            value = value[1:]
        if not value:
            raise InvalidVersionError("version string empty")

        core, prerelease, build = _split_metadata(value)
        parts = core.split(".")
        if len(parts) > 3:
            raise InvalidVersionError(f"too many version components in {value!r}")
        if len(parts) < 3:
            if prerelease is not None:
                raise InvalidVersionError(
                    f"short version cannot contain a pre-release tag ({prerelease!r})"
                )
            if build is not None:
                raise InvalidVersionError(
                    f"short version cannot contain build metadata ({build!r})"
                )
            parts = parts + ["0"] * (3 - len(parts))

        numbers = [_parse_number(p, name, strict=False) for p, name in zip(parts, _PART_NAMES)]
        return cls(
            numbers[0],
            numbers[1],
            numbers[2],
            _parse_prerelease(prerelease),
            _parse_build(build),
        )

    # -- derived values -----------------------------------------------------

    @property
    def has_patch(self) -> bool:
        return self.patch != 0

    @property
    def has_prerelease(self) -> bool:
        return bool(self.prerelease)

    @property
    def has_build(self) -> bool:
        return bool(self.build)

    def truncated(self) -> Version:
        """Return ``major.minor.0`` without pre-release or build metadata."""
        return Version(self.major, self.minor)

    def short(self) -> str:
        """Render as ``major.minor``."""
        return f"{self.major}.{self.minor}"

    # -- comparison ---------------------------------------------------------

    def _precedence_key(self) -> tuple:
        # A release sorts after every pre-release of the same core.
        if not self.prerelease:
            pre_key: tuple = (1,)
        else:
            pre_key = (0, tuple(
                (0, ident, "") if isinstance(ident, int) else (1, 0, ident)
                for ident in self.prerelease
            ))
        return (self.major, self.minor, self.patch, pre_key)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._precedence_key() == other._precedence_key()

    def __lt__(self, other: Version) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._precedence_key() < other._precedence_key()

    def __hash__(self) -> int:
        return hash(self._precedence_key())

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += "-" + ".".join(str(i) for i in self.prerelease)
        if self.build:
            text += "+" + ".".join(self.build)
        return text

    def __repr__(self) -> str:
        return f"Version({str(self)!r})"


def _split_metadata(text: str) -> tuple[str, str | None, str | None]:
    """Split ``core[-pre][+build]`` into its three parts."""
    build: str | None = None
    prerelease: str | None = None
    if "+" in text:
        text, build = text.split("+", 1)
    if "-" in text:
        text, prerelease = text.split("-", 1)
    return text, prerelease, build


def _parse_number(part: str, name: str, *, strict: bool) -> int:
    if not part:
        raise InvalidVersionError(f"{name} number is empty")
    if not _NUMERIC_RE.match(part):
        raise InvalidVersionError(f"invalid character(s) found in {name} number {part!r}")
    if strict and len(part) > 1 and part[0] == "0":
        raise InvalidVersionError(f"{name} number must not contain leading zeroes {part!r}")
    return int(part)


def _parse_prerelease(text: str | None) -> tuple[int | str, ...]:
    if text is None:
        return ()
    idents: list[int | str] = []
    for ident in text.split("."):
        if not ident:
            raise InvalidVersionError("pre-release identifier is empty")
        if not _IDENTIFIER_RE.match(ident):
            raise InvalidVersionError(f"invalid character(s) found in pre-release {ident!r}")
        if _NUMERIC_RE.match(ident):
            if len(ident) > 1 and ident[0] == "0":
                raise InvalidVersionError(
                    f"pre-release number must not contain leading zeroes {ident!r}"
                )
            idents.append(int(ident))
        else:
            idents.append(ident)
    return tuple(idents)


def _parse_build(text: str | None) -> tuple[str, ...]:
    if text is None:
        return ()
    idents = text.split(".")
    for ident in idents:
        if not ident:
            raise InvalidVersionError("build metadata identifier is empty")
        if not _IDENTIFIER_RE.match(ident):
            raise InvalidVersionError(f"invalid character(s) found in build metadata {ident!r}")
    return tuple(idents)


# ---------------------------------------------------------------------------
# VersionRange: declarative version requirement
# ---------------------------------------------------------------------------

_ATOM_RE = re.compile(r"^(?P<op>>=|<=|!=|==|=|>|<)?(?P<ver>\S+)$")


@dataclass(frozen=True)
class VersionRange:
    """A version range in the catalog comparator syntax.

    Supports:
    - Comparators: ``>=1.0.0``, ``<=2.0.0``, ``>1.0.0``, ``<2.0.0``,
      ``=1.0.0``, ``==1.0.0``, ``!=1.2.0``; a bare version means equality.
    - Conjunction: atoms separated by whitespace or commas,
      ``>=1.0.0 <2.0.0``.
    - Disjunction: alternatives separated by ``||``.
    - Any version: empty text or ``*``.

    Attributes:
        raw: The range text as authored.
    """

    raw: str

    def __post_init__(self) -> None:
        # Fail at construction so malformed ranges surface immediately.
        self._alternatives()

    def _alternatives(self) -> list[list[tuple[str, Version]]]:
        stripped = self.raw.strip()
        if stripped in ("", "*"):
            return []
        alternatives: list[list[tuple[str, Version]]] = []
        for alt in stripped.split("||"):
            tokens = alt.replace(",", " ").split()
            if not tokens:
                raise InvalidVersionError(f"empty alternative in range {self.raw!r}")
            # Re-attach operators written with a space: ">= 1.0.0".
            merged: list[str] = []
            for token in tokens:
                if merged and merged[-1] in (">=", "<=", "!=", "==", "=", ">", "<"):
                    merged[-1] += token
                else:
                    merged.append(token)
            atoms = []
            for token in merged:
                m = _ATOM_RE.match(token)
                if not m:
                    raise InvalidVersionError(f"invalid range atom {token!r}")
                atoms.append((m.group("op") or "=", Version.parse_tolerant(m.group("ver"))))
            alternatives.append(atoms)
        return alternatives

    def contains(self, version: Version) -> bool:
        """Check whether *version* lies in this range."""
        alternatives = self._alternatives()
        if not alternatives:
            return True
        return any(
            all(_atom_holds(op, target, version) for op, target in atoms)
            for atoms in alternatives
        )

    def __str__(self) -> str:
        return self.raw.strip() or "*"


def _atom_holds(op: str, target: Version, version: Version) -> bool:
    if op in ("=", "=="):
        return version == target
    if op == "!=":
        return version != target
    if op == ">=":
        return version >= target
    if op == "<=":
        return version <= target
    if op == ">":
        return version > target
    if op == "<":
        return version < target
    raise InvalidVersionError(f"unknown operator {op!r}")  # pragma: no cover
