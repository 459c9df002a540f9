"""Data models for versions, version ranges and dependencies."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import total_ordering
from typing import Tuple

from packaging import version as pkg_version


@total_ordering
@dataclass(frozen=True, eq=False)
class Version:
    """Dot-separated sequence of non-negative integers.

    Ordering and equality pad the shorter sequence with zeros, so ``1.0``
    and ``1.0.0`` compare (and hash) equal while rendering as stored.
    """
    components: Tuple[int, ...]
    _key: pkg_version.Version = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if not self.components or any(c < 0 for c in self.components):
            raise ValueError(f"Invalid version components: {self.components!r}")
        object.__setattr__(self, "_key", pkg_version.Version(self.render()))

    def render(self) -> str:
        """Canonical dot-joined text."""
        return ".".join(str(c) for c in self.components)

    def __str__(self) -> str:
        return self.render()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key == other._key

    def __lt__(self, other: "Version") -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key < other._key

    def __hash__(self) -> int:
        return hash(self._key)


def compare(a: Version, b: Version) -> int:
    """Return -1, 0 or 1 as ``a`` is lower, equal or higher than ``b``."""
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


class VersionRange:
    """Immutable predicate over versions."""

    def contains(self, v: Version) -> bool:
        raise NotImplementedError

    def __contains__(self, v: Version) -> bool:
        return self.contains(v)


@dataclass(frozen=True)
class AnyVersion(VersionRange):
    def contains(self, v: Version) -> bool:
        return True

    def __str__(self) -> str:
        return "-any"


@dataclass(frozen=True)
class NoVersion(VersionRange):
    def contains(self, v: Version) -> bool:
        return False

    def __str__(self) -> str:
        return "-none"


_COMPARATORS = {
    "==": lambda a, b: a == b,
    "<": lambda a, b: a < b,
    "<=": lambda a, b: a <= b,
    ">": lambda a, b: a > b,
    ">=": lambda a, b: a >= b,
}


@dataclass(frozen=True)
class Comparison(VersionRange):
    """``OP version`` primitive."""
    op: str
    version: Version

    def __post_init__(self):
        if self.op not in _COMPARATORS:
            raise ValueError(f"Unknown comparison operator: {self.op!r}")

    def contains(self, v: Version) -> bool:
        return _COMPARATORS[self.op](v, self.version)

    def __str__(self) -> str:
        return f"{self.op}{self.version}"


@dataclass(frozen=True)
class Wildcard(VersionRange):
    """``==X.Y.*``: at least X.Y and below X.(Y+1)."""
    prefix: Version

    @property
    def upper(self) -> Version:
        head = self.prefix.components
        return Version(head[:-1] + (head[-1] + 1,))

    def contains(self, v: Version) -> bool:
        return self.prefix <= v < self.upper

    def __str__(self) -> str:
        return f"=={self.prefix}.*"


@dataclass(frozen=True)
class MajorBound(VersionRange):
    """``^>=X.Y.Z``: at least X.Y.Z and below X.(Y+1)."""
    lower: Version

    @property
    def upper(self) -> Version:
        head = self.lower.components
        if len(head) == 1:
            return Version((head[0], 1))
        return Version((head[0], head[1] + 1))

    def contains(self, v: Version) -> bool:
        return self.lower <= v < self.upper

    def __str__(self) -> str:
        return f"^>={self.lower}"


@dataclass(frozen=True)
class Intersection(VersionRange):
    left: VersionRange
    right: VersionRange

    def contains(self, v: Version) -> bool:
        return self.left.contains(v) and self.right.contains(v)

    def __str__(self) -> str:
        return f"{_wrap(self.left, Union)} && {_wrap(self.right, Union)}"


@dataclass(frozen=True)
class Union(VersionRange):
    left: VersionRange
    right: VersionRange

    def contains(self, v: Version) -> bool:
        return self.left.contains(v) or self.right.contains(v)

    def __str__(self) -> str:
        return f"{self.left} || {self.right}"


def _wrap(node: VersionRange, looser: type) -> str:
    """Parenthesise ``node`` when it binds looser than its parent."""
    if isinstance(node, looser):
        return f"({node})"
    return str(node)


def satisfies(v: Version, version_range: VersionRange) -> bool:
    """Whether ``v`` lies within ``version_range``."""
    return version_range.contains(v)


@dataclass(frozen=True)
class Dependency:
    """A declared dependency on another package."""
    name: str
    range: VersionRange

    def __str__(self) -> str:
        if isinstance(self.range, AnyVersion):
            return self.name
        return f"{self.name} {self.range}"


@dataclass(frozen=True)
class PackageIdentifier:
    """A specific release: package name plus version."""
    name: str
    version: Version

    def __str__(self) -> str:
        return f"{self.name}-{self.version}"
