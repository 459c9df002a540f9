"""Parsing of version, version-range and dependency text."""

import re
from typing import List, Optional, Tuple

from .models import (
    AnyVersion,
    Comparison,
    Dependency,
    Intersection,
    MajorBound,
    NoVersion,
    Union,
    Version,
    VersionRange,
    Wildcard,
)


class VersionParseError(ValueError):
    """Raised when caller-supplied version or range text is malformed."""


_VERSION_RE = re.compile(r"^\d+(?:\.\d+)*$")

# Longest operators first so "<=" wins over "<".
_RANGE_TOKEN_RE = re.compile(
    r"\s*(?:"
    r"(?P<op>\^>=|==|<=|>=|<|>)"
    r"|(?P<logic>&&|\|\|)"
    r"|(?P<paren>[()])"
    r"|(?P<keyword>-any|-none|any)"
    r"|(?P<version>\d+(?:\.\d+)*(?:\.\*)?)"
    r")"
)

_DEPENDENCY_RE = re.compile(r"^\s*(?P<name>[A-Za-z0-9][A-Za-z0-9_\-]*)(?::[^\s]+)?\s*(?P<range>.*?)\s*$")


def parse_version(text: str) -> Version:
    """Parse ``1.2.0``-style text into a Version.

    Raises:
        VersionParseError: if the text is not a dot-separated sequence of
            non-negative integers.
    """
    if text is None:
        raise VersionParseError("Version text is required")
    s = text.strip()
    if not _VERSION_RE.match(s):
        raise VersionParseError(f"Invalid version: {text!r}")
    return Version(tuple(int(part) for part in s.split(".")))


def _tokenize(text: str) -> List[Tuple[str, str]]:
    tokens = []
    pos = 0
    stripped_end = len(text.rstrip())
    while pos < stripped_end:
        m = _RANGE_TOKEN_RE.match(text, pos)
        if not m or m.end() == pos:
            raise VersionParseError(f"Unexpected input in range {text!r} at offset {pos}")
        kind = m.lastgroup
        tokens.append((kind, m.group(kind)))
        pos = m.end()
    return tokens


class _RangeParser:
    """Recursive-descent parser; ``||`` binds loosest, then ``&&``."""

    def __init__(self, text: str):
        self.text = text
        self.tokens = _tokenize(text)
        self.pos = 0

    def _peek(self) -> Optional[Tuple[str, str]]:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return None

    def _next(self) -> Tuple[str, str]:
        tok = self._peek()
        if tok is None:
            raise VersionParseError(f"Unexpected end of range {self.text!r}")
        self.pos += 1
        return tok

    def parse(self) -> VersionRange:
        if not self.tokens:
            raise VersionParseError("Empty version range")
        node = self._union()
        if self._peek() is not None:
            raise VersionParseError(f"Trailing input in range {self.text!r}")
        return node

    def _union(self) -> VersionRange:
        node = self._intersection()
        while self._peek() == ("logic", "||"):
            self.pos += 1
            node = Union(node, self._intersection())
        return node

    def _intersection(self) -> VersionRange:
        node = self._atom()
        while self._peek() == ("logic", "&&"):
            self.pos += 1
            node = Intersection(node, self._atom())
        return node

    def _atom(self) -> VersionRange:
        kind, value = self._next()
        if kind == "paren" and value == "(":
            node = self._union()
            if self._next() != ("paren", ")"):
                raise VersionParseError(f"Unbalanced parentheses in range {self.text!r}")
            return node
        if kind == "keyword":
            return NoVersion() if value == "-none" else AnyVersion()
        if kind == "version":
            # Bare wildcard such as "1.2.*"
            if value.endswith(".*"):
                return Wildcard(parse_version(value[:-2]))
            raise VersionParseError(f"Version {value!r} needs an operator in range {self.text!r}")
        if kind == "op":
            vkind, vtext = self._next()
            if vkind != "version":
                raise VersionParseError(f"Expected a version after {value!r} in range {self.text!r}")
            if vtext.endswith(".*"):
                if value != "==":
                    raise VersionParseError(f"Wildcards only combine with '==' in range {self.text!r}")
                return Wildcard(parse_version(vtext[:-2]))
            if value == "^>=":
                return MajorBound(parse_version(vtext))
            return Comparison(value, parse_version(vtext))
        raise VersionParseError(f"Unexpected {value!r} in range {self.text!r}")


def parse_range(text: str) -> VersionRange:
    """Parse a version-range predicate such as ``>=1.2 && <1.3 || ==2.*``.

    Raises:
        VersionParseError: on empty or malformed text.
    """
    if text is None:
        raise VersionParseError("Range text is required")
    return _RangeParser(text).parse()


def parse_dependency(text: str) -> Dependency:
    """Split ``name RANGE`` into a Dependency; no range means any version."""
    m = _DEPENDENCY_RE.match(text or "")
    if not m:
        raise VersionParseError(f"Invalid dependency: {text!r}")
    range_text = m.group("range")
    version_range = parse_range(range_text) if range_text else AnyVersion()
    return Dependency(m.group("name"), version_range)
