"""Conditions guarding ``if`` blocks in package metadata.

Conditions are parsed into a small tagged-union AST and evaluated eagerly
against a fixed :class:`Environment`.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from versioning.models import AnyVersion, VersionRange
from versioning.parser import VersionParseError, parse_range

from .platform import BuildTarget, normalize_arch, normalize_os


class ConditionError(ValueError):
    """Malformed condition text."""


class ResolutionError(ValueError):
    """A condition cannot be decided in the given environment."""


@dataclass(frozen=True)
class Environment:
    """Everything a condition may test: target plus flag assignment."""
    target: BuildTarget
    flags: Dict[str, bool] = field(default_factory=dict)


class Condition:
    def evaluate(self, env: Environment) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class Literal(Condition):
    value: bool

    def evaluate(self, env: Environment) -> bool:
        return self.value


@dataclass(frozen=True)
class OSIs(Condition):
    name: str

    def evaluate(self, env: Environment) -> bool:
        return normalize_os(self.name) == env.target.os


@dataclass(frozen=True)
class ArchIs(Condition):
    name: str

    def evaluate(self, env: Environment) -> bool:
        return normalize_arch(self.name) == env.target.arch


@dataclass(frozen=True)
class ImplIs(Condition):
    compiler: str
    range: VersionRange

    def evaluate(self, env: Environment) -> bool:
        compiler = env.target.compiler
        return self.compiler.lower() == compiler.flavor and self.range.contains(compiler.version)


@dataclass(frozen=True)
class FlagIs(Condition):
    name: str

    def evaluate(self, env: Environment) -> bool:
        key = self.name.lower()
        if key not in env.flags:
            raise ResolutionError(f"Undeclared flag {self.name!r}")
        return env.flags[key]


@dataclass(frozen=True)
class Not(Condition):
    operand: Condition

    def evaluate(self, env: Environment) -> bool:
        return not self.operand.evaluate(env)


@dataclass(frozen=True)
class And(Condition):
    left: Condition
    right: Condition

    def evaluate(self, env: Environment) -> bool:
        # Both sides are evaluated so an undeclared flag never hides behind
        # short-circuiting.
        left = self.left.evaluate(env)
        right = self.right.evaluate(env)
        return left and right


@dataclass(frozen=True)
class Or(Condition):
    left: Condition
    right: Condition

    def evaluate(self, env: Environment) -> bool:
        left = self.left.evaluate(env)
        right = self.right.evaluate(env)
        return left or right


_IMPL_RE = re.compile(r"^\s*([A-Za-z][A-Za-z0-9_\-]*)\s*(.*)$", re.DOTALL)
_TOKEN_RE = re.compile(
    r"\s*(?:(?P<logic>&&|\|\||!)|(?P<paren>[()])"
    r"|(?P<call>[A-Za-z][A-Za-z0-9_]*)\s*\((?P<args>[^()]*)\)"
    r"|(?P<word>[A-Za-z][A-Za-z0-9_\-]*))"
)


def _tokenize(text: str) -> List[Tuple[str, str, str]]:
    tokens = []
    pos = 0
    end = len(text.rstrip())
    while pos < end:
        m = _TOKEN_RE.match(text, pos)
        if not m or m.end() == pos:
            raise ConditionError(f"Unexpected input in condition {text!r} at offset {pos}")
        if m.group("call"):
            tokens.append(("call", m.group("call").lower(), m.group("args").strip()))
        elif m.group("word"):
            tokens.append(("word", m.group("word").lower(), ""))
        else:
            kind = m.lastgroup
            tokens.append((kind, m.group(kind), ""))
        pos = m.end()
    return tokens


def _make_call(func: str, args: str, text: str) -> Condition:
    if func == "os":
        return OSIs(args)
    if func == "arch":
        return ArchIs(args)
    if func == "flag":
        return FlagIs(args)
    if func == "impl":
        m = _IMPL_RE.match(args)
        if not m:
            raise ConditionError(f"impl() needs a compiler name in {text!r}")
        compiler, range_text = m.group(1), m.group(2).strip()
        try:
            version_range = parse_range(range_text) if range_text else AnyVersion()
        except VersionParseError as e:
            raise ConditionError(str(e)) from e
        return ImplIs(compiler, version_range)
    raise ConditionError(f"Unknown condition {func!r} in {text!r}")


class _ConditionParser:
    def __init__(self, text: str):
        self.text = text
        self.tokens = _tokenize(text)
        self.pos = 0

    def _peek(self) -> Optional[Tuple[str, str, str]]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _next(self) -> Tuple[str, str, str]:
        tok = self._peek()
        if tok is None:
            raise ConditionError(f"Unexpected end of condition {self.text!r}")
        self.pos += 1
        return tok

    def parse(self) -> Condition:
        if not self.tokens:
            raise ConditionError("Empty condition")
        node = self._or()
        if self._peek() is not None:
            raise ConditionError(f"Trailing input in condition {self.text!r}")
        return node

    def _or(self) -> Condition:
        node = self._and()
        while self._peek() == ("logic", "||", ""):
            self.pos += 1
            node = Or(node, self._and())
        return node

    def _and(self) -> Condition:
        node = self._not()
        while self._peek() == ("logic", "&&", ""):
            self.pos += 1
            node = And(node, self._not())
        return node

    def _not(self) -> Condition:
        if self._peek() == ("logic", "!", ""):
            self.pos += 1
            return Not(self._not())
        return self._atom()

    def _atom(self) -> Condition:
        kind, value, args = self._next()
        if kind == "paren" and value == "(":
            node = self._or()
            if self._next()[:2] != ("paren", ")"):
                raise ConditionError(f"Unbalanced parentheses in condition {self.text!r}")
            return node
        if kind == "word" and value in ("true", "false"):
            return Literal(value == "true")
        if kind == "call":
            return _make_call(value, args, self.text)
        raise ConditionError(f"Unexpected {value!r} in condition {self.text!r}")


def parse_condition(text: str) -> Condition:
    """Parse ``os(linux) && !flag(dev)``-style text into a Condition."""
    return _ConditionParser(text).parse()
