"""Parser for indentation-structured package metadata (``.cabal`` files).

Parsing happens in two passes: the text is first split into a tree of
fields and sections by indentation, then the tree is interpreted into a
:class:`GenericPackage` whose component dependencies are still guarded by
unresolved conditions.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from versioning.models import Dependency, Version
from versioning.parser import VersionParseError, parse_dependency, parse_version

from .conditions import Condition, ConditionError, parse_condition

logger = logging.getLogger(__name__)


class MetadataParseError(ValueError):
    """The metadata text does not follow the expected grammar."""


_FIELD_RE = re.compile(r"^(?P<name>[A-Za-z][A-Za-z0-9_\-]*)\s*:(?P<value>.*)$")
_SECTION_RE = re.compile(r"^(?P<name>[A-Za-z][A-Za-z0-9_\-]*)(?:\s+(?P<args>.*))?$")

COMPONENT_SECTIONS = ("library", "executable", "foreign-library", "test-suite", "benchmark")


@dataclass
class Field:
    name: str
    value: str
    line: int


@dataclass
class Section:
    name: str
    args: str
    children: List[Union[Field, "Section"]]
    line: int


Node = Union[Field, Section]


def _logical_lines(text: str) -> List[Tuple[int, str, int]]:
    """Return (indent, content, line number) for each meaningful line."""
    lines = []
    for lineno, raw in enumerate(text.splitlines(), start=1):
        expanded = raw.expandtabs(8).rstrip()
        content = expanded.lstrip()
        if not content or content.startswith("--"):
            continue
        lines.append((len(expanded) - len(content), content, lineno))
    return lines


def _parse_block(lines, i: int, parent_indent: int) -> Tuple[List[Node], int]:
    nodes: List[Node] = []
    while i < len(lines):
        indent, content, lineno = lines[i]
        if indent <= parent_indent:
            break
        m = _FIELD_RE.match(content)
        if m:
            parts = [m.group("value").strip()]
            i += 1
            while i < len(lines) and lines[i][0] > indent:
                parts.append(lines[i][1])
                i += 1
            value = "\n".join(p for p in parts if p)
            nodes.append(Field(m.group("name").lower(), value, lineno))
            continue
        if content in ("{", "}") or content.endswith("{"):
            raise MetadataParseError(f"Line {lineno}: brace layout is not supported")
        m = _SECTION_RE.match(content)
        if not m:
            raise MetadataParseError(f"Line {lineno}: cannot parse {content!r}")
        children, i = _parse_block(lines, i + 1, indent)
        nodes.append(Section(m.group("name").lower(), (m.group("args") or "").strip(), children, lineno))
    return nodes, i


def parse_layout(text: str) -> List[Node]:
    """Split metadata text into a tree of fields and sections."""
    lines = _logical_lines(text)
    nodes, i = _parse_block(lines, 0, -1)
    if i != len(lines):
        raise MetadataParseError(f"Line {lines[i][2]}: unexpected dedent")
    return nodes


@dataclass
class Import:
    """``import: NAME`` referencing a common stanza."""
    name: str


@dataclass
class CondBranch:
    condition: Condition
    then_tree: "CondTree"
    else_tree: Optional["CondTree"] = None


@dataclass
class CondTree:
    """Dependencies, imports and conditional branches in declaration order."""
    items: List[Union[Dependency, Import, CondBranch]] = field(default_factory=list)


@dataclass
class Component:
    kind: str
    name: str
    tree: CondTree


@dataclass
class GenericPackage:
    """Package description with conditionals still unresolved."""
    name: str
    version: Version
    synopsis: str = ""
    author: str = ""
    maintainer: str = ""
    flags: Dict[str, bool] = field(default_factory=dict)
    top_level: CondTree = field(default_factory=CondTree)
    components: List[Component] = field(default_factory=list)
    commons: Dict[str, CondTree] = field(default_factory=dict)


def parse_build_depends(value: str, lineno: int = 0) -> List[Dependency]:
    """Parse a comma-separated ``build-depends`` value."""
    deps = []
    for chunk in value.replace("\n", " ").split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        try:
            deps.append(parse_dependency(chunk))
        except VersionParseError as e:
            raise MetadataParseError(f"Line {lineno}: {e}") from e
    return deps


def _parse_condition(text: str, lineno: int) -> Condition:
    try:
        return parse_condition(text)
    except ConditionError as e:
        raise MetadataParseError(f"Line {lineno}: {e}") from e


def _build_tree(nodes: List[Node]) -> CondTree:
    tree = CondTree()
    last_branch: Optional[CondBranch] = None
    for node in nodes:
        if isinstance(node, Field):
            last_branch = None
            if node.name == "build-depends":
                tree.items.extend(parse_build_depends(node.value, node.line))
            elif node.name == "import":
                tree.items.extend(Import(n.strip()) for n in node.value.split(",") if n.strip())
            continue
        if node.name == "if":
            last_branch = CondBranch(_parse_condition(node.args, node.line), _build_tree(node.children))
            tree.items.append(last_branch)
        elif node.name in ("else", "elif"):
            if last_branch is None or last_branch.else_tree is not None:
                raise MetadataParseError(f"Line {node.line}: '{node.name}' without a matching 'if'")
            if node.name == "else":
                last_branch.else_tree = _build_tree(node.children)
                last_branch = None
            else:
                nested = CondBranch(_parse_condition(node.args, node.line), _build_tree(node.children))
                last_branch.else_tree = CondTree([nested])
                last_branch = nested
        else:
            raise MetadataParseError(f"Line {node.line}: unexpected section {node.name!r}")
    return tree


def _flag_default(section: Section) -> bool:
    for child in section.children:
        if isinstance(child, Field) and child.name == "default":
            value = child.value.strip().lower()
            if value not in ("true", "false"):
                raise MetadataParseError(f"Line {child.line}: invalid flag default {child.value!r}")
            return value == "true"
    return True


def parse_generic_package(text: str) -> GenericPackage:
    """Interpret metadata text into a :class:`GenericPackage`.

    Raises:
        MetadataParseError: when the text is malformed or lacks a name or
            a valid version.
    """
    fields: Dict[str, str] = {}
    top_level = CondTree()
    flags: Dict[str, bool] = {}
    components: List[Component] = []
    commons: Dict[str, CondTree] = {}

    for node in parse_layout(text):
        if isinstance(node, Field):
            if node.name == "build-depends":
                top_level.items.extend(parse_build_depends(node.value, node.line))
            else:
                fields.setdefault(node.name, node.value)
            continue
        if node.name == "flag":
            flags[node.args.lower()] = _flag_default(node)
        elif node.name == "common":
            commons[node.args] = _build_tree(node.children)
        elif node.name in COMPONENT_SECTIONS:
            components.append(Component(node.name, node.args, _build_tree(node.children)))
        else:
            # source-repository, custom-setup and unknown sections carry no
            # dependencies of interest.
            logger.debug("Ignoring section %r at line %d", node.name, node.line)

    name = fields.get("name", "").strip()
    if not name:
        raise MetadataParseError("Missing 'name' field")
    try:
        version = parse_version(fields.get("version", ""))
    except VersionParseError as e:
        raise MetadataParseError(f"Invalid 'version' field: {e}") from e

    return GenericPackage(
        name=name,
        version=version,
        synopsis=fields.get("synopsis", "").strip(),
        author=fields.get("author", "").strip(),
        maintainer=fields.get("maintainer", "").strip(),
        flags=flags,
        top_level=top_level,
        components=components,
        commons=commons,
    )
