"""Extraction of a flat :class:`DescInfo` from raw package metadata."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Set

from index.models import DescInfo
from versioning.models import Dependency, PackageIdentifier

from .cabal_parser import (
    CondBranch,
    CondTree,
    GenericPackage,
    Import,
    MetadataParseError,
    parse_generic_package,
)
from .conditions import Environment, ResolutionError
from .platform import BuildTarget

logger = logging.getLogger(__name__)

# Test suites and benchmarks are not enabled when resolving.
ENABLED_COMPONENTS = ("library", "executable", "foreign-library")


def _flatten(tree: CondTree, pkg: GenericPackage, env: Environment,
             out: List[Dependency], importing: Set[str]) -> None:
    for item in tree.items:
        if isinstance(item, Dependency):
            out.append(item)
        elif isinstance(item, CondBranch):
            if item.condition.evaluate(env):
                _flatten(item.then_tree, pkg, env, out, importing)
            elif item.else_tree is not None:
                _flatten(item.else_tree, pkg, env, out, importing)
        elif isinstance(item, Import):
            if item.name not in pkg.commons:
                raise ResolutionError(f"Unknown common stanza {item.name!r}")
            if item.name in importing:
                raise ResolutionError(f"Cyclic import of common stanza {item.name!r}")
            _flatten(pkg.commons[item.name], pkg, env, out, importing | {item.name})


def resolve_dependencies(pkg: GenericPackage, target: BuildTarget) -> List[Dependency]:
    """Flatten all enabled components' dependencies for ``target``.

    Flags take their declared defaults.

    Raises:
        ResolutionError: if a condition or import cannot be resolved.
    """
    env = Environment(target=target, flags=dict(pkg.flags))
    deps: List[Dependency] = []
    _flatten(pkg.top_level, pkg, env, deps, set())
    for component in pkg.components:
        if component.kind in ENABLED_COMPONENTS:
            _flatten(component.tree, pkg, env, deps, set())
    return deps


def get_desc_info(pkg: GenericPackage, target: BuildTarget) -> DescInfo:
    """Build the search summary for a resolved package."""
    return DescInfo(
        haystack=(pkg.author + pkg.maintainer + pkg.name).lower(),
        deps=tuple(resolve_dependencies(pkg, target)),
        package=PackageIdentifier(pkg.name, pkg.version),
        synopsis=pkg.synopsis,
    )


def parse_package(target: BuildTarget, data: bytes) -> Optional[DescInfo]:
    """Parse a package's metadata bytes into a DescInfo.

    Invalid UTF-8 is replaced rather than rejected. Returns None when the
    metadata does not parse or does not resolve for ``target``.
    """
    text = data.decode("utf-8", errors="replace").lstrip("\ufeff")
    try:
        pkg = parse_generic_package(text)
        return get_desc_info(pkg, target)
    except (MetadataParseError, ResolutionError) as e:
        logger.debug("Skipping unusable package metadata: %s", e)
        return None


def load_package(target: BuildTarget, path: str) -> Optional[DescInfo]:
    """Load a single package from a local metadata file."""
    return parse_package(target, Path(path).read_bytes())
