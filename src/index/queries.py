"""Pure queries over a newest-version table."""
from __future__ import annotations

from datetime import datetime, timezone
from itertools import groupby
from typing import Iterable, List, Optional, Tuple, Union

from constants import Constants
from versioning.models import Dependency, Version

from .models import AllNewest, DescInfo, Newest, Reverses, WontAccept

CheckDepsRes = Union[AllNewest, WontAccept]


def epoch_to_time(epoch: int) -> datetime:
    """Seconds since the epoch as an aware UTC datetime."""
    return datetime.fromtimestamp(epoch, tz=timezone.utc)


def di_name(desc: DescInfo) -> str:
    """Package name of a descriptor."""
    return desc.package.name


def _not_newest(newest: Newest, dep: Dependency) -> Optional[Tuple[Tuple[str, str], int]]:
    info = newest.get(dep.name)
    # Unknown targets are not treated as failures.
    if info is None:
        return None
    if dep.range.contains(info.version):
        return None
    return (dep.name, info.version.render()), info.epoch


def check_deps(newest: Newest, desc: DescInfo) -> Tuple[str, Version, CheckDepsRes]:
    """Whether ``desc`` accepts the newest version of each dependency.

    Returns the package name and version with either :class:`AllNewest` or
    a :class:`WontAccept` listing the rejected (name, version) pairs and
    the latest upload time among them.
    """
    rejected = [r for r in (_not_newest(newest, dep) for dep in desc.deps) if r is not None]
    name, version = desc.package.name, desc.package.version
    if not rejected:
        return name, version, AllNewest()
    packages = sorted({pair for pair, _ in rejected})
    latest = max(epoch for _, epoch in rejected)
    return name, version, WontAccept(packages, epoch_to_time(latest))


def get_package(name: str, newest: Newest) -> Optional[DescInfo]:
    """Descriptor of the newest release of ``name``, if available."""
    info = newest.get(name)
    return info.desc if info is not None else None


def filter_packages(needle: str, newest: Newest) -> List[DescInfo]:
    """Descriptors whose search text contains ``needle``, case-insensitively.

    Packages whose synopsis is marked deprecated are left out.
    """
    lowered = needle.lower()
    found = []
    for name in sorted(newest):
        desc = newest[name].desc
        if desc is None:
            continue
        if lowered in desc.haystack and Constants.DEPRECATED_MARKER not in desc.synopsis:
            found.append(desc)
    return found


def deep_deps(newest: Newest, descs: Iterable[DescInfo]) -> List[DescInfo]:
    """All packages transitively depended upon by ``descs``, depth first.

    Each package appears once, at its first visit. Dependencies that are
    not indexed or lack a descriptor are skipped.
    """
    # Stack top is the end of the list, so push in reverse to keep order.
    stack = list(reversed(list(descs)))
    viewed = set()
    result = []
    while stack:
        desc = stack.pop()
        name = di_name(desc)
        if name in viewed:
            continue
        viewed.add(name)
        result.append(desc)
        children = [get_package(dep.name, newest) for dep in desc.deps]
        stack.extend(reversed([c for c in children if c is not None]))
    return result


def get_reverses(newest: Newest) -> Reverses:
    """Map each indexed dependency target to the packages relying on it."""
    tuples = [
        (dep.name, (rel, dep.range))
        for rel in sorted(newest)
        if newest[rel].desc is not None
        for dep in newest[rel].desc.deps
    ]
    tuples.sort(key=lambda t: t[0])
    reverses: Reverses = {}
    for dep, group in groupby(tuples, key=lambda t: t[0]):
        info = newest.get(dep)
        if info is None:
            continue
        reverses[dep] = (info.version, [rel for _, rel in group])
    return reverses
