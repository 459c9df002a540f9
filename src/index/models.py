"""Data models for the newest-version index and its query results."""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from versioning.models import Dependency, PackageIdentifier, Version, VersionRange


@dataclass(frozen=True)
class DescInfo:
    """Read-only summary of one package release."""
    haystack: str  # lower-cased author + maintainer + name, for substring search
    deps: Tuple[Dependency, ...]
    package: PackageIdentifier
    synopsis: str


@dataclass(frozen=True)
class PackInfo:
    """Newest known release of a package plus its extracted metadata."""
    version: Version
    desc: Optional[DescInfo]
    epoch: int


@dataclass(frozen=True)
class AllNewest:
    """Every dependency accepts the newest version of its target."""


@dataclass(frozen=True)
class WontAccept:
    """Dependencies rejecting the newest version of their target.

    ``packages`` holds (name, rendered newest version) pairs sorted by name;
    ``outdated_at`` is the latest upload time among them.
    """
    packages: List[Tuple[str, str]]
    outdated_at: datetime


# The newest version of every package.
Newest = Dict[str, PackInfo]

# Dependency name -> (its newest version, [(relying package, required range)]).
Reverses = Dict[str, Tuple[Version, List[Tuple[str, VersionRange]]]]
