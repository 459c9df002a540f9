"""Construction of the newest-version table from index archives."""
from __future__ import annotations

import logging
from functools import reduce
from pathlib import Path
from typing import Iterable, List

from cli_config import PackdepsConfig, index_paths
from common.logging_utils import Timer, extra_context, is_debug_enabled
from metadata.descriptor import parse_package
from metadata.platform import BuildTarget
from versioning.parser import VersionParseError, parse_version

from .archive import ArchiveEntry, read_entries
from .models import Newest, PackInfo

logger = logging.getLogger(__name__)


def _skip(entry: ArchiveEntry, reason: str) -> None:
    if is_debug_enabled(logger):
        logger.debug(
            "Skipping index entry %s: %s",
            entry.path,
            reason,
            extra=extra_context(event="index_skip", component="builder", target=entry.path),
        )


def add_package(target: BuildTarget, newest: Newest, entry: ArchiveEntry) -> Newest:
    """Fold one archive entry into ``newest``.

    Only a strictly newer version replaces the stored entry; malformed
    entries leave the table untouched.
    """
    parts = entry.path.split("/")
    if len(parts) != 3:
        _skip(entry, "path is not package/version/file")
        return newest
    package, version_text, _ = parts
    try:
        version = parse_version(version_text)
    except VersionParseError:
        _skip(entry, "unparseable version")
        return newest

    current = newest.get(package)
    if current is not None and not version > current.version:
        return newest
    if entry.payload is None:
        _skip(entry, "not a regular file")
        return newest

    newest[package] = PackInfo(
        version=version,
        desc=parse_package(target, entry.payload),
        epoch=entry.mtime,
    )
    return newest


def build_newest(target: BuildTarget, entries: Iterable[ArchiveEntry]) -> Newest:
    """Reduce an ordered entry stream into a fresh newest table."""
    return reduce(lambda acc, entry: add_package(target, acc, entry), entries, {})


def parse_newest(target: BuildTarget, data: bytes) -> Newest:
    """Build the newest table from raw archive bytes.

    Raises:
        ArchiveError: if the archive cannot be demultiplexed.
    """
    with Timer() as t:
        entries = read_entries(data)
        newest = build_newest(target, entries)
    logger.info(
        "Indexed %d packages from %d entries in %d ms",
        len(newest),
        len(entries),
        t.duration_ms(),
    )
    return newest


def load_newest_from(target: BuildTarget, path: str) -> Newest:
    """Build the newest table from an archive file on disk."""
    logger.debug("Reading index archive %s", path)
    return parse_newest(target, Path(path).read_bytes())


def max_version(left: PackInfo, right: PackInfo) -> PackInfo:
    """The entry with the higher version; ties keep ``left``."""
    return right if right.version > left.version else left


def merge_newest(tables: List[Newest]) -> Newest:
    """Union several newest tables, keeping the higher version per package."""
    merged: Newest = {}
    for table in tables:
        for name, info in table.items():
            merged[name] = max_version(merged[name], info) if name in merged else info
    return merged


def load_newest(config: PackdepsConfig, target: BuildTarget) -> Newest:
    """Load and merge the newest tables of every configured index."""
    paths = index_paths(config)
    if not paths:
        logger.warning("No package index archives to load")
    return merge_newest([load_newest_from(target, path) for path in paths])
