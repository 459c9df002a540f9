"""Shared fixtures for packdeps tests."""

import io
import tarfile

import pytest

from metadata.platform import BuildTarget, CompilerId
from versioning.parser import parse_version


@pytest.fixture
def target():
    """Linux/x86_64 with ghc 9.4.7."""
    return BuildTarget(os="linux", arch="x86_64", compiler=CompilerId("ghc", parse_version("9.4.7")))


def cabal(name, version, deps="", synopsis="", author="", maintainer="", extra=""):
    """Minimal metadata text with a library depending on ``deps``."""
    text = (
        f"name: {name}\n"
        f"version: {version}\n"
        f"synopsis: {synopsis}\n"
        f"author: {author}\n"
        f"maintainer: {maintainer}\n"
        "\n"
        "library\n"
        "  exposed-modules: M\n"
    )
    if deps:
        text += f"  build-depends: {deps}\n"
    return text + extra


def make_tar(members, compress=False):
    """Build tar bytes from (path, payload-or-None, mtime) triples.

    A None payload produces a directory member.
    """
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz" if compress else "w") as tar:
        for path, payload, mtime in members:
            info = tarfile.TarInfo(path)
            info.mtime = mtime
            if payload is None:
                info.type = tarfile.DIRTYPE
                tar.addfile(info)
            else:
                data = payload.encode("utf-8") if isinstance(payload, str) else payload
                info.size = len(data)
                tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


@pytest.fixture
def cabal_text():
    return cabal


@pytest.fixture
def tar_bytes():
    return make_tar
