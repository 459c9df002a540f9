"""Build target identity used to resolve conditional metadata.

The compiler version is discovered through a provider so that index
construction stays a pure function of (entries, target).
"""
from __future__ import annotations

import logging
import platform
import subprocess
from dataclasses import dataclass
from typing import Optional

from constants import Constants
from versioning.models import Version
from versioning.parser import VersionParseError, parse_version

logger = logging.getLogger(__name__)

OS_ALIASES = {
    "mingw32": "windows",
    "win32": "windows",
    "cygwin32": "windows",
    "darwin": "osx",
    "macos": "osx",
    "sunos": "solaris",
}

ARCH_ALIASES = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "i386": "i386",
    "i486": "i386",
    "i586": "i386",
    "i686": "i386",
    "x86": "i386",
    "aarch64": "aarch64",
    "arm64": "aarch64",
    "armv7l": "arm",
    "ppc64le": "ppc64",
}


class CompilerDetectionError(RuntimeError):
    """Raised when the compiler identity cannot be determined."""


def normalize_os(name: str) -> str:
    """Lower-case an OS tag and fold known aliases."""
    lowered = name.strip().lower()
    return OS_ALIASES.get(lowered, lowered)


def normalize_arch(name: str) -> str:
    """Lower-case an architecture tag and fold known aliases."""
    lowered = name.strip().lower()
    return ARCH_ALIASES.get(lowered, lowered)


@dataclass(frozen=True)
class CompilerId:
    """Compiler flavour and version, e.g. ghc 9.4.7."""
    flavor: str
    version: Version

    def __str__(self) -> str:
        return f"{self.flavor}-{self.version}"


@dataclass(frozen=True)
class BuildTarget:
    """Operating system, architecture and compiler a package is resolved for."""
    os: str
    arch: str
    compiler: CompilerId

    def __post_init__(self):
        object.__setattr__(self, "os", normalize_os(self.os))
        object.__setattr__(self, "arch", normalize_arch(self.arch))
        object.__setattr__(
            self, "compiler", CompilerId(self.compiler.flavor.lower(), self.compiler.version)
        )


class CompilerProvider:
    """Source of the compiler identity."""

    def compiler_id(self) -> CompilerId:
        raise NotImplementedError


class StaticCompilerProvider(CompilerProvider):
    """Returns a fixed compiler identity (from configuration or the CLI)."""

    def __init__(self, flavor: str, version: str):
        try:
            self._compiler = CompilerId(flavor, parse_version(version))
        except VersionParseError as e:
            raise CompilerDetectionError(f"Invalid compiler version {version!r}: {e}") from e

    def compiler_id(self) -> CompilerId:
        return self._compiler


class GhcCompilerProvider(CompilerProvider):
    """Asks the installed ``ghc`` for its version."""

    def __init__(self, executable: str = "ghc", flavor: Optional[str] = None):
        self.executable = executable
        self.flavor = flavor or Constants.DEFAULT_COMPILER

    def compiler_id(self) -> CompilerId:
        try:
            result = subprocess.run(
                [self.executable, "--version"],
                capture_output=True,
                text=True,
                timeout=Constants.COMPILER_TIMEOUT,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise CompilerDetectionError(f"Could not run {self.executable}: {e}") from e
        if result.returncode != 0:
            raise CompilerDetectionError(
                f"{self.executable} --version exited with status {result.returncode}"
            )
        return CompilerId(self.flavor, parse_compiler_version(result.stdout))


def parse_compiler_version(output: str) -> Version:
    """Read the version from the last word of ``ghc --version`` output."""
    words = output.split()
    if not words:
        raise CompilerDetectionError("Empty compiler version output")
    try:
        return parse_version(words[-1])
    except VersionParseError as e:
        raise CompilerDetectionError(f"Error parsing compiler version: {e}") from e


def host_target(provider: CompilerProvider, os_name: Optional[str] = None,
                arch: Optional[str] = None) -> BuildTarget:
    """Combine the provider's compiler with the host (or overridden) platform."""
    compiler = provider.compiler_id()
    target = BuildTarget(
        os=os_name or platform.system(),
        arch=arch or platform.machine(),
        compiler=compiler,
    )
    logger.debug("Resolving metadata for %s/%s with %s", target.os, target.arch, target.compiler)
    return target
