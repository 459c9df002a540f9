"""Tests for build target identity and compiler providers."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from metadata.platform import (
    BuildTarget,
    CompilerDetectionError,
    CompilerId,
    GhcCompilerProvider,
    StaticCompilerProvider,
    host_target,
    parse_compiler_version,
)
from versioning.parser import parse_version


class TestBuildTarget:
    """Normalisation of target tags."""

    def test_normalises_tags(self):
        t = BuildTarget("Darwin", "AMD64", CompilerId("GHC", parse_version("9.2")))
        assert t.os == "osx"
        assert t.arch == "x86_64"
        assert t.compiler.flavor == "ghc"

    def test_unknown_tags_are_lowercased(self):
        assert BuildTarget("FreeBSD", "riscv64", CompilerId("ghc", parse_version("9"))).os == "freebsd"


class TestProviders:
    """Compiler identity discovery."""

    def test_parse_compiler_version(self):
        output = "The Glorious Glasgow Haskell Compilation System, version 9.4.7\n"
        assert parse_compiler_version(output) == parse_version("9.4.7")

    @pytest.mark.parametrize("output", ["", "ghc version unknown"])
    def test_parse_compiler_version_errors(self, output):
        with pytest.raises(CompilerDetectionError):
            parse_compiler_version(output)

    @patch("metadata.platform.subprocess.run")
    def test_ghc_provider(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="... version 8.10.7\n")
        compiler = GhcCompilerProvider().compiler_id()
        assert compiler == CompilerId("ghc", parse_version("8.10.7"))
        assert mock_run.call_args[0][0] == ["ghc", "--version"]

    @patch("metadata.platform.subprocess.run")
    def test_ghc_provider_keeps_configured_flavor(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="... version 0.2.0\n")
        compiler = GhcCompilerProvider("ghcjs", flavor="ghcjs").compiler_id()
        assert compiler == CompilerId("ghcjs", parse_version("0.2.0"))
        assert mock_run.call_args[0][0] == ["ghcjs", "--version"]

    @patch("metadata.platform.subprocess.run")
    def test_ghc_provider_missing_executable(self, mock_run):
        mock_run.side_effect = FileNotFoundError("ghc")
        with pytest.raises(CompilerDetectionError):
            GhcCompilerProvider().compiler_id()

    @patch("metadata.platform.subprocess.run")
    def test_ghc_provider_timeout(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(["ghc"], 30)
        with pytest.raises(CompilerDetectionError):
            GhcCompilerProvider().compiler_id()

    @patch("metadata.platform.subprocess.run")
    def test_ghc_provider_failure_status(self, mock_run):
        mock_run.return_value = MagicMock(returncode=1, stdout="")
        with pytest.raises(CompilerDetectionError):
            GhcCompilerProvider().compiler_id()

    def test_static_provider(self):
        assert StaticCompilerProvider("ghc", "9.6.3").compiler_id().version == parse_version("9.6.3")
        with pytest.raises(CompilerDetectionError):
            StaticCompilerProvider("ghc", "nine")

    @patch("metadata.platform.platform.machine", return_value="x86_64")
    @patch("metadata.platform.platform.system", return_value="Linux")
    def test_host_target(self, _system, _machine):
        t = host_target(StaticCompilerProvider("ghc", "9.4.7"))
        assert (t.os, t.arch) == ("linux", "x86_64")
        override = host_target(StaticCompilerProvider("ghc", "9.4.7"), "windows", "i686")
        assert (override.os, override.arch) == ("windows", "i386")
