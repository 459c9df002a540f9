"""End-to-end tests for the packdeps command line."""

import json
import logging
from unittest.mock import MagicMock, patch

import pytest

from args import parse_args
from cli_config import PackdepsConfig, TargetConfig
from constants import ExitCodes
from packdeps import build_target, run

from conftest import cabal, make_tar


@pytest.fixture
def index(tmp_path):
    members = [
        ("base/4.17/base.cabal", cabal("base", "4.17"), 10),
        ("base/4.18/base.cabal", cabal("base", "4.18", author="GHC Team"), 20),
        ("text/2.0/text.cabal", cabal("text", "2.0", "base >=4 && <5"), 30),
        ("aeson/2.1/aeson.cabal", cabal("aeson", "2.1", "base <4.18, text ==2.*", synopsis="JSON"), 40),
        ("json/0.1/json.cabal", cabal("json", "0.1", "base", synopsis="Old (deprecated)"), 50),
    ]
    path = tmp_path / "00-index.tar"
    path.write_bytes(make_tar(members))
    return str(path)


def cli(index, *argv):
    return run(["--index", index, "--compiler-version", "9.4.7", "--os", "linux", "--arch", "x86_64"] + list(argv))


class TestArgs:
    """Argument parsing."""

    def test_check(self):
        ns = parse_args(["--index", "a.tar", "--index", "b.tar", "check", "x.cabal", "y.cabal"])
        assert ns.action == "check"
        assert ns.INDEXES == ["a.tar", "b.tar"]
        assert ns.FILES == ["x.cabal", "y.cabal"]

    def test_loglevel_is_case_insensitive(self):
        assert parse_args(["--loglevel", "debug", "search", "x"]).LOG_LEVEL == "DEBUG"

    def test_command_required(self):
        with pytest.raises(SystemExit):
            parse_args([])


class TestCommands:
    """Commands against a small index."""

    def test_check_outdated_file(self, index, tmp_path, capsys):
        local = tmp_path / "mine.cabal"
        local.write_text(cabal("mine", "0.1", "aeson >=2, base <4.18"))
        assert cli(index, "--json", "check", str(local)) == ExitCodes.EXIT_WARNINGS.value
        result = json.loads(capsys.readouterr().out)[0]
        assert result["package"] == "mine"
        assert result["wontAccept"] == [{"package": "base", "version": "4.18"}]
        assert result["outdatedAt"].startswith("1970-01-01T00:00:20")

    def test_check_up_to_date_file(self, index, tmp_path, capsys):
        local = tmp_path / "mine.cabal"
        local.write_text(cabal("mine", "0.1", "base"))
        assert cli(index, "check", str(local)) == ExitCodes.SUCCESS.value
        assert "mine-0.1: can use all newest versions" in capsys.readouterr().out

    def test_check_unparseable_file(self, index, tmp_path):
        local = tmp_path / "broken.cabal"
        local.write_text("nothing useful here {")
        assert cli(index, "check", str(local)) == ExitCodes.FILE_ERROR.value

    def test_search_excludes_deprecated(self, index, capsys):
        assert cli(index, "--json", "search", "SON") == ExitCodes.SUCCESS.value
        packages = [r["package"] for r in json.loads(capsys.readouterr().out)]
        assert packages == ["aeson"]

    def test_search_by_author(self, index, capsys):
        cli(index, "search", "ghc team")
        assert "base-4.18" in capsys.readouterr().out

    def test_reverse(self, index, capsys):
        assert cli(index, "--json", "reverse", "base") == ExitCodes.SUCCESS.value
        results = json.loads(capsys.readouterr().out)
        assert {r["package"]: r["acceptsNewest"] for r in results} == {
            "aeson": False,
            "json": True,
            "text": True,
        }

    def test_reverse_without_dependents(self, index, capsys):
        assert cli(index, "--json", "reverse", "aeson") == ExitCodes.SUCCESS.value
        assert json.loads(capsys.readouterr().out) == []

    def test_deep(self, index, capsys):
        assert cli(index, "--json", "deep", "aeson") == ExitCodes.EXIT_WARNINGS.value
        packages = [r["package"] for r in json.loads(capsys.readouterr().out)]
        assert packages == ["aeson", "base", "text"]

    def test_corrupt_index(self, tmp_path):
        bad = tmp_path / "bad.tar"
        bad.write_bytes(b"not an archive" * 100)
        assert cli(str(bad), "search", "x") == ExitCodes.FILE_ERROR.value

    def test_missing_index(self, tmp_path):
        assert cli(str(tmp_path / "missing.tar"), "search", "x") == ExitCodes.FILE_ERROR.value

    def test_bad_compiler_version(self, index, caplog):
        caplog.set_level(logging.ERROR)
        assert run(["--index", index, "--compiler-version", "new", "search", "x"]) == ExitCodes.COMPILER_ERROR.value
        assert [r.name for r in caplog.records] == ["packdeps"]

    def test_bad_config(self, index, tmp_path):
        cfg = tmp_path / "cfg.yml"
        cfg.write_text("- just\n- a list\n")
        assert run(["--config", str(cfg), "--index", index, "search", "x"]) == ExitCodes.CONFIG_ERROR.value


class TestBuildTarget:
    """Target resolution from configuration."""

    @patch("metadata.platform.subprocess.run")
    def test_probed_compiler_keeps_configured_flavor(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="... version 0.2.0\n")
        config = PackdepsConfig(target=TargetConfig(os="linux", arch="x86_64", compiler="ghcjs"))
        target = build_target(config)
        assert mock_run.call_args[0][0] == ["ghcjs", "--version"]
        assert target.compiler.flavor == "ghcjs"
