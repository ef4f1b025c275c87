# SPDX-License-Identifier: MIT
"""Tests for bullet-sys CLI."""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
import sys
from pathlib import Path

import pytest

from bullet_sys import __version__
from bullet_sys.cli import find_command, main, parse_variables, setup_logging


class TestParseVariables:
    """Tests for parse_variables function."""

    def test_variables_and_remaining(self) -> None:
        variables, remaining = parse_variables(
            ["TARGET=x86_64-apple-darwin", "--flag", "NUM_JOBS=4", "other"]
        )
        assert variables == {"TARGET": "x86_64-apple-darwin", "NUM_JOBS": "4"}
        assert remaining == ["--flag", "other"]

    def test_value_with_equals(self) -> None:
        variables, _ = parse_variables(["CFLAGS=-DX=1"])
        assert variables == {"CFLAGS": "-DX=1"}

    def test_empty_key_is_not_a_variable(self) -> None:
        variables, remaining = parse_variables(["=value", "--opt=1"])
        assert variables == {}
        assert remaining == ["=value", "--opt=1"]


class TestFindCommand:
    """Tests for find_command function."""

    def test_command_first(self) -> None:
        assert find_command(["fetch", "-v"]) == 0

    def test_command_after_options(self) -> None:
        assert find_command(["-v", "-R", "root", "info"]) == 3

    def test_option_values_are_not_commands(self) -> None:
        assert find_command(["-R", "build", "-s", "fetch", "TARGET=x"]) is None
        assert find_command(["--config", "info", "target"]) == 2

    def test_variables_are_not_commands(self) -> None:
        assert find_command(["TARGET=x86_64-apple-darwin", "info"]) is None


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_setup_logging_normal(self) -> None:
        setup_logging(verbose=False, debug=False)

    def test_setup_logging_verbose(self) -> None:
        setup_logging(verbose=True, debug=False)

    def test_setup_logging_debug(self) -> None:
        setup_logging(verbose=False, debug=True)


class TestCLICommands:
    """Tests for CLI commands."""

    def test_help(self) -> None:
        result = subprocess.run(
            [sys.executable, "-m", "bullet_sys.cli", "--help"],
            capture_output=True,
            text=True,
        )
        assert result.returncode == 0
        assert "bullet-sys" in result.stdout
        assert "fetch" in result.stdout

    def test_version(self) -> None:
        result = subprocess.run(
            [sys.executable, "-m", "bullet_sys.cli", "--version"],
            capture_output=True,
            text=True,
        )
        assert result.returncode == 0
        assert __version__ in result.stdout

    def test_target(self, tmp_path: Path, capsys) -> None:
        """The apple suffix is applied to the TARGET variable."""
        rc = main(["target", "-R", str(tmp_path), "TARGET=x86_64-apple-darwin"])

        assert rc == 0
        assert capsys.readouterr().out.strip() == "x86_64-apple-darwin16.7.0"

    def test_info(self, tmp_path: Path, capsys) -> None:
        rc = main(["info", "-R", str(tmp_path), "TARGET=x86_64-unknown-linux-gnu", "NUM_JOBS=3"])

        assert rc == 0
        data = json.loads(capsys.readouterr().out)
        assert data["config"]["revision"] == "2.86.1"
        assert len(data["config"]["libraries"]) == 11
        assert data["environment"]["resolved_target"] == "x86_64-unknown-linux-gnu"
        assert data["environment"]["jobs"] == 3
        assert data["environment"]["checkout"] == str(tmp_path.absolute() / "target" / "source-2.86.1")

    def test_info_with_config_file(self, tmp_path: Path, capsys) -> None:
        config = tmp_path / "bullet-sys.json"
        config.write_text(json.dumps({"revision": "master"}))

        rc = main(["info", "-R", str(tmp_path), "-c", str(config), "TARGET=x86_64-unknown-linux-gnu"])

        assert rc == 0
        assert json.loads(capsys.readouterr().out)["config"]["revision"] == "master"

    def test_missing_config_file(self, tmp_path: Path, caplog) -> None:
        with caplog.at_level(logging.ERROR):
            rc = main(["info", "-c", str(tmp_path / "missing.json")])

        assert rc == 1
        assert "Config file not found" in caplog.text

    def test_unexpected_arguments(self, tmp_path: Path, caplog) -> None:
        with caplog.at_level(logging.ERROR):
            rc = main(["target", "-R", str(tmp_path), "bogus"])

        assert rc == 1
        assert "Unexpected arguments: bogus" in caplog.text

    def test_invalid_jobs(self, tmp_path: Path) -> None:
        assert main(["target", "-R", str(tmp_path), "NUM_JOBS=lots"]) == 1

    @pytest.mark.skipif(shutil.which("false") is None, reason="false not available")
    def test_fetch_failure(self, tmp_path: Path, capsys, caplog) -> None:
        """A failing git exits non-zero and prints no directives."""
        with caplog.at_level(logging.ERROR):
            rc = main(["-R", str(tmp_path), "GIT=false", "TARGET=x86_64-unknown-linux-gnu"])

        assert rc == 1
        assert "fetch: failed to execute false clone" in caplog.text
        assert "build:" not in capsys.readouterr().out
        assert not (tmp_path / "target" / "out" / "bindings.py").exists()

    def test_root_named_like_a_command(self, tmp_path: Path, monkeypatch, capsys) -> None:
        """A root directory called `build` is not taken for the build command."""
        monkeypatch.chdir(tmp_path)
        (tmp_path / "build").mkdir()

        rc = main(["-v", "-R", "build", "target", "TARGET=x86_64-apple-darwin"])

        assert rc == 0
        assert capsys.readouterr().out.strip() == "x86_64-apple-darwin16.7.0"

    def test_script_named_like_a_command(self, tmp_path: Path, capsys) -> None:
        rc = main(["-s", "fetch", "-R", str(tmp_path), "info", "TARGET=x86_64-unknown-linux-gnu"])

        assert rc == 0
        assert json.loads(capsys.readouterr().out)["config"]["revision"] == "2.86.1"
