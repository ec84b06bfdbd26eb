"""Tests for the shell executor"""

import os
import subprocess
from unittest.mock import patch

import pytest

from aliasmate.errors import InvalidInputError, NotFoundError
from aliasmate.executor import CommandExecutor


@pytest.fixture
def run_env(tmp_path):
    return {"PATH": "/usr/bin:/bin", "HOME": str(tmp_path)}


class TestCommandExecutor:

    def test_success(self, tmp_path, run_env):
        result = CommandExecutor().execute("true", str(tmp_path), run_env)

        assert result.success is True
        assert result.exit_code == 0

    def test_exit_code_is_reported(self, tmp_path, run_env):
        result = CommandExecutor().execute("exit 3", str(tmp_path), run_env)

        assert result.success is False
        assert result.exit_code == 3

    def test_runs_in_directory_with_env(self, tmp_path, run_env):
        out = tmp_path / "out.txt"
        run_env["GREETING"] = "hello"

        CommandExecutor().execute('printf "%s %s" "$GREETING" "$(pwd)" > out.txt', str(tmp_path), run_env)

        assert out.read_text() == f"hello {os.path.realpath(tmp_path)}"

    def test_shell_features_pass_through(self, tmp_path, run_env):
        CommandExecutor().execute("echo a && echo b | tr b c > piped.txt", str(tmp_path), run_env)

        assert (tmp_path / "piped.txt").read_text() == "c\n"

    def test_missing_directory(self, tmp_path, run_env):
        with pytest.raises(NotFoundError):
            CommandExecutor().execute("true", str(tmp_path / "gone"), run_env)

    def test_file_instead_of_directory(self, tmp_path, run_env):
        target = tmp_path / "file.txt"
        target.write_text("x")

        with pytest.raises(InvalidInputError, match="not a directory"):
            CommandExecutor().execute("true", str(target), run_env)

    @pytest.mark.parametrize("command", ["", "   "])
    def test_empty_command(self, tmp_path, run_env, command):
        with pytest.raises(InvalidInputError):
            CommandExecutor().execute(command, str(tmp_path), run_env)

    def test_killed_by_signal(self, tmp_path, run_env):
        completed = subprocess.CompletedProcess(args="sleep 10", returncode=-15)

        with patch("aliasmate.executor.subprocess.run", return_value=completed):
            result = CommandExecutor().execute("sleep 10", str(tmp_path), run_env)

        assert result.success is False
        assert result.exit_code == 143

    def test_spawn_failure(self, tmp_path, run_env):
        with patch("aliasmate.executor.subprocess.run", side_effect=OSError("no shell")):
            result = CommandExecutor().execute("ls", str(tmp_path), run_env)

        assert result.success is False
        assert result.exit_code is None
        assert "no shell" in result.stderr

    def test_command_passed_verbatim(self, tmp_path, run_env):
        completed = subprocess.CompletedProcess(args="", returncode=0)

        with patch("aliasmate.executor.subprocess.run", return_value=completed) as mock_run:
            CommandExecutor().execute("echo 'a  b' $HOME", str(tmp_path), run_env)

        args, kwargs = mock_run.call_args
        assert args[0] == "echo 'a  b' $HOME"
        assert kwargs["shell"] is True
        assert kwargs["cwd"] == str(tmp_path)
        assert kwargs["env"] == run_env
