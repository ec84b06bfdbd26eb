"""Tests for command validation"""

import os

import pytest

from aliasmate.validator import (
    find_dangerous_patterns,
    validate_command_alias,
    validate_command_exists,
    validate_directory,
    validate_env_vars,
    validate_shell_syntax,
)


class TestShellSyntax:

    @pytest.mark.parametrize(
        "command",
        [
            "npm run build",
            "echo 'hello world'",
            'git commit -m "fix: thing"',
            "ls | grep foo",
            "make && make install",
            "echo $(date) ${HOME} [x]",
            "cat <<EOF\nit's fine\nEOF",
        ],
    )
    def test_valid(self, command):
        assert validate_shell_syntax(command).valid

    @pytest.mark.parametrize(
        "command,message",
        [
            ("echo 'oops", "single quote"),
            ('echo "oops', "double quote"),
            ("echo `date", "backtick"),
            ("echo $(date", "opening parenthesis"),
            ("echo )(", "closing parenthesis"),
            ("echo ${HOME", "brace"),
            ("ls |", "pipe or ampersand"),
        ],
    )
    def test_invalid(self, command, message):
        result = validate_shell_syntax(command)

        assert not result.valid
        assert message in result.message

    def test_suspicious_pipe_is_warning(self):
        result = validate_shell_syntax("ls | | grep x")

        assert result.valid
        assert result.warning

    def test_empty(self):
        assert not validate_shell_syntax("  ").valid


class TestCommandExists:

    def test_builtin(self):
        assert validate_command_exists("cd /tmp").valid

    def test_found_on_path(self, tmp_path):
        tool = tmp_path / "mytool"
        tool.write_text("#!/bin/sh\n")
        tool.chmod(0o755)

        result = validate_command_exists("mytool --flag", path=str(tmp_path))

        assert result.valid
        assert not result.warning

    def test_missing_from_path_is_warning(self, tmp_path):
        result = validate_command_exists("definitely-not-here", path=str(tmp_path))

        assert result.valid
        assert result.warning
        assert "not found in PATH" in result.message

    def test_missing_explicit_path_is_error(self, tmp_path):
        result = validate_command_exists(f"{tmp_path}/nope")

        assert not result.valid

    def test_explicit_path_not_executable(self, tmp_path):
        script = tmp_path / "script.sh"
        script.write_text("echo hi\n")
        script.chmod(0o644)

        result = validate_command_exists(str(script))

        if os.access(str(script), os.X_OK):
            pytest.skip("running with privileges that ignore file modes")
        assert result.valid
        assert result.warning


class TestDirectory:

    def test_existing(self, tmp_path):
        assert validate_directory(str(tmp_path)).valid

    def test_missing(self, tmp_path):
        result = validate_directory(str(tmp_path / "gone"))

        assert not result.valid
        assert "does not exist" in result.message

    def test_file(self, tmp_path):
        target = tmp_path / "f"
        target.write_text("")

        assert not validate_directory(str(target)).valid


def test_validate_env_vars():
    assert validate_env_vars({"GOOD_NAME": "1", "_ALSO": "2"}).valid
    result = validate_env_vars({"BAD-NAME": "1"})
    assert not result.valid
    assert "BAD-NAME" in result.message


class TestValidateCommandAlias:

    def test_collects_issues_by_field(self, tmp_path):
        report = validate_command_alias(
            "definitely-not-here 'unclosed", str(tmp_path / "gone"), {"1X": "y"}, path=str(tmp_path)
        )

        assert not report.valid
        assert {issue.field for issue in report.errors} == {"command", "directory", "environment"}
        assert report.warnings[0].field == "command"

    def test_clean(self, tmp_path):
        report = validate_command_alias("echo hi", str(tmp_path))

        assert report.valid
        assert report.issues == []


class TestDangerousPatterns:

    @pytest.mark.parametrize(
        "command",
        [
            "rm -rf /",
            "rm -fr build",
            "rm -Rf node_modules",
            "sudo rm -r -f /var",
            "dd if=/dev/zero of=/dev/sda",
            "cat image > /dev/sdb",
            "mkfs.ext4 /dev/sdc1",
            ":(){ :|:& };:",
            "chmod -R 777 /srv",
        ],
    )
    def test_flagged(self, command):
        assert find_dangerous_patterns(command)

    @pytest.mark.parametrize(
        "command",
        ["rm file.txt", "rm -r build", "npm run build", "chmod 755 script.sh", "echo rm -rfoo"],
    )
    def test_not_flagged(self, command):
        assert find_dangerous_patterns(command) == []
