"""Static checks for saved commands"""

import os
import re
import shutil
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from aliasmate.constants import ENV_NAME_PATTERN

SHELL_BUILTINS = {
    "cd", "echo", "export", "source", ".", "eval", "exec", "set", "unset", "alias",
    "bg", "fg", "jobs", "kill", "pwd", "test", "[", "exit", "return",
}

# (pattern, description) pairs flagged in dry-run previews
DANGEROUS_PATTERNS = [
    (re.compile(r"\brm\s+(-[a-zA-Z]*[rR][a-zA-Z]*f|-[a-zA-Z]*f[a-zA-Z]*[rR])\b|\brm\s+-[rR]\s+-f\b|\brm\s+-f\s+-[rR]\b"),
     "Recursive force delete (rm -rf)"),
    (re.compile(r"\bdd\b.*\bof=/dev/"), "Raw write to a device (dd of=/dev/...)"),
    (re.compile(r">\s*/dev/(sd|hd|nvme|disk)"), "Redirect onto a disk device"),
    (re.compile(r"\bmkfs(\.\w+)?\b"), "Filesystem format (mkfs)"),
    (re.compile(r":\(\)\s*\{\s*:\s*\|\s*:\s*&\s*\}\s*;\s*:"), "Fork bomb"),
    (re.compile(r"\bchmod\s+(-[a-zA-Z]*R[a-zA-Z]*\s+)+0?777\b|\bchmod\s+0?777\s+-R\b"),
     "Recursive world-writable permissions (chmod -R 777)"),
]


@dataclass
class ValidationResult:
    """Result of a single check"""
    valid: bool
    message: Optional[str] = None
    warning: bool = False


@dataclass
class ValidationIssue:
    type: str  # "error" or "warning"
    field: str
    message: str


@dataclass
class ValidationReport:
    valid: bool
    issues: List[ValidationIssue] = field(default_factory=list)

    @property
    def errors(self) -> List[ValidationIssue]:
        return [issue for issue in self.issues if issue.type == "error"]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [issue for issue in self.issues if issue.type == "warning"]


def validate_command_exists(command: str, path: Optional[str] = None) -> ValidationResult:
    """Check that the first word of the command can be found"""
    if not command or not command.strip():
        return ValidationResult(False, "Command cannot be empty")

    first_word = command.strip().split()[0]

    if re.match(r"^[|&;<>()]", first_word):
        return ValidationResult(True, "Command starts with shell operator - validation skipped", warning=True)
    if first_word in SHELL_BUILTINS:
        return ValidationResult(True)

    if "/" in first_word:
        if not os.path.exists(first_word):
            return ValidationResult(False, f"Command file '{first_word}' not found")
        if not os.path.isfile(first_word):
            return ValidationResult(False, f"Path '{first_word}' exists but is not a file")
        if not os.access(first_word, os.X_OK):
            return ValidationResult(True, f"File '{first_word}' exists but may not be executable", warning=True)
        return ValidationResult(True)

    if shutil.which(first_word, path=path) is None:
        return ValidationResult(
            True, f"Command '{first_word}' not found in PATH - it may not be installed", warning=True
        )
    return ValidationResult(True)


def validate_directory(directory: str) -> ValidationResult:
    if not directory or not directory.strip():
        return ValidationResult(False, "Directory cannot be empty")

    resolved = os.path.abspath(os.path.expanduser(directory))
    if not os.path.exists(resolved):
        return ValidationResult(False, f"Directory '{directory}' does not exist")
    if not os.path.isdir(resolved):
        return ValidationResult(False, f"Path '{directory}' exists but is not a directory")
    if not os.access(resolved, os.R_OK):
        return ValidationResult(False, f"Directory '{directory}' is not readable")
    if not os.access(resolved, os.W_OK):
        return ValidationResult(True, f"Directory '{directory}' is not writable", warning=True)
    return ValidationResult(True)


def _check_balance(text: str, open_char: str, close_char: str, label: str) -> Optional[str]:
    depth = 0
    for char in text:
        if char == open_char:
            depth += 1
        elif char == close_char:
            depth -= 1
            if depth < 0:
                return f"Unmatched closing {label} in command"
    if depth != 0:
        return f"Unmatched opening {label} in command"
    return None


def validate_shell_syntax(command: str) -> ValidationResult:
    """Superficial balance checks; this is not a shell parser"""
    if not command or not command.strip():
        return ValidationResult(False, "Command cannot be empty")

    text = command.strip()

    # Heredocs have their own quoting rules
    if re.search(r"<<-?\s*['\"]?[A-Za-z_]+['\"]?", text):
        return ValidationResult(True)

    for char, label in (("'", "single quote"), ('"', "double quote"), ("`", "backtick")):
        if text.count(char) % 2 != 0:
            return ValidationResult(False, f"Unclosed {label} in command")

    for open_char, close_char, label in (("(", ")", "parenthesis"), ("{", "}", "brace"), ("[", "]", "bracket")):
        problem = _check_balance(text, open_char, close_char, label)
        if problem:
            return ValidationResult(False, problem)

    if re.search(r"\|\s+\|", text):
        return ValidationResult(True, "Suspicious pipe sequence detected", warning=True)

    if re.search(r"[|&]$", text):
        return ValidationResult(False, "Command ends with pipe or ampersand operator")

    return ValidationResult(True)


def validate_env_vars(env: Optional[Dict[str, str]]) -> ValidationResult:
    if not env:
        return ValidationResult(True)
    invalid = [key for key in env if not ENV_NAME_PATTERN.match(key)]
    if invalid:
        return ValidationResult(False, f"Invalid environment variable names: {', '.join(invalid)}")
    return ValidationResult(True)


def _add_issue(issues: List[ValidationIssue], result: ValidationResult, field_name: str, fallback: str) -> None:
    if not result.valid:
        issues.append(ValidationIssue("error", field_name, result.message or fallback))
    elif result.warning and result.message:
        issues.append(ValidationIssue("warning", field_name, result.message))


def validate_command_alias(
    command: str,
    directory: str,
    env: Optional[Dict[str, str]] = None,
    path: Optional[str] = None,
) -> ValidationReport:
    """Run every check and collect errors and warnings"""
    issues: List[ValidationIssue] = []
    _add_issue(issues, validate_shell_syntax(command), "command", "Invalid shell syntax")
    _add_issue(issues, validate_command_exists(command, path=path), "command", "Command validation failed")
    _add_issue(issues, validate_directory(directory), "directory", "Directory validation failed")
    if env:
        _add_issue(issues, validate_env_vars(env), "environment", "Environment variable validation failed")
    return ValidationReport(valid=not any(issue.type == "error" for issue in issues), issues=issues)


def find_dangerous_patterns(command: str) -> List[str]:
    """Descriptions of destructive constructs found in command"""
    return [description for pattern, description in DANGEROUS_PATTERNS if pattern.search(command)]
