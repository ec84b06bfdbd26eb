"""Run a saved command under the shell with the terminal attached"""

import logging
import os
import subprocess
from dataclasses import dataclass
from typing import Mapping, Optional

from aliasmate.errors import InvalidInputError, NotFoundError

logger = logging.getLogger(__name__)


@dataclass
class ExecutionResult:
    """Outcome of one command execution"""
    success: bool
    exit_code: Optional[int] = None
    stdout: str = ""
    stderr: str = ""


class CommandExecutor:
    """Hands the exact command text to /bin/sh; quoting is the user's business"""

    def execute(self, command: str, cwd: str, env: Mapping[str, str]) -> ExecutionResult:
        if not command or not command.strip():
            raise InvalidInputError("Command cannot be empty")

        resolved_cwd = os.path.abspath(cwd)
        if not os.path.exists(resolved_cwd):
            raise NotFoundError(f"Directory does not exist: {resolved_cwd}")
        if not os.path.isdir(resolved_cwd):
            raise InvalidInputError(f"Path is not a directory: {resolved_cwd}")

        logger.debug("Executing %r in %s", command, resolved_cwd)
        try:
            # stdin/stdout/stderr stay attached to the terminal
            completed = subprocess.run(
                command,
                shell=True,
                cwd=resolved_cwd,
                env=dict(env),
            )
        except OSError as e:
            return ExecutionResult(success=False, stderr=str(e))

        returncode = completed.returncode
        if returncode == 0:
            return ExecutionResult(success=True, exit_code=0)
        if returncode < 0:
            # Killed by a signal; report it the way shells do
            returncode = 128 - returncode
        return ExecutionResult(
            success=False,
            exit_code=returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
