"""Error taxonomy and process exit codes"""

from enum import IntEnum
from typing import Optional


class ExitCode(IntEnum):
    """Exit codes reported to the invoking shell"""
    SUCCESS = 0
    GENERAL_ERROR = 1
    INVALID_INPUT = 2
    NOT_FOUND = 3
    PERMISSION_DENIED = 4


class AliasMateError(Exception):
    """Base class for errors that abort a command with a message"""

    exit_code = ExitCode.GENERAL_ERROR

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.hint = hint


class InvalidInputError(AliasMateError):
    """Malformed name, command, env var name or recent reference"""
    exit_code = ExitCode.INVALID_INPUT


class NotFoundError(AliasMateError):
    """Unknown alias, short alias, recent index, file or directory"""
    exit_code = ExitCode.NOT_FOUND


class StorageError(AliasMateError):
    """A table file could not be written"""
    exit_code = ExitCode.GENERAL_ERROR


class PermissionDeniedError(AliasMateError):
    """A file or directory is not readable or writable"""
    exit_code = ExitCode.PERMISSION_DENIED
