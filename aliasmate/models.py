"""Data models for saved commands and execution history"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Optional

DEFAULT_RECENT_MAX_SIZE = 50


def parse_timestamp(value) -> datetime:
    """Parse an ISO 8601 timestamp, accepting a trailing 'Z'"""
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            pass
    return datetime.now()


class PathMode(str, Enum):
    """Where a saved command runs"""
    SAVED = "saved"
    CURRENT = "current"

    @classmethod
    def parse(cls, value: Optional[str]) -> "PathMode":
        """Absent values mean 'saved' for files written before path modes existed"""
        if value is None or value == "":
            return cls.SAVED
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


@dataclass
class CommandAlias:
    """Represents a saved command"""
    command: str
    directory: str
    path_mode: PathMode = PathMode.SAVED
    env: Optional[Dict[str, str]] = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        """Convert to the on-disk record"""
        data = {
            "command": self.command,
            "directory": self.directory,
            "pathMode": self.path_mode.value,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }
        if self.env:
            data["env"] = dict(self.env)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "CommandAlias":
        """Create a command from an on-disk record"""
        if not isinstance(data, dict):
            raise ValueError("record is not an object")
        command = data.get("command")
        directory = data.get("directory")
        if not isinstance(command, str) or not isinstance(directory, str):
            raise ValueError("record is missing command or directory")

        env = data.get("env")
        if env is not None:
            if not isinstance(env, dict):
                raise ValueError("env must be an object")
            env = {str(k): str(v) for k, v in env.items()}

        return cls(
            command=command,
            directory=directory,
            path_mode=PathMode.parse(data.get("pathMode")),
            env=env or None,
            created_at=parse_timestamp(data.get("createdAt")),
            updated_at=parse_timestamp(data.get("updatedAt")),
        )


@dataclass
class ExecutionEntry:
    """One launch of a saved command"""
    command_name: str
    executed_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "commandName": self.command_name,
            "executedAt": self.executed_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ExecutionEntry":
        name = data.get("commandName") if isinstance(data, dict) else None
        if not isinstance(name, str) or not name:
            raise ValueError("entry is missing commandName")
        return cls(command_name=name, executed_at=parse_timestamp(data.get("executedAt")))


@dataclass
class RecentConfig:
    """Settings for the execution log"""
    max_size: int = DEFAULT_RECENT_MAX_SIZE

    def to_dict(self) -> dict:
        return {"maxSize": self.max_size}

    @classmethod
    def from_dict(cls, data: dict) -> "RecentConfig":
        size = data.get("maxSize") if isinstance(data, dict) else None
        if isinstance(size, bool) or not isinstance(size, int) or size < 1:
            raise ValueError("maxSize must be a positive integer")
        return cls(max_size=size)
