import os
from dataclasses import dataclass
from typing import Optional

from aliasmate.models import CommandAlias, PathMode


@dataclass(frozen=True)
class ResolvedPath:
    """Working directory for a run and which rule picked it"""
    path: str
    source: str  # "override", "current" or "saved"


def resolve_path(input_path: Optional[str], base: str) -> str:
    """Resolve input_path against base, handling '', '.' and '..'"""
    if not input_path:
        return base
    if os.path.isabs(input_path):
        return os.path.normpath(input_path)
    if input_path == ".":
        return base
    if input_path == "..":
        return os.path.dirname(base.rstrip(os.sep)) or os.sep
    return os.path.normpath(os.path.join(base, os.path.expanduser(input_path)))


def resolve_run_directory(alias: CommandAlias, override: Optional[str], cwd: str) -> ResolvedPath:
    """An explicit override beats the stored path mode"""
    if override is not None:
        return ResolvedPath(path=resolve_path(override, cwd), source="override")
    if alias.path_mode == PathMode.CURRENT:
        return ResolvedPath(path=cwd, source="current")
    return ResolvedPath(path=alias.directory, source="saved")
