"""Environment variable merging, capture and masking"""

import re
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

# OS-level variables that are never captured with a command
SYSTEM_ENV_VARS = frozenset({
    "PATH",
    "HOME",
    "USER",
    "SHELL",
    "TERM",
    "TMPDIR",
    "PWD",
    "OLDPWD",
    "SHLVL",
    "LOGNAME",
    "LANG",
    "LC_ALL",
    "LC_CTYPE",
    "DISPLAY",
    "EDITOR",
    "VISUAL",
    "PAGER",
    "MANPATH",
    "INFOPATH",
    "XDG_CONFIG_HOME",
    "XDG_DATA_HOME",
    "XDG_CACHE_HOME",
    "SSH_AUTH_SOCK",
    "SSH_AGENT_PID",
    "_",
    "COLORTERM",
    "TERM_PROGRAM",
    "TERM_PROGRAM_VERSION",
    "TERM_SESSION_ID",
})

SYSTEM_ENV_PREFIXES = ("npm_", "NODE_", "VSCODE_")

SENSITIVE_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"key",
        r"secret",
        r"token",
        r"password",
        r"pass",
        r"auth",
        r"credential",
        r"api[_-]?key",
        r"private",
        r"cert",
        r"jwt",
        r"bearer",
        r"oauth",
    )
]


@dataclass(frozen=True)
class EnvOverride:
    """A saved variable shadowed by a different live value"""
    name: str
    saved_value: str
    live_value: str


def is_sensitive_env_var(name: str) -> bool:
    return any(pattern.search(name) for pattern in SENSITIVE_PATTERNS)


def is_system_env_var(name: str) -> bool:
    return name in SYSTEM_ENV_VARS or name.startswith(SYSTEM_ENV_PREFIXES)


def get_user_env_vars(env: Mapping[str, str]) -> Dict[str, str]:
    """Filter out system variables, leaving the ones worth saving with a command"""
    return {
        key: value
        for key, value in env.items()
        if value is not None and not is_system_env_var(key)
    }


def categorize_env_vars(env: Mapping[str, str]) -> Tuple[Dict[str, str], Dict[str, str]]:
    """Split variables into (sensitive, safe)"""
    sensitive, safe = {}, {}
    for key, value in env.items():
        if is_sensitive_env_var(key):
            sensitive[key] = value
        else:
            safe[key] = value
    return sensitive, safe


def mask_value(value: str) -> str:
    """Keep the first 3 and last 2 characters of long values, mask the rest"""
    if len(value) > 8:
        return value[:3] + "*" * (len(value) - 5) + value[-2:]
    return "*" * len(value)


def mask_sensitive_env_vars(env: Mapping[str, str]) -> Dict[str, str]:
    """Display copy of env with sensitive values masked"""
    return {
        key: mask_value(value) if is_sensitive_env_var(key) else value
        for key, value in env.items()
    }


def format_env_vars(env: Mapping[str, str], max_length: int = 50) -> List[str]:
    lines = []
    for key in sorted(env):
        value = env[key]
        if len(value) > max_length:
            value = value[:max_length] + "..."
        lines.append(f"{key}={value}")
    return lines


class EnvironmentResolver:
    """Merge saved variables into the live environment; live values win"""

    def resolve(self, saved: Optional[Mapping[str, str]], live: Mapping[str, str]) -> Dict[str, str]:
        effective = dict(live)
        for key, value in (saved or {}).items():
            if key not in live:
                effective[key] = value
        return effective

    def overrides(self, saved: Optional[Mapping[str, str]], live: Mapping[str, str]) -> List[EnvOverride]:
        """Saved variables that the live environment replaces with a different value"""
        result = []
        for key, saved_value in (saved or {}).items():
            live_value = live.get(key)
            if live_value is not None and live_value != saved_value:
                result.append(EnvOverride(name=key, saved_value=saved_value, live_value=live_value))
        return result
