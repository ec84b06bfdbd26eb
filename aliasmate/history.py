"""Read the previous command from the user's shell history"""

import logging
import re
from pathlib import Path
from typing import List, Mapping, Optional

from aliasmate.constants import APP_NAME, LAST_CMD_ENV

logger = logging.getLogger(__name__)

ZSH_EXTENDED = re.compile(r"^:\s*\d+:\d+;")


def history_files(environ: Mapping[str, str], home: Path) -> List[Path]:
    """Candidate history files for the user's shell, best guess first"""
    shell = environ.get("SHELL", "")
    if "zsh" in shell:
        return [home / ".zsh_history"]
    if "bash" in shell:
        return [home / ".bash_history"]
    if "fish" in shell:
        return [home / ".local" / "share" / "fish" / "fish_history"]
    return [
        home / ".zsh_history",
        home / ".bash_history",
        home / ".sh_history",
        home / ".history",
    ]


def _is_own_invocation(line: str) -> bool:
    return line.startswith(APP_NAME) or line.startswith("am ")


def parse_history_line(line: str) -> str:
    """Strip zsh extended-history and fish prefixes from one line"""
    line = line.strip()
    if ZSH_EXTENDED.match(line):
        line = line.split(";", 1)[1].strip()
    if line.startswith("- cmd:"):
        line = line[len("- cmd:"):].strip()
    return line


def get_last_command(environ: Mapping[str, str], home: Optional[Path] = None) -> Optional[str]:
    """Most recent history entry that is not an aliasmate invocation"""
    passed = environ.get(LAST_CMD_ENV, "").strip()
    if passed and not _is_own_invocation(passed):
        return passed

    home = home or Path.home()
    for path in history_files(environ, home):
        if not path.exists():
            continue
        try:
            lines = path.read_text(encoding="utf-8", errors="replace").splitlines()
        except OSError as e:
            logger.debug("Could not read history file %s: %s", path, e)
            return None
        for raw in reversed(lines):
            line = parse_history_line(raw)
            # fish stores metadata lines such as "  when: 1700000000"
            if not line or raw.startswith(("  when:", "  paths:", "    - ")):
                continue
            if not _is_own_invocation(line):
                return line
        return None
    return None


def get_history_config_instructions(environ: Mapping[str, str]) -> str:
    shell = environ.get("SHELL", "")
    if "zsh" in shell:
        return "Add to ~/.zshrc:\n  setopt INC_APPEND_HISTORY\nThen run: source ~/.zshrc"
    if "bash" in shell:
        return 'Add to ~/.bashrc:\n  PROMPT_COMMAND="history -a"\nThen run: source ~/.bashrc'
    if "fish" in shell:
        return "Fish writes history immediately by default"
    return (
        "Configure your shell to write history immediately.\n"
        'For bash: Add PROMPT_COMMAND="history -a" to ~/.bashrc\n'
        'For zsh: Add "setopt INC_APPEND_HISTORY" to ~/.zshrc'
    )
