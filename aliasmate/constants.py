"""Application constants and user-facing messages"""

import re

APP_NAME = "aliasmate"
CONFIG_DIR_ENV = "ALIASMATE_CONFIG_DIR"
DEBUG_ENV = "ALIASMATE_DEBUG"
LAST_CMD_ENV = "ALIASMATE_LAST_CMD"
ALIAS_FILE_NAME = "config.json"
METADATA_FILE_NAME = "metadata.json"

NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
ENV_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Subcommand verbs that may never be used as short aliases
RESERVED_COMMANDS = frozenset({
    "prev",
    "run",
    "save",
    "list",
    "ls",
    "search",
    "find",
    "delete",
    "rm",
    "edit",
    "export",
    "import",
    "config",
    "changelog",
    "alias",
    "help",
    "version",
    "recent",
    "validate",
    "completion",
})

HELP_MESSAGES = {
    "no_commands": "No saved commands found.",
    "use_save_or_prev": f"Use '{APP_NAME} save' or '{APP_NAME} prev <name>' to save a command",
    "use_list": f"Use '{APP_NAME} list' to see all saved commands",
    "use_alias_list": f"Use '{APP_NAME} alias --list' to see all aliases",
    "use_recent": f"Use '{APP_NAME} recent' to see recently executed commands",
}

ERROR_MESSAGES = {
    "command_not_found": "No saved command found with name '{name}'",
    "could_not_save": "Could not save command",
    "could_not_delete": "Could not delete command",
    "could_not_update": "Could not update command",
    "could_not_write": "Could not write to file",
    "file_not_found": "File not found: {path}",
    "invalid_json": "Could not parse file. Make sure it is valid JSON or YAML.",
    "invalid_format": "Invalid file format. Expected an 'aliases' object.",
    "invalid_alias_structure": "Invalid alias structure for '{name}'. Missing required fields (command, directory).",
    "directory_not_found": "Directory does not exist: {path}",
    "history_not_available": "Could not retrieve previous command from history.",
    "empty_input": "{field} cannot be empty",
    "invalid_name": "{field} can only contain letters, numbers, dashes, and underscores",
}
