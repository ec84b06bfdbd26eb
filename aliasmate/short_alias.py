"""Short names that point at saved commands (lets 'b' mean 'build-prod')"""

import logging
from typing import Dict, List, Optional

from aliasmate.constants import ERROR_MESSAGES, HELP_MESSAGES, RESERVED_COMMANDS
from aliasmate.errors import InvalidInputError, NotFoundError, StorageError
from aliasmate.storage import AliasStorage, MetadataCodec, MetadataStore, validate_name

logger = logging.getLogger(__name__)


def _decode_mappings(raw) -> Dict[str, str]:
    if not isinstance(raw, dict):
        raise ValueError("short alias map must be an object")
    return {str(k): v for k, v in raw.items() if isinstance(v, str)}


SHORT_ALIASES = MetadataCodec(
    key="command_aliases",
    decode=_decode_mappings,
    encode=dict,
    default=dict,
)


class ShortAliasManager:
    """Name -> name indirection stored in the metadata table"""

    def __init__(self, metadata: MetadataStore, aliases: AliasStorage):
        self.metadata = metadata
        self.aliases = aliases

    def list_all(self) -> Dict[str, str]:
        return self.metadata.get(SHORT_ALIASES)

    def resolve(self, name: str) -> str:
        """Return the target of a short alias, or the name itself"""
        return self.list_all().get(name, name)

    def is_short_alias(self, name: str) -> bool:
        return name in self.list_all()

    def create(self, short: str, target: str) -> Optional[str]:
        """Point short at target; returns the previous target when re-pointing"""
        target = (target or "").strip()
        if not target:
            raise InvalidInputError(ERROR_MESSAGES["empty_input"].format(field="Command name"))
        short = validate_name(short, field="Alias name")
        if short.lower() in RESERVED_COMMANDS:
            raise InvalidInputError(f"'{short}' is a reserved command name and cannot be used as an alias")
        if not self.aliases.exists(target):
            raise NotFoundError(
                ERROR_MESSAGES["command_not_found"].format(name=target),
                hint=HELP_MESSAGES["use_list"],
            )

        mappings = self.list_all()
        previous = mappings.get(short)
        mappings[short] = target
        if not self.metadata.set(SHORT_ALIASES, mappings):
            raise StorageError("Failed to save alias")
        if previous is not None and previous != target:
            logger.debug("Re-pointed short alias %s from %s to %s", short, previous, target)
        return previous

    def remove(self, short: str) -> str:
        """Delete a short alias and return the name it pointed to"""
        short = (short or "").strip()
        if not short:
            raise InvalidInputError(ERROR_MESSAGES["empty_input"].format(field="Alias name"))

        mappings = self.list_all()
        if short not in mappings:
            raise InvalidInputError(f"Alias '{short}' not found", hint=HELP_MESSAGES["use_alias_list"])

        target = mappings.pop(short)
        if not self.metadata.set(SHORT_ALIASES, mappings):
            raise StorageError("Failed to remove alias")
        return target

    def dangling(self) -> List[str]:
        """Short aliases whose target command no longer exists"""
        saved = self.aliases.list_all()
        return sorted(short for short, target in self.list_all().items() if target not in saved)
