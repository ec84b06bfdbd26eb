import json
import logging
import os
import shutil
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

from aliasmate.constants import ENV_NAME_PATTERN, ERROR_MESSAGES, NAME_PATTERN
from aliasmate.errors import InvalidInputError
from aliasmate.models import CommandAlias, PathMode

logger = logging.getLogger(__name__)

T = TypeVar("T")


class JsonFileStore:
    """Crash-safe persistence of one JSON object table"""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Dict[str, Any]:
        """Load the table, returning an empty one if missing or unreadable"""
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning("Could not parse %s (%s)", self.path, e)
            self._quarantine()
            return {}
        except OSError as e:
            logger.error("Could not read %s: %s", self.path, e)
            return {}

        if not isinstance(data, dict):
            logger.warning("Expected a JSON object in %s, found %s", self.path, type(data).__name__)
            self._quarantine()
            return {}
        return data

    def _quarantine(self) -> None:
        """Move a corrupted file aside so the next save cannot destroy it"""
        backup_path = self.path.with_name(f"{self.path.name}.corrupted")
        counter = 1
        # Never overwrite an earlier quarantined copy
        while backup_path.exists():
            backup_path = self.path.with_name(f"{self.path.name}.corrupted.{counter}")
            counter += 1
        try:
            os.replace(self.path, backup_path)
            logger.warning("Moved unreadable file to %s; starting with an empty table", backup_path)
        except OSError as e:
            logger.error("Could not move %s aside: %s", self.path, e)

    def save(self, table: Dict[str, Any]) -> bool:
        """Write the table to a temp file and rename it over the real one"""
        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=str(self.path.parent),
                prefix=f".{self.path.name}.",
                suffix=".tmp",
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(table, f, indent=2, default=str)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error("Error writing %s: %s", self.path, e)
            if tmp_path and os.path.exists(tmp_path):
                try:
                    os.unlink(tmp_path)
                except OSError:
                    logger.debug("Could not remove temp file %s", tmp_path)
            return False


class MetadataCodec(Generic[T]):
    """Declares the key and value shape one subsystem owns in the metadata table"""

    def __init__(
        self,
        key: str,
        decode: Callable[[Any], T],
        encode: Callable[[T], Any],
        default: Callable[[], T],
    ):
        self.key = key
        self.decode = decode
        self.encode = encode
        self.default = default


class MetadataStore:
    """Typed access to the generic metadata table; unknown keys are left untouched"""

    def __init__(self, store: JsonFileStore):
        self.store = store

    def get(self, codec: MetadataCodec[T]) -> T:
        table = self.store.load()
        if codec.key not in table:
            return codec.default()
        try:
            return codec.decode(table[codec.key])
        except (ValueError, TypeError, AttributeError, KeyError) as e:
            logger.warning("Ignoring malformed metadata '%s': %s", codec.key, e)
            return codec.default()

    def set(self, codec: MetadataCodec[T], value: T) -> bool:
        table = self.store.load()
        table[codec.key] = codec.encode(value)
        return self.store.save(table)


def validate_name(name: str, field: str = "Name") -> str:
    """Trim and check a command or short alias name"""
    name = (name or "").strip()
    if not name:
        raise InvalidInputError(ERROR_MESSAGES["empty_input"].format(field=field))
    if not NAME_PATTERN.match(name):
        raise InvalidInputError(ERROR_MESSAGES["invalid_name"].format(field=field))
    return name


def validate_env_names(env: Optional[Dict[str, str]]) -> None:
    if not env:
        return
    invalid = [key for key in env if not ENV_NAME_PATTERN.match(key)]
    if invalid:
        raise InvalidInputError(f"Invalid environment variable names: {', '.join(invalid)}")


def normalize_directory(directory: str) -> str:
    return os.path.abspath(os.path.expanduser(directory))


class AliasStorage:
    """Handle storage and retrieval of saved commands"""

    def __init__(self, store: JsonFileStore, backup_dir: Optional[Path] = None):
        self.store = store
        self.backup_dir = backup_dir or store.path.parent / "backups"

    def list_all(self) -> Dict[str, CommandAlias]:
        """Load every well-formed record from disk"""
        aliases = {}
        for name, data in self.store.load().items():
            try:
                aliases[name] = CommandAlias.from_dict(data)
            except ValueError as e:
                logger.warning("Skipping invalid saved command '%s': %s", name, e)
        return aliases

    def get(self, name: str) -> Optional[CommandAlias]:
        return self.list_all().get(name)

    def exists(self, name: str) -> bool:
        return self.get(name) is not None

    def set(
        self,
        name: str,
        command: str,
        directory: str,
        path_mode: Optional[PathMode] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> bool:
        """Create or update a command, return True if it was written"""
        name = validate_name(name)
        command = (command or "").strip()
        if not command:
            raise InvalidInputError(ERROR_MESSAGES["empty_input"].format(field="Command"))
        directory = (directory or "").strip()
        if not directory:
            raise InvalidInputError(ERROR_MESSAGES["empty_input"].format(field="Directory"))
        validate_env_names(env)
        if path_mode is not None:
            try:
                path_mode = PathMode.parse(path_mode)
            except ValueError:
                raise InvalidInputError(f"Invalid path mode: {path_mode}")

        directory = normalize_directory(directory)
        if not os.path.isdir(directory):
            logger.warning(ERROR_MESSAGES["directory_not_found"].format(path=directory))

        table = self.store.load()
        existing = None
        if name in table:
            try:
                existing = CommandAlias.from_dict(table[name])
            except ValueError:
                existing = None

        now = datetime.now()
        alias = CommandAlias(
            command=command,
            directory=directory,
            path_mode=path_mode or (existing.path_mode if existing else PathMode.SAVED),
            env=dict(env) if env is not None else (existing.env if existing else None),
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )
        table[name] = alias.to_dict()
        return self.store.save(table)

    def delete(self, name: str) -> bool:
        """Remove a command, return True if it existed and the table was written"""
        table = self.store.load()
        if name not in table:
            return False
        del table[name]
        return self.store.save(table)

    def load_raw(self) -> Dict[str, Any]:
        """The table exactly as stored, for export"""
        return self.store.load()

    def save_raw(self, table: Dict[str, Any]) -> bool:
        """Replace the whole table without per-field validation"""
        return self.store.save(table)

    def create_backup(self) -> Optional[Path]:
        """Create timestamped backup of the current table"""
        if not self.store.path.exists():
            return None

        self.backup_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        backup_path = self.backup_dir / f"config_{timestamp}.json"
        try:
            shutil.copy2(self.store.path, backup_path)
        except OSError as e:
            logger.warning("Could not create backup: %s", e)
            return None
        # Keep only last 10 backups
        self.cleanup_old_backups(keep=10)
        return backup_path

    def cleanup_old_backups(self, keep: int = 10) -> None:
        backups = sorted(self.backup_dir.glob("config_*.json"))
        if len(backups) > keep:
            for backup in backups[:-keep]:
                backup.unlink()
