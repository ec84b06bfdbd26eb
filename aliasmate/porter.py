import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from aliasmate.constants import ERROR_MESSAGES, NAME_PATTERN
from aliasmate.errors import InvalidInputError, NotFoundError, PermissionDeniedError, StorageError
from aliasmate.storage import AliasStorage

EXPORT_VERSION = "1.0"
CONFLICT_ACTIONS = ("overwrite", "skip", "rename")


@dataclass
class ImportSummary:
    """What an import did"""
    imported: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    renamed: Dict[str, str] = field(default_factory=dict)
    backup_path: Optional[Path] = None


class AliasPorter:
    """Handle import and export of saved commands"""

    def __init__(self, storage: AliasStorage):
        self.storage = storage

    def export_to_dict(self) -> Dict[str, Any]:
        """Export the raw table with metadata"""
        aliases = self.storage.load_raw()
        return {
            "exportedAt": datetime.now().isoformat(),
            "version": EXPORT_VERSION,
            "aliases": aliases,
        }

    def export_to_file(self, filepath: Path, format: str = "json") -> int:
        """Write the export file and return the number of commands exported"""
        data = self.export_to_dict()
        try:
            filepath.parent.mkdir(parents=True, exist_ok=True)
            with open(filepath, "w", encoding="utf-8") as f:
                if format == "yaml":
                    yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
                else:  # json
                    json.dump(data, f, indent=2, default=str)
        except PermissionError as e:
            raise PermissionDeniedError(f"{ERROR_MESSAGES['could_not_write']}: {e}")
        except OSError as e:
            raise StorageError(f"{ERROR_MESSAGES['could_not_write']}: {e}")
        return len(data["aliases"])

    def read_import_file(self, filepath: Path) -> Dict[str, Any]:
        """Parse and validate an export file, returning its aliases"""
        if not filepath.exists():
            raise NotFoundError(ERROR_MESSAGES["file_not_found"].format(path=filepath))

        try:
            with open(filepath, "r", encoding="utf-8") as f:
                if filepath.suffix in [".yaml", ".yml"]:
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)
        except PermissionError as e:
            raise PermissionDeniedError(str(e))
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise InvalidInputError(f"{ERROR_MESSAGES['invalid_json']} ({e})")

        if not isinstance(data, dict) or not isinstance(data.get("aliases"), dict):
            raise InvalidInputError(ERROR_MESSAGES["invalid_format"])

        aliases = data["aliases"]
        for name, record in aliases.items():
            if not self._is_valid_record(record):
                raise InvalidInputError(ERROR_MESSAGES["invalid_alias_structure"].format(name=name))
            if not NAME_PATTERN.match(str(name)):
                raise InvalidInputError(ERROR_MESSAGES["invalid_name"].format(field=f"Name '{name}'"))
        return aliases

    @staticmethod
    def _is_valid_record(record: Any) -> bool:
        return (
            isinstance(record, dict)
            and isinstance(record.get("command"), str)
            and isinstance(record.get("directory"), str)
            and bool(record["command"].strip())
            and bool(record["directory"].strip())
        )

    def _free_name(self, name: str, taken: Dict[str, Any]) -> str:
        candidate = f"{name}_imported"
        counter = 2
        while candidate in taken:
            candidate = f"{name}_imported{counter}"
            counter += 1
        return candidate

    def import_from_file(self, filepath: Path, on_conflict: str = "skip") -> ImportSummary:
        """Merge commands from an export file into the table"""
        if on_conflict not in CONFLICT_ACTIONS:
            raise InvalidInputError(f"Unknown conflict action: {on_conflict}")

        incoming = self.read_import_file(filepath)
        summary = ImportSummary()
        if not incoming:
            return summary

        table = self.storage.load_raw()
        if table:
            summary.backup_path = self.storage.create_backup()

        merged = dict(table)
        for name, record in incoming.items():
            if name not in table:
                merged[name] = record
                summary.imported.append(name)
            elif on_conflict == "overwrite":
                merged[name] = record
                summary.imported.append(name)
            elif on_conflict == "rename":
                new_name = self._free_name(name, merged)
                merged[new_name] = record
                summary.renamed[name] = new_name
                summary.imported.append(new_name)
            else:
                summary.skipped.append(name)

        if not self.storage.save_raw(merged):
            raise StorageError("Could not save imported commands")
        return summary

