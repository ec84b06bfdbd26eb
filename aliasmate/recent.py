"""Bounded log of executions, used for @N references"""

from datetime import datetime
from typing import Dict, List, Optional

from aliasmate.errors import InvalidInputError, StorageError
from aliasmate.models import ExecutionEntry, RecentConfig
from aliasmate.storage import MetadataCodec, MetadataStore


def _decode_history(raw) -> List[ExecutionEntry]:
    if not isinstance(raw, list):
        raise ValueError("execution history must be a list")
    return [ExecutionEntry.from_dict(item) for item in raw]


EXECUTION_HISTORY = MetadataCodec(
    key="execution_history",
    decode=_decode_history,
    encode=lambda entries: [entry.to_dict() for entry in entries],
    default=list,
)

RECENT_CONFIG = MetadataCodec(
    key="recent_config",
    decode=RecentConfig.from_dict,
    encode=lambda config: config.to_dict(),
    default=RecentConfig,
)


class RecentTracker:
    """Newest-first execution log, deduplicated on read"""

    def __init__(self, metadata: MetadataStore):
        self.metadata = metadata

    def get_config(self) -> RecentConfig:
        return self.metadata.get(RECENT_CONFIG)

    def set_max_size(self, max_size: int) -> None:
        if max_size < 1:
            raise InvalidInputError("History size must be at least 1")
        if not self.metadata.set(RECENT_CONFIG, RecentConfig(max_size=max_size)):
            raise StorageError("Could not save history settings")
        history = self.list_raw()
        if len(history) > max_size:
            self._save(history[:max_size])

    def _save(self, history: List[ExecutionEntry]) -> None:
        if not self.metadata.set(EXECUTION_HISTORY, history):
            raise StorageError("Could not save execution history")

    def record(self, name: str, executed_at: Optional[datetime] = None) -> None:
        """Prepend an execution and drop entries beyond the cap"""
        history = self.list_raw()
        history.insert(0, ExecutionEntry(command_name=name, executed_at=executed_at or datetime.now()))
        max_size = self.get_config().max_size
        self._save(history[:max_size])

    def list_raw(self, limit: Optional[int] = None) -> List[ExecutionEntry]:
        history = self.metadata.get(EXECUTION_HISTORY)
        return history[:limit] if limit is not None else history

    def list_deduplicated(self, limit: Optional[int] = None) -> List[str]:
        """Distinct command names, most recent first"""
        seen = set()
        names = []
        for entry in self.list_raw():
            if limit is not None and len(names) >= limit:
                break
            if entry.command_name in seen:
                continue
            seen.add(entry.command_name)
            names.append(entry.command_name)
        return names

    def by_index(self, index: int) -> Optional[str]:
        if index < 0:
            return None
        names = self.list_deduplicated()
        return names[index] if index < len(names) else None

    def execution_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for entry in self.list_raw():
            counts[entry.command_name] = counts.get(entry.command_name, 0) + 1
        return counts

    def last_executed(self) -> Dict[str, datetime]:
        """Most recent execution time per command"""
        latest: Dict[str, datetime] = {}
        for entry in self.list_raw():
            latest.setdefault(entry.command_name, entry.executed_at)
        return latest

    def clear(self) -> None:
        self._save([])
