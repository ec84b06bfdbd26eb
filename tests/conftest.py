import io
import logging
from datetime import datetime
from typing import Dict, List, Tuple

import pytest
from rich.console import Console

from aliasmate.executor import ExecutionResult
from aliasmate.models import CommandAlias, PathMode
from aliasmate.recent import RecentTracker
from aliasmate.runner import RunOrchestrator
from aliasmate.short_alias import ShortAliasManager
from aliasmate.storage import AliasStorage, JsonFileStore, MetadataStore


class FakeExecutor:
    """Records calls instead of spawning processes"""

    def __init__(self, exit_code: int = 0):
        self.exit_code = exit_code
        self.calls: List[Tuple[str, str, Dict[str, str]]] = []

    def execute(self, command, cwd, env):
        self.calls.append((command, cwd, dict(env)))
        if self.exit_code == 0:
            return ExecutionResult(success=True, exit_code=0)
        return ExecutionResult(success=False, exit_code=self.exit_code, stderr="boom")


@pytest.fixture(autouse=True)
def reset_logging():
    """CLI runs install a rich handler and stop propagation; undo that between tests"""
    yield
    logger = logging.getLogger("aliasmate")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def config_dir(tmp_path):
    path = tmp_path / "config"
    path.mkdir()
    return path


@pytest.fixture
def project_dir(tmp_path):
    path = tmp_path / "proj"
    path.mkdir()
    return path


@pytest.fixture
def storage(config_dir) -> AliasStorage:
    return AliasStorage(JsonFileStore(config_dir / "config.json"))


@pytest.fixture
def metadata(config_dir) -> MetadataStore:
    return MetadataStore(JsonFileStore(config_dir / "metadata.json"))


@pytest.fixture
def short_aliases(metadata, storage) -> ShortAliasManager:
    return ShortAliasManager(metadata, storage)


@pytest.fixture
def recent(metadata) -> RecentTracker:
    return RecentTracker(metadata)


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def failing_executor() -> FakeExecutor:
    return FakeExecutor(exit_code=2)


@pytest.fixture
def output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def orchestrator(storage, short_aliases, recent, executor, output, tmp_path) -> RunOrchestrator:
    return RunOrchestrator(
        aliases=storage,
        short_aliases=short_aliases,
        recent=recent,
        executor=executor,
        environ={"PATH": "/usr/bin:/bin", "HOME": "/home/tester"},
        cwd=str(tmp_path),
        console=Console(file=output, width=200),
    )


@pytest.fixture
def alias(project_dir) -> CommandAlias:
    return CommandAlias(
        command="npm run build",
        directory=str(project_dir),
        path_mode=PathMode.SAVED,
        env={"NODE_ENV": "production"},
        created_at=datetime(2025, 10, 24, 16, 34, 21, 653023),
        updated_at=datetime(2025, 10, 24, 16, 34, 21, 653023),
    )
