"""Resolve a reference to a saved command, then preview or execute it"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from rich.console import Console
from rich.markup import escape

from aliasmate.constants import ERROR_MESSAGES, HELP_MESSAGES
from aliasmate.env import (
    EnvironmentResolver,
    EnvOverride,
    format_env_vars,
    is_sensitive_env_var,
    mask_sensitive_env_vars,
    mask_value,
)
from aliasmate.errors import ExitCode, InvalidInputError, NotFoundError, StorageError
from aliasmate.executor import CommandExecutor, ExecutionResult
from aliasmate.models import CommandAlias
from aliasmate.paths import resolve_run_directory
from aliasmate.recent import RecentTracker
from aliasmate.short_alias import ShortAliasManager
from aliasmate.storage import AliasStorage
from aliasmate.validator import find_dangerous_patterns

logger = logging.getLogger(__name__)

RECENT_INDEX_PATTERN = re.compile(r"^[0-9]+$")

PATH_SOURCE_LABELS = {
    "override": "explicit path argument",
    "current": "path mode 'current' (your working directory)",
    "saved": "path mode 'saved' (directory stored with the command)",
}


@dataclass
class RunPlan:
    """Everything known about a run before anything is spawned"""
    reference: str
    name: str
    alias: CommandAlias
    directory: str
    path_source: str
    env: Dict[str, str]
    overrides: List[EnvOverride] = field(default_factory=list)
    masked_saved_env: Dict[str, str] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)


@dataclass
class RunOutcome:
    plan: RunPlan
    executed: bool
    result: Optional[ExecutionResult] = None
    exit_code: int = ExitCode.SUCCESS


class RunOrchestrator:
    """Drives reference -> name -> alias -> path -> env -> preview | execute -> record"""

    def __init__(
        self,
        aliases: AliasStorage,
        short_aliases: ShortAliasManager,
        recent: RecentTracker,
        executor: CommandExecutor,
        environ: Mapping[str, str],
        cwd: str,
        console: Optional[Console] = None,
    ):
        self.aliases = aliases
        self.short_aliases = short_aliases
        self.recent = recent
        self.executor = executor
        self.environ = dict(environ)
        self.cwd = cwd
        self.console = console or Console()
        self.env_resolver = EnvironmentResolver()

    def resolve_reference(self, reference: str) -> str:
        """Turn '@N' into a command name; other references pass through"""
        reference = (reference or "").strip()
        if not reference:
            raise InvalidInputError(ERROR_MESSAGES["empty_input"].format(field="Command name"))
        if not reference.startswith("@"):
            return reference

        index_text = reference[1:]
        if not RECENT_INDEX_PATTERN.match(index_text):
            raise InvalidInputError(
                f"Invalid recent reference '{reference}': expected @N with N >= 0",
                hint=HELP_MESSAGES["use_recent"],
            )
        name = self.recent.by_index(int(index_text))
        if name is None:
            raise NotFoundError(
                f"No recent command at index {index_text}",
                hint=HELP_MESSAGES["use_recent"],
            )
        return name

    def plan(self, reference: str, override_path: Optional[str] = None) -> RunPlan:
        name = self.short_aliases.resolve(self.resolve_reference(reference))
        alias = self.aliases.get(name)
        if alias is None:
            raise NotFoundError(
                ERROR_MESSAGES["command_not_found"].format(name=name),
                hint=HELP_MESSAGES["use_list"],
            )

        resolved = resolve_run_directory(alias, override_path, self.cwd)
        saved_env = alias.env or {}
        return RunPlan(
            reference=reference,
            name=name,
            alias=alias,
            directory=resolved.path,
            path_source=resolved.source,
            env=self.env_resolver.resolve(saved_env, self.environ),
            overrides=self.env_resolver.overrides(saved_env, self.environ),
            masked_saved_env=mask_sensitive_env_vars(saved_env),
            warnings=find_dangerous_patterns(alias.command),
        )

    def run(
        self,
        reference: str,
        override_path: Optional[str] = None,
        dry_run: bool = False,
        verbose: bool = False,
    ) -> RunOutcome:
        plan = self.plan(reference, override_path)

        if dry_run:
            self.render_preview(plan, verbose)
            return RunOutcome(plan=plan, executed=False)

        self._render_header(plan)
        result = self.executor.execute(plan.alias.command, plan.directory, plan.env)

        # Failed runs still count as recent executions
        try:
            self.recent.record(plan.name)
        except StorageError as e:
            logger.warning("%s", e.message)

        if result.success:
            self.console.print("\n[green]✓[/] Command completed successfully")
            return RunOutcome(plan=plan, executed=True, result=result, exit_code=ExitCode.SUCCESS)

        self.console.print("\n[red]✗[/] Command failed")
        if result.exit_code is not None:
            self.console.print(f"[red]Exit code: {result.exit_code}[/]")
        if result.stderr:
            self.console.print(escape(result.stderr))
        return RunOutcome(
            plan=plan,
            executed=True,
            result=result,
            exit_code=result.exit_code or ExitCode.GENERAL_ERROR,
        )

    def _render_overrides(self, plan: RunPlan) -> None:
        if not plan.overrides:
            return
        self.console.print("[yellow]⚠ Current environment overrides saved variables:[/]")
        for override in plan.overrides:
            saved_value, live_value = override.saved_value, override.live_value
            if is_sensitive_env_var(override.name):
                saved_value, live_value = mask_value(saved_value), mask_value(live_value)
            self.console.print(f"[dim]  {escape(override.name)}: {escape(saved_value)} → {escape(live_value)}[/]")

    def _render_header(self, plan: RunPlan) -> None:
        self.console.print(f"[blue]Running:[/] {escape(plan.alias.command)}")
        self.console.print(f"[dim]Directory: {escape(plan.directory)}[/]")
        if plan.alias.env:
            self.console.print(f"[dim]Environment: {len(plan.alias.env)} saved variable(s)[/]")
        self._render_overrides(plan)
        self.console.print()

    def render_preview(self, plan: RunPlan, verbose: bool = False) -> None:
        """Describe what a run would do without spawning anything"""
        self.console.print("[bold cyan]Dry run - nothing will be executed[/]\n")
        self.console.print(f"[bold]Command:[/] {escape(plan.alias.command)}")
        self.console.print(f"[bold]Directory:[/] {escape(plan.directory)}")
        self.console.print(f"[bold]Path source:[/] {PATH_SOURCE_LABELS[plan.path_source]}")
        if plan.name != plan.reference:
            self.console.print(f"[dim]Resolved '{escape(plan.reference)}' to '{escape(plan.name)}'[/]")

        saved_count = len(plan.alias.env or {})
        self.console.print(f"[bold]Environment:[/] {saved_count} saved variable(s)")
        if verbose and saved_count:
            for line in format_env_vars(plan.masked_saved_env):
                self.console.print(f"[dim]  {escape(line)}[/]")
        self._render_overrides(plan)

        if plan.warnings:
            self.console.print("\n[bold red]⚠ WARNING: this command contains potentially destructive operations:[/]")
            for warning in plan.warnings:
                self.console.print(f"[red]  • {escape(warning)}[/]")

        self.console.print("\n[dim]Run without --dry-run to execute.[/]")
