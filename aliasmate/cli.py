import json
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

import click
import yaml
from rapidfuzz import fuzz
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from aliasmate import __version__
from aliasmate.config import Config, configure_logging, debug_enabled
from aliasmate.constants import APP_NAME, ERROR_MESSAGES, HELP_MESSAGES
from aliasmate.env import categorize_env_vars, get_user_env_vars
from aliasmate.errors import AliasMateError, ExitCode, InvalidInputError, NotFoundError, StorageError
from aliasmate.executor import CommandExecutor
from aliasmate.history import get_history_config_instructions, get_last_command
from aliasmate.models import CommandAlias, PathMode
from aliasmate.porter import CONFLICT_ACTIONS, AliasPorter
from aliasmate.recent import RecentTracker
from aliasmate.runner import RunOrchestrator
from aliasmate.short_alias import ShortAliasManager
from aliasmate.storage import AliasStorage, JsonFileStore, MetadataStore
from aliasmate.validator import validate_command_alias

console = Console()

FUZZY_THRESHOLD = 70


@dataclass
class AppContext:
    """Services shared by every subcommand of one invocation"""
    config: Config
    storage: AliasStorage
    metadata: MetadataStore
    short_aliases: ShortAliasManager
    recent: RecentTracker

    @classmethod
    def from_config(cls, config: Config) -> "AppContext":
        storage = AliasStorage(JsonFileStore(config.alias_path), backup_dir=config.backup_dir)
        metadata = MetadataStore(JsonFileStore(config.metadata_path))
        return cls(
            config=config,
            storage=storage,
            metadata=metadata,
            short_aliases=ShortAliasManager(metadata, storage),
            recent=RecentTracker(metadata),
        )

    def orchestrator(self) -> RunOrchestrator:
        return RunOrchestrator(
            aliases=self.storage,
            short_aliases=self.short_aliases,
            recent=self.recent,
            executor=CommandExecutor(),
            environ=dict(os.environ),
            cwd=os.getcwd(),
            console=console,
        )


def report_error(error: AliasMateError) -> None:
    console.print(f"[red]✗ Error:[/] {escape(error.message)}")
    if error.hint:
        console.print(f"[yellow]{escape(error.hint)}[/]")


class AliasMateGroup(click.Group):
    """Turns AliasMateError into a one-line message and its exit code"""

    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except AliasMateError as e:
            report_error(e)
            ctx.exit(int(e.exit_code))


def _save_failed(message: str = ERROR_MESSAGES["could_not_save"]) -> StorageError:
    return StorageError(message, hint=f"Check permissions of the config directory ('{APP_NAME} config')")


def _dir_marker(directory: str) -> str:
    return "" if os.path.isdir(directory) else " [red]\\[DIR NOT FOUND][/]"


def _parse_env_pairs(pairs) -> Dict[str, str]:
    env = {}
    for pair in pairs:
        if "=" not in pair:
            raise InvalidInputError(f"Expected KEY=VALUE, got '{pair}'")
        key, value = pair.split("=", 1)
        env[key.strip()] = value
    return env


def _time_ago(when: datetime, now: Optional[datetime] = None) -> str:
    if now is None:
        now = datetime.now(when.tzinfo) if when.tzinfo else datetime.now()
    seconds = int((now - when).total_seconds())
    if seconds < 60:
        return "just now"

    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24
    weeks = days // 7
    months = max(1, days // 30)
    for amount, unit, limit in ((minutes, "minute", 60), (hours, "hour", 24), (days, "day", 7), (weeks, "week", 4)):
        if amount < limit:
            return f"{amount} {unit}{'s' if amount > 1 else ''} ago"
    return f"{months} month{'s' if months > 1 else ''} ago"


def _truncate(command: str, max_length: int = 80) -> str:
    if len(command) <= max_length:
        return command
    first_line = command.split("\n")[0]
    if len(first_line) <= max_length:
        return first_line + " [...]"
    return first_line[:max_length] + "..."


def _print_validation(report, blocking_fields=("command", "environment")) -> bool:
    """Print issues; returns True if a blocking error was found"""
    blocked = False
    for issue in report.issues:
        if issue.type == "error" and issue.field in blocking_fields:
            console.print(f"[red]✗ {issue.field}:[/] {escape(issue.message)}")
            blocked = True
        else:
            console.print(f"[yellow]⚠ {issue.field}:[/] {escape(issue.message)}")
    return blocked


@click.group(cls=AliasMateGroup, invoke_without_command=True)
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory holding saved commands (default ~/.config/aliasmate)",
)
@click.option("--debug", is_flag=True, help="Show debug logging")
@click.version_option(version=__version__, prog_name=APP_NAME)
@click.pass_context
def main(ctx, config_dir, debug):
    """aliasmate - save shell commands with their directory and re-run them from anywhere"""
    configure_logging(debug or debug_enabled())
    ctx.obj = AppContext.from_config(Config(config_dir))
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@main.command()
@click.argument("name")
@click.argument("path", required=False)
@click.option("--dry-run", is_flag=True, help="Preview what will execute without running it")
@click.option("--verbose", "-v", is_flag=True, help="Show saved environment values (masked) in previews")
@click.pass_obj
def run(app, name, path, dry_run, verbose):
    """Run a saved command, by name, short alias or @N.

    PATH overrides the working directory for this run.
    """
    outcome = app.orchestrator().run(name, override_path=path, dry_run=dry_run, verbose=verbose)
    if outcome.exit_code != ExitCode.SUCCESS:
        raise SystemExit(outcome.exit_code)


@main.command()
@click.option("--name", "-n", prompt="Name for this command", help="Command name")
@click.option("--command", "-c", prompt="Command to save", help="Shell command to save")
@click.option("--directory", "-d", type=click.Path(), help="Working directory (default: current directory)")
@click.option("--path-mode", type=click.Choice([m.value for m in PathMode]), default=PathMode.SAVED.value,
              help="Run in the saved directory or in whatever directory you are in")
@click.option("--env", "-e", "env_pairs", multiple=True, metavar="KEY=VALUE", help="Environment variable to save")
@click.option("--capture-env", is_flag=True, help="Save your current non-system environment variables")
@click.option("--no-validate", is_flag=True, help="Skip validation checks")
@click.option("--force", "-f", is_flag=True, help="Overwrite an existing command without asking")
@click.pass_obj
def save(app, name, command, directory, path_mode, env_pairs, capture_env, no_validate, force):
    """Save a new command"""
    directory = directory or os.getcwd()
    env = get_user_env_vars(os.environ) if capture_env else {}
    env.update(_parse_env_pairs(env_pairs))

    if not no_validate:
        report = validate_command_alias(command, directory, env or None)
        if _print_validation(report):
            raise InvalidInputError("Validation failed", hint="Fix the issues above or pass --no-validate")

    if capture_env and env:
        sensitive, _ = categorize_env_vars(env)
        if sensitive:
            console.print(f"[yellow]⚠ Capturing {len(sensitive)} sensitive variable(s):[/] "
                          f"{escape(', '.join(sorted(sensitive)))}")

    name = name.strip()
    if app.storage.exists(name) and not force:
        if not click.confirm(f"A command named '{name}' already exists. Overwrite?", default=False):
            console.print("[yellow]Save cancelled[/]")
            return

    if not app.storage.set(name, command, directory, PathMode(path_mode), env or None):
        raise _save_failed()

    alias = app.storage.get(name)
    console.print(f"[green]✔[/] Saved command as [cyan]{escape(name)}[/]")
    console.print(f"[dim]  Command: {escape(alias.command)}[/]")
    console.print(f"[dim]  Directory: {escape(alias.directory)}[/]")
    console.print(f"[dim]  Path mode: {alias.path_mode.value}[/]")
    if alias.env:
        console.print(f"[dim]  Environment: {len(alias.env)} variable(s)[/]")


@main.command()
@click.argument("name")
@click.pass_obj
def prev(app, name):
    """Save the previous command from your shell history"""
    last_command = get_last_command(os.environ)
    if not last_command:
        console.print(f"[red]✗ Error:[/] {ERROR_MESSAGES['history_not_available']}")
        console.print("[dim]Most shells only write history when the shell exits.[/]")
        console.print("[yellow]Configure your shell for real-time history writing:[/]")
        console.print(f"[cyan]{escape(get_history_config_instructions(os.environ))}[/]")
        console.print(f"[dim]Or use '{APP_NAME} save' to enter the command manually[/]")
        raise SystemExit(ExitCode.GENERAL_ERROR)

    cwd = os.getcwd()
    if not app.storage.set(name, last_command, cwd, PathMode.SAVED):
        raise _save_failed()
    console.print(f"[green]✔[/] Saved command as [cyan]{escape(name.strip())}[/]")
    console.print(f"[dim]  Command: {escape(last_command)}[/]")
    console.print(f"[dim]  Directory: {escape(cwd)}[/]")
    console.print(f"[dim]  Path mode: saved (use '{APP_NAME} edit {escape(name.strip())}' to change)[/]")


@main.command()
@click.argument("name")
@click.option("--command", "-c", help="New command text")
@click.option("--directory", "-d", type=click.Path(), help="New working directory")
@click.option("--path-mode", type=click.Choice([m.value for m in PathMode]), help="New path mode")
@click.option("--env", "-e", "env_pairs", multiple=True, metavar="KEY=VALUE", help="Set a saved environment variable")
@click.option("--clear-env", is_flag=True, help="Remove all saved environment variables")
@click.option("--no-validate", is_flag=True, help="Skip validation checks")
@click.pass_obj
def edit(app, name, command, directory, path_mode, env_pairs, clear_env, no_validate):
    """Edit a saved command (prompts when no options are given)"""
    alias = app.storage.get(name)
    if alias is None:
        raise NotFoundError(ERROR_MESSAGES["command_not_found"].format(name=name), hint=HELP_MESSAGES["use_list"])

    if command is None and directory is None and path_mode is None and not env_pairs and not clear_env:
        console.print(f"[blue]Editing command: {escape(name)}[/]")
        command = click.prompt("Command", default=alias.command)
        directory = click.prompt("Working directory", default=alias.directory)
        path_mode = click.prompt(
            "Path mode",
            type=click.Choice([m.value for m in PathMode]),
            default=alias.path_mode.value,
        )

    new_command = command if command is not None else alias.command
    new_directory = directory if directory is not None else alias.directory
    new_mode = PathMode(path_mode) if path_mode else alias.path_mode
    new_env = {} if clear_env else dict(alias.env or {})
    new_env.update(_parse_env_pairs(env_pairs))

    if (
        new_command.strip() == alias.command
        and os.path.abspath(os.path.expanduser(new_directory.strip() or ".")) == alias.directory
        and new_mode == alias.path_mode
        and new_env == (alias.env or {})
    ):
        console.print("[yellow]No changes made[/]")
        return

    if not no_validate:
        report = validate_command_alias(new_command, new_directory, new_env or None)
        if _print_validation(report):
            raise InvalidInputError("Validation failed", hint="Fix the issues above or pass --no-validate")

    if not app.storage.set(name, new_command, new_directory, new_mode, new_env):
        raise _save_failed(ERROR_MESSAGES["could_not_update"])

    updated = app.storage.get(name)
    console.print(f"[green]✔[/] Updated command [cyan]{escape(name)}[/]")
    console.print(f"[dim]  Command: {escape(updated.command)}[/]")
    console.print(f"[dim]  Directory: {escape(updated.directory)}[/]")
    console.print(f"[dim]  Path mode: {updated.path_mode.value}[/]")


@main.command()
@click.argument("name")
@click.pass_obj
def delete(app, name):
    """Delete a saved command"""
    # Malformed records can still be deleted
    if name not in app.storage.load_raw():
        hint = HELP_MESSAGES["use_list"]
        if app.short_aliases.is_short_alias(name):
            hint = f"'{name}' is a short alias; remove it with '{APP_NAME} alias --remove {name}'"
        raise NotFoundError(ERROR_MESSAGES["command_not_found"].format(name=name), hint=hint)
    if not app.storage.delete(name):
        raise _save_failed(ERROR_MESSAGES["could_not_delete"])
    console.print(f"[green]✔[/] Deleted command [cyan]{escape(name)}[/]")

    orphaned = app.short_aliases.dangling()
    if orphaned:
        console.print(f"[yellow]⚠ Short aliases now point nowhere:[/] {escape(', '.join(orphaned))}")


main.add_command(delete, name="rm")


def _alias_rows(aliases: Dict[str, CommandAlias]) -> List[dict]:
    rows = []
    for name in sorted(aliases):
        row = {"name": name}
        row.update(aliases[name].to_dict())
        rows.append(row)
    return rows


@main.command(name="list")
@click.option("--format", "output_format", type=click.Choice(["table", "json", "yaml", "compact"]),
              default="table", help="Output format")
@click.pass_obj
def list_commands(app, output_format):
    """List all saved commands"""
    aliases = app.storage.list_all()

    if output_format == "json":
        click.echo(json.dumps(_alias_rows(aliases), indent=2))
        return
    if output_format == "yaml":
        click.echo(yaml.safe_dump(_alias_rows(aliases), default_flow_style=False, sort_keys=False), nl=False)
        return

    if not aliases:
        console.print(f"[yellow]{HELP_MESSAGES['no_commands']}[/]")
        console.print(f"[dim]{HELP_MESSAGES['use_save_or_prev']}[/]")
        return

    if output_format == "compact":
        for name in sorted(aliases):
            click.echo(f"{name}: {aliases[name].command}")
        return

    table = Table(title=f"Saved commands ({len(aliases)})")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Command", style="green")
    table.add_column("Directory")
    table.add_column("Mode", style="dim")
    for name in sorted(aliases):
        alias = aliases[name]
        table.add_row(
            escape(name),
            escape(_truncate(alias.command, 60)),
            escape(alias.directory) + _dir_marker(alias.directory),
            alias.path_mode.value,
        )
    console.print(table)


main.add_command(list_commands, name="ls")


@main.command()
@click.argument("query")
@click.option("--fuzzy", is_flag=True, help="Tolerate typos when matching")
@click.pass_obj
def search(app, query, fuzzy):
    """Search saved commands by name, command text or directory"""
    term = query.strip().lower()
    if not term:
        raise InvalidInputError("Please provide a search query")

    aliases = app.storage.list_all()
    if not aliases:
        console.print(f"[yellow]{HELP_MESSAGES['no_commands']}[/]")
        return

    results = []
    for name in sorted(aliases):
        alias = aliases[name]
        fields = (("name", name), ("command", alias.command), ("directory", alias.directory))
        for field_name, value in fields:
            if fuzzy:
                matched = fuzz.partial_ratio(term, value.lower()) >= FUZZY_THRESHOLD
            else:
                matched = term in value.lower()
            if matched:
                results.append((name, field_name))
                break

    if not results:
        console.print(f"[yellow]No commands found matching '{escape(query)}'[/]")
        return

    console.print(f"[bold]Found {len(results)} command(s) matching '{escape(query)}':[/]\n")
    for name, field_name in results:
        alias = aliases[name]
        console.print(f"  [cyan]{escape(name)}[/]{_dir_marker(alias.directory)} [dim](matched in {field_name})[/]")
        console.print(f"[dim]    Command: {escape(alias.command)}[/]")
        console.print(f"[dim]    Directory: {escape(alias.directory)}[/]")


main.add_command(search, name="find")


@main.command()
@click.option("--limit", type=click.IntRange(min=1), help="Maximum number of commands to display")
@click.option("--clear", is_flag=True, help="Clear execution history")
@click.option("--max-size", type=click.IntRange(min=1), help="Set how many executions are remembered")
@click.pass_obj
def recent(app, limit, clear, max_size):
    """Show recently executed commands (run them with @N)"""
    if clear:
        app.recent.clear()
        console.print("[green]✔[/] Execution history cleared")
        return
    if max_size:
        app.recent.set_max_size(max_size)
        console.print(f"[green]✔[/] Execution history will keep {max_size} entries")
        return

    names = app.recent.list_deduplicated(limit)
    if not names:
        console.print("[yellow]No recent commands found.[/]")
        console.print(f"[dim]Commands appear here after you run them with '{APP_NAME} run'[/]")
        return

    counts = app.recent.execution_counts()
    last_run = app.recent.last_executed()
    aliases = app.storage.list_all()

    console.print(f"[bold]Recent commands ({len(names)}):[/]\n")
    for index, name in enumerate(names):
        console.print(f"  [cyan]@{index}  {escape(name)}[/]")
        alias = aliases.get(name)
        if alias:
            console.print(f"[dim]      Command: {escape(_truncate(alias.command))}[/]")
            console.print(f"[dim]      Directory: {escape(alias.directory)}[/]")
        else:
            console.print("[red]      \\[Command no longer exists][/]")
        count = counts.get(name, 0)
        console.print(f"[dim]      Last run: {_time_ago(last_run[name])} ({count} time{'s' if count != 1 else ''})[/]")
    console.print(f"\n[dim]💡 Run a recent command with '{APP_NAME} run @N'[/]")


@main.command(name="alias")
@click.argument("short", required=False)
@click.argument("target", required=False)
@click.option("--list", "list_all", is_flag=True, help="List all short aliases")
@click.option("--remove", "remove_name", metavar="SHORT", help="Remove a short alias")
@click.pass_obj
def alias_command(app, short, target, list_all, remove_name):
    """Create, list, or remove short aliases for saved commands"""
    if remove_name:
        former = app.short_aliases.remove(remove_name)
        console.print(f"[green]✔[/] Removed alias [cyan]{escape(remove_name)}[/] (pointed to '{escape(former)}')")
        return

    if short and target:
        previous = app.short_aliases.create(short, target)
        if previous and previous != target:
            console.print(f"[yellow]Alias '{escape(short)}' already pointed to '{escape(previous)}'; updated[/]")
        console.print(f"[green]✔[/] Created alias [cyan]{escape(short)}[/] → '{escape(target)}'")
        console.print(f"[dim]  You can now run: {APP_NAME} run {escape(short)}[/]")
        return

    if (short or target) and not list_all:
        raise InvalidInputError(
            "Invalid arguments",
            hint=f"Usage: {APP_NAME} alias <short> <command-name> | --list | --remove <short>",
        )

    mappings = app.short_aliases.list_all()
    if not mappings:
        console.print("[yellow]No aliases defined.[/]")
        console.print(f"[dim]Create one with: {APP_NAME} alias <short> <command-name>[/]")
        return

    aliases = app.storage.list_all()
    dangling = set(app.short_aliases.dangling())
    console.print(f"[bold]Aliases ({len(mappings)}):[/]\n")
    for short_name in sorted(mappings):
        target_name = mappings[short_name]
        console.print(f"  [cyan]{escape(short_name)} → {escape(target_name)}[/]")
        if short_name in dangling:
            console.print("[red]    ⚠ Target command not found[/]")
            continue
        saved = aliases[target_name]
        console.print(f"[dim]    Command: {escape(saved.command)}[/]")
        console.print(f"[dim]    Directory: {escape(saved.directory)}[/]")


@main.command()
@click.argument("name", required=False)
@click.option("--all", "validate_all", is_flag=True, help="Validate all saved commands")
@click.pass_obj
def validate(app, name, validate_all):
    """Validate one saved command, or all of them"""
    aliases = app.storage.list_all()
    if name and not validate_all:
        resolved = app.short_aliases.resolve(name)
        if resolved not in aliases:
            raise NotFoundError(ERROR_MESSAGES["command_not_found"].format(name=name), hint=HELP_MESSAGES["use_list"])
        targets = [resolved]
    else:
        if not aliases:
            console.print(f"[yellow]{HELP_MESSAGES['no_commands']}[/]")
            return
        targets = sorted(aliases)

    failed = 0
    for target in targets:
        alias = aliases[target]
        report = validate_command_alias(alias.command, alias.directory, alias.env)
        if report.valid and not report.issues:
            console.print(f"[green]✔[/] [cyan]{escape(target)}[/]")
            continue
        mark = "[yellow]⚠[/]" if report.valid else "[red]✗[/]"
        console.print(f"{mark} [cyan]{escape(target)}[/]")
        for issue in report.issues:
            color = "red" if issue.type == "error" else "yellow"
            console.print(f"    [{color}]{issue.type}[/] {issue.field}: {escape(issue.message)}")
        if not report.valid:
            failed += 1

    if len(targets) > 1:
        console.print(f"\n[bold]{len(targets) - failed} of {len(targets)} command(s) valid[/]")
    if failed:
        raise SystemExit(ExitCode.INVALID_INPUT)


@main.command()
@click.argument("file", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--format", "output_format", type=click.Choice(["json", "yaml"]), default="json", help="Export format")
@click.pass_obj
def export(app, file, output_format):
    """Export all saved commands to a file"""
    if not app.storage.load_raw():
        console.print(f"[yellow]{HELP_MESSAGES['no_commands']}[/]")
        return
    filepath = file.expanduser().resolve()
    if filepath.exists():
        console.print(f"[yellow]⚠ File already exists and will be overwritten: {escape(str(filepath))}[/]")
    count = AliasPorter(app.storage).export_to_file(filepath, output_format)
    console.print(f"[green]✔[/] Exported {count} command(s) to [cyan]{escape(str(filepath))}[/]")


@main.command(name="import")
@click.argument("file", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--on-conflict", type=click.Choice(CONFLICT_ACTIONS), default="skip",
              help="What to do when a command with the same name exists")
@click.pass_obj
def import_commands(app, file, on_conflict):
    """Import commands from a JSON or YAML export file"""
    summary = AliasPorter(app.storage).import_from_file(file.expanduser().resolve(), on_conflict)
    if summary.backup_path:
        console.print(f"[dim]Backup created: {escape(str(summary.backup_path))}[/]")
    if not summary.imported and not summary.skipped:
        console.print(f"[yellow]{HELP_MESSAGES['no_commands']}[/]")
        return
    console.print("[green]✔[/] Import complete")
    console.print(f"[dim]  Imported: {len(summary.imported)} command(s)[/]")
    for old, new in summary.renamed.items():
        console.print(f"[dim]  Renamed: {escape(old)} → {escape(new)}[/]")
    if summary.skipped:
        console.print(f"[dim]  Skipped: {len(summary.skipped)} command(s)[/]")


@main.command()
@click.pass_obj
def config(app):
    """Show where saved commands are stored"""
    console.print(f"[blue]{APP_NAME} configuration:[/]")
    console.print(f"[dim]  Config directory: {escape(str(app.config.config_dir))}[/]")
    console.print(f"[dim]  Commands file: {escape(str(app.config.alias_path))}[/]")
    console.print(f"[dim]  Metadata file: {escape(str(app.config.metadata_path))}[/]")
    console.print(f"[dim]  Saved commands: {len(app.storage.list_all())}[/]")


if __name__ == "__main__":
    main()
