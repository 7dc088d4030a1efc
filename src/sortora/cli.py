"""Command line interface for Sortora."""

from __future__ import annotations

import asyncio
import difflib
import logging
import logging.handlers
from pathlib import Path
from typing import Any, Iterable, Optional

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from sortora.config import ConfigError, ConfigManager, SortoraConfig, resolve_with_precedence
from sortora.config.models import LoggingSettings
from sortora.ingestion import DirectoryScanner
from sortora.organization import (
    ActionExecutor,
    DestinationResolver,
    ExecutionResult,
    PathLockManager,
    ResolutionMode,
    Suggestion,
    SuggestionAction,
    SuggestionBuilder,
    SuggestionFilter,
    UndoEngine,
    UndoResult,
    explain_suggestion,
    filter_suggestions,
)
from sortora.organization.fs import default_trash_dir, empty_trash, list_trash
from sortora.rules import RuleMatcher, RuleSet
from sortora.state import OperationLog, OperationRecord, StateError

console = Console()
_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command appropriately.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        details: Optional structured details to include in the payload.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """

    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        if details is not None:
            payload["error"]["details"] = details
        console.print_json(data=payload)
        raise SystemExit(1)

    if isinstance(original, click.ClickException):
        raise original

    raise click.ClickException(message) from original


def _emit_message(message: Any, *, mode: str, quiet: bool, summary_only: bool) -> None:
    """Conditionally print CLI output according to quiet/summary settings.

    Args:
        message: Renderable or string to emit.
        mode: Output mode identifier (`detail`, `summary`, `warning`, or `error`).
        quiet: Whether quiet mode is active.
        summary_only: Whether only summary lines should be emitted.
    """

    if quiet and mode != "error":
        return

    important_modes = {"summary", "warning", "error"}
    if summary_only and mode not in important_modes:
        return

    console.print(message)


def _format_summary_line(command: str, root: Path | str, metrics: dict[str, Any]) -> str:
    """Return a consistent summary line for CLI commands."""

    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary for {root}: {parts}.[/green]"


def _configure_logging(settings: LoggingSettings) -> None:
    """Attach console and optional rotating-file handlers to the package logger.

    Args:
        settings: Logging section of the loaded configuration.
    """

    level = logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        level = logging.WARNING

    logger = logging.getLogger("sortora")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(level)
    logger.propagate = False

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        markup=False,
        rich_tracebacks=True,
        log_time_format="[%H:%M:%S]",
    )
    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    if settings.file:
        log_path = Path(settings.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=str(log_path),
            maxBytes=settings.max_size_mb * 1024 * 1024,
            backupCount=settings.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        file_handler.setLevel(level)
        logger.addHandler(file_handler)


def _load_config() -> SortoraConfig:
    manager = ConfigManager()
    manager.ensure_exists()
    config = manager.load()
    _configure_logging(config.logging)
    return config


def _resolve_output_modes(
    ctx: click.Context,
    config: SortoraConfig,
    *,
    quiet: bool,
    summary_mode: bool,
    json_output: bool,
) -> tuple[bool, bool]:
    explicit_quiet = ctx.get_parameter_source("quiet") == ParameterSource.COMMANDLINE
    explicit_summary = ctx.get_parameter_source("summary_mode") == ParameterSource.COMMANDLINE

    quiet_enabled = quiet if explicit_quiet else config.cli.quiet_default
    summary_only = summary_mode if explicit_summary else config.cli.summary_default

    if json_output:
        if explicit_quiet and quiet_enabled:
            raise click.ClickException("--json cannot be combined with --quiet.")
        if explicit_summary and summary_only:
            raise click.ClickException("--json cannot be combined with --summary.")
        return False, False

    if quiet_enabled and summary_only:
        raise click.ClickException(
            "Quiet and summary modes cannot both be enabled. Adjust CLI defaults or flags."
        )
    return quiet_enabled, summary_only


def _trash_dir(config: SortoraConfig) -> Path:
    configured = config.destinations.get("trash")
    return Path(configured).expanduser() if configured else default_trash_dir()


def _open_log(config: SortoraConfig) -> OperationLog:
    return OperationLog(Path(config.storage.database_path).expanduser())


def _needs_confirmation(suggestion: Suggestion, config: SortoraConfig) -> bool:
    if suggestion.requires_confirmation:
        return True
    return config.settings.confirm_destructive and suggestion.action is SuggestionAction.DELETE


def _suggestion_table(suggestions: Iterable[Suggestion], root: Path) -> Table:
    table = Table(title="Suggestions", show_lines=False)
    table.add_column("File", overflow="fold")
    table.add_column("Action")
    table.add_column("Destination", overflow="fold")
    table.add_column("Rule")
    table.add_column("Confidence", justify="right")
    for suggestion in suggestions:
        destination = suggestion.destination
        if destination is not None:
            try:
                shown = str(destination.relative_to(root))
            except ValueError:
                shown = str(destination)
        else:
            shown = "-"
        table.add_row(
            escape(suggestion.file.filename),
            suggestion.action.value,
            escape(shown),
            escape(suggestion.rule_name),
            f"{suggestion.confidence:.0%}",
        )
    return table


def _suggestion_payload(suggestion: Suggestion) -> dict[str, Any]:
    return {
        "source": str(suggestion.file.path),
        "destination": str(suggestion.destination) if suggestion.destination else None,
        "action": suggestion.action.value,
        "rule": suggestion.rule_name,
        "confidence": suggestion.confidence,
        "requires_confirmation": suggestion.requires_confirmation,
    }


def _format_history_record(record: OperationRecord) -> tuple[str, ...]:
    return (
        f"#{record.id}",
        record.created_at.astimezone().strftime("%Y-%m-%d %H:%M:%S"),
        record.type.value,
        record.source,
        record.destination or "-",
        record.rule_name or "-",
        "undone" if record.is_undone else "",
    )


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="sortora")
def cli() -> None:
    """Sortora organizes files with prioritized rules and reversible actions."""


@cli.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=str))
@click.option("-r", "--recursive", is_flag=True, help="Include all subdirectories.")
@click.option("--dry-run", is_flag=True, help="Preview suggestions without modifying files.")
@click.option("--auto", "auto_mode", is_flag=True, help="Apply confident suggestions without prompting.")
@click.option("-i", "--interactive", is_flag=True, help="Confirm each suggestion.")
@click.option(
    "--confidence",
    type=click.FloatRange(0.0, 1.0),
    help="Minimum confidence for automatic application.",
)
@click.option(
    "--global",
    "use_global",
    is_flag=True,
    help="Move files to the configured global destinations instead of organizing in place.",
)
@click.option("--explain", is_flag=True, help="Show why each suggestion was made.")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing suggestions and results.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def organize(
    ctx: click.Context,
    path: str,
    recursive: bool,
    dry_run: bool,
    auto_mode: bool,
    interactive: bool,
    confidence: Optional[float],
    use_global: bool,
    explain: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Suggest and apply organization actions for files in PATH."""

    try:
        if sum((dry_run, auto_mode, interactive)) > 1:
            raise click.ClickException("Choose only one of --dry-run, --auto, or --interactive.")
        config = _load_config()
        quiet_enabled, summary_only = _resolve_output_modes(
            ctx, config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
        )
        if interactive and json_output:
            raise click.ClickException("--json cannot be combined with --interactive.")

        root = Path(path).expanduser().resolve()
        scanner = DirectoryScanner(
            recursive=recursive,
            include_hidden=not config.settings.ignore_hidden,
            ignore_patterns=config.settings.ignore_patterns,
        )
        files = list(scanner.scan(root))

        rules = RuleSet.from_config(config)
        builder = SuggestionBuilder(RuleMatcher(), DestinationResolver(config.destinations), rules)
        mode = ResolutionMode.GLOBAL if use_global else ResolutionMode.LOCAL
        suggestions = builder.generate_suggestions(
            files, mode=mode, base_dir=None if use_global else root
        )

        if not interactive and not auto_mode and not dry_run:
            if config.settings.mode == "auto":
                auto_mode = True
            elif json_output:
                dry_run = True
            else:
                interactive = True

        min_confidence = confidence if confidence is not None else config.organization.min_confidence
        selected: list[Suggestion] = []
        skipped = 0
        if not dry_run:
            if not json_output:
                _emit_message(
                    _suggestion_table(suggestions, root),
                    mode="detail",
                    quiet=quiet_enabled,
                    summary_only=summary_only,
                )
            for suggestion in suggestions:
                if auto_mode:
                    confident = filter_suggestions(
                        [suggestion], SuggestionFilter(min_confidence=min_confidence)
                    )
                    if confident and not _needs_confirmation(suggestion, config):
                        selected.append(suggestion)
                    else:
                        skipped += 1
                    continue
                if explain:
                    console.print(escape("\n".join(explain_suggestion(suggestion))))
                target = suggestion.destination or "trash"
                prompt = f"{suggestion.action.value} {suggestion.file.filename} -> {target}?"
                if click.confirm(prompt, default=not _needs_confirmation(suggestion, config)):
                    selected.append(suggestion)
                else:
                    skipped += 1

        results: list[ExecutionResult] = []
        if selected:
            log = _open_log(config)
            try:
                for suggestion in selected:
                    log.register_path(suggestion.file.path, suggestion.file.category)
                executor = ActionExecutor(
                    log, options=config.organization, trash_dir=_trash_dir(config)
                )
                results = asyncio.run(executor.execute_many(selected))
            finally:
                log.close()

        applied = sum(1 for result in results if result.success)
        failed = len(results) - applied
        counts = {
            "files": len(files),
            "suggestions": len(suggestions),
            "applied": applied,
            "failed": failed,
            "skipped": skipped,
        }

        if json_output:
            payload = {
                "context": {
                    "root": str(root),
                    "mode": mode.value,
                    "dry_run": dry_run,
                    "min_confidence": min_confidence,
                },
                "counts": counts,
                "suggestions": [_suggestion_payload(item) for item in suggestions],
                "results": [result.to_dict() for result in results],
            }
            console.print_json(data=payload)
            return

        if dry_run:
            _emit_message(
                _suggestion_table(suggestions, root),
                mode="detail",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
            if explain:
                for suggestion in suggestions:
                    _emit_message(
                        escape("\n".join(explain_suggestion(suggestion))) + "\n",
                        mode="detail",
                        quiet=quiet_enabled,
                        summary_only=summary_only,
                    )
            _emit_message(
                "[yellow]Dry run: no files were changed.[/yellow]",
                mode="warning",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )

        for result in results:
            if not result.success:
                _emit_message(
                    f"[red]{escape(str(result.source))}: {escape(result.error or '')}[/red]",
                    mode="error",
                    quiet=quiet_enabled,
                    summary_only=summary_only,
                )
        _emit_message(
            _format_summary_line("Organize", root, counts),
            mode="summary",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
    except click.ClickException as exc:
        _handle_cli_error(str(exc.message), code="cli_error", json_output=json_output, original=exc)
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
    except StateError as exc:
        _handle_cli_error(str(exc), code="state_error", json_output=json_output, original=exc)


@cli.command()
@click.option("--id", "operation_id", type=int, help="Undo a specific operation by id.")
@click.option("--last", "last_count", type=click.IntRange(min=1), help="Undo the last N operations.")
@click.option("--all-recent", is_flag=True, help="Undo every recent operation that can be undone.")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing undo results.")
def undo(
    operation_id: Optional[int],
    last_count: Optional[int],
    all_recent: bool,
    yes: bool,
    json_output: bool,
) -> None:
    """Undo previously applied operations (the most recent one by default)."""

    try:
        if sum((operation_id is not None, last_count is not None, all_recent)) > 1:
            raise click.ClickException("Choose only one of --id, --last, or --all-recent.")
        config = _load_config()
        log = _open_log(config)
        try:
            engine = UndoEngine(log, locks=PathLockManager())
            if operation_id is not None:
                targets = [operation_id]
            elif last_count is not None:
                targets = [record.id for record in engine.undoable(last_count)]
            elif all_recent:
                targets = [record.id for record in engine.undoable(config.cli.history_limit * 5)]
            else:
                targets = [record.id for record in engine.undoable(1)]

            if not targets:
                if json_output:
                    console.print_json(data={"results": [], "counts": {"undone": 0, "failed": 0}})
                else:
                    console.print("[yellow]No undoable operations found.[/yellow]")
                return

            if len(targets) > 1 and not yes and not json_output:
                if not click.confirm(f"Undo {len(targets)} operation(s)?", default=False):
                    console.print("[yellow]Cancelled.[/yellow]")
                    return

            results: list[UndoResult] = asyncio.run(engine.undo_multiple(targets))
        finally:
            log.close()

        undone = sum(1 for result in results if result.success)
        counts = {"undone": undone, "failed": len(results) - undone}
        if json_output:
            console.print_json(
                data={"results": [result.to_dict() for result in results], "counts": counts}
            )
            return

        for result in results:
            label = result.type.value if result.type else "unknown"
            if result.success:
                console.print(f"[green]#{result.operation_id} {label}: undone[/green]")
            else:
                console.print(f"[red]#{result.operation_id} {label}: {result.error}[/red]")
        console.print(_format_summary_line("Undo", config.storage.database_path, counts))
        if counts["failed"]:
            raise SystemExit(1)
    except click.ClickException as exc:
        _handle_cli_error(str(exc.message), code="cli_error", json_output=json_output, original=exc)
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
    except StateError as exc:
        _handle_cli_error(str(exc), code="state_error", json_output=json_output, original=exc)


@cli.command()
@click.option("--limit", type=click.IntRange(min=1), help="Maximum number of operations to show.")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing the operation log.")
def history(limit: Optional[int], json_output: bool) -> None:
    """Show recently applied operations, newest first."""

    try:
        config = _load_config()
        log = _open_log(config)
        try:
            records = log.list(limit or config.cli.history_limit)
        finally:
            log.close()
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
        return
    except StateError as exc:
        _handle_cli_error(str(exc), code="state_error", json_output=json_output, original=exc)
        return

    if json_output:
        console.print_json(data={"operations": [record.model_dump(mode="json") for record in records]})
        return
    if not records:
        console.print("[yellow]No operations recorded yet.[/yellow]")
        return

    table = Table(title="Operation history")
    for column in ("Id", "When", "Type", "Source", "Destination", "Rule", "Status"):
        table.add_column(column, overflow="fold")
    for record in records:
        table.add_row(*_format_history_record(record))
    console.print(table)


@cli.command()
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing the rule set.")
def rules(json_output: bool) -> None:
    """List configured and built-in rules in evaluation order."""

    try:
        config = _load_config()
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
        return

    rule_set = RuleSet.from_config(config)
    custom = {rule.name for rule in config.rules}
    if json_output:
        console.print_json(
            data={
                "rules": [
                    {**rule.model_dump(mode="json", exclude_none=True), "custom": rule.name in custom}
                    for rule in rule_set
                ]
            }
        )
        return

    table = Table(title=f"Rules ({len(rule_set)})")
    for column in ("Priority", "Name", "Action", "Target", "Source"):
        table.add_column(column, overflow="fold")
    for rule in rule_set:
        action = rule.action
        if action.delete:
            kind = "delete"
        elif action.archive_to:
            kind = "archive"
        elif action.suggest_to:
            kind = "suggest"
        else:
            kind = "move"
        name = rule.name if rule.enabled else f"[dim]{rule.name} (disabled)[/dim]"
        table.add_row(
            str(rule.priority),
            name,
            kind,
            action.template or "-",
            "custom" if rule.name in custom else "built-in",
        )
    console.print(table)


@cli.group()
def config() -> None:
    """Manage Sortora configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules."""

    manager = ConfigManager()
    try:
        manager.ensure_exists()
        loaded = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(loaded.model_dump(mode="json", exclude_none=True), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY."""

    manager = ConfigManager()
    manager.ensure_exists()

    before = manager.read_text().splitlines()
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException("KEY must specify a dotted path such as 'settings.mode'.")

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    try:
        file_data = manager.load_file_overrides()
        node = file_data
        for segment in segments[:-1]:
            child = node.setdefault(segment, {})
            if not isinstance(child, dict):
                raise ConfigError(f"Cannot assign into '{segment}' because it is not a mapping.")
            node = child
        node[segments[-1]] = parsed_value
        resolve_with_precedence(defaults=SortoraConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(file_data)
    after = manager.read_text().splitlines()
    diff = list(
        difflib.unified_diff(
            before, after, fromfile="config.yaml (before)", tofile="config.yaml (after)", lineterm=""
        )
    )
    if diff:
        console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


@cli.group()
def trash() -> None:
    """Inspect or purge files deleted into the trash."""


@trash.command("list")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing trash entries.")
def trash_list(json_output: bool) -> None:
    """List trashed files, newest first."""

    try:
        config = _load_config()
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
        return

    entries = list_trash(_trash_dir(config))
    if json_output:
        console.print_json(
            data={
                "entries": [
                    {
                        "path": str(entry.path),
                        "original_name": entry.original_name,
                        "deleted_at": entry.deleted_at.isoformat(),
                        "size": entry.size,
                    }
                    for entry in entries
                ]
            }
        )
        return
    if not entries:
        console.print("[yellow]Trash is empty.[/yellow]")
        return
    table = Table(title="Trash")
    for column in ("Name", "Deleted", "Size"):
        table.add_column(column, overflow="fold")
    for entry in entries:
        table.add_row(
            entry.original_name,
            entry.deleted_at.astimezone().strftime("%Y-%m-%d %H:%M:%S"),
            str(entry.size),
        )
    console.print(table)


@trash.command("empty")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
def trash_empty(yes: bool) -> None:
    """Permanently delete everything in the trash."""

    try:
        config = _load_config()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    trash_dir = _trash_dir(config)
    if not yes and not click.confirm(f"Permanently delete all files in {trash_dir}?", default=False):
        console.print("[yellow]Cancelled.[/yellow]")
        return
    purge = empty_trash(trash_dir)
    for error in purge.errors:
        console.print(f"[red]{error}[/red]")
    console.print(_format_summary_line("Trash", trash_dir, {"deleted": purge.deleted, "errors": len(purge.errors)}))


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
