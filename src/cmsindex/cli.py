"""Command line interface for cmsindex."""

from __future__ import annotations

import difflib
from pathlib import Path
from typing import Any, Sequence

import click
import yaml
from rich.console import Console
from rich.syntax import Syntax

from cmsindex.config import ConfigError, ConfigManager, IndexerConfig, resolve_with_precedence
from cmsindex.content import ExportContentSource, IndexableItemDescriptor, ItemKind
from cmsindex.content.source import ContentSource
from cmsindex.errors import IndexerError, StorageError, ValidationError
from cmsindex.indexing.bulk import REINDEX_MODES, BulkReindexer, describe
from cmsindex.indexing.models import OutcomeResult, OutcomeStatus
from cmsindex.log import configure_logging
from cmsindex.search.store import DocumentStore, ElasticsearchStore
from cmsindex.services import Services, build_services

console = Console()

KIND_CHOICE = click.Choice([kind.value for kind in ItemKind])

_STATUS_STYLES = {
    OutcomeStatus.SUCCESS: ("green", "indexed", "detail"),
    OutcomeStatus.PARTIAL: ("yellow", "partial", "warning"),
    OutcomeStatus.SKIPPED: ("cyan", "skipped", "detail"),
    OutcomeStatus.DISABLED: ("cyan", "disabled", "detail"),
    OutcomeStatus.FAILED: ("red", "failed", "error"),
}


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Whether JSON mode is active.
        details: Optional structured details included in the payload.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output.
        click.ClickException: For non-JSON flows.
    """

    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        if details is not None:
            payload["error"]["details"] = details
        console.print_json(data=payload)
        raise SystemExit(1)

    raise click.ClickException(message) from original


def _emit_message(message: Any, *, mode: str, quiet: bool, summary_only: bool) -> None:
    """Print ``message`` unless quiet or summary-only mode filters it out."""
    if quiet and mode != "error":
        return
    if summary_only and mode not in {"summary", "warning", "error"}:
        return
    console.print(message)


def _format_summary_line(command: str, target: str, metrics: dict[str, Any]) -> str:
    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary for {target}: {parts}.[/green]"


def _assign_nested(target: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign ``value`` at the dotted ``path`` inside ``target``.

    Raises:
        ConfigError: If a non-mapping value is encountered along the path.
    """

    node = target
    for segment in path[:-1]:
        existing = node.get(segment)
        if existing is None:
            existing = {}
            node[segment] = existing
        elif not isinstance(existing, dict):
            raise ConfigError(
                f"Cannot assign into '{segment}' because it is not a mapping in the config file."
            )
        node = existing
    node[path[-1]] = value


def _load_config(cli_overrides: dict[str, Any] | None = None) -> IndexerConfig:
    try:
        return ConfigManager().load(cli_overrides=cli_overrides)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc


def build_store(config: IndexerConfig) -> DocumentStore:
    """Return the document store used by commands."""
    return ElasticsearchStore.from_settings(config.connection)


def _services(config: IndexerConfig, *, source: ContentSource | None = None) -> Services:
    configure_logging(config.logging, console=Console(stderr=True))
    return build_services(config, store=build_store(config), source=source)


def _load_export(path: str) -> ExportContentSource:
    try:
        return ExportContentSource.from_file(Path(path))
    except ValidationError as exc:
        raise click.ClickException(str(exc)) from exc


def _site_ids(config: IndexerConfig, sites: Sequence[int]) -> list[int]:
    if not sites:
        return config.site_ids
    unknown = [site for site in sites if config.site(site) is None]
    if unknown:
        raise click.BadParameter(f"Unknown site id(s): {unknown}", param_hint="--site")
    return list(sites)


def _format_result(label: str, result: OutcomeResult) -> tuple[str, str]:
    color, word, mode = _STATUS_STYLES[result.status]
    return f"[{color}]{word}[/{color}] {label}: {result.message}", mode


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="cmsindex")
def cli() -> None:
    """Index CMS content into Elasticsearch and keep it synchronized."""


@cli.group()
def config() -> None:
    """Manage cmsindex configuration files and overrides."""


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

    yaml_text = yaml.safe_dump(loaded.model_dump(mode="json"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY.

    Args:
        key: Dotted path such as ``frontend_fetch.enabled``.
        value: YAML-literal value written into the configuration file.

    Raises:
        click.ClickException: If parsing, assignment, or validation fails.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    before = manager.read_text().splitlines()
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException("KEY must specify a dotted path such as 'index.prefix'.")

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    try:
        file_data = manager.load_file_overrides()
        _assign_nested(file_data, segments, parsed_value)
        resolve_with_precedence(defaults=IndexerConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(file_data)
    after = manager.read_text().splitlines()
    diff = list(
        difflib.unified_diff(
            before,
            after,
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
    )
    changed = [
        line
        for line in diff
        if line.startswith(("+", "-"))
        and not line.startswith(("+++", "---", "+# Last updated", "-# Last updated"))
    ]
    if not changed:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


@cli.group()
def index() -> None:
    """Create, remove or recreate per-site indexes."""


def _run_index_operation(operation: str, sites: Sequence[int]) -> None:
    loaded = _load_config()
    services = _services(loaded)
    manager = services.index_manager
    action = {
        "create": manager.create_site,
        "remove": manager.remove_site,
        "recreate": manager.recreate_site,
    }[operation]
    for site_id in _site_ids(loaded, sites):
        try:
            changed = action(site_id)
        except StorageError as exc:
            _handle_cli_error(str(exc), code="storage_error", json_output=False, original=exc)
            return
        names = ", ".join(changed) if changed else "no changes"
        console.print(f"[green]Site {site_id}: {operation} -> {names}[/green]")


@index.command("create")
@click.option("--site", "sites", type=int, multiple=True, help="Site id; defaults to all sites.")
def index_create(sites: tuple[int, ...]) -> None:
    """Create missing indexes."""
    _run_index_operation("create", sites)


@index.command("remove")
@click.option("--site", "sites", type=int, multiple=True, help="Site id; defaults to all sites.")
def index_remove(sites: tuple[int, ...]) -> None:
    """Remove existing indexes."""
    _run_index_operation("remove", sites)


@index.command("recreate")
@click.option("--site", "sites", type=int, multiple=True, help="Site id; defaults to all sites.")
def index_recreate(sites: tuple[int, ...]) -> None:
    """Delete and recreate indexes with the current mapping."""
    _run_index_operation("recreate", sites)


@cli.command()
@click.argument("export", type=click.Path(exists=True, dir_okay=False, path_type=str))
@click.option("--mode", type=click.Choice(REINDEX_MODES), help="Reset indexes first or keep them.")
@click.option("--kind", "kinds", type=KIND_CHOICE, multiple=True, help="Limit to item kinds.")
@click.option("--site", "sites", type=int, multiple=True, help="Limit to site ids.")
@click.option("--workers", type=click.IntRange(1, 64), help="Concurrent items.")
@click.option("--json", "json_output", is_flag=True, help="Emit a JSON summary.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
def reindex(
    export: str,
    mode: str | None,
    kinds: tuple[str, ...],
    sites: tuple[int, ...],
    workers: int | None,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Reindex every item in EXPORT."""
    loaded = _load_config()
    quiet = quiet or loaded.cli.quiet_default
    summary_only = summary_mode or loaded.cli.summary_default
    site_ids = _site_ids(loaded, sites)
    source = _load_export(export)
    services = _services(loaded, source=source)
    bulk = BulkReindexer(
        services.indexer,
        services.index_manager,
        source=source,
        max_workers=workers or loaded.bulk.max_workers,
    )
    descriptors = list(
        source.iter_descriptors(site_ids=site_ids, kinds=[ItemKind(kind) for kind in kinds] or None)
    )

    def _on_result(descriptor: IndexableItemDescriptor, result: OutcomeResult) -> None:
        if json_output:
            return
        line, line_mode = _format_result(describe(descriptor), result)
        _emit_message(line, mode=line_mode, quiet=quiet, summary_only=summary_only)

    try:
        report = bulk.run(
            descriptors,
            mode=mode or loaded.bulk.mode,
            site_ids=site_ids,
            on_result=_on_result,
        )
    except IndexerError as exc:
        _handle_cli_error(
            str(exc),
            code="storage_error" if isinstance(exc, StorageError) else "invalid_request",
            json_output=json_output,
            original=exc,
        )
        return

    if json_output:
        console.print_json(data=report.to_payload())
    else:
        counts = report.counts
        metrics = {
            "processed": report.processed,
            "success": counts["success"],
            "warnings": counts["partial"],
            "skipped": counts["skipped"],
            "disabled": counts["disabled"],
            "errors": counts["failed"],
        }
        _emit_message(
            _format_summary_line("Reindex", export, metrics),
            mode="summary",
            quiet=quiet,
            summary_only=summary_only,
        )
        for error in report.errors:
            _emit_message(f"  - {error}", mode="error", quiet=quiet, summary_only=summary_only)
    if report.exit_code:
        raise SystemExit(report.exit_code)


@cli.command("index-item")
@click.argument("export", type=click.Path(exists=True, dir_okay=False, path_type=str))
@click.option("--kind", type=KIND_CHOICE, required=True, help="Item kind.")
@click.option("--id", "item_id", type=int, required=True, help="Item id.")
@click.option("--site", "site_id", type=int, default=1, show_default=True, help="Site id.")
@click.option("--debug", is_flag=True, help="Include frontend fetch debug details.")
def index_item(export: str, kind: str, item_id: int, site_id: int, debug: bool) -> None:
    """Index one item from EXPORT and print the outcome as JSON."""
    loaded = _load_config({"frontend_fetch.debug": True} if debug else None)
    source = _load_export(export)
    services = _services(loaded, source=source)
    try:
        descriptor = IndexableItemDescriptor(item_id=item_id, site_id=site_id, kind=ItemKind(kind))
        result = services.indexer.index_descriptor(descriptor)
    except (ValueError, ValidationError) as exc:
        _handle_cli_error(str(exc), code="invalid_item", json_output=True, original=exc)
        return
    console.print_json(data=result.to_payload())
    if result.status is OutcomeStatus.FAILED:
        raise SystemExit(1)


@cli.command("remove-item")
@click.option("--kind", type=KIND_CHOICE, required=True, help="Item kind.")
@click.option("--id", "item_id", type=int, required=True, help="Item id.")
@click.option("--site", "sites", type=int, multiple=True, help="Site id; defaults to all sites.")
def remove_item(kind: str, item_id: int, sites: tuple[int, ...]) -> None:
    """Remove an item's documents from the index of each site."""
    loaded = _load_config()
    services = _services(loaded)
    try:
        removed = services.indexer.remove_item(item_id, ItemKind(kind), _site_ids(loaded, sites))
    except (ValidationError, StorageError) as exc:
        _handle_cli_error(str(exc), code="remove_failed", json_output=False, original=exc)
        return
    label = ItemKind(kind).label
    console.print(f"[green]Removed {removed} document(s) for {label} {item_id}.[/green]")


@cli.command("test-connection")
def test_connection() -> None:
    """Check that the search engine answers."""
    loaded = _load_config()
    store = build_store(loaded)
    if store.ping():
        console.print(f"[green]Connected to {loaded.connection.endpoint}.[/green]")
        return
    console.print(f"[red]Unable to reach {loaded.connection.endpoint}.[/red]")
    raise SystemExit(1)


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
