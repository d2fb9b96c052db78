"""CLI entrypoint for tracksync."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import click

from tracksync.app import TrackSyncApp
from tracksync.config.models import AppSettings, display_value
from tracksync.config.store import SettingsStore
from tracksync.config.workspace import WorkspaceSettingsSink
from tracksync.core.controller import SyncController, scope_for
from tracksync.core.deriver import derive_exclusions
from tracksync.errors import SourceUnavailable
from tracksync.fs.filtering import ExclusionFilter
from tracksync.fs.watch import NullWatchManager
from tracksync.git.source import GitTrackedSource
from tracksync.notifications import Notifier
from tracksync.paths import settings_path
from tracksync.runtime_logging import configure_runtime_logging
from tracksync.tree_model import build_tree, direct_children, render_lines
from tracksync.version import __version__

_log_level_option = click.option(
    "--log-level",
    type=click.Choice(["off", "error", "warning", "info", "debug"]),
    default=None,
    help="Runtime log level (defaults to TRACKSYNC_LOG_LEVEL or warning)",
)


@click.group(invoke_without_command=True, context_settings={"help_option_names": ["-h", "--help"]})
@click.pass_context
def main(ctx: click.Context) -> None:
    """tracksync: show and keep only git-tracked files in view."""
    if ctx.invoked_subcommand is None:
        ctx.invoke(run)


@main.command()
@click.argument("roots", nargs=-1, type=click.Path(file_okay=False))
@click.option("--no-watch", is_flag=True, help="Do not watch the git index for changes")
@_log_level_option
def run(roots: tuple[str, ...], no_watch: bool, log_level: str | None) -> None:
    """Run the tracked-file browser and keep the exclusion filter in sync."""
    store = SettingsStore()
    app = TrackSyncApp(
        roots=_resolve_roots(roots, store.load()),
        settings_store=store,
        enable_watchers=not no_watch,
        log_level=log_level,
    )
    app.run()


@main.command()
@click.argument("roots", nargs=-1, type=click.Path(file_okay=False))
@click.option("--dry-run", is_flag=True, help="Print the derived filter without writing it")
@_log_level_option
def sync(roots: tuple[str, ...], dry_run: bool, log_level: str | None) -> None:
    """Derive and publish the exclusion filter once."""
    configure_runtime_logging(level=log_level)
    settings = SettingsStore().load()
    targets = _resolve_roots(roots, settings)

    if dry_run:
        payload = asyncio.run(_derive_all(targets, settings))
        click.echo(json.dumps(payload, indent=2, sort_keys=True))
        return

    payload = asyncio.run(_sync_once(targets, settings))
    click.echo(json.dumps(payload, indent=2, sort_keys=True))


@main.command()
@click.argument("roots", nargs=-1, type=click.Path(file_okay=False))
@_log_level_option
def clear(roots: tuple[str, ...], log_level: str | None) -> None:
    """Remove a previously published exclusion filter."""
    configure_runtime_logging(level=log_level)
    settings = SettingsStore().load()
    targets = _resolve_roots(roots, settings)
    controller = _one_shot_controller(settings)

    async def _clear() -> None:
        await controller.add_roots(targets)
        await controller.disable()
        await controller.close()

    asyncio.run(_clear())
    for root in targets:
        click.echo(f"cleared {root}")


@main.command()
def toggle() -> None:
    """Flip the persisted sync switch used by ``run``."""
    store = SettingsStore()
    enabled = not store.load().sync.enabled
    store.set_sync_enabled(enabled)
    click.echo("enabled" if enabled else "disabled")


@main.command()
@click.argument("root", required=False, default=".", type=click.Path(file_okay=False))
@click.option("--dir", "rel_dir", default=None, help="List only the tracked entries directly below this directory")
def tree(root: str, rel_dir: str | None) -> None:
    """Print the tracked files of ROOT as a tree."""
    project_root = Path(root).expanduser().resolve()
    try:
        paths = asyncio.run(GitTrackedSource().list_tracked(project_root))
    except SourceUnavailable as exc:
        raise click.ClickException(str(exc)) from exc
    if not paths:
        raise click.ClickException(f"No tracked files under {project_root}")
    if rel_dir is not None:
        for name in direct_children(paths, rel_dir):
            click.echo(name)
        return
    for line in render_lines(build_tree(paths)):
        click.echo(line)


@main.command()
@click.argument("root", type=click.Path(exists=True, file_okay=False))
@click.argument("paths", nargs=-1, required=True)
def check(root: str, paths: tuple[str, ...]) -> None:
    """Report whether the published filter hides each of PATHS."""
    settings = SettingsStore().load()
    project_root = Path(root).expanduser().resolve()
    published = _sink(settings).read(scope_for(project_root))
    if published is None:
        raise click.ClickException(f"No exclusion filter published for {project_root}")

    exclusion_filter = ExclusionFilter.from_exclusions(published)
    for item in paths:
        state = "hidden" if exclusion_filter.is_hidden(item) else "visible"
        click.echo(f"{state}\t{item}")


@main.command("settings")
@click.argument("key", required=False)
@click.argument("value", required=False)
def settings_command(key: str | None, value: str | None) -> None:
    """Show settings, or set KEY to VALUE."""
    store = SettingsStore()
    if key is None:
        for name, current in store.load().setting_items():
            click.echo(f"{name}={current}")
        return
    if value is None:
        try:
            current = store.get(key)
        except KeyError as exc:
            raise click.ClickException(str(exc.args[0])) from exc
        click.echo(display_value(current))
        return

    try:
        store.update(key, _parse_value(value))
    except KeyError as exc:
        raise click.ClickException(str(exc.args[0])) from exc
    except ValueError as exc:
        raise click.ClickException(f"Invalid value for {key}: {exc}") from exc
    click.echo(f"{key}={value}")


@main.command("settings-path")
def settings_path_command() -> None:
    """Print settings file path."""
    click.echo(str(settings_path()))


@main.command()
def about() -> None:
    """Show version and project summary."""
    payload = {
        "name": "tracksync",
        "version": __version__,
        "description": "Keep an editor's view limited to git-tracked files",
    }
    click.echo(json.dumps(payload, indent=2))


def _resolve_roots(roots: tuple[str, ...], settings: AppSettings) -> list[Path]:
    raw = list(roots) or settings.paths.roots or ["."]
    resolved = [Path(item).expanduser().resolve() for item in raw]
    missing = [str(path) for path in resolved if not path.is_dir()]
    if missing:
        raise click.ClickException(f"Not a directory: {', '.join(missing)}")
    return list(dict.fromkeys(resolved))


def _parse_value(value: str) -> Any:
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        if "," in value:
            return [item.strip() for item in value.split(",") if item.strip()]
        return value


def _sink(settings: AppSettings) -> WorkspaceSettingsSink:
    return WorkspaceSettingsSink(
        settings_dir=settings.sync.settings_dir,
        key=settings.sync.exclude_key,
        prune_empty=settings.sync.prune_empty_settings,
    )


def _one_shot_controller(settings: AppSettings) -> SyncController:
    return SyncController(
        source=GitTrackedSource(),
        sink=_sink(settings),
        watch_manager=NullWatchManager(),
        settings=settings.sync,
        notifier=Notifier(settings.notifications),
    )


async def _sync_once(roots: list[Path], settings: AppSettings) -> dict[str, Any]:
    controller = _one_shot_controller(settings)
    await controller.add_roots(roots)
    await controller.enable()
    states = {str(root): "synced" if controller.published(root) is not None else "failed" for root in roots}
    await controller.close()
    return {"roots": states}


async def _derive_all(roots: list[Path], settings: AppSettings) -> dict[str, Any]:
    source = GitTrackedSource()
    result: dict[str, Any] = {}
    for root in roots:
        try:
            tracked = await source.list_tracked(root)
        except SourceUnavailable:
            tracked = []
        result[str(root)] = await asyncio.to_thread(
            derive_exclusions,
            root,
            tracked,
            reserved_dir=settings.sync.reserved_dir,
            universal_patterns=settings.sync.universal_patterns,
        )
    return result


if __name__ == "__main__":
    main()
