#!/usr/bin/env python3
"""
Command-line interface for ShellSync.

This module provides the ``shellsync`` command: editing aliases, functions,
config and plugins in the shared or local scope, syncing the shared scope
through git, and exporting or importing bundles.
"""

import json
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.prompt import Prompt
from rich.syntax import Syntax
from rich.table import Table

from . import __version__
from .core.bundle import BundleManager, ImportResult, ImportStatus, MergeStrategy
from .core.codec import Entity
from .core.config import ConfigScope, ConfigStore, EntityKind, WRITABLE_SCOPES
from .core.errors import ShellSyncError
from .core.git_handler import GitHandler
from .core.locks import LockRegistry
from .core.plugins import Plugin, PluginRegistry, oh_my_zsh_probe
from .core.settings import Settings, default_config_file
from .utils.logger import setup_logging
from .utils.path import display_path
from .utils.platform import platform_detector

# Rich console for formatted output
console = Console()

SCOPE_CHOICES = ['all', 'shared', 'local']


def initialize_managers(settings: Settings) -> Tuple[ConfigStore, PluginRegistry, GitHandler, BundleManager]:
    """Initialize the store, plugin registry, git handler and bundle manager."""
    locks = LockRegistry()
    config_store = ConfigStore(settings, locks)
    plugin_registry = PluginRegistry(
        settings.plugin_file,
        locks,
        installed_probe=oh_my_zsh_probe(settings.oh_my_zsh_dir),
    )
    git_handler = GitHandler(
        settings.shared_dir,
        locks,
        default_branch=settings.default_branch,
        remote_name=settings.remote,
    )
    bundle_manager = BundleManager(config_store, plugin_registry)
    return config_store, plugin_registry, git_handler, bundle_manager


def fail(action: str, error: Exception):
    """Print an error in red and exit with status 1."""
    console.print(f"[red]Failed to {action}: {escape(str(error))}[/red]")
    sys.exit(1)


def scopes_for(scope: str) -> List[ConfigScope]:
    if scope == 'all':
        return list(WRITABLE_SCOPES)
    return [ConfigScope.coerce(scope)]


def scope_flag(local: bool) -> ConfigScope:
    return ConfigScope.LOCAL if local else ConfigScope.SHARED


def read_body(body: Optional[str], body_file) -> str:
    """Body given inline, or read from a file (``-`` for stdin)."""
    if body is not None:
        return body
    if body_file is not None:
        return body_file.read()
    raise click.UsageError("Provide the body as an argument or with --file")


def echo_json(data) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def format_entity_table(kind: EntityKind, rows: List[Tuple[ConfigScope, Entity]]) -> Table:
    """Format aliases or functions as a rich table."""
    table = Table(show_header=True, header_style="bold blue")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Scope", style="yellow")
    if kind is EntityKind.ALIAS:
        table.add_column("Command", style="green")
    else:
        table.add_column("Lines", style="green", justify="right")

    for scope, entity in rows:
        if kind is EntityKind.ALIAS:
            detail = escape(entity.command)
        else:
            detail = str(len(entity.content.splitlines()))
        table.add_row(escape(entity.name), scope.value, detail)

    return table


def format_plugin_table(plugins: List[Plugin], show_enabled: bool) -> Table:
    table = Table(show_header=True, header_style="bold blue")
    table.add_column("Plugin", style="cyan", no_wrap=True)
    if show_enabled:
        table.add_column("Enabled")
    table.add_column("Installed")
    table.add_column("Description", style="dim")

    for plugin in plugins:
        row = [escape(plugin.name)]
        if show_enabled:
            row.append("[green]yes[/green]" if plugin.enabled else "[dim]no[/dim]")
        row.append("[green]yes[/green]" if plugin.installed else "[yellow]no[/yellow]")
        row.append(escape(plugin.description or ""))
        table.add_row(*row)

    return table


def format_import_result(result: ImportResult) -> None:
    """Format and display an import result."""
    if result.status == ImportStatus.SUCCESS:
        console.print(f"[green]✓ Import complete: {result.message}[/green]")
    elif result.status == ImportStatus.CONFLICT:
        console.print(f"[yellow]⚠ {result.message}[/yellow]")
        console.print("[yellow]Unresolved conflicts:[/yellow]")
        for conflict in result.conflicts:
            console.print(f"  - {escape(conflict.key)}")
    elif result.status in (ImportStatus.ERROR, ImportStatus.PARTIAL):
        label = "Import failed" if result.status == ImportStatus.ERROR else "Partial import"
        console.print(f"[yellow]⚠ {label}: {result.message}[/yellow]")
        console.print("[red]Errors:[/red]")
        for error in result.errors:
            console.print(f"  - {escape(error)}")
    else:
        console.print(f"[dim]Nothing to import: {result.message}[/dim]")


# Main CLI group
@click.group()
@click.version_option(__version__, prog_name='shellsync')
@click.option('--config', 'config_file', type=click.Path(path_type=Path),
              help='Settings file (default: $SHELLSYNC_CONFIG or ~/.config/shellsync/config.toml)')
@click.option('--shared-dir', type=click.Path(path_type=Path), help='Shared (git-versioned) directory')
@click.option('--local-dir', type=click.Path(path_type=Path), help='Machine-local directory')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--log-file', type=click.Path(path_type=Path), help='Log file path')
@click.pass_context
def cli(ctx, config_file: Optional[Path], shared_dir: Optional[Path], local_dir: Optional[Path],
        verbose: bool, log_file: Optional[Path]):
    """ShellSync - keep zsh aliases, functions and plugins in sync."""
    ctx.ensure_object(dict)

    try:
        settings = Settings.load(
            config_file,
            shared_dir=shared_dir,
            local_dir=local_dir,
            log_file=log_file,
        )
    except ShellSyncError as e:
        fail("load settings", e)

    # Setup logging
    setup_logging(
        level=settings.log_level,
        log_file=settings.log_file,
        verbose=verbose
    )

    ctx.obj['settings'] = settings
    ctx.obj['config_file'] = config_file or default_config_file()


# ----------------------------------------------------------------------
# aliases
# ----------------------------------------------------------------------

@cli.group()
def alias():
    """Manage aliases."""
    pass


@alias.command('list')
@click.option('--scope', type=click.Choice(SCOPE_CHOICES), default='all', help='Scope to list')
@click.option('--format', 'output_format', type=click.Choice(['table', 'json']),
              default='table', help='Output format')
@click.pass_context
def alias_list(ctx, scope: str, output_format: str):
    """List aliases."""
    config_store, _, _, _ = initialize_managers(ctx.obj['settings'])

    try:
        rows = [(s, a) for s in scopes_for(scope) for a in config_store.list(EntityKind.ALIAS, s)]
    except ShellSyncError as e:
        fail("list aliases", e)

    if output_format == 'json':
        echo_json([dict(a.to_dict(), shared=s.is_shared) for s, a in rows])
        return

    if not rows:
        console.print("[dim]No aliases found.[/dim]")
        return

    console.print(format_entity_table(EntityKind.ALIAS, rows))
    console.print(f"\n[dim]Total: {len(rows)} aliases[/dim]")


@alias.command('add')
@click.argument('name', type=str)
@click.argument('command', type=str)
@click.option('--local', is_flag=True, help='Add to the machine-local scope')
@click.pass_context
def alias_add(ctx, name: str, command: str, local: bool):
    """Add an alias."""
    config_store, _, _, _ = initialize_managers(ctx.obj['settings'])
    scope = scope_flag(local)

    try:
        config_store.add(EntityKind.ALIAS, name, command, scope)
    except ShellSyncError as e:
        fail("add alias", e)

    console.print(f"[green]✓ Added alias '[cyan]{escape(name)}[/cyan]' ({scope.value})[/green]")


@alias.command('update')
@click.argument('name', type=str)
@click.argument('command', type=str)
@click.option('--rename', 'new_name', type=str, help='New name for the alias')
@click.option('--local', is_flag=True, help='Alias lives in the machine-local scope')
@click.pass_context
def alias_update(ctx, name: str, command: str, new_name: Optional[str], local: bool):
    """Change an alias's command, optionally renaming it."""
    config_store, _, _, _ = initialize_managers(ctx.obj['settings'])
    scope = scope_flag(local)

    try:
        config_store.update(EntityKind.ALIAS, name, new_name or name, command, scope)
    except ShellSyncError as e:
        fail("update alias", e)

    console.print(f"[green]✓ Updated alias '[cyan]{escape(new_name or name)}[/cyan]' ({scope.value})[/green]")


@alias.command('remove')
@click.argument('name', type=str)
@click.option('--local', is_flag=True, help='Alias lives in the machine-local scope')
@click.pass_context
def alias_remove(ctx, name: str, local: bool):
    """Remove an alias."""
    config_store, _, _, _ = initialize_managers(ctx.obj['settings'])
    scope = scope_flag(local)

    try:
        config_store.delete(EntityKind.ALIAS, name, scope)
    except ShellSyncError as e:
        fail("remove alias", e)

    console.print(f"[green]✓ Removed alias '[cyan]{escape(name)}[/cyan]' ({scope.value})[/green]")


@cli.command()
@click.option('--format', 'output_format', type=click.Choice(['table', 'json']),
              default='table', help='Output format')
@click.pass_context
def secrets(ctx, output_format: str):
    """List the read-only aliases from the secrets file."""
    config_store, _, _, _ = initialize_managers(ctx.obj['settings'])

    try:
        aliases = config_store.list_secrets_aliases()
    except ShellSyncError as e:
        fail("read secrets", e)

    if output_format == 'json':
        echo_json([a.to_dict() for a in aliases])
        return

    if not aliases:
        console.print(f"[dim]No aliases in {display_path(config_store.secrets.path)}.[/dim]")
        return

    console.print(format_entity_table(EntityKind.ALIAS, [(ConfigScope.SECRETS, a) for a in aliases]))


# ----------------------------------------------------------------------
# functions
# ----------------------------------------------------------------------

@cli.group()
def func():
    """Manage shell functions."""
    pass


@func.command('list')
@click.option('--scope', type=click.Choice(SCOPE_CHOICES), default='all', help='Scope to list')
@click.option('--format', 'output_format', type=click.Choice(['table', 'json']),
              default='table', help='Output format')
@click.pass_context
def func_list(ctx, scope: str, output_format: str):
    """List functions."""
    config_store, _, _, _ = initialize_managers(ctx.obj['settings'])

    try:
        rows = [(s, f) for s in scopes_for(scope) for f in config_store.list(EntityKind.FUNCTION, s)]
    except ShellSyncError as e:
        fail("list functions", e)

    if output_format == 'json':
        echo_json([dict(f.to_dict(), shared=s.is_shared) for s, f in rows])
        return

    if not rows:
        console.print("[dim]No functions found.[/dim]")
        return

    console.print(format_entity_table(EntityKind.FUNCTION, rows))
    console.print(f"\n[dim]Total: {len(rows)} functions[/dim]")


@func.command('show')
@click.argument('name', type=str)
@click.option('--local', is_flag=True, help='Function lives in the machine-local scope')
@click.pass_context
def func_show(ctx, name: str, local: bool):
    """Show a function's body."""
    config_store, _, _, _ = initialize_managers(ctx.obj['settings'])
    scope = scope_flag(local)

    try:
        function = config_store.get(EntityKind.FUNCTION, name, scope)
    except ShellSyncError as e:
        fail("read function", e)

    if function is None:
        console.print(f"[red]Function '{escape(name)}' not found in {scope.value} scope[/red]")
        sys.exit(1)

    console.print(Panel(
        Syntax(function.content or "", "bash", theme="ansi_dark"),
        title=f"{escape(name)} ({scope.value})"
    ))


@func.command('add')
@click.argument('name', type=str)
@click.argument('body', type=str, required=False)
@click.option('--file', 'body_file', type=click.File('r'), help="Read the body from a file ('-' for stdin)")
@click.option('--local', is_flag=True, help='Add to the machine-local scope')
@click.pass_context
def func_add(ctx, name: str, body: Optional[str], body_file, local: bool):
    """Add a function."""
    config_store, _, _, _ = initialize_managers(ctx.obj['settings'])
    scope = scope_flag(local)
    content = read_body(body, body_file)

    try:
        config_store.add(EntityKind.FUNCTION, name, content, scope)
    except ShellSyncError as e:
        fail("add function", e)

    console.print(f"[green]✓ Added function '[cyan]{escape(name)}[/cyan]' ({scope.value})[/green]")


@func.command('update')
@click.argument('name', type=str)
@click.argument('body', type=str, required=False)
@click.option('--file', 'body_file', type=click.File('r'), help="Read the body from a file ('-' for stdin)")
@click.option('--rename', 'new_name', type=str, help='New name for the function')
@click.option('--local', is_flag=True, help='Function lives in the machine-local scope')
@click.pass_context
def func_update(ctx, name: str, body: Optional[str], body_file, new_name: Optional[str], local: bool):
    """Replace a function's body, optionally renaming it."""
    config_store, _, _, _ = initialize_managers(ctx.obj['settings'])
    scope = scope_flag(local)
    content = read_body(body, body_file)

    try:
        config_store.update(EntityKind.FUNCTION, name, new_name or name, content, scope)
    except ShellSyncError as e:
        fail("update function", e)

    console.print(f"[green]✓ Updated function '[cyan]{escape(new_name or name)}[/cyan]' ({scope.value})[/green]")


@func.command('remove')
@click.argument('name', type=str)
@click.option('--local', is_flag=True, help='Function lives in the machine-local scope')
@click.pass_context
def func_remove(ctx, name: str, local: bool):
    """Remove a function."""
    config_store, _, _, _ = initialize_managers(ctx.obj['settings'])
    scope = scope_flag(local)

    try:
        config_store.delete(EntityKind.FUNCTION, name, scope)
    except ShellSyncError as e:
        fail("remove function", e)

    console.print(f"[green]✓ Removed function '[cyan]{escape(name)}[/cyan]' ({scope.value})[/green]")


# ----------------------------------------------------------------------
# free-form config
# ----------------------------------------------------------------------

@cli.group()
def config():
    """Show or replace the free-form config of a scope."""
    pass


@config.command('show')
@click.option('--local', is_flag=True, help='Show the machine-local config')
@click.pass_context
def config_show(ctx, local: bool):
    """Print the config file of a scope."""
    config_store, _, _, _ = initialize_managers(ctx.obj['settings'])

    try:
        content = config_store.get_config(scope_flag(local)).content
    except ShellSyncError as e:
        fail("read config", e)

    click.echo(content, nl=False)


@config.command('set')
@click.option('--file', 'content_file', type=click.File('r'), default='-',
              help="Read the new content from a file (default: stdin)")
@click.option('--local', is_flag=True, help='Replace the machine-local config')
@click.pass_context
def config_set(ctx, content_file, local: bool):
    """Replace the config file of a scope."""
    config_store, _, _, _ = initialize_managers(ctx.obj['settings'])
    scope = scope_flag(local)

    try:
        config_store.set_config(content_file.read(), scope)
    except ShellSyncError as e:
        fail("save config", e)

    console.print(f"[green]✓ Saved {scope.value} config[/green]")


@cli.command()
@click.pass_context
def reload(ctx):
    """Explain how to reload the running shell."""
    config_store, _, _, _ = initialize_managers(ctx.obj['settings'])
    console.print(f"[cyan]{escape(config_store.reload_shell())}[/cyan]")


@cli.command()
@click.option('--format', 'output_format', type=click.Choice(['table', 'json']),
              default='table', help='Output format')
@click.pass_context
def paths(ctx, output_format: str):
    """Show the files ShellSync reads and writes."""
    config_store, plugin_registry, _, _ = initialize_managers(ctx.obj['settings'])

    entries = list(config_store.fragment_paths().items())
    entries.append(('plugins', plugin_registry.path))
    entries.append(('settings', ctx.obj['config_file']))

    if output_format == 'json':
        echo_json({label: str(path) for label, path in entries})
        return

    table = Table(show_header=True, header_style="bold blue")
    table.add_column("File", style="cyan", no_wrap=True)
    table.add_column("Path", style="magenta")
    table.add_column("Exists")

    for label, path in entries:
        exists = "[green]yes[/green]" if Path(path).exists() else "[dim]no[/dim]"
        table.add_row(label, escape(display_path(path)), exists)

    console.print(table)

    info = platform_detector.get_system_info()
    wsl = " (WSL)" if platform_detector.is_wsl else ""
    console.print(f"\n[dim]Platform: {info['os_type']}{wsl}, shell: {info['shell']}[/dim]")


# ----------------------------------------------------------------------
# import / export
# ----------------------------------------------------------------------

@cli.command('export')
@click.argument('path', type=click.Path(path_type=Path))
@click.pass_context
def export_cmd(ctx, path: Path):
    """Export everything to a bundle (.json, .yaml or .toml)."""
    _, _, _, bundle_manager = initialize_managers(ctx.obj['settings'])

    try:
        message = bundle_manager.export_to_file(path)
    except ShellSyncError as e:
        fail("export", e)

    console.print(f"[green]✓ {escape(message)}[/green]")


@cli.command('import')
@click.argument('path', type=click.Path(exists=True, path_type=Path))
@click.option('--strategy', type=click.Choice([s.value for s in MergeStrategy]),
              default=MergeStrategy.ASK.value, help='How to handle names that already exist')
@click.option('--include-config', is_flag=True, help='Also import config blobs and plugins')
@click.pass_context
def import_cmd(ctx, path: Path, strategy: str, include_config: bool):
    """Import a bundle."""
    _, _, _, bundle_manager = initialize_managers(ctx.obj['settings'])

    try:
        bundle = bundle_manager.load_bundle(path)
        session = bundle_manager.begin_import(bundle, strategy, include_config=include_config)

        conflicts = session.conflicts
        if conflicts and session.strategy is MergeStrategy.ASK:
            table = Table(show_header=True, header_style="bold yellow", title="Conflicts")
            table.add_column("Name", style="cyan")
            table.add_column("Kind")
            table.add_column("Scope")
            for conflict in conflicts:
                table.add_row(escape(conflict.name), conflict.kind.value, conflict.scope.value)
            console.print(table)

        result = session.apply()

        if session.conflicts:
            decisions = {}
            for conflict in session.conflicts:
                if conflict.kind is EntityKind.ALIAS:
                    console.print(f"[cyan]{escape(conflict.key)}[/cyan]")
                    console.print(f"  current:  {escape(conflict.existing.command)}")
                    console.print(f"  incoming: {escape(conflict.incoming.command)}")
                else:
                    console.print(f"[cyan]{escape(conflict.key)}[/cyan] (function body differs)")
                decisions[conflict.key] = Prompt.ask(
                    "Keep the current one or overwrite it?",
                    choices=[MergeStrategy.KEEP.value, MergeStrategy.OVERWRITE.value],
                    default=MergeStrategy.KEEP.value,
                    console=console,
                )
            resolved = session.resolve(decisions)
            result.updated.extend(resolved.updated)
            result.skipped.extend(resolved.skipped)
            result.errors.extend(resolved.errors)
            result.conflicts = resolved.conflicts
            result.finalize()

    except ShellSyncError as e:
        fail("import", e)

    format_import_result(result)
    if result.status == ImportStatus.ERROR:
        sys.exit(1)


# ----------------------------------------------------------------------
# git
# ----------------------------------------------------------------------

@cli.group()
def git():
    """Sync the shared directory with git."""
    pass


@git.command('status')
@click.option('--fetch', is_flag=True, help='Fetch the upstream first')
@click.option('--format', 'output_format', type=click.Choice(['table', 'json']),
              default='table', help='Output format')
@click.pass_context
def git_status(ctx, fetch: bool, output_format: str):
    """Show repository status."""
    _, _, git_handler, _ = initialize_managers(ctx.obj['settings'])

    try:
        status = git_handler.status(fetch=fetch)
    except ShellSyncError as e:
        fail("get status", e)

    if output_format == 'json':
        echo_json(status.to_dict())
        return

    state = "[green]clean[/green]" if status.clean else "[yellow]uncommitted changes[/yellow]"
    console.print(Panel(
        f"[cyan]Branch:[/cyan] {escape(status.branch)}\n"
        f"[cyan]Working tree:[/cyan] {state}\n"
        f"[cyan]Ahead:[/cyan] {status.ahead}   [cyan]Behind:[/cyan] {status.behind}",
        title=f"Repository: {escape(display_path(git_handler.repo_path))}"
    ))

    for path in status.modified:
        console.print(f"  [yellow]M[/yellow] {escape(path)}")
    for path in status.untracked:
        console.print(f"  [red]?[/red] {escape(path)}")


@git.command('commit')
@click.option('--message', '-m', type=str, required=True, help='Commit message')
@click.pass_context
def git_commit(ctx, message: str):
    """Commit every change in the shared directory."""
    _, _, git_handler, _ = initialize_managers(ctx.obj['settings'])

    try:
        commit_hash = git_handler.commit(message)
        branch = git_handler.current_branch
    except ShellSyncError as e:
        fail("commit", e)

    console.print(f"[green]✓ Committed [cyan]{commit_hash[:8]}[/cyan] on {escape(branch)}[/green]")


@git.command('pull')
@click.pass_context
def git_pull(ctx):
    """Pull and merge the upstream branch."""
    _, _, git_handler, _ = initialize_managers(ctx.obj['settings'])

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console
        ) as progress:
            task = progress.add_task("Pulling changes...", total=None)
            result = git_handler.pull()
            progress.update(task, description="Pull completed!")
    except ShellSyncError as e:
        fail("pull", e)

    if result.up_to_date:
        console.print(f"[dim]{escape(result.message)}[/dim]")
    else:
        console.print(f"[green]✓ {escape(result.message)}[/green]")


@git.command('push')
@click.option('--remote', type=str, help='Remote to push to; sets it as upstream if none is configured')
@click.pass_context
def git_push(ctx, remote: Optional[str]):
    """Push the current branch."""
    _, _, git_handler, _ = initialize_managers(ctx.obj['settings'])

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console
        ) as progress:
            task = progress.add_task("Pushing changes...", total=None)
            message = git_handler.push(remote)
            progress.update(task, description="Push completed!")
    except ShellSyncError as e:
        fail("push", e)

    console.print(f"[green]✓ {escape(message)}[/green]")


@git.command('log')
@click.option('--limit', '-n', type=int, default=10, help='Number of commits to show')
@click.option('--format', 'output_format', type=click.Choice(['table', 'json']),
              default='table', help='Output format')
@click.pass_context
def git_log(ctx, limit: int, output_format: str):
    """Show recent commits."""
    _, _, git_handler, _ = initialize_managers(ctx.obj['settings'])

    try:
        commits = git_handler.log(limit)
    except ShellSyncError as e:
        fail("read history", e)

    if output_format == 'json':
        echo_json([c.to_dict() for c in commits])
        return

    if not commits:
        console.print("[dim]No commits yet.[/dim]")
        return

    table = Table(show_header=True, header_style="bold blue")
    table.add_column("Commit", style="cyan", no_wrap=True)
    table.add_column("Date", style="magenta")
    table.add_column("Author", style="green")
    table.add_column("Message")
    for commit in commits:
        table.add_row(commit.hash[:8], commit.date, escape(commit.author), escape(commit.message))
    console.print(table)


@git.command('diff')
@click.option('--staged', is_flag=True, help='Show staged changes only')
@click.pass_context
def git_diff(ctx, staged: bool):
    """Show uncommitted changes."""
    _, _, git_handler, _ = initialize_managers(ctx.obj['settings'])

    try:
        diff = git_handler.diff(staged=staged)
    except ShellSyncError as e:
        fail("diff", e)

    if not diff:
        console.print("[dim]No changes.[/dim]")
        return
    console.print(Syntax(diff, "diff", theme="ansi_dark"))


@git.command('init')
@click.option('--remote-url', type=str, help='Remote repository URL')
@click.pass_context
def git_init(ctx, remote_url: Optional[str]):
    """Initialize the shared directory as a git repository."""
    settings = ctx.obj['settings']
    _, _, git_handler, _ = initialize_managers(settings)

    try:
        message = git_handler.init()
        if remote_url:
            git_handler.add_remote(settings.remote, remote_url)
    except ShellSyncError as e:
        fail("initialize repository", e)

    console.print(Panel(
        f"[green]✓ {escape(message)}[/green]",
        title="Initialization Complete"
    ))

    if remote_url:
        console.print(f"[green]Remote repository configured:[/green] {escape(remote_url)}")
    else:
        console.print("[yellow]No remote repository configured. "
                      "Use 'shellsync git remote add <name> <url>' to add one.[/yellow]")


@git.group()
def remote():
    """Manage remote repositories."""
    pass


@remote.command('add')
@click.argument('name', type=str)
@click.argument('url', type=str)
@click.pass_context
def remote_add(ctx, name: str, url: str):
    """Add a remote repository."""
    _, _, git_handler, _ = initialize_managers(ctx.obj['settings'])

    try:
        git_handler.add_remote(name, url)
    except ShellSyncError as e:
        fail("add remote", e)

    console.print(f"[green]✓ Added remote '[cyan]{escape(name)}[/cyan]': {escape(url)}[/green]")


@remote.command('remove')
@click.argument('name', type=str)
@click.pass_context
def remote_remove(ctx, name: str):
    """Remove a remote repository."""
    _, _, git_handler, _ = initialize_managers(ctx.obj['settings'])

    try:
        git_handler.remove_remote(name)
    except ShellSyncError as e:
        fail("remove remote", e)

    console.print(f"[green]✓ Removed remote '[cyan]{escape(name)}[/cyan]'[/green]")


@remote.command('list')
@click.pass_context
def remote_list(ctx):
    """List remote repositories."""
    _, _, git_handler, _ = initialize_managers(ctx.obj['settings'])

    try:
        remotes = git_handler.remotes
    except ShellSyncError as e:
        fail("list remotes", e)

    if not remotes:
        console.print("[dim]No remote repositories configured.[/dim]")
    else:
        console.print("[cyan]Remote repositories:[/cyan]")
        for name in remotes:
            console.print(f"  - {escape(name)}")


# ----------------------------------------------------------------------
# plugins
# ----------------------------------------------------------------------

@cli.group()
def plugin():
    """Enable or disable oh-my-zsh plugins."""
    pass


@plugin.command('list')
@click.option('--format', 'output_format', type=click.Choice(['table', 'json']),
              default='table', help='Output format')
@click.pass_context
def plugin_list(ctx, output_format: str):
    """List enabled plugins."""
    _, plugin_registry, _, _ = initialize_managers(ctx.obj['settings'])

    try:
        plugins = plugin_registry.list_enabled()
    except ShellSyncError as e:
        fail("list plugins", e)

    if output_format == 'json':
        echo_json([p.to_dict() for p in plugins])
        return

    if not plugins:
        console.print("[dim]No plugins enabled.[/dim]")
        return
    console.print(format_plugin_table(plugins, show_enabled=False))


@plugin.command('available')
@click.option('--format', 'output_format', type=click.Choice(['table', 'json']),
              default='table', help='Output format')
@click.pass_context
def plugin_available(ctx, output_format: str):
    """List popular plugins that can be enabled."""
    _, plugin_registry, _, _ = initialize_managers(ctx.obj['settings'])

    try:
        plugins = plugin_registry.list_available()
    except ShellSyncError as e:
        fail("list plugins", e)

    if output_format == 'json':
        echo_json([p.to_dict() for p in plugins])
        return
    console.print(format_plugin_table(plugins, show_enabled=True))


@plugin.command('add')
@click.argument('name', type=str)
@click.pass_context
def plugin_add(ctx, name: str):
    """Enable a plugin."""
    _, plugin_registry, _, _ = initialize_managers(ctx.obj['settings'])

    try:
        changed = plugin_registry.add(name)
    except ShellSyncError as e:
        fail("enable plugin", e)

    if changed:
        console.print(f"[green]✓ Enabled plugin '[cyan]{escape(name)}[/cyan]'[/green]")
    else:
        console.print(f"[dim]Plugin '{escape(name)}' is already enabled.[/dim]")


@plugin.command('remove')
@click.argument('name', type=str)
@click.pass_context
def plugin_remove(ctx, name: str):
    """Disable a plugin."""
    _, plugin_registry, _, _ = initialize_managers(ctx.obj['settings'])

    try:
        changed = plugin_registry.remove(name)
    except ShellSyncError as e:
        fail("disable plugin", e)

    if changed:
        console.print(f"[green]✓ Disabled plugin '[cyan]{escape(name)}[/cyan]'[/green]")
    else:
        console.print(f"[dim]Plugin '{escape(name)}' is not enabled.[/dim]")


def main():
    """Main entry point for the CLI."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user.[/yellow]")
        sys.exit(1)
    except Exception as e:
        console.print(f"\n[red]Unexpected error: {escape(str(e))}[/red]")
        sys.exit(1)


if __name__ == '__main__':
    main()
