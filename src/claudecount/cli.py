"""Command-line interface for claudecount."""
import logging
import os
import sys

import click

from .auth import ConfigCredentialProvider
from .config import LEADERBOARD_URL, ConfigStore
from .errors import AuthMissingError
from .display import (
    console,
    render_header,
    render_install_report,
    render_leaderboard_link,
    render_stats_result,
    render_sync_status,
)
from .hook_installer import HookInstaller
from .sync import SyncOutcome, SyncReconciler, SyncStatusReporter

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool):
    debug = verbose or os.environ.get("CLAUDE_COUNT_DEBUG") == "1"
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr
    )


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx: click.Context, verbose: bool):
    """Claude Count - share your Claude Code token usage on the leaderboard."""
    setup_logging(verbose)
    store = ConfigStore()
    ctx.obj = store
    # Best-effort: a failed install is logged and never stops the command.
    HookInstaller(api_url=store.api_url()).ensure_hook_installed()


# === Config commands ===

CONFIG_KEYS = {
    "user-id": "twitter_user_id",
    "handle": "twitter_handle",
    "token": "oauth_token",
    "token-secret": "oauth_token_secret",
    "api-url": "api_url",
}
SECRET_KEYS = {"oauth_token", "oauth_token_secret"}


@cli.group()
def config():
    """Manage configuration."""
    pass


@config.command("show")
@click.pass_obj
def config_show(store: ConfigStore):
    """Show current configuration."""
    console.print("[bold]Current configuration:[/bold]")
    for key, value in store.load().items():
        if key in SECRET_KEYS and value:
            value = value[:8] + "..." if len(value) > 8 else "***"
        console.print(f"  {key}: {value}")


@config.command("set")
@click.argument("key", type=click.Choice(sorted(CONFIG_KEYS)))
@click.argument("value")
@click.pass_obj
def config_set(store: ConfigStore, key: str, value: str):
    """Set a configuration value."""
    store.set(CONFIG_KEYS[key], value)
    console.print(f"[green]Set {key}[/green]")


# === Hook commands ===

@cli.command()
@click.pass_obj
def install(store: ConfigStore):
    """Install or repair the token tracking hook."""
    installer = HookInstaller(api_url=store.api_url())
    report = installer.ensure_hook_installed()
    render_install_report(report, installer.hook_script_path)
    if report is None:
        sys.exit(1)


@cli.command("hook-status")
def hook_status():
    """Check whether the token tracking hook is installed."""
    installer = HookInstaller()
    if installer.is_hook_installed():
        console.print(f"[green]✓ Hook installed[/green] [dim]({installer.hook_script_path})[/dim]")
    else:
        console.print("[red]✗ Hook not installed[/red]")
        console.print("[dim]Run \"claudecount install\" to install it[/dim]")
        sys.exit(1)


# === Stats commands ===

@cli.command()
@click.option('--resync', is_flag=True, help='Force re-upload of all historical usage')
@click.option('--show-details', is_flag=True, help='Show the local token breakdown')
@click.option('--skip-open', is_flag=True, help='Do not open the leaderboard in a browser')
@click.pass_obj
def stats(store: ConfigStore, resync: bool, show_details: bool, skip_open: bool):
    """Show your leaderboard stats, syncing local history when needed."""
    credentials = ConfigCredentialProvider(store)
    render_header("Claude Count Stats")

    with console.status("Syncing with leaderboard..."):
        result = SyncReconciler(store, credentials).run(resync=resync)

    render_stats_result(result, resync=resync, show_details=show_details)

    if result.outcome == SyncOutcome.AUTH_MISSING:
        console.print(f"[yellow]{AuthMissingError.remediation}[/yellow]")
        sys.exit(1)

    render_leaderboard_link(LEADERBOARD_URL)
    if not skip_open:
        if click.launch(LEADERBOARD_URL) != 0:
            logger.debug("Could not open browser")

    if not result.ok:
        sys.exit(1)


@cli.command("sync-status")
@click.pass_obj
def sync_status(store: ConfigStore):
    """Check whether your history has been synced, without syncing."""
    render_header("Sync Status Check")

    with console.status("Checking sync status..."):
        result = SyncStatusReporter(store, ConfigCredentialProvider(store)).check()

    render_sync_status(result)
    if result.auth_missing:
        console.print(f"[yellow]{AuthMissingError.remediation}[/yellow]")
    if result.status is None:
        sys.exit(1)


if __name__ == "__main__":
    cli()
