"""Terminal display using Rich."""
from datetime import datetime
from typing import Optional, Union

from rich.console import Console

from .hook_installer import InstallReport
from .models import ServerStats, SyncStatus, UsageTotals
from .sync import StatsResult, SyncOutcome, SyncStatusResult

console = Console()

RULE = "─" * 20


def format_number(n: int) -> str:
    """Thousands separators, e.g. 1,234,567."""
    return f"{n:,}"


def render_header(title: str):
    console.print(f"[bold blue]{title}[/bold blue]")
    console.print(f"[dim]{'━' * 30}[/dim]")


def render_authenticated(handle: str):
    if handle:
        console.print(f"[green]✓ Authenticated as[/green] [cyan]{handle}[/cyan]")
    else:
        console.print("[green]✓ Authenticated[/green]")
    console.print()


def render_server_stats(stats: ServerStats, rank: Optional[int] = None):
    console.print()
    console.print("[bold blue]Your Stats:[/bold blue]")
    console.print(f"[dim]{RULE}[/dim]")
    console.print(f"Total Tokens: [cyan]{format_number(stats.total_tokens)}[/cyan]")
    console.print(f"Input Tokens: [cyan]{format_number(stats.input_tokens)}[/cyan]")
    console.print(f"Output Tokens: [cyan]{format_number(stats.output_tokens)}[/cyan]")
    if stats.cache_creation_tokens > 0:
        console.print(f"Cache Creation: [cyan]{format_number(stats.cache_creation_tokens)}[/cyan]")
    if stats.cache_read_tokens > 0:
        console.print(f"Cache Read: [cyan]{format_number(stats.cache_read_tokens)}[/cyan]")
    if rank:
        console.print()
        console.print(f"[green]Leaderboard Rank: #[cyan]{rank}[/cyan][/green]")


def render_totals(totals: UsageTotals):
    console.print()
    console.print("[dim]Token breakdown:[/dim]")
    console.print(f"  Input: {format_number(totals.input)}")
    console.print(f"  Output: {format_number(totals.output)}")
    console.print(f"  Cache Creation: {format_number(totals.cache_creation)}")
    console.print(f"  Cache Read: {format_number(totals.cache_read)}")


def _render_troubleshooting():
    console.print()
    console.print("[yellow]Troubleshooting tips:[/yellow]")
    console.print("[dim]• Check your internet connection[/dim]")
    console.print("[dim]• Check your stored credentials with \"claudecount config show\"[/dim]")
    console.print("[dim]• If the problem persists, run \"claudecount stats --resync\" later[/dim]")


def render_stats_result(result: StatsResult, resync: bool = False, show_details: bool = False):
    """Render one ``stats`` run, phase by phase."""
    outcome = result.outcome

    if outcome == SyncOutcome.AUTH_MISSING:
        console.print("[red]✗ Not authenticated[/red]")
        return
    render_authenticated(result.handle)

    if result.fetch_error:
        console.print(f"[red]✗ {result.fetch_error}[/red]")
    elif result.server_stats and result.server_stats.total_tokens > 0:
        console.print(f"[green]✓[/green] Current server stats: "
                      f"[cyan]{format_number(result.server_stats.total_tokens)}[/cyan] tokens")
    else:
        console.print("[yellow]⚠ No token data found on server[/yellow]")

    if outcome == SyncOutcome.DISPLAY_ONLY:
        render_server_stats(result.server_stats, result.rank)
        console.print()
        console.print("[dim]To force resync historical data, run:[/dim]")
        console.print("[cyan]claudecount stats --resync[/cyan]")
        return

    if resync and result.server_stats and result.server_stats.total_tokens > 0:
        console.print("[yellow]Force resync requested...[/yellow]")

    console.print()
    console.print("[bold blue]Syncing historical usage data...[/bold blue]")

    if outcome == SyncOutcome.NOTHING_TO_SYNC:
        console.print("[yellow]No historical usage data found[/yellow]")
        console.print("[dim]Make sure you have used Claude Code before running this command[/dim]")
        return

    console.print(f"Found [cyan]{format_number(result.entries_found)}[/cyan] usage entries")
    if result.totals is not None:
        console.print(f"Total tokens: [cyan]{format_number(result.totals.total)}[/cyan]")
        if show_details:
            render_totals(result.totals)

    if outcome == SyncOutcome.SUCCESS:
        console.print(f"[green]✓ Successfully synced [cyan]{format_number(result.synced_count)}[/cyan] entries[/green]")
        if result.rank:
            console.print()
            console.print(f"[green]You're ranked #[cyan]{result.rank}[/cyan] on the leaderboard![/green]")
        if result.updated_stats:
            console.print()
            console.print("[bold blue]Updated Stats:[/bold blue]")
            console.print(f"[dim]{RULE}[/dim]")
            console.print(f"Total Tokens: [cyan]{format_number(result.updated_stats.total_tokens)}[/cyan]")
    elif outcome == SyncOutcome.ALREADY_SYNCED:
        console.print("[green]✓ Historical data already synced[/green]")
        console.print("[dim]Use --resync flag to force resync[/dim]")
    elif outcome == SyncOutcome.RATE_LIMITED:
        console.print("[red]✗ Rate limit exceeded. Please try again later[/red]")
    elif outcome == SyncOutcome.NETWORK_ERROR:
        console.print(f"[red]✗ {result.message}[/red]")
        console.print()
        console.print("[yellow]This might be a temporary issue. Try again in a few moments.[/yellow]")
    else:
        console.print(f"[red]✗ Sync failed: {result.message}[/red]")
        _render_troubleshooting()


def render_leaderboard_link(url: str):
    console.print()
    console.print("[dim]View the full leaderboard at:[/dim]")
    console.print(f"[cyan]{url}[/cyan]")


EPOCH_MS_THRESHOLD = 1e11  # larger epoch values are milliseconds


def _format_sync_date(value: Union[str, int, float]) -> str:
    """Local "YYYY-MM-DD HH:MM" for an ISO 8601 string or a Unix epoch."""
    try:
        if isinstance(value, str) and not value.isdigit():
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00")).astimezone()
        else:
            seconds = float(value)
            if seconds > EPOCH_MS_THRESHOLD:
                seconds /= 1000
            parsed = datetime.fromtimestamp(seconds)
    except (ValueError, OverflowError, OSError):
        return str(value)
    return parsed.strftime("%Y-%m-%d %H:%M")


def render_sync_status(result: SyncStatusResult):
    if result.auth_missing:
        console.print("[red]✗ Not authenticated[/red]")
        return
    render_authenticated(result.handle)
    if result.status is None:
        console.print(f"[red]✗ {result.error or 'Failed to check sync status'}[/red]")
        return

    status: SyncStatus = result.status
    console.print("[green]✓ Sync status retrieved[/green]")
    console.print()
    console.print("[bold blue]Sync Information:[/bold blue]")
    console.print(f"[dim]{RULE}[/dim]")
    synced = "[green]✓[/green]" if status.history_sync_completed else "[red]✗[/red]"
    console.print(f"History Synced: {synced}")
    if status.last_sync_date:
        console.print(f"Last Sync: [cyan]{_format_sync_date(status.last_sync_date)}[/cyan]")
    if status.device_count:
        console.print(f"Devices Connected: [cyan]{status.device_count}[/cyan]")
    console.print(f"Total Entries: [cyan]{format_number(status.total_entries or 0)}[/cyan]")

    if not status.history_sync_completed:
        console.print()
        console.print("[yellow]Historical data not synced[/yellow]")
        console.print("[dim]Run \"claudecount stats\" to sync your usage data[/dim]")


def render_install_report(report: Optional[InstallReport], hook_path):
    if report is None:
        console.print("[red]✗ Could not install token tracking hook[/red]")
        console.print(f"[dim]You can manually add {hook_path} as a Stop hook in settings.json[/dim]")
    elif report.changed:
        console.print(f"[green]✓ Token tracking enabled[/green] [dim](updated: {', '.join(report.changed)})[/dim]")
    else:
        console.print("[dim]Token tracking hook already installed[/dim]")
