"""serverpulse command line"""

import asyncio
import logging
from datetime import timedelta
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .config import BotConfig, ConfigError, load_config
from .monitoring import setup_logging

console = Console()
app = typer.Typer(help="Minecraft server status bot for Discord", no_args_is_help=True)

logger = logging.getLogger(__name__)


def _load_or_exit(env_file: Optional[Path]) -> BotConfig:
    try:
        config = load_config(env_file)
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    setup_logging(config.log_level)
    return config


async def _run_forever(config: BotConfig) -> None:
    from .discord.client import DiscordClient
    from .scheduler import PollScheduler
    from .service import StatusService

    async with DiscordClient(config.discord_token) as client:
        me = await client.get_current_user()
        logger.info(f"Bot logged in as {me.get('username')} ({me.get('id')})")

        service = StatusService.from_config(config, client)
        scheduler = PollScheduler(service.run_cycle, interval_minutes=config.update_interval)
        await scheduler.start()
        try:
            await asyncio.Event().wait()
        finally:
            await scheduler.stop()


async def _run_once(config: BotConfig):
    from .discord.client import DiscordClient
    from .service import StatusService

    async with DiscordClient(config.discord_token) as client:
        service = StatusService.from_config(config, client)
        return await service.run_cycle()


@app.command("run")
def run(
    env_file: Optional[Path] = typer.Option(None, "--env-file", help="Path to .env file"),
):
    """Start the bot and update the status message on schedule"""
    config = _load_or_exit(env_file)
    console.print(f"[cyan]Watching {config.server_address} every {config.update_interval} minutes...[/cyan]")
    try:
        asyncio.run(_run_forever(config))
    except KeyboardInterrupt:
        console.print("\n[yellow]Bot stopped[/yellow]")
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


@app.command("once")
def once(
    env_file: Optional[Path] = typer.Option(None, "--env-file", help="Path to .env file"),
):
    """Run a single status update cycle"""
    config = _load_or_exit(env_file)
    report = asyncio.run(_run_once(config))

    if report.observation is not None:
        state = "[green]online[/green]" if report.observation.online else "[red]offline[/red]"
        console.print(f"{report.observation.address} is {state}")
    if report.outcome is not None and report.outcome.ok:
        console.print(f"Status message {report.outcome.message_id} ({report.outcome.state})")
    else:
        console.print(f"[red]Status message not synced[/red] {report.error or ''}")
        raise typer.Exit(1)


@app.command("players")
def players(
    days: Optional[int] = typer.Option(None, "--days", help="Only players seen in the last N days"),
    env_file: Optional[Path] = typer.Option(None, "--env-file", help="Path to .env file"),
):
    """List recorded players and when they were last seen"""
    from .presence.store import PresenceStore, utc_now
    from .render import format_last_seen

    config = _load_or_exit(env_file)
    store = PresenceStore(config.database_path)
    now = utc_now()

    if days is not None:
        records = store.query_recently_seen([], timedelta(days=days), now)
    else:
        records = store.all_records()

    if not records:
        console.print("[yellow]No players recorded[/yellow]")
        return

    table = Table(title=f"Players - {config.server_address}")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Last seen", style="green")
    table.add_column("", style="dim")

    for record in records:
        table.add_row(
            record.name,
            record.last_seen_at.strftime("%Y-%m-%d %H:%M:%S"),
            format_last_seen(record.last_seen_at, now),
        )

    console.print(table)


@app.command("probe")
def probe(
    host: str = typer.Argument(..., help="Host name or IP"),
    port: Optional[int] = typer.Option(None, "--port", help="TCP port for the fallback probe"),
):
    """Measure latency to a host"""
    from .probe import LatencyProber

    setup_logging("WARNING")
    latency = asyncio.run(LatencyProber().probe(host, port))
    if latency is None:
        console.print(f"[yellow]{host}: latency unknown[/yellow]")
        raise typer.Exit(1)
    console.print(f"{host}: [green]{latency}ms[/green]")


def main() -> None:
    app()
