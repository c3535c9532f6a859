#!/usr/bin/env python3
"""
Demonstration script for the change monitor.

Runs the full service stack in-process with in-memory storage, watches a
directory, and prints every change event as a live subscriber would see it.

Usage:
    python examples/file_monitoring_demo.py [--watch-dir PATH] [--duration SECONDS]
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Any

import click
from change_monitor.config import MonitorSettings
from change_monitor.services import MonitorServices, build_services
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TextColumn, TimeElapsedColumn
from rich.table import Table

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

console = Console()

KIND_STYLES = {"created": "green", "modified": "yellow", "deleted": "red"}


class ConsoleSubscriber:
    """Stands in for a WebSocket client and prints what it receives."""

    def __init__(self):
        self.received: list[dict[str, Any]] = []

    async def accept(self) -> None:
        console.print("🔌 [dim]Console subscriber connected[/dim]")

    async def send_json(self, message: dict[str, Any]) -> None:
        self.received.append(message)
        kind = message["changeKind"]
        style = KIND_STYLES.get(kind, "white")
        console.print(f"📣 [{style}]{kind:<8}[/{style}] [italic]{message['path']}[/italic] [dim]{message['timestamp']}[/dim]")

    async def close(self, code: int = 1000, reason: str = "") -> None:
        console.print(f"🔌 [dim]Console subscriber closed ({reason})[/dim]")


def create_pipeline_stats_table(stats: dict[str, Any]) -> Table:
    """Create a rich table for pipeline counters."""
    table = Table(title="📊 Pipeline Statistics", show_header=True)
    table.add_column("Metric", style="cyan", width=22)
    table.add_column("Value", style="white", width=10)

    table.add_row("📥 Events Received", str(stats["events_received"]))
    table.add_row("💾 Events Persisted", str(stats["events_persisted"]))
    table.add_row("📣 Broadcast Deliveries", str(stats["broadcast_deliveries"]))
    table.add_row("✉️  Alerts Sent", str(stats["alerts_sent"]))
    table.add_row("⚠️  Persistence Failures", str(stats["persistence_failures"]))
    table.add_row("🗑️  Events Dropped", str(stats["events_dropped"]))
    return table


async def run_scripted_changes(directory: Path) -> None:
    """Create, modify and delete a file so the demo shows all three kinds."""
    sample = directory / "demo-note.txt"
    console.print("\n📝 [bold blue]Making scripted changes[/bold blue]")

    sample.write_text("first draft\n", encoding='utf-8')
    await asyncio.sleep(1.5)
    sample.write_text("first draft\nsecond line\n", encoding='utf-8')
    await asyncio.sleep(1.5)
    sample.unlink()
    await asyncio.sleep(1.5)


async def demonstrate_monitoring(watch_directory: Path, duration: int, scripted: bool) -> None:
    """
    Start the services, watch a directory and report what happened.

    Args:
        watch_directory: Directory to monitor for changes
        duration: How long to keep watching (in seconds)
        scripted: Whether to make sample changes automatically
    """
    settings = MonitorSettings(_env_file=None, storage_backend="memory", use_polling=False)
    services: MonitorServices = build_services(settings)
    subscriber = ConsoleSubscriber()

    await services.startup()
    try:
        await services.connections.connect(subscriber)

        target = await services.targets.upsert(
            {"ownerIdentity": "demo", "path": str(watch_directory), "interval": 0.5, "trackedFiles": []}
        )
        status = await services.sessions.start(target)
        console.print(f"✅ [bold green]Monitoring started[/bold green] on [cyan]{status.path}[/cyan]")

        console.print(
            Panel(
                f"Create, edit or delete files in [cyan]{watch_directory}[/cyan]\n"
                f"and watch the events arrive below.",
                title="📝 How to Test",
                border_style="yellow",
            )
        )

        if scripted:
            await run_scripted_changes(watch_directory)

        start_time = time.time()
        with Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TimeElapsedColumn(),
            console=console,
        ) as progress:
            monitoring_task = progress.add_task(f"⏱️  Monitoring active (0/{duration}s)", total=duration)
            while (elapsed := time.time() - start_time) < duration:
                await asyncio.sleep(1)
                progress.update(
                    monitoring_task,
                    completed=elapsed,
                    description=f"⏱️  Monitoring active ({int(elapsed)}/{duration}s)",
                )

        await services.sessions.stop()
        await services.pipeline.wait_idle()

        history = await services.change_log.list_recent()
        history_table = Table(title="🗂️  Recorded Changes (newest first)", show_header=True)
        history_table.add_column("Kind", style="cyan")
        history_table.add_column("Path", style="white")
        history_table.add_column("Timestamp", style="dim")
        for event in history:
            history_table.add_row(event.change_kind.value, event.path, event.timestamp.isoformat())

        console.print(history_table)
        console.print(create_pipeline_stats_table(services.pipeline.get_stats()))

    finally:
        await services.shutdown()


@click.command()
@click.option(
    '--watch-dir',
    '-d',
    type=click.Path(path_type=Path),
    default=Path('./watched'),
    help='Directory to monitor (will be created if it doesn\'t exist)',
)
@click.option('--duration', '-t', type=int, default=30, help='Duration to run the demo in seconds')
@click.option('--scripted', '-s', is_flag=True, help='Create, modify and delete a sample file automatically')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
def main(watch_dir: Path, duration: int, scripted: bool, verbose: bool):
    """
    Run the change monitor demonstration.

    Example usage:

        # Watch ./watched for 30 seconds
        python examples/file_monitoring_demo.py

        # Watch a specific directory for 2 minutes
        python examples/file_monitoring_demo.py -d /path/to/dir -t 120

        # Let the demo make its own changes
        python examples/file_monitoring_demo.py -s
    """
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    watch_dir.mkdir(parents=True, exist_ok=True)

    console.print(
        Panel.fit(
            "🎯 [bold blue]Change Monitor Demo[/bold blue]\n\n"
            "Watches a directory and streams create, modify and delete\n"
            "events to a console subscriber.",
            title="Welcome",
            border_style="blue",
        )
    )

    try:
        asyncio.run(demonstrate_monitoring(watch_dir.resolve(), duration, scripted))
    except KeyboardInterrupt:
        console.print("\n⚡ [yellow]Demo interrupted by user[/yellow]")
    except Exception as e:
        console.print(f"❌ [red]Demo failed:[/red] {e}")
        logger.exception("Full error details:")
        raise SystemExit(1) from e


if __name__ == "__main__":
    main()
