"""CLI commands for usage-pace."""

from __future__ import annotations

import asyncio
import sys

import typer
from loguru import logger
from rich.console import Console

from usage_pace import __version__

app = typer.Typer(
    name="usage_pace",
    help="usage-pace - quota usage pace monitor",
    no_args_is_help=True,
)
console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"usage-pace v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logs."),
) -> None:
    """usage-pace entrypoint."""
    del version
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


def _build_monitor(config: "Config", interval_s: float | None = None):
    from usage_pace.usage.claude_api import ClaudeUsageClient
    from usage_pace.usage.monitor import UsageMonitor

    client = ClaudeUsageClient(
        session_key=config.api.session_key,
        organization_id=config.api.organization_id,
        base_url=config.api.base_url,
        timeout_s=config.api.request_timeout_s,
    )
    monitor = UsageMonitor(
        fetch=client.fetch_usage,
        selected_metric=config.monitor.metric,
        interval_s=interval_s or config.monitor.refresh_interval_s,
    )
    return client, monitor


@app.command()
def status() -> None:
    """Fetch usage once and print the indicator and per-limit resets."""
    from usage_pace.cli.render import monitor_title, usage_table
    from usage_pace.config.loader import load_config

    config = load_config()
    client, monitor = _build_monitor(config)
    if not client.has_credentials:
        console.print(monitor_title(monitor, has_credentials=False))
        console.print(
            "[red]No session key found.[/red] Run [cyan]usage-pace set-key[/cyan] "
            "or set CLAUDE_SESSION_KEY."
        )
        raise typer.Exit(1)

    ok = asyncio.run(monitor.refresh())
    if not ok:
        console.print(monitor_title(monitor))
        console.print(f"[red]Fetch failed:[/red] {monitor.last_error}")
        raise typer.Exit(1)

    console.print(usage_table(monitor))


@app.command()
def watch(
    interval: float = typer.Option(
        0.0,
        "--interval",
        "-i",
        help="Refresh interval in seconds (default: monitor.refreshIntervalS).",
    ),
) -> None:
    """Poll usage periodically and keep the indicator on screen."""
    from rich.live import Live

    from usage_pace.cli.render import usage_table
    from usage_pace.config.loader import load_config

    config = load_config()
    client, monitor = _build_monitor(config, interval_s=interval if interval > 0 else None)
    if not client.has_credentials:
        console.print("[red]No session key found.[/red] Run [cyan]usage-pace set-key[/cyan].")
        raise typer.Exit(1)

    async def run_watch() -> None:
        with Live(usage_table(monitor), console=console, refresh_per_second=1) as live:
            monitor.on_update = lambda _status: live.update(usage_table(monitor))
            await monitor.start()
            try:
                while True:
                    await asyncio.sleep(30)
                    # Keep the countdowns current between fetches.
                    live.update(usage_table(monitor))
            finally:
                monitor.stop()

    console.print(f"Refreshing every [cyan]{monitor.interval_s:.0f}s[/cyan] (Ctrl+C to quit)")
    try:
        asyncio.run(run_watch())
    except KeyboardInterrupt:
        pass


@app.command()
def select(
    metric: str = typer.Argument(..., help="five_hour | seven_day | seven_day_sonnet"),
) -> None:
    """Choose which limit drives the indicator."""
    from usage_pace.config.loader import load_config, save_selected_metric

    _client, monitor = _build_monitor(load_config())
    try:
        changed = monitor.select_metric(metric)
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1)

    kind = monitor.selected_metric
    if not changed:
        console.print(f"[dim]{kind.display_name} is already selected.[/dim]")
        return
    try:
        save_selected_metric(kind)
    except OSError as exc:
        console.print(f"[red]Could not save the selection:[/red] {exc}")
        raise typer.Exit(1)
    console.print(f"[green]OK[/green] Indicator now follows [cyan]{kind.display_name}[/cyan]")


@app.command("set-key")
def set_key(
    key: str = typer.Argument(..., help="sessionKey cookie value from claude.ai"),
    organization: str = typer.Option("", "--org", help="Organization UUID (discovered when empty)."),
) -> None:
    """Store the session key used to query the usage endpoint."""
    from usage_pace.config.loader import get_config_path, update_config

    api = {"session_key": key.strip()}
    if organization.strip():
        api["organization_id"] = organization.strip()
    try:
        update_config({"api": api})
    except OSError as exc:
        console.print(f"[red]Could not save the session key:[/red] {exc}")
        raise typer.Exit(1)
    console.print(f"[green]OK[/green] Saved session key to {get_config_path()}")


if __name__ == "__main__":
    app()
