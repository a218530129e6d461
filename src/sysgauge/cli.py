"""sysgauge CLI - scriptable terminal system monitor."""

import logging
import sys
import time
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .config import ON_ERROR_CHOICES, MonitorConfig, load_config
from .errors import DataSourceError
from .monitor import DEFAULT_SCRIPT, Monitor, Reading
from .sources import SourceRegistry
from .sources.system import SystemSampler, register_system_sources

console = Console()


def setup_logging(level: str):
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )


def _load(config_path: Optional[str], script: Optional[str], on_error: Optional[str]) -> MonitorConfig:
    try:
        config = load_config(config_path)
    except (OSError, ValueError) as e:
        console.print(f"[red]x Invalid configuration: {e}[/red]")
        sys.exit(1)

    # Override with CLI options
    if script:
        config.script = script
    if on_error:
        config.on_error = on_error
    return config


def _setup_monitor(config: MonitorConfig) -> Monitor:
    monitor = Monitor(config)
    try:
        monitor.setup()
    except (DataSourceError, OSError) as e:
        console.print(f"[red]x Failed to load configuration script: {e}[/red]")
        sys.exit(1)

    for error in monitor.errors:
        console.print(f"[yellow]! Skipped: {error}[/yellow]")
    return monitor


def _readings_table(readings: list[Reading]) -> Table:
    """Build the table shown for one render cycle."""
    table = Table(title="sysgauge", show_lines=False)
    table.add_column("Name", style="cyan")
    table.add_column("Value", justify="right")
    table.add_column("Source", style="dim")

    for reading in readings:
        text = reading.text or "[dim]-[/dim]"
        table.add_row(reading.label, text, reading.source)
    return table


@click.group()
@click.version_option(version=__version__, prog_name="sysgauge")
def main():
    """sysgauge - scriptable system monitor for the terminal."""
    pass


@main.command()
@click.option("--config", "-c", "config_path", help="Path to config file")
@click.option("--script", "-s", type=click.Path(exists=True, dir_okay=False), help="Configuration script")
@click.option("--interval", "-i", type=click.FloatRange(min=0, min_open=True), help="Seconds between updates")
@click.option("--on-error", type=click.Choice(ON_ERROR_CHOICES), help="Abort or skip failing script statements")
@click.option("--log-level", help="Log level")
@click.option("--once", is_flag=True, help="Render once and exit")
def run(
    config_path: Optional[str],
    script: Optional[str],
    interval: Optional[float],
    on_error: Optional[str],
    log_level: Optional[str],
    once: bool,
):
    """Run the monitor."""
    config = _load(config_path, script, on_error)
    if interval is not None:
        config.interval = interval
    if log_level:
        config.log_level = log_level
    setup_logging(config.log_level)

    monitor = _setup_monitor(config)

    if once:
        monitor.update()
        console.print(_readings_table(monitor.snapshot()))
        monitor.close()
        return

    console.print(Panel(
        f"[bold green]sysgauge v{__version__}[/bold green]\n"
        f"Script: {config.script or 'built-in default'}\n"
        f"Interval: {config.interval}s",
        title="Starting",
    ))

    try:
        with Live(console=console, auto_refresh=False) as live:
            while True:
                monitor.update()
                live.update(_readings_table(monitor.snapshot()), refresh=True)
                time.sleep(config.interval)
    except KeyboardInterrupt:
        console.print("\n[yellow]Shutting down...[/yellow]")
    finally:
        monitor.close()


@main.command()
@click.option("--config", "-c", "config_path", help="Path to config file")
@click.option("--script", "-s", type=click.Path(exists=True, dir_okay=False), help="Configuration script")
def check(config_path: Optional[str], script: Optional[str]):
    """Evaluate the configuration script and report every failing statement."""
    config = _load(config_path, script, "skip")
    monitor = _setup_monitor(config)

    bound = monitor.runtime.bound_sources()
    console.print(f"[green]+ {len(bound)} data sources bound[/green]")
    for label, handle in bound:
        console.print(f"    - {label}: {handle.name}")

    if monitor.errors:
        console.print(f"[red]x {len(monitor.errors)} statements failed[/red]")
        sys.exit(1)


@main.command()
@click.option("--config", "-c", "config_path", help="Path to config file")
def sources(config_path: Optional[str]):
    """List available data sources."""
    config = _load(config_path, None, None)

    registry = SourceRegistry()
    register_system_sources(SystemSampler(config.features), registry=registry)

    table = Table(show_header=True, title="Data Sources")
    table.add_column("Name", style="cyan")
    table.add_column("Description")

    for entry in registry.entries():
        status = "[red]x" if entry.disabled else "[green]+"
        table.add_row(f"{status} {entry.name}", entry.description)

    console.print(table)
    console.print("\n[dim]+ = available, x = disabled by a feature setting[/dim]")


@main.command()
@click.option("--output", "-o", type=click.Path(), default="sysgauge.yaml", help="Output config path")
def init(output: str):
    """Generate a sample configuration file and script."""
    script_name = "sysgauge.py"
    sample_config = f"""# sysgauge configuration

# Script that constructs the displayed data sources
script: {script_name}

# Seconds between render cycles
interval: 1.0

# abort: stop on the first failing script statement
# skip: log it and continue with the next statement
on_error: abort

log_level: WARNING

# Telemetry groups; sources of a disabled group show a placeholder text
features:
  cpu: true
  memory: true
  disk: true
  network: true
  sensors: true
"""

    with open(output, "w") as f:
        f.write(sample_config)

    script_path = Path(output).parent / script_name
    with open(script_path, "w") as f:
        f.write("# Every variable bound to a data source is displayed, in order\n")
        f.write(DEFAULT_SCRIPT)

    console.print(f"[green]+ Created config file: {output}[/green]")
    console.print(f"[green]+ Created script: {script_path}[/green]")
    console.print("\nEdit the script to choose what is displayed, then run:")
    console.print(f"  [cyan]sysgauge run -c {output}[/cyan]")


if __name__ == "__main__":
    main()
